# merge/cache behaviour against an in-memory store and a fake client

import json

import pytest

from weatherdash.cities import CityListError
from weatherdash.dashboard import CityNotFoundError, Dashboard, DashboardError, DuplicateCityError
from weatherdash.models import CityWeather
from weatherdash.storage import USER_CITIES_KEY, WEATHER_DATA_KEY, city_detail_key

KANDY = ("1241622", "Kandy")

def stored(store, key):
    raw = store.get_item(key)
    return None if raw is None else [CityWeather.from_dict(c) for c in json.loads(raw)]

@pytest.fixture
def build(fake_client, cities_file, store):
    def _build(**client_kwargs):
        client = fake_client(**client_kwargs)
        return Dashboard(client, store, cities_path=cities_file), client
    return _build

def test_refresh_with_no_user_cities_reproduces_defaults(build, store, default_codes):
    dash, client = build()

    first = dash.refresh()
    second = dash.refresh()

    assert [c.city_code for c in first] == default_codes
    assert [c.city_code for c in second] == default_codes
    assert first == second
    assert [c.city_code for c in stored(store, WEATHER_DATA_KEY)] == default_codes
    assert store.get_item(USER_CITIES_KEY) is None
    assert len(client.calls) == 2 * len(default_codes)

def test_refresh_merges_user_cities_after_defaults(build, store, default_codes):
    dash, client = build(by_name={"kandy": KANDY})
    dash.refresh()
    dash.add_city("Kandy")
    client.calls.clear()

    merged = dash.refresh()

    assert [c.city_code for c in merged] == default_codes + ["1241622"]
    assert merged[-1].is_user_added
    assert not any(c.is_user_added for c in merged[:-1])
    # user cities are refreshed in the same batch, one call each
    assert sorted(client.calls) == sorted(default_codes + ["1241622"])

def test_refresh_drops_user_city_shadowed_by_default(build, store, default_codes):
    store.set_item(USER_CITIES_KEY, json.dumps([
        CityWeather(city_code="1850147", city_name="Tokyo", is_user_added=True).to_dict(),
    ]))
    dash, _ = build()
    assert [c.city_code for c in dash.refresh()] == default_codes

def test_refresh_failed_city_becomes_placeholder(build, default_codes):
    dash, _ = build(failing={"1850147"})

    merged = dash.refresh()

    assert [c.city_code for c in merged] == default_codes
    tokyo = merged[1]
    assert tokyo.errored
    assert tokyo.city_name == "Tokyo"
    assert not merged[0].errored and not merged[2].errored

def test_refresh_keeps_last_good_record_for_failing_user_city(build, store):
    dash, client = build(by_name={"kandy": KANDY})
    dash.refresh()
    good = dash.add_city("Kandy")
    client.failing.add("1241622")

    merged = dash.refresh()

    assert merged[-1].errored and merged[-1].is_user_added
    assert stored(store, USER_CITIES_KEY) == [good]

def test_refresh_ignores_corrupt_user_list(build, store, default_codes):
    store.set_item(USER_CITIES_KEY, "{not json")
    dash, _ = build()
    assert [c.city_code for c in dash.refresh()] == default_codes

def test_refresh_propagates_city_list_failure(fake_client, store, tmp_path):
    dash = Dashboard(fake_client(), store, cities_path=tmp_path / "missing.json")
    with pytest.raises(CityListError):
        dash.refresh()

def test_load_prefers_cache(build, store):
    cached = [CityWeather(city_code="1", city_name="Cached", temperature=1.0)]
    store.set_item(WEATHER_DATA_KEY, json.dumps([c.to_dict() for c in cached]))
    dash, client = build()

    assert dash.load() == cached
    assert dash.cities == cached
    assert client.calls == []

def test_load_refreshes_when_cache_is_corrupt(build, store, default_codes):
    store.set_item(WEATHER_DATA_KEY, "[{]")
    dash, client = build()

    assert [c.city_code for c in dash.load()] == default_codes
    assert len(client.calls) == len(default_codes)

def test_add_city_persists_both_lists(build, store, default_codes):
    changes = []
    dash, _ = build(by_name={"kandy": KANDY})
    dash.on_change = lambda: changes.append(True)
    dash.refresh()

    city = dash.add_city("  Kandy ")

    assert city.city_code == "1241622"
    assert city.is_user_added
    assert [c.city_code for c in dash.cities] == default_codes + ["1241622"]
    assert stored(store, USER_CITIES_KEY) == [city]
    assert stored(store, WEATHER_DATA_KEY) == dash.cities
    assert changes == [True]

@pytest.mark.parametrize("name", ["tokyo", "TOKYO", "Tokyo"])
def test_add_city_rejects_existing_name_without_mutation(build, store, name):
    dash, client = build(by_name={"tokyo": ("1850147", "Tokyo")})
    dash.refresh()
    before = store.snapshot()
    cities_before = list(dash.cities)

    with pytest.raises(DuplicateCityError):
        dash.add_city(name)

    assert store.snapshot() == before
    assert dash.cities == cities_before
    # name matches are rejected before any lookup
    assert client.name_calls == []

def test_add_city_rejects_existing_code_without_mutation(build, store):
    # a different spelling that resolves to a city already on the board
    dash, client = build(by_name={"liverpool city": ("2644210", "Liverpool City")})
    dash.refresh()
    before = store.snapshot()

    with pytest.raises(DuplicateCityError):
        dash.add_city("Liverpool City")

    assert client.name_calls == ["Liverpool City"]
    assert store.snapshot() == before

def test_add_city_rejects_name_already_in_user_list(build, store):
    dash, _ = build(by_name={"kandy": KANDY})
    dash.refresh()
    dash.add_city("Kandy")
    before = store.snapshot()

    with pytest.raises(DuplicateCityError):
        dash.add_city("kandy")
    assert store.snapshot() == before

def test_add_city_unknown_name(build, store):
    dash, _ = build()
    dash.refresh()
    before = store.snapshot()

    with pytest.raises(CityNotFoundError):
        dash.add_city("Atlantis")
    assert store.snapshot() == before

def test_add_city_blank_name(build):
    dash, _ = build()
    with pytest.raises(ValueError):
        dash.add_city("   ")

def test_add_city_wraps_provider_failure(build, store):
    dash, client = build()
    dash.refresh()
    before = store.snapshot()

    def boom(name):
        from weatherdash.client import WeatherAPIError
        raise WeatherAPIError("HTTP 502")
    client.get_current_by_name = boom

    with pytest.raises(DashboardError, match="Failed to add city"):
        dash.add_city("Kandy")
    assert store.snapshot() == before

def test_remove_city_deletes_exactly_that_entry(build, store, default_codes):
    dash, _ = build(by_name={"kandy": KANDY, "oslo": ("3143244", "Oslo")})
    dash.refresh()
    dash.add_city("Kandy")
    oslo = dash.add_city("Oslo")
    store.set_item(city_detail_key("1241622"), "{}")

    removed = dash.remove_city("1241622")

    assert removed.city_code == "1241622"
    assert [c.city_code for c in dash.cities] == default_codes + ["3143244"]
    assert stored(store, USER_CITIES_KEY) == [oslo]
    assert stored(store, WEATHER_DATA_KEY) == dash.cities
    assert store.get_item(city_detail_key("1241622")) is None

def test_remove_unknown_city_leaves_state_alone(build, store):
    dash, _ = build()
    dash.refresh()
    before = store.snapshot()
    cities_before = list(dash.cities)

    with pytest.raises(CityNotFoundError):
        dash.remove_city("999")

    assert store.snapshot() == before
    assert dash.cities == cities_before

def test_remove_loads_cache_first(build, store):
    user = CityWeather(city_code="5", city_name="Five", is_user_added=True)
    store.set_item(USER_CITIES_KEY, json.dumps([user.to_dict()]))
    store.set_item(WEATHER_DATA_KEY, json.dumps([user.to_dict()]))
    dash, client = build()

    dash.remove_city("5")

    assert dash.cities == []
    assert stored(store, USER_CITIES_KEY) == []
    assert client.calls == []

def test_get_city_fetches_and_caches_detail(build, store):
    dash, client = build()

    city = dash.get_city("2644210")

    assert city.city_name == "Liverpool"
    assert json.loads(store.get_item(city_detail_key("2644210")))["city_code"] == "2644210"
    calls = len(client.calls)
    assert dash.get_city("2644210") == city
    assert len(client.calls) == calls

def test_get_city_refresh_bypasses_cache(build, store):
    store.set_item(city_detail_key("2644210"), json.dumps(
        CityWeather(city_code="2644210", city_name="Stale").to_dict()))
    dash, _ = build()

    assert dash.get_city("2644210").city_name == "Stale"
    assert dash.get_city("2644210", use_cache=False).city_name == "Liverpool"

def test_get_city_unknown(build):
    dash, _ = build()
    with pytest.raises(CityNotFoundError):
        dash.get_city("999")

def test_refresh_prunes_shadowed_and_repeated_user_entries(build, store, default_codes):
    kandy = CityWeather(city_code="1241622", city_name="Kandy", is_user_added=True)
    store.set_item(USER_CITIES_KEY, json.dumps([
        CityWeather(city_code="1850147", city_name="Tokyo", is_user_added=True).to_dict(),
        kandy.to_dict(),
        kandy.to_dict(),
    ]))
    dash, _ = build()

    merged = dash.refresh()

    assert [c.city_code for c in merged] == default_codes + ["1241622"]
    assert [c.city_code for c in stored(store, USER_CITIES_KEY)] == ["1241622"]

def test_refresh_clears_user_list_holding_only_defaults(build, store, default_codes):
    store.set_item(USER_CITIES_KEY, json.dumps([
        CityWeather(city_code="1850147", city_name="Tokyo", is_user_added=True).to_dict(),
    ]))
    dash, _ = build()
    dash.refresh()
    assert stored(store, USER_CITIES_KEY) == []
