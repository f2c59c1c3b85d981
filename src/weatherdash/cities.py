# loads the static list of monitored cities from the bundled json resource

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import List, Optional, Union
from .config import DEFAULT_CITIES_PATH
from .models import CityRef

logger = logging.getLogger(__name__)

class CityListError(RuntimeError):
    pass

def parse_cities(data) -> List[CityRef]:
    # shape: {"List": [{"CityCode": "1248991", "CityName": "Colombo", ...}, ...]}
    try:
        entries = data["List"]
    except (KeyError, TypeError) as exc:
        raise CityListError("city list is missing the 'List' array") from exc
    if not isinstance(entries, list):
        raise CityListError("'List' must be an array")

    cities: List[CityRef] = []
    seen = set()
    for i, entry in enumerate(entries):
        try:
            code = str(entry["CityCode"]).strip()
        except (KeyError, TypeError) as exc:
            raise CityListError(f"entry {i} has no CityCode") from exc
        if not code:
            raise CityListError(f"entry {i} has an empty CityCode")
        if code in seen:
            logger.warning("Skipping duplicate city code %s in city list", code)
            continue
        seen.add(code)
        cities.append(CityRef(code=code, name=str(entry.get("CityName") or code)))
    return cities

def load_cities(path: Optional[Union[str, Path]] = None) -> List[CityRef]:
    path = Path(path) if path else DEFAULT_CITIES_PATH
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CityListError(f"cannot read city list {path}: {exc}") from exc
    except ValueError as exc:
        raise CityListError(f"invalid JSON in city list {path}: {exc}") from exc
    cities = parse_cities(data)
    logger.debug("Loaded %d cities from %s", len(cities), path)
    return cities
