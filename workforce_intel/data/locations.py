"""
Location type and region inference for duty stations.
"""
from __future__ import annotations

from typing import Optional

import pandas as pd

from workforce_intel.config import (
    HOME_BASED_INDICATORS,
    HQ_CITIES,
    OTHER_REGION,
    REGION_ALIASES,
    REGIONAL_HUBS,
    REGIONAL_INDICATORS,
    STATION_REGIONS,
)

LOCATION_FIELD = "Field"
LOCATION_HQ = "Headquarters"
LOCATION_REGIONAL = "Regional Hub"
LOCATION_HOME = "Home-based"

_LOCATION_TYPE_ALIASES = {
    "field": LOCATION_FIELD,
    "headquarters": LOCATION_HQ,
    "hq": LOCATION_HQ,
    "regional": LOCATION_REGIONAL,
    "regional hub": LOCATION_REGIONAL,
    "regionalhub": LOCATION_REGIONAL,
    "regional_hub": LOCATION_REGIONAL,
    "home-based": LOCATION_HOME,
    "home based": LOCATION_HOME,
    "homebased": LOCATION_HOME,
    "home_based": LOCATION_HOME,
    "remote": LOCATION_HOME,
}


def _contains_any(text: str, needles) -> bool:
    return any(needle in text for needle in needles)


def normalize_location_type(value) -> Optional[str]:
    """Map a recorded location type onto the canonical labels, or None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return _LOCATION_TYPE_ALIASES.get(str(value).strip().lower())


def infer_location_type(duty_station, is_home_based: bool = False) -> str:
    """Infer a location type from duty station text."""
    if is_home_based:
        return LOCATION_HOME
    station = "" if duty_station is None or pd.isna(duty_station) else str(duty_station).lower()
    if _contains_any(station, HOME_BASED_INDICATORS):
        return LOCATION_HOME
    if _contains_any(station, HQ_CITIES):
        return LOCATION_HQ
    if _contains_any(station, REGIONAL_HUBS) or _contains_any(station, REGIONAL_INDICATORS):
        return LOCATION_REGIONAL
    return LOCATION_FIELD


def resolve_location_type(location_type, duty_station, is_home_based: bool = False) -> str:
    """Recorded location type when usable, else inference from the duty station."""
    recorded = normalize_location_type(location_type)
    if recorded is not None:
        return recorded
    return infer_location_type(duty_station, is_home_based)


def is_field_location(location_type, duty_station, is_home_based: bool = False) -> bool:
    """
    Whether a posting counts towards the field ratio.

    A recorded type decides directly. Without one, home-based postings and
    stations on the headquarters or regional-hub lists are non-field;
    everything else is field.
    """
    return resolve_location_type(location_type, duty_station, is_home_based) == LOCATION_FIELD


def normalize_region(region, duty_station=None) -> str:
    """Canonical region from the recorded value, else from the duty station."""
    if region is not None and not pd.isna(region):
        key = str(region).strip().lower()
        if key in REGION_ALIASES:
            return REGION_ALIASES[key]
        for alias, canonical in REGION_ALIASES.items():
            if alias in key:
                return canonical

    station = "" if duty_station is None or pd.isna(duty_station) else str(duty_station).lower()
    if station:
        for canonical, stations in STATION_REGIONS.items():
            if _contains_any(station, stations):
                return canonical
    return OTHER_REGION


def station_name(duty_station) -> str:
    """Display name for a duty station: first comma part, title-cased."""
    if duty_station is None or pd.isna(duty_station):
        return "Unknown"
    name = str(duty_station).split(",")[0].strip()
    return name.title() if name else "Unknown"
