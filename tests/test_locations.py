"""
Tests for location type and region inference.
"""
import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from workforce_intel.config import OTHER_REGION
from workforce_intel.data.locations import (
    LOCATION_FIELD,
    LOCATION_HOME,
    LOCATION_HQ,
    LOCATION_REGIONAL,
    infer_location_type,
    is_field_location,
    normalize_location_type,
    normalize_region,
    resolve_location_type,
    station_name,
)


class TestNormalizeLocationType:
    """Tests for recorded location type labels."""

    @pytest.mark.parametrize("raw,expected", [
        ("Field", LOCATION_FIELD),
        ("HQ", LOCATION_HQ),
        ("headquarters", LOCATION_HQ),
        ("Regional", LOCATION_REGIONAL),
        ("home_based", LOCATION_HOME),
        ("Remote", LOCATION_HOME),
    ])
    def test_aliases(self, raw, expected):
        """Known labels should map to the canonical types."""
        assert normalize_location_type(raw) == expected

    @pytest.mark.parametrize("raw", [None, np.nan, "", "somewhere"])
    def test_unusable_is_none(self, raw):
        """Missing or unknown labels give None."""
        assert normalize_location_type(raw) is None


class TestInferLocationType:
    """Tests for duty station inference."""

    @pytest.mark.parametrize("station,expected", [
        ("Geneva, Switzerland", LOCATION_HQ),
        ("New York", LOCATION_HQ),
        ("Bangkok, Thailand", LOCATION_REGIONAL),
        ("Regional Office for West Africa", LOCATION_REGIONAL),
        ("Home-based", LOCATION_HOME),
        ("Juba, South Sudan", LOCATION_FIELD),
        (None, LOCATION_FIELD),
    ])
    def test_stations(self, station, expected):
        """Stations should be classified by indicator lists."""
        assert infer_location_type(station) == expected

    def test_home_flag_wins(self):
        """The home-based flag overrides the station text."""
        assert infer_location_type("Geneva", is_home_based=True) == LOCATION_HOME


class TestFieldClassification:
    """Tests for the field ratio predicate."""

    def test_recorded_type_wins(self):
        """A recorded Field type should count even for an HQ city."""
        assert is_field_location("Field", "Geneva") is True
        assert is_field_location("HQ", "Juba") is False

    def test_inferred_without_recorded_type(self):
        """Without a recorded type the station decides."""
        assert is_field_location(None, "Juba, South Sudan") is True
        assert is_field_location(None, "Nairobi, Kenya") is False
        assert is_field_location(None, "Remote", is_home_based=False) is False

    def test_resolve_location_type(self):
        """Unknown recorded labels should fall back to inference."""
        assert resolve_location_type("unknown", "Vienna") == LOCATION_HQ


class TestNormalizeRegion:
    """Tests for region normalisation."""

    def test_recorded_alias(self):
        """Recorded regions should map through aliases."""
        assert normalize_region("Asia and the Pacific") == "Asia"
        assert normalize_region("East Africa") == "Africa"

    def test_station_fallback(self):
        """Missing regions should be inferred from the station."""
        assert normalize_region(None, "Kabul, Afghanistan") == "Asia"

    def test_unknown_is_other(self):
        """Nothing usable should give the Other region."""
        assert normalize_region(None, "Atlantis") == OTHER_REGION
        assert normalize_region(np.nan, None) == OTHER_REGION


class TestStationName:
    """Tests for duty station display names."""

    def test_first_part_title_cased(self):
        """The city part should be kept and title-cased."""
        assert station_name("nairobi, kenya") == "Nairobi"

    def test_missing_is_unknown(self):
        """Missing stations display as Unknown."""
        assert station_name(None) == "Unknown"
