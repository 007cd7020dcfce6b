"""
Engine configuration management.
"""
import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MetricThresholds:
    """Cut-offs used by the metric calculators."""

    default_window_days: float = 14.0
    max_valid_window_days: float = 120.0
    short_window_days: float = 10.0
    accelerating_ratio: float = 1.3
    decelerating_ratio: float = 0.7
    category_growth_pct: float = 30.0
    category_growth_min_count: int = 5
    category_decline_pct: float = 20.0
    category_decline_min_previous: int = 5
    window_assessment_days: float = 3.0


@dataclass(frozen=True)
class SignalThresholds:
    """Trigger levels for the signal rule catalog."""

    senior_drift_pp: float = 4.0
    short_window_share_pct: float = 30.0
    short_window_market_multiple: float = 1.5
    home_based_share_pct: float = 8.0
    home_based_growth_multiple: float = 1.5
    new_competitor_limit: int = 2
    category_decline_pct: float = 30.0
    category_decline_min_previous: int = 5
    staff_drift_pp: float = 12.0
    vanished_region_min_previous: int = 10
    high_severity_multiple: float = 1.5


@dataclass(frozen=True)
class FindingWeights:
    """Significance weights for ranking candidate findings."""

    staffing_market_gap: float = 1.0
    staffing_period_change: float = 1.0
    category_absolute_change: float = 1.0
    category_share_change: float = 5.0
    window_short_share_gap: float = 1.0
    window_avg_gap: float = 1.0
    geography_field_change: float = 1.0
    geography_market_gap: float = 1.0
    geography_location_change: float = 2.0
    competitor_correlation: float = 30.0
    seniority_change: float = 1.0
    seniority_market_gap: float = 1.0


@dataclass
class AppConfig:
    """Engine configuration with environment overrides."""

    # Defaults for a brief request
    default_time_range: str = field(default_factory=lambda: os.getenv("WI_DEFAULT_TIME_RANGE", "3months"))

    # Output caps
    max_signals: int = field(default_factory=lambda: int(os.getenv("WI_MAX_SIGNALS", "8")))
    max_findings: int = field(default_factory=lambda: int(os.getenv("WI_MAX_FINDINGS", "5")))
    correlation_top_k: int = field(default_factory=lambda: int(os.getenv("WI_CORRELATION_TOP_K", "6")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("WI_LOG_LEVEL", "INFO"))

    # Comparative engine
    new_entrant_min_positions: int = 5
    new_entrant_previous_floor: int = 1  # previous count below this counts as absent
    competitor_min_positions: int = 20
    min_correlation: float = 0.4

    # Section sizes
    top_agencies: int = 15
    top_locations: int = 15
    top_categories: int = 10

    metrics: MetricThresholds = field(default_factory=MetricThresholds)
    signals: SignalThresholds = field(default_factory=SignalThresholds)
    weights: FindingWeights = field(default_factory=FindingWeights)


# Global defaults; callers pass their own AppConfig for overrides
config = AppConfig()


# =============================================================================
# TIME RANGES
# =============================================================================

TIME_RANGE_WEEKS = {
    "4weeks": 4,
    "8weeks": 8,
    "3months": 13,
    "6months": 26,
    "1year": 52,
}

HISTORICAL_MONTHS = 12


# =============================================================================
# RECORD COLUMNS
# =============================================================================

REQUIRED_COLUMNS = ["posting_date", "agency", "grade_code"]

OPTIONAL_COLUMNS = [
    "job_id",
    "apply_until_date",
    "primary_category",
    "duty_station",
    "duty_country",
    "region",
    "location_type",
    "application_window_days",
    "is_home_based",
]

COLUMN_ALIASES = {
    "id": "job_id",
    "postingDate": "posting_date",
    "posting_date": "posting_date",
    "applyUntilDate": "apply_until_date",
    "apply_until": "apply_until_date",
    "agencyName": "agency",
    "primaryCategory": "primary_category",
    "gradeCode": "grade_code",
    "up_grade": "grade_code",
    "dutyStation": "duty_station",
    "duty_station": "duty_station",
    "dutyCountry": "duty_country",
    "duty_continent": "region",
    "locationType": "location_type",
    "location_type": "location_type",
    "applicationWindowDays": "application_window_days",
    "isHomeBased": "is_home_based",
    "is_home_based": "is_home_based",
}

UNCATEGORIZED = "uncategorized"


# =============================================================================
# LOCATION REFERENCE LISTS
# =============================================================================

HQ_CITIES = [
    "new york", "geneva", "vienna", "rome", "paris", "washington",
    "the hague", "montreal", "bonn", "copenhagen",
]

REGIONAL_HUBS = [
    "nairobi", "bangkok", "santiago", "addis ababa", "beirut", "amman",
    "dakar", "johannesburg", "panama", "cairo", "istanbul", "pretoria",
]

REGIONAL_INDICATORS = ["regional", "hub", "multi-country", "sub-regional"]

HOME_BASED_INDICATORS = ["home", "remote", "telecommut", "work from"]

REGION_ALIASES = {
    "africa": "Africa",
    "asia": "Asia",
    "asia and the pacific": "Asia",
    "asia-pacific": "Asia",
    "pacific": "Oceania",
    "oceania": "Oceania",
    "europe": "Europe",
    "europe and central asia": "Europe",
    "arab states": "Middle East",
    "middle east": "Middle East",
    "middle east and north africa": "Middle East",
    "americas": "Americas",
    "latin america and the caribbean": "Americas",
    "north america": "Americas",
    "south america": "Americas",
}

STATION_REGIONS = {
    "Africa": [
        "nairobi", "addis ababa", "dakar", "johannesburg", "pretoria", "abuja",
        "kinshasa", "juba", "khartoum", "mogadishu", "kampala", "maputo",
        "accra", "lagos", "harare", "lusaka", "bamako", "niamey", "goma",
    ],
    "Asia": [
        "bangkok", "new delhi", "delhi", "dhaka", "kabul", "islamabad", "manila",
        "jakarta", "beijing", "tokyo", "kathmandu", "colombo", "yangon",
        "cox's bazar", "hanoi", "phnom penh",
    ],
    "Middle East": [
        "beirut", "amman", "cairo", "damascus", "baghdad", "erbil", "sana'a",
        "gaza", "jerusalem", "istanbul", "tehran", "riyadh",
    ],
    "Europe": [
        "geneva", "vienna", "rome", "paris", "bonn", "the hague", "brussels",
        "copenhagen", "madrid", "budapest", "kyiv", "turin",
    ],
    "Americas": [
        "new york", "washington", "montreal", "panama", "santiago", "bogota",
        "port-au-prince", "mexico", "lima", "brasilia", "guatemala",
    ],
    "Oceania": ["suva", "apia", "port moresby", "sydney"],
}

OTHER_REGION = "Other"


# =============================================================================
# TAXONOMY ORDERING
# =============================================================================

DISPLAY_TIER_ORDER = [
    "Executive",
    "Director",
    "Senior Professional",
    "Mid Professional",
    "Entry Professional",
    "Support",
    "Consultant",
    "Intern",
]

LOCATION_TYPE_ORDER = ["Headquarters", "Regional Hub", "Field", "Home-based"]


# =============================================================================
# PEER GROUPS
# =============================================================================

PEER_GROUPS = {
    "tier1": {
        "name": "Large operational agencies",
        "members": ["UNDP", "UNICEF", "WFP", "UNHCR"],
    },
    "tier2": {
        "name": "Large specialised agencies",
        "members": ["WHO", "FAO", "UNESCO", "UNEP", "UN-Habitat", "IOM"],
    },
    "tier3": {
        "name": "Mid-size funds and agencies",
        "members": ["UNFPA", "ILO", "IFAD", "UNIDO", "UNODC", "UN Women", "UNRWA", "UNCTAD"],
    },
    "tier4": {
        "name": "Smaller and technical entities",
        "members": ["UNCDF", "UNV", "UN Volunteers", "UNICRI", "UPU", "WIPO", "ICAO", "IMO", "ITU", "WMO"],
    },
    "secretariat": {
        "name": "UN Secretariat",
        "members": ["UN Secretariat", "OCHA", "DPPA", "DPO", "OHCHR", "DESA", "UNOPS", "UNSSC"],
    },
}
