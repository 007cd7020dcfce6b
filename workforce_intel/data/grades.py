"""
Grade classification: raw grade codes to a seniority and staff-type taxonomy.

Codes from different contract families share prefixes (D-1 vs P-1, NPSA vs
PSA), so classification walks an ordered rule table and the first match
wins. Each rule is data and can be tested on its own.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

import pandas as pd

# Tiers
TIER_EXECUTIVE = "Executive"
TIER_DIRECTOR = "Director"
TIER_SENIOR_PROFESSIONAL = "Senior Professional"
TIER_MID_PROFESSIONAL = "Mid Professional"
TIER_ENTRY_PROFESSIONAL = "Entry Professional"
TIER_SUPPORT = "Support"
TIER_CONSULTANT = "Consultant"
TIER_INTERN = "Intern"
TIER_OTHER = "Other"

SENIOR_TIERS = {TIER_EXECUTIVE, TIER_DIRECTOR, TIER_SENIOR_PROFESSIONAL}

# Staff categories
STAFF = "Staff"
NON_STAFF = "Non-Staff"

# Contract types
CONTRACT_INTERNATIONAL = "International Staff"
CONTRACT_NATIONAL = "National Staff"
CONTRACT_LOCAL = "Local Staff"
CONTRACT_SERVICE_AGREEMENT = "Service Agreement"
CONTRACT_CONSULTANT = "Consultant"
CONTRACT_INTERN = "Intern"
CONTRACT_VOLUNTEER = "Volunteer"
CONTRACT_OTHER = "Other"

# Consolidated buckets for pyramid analysis
BAND_SENIOR = "Senior"
BAND_MID = "Mid"
BAND_JUNIOR = "Junior"
BAND_NON_PYRAMID = "Non-Pyramid"

CONSOLIDATED_TIERS = {
    TIER_EXECUTIVE: BAND_SENIOR,
    TIER_DIRECTOR: BAND_SENIOR,
    TIER_SENIOR_PROFESSIONAL: BAND_SENIOR,
    TIER_MID_PROFESSIONAL: BAND_MID,
    TIER_ENTRY_PROFESSIONAL: BAND_JUNIOR,
    TIER_SUPPORT: BAND_JUNIOR,
    TIER_INTERN: BAND_JUNIOR,
    TIER_CONSULTANT: BAND_NON_PYRAMID,
    TIER_OTHER: BAND_NON_PYRAMID,
}

# Position on a 1 (top) .. 9 (outside the pyramid) scale
PYRAMID_POSITIONS = {
    TIER_EXECUTIVE: 1,
    TIER_DIRECTOR: 2,
    TIER_SENIOR_PROFESSIONAL: 3,
    TIER_MID_PROFESSIONAL: 4,
    TIER_ENTRY_PROFESSIONAL: 5,
    TIER_SUPPORT: 6,
    TIER_INTERN: 7,
    TIER_CONSULTANT: 8,
    TIER_OTHER: 9,
}

CLASSIFICATION_COLUMNS = [
    "grade_tier",
    "staff_category",
    "consolidated_tier",
    "contract_type",
    "grade_level",
]


@dataclass(frozen=True)
class GradeClassification:
    """Classification of a single grade code."""

    grade_code: str
    tier: str
    staff_category: str
    consolidated_tier: str
    contract_type: str
    numeric_level: Optional[int]
    pyramid_position: int
    display_label: str

    @property
    def is_staff(self) -> bool:
        return self.staff_category == STAFF

    @property
    def is_senior(self) -> bool:
        return self.tier in SENIOR_TIERS


@dataclass(frozen=True)
class GradeRule:
    """
    One entry of the classification table.

    ``pattern`` is searched against the normalised code. When ``level_bands``
    is set, the pattern's ``level`` group is read as an integer and the first
    band whose minimum it reaches supplies the tier; otherwise ``tier`` applies.
    """

    name: str
    pattern: re.Pattern
    staff_category: str
    contract_type: str
    tier: Optional[str] = None
    level_bands: tuple = ()

    def match(self, code: str) -> Optional[re.Match]:
        return self.pattern.search(code)

    def resolve_tier(self, match: re.Match) -> tuple[str, Optional[int]]:
        level = _match_level(match)
        if not self.level_bands:
            return self.tier or TIER_OTHER, level
        if level is None:
            return self.level_bands[-1][1], None
        for minimum, tier in self.level_bands:
            if level >= minimum:
                return tier, level
        return self.level_bands[-1][1], level


def _match_level(match: re.Match) -> Optional[int]:
    if "level" not in match.re.groupindex:
        return None
    raw = match.group("level")
    if raw is None:
        return None
    if raw.isdigit():
        return int(raw)
    # National officer letters A..E map to 1..5
    return ord(raw.upper()) - ord("A") + 1


def _rule(name, regex, staff_category, contract_type, tier=None, level_bands=()):
    return GradeRule(
        name=name,
        pattern=re.compile(regex),
        staff_category=staff_category,
        contract_type=contract_type,
        tier=tier,
        level_bands=tuple(level_bands),
    )


# Numeric bands shared by contractor families that embed a level
CONTRACTOR_LEVEL_BANDS = (
    (10, TIER_SENIOR_PROFESSIONAL),
    (7, TIER_MID_PROFESSIONAL),
    (0, TIER_ENTRY_PROFESSIONAL),
)

IPSA_LEVEL_BANDS = (
    (11, TIER_SENIOR_PROFESSIONAL),
    (9, TIER_MID_PROFESSIONAL),
    (0, TIER_ENTRY_PROFESSIONAL),
)

NPSA_LEVEL_BANDS = (
    (10, TIER_MID_PROFESSIONAL),
    (7, TIER_ENTRY_PROFESSIONAL),
    (0, TIER_SUPPORT),
)

# Order matters: directors before professionals, IPSA/NPSA before PSA,
# levelled contractor codes before generic contractor wording.
GRADE_RULES: tuple[GradeRule, ...] = (
    _rule("executive_officials", r"^(ASG|USG|SG|DSG)$", STAFF, CONTRACT_INTERNATIONAL, TIER_EXECUTIVE),
    _rule("director_d2", r"^D-?(?P<level>2)$", STAFF, CONTRACT_INTERNATIONAL, TIER_EXECUTIVE),
    _rule("director_d1", r"^D-?(?P<level>1)$", STAFF, CONTRACT_INTERNATIONAL, TIER_DIRECTOR),
    _rule("professional_senior", r"^P-?(?P<level>[5-7])$", STAFF, CONTRACT_INTERNATIONAL, TIER_SENIOR_PROFESSIONAL),
    _rule("professional_mid", r"^P-?(?P<level>[34])$", STAFF, CONTRACT_INTERNATIONAL, TIER_MID_PROFESSIONAL),
    _rule("professional_entry", r"^P-?(?P<level>[12])$", STAFF, CONTRACT_INTERNATIONAL, TIER_ENTRY_PROFESSIONAL),
    _rule("junior_professional_officer", r"^JPO\b", STAFF, CONTRACT_INTERNATIONAL, TIER_ENTRY_PROFESSIONAL),
    _rule("ipsa", r"^IPSA-?(?P<level>\d+)$", NON_STAFF, CONTRACT_SERVICE_AGREEMENT, level_bands=IPSA_LEVEL_BANDS),
    _rule("npsa", r"^NPSA-?(?P<level>\d+)$", NON_STAFF, CONTRACT_SERVICE_AGREEMENT, level_bands=NPSA_LEVEL_BANDS),
    _rule("national_officer_senior", r"^NO-?(?P<level>[DE])$", STAFF, CONTRACT_NATIONAL, TIER_SENIOR_PROFESSIONAL),
    _rule("national_officer_mid", r"^NO-?(?P<level>C)$", STAFF, CONTRACT_NATIONAL, TIER_MID_PROFESSIONAL),
    _rule("national_officer_entry", r"^NO-?(?P<level>[AB])$", STAFF, CONTRACT_NATIONAL, TIER_ENTRY_PROFESSIONAL),
    _rule("general_service", r"^(G|GS)-?(?P<level>[1-7])$", STAFF, CONTRACT_LOCAL, TIER_SUPPORT),
    _rule(
        "individual_contractor_level",
        r"^(LICA|IICA|SC)-?(?P<level>\d+)$",
        NON_STAFF,
        CONTRACT_CONSULTANT,
        level_bands=CONTRACTOR_LEVEL_BANDS,
    ),
    _rule(
        "service_agreement_level",
        r"^(PSA|SSA|SB)-?(?P<level>\d+)$",
        NON_STAFF,
        CONTRACT_SERVICE_AGREEMENT,
        level_bands=CONTRACTOR_LEVEL_BANDS,
    ),
    _rule(
        "consultant",
        r"CONSULTANT|INDIVIDUAL CONTRACTOR|^IC$|\bLICA\b|\bIICA\b",
        NON_STAFF,
        CONTRACT_CONSULTANT,
        TIER_CONSULTANT,
    ),
    _rule(
        "service_agreement",
        r"\b[NI]?PSA\b|\bSSA\b|SERVICE AGREEMENT",
        NON_STAFF,
        CONTRACT_SERVICE_AGREEMENT,
        TIER_CONSULTANT,
    ),
    _rule("contractor", r"CONTRACT|^CON\b", NON_STAFF, CONTRACT_CONSULTANT, TIER_CONSULTANT),
    _rule("intern", r"INTERN", NON_STAFF, CONTRACT_INTERN, TIER_INTERN),
    _rule("volunteer", r"\bUNV\b|VOLUNTEER", NON_STAFF, CONTRACT_VOLUNTEER, TIER_OTHER),
)

_DASHES = re.compile(r"\s*[-‐-―_]\s*")
_SPACES = re.compile(r"\s+")
_FAMILY_LEVEL_GAP = re.compile(r"^([A-Z]{1,4}) (\d+|[A-E])$")


def normalize_grade_code(grade_code) -> str:
    """Upper-case, trim and unify separators: ' p 4 ' -> 'P-4', 'NO–C' -> 'NO-C'."""
    if grade_code is None or (not isinstance(grade_code, str) and pd.isna(grade_code)):
        return ""
    code = _SPACES.sub(" ", str(grade_code).strip().upper())
    code = _DASHES.sub("-", code)
    return _FAMILY_LEVEL_GAP.sub(r"\1-\2", code)


def consolidate_tier(tier: str) -> str:
    """Fold a tier into the Senior / Mid / Junior / Non-Pyramid buckets."""
    return CONSOLIDATED_TIERS.get(tier, BAND_NON_PYRAMID)


def _build(code: str, tier: str, staff_category: str, contract_type: str,
           level: Optional[int], label: Optional[str] = None) -> GradeClassification:
    return GradeClassification(
        grade_code=code,
        tier=tier,
        staff_category=staff_category,
        consolidated_tier=consolidate_tier(tier),
        contract_type=contract_type,
        numeric_level=level,
        pyramid_position=PYRAMID_POSITIONS[tier],
        display_label=label or code or "Unknown",
    )


def match_rule(grade_code) -> Optional[GradeRule]:
    """Return the first rule matching a code, or None."""
    code = normalize_grade_code(grade_code)
    if not code:
        return None
    for rule in GRADE_RULES:
        if rule.match(code):
            return rule
    return None


def classify_grade(grade_code) -> GradeClassification:
    """
    Classify a raw grade code.

    Total: empty, missing and unrecognised codes classify as Other / Non-Staff.
    """
    code = normalize_grade_code(grade_code)
    if not code:
        return _build("", TIER_OTHER, NON_STAFF, CONTRACT_OTHER, None, "Unknown")

    for rule in GRADE_RULES:
        match = rule.match(code)
        if match is None:
            continue
        tier, level = rule.resolve_tier(match)
        return _build(code, tier, rule.staff_category, rule.contract_type, level)

    return _build(code, TIER_OTHER, NON_STAFF, CONTRACT_OTHER, None)


def classify_grades(grade_codes: pd.Series) -> pd.DataFrame:
    """
    Classify a column of grade codes.

    Each distinct code is classified once and the result mapped back, so the
    cost scales with the number of distinct codes rather than rows.
    """
    if len(grade_codes) == 0:
        return pd.DataFrame(columns=CLASSIFICATION_COLUMNS, index=grade_codes.index)

    keys = grade_codes.map(normalize_grade_code)
    lookup = {code: classify_grade(code) for code in keys.unique()}

    return pd.DataFrame({
        "grade_tier": keys.map(lambda c: lookup[c].tier),
        "staff_category": keys.map(lambda c: lookup[c].staff_category),
        "consolidated_tier": keys.map(lambda c: lookup[c].consolidated_tier),
        "contract_type": keys.map(lambda c: lookup[c].contract_type),
        "grade_level": keys.map(lambda c: lookup[c].numeric_level),
    }, index=grade_codes.index)
