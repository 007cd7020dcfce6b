"""
Strategic findings: themed evaluators and significance-ranked selection.

Each evaluator looks at one theme (staffing, categories, windows, geography,
competitors, seniority). It either abstains or returns a candidate finding
scored by the weighted size of the deviations it reports. Selection keeps
the highest-scoring candidates and strips the score.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd
from loguru import logger

from workforce_intel.config import FindingWeights
from workforce_intel.metrics.category import format_category_name
from workforce_intel.metrics.snapshot import MetricSnapshot
from workforce_intel.modeling.competitive import AgencyProfile
from workforce_intel.modeling.narrative import TemplateRule, render_first

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"


@dataclass(frozen=True)
class ComparisonRow:
    label: str
    value: float
    unit: str = "%"
    is_subject: bool = False


@dataclass(frozen=True)
class StrategicFinding:
    headline: str
    narrative: str
    implication: str
    priority: str
    comparison: tuple = ()
    significance_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["comparison"] = [asdict(row) for row in self.comparison]
        data.pop("significance_score")
        return data


@dataclass(frozen=True)
class FindingContext:
    """Metrics the evaluators read for one brief."""

    subject: str
    current: MetricSnapshot
    previous: MetricSnapshot
    market: MetricSnapshot
    agency: Optional[str] = None
    category_distribution: pd.DataFrame = field(default_factory=pd.DataFrame)
    location_changes: pd.DataFrame = field(default_factory=pd.DataFrame)
    competitor: Optional[Dict[str, Any]] = None
    peer_profiles: Sequence[AgencyProfile] = ()

    @property
    def is_agency_view(self) -> bool:
        return self.agency is not None

    @property
    def has_previous(self) -> bool:
        return self.previous.total > 0

    def period_change(self, metric: str) -> float:
        if not self.has_previous:
            return 0.0
        return getattr(self.current, metric) - getattr(self.previous, metric)

    def market_gap(self, metric: str) -> float:
        if not self.is_agency_view or self.market.total == 0:
            return 0.0
        return getattr(self.current, metric) - getattr(self.market, metric)


def _comparison_rows(ctx: FindingContext, metric: str, peer_attr: str) -> tuple:
    rows = [ComparisonRow(ctx.subject, round(getattr(ctx.current, metric), 1), is_subject=True)]
    for profile in list(ctx.peer_profiles)[:3]:
        rows.append(ComparisonRow(profile.agency, getattr(profile, peer_attr)))
    if ctx.is_agency_view:
        rows.append(ComparisonRow("Market", round(getattr(ctx.market, metric), 1)))
    return tuple(rows)


# =============================================================================
# DECISION TABLES
# =============================================================================

STAFFING_HEADLINES = (
    TemplateRule(
        "consultant_build",
        lambda c: abs(c["market_diff"]) > 20 and c["market_diff"] < 0,
        "Building Through Consultants, Not Permanent Staff",
    ),
    TemplateRule("permanent_investment", lambda c: abs(c["market_diff"]) > 20, "Investing in Permanent Capacity"),
    TemplateRule("toward_staff", lambda c: abs(c["change"]) > 10 and c["change"] > 0, "Shift Toward Permanent Staff"),
    TemplateRule("toward_consultants", lambda c: abs(c["change"]) > 10, "Growing Reliance on Consultants"),
    TemplateRule("above_market", lambda c: c["market_diff"] > 0, "Staffing Mix Above Market"),
    TemplateRule("below_market", lambda c: True, "Staffing Mix Below Market"),
)

STAFFING_NARRATIVES = (
    TemplateRule(
        "against_market",
        lambda c: abs(c["market_diff"]) > 20,
        "{subject} offers staff contracts for {staff:.0f}% of positions, "
        "against a market average of {market_staff:.0f}%.",
    ),
    TemplateRule(
        "period_change",
        lambda c: abs(c["change"]) > 10,
        "Staff contracts moved from {previous_staff:.0f}% to {staff:.0f}% "
        "of {subject}'s positions compared with the previous period.",
    ),
    TemplateRule(
        "market_gap",
        lambda c: True,
        "{subject}'s staff share of {staff:.0f}% sits {market_gap:.0f} points {direction} the market.",
    ),
)

STAFFING_IMPLICATIONS = (
    TemplateRule(
        "flexibility",
        lambda c: c["staff"] < c["market_staff"] or (not c["is_agency_view"] and c["change"] < 0),
        "Non-staff contracts add flexibility and speed, but leave less "
        "institutional knowledge behind when assignments end.",
    ),
    TemplateRule("continuity", lambda c: True, "Permanent capacity supports continuity but commits long-term budget."),
)

WINDOW_HEADLINES = (
    TemplateRule("fast", lambda c: c["fast"], "Hiring Faster Than Average, Perhaps Too Fast"),
    TemplateRule("measured", lambda c: True, "Hiring Pace is Measured"),
)

WINDOW_IMPLICATIONS = (
    TemplateRule(
        "narrow_pool",
        lambda c: c["fast"],
        "Short windows narrow candidate pools and can signal pre-identified candidates.",
    ),
    TemplateRule(
        "slow_pool",
        lambda c: True,
        "Longer windows widen the pool but risk losing candidates to faster agencies.",
    ),
)

GEOGRAPHY_HEADLINES = (
    TemplateRule("field_expansion", lambda c: abs(c["change"]) >= 10 and c["change"] > 0, "Expanding Field Presence"),
    TemplateRule("hq_consolidation", lambda c: abs(c["change"]) >= 10, "Consolidating to Headquarters"),
    TemplateRule(
        "field_focused", lambda c: abs(c["market_diff"]) >= 15 and c["market_diff"] > 0, "Field-Focused Footprint"
    ),
    TemplateRule("hq_concentrated", lambda c: abs(c["market_diff"]) >= 15, "Headquarters-Concentrated Model"),
    TemplateRule("location_shifts", lambda c: True, "Geographic Shifts in Hiring"),
)

SENIORITY_HEADLINES = (
    TemplateRule("senior_increase", lambda c: abs(c["change"]) >= 5 and c["change"] > 0, "Increasing Senior Hiring"),
    TemplateRule("junior_shift", lambda c: abs(c["change"]) >= 5, "Shift Toward Junior Positions"),
    TemplateRule("senior_vs_market", lambda c: c["market_diff"] > 0, "Higher Seniority Mix Than Market"),
    TemplateRule("junior_focused", lambda c: True, "Junior-Focused Hiring"),
)

SENIORITY_IMPLICATIONS = (
    TemplateRule(
        "thin_senior",
        lambda c: c["senior"] < 5,
        "Few senior openings limit promotion paths and leadership succession.",
    ),
    TemplateRule(
        "senior_heavy",
        lambda c: c["senior"] > 15,
        "A senior-heavy mix points to leadership and specialist capacity building.",
    ),
    TemplateRule("typical", lambda c: True, "The seniority mix stays within a typical range for the system."),
)


# =============================================================================
# EVALUATORS
# =============================================================================

def staffing_pattern(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    if ctx.current.total == 0:
        return None
    market_diff = ctx.market_gap("staff_ratio")
    change = ctx.period_change("staff_ratio")
    if abs(market_diff) < 10 and abs(change) < 10:
        return None

    values = {
        "subject": ctx.subject,
        "is_agency_view": ctx.is_agency_view,
        "staff": ctx.current.staff_ratio,
        "previous_staff": ctx.previous.staff_ratio,
        "market_staff": ctx.market.staff_ratio,
        "market_diff": market_diff,
        "market_gap": abs(market_diff),
        "direction": "above" if market_diff > 0 else "below",
        "change": change,
    }

    return StrategicFinding(
        headline=render_first(STAFFING_HEADLINES, values),
        narrative=render_first(STAFFING_NARRATIVES, values),
        implication=render_first(STAFFING_IMPLICATIONS, values),
        priority=PRIORITY_HIGH if abs(market_diff) > 20 else PRIORITY_MEDIUM,
        comparison=_comparison_rows(ctx, "staff_ratio", "staff_pct"),
        significance_score=(
            weights.staffing_market_gap * abs(market_diff) + weights.staffing_period_change * abs(change)
        ),
    )


def category_shift(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    dist = ctx.category_distribution
    if dist.empty or not ctx.has_previous:
        return None

    shifts = dist.assign(absolute_change=dist["count"] - dist["previous_count"])
    shifts = shifts.sort_values(["absolute_change", "category"], ascending=[False, True])
    top = shifts.iloc[0]
    absolute_change = float(top["absolute_change"])
    share_change = float(top["share_change"])
    if absolute_change < 20 and share_change < 5:
        return None

    name = format_category_name(top["category"])
    return StrategicFinding(
        headline=f"{name} Emerged as a Strategic Priority",
        narrative=(
            f"{name} postings rose from {int(top['previous_count'])} to {int(top['count'])}, "
            f"now {top['percentage']:.0f}% of {ctx.subject}'s positions "
            f"({share_change:+.1f} points)."
        ),
        implication=f"Expect stronger competition for {name} specialists.",
        priority=PRIORITY_HIGH if share_change > 10 else PRIORITY_MEDIUM,
        comparison=(
            ComparisonRow("Previous share", round(float(top["previous_percentage"]), 1)),
            ComparisonRow("Current share", round(float(top["percentage"]), 1), is_subject=True),
        ),
        significance_score=(
            weights.category_absolute_change * absolute_change + weights.category_share_change * share_change
        ),
    )


def window_pattern(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    if ctx.current.total == 0:
        return None
    short_gap = ctx.market_gap("short_window_pct")
    avg_gap = ctx.market_gap("avg_window")
    if abs(short_gap) < 10 and abs(avg_gap) < 3:
        return None

    values = {"fast": short_gap > 0 or avg_gap < 0}

    return StrategicFinding(
        headline=render_first(WINDOW_HEADLINES, values),
        narrative=(
            f"{ctx.current.short_window_pct:.0f}% of {ctx.subject}'s positions close within 10 days "
            f"(market {ctx.market.short_window_pct:.0f}%), with an average window of "
            f"{ctx.current.avg_window:.0f} days against {ctx.market.avg_window:.0f}."
        ),
        implication=render_first(WINDOW_IMPLICATIONS, values),
        priority=PRIORITY_HIGH if ctx.current.short_window_pct > 40 else PRIORITY_MEDIUM,
        comparison=(
            ComparisonRow(ctx.subject, round(ctx.current.avg_window, 1), unit="days", is_subject=True),
            ComparisonRow("Market", round(ctx.market.avg_window, 1), unit="days"),
        ),
        significance_score=weights.window_short_share_gap * abs(short_gap) + weights.window_avg_gap * abs(avg_gap),
    )


def geography_pattern(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    if ctx.current.total == 0:
        return None
    change = ctx.period_change("field_ratio")
    market_diff = ctx.market_gap("field_ratio")
    moves = ctx.location_changes
    n_moves = len(moves)
    if abs(change) < 10 and abs(market_diff) < 15 and n_moves < 3:
        return None

    headline = render_first(GEOGRAPHY_HEADLINES, {"change": change, "market_diff": market_diff})

    narrative = f"{ctx.current.field_ratio:.0f}% of {ctx.subject}'s positions are field-based"
    if ctx.has_previous:
        narrative += f", compared with {ctx.previous.field_ratio:.0f}% in the previous period"
    narrative += "."
    if n_moves:
        moved = ", ".join(
            f"{row.station} ({row.change:+d})" for row in moves.head(3).itertuples(index=False)
        )
        narrative += f" Largest location changes: {moved}."

    return StrategicFinding(
        headline=headline,
        narrative=narrative,
        implication="Footprint changes shift which candidate pools and duty-station incentives matter.",
        priority=PRIORITY_HIGH if abs(change) >= 15 else PRIORITY_MEDIUM,
        comparison=_comparison_rows(ctx, "field_ratio", "field_pct"),
        significance_score=(
            weights.geography_field_change * abs(change)
            + weights.geography_market_gap * abs(market_diff)
            + weights.geography_location_change * n_moves
        ),
    )


def competitor_similarity(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    comp = ctx.competitor
    if not ctx.is_agency_view or not comp or comp["correlation"] < 0.5:
        return None

    differences = []
    if abs(comp["staff_diff"]) > 15:
        differences.append(
            f"{'more' if comp['staff_diff'] > 0 else 'fewer'} staff contracts ({abs(comp['staff_diff']):.0f} points)"
        )
    if abs(comp["field_diff"]) > 15:
        differences.append(
            f"{'more' if comp['field_diff'] > 0 else 'fewer'} field positions ({abs(comp['field_diff']):.0f} points)"
        )
    if abs(comp["window_diff"]) > 3:
        differences.append(
            f"{'longer' if comp['window_diff'] > 0 else 'shorter'} application windows "
            f"({abs(comp['window_diff']):.0f} days)"
        )

    narrative = (
        f"{ctx.agency} and {comp['agency']} recruit across a similar mix of categories "
        f"(correlation {comp['correlation']:.2f})."
    )
    if differences:
        narrative += f" Compared with {comp['agency']}, {ctx.agency} offers " + ", ".join(differences) + "."

    return StrategicFinding(
        headline=f"{comp['agency']} Is the Closest Talent Competitor",
        narrative=narrative,
        implication="Contract type, location and speed decide who wins shared candidates.",
        priority=PRIORITY_HIGH if comp["correlation"] > 0.8 else PRIORITY_MEDIUM,
        comparison=(
            ComparisonRow(ctx.agency, round(ctx.current.staff_ratio, 1), is_subject=True),
            ComparisonRow(comp["agency"], comp["staff_pct"]),
        ),
        significance_score=weights.competitor_correlation * comp["correlation"],
    )


def seniority_pattern(ctx: FindingContext, weights: FindingWeights) -> Optional[StrategicFinding]:
    if ctx.current.total == 0:
        return None
    change = ctx.period_change("senior_ratio")
    market_diff = ctx.market_gap("senior_ratio")
    if abs(change) < 5 and abs(market_diff) < 10:
        return None

    senior = ctx.current.senior_ratio
    values = {"change": change, "market_diff": market_diff, "senior": senior}

    return StrategicFinding(
        headline=render_first(SENIORITY_HEADLINES, values),
        narrative=(
            f"Senior positions (P-5 and above) make up {senior:.0f}% of {ctx.subject}'s postings"
            + (f", against {ctx.market.senior_ratio:.0f}% across the market." if ctx.is_agency_view else ".")
        ),
        implication=render_first(SENIORITY_IMPLICATIONS, values),
        priority=PRIORITY_HIGH if abs(change) > 10 else PRIORITY_MEDIUM,
        comparison=_comparison_rows(ctx, "senior_ratio", "senior_pct"),
        significance_score=weights.seniority_change * abs(change) + weights.seniority_market_gap * abs(market_diff),
    )


FindingEvaluator = Callable[[FindingContext, FindingWeights], Optional[StrategicFinding]]

FINDING_EVALUATORS: List[tuple[str, FindingEvaluator]] = [
    ("staffing_pattern", staffing_pattern),
    ("category_shift", category_shift),
    ("window_pattern", window_pattern),
    ("geography_pattern", geography_pattern),
    ("competitor_similarity", competitor_similarity),
    ("seniority_pattern", seniority_pattern),
]


# =============================================================================
# GENERATE / SELECT
# =============================================================================

def generate_findings(ctx: FindingContext, weights: Optional[FindingWeights] = None) -> List[StrategicFinding]:
    """Candidate findings from every evaluator that does not abstain."""
    weights = weights or FindingWeights()
    candidates = []
    for name, evaluator in FINDING_EVALUATORS:
        finding = evaluator(ctx, weights)
        if finding is not None:
            logger.debug("Finding candidate {}: score={:.1f}", name, finding.significance_score)
            candidates.append(finding)
    return candidates


def select_findings(candidates: Sequence[StrategicFinding], limit: int = 5) -> List[StrategicFinding]:
    """Top ``limit`` candidates by descending significance, with scores cleared."""
    ranked = sorted(candidates, key=lambda f: f.significance_score or 0.0, reverse=True)
    return [replace(f, significance_score=None) for f in ranked[:limit]]


def synthesize_findings(
    ctx: FindingContext,
    weights: Optional[FindingWeights] = None,
    limit: int = 5,
) -> List[StrategicFinding]:
    return select_findings(generate_findings(ctx, weights), limit)
