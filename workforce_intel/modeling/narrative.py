"""
Narrative generation: header metrics, executive summary and vital signs.

Sentence choice is declarative. Each paragraph is a list of decision tables
of ``TemplateRule``s; for every table the first rule whose condition holds
is rendered with ``str.format`` against a flat context dict. A paragraph is
only emitted when its trigger holds and at least one sentence rendered.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from workforce_intel.formatting import (
    fmt_change,
    fmt_count,
    fmt_days,
    fmt_percent,
    fmt_points,
    fmt_rank,
    join_names,
    trend_direction,
)
from workforce_intel.metrics.category import format_category_name
from workforce_intel.metrics.snapshot import MetricSnapshot

Context = Dict[str, Any]


@dataclass(frozen=True)
class TemplateRule:
    name: str
    condition: Callable[[Context], bool]
    template: str

    def applies(self, ctx: Context) -> bool:
        return bool(self.condition(ctx))

    def render(self, ctx: Context) -> str:
        return self.template.format(**ctx)


@dataclass(frozen=True)
class Paragraph:
    name: str
    trigger: Callable[[Context], bool]
    tables: tuple


@dataclass(frozen=True)
class KeyMetric:
    label: str
    value: str
    change: Optional[str] = None
    trend: str = "stable"
    comparison: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExecutiveSummary:
    paragraphs: tuple
    vital_signs: tuple

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paragraphs": list(self.paragraphs),
            "vital_signs": [v.to_dict() for v in self.vital_signs],
        }


def render_first(table: Sequence[TemplateRule], ctx: Context) -> Optional[str]:
    """Render the first applicable rule of a decision table, or None."""
    for rule in table:
        if rule.applies(ctx):
            return rule.render(ctx)
    return None


def render_paragraph(paragraph: Paragraph, ctx: Context) -> Optional[str]:
    if not paragraph.trigger(ctx):
        return None
    sentences = [s for s in (render_first(table, ctx) for table in paragraph.tables) if s]
    return " ".join(sentences) if sentences else None


def _always(ctx: Context) -> bool:
    return True


# =============================================================================
# CONTEXT
# =============================================================================

def _category_names(patterns: pd.DataFrame, mask) -> str:
    if patterns is None or patterns.empty:
        return ""
    return join_names(format_category_name(c) for c in patterns.loc[mask(patterns), "category"].head(3))


def build_narrative_context(
    subject: str,
    agency: Optional[str],
    weeks: int,
    current: MetricSnapshot,
    previous: MetricSnapshot,
    market: MetricSnapshot,
    volume: Dict[str, Any],
    workforce: Dict[str, Any],
    category: Dict[str, Any],
    competitive: Dict[str, Any],
) -> Context:
    """Flatten section metrics into the values the templates read."""
    distribution = category.get("distribution")
    top2 = distribution.head(2) if distribution is not None and not distribution.empty else pd.DataFrame()
    top2_names = [format_category_name(c) for c in top2.get("category", [])]

    patterns = workforce.get("category_staff_patterns")
    leadership = competitive.get("category_leadership")
    led = []
    if agency and leadership is not None and not leadership.empty:
        hits = leadership.loc[leadership["agency"] == agency, "led_categories"]
        if not hits.empty:
            led = [format_category_name(c) for c in hits.iloc[0][:3]]

    top_categories = category.get("top_categories")
    top_category = top_leader = ""
    if top_categories is not None and not top_categories.empty:
        top_category = format_category_name(top_categories["category"].iloc[0])
        top_leader = top_categories["leader"].iloc[0] or ""

    competitor = competitive.get("closest_competitor") or {}
    staff_diff = current.staff_ratio - market.staff_ratio if agency else 0.0
    field_diff = current.field_ratio - market.field_ratio if agency else 0.0
    volume_change = volume.get("velocity_change", 0.0) if previous.total else 0.0

    return {
        "subject": subject,
        "is_agency_view": agency is not None,
        "weeks": weeks,
        "volume": current.total,
        "previous_volume": previous.total,
        "weekly_avg": volume.get("weekly_average", 0.0),
        "prev_weekly_avg": volume.get("previous_weekly_average", 0.0),
        "volume_change": volume_change,
        "abs_volume_change": abs(volume_change),
        "rank": competitive.get("your_rank"),
        "total_agencies": competitive.get("total_agencies", 0),
        "market_share": competitive.get("your_market_share", 0.0),
        "top_category_count": len(top2_names),
        "top2_names": join_names(top2_names),
        "top2_share": float(top2["percentage"].sum()) if not top2.empty else 0.0,
        "staff_ratio": current.staff_ratio,
        "non_staff_pct": 100 - current.staff_ratio if current.total else 0.0,
        "market_staff_ratio": market.staff_ratio,
        "staff_diff": staff_diff,
        "staff_significant": abs(staff_diff) > 10 or current.staff_ratio < 40,
        "field_ratio": current.field_ratio,
        "market_field_ratio": market.field_ratio,
        "field_diff": field_diff,
        "field_direction": "above" if field_diff > 0 else "below",
        "short_window_pct": current.short_window_pct,
        "low_staff_categories": _category_names(patterns, lambda p: p["your_staff_pct"] < 30),
        "high_staff_categories": _category_names(patterns, lambda p: p["your_staff_pct"] > 60),
        "led_count": len(led),
        "led_categories": join_names(led),
        "top_category": top_category,
        "top_category_leader": top_leader,
        "competitor": competitor.get("agency", ""),
        "competitor_corr": competitor.get("correlation", 0.0),
        "competitor_staff_pct": competitor.get("staff_pct", 0.0),
        "competitor_staff_gap": abs(competitor.get("staff_diff", 0.0)),
        "competitor_staff_direction": "more" if competitor.get("staff_diff", 0.0) < 0 else "less",
    }


# =============================================================================
# EXECUTIVE SUMMARY TABLES
# =============================================================================

VOLUME_OPENING = (
    TemplateRule(
        "posted",
        lambda c: c["volume"] > 0,
        "{subject} posted {volume:,} positions over {weeks} weeks, averaging {weekly_avg:.1f} per week.",
    ),
    TemplateRule(
        "silent",
        _always,
        "{subject} posted no positions in the last {weeks} weeks, after {previous_volume:,} in the prior period.",
    ),
)

VOLUME_MOMENTUM = (
    TemplateRule(
        "faster",
        lambda c: c["volume"] > 0 and c["previous_volume"] > 0 and c["volume_change"] > 20,
        "That pace is {abs_volume_change:.0f}% above the prior period's {prev_weekly_avg:.1f} per week.",
    ),
    TemplateRule(
        "slower",
        lambda c: c["volume"] > 0 and c["previous_volume"] > 0 and c["volume_change"] < -20,
        "That pace is {abs_volume_change:.0f}% below the prior period's {prev_weekly_avg:.1f} per week.",
    ),
)

VOLUME_POSITION = (
    TemplateRule(
        "ranked",
        lambda c: c["is_agency_view"] and c["rank"] is not None,
        "This places {subject} #{rank} of {total_agencies} agencies, with {market_share:.1f}% of all postings.",
    ),
)

VOLUME_FOCUS = (
    TemplateRule(
        "two_categories",
        lambda c: c["volume"] > 0 and c["top_category_count"] >= 2,
        "{top2_names} together account for {top2_share:.0f}% of postings.",
    ),
    TemplateRule(
        "one_category",
        lambda c: c["volume"] > 0 and c["top_category_count"] == 1,
        "All postings fall under {top2_names}.",
    ),
)

STRUCTURE = (
    TemplateRule(
        "non_staff_reliance_vs_market",
        lambda c: c["staff_significant"] and c["staff_ratio"] < 50 and c["is_agency_view"],
        "Non-staff contracts dominate: only {staff_ratio:.0f}% of positions are staff appointments, "
        "against {market_staff_ratio:.0f}% across the market.",
    ),
    TemplateRule(
        "non_staff_reliance",
        lambda c: c["staff_significant"] and c["staff_ratio"] < 50,
        "Non-staff contracts dominate: only {staff_ratio:.0f}% of positions are staff appointments.",
    ),
    TemplateRule(
        "staff_led",
        lambda c: c["staff_significant"],
        "{subject} hires mainly on staff contracts ({staff_ratio:.0f}%), favouring continuity over flexibility.",
    ),
    TemplateRule(
        "field_vs_market",
        lambda c: c["is_agency_view"] and abs(c["field_diff"]) > 10,
        "{field_ratio:.0f}% of positions are field-based, {field_direction} the market's {market_field_ratio:.0f}%.",
    ),
    TemplateRule(
        "field",
        _always,
        "{field_ratio:.0f}% of positions are field-based and {staff_ratio:.0f}% are staff appointments.",
    ),
)

STRUCTURE_CATEGORIES = (
    TemplateRule(
        "low_staff_categories",
        lambda c: c["staff_significant"] and c["staff_ratio"] < 50 and c["low_staff_categories"],
        "Reliance is heaviest in {low_staff_categories}, where fewer than 30% of positions are staff.",
    ),
    TemplateRule(
        "high_staff_categories",
        lambda c: c["staff_significant"] and c["staff_ratio"] < 50 and c["high_staff_categories"],
        "{high_staff_categories} remain mostly staff-based.",
    ),
)

COMPETITIVE_LEADERSHIP = (
    TemplateRule(
        "leads",
        lambda c: c["led_count"] > 0,
        "{subject} is the largest recruiter in {led_categories}.",
    ),
    TemplateRule(
        "trails",
        lambda c: bool(c["top_category"]) and bool(c["top_category_leader"]),
        "In its largest area, {top_category}, the market is led by {top_category_leader}.",
    ),
)

COMPETITIVE_RIVAL = (
    TemplateRule(
        "closest",
        lambda c: bool(c["competitor"]),
        "Its closest competitor for talent is {competitor} (category-mix correlation {competitor_corr:.2f}).",
    ),
)

COMPETITIVE_CONTRAST = (
    TemplateRule(
        "staff_contrast",
        lambda c: bool(c["competitor"]) and c["competitor_staff_gap"] > 10,
        "{competitor} relies {competitor_staff_direction} on staff contracts "
        "({competitor_staff_pct:.0f}% against {staff_ratio:.0f}%).",
    ),
)

TENSION = (
    TemplateRule(
        "short_windows",
        lambda c: c["short_window_pct"] > 30,
        "{short_window_pct:.0f}% of positions close within 10 days, which warrants attention: "
        "short windows narrow the candidate pool.",
    ),
    TemplateRule(
        "consultant_dependence",
        lambda c: c["is_agency_view"] and c["volume"] > 0 and c["staff_ratio"] < 35,
        "With {non_staff_pct:.0f}% of positions on non-staff contracts, speed and flexibility come "
        "at the cost of institutional continuity.",
    ),
)

EXECUTIVE_SUMMARY_PARAGRAPHS = (
    Paragraph(
        "volume_and_position",
        lambda c: c["volume"] > 0 or c["previous_volume"] > 0,
        (VOLUME_OPENING, VOLUME_MOMENTUM, VOLUME_POSITION, VOLUME_FOCUS),
    ),
    Paragraph("structural_pattern", lambda c: c["volume"] > 0, (STRUCTURE, STRUCTURE_CATEGORIES)),
    Paragraph(
        "competitive_context",
        lambda c: c["is_agency_view"] and c["volume"] > 0,
        (COMPETITIVE_LEADERSHIP, COMPETITIVE_RIVAL, COMPETITIVE_CONTRAST),
    ),
    Paragraph("key_tension", lambda c: c["volume"] > 0, (TENSION,)),
)


# =============================================================================
# BUILDERS
# =============================================================================

def build_vital_signs(ctx: Context, current: MetricSnapshot, previous: MetricSnapshot) -> List[KeyMetric]:
    signs = [
        KeyMetric(
            label="Positions",
            value=fmt_count(ctx["volume"]),
            change=fmt_change(ctx["volume_change"]) if ctx["previous_volume"] else None,
            trend=trend_direction(ctx["volume_change"], 10),
        ),
        KeyMetric(
            label="Weekly Rate",
            value=f"{ctx['weekly_avg']:.1f}",
            trend=trend_direction(ctx["volume_change"], 10),
            comparison="per week",
        ),
        KeyMetric(
            label="Staff Ratio",
            value=fmt_percent(current.staff_ratio),
            trend=trend_direction(current.staff_ratio - previous.staff_ratio if previous.total else 0, 3),
            comparison=f"Market: {fmt_percent(ctx['market_staff_ratio'])}" if ctx["is_agency_view"] else None,
        ),
        KeyMetric(
            label="Field %",
            value=fmt_percent(current.field_ratio),
            trend=trend_direction(current.field_ratio - previous.field_ratio if previous.total else 0, 3),
        ),
        KeyMetric(label="Avg Window", value=fmt_days(current.avg_window)),
    ]
    if ctx["is_agency_view"] and ctx["rank"] is not None:
        signs.insert(1, KeyMetric(
            label="Market Rank",
            value=f"#{ctx['rank']}",
            comparison=f"of {ctx['total_agencies']} agencies",
        ))
    return signs


def build_executive_summary(ctx: Context, current: MetricSnapshot, previous: MetricSnapshot) -> ExecutiveSummary:
    """Paragraphs in fixed order (volume, structure, competition, tension), skipping untriggered ones."""
    paragraphs = [render_paragraph(p, ctx) for p in EXECUTIVE_SUMMARY_PARAGRAPHS]
    return ExecutiveSummary(
        paragraphs=tuple(p for p in paragraphs if p),
        vital_signs=tuple(build_vital_signs(ctx, current, previous)),
    )


def build_header_metrics(
    current: MetricSnapshot,
    previous: MetricSnapshot,
    market: MetricSnapshot,
    competitive: Dict[str, Any],
    volume_change: float,
    is_agency_view: bool,
) -> List[KeyMetric]:
    """Headline metric cards: positions, rank, staff ratio, field share, average window."""
    has_previous = previous.total > 0
    staff_change = current.staff_ratio - previous.staff_ratio if has_previous else 0.0
    field_change = current.field_ratio - previous.field_ratio if has_previous else 0.0

    metrics = [
        KeyMetric(
            label="Positions",
            value=fmt_count(current.total),
            change=fmt_change(volume_change) if has_previous and abs(volume_change) > 5 else None,
            trend=trend_direction(volume_change if has_previous else 0, 5),
            comparison=f"vs {fmt_count(previous.total)} prior",
        ),
    ]
    if is_agency_view:
        rank = competitive.get("your_rank")
        metrics.append(KeyMetric(
            label="Market Rank",
            value=fmt_rank(rank, competitive.get("total_agencies", 0)),
            trend=trend_direction(competitive.get("rank_change") or 0),
            comparison=f"{fmt_percent(competitive.get('your_market_share', 0.0), 1)} share",
        ))
    metrics.extend([
        KeyMetric(
            label="Staff Ratio",
            value=fmt_percent(current.staff_ratio),
            change=fmt_points(staff_change) if abs(staff_change) > 3 else None,
            trend=trend_direction(staff_change, 3),
            comparison=f"Market: {fmt_percent(market.staff_ratio)}" if is_agency_view else None,
        ),
        KeyMetric(
            label="Field Positions",
            value=fmt_percent(current.field_ratio),
            change=fmt_points(field_change) if abs(field_change) > 3 else None,
            trend=trend_direction(field_change, 3),
            comparison=f"Market: {fmt_percent(market.field_ratio)}" if is_agency_view else None,
        ),
        KeyMetric(
            label="Avg Window",
            value=fmt_days(current.avg_window),
            comparison=f"Market: {fmt_days(market.avg_window)}" if is_agency_view else None,
        ),
    ])
    return metrics
