"""Tests for executive summary decision tables and metric cards."""
from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from workforce_intel.metrics.snapshot import MetricSnapshot
from workforce_intel.modeling.narrative import (
    STRUCTURE,
    TemplateRule,
    build_executive_summary,
    build_header_metrics,
    build_narrative_context,
    build_vital_signs,
    render_first,
)


def _snap(
    total: int = 130,
    staff: float = 50.0,
    field: float = 60.0,
    senior: float = 10.0,
    window: float = 20.0,
    short: float = 10.0,
) -> MetricSnapshot:
    return MetricSnapshot(
        total=total,
        staff_ratio=staff,
        field_ratio=field,
        senior_ratio=senior,
        avg_window=window,
        short_window_pct=short,
        home_based_pct=0.0,
    )


DISTRIBUTION = pd.DataFrame({
    "category": ["health", "wash", "climate-environment"],
    "count": [50, 50, 30],
    "percentage": [38.5, 38.5, 23.1],
})

COMPETITIVE = {
    "your_rank": 3,
    "total_agencies": 41,
    "your_market_share": 8.3,
    "rank_change": 1,
    "category_leadership": pd.DataFrame({
        "agency": ["UNDP", "WFP"],
        "categories_led": [2, 1],
        "led_categories": [["climate-environment", "governance"], ["logistics"]],
    }),
    "closest_competitor": {"agency": "UNICEF", "correlation": 0.82, "staff_diff": -25.0, "staff_pct": 50.0},
}


def _context(
    agency="UNDP",
    current=None,
    previous=None,
    market=None,
    volume=None,
    workforce=None,
    category=None,
    competitive=None,
) -> dict:
    return build_narrative_context(
        subject=agency or "The UN system",
        agency=agency,
        weeks=13,
        current=current or _snap(),
        previous=previous or _snap(total=100),
        market=market or _snap(total=1600),
        volume=volume or {"weekly_average": 10.0, "previous_weekly_average": 6.5, "velocity_change": 53.8},
        workforce=workforce or {},
        category=category or {"distribution": DISTRIBUTION},
        competitive=competitive if competitive is not None else COMPETITIVE,
    )


class TestRenderFirst:
    """Tests for decision table evaluation."""

    TABLE = (
        TemplateRule("big", lambda c: c["n"] > 10, "big {n}"),
        TemplateRule("small", lambda c: c["n"] > 0, "small {n}"),
    )

    def test_first_match_wins(self):
        """Only the first applicable rule renders."""
        assert render_first(self.TABLE, {"n": 20}) == "big 20"
        assert render_first(self.TABLE, {"n": 5}) == "small 5"

    def test_no_match(self):
        """No applicable rule renders nothing."""
        assert render_first(self.TABLE, {"n": 0}) is None


class TestExecutiveSummary:
    """Tests for paragraph assembly."""

    def test_agency_view_paragraphs(self):
        """An active agency gets volume, structure and competitive paragraphs."""
        ctx = _context()

        summary = build_executive_summary(ctx, _snap(), _snap(total=100))

        assert len(summary.paragraphs) == 3
        opening = summary.paragraphs[0]
        assert opening.startswith("UNDP posted 130 positions over 13 weeks, averaging 10.0 per week.")
        assert "54% above the prior period's 6.5 per week" in opening
        assert "This places UNDP #3 of 41 agencies, with 8.3% of all postings." in opening
        assert "Health and Wash together account for 77% of postings." in opening
        assert "UNDP is the largest recruiter in Climate & Environment and Governance." in summary.paragraphs[2]
        assert "Its closest competitor for talent is UNICEF (category-mix correlation 0.82)." in summary.paragraphs[2]

    def test_market_view_skips_competition(self):
        """The market view has no competitive paragraph."""
        ctx = _context(agency=None)

        summary = build_executive_summary(ctx, _snap(), _snap(total=100))

        assert all("competitor" not in p for p in summary.paragraphs)
        assert summary.paragraphs[0].startswith("The UN system posted 130 positions")

    def test_silent_period(self):
        """No current postings leaves only the volume paragraph."""
        current = _snap(total=0, staff=0, field=0)
        ctx = _context(current=current, previous=_snap(total=40), competitive={})

        summary = build_executive_summary(ctx, current, _snap(total=40))

        assert summary.paragraphs == (
            "UNDP posted no positions in the last 13 weeks, after 40 in the prior period.",
        )

    def test_nothing_to_say(self):
        """With no postings in either period every paragraph is skipped."""
        empty = _snap(total=0, staff=0, field=0)
        ctx = _context(current=empty, previous=empty)

        assert build_executive_summary(ctx, empty, empty).paragraphs == ()

    def test_tension_short_windows(self):
        """A high short-window share is the key tension."""
        current = _snap(short=45)
        summary = build_executive_summary(_context(current=current), current, _snap(total=100))

        assert summary.paragraphs[-1].startswith("45% of positions close within 10 days")


class TestStructureTable:
    """Tests for the structural sentence choice."""

    def test_non_staff_against_market(self):
        """Low staff share in an agency view cites the market."""
        ctx = _context(current=_snap(staff=25), market=_snap(total=1600, staff=55))

        sentence = render_first(STRUCTURE, ctx)

        assert sentence == (
            "Non-staff contracts dominate: only 25% of positions are staff appointments, "
            "against 55% across the market."
        )

    def test_field_fallback(self):
        """Unremarkable staffing falls through to the field sentence."""
        ctx = _context(current=_snap(staff=50, field=62), market=_snap(total=1600, staff=48, field=58))

        assert render_first(STRUCTURE, ctx) == "62% of positions are field-based and 50% are staff appointments."

    def test_market_view_staff_gap_is_zero(self):
        """The market view never compares against itself."""
        ctx = _context(agency=None, market=_snap(total=1600, staff=10))

        assert ctx["staff_diff"] == 0.0


class TestVitalSigns:
    """Tests for the summary's vital signs."""

    def test_rank_inserted_second(self):
        """Agency views list Market Rank second."""
        ctx = _context()

        signs = build_vital_signs(ctx, _snap(), _snap(total=100))

        assert [s.label for s in signs][:2] == ["Positions", "Market Rank"]
        assert signs[1].value == "#3"

    def test_market_view_has_no_rank(self):
        """The market view has no rank card."""
        signs = build_vital_signs(_context(agency=None), _snap(), _snap(total=100))

        assert "Market Rank" not in [s.label for s in signs]


class TestHeaderMetrics:
    """Tests for headline metric cards."""

    def test_agency_cards(self):
        """Agency views carry rank and market comparisons."""
        cards = build_header_metrics(
            _snap(staff=20), _snap(total=100, staff=50), _snap(total=1600, staff=45), COMPETITIVE, 30.0, True,
        )

        labels = [c.label for c in cards]
        assert labels == ["Positions", "Market Rank", "Staff Ratio", "Field Positions", "Avg Window"]
        assert cards[0].value == "130"
        assert cards[0].change == "+30%"
        assert cards[1].value == "#3 of 41"
        assert cards[2].change == "-30pp"
        assert cards[2].trend == "down"
        assert cards[2].comparison == "Market: 45%"

    def test_market_cards(self):
        """Market views have no rank card and no market comparison."""
        cards = build_header_metrics(_snap(), _snap(total=0), _snap(), {}, 0.0, False)

        assert [c.label for c in cards] == ["Positions", "Staff Ratio", "Field Positions", "Avg Window"]
        assert cards[0].change is None
        assert cards[1].comparison is None
