"""Tests for agency ranking, similarity and market moves."""
from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from workforce_intel.data.schema import records_to_frame
from workforce_intel.data.semantic import enrich_records
from workforce_intel.modeling.competitive import (
    agency_correlations,
    category_leadership,
    closest_competitor,
    compute_competitive_metrics,
    correlation_strength,
    detect_new_entrants,
    pearson_correlation,
    peer_agencies,
    peer_group_for,
    rank_agencies,
)


def _make_row(agency: str, category: str = "health", grade_code: str = "P-3") -> dict:
    return {
        "posting_date": "2025-03-03",
        "agency": agency,
        "grade_code": grade_code,
        "primary_category": category,
        "duty_station": "Juba, South Sudan",
        "application_window_days": 14,
    }


def _jobs(counts: dict) -> pd.DataFrame:
    """Build records from {(agency, category): count}."""
    rows = []
    for (agency, category), n in counts.items():
        rows.extend(_make_row(agency, category) for _ in range(n))
    if not rows:
        return enrich_records(records_to_frame([_make_row("UNDP")]).iloc[0:0])
    return enrich_records(records_to_frame(rows))


class TestPearsonCorrelation:
    """Tests for the correlation coefficient."""

    def test_symmetric(self):
        """corr(x, y) == corr(y, x)."""
        x, y = [1, 2, 3, 4], [2, 1, 4, 3]

        assert pearson_correlation(x, y) == pytest.approx(pearson_correlation(y, x))

    def test_self_correlation_is_one(self):
        """A vector correlates perfectly with itself."""
        assert pearson_correlation([0.1, 0.5, 0.4], [0.1, 0.5, 0.4]) == pytest.approx(1.0)

    def test_perfect_negative(self):
        """Reversed vectors correlate at -1."""
        assert pearson_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    @pytest.mark.parametrize("x,y", [
        ([], []),
        ([1, 2], [1, 2, 3]),
        ([1, 1, 1], [1, 2, 3]),
    ])
    def test_degenerate_is_zero(self, x, y):
        """Empty, unequal or zero-variance input gives 0."""
        assert pearson_correlation(x, y) == 0.0

    @pytest.mark.parametrize("value,strength", [
        (0.9, "Strong overlap"),
        (0.7, "Moderate overlap"),
        (0.5, "Some overlap"),
    ])
    def test_strength_buckets(self, value, strength):
        """Correlations fall into labelled buckets."""
        assert correlation_strength(value)[0] == strength

    def test_weak_has_no_bucket(self):
        """Correlations at or below 0.4 are not reported."""
        assert correlation_strength(0.4) is None


class TestRankAgencies:
    """Tests for agency ranking."""

    def test_ties_broken_by_name(self):
        """Equal counts rank alphabetically."""
        df = _jobs({("WFP", "health"): 3, ("UNDP", "health"): 3, ("WHO", "health"): 1})

        profiles = rank_agencies(df)

        assert [p.agency for p in profiles] == ["UNDP", "WFP", "WHO"]
        assert [p.rank for p in profiles] == [1, 2, 3]
        assert profiles[0].market_share == 42.9

    def test_previous_rank_and_share(self):
        """Previous positions and rank are carried on each profile."""
        current = _jobs({("UNDP", "health"): 6, ("WFP", "health"): 4})
        previous = _jobs({("WFP", "health"): 5, ("UNDP", "health"): 5})

        profiles = rank_agencies(current, previous)

        undp = profiles[0]
        assert undp.previous_rank == 1
        assert undp.previous_positions == 5
        assert undp.share_change == 10.0

    def test_empty(self):
        """No postings, no profiles."""
        assert rank_agencies(_jobs({})) == []


class TestNewEntrants:
    """Tests for new category entry detection."""

    def test_entry_from_zero(self):
        """UNDP posting 12 climate roles after none is a new entrant."""
        current = _jobs({
            ("UNDP", "climate-environment"): 12,
            ("UNDP", "health"): 6,
            ("WFP", "climate-environment"): 3,
        })
        previous = _jobs({("UNDP", "health"): 3})

        result = detect_new_entrants(current, previous)

        assert len(result) == 1
        entry = result.iloc[0]
        assert entry["agency"] == "UNDP"
        assert entry["category"] == "climate-environment"
        assert entry["positions"] == 12
        assert entry["previous_positions"] == 0
        assert entry["description"] == "New entry with 12 positions"

    def test_empty_previous(self):
        """Everything sizeable is new when the previous period is empty."""
        result = detect_new_entrants(_jobs({("WFP", "logistics"): 5}), _jobs({}))

        assert list(result["agency"]) == ["WFP"]


class TestSimilarity:
    """Tests for pairwise correlations and the closest competitor."""

    def test_identical_mix_is_strong_overlap(self):
        """Agencies with the same category mix correlate strongly."""
        df = _jobs({
            ("UNDP", "health"): 6, ("UNDP", "wash"): 2,
            ("WFP", "health"): 12, ("WFP", "wash"): 4,
            ("WHO", "logistics"): 8,
        })

        result = agency_correlations(df)

        assert len(result) == 1
        row = result.iloc[0]
        assert {row["agency_a"], row["agency_b"]} == {"UNDP", "WFP"}
        assert row["correlation"] == pytest.approx(1.0)
        assert row["strength"] == "Strong overlap"

    def test_only_largest_agencies_compared(self):
        """Pairs are limited to the top_k largest agencies plus any requested one."""
        agencies = ["UNDP", "WFP", "UNICEF", "WHO", "UNHCR", "IOM", "FAO", "UNFPA"]
        counts = {}
        for size, agency in zip(range(8, 0, -1), agencies):
            counts[(agency, "health")] = 3 * size
            counts[(agency, "wash")] = size
        df = _jobs(counts)

        result = agency_correlations(df, top_k=3, limit=50)
        pairs = {frozenset(p) for p in zip(result["agency_a"], result["agency_b"])}

        assert pairs == {
            frozenset({"UNDP", "WFP"}),
            frozenset({"UNDP", "UNICEF"}),
            frozenset({"WFP", "UNICEF"}),
        }

        with_focus = agency_correlations(df, agencies=["UNFPA"], top_k=3, limit=50)
        focus_pairs = {frozenset(p) for p in zip(with_focus["agency_a"], with_focus["agency_b"])}

        assert len(focus_pairs) == 6
        assert frozenset({"UNDP", "UNFPA"}) in focus_pairs
        assert not any("WHO" in pair or "FAO" in pair for pair in focus_pairs)

    def test_closest_competitor(self):
        """The most similar sufficiently large agency is chosen."""
        df = _jobs({
            ("UNDP", "health"): 6, ("UNDP", "wash"): 2,
            ("WFP", "health"): 15, ("WFP", "wash"): 5,
            ("OCHA", "health"): 6, ("OCHA", "wash"): 2,
            ("WHO", "logistics"): 25,
        })

        result = closest_competitor(df, "UNDP", min_positions=20)

        assert result["agency"] == "WFP"
        assert result["positions"] == 20
        assert result["correlation"] == pytest.approx(1.0)

    def test_closest_competitor_absent_subject(self):
        """An agency with no postings has no competitor."""
        df = _jobs({("WFP", "health"): 25})

        assert closest_competitor(df, "UNDP") is None

    def test_category_leadership(self):
        """Leaders are counted per category."""
        df = _jobs({
            ("UNDP", "health"): 5, ("WFP", "health"): 3,
            ("WFP", "wash"): 4,
            ("UNDP", "logistics"): 2,
        })

        result = category_leadership(df)

        assert result.iloc[0]["agency"] == "UNDP"
        assert result.iloc[0]["categories_led"] == 2


class TestPeerGroups:
    """Tests for peer group lookup."""

    def test_case_insensitive_lookup(self):
        """Membership ignores case."""
        assert peer_group_for("unicef")["id"] == "tier1"

    def test_peers_exclude_self(self):
        """Peers are the other members of the group."""
        assert peer_agencies("UNDP") == ["UNICEF", "WFP", "UNHCR"]

    def test_unknown_agency(self):
        """Agencies outside every group have no peers."""
        assert peer_group_for("Atlantis Agency") is None
        assert peer_agencies("Atlantis Agency") == []
        assert peer_group_for(None) is None


class TestCompetitiveSection:
    """Tests for the assembled competitive section."""

    def test_agency_view(self):
        """Rank, rank change and peers are resolved for the focus agency."""
        current = _jobs({("UNDP", "health"): 8, ("WFP", "health"): 6, ("UNICEF", "wash"): 2})
        previous = _jobs({("WFP", "health"): 8, ("UNDP", "health"): 6})

        result = compute_competitive_metrics(current, previous, "UNDP")

        assert result["total_agencies"] == 3
        assert result["your_rank"] == 1
        assert result["your_previous_rank"] == 2
        assert result["rank_change"] == 1
        assert result["your_market_share"] == 50.0
        assert result["peer_group"]["id"] == "tier1"
        assert {p["agency"] for p in result["peer_profiles"]} == {"WFP", "UNICEF"}

    def test_market_view(self):
        """Without a focus agency there is no rank or competitor."""
        current = _jobs({("UNDP", "health"): 3})

        result = compute_competitive_metrics(current, _jobs({}))

        assert result["your_rank"] is None
        assert result["closest_competitor"] is None
        assert result["peer_group"] is None
