"""End-to-end tests for brief generation."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from workforce_intel.config import AppConfig
from workforce_intel.exports import brief_to_dict, brief_to_json
from workforce_intel.modeling.brief import IntelligenceBrief, generate_brief

NOW = pd.Timestamp("2025-04-06")


def _make_row(
    posting_date: str,
    agency: str,
    grade_code: str = "P-3",
    category: str = "health",
    station: str = "Juba, South Sudan",
    window: float = 14,
) -> dict:
    return {
        "job_id": f"{agency}-{posting_date}-{grade_code}-{category}",
        "posting_date": posting_date,
        "agency": agency,
        "grade_code": grade_code,
        "primary_category": category,
        "duty_station": station,
        "application_window_days": window,
    }


def _records() -> pd.DataFrame:
    rows = []
    # Current window: Mar 9 - Apr 6, 2025
    for i in range(6):
        rows.append(_make_row(f"2025-03-{10 + i}", "UNDP", "Consultant", "climate-environment", "Nairobi", 7))
    for i in range(4):
        rows.append(_make_row(f"2025-03-{20 + i}", "UNDP", "P-4", "health", "Geneva", 21))
    for i in range(8):
        rows.append(_make_row(f"2025-03-{11 + i}", "WFP", "NPSA-8", "logistics", "Goma, DRC", 12))
    for i in range(3):
        rows.append(_make_row(f"2025-04-0{1 + i}", "WHO", "P-5", "health", "Kabul", 30))
    # Previous window: Feb 9 - Mar 9, 2025
    for i in range(4):
        rows.append(_make_row(f"2025-02-{10 + i}", "UNDP", "P-3", "health", "Juba, South Sudan", 20))
    for i in range(6):
        rows.append(_make_row(f"2025-02-{12 + i}", "WFP", "G-5", "logistics", "Goma, DRC", 14))
    # Earlier history
    for i in range(5):
        rows.append(_make_row(f"2024-0{6 + i}-15", "UNDP", "P-2", "health", "Juba, South Sudan", 25))
    rows.append({"posting_date": None, "agency": "UNDP", "grade_code": "P-3"})
    return pd.DataFrame(rows)


class TestMarketView:
    """Tests for the cross-agency brief."""

    def test_shape(self):
        """The market brief covers every agency in the current window."""
        brief = generate_brief(_records(), "4weeks", now=NOW)

        assert isinstance(brief, IntelligenceBrief)
        assert brief.is_agency_view is False
        assert brief.agency_name is None
        assert brief.time_range == "4weeks"
        assert brief.period_label == "Mar 9 - Apr 6, 2025"
        assert brief.comparison_label == "Feb 9 - Mar 9"
        assert brief.volume_metrics["total"] == 21
        assert brief.volume_metrics["previous_total"] == 10
        assert brief.competitive_metrics["total_agencies"] == 3
        assert brief.competitive_metrics["your_rank"] is None

    def test_caps(self):
        """Signals and findings respect their caps."""
        brief = generate_brief(_records(), "4weeks", now=NOW)

        assert len(brief.signals) <= 8
        assert len(brief.findings) <= 5

    def test_unknown_time_range(self):
        """Unknown selectors fall back to the default range."""
        brief = generate_brief(_records(), "fortnight", now=NOW)

        assert brief.time_range == "3months"


class TestAgencyView:
    """Tests for a single-agency brief."""

    def test_agency_metrics(self):
        """Subject metrics are the agency's; rank comes from the market."""
        brief = generate_brief(_records(), "4weeks", agency="UNDP", now=NOW)

        assert brief.is_agency_view is True
        assert brief.agency_name == "UNDP"
        assert brief.volume_metrics["total"] == 10
        assert brief.workforce_metrics["staff_ratio"] == 40.0
        assert brief.competitive_metrics["your_rank"] == 1
        assert brief.competitive_metrics["your_previous_rank"] == 2

    def test_new_entry_detected(self):
        """UNDP's first climate postings are a new entry."""
        brief = generate_brief(_records(), "4weeks", agency="UNDP", now=NOW)

        entrants = brief.competitive_metrics["new_entrants"]
        row = entrants.loc[entrants["agency"] == "UNDP"].iloc[0]
        assert row["category"] == "climate-environment"
        assert row["positions"] == 6

    def test_header_has_rank(self):
        """The agency header includes the market rank card."""
        brief = generate_brief(_records(), "4weeks", agency="UNDP", now=NOW)

        labels = [m.label for m in brief.header_metrics]
        assert labels[1] == "Market Rank"
        assert brief.header_metrics[1].value == "#1 of 3"

    def test_unknown_agency(self):
        """An agency with no postings yields an empty but valid brief."""
        brief = generate_brief(_records(), "4weeks", agency="Atlantis", now=NOW)

        assert brief.volume_metrics["total"] == 0
        assert brief.competitive_metrics["your_rank"] is None
        assert brief.findings == []


class TestDeterminism:
    """Tests for reproducibility and input handling."""

    def test_identical_inputs_identical_brief(self):
        """Two calls with the same inputs produce the same output."""
        first = brief_to_json(generate_brief(_records(), "8weeks", agency="UNDP", now=NOW))
        second = brief_to_json(generate_brief(_records(), "8weeks", agency="UNDP", now=NOW))

        assert first == second

    def test_input_not_modified(self):
        """The caller's records are read, never changed."""
        records = _records()
        before = records.copy()

        generate_brief(records, "4weeks", agency="UNDP", now=NOW)

        pd.testing.assert_frame_equal(records, before)

    def test_accepts_dicts(self):
        """A list of dicts works as well as a frame."""
        brief = generate_brief(_records().to_dict("records"), "4weeks", now=NOW)

        assert brief.volume_metrics["total"] == 21


class TestDegradedInput:
    """Tests for empty input and failing sections."""

    def test_empty_records(self):
        """No records still produces a complete brief."""
        brief = generate_brief([], "4weeks", now=NOW)

        assert brief.volume_metrics["total"] == 0
        assert brief.signals == []
        assert brief.findings == []
        assert brief.executive_summary.paragraphs == ()
        json.loads(brief_to_json(brief))

    def test_failed_section_is_isolated(self, monkeypatch):
        """A failing calculator marks its section and leaves the rest intact."""
        def boom(*args, **kwargs):
            raise ValueError("volume exploded")

        monkeypatch.setattr("workforce_intel.modeling.brief.compute_volume_metrics", boom)

        brief = generate_brief(_records(), "4weeks", now=NOW)

        assert brief.volume_metrics == {"status": "error", "reason": "volume exploded"}
        assert brief.workforce_metrics["staff_ratio"] > 0

    def test_mixed_date_shapes_counted(self):
        """Postings dated in different ISO shapes all land in the window."""
        records = [
            _make_row("2025-03-10", "UNDP"),
            _make_row("2025-03-11T09:30:00Z", "UNDP"),
            _make_row("2025-03-12 08:00:00", "UNDP"),
        ]

        brief = generate_brief(records, "4weeks", now="2025-03-31")

        assert brief.volume_metrics["total"] == 3

    def test_settings_override(self):
        """Caps come from the supplied settings."""
        settings = AppConfig(max_signals=1, max_findings=1)

        brief = generate_brief(_records(), "4weeks", agency="UNDP", now=NOW, settings=settings)

        assert len(brief.signals) <= 1
        assert len(brief.findings) <= 1


class TestExportShape:
    """Tests for the plain-data form of a brief."""

    def test_camel_case_keys(self):
        """Top-level keys are camelCase and JSON-safe."""
        data = brief_to_dict(generate_brief(_records(), "4weeks", agency="UNDP", now=NOW))

        assert data["agencyName"] == "UNDP"
        assert data["generatedAt"] == "2025-04-06T00:00:00"
        assert "profiles" not in data["competitiveMetrics"]
        assert isinstance(data["volumeMetrics"]["weekly"], list)
        json.dumps(data)
