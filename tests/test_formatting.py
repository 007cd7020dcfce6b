"""Tests for text formatting helpers and logger setup."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest
from loguru import logger

sys.path.insert(0, str(Path(__file__).parent.parent))

from workforce_intel.formatting import (
    MISSING,
    fmt_change,
    fmt_count,
    fmt_days,
    fmt_percent,
    fmt_points,
    fmt_rank,
    join_names,
    trend_direction,
)
from workforce_intel.logger import setup_logger


class TestFormatters:
    """Tests for number formatters."""

    def test_percent(self):
        assert fmt_percent(12.4) == "12%"
        assert fmt_percent(8.26, 1) == "8.3%"

    def test_count(self):
        assert fmt_count(1234) == "1,234"

    def test_change_and_points(self):
        """Changes are signed."""
        assert fmt_change(30) == "+30%"
        assert fmt_points(-30) == "-30pp"

    def test_days_and_rank(self):
        assert fmt_days(14.2) == "14d"
        assert fmt_rank(3, 41) == "#3 of 41"

    @pytest.mark.parametrize("formatter", [fmt_percent, fmt_count, fmt_change, fmt_points, fmt_days])
    def test_missing(self, formatter):
        """Missing values render as n/a."""
        assert formatter(None) == MISSING
        assert formatter(np.nan) == MISSING

    def test_rank_missing(self):
        assert fmt_rank(None, 10) == MISSING


class TestTrendAndNames:
    """Tests for trend labels and name lists."""

    @pytest.mark.parametrize("value,expected", [(5, "up"), (-5, "down"), (2, "stable"), (None, "stable")])
    def test_trend_direction(self, value, expected):
        assert trend_direction(value, 3) == expected

    def test_join_names(self):
        assert join_names([]) == ""
        assert join_names(["A"]) == "A"
        assert join_names(["A", "B"]) == "A and B"
        assert join_names(["A", "B", "C"]) == "A, B and C"


class TestSetupLogger:
    """Tests for logger configuration."""

    def test_level_filters(self):
        """Messages below the configured level are dropped."""
        messages = []
        handler_id = setup_logger("WARNING", sink=messages.append)
        try:
            logger.info("quiet")
            logger.warning("loud")
        finally:
            logger.remove(handler_id)

        assert len(messages) == 1
        assert "loud" in messages[0]
