"""
Intelligence brief orchestration.

``generate_brief`` is the engine's single entry point. Every call builds a
fresh ``BriefBuilder`` over its own prepared records; nothing is cached or
shared between calls, so concurrent calls need no coordination.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
from loguru import logger

from workforce_intel.config import AppConfig, config as default_config
from workforce_intel.data.periods import PeriodWindows, resolve_periods, to_naive_timestamp
from workforce_intel.data.schema import RecordsInput
from workforce_intel.data.semantic import RecordSlices, build_slices, prepare_records
from workforce_intel.metrics.category import compute_category_metrics, declining_categories
from workforce_intel.metrics.geography import compute_geographic_metrics
from workforce_intel.metrics.snapshot import MetricSnapshot, compute_metric_snapshot
from workforce_intel.metrics.volume import compute_volume_metrics
from workforce_intel.metrics.workforce import compute_workforce_metrics
from workforce_intel.modeling.competitive import compute_competitive_metrics
from workforce_intel.modeling.findings import FindingContext, StrategicFinding, synthesize_findings
from workforce_intel.modeling.narrative import (
    ExecutiveSummary,
    KeyMetric,
    build_executive_summary,
    build_header_metrics,
    build_narrative_context,
)
from workforce_intel.modeling.pyramid import analyze_pyramid
from workforce_intel.modeling.signals import Signal, SignalContext, detect_signals

MARKET_SUBJECT = "The UN system"


@dataclass
class IntelligenceBrief:
    """Structured brief returned to the presentation layer."""

    generated_at: str
    period_label: str
    comparison_label: str
    agency_name: Optional[str]
    is_agency_view: bool
    time_range: str
    header_metrics: List[KeyMetric] = field(default_factory=list)
    executive_summary: ExecutiveSummary = field(default_factory=lambda: ExecutiveSummary((), ()))
    volume_metrics: Dict[str, Any] = field(default_factory=dict)
    workforce_metrics: Dict[str, Any] = field(default_factory=dict)
    geographic_metrics: Dict[str, Any] = field(default_factory=dict)
    category_metrics: Dict[str, Any] = field(default_factory=dict)
    competitive_metrics: Dict[str, Any] = field(default_factory=dict)
    signals: List[Signal] = field(default_factory=list)
    findings: List[StrategicFinding] = field(default_factory=list)


def _dict_error(exc: Exception) -> Dict[str, Any]:
    return {"status": "error", "reason": str(exc)}


class BriefBuilder:
    """Computes one brief. Construct per call; not reused."""

    def __init__(
        self,
        records: pd.DataFrame,
        periods: PeriodWindows,
        agency: Optional[str] = None,
        settings: Optional[AppConfig] = None,
    ):
        self.settings = settings or default_config
        self.periods = periods
        self.agency = agency
        self.slices: RecordSlices = build_slices(records, periods, agency)

        thresholds = self.settings.metrics
        self.current: MetricSnapshot = compute_metric_snapshot(self.slices.current, thresholds)
        self.previous: MetricSnapshot = compute_metric_snapshot(self.slices.previous, thresholds)
        self.historical: MetricSnapshot = compute_metric_snapshot(self.slices.historical, thresholds)
        self.market: MetricSnapshot = compute_metric_snapshot(self.slices.market_current, thresholds)

    @property
    def subject(self) -> str:
        return self.agency if self.agency is not None else MARKET_SUBJECT

    def _section(self, name: str, compute: Callable[[], Any], default: Any) -> Any:
        started = time.perf_counter()
        try:
            result = compute()
        except Exception as e:
            logger.exception("Brief section {} failed", name)
            return default(e) if callable(default) else default
        logger.debug("Brief section {} computed in {:.1f} ms", name, (time.perf_counter() - started) * 1000)
        return result

    # Sections -----------------------------------------------------------------

    def volume(self) -> Dict[str, Any]:
        return compute_volume_metrics(
            self.slices.current,
            self.slices.previous,
            self.slices.historical,
            self.periods.weeks,
            self.settings.metrics,
        )

    def workforce(self) -> Dict[str, Any]:
        metrics = compute_workforce_metrics(
            self.slices.current,
            self.slices.previous,
            self.slices.market_current,
            self.agency,
        )
        peers = self.slices.market_current if self.agency else None
        metrics["pyramid"] = analyze_pyramid(self.slices.current, peers)
        return metrics

    def geographic(self) -> Dict[str, Any]:
        return compute_geographic_metrics(
            self.slices.current,
            self.slices.previous,
            self.slices.market_current,
            self.slices.prior_history,
            top_locations_limit=self.settings.top_locations,
        )

    def category(self) -> Dict[str, Any]:
        return compute_category_metrics(
            self.slices.current,
            self.slices.previous,
            self.slices.market_current,
            self.agency,
            self.settings.metrics,
            top_n=self.settings.top_categories,
        )

    def competitive(self) -> Dict[str, Any]:
        return compute_competitive_metrics(
            self.slices.market_current,
            self.slices.market_previous,
            self.agency,
            self.settings,
        )

    def signals(self, competitive: Dict[str, Any]) -> List[Signal]:
        thresholds = self.settings.signals
        entrants = competitive.get("new_entrants")
        current_regions = self.slices.current["region_name"].value_counts().to_dict() \
            if not self.slices.current.empty else {}
        previous_regions = self.slices.previous["region_name"].value_counts().to_dict() \
            if not self.slices.previous.empty else {}

        ctx = SignalContext(
            current=self.current,
            previous=self.previous,
            historical=self.historical,
            market=self.market,
            agency=self.agency,
            new_entrants=entrants if isinstance(entrants, pd.DataFrame) else pd.DataFrame(),
            declining_categories=declining_categories(
                self.slices.current,
                self.slices.previous,
                thresholds.category_decline_pct,
                thresholds.category_decline_min_previous,
            ),
            current_regions=current_regions,
            previous_regions=previous_regions,
            new_entrant_min_positions=self.settings.new_entrant_min_positions,
        )
        return detect_signals(ctx, thresholds, self.settings.max_signals)

    def findings(
        self,
        category: Dict[str, Any],
        geographic: Dict[str, Any],
        competitive: Dict[str, Any],
    ) -> List[StrategicFinding]:
        profiles = competitive.get("profiles") or []
        peer_names = {p["agency"] for p in competitive.get("peer_profiles") or []}
        distribution = category.get("distribution")
        changes = geographic.get("location_changes")

        ctx = FindingContext(
            subject=self.subject,
            current=self.current,
            previous=self.previous,
            market=self.market,
            agency=self.agency,
            category_distribution=distribution if isinstance(distribution, pd.DataFrame) else pd.DataFrame(),
            location_changes=changes if isinstance(changes, pd.DataFrame) else pd.DataFrame(),
            competitor=competitive.get("closest_competitor"),
            peer_profiles=[p for p in profiles if p.agency in peer_names],
        )
        return synthesize_findings(ctx, self.settings.weights, self.settings.max_findings)

    # Assembly -----------------------------------------------------------------

    def build(self, generated_at: pd.Timestamp) -> IntelligenceBrief:
        volume = self._section("volume", self.volume, _dict_error)
        workforce = self._section("workforce", self.workforce, _dict_error)
        geographic = self._section("geographic", self.geographic, _dict_error)
        category = self._section("category", self.category, _dict_error)
        competitive = self._section("competitive", self.competitive, _dict_error)
        signals = self._section("signals", lambda: self.signals(competitive), [])
        findings = self._section("findings", lambda: self.findings(category, geographic, competitive), [])

        volume_change = volume.get("velocity_change", 0.0) if self.previous.total else 0.0
        header_metrics = self._section(
            "header_metrics",
            lambda: build_header_metrics(
                self.current, self.previous, self.market, competitive, volume_change, self.agency is not None
            ),
            [],
        )
        summary = self._section(
            "executive_summary",
            lambda: build_executive_summary(
                build_narrative_context(
                    self.subject,
                    self.agency,
                    self.periods.weeks,
                    self.current,
                    self.previous,
                    self.market,
                    volume,
                    workforce,
                    category,
                    competitive,
                ),
                self.current,
                self.previous,
            ),
            ExecutiveSummary((), ()),
        )

        return IntelligenceBrief(
            generated_at=generated_at.isoformat(),
            period_label=self.periods.current.label,
            comparison_label=self.periods.previous.label,
            agency_name=self.agency,
            is_agency_view=self.agency is not None,
            time_range=self.periods.selector,
            header_metrics=header_metrics,
            executive_summary=summary,
            volume_metrics=volume,
            workforce_metrics=workforce,
            geographic_metrics=geographic,
            category_metrics=category,
            competitive_metrics=competitive,
            signals=signals,
            findings=findings,
        )


def generate_brief(
    records: RecordsInput,
    time_range: Optional[str] = None,
    agency: Optional[str] = None,
    now=None,
    settings: Optional[AppConfig] = None,
) -> IntelligenceBrief:
    """
    Generate an intelligence brief from job records.

    Args:
        records: DataFrame, dicts or JobRecord instances; read, never modified
        time_range: One of 4weeks, 8weeks, 3months, 6months, 1year
        agency: Exact agency name for an agency view; None for the market view
        now: Reference instant; defaults to the current time
        settings: Overrides for thresholds, weights and caps

    Returns:
        IntelligenceBrief; identical inputs give an identical brief
    """
    settings = settings or default_config
    now = to_naive_timestamp(now if now is not None else pd.Timestamp.now(tz="UTC"))
    periods = resolve_periods(time_range or settings.default_time_range, now)

    prepared = prepare_records(records)
    logger.info(
        "Generating {} brief for {} over {} ({} records)",
        "agency" if agency else "market",
        agency or MARKET_SUBJECT,
        periods.current.label,
        len(prepared),
    )
    return BriefBuilder(prepared, periods, agency, settings).build(now)
