"""
Export utilities: turn a brief into plain, JSON-safe data.
"""
import json
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from workforce_intel.modeling.brief import IntelligenceBrief


def to_plain(value: Any) -> Any:
    """
    Recursively convert frames, dataclasses and numpy scalars to plain Python.

    DataFrames become lists of row dicts; timestamps become ISO strings;
    NaN and NaT become None.
    """
    if isinstance(value, pd.DataFrame):
        return [to_plain(row) for row in value.to_dict("records")]
    if isinstance(value, pd.Series):
        return [to_plain(v) for v in value.tolist()]
    if hasattr(value, "to_dict") and is_dataclass(value):
        return to_plain(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return to_plain(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_plain(v) for v in value]
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.isoformat()
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (np.floating, float)):
        return None if np.isnan(value) else float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if value is pd.NaT:
        return None
    return value


def brief_to_dict(brief: IntelligenceBrief) -> Dict[str, Any]:
    """Plain-data form of a brief, with camelCase top-level keys."""
    return {
        "generatedAt": brief.generated_at,
        "periodLabel": brief.period_label,
        "comparisonLabel": brief.comparison_label,
        "agencyName": brief.agency_name,
        "isAgencyView": brief.is_agency_view,
        "timeRange": brief.time_range,
        "headerMetrics": to_plain(brief.header_metrics),
        "executiveSummary": to_plain(brief.executive_summary),
        "volumeMetrics": to_plain(brief.volume_metrics),
        "workforceMetrics": to_plain(brief.workforce_metrics),
        "geographicMetrics": to_plain(brief.geographic_metrics),
        "categoryMetrics": to_plain(brief.category_metrics),
        "competitiveMetrics": to_plain(_without(brief.competitive_metrics, "profiles")),
        "signals": to_plain(brief.signals),
        "findings": to_plain(brief.findings),
    }


def _without(section: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    return {k: v for k, v in section.items() if k not in keys}


def brief_to_json(brief: IntelligenceBrief, indent: Optional[int] = 2) -> str:
    """Serialise a brief to a JSON string."""
    return json.dumps(brief_to_dict(brief), indent=indent)
