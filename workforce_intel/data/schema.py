"""
Record schema validation and column alias mapping.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from workforce_intel.config import COLUMN_ALIASES, OPTIONAL_COLUMNS, REQUIRED_COLUMNS, UNCATEGORIZED

RECORD_COLUMNS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


@dataclass(frozen=True)
class JobRecord:
    """A normalised job posting as supplied by the ingestion pipeline."""

    job_id: str
    posting_date: Optional[datetime]
    agency: str
    grade_code: Optional[str] = None
    apply_until_date: Optional[datetime] = None
    primary_category: Optional[str] = None
    duty_station: Optional[str] = None
    duty_country: Optional[str] = None
    region: Optional[str] = None
    location_type: Optional[str] = None
    application_window_days: Optional[float] = None
    is_home_based: bool = False


RecordsInput = Union[pd.DataFrame, Iterable[Union[JobRecord, dict]]]


def records_to_frame(records: RecordsInput) -> pd.DataFrame:
    """
    Build a record frame from a DataFrame, dicts or JobRecord instances.

    Column aliases (camelCase API keys, legacy names) are mapped to the
    canonical snake_case columns and missing optional columns are added
    as nulls. The input is never modified.
    """
    if isinstance(records, pd.DataFrame):
        df = records.copy()
    else:
        rows = [asdict(r) if is_dataclass(r) else dict(r) for r in records]
        df = pd.DataFrame(rows)

    df = apply_column_aliases(df)

    if "agency" not in df.columns or df["agency"].isna().all():
        df["agency"] = _coalesce_agency(df)

    for col in RECORD_COLUMNS:
        if col not in df.columns:
            df[col] = np.nan

    return ensure_column_types(df)


def apply_column_aliases(df: pd.DataFrame) -> pd.DataFrame:
    """Rename aliased columns, keeping an existing canonical column if both exist."""
    renames = {}
    for col in df.columns:
        target = COLUMN_ALIASES.get(col)
        if target and target != col and target not in df.columns and target not in renames.values():
            renames[col] = target
    return df.rename(columns=renames)


def _coalesce_agency(df: pd.DataFrame) -> pd.Series:
    agency = pd.Series(np.nan, index=df.index, dtype=object)
    for col in ["short_agency", "shortAgency", "long_agency", "longAgency"]:
        if col in df.columns:
            agency = agency.fillna(df[col])
    return agency


def validate_required_columns(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """
    Validate that required columns exist in dataframe.
    Returns (is_valid, missing_columns).
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    return len(missing) == 0, missing


def validate_records(df: pd.DataFrame, strict: bool = False) -> Dict:
    """
    Validate a raw record frame.

    Args:
        df: Raw records, before ``records_to_frame``
        strict: If True, raise SchemaValidationError on missing required columns

    Returns:
        Dict with validation results
    """
    df = apply_column_aliases(df)
    is_valid, missing_required = validate_required_columns(df)
    missing_optional = [col for col in OPTIONAL_COLUMNS if col not in df.columns]

    unparseable_dates = 0
    if "posting_date" in df.columns:
        parsed = _to_naive_datetime(df["posting_date"])
        unparseable_dates = int((parsed.isna() & df["posting_date"].notna()).sum())

    result = {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "unparseable_posting_dates": unparseable_dates,
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }

    if strict and not is_valid:
        raise SchemaValidationError(f"Missing required columns in job records: {missing_required}")

    if missing_optional:
        logger.debug("Job records missing optional columns: {}", missing_optional)

    return result


def _to_naive_datetime(values: pd.Series) -> pd.Series:
    """
    Coerce to datetime; aware values are converted to UTC and made naive.

    Each value is parsed as ISO 8601 on its own, so date-only, ``T``-separated
    and space-separated timestamps can share a column.
    """
    parsed = pd.to_datetime(values, errors="coerce", utc=True, format="ISO8601")
    return parsed.dt.tz_localize(None)


def _to_bool(value) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if value is None or pd.isna(value):
        return False
    if isinstance(value, (int, float, np.number)):
        return bool(value)
    return str(value).strip().lower() in {"true", "1", "yes", "y", "t"}


def _clean_text(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def ensure_column_types(df: pd.DataFrame) -> pd.DataFrame:
    """Ensure consistent column types and derive the application window."""
    df = df.copy()

    # Date columns
    for col in ["posting_date", "apply_until_date"]:
        if col in df.columns:
            df[col] = _to_naive_datetime(df[col])

    # Numeric columns
    if "application_window_days" in df.columns:
        df["application_window_days"] = pd.to_numeric(df["application_window_days"], errors="coerce")

    # Boolean columns
    if "is_home_based" in df.columns:
        df["is_home_based"] = df["is_home_based"].map(_to_bool).astype(bool)

    # Text columns
    for col in ["agency", "grade_code", "duty_station", "duty_country", "region", "location_type"]:
        if col in df.columns:
            df[col] = df[col].map(_clean_text).astype(object)

    if "primary_category" in df.columns:
        df["primary_category"] = df["primary_category"].map(
            lambda v: _clean_text(v) or UNCATEGORIZED
        )

    if "apply_until_date" in df.columns and "posting_date" in df.columns:
        derived = (df["apply_until_date"] - df["posting_date"]).dt.days.clip(lower=0)
        if "application_window_days" in df.columns:
            df["application_window_days"] = df["application_window_days"].fillna(derived)
        else:
            df["application_window_days"] = derived

    return df


def drop_undated(df: pd.DataFrame) -> pd.DataFrame:
    """Drop records whose posting date could not be parsed."""
    mask = df["posting_date"].notna()
    dropped = int((~mask).sum())
    if dropped:
        logger.warning("Excluding {} records with unparseable posting dates", dropped)
    return df.loc[mask]
