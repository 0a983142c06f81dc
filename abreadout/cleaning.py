"""Canonical analysis dataset: one first-seen, correctly assigned visit per user."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import pandas as pd

from .config import CLEAN_COLUMNS
from .errors import DataQualityWarning
from .records import coerce_visit_records
from .validation import mismatch_mask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleaningSummary:
    raw_records: int
    mismatched_dropped: int
    duplicates_dropped: int
    clean_records: int

    @property
    def dropped(self) -> int:
        return self.mismatched_dropped + self.duplicates_dropped


def clean_visits(raw: pd.DataFrame, warn: bool = True) -> pd.DataFrame:
    """Drop mismatched assignments, then keep each user's earliest visit.

    "First observed assignment wins": this resolves both cross-group
    contamination and within-group duplicates. Visits with identical
    timestamps keep their input order (stable sort), so the row listed
    first wins and repeated runs give the same result.

    Returns a DataFrame with columns user_id, group_name, converted, timestamp,
    ordered by timestamp.
    """
    df = coerce_visit_records(raw)
    valid = df[~mismatch_mask(df)]

    first_seen = (
        valid.sort_values("timestamp", kind="mergesort")
        .drop_duplicates("user_id", keep="first")
    )
    clean = first_seen.loc[:, list(CLEAN_COLUMNS)].reset_index(drop=True)

    summary = summarize_cleaning(df, clean)
    logger.info(
        "Cleaned %d raw records down to %d users (%d mismatched, %d duplicates dropped)",
        summary.raw_records,
        summary.clean_records,
        summary.mismatched_dropped,
        summary.duplicates_dropped,
    )
    if warn and summary.dropped:
        warnings.warn(
            f"Dropped {summary.mismatched_dropped} mismatched and "
            f"{summary.duplicates_dropped} duplicate visit records",
            DataQualityWarning,
            stacklevel=2,
        )
    return clean


def summarize_cleaning(raw: pd.DataFrame, clean: pd.DataFrame) -> CleaningSummary:
    df = coerce_visit_records(raw)
    mismatched = int(mismatch_mask(df).sum())
    return CleaningSummary(
        raw_records=len(df),
        mismatched_dropped=mismatched,
        duplicates_dropped=len(df) - mismatched - len(clean),
        clean_records=len(clean),
    )
