"""Read-only data-quality diagnostics over raw visit records.

Run these before trusting any number further down the pipeline:

- group balance: volume and conversion per (group, page) combination
- mismatched assignments: control users shown the new page and vice versa
- cross-group users: the same user_id recorded in both arms
- within-group duplicates: the same user_id recorded twice in one arm

Nothing here mutates or filters the input; cleaning lives in ``cleaning``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from .config import CANONICAL_PAGE
from .records import coerce_visit_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataQualityReport:
    total_records: int
    group_balance: pd.DataFrame
    mismatched: pd.DataFrame
    cross_group: pd.DataFrame
    duplicates: pd.DataFrame

    @property
    def mismatched_total(self) -> int:
        return int(self.mismatched["mismatched_count"].sum())

    @property
    def cross_group_user_count(self) -> int:
        return len(self.cross_group)

    @property
    def duplicated_user_count(self) -> int:
        return len(self.duplicates)

    @property
    def is_clean(self) -> bool:
        return not (self.mismatched_total or self.cross_group_user_count or self.duplicated_user_count)


def mismatch_mask(raw: pd.DataFrame) -> pd.Series:
    """True for rows whose landing page is not the canonical page for their group.

    Rows with an unknown group label count as mismatched as well.
    """
    expected = raw["group_name"].map(CANONICAL_PAGE)
    return expected.isna() | (expected != raw["landing_page"])


def group_balance(raw: pd.DataFrame) -> pd.DataFrame:
    df = coerce_visit_records(raw)
    if df.empty:
        return pd.DataFrame(
            columns=["group_name", "landing_page", "total_users", "total_conversions", "conversion_rate"]
        )
    out = (
        df.groupby(["group_name", "landing_page"], as_index=False)
        .agg(total_users=("user_id", "count"), total_conversions=("converted", "sum"))
        .sort_values(["group_name", "landing_page"])
        .reset_index(drop=True)
    )
    out["total_conversions"] = out["total_conversions"].astype(int)
    out["conversion_rate"] = out["total_conversions"] / out["total_users"]
    return out


def mismatched_assignments(raw: pd.DataFrame) -> pd.DataFrame:
    df = coerce_visit_records(raw)
    bad = df[mismatch_mask(df)]
    if bad.empty:
        return pd.DataFrame(columns=["group_name", "landing_page", "mismatched_count"])
    return (
        bad.groupby(["group_name", "landing_page"], as_index=False)
        .size()
        .rename(columns={"size": "mismatched_count"})
        .sort_values(["group_name", "landing_page"])
        .reset_index(drop=True)
    )


def cross_group_users(raw: pd.DataFrame) -> pd.DataFrame:
    df = coerce_visit_records(raw)
    columns = ["user_id", "group_count", "groups_seen"]
    # first-seen order of each user's groups survives drop_duplicates + groupby
    distinct = df.drop_duplicates(["user_id", "group_name"])
    multi = distinct[distinct.duplicated("user_id", keep=False)]
    if multi.empty:
        return pd.DataFrame(columns=columns)

    out = (
        multi.groupby("user_id", sort=True)["group_name"]
        .agg(group_count="count", groups_seen=", ".join)
        .reset_index()
    )
    return out[columns]


def duplicate_within_group(raw: pd.DataFrame) -> pd.DataFrame:
    df = coerce_visit_records(raw)
    if df.empty:
        return pd.DataFrame(columns=["user_id", "group_name", "appearances"])
    counts = (
        df.groupby(["user_id", "group_name"], as_index=False)
        .size()
        .rename(columns={"size": "appearances"})
    )
    dupes = counts[counts["appearances"] > 1]
    return dupes.sort_values(
        ["appearances", "user_id", "group_name"],
        ascending=[False, True, True],
    ).reset_index(drop=True)


def run_diagnostics(raw: pd.DataFrame) -> DataQualityReport:
    report = DataQualityReport(
        total_records=len(raw),
        group_balance=group_balance(raw),
        mismatched=mismatched_assignments(raw),
        cross_group=cross_group_users(raw),
        duplicates=duplicate_within_group(raw),
    )
    if report.is_clean:
        logger.info("Data quality checks passed for %d records", report.total_records)
    else:
        logger.warning(
            "Data quality issues in %d records: %d mismatched assignments, "
            "%d cross-group users, %d duplicated users",
            report.total_records,
            report.mismatched_total,
            report.cross_group_user_count,
            report.duplicated_user_count,
        )
    return report
