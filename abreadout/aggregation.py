from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from .config import CONTROL, GROUPS, TREATMENT

logger = logging.getLogger(__name__)

DAILY_COLUMNS = [
    "test_date",
    "group_name",
    "daily_users",
    "daily_conversions",
    "daily_rate",
    "cumulative_users",
    "cumulative_conversions",
    "cumulative_rate",
    "dod_rate_change",
]

WEEKLY_COLUMNS = [
    "iso_year",
    "test_week",
    "control_users",
    "control_conversions",
    "control_rate",
    "treatment_users",
    "treatment_conversions",
    "treatment_rate",
    "weekly_lift",
    "weekly_winner",
]


@dataclass(frozen=True)
class GroupAggregate:
    group_name: str
    sample_size: int
    conversions: int
    rate: Optional[float]

    @staticmethod
    def from_counts(group_name: str, sample_size: int, conversions: int) -> "GroupAggregate":
        return GroupAggregate(
            group_name=group_name,
            sample_size=int(sample_size),
            conversions=int(conversions),
            rate=safe_rate(conversions, sample_size),
        )


def safe_rate(conversions: int, sample_size: int) -> Optional[float]:
    """conversions / sample_size, or None for an empty group."""
    if sample_size <= 0:
        return None
    return conversions / sample_size


def absolute_lift(control_rate: Optional[float], treatment_rate: Optional[float]) -> Optional[float]:
    if control_rate is None or treatment_rate is None:
        return None
    return treatment_rate - control_rate


def relative_lift(control_rate: Optional[float], treatment_rate: Optional[float]) -> Optional[float]:
    """Lift as a fraction of the control rate; None when control is empty or zero."""
    if control_rate is None or treatment_rate is None or control_rate == 0:
        return None
    return (treatment_rate - control_rate) / control_rate


def overall_aggregates(clean: pd.DataFrame) -> Dict[str, GroupAggregate]:
    """One aggregate per arm, keyed by group name (control first).

    Both arms are always present; an arm with no users gets rate None.
    """
    out: Dict[str, GroupAggregate] = {}
    for group in GROUPS:
        g = clean[clean["group_name"] == group]
        out[group] = GroupAggregate.from_counts(group, len(g), int(g["converted"].sum()))
    return out


def daily_trend(clean: pd.DataFrame) -> pd.DataFrame:
    """Daily conversion per arm with running totals and day-over-day change.

    cumulative_* is an inclusive prefix sum per arm ordered by date.
    dod_rate_change is NaN on each arm's first day.
    """
    if clean.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)

    tmp = clean.assign(test_date=pd.to_datetime(clean["timestamp"]).dt.date)
    daily = (
        tmp.groupby(["test_date", "group_name"], as_index=False)
        .agg(daily_users=("user_id", "count"), daily_conversions=("converted", "sum"))
        .sort_values(["test_date", "group_name"])
        .reset_index(drop=True)
    )
    daily["daily_conversions"] = daily["daily_conversions"].astype(int)
    daily["daily_rate"] = daily["daily_conversions"] / daily["daily_users"]

    by_group = daily.groupby("group_name", sort=False)
    daily["cumulative_users"] = by_group["daily_users"].cumsum()
    daily["cumulative_conversions"] = by_group["daily_conversions"].cumsum()
    daily["cumulative_rate"] = daily["cumulative_conversions"] / daily["cumulative_users"]
    daily["dod_rate_change"] = by_group["daily_rate"].diff()

    logger.debug("Daily trend covers %d days", daily["test_date"].nunique())
    return daily[DAILY_COLUMNS]


def weekly_winner(control_rate: Optional[float], treatment_rate: Optional[float]) -> Optional[str]:
    """Treatment wins only on a strictly higher rate; None if either arm is empty."""
    if control_rate is None or treatment_rate is None:
        return None
    return TREATMENT if treatment_rate > control_rate else CONTROL


def weekly_trend(clean: pd.DataFrame) -> pd.DataFrame:
    """Side-by-side arm results per ISO week, ordered by (iso_year, test_week).

    A week where one arm has no users reports None for that arm's rate,
    the lift and the winner; the other weeks are unaffected.
    """
    if clean.empty:
        return pd.DataFrame(columns=WEEKLY_COLUMNS)

    iso = pd.to_datetime(clean["timestamp"]).dt.isocalendar()
    tmp = clean.assign(iso_year=iso["year"].astype(int), test_week=iso["week"].astype(int))

    rows = []
    for (iso_year, test_week), bucket in tmp.groupby(["iso_year", "test_week"], sort=True):
        aggs = overall_aggregates(bucket)
        ctrl, trt = aggs[CONTROL], aggs[TREATMENT]
        rows.append(
            {
                "iso_year": int(iso_year),
                "test_week": int(test_week),
                "control_users": ctrl.sample_size,
                "control_conversions": ctrl.conversions,
                "control_rate": ctrl.rate,
                "treatment_users": trt.sample_size,
                "treatment_conversions": trt.conversions,
                "treatment_rate": trt.rate,
                "weekly_lift": absolute_lift(ctrl.rate, trt.rate),
                "weekly_winner": weekly_winner(ctrl.rate, trt.rate),
            }
        )
        if ctrl.rate is None or trt.rate is None:
            logger.warning("Week %d-W%02d has an empty arm; lift left undefined", iso_year, test_week)

    return pd.DataFrame(rows, columns=WEEKLY_COLUMNS)
