"""Result tables in the shape reporting consumers expect.

Percentages are rounded to 4 decimals, raw proportions to 8, the weekly
lift to 6 and the summary's relative lift to 2, with ties rounded half
away from zero as SQL ROUND does. Undefined values stay None/NaN; nothing
here computes new statistics.
"""

from __future__ import annotations

from typing import Dict, Optional

import pandas as pd

from .aggregation import GroupAggregate, absolute_lift, relative_lift
from .config import (
    CONTROL,
    LIFT_DECIMALS,
    MIN_EXPECTED_COUNT,
    PCT_DECIMALS,
    PROPORTION_DECIMALS,
    RELATIVE_LIFT_DECIMALS,
    TREATMENT,
)
from .impact import ImpactEstimate, round_half_up
from .report import ExecutiveSummary
from .statistics import SignificanceResult
from .validation import DataQualityReport


def _pct(value: Optional[float], decimals: int = PCT_DECIMALS) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(round_half_up(value * 100, decimals))


def _round(value: Optional[float], decimals: int) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(round_half_up(value, decimals))


def _round_column(series: pd.Series, decimals: int) -> pd.Series:
    values = pd.to_numeric(series, errors="coerce").astype(float)
    return values.map(lambda v: v if pd.isna(v) else float(round_half_up(v, decimals)))


def _pct_column(series: pd.Series, decimals: int = PCT_DECIMALS) -> pd.Series:
    return _round_column(pd.to_numeric(series, errors="coerce") * 100, decimals)


def directional_result(control_rate: Optional[float], treatment_rate: Optional[float]) -> Optional[str]:
    if control_rate is None or treatment_rate is None:
        return None
    if treatment_rate > control_rate:
        return "Treatment Winning"
    if treatment_rate < control_rate:
        return "Control Winning"
    return "No Difference"


def balance_table(diagnostics: DataQualityReport) -> pd.DataFrame:
    out = diagnostics.group_balance.copy()
    out["conversion_rate_pct"] = _pct_column(out.pop("conversion_rate"))
    return out


def conversion_table(overall: Dict[str, GroupAggregate]) -> pd.DataFrame:
    ctrl, trt = overall[CONTROL], overall[TREATMENT]
    return pd.DataFrame(
        [
            {
                "control_conversion_pct": _pct(ctrl.rate),
                "treatment_conversion_pct": _pct(trt.rate),
                "control_n": ctrl.sample_size,
                "treatment_n": trt.sample_size,
                "control_conversions": ctrl.conversions,
                "treatment_conversions": trt.conversions,
                "absolute_lift_pct": _pct(absolute_lift(ctrl.rate, trt.rate)),
                "relative_lift_pct": _pct(relative_lift(ctrl.rate, trt.rate)),
                "directional_result": directional_result(ctrl.rate, trt.rate),
            }
        ]
    )


def significance_table(result: Optional[SignificanceResult]) -> pd.DataFrame:
    columns = [
        "control_conversion_pct",
        "treatment_conversion_pct",
        "pooled_conversion_pct",
        "std_error",
        "z_score",
        "significance_verdict",
        "sample_size_check",
        "method_note",
    ]
    if result is None:
        return pd.DataFrame(columns=columns)

    if result.sample_size_adequate:
        check = "Sample size conditions met for z-test"
    else:
        check = f"WARNING: n*p or n*(1-p) below {MIN_EXPECTED_COUNT}; sample too small for z-test"

    return pd.DataFrame(
        [
            {
                "control_conversion_pct": _pct(result.control.rate),
                "treatment_conversion_pct": _pct(result.treatment.rate),
                "pooled_conversion_pct": _pct(result.p_pool),
                "std_error": _round(result.std_error, PROPORTION_DECIMALS),
                "z_score": _round(result.z_score, PCT_DECIMALS),
                "significance_verdict": result.verdict,
                "sample_size_check": check,
                "method_note": result.method_note,
            }
        ],
        columns=columns,
    )


def daily_table(daily: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "test_date": daily["test_date"],
            "group_name": daily["group_name"],
            "daily_users": daily["daily_users"],
            "daily_conversions": daily["daily_conversions"],
            "daily_conversion_pct": _pct_column(daily["daily_rate"]),
            "cumulative_conversion_pct": _pct_column(daily["cumulative_rate"]),
            "dod_conversion_change": _pct_column(daily["dod_rate_change"]),
        }
    )


def weekly_table(weekly: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "iso_year": weekly["iso_year"],
            "test_week": weekly["test_week"],
            "control_users": weekly["control_users"],
            "control_conv": weekly["control_conversions"],
            "control_conv_pct": _pct_column(weekly["control_rate"]),
            "treatment_users": weekly["treatment_users"],
            "treatment_conv": weekly["treatment_conversions"],
            "treatment_conv_pct": _pct_column(weekly["treatment_rate"]),
            "weekly_lift": _round_column(weekly["weekly_lift"], LIFT_DECIMALS),
            "weekly_winner": weekly["weekly_winner"],
        }
    )


def impact_table(impact: ImpactEstimate) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "control_conversion_pct": _pct(impact.control_rate),
                "treatment_conversion_pct": _pct(impact.treatment_rate),
                "absolute_lift_pct": _pct(impact.absolute_lift),
                "monthly_visitors_assumed": impact.assumed_monthly_visitors,
                "revenue_per_conversion_usd": impact.assumed_revenue_per_conversion,
                "incremental_monthly_conversions": impact.incremental_monthly_conversions,
                "incremental_monthly_revenue_usd": impact.incremental_monthly_revenue,
                "incremental_annual_revenue_usd": impact.incremental_annual_revenue,
                "ship_recommendation": impact.recommendation,
            }
        ]
    )


def summary_table(summary: ExecutiveSummary) -> pd.DataFrame:
    sig = summary.significance
    return pd.DataFrame(
        [
            {
                "test_start": summary.test_start,
                "test_end": summary.test_end,
                "test_duration_days": summary.test_duration_days,
                "control_users": summary.control_users,
                "treatment_users": summary.treatment_users,
                "control_conversions": summary.control_conversions,
                "treatment_conversions": summary.treatment_conversions,
                "control_conversion_pct": _pct(summary.control_rate),
                "treatment_conversion_pct": _pct(summary.treatment_rate),
                "absolute_lift_pct": _pct(summary.absolute_lift),
                "relative_lift_pct": _pct(summary.relative_lift, RELATIVE_LIFT_DECIMALS),
                "summary_finding": summary.summary_finding,
                "significance_verdict": sig.verdict if sig else None,
                "next_step": summary.next_step,
            }
        ]
    )
