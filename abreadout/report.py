from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

import pandas as pd

from .aggregation import (
    GroupAggregate,
    absolute_lift,
    daily_trend,
    overall_aggregates,
    relative_lift,
    weekly_trend,
)
from .cleaning import CleaningSummary, clean_visits, summarize_cleaning
from .config import CONTROL, DEFAULT_MONTHLY_VISITORS, DEFAULT_REVENUE_PER_CONVERSION, TREATMENT
from .impact import ImpactEstimate, RecommendationPolicy, estimate_impact, validate_assumptions
from .statistics import SignificanceResult, z_test_proportions
from .validation import DataQualityReport, run_diagnostics

logger = logging.getLogger(__name__)

NEXT_STEP = "See the significance detail for the full z-test and sample-size check"


@dataclass(frozen=True)
class ExecutiveSummary:
    test_start: Optional[date]
    test_end: Optional[date]
    test_duration_days: Optional[int]
    control_users: int
    treatment_users: int
    control_conversions: int
    treatment_conversions: int
    control_rate: Optional[float]
    treatment_rate: Optional[float]
    absolute_lift: Optional[float]
    relative_lift: Optional[float]
    summary_finding: str
    significance: Optional[SignificanceResult]
    next_step: str = NEXT_STEP


@dataclass(frozen=True)
class AnalysisReport:
    diagnostics: DataQualityReport
    cleaning: CleaningSummary
    clean: pd.DataFrame
    overall: Dict[str, GroupAggregate]
    significance: Optional[SignificanceResult]
    daily: pd.DataFrame
    weekly: pd.DataFrame
    impact: ImpactEstimate
    summary: ExecutiveSummary


def summary_finding(control_rate: Optional[float], treatment_rate: Optional[float]) -> str:
    if control_rate is None or treatment_rate is None:
        return "Insufficient data: at least one group has no users"
    if treatment_rate > control_rate:
        return "Treatment page converts better"
    if treatment_rate < control_rate:
        return "Control page converts better"
    return "No measurable difference"


def build_executive_summary(
    clean: pd.DataFrame,
    overall: Dict[str, GroupAggregate],
    significance: Optional[SignificanceResult],
) -> ExecutiveSummary:
    ctrl, trt = overall[CONTROL], overall[TREATMENT]

    if clean.empty:
        start = end = None
        duration = None
    else:
        dates = pd.to_datetime(clean["timestamp"]).dt.date
        start, end = dates.min(), dates.max()
        duration = (end - start).days + 1

    return ExecutiveSummary(
        test_start=start,
        test_end=end,
        test_duration_days=duration,
        control_users=ctrl.sample_size,
        treatment_users=trt.sample_size,
        control_conversions=ctrl.conversions,
        treatment_conversions=trt.conversions,
        control_rate=ctrl.rate,
        treatment_rate=trt.rate,
        absolute_lift=absolute_lift(ctrl.rate, trt.rate),
        relative_lift=relative_lift(ctrl.rate, trt.rate),
        summary_finding=summary_finding(ctrl.rate, trt.rate),
        significance=significance,
    )


def run_analysis(
    raw: pd.DataFrame,
    monthly_visitors: int = DEFAULT_MONTHLY_VISITORS,
    revenue_per_conversion: float = DEFAULT_REVENUE_PER_CONVERSION,
    policy: Optional[RecommendationPolicy] = None,
) -> AnalysisReport:
    """Validate, clean, aggregate, test and price one experiment.

    Data-quality problems are reported on ``diagnostics`` and ``cleaning``
    rather than raised; bad assumptions raise ConfigurationError before any
    work is done.
    """
    validate_assumptions(monthly_visitors, revenue_per_conversion)
    policy = policy or RecommendationPolicy()

    diagnostics = run_diagnostics(raw)
    # drop counts are kept on the report instead of a warning
    clean = clean_visits(raw, warn=False)
    cleaning = summarize_cleaning(raw, clean)

    overall = overall_aggregates(clean)
    ctrl, trt = overall[CONTROL], overall[TREATMENT]
    significance = z_test_proportions(ctrl, trt)
    impact = estimate_impact(ctrl.rate, trt.rate, monthly_visitors, revenue_per_conversion, policy)

    report = AnalysisReport(
        diagnostics=diagnostics,
        cleaning=cleaning,
        clean=clean,
        overall=overall,
        significance=significance,
        daily=daily_trend(clean),
        weekly=weekly_trend(clean),
        impact=impact,
        summary=build_executive_summary(clean, overall, significance),
    )
    logger.info(
        "Analysis complete: %s (%s); recommendation: %s",
        report.summary.summary_finding,
        significance.verdict if significance else "no z-test",
        impact.recommendation,
    )
    return report
