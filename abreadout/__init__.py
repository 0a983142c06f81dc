"""Landing-page A/B test readout: diagnostics, cleaning, z-test and revenue impact."""

from .aggregation import GroupAggregate, daily_trend, overall_aggregates, weekly_trend
from .cleaning import CleaningSummary, clean_visits, summarize_cleaning
from .data_generator import export_to_csv, generate_visit_records
from .errors import ConfigurationError, DataQualityWarning
from .impact import ImpactEstimate, RecommendationPolicy, estimate_impact
from .records import VisitRecord, coerce_visit_records, records_to_frame
from .report import AnalysisReport, ExecutiveSummary, build_executive_summary, run_analysis
from .statistics import SignificanceResult, significance_verdict, z_test_proportions
from .validation import (
    DataQualityReport,
    cross_group_users,
    duplicate_within_group,
    group_balance,
    mismatched_assignments,
    run_diagnostics,
)
