"""Default settings for the landing-page experiment readout."""

from __future__ import annotations

# Experiment arms and the page each arm is supposed to see
CONTROL = "control"
TREATMENT = "treatment"
OLD_PAGE = "old_page"
NEW_PAGE = "new_page"

GROUPS = (CONTROL, TREATMENT)
CANONICAL_PAGE = {CONTROL: OLD_PAGE, TREATMENT: NEW_PAGE}

RAW_COLUMNS = ("user_id", "timestamp", "group_name", "landing_page", "converted")
CLEAN_COLUMNS = ("user_id", "group_name", "converted", "timestamp")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

# Two-sided critical values, highest confidence first
Z_CRITICAL_VALUES = (
    (0.99, 2.576),
    (0.95, 1.960),
    (0.90, 1.645),
)
MIN_EXPECTED_COUNT = 5  # n*p and n*(1-p) rule of thumb for the normal approximation

# Business assumptions (edit to match your context)
DEFAULT_MONTHLY_VISITORS = 1_000_000
DEFAULT_REVENUE_PER_CONVERSION = 50.0
SHIP_LIFT_THRESHOLD = 0.005
BORDERLINE_LIFT_THRESHOLD = 0.001

# Output precision
PCT_DECIMALS = 4
PROPORTION_DECIMALS = 8
LIFT_DECIMALS = 6
RELATIVE_LIFT_DECIMALS = 2
MONEY_DECIMALS = 2
