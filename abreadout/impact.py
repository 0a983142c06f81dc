"""Translate an observed lift into monthly and annual revenue.

Assumptions (edit to match your business context) default to
1,000,000 monthly visitors and $50 per conversion. The ship/no-ship
bands are policy, not statistics: they live on RecommendationPolicy so
a team can set its own thresholds.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .aggregation import absolute_lift
from .config import (
    BORDERLINE_LIFT_THRESHOLD,
    DEFAULT_MONTHLY_VISITORS,
    DEFAULT_REVENUE_PER_CONVERSION,
    MONEY_DECIMALS,
    PROPORTION_DECIMALS,
    SHIP_LIFT_THRESHOLD,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SHIP = "ship, meaningful lift"
BORDERLINE = "borderline, weigh cost/benefit"
TOO_SMALL = "do not ship, lift too small"
UNDERPERFORMS = "do not ship, underperforms"


@dataclass(frozen=True)
class RecommendationPolicy:
    ship_threshold: float = SHIP_LIFT_THRESHOLD
    borderline_threshold: float = BORDERLINE_LIFT_THRESHOLD

    def __post_init__(self) -> None:
        if not (math.isfinite(self.ship_threshold) and math.isfinite(self.borderline_threshold)):
            raise ConfigurationError("Recommendation thresholds must be finite numbers")
        if self.borderline_threshold < 0:
            raise ConfigurationError("borderline_threshold must be >= 0")
        if self.ship_threshold < self.borderline_threshold:
            raise ConfigurationError("ship_threshold must be >= borderline_threshold")

    def recommend(self, lift: Optional[float]) -> Optional[str]:
        """Step function of the absolute lift (treatment - control).

        The lift is rounded to PROPORTION_DECIMALS first, so a difference of
        two rates that lands on a threshold up to float error counts as on it.
        """
        if lift is None:
            return None
        lift = round(lift, PROPORTION_DECIMALS)
        if lift > self.ship_threshold:
            return SHIP
        if lift > self.borderline_threshold:
            return BORDERLINE
        if lift > 0:
            return TOO_SMALL
        return UNDERPERFORMS


@dataclass(frozen=True)
class ImpactEstimate:
    control_rate: Optional[float]
    treatment_rate: Optional[float]
    absolute_lift: Optional[float]
    assumed_monthly_visitors: int
    assumed_revenue_per_conversion: float
    incremental_monthly_conversions: Optional[int]
    incremental_monthly_revenue: Optional[float]
    incremental_annual_revenue: Optional[float]
    recommendation: Optional[str]


def round_half_up(value: float, places: int = 0) -> Decimal:
    return Decimal(str(float(value))).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def validate_assumptions(monthly_visitors: float, revenue_per_conversion: float) -> None:
    for name, value in (
        ("monthly_visitors", monthly_visitors),
        ("revenue_per_conversion", revenue_per_conversion),
    ):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConfigurationError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value) or value < 0:
            raise ConfigurationError(f"{name} must be a finite number >= 0, got {value!r}")


def estimate_impact(
    control_rate: Optional[float],
    treatment_rate: Optional[float],
    monthly_visitors: int = DEFAULT_MONTHLY_VISITORS,
    revenue_per_conversion: float = DEFAULT_REVENUE_PER_CONVERSION,
    policy: Optional[RecommendationPolicy] = None,
) -> ImpactEstimate:
    """Project the lift onto assumed traffic and revenue.

    Incremental conversions are rounded half away from zero to whole
    users; revenue is that count times revenue_per_conversion, and the
    annual figure is exactly twelve times the monthly one. If either rate
    is undefined every derived field is None.
    """
    validate_assumptions(monthly_visitors, revenue_per_conversion)
    policy = policy or RecommendationPolicy()

    lift = absolute_lift(control_rate, treatment_rate)
    if lift is None:
        logger.warning("Impact not estimated: a group has no conversion rate")
        conversions = monthly_revenue = annual_revenue = None
    else:
        lift = round(lift, PROPORTION_DECIMALS)
        conversions = int(round_half_up(lift * monthly_visitors))
        monthly_revenue = float(round_half_up(conversions * revenue_per_conversion, MONEY_DECIMALS))
        annual_revenue = monthly_revenue * 12

    return ImpactEstimate(
        control_rate=control_rate,
        treatment_rate=treatment_rate,
        absolute_lift=lift,
        assumed_monthly_visitors=monthly_visitors,
        assumed_revenue_per_conversion=revenue_per_conversion,
        incremental_monthly_conversions=conversions,
        incremental_monthly_revenue=monthly_revenue,
        incremental_annual_revenue=annual_revenue,
        recommendation=policy.recommend(lift),
    )
