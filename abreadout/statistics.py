from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .aggregation import GroupAggregate
from .config import MIN_EXPECTED_COUNT, Z_CRITICAL_VALUES

logger = logging.getLogger(__name__)

NOT_SIGNIFICANT = "not significant"

NORMAL_APPROXIMATION_NOTE = (
    "Pooled two-proportion z-test (normal approximation). Significance is read "
    "from fixed critical values (1.645 / 1.960 / 2.576), not an exact p-value; "
    "trust it only when the sample-size check passes."
)


@dataclass(frozen=True)
class SignificanceResult:
    control: GroupAggregate
    treatment: GroupAggregate
    p_pool: float
    std_error: float
    z_score: Optional[float]
    verdict: str
    sample_size_adequate: bool
    method_note: str = NORMAL_APPROXIMATION_NOTE

    @property
    def is_significant(self) -> bool:
        return self.verdict != NOT_SIGNIFICANT

    @property
    def warning(self) -> Optional[str]:
        if self.is_significant and not self.sample_size_adequate:
            return (
                f"Result reads as {self.verdict}, but n*p or n*(1-p) is below "
                f"{MIN_EXPECTED_COUNT} in at least one group; the z-test is unreliable here."
            )
        return None


def significance_verdict(z_score: Optional[float]) -> str:
    """Map |z| onto the 99/95/90% buckets; a value on a boundary takes the higher bucket."""
    if z_score is None:
        return NOT_SIGNIFICANT
    for confidence, critical in Z_CRITICAL_VALUES:
        if abs(z_score) >= critical:
            return f"significant at {confidence:.0%}"
    return NOT_SIGNIFICANT


def sample_size_adequate(control: GroupAggregate, treatment: GroupAggregate) -> bool:
    """n*p >= 5 and n*(1-p) >= 5 in both groups (n*p is just the conversion count)."""
    return all(
        g.conversions >= MIN_EXPECTED_COUNT
        and g.sample_size - g.conversions >= MIN_EXPECTED_COUNT
        for g in (control, treatment)
    )


def z_test_proportions(control: GroupAggregate, treatment: GroupAggregate) -> Optional[SignificanceResult]:
    """Two-proportion z-test with pooled standard error.

    Returns None if either group is empty. z_score is None when the
    standard error is zero (both groups at 0% or both at 100%), which
    reads as not significant.
    """
    if control.sample_size <= 0 or treatment.sample_size <= 0:
        logger.warning(
            "Cannot run z-test: %s has %d users, %s has %d users",
            control.group_name,
            control.sample_size,
            treatment.group_name,
            treatment.sample_size,
        )
        return None

    n1, n2 = control.sample_size, treatment.sample_size
    p1 = control.conversions / n1
    p2 = treatment.conversions / n2

    pooled_p = (control.conversions + treatment.conversions) / (n1 + n2)
    se_pooled = math.sqrt(pooled_p * (1 - pooled_p) * (1 / n1 + 1 / n2))

    z_score = None if se_pooled == 0 else (p2 - p1) / se_pooled
    adequate = sample_size_adequate(control, treatment)

    result = SignificanceResult(
        control=control,
        treatment=treatment,
        p_pool=pooled_p,
        std_error=se_pooled,
        z_score=z_score,
        verdict=significance_verdict(z_score),
        sample_size_adequate=adequate,
    )
    if result.warning:
        logger.warning(result.warning)
    return result
