from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd

from .config import CANONICAL_PAGE, CONTROL, NEW_PAGE, OLD_PAGE, RAW_COLUMNS, TIMESTAMP_FORMAT, TREATMENT
from .records import coerce_visit_records


def generate_visit_records(
    control_rate: float,
    treatment_rate: float,
    users_per_group: int,
    duration_days: int = 21,
    mismatch_rate: float = 0.01,
    duplicate_rate: float = 0.01,
    start_date: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate synthetic raw landing-page visits, dirt included.

    - Creates `users_per_group` users in control and in treatment, spread
      over a `duration_days` window (random day/hour/minute).
    - Roughly `mismatch_rate` of visits are shown the other arm's page.
    - Roughly `duplicate_rate` of users get a second, later visit; half of
      those are recorded in the other arm (cross-group contamination).

    Returns a DataFrame with columns:
      user_id, timestamp, group_name, landing_page, converted
    ordered by timestamp.
    """
    if start_date is None:
        start_date = datetime.now()

    for name, value in (
        ("control_rate", control_rate),
        ("treatment_rate", treatment_rate),
        ("mismatch_rate", mismatch_rate),
        ("duplicate_rate", duplicate_rate),
    ):
        if not (0 <= value <= 1):
            raise ValueError(f"{name} must be between 0 and 1")
    if users_per_group <= 0:
        raise ValueError("users_per_group must be > 0")
    if duration_days <= 0:
        raise ValueError("duration_days must be > 0")

    rng = random.Random(seed)
    start = start_date.replace(second=0, microsecond=0)
    other_page = {CONTROL: NEW_PAGE, TREATMENT: OLD_PAGE}
    other_group = {CONTROL: TREATMENT, TREATMENT: CONTROL}

    def visit(user_id: int, group: str, ts: datetime) -> dict:
        page = other_page[group] if rng.random() < mismatch_rate else CANONICAL_PAGE[group]
        rate = control_rate if group == CONTROL else treatment_rate
        return {
            "user_id": user_id,
            "timestamp": ts,
            "group_name": group,
            "landing_page": page,
            "converted": rng.random() < rate,
        }

    rows: list[dict] = []
    for i in range(users_per_group * 2):
        group = CONTROL if i < users_per_group else TREATMENT
        ts = start + timedelta(
            days=rng.randrange(duration_days),
            hours=rng.randrange(24),
            minutes=rng.randrange(60),
        )
        user_id = 600_000 + i
        rows.append(visit(user_id, group, ts))

        if rng.random() < duplicate_rate:
            repeat_group = other_group[group] if rng.random() < 0.5 else group
            rows.append(visit(user_id, repeat_group, ts + timedelta(minutes=rng.randrange(1, 60 * 24))))

    df = pd.DataFrame(rows, columns=list(RAW_COLUMNS))
    df = df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)
    return coerce_visit_records(df)


def export_to_csv(df: pd.DataFrame) -> str:
    """Export raw visits to CSV text (converted as 0/1, ISO timestamps)."""
    out = coerce_visit_records(df)
    out["converted"] = out["converted"].astype(int)
    out["timestamp"] = out["timestamp"].dt.strftime(TIMESTAMP_FORMAT)
    return out[list(RAW_COLUMNS)].to_csv(index=False)
