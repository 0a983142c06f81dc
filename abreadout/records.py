from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable

import pandas as pd

from .config import RAW_COLUMNS


@dataclass(frozen=True)
class VisitRecord:
    user_id: int
    timestamp: datetime
    group_name: str
    landing_page: str
    converted: bool


def records_to_frame(records: Iterable[VisitRecord]) -> pd.DataFrame:
    """Build a raw visit table from VisitRecord objects, keeping input order."""
    rows = [asdict(r) for r in records]
    if not rows:
        return coerce_visit_records(pd.DataFrame(columns=list(RAW_COLUMNS)))
    return coerce_visit_records(pd.DataFrame(rows))


def coerce_visit_records(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of a raw visit table with normalised dtypes.

    - user_id as int64
    - timestamp parsed to naive datetime64; offset-aware values are
      converted to UTC first
    - group_name / landing_page as stripped strings
    - converted as bool (accepts 0/1)

    Row order is preserved; it is the tie-break for equal timestamps.
    """
    missing = [c for c in RAW_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Visit records are missing columns: {', '.join(missing)}")

    out = df.loc[:, list(RAW_COLUMNS)].copy()
    out["user_id"] = out["user_id"].astype("int64")
    out["timestamp"] = pd.to_datetime(out["timestamp"], utc=True).dt.tz_convert(None).astype("datetime64[ns]")
    out["group_name"] = out["group_name"].astype(str).str.strip()
    out["landing_page"] = out["landing_page"].astype(str).str.strip()
    out["converted"] = out["converted"].astype(int).astype(bool)
    return out.reset_index(drop=True)
