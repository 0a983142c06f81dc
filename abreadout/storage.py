from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Union

import pandas as pd

from .config import RAW_COLUMNS, TIMESTAMP_FORMAT
from .impact import ImpactEstimate
from .records import coerce_visit_records
from .report import ExecutiveSummary

logger = logging.getLogger(__name__)

DEFAULT_DB = Path(__file__).resolve().parent.parent / "abreadout.db"

# the public landing-page dataset ships the arm as "group"
_COLUMN_ALIASES = {"group": "group_name"}


def _get_conn(db_path: Path = DEFAULT_DB) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path = DEFAULT_DB) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with _get_conn(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS ab_test (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              user_id INTEGER NOT NULL,
              timestamp TEXT NOT NULL,
              group_name TEXT NOT NULL,
              landing_page TEXT NOT NULL,
              converted INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_ab_test_user ON ab_test(user_id);

            CREATE TABLE IF NOT EXISTS analysis_runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              name TEXT NOT NULL,
              test_start TEXT,
              test_end TEXT,
              control_users INTEGER NOT NULL,
              treatment_users INTEGER NOT NULL,
              control_rate REAL,
              treatment_rate REAL,
              absolute_lift REAL,
              relative_lift REAL,
              z_score REAL,
              significance_verdict TEXT,
              sample_size_adequate INTEGER,
              monthly_visitors INTEGER NOT NULL,
              revenue_per_conversion REAL NOT NULL,
              incremental_annual_revenue REAL,
              recommendation TEXT,
              created_at TEXT NOT NULL
            );
            """
        )


def load_csv(source: Union[str, Path, IO[Any]]) -> pd.DataFrame:
    """Read raw visits from a delimited file (path or open buffer)."""
    df = pd.read_csv(source)
    df = df.rename(columns={k: v for k, v in _COLUMN_ALIASES.items() if k in df.columns})
    records = coerce_visit_records(df)
    logger.info("Loaded %d visit records", len(records))
    return records


def save_visit_records(df: pd.DataFrame, db_path: Path = DEFAULT_DB, replace: bool = True) -> int:
    """Store raw visits in the ab_test table; returns the number of rows written.

    Insert order is preserved (ids ascend), so reading back keeps the
    tie-break order for equal timestamps.
    """
    init_db(db_path)
    out = coerce_visit_records(df)
    records = [
        (
            int(r.user_id),
            pd.Timestamp(r.timestamp).strftime(TIMESTAMP_FORMAT),
            str(r.group_name),
            str(r.landing_page),
            int(r.converted),
        )
        for r in out.itertuples(index=False)
    ]

    with _get_conn(db_path) as conn:
        if replace:
            conn.execute("DELETE FROM ab_test")
        conn.executemany(
            """
            INSERT INTO ab_test (user_id, timestamp, group_name, landing_page, converted)
            VALUES (?, ?, ?, ?, ?)
            """,
            records,
        )
    logger.info("Stored %d visit records in %s", len(records), db_path)
    return len(records)


def get_visit_records(db_path: Path = DEFAULT_DB) -> pd.DataFrame:
    init_db(db_path)
    with _get_conn(db_path) as conn:
        rows = conn.execute(
            "SELECT user_id, timestamp, group_name, landing_page, converted FROM ab_test ORDER BY id"
        ).fetchall()

    if not rows:
        return coerce_visit_records(pd.DataFrame(columns=list(RAW_COLUMNS)))
    return coerce_visit_records(pd.DataFrame([dict(r) for r in rows]))


def save_analysis_run(
    name: str,
    summary: ExecutiveSummary,
    impact: ImpactEstimate,
    db_path: Path = DEFAULT_DB,
) -> int:
    init_db(db_path)
    now = datetime.now(timezone.utc).isoformat()
    sig = summary.significance

    with _get_conn(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO analysis_runs (
              name, test_start, test_end,
              control_users, treatment_users,
              control_rate, treatment_rate,
              absolute_lift, relative_lift,
              z_score, significance_verdict, sample_size_adequate,
              monthly_visitors, revenue_per_conversion,
              incremental_annual_revenue, recommendation,
              created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                None if summary.test_start is None else summary.test_start.isoformat(),
                None if summary.test_end is None else summary.test_end.isoformat(),
                int(summary.control_users),
                int(summary.treatment_users),
                summary.control_rate,
                summary.treatment_rate,
                summary.absolute_lift,
                summary.relative_lift,
                None if sig is None else sig.z_score,
                None if sig is None else sig.verdict,
                None if sig is None else int(sig.sample_size_adequate),
                int(impact.assumed_monthly_visitors),
                float(impact.assumed_revenue_per_conversion),
                impact.incremental_annual_revenue,
                impact.recommendation,
                now,
            ),
        )
        return int(cur.lastrowid)


def get_analysis_runs(limit: int = 25, db_path: Path = DEFAULT_DB) -> List[Dict[str, Any]]:
    init_db(db_path)
    with _get_conn(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM analysis_runs ORDER BY datetime(created_at) DESC, id DESC LIMIT ?",
            (int(limit),),
        ).fetchall()

    return [dict(r) for r in rows]


def get_analysis_run(run_id: int, db_path: Path = DEFAULT_DB) -> Optional[Dict[str, Any]]:
    init_db(db_path)
    with _get_conn(db_path) as conn:
        row = conn.execute("SELECT * FROM analysis_runs WHERE id = ?", (int(run_id),)).fetchone()
    return None if row is None else dict(row)
