"""Shared fixtures for the readout tests."""
from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd
import pytest

from abreadout.records import VisitRecord, records_to_frame

START = datetime(2024, 1, 1, 9, 0)  # a Monday, ISO week 1 of 2024


def build_arm(group: str, page: str, n: int, conversions: int, first_user: int, start: datetime = START,
              days: int = 1) -> list:
    """n visits for one arm, the first `conversions` of them converted, spread over `days` days."""
    return [
        VisitRecord(
            user_id=first_user + i,
            timestamp=start + timedelta(days=i % days, minutes=i),
            group_name=group,
            landing_page=page,
            converted=i < conversions,
        )
        for i in range(n)
    ]


@pytest.fixture
def make_visits():
    """Factory: make_visits([(user_id, "2024-01-01 09:00", group, page, converted), ...])."""
    def _make(rows):
        return records_to_frame(
            VisitRecord(
                user_id=user_id,
                timestamp=pd.Timestamp(ts).to_pydatetime(),
                group_name=group,
                landing_page=page,
                converted=bool(converted),
            )
            for user_id, ts, group, page, converted in rows
        )
    return _make


@pytest.fixture
def scenario_frame():
    """Factory for clean two-arm experiments with exact counts."""
    def _make(control_n, control_x, treatment_n, treatment_x, days=1):
        records = build_arm("control", "old_page", control_n, control_x, 1, days=days)
        records += build_arm("treatment", "new_page", treatment_n, treatment_x, 1_000_000, days=days)
        return records_to_frame(records)
    return _make


@pytest.fixture
def dirty_visits(make_visits):
    """Small raw table with every kind of data-quality problem."""
    return make_visits([
        (1, "2024-01-01 09:00", "control", "old_page", 0),
        (2, "2024-01-01 09:05", "treatment", "new_page", 1),
        (3, "2024-01-01 09:10", "control", "new_page", 0),      # mismatched
        (4, "2024-01-01 09:15", "treatment", "old_page", 1),    # mismatched
        (5, "2024-01-02 10:00", "control", "old_page", 1),
        (5, "2024-01-03 10:00", "treatment", "new_page", 0),    # cross-group, later
        (6, "2024-01-02 11:00", "treatment", "new_page", 0),
        (6, "2024-01-02 08:00", "treatment", "new_page", 1),    # duplicate, earlier
        (6, "2024-01-04 08:00", "treatment", "new_page", 0),    # duplicate, later
        (7, "2024-01-08 12:00", "control", "old_page", 1),
    ])
