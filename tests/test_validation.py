"""Test validation: read-only data-quality diagnostics."""
from __future__ import annotations

import pandas as pd

from abreadout.validation import (
    cross_group_users,
    duplicate_within_group,
    group_balance,
    mismatch_mask,
    mismatched_assignments,
    run_diagnostics,
)


# ===================================================================
# Group balance
# ===================================================================

class TestGroupBalance:

    def test_one_row_per_group_page_combination(self, dirty_visits):
        out = group_balance(dirty_visits)
        keys = list(zip(out["group_name"], out["landing_page"]))
        assert keys == [
            ("control", "new_page"),
            ("control", "old_page"),
            ("treatment", "new_page"),
            ("treatment", "old_page"),
        ]

    def test_counts_and_rates(self, dirty_visits):
        out = group_balance(dirty_visits).set_index(["group_name", "landing_page"])
        row = out.loc[("control", "old_page")]
        assert row["total_users"] == 3
        assert row["total_conversions"] == 2
        assert abs(row["conversion_rate"] - 2 / 3) < 1e-12
        assert out.loc[("treatment", "new_page"), "total_users"] == 5

    def test_totals_cover_every_record(self, dirty_visits):
        assert group_balance(dirty_visits)["total_users"].sum() == len(dirty_visits)


# ===================================================================
# Mismatched assignments
# ===================================================================

class TestMismatchedAssignments:

    def test_counts_per_mismatch_type(self, dirty_visits):
        out = mismatched_assignments(dirty_visits)
        assert list(out["group_name"]) == ["control", "treatment"]
        assert list(out["landing_page"]) == ["new_page", "old_page"]
        assert list(out["mismatched_count"]) == [1, 1]

    def test_mask_flags_unknown_groups(self, make_visits):
        df = make_visits([
            (1, "2024-01-01", "control", "old_page", 0),
            (2, "2024-01-01", "holdout", "old_page", 0),
        ])
        assert list(mismatch_mask(df)) == [False, True]

    def test_clean_input_has_no_rows(self, scenario_frame):
        out = mismatched_assignments(scenario_frame(10, 1, 10, 2))
        assert out.empty
        assert list(out.columns) == ["group_name", "landing_page", "mismatched_count"]


# ===================================================================
# Cross-group users
# ===================================================================

class TestCrossGroupUsers:

    def test_reports_user_in_both_groups(self, dirty_visits):
        out = cross_group_users(dirty_visits)
        assert list(out["user_id"]) == [5]
        assert out.iloc[0]["group_count"] == 2
        assert out.iloc[0]["groups_seen"] == "control, treatment"

    def test_groups_seen_in_first_seen_order(self, make_visits):
        df = make_visits([
            (9, "2024-01-01", "treatment", "new_page", 0),
            (9, "2024-01-02", "control", "old_page", 0),
            (9, "2024-01-03", "treatment", "new_page", 0),
        ])
        out = cross_group_users(df)
        assert out.iloc[0]["groups_seen"] == "treatment, control"
        assert out.iloc[0]["group_count"] == 2

    def test_duplicates_in_one_group_are_not_cross_group(self, make_visits):
        df = make_visits([
            (1, "2024-01-01", "control", "old_page", 0),
            (1, "2024-01-02", "control", "old_page", 1),
        ])
        assert cross_group_users(df).empty


# ===================================================================
# Within-group duplicates
# ===================================================================

class TestDuplicateWithinGroup:

    def test_reports_repeated_user_group_pairs(self, dirty_visits):
        out = duplicate_within_group(dirty_visits)
        assert list(out["user_id"]) == [6]
        assert list(out["appearances"]) == [3]

    def test_ordered_by_appearances_descending(self, make_visits):
        df = make_visits([
            (1, "2024-01-01", "control", "old_page", 0),
            (1, "2024-01-02", "control", "old_page", 0),
            (2, "2024-01-01", "treatment", "new_page", 0),
            (2, "2024-01-02", "treatment", "new_page", 0),
            (2, "2024-01-03", "treatment", "new_page", 0),
        ])
        out = duplicate_within_group(df)
        assert list(out["user_id"]) == [2, 1]
        assert list(out["appearances"]) == [3, 2]


# ===================================================================
# Diagnostics bundle
# ===================================================================

class TestRunDiagnostics:

    def test_headline_counts(self, dirty_visits):
        report = run_diagnostics(dirty_visits)
        assert report.total_records == 10
        assert report.mismatched_total == 2
        assert report.cross_group_user_count == 1
        assert report.duplicated_user_count == 1
        assert not report.is_clean

    def test_clean_input(self, scenario_frame):
        assert run_diagnostics(scenario_frame(20, 2, 20, 3)).is_clean

    def test_does_not_mutate_input(self, dirty_visits):
        before = dirty_visits.copy()
        run_diagnostics(dirty_visits)
        pd.testing.assert_frame_equal(dirty_visits, before)
