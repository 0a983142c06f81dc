"""Test statistics: pooled two-proportion z-test and verdicts."""
from __future__ import annotations

import pytest

from abreadout.aggregation import GroupAggregate
from abreadout.statistics import (
    NOT_SIGNIFICANT,
    sample_size_adequate,
    significance_verdict,
    z_test_proportions,
)


def _agg(group, n, x):
    return GroupAggregate.from_counts(group, n, x)


# ===================================================================
# z-test
# ===================================================================

class TestZTestProportions:

    def test_known_values_two_thousand_per_group(self):
        res = z_test_proportions(_agg("control", 2000, 200), _agg("treatment", 2000, 240))
        assert res.p_pool == pytest.approx(0.11)
        assert res.std_error == pytest.approx(0.00990, abs=1e-4)
        assert res.z_score == pytest.approx(2.02, abs=0.01)
        assert res.verdict == "significant at 95%"
        assert res.sample_size_adequate
        assert res.warning is None

    def test_known_values_one_thousand_per_group(self):
        res = z_test_proportions(_agg("control", 1000, 100), _agg("treatment", 1000, 120))
        assert res.p_pool == pytest.approx(0.11)
        assert res.std_error == pytest.approx(0.013993, abs=1e-5)
        assert res.z_score == pytest.approx(1.429, abs=0.001)
        assert res.verdict == NOT_SIGNIFICANT

    def test_swapping_labels_flips_sign(self):
        a, b = _agg("control", 1500, 180), _agg("treatment", 1400, 210)
        forward = z_test_proportions(a, b)
        backward = z_test_proportions(b, a)
        assert backward.z_score == -forward.z_score
        assert backward.std_error == forward.std_error
        assert backward.verdict == forward.verdict

    def test_equal_rates_give_zero(self):
        res = z_test_proportions(_agg("control", 500, 50), _agg("treatment", 500, 50))
        assert res.z_score == 0
        assert res.verdict == NOT_SIGNIFICANT

    def test_zero_standard_error_gives_no_z(self):
        res = z_test_proportions(_agg("control", 100, 0), _agg("treatment", 80, 0))
        assert res.std_error == 0
        assert res.z_score is None
        assert res.verdict == NOT_SIGNIFICANT
        assert not res.sample_size_adequate

    def test_empty_group_gives_no_result(self):
        assert z_test_proportions(_agg("control", 0, 0), _agg("treatment", 100, 10)) is None
        assert z_test_proportions(_agg("control", 100, 10), _agg("treatment", 0, 0)) is None

    def test_method_note_documents_approximation(self):
        res = z_test_proportions(_agg("control", 100, 10), _agg("treatment", 100, 20))
        assert "normal approximation" in res.method_note


# ===================================================================
# Verdict buckets
# ===================================================================

class TestSignificanceVerdict:

    @pytest.mark.parametrize("z, expected", [
        (0.0, "not significant"),
        (1.644, "not significant"),
        (1.645, "significant at 90%"),
        (1.959, "significant at 90%"),
        (1.960, "significant at 95%"),
        (2.575, "significant at 95%"),
        (2.576, "significant at 99%"),
        (-2.576, "significant at 99%"),
        (-1.7, "significant at 90%"),
        (None, "not significant"),
    ])
    def test_buckets(self, z, expected):
        assert significance_verdict(z) == expected

    def test_monotone_in_abs_z(self):
        rank = {
            "not significant": 0,
            "significant at 90%": 1,
            "significant at 95%": 2,
            "significant at 99%": 3,
        }
        zs = [i / 100 for i in range(0, 400)]
        ranks = [rank[significance_verdict(z)] for z in zs]
        assert ranks == sorted(ranks)


# ===================================================================
# Sample-size adequacy
# ===================================================================

class TestSampleSizeAdequate:

    def test_passes_with_enough_successes_and_failures(self):
        assert sample_size_adequate(_agg("control", 100, 5), _agg("treatment", 100, 95))

    def test_fails_on_too_few_conversions(self):
        assert not sample_size_adequate(_agg("control", 100, 4), _agg("treatment", 100, 50))

    def test_fails_on_too_few_non_conversions(self):
        assert not sample_size_adequate(_agg("control", 100, 50), _agg("treatment", 100, 96))

    def test_significant_but_inadequate_sample_warns(self):
        res = z_test_proportions(_agg("control", 40, 0), _agg("treatment", 40, 8))
        assert res.is_significant
        assert not res.sample_size_adequate
        assert res.warning is not None
        assert res.verdict in res.warning
