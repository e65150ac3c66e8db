"""Tests for grade_policy.py: weighted final grade, rounding, remarks, missing components."""

import pytest

from sis_portal.core.exceptions import ValidationError
from sis_portal.utils.grade_policy import (
    MissingComponentPolicy,
    compute,
    compute_final_grade,
    remarks_for,
)


class TestFinalGrade:
    def test_weighted_average(self):
        assert compute_final_grade(80, 90, 100) == 91.0

    def test_rounds_half_up(self):
        # 0.3*1.0 + 0.3*1.25 + 0.4*1.5 = 1.275
        assert compute_final_grade(1.0, 1.25, 1.5) == 1.28

    def test_two_decimal_places(self):
        assert compute_final_grade(1.1, 1.2, 1.3) == 1.21

    def test_all_missing_is_pending(self):
        for policy in MissingComponentPolicy:
            assert compute_final_grade(None, None, None, policy) is None

    def test_zero_policy_counts_missing_as_zero(self):
        assert compute_final_grade(2.0, None, 3.0, MissingComponentPolicy.ZERO) == 1.8

    def test_block_policy_leaves_grade_pending(self):
        assert compute_final_grade(2.0, None, 3.0, MissingComponentPolicy.BLOCK) is None

    def test_block_policy_with_all_components(self):
        assert compute_final_grade(2.0, 2.0, 2.0, MissingComponentPolicy.BLOCK) == 2.0

    @pytest.mark.parametrize("bad", [-0.01, 100.01, 250])
    def test_out_of_range_component_rejected(self, bad):
        with pytest.raises(ValidationError):
            compute_final_grade(bad, 50, 50)

    def test_boundaries_accepted(self):
        assert compute_final_grade(0, 0, 0) == 0.0
        assert compute_final_grade(100, 100, 100) == 100.0


class TestRemarks:
    def test_low_grade_passes(self):
        assert remarks_for(1.0) == "Passed"

    def test_threshold_passes(self):
        assert remarks_for(3.0) == "Passed"

    def test_above_threshold_fails(self):
        assert remarks_for(3.01) == "Failed"
        assert remarks_for(5.0) == "Failed"

    def test_pending_has_no_remarks(self):
        assert remarks_for(None) is None

    def test_compute_returns_grade_and_remarks(self):
        result = compute(1.0, 1.25, 1.5)
        assert result.final_grade == 1.28
        assert result.remarks == "Passed"

        failing = compute(5, 5, 5)
        assert failing.final_grade == 5.0
        assert failing.remarks == "Failed"

    def test_compute_pending(self):
        result = compute(None, None, None)
        assert result.final_grade is None
        assert result.remarks is None
