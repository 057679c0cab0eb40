import pytest

from services.result_engine.credits import CreditFallback, CreditMap
from services.result_engine.errors import ValidationError
from services.result_engine.gpa import compute_semester_gpa


def test_weighted_gpa(record, credits):
    result = compute_semester_gpa(record("REG002", {"CS101": "A", "CS102": "B+", "MA101": "O"}), credits)
    # (8*4 + 7*3 + 10*4) / 11
    assert result.gpa == 8.45
    assert result.valid
    assert result.passed
    assert result.credits_counted == 11
    assert result.warnings == []


def test_failing_grade_counts_zero_points_and_marks_arrear(record, credits):
    result = compute_semester_gpa(record("REG003", {"CS101": "U", "CS102": "B", "MA101": "A"}), credits)
    assert result.gpa == 4.55
    assert not result.passed
    assert result.failed_subjects == ["CS101"]
    assert result.arrears == 1


def test_ungraded_subjects_are_skipped(record, credits):
    result = compute_semester_gpa(record("REG005", {"CS101": "O", "CS102": "", "MA101": None}), credits)
    assert result.gpa == 10.0
    assert result.included_subjects == ["CS101"]


def test_missing_credit_excluded_by_default(record, credits):
    result = compute_semester_gpa(record("REG006", {"CS101": "A", "XX999": "O"}), credits)
    assert result.gpa == 8.0
    assert result.included_subjects == ["CS101"]
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.kind == "missing_credit"
    assert warning.subject_code == "XX999"


def test_missing_credit_with_default_policy(record, credits):
    table = credits.with_policy(CreditFallback.DEFAULT, 4)
    result = compute_semester_gpa(record("REG006", {"CS101": "A", "XX999": "O"}), table)
    assert result.gpa == 9.0
    assert result.warnings[0].kind == "missing_credit"


def test_missing_credit_with_zero_policy(record, credits):
    table = credits.with_policy(CreditFallback.ZERO)
    result = compute_semester_gpa(record("REG006", {"CS101": "A", "XX999": "O"}), table)
    assert result.gpa == 8.0
    assert "XX999" in result.included_subjects


def test_no_gradable_subjects_is_invalid_not_error(record):
    result = compute_semester_gpa(record("REG007", {"CS101": "A"}), CreditMap({}))
    assert not result.valid
    assert result.gpa == 0.0
    kinds = [w.kind for w in result.warnings]
    assert kinds == ["missing_credit", "no_gradable_subjects"]


def test_unknown_grade_rejected_at_record_construction(record):
    with pytest.raises(ValidationError) as exc_info:
        record("REG008", {"CS101": "X"})
    assert exc_info.value.subject == "CS101"


def test_missing_registration_number_rejected(record):
    with pytest.raises(ValidationError):
        record("  ", {"CS101": "A"})
