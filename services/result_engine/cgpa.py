"""
services/result_engine/cgpa.py

- CGPA = plain mean of the semester GPAs that are > 0
  (semesters with no gradable subjects are skipped, not averaged as 0)
- Status bands use inclusive lower bounds: 9.0 → Excellent, 8.999 → Very Good
- semester_trend(): per-sheet average GPA and pass % for the comprehensive view
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple

from services.result_engine.credits import CreditMap
from services.result_engine.errors import EmptyInputError, ValidationError
from services.result_engine.gpa import compute_semester_gpa
from services.result_engine.grades import DEFAULT_GRADE_TABLE, GradeTable, round_half_up
from services.result_engine.ranking import rank_by_cgpa
from services.result_engine.records import (
    CgpaSummary,
    SemesterRecord,
    SemesterTrend,
    StudentAggregate,
    StudentSemesters,
)

logger = logging.getLogger(__name__)


class StatusLabel(str, Enum):
    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    AVERAGE = "Average"
    BELOW_AVERAGE = "Below Average"
    POOR = "Poor"


STATUS_BANDS: Tuple[Tuple[float, StatusLabel], ...] = (
    (9.0, StatusLabel.EXCELLENT),
    (8.0, StatusLabel.VERY_GOOD),
    (7.0, StatusLabel.GOOD),
    (6.0, StatusLabel.AVERAGE),
    (5.0, StatusLabel.BELOW_AVERAGE),
)


def classify_status(value: float) -> StatusLabel:
    for lower, label in STATUS_BANDS:
        if value >= lower:
            return label
    return StatusLabel.POOR


def aggregate_cgpa(gpas: Iterable[float]) -> Tuple[float, StatusLabel]:
    valid = [g for g in gpas if g > 0]
    if not valid:
        return 0.0, StatusLabel.POOR
    cgpa = round_half_up(sum(valid) / len(valid))
    return cgpa, classify_status(cgpa)


def group_by_student(records: Iterable[SemesterRecord]) -> List[StudentSemesters]:
    """
    Sheets → per-student semester lists
    - grouped by registration number, first non-empty name wins
    - semesters ordered by (year, semester); students by registration number
    """
    grouped: Dict[str, dict] = {}
    for record in records:
        entry = grouped.setdefault(record.registration_number, {
            "registration_number": record.registration_number,
            "name": "",
            "batch": record.batch,
            "department": record.department,
            "semesters": [],
        })
        if not entry["name"] and record.name:
            entry["name"] = record.name
        entry["semesters"].append(record)

    students = []
    for reg_no in sorted(grouped):
        entry = grouped[reg_no]
        entry["semesters"].sort(key=lambda r: (r.year_number, r.semester_number))
        students.append(StudentSemesters(**entry))
    return students


def _aggregate_student(
    student: StudentSemesters,
    credits: CreditMap,
    grade_table: GradeTable,
) -> StudentAggregate:
    ordered = sorted(student.semesters, key=lambda r: (r.year_number, r.semester_number))
    semester_gpas = []
    for record in ordered:
        if record.registration_number != student.registration_number:
            raise ValidationError(
                f"Semester record for {record.registration_number} filed under "
                f"{student.registration_number}",
                field="registration_number",
            )
        semester_gpas.append(compute_semester_gpa(record, credits, grade_table))

    cgpa, status = aggregate_cgpa(s.gpa for s in semester_gpas)
    return StudentAggregate(
        registration_number=student.registration_number,
        name=student.name or "Unknown",
        batch=student.batch,
        department=student.department,
        semesters=semester_gpas,
        overall_cgpa=cgpa,
        status=status.value,
        total_semesters=len(semester_gpas),
        valid_semesters=sum(1 for s in semester_gpas if s.gpa > 0),
        total_arrears=sum(s.arrears for s in semester_gpas),
        warnings=[w for s in semester_gpas for w in s.warnings],
    )


def compute_cgpa_for_batch(
    students: Iterable[StudentSemesters],
    credits: CreditMap,
    grade_table: GradeTable = DEFAULT_GRADE_TABLE,
) -> List[StudentAggregate]:
    """Per-student CGPA, ranked by CGPA (desc) with registration-number tie-break."""
    students = list(students)
    if not students:
        raise EmptyInputError("No students supplied for CGPA analysis")

    aggregates = [_aggregate_student(s, credits, grade_table) for s in students]
    ranked = rank_by_cgpa(aggregates)
    logger.info(f"CGPA computed for {len(ranked)} students")
    return ranked


def semester_trend(
    records: Iterable[SemesterRecord],
    credits: CreditMap,
    grade_table: GradeTable = DEFAULT_GRADE_TABLE,
) -> List[SemesterTrend]:
    """
    Semester-wise cohort trend, ordered by (year, semester)
    - average_gpa     : mean of the GPAs > 0 (same rule as the CGPA)
    - pass_percentage : students with no failing subject in that semester
    """
    by_semester: Dict[Tuple[int, int], List[SemesterRecord]] = {}
    for record in records:
        by_semester.setdefault((record.year_number, record.semester_number), []).append(record)

    trend = []
    for (year, semester), group in sorted(by_semester.items()):
        gpas = [compute_semester_gpa(r, credits, grade_table) for r in group]
        valid = [g.gpa for g in gpas if g.gpa > 0]
        passed = sum(1 for g in gpas if g.passed)
        trend.append(SemesterTrend(
            year=year,
            semester_number=semester,
            total_students=len(group),
            average_gpa=round_half_up(sum(valid) / len(valid)) if valid else 0.0,
            pass_percentage=int(round_half_up(passed / len(group) * 100, 0)),
        ))
    return trend


def cgpa_summary(aggregates: Sequence[StudentAggregate]) -> CgpaSummary:
    distribution = {label.value: 0 for label in StatusLabel}
    if not aggregates:
        return CgpaSummary(
            total_students=0, average_cgpa=0.0, highest_cgpa=0.0,
            lowest_cgpa=0.0, status_distribution=distribution,
        )

    values = [a.overall_cgpa for a in aggregates]
    for a in aggregates:
        distribution[classify_status(a.overall_cgpa).value] += 1
    return CgpaSummary(
        total_students=len(aggregates),
        average_cgpa=round_half_up(sum(values) / len(values)),
        highest_cgpa=max(values),
        lowest_cgpa=min(values),
        status_distribution=distribution,
    )
