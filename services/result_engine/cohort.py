"""
services/result_engine/cohort.py

- Single-semester analysis over one cohort (same batch/department/semester)
  * overall and per-subject grade distribution
  * pass/fail per subject and per student
  * top performers / needs-attention lists
- Subject universe is explicit:
  * strict       : every record must carry the same subject codes
  * union        : all codes seen in any record
  * intersection : only codes present in every record
"""

import logging
from collections import Counter
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Sequence

from services.result_engine.credits import CreditMap
from services.result_engine.errors import (
    DataGapWarning,
    EmptyInputError,
    ValidationError,
    dedupe_warnings,
)
from services.result_engine.gpa import compute_semester_gpa
from services.result_engine.grades import (
    DEFAULT_GRADE_TABLE,
    GRADE_ORDER,
    Grade,
    GradeTable,
    round_half_up,
)
from services.result_engine.records import (
    AttentionEntry,
    CohortStatistics,
    SemesterRecord,
    StudentDetail,
    SubjectStatistics,
    TopPerformer,
)
from services.result_engine.ranking import SortKey, sort_students

logger = logging.getLogger(__name__)


class SubjectUniverse(str, Enum):
    STRICT = "strict"
    UNION = "union"
    INTERSECTION = "intersection"


def resolve_subject_universe(
    records: Sequence[SemesterRecord],
    mode: SubjectUniverse = SubjectUniverse.STRICT,
) -> List[str]:
    mode = SubjectUniverse(mode)
    code_sets = [frozenset(r.grades) for r in records]
    if not code_sets:
        return []

    if mode is SubjectUniverse.UNION:
        return sorted(frozenset().union(*code_sets))
    if mode is SubjectUniverse.INTERSECTION:
        return sorted(frozenset.intersection(*code_sets))

    reference = code_sets[0]
    for record, codes in zip(records, code_sets):
        if codes != reference:
            missing = sorted(reference - codes)
            extra = sorted(codes - reference)
            raise ValidationError(
                f"Subject set of {record.registration_number} differs from the cohort "
                f"(missing={missing}, extra={extra})",
                field="grades",
            )
    return sorted(reference)


def _ordered_distribution(counter: Counter) -> Dict[str, int]:
    return {g.value: counter[g] for g in sorted(counter, key=GRADE_ORDER.get)}


def compute_semester_analysis(
    records: Iterable[SemesterRecord],
    grade_table: GradeTable = DEFAULT_GRADE_TABLE,
    credits: Optional[CreditMap] = None,
    subject_universe: SubjectUniverse = SubjectUniverse.STRICT,
    top_limit: Optional[int] = None,
    attention_limit: Optional[int] = None,
) -> CohortStatistics:
    records = list(records)
    if not records:
        raise EmptyInputError("No result records for the requested cohort")

    seen = set()
    for r in records:
        if r.registration_number in seen:
            raise ValidationError(
                f"Duplicate registration number {r.registration_number} in cohort",
                field="registration_number",
            )
        seen.add(r.registration_number)

    records = sort_students(records, SortKey.REG_NO)
    subjects = resolve_subject_universe(records, subject_universe)

    overall = Counter()
    per_subject = {s: Counter() for s in subjects}
    pass_counts = Counter()
    fail_counts = Counter()
    point_sums: Dict[str, float] = {s: 0.0 for s in subjects}
    point_counts = Counter()

    details: List[StudentDetail] = []
    top: List[TopPerformer] = []
    attention: List[AttentionEntry] = []
    warnings: List[DataGapWarning] = []
    passed_students = 0

    # ✅ students × subjects, single pass
    for record in records:
        failed: List[str] = []
        graded = 0
        excellent = 0
        for subject in subjects:
            grade: Optional[Grade] = record.grades.get(subject)
            if grade is None:
                continue
            graded += 1
            overall[grade] += 1
            per_subject[subject][grade] += 1
            point = grade_table.points_for(grade)
            if point > 0:
                point_sums[subject] += point
                point_counts[subject] += 1
            if grade_table.is_failing(grade):
                fail_counts[subject] += 1
                failed.append(subject)
            else:
                pass_counts[subject] += 1
            if grade_table.is_excellent(grade):
                excellent += 1

        gpa = None
        if credits is not None:
            semester = compute_semester_gpa(record, credits, grade_table)
            gpa = semester.gpa
            warnings.extend(semester.warnings)

        student_passed = not failed
        if student_passed:
            passed_students += 1

        details.append(StudentDetail(
            registration_number=record.registration_number,
            name=record.name,
            gpa=gpa,
            total_subjects=graded,
            passed_subjects=graded - len(failed),
            arrears_count=len(failed),
            failed_subjects=failed,
            excellent_grades=excellent,
            grades={s: record.grades[s].value for s in subjects if record.grades.get(s) is not None},
            status="Passed" if student_passed else "Failed",
        ))

        if excellent > 0:
            top.append(TopPerformer(
                registration_number=record.registration_number,
                name=record.name,
                gpa=gpa,
                graded_count=graded,
                excellent_count=excellent,
                excellent_ratio=round(excellent / graded, 4),
            ))
        if failed:
            attention.append(AttentionEntry(
                registration_number=record.registration_number,
                name=record.name,
                gpa=gpa,
                failed_subjects=failed,
                arrears_count=len(failed),
            ))

    # ✅ ordering: ratio / fail count descending, registration number ascending
    top.sort(key=lambda t: (-Fraction(t.excellent_count, t.graded_count), t.registration_number))
    attention.sort(key=lambda a: (-a.arrears_count, a.registration_number))
    if top_limit is not None:
        top = top[:top_limit]
    if attention_limit is not None:
        attention = attention[:attention_limit]

    subject_wise = {
        s: SubjectStatistics(
            total_students=pass_counts[s] + fail_counts[s],
            pass_count=pass_counts[s],
            fail_count=fail_counts[s],
            grade_distribution=_ordered_distribution(per_subject[s]),
            average_grade_point=(
                round_half_up(point_sums[s] / point_counts[s]) if point_counts[s] else 0.0
            ),
        )
        for s in subjects
    }

    total = len(records)
    average_gpa = None
    if credits is not None:
        positive = [d.gpa for d in details if d.gpa and d.gpa > 0]
        average_gpa = round_half_up(sum(positive) / len(positive)) if positive else 0.0

    logger.info(f"Cohort analysis: {total} students, {len(subjects)} subjects, {passed_students} passed")
    return CohortStatistics(
        total_students=total,
        total_subjects=len(subjects),
        subjects=subjects,
        passed_students=passed_students,
        failed_students=total - passed_students,
        pass_percentage=int(round_half_up(passed_students / total * 100, 0)),
        grade_distribution=_ordered_distribution(overall),
        subject_wise=subject_wise,
        top_performers=top,
        needs_attention=attention,
        student_details=details,
        average_gpa=average_gpa,
        total_arrears=sum(d.arrears_count for d in details),
        warnings=dedupe_warnings(warnings),
    )
