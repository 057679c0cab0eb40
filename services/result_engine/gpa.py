"""
services/result_engine/gpa.py

- Semester GPA: GPA = Σ(grade point × credits) / Σ(credits)
- Only subjects that have a recorded grade AND a resolvable credit weight
  take part; everything else is reported as a DataGapWarning.
"""

import logging
from typing import List

from services.result_engine.credits import CreditMap
from services.result_engine.errors import DataGapWarning
from services.result_engine.grades import DEFAULT_GRADE_TABLE, GradeTable, round_half_up
from services.result_engine.records import SemesterGpa, SemesterRecord

logger = logging.getLogger(__name__)


def compute_semester_gpa(
    record: SemesterRecord,
    credits: CreditMap,
    grade_table: GradeTable = DEFAULT_GRADE_TABLE,
) -> SemesterGpa:
    total_points = 0.0
    total_credits = 0.0
    included: List[str] = []
    failed: List[str] = []
    warnings: List[DataGapWarning] = []

    for subject in sorted(record.grades):
        grade = record.grades[subject]
        if grade is None:
            continue  # not graded → not in numerator or denominator

        if grade_table.is_failing(grade):
            failed.append(subject)

        weight, missing = credits.resolve(subject)
        if missing:
            logger.warning(
                f"No credits for {subject} (reg_no={record.registration_number}, "
                f"semester={record.semester_number}); policy={credits.fallback.value}"
            )
            warnings.append(DataGapWarning(
                kind="missing_credit",
                message=f"Subject {subject} has no credit entry ({credits.fallback.value})",
                registration_number=record.registration_number,
                subject_code=subject,
                semester_number=record.semester_number,
            ))
        if weight is None:
            continue

        included.append(subject)
        total_points += grade_table.points_for(grade) * weight
        total_credits += weight

    valid = total_credits > 0
    if valid:
        gpa = round_half_up(total_points / total_credits)
    else:
        gpa = 0.0
        warnings.append(DataGapWarning(
            kind="no_gradable_subjects",
            message=f"Semester {record.semester_number} has no gradable subjects",
            registration_number=record.registration_number,
            semester_number=record.semester_number,
        ))
        logger.warning(
            f"Semester {record.semester_number} for {record.registration_number} "
            f"has no gradable subjects; excluded"
        )

    return SemesterGpa(
        registration_number=record.registration_number,
        semester_number=record.semester_number,
        year=record.year_number,
        gpa=gpa,
        passed=not failed,
        valid=valid,
        credits_counted=total_credits,
        included_subjects=included,
        failed_subjects=failed,
        warnings=warnings,
    )
