"""
services/result_engine/records.py

- Input/output value objects of the analytics engine (pydantic v2, frozen)
- SemesterRecord validates grades at construction time, so an unknown
  letter never reaches a calculator.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.result_engine.errors import DataGapWarning, ValidationError
from services.result_engine.grades import Grade, parse_optional_grade


# =========================================================
# 1) Input
# =========================================================

class SemesterRecord(BaseModel):
    """One student's grades for one semester (read-only to the engine)."""
    registration_number: str = Field(default="", validate_default=True)
    name: str = ""
    student_id: Optional[str] = None
    batch: str = ""
    department: str = ""
    year_number: int = 0
    semester_number: int = 0
    grades: Dict[str, Optional[Grade]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("registration_number", mode="before")
    @classmethod
    def _require_reg_no(cls, v):
        token = str(v).strip() if v is not None else ""
        if not token:
            raise ValidationError("Registration number is required", field="registration_number")
        return token

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return str(v).strip() if v is not None else ""

    @field_validator("grades", mode="before")
    @classmethod
    def _parse_grades(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValidationError("Grades must be a mapping of subject code to grade", field="grades")
        parsed: Dict[str, Optional[Grade]] = {}
        for code, raw in v.items():
            subject = str(code).strip()
            if not subject:
                raise ValidationError("Empty subject code in grades", field="grades")
            parsed[subject] = parse_optional_grade(raw, subject)
        return parsed

    def graded_subjects(self) -> Dict[str, Grade]:
        return {code: g for code, g in self.grades.items() if g is not None}


class StudentSemesters(BaseModel):
    """All semester records found for one student (CGPA input)."""
    registration_number: str
    name: str = ""
    batch: str = ""
    department: str = ""
    semesters: List[SemesterRecord] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# =========================================================
# 2) Per-semester output
# =========================================================

class SemesterGpa(BaseModel):
    registration_number: str
    semester_number: int
    year: int
    gpa: float
    passed: bool
    valid: bool
    credits_counted: float = 0.0
    included_subjects: List[str] = Field(default_factory=list)
    failed_subjects: List[str] = Field(default_factory=list)
    warnings: List[DataGapWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def arrears(self) -> int:
        return len(self.failed_subjects)


# =========================================================
# 3) CGPA output
# =========================================================

class StudentAggregate(BaseModel):
    registration_number: str
    name: str
    batch: str = ""
    department: str = ""
    semesters: List[SemesterGpa] = Field(default_factory=list)
    overall_cgpa: float
    status: str
    rank: Optional[int] = None
    total_semesters: int = 0
    valid_semesters: int = 0
    total_arrears: int = 0
    warnings: List[DataGapWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class SemesterTrend(BaseModel):
    """Cohort figures for one semester sheet (year, semester)."""
    year: int
    semester_number: int
    total_students: int
    average_gpa: float
    pass_percentage: int

    model_config = ConfigDict(frozen=True)


class CgpaSummary(BaseModel):
    total_students: int
    average_cgpa: float
    highest_cgpa: float
    lowest_cgpa: float
    status_distribution: Dict[str, int]

    model_config = ConfigDict(frozen=True)


# =========================================================
# 4) Cohort output
# =========================================================

class SubjectStatistics(BaseModel):
    total_students: int = 0
    pass_count: int = 0
    fail_count: int = 0
    grade_distribution: Dict[str, int] = Field(default_factory=dict)
    average_grade_point: float = 0.0

    model_config = ConfigDict(frozen=True)


class TopPerformer(BaseModel):
    registration_number: str
    name: str
    gpa: Optional[float] = None
    graded_count: int
    excellent_count: int
    excellent_ratio: float

    model_config = ConfigDict(frozen=True)


class AttentionEntry(BaseModel):
    registration_number: str
    name: str
    gpa: Optional[float] = None
    failed_subjects: List[str]
    arrears_count: int

    model_config = ConfigDict(frozen=True)


class StudentDetail(BaseModel):
    registration_number: str
    name: str
    gpa: Optional[float] = None
    total_subjects: int
    passed_subjects: int
    arrears_count: int
    failed_subjects: List[str]
    excellent_grades: int
    grades: Dict[str, str]
    status: str                                  # "Passed" / "Failed"

    model_config = ConfigDict(frozen=True)


class CohortStatistics(BaseModel):
    total_students: int
    total_subjects: int
    subjects: List[str]
    passed_students: int
    failed_students: int
    pass_percentage: int
    grade_distribution: Dict[str, int]
    subject_wise: Dict[str, SubjectStatistics]
    top_performers: List[TopPerformer]
    needs_attention: List[AttentionEntry]
    student_details: List[StudentDetail] = Field(default_factory=list)
    average_gpa: Optional[float] = None
    total_arrears: int = 0
    warnings: List[DataGapWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


def record_from_row(row: Dict[str, Any], **sheet: Any) -> SemesterRecord:
    """
    Ingestion boundary: stored result row → SemesterRecord
    - row keys follow the stored sheet layout: stu_reg_no / stu_name / res_data
    - sheet keys: batch, department, year_number, semester_number
    """
    if not isinstance(row, dict):
        raise ValidationError("Result row must be an object", field="result_data")
    return SemesterRecord(
        registration_number=row.get("stu_reg_no"),
        name=row.get("stu_name") or "",
        student_id=str(row["student_id"]) if row.get("student_id") is not None else None,
        grades=row.get("res_data") or {},
        **sheet,
    )
