"""
services/result_engine/report.py

- Projects computed data into row tables ready for CSV / XLSX / JSON
  1) grade sheet  : list[SemesterRecord]   → Reg_No, Student_Name, <subject codes>...
  2) CGPA list    : list[StudentAggregate] → Reg_No, Student_Name, <metric columns>...
- Missing grades are written as EMPTY_MARKER, never None and never 0.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from services.result_engine.cgpa import cgpa_summary, classify_status
from services.result_engine.cohort import SubjectUniverse, compute_semester_analysis, resolve_subject_universe
from services.result_engine.errors import ValidationError
from services.result_engine.grades import DEFAULT_GRADE_TABLE, GradeTable, round_half_up
from services.result_engine.ranking import SortKey, sort_students
from services.result_engine.records import SemesterRecord, StudentAggregate

EMPTY_MARKER = ""
BASE_COLUMNS = ["Reg_No", "Student_Name"]

# CGPA list columns, in output order
CGPA_FIELDS = ("Rank", "CGPA", "Status", "Total_Semesters", "Arrears", "Semester_GPAs")
DEFAULT_CGPA_FIELDS = ("Rank", "CGPA", "Status", "Total_Semesters")
# extra grade-sheet columns appended after the subject codes
SHEET_FIELDS = ("Arrears", "Result")

Cell = Union[str, int, float]


class ReportFormat(str, Enum):
    ROW_TABLE = "row-table"
    WITH_STATS = "with-stats"


class ReportFilters(BaseModel):
    students: Optional[List[str]] = None         # registration numbers to keep
    subjects: Optional[List[str]] = None         # subject codes (grade sheets only)
    sort_by: SortKey = SortKey.REG_NO

    model_config = ConfigDict(frozen=True)


class ReportTable(BaseModel):
    name: str
    header: List[str]
    rows: List[List[Cell]]


class ReportStatistics(BaseModel):
    total_students: int
    total_subjects: int
    pass_percentage: int
    grade_distribution: Dict[str, int] = Field(default_factory=dict)
    status_distribution: Optional[Dict[str, int]] = None
    average_cgpa: Optional[float] = None
    highest_cgpa: Optional[float] = None
    lowest_cgpa: Optional[float] = None


class Report(BaseModel):
    kind: str                                    # "sheet" / "cgpa"
    title: str
    header: List[str]
    rows: List[List[Cell]]
    subject_columns: List[str] = Field(default_factory=list)
    statistics: Optional[ReportStatistics] = None
    details: Optional[ReportTable] = None        # semester details (CGPA lists)
    metadata: Dict[str, Any] = Field(default_factory=dict)


def _select_students(items: Sequence, filters: ReportFilters) -> List:
    if filters.students:
        wanted = {s.strip() for s in filters.students}
        items = [i for i in items if i.registration_number in wanted]
    return sort_students(items, filters.sort_by)


def _pass_percentage(passed: int, total: int) -> int:
    if total == 0:
        return 0
    return int(round_half_up(passed / total * 100, 0))


# =========================================================
# 1) Grade sheet
# =========================================================

def _shape_sheet(
    records: Sequence[SemesterRecord],
    fields: Sequence[str],
    filters: ReportFilters,
    fmt: ReportFormat,
    grade_table: GradeTable,
    subject_universe: SubjectUniverse,
) -> Report:
    unknown = [f for f in fields if f not in SHEET_FIELDS]
    if unknown:
        raise ValidationError(f"Unknown report fields {unknown}", field="fields")
    if filters.sort_by is SortKey.CGPA:
        raise ValidationError("Grade sheets can be sorted by reg_no or name only", field="sort_by")

    # same subject universe as the on-screen analysis
    universe = resolve_subject_universe(records, subject_universe)
    selected = _select_students(records, filters)
    if filters.subjects:
        subjects = [s.strip() for s in filters.subjects]
    else:
        subjects = universe

    header = BASE_COLUMNS + subjects + [f for f in SHEET_FIELDS if f in fields]
    rows: List[List[Cell]] = []
    for record in selected:
        cells: List[Cell] = [record.registration_number, record.name]
        arrears = 0
        for subject in subjects:
            grade = record.grades.get(subject)
            if grade is None:
                cells.append(EMPTY_MARKER)
                continue
            cells.append(grade.value)
            if grade_table.is_failing(grade):
                arrears += 1
        if "Arrears" in fields:
            cells.append(arrears)
        if "Result" in fields:
            cells.append("Pass" if arrears == 0 else "Fail")
        rows.append(cells)

    statistics = None
    if fmt is ReportFormat.WITH_STATS:
        # statistics cover the exported students over the whole subject universe,
        # computed by the cohort engine so they match /results/analysis
        if selected:
            cohort = compute_semester_analysis(selected, grade_table, subject_universe=subject_universe)
            statistics = ReportStatistics(
                total_students=cohort.total_students,
                total_subjects=cohort.total_subjects,
                pass_percentage=cohort.pass_percentage,
                grade_distribution=cohort.grade_distribution,
            )
        else:
            statistics = ReportStatistics(total_students=0, total_subjects=len(universe), pass_percentage=0)

    return Report(
        kind="sheet",
        title="Results",
        header=header,
        rows=rows,
        subject_columns=subjects,
        statistics=statistics,
    )


# =========================================================
# 2) CGPA list
# =========================================================

def _shape_cgpa(
    aggregates: Sequence[StudentAggregate],
    fields: Sequence[str],
    filters: ReportFilters,
    fmt: ReportFormat,
) -> Report:
    unknown = [f for f in fields if f not in CGPA_FIELDS]
    if unknown:
        raise ValidationError(f"Unknown report fields {unknown}", field="fields")
    if filters.subjects:
        raise ValidationError("Subject filter does not apply to CGPA reports", field="subjects")

    selected = _select_students(aggregates, filters)
    semester_numbers = sorted({s.semester_number for a in selected for s in a.semesters})

    header = list(BASE_COLUMNS)
    for f in CGPA_FIELDS:
        if f not in fields:
            continue
        if f == "Semester_GPAs":
            header += [f"Sem_{n}" for n in semester_numbers]
        else:
            header.append(f)

    rows: List[List[Cell]] = []
    detail_rows: List[List[Cell]] = []
    for a in selected:
        cells: List[Cell] = [a.registration_number, a.name]
        by_semester = {s.semester_number: s for s in a.semesters}
        for f in CGPA_FIELDS:
            if f not in fields:
                continue
            if f == "Rank":
                cells.append(a.rank if a.rank is not None else EMPTY_MARKER)
            elif f == "CGPA":
                cells.append(a.overall_cgpa)
            elif f == "Status":
                cells.append(a.status)
            elif f == "Total_Semesters":
                cells.append(a.total_semesters)
            elif f == "Arrears":
                cells.append(a.total_arrears)
            elif f == "Semester_GPAs":
                for n in semester_numbers:
                    sem = by_semester.get(n)
                    cells.append(sem.gpa if sem is not None else EMPTY_MARKER)
        rows.append(cells)
        for sem in a.semesters:
            detail_rows.append([
                a.registration_number,
                a.name,
                f"Semester {sem.semester_number}",
                sem.gpa,
                classify_status(sem.gpa).value,
            ])

    statistics = None
    details = None
    if fmt is ReportFormat.WITH_STATS:
        summary = cgpa_summary(selected)
        statistics = ReportStatistics(
            total_students=summary.total_students,
            total_subjects=0,
            pass_percentage=_pass_percentage(
                sum(1 for a in selected if a.total_arrears == 0), len(selected)
            ),
            status_distribution=summary.status_distribution,
            average_cgpa=summary.average_cgpa,
            highest_cgpa=summary.highest_cgpa,
            lowest_cgpa=summary.lowest_cgpa,
        )
        details = ReportTable(
            name="Semester Details",
            header=["Reg_No", "Student_Name", "Semester", "GPA", "Status"],
            rows=detail_rows,
        )

    return Report(
        kind="cgpa",
        title="Student CGPA",
        header=header,
        rows=rows,
        statistics=statistics,
        details=details,
    )


def shape_report(
    data: Sequence[Union[SemesterRecord, StudentAggregate]],
    fields: Optional[Sequence[str]] = None,
    filters: Optional[ReportFilters] = None,
    fmt: Union[ReportFormat, str] = ReportFormat.ROW_TABLE,
    metadata: Optional[Dict[str, Any]] = None,
    grade_table: GradeTable = DEFAULT_GRADE_TABLE,
    subject_universe: Union[SubjectUniverse, str] = SubjectUniverse.STRICT,
) -> Report:
    """
    Row-oriented report
    - fields  : extra columns (SHEET_FIELDS for grade sheets, CGPA_FIELDS for CGPA lists)
    - filters : student / subject selection + sort order
    - fmt     : "row-table" or "with-stats" (adds the statistics block)
    - subject_universe : subject columns and sheet statistics, same policy as the analysis
    """
    fmt = ReportFormat(fmt)
    filters = filters or ReportFilters()
    data = list(data)

    if data and all(isinstance(d, StudentAggregate) for d in data):
        report = _shape_cgpa(data, list(fields) if fields is not None else list(DEFAULT_CGPA_FIELDS), filters, fmt)
    elif all(isinstance(d, SemesterRecord) for d in data):
        report = _shape_sheet(data, list(fields or ()), filters, fmt, grade_table, SubjectUniverse(subject_universe))
    else:
        raise ValidationError("Report data must be all semester records or all CGPA aggregates", field="data")

    if metadata:
        report = report.model_copy(update={"metadata": dict(metadata)})
    return report


def read_back(report: Report) -> Dict[str, Dict[str, str]]:
    """Grade-sheet report → {reg_no: {subject: grade}} (empty markers dropped)."""
    if report.kind != "sheet":
        raise ValidationError("Only grade-sheet reports can be read back", field="kind")
    # subject columns sit right after the base columns
    positions = {code: len(BASE_COLUMNS) + i for i, code in enumerate(report.subject_columns)}
    result: Dict[str, Dict[str, str]] = {}
    for row in report.rows:
        grades = {
            code: row[idx] for code, idx in positions.items()
            if row[idx] != EMPTY_MARKER
        }
        result[str(row[0])] = grades
    return result
