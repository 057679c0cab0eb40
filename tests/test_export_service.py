import io
import json

from openpyxl import load_workbook

from services.export_service import ExportFormat, export_service
from services.result_engine.report import ReportFilters, ReportFormat, shape_report

METADATA = {
    "batch": "2023-2027",
    "department": "CSE",
    "year": 2,
    "semester": 3,
    "exam_cycle": "NOV/DEC 2024",
}


def test_csv_with_title_lines(cohort):
    report = shape_report(cohort, filters=ReportFilters(students=["REG001"]), metadata=METADATA)
    text = export_service.to_csv(report, include_header=True)
    assert text.splitlines() == [
        "CSE - 2023-2027",
        "\"Year 2, Semester 3 - NOV/DEC 2024\"",
        "",
        "Reg_No,Student_Name,CS101,CS102,MA101",
        "REG001,Anitha,O,A+,A",
    ]


def test_csv_without_title_lines(cohort):
    text = export_service.to_csv(shape_report(cohort))
    assert text.splitlines()[0] == "Reg_No,Student_Name,CS101,CS102,MA101"
    assert len(text.splitlines()) == 5


def test_xlsx_has_results_and_statistics_sheets(cohort):
    report = shape_report(cohort, fmt=ReportFormat.WITH_STATS, metadata=METADATA)
    exported = export_service.render(report, ExportFormat.EXCEL, include_header=True, basename="results_2023-2027_CSE")
    assert exported.filename == "results_2023-2027_CSE.xlsx"

    workbook = load_workbook(io.BytesIO(exported.content))
    assert workbook.sheetnames == ["Results", "Statistics"]
    rows = list(workbook["Results"].iter_rows(values_only=True))
    assert rows[0][0] == "CSE - 2023-2027"
    assert rows[3] == ("Reg_No", "Student_Name", "CS101", "CS102", "MA101")
    assert rows[4] == ("REG001", "Anitha", "O", "A+", "A")
    stats = {row[0]: row[1] for row in workbook["Statistics"].iter_rows(values_only=True) if row and row[0]}
    assert stats["Total Students"] == 4
    assert stats["Pass Percentage"] == "75%"


def test_json_export(cohort):
    report = shape_report(cohort, fmt=ReportFormat.WITH_STATS, metadata=METADATA)
    exported = export_service.render(report, "json", include_header=True)
    payload = json.loads(exported.content)
    assert exported.media_type == "application/json"
    assert exported.filename == "Results.json"
    assert payload["metadata"]["department"] == "CSE"
    assert "exported_at" in payload["metadata"]
    assert payload["subjects"] == ["CS101", "CS102", "MA101"]
    assert payload["students"][0] == {
        "Reg_No": "REG001", "Student_Name": "Anitha", "CS101": "O", "CS102": "A+", "MA101": "A",
    }
    assert payload["statistics"]["pass_percentage"] == 75


def test_json_keeps_empty_marker(record):
    report = shape_report([record("REG001", {"CS101": "A", "CS102": ""})])
    payload = export_service.to_json(report)
    assert payload["students"][0]["CS102"] == ""
    assert "metadata" not in payload
