"""
services/export_service.py

- Serializes a shaped Report into a downloadable file
  1) csv   : optional banner lines + header + rows
  2) excel : result sheet (+ Statistics / Semester Details sheets)
  3) json  : metadata, header, students as dicts, statistics, details
- No analysis happens here; numbers come from services/result_engine.
"""

import csv
import io
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from pydantic import BaseModel

from services.result_engine.report import Report


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"
    JSON = "json"


class ExportedFile(BaseModel):
    content: bytes
    media_type: str
    filename: str


MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.JSON: "application/json",
}

EXTENSIONS = {ExportFormat.CSV: "csv", ExportFormat.EXCEL: "xlsx", ExportFormat.JSON: "json"}


def _title_lines(metadata: Dict[str, Any]) -> List[List[Any]]:
    """Two banner rows above the table, e.g. "CSE - 2023-2027" / "Year 2, Semester 3 - NOV/DEC 2024"."""
    if not metadata:
        return []
    first = " - ".join(str(metadata[k]) for k in ("department", "batch") if metadata.get(k))
    second = ""
    if metadata.get("year") is not None and metadata.get("semester") is not None:
        second = f"Year {metadata['year']}, Semester {metadata['semester']}"
        if metadata.get("exam_cycle"):
            second += f" - {metadata['exam_cycle']}"
    lines = [[line] for line in (first, second) if line]
    return lines + [[]] if lines else []


def _statistics_rows(report: Report) -> List[List[Any]]:
    stats = report.statistics
    rows: List[List[Any]] = [["Statistics Summary"], [], ["Total Students", stats.total_students]]
    if report.kind == "sheet":
        rows.append(["Total Subjects", stats.total_subjects])
    else:
        rows += [
            ["Average CGPA", stats.average_cgpa],
            ["Highest CGPA", stats.highest_cgpa],
            ["Lowest CGPA", stats.lowest_cgpa],
        ]
    rows += [[], ["Pass Percentage", f"{stats.pass_percentage}%"], []]
    if stats.grade_distribution:
        rows.append(["Grade Distribution"])
        rows += [[grade, count] for grade, count in stats.grade_distribution.items()]
    if stats.status_distribution:
        rows.append(["CGPA Distribution"])
        rows += [[label, count] for label, count in stats.status_distribution.items()]
    return rows


class ExportService:
    """Report → bytes for the export endpoints."""

    def to_csv(self, report: Report, include_header: bool = False) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        if include_header:
            writer.writerows(_title_lines(report.metadata))
        writer.writerow(report.header)
        writer.writerows(report.rows)
        return buffer.getvalue()

    def to_xlsx(self, report: Report, include_header: bool = False) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = report.title[:31]

        if include_header:
            for line in _title_lines(report.metadata):
                sheet.append(line)
        sheet.append(report.header)
        for cell in sheet[sheet.max_row]:
            cell.font = Font(bold=True)
        for row in report.rows:
            sheet.append(row)

        if report.statistics is not None:
            stats_sheet = workbook.create_sheet("Statistics")
            for row in _statistics_rows(report):
                stats_sheet.append(row)

        if report.details is not None:
            details_sheet = workbook.create_sheet(report.details.name[:31])
            details_sheet.append(report.details.header)
            for row in report.details.rows:
                details_sheet.append(row)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def to_json(self, report: Report, include_header: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if include_header:
            payload["metadata"] = {
                **report.metadata,
                "exported_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
        payload["header"] = report.header
        if report.kind == "sheet":
            payload["subjects"] = report.subject_columns
        payload["students"] = [dict(zip(report.header, row)) for row in report.rows]
        if report.statistics is not None:
            payload["statistics"] = report.statistics.model_dump()
        if report.details is not None:
            payload["details"] = [dict(zip(report.details.header, row)) for row in report.details.rows]
        return payload

    def render(self, report: Report, fmt: ExportFormat, include_header: bool = False,
               basename: Optional[str] = None) -> ExportedFile:
        fmt = ExportFormat(fmt)
        if fmt is ExportFormat.CSV:
            content = self.to_csv(report, include_header).encode("utf-8")
        elif fmt is ExportFormat.EXCEL:
            content = self.to_xlsx(report, include_header)
        else:
            content = json.dumps(self.to_json(report, include_header), ensure_ascii=False, indent=2).encode("utf-8")
        name = basename or report.title.replace(" ", "_")
        return ExportedFile(
            content=content,
            media_type=MEDIA_TYPES[fmt],
            filename=f"{name}.{EXTENSIONS[fmt]}",
        )


export_service = ExportService()
