"""
services/result_store.py

- Read side of the persistence layer, consumed by the routers
  1) ResultStore          : semester result sheets → SemesterRecord
  2) CreditTableProvider  : subjects table → CreditMap
- Grades are validated here (ingestion boundary); the engine only ever
  sees records that passed record_from_row().
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from models.result_sheets import ResultSheet as ResultSheetModel
from models.subjects import Subject as SubjectModel
from services.result_engine.credits import DEFAULT_CREDITS, CreditFallback, CreditMap
from services.result_engine.errors import EmptyInputError, ValidationError
from services.result_engine.records import SemesterRecord, record_from_row

logger = logging.getLogger(__name__)


class SheetData(BaseModel):
    metadata: Dict[str, Any]
    records: List[SemesterRecord] = Field(default_factory=list)


def sheet_metadata(sheet: ResultSheetModel) -> Dict[str, Any]:
    return {
        "batch": sheet.batch,
        "department": sheet.department,
        "year": sheet.year_num,
        "year_label": sheet.year_label,
        "semester": sheet.semester,
        "exam_cycle": sheet.exam_cycle,
    }


def records_from_sheet(sheet: ResultSheetModel) -> List[SemesterRecord]:
    rows = sheet.result_data or []
    if not isinstance(rows, list):
        raise ValidationError(f"result_data of sheet {sheet.id} is not a list", field="result_data")
    return [
        record_from_row(
            row,
            batch=sheet.batch,
            department=sheet.department,
            year_number=sheet.year_num,
            semester_number=sheet.semester,
        )
        for row in rows
    ]


class ResultStore:
    def __init__(self, db: Session):
        self.db = db

    def find_sheet(self, batch: str, department: str, year: int, semester: int) -> Optional[ResultSheetModel]:
        return (
            self.db.query(ResultSheetModel)
            .filter(
                ResultSheetModel.batch == batch.strip(),
                ResultSheetModel.department == department.strip(),
                ResultSheetModel.year_num == year,
                ResultSheetModel.semester == semester,
            )
            .first()
        )

    def fetch_sheet(self, batch: str, department: str, year: int, semester: int) -> SheetData:
        key = {"batch": batch, "department": department, "year": year, "semester": semester}
        sheet = self.find_sheet(batch, department, year, semester)
        if sheet is None or not sheet.result_data:
            logger.info(f"No result sheet for {key}")
            raise EmptyInputError("Result sheet not found", key=key)
        return SheetData(metadata=sheet_metadata(sheet), records=records_from_sheet(sheet))

    def fetch_semester_records(self, batch: str, department: str, year: int, semester: int) -> List[SemesterRecord]:
        return self.fetch_sheet(batch, department, year, semester).records

    def fetch_batch_records(self, batch: str, department: Optional[str] = None) -> List[SemesterRecord]:
        """Every semester sheet of a batch (optionally one department), case-insensitive match."""
        query = self.db.query(ResultSheetModel).filter(
            func.lower(ResultSheetModel.batch) == batch.strip().lower()
        )
        if department:
            query = query.filter(func.lower(ResultSheetModel.department) == department.strip().lower())
        sheets = query.order_by(ResultSheetModel.year_num, ResultSheetModel.semester).all()

        records: List[SemesterRecord] = []
        for sheet in sheets:
            records.extend(records_from_sheet(sheet))
        if not records:
            raise EmptyInputError(
                "No results found for the specified batch and department",
                key={"batch": batch, "department": department},
            )
        logger.info(f"Loaded {len(records)} semester records from {len(sheets)} sheets for batch {batch}")
        return records


class CreditTableProvider:
    def __init__(self, db: Session):
        self.db = db

    def credit_table(self, batch: Optional[str] = None) -> Dict[str, float]:
        """Generic credits first, then batch-specific rows override them."""
        rows = (
            self.db.query(SubjectModel)
            .filter(SubjectModel.credits.isnot(None))
            .order_by(SubjectModel.code)
            .all()
        )
        table: Dict[str, float] = {}
        for row in rows:
            if row.batch is None:
                table[row.code] = row.credits
        if batch:
            for row in rows:
                if row.batch is not None and row.batch.lower() == batch.strip().lower():
                    table[row.code] = row.credits
        return table

    def credit_map(
        self,
        batch: Optional[str] = None,
        fallback: CreditFallback = CreditFallback.EXCLUDE,
        default_credits: float = DEFAULT_CREDITS,
    ) -> CreditMap:
        return CreditMap(self.credit_table(batch), fallback=fallback, default_credits=default_credits)

    def list_subjects(self, offset: int = 0, limit: int = 20) -> tuple:
        query = self.db.query(SubjectModel)
        total = query.count()
        items = query.order_by(SubjectModel.code, SubjectModel.batch).offset(offset).limit(limit).all()
        return total, items

    def upsert_credit(self, code: str, credits: Optional[float], name: Optional[str] = None,
                      batch: Optional[str] = None) -> SubjectModel:
        code = code.strip()
        if not code:
            raise ValidationError("Subject code is required", field="code")
        if credits is not None:
            CreditMap({code: credits})  # same numeric checks as the engine

        subject = (
            self.db.query(SubjectModel)
            .filter(SubjectModel.code == code, SubjectModel.batch == batch if batch else SubjectModel.batch.is_(None))
            .first()
        )
        if subject is None:
            subject = SubjectModel(code=code, batch=batch)
            self.db.add(subject)
        subject.credits = credits
        if name is not None:
            subject.name = name
        self.db.commit()
        self.db.refresh(subject)
        return subject

    def delete_subject(self, code: str, batch: Optional[str] = None) -> bool:
        subject = (
            self.db.query(SubjectModel)
            .filter(SubjectModel.code == code, SubjectModel.batch == batch if batch else SubjectModel.batch.is_(None))
            .first()
        )
        if subject is None:
            return False
        self.db.delete(subject)
        self.db.commit()
        return True
