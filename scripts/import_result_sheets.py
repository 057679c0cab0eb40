import json
import logging
from typing import Optional

from sqlalchemy.orm import Session
from database.db import SessionLocal
from models.result_sheets import ResultSheet as ResultSheetModel  # ✅ model import
from services.result_store import records_from_sheet

logger = logging.getLogger(__name__)

JSON_PATH = "data/result_sheets.json"  # ✅ file path


def migrate_result_sheets(db: Optional[Session] = None, json_path: str = JSON_PATH) -> int:
    """Load result sheets from JSON; every row is validated before commit."""
    own_session = db is None
    db = db or SessionLocal()

    with open(json_path, encoding="utf-8-sig") as f:
        sheets = json.load(f)

    try:
        for item in sheets:
            sheet = ResultSheetModel(
                batch=str(item["batch"]).strip(),          # batch (e.g. 2023-2027)
                department=str(item["department"]).strip(),  # department
                year_num=int(item["year"]),                # year of study
                year_label=item.get("year_label"),         # display label
                semester=int(item["semester"]),            # semester number
                exam_cycle=item.get("exam_cycle"),         # exam cycle
                result_data=item.get("result_data") or [],  # [{stu_reg_no, stu_name, res_data}]
            )
            records_from_sheet(sheet)  # unknown grade / missing reg no → ValidationError
            db.add(sheet)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        if own_session:
            db.close()

    logger.info(f"Imported {len(sheets)} result sheets from {json_path}")
    print("✅ Result sheets JSON → DB migration complete")
    return len(sheets)


if __name__ == "__main__":
    migrate_result_sheets()
