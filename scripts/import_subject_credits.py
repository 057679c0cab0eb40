import csv
import logging
from typing import Optional

from sqlalchemy.orm import Session
from database.db import SessionLocal
from services.result_store import CreditTableProvider

logger = logging.getLogger(__name__)

CSV_PATH = "data/subject_credits.csv"  # ✅ file path (code,name,credits,batch)


def migrate_subject_credits(db: Optional[Session] = None, csv_path: str = CSV_PATH) -> int:
    own_session = db is None
    db = db or SessionLocal()
    provider = CreditTableProvider(db)

    count = 0
    try:
        with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
            reader = csv.DictReader(csvfile)
            for row in reader:
                credits = (row.get("credits") or "").strip()
                provider.upsert_credit(
                    row["code"],                                   # subject code
                    float(credits) if credits else None,           # credit hours (blank → NULL)
                    name=(row.get("name") or "").strip() or None,  # subject name
                    batch=(row.get("batch") or "").strip() or None,  # blank → every batch
                )
                count += 1
    finally:
        if own_session:
            db.close()

    logger.info(f"Imported {count} subject credit rows from {csv_path}")
    print("✅ Subject credits CSV → DB migration complete")
    return count


if __name__ == "__main__":
    migrate_subject_credits()
