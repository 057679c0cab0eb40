import json

import pytest

from models.result_sheets import ResultSheet
from scripts.import_result_sheets import migrate_result_sheets
from scripts.import_subject_credits import migrate_subject_credits
from services.result_engine.errors import ValidationError
from services.result_store import CreditTableProvider, ResultStore


def test_migrate_result_sheets(db_session, tmp_path):
    path = tmp_path / "result_sheets.json"
    path.write_text(json.dumps([{
        "batch": "2023-2027",
        "department": "CSE",
        "year": "2",
        "semester": 3,
        "exam_cycle": "NOV/DEC 2024",
        "result_data": [{"stu_reg_no": "REG001", "stu_name": "Anitha", "res_data": {"CS301": "O"}}],
    }]), encoding="utf-8")

    assert migrate_result_sheets(db_session, str(path)) == 1
    records = ResultStore(db_session).fetch_semester_records("2023-2027", "CSE", 2, 3)
    assert records[0].grades["CS301"].value == "O"


def test_migrate_result_sheets_rejects_bad_grade(db_session, tmp_path):
    path = tmp_path / "result_sheets.json"
    path.write_text(json.dumps([{
        "batch": "2023-2027",
        "department": "CSE",
        "year": 1,
        "semester": 1,
        "result_data": [{"stu_reg_no": "REG001", "res_data": {"CS101": "Z"}}],
    }]), encoding="utf-8")

    with pytest.raises(ValidationError):
        migrate_result_sheets(db_session, str(path))
    assert db_session.query(ResultSheet).count() == 0


def test_migrate_subject_credits(db_session, tmp_path):
    path = tmp_path / "subject_credits.csv"
    path.write_text(
        "code,name,credits,batch\n"
        "CS101,Programming,3,\n"
        "CS101,Programming,4,2023-2027\n"
        "LIB01,Library,,\n",
        encoding="utf-8",
    )

    assert migrate_subject_credits(db_session, str(path)) == 3
    provider = CreditTableProvider(db_session)
    assert provider.credit_table() == {"CS101": 3.0}
    assert provider.credit_table("2023-2027") == {"CS101": 4.0}
