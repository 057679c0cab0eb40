import os

# in-memory database for everything imported below (settings are read at import time)
os.environ.setdefault("DB_URL_OVERRIDE", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base
from models.result_sheets import ResultSheet  # noqa: F401  (registers the table)
from models.subjects import Subject  # noqa: F401
from services.result_engine.credits import CreditMap
from services.result_engine.records import SemesterRecord


def make_record(reg_no, grades, name=None, semester=1, year=1, batch="2023-2027", department="CSE"):
    return SemesterRecord(
        registration_number=reg_no,
        name=name if name is not None else f"Student {reg_no}",
        batch=batch,
        department=department,
        year_number=year,
        semester_number=semester,
        grades=grades,
    )


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def credits():
    return CreditMap({"CS101": 4, "CS102": 3, "MA101": 4, "PH101": 3})


@pytest.fixture
def cohort():
    """Four students, one of them with a single arrear."""
    return [
        make_record("REG004", {"CS101": "B", "CS102": "C", "MA101": "B+"}, name="Dinesh"),
        make_record("REG001", {"CS101": "O", "CS102": "A+", "MA101": "A"}, name="Anitha"),
        make_record("REG003", {"CS101": "U", "CS102": "B", "MA101": "A"}, name="Charan"),
        make_record("REG002", {"CS101": "A", "CS102": "B+", "MA101": "O"}, name="Bala"),
    ]


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
