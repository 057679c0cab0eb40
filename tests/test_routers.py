import json

import pytest
from fastapi.testclient import TestClient

from conftest import make_record
from dependencies.stores import get_credit_provider, get_db, get_result_store
from main import app
from services.result_engine.credits import CreditMap
from services.result_engine.errors import EmptyInputError
from services.result_store import SheetData

SEMESTER_1 = [
    make_record("REG004", {"CS101": "B", "CS102": "C", "MA101": "B+"}, name="Dinesh"),
    make_record("REG001", {"CS101": "O", "CS102": "A+", "MA101": "A"}, name="Anitha"),
    make_record("REG003", {"CS101": "U", "CS102": "B", "MA101": "A"}, name="Charan"),
    make_record("REG002", {"CS101": "A", "CS102": "B+", "MA101": "O"}, name="Bala"),
]
SEMESTER_2 = [
    make_record("REG001", {"CS201": "O", "MA201": "O"}, name="Anitha", semester=2),
    make_record("REG002", {"CS201": "A", "MA201": "A"}, name="Bala", semester=2),
    make_record("REG003", {"CS201": "B", "MA201": "RA"}, name="Charan", semester=2),
    make_record("REG004", {"CS201": "B", "MA201": "B"}, name="Dinesh", semester=2),
]
CREDITS = {"CS101": 4, "CS102": 3, "MA101": 4, "CS201": 4, "MA201": 4}


class InMemoryResultStore:
    def __init__(self, records):
        self.records = records

    def fetch_sheet(self, batch, department, year, semester):
        key = {"batch": batch, "department": department, "year": year, "semester": semester}
        records = [
            r for r in self.records
            if (r.batch, r.department, r.year_number, r.semester_number) == (batch, department, year, semester)
        ]
        if not records:
            raise EmptyInputError("Result sheet not found", key=key)
        metadata = {**key, "year_label": "I Year", "exam_cycle": "NOV/DEC 2024"}
        return SheetData(metadata=metadata, records=records)

    def fetch_batch_records(self, batch, department=None):
        records = [
            r for r in self.records
            if r.batch.lower() == batch.lower() and (not department or r.department.lower() == department.lower())
        ]
        if not records:
            raise EmptyInputError("No results found", key={"batch": batch, "department": department})
        return records


class InMemoryCreditProvider:
    def credit_map(self, batch=None, fallback="exclude", default_credits=3.0):
        return CreditMap(CREDITS, fallback=fallback, default_credits=default_credits)


@pytest.fixture
def client():
    app.dependency_overrides[get_result_store] = lambda: InMemoryResultStore(SEMESTER_1 + SEMESTER_2)
    app.dependency_overrides[get_credit_provider] = lambda: InMemoryCreditProvider()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db_client(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


ANALYSIS_PARAMS = {"batch": "2023-2027", "department": "CSE", "year": "1", "semester": "1"}


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert "X-Latency-Ms" in res.headers


def test_semester_analysis(client):
    res = client.get("/v1/results/analysis", params=ANALYSIS_PARAMS)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    data = body["data"]
    assert data["pass_percentage"] == 75
    assert data["total_students"] == 4
    assert data["average_gpa"] == 7.02
    assert [t["registration_number"] for t in data["top_performers"]] == ["REG001", "REG002", "REG003"]
    assert [a["registration_number"] for a in data["needs_attention"]] == ["REG003"]
    assert data["sheet"]["exam_cycle"] == "NOV/DEC 2024"
    assert body["warnings"] == []


def test_malformed_year_is_400(client):
    res = client.get("/v1/results/analysis", params={**ANALYSIS_PARAMS, "year": "two"})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["field"] == "year"


def test_missing_query_param_is_400(client):
    params = dict(ANALYSIS_PARAMS)
    params.pop("batch")
    res = client.get("/v1/results/analysis", params=params)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unknown_cohort_is_404(client):
    res = client.get("/v1/results/analysis", params={**ANALYSIS_PARAMS, "semester": "8"})
    assert res.status_code == 404
    error = res.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["key"]["semester"] == 8


def test_sheet_preview(client):
    res = client.get("/v1/results/sheet", params={**ANALYSIS_PARAMS, "sort_by": "name"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["header"] == ["Reg_No", "Student_Name", "CS101", "CS102", "MA101"]
    assert [row[1] for row in data["rows"]] == ["Anitha", "Bala", "Charan", "Dinesh"]


def test_sheet_preview_rejects_unknown_sort(client):
    res = client.get("/v1/results/sheet", params={**ANALYSIS_PARAMS, "sort_by": "gpa"})
    assert res.status_code == 400


def test_results_export_csv(client):
    res = client.post("/v1/results/export", json={
        "batch": "2023-2027",
        "department": "CSE",
        "year": 1,
        "semester": "1",
        "export_options": {
            "format": "csv",
            "selected_students": ["REG003"],
            "include_header": False,
            "fields": ["Arrears"],
        },
    })
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert res.headers["content-disposition"] == 'attachment; filename="results_2023-2027_CSE.csv"'
    assert res.text.splitlines() == [
        "Reg_No,Student_Name,CS101,CS102,MA101,Arrears",
        "REG003,Charan,U,B,A,1",
    ]


def test_results_export_unknown_field_is_400(client):
    res = client.post("/v1/results/export", json={
        **ANALYSIS_PARAMS,
        "export_options": {"format": "csv", "fields": ["Bogus"]},
    })
    assert res.status_code == 400


def test_cgpa_analysis(client):
    res = client.post("/v1/cgpa/analysis", json={"batch": "2023-2027", "department": "cse"})
    assert res.status_code == 200
    data = res.json()["data"]
    students = data["students"]
    assert [(s["registration_number"], s["rank"]) for s in students] == [
        ("REG001", 1), ("REG002", 2), ("REG004", 3), ("REG003", 4),
    ]
    assert students[0]["overall_cgpa"] == 9.5
    assert students[0]["status"] == "Excellent"
    assert students[3]["total_arrears"] == 2
    assert data["summary"]["total_students"] == 4
    assert data["batch_info"]["total_semesters"] == 2


def test_cgpa_unknown_batch_is_404(client):
    res = client.post("/v1/cgpa/analysis", json={"batch": "1999-2003"})
    assert res.status_code == 404


def test_cgpa_export_json(client):
    res = client.post("/v1/cgpa/export", json={
        "batch": "2023-2027",
        "format": "json",
        "fields": ["Rank", "CGPA", "Semester_GPAs"],
    })
    assert res.status_code == 200
    assert 'filename="CGPA_Analysis_2023-2027_All.json"' in res.headers["content-disposition"]
    payload = json.loads(res.content)
    assert payload["header"] == ["Reg_No", "Student_Name", "Rank", "CGPA", "Sem_1", "Sem_2"]
    assert payload["students"][0]["Reg_No"] == "REG001"
    assert payload["statistics"]["total_students"] == 4
    assert len(payload["details"]) == 8


def test_subject_credit_crud(db_client):
    res = db_client.put("/v1/subject-credits/CS101", json={"credits": 4, "name": "Programming"})
    assert res.status_code == 200
    assert res.json()["data"]["credits"] == 4

    res = db_client.get("/v1/subject-credits/map")
    assert res.json()["data"]["credits"] == {"CS101": 4.0}

    res = db_client.get("/v1/subject-credits/", params={"page": 1, "size": 10})
    body = res.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["code"] == "CS101"

    assert db_client.delete("/v1/subject-credits/CS101").json()["success"] is True
    assert db_client.delete("/v1/subject-credits/CS101").json()["success"] is False


def test_subject_credit_negative_is_400(db_client):
    res = db_client.put("/v1/subject-credits/CS101", json={"credits": -1})
    assert res.status_code == 400


def test_sheet_preview_rejects_cgpa_sort(client):
    res = client.get("/v1/results/sheet", params={**ANALYSIS_PARAMS, "sort_by": "cgpa"})
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "sort_by"


def test_comprehensive_analysis(client):
    res = client.get("/v1/cgpa/comprehensive", params={"batch": "2023-2027", "department": "CSE"})
    assert res.status_code == 200
    data = res.json()["data"]
    overview = data["overview"]
    assert overview["total_students"] == 4
    assert overview["students_with_arrears"] == 1
    assert overview["passed_students"] == 3
    assert overview["total_semesters"] == 2
    assert overview["performance_distribution"]["Excellent"] == 1
    assert data["semester_analysis"] == [
        {"year": 1, "semester_number": 1, "total_students": 4, "average_gpa": 7.02, "pass_percentage": 75},
        {"year": 1, "semester_number": 2, "total_students": 4, "average_gpa": 6.75, "pass_percentage": 75},
    ]
    assert len(data["students"]) == 4
    assert data["top_performers"][0]["registration_number"] == "REG001"
    assert [a["registration_number"] for a in data["needs_attention"]] == ["REG003"]


def test_comprehensive_analysis_for_one_student(client):
    res = client.get("/v1/cgpa/comprehensive", params={
        "batch": "2023-2027", "department": "CSE", "register_number": " REG002 ",
    })
    assert res.status_code == 200
    data = res.json()["data"]
    [student] = data["students"]
    assert student["registration_number"] == "REG002"
    assert [s["semester_number"] for s in student["semesters"]] == [1, 2]
    assert data["overview"]["total_students"] == 4


def test_comprehensive_analysis_unknown_student_is_404(client):
    res = client.get("/v1/cgpa/comprehensive", params={
        "batch": "2023-2027", "department": "CSE", "register_number": "REG999",
    })
    assert res.status_code == 404
    assert res.json()["error"]["key"]["register_number"] == "REG999"


def test_comprehensive_analysis_requires_department(client):
    res = client.get("/v1/cgpa/comprehensive", params={"batch": "2023-2027", "department": " "})
    assert res.status_code == 400
