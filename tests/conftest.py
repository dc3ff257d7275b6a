import io

import pytest
from fastapi.testclient import TestClient
import xlwt
from openpyxl import Workbook

from config.settings import Settings
from database.db import Database
from main import create_app


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def app(database):
    settings = Settings(_env_file=None, ENV="dev", REQUEST_LOG=False, API_PREFIX="/api")
    return create_app(settings=settings, database=database)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def course(client):
    resp = client.post("/api/courses/", json={"name": "3D Computer Graphics", "code": "IC335"})
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def make_student(client, course):
    def _make(student_id, name=None, course_id=None, **extra):
        payload = {
            "name": name or f"Student {student_id}",
            "studentId": student_id,
            "courseId": course_id or course["id"],
            **extra,
        }
        resp = client.post("/api/students/", json=payload)
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_grade_item(client, course):
    def _make(name, weight=1.0, max_score=100.0, course_id=None):
        resp = client.post(
            "/api/grade-items/",
            json={"name": name, "weight": weight, "maxScore": max_score, "courseId": course_id or course["id"]},
        )
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]

    return _make


@pytest.fixture
def make_group(client, course):
    def _make(student_pks, roles=None, course_id=None):
        roles = roles or {}
        resp = client.post(
            "/api/groups/",
            json={
                "courseId": course_id or course["id"],
                "students": [{"studentId": pk, "role": roles.get(pk)} for pk in student_pks],
            },
        )
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]

    return _make


def xlsx_bytes(rows, title="Sheet1"):
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx():
    return xlsx_bytes


def xls_bytes(rows, title="Sheet1"):
    workbook = xlwt.Workbook(encoding="utf-8")
    sheet = workbook.add_sheet(title)
    for row_index, row in enumerate(rows):
        for col_index, value in enumerate(row):
            if value is not None:
                sheet.write(row_index, col_index, value)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xls():
    return xls_bytes
