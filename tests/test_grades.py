import pytest
from sqlalchemy.exc import SQLAlchemyError

from models.courses import Course
from models.grade_items import GradeItem
from models.grades import Grade
from models.students import Student
from services import grade_service
from services.grade_service import upsert_grade


def test_record_grade_upserts(client, db, make_student, make_grade_item):
    student = make_student("S001")
    item = make_grade_item("Midterm")

    first = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 70})
    assert first.status_code == 201
    second = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 85.5})
    assert second.status_code == 201

    data = second.json()["data"]
    assert data["id"] == first.json()["data"]["id"]
    assert data["score"] == 85.5
    assert data["student"]["studentId"] == "S001"
    assert data["gradeItem"]["name"] == "Midterm"
    assert db.query(Grade).count() == 1


@pytest.mark.parametrize("score", [-1, 100.5])
def test_record_grade_rejects_out_of_range(client, db, make_student, make_grade_item, score):
    student = make_student("S001")
    item = make_grade_item("Midterm")
    resp = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": score})
    assert resp.status_code == 400
    assert db.query(Grade).count() == 0


def test_record_grade_requires_score(client, make_student, make_grade_item):
    student = make_student("S001")
    item = make_grade_item("Midterm")
    resp = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"]})
    assert resp.status_code == 400


def test_record_grade_missing_references(client, make_student, make_grade_item):
    student = make_student("S001")
    item = make_grade_item("Midterm")
    no_student = client.post("/api/grades/", json={"studentId": 999, "gradeItemId": item["id"], "score": 1})
    no_item = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": 999, "score": 1})
    assert no_student.status_code == 404
    assert no_item.status_code == 404


def test_record_grade_rejects_other_course_item(client, make_student, make_grade_item):
    other = client.post("/api/courses/", json={"name": "Modeling"}).json()["data"]
    student = make_student("S001")
    item = make_grade_item("Midterm", course_id=other["id"])
    resp = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 50})
    assert resp.status_code == 400


def test_list_grades_by_course(client, make_student, make_grade_item):
    other = client.post("/api/courses/", json={"name": "Modeling"}).json()["data"]
    mine = make_student("S001")
    theirs = make_student("S001", course_id=other["id"])
    item = make_grade_item("Midterm")
    other_item = make_grade_item("Midterm", course_id=other["id"])
    client.post("/api/grades/", json={"studentId": mine["id"], "gradeItemId": item["id"], "score": 60})
    client.post("/api/grades/", json={"studentId": theirs["id"], "gradeItemId": other_item["id"], "score": 70})

    assert len(client.get("/api/grades/").json()["data"]) == 2
    filtered = client.get("/api/grades/", params={"courseId": other["id"]}).json()["data"]
    assert [g["score"] for g in filtered] == [70]


def test_group_grade_scores_every_member(client, db, make_student, make_group, make_grade_item):
    students = [make_student(f"S00{i}") for i in range(1, 4)]
    group = make_group([s["id"] for s in students])
    item = make_grade_item("Project", max_score=50)

    # 기존 점수는 덮어씀
    client.post("/api/grades/", json={"studentId": students[0]["id"], "gradeItemId": item["id"], "score": 10})

    resp = client.post("/api/grades/group", json={"groupId": group["id"], "gradeItemId": item["id"], "score": 45})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data == {"affectedStudents": 3, "groupName": "Group 1", "gradeItemName": "Project", "score": 45}

    scores = sorted(g.score for g in db.query(Grade).all())
    assert scores == [45, 45, 45]


def test_group_grade_over_max_writes_nothing(client, db, make_student, make_group, make_grade_item):
    group = make_group([make_student("S001")["id"], make_student("S002")["id"]])
    item = make_grade_item("Project", max_score=50)

    resp = client.post("/api/grades/group", json={"groupId": group["id"], "gradeItemId": item["id"], "score": 60})
    assert resp.status_code == 400
    assert db.query(Grade).count() == 0


def test_group_grade_empty_group(client, db, make_student, make_group, make_grade_item):
    group = make_group([make_student("S001")["id"]])
    client.post(f"/api/groups/{group['id']}/students", json={"students": []})
    item = make_grade_item("Project")

    resp = client.post("/api/grades/group", json={"groupId": group["id"], "gradeItemId": item["id"], "score": 80})
    assert resp.status_code == 400
    assert db.query(Grade).count() == 0


def test_group_grade_missing_references(client, make_student, make_group, make_grade_item):
    group = make_group([make_student("S001")["id"]])
    item = make_grade_item("Project")
    assert client.post("/api/grades/group", json={"groupId": 999, "gradeItemId": item["id"], "score": 1}).status_code == 404
    assert client.post("/api/grades/group", json={"groupId": group["id"], "gradeItemId": 999, "score": 1}).status_code == 404


def test_course_summary_weighted_totals(client, course, make_student, make_grade_item):
    alice = make_student("S001", name="Alice")
    bob = make_student("S002", name="Bob")
    make_student("S003", name="Carol")
    midterm = make_grade_item("Midterm", weight=0.4, max_score=50)
    final = make_grade_item("Final", weight=0.6, max_score=100)

    client.post("/api/grades/", json={"studentId": alice["id"], "gradeItemId": midterm["id"], "score": 40})
    client.post("/api/grades/", json={"studentId": alice["id"], "gradeItemId": final["id"], "score": 90})
    # Bob은 중간고사만 입력
    client.post("/api/grades/", json={"studentId": bob["id"], "gradeItemId": midterm["id"], "score": 36})

    resp = client.get("/api/grades/summary", params={"courseId": course["id"]})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [i["name"] for i in data["gradeItems"]] == ["Midterm", "Final"]

    rows = {row["student"]["studentId"]: row for row in data["students"]}
    # (80*0.4 + 90*0.6) / 1.0
    assert rows["S001"]["totalScore"] == 86.0
    assert rows["S001"]["letter"] == "B"
    assert rows["S002"]["totalScore"] == 72.0
    assert rows["S002"]["letter"] == "C"
    assert rows["S003"]["totalScore"] == 0.0
    assert rows["S003"]["letter"] == "F"
    assert rows["S001"]["grades"] == {str(midterm["id"]): 40.0, str(final["id"]): 90.0}


def test_course_summary_unknown_course(client):
    assert client.get("/api/grades/summary", params={"courseId": 999}).status_code == 404


def test_upsert_last_writer_wins_across_sessions(database, db):
    course = Course(name="Animation")
    db.add(course)
    db.commit()
    student = Student(student_id="S001", name="Wang", course_id=course.id)
    item = GradeItem(name="Midterm", weight=1.0, max_score=100, course_id=course.id)
    db.add_all([student, item])
    db.commit()

    first, second = database.session(), database.session()
    try:
        # 두 세션 모두 첫 입력으로 보고 쓰기, 커밋은 그 다음
        upsert_grade(first, student.id, item.id, 70)
        upsert_grade(second, student.id, item.id, 90)
        first.commit()
        second.commit()
    finally:
        first.close()
        second.close()

    db.expire_all()
    grades = db.query(Grade).all()
    assert [(g.student_id, g.score) for g in grades] == [(student.id, 90.0)]


def test_group_grade_storage_failure_rolls_back(client, db, monkeypatch, make_student, make_group, make_grade_item):
    group = make_group([make_student("S001")["id"], make_student("S002")["id"]])
    item = make_grade_item("Project")

    real_upsert = grade_service.upsert_grade
    calls = []

    def flaky_upsert(*args, **kwargs):
        calls.append(args)
        if len(calls) == 2:
            raise SQLAlchemyError("disk I/O error")
        return real_upsert(*args, **kwargs)

    monkeypatch.setattr(grade_service, "upsert_grade", flaky_upsert)

    resp = client.post("/api/grades/group", json={"groupId": group["id"], "gradeItemId": item["id"], "score": 80})
    assert resp.status_code == 500
    assert resp.json()["error"].startswith("분조 성적을 저장하지 못했습니다")
    assert "disk I/O error" in resp.json()["details"]
    assert db.query(Grade).count() == 0


def test_record_grade_storage_failure(client, monkeypatch, make_student, make_grade_item):
    student = make_student("S001")
    item = make_grade_item("Midterm")

    def broken_upsert(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(grade_service, "upsert_grade", broken_upsert)
    resp = client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 50})
    assert resp.status_code == 500
    assert resp.json()["error"] == "성적을 저장하지 못했습니다"
