def test_create_student_defaults_class(client, course):
    resp = client.post("/api/students/", json={"name": "Wang", "studentId": "S001", "courseId": course["id"]})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["class"] == "A"
    assert data["studentId"] == "S001"
    assert data["courseId"] == course["id"]


def test_student_id_unique_within_course(client, course, make_student):
    make_student("S001")
    resp = client.post("/api/students/", json={"name": "Other", "studentId": "S001", "courseId": course["id"]})
    assert resp.status_code == 400
    assert resp.json()["field"] == "studentId"


def test_same_student_id_in_another_course(client, make_student):
    other = client.post("/api/courses/", json={"name": "Modeling"}).json()["data"]
    make_student("S001")
    make_student("S001", course_id=other["id"])

    all_students = client.get("/api/students/").json()["data"]
    assert len(all_students) == 2
    only_other = client.get("/api/students/", params={"courseId": other["id"]}).json()["data"]
    assert [s["courseId"] for s in only_other] == [other["id"]]


def test_create_student_unknown_course(client):
    resp = client.post("/api/students/", json={"name": "Wang", "studentId": "S001", "courseId": 42})
    assert resp.status_code == 404


def test_create_student_requires_fields(client, course):
    resp = client.post("/api/students/", json={"studentId": "S001", "courseId": course["id"]})
    assert resp.status_code == 400


def test_filter_by_class(client, make_student):
    make_student("S001", **{"class": "A"})
    make_student("S002", **{"class": "B"})
    data = client.get("/api/students/", params={"class": "B"}).json()["data"]
    assert [s["studentId"] for s in data] == ["S002"]


def test_update_student(client, make_student):
    student = make_student("S001", email="old@example.com")
    resp = client.put(
        f"/api/students/{student['id']}",
        json={"name": "Renamed", "studentId": "S001", "email": ""},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Renamed"
    assert data["email"] is None
    assert data["class"] == "A"


def test_update_student_conflict(client, make_student):
    make_student("S001")
    second = make_student("S002")
    resp = client.put(f"/api/students/{second['id']}", json={"name": "X", "studentId": "S001"})
    assert resp.status_code == 400
    assert resp.json()["field"] == "studentId"


def test_read_student_detail(client, make_student, make_grade_item, make_group):
    student = make_student("S001")
    item = make_grade_item("Midterm")
    group = make_group([student["id"]], roles={student["id"]: "director"})
    client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 77})

    data = client.get(f"/api/students/{student['id']}").json()["data"]
    assert data["groups"] == [{"groupId": group["id"], "groupName": "Group 1", "role": "director"}]
    assert data["grades"][0]["gradeItemName"] == "Midterm"
    assert data["grades"][0]["score"] == 77


def test_delete_student_cascades(client, make_student, make_grade_item, make_group):
    student = make_student("S001")
    first = make_grade_item("Midterm")
    second = make_grade_item("Final")
    make_group([student["id"]])
    for item in (first, second):
        client.post("/api/grades/", json={"studentId": student["id"], "gradeItemId": item["id"], "score": 50})

    resp = client.delete(f"/api/students/{student['id']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["deletedGradesCount"] == 2
    assert data["deletedMembershipsCount"] == 1
    assert client.get("/api/grades/").json()["data"] == []
    assert client.get(f"/api/students/{student['id']}").status_code == 404


def test_delete_missing_student(client):
    assert client.delete("/api/students/123").status_code == 404
