def test_create_and_list_courses(client):
    resp = client.post("/api/courses/", json={"name": "  Animation  ", "code": "AN101", "description": ""})
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["name"] == "Animation"
    assert body["data"]["description"] is None

    listing = client.get("/api/courses/").json()["data"]
    assert [c["name"] for c in listing] == ["Animation"]
    assert listing[0]["counts"] == {"students": 0, "groups": 0, "gradeItems": 0}


def test_duplicate_course_name_is_conflict(client, course):
    resp = client.post("/api/courses/", json={"name": course["name"]})
    assert resp.status_code == 400
    body = resp.json()
    assert body["field"] == "name"
    assert "error" in body


def test_course_name_required(client):
    resp = client.post("/api/courses/", json={"code": "X1"})
    assert resp.status_code == 400
    assert "name" in resp.json()["details"]


def test_course_counts(client, course, make_student, make_grade_item):
    make_student("S001")
    make_student("S002")
    make_grade_item("Midterm")
    listing = client.get("/api/courses/").json()["data"]
    assert listing[0]["counts"] == {"students": 2, "groups": 0, "gradeItems": 1}


def test_read_course_not_found(client):
    resp = client.get("/api/courses/999")
    assert resp.status_code == 404
    assert resp.json()["error"]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
