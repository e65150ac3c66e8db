"""Tests for student routes: numbering, search, import, and deletes that cascade."""

from datetime import datetime

import pytz

from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.utils.reservation_manager import ReservationManager
from sis_portal.utils.student_manager import StudentManager


def _student_body(course_id, **overrides):
    body = {
        "firstName": "Juan",
        "lastName": "Dela Cruz",
        "birthDate": "2003-01-31",
        "courseId": course_id,
    }
    body.update(overrides)
    return body


class TestStudentNumbers:
    def test_generated_number_uses_current_year(self, admin_client, make_course):
        course = make_course("BSCS")
        resp = admin_client.post("/api/students", json=_student_body(course.id))
        assert resp.status_code == 201
        year = datetime.now(pytz.utc).year
        assert resp.json()["studentNo"] == f"{year}-0001"

    def test_generated_numbers_increase(self, db, make_course, make_student):
        course = make_course("BSCS")
        make_student(course, student_no="2030-0041")
        make_student(course, student_no="2030-0007")
        assert StudentManager(db).next_student_no(2030) == "2030-0042"
        assert StudentManager(db).next_student_no(2031) == "2031-0001"

    def test_duplicate_number_conflicts(self, admin_client, make_course, make_student):
        course = make_course("BSCS")
        make_student(course, student_no="2024-0001")
        resp = admin_client.post(
            "/api/students", json=_student_body(course.id, studentNo="2024-0001")
        )
        assert resp.status_code == 409
        assert resp.json() == {"error": "Student number already exists"}


class TestStudentCrud:
    def test_encoder_can_create(self, encoder_client, make_course):
        course = make_course("BSCS")
        resp = encoder_client.post("/api/students", json=_student_body(course.id))
        assert resp.status_code == 201
        assert resp.json()["course"]["code"] == "BSCS"
        assert resp.json()["birthDate"] == "2003-01-31"

    def test_unknown_course(self, admin_client):
        resp = admin_client.post("/api/students", json=_student_body("nope"))
        assert resp.status_code == 404

    def test_invalid_birth_date(self, admin_client, make_course):
        course = make_course("BSCS")
        resp = admin_client.post(
            "/api/students", json=_student_body(course.id, birthDate="31/01/2003")
        )
        assert resp.status_code == 400

    def test_update_moves_course(self, encoder_client, make_course, make_student):
        student = make_student(make_course("BSCS"))
        other = make_course("BSIT")
        resp = encoder_client.patch(
            f"/api/students/{student.id}", json={"courseId": other.id, "email": "j@x.com"}
        )
        assert resp.status_code == 200
        assert resp.json()["course"]["code"] == "BSIT"
        assert resp.json()["email"] == "j@x.com"

    def test_detail_includes_reservations_and_grades(
        self, admin_client, db, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        subject = make_subject(course, "PROG1")
        student = make_student(course)
        ReservationManager(db).create_reservation(student.id, subject.id)

        data = admin_client.get(f"/api/students/{student.id}").json()

        assert [r["subject"]["code"] for r in data["reservations"]] == ["PROG1"]
        assert len(data["grades"]) == 1
        assert data["grades"][0]["finalGrade"] is None

    def test_count(self, encoder_client, make_course, make_student):
        course = make_course("BSCS")
        make_student(course)
        make_student(course, first_name="John")
        assert encoder_client.get("/api/students/count").json() == {"count": 2}


class TestStudentSearch:
    def test_every_word_must_match(self, admin_client, make_course, make_student):
        course = make_course("BSCS", "Computer Science")
        make_student(course, first_name="Jane", last_name="Doe")
        make_student(course, first_name="Jane", last_name="Smith")

        resp = admin_client.get("/api/students", params={"search": "doe jane"})
        names = [(s["firstName"], s["lastName"]) for s in resp.json()["items"]]
        assert names == [("Jane", "Doe")]

    def test_search_by_course_code(self, admin_client, make_course, make_student):
        make_student(make_course("BSCS"), first_name="Ana")
        make_student(make_course("BSIT"), first_name="Ben")

        resp = admin_client.get("/api/students", params={"search": "bsit"})
        assert [s["firstName"] for s in resp.json()["items"]] == ["Ben"]

    def test_pagination(self, admin_client, make_course, make_student):
        course = make_course("BSCS")
        for index in range(3):
            make_student(course, first_name=f"S{index}")

        data = admin_client.get("/api/students", params={"page": 2, "limit": 2}).json()
        assert data["total"] == 3
        assert data["totalPages"] == 2
        assert len(data["items"]) == 1


class TestStudentImport:
    def test_reports_failed_rows_by_sheet_row(self, admin_client, db, make_course, make_student):
        make_course("BSCPE", "Computer Engineering")
        existing = make_student(make_course("BSCS"), student_no="2024-0001")
        rows = [
            {
                "firstName": "A",
                "lastName": "One",
                "birthDate": "2004-02-01",
                "course": "bscpe",
            },
            {
                "firstName": "B",
                "lastName": "Two",
                "birthDate": "2004-02-02",
                "course": "Computer Engineering",
                "studentNo": "2024-0009",
            },
            {
                "firstName": "C",
                "lastName": "Three",
                "birthDate": "2004-02-03",
                "course": "Underwater Basketry",
            },
            {
                "firstName": "D",
                "lastName": "Four",
                "birthDate": "2004-02-04",
                "course": "BSCPE",
                "studentNo": existing.student_no,
            },
        ]

        resp = admin_client.post("/api/students/import", json={"students": rows})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] == 2
        assert data["failed"] == 2
        assert [e["row"] for e in data["errors"]] == [4, 5]
        assert "Course not found" in data["errors"][0]["error"]
        assert data["errors"][1]["studentNo"] == "2024-0001"
        assert db.query(StudentModel).count() == 3

    def test_empty_import(self, admin_client):
        resp = admin_client.post("/api/students/import", json={"students": []})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No students data provided"}

    def test_encoder_cannot_import(self, encoder_client):
        resp = encoder_client.post("/api/students/import", json={"students": []})
        assert resp.status_code == 403


class TestStudentDelete:
    def test_delete_removes_reservations_and_grades(
        self, admin_client, db, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        subject = make_subject(course, "PROG1")
        student_id = make_student(course).id
        ReservationManager(db).create_reservation(student_id, subject.id)

        resp = admin_client.delete(f"/api/students/{student_id}")

        assert resp.status_code == 200
        assert db.query(StudentModel).count() == 0
        assert db.query(SubjectReservationModel).count() == 0
        assert db.query(GradeModel).count() == 0

    def test_encoder_cannot_delete(self, encoder_client, make_course, make_student):
        student = make_student(make_course("BSCS"))
        assert encoder_client.delete(f"/api/students/{student.id}").status_code == 403

    def test_bulk_delete(self, admin_client, db, make_course, make_student):
        course = make_course("BSCS")
        ids = [make_student(course, first_name=name).id for name in ("A", "B", "C")]

        resp = admin_client.request(
            "DELETE", "/api/students/bulk", json={"ids": ids[:2] + ["unknown"]}
        )

        assert resp.json()["count"] == 2
        assert db.query(StudentModel.id).scalar() == ids[2]
