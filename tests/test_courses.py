"""Tests for course routes: CRUD, code checks, cascading and bulk deletes."""

from sis_portal.models.course import CourseModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.models.subject import SubjectModel
from sis_portal.utils.reservation_manager import ReservationManager


def _counts(db):
    return {
        "courses": db.query(CourseModel).count(),
        "subjects": db.query(SubjectModel).count(),
        "students": db.query(StudentModel).count(),
        "reservations": db.query(SubjectReservationModel).count(),
        "grades": db.query(GradeModel).count(),
    }


class TestCourseCrud:
    def test_create_course_uppercases_code(self, admin_client):
        resp = admin_client.post(
            "/api/courses", json={"code": " bsit ", "name": "Information Technology"}
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["code"] == "BSIT"
        assert data["studentCount"] == 0
        assert data["subjectCount"] == 0

    def test_duplicate_code_conflicts(self, admin_client, make_course):
        make_course("BSCS")
        resp = admin_client.post("/api/courses", json={"code": "bscs", "name": "Again"})
        assert resp.status_code == 409
        assert resp.json() == {"error": "Course code already exists"}

    def test_encoder_cannot_create_course(self, encoder_client):
        resp = encoder_client.post("/api/courses", json={"code": "X", "name": "X"})
        assert resp.status_code == 403

    def test_missing_name_is_400(self, admin_client):
        resp = admin_client.post("/api/courses", json={"code": "BSCS"})
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_check_code(self, admin_client, make_course):
        make_course("BSCS")
        assert admin_client.get("/api/courses/check-code?code=bscs").json() == {"exists": True}
        assert admin_client.get("/api/courses/check-code?code=BSXX").json() == {"exists": False}

    def test_list_with_counts_and_search(
        self, admin_client, make_course, make_subject, make_student
    ):
        cs = make_course("BSCS", "Computer Science")
        make_course("BSIT", "Information Technology")
        make_subject(cs, "PROG1")
        make_student(cs)

        resp = admin_client.get("/api/courses?page=1&limit=10")
        data = resp.json()
        assert data["total"] == 2
        assert data["totalPages"] == 1
        assert [c["code"] for c in data["items"]] == ["BSCS", "BSIT"]
        assert data["items"][0]["studentCount"] == 1
        assert data["items"][0]["subjectCount"] == 1

        resp = admin_client.get("/api/courses?search=information")
        assert [c["code"] for c in resp.json()["items"]] == ["BSIT"]

    def test_get_course_includes_subjects(self, encoder_client, make_course, make_subject):
        course = make_course("BSCS")
        make_subject(course, "PROG1")
        resp = encoder_client.get(f"/api/courses/{course.id}")
        assert resp.status_code == 200
        assert [s["code"] for s in resp.json()["subjects"]] == ["PROG1"]

    def test_get_unknown_course(self, admin_client):
        resp = admin_client.get("/api/courses/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Course not found"}

    def test_update_course(self, admin_client, make_course):
        course = make_course("BSCS")
        resp = admin_client.patch(
            f"/api/courses/{course.id}", json={"name": "Renamed", "description": "New"}
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert resp.json()["description"] == "New"
        assert resp.json()["code"] == "BSCS"


class TestCourseDelete:
    def _populated_course(self, db, make_course, make_subject, make_student):
        course = make_course("BSCS")
        subject = make_subject(course, "PROG1")
        student = make_student(course)
        ReservationManager(db).create_reservation(student.id, subject.id)
        return course.id

    def test_delete_empty_course(self, admin_client, db, make_course):
        course_id = make_course("BSCS").id
        resp = admin_client.delete(f"/api/courses/{course_id}")
        assert resp.status_code == 200
        assert db.query(CourseModel).count() == 0

    def test_delete_with_dependents_without_force_conflicts(
        self, admin_client, db, make_course, make_subject, make_student
    ):
        course_id = self._populated_course(db, make_course, make_subject, make_student)
        before = _counts(db)

        resp = admin_client.delete(f"/api/courses/{course_id}")

        assert resp.status_code == 409
        assert resp.json()["error"] == (
            "Cannot delete course BSCS because it has students or subjects."
        )
        assert _counts(db) == before

    def test_force_delete_removes_everything(
        self, admin_client, db, make_course, make_subject, make_student
    ):
        course_id = self._populated_course(db, make_course, make_subject, make_student)
        other = make_course("BSIT")
        other_id = other.id
        make_student(other, first_name="Other")

        resp = admin_client.delete(f"/api/courses/{course_id}?force=true")

        assert resp.status_code == 200
        assert _counts(db) == {
            "courses": 1,
            "subjects": 0,
            "students": 1,
            "reservations": 0,
            "grades": 0,
        }
        assert db.query(CourseModel.id).scalar() == other_id

    def test_delete_unknown_course(self, admin_client):
        assert admin_client.delete("/api/courses/nope").status_code == 404

    def test_bulk_delete_skips_courses_with_dependents(
        self, admin_client, db, make_course, make_student
    ):
        empty_ids = [make_course("EMPTY1").id, make_course("EMPTY2").id]
        busy = make_course("BUSY")
        busy_id = busy.id
        make_student(busy)

        resp = admin_client.request(
            "DELETE", "/api/courses/bulk", json={"ids": empty_ids + [busy_id]}
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "count": 2,
            "skippedCount": 1,
            "skippedCodes": ["BUSY"],
        }
        assert db.query(CourseModel.id).scalar() == busy_id
        assert db.query(StudentModel).count() == 1

    def test_bulk_force_delete(self, admin_client, db, make_course, make_student):
        first, second = make_course("A1"), make_course("A2")
        ids = [first.id, second.id]
        make_student(first)

        resp = admin_client.request(
            "DELETE", "/api/courses/bulk", json={"ids": ids, "force": True}
        )

        assert resp.json()["count"] == 2
        assert resp.json()["skippedCount"] == 0
        assert db.query(CourseModel).count() == 0
        assert db.query(StudentModel).count() == 0

    def test_bulk_delete_requires_ids(self, admin_client):
        resp = admin_client.request("DELETE", "/api/courses/bulk", json={"ids": []})
        assert resp.status_code == 400
