"""Tests for dashboard counters, the audit log routes and seeding."""

from sis_portal.models.course import CourseModel
from sis_portal.models.subject import SubjectModel
from sis_portal.models.user import UserModel
from sis_portal.seed import COURSES, SUBJECTS, seed
from sis_portal.utils.reservation_manager import ReservationManager


class TestStats:
    def test_counters(self, encoder_client, db, make_course, make_subject, make_student):
        course = make_course("BSCS")
        subject = make_subject(course)
        student = make_student(course)
        make_student(course, first_name="John")
        ReservationManager(db).create_reservation(student.id, subject.id)

        resp = encoder_client.get("/api/stats")

        assert resp.json() == {
            "students": 2,
            "courses": 1,
            "subjects": 1,
            "users": 2,
            "reservations": 1,
        }

    def test_students_per_course(self, encoder_client, make_course, make_student):
        cs = make_course("BSCS")
        make_course("BSIT")
        make_student(cs)

        resp = encoder_client.get("/api/stats/courses")

        assert [(c["code"], c["studentCount"]) for c in resp.json()] == [
            ("BSCS", 1),
            ("BSIT", 0),
        ]

    def test_requires_login(self, client):
        assert client.get("/api/stats").status_code == 401


class TestAuditLog:
    def test_entries_newest_first_with_actor(self, admin_client, users):
        admin_client.post("/api/courses", json={"code": "A1", "name": "First"})
        admin_client.post("/api/courses", json={"code": "B2", "name": "Second"})

        resp = admin_client.get("/api/audit")

        entries = resp.json()
        assert [e["details"]["code"] for e in entries] == ["B2", "A1"]
        assert entries[0]["action"] == "CREATE_COURSE"
        assert entries[0]["user"] == {"email": users["admin"].email, "role": "admin"}

    def test_limit_and_entity_filter(self, admin_client):
        course_id = admin_client.post(
            "/api/courses", json={"code": "A1", "name": "First"}
        ).json()["id"]
        admin_client.patch(f"/api/courses/{course_id}", json={"name": "Renamed"})
        admin_client.post("/api/courses", json={"code": "B2", "name": "Second"})

        assert len(admin_client.get("/api/audit", params={"limit": 1}).json()) == 1
        by_entity = admin_client.get("/api/audit", params={"entityId": course_id}).json()
        assert [e["action"] for e in by_entity] == ["UPDATE_COURSE", "CREATE_COURSE"]


class TestSeed:
    def test_seed_creates_defaults(self, db):
        created = seed(db)
        assert created == {
            "users": 2,
            "courses": len(COURSES),
            "subjects": len(COURSES) * len(SUBJECTS),
        }
        assert db.query(UserModel).count() == 2

    def test_seed_is_idempotent(self, db):
        seed(db)
        assert seed(db) == {"users": 0, "courses": 0, "subjects": 0}
        assert db.query(CourseModel).count() == len(COURSES)
        assert db.query(SubjectModel).count() == len(COURSES) * len(SUBJECTS)
