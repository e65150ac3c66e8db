"""Tests for subject reservations and the pending grade rows they open."""

from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel


class TestReserve:
    def test_reservation_opens_pending_grade(
        self, encoder_client, db, users, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        subject = make_subject(course, "PROG1")
        student = make_student(course)

        resp = encoder_client.post(
            "/api/reservations", json={"studentId": student.id, "subjectId": subject.id}
        )

        assert resp.status_code == 201
        assert resp.json()["status"] == "reserved"
        assert resp.json()["subject"]["code"] == "PROG1"
        grade = db.query(GradeModel).one()
        assert grade.student_id == student.id
        assert grade.course_id == course.id
        assert grade.final_grade is None
        assert grade.remarks is None
        assert grade.encoded_by_user_id == users["encoder"].id

    def test_subject_from_another_course(
        self, encoder_client, db, make_course, make_subject, make_student
    ):
        student = make_student(make_course("BSCS"))
        foreign = make_subject(make_course("BSIT"), "IT1")

        resp = encoder_client.post(
            "/api/reservations", json={"studentId": student.id, "subjectId": foreign.id}
        )

        assert resp.status_code == 400
        assert db.query(SubjectReservationModel).count() == 0
        assert db.query(GradeModel).count() == 0

    def test_duplicate_reservation(self, encoder_client, make_course, make_subject, make_student):
        course = make_course("BSCS")
        body = {
            "studentId": make_student(course).id,
            "subjectId": make_subject(course).id,
        }
        assert encoder_client.post("/api/reservations", json=body).status_code == 201
        resp = encoder_client.post("/api/reservations", json=body)
        assert resp.status_code == 409
        assert resp.json() == {"error": "Subject already reserved"}

    def test_unknown_subject(self, encoder_client, make_course, make_student):
        student = make_student(make_course("BSCS"))
        resp = encoder_client.post(
            "/api/reservations", json={"studentId": student.id, "subjectId": "nope"}
        )
        assert resp.status_code == 404

    def test_existing_grade_is_kept(
        self, encoder_client, db, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        subject = make_subject(course)
        student = make_student(course)
        encoder_client.post(
            "/api/grades",
            json={
                "studentId": student.id,
                "subjectId": subject.id,
                "courseId": course.id,
                "prelim": 2,
                "midterm": 2,
                "finals": 2,
            },
        )

        encoder_client.post(
            "/api/reservations", json={"studentId": student.id, "subjectId": subject.id}
        )

        grade = db.query(GradeModel).one()
        assert grade.final_grade == 2.0


class TestReservationLifecycle:
    def _reserve(self, client, make_course, make_subject, make_student):
        course = make_course("BSCS")
        subject = make_subject(course, "PROG1")
        make_subject(course, "PROG2")
        student = make_student(course)
        resp = client.post(
            "/api/reservations", json={"studentId": student.id, "subjectId": subject.id}
        )
        return student.id, resp.json()["id"]

    def test_available_subjects_exclude_reserved(
        self, encoder_client, make_course, make_subject, make_student
    ):
        student_id, _ = self._reserve(encoder_client, make_course, make_subject, make_student)
        resp = encoder_client.get(f"/api/reservations/available/{student_id}")
        assert [s["code"] for s in resp.json()] == ["PROG2"]

    def test_list_student_reservations(
        self, encoder_client, make_course, make_subject, make_student
    ):
        student_id, reservation_id = self._reserve(
            encoder_client, make_course, make_subject, make_student
        )
        resp = encoder_client.get(f"/api/reservations/student/{student_id}")
        assert [r["id"] for r in resp.json()] == [reservation_id]

    def test_cancel(self, encoder_client, make_course, make_subject, make_student):
        _, reservation_id = self._reserve(
            encoder_client, make_course, make_subject, make_student
        )
        resp = encoder_client.patch(f"/api/reservations/{reservation_id}/cancel")
        assert resp.json()["status"] == "cancelled"

    def test_delete_removes_grade_row(
        self, encoder_client, db, make_course, make_subject, make_student
    ):
        _, reservation_id = self._reserve(
            encoder_client, make_course, make_subject, make_student
        )
        resp = encoder_client.delete(f"/api/reservations/{reservation_id}")
        assert resp.status_code == 200
        assert db.query(SubjectReservationModel).count() == 0
        assert db.query(GradeModel).count() == 0

    def test_delete_unknown(self, encoder_client):
        assert encoder_client.delete("/api/reservations/nope").status_code == 404
