"""Tests for user administration: invitations, encoder listing, status and deletion."""

import logging

from sis_portal import config
from sis_portal.models.audit_log import AuditLogModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.invitation import InvitationModel
from sis_portal.models.user import UserModel
from sis_portal.utils.email_service import EmailDeliveryError, EmailService

from conftest import ADMIN_EMAIL, ENCODER_EMAIL


class TestInvite:
    def test_invite_logs_email_with_link(self, admin_client, db, caplog):
        with caplog.at_level(logging.INFO, logger="sis_portal.utils.email_service"):
            resp = admin_client.post("/api/users/invite", json={"email": "new@test.com"})

        assert resp.status_code == 201
        assert resp.json() == {"message": "Invitation sent successfully"}
        invitation = db.query(InvitationModel).one()
        assert invitation.role == "encoder"
        assert f"/verify-invite?token={invitation.token}" in caplog.text

    def test_invite_is_audited(self, admin_client, db, users):
        admin_client.post("/api/users/invite", json={"email": "new@test.com"})
        entry = db.query(AuditLogModel).filter(AuditLogModel.action == "INVITE_USER").one()
        assert entry.user_id == users["admin"].id

    def test_invite_existing_user(self, admin_client):
        resp = admin_client.post("/api/users/invite", json={"email": ENCODER_EMAIL})
        assert resp.status_code == 409

    def test_invite_bad_email(self, admin_client):
        resp = admin_client.post("/api/users/invite", json={"email": "not-an-email"})
        assert resp.status_code == 400

    def test_encoder_cannot_invite(self, encoder_client):
        resp = encoder_client.post("/api/users/invite", json={"email": "new@test.com"})
        assert resp.status_code == 403

    def test_smtp_failure_is_reported(self, admin_client, monkeypatch):
        def _fail(to, subject, body_html):
            raise EmailDeliveryError()

        monkeypatch.setattr(config, "EMAIL_BACKEND", "smtp")
        monkeypatch.setattr(EmailService, "_do_send", staticmethod(_fail))

        resp = admin_client.post("/api/users/invite", json={"email": "new@test.com"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to send invitation email"}

    def test_list_and_revoke_invitations(self, admin_client, db):
        admin_client.post("/api/users/invite", json={"email": "a@test.com"})
        admin_client.post("/api/users/invite", json={"email": "b@test.com"})

        listed = admin_client.get("/api/users/invitations").json()
        assert sorted(item["email"] for item in listed) == ["a@test.com", "b@test.com"]
        assert "token" not in listed[0]

        resp = admin_client.delete(f"/api/users/invitations/{listed[0]['id']}")
        assert resp.status_code == 200
        assert db.query(InvitationModel).count() == 1

    def test_revoke_unknown(self, admin_client):
        assert admin_client.delete("/api/users/invitations/nope").status_code == 404


class TestEncoders:
    def test_list_encoders_with_grade_counts(
        self, admin_client, db, users, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        subject = make_subject(course)
        student = make_student(course)
        db.add(
            GradeModel(
                student_id=student.id,
                subject_id=subject.id,
                course_id=course.id,
                encoded_by_user_id=users["encoder"].id,
            )
        )
        db.commit()

        resp = admin_client.get("/api/users/encoders")

        assert resp.status_code == 200
        data = resp.json()
        assert [item["email"] for item in data] == [ENCODER_EMAIL]
        assert data[0]["gradeCount"] == 1
        assert "passwordHash" not in data[0]

    def test_deactivate_and_reactivate(self, admin_client, users):
        encoder_id = users["encoder"].id
        resp = admin_client.patch(f"/api/users/{encoder_id}/status", json={"isActive": False})
        assert resp.json() == {"id": encoder_id, "email": ENCODER_EMAIL, "isActive": False}

        resp = admin_client.patch(f"/api/users/{encoder_id}/status", json={"isActive": True})
        assert resp.json()["isActive"] is True

    def test_delete_encoder_without_grades(self, admin_client, db, users):
        encoder_id = users["encoder"].id
        resp = admin_client.delete(f"/api/users/{encoder_id}")
        assert resp.status_code == 200
        assert db.query(UserModel).filter(UserModel.id == encoder_id).first() is None

    def test_delete_encoder_with_grades_refused(
        self, admin_client, db, users, make_course, make_subject, make_student
    ):
        course = make_course("BSCS")
        db.add(
            GradeModel(
                student_id=make_student(course).id,
                subject_id=make_subject(course).id,
                course_id=course.id,
                encoded_by_user_id=users["encoder"].id,
            )
        )
        db.commit()

        resp = admin_client.delete(f"/api/users/{users['encoder'].id}")

        assert resp.status_code == 409
        assert "Deactivate them instead" in resp.json()["error"]

    def test_admin_cannot_be_deleted(self, admin_client, db, users):
        resp = admin_client.delete(f"/api/users/{users['admin'].id}")
        assert resp.status_code == 409
        assert db.query(UserModel).filter(UserModel.email == ADMIN_EMAIL).count() == 1
