"""Subject reservation utilities.

Reserving a subject also opens a pending grade row for the student so the
subject shows up on the grading sheet. Deleting the reservation removes it.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from sis_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.models.subject import SubjectModel
from sis_portal.utils.audit_manager import AuditManager

logger = logging.getLogger(__name__)

STATUS_RESERVED = "reserved"
STATUS_CANCELLED = "cancelled"


class ReservationManager:
    """Manages subject reservations."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditManager(db)

    def _get_student(self, student_id: str) -> StudentModel:
        student = self.db.query(StudentModel).filter(StudentModel.id == student_id).first()
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    def get_reservation(self, reservation_id: str) -> SubjectReservationModel:
        model = (
            self.db.query(SubjectReservationModel)
            .options(joinedload(SubjectReservationModel.subject))
            .filter(SubjectReservationModel.id == reservation_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Reservation", reservation_id)
        return model

    def list_by_student(self, student_id: str) -> List[SubjectReservationModel]:
        return (
            self.db.query(SubjectReservationModel)
            .options(joinedload(SubjectReservationModel.subject))
            .filter(SubjectReservationModel.student_id == student_id)
            .order_by(SubjectReservationModel.reserved_at.desc())
            .all()
        )

    def list_available_subjects(self, student_id: str) -> List[SubjectModel]:
        """Subjects of the student's course that the student has not reserved.

        Raises:
            NotFoundError: If the student does not exist.
        """
        student = self._get_student(student_id)
        if student.course_id is None:
            return []
        reserved = self.db.query(SubjectReservationModel.subject_id).filter(
            SubjectReservationModel.student_id == student_id
        )
        return (
            self.db.query(SubjectModel)
            .filter(
                SubjectModel.course_id == student.course_id,
                SubjectModel.id.notin_(reserved),
            )
            .order_by(SubjectModel.code.asc())
            .all()
        )

    def create_reservation(
        self, student_id: str, subject_id: str, actor_id: Optional[str] = None
    ) -> SubjectReservationModel:
        """Reserve a subject for a student and open their pending grade row.

        Args:
            student_id: Student making the reservation.
            subject_id: Subject to reserve.
            actor_id: Acting user, recorded as the grade row's encoder.

        Returns:
            The created reservation.

        Raises:
            NotFoundError: If the student or subject does not exist.
            ValidationError: If the subject belongs to another course.
            ConflictError: If the student already reserved the subject.
        """
        student = self._get_student(student_id)
        subject = self.db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
        if subject is None:
            raise NotFoundError("Subject", subject_id)
        if student.course_id is None or subject.course_id != student.course_id:
            raise ValidationError("Cannot reserve subject from a different course")

        existing = (
            self.db.query(SubjectReservationModel.id)
            .filter(
                SubjectReservationModel.student_id == student_id,
                SubjectReservationModel.subject_id == subject_id,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("Subject already reserved")

        reservation = SubjectReservationModel(
            student_id=student_id, subject_id=subject_id, status=STATUS_RESERVED
        )
        self.db.add(reservation)

        has_grade = (
            self.db.query(GradeModel.id)
            .filter(
                GradeModel.student_id == student_id,
                GradeModel.subject_id == subject_id,
                GradeModel.course_id == student.course_id,
            )
            .first()
        )
        if has_grade is None:
            self.db.add(
                GradeModel(
                    student_id=student_id,
                    subject_id=subject_id,
                    course_id=student.course_id,
                    encoded_by_user_id=actor_id,
                )
            )

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Subject already reserved") from e

        self.audit.log(
            actor_id,
            "CREATE_RESERVATION",
            "SubjectReservation",
            reservation.id,
            {"studentId": student_id, "subject": subject.code},
        )
        return self.get_reservation(reservation.id)

    def cancel_reservation(
        self, reservation_id: str, actor_id: Optional[str] = None
    ) -> SubjectReservationModel:
        model = self.get_reservation(reservation_id)
        model.status = STATUS_CANCELLED
        self.db.commit()
        self.audit.log(actor_id, "CANCEL_RESERVATION", "SubjectReservation", reservation_id)
        return self.get_reservation(reservation_id)

    def delete_reservation(
        self, reservation_id: str, actor_id: Optional[str] = None
    ) -> None:
        """Delete a reservation and the grade row it opened.

        Raises:
            NotFoundError: If the reservation does not exist.
        """
        model = self.get_reservation(reservation_id)
        student_id, subject_id = model.student_id, model.subject_id

        try:
            self.db.query(GradeModel).filter(
                GradeModel.student_id == student_id,
                GradeModel.subject_id == subject_id,
            ).delete(synchronize_session=False)
            self.db.delete(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id,
            "DELETE_RESERVATION",
            "SubjectReservation",
            reservation_id,
            {"studentId": student_id, "subjectId": subject_id},
        )
