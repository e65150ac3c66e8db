import uuid

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class SubjectReservationModel(Base):
    __tablename__ = "subject_reservations"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "subject_id",
            name="uq_subject_reservations_student_subject",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(
        String, ForeignKey("students.id"), index=True, nullable=False
    )
    subject_id = Column(
        String, ForeignKey("subjects.id"), index=True, nullable=False
    )
    status = Column(String, nullable=False, default="reserved")  # 'reserved' or 'cancelled'
    reserved_at = Column(String, nullable=False, default=now_iso)

    student = relationship("StudentModel", back_populates="reservations")
    subject = relationship("SubjectModel", back_populates="reservations")
