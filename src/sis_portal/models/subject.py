import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class SubjectModel(Base):
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("course_id", "code", name="uq_subjects_course_code"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(
        String, ForeignKey("courses.id"), index=True, nullable=False
    )
    code = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    units = Column(Integer, nullable=False)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    course = relationship("CourseModel", back_populates="subjects")
    reservations = relationship("SubjectReservationModel", back_populates="subject")
    grades = relationship("GradeModel", back_populates="subject")
