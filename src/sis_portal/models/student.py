import uuid

from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class StudentModel(Base):
    __tablename__ = "students"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    student_no = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    birth_date = Column(String, nullable=False)  # ISO date string
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    course = relationship("CourseModel", back_populates="students")
    reservations = relationship(
        "SubjectReservationModel",
        back_populates="student",
        cascade="all, delete-orphan",
    )
    grades = relationship(
        "GradeModel",
        back_populates="student",
        cascade="all, delete-orphan",
    )
