import uuid

from sqlalchemy import Column, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class GradeModel(Base):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "subject_id",
            "course_id",
            name="uq_grades_student_subject_course",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(
        String, ForeignKey("students.id"), index=True, nullable=False
    )
    subject_id = Column(
        String, ForeignKey("subjects.id"), index=True, nullable=False
    )
    course_id = Column(
        String, ForeignKey("courses.id"), index=True, nullable=False
    )
    prelim = Column(Float, nullable=True)
    midterm = Column(Float, nullable=True)
    finals = Column(Float, nullable=True)
    # Derived from the three components, never written by clients
    final_grade = Column(Float, nullable=True)
    remarks = Column(String, nullable=True)  # 'Passed', 'Failed' or None (pending)
    encoded_by_user_id = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    student = relationship("StudentModel", back_populates="grades")
    subject = relationship("SubjectModel", back_populates="grades")
    course = relationship("CourseModel")
    encoder = relationship("UserModel")
