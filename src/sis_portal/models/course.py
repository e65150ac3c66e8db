import uuid

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class CourseModel(Base):
    __tablename__ = "courses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    students = relationship("StudentModel", back_populates="course")
    subjects = relationship(
        "SubjectModel", back_populates="course", order_by="SubjectModel.code"
    )
