"""Dashboard counters."""

from typing import Dict

from sqlalchemy.orm import Session

from sis_portal.models.course import CourseModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.models.subject import SubjectModel
from sis_portal.models.user import UserModel


class StatsManager:
    def __init__(self, db: Session):
        self.db = db

    def get_stats(self) -> Dict[str, int]:
        return {
            "students": self.db.query(StudentModel).count(),
            "courses": self.db.query(CourseModel).count(),
            "subjects": self.db.query(SubjectModel).count(),
            "users": self.db.query(UserModel).count(),
            "reservations": self.db.query(SubjectReservationModel).count(),
        }
