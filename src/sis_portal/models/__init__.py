"""Database models.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .invitation import InvitationModel
from .course import CourseModel
from .subject import SubjectModel
from .student import StudentModel
from .reservation import SubjectReservationModel
from .grade import GradeModel
from .audit_log import AuditLogModel

__all__ = [
    "Base",
    "UserModel",
    "InvitationModel",
    "CourseModel",
    "SubjectModel",
    "StudentModel",
    "SubjectReservationModel",
    "GradeModel",
    "AuditLogModel",
]
