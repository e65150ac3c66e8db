"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes. Every
manager is built per request around the request-scoped DB session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from sis_portal.core.database import get_db
from sis_portal.utils import audit_manager
from sis_portal.utils import course_manager
from sis_portal.utils import grade_manager
from sis_portal.utils import invitation_manager
from sis_portal.utils import reservation_manager
from sis_portal.utils import stats_manager
from sis_portal.utils import student_manager
from sis_portal.utils import subject_manager
from sis_portal.utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_invitation_manager(
    db: Session = Depends(get_db),
) -> invitation_manager.InvitationManager:
    """Get InvitationManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        InvitationManager instance.
    """
    return invitation_manager.InvitationManager(db)


def get_course_manager(db: Session = Depends(get_db)) -> course_manager.CourseManager:
    """Get CourseManager instance with request-scoped DB session."""
    return course_manager.CourseManager(db)


def get_subject_manager(db: Session = Depends(get_db)) -> subject_manager.SubjectManager:
    """Get SubjectManager instance with request-scoped DB session."""
    return subject_manager.SubjectManager(db)


def get_student_manager(db: Session = Depends(get_db)) -> student_manager.StudentManager:
    """Get StudentManager instance with request-scoped DB session."""
    return student_manager.StudentManager(db)


def get_reservation_manager(
    db: Session = Depends(get_db),
) -> reservation_manager.ReservationManager:
    """Get ReservationManager instance with request-scoped DB session."""
    return reservation_manager.ReservationManager(db)


def get_grade_manager(db: Session = Depends(get_db)) -> grade_manager.GradeManager:
    """Get GradeManager instance with request-scoped DB session."""
    return grade_manager.GradeManager(db)


def get_audit_manager(db: Session = Depends(get_db)) -> audit_manager.AuditManager:
    return audit_manager.AuditManager(db)


def get_stats_manager(db: Session = Depends(get_db)) -> stats_manager.StatsManager:
    return stats_manager.StatsManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[user_manager.UserManager, Depends(get_user_manager)]
InvitationManagerDep = Annotated[
    invitation_manager.InvitationManager, Depends(get_invitation_manager)
]
CourseManagerDep = Annotated[course_manager.CourseManager, Depends(get_course_manager)]
SubjectManagerDep = Annotated[
    subject_manager.SubjectManager, Depends(get_subject_manager)
]
StudentManagerDep = Annotated[
    student_manager.StudentManager, Depends(get_student_manager)
]
ReservationManagerDep = Annotated[
    reservation_manager.ReservationManager, Depends(get_reservation_manager)
]
GradeManagerDep = Annotated[grade_manager.GradeManager, Depends(get_grade_manager)]
AuditManagerDep = Annotated[audit_manager.AuditManager, Depends(get_audit_manager)]
StatsManagerDep = Annotated[stats_manager.StatsManager, Depends(get_stats_manager)]
