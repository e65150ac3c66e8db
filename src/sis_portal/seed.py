"""Seed the database with default accounts, courses and subjects.

Usage:
    python -m sis_portal.seed

Running it again leaves existing rows alone.
"""

import logging
from typing import Dict

from sqlalchemy.orm import Session

from sis_portal.config import (
    SEED_ADMIN_EMAIL,
    SEED_ADMIN_PASSWORD,
    SEED_ENCODER_EMAIL,
    SEED_ENCODER_PASSWORD,
)
from sis_portal.core.database import SessionLocal, init_db
from sis_portal.core.logging_config import setup_logging
from sis_portal.models.course import CourseModel
from sis_portal.models.subject import SubjectModel
from sis_portal.schemas.user import Role
from sis_portal.utils.user_manager import UserManager

logger = logging.getLogger(__name__)

COURSES = [
    ("BSCS", "Bachelor of Science in Computer Science"),
    ("BSIT", "Bachelor of Science in Information Technology"),
    ("BSCPE", "Bachelor of Science in Computer Engineering"),
]

SUBJECTS = [
    ("PROG1", "Programming 1", 3),
    ("DSALGO", "Data Structures and Algorithms", 3),
    ("NET1", "Networking 1", 3),
    ("DB1", "Database Management 1", 3),
    ("WEB1", "Web Development 1", 3),
]


def seed(db: Session) -> Dict[str, int]:
    """Create whatever default rows are missing.

    Returns:
        Counts of the users, courses and subjects created by this run.
    """
    created = {"users": 0, "courses": 0, "subjects": 0}

    user_manager = UserManager(db)
    for email, password, role in (
        (SEED_ADMIN_EMAIL, SEED_ADMIN_PASSWORD, Role.ADMIN),
        (SEED_ENCODER_EMAIL, SEED_ENCODER_PASSWORD, Role.ENCODER),
    ):
        if user_manager.get_user_by_email(email) is None:
            user_manager.create_user(email, password, role)
            created["users"] += 1
            logger.info("Created %s account %s", role.value, email)
        else:
            logger.info("%s account %s already exists", role.value, email)

    for code, name in COURSES:
        course = db.query(CourseModel).filter(CourseModel.code == code).first()
        if course is None:
            course = CourseModel(code=code, name=name)
            db.add(course)
            db.flush()
            created["courses"] += 1

        has_subjects = (
            db.query(SubjectModel.id).filter(SubjectModel.course_id == course.id).first()
        )
        if has_subjects is None:
            for subject_code, title, units in SUBJECTS:
                db.add(
                    SubjectModel(
                        course_id=course.id, code=subject_code, title=title, units=units
                    )
                )
                created["subjects"] += 1
    db.commit()

    logger.info(
        "Seeding finished: %d user(s), %d course(s), %d subject(s) created",
        created["users"],
        created["courses"],
        created["subjects"],
    )
    return created


def main() -> None:
    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
