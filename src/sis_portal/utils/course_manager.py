"""Course management utilities.

Courses own their subjects and enrolled students. A course that still has
either can only be deleted with ``force``, which removes the whole subtree
(subjects, students, and their reservations and grades) in one transaction.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from sis_portal.core.exceptions import ConflictError, HasDependentsError, NotFoundError
from sis_portal.models.course import CourseModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.models.subject import SubjectModel
from sis_portal.utils.audit_manager import AuditManager
from sis_portal.utils.pagination import PageResult, paginate, search_filter

logger = logging.getLogger(__name__)

CourseRow = Tuple[CourseModel, int, int]


def _student_count():
    return (
        select(func.count(StudentModel.id))
        .where(StudentModel.course_id == CourseModel.id)
        .correlate(CourseModel)
        .scalar_subquery()
    )


def _subject_count():
    return (
        select(func.count(SubjectModel.id))
        .where(SubjectModel.course_id == CourseModel.id)
        .correlate(CourseModel)
        .scalar_subquery()
    )


def normalize_code(code: str) -> str:
    return code.strip().upper()


def purge_courses(db: Session, course_ids: Sequence[str]) -> int:
    """Delete courses with every dependent row. Does not commit.

    Returns:
        Number of course rows removed.
    """
    if not course_ids:
        return 0
    subject_ids = [
        row[0]
        for row in db.query(SubjectModel.id)
        .filter(SubjectModel.course_id.in_(course_ids))
        .all()
    ]
    student_ids = [
        row[0]
        for row in db.query(StudentModel.id)
        .filter(StudentModel.course_id.in_(course_ids))
        .all()
    ]

    db.query(GradeModel).filter(
        or_(
            GradeModel.course_id.in_(course_ids),
            GradeModel.subject_id.in_(subject_ids),
            GradeModel.student_id.in_(student_ids),
        )
    ).delete(synchronize_session=False)
    db.query(SubjectReservationModel).filter(
        or_(
            SubjectReservationModel.subject_id.in_(subject_ids),
            SubjectReservationModel.student_id.in_(student_ids),
        )
    ).delete(synchronize_session=False)
    db.query(SubjectModel).filter(SubjectModel.id.in_(subject_ids)).delete(
        synchronize_session=False
    )
    db.query(StudentModel).filter(StudentModel.id.in_(student_ids)).delete(
        synchronize_session=False
    )
    removed = (
        db.query(CourseModel)
        .filter(CourseModel.id.in_(course_ids))
        .delete(synchronize_session=False)
    )
    logger.info(
        "Purged %d course(s) with %d subject(s) and %d student(s)",
        removed,
        len(subject_ids),
        len(student_ids),
    )
    return removed


class CourseManager:
    """Manages courses and their cascading delete rules."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditManager(db)

    def list_courses(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
    ) -> PageResult:
        """List courses by code with their student and subject counts.

        Items are ``(course, student_count, subject_count)`` tuples.
        """
        query = self.db.query(
            CourseModel,
            _student_count().label("student_count"),
            _subject_count().label("subject_count"),
        )
        clause = search_filter(search, [CourseModel.code, CourseModel.name])
        if clause is not None:
            query = query.filter(clause)
        result = paginate(query.order_by(CourseModel.code.asc()), page, limit)
        result.items = [tuple(row) for row in result.items]
        return result

    def get_course(self, course_id: str) -> CourseModel:
        model = self.db.query(CourseModel).filter(CourseModel.id == course_id).first()
        if model is None:
            raise NotFoundError("Course", course_id)
        return model

    def get_course_detail(self, course_id: str) -> CourseRow:
        row = (
            self.db.query(
                CourseModel,
                _student_count().label("student_count"),
                _subject_count().label("subject_count"),
            )
            .options(selectinload(CourseModel.subjects))
            .filter(CourseModel.id == course_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Course", course_id)
        return tuple(row)

    def get_course_by_code(self, code: str) -> Optional[CourseModel]:
        return (
            self.db.query(CourseModel)
            .filter(CourseModel.code == normalize_code(code))
            .first()
        )

    def code_exists(self, code: str, exclude_id: Optional[str] = None) -> bool:
        if not code or not code.strip():
            return False
        query = self.db.query(CourseModel.id).filter(
            CourseModel.code == normalize_code(code)
        )
        if exclude_id:
            query = query.filter(CourseModel.id != exclude_id)
        return query.first() is not None

    def list_student_counts(self) -> List[CourseRow]:
        """All courses with their student counts, for the dashboard chart."""
        rows = (
            self.db.query(
                CourseModel,
                _student_count().label("student_count"),
                _subject_count().label("subject_count"),
            )
            .order_by(CourseModel.code.asc())
            .all()
        )
        return [tuple(row) for row in rows]

    def create_course(
        self,
        code: str,
        name: str,
        description: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> CourseModel:
        """Create a course.

        Raises:
            ConflictError: If a course with the same code exists.
        """
        code = normalize_code(code)
        if self.code_exists(code):
            raise ConflictError("Course code already exists")

        model = CourseModel(code=code, name=name.strip(), description=description)
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Course code already exists") from e
        self.db.refresh(model)

        self.audit.log(actor_id, "CREATE_COURSE", "Course", model.id, {"code": code})
        return model

    def update_course(
        self, course_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None
    ) -> CourseModel:
        """Apply a partial update to a course.

        Args:
            course_id: Course to update.
            changes: Fields to change; keys are ``code``, ``name`` and
                ``description``.
            actor_id: Acting user for the audit log.

        Raises:
            NotFoundError: If the course does not exist.
            ConflictError: If the new code belongs to another course.
        """
        model = self.get_course(course_id)
        if changes.get("code") is not None:
            code = normalize_code(changes["code"])
            if self.code_exists(code, exclude_id=course_id):
                raise ConflictError("Course code already exists")
            model.code = code
        if changes.get("name") is not None:
            model.name = changes["name"].strip()
        if "description" in changes:
            model.description = changes["description"]

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Course code already exists") from e
        self.db.refresh(model)

        self.audit.log(actor_id, "UPDATE_COURSE", "Course", model.id, changes)
        return model

    def _ids_with_dependents(self, course_ids: Sequence[str]) -> List[str]:
        with_students = self.db.query(StudentModel.course_id).filter(
            StudentModel.course_id.in_(course_ids)
        )
        with_subjects = self.db.query(SubjectModel.course_id).filter(
            SubjectModel.course_id.in_(course_ids)
        )
        return [row[0] for row in with_students.union(with_subjects).all()]

    def delete_course(
        self, course_id: str, force: bool = False, actor_id: Optional[str] = None
    ) -> None:
        """Delete a course.

        Args:
            course_id: Course to delete.
            force: Also delete its subjects and students, with their
                reservations and grades.
            actor_id: Acting user for the audit log.

        Raises:
            NotFoundError: If the course does not exist.
            HasDependentsError: If the course has students or subjects and
                force is not set.
        """
        model = self.get_course(course_id)
        code = model.code
        if not force and self._ids_with_dependents([course_id]):
            raise HasDependentsError(
                f"Cannot delete course {code} because it has students or subjects."
            )

        try:
            purge_courses(self.db, [course_id])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id, "DELETE_COURSE", "Course", course_id, {"code": code, "force": force}
        )

    def delete_courses(
        self, course_ids: Sequence[str], force: bool = False, actor_id: Optional[str] = None
    ) -> Tuple[int, int, List[str]]:
        """Delete several courses, skipping those with dependents unless forced.

        Returns:
            ``(deleted_count, skipped_count, skipped_codes)``.
        """
        course_ids = list(dict.fromkeys(course_ids))
        skipped: List[CourseModel] = []
        if not force:
            blocked = set(self._ids_with_dependents(course_ids))
            skipped = (
                self.db.query(CourseModel)
                .filter(CourseModel.id.in_(list(blocked)))
                .order_by(CourseModel.code.asc())
                .all()
                if blocked
                else []
            )
            course_ids = [cid for cid in course_ids if cid not in blocked]

        skipped_codes = [course.code for course in skipped]
        try:
            deleted = purge_courses(self.db, course_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id,
            "BULK_DELETE_COURSES",
            "Course",
            "bulk",
            {"ids": course_ids, "deleted": deleted, "skipped": skipped_codes, "force": force},
        )
        return deleted, len(skipped_codes), skipped_codes
