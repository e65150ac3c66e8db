"""Subject management utilities."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager

from sis_portal.core.exceptions import (
    ConflictError,
    HasDependentsError,
    NotFoundError,
)
from sis_portal.models.course import CourseModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.subject import SubjectModel
from sis_portal.utils.audit_manager import AuditManager
from sis_portal.utils.course_manager import normalize_code
from sis_portal.utils.pagination import PageResult, paginate, search_filter, split_ids

logger = logging.getLogger(__name__)

SubjectRow = Tuple[SubjectModel, int, int]


def _reservation_count():
    return (
        select(func.count(SubjectReservationModel.id))
        .where(SubjectReservationModel.subject_id == SubjectModel.id)
        .correlate(SubjectModel)
        .scalar_subquery()
    )


def _grade_count():
    return (
        select(func.count(GradeModel.id))
        .where(GradeModel.subject_id == SubjectModel.id)
        .correlate(SubjectModel)
        .scalar_subquery()
    )


def purge_subjects(db: Session, subject_ids: Sequence[str]) -> int:
    """Delete subjects with their reservations and grades. Does not commit."""
    if not subject_ids:
        return 0
    db.query(GradeModel).filter(GradeModel.subject_id.in_(subject_ids)).delete(
        synchronize_session=False
    )
    db.query(SubjectReservationModel).filter(
        SubjectReservationModel.subject_id.in_(subject_ids)
    ).delete(synchronize_session=False)
    return (
        db.query(SubjectModel)
        .filter(SubjectModel.id.in_(subject_ids))
        .delete(synchronize_session=False)
    )


class SubjectManager:
    """Manages subjects and their per-course uniqueness rules."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditManager(db)

    def _with_counts(self):
        return (
            self.db.query(
                SubjectModel,
                _reservation_count().label("reservation_count"),
                _grade_count().label("grade_count"),
            )
            .join(SubjectModel.course)
            .options(contains_eager(SubjectModel.course))
        )

    def list_subjects(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> PageResult:
        """List subjects ordered by course code, then subject code.

        Args:
            page: 1-based page number.
            limit: Page size.
            search: Words matched against subject code and title.
            course_id: One course id or a comma-separated list of them.

        Returns:
            PageResult whose items are ``(subject, reservation_count,
            grade_count)`` tuples.
        """
        query = self._with_counts()
        clause = search_filter(search, [SubjectModel.code, SubjectModel.title])
        if clause is not None:
            query = query.filter(clause)
        course_ids = split_ids(course_id)
        if course_ids:
            query = query.filter(SubjectModel.course_id.in_(course_ids))

        result = paginate(
            query.order_by(CourseModel.code.asc(), SubjectModel.code.asc()), page, limit
        )
        result.items = [tuple(row) for row in result.items]
        return result

    def list_by_course(self, course_id: str) -> List[SubjectModel]:
        return (
            self.db.query(SubjectModel)
            .filter(SubjectModel.course_id == course_id)
            .order_by(SubjectModel.code.asc())
            .all()
        )

    def get_subject(self, subject_id: str) -> SubjectModel:
        model = self.db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
        if model is None:
            raise NotFoundError("Subject", subject_id)
        return model

    def get_subject_detail(self, subject_id: str) -> SubjectRow:
        row = self._with_counts().filter(SubjectModel.id == subject_id).first()
        if row is None:
            raise NotFoundError("Subject", subject_id)
        return tuple(row)

    def _code_taken(
        self, course_id: str, code: str, exclude_id: Optional[str] = None
    ) -> bool:
        query = self.db.query(SubjectModel.id).filter(
            SubjectModel.course_id == course_id,
            SubjectModel.code == normalize_code(code),
        )
        if exclude_id:
            query = query.filter(SubjectModel.id != exclude_id)
        return query.first() is not None

    def _title_taken(
        self, course_id: str, title: str, exclude_id: Optional[str] = None
    ) -> bool:
        query = self.db.query(SubjectModel.id).filter(
            SubjectModel.course_id == course_id,
            func.lower(SubjectModel.title) == title.strip().lower(),
        )
        if exclude_id:
            query = query.filter(SubjectModel.id != exclude_id)
        return query.first() is not None

    def check_availability(
        self,
        course_id: str,
        code: Optional[str] = None,
        title: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Tuple[bool, bool]:
        """Report whether a code and a title are still free within a course.

        Returns:
            ``(code_available, title_available)``. A value that was not
            supplied counts as available.
        """
        code_available = not (
            code and code.strip() and self._code_taken(course_id, code, exclude_id)
        )
        title_available = not (
            title and title.strip() and self._title_taken(course_id, title, exclude_id)
        )
        return code_available, title_available

    def create_subject(
        self,
        course_id: str,
        code: str,
        title: str,
        units: int,
        actor_id: Optional[str] = None,
    ) -> SubjectModel:
        """Create a subject under a course.

        Raises:
            NotFoundError: If the course does not exist.
            ConflictError: If the code or title is already used in the course.
        """
        course = self.db.query(CourseModel).filter(CourseModel.id == course_id).first()
        if course is None:
            raise NotFoundError("Course", course_id)

        code = normalize_code(code)
        title = title.strip()
        if self._title_taken(course_id, title):
            raise ConflictError(
                f'Subject with title "{title}" already exists for this course.'
            )
        if self._code_taken(course_id, code):
            raise ConflictError(
                f'Subject with code "{code}" already exists for this course.'
            )

        model = SubjectModel(course_id=course_id, code=code, title=title, units=units)
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                f'Subject with code "{code}" already exists for this course.'
            ) from e
        self.db.refresh(model)

        self.audit.log(
            actor_id,
            "CREATE_SUBJECT",
            "Subject",
            model.id,
            {"courseId": course_id, "code": code, "title": title},
        )
        return model

    def update_subject(
        self, subject_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None
    ) -> SubjectModel:
        """Apply a partial update (``code``, ``title``, ``units``) to a subject.

        Raises:
            NotFoundError: If the subject does not exist.
            ConflictError: If the new code or title is used by another
                subject in the same course.
        """
        model = self.get_subject(subject_id)
        if changes.get("title") is not None:
            title = changes["title"].strip()
            if self._title_taken(model.course_id, title, exclude_id=subject_id):
                raise ConflictError(
                    f'Another subject with title "{title}" already exists for this course.'
                )
            model.title = title
        if changes.get("code") is not None:
            code = normalize_code(changes["code"])
            if self._code_taken(model.course_id, code, exclude_id=subject_id):
                raise ConflictError(
                    f'Another subject with code "{code}" already exists for this course.'
                )
            model.code = code
        if changes.get("units") is not None:
            model.units = changes["units"]

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Subject code already exists for this course.") from e
        self.db.refresh(model)

        self.audit.log(actor_id, "UPDATE_SUBJECT", "Subject", model.id, changes)
        return model

    def _ids_with_dependents(self, subject_ids: Sequence[str]) -> List[str]:
        reserved = self.db.query(SubjectReservationModel.subject_id).filter(
            SubjectReservationModel.subject_id.in_(subject_ids)
        )
        graded = self.db.query(GradeModel.subject_id).filter(
            GradeModel.subject_id.in_(subject_ids)
        )
        return [row[0] for row in reserved.union(graded).all()]

    def delete_subject(
        self, subject_id: str, force: bool = False, actor_id: Optional[str] = None
    ) -> None:
        """Delete a subject.

        Raises:
            NotFoundError: If the subject does not exist.
            HasDependentsError: If students have reservations or grades in
                the subject and force is not set.
        """
        model = self.get_subject(subject_id)
        code = model.code
        if not force and self._ids_with_dependents([subject_id]):
            raise HasDependentsError(
                f"Cannot delete subject {code} because students are currently enrolled."
            )

        try:
            purge_subjects(self.db, [subject_id])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id, "DELETE_SUBJECT", "Subject", subject_id, {"code": code, "force": force}
        )

    def delete_subjects(
        self, subject_ids: Sequence[str], force: bool = False, actor_id: Optional[str] = None
    ) -> Tuple[int, int, List[str]]:
        """Delete several subjects, skipping those with dependents unless forced.

        Returns:
            ``(deleted_count, skipped_count, skipped_codes)``.
        """
        subject_ids = list(dict.fromkeys(subject_ids))
        skipped_codes: List[str] = []
        if not force:
            blocked = set(self._ids_with_dependents(subject_ids))
            if blocked:
                skipped_codes = [
                    row[0]
                    for row in self.db.query(SubjectModel.code)
                    .filter(SubjectModel.id.in_(list(blocked)))
                    .order_by(SubjectModel.code.asc())
                    .all()
                ]
            subject_ids = [sid for sid in subject_ids if sid not in blocked]

        try:
            deleted = purge_subjects(self.db, subject_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id,
            "BULK_DELETE_SUBJECTS",
            "Subject",
            "bulk",
            {"ids": subject_ids, "deleted": deleted, "skipped": skipped_codes, "force": force},
        )
        return deleted, len(skipped_codes), skipped_codes
