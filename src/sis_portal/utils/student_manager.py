"""Student management utilities.

This module covers student records, student number generation, bulk import
and deletion. Deleting a student removes their reservations and grades in
the same transaction.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from sis_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from sis_portal.models.course import CourseModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.reservation import SubjectReservationModel
from sis_portal.models.student import StudentModel
from sis_portal.schemas.student import StudentImportRow
from sis_portal.utils.audit_manager import AuditManager
from sis_portal.utils.pagination import PageResult, paginate, search_filter, split_ids

logger = logging.getLogger(__name__)

STUDENT_NO_DIGITS = 4
_STUDENT_NO_PATTERN = re.compile(r"^(\d{4})-(\d+)$")


def parse_birth_date(value: Union[str, date]) -> str:
    """Normalize a birth date to an ISO ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the value is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid birth date: {value}")


def purge_students(db: Session, student_ids: Sequence[str]) -> int:
    """Delete students with their reservations and grades. Does not commit."""
    if not student_ids:
        return 0
    db.query(GradeModel).filter(GradeModel.student_id.in_(student_ids)).delete(
        synchronize_session=False
    )
    db.query(SubjectReservationModel).filter(
        SubjectReservationModel.student_id.in_(student_ids)
    ).delete(synchronize_session=False)
    return (
        db.query(StudentModel)
        .filter(StudentModel.id.in_(student_ids))
        .delete(synchronize_session=False)
    )


class StudentManager:
    """Manages student records."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditManager(db)

    def list_students(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> PageResult:
        """List students, newest first.

        Args:
            page: 1-based page number.
            limit: Page size.
            search: Words matched against student number, names, email and
                the course code or name. Every word must match.
            course_id: One course id or a comma-separated list of them.
        """
        query = (
            self.db.query(StudentModel)
            .outerjoin(StudentModel.course)
            .options(joinedload(StudentModel.course))
        )
        clause = search_filter(
            search,
            [
                StudentModel.student_no,
                StudentModel.first_name,
                StudentModel.last_name,
                StudentModel.email,
                CourseModel.name,
                CourseModel.code,
            ],
        )
        if clause is not None:
            query = query.filter(clause)
        course_ids = split_ids(course_id)
        if course_ids:
            query = query.filter(StudentModel.course_id.in_(course_ids))
        return paginate(query.order_by(StudentModel.created_at.desc()), page, limit)

    def count_students(self) -> int:
        return self.db.query(StudentModel).count()

    def get_student(self, student_id: str) -> StudentModel:
        model = (
            self.db.query(StudentModel)
            .options(joinedload(StudentModel.course))
            .filter(StudentModel.id == student_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Student", student_id)
        return model

    def get_student_detail(self, student_id: str) -> StudentModel:
        """Load a student with course, reservations and grades."""
        model = (
            self.db.query(StudentModel)
            .options(
                joinedload(StudentModel.course),
                selectinload(StudentModel.reservations).joinedload(
                    SubjectReservationModel.subject
                ),
                selectinload(StudentModel.grades).joinedload(GradeModel.subject),
            )
            .filter(StudentModel.id == student_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Student", student_id)
        return model

    def next_student_no(self, year: Optional[int] = None) -> str:
        """Return the next free ``YYYY-NNNN`` number for a year."""
        year = year or datetime.now(pytz.utc).year
        prefix = f"{year}-"
        numbers = (
            self.db.query(StudentModel.student_no)
            .filter(StudentModel.student_no.like(f"{prefix}%"))
            .all()
        )
        highest = 0
        for (student_no,) in numbers:
            match = _STUDENT_NO_PATTERN.match(student_no)
            if match:
                highest = max(highest, int(match.group(2)))
        return f"{prefix}{highest + 1:0{STUDENT_NO_DIGITS}d}"

    def _require_course(self, course_id: str) -> CourseModel:
        course = self.db.query(CourseModel).filter(CourseModel.id == course_id).first()
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    def _student_no_taken(self, student_no: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(StudentModel.id).filter(StudentModel.student_no == student_no)
        if exclude_id:
            query = query.filter(StudentModel.id != exclude_id)
        return query.first() is not None

    def create_student(
        self,
        first_name: str,
        last_name: str,
        birth_date: Union[str, date],
        course_id: str,
        student_no: Optional[str] = None,
        email: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StudentModel:
        """Create a student enrolled in a course.

        Args:
            first_name: Given name.
            last_name: Family name.
            birth_date: Birth date as a date or ISO string.
            course_id: Course to enroll the student in.
            student_no: Student number. Generated when omitted.
            email: Optional contact email.
            actor_id: Acting user for the audit log.

        Returns:
            The created StudentModel.

        Raises:
            NotFoundError: If the course does not exist.
            ConflictError: If the student number is already used.
            ValidationError: If the birth date is invalid.
        """
        self._require_course(course_id)
        student_no = (student_no or "").strip() or self.next_student_no()
        if self._student_no_taken(student_no):
            raise ConflictError("Student number already exists")

        model = StudentModel(
            student_no=student_no,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=(email or "").strip() or None,
            birth_date=parse_birth_date(birth_date),
            course_id=course_id,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Student number already exists") from e

        self.audit.log(
            actor_id,
            "CREATE_STUDENT",
            "Student",
            model.id,
            {"studentNo": student_no, "courseId": course_id},
        )
        return self.get_student(model.id)

    def update_student(
        self, student_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None
    ) -> StudentModel:
        """Apply a partial update to a student.

        Raises:
            NotFoundError: If the student or the new course does not exist.
            ConflictError: If the new student number is already used.
        """
        model = self.get_student(student_id)

        student_no = changes.get("student_no")
        if student_no:
            student_no = student_no.strip()
            if self._student_no_taken(student_no, exclude_id=student_id):
                raise ConflictError("Student number already exists")
            model.student_no = student_no
        if changes.get("first_name"):
            model.first_name = changes["first_name"].strip()
        if changes.get("last_name"):
            model.last_name = changes["last_name"].strip()
        if "email" in changes:
            model.email = (changes["email"] or "").strip() or None
        if changes.get("birth_date"):
            model.birth_date = parse_birth_date(changes["birth_date"])
        if changes.get("course_id"):
            self._require_course(changes["course_id"])
            model.course_id = changes["course_id"]

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Student number already exists") from e

        self.audit.log(actor_id, "UPDATE_STUDENT", "Student", student_id, changes)
        return self.get_student(student_id)

    def delete_student(self, student_id: str, actor_id: Optional[str] = None) -> None:
        """Delete a student together with their reservations and grades.

        Raises:
            NotFoundError: If the student does not exist.
        """
        model = self.get_student(student_id)
        student_no = model.student_no
        try:
            purge_students(self.db, [student_id])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id, "DELETE_STUDENT", "Student", student_id, {"studentNo": student_no}
        )

    def delete_students(
        self, student_ids: Sequence[str], actor_id: Optional[str] = None
    ) -> int:
        """Delete several students in one transaction.

        Returns:
            Number of students removed. Unknown ids are ignored.
        """
        student_ids = list(dict.fromkeys(student_ids))
        try:
            deleted = purge_students(self.db, student_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(
            actor_id,
            "BULK_DELETE_STUDENTS",
            "Student",
            "bulk",
            {"ids": student_ids, "deleted": deleted},
        )
        return deleted

    def _course_lookup(self) -> Dict[str, str]:
        lookup: Dict[str, str] = {}
        for course in self.db.query(CourseModel).all():
            lookup[course.code.lower()] = course.id
            lookup[course.name.strip().lower()] = course.id
        return lookup

    def import_students(
        self, rows: List[StudentImportRow], actor_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create students from imported rows, one row at a time.

        Each row names its course by code or full name, case-insensitively.
        A failing row does not stop the rest. Row numbers in the report are
        spreadsheet rows, so the first data row is row 2.

        Returns:
            ``{"success": int, "failed": int, "errors": [...]}``.
        """
        if not rows:
            raise ValidationError("No students data provided")

        courses = self._course_lookup()
        result: Dict[str, Any] = {"success": 0, "failed": 0, "errors": []}

        for index, row in enumerate(rows):
            row_number = index + 2
            course_id = courses.get((row.course or "").strip().lower())
            if course_id is None:
                result["failed"] += 1
                result["errors"].append(
                    {
                        "row": row_number,
                        "student_no": row.student_no,
                        "error": (
                            f'Course not found: "{row.course}". '
                            "Use course code (e.g., BSCPE) or full name."
                        ),
                    }
                )
                continue

            try:
                student_no = (row.student_no or "").strip() or self.next_student_no()
                model = StudentModel(
                    student_no=student_no,
                    first_name=row.first_name.strip(),
                    last_name=row.last_name.strip(),
                    email=(row.email or "").strip() or None,
                    birth_date=parse_birth_date(row.birth_date),
                    course_id=course_id,
                )
                self.db.add(model)
                self.db.commit()
                result["success"] += 1
            except IntegrityError:
                self.db.rollback()
                result["failed"] += 1
                result["errors"].append(
                    {
                        "row": row_number,
                        "student_no": row.student_no,
                        "error": "Student number already exists",
                    }
                )
            except ValidationError as e:
                self.db.rollback()
                result["failed"] += 1
                result["errors"].append(
                    {"row": row_number, "student_no": row.student_no, "error": e.message}
                )

        logger.info(
            "Student import finished: %d created, %d failed",
            result["success"],
            result["failed"],
        )
        self.audit.log(
            actor_id,
            "IMPORT_STUDENTS",
            "Student",
            "bulk",
            {"success": result["success"], "failed": result["failed"]},
        )
        return result
