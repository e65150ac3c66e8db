"""Grade management utilities.

Clients only ever write the prelim, midterm and finals components. The final
grade and remarks are recomputed by :mod:`sis_portal.utils.grade_policy` on
every write path, including upsert and bulk update.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager, joinedload

from sis_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from sis_portal.models.course import CourseModel
from sis_portal.models.grade import GradeModel
from sis_portal.models.student import StudentModel
from sis_portal.models.subject import SubjectModel
from sis_portal.utils import grade_policy
from sis_portal.utils.audit_manager import AuditManager
from sis_portal.utils.pagination import PageResult, paginate, search_filter, split_ids

logger = logging.getLogger(__name__)

COMPONENTS = ("prelim", "midterm", "finals")
REMARKS_PENDING = "Pending"


def _describe(grade: GradeModel) -> Dict[str, Any]:
    student = grade.student
    return {
        "student": f"{student.last_name}, {student.first_name}" if student else None,
        "studentNo": student.student_no if student else None,
        "course": grade.course.code if grade.course else None,
        "subject": grade.subject.code if grade.subject else None,
    }


def apply_components(grade: GradeModel, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Write the components present in ``changes`` and recompute the grade.

    Returns:
        ``{component: {"from": old, "to": new}}`` for each changed component.

    Raises:
        ValidationError: If a resulting component is outside 0-100.
    """
    values = {name: getattr(grade, name) for name in COMPONENTS}
    values.update({name: changes[name] for name in COMPONENTS if name in changes})
    result = grade_policy.compute(values["prelim"], values["midterm"], values["finals"])

    diff = {}
    for name in COMPONENTS:
        if name in changes:
            diff[name] = {"from": getattr(grade, name), "to": values[name]}
            setattr(grade, name, values[name])
    grade.final_grade = result.final_grade
    grade.remarks = result.remarks
    return diff


class GradeManager:
    """Manages grade records."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditManager(db)

    def _query(self):
        return self.db.query(GradeModel).options(
            joinedload(GradeModel.student),
            joinedload(GradeModel.subject),
            joinedload(GradeModel.course),
        )

    def list_grades(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        course_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        remarks: Optional[str] = None,
        search: Optional[str] = None,
    ) -> PageResult:
        """List grades ordered by student last name, then subject code.

        Args:
            page: 1-based page number.
            limit: Page size.
            course_id: One course id or a comma-separated list of them.
            subject_id: Restrict to one subject.
            remarks: "Passed", "Failed", or "Pending" for grades without a
                final grade.
            search: Words matched against the student's names and number and
                the course code or name.
        """
        query = (
            self.db.query(GradeModel)
            .join(GradeModel.student)
            .join(GradeModel.subject)
            .join(GradeModel.course)
            .options(
                contains_eager(GradeModel.student),
                contains_eager(GradeModel.subject),
                contains_eager(GradeModel.course),
            )
        )
        course_ids = split_ids(course_id)
        if course_ids:
            query = query.filter(GradeModel.course_id.in_(course_ids))
        if subject_id:
            query = query.filter(GradeModel.subject_id == subject_id)
        if remarks:
            if remarks == REMARKS_PENDING:
                query = query.filter(GradeModel.remarks.is_(None))
            else:
                query = query.filter(GradeModel.remarks == remarks)
        clause = search_filter(
            search,
            [
                StudentModel.first_name,
                StudentModel.last_name,
                StudentModel.student_no,
                CourseModel.name,
                CourseModel.code,
            ],
        )
        if clause is not None:
            query = query.filter(clause)

        return paginate(
            query.order_by(StudentModel.last_name.asc(), SubjectModel.code.asc()),
            page,
            limit,
        )

    def list_by_student(self, student_id: str) -> List[GradeModel]:
        """Grades the student holds in their current course."""
        student = self.db.query(StudentModel).filter(StudentModel.id == student_id).first()
        if student is None:
            raise NotFoundError("Student", student_id)
        return (
            self._query()
            .join(GradeModel.subject)
            .filter(
                GradeModel.student_id == student_id,
                GradeModel.course_id == student.course_id,
            )
            .order_by(SubjectModel.code.asc())
            .all()
        )

    def list_by_subject(self, subject_id: str) -> List[GradeModel]:
        return (
            self._query()
            .join(GradeModel.student)
            .filter(GradeModel.subject_id == subject_id)
            .order_by(StudentModel.last_name.asc(), StudentModel.first_name.asc())
            .all()
        )

    def get_grade(self, grade_id: str) -> GradeModel:
        model = self._query().filter(GradeModel.id == grade_id).first()
        if model is None:
            raise NotFoundError("Grade", grade_id)
        return model

    def _check_enrollment(self, student_id: str, subject_id: str, course_id: str) -> None:
        student = self.db.query(StudentModel).filter(StudentModel.id == student_id).first()
        if student is None:
            raise NotFoundError("Student", student_id)
        if student.course_id != course_id:
            raise ValidationError(
                "Cannot encode grade: Course mismatch with student's current enrollment."
            )
        subject = self.db.query(SubjectModel).filter(SubjectModel.id == subject_id).first()
        if subject is None:
            raise NotFoundError("Subject", subject_id)

    def _find(self, student_id: str, subject_id: str, course_id: str) -> Optional[GradeModel]:
        return (
            self.db.query(GradeModel)
            .filter(
                GradeModel.student_id == student_id,
                GradeModel.subject_id == subject_id,
                GradeModel.course_id == course_id,
            )
            .first()
        )

    def create_grade(
        self,
        student_id: str,
        subject_id: str,
        course_id: str,
        components: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> GradeModel:
        """Encode a new grade.

        Args:
            student_id: Graded student.
            subject_id: Graded subject.
            course_id: Course the student is enrolled in.
            components: Any of ``prelim``, ``midterm`` and ``finals``.
            actor_id: Encoding user.

        Returns:
            The created GradeModel.

        Raises:
            NotFoundError: If the student or subject does not exist.
            ValidationError: If the course does not match the student's
                enrollment or a component is out of range.
            ConflictError: If the student already has a grade for the subject.
        """
        self._check_enrollment(student_id, subject_id, course_id)
        if self._find(student_id, subject_id, course_id) is not None:
            raise ConflictError("Grade already exists for this student and subject")

        model = GradeModel(
            student_id=student_id,
            subject_id=subject_id,
            course_id=course_id,
            encoded_by_user_id=actor_id,
        )
        apply_components(model, {name: components.get(name) for name in COMPONENTS})
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Grade already exists for this student and subject") from e

        self.audit.log(
            actor_id,
            "CREATE_GRADE",
            "Grade",
            model.id,
            {
                "prelim": model.prelim,
                "midterm": model.midterm,
                "finals": model.finals,
                "finalGrade": model.final_grade,
                "remarks": model.remarks,
            },
        )
        return self.get_grade(model.id)

    def upsert_grade(
        self,
        student_id: str,
        subject_id: str,
        course_id: str,
        components: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> GradeModel:
        """Create the grade or overwrite all three components of an existing one.

        Components missing from ``components`` are cleared on an existing
        grade.
        """
        self._check_enrollment(student_id, subject_id, course_id)
        model = self._find(student_id, subject_id, course_id)
        created = model is None
        if created:
            model = GradeModel(
                student_id=student_id,
                subject_id=subject_id,
                course_id=course_id,
                encoded_by_user_id=actor_id,
            )
            self.db.add(model)
        elif actor_id:
            model.encoded_by_user_id = actor_id
        diff = apply_components(model, {name: components.get(name) for name in COMPONENTS})

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Grade already exists for this student and subject") from e

        diff.update({"created": created, "finalGrade": model.final_grade, "remarks": model.remarks})
        self.audit.log(actor_id, "UPSERT_GRADE", "Grade", model.id, diff)
        return self.get_grade(model.id)

    def update_grade(
        self, grade_id: str, changes: Dict[str, Any], actor_id: Optional[str] = None
    ) -> GradeModel:
        """Change some components of a grade and recompute it.

        Raises:
            NotFoundError: If the grade does not exist.
            ValidationError: If a component is out of range.
        """
        model = self.get_grade(grade_id)
        diff = apply_components(model, changes)
        if actor_id:
            model.encoded_by_user_id = actor_id
        self.db.commit()

        details = _describe(model)
        details.update(diff)
        self.audit.log(actor_id, "UPDATE_GRADE", "Grade", grade_id, details)
        return self.get_grade(grade_id)

    def bulk_update(
        self, updates: Sequence[Dict[str, Any]], actor_id: Optional[str] = None
    ) -> Tuple[int, List[GradeModel]]:
        """Update many grades in one transaction.

        Each update carries an ``id`` plus the components to change. Ids that
        do not exist are skipped. If any update is invalid, none is applied.

        Returns:
            ``(count, updated_grades)``.
        """
        if not updates:
            return 0, []

        ids = [update["id"] for update in updates]
        existing = {
            grade.id: grade
            for grade in self._query().filter(GradeModel.id.in_(ids)).all()
        }

        audit_rows = []
        updated_ids = []
        try:
            for update in updates:
                grade = existing.get(update["id"])
                if grade is None:
                    logger.info("Bulk grade update skipped unknown grade %s", update["id"])
                    continue
                changes = {name: update[name] for name in COMPONENTS if name in update}
                diff = apply_components(grade, changes)
                if actor_id:
                    grade.encoded_by_user_id = actor_id
                details = _describe(grade)
                details.update(diff)
                audit_rows.append(details)
                updated_ids.append(grade.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.audit.log(actor_id, "BULK_UPDATE_GRADES", "Grade", "bulk", {"grades": audit_rows})
        updated = self._query().filter(GradeModel.id.in_(updated_ids)).all()
        by_id = {grade.id: grade for grade in updated}
        return len(updated_ids), [by_id[gid] for gid in updated_ids if gid in by_id]

    def delete_grade(self, grade_id: str, actor_id: Optional[str] = None) -> None:
        model = self.get_grade(grade_id)
        details = _describe(model)
        self.db.delete(model)
        self.db.commit()
        self.audit.log(actor_id, "DELETE_GRADE", "Grade", grade_id, details)
