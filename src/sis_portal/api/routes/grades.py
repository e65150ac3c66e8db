"""Grade management routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from sis_portal.api.routes.auth import get_current_user, require_staff
from sis_portal.core.dependencies import GradeManagerDep
from sis_portal.schemas.common import MessageResponse, Page
from sis_portal.schemas.grade import (
    GradeBulkUpdateRequest,
    GradeBulkUpdateResponse,
    GradeCreate,
    GradeInfo,
    GradeUpdate,
)
from sis_portal.schemas.user import SessionUser
from sis_portal.utils.grade_manager import COMPONENTS

router = APIRouter(prefix="/api/grades", tags=["Grade"])


def _components(req) -> dict:
    return req.model_dump(include=set(COMPONENTS), exclude_unset=True)


@router.get("", response_model=Page[GradeInfo], summary="List grades")
def list_grades(
    grade_manager: GradeManagerDep,
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    course_id: Optional[str] = Query(None, alias="courseId"),
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    remarks: Optional[str] = Query(None),
    current_user: SessionUser = Depends(get_current_user),
) -> Page[GradeInfo]:
    result = grade_manager.list_grades(
        page, limit, course_id=course_id, subject_id=subject_id, remarks=remarks, search=search
    )
    return Page[GradeInfo](
        items=[GradeInfo.model_validate(model) for model in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get(
    "/student/{student_id}",
    response_model=List[GradeInfo],
    summary="Grades of a student",
)
def list_student_grades(
    student_id: str,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[GradeInfo]:
    return [GradeInfo.model_validate(m) for m in grade_manager.list_by_student(student_id)]


@router.get(
    "/subject/{subject_id}",
    response_model=List[GradeInfo],
    summary="Grades in a subject",
)
def list_subject_grades(
    subject_id: str,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[GradeInfo]:
    return [GradeInfo.model_validate(m) for m in grade_manager.list_by_subject(subject_id)]


@router.post(
    "",
    response_model=GradeInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Encode a grade",
)
def create_grade(
    req: GradeCreate,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> GradeInfo:
    """Encode a new grade. Final grade and remarks are computed server side.

    Raises:
        ValidationError: If the course does not match the student's
            enrollment or a component is outside 0-100.
        ConflictError: If a grade already exists for the student and subject.
    """
    model = grade_manager.create_grade(
        req.student_id,
        req.subject_id,
        req.course_id,
        _components(req),
        actor_id=current_user.id,
    )
    return GradeInfo.model_validate(model)


@router.put("/upsert", response_model=GradeInfo, summary="Create or replace a grade")
def upsert_grade(
    req: GradeCreate,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> GradeInfo:
    model = grade_manager.upsert_grade(
        req.student_id,
        req.subject_id,
        req.course_id,
        _components(req),
        actor_id=current_user.id,
    )
    return GradeInfo.model_validate(model)


@router.patch(
    "/bulk", response_model=GradeBulkUpdateResponse, summary="Update many grades"
)
def bulk_update_grades(
    req: GradeBulkUpdateRequest,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> GradeBulkUpdateResponse:
    """Apply several partial updates in one transaction.

    Unknown grade ids are skipped. If any update is invalid, none is applied.
    """
    updates = []
    for item in req.updates:
        update = _components(item)
        update["id"] = item.id
        updates.append(update)
    count, updated = grade_manager.bulk_update(updates, actor_id=current_user.id)
    return GradeBulkUpdateResponse(
        count=count, updated=[GradeInfo.model_validate(m) for m in updated]
    )


@router.get("/{grade_id}", response_model=GradeInfo, summary="Get a grade")
def get_grade(
    grade_id: str,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> GradeInfo:
    return GradeInfo.model_validate(grade_manager.get_grade(grade_id))


@router.patch("/{grade_id}", response_model=GradeInfo, summary="Update a grade")
def update_grade(
    grade_id: str,
    req: GradeUpdate,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> GradeInfo:
    model = grade_manager.update_grade(grade_id, _components(req), actor_id=current_user.id)
    return GradeInfo.model_validate(model)


@router.delete("/{grade_id}", response_model=MessageResponse, summary="Delete a grade")
def delete_grade(
    grade_id: str,
    grade_manager: GradeManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> MessageResponse:
    grade_manager.delete_grade(grade_id, actor_id=current_user.id)
    return MessageResponse(message="Grade deleted successfully")
