"""Subject management routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from sis_portal.api.routes.auth import get_current_user, require_admin
from sis_portal.core.dependencies import SubjectManagerDep
from sis_portal.schemas.common import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    MessageResponse,
    Page,
)
from sis_portal.schemas.course import CourseBrief
from sis_portal.schemas.subject import (
    SubjectAvailability,
    SubjectBrief,
    SubjectCreate,
    SubjectInfo,
    SubjectUpdate,
)
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/subjects", tags=["Subject"])


def _build_subject_info(model, reservation_count: int = 0, grade_count: int = 0) -> SubjectInfo:
    return SubjectInfo(
        id=model.id,
        code=model.code,
        title=model.title,
        units=model.units,
        course_id=model.course_id,
        course=CourseBrief.model_validate(model.course) if model.course else None,
        created_at=model.created_at,
        updated_at=model.updated_at,
        reservation_count=reservation_count or 0,
        grade_count=grade_count or 0,
    )


@router.get(
    "/check-availability",
    response_model=SubjectAvailability,
    summary="Check whether a subject code and title are free",
)
def check_availability(
    subject_manager: SubjectManagerDep,
    course_id: str = Query(..., alias="courseId"),
    code: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    exclude_id: Optional[str] = Query(None, alias="excludeId"),
    current_user: SessionUser = Depends(get_current_user),
) -> SubjectAvailability:
    code_available, title_available = subject_manager.check_availability(
        course_id, code=code, title=title, exclude_id=exclude_id
    )
    return SubjectAvailability(
        code_available=code_available, title_available=title_available
    )


@router.get("", response_model=Page[SubjectInfo], summary="List subjects")
def list_subjects(
    subject_manager: SubjectManagerDep,
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    course_id: Optional[str] = Query(None, alias="courseId"),
    current_user: SessionUser = Depends(get_current_user),
) -> Page[SubjectInfo]:
    result = subject_manager.list_subjects(page, limit, search, course_id)
    return Page[SubjectInfo](
        items=[_build_subject_info(*row) for row in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get(
    "/course/{course_id}",
    response_model=List[SubjectBrief],
    summary="List the subjects of a course",
)
def list_course_subjects(
    course_id: str,
    subject_manager: SubjectManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[SubjectBrief]:
    return [
        SubjectBrief.model_validate(model)
        for model in subject_manager.list_by_course(course_id)
    ]


@router.delete(
    "/bulk", response_model=BulkDeleteResponse, summary="Delete several subjects"
)
def delete_subjects(
    req: BulkDeleteRequest,
    subject_manager: SubjectManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> BulkDeleteResponse:
    count, skipped_count, skipped_codes = subject_manager.delete_subjects(
        req.ids, force=req.force, actor_id=current_user.id
    )
    return BulkDeleteResponse(
        count=count, skipped_count=skipped_count, skipped_codes=skipped_codes
    )


@router.get("/{subject_id}", response_model=SubjectInfo, summary="Get a subject")
def get_subject(
    subject_id: str,
    subject_manager: SubjectManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> SubjectInfo:
    return _build_subject_info(*subject_manager.get_subject_detail(subject_id))


@router.post(
    "",
    response_model=SubjectInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subject",
)
def create_subject(
    req: SubjectCreate,
    subject_manager: SubjectManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> SubjectInfo:
    model = subject_manager.create_subject(
        req.course_id, req.code, req.title, req.units, actor_id=current_user.id
    )
    return _build_subject_info(*subject_manager.get_subject_detail(model.id))


@router.patch("/{subject_id}", response_model=SubjectInfo, summary="Update a subject")
def update_subject(
    subject_id: str,
    req: SubjectUpdate,
    subject_manager: SubjectManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> SubjectInfo:
    subject_manager.update_subject(
        subject_id, req.model_dump(exclude_unset=True), actor_id=current_user.id
    )
    return _build_subject_info(*subject_manager.get_subject_detail(subject_id))


@router.delete(
    "/{subject_id}", response_model=MessageResponse, summary="Delete a subject"
)
def delete_subject(
    subject_id: str,
    subject_manager: SubjectManagerDep,
    force: bool = Query(False),
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    subject_manager.delete_subject(subject_id, force=force, actor_id=current_user.id)
    return MessageResponse(message="Subject deleted successfully")
