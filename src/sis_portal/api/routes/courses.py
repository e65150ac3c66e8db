"""Course management routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from sis_portal.api.routes.auth import get_current_user, require_admin
from sis_portal.core.dependencies import CourseManagerDep
from sis_portal.schemas.common import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    MessageResponse,
    Page,
)
from sis_portal.schemas.course import (
    CourseCodeCheck,
    CourseCreate,
    CourseDetail,
    CourseInfo,
    CourseSubject,
    CourseUpdate,
)
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/courses", tags=["Course"])


def _build_course_info(model, student_count: int, subject_count: int) -> CourseInfo:
    return CourseInfo(
        id=model.id,
        code=model.code,
        name=model.name,
        description=model.description,
        created_at=model.created_at,
        updated_at=model.updated_at,
        student_count=student_count or 0,
        subject_count=subject_count or 0,
    )


@router.get("/check-code", response_model=CourseCodeCheck, summary="Check a course code")
def check_code(
    course_manager: CourseManagerDep,
    code: str = Query(""),
    exclude_id: Optional[str] = Query(None, alias="excludeId"),
    current_user: SessionUser = Depends(get_current_user),
) -> CourseCodeCheck:
    return CourseCodeCheck(exists=course_manager.code_exists(code, exclude_id=exclude_id))


@router.get("", response_model=Page[CourseInfo], summary="List courses")
def list_courses(
    course_manager: CourseManagerDep,
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    current_user: SessionUser = Depends(get_current_user),
) -> Page[CourseInfo]:
    result = course_manager.list_courses(page, limit, search)
    return Page[CourseInfo](
        items=[_build_course_info(*row) for row in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.delete("/bulk", response_model=BulkDeleteResponse, summary="Delete several courses")
def delete_courses(
    req: BulkDeleteRequest,
    course_manager: CourseManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> BulkDeleteResponse:
    """Delete courses; those with students or subjects are skipped unless forced."""
    count, skipped_count, skipped_codes = course_manager.delete_courses(
        req.ids, force=req.force, actor_id=current_user.id
    )
    return BulkDeleteResponse(
        count=count, skipped_count=skipped_count, skipped_codes=skipped_codes
    )


@router.get("/{course_id}", response_model=CourseDetail, summary="Get a course")
def get_course(
    course_id: str,
    course_manager: CourseManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> CourseDetail:
    model, student_count, subject_count = course_manager.get_course_detail(course_id)
    info = _build_course_info(model, student_count, subject_count)
    return CourseDetail(
        **info.model_dump(),
        subjects=[CourseSubject.model_validate(subject) for subject in model.subjects],
    )


@router.post(
    "",
    response_model=CourseInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
def create_course(
    req: CourseCreate,
    course_manager: CourseManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> CourseInfo:
    model = course_manager.create_course(
        req.code, req.name, req.description, actor_id=current_user.id
    )
    return _build_course_info(model, 0, 0)


@router.patch("/{course_id}", response_model=CourseInfo, summary="Update a course")
def update_course(
    course_id: str,
    req: CourseUpdate,
    course_manager: CourseManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> CourseInfo:
    course_manager.update_course(
        course_id, req.model_dump(exclude_unset=True), actor_id=current_user.id
    )
    model, student_count, subject_count = course_manager.get_course_detail(course_id)
    return _build_course_info(model, student_count, subject_count)


@router.delete("/{course_id}", response_model=MessageResponse, summary="Delete a course")
def delete_course(
    course_id: str,
    course_manager: CourseManagerDep,
    force: bool = Query(False),
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    """Delete a course.

    Raises:
        NotFoundError: If the course does not exist.
        HasDependentsError: If the course has students or subjects and
            ``force`` is not set.
    """
    course_manager.delete_course(course_id, force=force, actor_id=current_user.id)
    return MessageResponse(message="Course deleted successfully")
