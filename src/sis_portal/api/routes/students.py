"""Student management routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from sis_portal.api.routes.auth import get_current_user, require_admin, require_staff
from sis_portal.core.dependencies import StudentManagerDep
from sis_portal.schemas.common import BulkDeleteResponse, MessageResponse, Page
from sis_portal.schemas.student import (
    StudentBulkDeleteRequest,
    StudentCount,
    StudentCreate,
    StudentDetail,
    StudentImportRequest,
    StudentImportResult,
    StudentInfo,
    StudentUpdate,
)
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/students", tags=["Student"])


@router.get("", response_model=Page[StudentInfo], summary="List students")
def list_students(
    student_manager: StudentManagerDep,
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = Query(None),
    course_id: Optional[str] = Query(None, alias="courseId"),
    current_user: SessionUser = Depends(get_current_user),
) -> Page[StudentInfo]:
    result = student_manager.list_students(page, limit, search, course_id)
    return Page[StudentInfo](
        items=[StudentInfo.model_validate(model) for model in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/count", response_model=StudentCount, summary="Count students")
def count_students(
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> StudentCount:
    return StudentCount(count=student_manager.count_students())


@router.post(
    "/import", response_model=StudentImportResult, summary="Import students in bulk"
)
def import_students(
    req: StudentImportRequest,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> StudentImportResult:
    """Create students from spreadsheet rows.

    Each row names its course by code or full name. Rows that fail are
    reported with their spreadsheet row number and do not stop the import.
    """
    result = student_manager.import_students(req.students, actor_id=current_user.id)
    return StudentImportResult.model_validate(result)


@router.delete(
    "/bulk", response_model=BulkDeleteResponse, summary="Delete several students"
)
def delete_students(
    req: StudentBulkDeleteRequest,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> BulkDeleteResponse:
    count = student_manager.delete_students(req.ids, actor_id=current_user.id)
    return BulkDeleteResponse(count=count)


@router.get("/{student_id}", response_model=StudentDetail, summary="Get a student")
def get_student(
    student_id: str,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> StudentDetail:
    return StudentDetail.model_validate(student_manager.get_student_detail(student_id))


@router.post(
    "",
    response_model=StudentInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Create a student",
)
def create_student(
    req: StudentCreate,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> StudentInfo:
    model = student_manager.create_student(
        first_name=req.first_name,
        last_name=req.last_name,
        birth_date=req.birth_date,
        course_id=req.course_id,
        student_no=req.student_no,
        email=req.email,
        actor_id=current_user.id,
    )
    return StudentInfo.model_validate(model)


@router.patch("/{student_id}", response_model=StudentInfo, summary="Update a student")
def update_student(
    student_id: str,
    req: StudentUpdate,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> StudentInfo:
    model = student_manager.update_student(
        student_id, req.model_dump(exclude_unset=True), actor_id=current_user.id
    )
    return StudentInfo.model_validate(model)


@router.delete(
    "/{student_id}", response_model=MessageResponse, summary="Delete a student"
)
def delete_student(
    student_id: str,
    student_manager: StudentManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    student_manager.delete_student(student_id, actor_id=current_user.id)
    return MessageResponse(message="Student deleted successfully")
