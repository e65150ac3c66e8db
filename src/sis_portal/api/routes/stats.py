"""Dashboard statistics routes."""

from typing import List

from fastapi import APIRouter, Depends

from sis_portal.api.routes.auth import get_current_user
from sis_portal.core.dependencies import CourseManagerDep, StatsManagerDep
from sis_portal.schemas.course import CourseStudentCount
from sis_portal.schemas.stats import DashboardStats
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/stats", tags=["Stats"])


@router.get("", response_model=DashboardStats, summary="Dashboard counters")
def get_stats(
    stats_manager: StatsManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> DashboardStats:
    return DashboardStats(**stats_manager.get_stats())


@router.get(
    "/courses",
    response_model=List[CourseStudentCount],
    summary="Students per course",
)
def students_per_course(
    course_manager: CourseManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[CourseStudentCount]:
    return [
        CourseStudentCount(
            id=course.id, code=course.code, name=course.name, student_count=student_count
        )
        for course, student_count, _ in course_manager.list_student_counts()
    ]
