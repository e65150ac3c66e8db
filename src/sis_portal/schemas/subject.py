"""Subject schema definitions."""

from typing import Optional

from pydantic import Field

from sis_portal.schemas.common import APIModel
from sis_portal.schemas.course import CourseBrief


class SubjectCreate(APIModel):
    course_id: str
    code: str = Field(min_length=1)
    title: str = Field(min_length=1)
    units: int = Field(ge=0)


class SubjectUpdate(APIModel):
    code: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = Field(default=None, min_length=1)
    units: Optional[int] = Field(default=None, ge=0)


class SubjectBrief(APIModel):
    id: str
    code: str
    title: str
    units: int


class SubjectInfo(SubjectBrief):
    course_id: str
    course: Optional[CourseBrief] = None
    created_at: str
    updated_at: str
    reservation_count: int = 0
    grade_count: int = 0


class SubjectAvailability(APIModel):
    code_available: bool
    title_available: bool
