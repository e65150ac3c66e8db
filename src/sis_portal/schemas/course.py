"""Course schema definitions."""

from typing import List, Optional

from pydantic import Field

from sis_portal.schemas.common import APIModel


class CourseCreate(APIModel):
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CourseUpdate(APIModel):
    code: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class CourseBrief(APIModel):
    id: str
    code: str
    name: str


class CourseInfo(CourseBrief):
    description: Optional[str] = None
    created_at: str
    updated_at: str
    student_count: int = 0
    subject_count: int = 0


class CourseSubject(APIModel):
    id: str
    code: str
    title: str
    units: int


class CourseDetail(CourseInfo):
    subjects: List[CourseSubject] = Field(default_factory=list)


class CourseCodeCheck(APIModel):
    exists: bool


class CourseStudentCount(CourseBrief):
    student_count: int
