"""Grade schema definitions.

``final_grade`` and ``remarks`` only appear on responses; they are always
derived from the three components on the server.
"""

from typing import List, Optional

from pydantic import Field

from sis_portal.schemas.common import APIModel
from sis_portal.schemas.course import CourseBrief
from sis_portal.schemas.subject import SubjectBrief


class GradeComponents(APIModel):
    prelim: Optional[float] = None
    midterm: Optional[float] = None
    finals: Optional[float] = None


class GradeCreate(GradeComponents):
    student_id: str
    subject_id: str
    course_id: str


class GradeUpdate(GradeComponents):
    """Partial update. Only components present in the body are changed."""


class GradeBulkItem(GradeComponents):
    id: str


class GradeBulkUpdateRequest(APIModel):
    updates: List[GradeBulkItem]


class GradeStudent(APIModel):
    id: str
    student_no: str
    first_name: str
    last_name: str


class GradeInfo(APIModel):
    id: str
    student_id: str
    subject_id: str
    course_id: str
    prelim: Optional[float] = None
    midterm: Optional[float] = None
    finals: Optional[float] = None
    final_grade: Optional[float] = None
    remarks: Optional[str] = None
    encoded_by_user_id: Optional[str] = None
    created_at: str
    updated_at: str
    student: Optional[GradeStudent] = None
    subject: Optional[SubjectBrief] = None
    course: Optional[CourseBrief] = None


class GradeBulkUpdateResponse(APIModel):
    count: int
    updated: List[GradeInfo] = Field(default_factory=list)
