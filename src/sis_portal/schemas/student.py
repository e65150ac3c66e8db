"""Student schema definitions."""

from datetime import date
from typing import List, Optional

from pydantic import Field

from sis_portal.schemas.common import APIModel
from sis_portal.schemas.course import CourseBrief
from sis_portal.schemas.subject import SubjectBrief


class StudentCreate(APIModel):
    student_no: Optional[str] = Field(
        default=None, description="Generated as YYYY-NNNN when omitted."
    )
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[str] = None
    birth_date: date
    course_id: str


class StudentUpdate(APIModel):
    student_no: Optional[str] = Field(default=None, min_length=1)
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    birth_date: Optional[date] = None
    course_id: Optional[str] = None


class StudentInfo(APIModel):
    id: str
    student_no: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    birth_date: str
    course_id: Optional[str] = None
    course: Optional[CourseBrief] = None
    created_at: str


class StudentReservation(APIModel):
    id: str
    subject_id: str
    status: str
    reserved_at: str
    subject: SubjectBrief


class StudentGrade(APIModel):
    id: str
    subject_id: str
    course_id: str
    prelim: Optional[float] = None
    midterm: Optional[float] = None
    finals: Optional[float] = None
    final_grade: Optional[float] = None
    remarks: Optional[str] = None
    subject: SubjectBrief


class StudentDetail(StudentInfo):
    reservations: List[StudentReservation] = Field(default_factory=list)
    grades: List[StudentGrade] = Field(default_factory=list)


class StudentCount(APIModel):
    count: int


class StudentImportRow(APIModel):
    student_no: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    birth_date: str
    course: str = Field(description="Course code or full course name.")


class StudentImportRequest(APIModel):
    students: List[StudentImportRow]


class StudentImportError(APIModel):
    row: int
    student_no: Optional[str] = None
    error: str


class StudentImportResult(APIModel):
    success: int = 0
    failed: int = 0
    errors: List[StudentImportError] = Field(default_factory=list)


class StudentBulkDeleteRequest(APIModel):
    ids: List[str] = Field(min_length=1)
