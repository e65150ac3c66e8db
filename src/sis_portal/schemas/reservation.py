"""Subject reservation schema definitions."""

from sis_portal.schemas.common import APIModel
from sis_portal.schemas.subject import SubjectBrief


class ReservationCreate(APIModel):
    student_id: str
    subject_id: str


class ReservationInfo(APIModel):
    id: str
    student_id: str
    subject_id: str
    status: str
    reserved_at: str
    subject: SubjectBrief
