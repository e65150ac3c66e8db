from sis_portal.schemas.common import APIModel


class DashboardStats(APIModel):
    students: int
    courses: int
    subjects: int
    users: int
    reservations: int
