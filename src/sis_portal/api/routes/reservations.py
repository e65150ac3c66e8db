"""Subject reservation routes."""

from typing import List

from fastapi import APIRouter, Depends, status

from sis_portal.api.routes.auth import get_current_user, require_staff
from sis_portal.core.dependencies import ReservationManagerDep
from sis_portal.schemas.common import MessageResponse
from sis_portal.schemas.reservation import ReservationCreate, ReservationInfo
from sis_portal.schemas.subject import SubjectBrief
from sis_portal.schemas.user import SessionUser

router = APIRouter(prefix="/api/reservations", tags=["Reservation"])


@router.get(
    "/student/{student_id}",
    response_model=List[ReservationInfo],
    summary="Reservations of a student",
)
def list_student_reservations(
    student_id: str,
    reservation_manager: ReservationManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[ReservationInfo]:
    return [
        ReservationInfo.model_validate(model)
        for model in reservation_manager.list_by_student(student_id)
    ]


@router.get(
    "/available/{student_id}",
    response_model=List[SubjectBrief],
    summary="Subjects a student can still reserve",
)
def list_available_subjects(
    student_id: str,
    reservation_manager: ReservationManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> List[SubjectBrief]:
    return [
        SubjectBrief.model_validate(model)
        for model in reservation_manager.list_available_subjects(student_id)
    ]


@router.post(
    "",
    response_model=ReservationInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Reserve a subject",
)
def create_reservation(
    req: ReservationCreate,
    reservation_manager: ReservationManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> ReservationInfo:
    """Reserve a subject for a student and open a pending grade row.

    Raises:
        NotFoundError: If the student or subject does not exist.
        ValidationError: If the subject belongs to another course.
        ConflictError: If the subject is already reserved.
    """
    model = reservation_manager.create_reservation(
        req.student_id, req.subject_id, actor_id=current_user.id
    )
    return ReservationInfo.model_validate(model)


@router.patch(
    "/{reservation_id}/cancel",
    response_model=ReservationInfo,
    summary="Cancel a reservation",
)
def cancel_reservation(
    reservation_id: str,
    reservation_manager: ReservationManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> ReservationInfo:
    model = reservation_manager.cancel_reservation(reservation_id, actor_id=current_user.id)
    return ReservationInfo.model_validate(model)


@router.delete(
    "/{reservation_id}",
    response_model=MessageResponse,
    summary="Delete a reservation",
)
def delete_reservation(
    reservation_id: str,
    reservation_manager: ReservationManagerDep,
    current_user: SessionUser = Depends(require_staff),
) -> MessageResponse:
    reservation_manager.delete_reservation(reservation_id, actor_id=current_user.id)
    return MessageResponse(message="Reservation deleted successfully")
