"""User administration routes (admin only)."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from sis_portal.api.routes.auth import require_admin
from sis_portal.core.dependencies import (
    AuditManagerDep,
    InvitationManagerDep,
    UserManagerDep,
)
from sis_portal.schemas.common import MessageResponse
from sis_portal.schemas.user import (
    EncoderInfo,
    InvitationInfo,
    InviteEncoderRequest,
    Role,
    SessionUser,
    UpdateUserStatusRequest,
    UserStatusResponse,
)
from sis_portal.utils.email_service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/encoders", response_model=List[EncoderInfo], summary="List encoders")
def list_encoders(
    user_manager: UserManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> List[EncoderInfo]:
    return [
        EncoderInfo.model_validate(user).model_copy(update={"grade_count": count})
        for user, count in user_manager.list_encoders()
    ]


@router.get(
    "/invitations",
    response_model=List[InvitationInfo],
    summary="List pending invitations",
)
def list_invitations(
    invitation_manager: InvitationManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> List[InvitationInfo]:
    return [
        InvitationInfo.model_validate(model)
        for model in invitation_manager.list_pending(Role.ENCODER)
    ]


@router.post(
    "/invite",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite an encoder",
)
def invite_encoder(
    req: InviteEncoderRequest,
    invitation_manager: InvitationManagerDep,
    audit_manager: AuditManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    """Issue an encoder invitation and email its link.

    Raises:
        UserAlreadyExistsError: If an account with the email exists.
        EmailDeliveryError: If the invitation email could not be sent.
    """
    invitation = invitation_manager.issue(
        str(req.email), role=Role.ENCODER, created_by=current_user.id
    )
    EmailService.send_invitation(invitation.email, invitation.token)
    audit_manager.log(
        current_user.id,
        "INVITE_USER",
        "Invitation",
        invitation.id,
        {"email": invitation.email, "role": invitation.role},
    )
    return MessageResponse(message="Invitation sent successfully")


@router.delete(
    "/invitations/{invitation_id}",
    response_model=MessageResponse,
    summary="Revoke an invitation",
)
def revoke_invitation(
    invitation_id: str,
    invitation_manager: InvitationManagerDep,
    audit_manager: AuditManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    invitation_manager.revoke(invitation_id)
    audit_manager.log(current_user.id, "REVOKE_INVITATION", "Invitation", invitation_id)
    return MessageResponse(message="Invitation revoked")


@router.patch(
    "/{user_id}/status",
    response_model=UserStatusResponse,
    summary="Activate or deactivate a user",
)
def update_status(
    user_id: str,
    req: UpdateUserStatusRequest,
    user_manager: UserManagerDep,
    audit_manager: AuditManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> UserStatusResponse:
    user = user_manager.set_active(user_id, req.is_active)
    audit_manager.log(
        current_user.id,
        "UPDATE_USER_STATUS",
        "User",
        user_id,
        {"email": user.email, "isActive": req.is_active},
    )
    return UserStatusResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse, summary="Delete an encoder")
def delete_encoder(
    user_id: str,
    user_manager: UserManagerDep,
    audit_manager: AuditManagerDep,
    current_user: SessionUser = Depends(require_admin),
) -> MessageResponse:
    user_manager.delete_encoder(user_id)
    audit_manager.log(current_user.id, "DELETE_USER", "User", user_id)
    return MessageResponse(message="Encoder deleted successfully")
