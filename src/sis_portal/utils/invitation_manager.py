"""Invitation lifecycle utilities.

An invitation is issued for an email and role, verified by token, and
consumed exactly once when the invitee sets a password. Consuming the
invitation and creating the account happen in one transaction.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sis_portal.config import INVITATION_TTL_HOURS
from sis_portal.core.exceptions import (
    InvalidTokenError,
    InvitationExpiredError,
    NotFoundError,
    UserAlreadyExistsError,
)
from sis_portal.models.invitation import InvitationModel
from sis_portal.models.user import UserModel
from sis_portal.schemas.user import Role
from sis_portal.utils.user_manager import UserManager, validate_new_password

logger = logging.getLogger(__name__)


def parse_expires_at(value: str) -> datetime:
    expires_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = pytz.utc.localize(expires_at)
    return expires_at


def is_expired(invitation: InvitationModel, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(pytz.utc)
    return now > parse_expires_at(invitation.expires_at)


class InvitationManager:
    """Manages invitation tokens and their redemption."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserManager(db)

    def issue(
        self,
        email: str,
        role: Role = Role.ENCODER,
        created_by: Optional[str] = None,
        ttl_hours: int = INVITATION_TTL_HOURS,
    ) -> InvitationModel:
        """Issue a fresh invitation, replacing older ones for the same email.

        Args:
            email: Email the account will be created for.
            role: Role the account will receive.
            created_by: ID of the inviting admin.
            ttl_hours: Hours until the invitation expires.

        Returns:
            The created InvitationModel.

        Raises:
            UserAlreadyExistsError: If an account with the email exists.
        """
        if self.users.get_user_by_email(email) is not None:
            raise UserAlreadyExistsError("User with this email already exists")

        self.db.query(InvitationModel).filter(InvitationModel.email == email).delete(
            synchronize_session=False
        )
        now = datetime.now(pytz.utc)
        model = InvitationModel(
            token=secrets.token_urlsafe(32),
            email=email,
            role=Role(role).value,
            created_by=created_by,
            created_at=now.isoformat(timespec="microseconds"),
            expires_at=(now + timedelta(hours=ttl_hours)).isoformat(),
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Issued %s invitation for %s (expires %s)", model.role, email, model.expires_at)
        return model

    def get_by_token(self, token: str) -> Optional[InvitationModel]:
        return (
            self.db.query(InvitationModel)
            .filter(InvitationModel.token == token)
            .first()
        )

    def verify(self, token: str) -> InvitationModel:
        """Return the invitation for a token that can still be redeemed.

        Raises:
            InvalidTokenError: If the token is unknown or already consumed.
            InvitationExpiredError: If the invitation is past its expiry.
        """
        invitation = self.get_by_token(token) if token else None
        if invitation is None:
            raise InvalidTokenError()
        if is_expired(invitation):
            raise InvitationExpiredError()
        return invitation

    def complete(self, token: str, password: str) -> UserModel:
        """Redeem an invitation by creating its account.

        The invitation row is claimed with a conditional delete; only the
        request whose delete removes the row may create the user. User
        creation and the delete commit together.

        Args:
            token: Invitation token.
            password: Password for the new account.

        Returns:
            The created user.

        Raises:
            InvalidTokenError: If the token is unknown or already consumed.
            InvitationExpiredError: If the invitation has expired.
            UserAlreadyExistsError: If an account with the email exists.
            ValidationError: If the password is too short.
        """
        invitation = self.verify(token)
        validate_new_password(password)
        email, role = invitation.email, invitation.role

        if self.users.get_user_by_email(email) is not None:
            raise UserAlreadyExistsError()

        password_hash = self.users.hash_password(password)
        claimed = (
            self.db.query(InvitationModel)
            .filter(InvitationModel.token == token)
            .delete(synchronize_session=False)
        )
        if claimed != 1:
            self.db.rollback()
            raise InvalidTokenError()

        user = UserModel(
            email=email,
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError() from e

        self.db.refresh(user)
        logger.info("Invitation consumed: created %s account %s", role, email)
        return user

    def list_pending(self, role: Optional[Role] = None) -> List[InvitationModel]:
        query = self.db.query(InvitationModel)
        if role is not None:
            query = query.filter(InvitationModel.role == Role(role).value)
        return query.order_by(InvitationModel.created_at.desc()).all()

    def revoke(self, invitation_id: str) -> None:
        """Delete an invitation so its token can no longer be redeemed.

        Raises:
            NotFoundError: If the invitation does not exist.
        """
        model = (
            self.db.query(InvitationModel)
            .filter(InvitationModel.id == invitation_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Invitation", invitation_id)
        email = model.email
        self.db.delete(model)
        self.db.commit()
        logger.info("Revoked invitation for %s", email)
