"""Authentication routes.

This module handles HTTP endpoints for login, logout, password changes and
invitation redemption, plus the session helpers other routers depend on.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz
from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from sis_portal.config import (
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SECURE,
    SESSION_TTL_DAYS,
)
from sis_portal.core.dependencies import InvitationManagerDep, UserManagerDep
from sis_portal.core.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from sis_portal.schemas.common import MessageResponse
from sis_portal.schemas.user import (
    ChangePasswordRequest,
    CompleteInviteRequest,
    LoginRequest,
    LoginResponse,
    Role,
    SessionUser,
    VerifyInviteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# Bearer header is accepted as an alternative to the session cookie
security = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """Identity attached to one request. ``user`` is None when anonymous."""

    user: Optional[SessionUser] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(days=SESSION_TTL_DAYS)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[SessionUser]:
    """Return the identity in a token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        return SessionUser.model_validate(payload)
    except (JWTError, PydanticValidationError):
        return None


def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """Resolve the caller from the session cookie or a Bearer header."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        return AuthContext()
    return AuthContext(user=decode_session_token(token))


def get_current_user(auth: AuthContext = Depends(get_auth_context)) -> SessionUser:
    """Get current authenticated user.

    Raises:
        UnauthorizedError: If the request carries no valid session.
    """
    if auth.user is None:
        raise UnauthorizedError()
    return auth.user


def require_roles(*roles: Role) -> Callable[..., SessionUser]:
    """Build a dependency that admits only users holding one of ``roles``."""
    allowed = frozenset(Role(role) for role in roles)

    def _check(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if current_user.role not in allowed:
            logger.info(
                "Denied %s (%s): requires one of %s",
                current_user.email,
                current_user.role.value,
                sorted(role.value for role in allowed),
            )
            raise ForbiddenError()
        return current_user

    return _check


require_admin = require_roles(Role.ADMIN)
require_staff = require_roles(Role.ADMIN, Role.ENCODER)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    response: Response,
    user_manager: UserManagerDep,
) -> LoginResponse:
    """Log in with email and password.

    Args:
        req: Login request with email and password.
        response: Outgoing response, receives the session cookie.
        user_manager: Injected UserManager instance.

    Returns:
        LoginResponse with the session identity.

    Raises:
        ValidationError: If email or password is missing.
        InvalidCredentialsError: If the credentials do not match.
        AccountDeactivatedError: If the account is deactivated.
    """
    if not req.email or not req.password:
        raise ValidationError("Email and password are required")

    user = user_manager.authenticate(req.email.strip(), req.password)
    session_user = SessionUser(id=user.id, email=user.email, role=Role(user.role))
    token = create_access_token(
        {"id": session_user.id, "email": session_user.email, "role": session_user.role.value}
    )
    _set_session_cookie(response, token)
    logger.info("User %s logged in", user.email)
    return LoginResponse(message="Login successful", user=session_user)


@router.get("/me", response_model=Optional[SessionUser], summary="Current user")
def me(auth: AuthContext = Depends(get_auth_context)) -> Optional[SessionUser]:
    return auth.user


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(response: Response) -> MessageResponse:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/change-password", response_model=MessageResponse, summary="Change password"
)
def change_password(
    req: ChangePasswordRequest,
    user_manager: UserManagerDep,
    current_user: SessionUser = Depends(get_current_user),
) -> MessageResponse:
    if not req.old_password or not req.new_password:
        raise ValidationError("Old password and new password are required")
    user_manager.change_password(current_user.id, req.old_password, req.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get(
    "/verify-invite/{token}",
    response_model=VerifyInviteResponse,
    summary="Check an invitation token",
)
def verify_invite(
    token: str, invitation_manager: InvitationManagerDep
) -> VerifyInviteResponse:
    invitation = invitation_manager.verify(token)
    return VerifyInviteResponse(valid=True, email=invitation.email)


@router.post(
    "/complete-invite",
    response_model=MessageResponse,
    summary="Set a password for an invited account",
)
def complete_invite(
    req: CompleteInviteRequest, invitation_manager: InvitationManagerDep
) -> MessageResponse:
    """Redeem an invitation token by choosing a password.

    Raises:
        ValidationError: If token or password is missing or too short.
        InvalidTokenError: If the token is unknown or already used.
        InvitationExpiredError: If the invitation has expired.
        UserAlreadyExistsError: If an account with the email exists.
    """
    if not req.token or not req.password:
        raise ValidationError("Token and password are required")
    invitation_manager.complete(req.token, req.password)
    return MessageResponse(message="Account created successfully")
