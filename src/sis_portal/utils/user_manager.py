"""User management utilities.

This module provides user management functionality including user storage,
password hashing, credential validation, password changes, and encoder
administration.
"""

import hmac
import logging
from typing import List, Optional, Tuple

import bcrypt
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sis_portal.config import BCRYPT_ROUNDS, MIN_PASSWORD_LENGTH
from sis_portal.core.exceptions import (
    AccountDeactivatedError,
    ConflictError,
    IncorrectCurrentPasswordError,
    InvalidCredentialsError,
    NotFoundError,
    UserAlreadyExistsError,
    ValidationError,
)
from sis_portal.models.grade import GradeModel
from sis_portal.models.user import UserModel
from sis_portal.schemas.user import Role

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


def is_bcrypt_hash(value: str) -> bool:
    return bool(value) and value.startswith(_BCRYPT_PREFIXES)


def validate_new_password(password: Optional[str]) -> str:
    """Check a password a user is about to set.

    Raises:
        ValidationError: If the password is empty or shorter than
            MIN_PASSWORD_LENGTH.
    """
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise (including when the
            stored value is not a bcrypt hash).
        """
        if not is_bcrypt_hash(hashed_password):
            return False
        try:
            return bcrypt.checkpw(
                _password_bytes(plain_password), hashed_password.encode("utf-8")
            )
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    def _matches_legacy_plaintext(self, plain_password: str, stored: str) -> bool:
        """Compare against a row seeded with a plaintext password.

        This is the only place plaintext rows are accepted. Callers must
        rehash on success; remove once every stored password is a bcrypt hash.
        """
        if is_bcrypt_hash(stored):
            return False
        return hmac.compare_digest(
            plain_password.encode("utf-8"), stored.encode("utf-8")
        )

    def check_password(self, user: UserModel, plain_password: str) -> bool:
        """Check a user's password, migrating a legacy plaintext row on match.

        Args:
            user: The stored user.
            plain_password: Password supplied by the caller.

        Returns:
            True if the password matches.
        """
        if self.verify_password(plain_password, user.password_hash):
            return True
        if not self._matches_legacy_plaintext(plain_password, user.password_hash):
            return False

        logger.warning(
            "Legacy plaintext password matched for user %s; rehashing", user.email
        )
        user.password_hash = self.hash_password(plain_password)
        self.db.commit()
        return True

    def authenticate(self, email: str, password: str) -> UserModel:
        """Validate an email/password pair.

        Args:
            email: Account email.
            password: Plain text password.

        Returns:
            The authenticated user.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password
                does not match.
            AccountDeactivatedError: If the account exists but is inactive,
                whether or not the password is correct.
        """
        user = self.get_user_by_email(email)
        if user is None:
            logger.info("Login failed for unknown email %s", email)
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login refused for deactivated user %s", email)
            raise AccountDeactivatedError()
        if not self.check_password(user, password):
            logger.info("Login failed for user %s: wrong password", email)
            raise InvalidCredentialsError()
        return user

    def create_user(
        self,
        email: str,
        password: str,
        role: Role,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserModel:
        """Create a new user.

        Args:
            email: Email address for the new user.
            password: Plain text password.
            role: User role.
            first_name: Optional first name.
            last_name: Optional last name.

        Returns:
            Created UserModel.

        Raises:
            UserAlreadyExistsError: If the email already exists.
        """
        if self.get_user_by_email(email) is not None:
            raise UserAlreadyExistsError(f"User '{email}' already exists")

        model = UserModel(
            email=email,
            password_hash=self.hash_password(password),
            role=Role(role).value,
            is_active=True,
            first_name=first_name,
            last_name=last_name,
        )
        # Two requests may both pass the check above; the unique
        # constraint on email decides which one wins.
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(f"User '{email}' already exists") from e

        logger.info("Created user: %s (%s)", email, model.role)
        return model

    def get_user_by_email(self, email: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.email == email).first()

    def get_user_by_id(self, user_id: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.id == user_id).first()

    def get_user(self, user_id: str) -> UserModel:
        user = self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def change_password(
        self, user_id: str, old_password: str, new_password: str
    ) -> None:
        """Replace a user's password after checking the current one.

        Raises:
            NotFoundError: If the user does not exist.
            IncorrectCurrentPasswordError: If old_password does not match.
            ValidationError: If new_password is too short.
        """
        user = self.get_user(user_id)
        if not self.check_password(user, old_password):
            raise IncorrectCurrentPasswordError()
        validate_new_password(new_password)

        user.password_hash = self.hash_password(new_password)
        self.db.commit()
        logger.info("Password updated for user %s", user.email)

    def list_encoders(self) -> List[Tuple[UserModel, int]]:
        """List encoder accounts with the number of grades each has encoded."""
        grade_counts = (
            self.db.query(
                GradeModel.encoded_by_user_id.label("user_id"),
                func.count(GradeModel.id).label("grade_count"),
            )
            .group_by(GradeModel.encoded_by_user_id)
            .subquery()
        )
        rows = (
            self.db.query(UserModel, func.coalesce(grade_counts.c.grade_count, 0))
            .outerjoin(grade_counts, grade_counts.c.user_id == UserModel.id)
            .filter(UserModel.role == Role.ENCODER.value)
            .order_by(UserModel.created_at.desc())
            .all()
        )
        return [(user, count) for user, count in rows]

    def set_active(self, user_id: str, is_active: bool) -> UserModel:
        user = self.get_user(user_id)
        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(
            "User %s %s", user.email, "activated" if is_active else "deactivated"
        )
        return user

    def delete_encoder(self, user_id: str) -> None:
        """Delete an encoder that has not encoded any grades.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If the user is not an encoder or has grades.
        """
        user = self.get_user(user_id)
        if user.role != Role.ENCODER.value:
            raise ConflictError("Only encoder accounts can be deleted")

        grade_count = (
            self.db.query(GradeModel)
            .filter(GradeModel.encoded_by_user_id == user_id)
            .count()
        )
        if grade_count > 0:
            raise ConflictError(
                "Cannot delete encoder. They have associated grade records. "
                "Deactivate them instead."
            )

        email = user.email
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted encoder: %s", email)
