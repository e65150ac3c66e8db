"""Custom exception classes for the SIS Portal.

This module defines application-specific exceptions following Google Python
Style Guide. Every exception carries the HTTP status code it is rendered with
by the application error handler.
"""


class SISError(Exception):
    """Base exception for all SIS Portal errors."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        """Initialize the exception.

        Args:
            message: Human readable message returned to the client.
        """
        self.message = message
        super().__init__(message)


class ValidationError(SISError):
    """Raised when data validation fails."""

    status_code = 400


class UnauthorizedError(SISError):
    """Raised when a request carries no valid session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InvalidCredentialsError(UnauthorizedError):
    """Raised when an email/password pair does not match any account."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class ForbiddenError(SISError):
    """Raised when the current user lacks the required role."""

    status_code = 403

    def __init__(
        self, message: str = "Forbidden: You do not have the required permissions"
    ):
        super().__init__(message)


class AccountDeactivatedError(ForbiddenError):
    """Raised when a deactivated account tries to sign in."""

    def __init__(
        self, message: str = "Account is deactivated. Please contact administrator."
    ):
        super().__init__(message)


class NotFoundError(SISError):
    """Raised when a requested entity cannot be found."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str = ""):
        """Initialize the exception.

        Args:
            entity: Name of the entity type, e.g. "Course".
            entity_id: The ID that was looked up.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidTokenError(SISError):
    """Raised when an invitation token is unknown or already consumed."""

    status_code = 404

    def __init__(self, message: str = "Invalid invitation token"):
        super().__init__(message)


class InvitationExpiredError(SISError):
    """Raised when an invitation token is past its expiry."""

    status_code = 400

    def __init__(self, message: str = "Invitation expired"):
        super().__init__(message)


class IncorrectCurrentPasswordError(SISError):
    """Raised when a password change supplies the wrong current password."""

    status_code = 400

    def __init__(self, message: str = "Incorrect current password"):
        super().__init__(message)


class ConflictError(SISError):
    """Raised when a write would violate a uniqueness or state rule."""

    status_code = 409


class HasDependentsError(ConflictError):
    """Raised when deleting a row that still has dependents without force."""

    pass


class UserAlreadyExistsError(ConflictError):
    """Raised when trying to create a user whose email is taken."""

    def __init__(self, message: str = "User already exists"):
        super().__init__(message)
