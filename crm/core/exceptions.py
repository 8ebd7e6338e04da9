"""Custom exception classes for the CRM accounts backend."""

from fastapi import HTTPException, status


class CRMError(Exception):
    """Base exception for the CRM backend."""

    default_message = "An error occurred"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(CRMError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(CRMError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(CRMError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(CRMError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(CRMError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


# ---- Password ----
class EmptyPassword(ValidationError):
    default_message = "Password can not be empty"


class PasswordRequired(ValidationError):
    default_message = "Password is required."


class WeakPassword(ValidationError):
    default_message = (
        "Must contain at least one number and one uppercase and lowercase letter, "
        "and at least 8 or more characters"
    )


class PasswordTooLong(ValidationError):
    default_message = "Password can not be longer than 72 bytes"


class PasswordMismatch(ValidationError):
    default_message = "Password does not match"


class IncorrectCurrentPassword(ValidationError):
    default_message = "Incorrect current password"


# ---- Tokens ----
class TokenInvalidOrExpired(ValidationError):
    default_message = "Token is invalid or has expired"


# ---- Users ----
class InvalidLogin(AuthenticationError):
    default_message = "Invalid login"


class UserNotFound(ResourceNotFoundError):
    default_message = "User not found"


class InvalidEmail(ResourceNotFoundError):
    default_message = "Invalid email"


class DuplicatedEmail(ResourceConflictError):
    default_message = "Duplicated email"


class InvalidGroup(ValidationError):
    default_message = "Invalid group"


class InvalidRequest(ValidationError):
    default_message = "Invalid request"


class CannotDeactivateOwner(AuthorizationError):
    default_message = "Can not deactivate owner"


# HTTP exception shortcuts
def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
