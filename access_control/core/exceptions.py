"""Custom exception classes for the access control engine."""

from typing import Optional

from fastapi import HTTPException, status


class AccessControlError(Exception):
    """Base exception for the access control engine."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(AccessControlError):
    """Raised when no role can be resolved for the caller."""
    pass


class AuthorizationError(AccessControlError):
    """Raised when the caller's role does not satisfy a requirement."""
    pass


class ResourceNotFoundError(AccessControlError):
    """Raised when a requested role, permission or rule is not found."""
    pass


class ResourceConflictError(AccessControlError):
    """Raised when a role or permission already exists."""
    pass


class UnknownAccessLevelError(AccessControlError):
    """Raised when an access level string is outside none/read/edit/create."""

    def __init__(self, value: Optional[str]):
        self.value = value
        super().__init__(
            f"Unknown access level {value!r}; expected one of none, read, edit, create"
        )


class BatchCommitError(AccessControlError):
    """Raised when a bulk matrix update could not be applied as a whole.

    Nothing from the batch is persisted when this is raised.
    """

    def __init__(self, message: str = "Bulk update failed and was rolled back", changes: int = 0):
        self.changes = changes
        super().__init__(message)


class ContextLoadError(AccessControlError):
    """Raised when a role's access context cannot be fetched.

    Distinct from a role that simply has no rules or grants.
    """

    def __init__(self, role_id: Optional[int], message: str = "Could not load access context"):
        self.role_id = role_id
        super().__init__(f"{message} for role {role_id}")


# HTTP exception shortcuts
def not_found(detail: str = "Resource not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def forbidden(detail="Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def bad_request(detail: str = "Bad request") -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def unavailable(detail: str = "Access context unavailable") -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
