"""Error types raised by services and routers.

Every error carries a human-readable ``message`` (shown verbatim in the
client's toast) and an ``ErrorKind`` so clients can branch on the kind of
failure without inspecting message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    INVALID_PARENT = "invalid_parent"
    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCESS_DENIED = "access_denied"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    NOT_CONFIGURED = "not_configured"
    INTERNAL_ERROR = "internal_error"


class CrewError(Exception):
    """Base class for errors that map onto an HTTP response.

    Attributes:
        message: Human-readable error message
        kind: Machine-readable error kind
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = None, kind: ErrorKind = None):
        self.message = message or self.default_message
        self.kind = kind or self.default_kind
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.kind.value}


class ValidationFailed(CrewError):
    status_code = 400
    default_kind = ErrorKind.VALIDATION_ERROR
    default_message = "Validation failed"


class InvalidParent(CrewError):
    """A referenced folder does not exist in the target workspace."""

    status_code = 400
    default_kind = ErrorKind.INVALID_PARENT
    default_message = "Invalid parent folder"


class NotAuthenticated(CrewError):
    status_code = 401
    default_kind = ErrorKind.NOT_AUTHENTICATED
    default_message = "Unauthorized"


class InvalidCredentials(CrewError):
    # same message for unknown email and wrong password
    status_code = 401
    default_kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class AccessDenied(CrewError):
    """The caller is not a member of the workspace."""

    status_code = 403
    default_kind = ErrorKind.ACCESS_DENIED
    default_message = "Access denied"


class PermissionDenied(CrewError):
    """The caller is a member but their role does not allow the action."""

    status_code = 403
    default_kind = ErrorKind.PERMISSION_DENIED
    default_message = "Permission denied"


class NotFound(CrewError):
    status_code = 404
    default_kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class AlreadyExists(CrewError):
    status_code = 409
    default_kind = ErrorKind.ALREADY_EXISTS
    default_message = "Already exists"


class Conflict(CrewError):
    status_code = 409
    default_kind = ErrorKind.CONFLICT
    default_message = "Request conflicts with current state"


class PayloadTooLarge(CrewError):
    status_code = 413
    default_kind = ErrorKind.PAYLOAD_TOO_LARGE
    default_message = "Upload exceeds the allowed size"


class UpstreamUnavailable(CrewError):
    status_code = 502
    default_kind = ErrorKind.UPSTREAM_UNAVAILABLE
    default_message = "The upstream service is temporarily unavailable. Please try again."


class ServiceNotConfigured(CrewError):
    status_code = 503
    default_kind = ErrorKind.NOT_CONFIGURED
    default_message = "Service not configured"
