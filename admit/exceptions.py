"""
Admit exceptions.

Every failure an operation can report is an AdmitError subclass carrying a
stable machine-readable code and the HTTP status it maps to, so callers can
branch on the kind of failure instead of parsing messages.
"""

from typing import Any, Dict, Optional


class AdmitError(Exception):
    """Base class for all Admit domain errors."""

    code: str = "admit_error"
    http_status: int = 500

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for an API response body."""
        return {"code": self.code, "message": self.message}


class UnauthorizedError(AdmitError):
    """No caller identity, or the bearer token could not be verified."""

    code = "unauthorized"
    http_status = 401


class ForbiddenError(AdmitError):
    """Caller is authenticated but lacks the organization role, or the email does not match."""

    code = "forbidden"
    http_status = 403


class NotFoundError(AdmitError):
    """No invitation or organization for the given id or token."""

    code = "not_found"
    http_status = 404


class ValidationError(AdmitError):
    """Malformed email, disallowed role value or missing field."""

    code = "validation_error"
    http_status = 400


class ConflictError(AdmitError):
    """
    The request conflicts with current state.

    Raised for duplicate pending invitations, already-a-member, and
    invitations that already reached a terminal status. In the last case
    ``status`` holds that terminal status.
    """

    code = "conflict"
    http_status = 409

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=code)
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class GoneError(AdmitError):
    """The invitation has expired."""

    code = "invitation_expired"
    http_status = 410


class DatabaseError(AdmitError):
    """
    A datastore round-trip failed or timed out.

    The operations are written so the whole call can be retried when
    ``retryable`` is set.
    """

    code = "database_error"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        retryable: bool = True,
        pg_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=code)
        self.retryable = retryable
        self.pg_code = pg_code
        if code == "timeout":
            self.http_status = 503
