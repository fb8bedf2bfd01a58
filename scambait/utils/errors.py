"""Application error taxonomy and helpers for shaping error responses.

Dashboard endpoints raise these and let the exception handlers registered in
``scambait.api.main`` turn them into ``{error, code, details}`` bodies.
Webhook handlers catch errors themselves because the provider's retry
behaviour depends on the status code they return.
"""

from typing import Any, Dict, Optional

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class AppError(Exception):
    """Base class for errors that carry an HTTP status and a stable code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.context = context or {}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    @classmethod
    def required_field(cls, field: str) -> "ValidationError":
        return cls(f"Missing required field: {field}", details={field: "Required"})

    @classmethod
    def invalid_value(cls, field: str, message: str) -> "ValidationError":
        return cls(f"Invalid value for field: {field}. {message}", details={field: message})


class AuthError(AppError):
    status_code = 401
    code = "AUTH_REQUIRED"

    @classmethod
    def invalid_credentials(cls) -> "AuthError":
        return cls("Invalid password", code="INVALID_CREDENTIALS")

    @classmethod
    def invalid_signature(cls) -> "AuthError":
        return cls("Invalid signature", code="INVALID_SIGNATURE", status_code=403)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    @classmethod
    def record(cls, entity: str, record_id: str) -> "NotFoundError":
        return cls(f"{entity} not found", context={"entity": entity, "id": record_id})


class DatabaseError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"

    @classmethod
    def query_failed(cls, operation: str) -> "DatabaseError":
        return cls(
            f"Database query failed during {operation}",
            code="DATABASE_QUERY_FAILED",
            context={"operation": operation},
        )

    @classmethod
    def connection_failed(cls, details: Optional[str] = None) -> "DatabaseError":
        suffix = f": {details}" if details else ""
        return cls(
            f"Database connection failed{suffix}",
            code="DATABASE_CONNECTION_FAILED",
            status_code=503,
        )


class ExternalServiceError(AppError):
    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    @classmethod
    def twilio(cls, message: str, status_code: int = 502) -> "ExternalServiceError":
        return cls(message, code="TWILIO_ERROR", status_code=status_code)

    @classmethod
    def storage(cls, message: str, status_code: int = 502) -> "ExternalServiceError":
        return cls(message, code="STORAGE_ERROR", status_code=status_code)


def format_error_response(error: BaseException, expose_internal: bool = False) -> Dict[str, Any]:
    """Build the JSON body for an error, hiding internals of unexpected ones."""
    if isinstance(error, AppError):
        body: Dict[str, Any] = {"error": error.message, "code": error.code}
        if error.details:
            body["details"] = error.details
        return body

    body = {"error": GENERIC_ERROR_MESSAGE, "code": "INTERNAL_ERROR"}
    if expose_internal:
        body["details"] = {"exception": f"{type(error).__name__}: {error}"}
    return body


def get_error_status_code(error: BaseException) -> int:
    if isinstance(error, AppError):
        return error.status_code
    return 500
