# errors.py
import enum
from typing import Any, NamedTuple, Optional


class ErrorKind(enum.Enum):
    UNAUTHENTICATED = 401
    USER_NOT_FOUND = 404
    RESOURCE_NOT_FOUND = 404
    FORBIDDEN = 403
    VALIDATION_FAILED = 400
    CONFLICT = 409
    INVALID_CREDENTIALS = 401
    INVALID_CODE = 400
    EXPIRED = 400
    GONE = 410
    INTERNAL_FAILURE = 500

    # several kinds share a status code, so members must not alias each other
    def __new__(cls, status: int):
        obj = object.__new__(cls)
        obj._value_ = len(cls.__members__) + 1
        obj.status = status
        return obj


class AppError(Exception):
    """Failure with a kind the HTTP layer knows how to map to a status code."""

    def __init__(self, kind: ErrorKind, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    @property
    def status(self) -> int:
        return self.kind.status

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message, "code": self.kind.name}
        if self.details:
            body["details"] = self.details
        return body


class GuardResult(NamedTuple):
    value: Any
    error: Optional[AppError]


def unauthenticated(message: str = "Not authenticated") -> AppError:
    return AppError(ErrorKind.UNAUTHENTICATED, message)

def user_not_found(message: str = "User not found") -> AppError:
    return AppError(ErrorKind.USER_NOT_FOUND, message)

def not_found(message: str) -> AppError:
    return AppError(ErrorKind.RESOURCE_NOT_FOUND, message)

def forbidden(message: str) -> AppError:
    return AppError(ErrorKind.FORBIDDEN, message)

def validation_failed(message: str = "Validation failed", details: Optional[dict] = None) -> AppError:
    return AppError(ErrorKind.VALIDATION_FAILED, message, details)

def conflict(message: str) -> AppError:
    return AppError(ErrorKind.CONFLICT, message)

def invalid_credentials(message: str = "Invalid email or password") -> AppError:
    return AppError(ErrorKind.INVALID_CREDENTIALS, message)

def invalid_code(message: str = "Invalid verification code") -> AppError:
    return AppError(ErrorKind.INVALID_CODE, message)

def expired(message: str = "Verification code has expired. Please request a new one.") -> AppError:
    return AppError(ErrorKind.EXPIRED, message)

def gone(message: str) -> AppError:
    return AppError(ErrorKind.GONE, message)

def internal_failure(message: str = "Internal server error") -> AppError:
    return AppError(ErrorKind.INTERNAL_FAILURE, message)
