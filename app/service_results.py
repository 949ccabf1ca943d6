"""Caller identity and the success/failure value every domain operation returns."""
import enum
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class CallerContext:
    user_id: int
    is_admin: bool = False


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


@dataclass
class ServiceResult:
    value: Any = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value=None):
        return cls(value=value)

    @classmethod
    def not_found(cls, message="Not found"):
        return cls(error=ErrorKind.NOT_FOUND, message=message)

    @classmethod
    def invalid(cls, message):
        return cls(error=ErrorKind.VALIDATION_FAILED, message=message)

    @classmethod
    def conflict(cls, message):
        return cls(error=ErrorKind.CONFLICT, message=message)

    @classmethod
    def forbidden(cls, message="Administrator access required"):
        return cls(error=ErrorKind.FORBIDDEN, message=message)
