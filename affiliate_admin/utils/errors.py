"""Error types for settlement operations.

Two families:
- SettlementError: request-level errors surfaced to the API caller.
- CalculationFailure / Outcome: downgraded calculation steps. The engine
  never raises these; it returns zeroes and records what failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Standard error codes for settlement requests."""

    INTERNAL_ERROR = "INTERNAL_ERROR"

    PARTNER_NOT_FOUND = "PARTNER_NOT_FOUND"
    INVALID_PERIOD = "INVALID_PERIOD"
    DATA_SOURCE_UNAVAILABLE = "DATA_SOURCE_UNAVAILABLE"


NOT_FOUND_CODES = frozenset({ErrorCode.PARTNER_NOT_FOUND.value})


class SettlementError(Exception):
    """Settlement request error.

    Attributes:
        code: Error code for programmatic handling
        message: User-facing message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.code in NOT_FOUND_CODES

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
        }


class PartnerNotFoundError(SettlementError):
    """Raised when a partner id does not exist."""

    def __init__(self, partner_id: str):
        super().__init__(
            code=ErrorCode.PARTNER_NOT_FOUND,
            message="파트너를 찾을 수 없습니다",
            details={"partnerId": partner_id},
        )


class DataAccessError(Exception):
    """A read against the settlement data source failed."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class FailureKind(str, Enum):
    """Why a calculation step was downgraded to zero."""

    DATA_ACCESS = "data_access"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class CalculationFailure:
    """One downgraded calculation step."""

    kind: FailureKind
    stage: str
    message: str
    partner_id: str | None = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        stage: str,
        partner_id: str | None = None,
    ) -> CalculationFailure:
        kind = (
            FailureKind.DATA_ACCESS
            if isinstance(exc, DataAccessError)
            else FailureKind.UNEXPECTED
        )
        return cls(kind=kind, stage=stage, message=str(exc), partner_id=partner_id)


@dataclass
class Outcome(Generic[T]):
    """Calculation result that keeps "zero activity" apart from "failed".

    ``value`` is always usable for rendering (zeroes when a step failed);
    ``failures`` says which steps were downgraded.
    """

    value: T
    failures: list[CalculationFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def degraded(self) -> bool:
        return bool(self.failures)
