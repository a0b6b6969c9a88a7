# ============================================================================
# src/nanopore_intake/core/result.py
# ============================================================================
"""
Explicit success/failure values.

"External extractor unavailable" is an expected outcome, not an exceptional
one, so the resilience layer hands back Ok/Err instead of raising. Callers
branch on `result.is_ok`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(Enum):
    """Why an operation produced no value."""
    CIRCUIT_OPEN = "circuit_open"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    MALFORMED_RESPONSE = "malformed_response"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    EXHAUSTED = "exhausted"          # every retry failed
    NO_DATA = "no_data"              # ran fine, extracted nothing
    INPUT = "input"                  # nothing to extract from
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    cached: bool = False

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""
    exception: Optional[BaseException] = None

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        if self.exception is not None:
            raise self.exception
        raise RuntimeError(f"{self.kind.value}: {self.message}")


Result = Union[Ok[T], Err]
