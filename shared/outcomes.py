from enum import Enum
from typing import Any, Optional
from dataclasses import dataclass


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class AllocationError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, reason: str = None):
        self.reason = reason or self.kind.value.replace('_', ' ').capitalize()
        super().__init__(self.reason)


class InvalidInputError(AllocationError):
    kind = ErrorKind.INVALID_INPUT


class TransientError(AllocationError):
    kind = ErrorKind.TRANSIENT


class InternalError(AllocationError):
    kind = ErrorKind.INTERNAL


@dataclass
class Committed:
    value: Any = None
    committed = True


@dataclass
class Aborted:
    kind: ErrorKind
    reason: str
    committed = False


@dataclass
class AllocationResult:
    ok: bool
    message: str
    kind: Optional[ErrorKind] = None
    value: Any = None

    @classmethod
    def success(cls, message: str, value: Any = None) -> "AllocationResult":
        return cls(ok=True, message=message, value=value)

    @classmethod
    def rejected(cls, kind: ErrorKind, message: str) -> "AllocationResult":
        return cls(ok=False, message=message, kind=kind)

    @classmethod
    def from_aborted(cls, aborted: Aborted) -> "AllocationResult":
        return cls.rejected(aborted.kind, aborted.reason)
