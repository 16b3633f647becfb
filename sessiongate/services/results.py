from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(StrEnum):
    INVALID_TOKEN = "invalid_token"
    REUSE_DETECTED = "reuse_detected"
    ACCOUNT_INACTIVE_OR_MISSING = "account_inactive_or_missing"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    kind: FailureKind
    # Internal diagnostic only; never sent to clients.
    reason: str = ""


Result = Union[Ok[T], Failure]

__all__ = ["FailureKind", "Ok", "Failure", "Result"]
