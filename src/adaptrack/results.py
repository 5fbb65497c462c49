"""Tagged result variants for analyses that may legitimately have no answer.

An analysis either computed a value, is waiting on data (``Pending``), lacks
enough history (``InsufficientData``) or was not needed (``NotRequired``).
Callers dispatch with ``isinstance``; none of these
states are errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Computed(Generic[T]):
    """A successfully computed value."""

    value: T

    @property
    def state(self) -> str:
        return "computed"


@dataclass(frozen=True)
class Pending:
    """Computation was requested but depends on data that is not there yet."""

    reason: str

    @property
    def state(self) -> str:
        return "pending"


@dataclass(frozen=True)
class InsufficientData:
    """Not enough history to produce a trustworthy answer."""

    reason: str
    required: int = 0
    available: int = 0

    @property
    def state(self) -> str:
        return "insufficient_data"


@dataclass(frozen=True)
class NotRequired:
    """Nothing to compute: the triggering condition does not hold."""

    reason: str = ""

    @property
    def state(self) -> str:
        return "not_required"


def describe(result: Any) -> dict:
    """Serialize the non-value part of a result for JSON payloads."""
    data: dict = {"state": result.state}
    if isinstance(result, (Pending, NotRequired)):
        data["reason"] = result.reason
    elif isinstance(result, InsufficientData):
        data["reason"] = result.reason
        data["required"] = result.required
        data["available"] = result.available
    return data
