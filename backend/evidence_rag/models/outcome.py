"""Explicit outcome type for the failure-absorbing pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class DegradedReason(str, Enum):
    DISABLED = "disabled"
    STORE_FAILED = "store_failed"
    QUERY_FAILED = "query_failed"


@dataclass(slots=True, frozen=True)
class Outcome(Generic[T]):
    """A pipeline value, tagged with why it is degraded when it is."""

    value: T
    degraded: DegradedReason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.degraded is None


__all__ = ["DegradedReason", "Outcome"]
