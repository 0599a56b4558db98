"""
services/outcome.py — Result type returned by the ledger core.

Ledger rejections are data, not control flow: adjust_balance, add_points,
allocate_spend and spend_points return an Outcome instead of raising. The
route layer is the only place a rejected Outcome becomes an exception
(`raise outcome.error`), which the global error handler renders.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from points_ledger.app.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def rejected(cls, error: AppError) -> "Outcome[T]":
        return cls(error=error)
