"""Result value for best-effort operations whose failures are not raised."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Result:
    """Outcome of an operation that must never break its caller.

    Either ok is True and value may be populated, or ok is False and error
    holds the failure text.
    """

    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> Result:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> Result:
        return cls(ok=False, error=error)
