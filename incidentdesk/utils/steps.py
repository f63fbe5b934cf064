"""Typed step results for multi-call sequences.

A step never raises on its own: the caller inspects the result and decides
whether a failure degrades (use a default) or aborts (``unwrap``).
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class StepResult(Generic[T]):
    step: str
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or re-raise the step's error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        return default if self.error is not None else self.value  # type: ignore[return-value]


async def run_step(step: str, awaitable: Awaitable[T]) -> StepResult[T]:
    """Await ``awaitable`` and capture its outcome as a StepResult."""
    try:
        value = await awaitable
    except Exception as exc:
        logger.debug("step_failed", step=step, error=str(exc))
        return StepResult(step=step, error=exc)
    return StepResult(step=step, value=value)
