"""FaultInjector: scripted failures and latency for the in-memory fakes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger("archzero.faults")

ErrorFactory = Callable[[str], BaseException]


@dataclass
class _Rule:
    error: BaseException | None
    remaining: int | None  # None = every call
    skip: int = 0


@dataclass
class FaultInjector:
    """
    Makes named operations of a fake store fail or stall on demand.

    Usage::

        mirror.faults.fail_next("update_node")
        cards.faults.fail_next("update", skip=1)  # let the primary through
        mirror.faults.fail_always("create_edge", MirrorStoreError("down"))
        mirror.faults.delay("create_node", 0.05)
    """

    default_error: ErrorFactory
    _rules: dict[str, _Rule] = field(default_factory=dict)
    _delays: dict[str, float] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def fail_next(
        self,
        operation: str,
        error: BaseException | None = None,
        *,
        times: int = 1,
        skip: int = 0,
    ) -> None:
        """Fail the next *times* calls of *operation*, after letting *skip* through."""
        self._rules[operation] = _Rule(error=error, remaining=times, skip=skip)

    def fail_always(self, operation: str, error: BaseException | None = None) -> None:
        self._rules[operation] = _Rule(error=error, remaining=None)

    def delay(self, operation: str, seconds: float) -> None:
        self._delays[operation] = seconds

    def clear(self) -> None:
        self._rules.clear()
        self._delays.clear()

    async def check(self, operation: str) -> None:
        """Called at the top of every fake operation."""
        self.calls.append(operation)
        seconds = self._delays.get(operation)
        if seconds:
            await asyncio.sleep(seconds)

        rule = self._rules.get(operation)
        if rule is None:
            return
        if rule.skip > 0:
            rule.skip -= 1
            return
        if rule.remaining is not None:
            rule.remaining -= 1
            if rule.remaining <= 0:
                del self._rules[operation]
        error = rule.error or self.default_error(f"injected failure in {operation}")
        logger.debug("Injecting failure into %s: %r", operation, error)
        raise error
