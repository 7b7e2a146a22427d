"""Hooks around saga operations.

Each public orchestrator operation runs inside
``HookRegistry.execute_all("saga.<operation>", attributes, ...)`` so that
tracing or metrics can wrap it without the orchestrator knowing about
them. Terminal outcomes that operators care about (``saga.compensated``,
``saga.inconsistent``) are announced with :func:`fire_and_forget_hook`.

A hook is any async callable ``hook(operation, attributes, next_handler)``
that awaits ``next_handler()`` and returns its result::

    async def timed(operation, attributes, next_handler):
        started = time.perf_counter()
        try:
            return await next_handler()
        finally:
            metrics.observe(operation, time.perf_counter() - started)

    get_hook_registry().register(timed, operations=["saga.*_card"])
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    SagaHook = Callable[
        [str, dict[str, Any], Callable[[], Awaitable[Any]]], Awaitable[Any]
    ]
    HookPredicate = Callable[[str, dict[str, Any]], bool]

logger = logging.getLogger("archzero.instrumentation")


@dataclass
class _Registration:
    hook: SagaHook
    priority: int
    operations: list[str] = field(default_factory=list)
    predicate: HookPredicate | None = None

    def applies_to(self, operation: str, attributes: dict[str, Any]) -> bool:
        if self.operations and not any(
            fnmatch.fnmatchcase(operation, pattern) for pattern in self.operations
        ):
            return False
        return self.predicate is None or self.predicate(operation, attributes)


class HookRegistry:
    """Ordered set of hooks; lower ``priority`` wraps outermost."""

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []

    def register(
        self,
        hook: SagaHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        predicate: HookPredicate | None = None,
    ) -> None:
        """Add *hook*, optionally limited to fnmatch ``operations`` patterns."""
        self._registrations.append(
            _Registration(hook, priority, list(operations or []), predicate)
        )
        self._registrations.sort(key=lambda r: r.priority)

    @property
    def has_registrations(self) -> bool:
        return bool(self._registrations)

    async def execute_all(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run *next_handler* wrapped by every hook that applies to *operation*."""
        chain = next_handler
        for registration in reversed(self._registrations):
            if registration.applies_to(operation, attributes):
                chain = _bind(registration.hook, operation, attributes, chain)
        return await chain()


def _bind(
    hook: SagaHook,
    operation: str,
    attributes: dict[str, Any],
    inner: Callable[[], Awaitable[Any]],
) -> Callable[[], Awaitable[Any]]:
    def call() -> Awaitable[Any]:
        return hook(operation, attributes, inner)

    return call


_registry: ContextVar[HookRegistry | None] = ContextVar("hook_registry", default=None)


def get_hook_registry() -> HookRegistry:
    """Context-local registry, created on first use so tests never share hooks."""
    registry = _registry.get()
    if registry is None:
        registry = HookRegistry()
        _registry.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    _registry.set(registry)


def _log_hook_failure(task: asyncio.Task[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.warning(
            "Announcement hook failed: %s", task.exception(), exc_info=task.exception()
        )


def fire_and_forget_hook(
    registry: HookRegistry,
    operation: str,
    attributes: dict[str, Any],
) -> asyncio.Task[Any] | None:
    """Announce *operation* to matching hooks without waiting for them.

    Returns the scheduled task, or ``None`` when nothing is registered or
    there is no running event loop.
    """
    if not registry.has_registrations:
        return None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None

    async def announced() -> None:
        return None

    task = loop.create_task(registry.execute_all(operation, attributes, announced))
    task.add_done_callback(_log_hook_failure)
    return task
