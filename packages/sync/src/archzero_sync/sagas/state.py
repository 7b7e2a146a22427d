"""Per-call saga state machine.

A :class:`SagaRun` lives only on the call stack of one orchestrator
invocation; nothing about it is persisted::

    NOT_STARTED -> PRIMARY_WRITTEN -> MIRROR_ATTEMPTED -> COMMITTED
                                                       -> COMPENSATING -> COMPENSATED
                                                                       -> INCONSISTENT
"""

from __future__ import annotations

import logging
from enum import Enum

from ..primitives.exceptions import SagaStateError

logger = logging.getLogger("archzero.sagas")


class SagaPhase(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    PRIMARY_WRITTEN = "PRIMARY_WRITTEN"
    MIRROR_ATTEMPTED = "MIRROR_ATTEMPTED"
    COMMITTED = "COMMITTED"
    COMPENSATING = "COMPENSATING"
    COMPENSATED = "COMPENSATED"
    INCONSISTENT = "INCONSISTENT"


_TRANSITIONS: dict[SagaPhase, frozenset[SagaPhase]] = {
    SagaPhase.NOT_STARTED: frozenset({SagaPhase.PRIMARY_WRITTEN}),
    SagaPhase.PRIMARY_WRITTEN: frozenset({SagaPhase.MIRROR_ATTEMPTED}),
    SagaPhase.MIRROR_ATTEMPTED: frozenset(
        {SagaPhase.COMMITTED, SagaPhase.COMPENSATING}
    ),
    SagaPhase.COMPENSATING: frozenset(
        {SagaPhase.COMPENSATED, SagaPhase.INCONSISTENT}
    ),
}

TERMINAL_PHASES: frozenset[SagaPhase] = frozenset(
    {SagaPhase.COMMITTED, SagaPhase.COMPENSATED, SagaPhase.INCONSISTENT}
)


class SagaRun:
    """Phase tracker for one orchestrator call."""

    def __init__(
        self, operation: str, entity_type: str, entity_id: object | None = None
    ) -> None:
        self.operation = operation
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.phase = SagaPhase.NOT_STARTED
        self.history: list[SagaPhase] = [SagaPhase.NOT_STARTED]

    def advance(self, phase: SagaPhase) -> None:
        """Move to *phase*; raises ``SagaStateError`` on an illegal transition."""
        allowed = _TRANSITIONS.get(self.phase, frozenset())
        if phase not in allowed:
            raise SagaStateError(
                f"{self.operation}: cannot move from {self.phase.value} "
                f"to {phase.value}"
            )
        logger.debug(
            "%s %s %s: %s -> %s",
            self.operation,
            self.entity_type,
            self.entity_id,
            self.phase.value,
            phase.value,
        )
        self.phase = phase
        self.history.append(phase)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES
