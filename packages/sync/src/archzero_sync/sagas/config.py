"""Configuration for the saga orchestrator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class OrchestratorConfig(BaseModel):
    """Tuning knobs for :class:`SagaOrchestrator`.

    A mirror write that exceeds ``mirror_timeout`` is treated exactly like
    any other mirror failure and triggers compensation. ``lock_timeout`` and
    ``lock_ttl`` only apply when a lock strategy is injected.
    """

    model_config = ConfigDict(frozen=True)

    mirror_timeout: float | None = Field(default=None, gt=0)
    lock_timeout: float = Field(default=10.0, gt=0)
    lock_ttl: float = Field(default=30.0, gt=0)
