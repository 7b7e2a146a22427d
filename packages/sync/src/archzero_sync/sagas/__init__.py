"""Saga orchestration of the Entity Store / Mirror Store dual write."""

from __future__ import annotations

from .config import OrchestratorConfig
from .orchestrator import SagaOrchestrator
from .state import TERMINAL_PHASES, SagaPhase, SagaRun

__all__ = [
    "TERMINAL_PHASES",
    "OrchestratorConfig",
    "SagaOrchestrator",
    "SagaPhase",
    "SagaRun",
]
