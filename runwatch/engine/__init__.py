"""
Engine package - dispatch, correlate and follow remote workflow runs.
"""

from runwatch.engine.errors import (
    ConfigError,
    DispatchFailed,
    RemoteRunFailed,
    ResolutionTimeout,
    WorkflowCancelled,
    WorkflowError,
)
from runwatch.engine.models import Outcome, OutcomeStatus, StepCompletedEvent
from runwatch.engine.orchestrator import CallState, Orchestrator, WorkflowRunResult, run_workflow

__all__ = [
    "ConfigError",
    "DispatchFailed",
    "RemoteRunFailed",
    "ResolutionTimeout",
    "WorkflowCancelled",
    "WorkflowError",
    "Outcome",
    "OutcomeStatus",
    "StepCompletedEvent",
    "CallState",
    "Orchestrator",
    "WorkflowRunResult",
    "run_workflow",
]
