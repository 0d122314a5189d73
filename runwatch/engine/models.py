"""
Data model for the dispatch engine.

Snapshots read from the remote system are plain frozen dataclasses.
The only mutable per-call structure is SeenSteps, which is owned by
exactly one orchestration call.
"""

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


# Remote status value marking a finished run or step
TERMINAL_STATUS = "completed"


def format_timestamp(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 at second precision (`2024-01-01T12:00:00Z`)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_timestamp(value: str) -> str:
    """
    Normalize an ISO-8601 string from the remote system so that it
    compares lexically against format_timestamp() output.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return format_timestamp(datetime.fromisoformat(value))


class OutcomeStatus(str, Enum):
    """Final classification of a finished run."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Outcome:
    """Outcome of a finished run. `conclusion` holds the remote's own value."""
    status: OutcomeStatus
    conclusion: Optional[str] = None
    
    @classmethod
    def success(cls) -> "Outcome":
        return cls(OutcomeStatus.SUCCESS, "success")
    
    @classmethod
    def failure(cls, reason: str) -> "Outcome":
        return cls(OutcomeStatus.FAILURE, reason)
    
    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


@dataclass(frozen=True)
class DispatchRequest:
    """Everything needed to trigger one workflow run."""
    repo: str
    workflow_id: str
    ref: str
    correlation_token: str
    
    def __post_init__(self):
        if not self.repo:
            raise ValueError("repo cannot be empty")
        if not self.workflow_id:
            raise ValueError("workflow_id cannot be empty")
        if not self.correlation_token:
            raise ValueError("correlation_token cannot be empty")


@dataclass(frozen=True)
class DispatchRecord:
    """A trigger that the remote system accepted."""
    request: DispatchRequest
    dispatched_at: str  # Lower bound for candidate creation times


@dataclass(frozen=True)
class RunCandidate:
    """A listed run that may or may not be ours."""
    run_id: int
    workflow_path: str
    created_at: str
    html_url: Optional[str] = None
    
    def matches_workflow(self, workflow_id: str) -> bool:
        return self.workflow_path.endswith(workflow_id)
    
    def created_since(self, not_before: str) -> bool:
        try:
            return normalize_timestamp(self.created_at) >= not_before
        except ValueError:
            return False


@dataclass(frozen=True)
class ResolvedRun:
    """The run confirmed to carry our correlation token."""
    run_id: int
    html_url: Optional[str] = None


@dataclass(frozen=True)
class JobStep:
    """Snapshot of one step within a job."""
    job_id: int
    step_name: str
    status: str
    conclusion: Optional[str] = None
    
    @property
    def key(self) -> Tuple[int, str]:
        return (self.job_id, self.step_name)
    
    @property
    def is_completed(self) -> bool:
        return self.status == TERMINAL_STATUS


@dataclass(frozen=True)
class Job:
    """Snapshot of one job and its steps."""
    job_id: int
    name: str
    steps: List[JobStep] = field(default_factory=list)
    
    def mentions(self, token: str) -> bool:
        return token in (self.name or "")


@dataclass(frozen=True)
class RunStatus:
    """Snapshot of a run's status fields."""
    run_id: int
    status: str
    conclusion: Optional[str] = None
    html_url: Optional[str] = None
    
    @property
    def is_terminal(self) -> bool:
        return self.status == TERMINAL_STATUS


@dataclass(frozen=True)
class StepCompletedEvent:
    """Progress event emitted once per completed step."""
    job_id: int
    job_name: str
    step_name: str
    conclusion: Optional[str]
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "job_name": self.job_name,
            "step_name": self.step_name,
            "conclusion": self.conclusion,
        }


class SeenSteps:
    """
    Keys of steps already reported for one call.
    
    Grows monotonically; there is no way to remove a key.
    """
    
    def __init__(self):
        self._keys: Set[Tuple[int, str]] = set()
    
    def add(self, key: Tuple[int, str]) -> None:
        self._keys.add(key)
    
    def __contains__(self, key: object) -> bool:
        return key in self._keys
    
    def __len__(self) -> int:
        return len(self._keys)
    
    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return iter(self._keys)
