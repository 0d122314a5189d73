"""
Pytest fixtures and fakes for RunWatch tests.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from datetime import datetime, timedelta, timezone
import asyncio

import pytest

from runwatch.engine.clock import Clock
from runwatch.engine.errors import ProviderError
from runwatch.engine.models import DispatchRequest, Job, JobStep, RunCandidate, RunStatus
from runwatch.providers.base import CIProvider


TOKEN = "7d3f9a52-0c4e-4a8e-9f4b-2b1d6c0e8a11"
START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Virtual clock: sleeping advances time instantly."""
    
    def __init__(self, start: datetime = START):
        self._now = start
        self._elapsed = 0.0
        self.sleeps: List[float] = []
    
    def now(self) -> datetime:
        return self._now
    
    def monotonic(self) -> float:
        return self._elapsed
    
    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._elapsed += seconds
        self._now = self._now + timedelta(seconds=seconds)
        await asyncio.sleep(0)


Scripted = Union[Any, Exception]


class FakeProvider(CIProvider):
    """
    Scripted in-memory CI provider.
    
    Each read returns the next item of its script; the last item repeats.
    Items that are exceptions are raised instead. Every call is recorded.
    """
    
    host = "github.com"
    
    def __init__(
        self,
        runs: Optional[Sequence[Scripted]] = None,
        jobs: Optional[Dict[int, Sequence[Scripted]]] = None,
        statuses: Optional[Dict[int, Sequence[Scripted]]] = None,
        trigger_error: Optional[ProviderError] = None,
    ):
        self._runs = list(runs or [[]])
        self._jobs = {k: list(v) for k, v in (jobs or {}).items()}
        self._statuses = {k: list(v) for k, v in (statuses or {}).items()}
        self.trigger_error = trigger_error
        self.calls: List[Tuple[str, Any]] = []
        self.closed = False
    
    @staticmethod
    def _next(script: List[Scripted]) -> Any:
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item
    
    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)
    
    async def trigger(self, request: DispatchRequest) -> None:
        self.calls.append(("trigger", request))
        if self.trigger_error is not None:
            raise self.trigger_error
    
    async def list_runs(self, repo: str) -> List[RunCandidate]:
        self.calls.append(("list_runs", repo))
        return self._next(self._runs)
    
    async def list_jobs(self, repo: str, run_id: int) -> List[Job]:
        self.calls.append(("list_jobs", run_id))
        return self._next(self._jobs.get(run_id, [[]]))
    
    async def get_run(self, repo: str, run_id: int) -> RunStatus:
        self.calls.append(("get_run", run_id))
        return self._next(self._statuses.get(run_id, [RunStatus(run_id, "in_progress")]))
    
    async def close(self) -> None:
        self.closed = True


def make_job(job_id: int, name: str, steps: Sequence[Tuple[str, str, Optional[str]]]) -> Job:
    """Build a Job from (name, status, conclusion) tuples."""
    return Job(
        job_id=job_id,
        name=name,
        steps=[JobStep(job_id, step, status, conclusion) for step, status, conclusion in steps],
    )


def make_run(
    run_id: int,
    created_at: str = "2024-01-01T12:00:03Z",
    path: str = ".github/workflows/ci.yaml",
) -> RunCandidate:
    return RunCandidate(
        run_id=run_id,
        workflow_path=path,
        created_at=created_at,
        html_url=f"https://github.com/org/repo/actions/runs/{run_id}",
    )


def ci_scenario(conclusion: str = "success", token: str = TOKEN) -> FakeProvider:
    """
    `ci.yaml` on `org/repo`: one matching run whose `build-<token>` job
    finishes `checkout` on the first monitoring poll and `test` on the second.
    """
    job_name = f"build-{token}"
    queued = make_job(11, job_name, [("checkout", "queued", None), ("test", "queued", None)])
    first = make_job(11, job_name, [("checkout", "completed", "success"), ("test", "in_progress", None)])
    second = make_job(11, job_name, [("checkout", "completed", "success"), ("test", "completed", conclusion)])
    url = "https://github.com/org/repo/actions/runs/101"
    
    return FakeProvider(
        runs=[[make_run(101)]],
        jobs={101: [[queued], [first], [second]]},
        statuses={101: [
            RunStatus(101, "in_progress", None, url),
            RunStatus(101, "completed", conclusion, url),
        ]},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def success_provider():
    return ci_scenario("success")


@pytest.fixture
def failure_provider():
    return ci_scenario("failure")
