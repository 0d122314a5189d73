"""
CI Provider Base

Abstract interface for remote CI systems that follow the
trigger / list-runs / list-jobs / get-run shape.
Implementations: GitHub Actions.
"""

from abc import ABC, abstractmethod
from typing import List

from runwatch.engine.models import DispatchRequest, Job, RunCandidate, RunStatus


class CIProvider(ABC):
    """
    Abstract interface for CI providers.
    
    Implementations must:
    - raise ProviderError when a trigger is not accepted
    - raise TransientFetchError when any read fails, including
      transport errors and unreadable bodies
    """
    
    host: str = ""
    
    @abstractmethod
    async def trigger(self, request: DispatchRequest) -> None:
        """Trigger one workflow run carrying the request's correlation token."""
        pass
    
    @abstractmethod
    async def list_runs(self, repo: str) -> List[RunCandidate]:
        """List recent runs created by dispatch events."""
        pass
    
    @abstractmethod
    async def list_jobs(self, repo: str, run_id: int) -> List[Job]:
        """List the jobs (with steps) of a run, in remote order."""
        pass
    
    @abstractmethod
    async def get_run(self, repo: str, run_id: int) -> RunStatus:
        """Read a run's current status."""
        pass
    
    async def close(self) -> None:
        """Release any held connections."""
        pass
