"""
In-Memory Storage for workflow calls.

Keeps a record of every call made through the API, keyed by its
correlation token. Nothing survives a restart.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import asyncio
from dataclasses import dataclass, field


@dataclass
class StoredCall:
    """A stored workflow call."""
    correlation_token: str
    repo: str
    workflow_id: str
    ref: str
    state: str = "idle"
    run_id: Optional[int] = None
    run_url: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)
    conclusion: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_token": self.correlation_token,
            "repo": self.repo,
            "workflow_id": self.workflow_id,
            "ref": self.ref,
            "state": self.state,
            "run_id": self.run_id,
            "run_url": self.run_url,
            "events": list(self.events),
            "conclusion": self.conclusion,
            "error": self.error,
            "error_type": self.error_type,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class RunStorage:
    """
    Async-safe in-memory storage for workflow calls.
    
    Updated by the call's callbacks while it runs, and read by the
    status endpoints and WebSocket subscribers.
    """
    
    def __init__(self):
        self._calls: Dict[str, StoredCall] = {}
        self._lock = asyncio.Lock()
    
    async def create(
        self,
        correlation_token: str,
        repo: str,
        workflow_id: str,
        ref: str
    ) -> StoredCall:
        """
        Create a new call record.
        
        Args:
            correlation_token: The call's correlation token
            repo: Repository the workflow runs on
            workflow_id: Workflow file name or id
            ref: Branch or tag
        
        Returns:
            The stored call
        """
        async with self._lock:
            stored = StoredCall(
                correlation_token=correlation_token,
                repo=repo,
                workflow_id=workflow_id,
                ref=ref,
            )
            self._calls[correlation_token] = stored
            return stored
    
    async def get(self, correlation_token: str) -> Optional[StoredCall]:
        """Get a call by its correlation token."""
        async with self._lock:
            return self._calls.get(correlation_token)
    
    async def set_state(self, correlation_token: str, state: str) -> Optional[StoredCall]:
        """Record a state transition."""
        async with self._lock:
            stored = self._calls.get(correlation_token)
            if stored is None:
                return None
            stored.state = state
            return stored
    
    async def set_resolved(
        self,
        correlation_token: str,
        run_id: int,
        run_url: Optional[str]
    ) -> Optional[StoredCall]:
        """Record the run the call was matched to."""
        async with self._lock:
            stored = self._calls.get(correlation_token)
            if stored is None:
                return None
            stored.run_id = run_id
            stored.run_url = run_url
            return stored
    
    async def add_event(
        self,
        correlation_token: str,
        event: Dict[str, Any]
    ) -> Optional[StoredCall]:
        """Append a step event."""
        async with self._lock:
            stored = self._calls.get(correlation_token)
            if stored is None:
                return None
            stored.events.append(event)
            return stored
    
    async def complete(
        self,
        correlation_token: str,
        run_url: Optional[str]
    ) -> Optional[StoredCall]:
        """Mark a call as succeeded."""
        async with self._lock:
            stored = self._calls.get(correlation_token)
            if stored is None:
                return None
            stored.state = "succeeded"
            stored.conclusion = "success"
            stored.run_url = run_url or stored.run_url
            stored.completed_at = datetime.now()
            return stored
    
    async def fail(
        self,
        correlation_token: str,
        error: str,
        error_type: str,
        state: str = "failed",
        conclusion: Optional[str] = None
    ) -> Optional[StoredCall]:
        """Mark a call as failed or cancelled."""
        async with self._lock:
            stored = self._calls.get(correlation_token)
            if stored is None:
                return None
            stored.state = state
            stored.error = error
            stored.error_type = error_type
            stored.conclusion = conclusion
            stored.completed_at = datetime.now()
            return stored
    
    async def list_all(self) -> List[StoredCall]:
        """List all calls."""
        async with self._lock:
            return list(self._calls.values())
    
    async def list_by_repo(self, repo: str) -> List[StoredCall]:
        """List all calls for a repository."""
        async with self._lock:
            return [c for c in self._calls.values() if c.repo == repo]
    
    def __len__(self) -> int:
        return len(self._calls)


# Global storage instance
run_storage = RunStorage()
