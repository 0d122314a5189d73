"""
Cancellation signal for one workflow call.

Polling loops check the signal at the top of every iteration. It trips
either when the caller cancels explicitly or when the optional deadline
passes.
"""

from typing import Optional

from runwatch.engine.clock import Clock
from runwatch.engine.errors import WorkflowCancelled


class CancellationSignal:
    """
    Caller-owned cancellation flag with an optional wall-clock bound.
    
    Usage:
        signal = CancellationSignal(clock, timeout=600)
        ...
        signal.cancel("user aborted")
        signal.raise_if_cancelled(token)
    """
    
    def __init__(self, clock: Optional[Clock] = None, timeout: Optional[float] = None):
        self._clock = clock or Clock()
        self._deadline = (
            self._clock.monotonic() + timeout if timeout is not None else None
        )
        self._timeout = timeout
        self._reason: Optional[str] = None
    
    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Request cancellation. The first reason wins."""
        if self._reason is None:
            self._reason = reason
    
    @property
    def cancelled(self) -> bool:
        if self._reason is not None:
            return True
        if self._deadline is not None and self._clock.monotonic() >= self._deadline:
            self._reason = f"timed out after {self._timeout:g}s"
            return True
        return False
    
    @property
    def reason(self) -> Optional[str]:
        return self._reason
    
    def raise_if_cancelled(self, correlation_token: Optional[str] = None) -> None:
        """Raise WorkflowCancelled if the signal has tripped."""
        if self.cancelled:
            raise WorkflowCancelled(
                f"Workflow call cancelled: {self._reason}",
                correlation_token,
                reason=self._reason or "",
            )
