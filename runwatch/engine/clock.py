"""
Time source for the engine.

Polling loops take time and sleep through a Clock so tests can run
them on virtual time.
"""

from datetime import datetime, timezone
import asyncio
import time


class Clock:
    """Wall clock with a non-blocking sleep."""
    
    def now(self) -> datetime:
        """Current UTC time."""
        return datetime.now(timezone.utc)
    
    def monotonic(self) -> float:
        """Monotonic seconds, used for deadlines."""
        return time.monotonic()
    
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task without holding a worker thread."""
        await asyncio.sleep(seconds)
