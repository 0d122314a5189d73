"""
Run Dispatcher.

Issues exactly one trigger per call. A rejected or ambiguous trigger is
fatal and never retried, since a retry could start a second run.
"""

from typing import Optional
import logging

from runwatch.engine.clock import Clock
from runwatch.engine.errors import DispatchFailed, ProviderError
from runwatch.engine.models import DispatchRecord, DispatchRequest, format_timestamp
from runwatch.providers.base import CIProvider


logger = logging.getLogger(__name__)


class RunDispatcher:
    """Sends the trigger request and records when it was sent."""
    
    def __init__(self, provider: CIProvider, clock: Optional[Clock] = None):
        self.provider = provider
        self.clock = clock or Clock()
    
    async def trigger(self, request: DispatchRequest) -> DispatchRecord:
        """
        Trigger the workflow described by `request`.
        
        The timestamp is taken immediately before sending and later bounds
        which runs may be matched.
        
        Raises:
            DispatchFailed: if the remote system did not accept the trigger
        """
        dispatched_at = format_timestamp(self.clock.now())
        
        logger.info(
            f"Triggering workflow '{request.workflow_id}' on '{request.repo}' "
            f"at ref '{request.ref}' (token={request.correlation_token})"
        )
        
        try:
            await self.provider.trigger(request)
        except ProviderError as e:
            status = e.status_code if e.status_code is not None else "no response"
            logger.error(f"Trigger of '{request.workflow_id}' on '{request.repo}' rejected: {status} {e}")
            raise DispatchFailed(
                f"Failed to trigger workflow '{request.workflow_id}' on '{request.repo}': {status} {e}",
                request.correlation_token,
                status_code=e.status_code,
                body=str(e),
            ) from e
        
        return DispatchRecord(request=request, dispatched_at=dispatched_at)
