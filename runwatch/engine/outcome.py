"""
Outcome Resolver.

Decides whether a run has finished and how to classify it.
"""

from typing import Optional, Tuple
import logging

from runwatch.engine.errors import TransientFetchError
from runwatch.engine.models import Outcome, RunStatus
from runwatch.providers.base import CIProvider


logger = logging.getLogger(__name__)


def classify_conclusion(conclusion: Optional[str]) -> Outcome:
    """Map a remote conclusion to an Outcome. Only "success" succeeds."""
    if conclusion == "success":
        return Outcome.success()
    return Outcome.failure(conclusion or "unknown")


class OutcomeResolver:
    """Reads run status; non-terminal simply means keep polling."""
    
    def __init__(self, provider: CIProvider):
        self.provider = provider
        self.last_status: Optional[RunStatus] = None
    
    async def check_terminal(self, repo: str, run_id: int) -> Tuple[bool, Optional[Outcome]]:
        """
        Returns:
            (is_terminal, outcome); outcome is None until terminal.
            A failed status read counts as not terminal.
        """
        try:
            status = await self.provider.get_run(repo, run_id)
        except TransientFetchError as e:
            logger.warning(f"Failed to read status of run {run_id}: {e}")
            return False, None
        
        self.last_status = status
        if not status.is_terminal:
            return False, None
        
        return True, classify_conclusion(status.conclusion)
