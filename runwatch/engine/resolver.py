"""
Run Resolver.

The trigger API does not return the id of the run it creates. The resolver
finds it by listing recent dispatch runs and looking for the one with a job
whose name contains the call's correlation token.
"""

from typing import List, Optional
import logging

from runwatch.engine.cancellation import CancellationSignal
from runwatch.engine.clock import Clock
from runwatch.engine.errors import ResolutionTimeout, TransientFetchError
from runwatch.engine.models import ResolvedRun, RunCandidate
from runwatch.providers.base import CIProvider


logger = logging.getLogger(__name__)


class RunResolver:
    """
    Bounded polling search for the run carrying a correlation token.
    
    Usage:
        resolver = RunResolver(provider, max_attempts=12, interval=5.0)
        resolved = await resolver.resolve(repo, "ci.yaml", token, not_before)
    """
    
    def __init__(
        self,
        provider: CIProvider,
        clock: Optional[Clock] = None,
        max_attempts: int = 12,
        interval: float = 5.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.clock = clock or Clock()
        self.max_attempts = max_attempts
        self.interval = interval
    
    async def resolve(
        self,
        repo: str,
        workflow_id: str,
        token: str,
        not_before: str,
        cancellation: Optional[CancellationSignal] = None,
    ) -> ResolvedRun:
        """
        Poll until a run matching `token` is found.
        
        Args:
            repo: Repository the workflow was dispatched on
            workflow_id: Workflow file name; candidates' paths must end with it
            token: Correlation token to look for in job names
            not_before: Dispatch timestamp; older runs are never matched
            cancellation: Checked before every attempt
        
        Returns:
            The matched run
        
        Raises:
            ResolutionTimeout: if no attempt found a match
            WorkflowCancelled: if the signal trips
        """
        for attempt in range(1, self.max_attempts + 1):
            if cancellation is not None:
                cancellation.raise_if_cancelled(token)
            
            resolved = await self._attempt(repo, workflow_id, token, not_before)
            if resolved is not None:
                logger.info(
                    f"Matched run ID {resolved.run_id} via job name containing token={token} "
                    f"(attempt {attempt})"
                )
                return resolved
            
            logger.debug(f"No run matched token={token} on attempt {attempt}/{self.max_attempts}")
            if attempt < self.max_attempts:
                await self.clock.sleep(self.interval)
        
        waited = self.interval * (self.max_attempts - 1)
        logger.error(f"Workflow run for '{workflow_id}' with token={token} not found")
        raise ResolutionTimeout(
            f"Workflow run for '{workflow_id}' on '{repo}' not found after "
            f"{self.max_attempts} attempts ({waited:g}s)",
            token,
            attempts=self.max_attempts,
        )
    
    async def _attempt(
        self,
        repo: str,
        workflow_id: str,
        token: str,
        not_before: str,
    ) -> Optional[ResolvedRun]:
        """One listing pass. Fetch failures mean "no match this attempt"."""
        try:
            runs = await self.provider.list_runs(repo)
        except TransientFetchError as e:
            logger.warning(f"Failed to list workflow runs: {e}")
            return None
        
        for candidate in self._candidates(runs, workflow_id, not_before):
            try:
                jobs = await self.provider.list_jobs(repo, candidate.run_id)
            except TransientFetchError as e:
                logger.warning(f"Failed to list jobs for run {candidate.run_id}: {e}")
                continue
            
            if any(job.mentions(token) for job in jobs):
                return ResolvedRun(run_id=candidate.run_id, html_url=candidate.html_url)
        
        return None
    
    @staticmethod
    def _candidates(
        runs: List[RunCandidate],
        workflow_id: str,
        not_before: str,
    ) -> List[RunCandidate]:
        # Listing order is kept; the first match wins.
        return [
            run for run in runs
            if run.matches_workflow(workflow_id) and run.created_since(not_before)
        ]
