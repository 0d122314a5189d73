"""
Progress Tracker.

Turns repeated job listings into one event per completed step.
"""

from typing import List, Optional
import logging

from runwatch.engine.errors import TransientFetchError
from runwatch.engine.models import SeenSteps, StepCompletedEvent
from runwatch.providers.base import CIProvider


logger = logging.getLogger(__name__)


class ProgressTracker:
    """Reports each (job, step) pair the first time it is seen completed."""
    
    def __init__(self, provider: CIProvider):
        self.provider = provider
    
    async def poll_once(self, repo: str, run_id: int, seen: SeenSteps) -> Optional[List[StepCompletedEvent]]:
        """
        Poll the run's jobs once and return newly completed steps.
        
        Events follow remote listing order (job, then step). Every emitted
        key is added to `seen`, which the caller keeps for the whole call.
        Returns None when the jobs could not be fetched, so the caller can
        tell "nothing new" from "nothing known" and poll again.
        """
        try:
            jobs = await self.provider.list_jobs(repo, run_id)
        except TransientFetchError as e:
            logger.warning(f"Failed to list jobs for run {run_id}: {e}")
            return None
        
        events = []
        for job in jobs:
            for step in job.steps:
                if not step.is_completed or step.key in seen:
                    continue
                events.append(StepCompletedEvent(
                    job_id=job.job_id,
                    job_name=job.name,
                    step_name=step.step_name,
                    conclusion=step.conclusion,
                ))
                seen.add(step.key)
                logger.info(f"{step.step_name} -> {step.conclusion}")
        
        return events
