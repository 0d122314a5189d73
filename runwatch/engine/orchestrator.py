"""
Workflow Call Orchestrator.

Composes dispatch, resolution, progress tracking and outcome checking into
one call: run a named workflow on a ref and follow it to the end.
"""

from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import asyncio
import inspect
import logging

from runwatch.engine.cancellation import CancellationSignal
from runwatch.engine.clock import Clock
from runwatch.engine.correlation import new_correlation_token
from runwatch.engine.dispatcher import RunDispatcher
from runwatch.engine.errors import RemoteRunFailed, WorkflowCancelled, WorkflowError
from runwatch.engine.models import DispatchRequest, ResolvedRun, SeenSteps, StepCompletedEvent
from runwatch.engine.outcome import OutcomeResolver
from runwatch.engine.resolver import RunResolver
from runwatch.engine.tracker import ProgressTracker
from runwatch.providers.base import CIProvider


# Configure logging
logger = logging.getLogger(__name__)


class CallState(str, Enum):
    """States of one workflow call."""
    IDLE = "idle"
    DISPATCHING = "dispatching"
    RESOLVING = "resolving"
    MONITORING = "monitoring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = (CallState.SUCCEEDED, CallState.FAILED, CallState.CANCELLED)


@dataclass
class WorkflowRunResult:
    """Result of a successful workflow call."""
    run_url: Optional[str]
    correlation_token: str
    run_id: int
    events: List[StepCompletedEvent] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_url": self.run_url,
            "correlation_token": self.correlation_token,
            "run_id": self.run_id,
            "events": [e.to_dict() for e in self.events],
        }


StepCallback = Callable[[StepCompletedEvent], Any]
StateCallback = Callable[[CallState], Any]


class Orchestrator:
    """
    Runs one workflow call. Create a new instance per call.
    
    The call moves through IDLE -> DISPATCHING -> RESOLVING -> MONITORING
    and ends in SUCCEEDED, FAILED or CANCELLED. Each instance owns its
    correlation token, seen-set and resolved run; nothing is shared
    between instances except the provider's read-only credentials.
    
    Usage:
        orchestrator = Orchestrator(provider, on_step=print)
        result = await orchestrator.run_workflow("org/repo", "ci.yaml", "main")
    """
    
    def __init__(
        self,
        provider: CIProvider,
        clock: Optional[Clock] = None,
        max_resolve_attempts: int = 12,
        poll_interval: float = 5.0,
        timeout: Optional[float] = None,
        on_step: Optional[StepCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        correlation_token: Optional[str] = None,
    ):
        """
        Initialize the orchestrator.
        
        Args:
            provider: Remote CI provider
            clock: Time source (virtual in tests)
            max_resolve_attempts: Listing passes before giving up on resolution
            poll_interval: Seconds between polls, for resolution and monitoring
            timeout: Overall wall-clock bound for the call; None means until cancelled
            on_step: Callback (sync or async) for each step event
            on_state_change: Callback (sync or async) for each state transition
            correlation_token: Token to use instead of a generated one
        """
        self.provider = provider
        self.clock = clock or Clock()
        self.poll_interval = poll_interval
        self.on_step = on_step
        self.on_state_change = on_state_change
        
        self.dispatcher = RunDispatcher(provider, self.clock)
        self.resolver = RunResolver(
            provider,
            self.clock,
            max_attempts=max_resolve_attempts,
            interval=poll_interval,
        )
        self.tracker = ProgressTracker(provider)
        self.outcome_resolver = OutcomeResolver(provider)
        self.cancellation = CancellationSignal(self.clock, timeout)
        
        # Per-call state
        self._correlation_token = correlation_token or new_correlation_token()
        self._state = CallState.IDLE
        self._seen = SeenSteps()
        self._events: List[StepCompletedEvent] = []
        self._resolved: Optional[ResolvedRun] = None
        self._started = False
    
    @property
    def correlation_token(self) -> str:
        return self._correlation_token
    
    @property
    def state(self) -> CallState:
        """Get the current call state."""
        return self._state
    
    @property
    def resolved_run(self) -> Optional[ResolvedRun]:
        return self._resolved
    
    @property
    def events(self) -> List[StepCompletedEvent]:
        """Step events emitted so far, in emission order."""
        return list(self._events)
    
    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Cancel the call. Takes effect at the top of the next poll."""
        self.cancellation.cancel(reason)
    
    async def run_workflow(self, repo: str, workflow_id: str, ref: str) -> WorkflowRunResult:
        """
        Trigger `workflow_id` on `repo` at `ref` and follow it to completion.
        
        Returns:
            WorkflowRunResult with the run URL and correlation token
        
        Raises:
            DispatchFailed: the trigger was rejected
            ResolutionTimeout: the run never showed up
            RemoteRunFailed: the run finished without success
            WorkflowCancelled: cancelled or timed out
        """
        if self._started:
            raise RuntimeError("Orchestrator instances are single-use; create one per call")
        self._started = True
        token = self._correlation_token
        
        try:
            await self._transition(CallState.DISPATCHING)
            self.cancellation.raise_if_cancelled(token)
            request = DispatchRequest(
                repo=repo,
                workflow_id=workflow_id,
                ref=ref,
                correlation_token=token,
            )
            record = await self.dispatcher.trigger(request)
            
            await self._transition(CallState.RESOLVING)
            self._resolved = await self.resolver.resolve(
                repo,
                workflow_id,
                token,
                record.dispatched_at,
                self.cancellation,
            )
            
            await self._transition(CallState.MONITORING)
            result = await self._monitor(repo, workflow_id)
        
        except WorkflowCancelled:
            logger.info(f"Workflow call cancelled (token={token}): {self.cancellation.reason}")
            await self._transition(CallState.CANCELLED)
            raise
        except asyncio.CancelledError:
            logger.info(f"Workflow call task cancelled (token={token})")
            await self._transition(CallState.CANCELLED)
            raise
        except WorkflowError:
            await self._transition(CallState.FAILED)
            raise
        except Exception:
            logger.exception(f"Workflow call failed unexpectedly (token={token})")
            await self._transition(CallState.FAILED)
            raise
        
        await self._transition(CallState.SUCCEEDED)
        return result
    
    async def _monitor(self, repo: str, workflow_id: str) -> WorkflowRunResult:
        """Poll status and steps until the run is terminal."""
        token = self._correlation_token
        run_id = self._resolved.run_id
        
        outcome = None
        while True:
            self.cancellation.raise_if_cancelled(token)
            
            # Status first, so steps that finished alongside the run are
            # still reported in this cycle and nothing after it.
            if outcome is None:
                _, outcome = await self.outcome_resolver.check_terminal(repo, run_id)
            
            events = await self.tracker.poll_once(repo, run_id, self._seen)
            for event in events or []:
                self._events.append(event)
                await self._notify(self.on_step, event)
            
            if outcome is not None:
                if events is not None:
                    break
                # Run is over but its final steps are still unread
                logger.debug(f"Run {run_id} finished; retrying job listing (token={token})")
            
            await self.clock.sleep(self.poll_interval)
        
        final = self.outcome_resolver.last_status
        run_url = (final.html_url if final else None) or self._resolved.html_url
        
        if not outcome.succeeded:
            logger.error(f"Workflow '{workflow_id}' failed: {outcome.conclusion} (token={token})")
            raise RemoteRunFailed(
                f"Workflow '{workflow_id}' failed: {outcome.conclusion}",
                token,
                conclusion=outcome.conclusion or "",
                run_url=run_url,
            )
        
        logger.info(f"Workflow completed successfully (token={token})")
        return WorkflowRunResult(
            run_url=run_url,
            correlation_token=token,
            run_id=run_id,
            events=list(self._events),
        )
    
    async def _transition(self, state: CallState) -> None:
        logger.debug(f"Call {self._correlation_token}: {self._state.value} -> {state.value}")
        self._state = state
        await self._notify(self.on_state_change, state)
    
    async def _notify(self, callback: Optional[Callable], payload: Any) -> None:
        """Invoke a side-channel callback; its failures never affect the call."""
        if callback is None:
            return
        try:
            result = callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Callback failed: {e}")


async def run_workflow(
    provider: CIProvider,
    repo: str,
    workflow_id: str,
    ref: str,
    **options: Any
) -> WorkflowRunResult:
    """
    Convenience function to run one workflow call.
    
    Args:
        provider: Remote CI provider
        repo: Repository, e.g. "org/repo"
        workflow_id: Workflow file name or id, e.g. "ci.yaml"
        ref: Branch or tag to run on
        **options: Passed to Orchestrator
    
    Returns:
        WorkflowRunResult
    """
    orchestrator = Orchestrator(provider, **options)
    return await orchestrator.run_workflow(repo, workflow_id, ref)
