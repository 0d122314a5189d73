"""
Workflow API Routes.

Endpoints for running remote workflows and inspecting or cancelling calls.
"""

from typing import Callable, Dict, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
import asyncio
import logging

from runwatch.api.schemas import (
    CallStatus,
    CancelResponse,
    ErrorResponse,
    StepEvent,
    WorkflowCallListResponse,
    WorkflowCallResponse,
    WorkflowRunRequest,
)
from runwatch.config import settings
from runwatch.credentials import credentials_from_settings
from runwatch.engine.errors import ConfigError, RemoteRunFailed, WorkflowCancelled, WorkflowError
from runwatch.engine.models import StepCompletedEvent
from runwatch.engine.orchestrator import CallState, Orchestrator
from runwatch.providers.github import GitHubActionsProvider
from runwatch.storage.memory import StoredCall, run_storage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])

# Calls still running, by correlation token
active_calls: Dict[str, Orchestrator] = {}


OrchestratorFactory = Callable[..., Orchestrator]


def get_orchestrator_factory() -> OrchestratorFactory:
    """
    Dependency returning a factory for per-call orchestrators.
    
    Each call gets its own provider; the token is looked up every time so
    a missing credential fails the request before anything is dispatched.
    """
    def factory(**options) -> Orchestrator:
        provider = GitHubActionsProvider.from_settings(
            settings,
            credentials_from_settings(settings),
        )
        return Orchestrator(
            provider,
            max_resolve_attempts=settings.RESOLVE_MAX_ATTEMPTS,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            **options,
        )
    return factory


# ============================================================
# Execution Endpoints
# ============================================================

@router.post(
    "/run",
    response_model=WorkflowCallResponse,
    responses={
        503: {"model": ErrorResponse, "description": "Credentials not configured"},
    }
)
async def run_workflow(
    request: WorkflowRunRequest,
    background_tasks: BackgroundTasks,
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
) -> WorkflowCallResponse:
    """
    Trigger a workflow and follow it to completion.
    
    If `async_execution` is True, the call runs in the background and
    you can poll GET /workflows/runs/{correlation_token} or subscribe
    over WebSocket.
    """
    timeout = request.timeout_seconds or settings.MONITOR_TIMEOUT_SECONDS
    try:
        orchestrator = factory(timeout=timeout)
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=str(e))
    
    token = orchestrator.correlation_token
    _attach_storage_callbacks(orchestrator)
    await run_storage.create(token, request.repo, request.workflow_id, request.ref)
    active_calls[token] = orchestrator
    
    if request.async_execution:
        background_tasks.add_task(
            _execute_call,
            orchestrator,
            request.repo,
            request.workflow_id,
            request.ref,
        )
        stored = await run_storage.get(token)
        response = _call_to_response(stored)
        response.status = CallStatus.PENDING
        return response
    
    await _execute_call(orchestrator, request.repo, request.workflow_id, request.ref)
    return _call_to_response(await run_storage.get(token))


def _attach_storage_callbacks(orchestrator: Orchestrator) -> None:
    """Mirror the call's progress into run storage."""
    token = orchestrator.correlation_token
    
    async def on_step(event: StepCompletedEvent):
        await run_storage.add_event(token, event.to_dict())
    
    async def on_state_change(state: CallState):
        await run_storage.set_state(token, state.value)
        resolved = orchestrator.resolved_run
        if state == CallState.MONITORING and resolved is not None:
            await run_storage.set_resolved(token, resolved.run_id, resolved.html_url)
    
    orchestrator.on_step = on_step
    orchestrator.on_state_change = on_state_change


async def _execute_call(orchestrator: Orchestrator, repo: str, workflow_id: str, ref: str):
    """Run one call and record how it ended."""
    token = orchestrator.correlation_token
    try:
        result = await orchestrator.run_workflow(repo, workflow_id, ref)
        await run_storage.complete(token, result.run_url)
    except WorkflowCancelled as e:
        await run_storage.fail(token, str(e), type(e).__name__, state=CallState.CANCELLED.value)
    except asyncio.CancelledError:
        await run_storage.fail(
            token, "Workflow call task cancelled", "CancelledError", state=CallState.CANCELLED.value
        )
        raise
    except RemoteRunFailed as e:
        await run_storage.fail(token, str(e), type(e).__name__, conclusion=e.conclusion)
    except WorkflowError as e:
        await run_storage.fail(token, str(e), type(e).__name__)
    except Exception as e:
        logger.exception(f"Workflow call {token} failed: {e}")
        await run_storage.fail(token, str(e), type(e).__name__)
    finally:
        active_calls.pop(token, None)
        await orchestrator.provider.close()


def _call_to_response(stored: StoredCall) -> WorkflowCallResponse:
    """Convert a stored call to an API response."""
    return WorkflowCallResponse(
        correlation_token=stored.correlation_token,
        repo=stored.repo,
        workflow_id=stored.workflow_id,
        ref=stored.ref,
        status=CallStatus(stored.state),
        run_id=stored.run_id,
        run_url=stored.run_url,
        events=[StepEvent(**event) for event in stored.events],
        conclusion=stored.conclusion,
        error=stored.error,
        error_type=stored.error_type,
        started_at=stored.started_at.isoformat(),
        completed_at=stored.completed_at.isoformat() if stored.completed_at else None,
    )


# ============================================================
# Call State Endpoints
# ============================================================

@router.get(
    "/runs",
    response_model=WorkflowCallListResponse,
)
async def list_calls(repo: Optional[str] = None) -> WorkflowCallListResponse:
    """List all calls, optionally filtered by repo."""
    if repo:
        calls = await run_storage.list_by_repo(repo)
    else:
        calls = await run_storage.list_all()
    
    responses = [_call_to_response(stored) for stored in calls]
    return WorkflowCallListResponse(calls=responses, total=len(responses))


@router.get(
    "/runs/{correlation_token}",
    response_model=WorkflowCallResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_call(correlation_token: str) -> WorkflowCallResponse:
    """
    Get the current state of a workflow call.
    
    Use this to poll the status of async executions.
    """
    stored = await run_storage.get(correlation_token)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Call '{correlation_token}' not found")
    return _call_to_response(stored)


@router.post(
    "/runs/{correlation_token}/cancel",
    response_model=CancelResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_call(correlation_token: str) -> CancelResponse:
    """
    Cancel a running call.
    
    The call stops at its next poll. The remote run itself keeps going.
    """
    orchestrator = active_calls.get(correlation_token)
    if orchestrator is None:
        raise HTTPException(
            status_code=404,
            detail=f"No active call with token '{correlation_token}'"
        )
    orchestrator.cancel("cancelled via API")
    logger.info(f"Cancellation requested for call {correlation_token}")
    return CancelResponse(
        correlation_token=correlation_token,
        message="Cancellation requested",
    )
