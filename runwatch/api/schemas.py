"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum


# ============================================================
# Enums
# ============================================================

class CallStatus(str, Enum):
    """Status of a workflow call as seen by API clients."""
    PENDING = "pending"
    IDLE = "idle"
    DISPATCHING = "dispatching"
    RESOLVING = "resolving"
    MONITORING = "monitoring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ============================================================
# Run Schemas
# ============================================================

class WorkflowRunRequest(BaseModel):
    """Request to run a remote workflow."""
    repo: str = Field(..., min_length=1, description="Repository, e.g. org/repo")
    workflow_id: str = Field(..., min_length=1, description="Workflow file name or id, e.g. ci.yaml")
    ref: str = Field(..., min_length=1, description="Branch or tag to run the workflow on")
    async_execution: bool = Field(
        False,
        description="If true, run in background and return immediately"
    )
    timeout_seconds: Optional[float] = Field(
        None,
        gt=0,
        description="Overall bound for the call; defaults to MONITOR_TIMEOUT_SECONDS"
    )
    
    class Config:
        json_schema_extra = {
            "example": {
                "repo": "org/repo",
                "workflow_id": "ci.yaml",
                "ref": "main",
                "async_execution": True,
                "timeout_seconds": 1800
            }
        }


class StepEvent(BaseModel):
    """A completed step reported by the run."""
    job_id: int
    job_name: str
    step_name: str
    conclusion: Optional[str]


class WorkflowCallResponse(BaseModel):
    """State of one workflow call."""
    correlation_token: str = Field(..., description="Token used to find the run; also the call id")
    repo: str
    workflow_id: str
    ref: str
    status: CallStatus
    run_id: Optional[int] = None
    run_url: Optional[str] = None
    events: List[StepEvent] = Field(default_factory=list)
    conclusion: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    
    class Config:
        json_schema_extra = {
            "example": {
                "correlation_token": "0b6f1c9e-5d1e-4d0b-9a8e-7f1f0f0c2d11",
                "repo": "org/repo",
                "workflow_id": "ci.yaml",
                "ref": "main",
                "status": "succeeded",
                "run_id": 123456,
                "run_url": "https://github.com/org/repo/actions/runs/123456",
                "events": [
                    {
                        "job_id": 1,
                        "job_name": "build-0b6f1c9e-5d1e-4d0b-9a8e-7f1f0f0c2d11",
                        "step_name": "checkout",
                        "conclusion": "success"
                    }
                ],
                "conclusion": "success",
                "error": None,
                "error_type": None,
                "started_at": "2024-01-01T12:00:00",
                "completed_at": "2024-01-01T12:05:00"
            }
        }


class WorkflowCallListResponse(BaseModel):
    """Response listing workflow calls."""
    calls: List[WorkflowCallResponse]
    total: int


class CancelResponse(BaseModel):
    """Response after requesting cancellation."""
    correlation_token: str
    message: str


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
