"""
Error taxonomy for the dispatch engine.

Only unrecoverable conditions escape the engine. Per-poll fetch failures
are raised by providers as TransientFetchError and absorbed by the pollers.
"""

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """
    Base class for errors surfaced by a workflow call.
    
    Every error raised after the correlation token exists carries it,
    so the run can still be located by hand.
    """
    
    def __init__(self, message: str, correlation_token: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.correlation_token = correlation_token
    
    def __str__(self) -> str:
        if self.correlation_token:
            return f"{self.message} (correlation token: {self.correlation_token})"
        return self.message


class ConfigError(WorkflowError):
    """Missing or invalid configuration, e.g. no token for the host."""


class DispatchFailed(WorkflowError):
    """The remote system rejected the trigger request. Never retried."""
    
    def __init__(
        self,
        message: str,
        correlation_token: Optional[str] = None,
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message, correlation_token)
        self.status_code = status_code
        self.body = body


class ResolutionTimeout(WorkflowError):
    """The triggered run could not be found within the attempt budget."""
    
    def __init__(self, message: str, correlation_token: Optional[str] = None, attempts: int = 0):
        super().__init__(message, correlation_token)
        self.attempts = attempts


class RemoteRunFailed(WorkflowError):
    """The run finished with a conclusion other than success."""
    
    def __init__(
        self,
        message: str,
        correlation_token: Optional[str] = None,
        conclusion: str = "",
        run_url: Optional[str] = None,
    ):
        super().__init__(message, correlation_token)
        self.conclusion = conclusion
        self.run_url = run_url


class WorkflowCancelled(WorkflowError):
    """The call was cancelled by the caller or hit its deadline."""
    
    def __init__(self, message: str, correlation_token: Optional[str] = None, reason: str = ""):
        super().__init__(message, correlation_token)
        self.reason = reason


# ============================================================
# Provider Errors
# ============================================================

class ProviderError(Exception):
    """Error talking to the remote CI system."""
    
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class TransientFetchError(ProviderError):
    """A single list/poll read failed. Recovered by polling again."""
