"""
GitHub Actions Provider

Triggers workflow_dispatch runs and reads runs, jobs and steps over the
GitHub REST API.

Documentation: https://docs.github.com/en/rest/actions
"""

from typing import Any, Dict, List, Optional
import logging

import httpx

from runwatch.config import Settings
from runwatch.credentials import CredentialSource
from runwatch.engine.errors import ProviderError, TransientFetchError
from runwatch.engine.models import DispatchRequest, Job, JobStep, RunCandidate, RunStatus
from runwatch.providers.base import CIProvider


logger = logging.getLogger(__name__)

GITHUB_COM = "github.com"


def api_url_for_host(host: str) -> str:
    """REST base URL for github.com or a GitHub Enterprise host."""
    if host.lower() == GITHUB_COM:
        return "https://api.github.com"
    return f"https://{host}/api/v3"


class GitHubActionsProvider(CIProvider):
    """
    GitHub Actions provider.
    
    The correlation token is sent as the workflow input named by
    `correlation_input`; the workflow is expected to put it in a job name.
    """
    
    def __init__(
        self,
        token: str,
        host: str = GITHUB_COM,
        api_url: Optional[str] = None,
        correlation_input: str = "correlation_id",
        timeout: float = 30.0,
        per_page: int = 100,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the GitHub Actions provider.
        
        Args:
            token: Bearer token for the host
            host: GitHub host name (github.com or an Enterprise host)
            api_url: REST base URL; derived from host when omitted
            correlation_input: Name of the workflow input carrying the token
            timeout: HTTP request timeout
            per_page: Page size when listing runs
            client: Pre-built client (tests inject one with a MockTransport)
        """
        self.host = host
        self.api_url = (api_url or api_url_for_host(host)).rstrip("/")
        self.correlation_input = correlation_input
        self.timeout = timeout
        self.per_page = per_page
        self._token = token
        self._client = client
    
    @classmethod
    def from_settings(cls, settings: Settings, credentials: CredentialSource) -> "GitHubActionsProvider":
        """Build a provider, failing fast with ConfigError when no token exists."""
        token = credentials.token_for(settings.GITHUB_HOST)
        return cls(
            token=token,
            host=settings.GITHUB_HOST,
            api_url=settings.GITHUB_API_URL,
            correlation_input=settings.CORRELATION_INPUT,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            per_page=settings.RUNS_PAGE_SIZE,
        )
    
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
    
    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
            )
        return self._client
    
    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
    
    async def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET an endpoint; any failure is transient from the engine's point of view."""
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params=params, headers=self._headers())
        except httpx.RequestError as e:
            raise TransientFetchError(f"GET {endpoint} failed: {e}")
        
        if not response.is_success:
            raise TransientFetchError(
                f"GET {endpoint} returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        
        try:
            data = response.json()
        except ValueError as e:
            raise TransientFetchError(f"GET {endpoint} returned invalid JSON: {e}")
        
        if not isinstance(data, dict):
            raise TransientFetchError(
                f"GET {endpoint} returned {type(data).__name__}, expected an object"
            )
        return data
    
    async def trigger(self, request: DispatchRequest) -> None:
        """POST a workflow_dispatch event. GitHub answers 204 with no body."""
        client = await self._get_client()
        endpoint = f"/repos/{request.repo}/actions/workflows/{request.workflow_id}/dispatches"
        payload = {
            "ref": request.ref,
            "inputs": {self.correlation_input: request.correlation_token},
        }
        
        try:
            response = await client.post(endpoint, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            raise ProviderError(f"Trigger request failed: {e}")
        
        if not response.is_success:
            raise ProviderError(
                response.text[:500],
                status_code=response.status_code,
            )
    
    async def list_runs(self, repo: str) -> List[RunCandidate]:
        data = await self._get_json(
            f"/repos/{repo}/actions/runs",
            params={"event": "workflow_dispatch", "per_page": self.per_page},
        )
        try:
            return [
                RunCandidate(
                    run_id=run["id"],
                    workflow_path=run.get("path") or "",
                    created_at=run.get("created_at") or "",
                    html_url=run.get("html_url"),
                )
                for run in data.get("workflow_runs") or []
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise TransientFetchError(f"Unexpected runs listing for {repo}: {e!r}")
    
    async def list_jobs(self, repo: str, run_id: int) -> List[Job]:
        data = await self._get_json(f"/repos/{repo}/actions/runs/{run_id}/jobs")
        try:
            return [self._job_from_json(job) for job in data.get("jobs") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise TransientFetchError(f"Unexpected jobs listing for run {run_id}: {e!r}")
    
    @staticmethod
    def _job_from_json(job: Dict[str, Any]) -> Job:
        steps = [
            JobStep(
                job_id=job["id"],
                step_name=step.get("name", ""),
                status=step.get("status", ""),
                conclusion=step.get("conclusion"),
            )
            for step in job.get("steps") or []
        ]
        return Job(job_id=job["id"], name=job.get("name") or "", steps=steps)
    
    async def get_run(self, repo: str, run_id: int) -> RunStatus:
        data = await self._get_json(f"/repos/{repo}/actions/runs/{run_id}")
        return RunStatus(
            run_id=data.get("id", run_id),
            status=data.get("status") or "",
            conclusion=data.get("conclusion"),
            html_url=data.get("html_url"),
        )
