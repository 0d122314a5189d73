"""
Tests for the FastAPI endpoints.
"""

from uuid import uuid4
import asyncio

import pytest
from fastapi.testclient import TestClient

from runwatch.api.routes.workflows import (
    _attach_storage_callbacks,
    _execute_call,
    active_calls,
    get_orchestrator_factory,
)
from runwatch.engine.errors import ConfigError, ProviderError
from runwatch.engine.orchestrator import CallState, Orchestrator
from runwatch.main import app
from runwatch.storage.memory import run_storage

from conftest import FakeClock, FakeProvider, ci_scenario, make_job, make_run


# ============================================================
# Sync Test Client (for simple tests)
# ============================================================

client = TestClient(app)


def scenario_factory(conclusion: str = "success"):
    """Orchestrator factory running every call against a scripted provider."""
    def factory(**options) -> Orchestrator:
        token = str(uuid4())
        return Orchestrator(
            ci_scenario(conclusion, token=token),
            clock=FakeClock(),
            correlation_token=token,
            **options,
        )
    return factory


@pytest.fixture
def use_factory():
    """Install an orchestrator factory for the duration of a test."""
    def install(factory):
        app.dependency_overrides[get_orchestrator_factory] = lambda: factory
    yield install
    app.dependency_overrides.clear()


RUN_REQUEST = {"repo": "org/repo", "workflow_id": "ci.yaml", "ref": "main"}


class TestRootEndpoints:
    """Tests for root endpoints."""
    
    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        
        data = response.json()
        assert "name" in data
        assert "version" in data
        assert "endpoints" in data
    
    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        
        data = response.json()
        assert data["status"] == "healthy"
        assert "active_calls" in data


class TestRunEndpoints:
    """Tests for running workflows."""
    
    def test_sync_run_succeeds(self, use_factory):
        use_factory(scenario_factory("success"))
        
        response = client.post("/workflows/run", json=RUN_REQUEST)
        assert response.status_code == 200
        
        data = response.json()
        assert data["status"] == "succeeded"
        assert data["run_id"] == 101
        assert data["run_url"] == "https://github.com/org/repo/actions/runs/101"
        assert [e["step_name"] for e in data["events"]] == ["checkout", "test"]
        assert data["correlation_token"] not in active_calls
    
    def test_sync_run_reports_remote_failure(self, use_factory):
        use_factory(scenario_factory("failure"))
        
        response = client.post("/workflows/run", json=RUN_REQUEST)
        assert response.status_code == 200
        
        data = response.json()
        assert data["status"] == "failed"
        assert data["conclusion"] == "failure"
        assert data["error_type"] == "RemoteRunFailed"
        assert data["correlation_token"] in data["error"]
    
    def test_dispatch_rejection_is_reported(self, use_factory):
        def factory(**options):
            provider = FakeProvider(trigger_error=ProviderError("Workflow not found", status_code=404))
            return Orchestrator(provider, clock=FakeClock(), **options)
        
        use_factory(factory)
        
        data = client.post("/workflows/run", json=RUN_REQUEST).json()
        assert data["status"] == "failed"
        assert data["error_type"] == "DispatchFailed"
    
    def test_missing_credentials(self, use_factory):
        def factory(**options):
            raise ConfigError("No GitHub token configured for github.com")
        
        use_factory(factory)
        
        response = client.post("/workflows/run", json=RUN_REQUEST)
        assert response.status_code == 503
        assert "github.com" in response.json()["detail"]
    
    def test_invalid_request(self):
        response = client.post("/workflows/run", json={"repo": "", "workflow_id": "ci.yaml", "ref": "main"})
        assert response.status_code == 422
    
    def test_async_run(self, use_factory):
        use_factory(scenario_factory("success"))
        
        response = client.post("/workflows/run", json={**RUN_REQUEST, "async_execution": True})
        assert response.status_code == 200
        
        data = response.json()
        assert data["status"] == "pending"
        token = data["correlation_token"]
        
        # Background tasks have finished by the time TestClient returns
        state = client.get(f"/workflows/runs/{token}")
        assert state.status_code == 200
        assert state.json()["status"] == "succeeded"
        assert len(state.json()["events"]) == 2


class TestCallStateEndpoints:
    """Tests for inspecting and cancelling calls."""
    
    def test_get_unknown_call(self):
        response = client.get("/workflows/runs/does-not-exist")
        assert response.status_code == 404
    
    def test_list_calls_by_repo(self, use_factory):
        use_factory(scenario_factory("success"))
        client.post("/workflows/run", json={**RUN_REQUEST, "repo": "org/listed"})
        
        response = client.get("/workflows/runs", params={"repo": "org/listed"})
        assert response.status_code == 200
        
        data = response.json()
        assert data["total"] >= 1
        assert all(c["repo"] == "org/listed" for c in data["calls"])
    
    def test_cancel_unknown_call(self):
        response = client.post("/workflows/runs/does-not-exist/cancel")
        assert response.status_code == 404
    
    def test_cancel_active_call(self):
        orchestrator = Orchestrator(FakeProvider(), clock=FakeClock())
        token = orchestrator.correlation_token
        active_calls[token] = orchestrator
        try:
            response = client.post(f"/workflows/runs/{token}/cancel")
            assert response.status_code == 202
            assert orchestrator.cancellation.cancelled
            assert orchestrator.cancellation.reason == "cancelled via API"
        finally:
            active_calls.pop(token, None)


class TestCallExecution:
    """Tests for how background calls are recorded."""
    
    @pytest.mark.asyncio
    async def test_task_cancellation_is_recorded(self):
        token = str(uuid4())
        provider = FakeProvider(
            runs=[[make_run(101)]],
            jobs={101: [[make_job(11, f"build-{token}", [])]]},
        )
        orchestrator = Orchestrator(provider, clock=FakeClock(), correlation_token=token)
        _attach_storage_callbacks(orchestrator)
        await run_storage.create(token, "org/repo", "ci.yaml", "main")
        active_calls[token] = orchestrator
        
        task = asyncio.create_task(_execute_call(orchestrator, "org/repo", "ci.yaml", "main"))
        while orchestrator.state != CallState.MONITORING:
            await asyncio.sleep(0)
        task.cancel()
        
        with pytest.raises(asyncio.CancelledError):
            await task
        
        stored = await run_storage.get(token)
        assert stored.state == "cancelled"
        assert stored.error_type == "CancelledError"
        assert stored.completed_at is not None
        assert token not in active_calls
        assert provider.closed


class TestWebSocket:
    """Tests for the subscription endpoint."""
    
    def test_subscribe_to_finished_call(self, use_factory):
        use_factory(scenario_factory("success"))
        token = client.post("/workflows/run", json=RUN_REQUEST).json()["correlation_token"]
        
        with client.websocket_connect(f"/ws/subscribe/{token}") as websocket:
            current = websocket.receive_json()
            assert current["type"] == "current_state"
            assert [e["step_name"] for e in current["events"]] == ["checkout", "test"]
            
            completed = websocket.receive_json()
            assert completed["type"] == "completed"
            assert completed["state"] == "succeeded"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
