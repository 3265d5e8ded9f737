"""Integration tests for the HTTP surface."""

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from kai_orchestrator.api.main import app
from kai_orchestrator.api.routes import (
    _drive_run,
    get_intention_analyzer,
    get_remote_client,
    get_run_registry,
)
from kai_orchestrator.executor import PlanExecutor, RunRegistry
from kai_orchestrator.remote import RemoteFunctionClient
from kai_orchestrator.run_store import InMemoryRunStore

PLAN = {
    "shouldUseOrchestrator": True,
    "complexity": "complex",
    "selectedAgents": ["strategist", "content_writer"],
    "executionPlan": [
        {"id": "step-1", "agentType": "strategist", "name": "Plano", "dependencies": []},
        {"id": "step-2", "agentType": "content_writer", "name": "Posts", "dependencies": ["step-1"]},
    ],
    "reasoning": "Campanha",
    "estimatedDuration": 60,
}


@pytest.fixture
def functions(orchestrator_settings):
    """Fake serverless functions: orchestrator returns PLAN, execute-agent echoes the step."""
    state = {"orchestrator_status": 200, "fail_steps": set()}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path.endswith("/orchestrator"):
            if state["orchestrator_status"] != 200:
                return httpx.Response(state["orchestrator_status"], json={"error": "planner down"})
            return httpx.Response(200, json=PLAN)
        if body["stepId"] in state["fail_steps"]:
            return httpx.Response(500, json={"error": "agent crashed"})
        return httpx.Response(200, json={"output": f"output of {body['stepId']}", "durationMs": 10})

    state["client"] = RemoteFunctionClient(orchestrator_settings, transport=httpx.MockTransport(handler))
    return state


@pytest.fixture
def client(functions, make_analyzer, llm_reply):
    registry = RunRegistry(store=InMemoryRunStore())
    analyzer = make_analyzer(llm_reply('{"actionType": "create_content", "confidence": 0.9}'))
    app.dependency_overrides[get_run_registry] = lambda: registry
    app.dependency_overrides[get_remote_client] = lambda: functions["client"]
    app.dependency_overrides[get_intention_analyzer] = lambda: analyzer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_kai_router_content_message(client):
    response = client.post("/kai-router", json={"message": "criar um post para instagram sobre lançamento"})

    assert response.status_code == 200
    body = response.json()
    assert body["pipeline"] == "multi_agent_content"
    assert body["agent"] == "content"
    assert body["extractedParams"]["format"] == "post"
    assert body["extractedParams"]["contentType"] == "static_post"


def test_kai_router_omits_unset_params(client):
    response = client.post("/kai-router", json={"message": "criar um post para instagram sobre lançamento"})

    params = response.json()["extractedParams"]
    assert "period" not in params
    assert "quantity" not in params


def test_kai_router_null_file_fields_route_on_text(client):
    response = client.post(
        "/kai-router",
        json={"message": "criar um post para instagram sobre lançamento", "hasFiles": None, "fileTypes": None},
    )

    assert response.status_code == 200
    assert response.json()["pipeline"] == "multi_agent_content"
    assert response.json()["confidence"] == 0.85


def test_kai_router_csv_upload(client):
    response = client.post(
        "/kai-router",
        json={"message": "segue", "hasFiles": True, "fileTypes": ["text/csv"]},
    )

    assert response.json()["pipeline"] == "metrics_analysis"
    assert response.json()["extractedParams"]["action"] == "import"


def test_kai_router_malformed_body_falls_back(client):
    response = client.post(
        "/kai-router", content="{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json()["reason"] == "Routing error"
    assert response.json()["confidence"] == 0.5


def test_analyze_intention(client):
    response = client.post("/analyze-kai-intention", json={"message": "cria um post"})

    assert response.status_code == 200
    body = response.json()
    assert body["actionType"] == "create_content"
    assert body["requiresConfirmation"] is True


def test_analyze_intention_requires_message(client):
    response = client.post("/analyze-kai-intention", json={"files": []})

    assert response.status_code == 400
    assert response.json()["error"] == "Message is required"


@pytest.mark.parametrize("status", [429, 402])
def test_analyze_intention_upstream_refusals(client, make_analyzer, status):
    app.dependency_overrides[get_intention_analyzer] = lambda: make_analyzer(
        lambda request: httpx.Response(status)
    )

    response = client.post("/analyze-kai-intention", json={"message": "oi"})

    assert response.status_code == status
    assert "error" in response.json()


def test_analyze_intention_without_api_key(client, make_analyzer, llm_reply):
    app.dependency_overrides[get_intention_analyzer] = lambda: make_analyzer(llm_reply("{}"), api_key=None)

    response = client.post("/analyze-kai-intention", json={"message": "oi"})

    assert response.status_code == 500
    body = response.json()
    assert body["actionType"] == "general_chat"
    assert body["confidence"] == 0.5
    assert body["errorCode"] == "configuration_error"


def test_detect_action_uses_patterns(client):
    response = client.post("/kai-actions/detect", json={"message": "bom dia"})

    assert response.status_code == 200
    assert response.json()["type"] == "general_chat"
    assert response.json()["confidence"] == 1.0


def test_orchestrator_fast_path(client):
    response = client.post("/orchestrator/analyze", json={"userMessage": "escreva um post"})

    assert response.status_code == 200
    body = response.json()
    assert body["shouldUseOrchestrator"] is False
    assert body["executionPlan"][0]["id"] == "step-1"


def test_orchestrator_remote_plan(client):
    response = client.post(
        "/orchestrator/analyze",
        json={"userMessage": "monte uma campanha de natal", "clientId": "c-1", "clientContext": {"name": "Acme"}},
    )

    assert response.status_code == 200
    assert [s["id"] for s in response.json()["executionPlan"]] == ["step-1", "step-2"]


def test_orchestrator_remote_failure_is_bad_gateway(client, functions):
    functions["orchestrator_status"] = 500

    response = client.post("/orchestrator/analyze", json={"userMessage": "monte uma campanha de natal"})

    assert response.status_code == 502
    assert response.json()["error"] == "orchestrator failed: planner down"


def test_run_lifecycle(client):
    response = client.post("/orchestrator/runs", json={"plan": PLAN, "userMessage": "campanha"})

    assert response.status_code == 202
    started = response.json()
    run_id = started["runId"]
    assert started["isActive"] is True
    assert [e["status"] for e in started["executions"]] == ["pending", "pending"]

    state = client.get(f"/orchestrator/runs/{run_id}").json()
    assert state["isActive"] is False
    assert state["finalOutput"] == "output of step-2"
    assert [e["status"] for e in state["executions"]] == ["completed", "completed"]

    transitions = client.get(f"/orchestrator/runs/{run_id}/transitions").json()
    assert [(t["stepId"], t["toStatus"]) for t in transitions] == [
        ("step-1", "running"),
        ("step-1", "completed"),
        ("step-2", "running"),
        ("step-2", "completed"),
    ]


def test_failed_run_is_recorded(client, functions):
    functions["fail_steps"] = {"step-1"}

    run_id = client.post("/orchestrator/runs", json={"plan": PLAN, "userMessage": "campanha"}).json()["runId"]
    state = client.get(f"/orchestrator/runs/{run_id}").json()

    assert [e["status"] for e in state["executions"]] == ["error", "pending"]
    assert state["error"] == "execute-agent failed: agent crashed"


def test_pause_resume_and_cancel(client):
    run_id = client.post("/orchestrator/runs", json={"plan": PLAN, "userMessage": "campanha"}).json()["runId"]

    paused = client.post(f"/orchestrator/runs/{run_id}/pause")
    assert paused.status_code == 200
    assert paused.json()["isPaused"] is True

    resumed = client.post(f"/orchestrator/runs/{run_id}/resume")
    assert resumed.json()["isPaused"] is False

    cancelled = client.post(f"/orchestrator/runs/{run_id}/cancel")
    assert cancelled.json() == {"runId": run_id, "cancelled": True}
    assert client.get(f"/orchestrator/runs/{run_id}").status_code == 404


def test_unknown_run_is_not_found(client):
    response = client.get("/orchestrator/runs/does-not-exist")

    assert response.status_code == 404
    assert response.json()["errorCode"] == "run_not_found"


def test_duplicate_step_ids_conflict(client):
    plan = dict(PLAN, executionPlan=[PLAN["executionPlan"][0], PLAN["executionPlan"][0]])

    response = client.post("/orchestrator/runs", json={"plan": plan, "userMessage": "campanha"})

    assert response.status_code == 409


def test_health_and_metrics(client):
    client.post("/kai-router", json={"message": "como está o engajamento"})

    health = client.get("/health").json()
    metrics = client.get("/metrics").json()

    assert health["status"] == "healthy"
    assert metrics["counters"]["routing.pipeline.metrics_analysis"] == 1

@pytest.mark.asyncio
async def test_overlapping_background_drives_run_steps_once(orchestrator_settings, make_plan):
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content)["stepId"])
        await asyncio.sleep(0.01)
        return httpx.Response(200, json={"output": "post"})

    remote = RemoteFunctionClient(orchestrator_settings, transport=httpx.MockTransport(handler))
    executor = PlanExecutor(remote_client=remote, store=InMemoryRunStore())
    executor.start(make_plan(("s1", "content_writer", [])), "escreva um post")

    results = await asyncio.gather(_drive_run(executor), _drive_run(executor), return_exceptions=True)

    assert results == [None, None]
    assert calls == ["s1"]
    assert executor.state.completed_at is not None
    assert executor.is_running is False
