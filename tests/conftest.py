"""Shared fixtures: sample plans and fake remote endpoints."""

import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import httpx
import pytest

from shared.config.settings import LLMGatewaySettings, OrchestratorSettings
from shared.models.orchestration import ExecutionPlanStep, OrchestratorDecision
from shared.utils.metrics import metrics_collector
from kai_router.intention import IntentionAnalyzer
from kai_router.llm_client import LLMGatewayClient
from kai_orchestrator.remote import RemoteFunctionClient

FUNCTIONS_BASE_URL = "http://functions.test/functions/v1"


@pytest.fixture(autouse=True)
def clear_metrics():
    """Ensure test isolation (metrics collector is a global singleton)."""
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def orchestrator_settings() -> OrchestratorSettings:
    return OrchestratorSettings(
        functions_base_url=FUNCTIONS_BASE_URL,
        functions_api_key="functions-key",
        run_store="memory",
    )


@pytest.fixture
def make_plan() -> Callable[..., OrchestratorDecision]:
    """Build a plan from (step_id, agent_type, dependencies) tuples."""

    def _make_plan(*steps: Tuple[str, str, List[str]]) -> OrchestratorDecision:
        return OrchestratorDecision(
            should_use_orchestrator=True,
            complexity="complex",
            selected_agents=sorted({agent for _, agent, _ in steps}),
            execution_plan=[
                ExecutionPlanStep(
                    id=step_id,
                    agent_type=agent,
                    name=f"Step {step_id}",
                    description=f"Run {agent}",
                    dependencies=deps,
                    expected_output="text",
                )
                for step_id, agent, deps in steps
            ],
            reasoning="test plan",
            estimated_duration=60,
        )

    return _make_plan


@pytest.fixture
def agent_endpoint(orchestrator_settings):
    """Fake execute-agent function.

    Returns a factory ``(outputs, failures) -> (client, calls)``; ``calls``
    collects every decoded request body in order.
    """

    def _endpoint(
        outputs: Dict[str, Any],
        failures: Iterable[str] = (),
        duration_ms: Optional[int] = 42,
    ):
        calls: List[Dict[str, Any]] = []
        failing = set(failures)

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            calls.append(body)
            if body["stepId"] in failing:
                return httpx.Response(500, json={"error": "agent crashed"})
            payload: Dict[str, Any] = {"output": outputs.get(body["stepId"])}
            if duration_ms is not None:
                payload["durationMs"] = duration_ms
            return httpx.Response(200, json=payload)

        client = RemoteFunctionClient(orchestrator_settings, transport=httpx.MockTransport(handler))
        return client, calls

    return _endpoint


def completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def make_analyzer():
    """Intention analyzer whose gateway answers with ``handler``."""

    def _make_analyzer(handler, api_key: Optional[str] = "test-key") -> IntentionAnalyzer:
        gateway = LLMGatewayClient(
            LLMGatewaySettings(api_key=api_key, base_url="http://gateway.test/v1"),
            transport=httpx.MockTransport(handler),
        )
        return IntentionAnalyzer(gateway)

    return _make_analyzer


@pytest.fixture
def llm_reply():
    """Handler factory answering every chat completion with ``content``."""

    def _reply(content: str):
        return lambda request: completion(content)

    return _reply
