"""Decides between direct single-agent execution and a remote multi-step plan."""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from shared.config.settings import settings
from shared.models.orchestration import (
    Complexity,
    ExecutionPlanStep,
    OrchestratorDecision,
    SpecializedAgentType,
)
from shared.models.request import ClientContext
from shared.utils.exceptions import RemoteFunctionError
from shared.utils.metrics import metrics_collector
from kai_orchestrator.agents import AgentRegistry, agent_registry, detect_request_complexity
from kai_orchestrator.remote import RemoteFunctionClient

logger = logging.getLogger(__name__)

FAST_PATH_DURATION_SECONDS = 15


def direct_execution_plan(agent_type: SpecializedAgentType) -> OrchestratorDecision:
    """One-step plan for a simple request handled by a single agent."""
    return OrchestratorDecision(
        should_use_orchestrator=False,
        complexity=Complexity.SIMPLE,
        selected_agents=[agent_type],
        execution_plan=[
            ExecutionPlanStep(
                id="step-1",
                agent_type=agent_type,
                name="Direct execution",
                description="Simple request",
                dependencies=[],
                expected_output="Final answer",
                tools=[],
            )
        ],
        reasoning="Simple request - direct execution",
        estimated_duration=FAST_PATH_DURATION_SECONDS,
    )


class OrchestratorDecisionEngine:
    """Produces an OrchestratorDecision for each user turn."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_context: Optional[ClientContext] = None,
        user_id: Optional[str] = None,
        on_error: Optional[Callable[[str], None]] = None,
        remote_client: Optional[RemoteFunctionClient] = None,
        registry: Optional[AgentRegistry] = None,
    ):
        """
        Initialize the decision engine.

        Args:
            client_id: Client the request is made for
            client_context: Client profile forwarded to the remote planner
            user_id: Requesting user
            on_error: Called with a message when no decision can be produced
            remote_client: Client for the remote orchestrator function
            registry: Agent registry used for local agent detection
        """
        self.client_id = client_id
        self.client_context = client_context
        self.user_id = user_id
        self.on_error = on_error
        self.remote_client = remote_client or RemoteFunctionClient(settings.orchestrator)
        self.registry = registry or agent_registry

    async def analyze_request(
        self,
        user_message: str,
        available_data: Optional[Dict[str, Any]] = None
    ) -> Optional[OrchestratorDecision]:
        """
        Analyze a request and decide how to execute it.

        Simple requests that need exactly one agent get a local one-step plan
        without any remote call. Everything else is planned remotely.

        Args:
            user_message: User request
            available_data: Client data the agents may use

        Returns:
            The decision, or None when the remote planner could not be used
        """
        complexity = detect_request_complexity(user_message)
        detected_agents = self.registry.detect_required_agents(user_message)
        logger.info(
            f"Request complexity={complexity.value}, "
            f"agents={[a.value for a in detected_agents]}"
        )

        if complexity == Complexity.SIMPLE and len(detected_agents) == 1:
            metrics_collector.increment_counter("orchestrator.fast_path")
            return direct_execution_plan(detected_agents[0])

        body = {
            "userMessage": user_message,
            "clientContext": (
                self.client_context.model_dump(by_alias=True, exclude_none=True)
                if self.client_context else None
            ),
            "availableData": available_data or {},
            "userId": self.user_id,
            "clientId": self.client_id,
        }

        try:
            data = await self.remote_client.invoke(
                self.remote_client.settings.orchestrator_function, body
            )
            decision = OrchestratorDecision.model_validate(data)
        except (RemoteFunctionError, ValidationError) as e:
            message = str(e)
            logger.error(f"Orchestrator analysis error: {message}")
            metrics_collector.increment_counter("orchestrator.remote_error")
            if self.on_error:
                self.on_error(message)
            return None

        metrics_collector.increment_counter("orchestrator.remote")
        logger.info(f"Remote plan with {len(decision.execution_plan)} steps: {decision.reasoning}")
        return decision
