"""Multi-agent orchestration models: plans, step executions and run state."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from shared.models.base import WireModel
from shared.utils.exceptions import InvalidStepTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SpecializedAgentType(str, Enum):
    """Specialized agents the orchestrator can schedule."""

    CONTENT_WRITER = "content_writer"
    DESIGN_AGENT = "design_agent"
    METRICS_ANALYST = "metrics_analyst"
    EMAIL_DEVELOPER = "email_developer"
    RESEARCHER = "researcher"
    STRATEGIST = "strategist"


class AgentModel(str, Enum):
    """Model tier an agent runs on."""

    FLASH = "flash"
    PRO = "pro"
    FLASH_LITE = "flash-lite"


class Complexity(str, Enum):
    """Ordinal request complexity buckets."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class StepStatus(str, Enum):
    """Lifecycle of a plan step: pending -> running -> (completed | error)."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


_ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.RUNNING},
    StepStatus.RUNNING: {StepStatus.COMPLETED, StepStatus.ERROR},
    StepStatus.COMPLETED: set(),
    StepStatus.ERROR: set(),
}


class SpecializedAgent(WireModel):
    """Registry entry describing one specialized agent."""

    type: SpecializedAgentType
    name: str
    description: str
    icon: str = ""
    capabilities: List[str] = Field(default_factory=list)
    required_data: List[str] = Field(default_factory=list)
    model: AgentModel = AgentModel.FLASH


class ExecutionPlanStep(WireModel):
    """One node of the execution DAG. Dependencies reference other step ids."""

    id: str
    agent_type: SpecializedAgentType
    name: str
    description: str = ""
    dependencies: List[str] = Field(default_factory=list)
    expected_output: str = ""
    tools: List[str] = Field(default_factory=list)


class OrchestratorDecision(WireModel):
    """Single-agent or multi-step decision produced once per user turn."""

    should_use_orchestrator: bool
    complexity: Complexity
    selected_agents: List[SpecializedAgentType] = Field(default_factory=list)
    execution_plan: List[ExecutionPlanStep] = Field(default_factory=list)
    reasoning: str = ""
    estimated_duration: float = Field(default=0, description="Estimated duration in seconds")


class AgentExecution(WireModel):
    """Mutable execution record of one plan step."""

    step_id: str
    agent_type: SpecializedAgentType
    status: StepStatus = StepStatus.PENDING
    input: Optional[Dict[str, Any]] = None
    output: Optional[str] = None
    intermediate_outputs: Optional[List[str]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None

    def advance(self, status: StepStatus) -> StepStatus:
        """Move the step forward to ``status`` and return the previous status.

        Raises:
            InvalidStepTransitionError: If the transition is not forward-only
        """
        previous = self.status
        if status not in _ALLOWED_TRANSITIONS[previous]:
            raise InvalidStepTransitionError(
                f"Step {self.step_id} cannot move from {previous.value} to {status.value}"
            )
        self.status = status
        return previous


class OrchestrationState(WireModel):
    """State of one orchestration run, keyed by run id."""

    run_id: str
    is_active: bool = False
    is_paused: bool = False
    plan: Optional[OrchestratorDecision] = None
    executions: List[AgentExecution] = Field(default_factory=list)
    current_step_id: Optional[str] = None
    final_output: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    user_message: str = ""
    additional_data: Dict[str, Any] = Field(default_factory=dict)
    blocked_step_ids: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    def get_execution(self, step_id: str) -> Optional[AgentExecution]:
        for execution in self.executions:
            if execution.step_id == step_id:
                return execution
        return None


class StepTransition(WireModel):
    """Append-only log entry for a step status change."""

    run_id: str
    step_id: str
    from_status: StepStatus
    to_status: StepStatus
    at: datetime = Field(default_factory=utcnow)
    error: Optional[str] = None
