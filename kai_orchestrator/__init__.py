"""kAI multi-agent orchestration.

This package decides whether a request needs one specialized agent or a
multi-step plan, executes plans in dependency order against the remote agent
function, persists run state and gates side-effecting actions behind explicit
confirmation.
"""

from kai_orchestrator.agents import AgentRegistry, agent_registry, detect_request_complexity
from kai_orchestrator.decision import OrchestratorDecisionEngine
from kai_orchestrator.executor import PlanExecutor, RunRegistry
from kai_orchestrator.run_store import FileRunStore, InMemoryRunStore, build_run_store
from kai_orchestrator.confirmation import ActionConfirmationGate

__version__ = "1.0.0"

__all__ = [
    "AgentRegistry",
    "agent_registry",
    "detect_request_complexity",
    "OrchestratorDecisionEngine",
    "PlanExecutor",
    "RunRegistry",
    "FileRunStore",
    "InMemoryRunStore",
    "build_run_store",
    "ActionConfirmationGate",
]
