"""API route handlers."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from shared.config.settings import settings
from shared.models.intention import AnalysisResult, DetectedAction
from shared.models.orchestration import OrchestrationState, OrchestratorDecision, StepTransition
from shared.models.request import (
    ErrorResponse,
    IntentionRequest,
    OrchestrateRequest,
    RouterRequest,
    RunRequest,
)
from shared.models.routing import RoutingDecision
from shared.utils.exceptions import (
    ConfigurationError,
    OrchestrationError,
    PlanExecutionError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitError,
)
from shared.utils.metrics import metrics_collector
from kai_router.action_detector import ActionDetector
from kai_router.classifier import PatternClassifier, fallback_decision, pattern_classifier
from kai_router.intention import IntentionAnalyzer
from kai_orchestrator.decision import OrchestratorDecisionEngine
from kai_orchestrator.executor import PlanExecutor, RunRegistry
from kai_orchestrator.remote import RemoteFunctionClient

logger = logging.getLogger(__name__)

router = APIRouter()

# Global instances, created lazily
_intention_analyzer: Optional[IntentionAnalyzer] = None
_remote_client: Optional[RemoteFunctionClient] = None
_run_registry: Optional[RunRegistry] = None


def get_classifier() -> PatternClassifier:
    """Dependency to get the pattern classifier."""
    return pattern_classifier


def get_intention_analyzer() -> IntentionAnalyzer:
    """Dependency to get the intention analyzer."""
    global _intention_analyzer
    if _intention_analyzer is None:
        _intention_analyzer = IntentionAnalyzer()
    return _intention_analyzer


def get_remote_client() -> RemoteFunctionClient:
    """Dependency to get the remote function client."""
    global _remote_client
    if _remote_client is None:
        _remote_client = RemoteFunctionClient(settings.orchestrator)
    return _remote_client


def get_run_registry() -> RunRegistry:
    """Dependency to get the run registry."""
    global _run_registry
    if _run_registry is None:
        _run_registry = RunRegistry()
    return _run_registry


def error_response(
    status_code: int,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Build a JSON error response in the ErrorResponse shape."""
    body = ErrorResponse(error=message, error_code=error_code, details=details or {})
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


async def _drive_run(executor: PlanExecutor) -> None:
    try:
        await executor.run()
    except PlanExecutionError as e:
        # Failure details are already recorded on the run state.
        logger.warning(f"Run {e.run_id} aborted at step {e.step_id}")
    except OrchestrationError as e:
        # Already driven by another task, or cancelled before it started.
        logger.warning(f"Skipped scheduled run: {str(e)}")


@router.post("/kai-router", response_model=RoutingDecision, response_model_exclude_none=True)
async def route_message(
    request: Request,
    classifier: PatternClassifier = Depends(get_classifier)
):
    """
    Route a chat message to a pipeline.

    Never fails: a malformed body yields the fallback decision.
    """
    try:
        payload = await request.json()
        body = RouterRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.error(f"Invalid routing request: {str(e)}")
        return fallback_decision()

    logger.info(f"Routing message: {body.message[:100]}")
    return classifier.classify(
        body.message, has_files=bool(body.has_files), file_types=body.file_types or []
    )


@router.post("/analyze-kai-intention", response_model=AnalysisResult, response_model_exclude_none=True)
async def analyze_intention(
    body: IntentionRequest,
    analyzer: IntentionAnalyzer = Depends(get_intention_analyzer)
):
    """
    Classify a message into a kAI action.

    Returns 400 when the message is missing, 429/402 when the LLM gateway
    refuses the call and 500 when the gateway is not configured.
    """
    if not body.message or not isinstance(body.message, str):
        return error_response(400, "Message is required", "missing_message")

    try:
        return await analyzer.analyze(body.message, files=body.files, context=body.context)
    except UpstreamRateLimitError:
        return error_response(429, "Rate limit exceeded. Please try again later.", "rate_limited")
    except UpstreamPaymentRequiredError:
        return error_response(402, "Payment required. Please add credits.", "payment_required")
    except ConfigurationError as e:
        logger.error(f"Intention analysis misconfigured: {str(e)}")
        content = AnalysisResult.fallback().model_dump(mode="json", by_alias=True)
        content.update(
            ErrorResponse(error=str(e), error_code="configuration_error").model_dump(
                mode="json", by_alias=True
            )
        )
        return JSONResponse(status_code=500, content=content)


@router.post("/kai-actions/detect", response_model=DetectedAction, response_model_exclude_none=True)
async def detect_action(
    body: IntentionRequest,
    analyzer: IntentionAnalyzer = Depends(get_intention_analyzer)
):
    """Detect the action behind a message, patterns first."""
    if not body.message or not isinstance(body.message, str):
        return error_response(400, "Message is required", "missing_message")

    detector = ActionDetector(analyzer)
    return await detector.detect(body.message, files=body.files, context=body.context)


@router.post("/orchestrator/analyze", response_model=OrchestratorDecision)
async def analyze_request(
    body: OrchestrateRequest,
    remote_client: RemoteFunctionClient = Depends(get_remote_client)
):
    """Decide between direct execution and a multi-agent plan."""
    errors: List[str] = []
    engine = OrchestratorDecisionEngine(
        client_id=body.client_id,
        client_context=body.client_context,
        user_id=body.user_id,
        on_error=errors.append,
        remote_client=remote_client,
    )
    decision = await engine.analyze_request(body.user_message, body.available_data)
    if decision is None:
        return error_response(
            502,
            errors[-1] if errors else "Orchestrator unavailable",
            "orchestrator_unavailable",
        )
    return decision


@router.post("/orchestrator/runs", response_model=OrchestrationState, status_code=202)
async def start_run(
    body: RunRequest,
    background_tasks: BackgroundTasks,
    remote_client: RemoteFunctionClient = Depends(get_remote_client),
    registry: RunRegistry = Depends(get_run_registry)
):
    """Start executing a plan in the background."""
    executor = PlanExecutor(
        client_id=body.client_id,
        client_context=body.client_context,
        user_id=body.user_id,
        remote_client=remote_client,
        store=registry.store,
    )
    state = executor.start(body.plan, body.user_message, body.additional_data)
    registry.register(executor)
    background_tasks.add_task(_drive_run, executor)
    return state


@router.get("/orchestrator/runs/{run_id}", response_model=OrchestrationState)
async def get_run(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    """Current state of a run."""
    return registry.get_state(run_id)


@router.get("/orchestrator/runs/{run_id}/transitions", response_model=List[StepTransition])
async def get_run_transitions(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    """Step status transition log of a run."""
    return registry.transitions(run_id)


@router.post("/orchestrator/runs/{run_id}/pause", response_model=OrchestrationState)
async def pause_run(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    """Stop the run at the next step boundary."""
    return registry.get(run_id).pause()


@router.post("/orchestrator/runs/{run_id}/resume", response_model=OrchestrationState)
async def resume_run(
    run_id: str,
    background_tasks: BackgroundTasks,
    remote_client: RemoteFunctionClient = Depends(get_remote_client),
    registry: RunRegistry = Depends(get_run_registry)
):
    """Clear the pause flag and continue the run in the background."""
    executor = registry.get(run_id, remote_client=remote_client)
    state = executor.resume()
    if not executor.is_running and state.completed_at is None:
        background_tasks.add_task(_drive_run, executor)
    return state


@router.post("/orchestrator/runs/{run_id}/cancel")
async def cancel_run(run_id: str, registry: RunRegistry = Depends(get_run_registry)):
    """Discard a run and its persisted record."""
    executor = registry.get(run_id)
    executor.cancel()
    registry.remove(run_id)
    return {"runId": run_id, "cancelled": True}


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@router.get("/metrics")
async def get_metrics():
    """Snapshot of collected metrics and counters."""
    return metrics_collector.get_all_metrics()
