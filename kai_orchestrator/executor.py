"""Dependency-ordered execution of orchestration plans."""

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from shared.config.settings import settings
from shared.models.orchestration import (
    AgentExecution,
    ExecutionPlanStep,
    OrchestrationState,
    OrchestratorDecision,
    StepStatus,
    StepTransition,
    utcnow,
)
from shared.models.request import ClientContext
from shared.utils.exceptions import (
    OrchestrationError,
    PlanExecutionError,
    RemoteFunctionError,
    RunNotFoundError,
)
from shared.utils.metrics import metrics_collector
from kai_orchestrator.remote import RemoteFunctionClient
from kai_orchestrator.run_store import RunStore, build_run_store

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "interrupted"

StepCallback = Callable[[AgentExecution], None]


def topological_order(steps: List[ExecutionPlanStep]) -> List[ExecutionPlanStep]:
    """
    Order plan steps so every step follows its dependencies.

    Among ready steps the one earliest in the plan goes first, so a plan that
    is already in dependency order comes back unchanged. Steps with an unknown
    dependency or inside a cycle (and everything depending on them) are left
    out.
    """
    known_ids = {step.id for step in steps}
    candidates = [s for s in steps if all(d in known_ids for d in s.dependencies)]
    ordered: List[ExecutionPlanStep] = []
    emitted = set()

    progress = True
    while progress:
        progress = False
        for step in candidates:
            if step.id in emitted:
                continue
            if all(d in emitted for d in step.dependencies):
                ordered.append(step)
                emitted.add(step.id)
                progress = True
                break
    return ordered


class PlanExecutor:
    """Runs one orchestration plan step by step against the remote agent function."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_context: Optional[ClientContext] = None,
        user_id: Optional[str] = None,
        on_step_start: Optional[StepCallback] = None,
        on_step_complete: Optional[StepCallback] = None,
        on_complete: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        remote_client: Optional[RemoteFunctionClient] = None,
        store: Optional[RunStore] = None,
    ):
        """
        Initialize the plan executor.

        Args:
            client_id: Client the run is for
            client_context: Client profile forwarded to each agent
            user_id: Requesting user
            on_step_start: Called when a step starts running
            on_step_complete: Called when a step completes
            on_complete: Called with the final output of a finished run
            on_error: Called with a message when the run aborts
            remote_client: Client for the remote agent function
            store: Run store receiving snapshots and transitions
        """
        self.client_id = client_id
        self.client_context = client_context
        self.user_id = user_id
        self.on_step_start = on_step_start
        self.on_step_complete = on_step_complete
        self.on_complete = on_complete
        self.on_error = on_error
        self.remote_client = remote_client or RemoteFunctionClient(settings.orchestrator)
        self.store = store if store is not None else build_run_store()
        self.state: Optional[OrchestrationState] = None
        self._generation = 0
        self._running = False

    @property
    def run_id(self) -> Optional[str]:
        return self.state.run_id if self.state else None

    @property
    def is_running(self) -> bool:
        return self._running

    def _require_state(self) -> OrchestrationState:
        if self.state is None:
            raise OrchestrationError("No orchestration run has been started")
        return self.state

    def _persist(self) -> None:
        if self.state is not None:
            self.store.save(self.state)

    def _transition(
        self,
        execution: AgentExecution,
        status: StepStatus,
        error: Optional[str] = None
    ) -> None:
        previous = execution.advance(status)
        if error is not None:
            execution.error = error
        self.store.append_transition(
            StepTransition(
                run_id=self._require_state().run_id,
                step_id=execution.step_id,
                from_status=previous,
                to_status=status,
                error=error,
            )
        )

    def _completed_in_order(self) -> List[AgentExecution]:
        completed = [e for e in self._require_state().executions if e.status == StepStatus.COMPLETED]
        return sorted(completed, key=lambda e: e.completed_at or utcnow())

    def _last_output(self) -> Optional[str]:
        last = None
        for execution in self._completed_in_order():
            if execution.output:
                last = execution.output
        return last

    def start(
        self,
        plan: OrchestratorDecision,
        user_message: str,
        additional_data: Optional[Dict[str, Any]] = None,
        run_id: Optional[str] = None
    ) -> OrchestrationState:
        """
        Initialize a new run with every step pending.

        Raises:
            OrchestrationError: If two plan steps share an id
        """
        step_ids = [step.id for step in plan.execution_plan]
        if len(step_ids) != len(set(step_ids)):
            raise OrchestrationError("Execution plan contains duplicate step ids")

        self._generation += 1
        self.state = OrchestrationState(
            run_id=run_id or uuid.uuid4().hex,
            is_active=True,
            is_paused=False,
            plan=plan,
            executions=[
                AgentExecution(step_id=step.id, agent_type=step.agent_type)
                for step in plan.execution_plan
            ],
            started_at=utcnow(),
            user_message=user_message,
            additional_data=additional_data or {},
        )
        self._persist()
        logger.info(f"Started run {self.state.run_id} with {len(step_ids)} steps")
        return self.state

    async def run(self) -> Optional[OrchestrationState]:
        """
        Execute pending steps in dependency order until done, paused or failed.

        Returns:
            The run state, or None if the run was cancelled meanwhile

        Raises:
            PlanExecutionError: If a step fails; the run is aborted
            OrchestrationError: If no run was started or it is already running
        """
        state = self._require_state()
        if self._running:
            raise OrchestrationError(f"Run {state.run_id} is already executing")
        if state.completed_at is not None:
            logger.info(f"Run {state.run_id} already finished")
            return state

        generation = self._generation
        self._running = True
        try:
            state.is_active = True
            self._persist()

            for step in topological_order(state.plan.execution_plan if state.plan else []):
                if self._generation != generation:
                    return None
                if state.is_paused:
                    logger.info(f"Run {state.run_id} paused before step {step.id}")
                    state.is_active = False
                    self._persist()
                    return state

                execution = state.get_execution(step.id)
                if execution is None or execution.status != StepStatus.PENDING:
                    continue
                if not all(self._dependency_completed(d) for d in step.dependencies):
                    logger.warning(f"Dependencies not met for step {step.id}")
                    continue

                await self._execute_step(step, execution, generation)

            if self._generation != generation:
                return None
            self._finish()
            return state
        finally:
            if self._generation == generation:
                self._running = False

    def _dependency_completed(self, step_id: str) -> bool:
        execution = self._require_state().get_execution(step_id)
        return execution is not None and execution.status == StepStatus.COMPLETED

    async def _execute_step(
        self,
        step: ExecutionPlanStep,
        execution: AgentExecution,
        generation: int
    ) -> None:
        state = self._require_state()
        self._transition(execution, StepStatus.RUNNING)
        execution.started_at = utcnow()
        state.current_step_id = step.id
        self._persist()
        if self.on_step_start:
            self.on_step_start(execution.model_copy())

        previous_outputs = {
            e.agent_type.value: e.output for e in self._completed_in_order() if e.output
        }
        body = {
            "agentType": step.agent_type.value,
            "stepId": step.id,
            "userMessage": state.user_message,
            "clientContext": (
                self.client_context.model_dump(by_alias=True, exclude_none=True)
                if self.client_context else None
            ),
            "previousOutputs": previous_outputs,
            "additionalData": state.additional_data,
            "userId": self.user_id,
            "clientId": self.client_id,
        }

        logger.info(f"Executing step {step.id} with {step.agent_type.value}")
        started = time.perf_counter()
        try:
            data = await self.remote_client.invoke(
                self.remote_client.settings.execute_agent_function, body
            )
        except RemoteFunctionError as e:
            if self._generation != generation:
                logger.info(f"Dropping failure of step {step.id}: run was cancelled")
                return
            self._fail_step(execution, str(e))
            return
        elapsed = time.perf_counter() - started

        if self._generation != generation:
            logger.info(f"Dropping result of step {step.id}: run was cancelled")
            return

        output = data.get("output")
        if output is not None and not isinstance(output, str):
            output = str(output)
        remote_duration = data.get("durationMs")

        self._transition(execution, StepStatus.COMPLETED)
        execution.output = output
        execution.completed_at = utcnow()
        execution.duration_ms = (
            remote_duration if isinstance(remote_duration, int) and not isinstance(remote_duration, bool)
            else int(elapsed * 1000)
        )
        self._persist()

        metrics_collector.record_timing("executor.step", elapsed, {"agent": step.agent_type.value})
        metrics_collector.increment_counter("executor.step.completed")
        if self.on_step_complete:
            self.on_step_complete(execution.model_copy())

    def _fail_step(self, execution: AgentExecution, message: str) -> None:
        state = self._require_state()
        self._transition(execution, StepStatus.ERROR, error=message)
        execution.completed_at = utcnow()
        metrics_collector.increment_counter("executor.step.error")
        logger.error(f"Step {execution.step_id} failed: {message}")

        state.is_active = False
        state.completed_at = utcnow()
        state.final_output = self._last_output()
        state.error = message
        self._persist()

        if self.on_error:
            self.on_error(message)
        raise PlanExecutionError(
            f"Step {execution.step_id} failed: {message}", state.run_id, step_id=execution.step_id
        )

    def _finish(self) -> None:
        state = self._require_state()
        state.blocked_step_ids = [
            e.step_id for e in state.executions if e.status == StepStatus.PENDING
        ]
        if state.blocked_step_ids:
            logger.warning(
                f"Run {state.run_id} finished with blocked steps: {state.blocked_step_ids}"
            )
        state.is_active = False
        state.current_step_id = None
        state.final_output = self._last_output() or ""
        state.completed_at = utcnow()
        self._persist()
        logger.info(f"Run {state.run_id} completed")
        if self.on_complete:
            self.on_complete(state.final_output)

    async def execute_plan(
        self,
        plan: OrchestratorDecision,
        user_message: str,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> Optional[OrchestrationState]:
        """Start a run for ``plan`` and execute it."""
        self.start(plan, user_message, additional_data)
        return await self.run()

    def pause(self) -> OrchestrationState:
        """Ask the run to stop at the next step boundary."""
        state = self._require_state()
        state.is_paused = True
        self._persist()
        return state

    def resume(self) -> OrchestrationState:
        """Clear the pause flag. Call run() again to continue."""
        state = self._require_state()
        state.is_paused = False
        self._persist()
        return state

    def cancel(self) -> None:
        """Discard the run. An in-flight step result is dropped."""
        if self.state is not None:
            self.store.delete(self.state.run_id)
            logger.info(f"Cancelled run {self.state.run_id}")
        self.state = None
        self._generation += 1
        self._running = False

    def reset(self) -> None:
        self.cancel()

    @classmethod
    def recover(cls, run_id: str, store: RunStore, **kwargs: Any) -> "PlanExecutor":
        """
        Rebuild an executor for a persisted run.

        Steps found running were interrupted by a restart. They are marked as
        failed and the run is aborted like any other step failure: remaining
        steps stay pending and on_error is called. A run without interrupted
        steps can be continued with run().

        Raises:
            RunNotFoundError: If the store has no such run
        """
        state = store.load(run_id)
        if state is None:
            raise RunNotFoundError(f"Run {run_id} not found")

        executor = cls(store=store, **kwargs)
        executor.state = state
        interrupted = [e for e in state.executions if e.status == StepStatus.RUNNING]
        for execution in interrupted:
            executor._transition(execution, StepStatus.ERROR, error=INTERRUPTED_ERROR)
            execution.completed_at = utcnow()
            logger.warning(f"Step {execution.step_id} of run {run_id} was interrupted")
        state.is_active = False
        state.current_step_id = None
        if interrupted:
            state.error = f"Step {interrupted[0].step_id} {INTERRUPTED_ERROR}"
            state.completed_at = utcnow()
            state.final_output = executor._last_output()
        executor._persist()

        if interrupted and executor.on_error:
            executor.on_error(state.error)
        return executor


class RunRegistry:
    """Live executors by run id, backed by the run store for finished or restarted runs."""

    def __init__(self, store: Optional[RunStore] = None):
        self.store = store if store is not None else build_run_store()
        self._executors: Dict[str, PlanExecutor] = {}

    def register(self, executor: PlanExecutor) -> None:
        if executor.run_id is None:
            raise OrchestrationError("Cannot register an executor without a run")
        self._executors[executor.run_id] = executor

    def get(self, run_id: str, **kwargs: Any) -> PlanExecutor:
        """
        Return the executor for a run, recovering it from the store if needed.

        Raises:
            RunNotFoundError: If the run is unknown
        """
        executor = self._executors.get(run_id)
        if executor is not None and executor.state is not None:
            return executor
        executor = PlanExecutor.recover(run_id, self.store, **kwargs)
        self._executors[run_id] = executor
        return executor

    def get_state(self, run_id: str) -> OrchestrationState:
        executor = self._executors.get(run_id)
        if executor is not None and executor.state is not None:
            return executor.state
        state = self.store.load(run_id)
        if state is None:
            raise RunNotFoundError(f"Run {run_id} not found")
        return state

    def transitions(self, run_id: str) -> List[StepTransition]:
        self.get_state(run_id)
        return self.store.transitions(run_id)

    def remove(self, run_id: str) -> None:
        self._executors.pop(run_id, None)
