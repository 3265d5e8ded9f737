"""Persistence for orchestration runs: state snapshots plus a transition log."""

import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from shared.config.settings import OrchestratorSettings, settings
from shared.models.orchestration import OrchestrationState, StepTransition
from shared.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class RunStore(Protocol):
    """Contract shared by run persistence backends."""

    def save(self, state: OrchestrationState) -> None:
        ...

    def load(self, run_id: str) -> Optional[OrchestrationState]:
        ...

    def delete(self, run_id: str) -> bool:
        ...

    def append_transition(self, transition: StepTransition) -> None:
        ...

    def transitions(self, run_id: str) -> List[StepTransition]:
        ...

    def list_runs(self) -> List[str]:
        ...


class InMemoryRunStore:
    """Process-local run store. Stores deep copies so callers cannot mutate snapshots."""

    def __init__(self):
        self._states: Dict[str, OrchestrationState] = {}
        self._transitions: Dict[str, List[StepTransition]] = defaultdict(list)

    def save(self, state: OrchestrationState) -> None:
        self._states[state.run_id] = state.model_copy(deep=True)

    def load(self, run_id: str) -> Optional[OrchestrationState]:
        state = self._states.get(run_id)
        return state.model_copy(deep=True) if state else None

    def delete(self, run_id: str) -> bool:
        self._transitions.pop(run_id, None)
        return self._states.pop(run_id, None) is not None

    def append_transition(self, transition: StepTransition) -> None:
        self._transitions[transition.run_id].append(transition)

    def transitions(self, run_id: str) -> List[StepTransition]:
        return list(self._transitions.get(run_id, []))

    def list_runs(self) -> List[str]:
        return list(self._states.keys())


class FileRunStore:
    """File-backed run store.

    Each run is a ``<run_id>.json`` snapshot, replaced atomically on every
    save, and a ``<run_id>.transitions.jsonl`` log that is only ever appended.
    """

    SNAPSHOT_SUFFIX = ".json"
    LOG_SUFFIX = ".transitions.jsonl"

    def __init__(self, base_dir: str):
        self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized file run store at {self._base}")

    @staticmethod
    def _safe(run_id: str) -> str:
        return run_id.replace("/", "_").replace("..", "_")

    def _snapshot_path(self, run_id: str) -> Path:
        return self._base / f"{self._safe(run_id)}{self.SNAPSHOT_SUFFIX}"

    def _log_path(self, run_id: str) -> Path:
        return self._base / f"{self._safe(run_id)}{self.LOG_SUFFIX}"

    def save(self, state: OrchestrationState) -> None:
        path = self._snapshot_path(state.run_id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(state.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def load(self, run_id: str) -> Optional[OrchestrationState]:
        path = self._snapshot_path(run_id)
        if not path.exists():
            return None
        try:
            return OrchestrationState.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.error(f"Corrupt run snapshot {path}: {str(e)}")
            return None

    def delete(self, run_id: str) -> bool:
        existed = False
        for path in (self._snapshot_path(run_id), self._log_path(run_id)):
            if path.exists():
                path.unlink()
                existed = True
        return existed

    def append_transition(self, transition: StepTransition) -> None:
        line = transition.model_dump_json(by_alias=True)
        with self._log_path(transition.run_id).open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def transitions(self, run_id: str) -> List[StepTransition]:
        path = self._log_path(run_id)
        if not path.exists():
            return []
        entries: List[StepTransition] = []
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(StepTransition.model_validate_json(line))
                except ValidationError:
                    # A torn final line from a crash mid-append.
                    logger.warning(f"Skipping unreadable transition at {path}:{line_no}")
        return entries

    def list_runs(self) -> List[str]:
        return sorted(
            p.name[: -len(self.SNAPSHOT_SUFFIX)]
            for p in self._base.glob(f"*{self.SNAPSHOT_SUFFIX}")
        )


def build_run_store(orchestrator_settings: Optional[OrchestratorSettings] = None) -> RunStore:
    """Create the run store backend selected in settings."""
    config = orchestrator_settings or settings.orchestrator
    backend = config.run_store.lower()
    if backend == "memory":
        return InMemoryRunStore()
    if backend == "file":
        return FileRunStore(config.run_store_dir)
    raise ConfigurationError(f"Unknown run store backend: {config.run_store}")
