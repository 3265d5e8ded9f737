"""Specialized agent registry and request heuristics."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

import yaml
from pydantic import ValidationError

from shared.models.orchestration import Complexity, SpecializedAgent, SpecializedAgentType
from shared.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AGENTS_PATH = Path(__file__).resolve().parent / "config" / "agents.yaml"

COMPLEX_WORD_COUNT = 50
MEDIUM_WORD_COUNT = 20

# Case-sensitive on purpose: "E" at sentence start is not a connective.
_MULTI_REQUEST = re.compile(r"\be\b.*\be\b|,.*,")
_COMPLEX_KEYWORDS = re.compile(r"(campanha|estratégia|plano|análise\s+completa|relatório)", re.IGNORECASE)
_MEDIUM_CONNECTIVES = re.compile(r"(além\s+disso|também|inclua)", re.IGNORECASE)


def _load_agent_entries(path: Path) -> List[Dict[str, Any]]:
    if not path.exists():
        raise ConfigurationError(f"Agent catalogue not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    entries = data.get("agents")
    if not isinstance(entries, list):
        raise ConfigurationError(f"Agent catalogue {path} has no 'agents' list")
    return entries


class AgentRegistry:
    """Immutable catalogue of specialized agents and their trigger patterns."""

    def __init__(self, entries: List[Dict[str, Any]]):
        agents: Dict[SpecializedAgentType, SpecializedAgent] = {}
        patterns: Dict[SpecializedAgentType, Tuple[Pattern[str], ...]] = {}

        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Invalid agent entry: {entry!r}")
            raw = dict(entry)
            raw_patterns = raw.pop("patterns", []) or []
            try:
                agent = SpecializedAgent.model_validate(raw)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid agent entry {raw.get('type')!r}: {str(e)}") from e
            if agent.type in agents:
                raise ConfigurationError(f"Duplicate agent entry: {agent.type.value}")
            try:
                compiled = tuple(re.compile(p, re.IGNORECASE) for p in raw_patterns)
            except re.error as e:
                raise ConfigurationError(f"Invalid pattern for {agent.type.value}: {str(e)}") from e
            agents[agent.type] = agent
            patterns[agent.type] = compiled

        missing = [t.value for t in SpecializedAgentType if t not in agents]
        if missing:
            raise ConfigurationError(f"Agent catalogue is missing entries for: {', '.join(missing)}")

        # Keep enum declaration order regardless of file order.
        self._agents = MappingProxyType({t: agents[t] for t in SpecializedAgentType})
        self._patterns = MappingProxyType({t: patterns[t] for t in SpecializedAgentType})
        logger.info(f"Loaded agent registry with {len(self._agents)} agents")

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "AgentRegistry":
        """Load the registry from a YAML catalogue (defaults to the bundled one)."""
        return cls(_load_agent_entries(Path(path) if path else DEFAULT_AGENTS_PATH))

    @property
    def agents(self) -> Mapping[SpecializedAgentType, SpecializedAgent]:
        return self._agents

    @property
    def patterns(self) -> Mapping[SpecializedAgentType, Tuple[Pattern[str], ...]]:
        return self._patterns

    def get(self, agent_type: SpecializedAgentType) -> SpecializedAgent:
        return self._agents[SpecializedAgentType(agent_type)]

    def detect_required_agents(self, message: str) -> List[SpecializedAgentType]:
        """
        Select every agent with at least one matching trigger pattern.

        Args:
            message: User request

        Returns:
            Matching agent types in declaration order, or [content_writer] when
            nothing matches
        """
        detected = [
            agent_type
            for agent_type, compiled in self._patterns.items()
            if any(p.search(message) for p in compiled)
        ]
        return detected or [SpecializedAgentType.CONTENT_WRITER]


def detect_request_complexity(message: str) -> Complexity:
    """Bucket a request as simple, medium or complex from surface features."""
    word_count = len(message.split())

    if (
        word_count > COMPLEX_WORD_COUNT
        or _MULTI_REQUEST.search(message)
        or _COMPLEX_KEYWORDS.search(message)
    ):
        return Complexity.COMPLEX
    if word_count > MEDIUM_WORD_COUNT or _MEDIUM_CONNECTIVES.search(message):
        return Complexity.MEDIUM
    return Complexity.SIMPLE


# Global agent registry instance
agent_registry = AgentRegistry.from_yaml()


def detect_required_agents(message: str) -> List[SpecializedAgentType]:
    return agent_registry.detect_required_agents(message)
