"""Unit tests for the specialized agent registry and request heuristics."""

import pytest

from shared.models.orchestration import AgentModel, Complexity, SpecializedAgentType
from shared.utils.exceptions import ConfigurationError
from kai_orchestrator.agents import (
    AgentRegistry,
    agent_registry,
    detect_request_complexity,
    detect_required_agents,
)


def _entry(agent_type: str, patterns=None) -> dict:
    return {
        "type": agent_type,
        "name": agent_type.title(),
        "description": f"{agent_type} agent",
        "patterns": patterns or [],
    }


def test_bundled_catalogue_covers_every_agent_in_order():
    assert list(agent_registry.agents) == list(SpecializedAgentType)
    writer = agent_registry.get(SpecializedAgentType.CONTENT_WRITER)
    assert writer.name == "Escritor de Conteúdo"
    assert writer.model == AgentModel.PRO
    assert "identity_guide" in writer.required_data


def test_every_agent_has_trigger_patterns():
    for agent_type, compiled in agent_registry.patterns.items():
        assert compiled, agent_type


def test_no_match_defaults_to_content_writer():
    assert detect_required_agents("olá, tudo bem?") == [SpecializedAgentType.CONTENT_WRITER]


def test_any_matching_pattern_selects_agent():
    agents = detect_required_agents("crie um post e gere uma imagem para o lançamento")

    assert agents == [SpecializedAgentType.CONTENT_WRITER, SpecializedAgentType.DESIGN_AGENT]


def test_matching_is_case_insensitive():
    assert detect_required_agents("PESQUISE sobre tendências de IA") == [
        SpecializedAgentType.METRICS_ANALYST,
        SpecializedAgentType.RESEARCHER,
    ]


def test_single_agent_detection():
    assert detect_required_agents("crie um template de email") == [
        SpecializedAgentType.EMAIL_DEVELOPER
    ]


@pytest.mark.parametrize(
    "message,expected",
    [
        ("escreva um post", Complexity.SIMPLE),
        ("escreva um post e também uma legenda", Complexity.MEDIUM),
        ("inclua hashtags no post", Complexity.MEDIUM),
        (" ".join(["palavra"] * 21), Complexity.MEDIUM),
        (" ".join(["palavra"] * 51), Complexity.COMPLEX),
        ("monte uma campanha de natal", Complexity.COMPLEX),
        ("faça um post e uma imagem e um email", Complexity.COMPLEX),
        ("post, imagem, email", Complexity.COMPLEX),
        ("quero um relatório", Complexity.COMPLEX),
    ],
)
def test_request_complexity(message, expected):
    assert detect_request_complexity(message) == expected


def test_missing_agent_entry_is_rejected():
    entries = [_entry(t.value) for t in SpecializedAgentType if t != SpecializedAgentType.STRATEGIST]

    with pytest.raises(ConfigurationError, match="strategist"):
        AgentRegistry(entries)


def test_duplicate_agent_entry_is_rejected():
    entries = [_entry(t.value) for t in SpecializedAgentType]
    entries.append(_entry("researcher"))

    with pytest.raises(ConfigurationError, match="Duplicate"):
        AgentRegistry(entries)


def test_invalid_pattern_is_rejected():
    entries = [_entry(t.value) for t in SpecializedAgentType]
    entries[0]["patterns"] = ["(unclosed"]

    with pytest.raises(ConfigurationError):
        AgentRegistry(entries)


def test_unknown_agent_type_is_rejected():
    entries = [_entry(t.value) for t in SpecializedAgentType] + [_entry("video_editor")]

    with pytest.raises(ConfigurationError):
        AgentRegistry(entries)


def test_from_yaml(tmp_path):
    lines = ["agents:"]
    for agent_type in reversed(list(SpecializedAgentType)):
        lines += [
            f"  - type: {agent_type.value}",
            f"    name: {agent_type.value}",
            "    description: test",
            "    patterns: ['gatilho']",
        ]
    path = tmp_path / "agents.yaml"
    path.write_text("\n".join(lines), encoding="utf-8")

    registry = AgentRegistry.from_yaml(path)

    assert list(registry.agents) == list(SpecializedAgentType)
    assert registry.detect_required_agents("GATILHO") == list(SpecializedAgentType)


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        AgentRegistry.from_yaml(tmp_path / "missing.yaml")
