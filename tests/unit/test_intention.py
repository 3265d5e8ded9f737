"""Unit tests for LLM-backed intention analysis."""

import json

import httpx
import pytest

from shared.models.intention import FileDescriptor, KAIActionType
from shared.utils.exceptions import (
    ConfigurationError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitError,
)
from shared.utils.metrics import metrics_collector
from kai_router.intention import build_system_prompt, coerce_analysis
from kai_router.llm_client import LLMGatewayClient


@pytest.mark.asyncio
async def test_fenced_json_is_parsed(make_analyzer, llm_reply):
    content = """```json
{"actionType": "create_content", "confidence": 0.92,
 "extractedParams": {"clientName": "Acme", "format": "carrossel", "platform": ""},
 "requiresConfirmation": true}
```"""
    analyzer = make_analyzer(llm_reply(content))

    result = await analyzer.analyze("cria um carrossel para a Acme")

    assert result.action_type == KAIActionType.CREATE_CONTENT
    assert result.confidence == 0.92
    assert result.extracted_params.client_name == "Acme"
    assert result.extracted_params.format == "carrossel"
    assert result.extracted_params.platform is None
    assert result.requires_confirmation is True
    assert metrics_collector.counters["intention.action.create_content"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        "I think the user wants to create content",
        "null",
        "[1, 2, 3]",
        '{"actionType": 3}',
        "```json\n{]\n```",
    ],
)
async def test_unusable_output_yields_enum_member(make_analyzer, llm_reply, content):
    analyzer = make_analyzer(llm_reply(content))

    result = await analyzer.analyze("mensagem qualquer")

    assert result.action_type in set(KAIActionType)
    assert result.action_type == KAIActionType.GENERAL_CHAT
    assert 0.0 <= result.confidence <= 1.0


@pytest.mark.asyncio
async def test_non_json_output_uses_fallback(make_analyzer, llm_reply):
    analyzer = make_analyzer(llm_reply("not json at all"))

    result = await analyzer.analyze("oi")

    assert result.confidence == 0.5
    assert result.requires_confirmation is False
    assert metrics_collector.counters["intention.fallback"] == 1


@pytest.mark.asyncio
async def test_unknown_action_type_is_coerced(make_analyzer, llm_reply):
    content = json.dumps({"actionType": "delete_everything", "confidence": 0.99, "requiresConfirmation": True})
    analyzer = make_analyzer(llm_reply(content))

    result = await analyzer.analyze("apague tudo")

    assert result.action_type == KAIActionType.GENERAL_CHAT
    assert result.requires_confirmation is False


@pytest.mark.asyncio
async def test_confidence_is_clamped(make_analyzer, llm_reply):
    content = json.dumps({"actionType": "analyze_url", "confidence": 1.7})
    analyzer = make_analyzer(llm_reply(content))

    result = await analyzer.analyze("analise esse link")

    assert result.confidence == 1.0


@pytest.mark.asyncio
async def test_missing_confirmation_flag_is_derived(make_analyzer, llm_reply):
    content = json.dumps({"actionType": "upload_metrics", "confidence": 0.8})
    analyzer = make_analyzer(llm_reply(content))

    result = await analyzer.analyze("importar métricas")

    assert result.requires_confirmation is True


@pytest.mark.asyncio
async def test_rate_limit_is_raised(make_analyzer):
    analyzer = make_analyzer(lambda request: httpx.Response(429, json={"error": "slow down"}))

    with pytest.raises(UpstreamRateLimitError):
        await analyzer.analyze("oi")


@pytest.mark.asyncio
async def test_payment_required_is_raised(make_analyzer):
    analyzer = make_analyzer(lambda request: httpx.Response(402))

    with pytest.raises(UpstreamPaymentRequiredError):
        await analyzer.analyze("oi")


@pytest.mark.asyncio
async def test_other_upstream_failure_falls_back(make_analyzer):
    analyzer = make_analyzer(lambda request: httpx.Response(503, text="unavailable"))

    result = await analyzer.analyze("oi")

    assert result.action_type == KAIActionType.GENERAL_CHAT
    assert result.confidence == 0.5


@pytest.mark.asyncio
async def test_missing_api_key_is_configuration_error(make_analyzer, llm_reply):
    analyzer = make_analyzer(llm_reply("{}"), api_key=None)

    with pytest.raises(ConfigurationError):
        await analyzer.analyze("oi")


@pytest.mark.asyncio
@pytest.mark.parametrize("message", ["", None, 42])
async def test_missing_message_is_rejected(make_analyzer, llm_reply, message):
    analyzer = make_analyzer(llm_reply("{}"))

    with pytest.raises(ValueError):
        await analyzer.analyze(message)


@pytest.mark.asyncio
async def test_gateway_request_shape(make_analyzer):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": '{"actionType": "general_chat"}'}}]})

    analyzer = make_analyzer(handler)
    files = [FileDescriptor(name="metricas.csv", type="text/csv", size=120)]

    await analyzer.analyze("segue o arquivo", files=files, context={"clientId": "c-1"})

    assert captured["url"] == "http://gateway.test/v1/chat/completions"
    assert captured["auth"] == "Bearer test-key"
    system, user = captured["body"]["messages"]
    assert system["role"] == "system"
    assert "metricas.csv" in system["content"]
    assert "c-1" in system["content"]
    assert user == {"role": "user", "content": "segue o arquivo"}
    assert captured["body"]["temperature"] == 0.1


def test_extract_json_strips_fences():
    assert LLMGatewayClient.extract_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert LLMGatewayClient.extract_json('```\n{"a": 2}\n```') == {"a": 2}
    assert LLMGatewayClient.extract_json(' {"a": 3} ') == {"a": 3}
    with pytest.raises(ValueError):
        LLMGatewayClient.extract_json("nope")


def test_build_system_prompt_defaults():
    prompt = build_system_prompt()

    assert "Arquivos anexados: nenhum" in prompt
    assert "Contexto: não especificado" in prompt


def test_coerce_analysis_ignores_non_string_params():
    result = coerce_analysis({
        "actionType": "create_planning_card",
        "confidence": "0.7",
        "extractedParams": {"date": "12/05", "assignee": 7},
    })

    assert result.extracted_params.date == "12/05"
    assert result.extracted_params.assignee is None
    assert result.confidence == 0.7
    assert result.requires_confirmation is True
