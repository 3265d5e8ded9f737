"""LLM-backed intention analysis for confirmation-gated kAI actions."""

import json
import logging
from typing import Any, Dict, List, Optional

from shared.config.settings import settings
from shared.models.intention import (
    ActionParams,
    AnalysisResult,
    FileDescriptor,
    KAIActionType,
    requires_confirmation,
)
from shared.utils.exceptions import (
    ConfigurationError,
    LLMGatewayError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitError,
)
from shared.utils.metrics import metrics_collector
from kai_router.llm_client import LLMGatewayClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """Você é o analisador de intenções do kAI, um assistente de marketing digital.

Leia a mensagem do usuário e identifique a intenção principal. Responda SOMENTE com JSON válido.

Ações possíveis:
- create_content: criar conteúdo (posts, carrosséis, reels, stories, threads)
- ask_about_metrics: perguntas sobre métricas e desempenho
- upload_metrics: importar métricas a partir de CSV
- create_planning_card: criar card no planejamento ou calendário
- upload_to_library: adicionar à biblioteca de conteúdo
- upload_to_references: adicionar às referências
- analyze_url: analisar uma URL
- general_chat: conversa geral (padrão)

Arquivos anexados: {files}
Contexto: {context}

Formato da resposta:
{{
  "actionType": "tipo_da_acao",
  "confidence": 0.0 a 1.0,
  "extractedParams": {{
    "clientName": "cliente, se mencionado",
    "format": "post|carrossel|reels|stories|thread, se mencionado",
    "date": "data, se mencionada",
    "assignee": "responsável, se mencionado",
    "url": "URL, se presente",
    "platform": "instagram|youtube|newsletter|twitter|linkedin, se mencionada"
  }},
  "requiresConfirmation": true/false
}}

Regras:
- Arquivo CSV anexado indica upload_metrics
- URL com menção a "referência" ou "salvar" indica upload_to_references
- URL com menção a "biblioteca" indica upload_to_library
- create_content, upload_metrics, create_planning_card, upload_to_library e upload_to_references exigem confirmação
- Extraia SOMENTE parâmetros presentes explicitamente na mensagem"""


def build_system_prompt(
    files: Optional[List[FileDescriptor]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """Render the classification system prompt for the given attachments and context."""
    files_text = (
        json.dumps([f.model_dump(by_alias=True, exclude_none=True) for f in files], ensure_ascii=False)
        if files else "nenhum"
    )
    context_text = json.dumps(context, ensure_ascii=False) if context else "não especificado"
    return SYSTEM_PROMPT_TEMPLATE.format(files=files_text, context=context_text)


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.5
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    if confidence != confidence:  # NaN
        return 0.5
    return min(max(confidence, 0.0), 1.0)


def coerce_analysis(raw: Any) -> AnalysisResult:
    """Turn whatever the LLM produced into a valid AnalysisResult.

    Unknown action types become general_chat; unusable fields fall back to safe
    defaults instead of failing.
    """
    if not isinstance(raw, dict):
        return AnalysisResult.fallback()

    coerced = False
    try:
        action_type = KAIActionType(raw.get("actionType"))
    except ValueError:
        action_type = KAIActionType.GENERAL_CHAT
        coerced = True

    raw_params = raw.get("extractedParams")
    if not isinstance(raw_params, dict):
        raw_params = {}
    params = ActionParams.model_validate(
        {k: v.strip() for k, v in raw_params.items() if isinstance(v, str) and v.strip()}
    )

    confirm = raw.get("requiresConfirmation")
    if coerced or not isinstance(confirm, bool):
        confirm = requires_confirmation(action_type)

    return AnalysisResult(
        action_type=action_type,
        confidence=_coerce_confidence(raw.get("confidence")),
        extracted_params=params,
        requires_confirmation=confirm,
    )


class IntentionAnalyzer:
    """Classifies a message into one of the kAI action types via the LLM gateway."""

    def __init__(self, llm_client: Optional[LLMGatewayClient] = None):
        self.llm_client = llm_client or LLMGatewayClient(settings.llm_gateway)

    async def analyze(
        self,
        message: str,
        files: Optional[List[FileDescriptor]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> AnalysisResult:
        """
        Analyze the intention behind a chat message.

        Args:
            message: Free-text user message
            files: Optional attached file metadata
            context: Optional caller context

        Returns:
            Analysis result whose action type is always a member of KAIActionType

        Raises:
            ValueError: If the message is missing
            UpstreamRateLimitError: If the gateway rate limits the call
            UpstreamPaymentRequiredError: If the gateway requires payment
            ConfigurationError: If the gateway is not configured
        """
        if not message or not isinstance(message, str):
            raise ValueError("Message is required")

        logger.info(f"Analyzing intention for message: {message[:100]}")
        messages = [
            {"role": "system", "content": build_system_prompt(files, context)},
            {"role": "user", "content": message},
        ]

        try:
            content = await self.llm_client.complete(messages=messages)
        except (UpstreamRateLimitError, UpstreamPaymentRequiredError, ConfigurationError) as e:
            metrics_collector.increment_counter("intention.upstream_error")
            logger.warning(f"Intention analysis unavailable: {str(e)}")
            raise
        except LLMGatewayError as e:
            logger.error(f"Intention analysis failed, using fallback: {str(e)}")
            metrics_collector.increment_counter("intention.fallback")
            return AnalysisResult.fallback()

        try:
            raw = self.llm_client.extract_json(content)
        except ValueError:
            logger.error(f"Failed to parse LLM response: {content[:500]}")
            metrics_collector.increment_counter("intention.fallback")
            return AnalysisResult.fallback()

        result = coerce_analysis(raw)
        logger.info(
            f"Detected intention: {result.action_type.value} (confidence={result.confidence})"
        )
        metrics_collector.increment_counter(f"intention.action.{result.action_type.value}")
        return result
