"""Pattern tables for the rule-based router and the action detector.

Tables are immutable and compiled once at import. Messages are Brazilian
Portuguese; every pattern is matched case-insensitively against the lowercased
message.
"""

import re
from types import MappingProxyType
from typing import Mapping, Tuple

from shared.models.intention import KAIActionType


def _compile(*patterns: str) -> Tuple["re.Pattern[str]", ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# --- kai-router families (checked in this order) ---

METRICS_PATTERNS = _compile(
    r"métricas?",
    r"seguidores?",
    r"engajamento",
    r"performance",
    r"desempenho",
    r"curtidas?|likes?",
    r"comentários?",
    r"alcance",
    r"impressões?",
    r"crescimento",
    r"views?|visualizações?",
    r"como est[áa]",
    r"quantos?",
    r"resultado",
    r"estatísticas?",
    r"análise de performance",
)

CONTENT_PATTERNS = _compile(
    r"criar?\s+(um\s+)?(post|conteúdo|carrossel|reels?|stories?|thread|newsletter)",
    r"escrever?\s+(um\s+)?(post|texto|legenda|caption|artigo)",
    r"gerar?\s+(um\s+)?(conteúdo|post|texto)",
    r"fazer?\s+(um\s+)?(post|conteúdo)",
    r"me\s+ajuda?\s+(a\s+)?(criar|escrever|fazer)",
    r"preciso\s+(de\s+)?(um\s+)?(post|conteúdo|texto)",
)

PLANNING_PATTERNS = _compile(
    r"criar?\s+(um\s+)?card\s+(no\s+)?planejamento",
    r"adicionar?\s+(ao\s+)?planejamento",
    r"agendar?\s+(um\s+)?(post|conteúdo|publicação)",
    r"organizar?\s+(o\s+)?calendário",
    r"próxim[ao]s?\s+\d+",
    r"ideias?\s+(de\s+)?conteúdo",
    r"sugest[ãõ]es?\s+(de\s+)?posts?",
    r"planejar?\s+(o\s+)?mês",
    r"criar?\s+\d+\s+(posts?|conteúdos?|ideias?)",
)

MONTH_PATTERN = re.compile(
    r"(janeiro|fevereiro|março|abril|maio|junho|julho|agosto|setembro|outubro|novembro|dezembro)"
)

QUANTITY_PATTERN = re.compile(r"(\d+)\s*(posts?|conteúdos?|ideias?|cards?)")

# (format, contentType, pattern) - first match wins
CONTENT_FORMATS = (
    ("newsletter", "newsletter", re.compile(r"newsletter", re.IGNORECASE)),
    ("carousel", "carousel", re.compile(r"carrossel|carousel", re.IGNORECASE)),
    ("reels", "short_video", re.compile(r"reels?", re.IGNORECASE)),
    ("stories", "stories", re.compile(r"stories?|story", re.IGNORECASE)),
    ("thread", "thread", re.compile(r"thread", re.IGNORECASE)),
    ("post", "static_post", re.compile(r"post|publicação", re.IGNORECASE)),
)

TWITTER_PATTERN = re.compile(r"twitter|\bx\b")


# --- action detector tables (declaration order matters) ---

ACTION_PATTERNS: Mapping[KAIActionType, Tuple["re.Pattern[str]", ...]] = MappingProxyType({
    KAIActionType.CREATE_CONTENT: _compile(
        r"criar?\s+(um\s+)?(post|conteúdo|carrossel|reels?|stories?|thread)",
        r"escrever?\s+(um\s+)?(post|texto|legenda|caption)",
        r"gerar?\s+(um\s+)?(conteúdo|post)",
    ),
    KAIActionType.ASK_ABOUT_METRICS: _compile(
        r"como\s+est[áa]\s+(o\s+)?(desempenho|performance|engajamento)",
        r"quais?\s+(são\s+)?(as\s+)?métricas",
        r"análise\s+de\s+(performance|desempenho|métricas)",
        r"quantos?\s+(seguidores?|likes?|comentários?|views?)",
    ),
    KAIActionType.UPLOAD_METRICS: _compile(
        r"importar?\s+(métricas?|dados?|csv)",
        r"upload\s+(de\s+)?(métricas?|csv)",
        r"carregar?\s+(métricas?|relatório)",
    ),
    KAIActionType.CREATE_PLANNING_CARD: _compile(
        r"criar?\s+(um\s+)?card\s+(no\s+)?planejamento",
        r"adicionar?\s+(ao\s+)?planejamento",
        r"agendar?\s+(um\s+)?(post|conteúdo)",
    ),
    KAIActionType.UPLOAD_TO_LIBRARY: _compile(
        r"adicionar?\s+(à|a)\s+biblioteca\s+(de\s+)?conteúdo",
        r"salvar?\s+(na|em)\s+biblioteca",
    ),
    KAIActionType.UPLOAD_TO_REFERENCES: _compile(
        r"adicionar?\s+(às?|a)\s+referências?",
        r"salvar?\s+(como\s+)?referência",
        r"guardar?\s+(essa?\s+)?(url|link|referência)",
    ),
    KAIActionType.ANALYZE_URL: _compile(
        r"analisar?\s+(essa?|esta?|a)?\s*(url|link|página)",
        r"extrair?\s+(conteúdo|informações?)\s+(d[ea]|dessa?)",
    ),
    KAIActionType.GENERAL_CHAT: (),
})

URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)

CLIENT_NAME_PATTERN = re.compile(r"(?:para|do|da|cliente|client)\s+[\"']?([^\"'\n,]+)[\"']?", re.IGNORECASE)

ACTION_FORMAT_PATTERNS = (
    ("post", re.compile(r"\b(post|publicação)\b", re.IGNORECASE)),
    ("carrossel", re.compile(r"\b(carrossel|carousel)\b", re.IGNORECASE)),
    ("reels", re.compile(r"\b(reels?|vídeo curto)\b", re.IGNORECASE)),
    ("stories", re.compile(r"\b(stories?|story)\b", re.IGNORECASE)),
    ("thread", re.compile(r"\b(thread)\b", re.IGNORECASE)),
)

DATE_PATTERNS = _compile(
    r"(?:para|em|dia)\s+(\d{1,2}/\d{1,2}(?:/\d{2,4})?)",
    r"(?:para|em)\s+(hoje|amanhã|segunda|terça|quarta|quinta|sexta|sábado|domingo)",
)

ASSIGNEE_PATTERN = re.compile(r"(?:responsável|atribuir|para)\s+@?([A-Za-zÀ-ú]+)", re.IGNORECASE)
