"""Rule-based routing of chat messages to a pipeline and agent family.

This is the fast path of the kAI assistant: no I/O, no randomness. The first
matching family wins (metrics > content > planning > general) and a CSV
attachment overrides everything. Confidence is a fixed value per branch, not a
score computed from match strength.
"""

import logging
from typing import Iterable, Optional, Sequence

from shared.models.routing import ExtractedParams, Pipeline, RouteAgent, RoutingDecision
from shared.utils.metrics import metrics_collector
from kai_router import patterns

logger = logging.getLogger(__name__)

METRICS_CONFIDENCE = 0.9
CONTENT_CONFIDENCE = 0.85
PLANNING_CONFIDENCE = 0.85
GENERAL_CONFIDENCE = 0.7
CSV_CONFIDENCE = 0.95
ERROR_CONFIDENCE = 0.5


def _matches_any(compiled: Iterable, text: str) -> bool:
    return any(p.search(text) for p in compiled)


def has_csv_file(file_types: Optional[Sequence[str]]) -> bool:
    """True when any attached file is a CSV (by MIME type or name)."""
    return any(t == "text/csv" or t.lower().endswith(".csv") for t in (file_types or []))


def fallback_decision() -> RoutingDecision:
    """Decision returned when routing itself fails."""
    return RoutingDecision(
        pipeline=Pipeline.FREE_CHAT,
        agent=RouteAgent.GENERAL,
        confidence=ERROR_CONFIDENCE,
        reason="Routing error",
    )


class PatternClassifier:
    """Maps a message (plus optional file metadata) to a RoutingDecision."""

    def classify(
        self,
        message: str,
        has_files: bool = False,
        file_types: Optional[Sequence[str]] = None
    ) -> RoutingDecision:
        """
        Classify a chat message.

        Args:
            message: Free-text user message
            has_files: Whether files are attached
            file_types: MIME types or file names of the attachments

        Returns:
            Routing decision; never raises
        """
        try:
            if has_files and has_csv_file(file_types):
                decision = RoutingDecision(
                    pipeline=Pipeline.METRICS_ANALYSIS,
                    agent=RouteAgent.METRICS,
                    confidence=CSV_CONFIDENCE,
                    reason="CSV upload detected - metrics import",
                    extracted_params=ExtractedParams(action="import"),
                )
            else:
                decision = self._classify_text(message.lower())
        except Exception as e:
            logger.error(f"Error routing message: {str(e)}")
            metrics_collector.increment_counter("routing.error")
            return fallback_decision()

        logger.info(
            f"Routing decision: pipeline={decision.pipeline.value} "
            f"agent={decision.agent.value} confidence={decision.confidence}"
        )
        metrics_collector.increment_counter(f"routing.pipeline.{decision.pipeline.value}")
        return decision

    def _classify_text(self, text: str) -> RoutingDecision:
        if _matches_any(patterns.METRICS_PATTERNS, text):
            return RoutingDecision(
                pipeline=Pipeline.METRICS_ANALYSIS,
                agent=RouteAgent.METRICS,
                confidence=METRICS_CONFIDENCE,
                reason="Metrics or performance question detected",
                extracted_params=ExtractedParams(
                    platform=self._metrics_platform(text),
                    period=self._period(text),
                ),
            )

        if _matches_any(patterns.CONTENT_PATTERNS, text):
            content_format, content_type = self._content_format(text)
            return RoutingDecision(
                pipeline=Pipeline.MULTI_AGENT_CONTENT,
                agent=RouteAgent.CONTENT,
                confidence=CONTENT_CONFIDENCE,
                reason="Content creation request detected",
                extracted_params=ExtractedParams(
                    format=content_format,
                    content_type=content_type,
                    platform=self._content_platform(text),
                ),
            )

        if _matches_any(patterns.PLANNING_PATTERNS, text):
            quantity_match = patterns.QUANTITY_PATTERN.search(text)
            return RoutingDecision(
                pipeline=Pipeline.FREE_CHAT,
                agent=RouteAgent.PLANNING,
                confidence=PLANNING_CONFIDENCE,
                reason="Planning or scheduling request detected",
                extracted_params=ExtractedParams(
                    quantity=int(quantity_match.group(1)) if quantity_match else None,
                    action=self._planning_action(text),
                ),
            )

        return RoutingDecision(
            pipeline=Pipeline.FREE_CHAT,
            agent=RouteAgent.GENERAL,
            confidence=GENERAL_CONFIDENCE,
            reason="General conversation or unspecific question",
        )

    @staticmethod
    def _period(text: str) -> Optional[str]:
        month = patterns.MONTH_PATTERN.search(text)
        if month:
            return month.group(1)
        if "último mês" in text or "mês passado" in text:
            return "último mês"
        if "últimos 7 dias" in text or "última semana" in text:
            return "última semana"
        return None

    @staticmethod
    def _metrics_platform(text: str) -> Optional[str]:
        for platform in ("instagram", "youtube", "newsletter"):
            if platform in text:
                return platform
        return None

    @staticmethod
    def _content_platform(text: str) -> Optional[str]:
        if "instagram" in text:
            return "instagram"
        if patterns.TWITTER_PATTERN.search(text):
            return "twitter"
        if "linkedin" in text:
            return "linkedin"
        return None

    @staticmethod
    def _content_format(text: str):
        for content_format, content_type, pattern in patterns.CONTENT_FORMATS:
            if pattern.search(text):
                return content_format, content_type
        return None, None

    @staticmethod
    def _planning_action(text: str) -> str:
        if "agendar" in text:
            return "schedule"
        if "ideia" in text or "sugest" in text:
            return "suggest"
        return "create"


# Global classifier instance
pattern_classifier = PatternClassifier()
