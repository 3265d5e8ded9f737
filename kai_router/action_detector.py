"""Action detection: local patterns first, intention analyzer as fallback."""

import logging
from typing import Any, Dict, List, Optional

from shared.models.intention import (
    ActionParams,
    DetectedAction,
    FileDescriptor,
    KAIActionType,
    requires_confirmation,
)
from shared.utils.exceptions import KaiError
from kai_router import patterns
from kai_router.intention import IntentionAnalyzer

logger = logging.getLogger(__name__)

# Pattern results at or above this confidence skip the LLM call.
PATTERN_CONFIDENCE_THRESHOLD = 0.8


def extract_params(message: str) -> ActionParams:
    """Pull client name, format, date, assignee and URL mentions out of a message."""
    values: Dict[str, str] = {}

    client_match = patterns.CLIENT_NAME_PATTERN.search(message)
    if client_match:
        values["client_name"] = client_match.group(1).strip()

    for content_format, pattern in patterns.ACTION_FORMAT_PATTERNS:
        if pattern.search(message):
            values["format"] = content_format
            break

    for pattern in patterns.DATE_PATTERNS:
        date_match = pattern.search(message)
        if date_match:
            values["date"] = date_match.group(1)
            break

    assignee_match = patterns.ASSIGNEE_PATTERN.search(message)
    if assignee_match:
        values["assignee"] = assignee_match.group(1)

    url_match = patterns.URL_PATTERN.search(message)
    if url_match:
        values["url"] = url_match.group(0)

    return ActionParams(**values)


def detect_from_patterns(
    message: str,
    files: Optional[List[FileDescriptor]] = None
) -> DetectedAction:
    """Fast local detection. Never calls out."""
    lower = message.lower()

    if files and any(f.is_csv for f in files):
        return DetectedAction(
            type=KAIActionType.UPLOAD_METRICS,
            confidence=0.9,
            requires_confirmation=True,
        )

    url_match = patterns.URL_PATTERN.search(message)
    if url_match:
        url_params = ActionParams(url=url_match.group(0))
        for action_type in (KAIActionType.UPLOAD_TO_REFERENCES, KAIActionType.UPLOAD_TO_LIBRARY):
            if any(p.search(lower) for p in patterns.ACTION_PATTERNS[action_type]):
                return DetectedAction(
                    type=action_type,
                    confidence=0.85,
                    params=url_params,
                    requires_confirmation=True,
                )
        return DetectedAction(
            type=KAIActionType.ANALYZE_URL,
            confidence=0.7,
            params=url_params,
            requires_confirmation=False,
        )

    for action_type, compiled in patterns.ACTION_PATTERNS.items():
        if any(p.search(lower) for p in compiled):
            return DetectedAction(
                type=action_type,
                confidence=0.8,
                params=extract_params(message),
                requires_confirmation=requires_confirmation(action_type),
            )

    return DetectedAction(type=KAIActionType.GENERAL_CHAT, confidence=1.0)


class ActionDetector:
    """Detects the kAI action behind a message."""

    def __init__(self, analyzer: Optional[IntentionAnalyzer] = None):
        self.analyzer = analyzer or IntentionAnalyzer()

    async def detect(
        self,
        message: str,
        files: Optional[List[FileDescriptor]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> DetectedAction:
        """
        Detect an action, preferring the local patterns when they are confident.

        Args:
            message: Free-text user message
            files: Optional attached file metadata
            context: Optional caller context (client id, current page)

        Returns:
            Detected action; analyzer failures degrade to the pattern result
        """
        pattern_result = detect_from_patterns(message, files)
        if pattern_result.confidence >= PATTERN_CONFIDENCE_THRESHOLD:
            return pattern_result

        try:
            analysis = await self.analyzer.analyze(message, files=files, context=context)
        except (KaiError, ValueError) as e:
            logger.warning(f"AI action detection failed, keeping pattern result: {str(e)}")
            return pattern_result

        if analysis.confidence > pattern_result.confidence:
            return DetectedAction(
                type=analysis.action_type,
                confidence=analysis.confidence,
                params=analysis.extracted_params,
                requires_confirmation=analysis.requires_confirmation,
            )
        return pattern_result
