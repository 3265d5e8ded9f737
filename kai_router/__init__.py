"""kAI message routing.

Rule-based pipeline routing (fast path), LLM-backed intention analysis and
pattern-first action detection for the kAI assistant.
"""

from kai_router.classifier import PatternClassifier, pattern_classifier
from kai_router.intention import IntentionAnalyzer
from kai_router.action_detector import ActionDetector, detect_from_patterns

__all__ = [
    "PatternClassifier",
    "pattern_classifier",
    "IntentionAnalyzer",
    "ActionDetector",
    "detect_from_patterns",
]
