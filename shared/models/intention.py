"""Intention analysis models (kAI action types and detected actions)."""

from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from shared.models.base import WireModel


class KAIActionType(str, Enum):
    """Closed set of actions the kAI assistant can perform."""

    CREATE_CONTENT = "create_content"
    ASK_ABOUT_METRICS = "ask_about_metrics"
    UPLOAD_METRICS = "upload_metrics"
    CREATE_PLANNING_CARD = "create_planning_card"
    UPLOAD_TO_LIBRARY = "upload_to_library"
    UPLOAD_TO_REFERENCES = "upload_to_references"
    ANALYZE_URL = "analyze_url"
    GENERAL_CHAT = "general_chat"


# Actions with side effects; they go through the confirmation gate.
CONFIRMATION_REQUIRED_ACTIONS = frozenset({
    KAIActionType.CREATE_CONTENT,
    KAIActionType.UPLOAD_METRICS,
    KAIActionType.CREATE_PLANNING_CARD,
    KAIActionType.UPLOAD_TO_LIBRARY,
    KAIActionType.UPLOAD_TO_REFERENCES,
})


def requires_confirmation(action_type: KAIActionType) -> bool:
    """Return True when the action must be confirmed before it is committed."""
    return action_type in CONFIRMATION_REQUIRED_ACTIONS


class ActionParams(WireModel):
    """Parameters extracted for an action. Only explicitly mentioned values are set."""

    client_id: Optional[str] = None
    client_name: Optional[str] = None
    format: Optional[str] = None
    date: Optional[str] = None
    assignee: Optional[str] = None
    url: Optional[str] = None
    platform: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def non_empty(self) -> Dict[str, str]:
        """Return the parameters that carry a value."""
        return {k: v for k, v in self.model_dump().items() if v}


class AnalysisResult(WireModel):
    """Structured output of the intention analyzer."""

    action_type: KAIActionType
    confidence: float = Field(..., ge=0.0, le=1.0)
    extracted_params: ActionParams = Field(default_factory=ActionParams)
    requires_confirmation: bool = False

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        """Safe result used whenever the analysis cannot be trusted."""
        return cls(
            action_type=KAIActionType.GENERAL_CHAT,
            confidence=0.5,
            extracted_params=ActionParams(),
            requires_confirmation=False,
        )


class DetectedAction(WireModel):
    """Action picked by the action detector (patterns first, AI second)."""

    type: KAIActionType
    confidence: float = Field(..., ge=0.0, le=1.0)
    params: ActionParams = Field(default_factory=ActionParams)
    requires_confirmation: bool = False


class FileDescriptor(WireModel):
    """Metadata of an attached file as sent by the chat client."""

    name: str
    type: str = ""
    size: Optional[int] = None

    @property
    def is_csv(self) -> bool:
        return self.type == "text/csv" or self.name.lower().endswith(".csv")
