"""Routing decision models (pattern classifier output)."""

from enum import Enum
from typing import Optional

from pydantic import Field

from shared.models.base import FrozenWireModel


class Pipeline(str, Enum):
    """Pipelines a chat message can be routed to."""

    MULTI_AGENT_CONTENT = "multi_agent_content"
    METRICS_ANALYSIS = "metrics_analysis"
    FREE_CHAT = "free_chat"


class RouteAgent(str, Enum):
    """Agent families picked by the pattern classifier."""

    METRICS = "metrics"
    CONTENT = "content"
    PLANNING = "planning"
    GENERAL = "general"


class ExtractedParams(FrozenWireModel):
    """Best-effort parameters pulled out of the message text."""

    format: Optional[str] = None
    period: Optional[str] = None
    quantity: Optional[int] = None
    platform: Optional[str] = None
    action: Optional[str] = None
    content_type: Optional[str] = None


class RoutingDecision(FrozenWireModel):
    """Routing decision for a single chat message. Never persisted."""

    pipeline: Pipeline
    agent: RouteAgent
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str
    extracted_params: ExtractedParams = Field(default_factory=ExtractedParams)
