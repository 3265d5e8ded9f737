"""Pending action models for the confirmation gate."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from shared.models.base import WireModel
from shared.models.intention import ActionParams, KAIActionType
from shared.models.orchestration import utcnow


class KAIActionStatus(str, Enum):
    """Status of an action moving through detection, preview and commit."""

    IDLE = "idle"
    DETECTING = "detecting"
    ANALYZING = "analyzing"
    PREVIEWING = "previewing"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


class ActionPreview(WireModel):
    """What the user is shown before confirming."""

    title: str
    description: str
    data: Optional[Dict[str, Any]] = None


class ActionFile(WireModel):
    """File attached to a pending action."""

    id: str
    name: str
    type: str = ""
    size: int = 0


class PendingAction(WireModel):
    """Side-effecting action awaiting explicit confirmation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: KAIActionType
    status: KAIActionStatus = KAIActionStatus.CONFIRMING
    params: ActionParams = Field(default_factory=ActionParams)
    preview: Optional[ActionPreview] = None
    files: List[ActionFile] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class ActionOutcome(WireModel):
    """Result of committing a confirmed action."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
