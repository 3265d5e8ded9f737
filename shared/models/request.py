"""Request and response models for the HTTP surface."""

from pydantic import Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from shared.models.base import WireModel
from shared.models.intention import FileDescriptor
from shared.models.orchestration import OrchestratorDecision, utcnow


class RouterRequest(WireModel):
    """Request body of the kai-router endpoint."""

    message: str = Field(..., description="Free-text chat message")
    client_id: Optional[str] = Field(default=None, description="Selected client")
    has_files: Optional[bool] = Field(default=False, description="Whether files are attached")
    file_types: Optional[List[str]] = Field(default=None, description="MIME types or names of attached files")


class IntentionRequest(WireModel):
    """Request body of the analyze-kai-intention and action detection endpoints."""

    message: Optional[Any] = Field(default=None, description="Free-text chat message")
    files: Optional[List[FileDescriptor]] = Field(default=None, description="Attached file metadata")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Caller context (client, page)")


class ClientContext(WireModel):
    """Client profile forwarded to the remote agents."""

    name: str
    description: Optional[str] = None
    identity_guide: Optional[str] = None


class OrchestrateRequest(WireModel):
    """Request body of the orchestrator analysis endpoint."""

    user_message: str = Field(..., description="User request")
    available_data: Dict[str, Any] = Field(default_factory=dict, description="Client data available to agents")
    client_id: Optional[str] = Field(default=None, description="Client identifier")
    client_context: Optional[ClientContext] = Field(default=None, description="Client profile")
    user_id: Optional[str] = Field(default=None, description="Requesting user")


class RunRequest(WireModel):
    """Request body that starts an orchestration run."""

    plan: OrchestratorDecision = Field(..., description="Plan to execute")
    user_message: str = Field(..., description="User request")
    additional_data: Dict[str, Any] = Field(default_factory=dict, description="Extra data for the agents")
    client_id: Optional[str] = Field(default=None, description="Client identifier")
    client_context: Optional[ClientContext] = Field(default=None, description="Client profile")
    user_id: Optional[str] = Field(default=None, description="Requesting user")


class ErrorResponse(WireModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(default=None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(
        default_factory=dict,
        description="Additional error details"
    )
    timestamp: datetime = Field(default_factory=utcnow, description="Error timestamp")
