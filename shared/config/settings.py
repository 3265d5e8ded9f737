"""Application settings using Pydantic for validation."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class LLMGatewaySettings(BaseSettings):
    """OpenAI-compatible LLM gateway settings (intention analysis)."""

    api_key: Optional[str] = Field(default=None, description="Gateway API key")
    base_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1",
        description="Gateway base URL (chat completions live under /chat/completions)"
    )
    model: str = Field(default="google/gemini-2.5-flash", description="Classification model")
    temperature: float = Field(default=0.1, description="Sampling temperature for classification")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    class Config:
        env_prefix = "LLM_GATEWAY_"
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"


class OrchestratorSettings(BaseSettings):
    """Remote agent functions and plan execution settings."""

    functions_base_url: str = Field(
        default="http://localhost:54321/functions/v1",
        description="Base URL of the serverless functions (orchestrator, execute-agent)"
    )
    functions_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the serverless functions"
    )
    orchestrator_function: str = Field(default="orchestrator", description="Plan builder function name")
    execute_agent_function: str = Field(default="execute-agent", description="Agent step function name")
    timeout: float = Field(default=120.0, description="Request timeout in seconds")
    run_store: str = Field(default="memory", description="Run store backend: memory or file")
    run_store_dir: str = Field(default=".kai_runs", description="Directory for the file run store")

    class Config:
        env_prefix = "ORCHESTRATOR_"
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"


class AppSettings(BaseSettings):
    """Main application settings."""

    app_name: str = Field(default="kai-orchestrator", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    log_config_file: Optional[str] = Field(default=None, description="Optional YAML logging config")

    llm_gateway: LLMGatewaySettings = Field(default_factory=LLMGatewaySettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = AppSettings()
