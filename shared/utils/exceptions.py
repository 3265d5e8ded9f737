"""Custom exceptions for the kAI routing and orchestration service."""

from typing import Optional


class KaiError(Exception):
    """Base exception for kAI service errors."""
    pass


class ConfigurationError(KaiError):
    """Exception raised for configuration errors."""
    pass


class LLMGatewayError(KaiError):
    """Exception raised when the LLM gateway call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimitError(LLMGatewayError):
    """Exception raised when the LLM gateway answers HTTP 429."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429)


class UpstreamPaymentRequiredError(LLMGatewayError):
    """Exception raised when the LLM gateway answers HTTP 402."""

    def __init__(self, message: str = "Payment required"):
        super().__init__(message, status_code=402)


class RemoteFunctionError(KaiError):
    """Exception raised when a remote serverless function call fails."""

    def __init__(self, message: str, function_name: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.function_name = function_name
        self.status_code = status_code


class OrchestrationError(KaiError):
    """Exception raised for orchestration related errors."""
    pass


class PlanExecutionError(OrchestrationError):
    """Exception raised when a plan step fails and the run is aborted."""

    def __init__(self, message: str, run_id: str, step_id: Optional[str] = None):
        super().__init__(message)
        self.run_id = run_id
        self.step_id = step_id


class InvalidStepTransitionError(OrchestrationError):
    """Exception raised when a step status would move backwards."""
    pass


class RunNotFoundError(OrchestrationError):
    """Exception raised when an orchestration run id is unknown."""
    pass


class ConfirmationStateError(KaiError):
    """Exception raised for invalid confirmation gate operations."""
    pass
