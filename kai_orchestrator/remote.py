"""HTTP client for the serverless orchestrator and agent functions."""

import logging
from typing import Any, Dict, Optional

import httpx

from shared.config.settings import OrchestratorSettings
from shared.utils.exceptions import RemoteFunctionError

logger = logging.getLogger(__name__)


class RemoteFunctionClient:
    """Invokes named remote functions with a JSON body."""

    def __init__(
        self,
        settings: OrchestratorSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the remote function client.

        Args:
            settings: Orchestrator settings (base URL, key, timeout)
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.functions_api_key:
            headers["Authorization"] = f"Bearer {self.settings.functions_api_key}"
        return headers

    async def invoke(self, function_name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke a remote function.

        Args:
            function_name: Function name appended to the functions base URL
            body: JSON-serializable request body

        Returns:
            Decoded JSON object returned by the function

        Raises:
            RemoteFunctionError: On transport errors, non-2xx responses or
                a body that is not a JSON object
        """
        url = f"{self.settings.functions_base_url.rstrip('/')}/{function_name}"
        logger.debug(f"Invoking remote function {function_name}")

        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self._transport) as client:
                response = await client.post(url, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error invoking {function_name}: {str(e)}")
            raise RemoteFunctionError(
                f"Failed to invoke {function_name}: {str(e)}", function_name
            ) from e

        if response.is_error:
            detail = response.text[:500]
            try:
                payload = response.json()
                if isinstance(payload, dict) and payload.get("error"):
                    detail = str(payload["error"])
            except ValueError:
                pass
            logger.error(f"Remote function {function_name} returned {response.status_code}: {detail}")
            raise RemoteFunctionError(
                f"{function_name} failed: {detail}", function_name, status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteFunctionError(f"{function_name} returned invalid JSON", function_name) from e
        if not isinstance(data, dict):
            raise RemoteFunctionError(f"{function_name} returned a non-object response", function_name)
        return data
