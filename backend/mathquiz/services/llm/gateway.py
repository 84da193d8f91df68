from typing import Any, Dict

import httpx

from .base import GradingUnavailableError, StepGradingClient


class GatewayGradingClient(StepGradingClient):
    """Forwards grading requests to a hosted grading function.

    The gateway owns the examiner prompt and model credentials and answers
    with the grading JSON directly.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = (url or "").strip()
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def grade(self, request: Dict[str, Any]) -> Any:
        if not self.url:
            raise GradingUnavailableError("Grading gateway URL is not configured.")
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=request, headers=headers)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError:
            return response.text
