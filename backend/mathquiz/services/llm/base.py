from typing import Any, Dict, Protocol


class GradingUnavailableError(RuntimeError):
    pass


class StepGradingClient(Protocol):
    async def grade(self, request: Dict[str, Any]) -> Any:
        """Send one grading request and return the raw payload (JSON text or decoded object)."""
        ...
