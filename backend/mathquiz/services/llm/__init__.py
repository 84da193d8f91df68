from .base import GradingUnavailableError, StepGradingClient
from .gateway import GatewayGradingClient
from .mock import MockGradingClient
from .real import RealGradingClient

__all__ = [
    "GatewayGradingClient",
    "GradingUnavailableError",
    "MockGradingClient",
    "RealGradingClient",
    "StepGradingClient",
]
