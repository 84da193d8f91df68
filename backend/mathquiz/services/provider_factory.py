import logging
from typing import Optional

from mathquiz.core.config import Settings
from mathquiz.services.llm.base import StepGradingClient
from mathquiz.services.llm.gateway import GatewayGradingClient
from mathquiz.services.llm.mock import MockGradingClient
from mathquiz.services.llm.real import RealGradingClient, normalize_base_url

logger = logging.getLogger(__name__)


def build_grading_client(settings: Settings) -> Optional[StepGradingClient]:
    """Pick the step-grading client for the configured provider.

    Missing credentials do not fail startup: the client is left out and
    open-ended questions are scored on their final answers alone.
    """
    provider = (settings.grader_provider or "").strip().lower() or "openai"
    api_key = (settings.grader_api_key or "").strip()

    if provider in {"openai", "deepseek", "openai-compatible", "real"}:
        base_url = normalize_base_url(settings.grader_base_url)
        if not api_key:
            logger.warning(
                "GRADER_PROVIDER=%s but GRADER_API_KEY/OPENAI_API_KEY is missing. Step grading is disabled.",
                provider,
            )
            return None
        if not base_url:
            logger.warning(
                "GRADER_PROVIDER=%s but GRADER_BASE_URL is missing. Step grading is disabled.",
                provider,
            )
            return None
        return RealGradingClient(
            base_url=base_url,
            api_key=api_key,
            model=settings.grader_model,
            timeout=settings.grader_timeout,
            max_tokens=settings.grader_max_tokens,
            temperature=settings.grader_temperature,
        )

    if provider == "gateway":
        url = (settings.grader_gateway_url or "").strip()
        if not url:
            logger.warning("GRADER_PROVIDER=gateway but GRADER_GATEWAY_URL is missing. Step grading is disabled.")
            return None
        return GatewayGradingClient(url=url, api_key=api_key, timeout=settings.grader_timeout)

    if provider in {"mock", "offline"}:
        return MockGradingClient()

    if provider in {"none", "disabled", "off"}:
        return None

    logger.warning("Unknown GRADER_PROVIDER=%s. Step grading is disabled.", provider)
    return None
