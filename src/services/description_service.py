"""Quest description writer backed by an OpenRouter model via pydantic-ai."""

import logging

from pydantic_ai import Agent
from pydantic_ai.models.openrouter import OpenRouterModel
from pydantic_ai.providers.openrouter import OpenRouterProvider

from src.core.config import constants, settings
from src.core.logging import span


logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "You write short, playful quest descriptions for a family chore game. "
    "Given a chore title, answer with one or two sentences that make the chore sound like an "
    "epic quest for kids. Answer with the description only."
)


class _AgentState:
    """Singleton state for the description agent."""

    instance: Agent[None, str] | None = None


def _create_agent() -> Agent[None, str]:
    api_key = settings.require_credential("openrouter_api_key", "OpenRouter API key")
    model = OpenRouterModel(model_name=settings.model_id, provider=OpenRouterProvider(api_key=api_key))
    return Agent(model=model, instructions=INSTRUCTIONS, retries=0)


def get_agent() -> Agent[None, str]:
    """Get or create the description agent."""
    if _AgentState.instance is None:
        _AgentState.instance = _create_agent()
    return _AgentState.instance


async def generate_task_description(*, title: str) -> str:
    """Write a description for a task title.

    Never raises: returns a fixed fallback when no model is configured and a
    different one when the model call fails.
    """
    with span("description_service.generate_task_description"):
        if not settings.openrouter_api_key:
            logger.info("Description model not configured, using fallback")
            return constants.DESCRIPTION_FALLBACK

        try:
            result = await get_agent().run(f"Chore title: {title}")
        except Exception as e:
            logger.warning("description_generation_failed", extra={"error": str(e), "title": title})
            return constants.DESCRIPTION_ERROR_FALLBACK

        description = (result.output or "").strip()
        return description or constants.DESCRIPTION_FALLBACK
