"""Tests for the quest description writer."""

import pytest
from pydantic_ai.models.test import TestModel as ScriptedModel

from src.core.config import constants, settings
from src.services import description_service


@pytest.fixture
def configured(monkeypatch):
    """Pretend an OpenRouter key is configured."""
    monkeypatch.setattr(settings, "openrouter_api_key", "sk-test")


@pytest.mark.unit
class TestGenerateTaskDescription:
    """Tests for generate_task_description."""

    async def test_fallback_without_credentials(self, monkeypatch):
        """No key means the fixed fallback and no model call."""
        monkeypatch.setattr(settings, "openrouter_api_key", None)

        def fail():
            raise AssertionError("agent must not be created")

        monkeypatch.setattr(description_service, "get_agent", fail)

        assert await description_service.generate_task_description(title="Dishes") == constants.DESCRIPTION_FALLBACK

    async def test_uses_model_output(self, configured, monkeypatch):
        """The model's text is returned trimmed."""
        agent = description_service.Agent(ScriptedModel(custom_output_text="  Slay the dish dragon!  "))
        monkeypatch.setattr(description_service, "get_agent", lambda: agent)

        assert await description_service.generate_task_description(title="Dishes") == "Slay the dish dragon!"

    async def test_error_fallback_when_model_fails(self, configured, monkeypatch):
        """Failures yield the error fallback instead of raising."""

        class BrokenAgent:
            async def run(self, _prompt):
                raise ConnectionError("network down")

        monkeypatch.setattr(description_service, "get_agent", BrokenAgent)

        result = await description_service.generate_task_description(title="Dishes")

        assert result == constants.DESCRIPTION_ERROR_FALLBACK
