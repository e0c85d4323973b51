"""
GeminiClient — Async wrapper around Google Generative AI SDK.

Supports two runtime modes (set via AI_MOCK_MODE env var):
  - MOCK mode (default): returns deterministic canned responses.
    Use for tests and local dev without API keys.
  - REAL mode: makes actual Gemini API calls.
    Requires GEMINI_API_KEY to be set.

Callers pick a canned answer for mock mode through the response_key
parameter; add new keys to _MOCK_RESPONSES as features need them.
"""

import logging
import os
from enum import Enum
from typing import Any

# Python 3.14 + protobuf native extension can fail when importing Gemini deps.
os.environ.setdefault("PROTOCOL_BUFFERS_PYTHON_IMPLEMENTATION", "python")

import google.generativeai as genai

from green_epidemic.core.config import settings

logger = logging.getLogger(__name__)


class GeminiModel(str, Enum):
    PRO = "gemini-2.5-pro"
    FLASH = "gemini-2.5-flash"


_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] This is a placeholder Gemini response. "
        "Set AI_MOCK_MODE=false and provide GEMINI_API_KEY for real responses."
    ),
    "situational_analysis": (
        '{"title": "[MOCK] Environmental health situation overview", '
        '"summary": "Air quality readings and approved health reports were summarised '
        'without a live model. No real analysis was performed in mock mode.", '
        '"analysis": "PM2.5 and AQI averages were computed from the stored readings in the '
        'requested window. Approved reports from the last seven days were grouped by type '
        'and severity. Review the raw data manually before acting on this summary.", '
        '"recommendations": "1. Keep monitoring PM2.5 levels in affected provinces. '
        '2. Review pending reports in the moderation queue. '
        '3. Consult environmental health specialists for a full assessment.", '
        '"severity": "MEDIUM", "confidence": 0.6}'
    ),
    "health_chat": (
        '{"response": "[MOCK] Thank you for describing your symptoms. Rest, stay hydrated '
        'and avoid outdoor activity when PM2.5 levels are high. If symptoms worsen, '
        'contact a doctor.", '
        '"symptoms": ["cough"], "risk_level": "LOW", "recommendation": "SELF_CARE", '
        '"should_consult_doctor": false, "needs_more_info": true, '
        '"missing_info": ["symptom duration", "age"]}'
    ),
}


class GeminiClient:
    """
    Central Gemini interface for the whole API.

    Don't instantiate per-request; use the module-level `gemini_client`
    singleton.
    """

    def __init__(self) -> None:
        self.mock_mode = settings.ai_mock_mode

        if not self.mock_mode:
            if not settings.gemini_api_key:
                logger.warning(
                    "GEMINI_API_KEY not set — falling back to mock mode. "
                    "Set AI_MOCK_MODE=true to silence this warning."
                )
                self.mock_mode = True
            else:
                genai.configure(api_key=settings.gemini_api_key)
                self._genai = genai

        if self.mock_mode:
            logger.info("GeminiClient initialised in MOCK mode")
        else:
            logger.info("GeminiClient initialised in REAL mode")

    async def generate(
        self,
        prompt: str,
        model: GeminiModel = GeminiModel.PRO,
        response_key: str = "default",
        **generation_kwargs: Any,
    ) -> str:
        """
        Generate text from a Gemini model.

        Args:
            prompt:             The full prompt string.
            model:              Which Gemini model to use.
            response_key:       Mock response key (ignored in real mode).
            **generation_kwargs: Passed through to GenerativeModel.generate_content_async().

        Returns:
            Generated text string.

        Raises:
            Exception: Propagates Gemini SDK errors in real mode.
        """
        if self.mock_mode:
            return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

        try:
            gemini_model = self._genai.GenerativeModel(model.value)
            response = await gemini_model.generate_content_async(prompt, **generation_kwargs)
            return response.text
        except Exception as exc:
            logger.error("Gemini API error (model=%s): %s", model.value, exc)
            raise

    async def generate_with_flash(self, prompt: str, response_key: str = "default") -> str:
        """Low-latency call used by the interactive health chat."""
        return await self.generate(prompt, model=GeminiModel.FLASH, response_key=response_key)

    async def generate_with_pro(self, prompt: str, response_key: str = "default") -> str:
        """Higher-quality call used for situational analyses."""
        return await self.generate(prompt, model=GeminiModel.PRO, response_key=response_key)


# Module-level singleton — import and use this everywhere
gemini_client = GeminiClient()
