"""Shared Gemini client pool with thinking-budget support."""

from __future__ import annotations

import logging
import os
from typing import Any

from google import genai
from google.genai import types

from .config import get_config

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*."""
        key = api_key or get_config().gemini_api_key or os.getenv("GEMINI_API_KEY", "")
        if not key:
            raise ValueError("No Gemini API key — set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    def build_config(
        cls,
        *,
        response_schema: dict | None = None,
        thinking_budget: int | None = None,
        temperature: float | None = None,
    ) -> types.GenerateContentConfig:
        """Build a GenerateContentConfig from explicit values and config defaults."""
        cfg = get_config()
        budget = cfg.thinking_budget if thinking_budget is None else thinking_budget
        config = types.GenerateContentConfig(
            thinking_config=types.ThinkingConfig(thinking_budget=budget),
        )
        resolved_temperature = temperature if temperature is not None else cfg.default_temperature
        if resolved_temperature is not None:
            config.temperature = resolved_temperature
        if response_schema:
            config.response_mime_type = "application/json"
            config.response_json_schema = response_schema
        return config

    @classmethod
    async def generate(
        cls,
        contents: Any,
        *,
        model: str | None = None,
        response_schema: dict | None = None,
        thinking_budget: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate text via Gemini with optional structured output.

        Args:
            contents: Prompt contents (text, multimodal parts, or a Content).
            model: Override model ID (defaults to config's default_model).
            response_schema: JSON schema dict to constrain output format.
            thinking_budget: Override thinking budget (0 disables thinking).
            temperature: Override temperature (unset = model default).
            **kwargs: Forwarded to the underlying generate_content call.

        Returns:
            The model's text response with thinking parts stripped.
        """
        resolved_model = model or get_config().default_model
        config = cls.build_config(
            response_schema=response_schema,
            thinking_budget=thinking_budget,
            temperature=temperature,
        )

        client = cls.get()
        response = await client.aio.models.generate_content(
            model=resolved_model,
            contents=contents,
            config=config,
            **kwargs,
        )

        # Only user-visible text, never thought summaries
        parts = response.candidates[0].content.parts if response.candidates else []
        text_parts = [p.text for p in (parts or []) if p.text and not getattr(p, "thought", False)]
        return "".join(text_parts) if text_parts else (response.text or "")

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for client in list(cls._clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async transport close failed", exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Sync transport close failed", exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
