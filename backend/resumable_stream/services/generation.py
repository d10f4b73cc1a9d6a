"""
generation.py - Upstream text generation sources.

A source is anything that turns a prompt into an async sequence of text
increments. Failures propagate to the caller untouched.
"""

import logging
from collections.abc import AsyncIterator
from typing import Protocol

import google.generativeai as genai  # type: ignore

from resumable_stream.config import settings

logger = logging.getLogger(__name__)


class GenerationSource(Protocol):
    def stream(self, prompt: str) -> AsyncIterator[str]: ...


class GeminiGenerationSource:
    """Streams increments from a Gemini model."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        # Use centralized settings for API key
        api_key = api_key or settings.GEMINI_API_KEY

        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY not found in settings. Please set it in .env file."
            )

        genai.configure(api_key=api_key)
        self.model_name = model or settings.GEMINI_MODEL
        self.model = genai.GenerativeModel(self.model_name)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        response = await self.model.generate_content_async(prompt, stream=True)
        async for chunk in response:
            # Safety-blocked or empty candidates carry no parts
            if not chunk.parts:
                continue
            if chunk.text:
                yield chunk.text
