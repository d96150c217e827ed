"""
OpenRouter Client
=================

Minimal chat-completion client used by the summarization service.

Environment Variables:
    OPENROUTER_API_KEY: API key (client is unconfigured without it)
    AGENTIC_MEMORY_LLM_MODEL: Model id (default: google/gemini-2.5-flash)
"""

import os
from typing import Dict, Optional

import aiohttp
import structlog

log = structlog.get_logger()


class OpenRouterError(RuntimeError):
    """Non-200 status or malformed payload from the OpenRouter API."""


class OpenRouterClient:
    """
    Async OpenRouter chat-completion client.

    Example:
        client = OpenRouterClient()
        if client.is_configured:
            text = await client.generate_completion("Summarize: ...")
        await client.close()
    """

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
    DEFAULT_MODEL = "google/gemini-2.5-flash"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        self.model = model or os.getenv("AGENTIC_MEMORY_LLM_MODEL", self.DEFAULT_MODEL)
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self._last_usage: Dict[str, int] = {}

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_last_usage(self) -> Dict[str, int]:
        return self._last_usage.copy()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
    ) -> str:
        """
        Generate a completion.

        Args:
            prompt: User prompt content
            system_prompt: Optional system prompt
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate

        Returns:
            Generated completion text

        Raises:
            ValueError: If no API key is configured
            OpenRouterError: If the API request fails
        """
        if not self.api_key:
            raise ValueError("OpenRouter API key not provided")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "agentic-memory",
        }

        session = await self._get_session()
        log.info(f"Generating completion with model: {self.model}")

        async with session.post(
            f"{self.OPENROUTER_BASE_URL}/chat/completions",
            json=payload,
            headers=headers,
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                log.error("OpenRouter API error", status=response.status, body=error_text[:500])
                raise OpenRouterError(f"OpenRouter API error: {response.status} - {error_text}")

            data = await response.json()

        if not data.get("choices"):
            log.error("Invalid OpenRouter response", payload=str(data)[:500])
            raise OpenRouterError("Invalid response from OpenRouter API")

        completion = data["choices"][0]["message"]["content"]
        usage = data.get("usage", {})
        self._last_usage = {
            "total_tokens": usage.get("total_tokens", 0),
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
        }
        log.info(
            f"Generated completion ({len(completion)} chars, "
            f"{self._last_usage['total_tokens']} tokens)"
        )
        return completion
