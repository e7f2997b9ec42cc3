"""Client for the text-completion model used for narratives and scoring."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from visioninsights.backends import find_api_key
from visioninsights.config import DEFAULT_COMPLETION_URL, DEFAULT_TIMEOUT_SECONDS
from visioninsights.exceptions import CompletionError, CompletionHTTPError, CompletionResponseError, ConfigError


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters sent with a completion request."""

    temperature: float = 0.2
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 4096

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


def extract_candidate_text(response: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` of a completion response.

    Raises:
        CompletionResponseError: If any step of the path is missing or mistyped.
    """
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise CompletionResponseError(f"Invalid response structure: {e!r}") from e
    if not isinstance(text, str):
        raise CompletionResponseError(f"Candidate text is not a string: {type(text).__name__}")
    return text


class TextCompletionClient:
    """Async client for a Gemini-style ``generateContent`` endpoint.

    The client only holds endpoint configuration and can be shared freely.
    ``complete`` opens a short-lived session per call; use ``session()``
    directly to send several prompts over one connection pool.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_COMPLETION_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key or not api_key.strip():
            raise ConfigError("Text completion api_key must not be blank")
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(
        cls,
        api_key: str | None = None,
        api_url: str = DEFAULT_COMPLETION_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "TextCompletionClient | None":
        """Create a client if a key is available, otherwise return None.

        A missing key means no narrative engine is configured.
        """
        key = find_api_key("gemini", api_key)
        if key is None:
            return None
        return cls(api_key=key, api_url=api_url, timeout=timeout, transport=transport)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[CompletionSession]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            headers={"x-goog-api-key": self.api_key},
        ) as http:
            yield CompletionSession(self.api_url, http)

    async def complete(self, prompt: str, generation_config: GenerationConfig) -> str:
        """Submit one prompt over a fresh session; see ``CompletionSession.complete``."""
        async with self.session() as session:
            return await session.complete(prompt, generation_config)


class CompletionSession:
    """One open connection pool to the completion endpoint."""

    def __init__(self, api_url: str, http: httpx.AsyncClient):
        self.api_url = api_url
        self._http = http

    async def complete(self, prompt: str, generation_config: GenerationConfig) -> str:
        """Submit a single-turn prompt and return the first candidate's text.

        Raises:
            CompletionHTTPError: On a non-2xx response.
            CompletionResponseError: If the body lacks the candidate text.
            CompletionError: On transport failures.
        """
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config.to_dict(),
        }

        try:
            response = await self._http.post(self.api_url, json=body)
        except httpx.HTTPError as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        if not response.is_success:
            raise CompletionHTTPError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionResponseError(f"Response is not valid JSON: {e}") from e

        return extract_candidate_text(data)
