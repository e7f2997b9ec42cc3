"""Client for the per-frame vision analysis workflow."""

from __future__ import annotations

import base64
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from visioninsights.backends import get_api_key
from visioninsights.config import DEFAULT_TIMEOUT_SECONDS
from visioninsights.exceptions import AnalyzerError, AnalyzerHTTPError, AnalyzerResponseError, ConfigError


class VisionAnalyzerClient:
    """Sends frames to a hosted vision workflow and returns its JSON payload.

    The client only holds endpoint configuration. Requests go through a
    session, which owns its own pooled ``httpx.AsyncClient`` and closes it on
    exit, so any number of sessions may be open at once:

        >>> async with VisionAnalyzerClient(api_url=url).session() as analyzer:
        ...     payload = await analyzer.analyze(png_bytes)
    """

    def __init__(
        self,
        api_url: str | None,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the vision analyzer client.

        Args:
            api_url: Workflow endpoint the frames are POSTed to.
            api_key: Workflow API key. If None, reads ROBOFLOW_API_KEY.
            timeout: Connect, read, write and pool timeout in seconds.
            transport: Optional transport override, used by tests.
        """
        if not api_url:
            raise ConfigError("Vision analyzer api_url is not configured")

        self.api_url = api_url
        self.api_key = get_api_key("roboflow", api_key)
        self.timeout = timeout
        self._transport = transport

    @asynccontextmanager
    async def session(self) -> AsyncIterator[VisionSession]:
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as http:
            yield VisionSession(self, http)

    def build_request_body(self, image_bytes: bytes) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "inputs": {
                "image": {
                    "type": "base64",
                    "value": base64.b64encode(image_bytes).decode(),
                }
            },
        }


class VisionSession:
    """One open connection pool to the vision workflow."""

    def __init__(self, client: VisionAnalyzerClient, http: httpx.AsyncClient):
        self.client = client
        self._http = http

    async def analyze(self, image_bytes: bytes) -> dict[str, Any]:
        """Analyze one frame.

        Args:
            image_bytes: Encoded image (PNG).

        Returns:
            The workflow response object.

        Raises:
            AnalyzerHTTPError: On a non-2xx response.
            AnalyzerResponseError: If the body is not a JSON object.
            AnalyzerError: On transport failures.
        """
        try:
            response = await self._http.post(self.client.api_url, json=self.client.build_request_body(image_bytes))
        except httpx.HTTPError as e:
            raise AnalyzerError(f"Vision API request failed: {e}") from e

        if not response.is_success:
            raise AnalyzerHTTPError(response.status_code, response.reason_phrase)

        if not response.content:
            raise AnalyzerResponseError("Empty response body")

        try:
            payload = response.json()
        except ValueError as e:
            raise AnalyzerResponseError(f"Response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise AnalyzerResponseError(f"Expected a JSON object, got {type(payload).__name__}")
        return payload
