import asyncio
import base64
import json

import httpx
import pytest

from visioninsights.ai.completion import GenerationConfig, TextCompletionClient, extract_candidate_text
from visioninsights.ai.vision import VisionAnalyzerClient
from visioninsights.exceptions import (
    AnalyzerError,
    AnalyzerHTTPError,
    AnalyzerResponseError,
    CompletionError,
    CompletionHTTPError,
    CompletionResponseError,
    ConfigError,
    MissingAPIKeyError,
)

VISION_URL = "https://vision.test/workflows/crowd"


def vision_client(handler, api_key="vision-key") -> VisionAnalyzerClient:
    return VisionAnalyzerClient(api_url=VISION_URL, api_key=api_key, transport=httpx.MockTransport(handler))


async def analyze_once(client: VisionAnalyzerClient, data: bytes = b"png-bytes") -> dict:
    async with client.session() as analyzer:
        return await analyzer.analyze(data)


class TestVisionAnalyzerClient:
    def test_posts_base64_frame(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"outputs": []})

        payload = asyncio.run(analyze_once(vision_client(handler), b"\x89PNG"))

        assert payload == {"outputs": []}
        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == VISION_URL
        assert json.loads(request.content) == {
            "api_key": "vision-key",
            "inputs": {"image": {"type": "base64", "value": base64.b64encode(b"\x89PNG").decode()}},
        }

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ROBOFLOW_API_KEY", "env-key")

        client = VisionAnalyzerClient(api_url=VISION_URL)

        assert client.api_key == "env-key"

    def test_missing_api_key(self):
        with pytest.raises(MissingAPIKeyError, match="ROBOFLOW_API_KEY"):
            VisionAnalyzerClient(api_url=VISION_URL)

    def test_missing_url(self):
        with pytest.raises(ConfigError):
            VisionAnalyzerClient(api_url=None, api_key="k")

    def test_http_error(self):
        with pytest.raises(AnalyzerHTTPError) as exc_info:
            asyncio.run(analyze_once(vision_client(lambda request: httpx.Response(503))))

        assert exc_info.value.status_code == 503
        assert exc_info.value.reason == "Service Unavailable"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json=[1, 2]),
        ],
    )
    def test_unusable_body(self, response):
        with pytest.raises(AnalyzerResponseError):
            asyncio.run(analyze_once(vision_client(lambda request: response)))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(AnalyzerError, match="timed out"):
            asyncio.run(analyze_once(vision_client(handler)))

    def test_concurrent_sessions_are_independent(self):
        async def handler(request):
            await asyncio.sleep(0.01)
            return httpx.Response(200, json={"echo": json.loads(request.content)["inputs"]["image"]["value"]})

        client = vision_client(handler)

        async def run_two():
            return await asyncio.gather(analyze_once(client, b"a"), analyze_once(client, b"b"))

        first, second = asyncio.run(run_two())

        assert first == {"echo": base64.b64encode(b"a").decode()}
        assert second == {"echo": base64.b64encode(b"b").decode()}

    def test_session_closes_its_pool(self):
        client = vision_client(lambda request: httpx.Response(200, json={"ok": True}))

        async def use_session():
            async with client.session() as session:
                assert await session.analyze(b"x") == {"ok": True}
            return session

        session = asyncio.run(use_session())

        assert session._http.is_closed
        assert asyncio.run(analyze_once(client)) == {"ok": True}


async def complete_once(client: TextCompletionClient, prompt: str = "hello") -> str:
    return await client.complete(prompt, GenerationConfig())


def completion_client(handler) -> TextCompletionClient:
    return TextCompletionClient(
        api_key="llm-key", api_url="https://llm.test/generate", transport=httpx.MockTransport(handler)
    )


class TestTextCompletionClient:
    def test_returns_first_candidate_text(self):
        body = {"candidates": [{"content": {"parts": [{"text": "first"}, {"text": "second"}]}}, {"content": {}}]}

        client = completion_client(lambda request: httpx.Response(200, json=body))

        assert asyncio.run(complete_once(client)) == "first"

    def test_http_error(self):
        with pytest.raises(CompletionHTTPError) as exc_info:
            asyncio.run(complete_once(completion_client(lambda request: httpx.Response(403))))

        assert exc_info.value.status_code == 403
        assert exc_info.value.reason == "Forbidden"

    def test_invalid_json(self):
        with pytest.raises(CompletionResponseError):
            asyncio.run(complete_once(completion_client(lambda request: httpx.Response(200, text="<html>"))))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CompletionError):
            asyncio.run(complete_once(completion_client(handler)))

    def test_concurrent_completions_share_one_client(self):
        async def handler(request):
            await asyncio.sleep(0.01)
            prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": prompt.upper()}]}}]})

        client = completion_client(handler)

        async def run_two():
            return await asyncio.gather(complete_once(client, "one"), complete_once(client, "two"))

        assert asyncio.run(run_two()) == ["ONE", "TWO"]

    def test_session_sends_key_header(self):
        seen = []

        def handler(request):
            seen.append(request.headers["x-goog-api-key"])
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

        async def two_prompts():
            async with completion_client(handler).session() as session:
                return [await session.complete(p, GenerationConfig()) for p in ("a", "b")]

        assert asyncio.run(two_prompts()) == ["ok", "ok"]
        assert seen == ["llm-key", "llm-key"]

    def test_blank_key_rejected(self):
        with pytest.raises(ConfigError):
            TextCompletionClient(api_key="  ")

    def test_from_env_without_key(self):
        assert TextCompletionClient.from_env() is None

    def test_from_env_with_key(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "google-key")

        client = TextCompletionClient.from_env(api_url="https://llm.test/generate")

        assert client is not None
        assert client.api_key == "google-key"
        assert client.api_url == "https://llm.test/generate"

    def test_generation_config_wire_names(self):
        config = GenerationConfig(temperature=0.1, top_k=10, top_p=0.5, max_output_tokens=64)

        assert config.to_dict() == {"temperature": 0.1, "topK": 10, "topP": 0.5, "maxOutputTokens": 64}


class TestExtractCandidateText:
    def test_valid(self):
        assert extract_candidate_text({"candidates": [{"content": {"parts": [{"text": "t"}]}}]}) == "t"

    @pytest.mark.parametrize("response", [None, [], {"candidates": None}, {"candidates": [{"content": "x"}]}])
    def test_invalid(self, response):
        with pytest.raises(CompletionResponseError):
            extract_candidate_text(response)
