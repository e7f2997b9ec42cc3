import json
import logging

import pytest

from visioninsights.base.description import FrameImage
from visioninsights.config import clear_config_cache


class RecordedSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recorded_sleep():
    return RecordedSleep()


@pytest.fixture
def make_frames():
    def _make(n: int) -> list[FrameImage]:
        return [FrameImage(index=i, data=f"frame-{i}".encode()) for i in range(n)]

    return _make


@pytest.fixture
def make_payload():
    """Build a vision workflow response with one ``google_gemini`` output."""

    def _make(output: str | dict | None = None, classes: list[str] | None = None) -> dict:
        block: dict = {}
        if isinstance(output, dict):
            block["output"] = "Analysis:\n```json\n" + json.dumps(output, indent=2) + "\n```\n"
        elif output is not None:
            block["output"] = output
        if classes is not None:
            block["classes"] = classes
        return {"outputs": [{"google_gemini": block}]}

    return _make


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep tests independent of real API keys and config files."""
    monkeypatch.delenv("ROBOFLOW_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo handlers installed by setup_logging so they do not leak across tests."""
    logger = logging.getLogger("visioninsights")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
