"""Batched, retried fan-out of frames to the vision analyzer."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Protocol, Sequence, TypeVar

from visioninsights.base.description import FrameAnalysisResult, FrameImage
from visioninsights.base.progress import progress_iter
from visioninsights.config import AnalysisSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class FrameAnalyzer(Protocol):
    async def analyze(self, image_bytes: bytes) -> dict[str, Any]: ...


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive chunks of ``size``; the last may be shorter."""
    if size < 1:
        raise ValueError(f"size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class FrameAnalysisOrchestrator:
    """Analyzes frames in small concurrent batches with per-frame retries.

    Batches run one after another with a pause between them; the frames of a
    batch are analyzed concurrently, so at most ``batch_size`` analyzer calls
    are in flight. A frame whose attempts are all exhausted yields a result
    with ``error`` set instead of raising, so one bad frame never aborts the
    run. Results come back in input order.
    """

    def __init__(
        self,
        analyzer: FrameAnalyzer,
        settings: AnalysisSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            analyzer: Object with an async ``analyze(image_bytes) -> dict`` method.
            settings: Batch size, retry count and delays. Defaults to AnalysisSettings().
            sleep: Coroutine used for every delay, in seconds.
        """
        self.analyzer = analyzer
        self.settings = settings or AnalysisSettings()
        self._sleep = sleep

    async def analyze(self, frames: Sequence[FrameImage]) -> list[FrameAnalysisResult]:
        batch_size = self.settings.batch_size
        batches = chunked(frames, batch_size)
        n_batches = len(batches)
        results: list[FrameAnalysisResult] = []

        for batch_index, batch in progress_iter(enumerate(batches), desc="Analyzing frames", total=n_batches):
            if batch_index > 0:
                await self._sleep(self.settings.batch_delay_ms / 1000)

            logger.info("Processing batch %d/%d with %d frames", batch_index + 1, n_batches, len(batch))

            batch_results = await asyncio.gather(
                *(
                    self._analyze_frame_with_retry(frame, batch_index * batch_size + offset)
                    for offset, frame in enumerate(batch)
                )
            )
            results.extend(batch_results)

            logger.info(
                "Completed batch %d, total frames processed: %d/%d", batch_index + 1, len(results), len(frames)
            )

        return results

    async def _analyze_frame_with_retry(self, frame: FrameImage, frame_index: int) -> FrameAnalysisResult:
        max_retries = self.settings.max_retries
        last_error: Exception | None = None

        for attempt in range(1, max_retries + 1):
            try:
                start = time.monotonic()
                logger.debug("Analyzing frame %d (attempt %d)", frame_index, attempt)
                payload = await self.analyzer.analyze(frame.data)
                logger.debug(
                    "Successfully analyzed frame %d in %d ms (attempt %d)",
                    frame_index,
                    (time.monotonic() - start) * 1000,
                    attempt,
                )
                return FrameAnalysisResult(
                    frame_index=frame_index,
                    frame_time_seconds=frame_index,
                    payload=payload,
                )
            except Exception as e:
                last_error = e
                logger.warning("Error analyzing frame %d (attempt %d): %s", frame_index, attempt, e)

                if attempt < max_retries:
                    delay_ms = self.settings.retry_delay_ms * attempt
                    logger.info("Retrying frame %d in %d ms...", frame_index, delay_ms)
                    await self._sleep(delay_ms / 1000)

        logger.error("All %d attempts failed for frame %d", max_retries, frame_index)
        return FrameAnalysisResult(
            frame_index=frame_index,
            frame_time_seconds=frame_index,
            error=f"Failed to analyze frame {frame_index} after {max_retries} attempts: {last_error}",
        )

