"""End-to-end video analysis: frames -> vision analysis -> insights -> narrative."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from visioninsights.ai.completion import TextCompletionClient
from visioninsights.ai.diversity import DiversityScorer
from visioninsights.ai.insights import InsightExtractor
from visioninsights.ai.orchestrator import FrameAnalysisOrchestrator, Sleep
from visioninsights.ai.summary import SummaryGenerator
from visioninsights.ai.vision import VisionAnalyzerClient
from visioninsights.base.description import AnalysisReport, DiversityScore, FrameAnalysisResult
from visioninsights.base.video import FFmpegFrameSource, FrameSource
from visioninsights.config import Settings, get_settings
from visioninsights.exceptions import ConfigError

logger = logging.getLogger(__name__)


class VideoAnalysisPipeline:
    """Runs the whole analysis of a video reference.

    The pipeline holds no per-run state, so one instance may serve several
    concurrent runs. Every failure is converted into the returned report, so
    callers never see a raw transport exception.

    Example:
        >>> pipeline = VideoAnalysisPipeline.from_settings(vision_api_url="https://...")
        >>> report = pipeline.run_analysis("https://example.com/clip.mp4")
        >>> scores = pipeline.score_diversity(report.summary_report.summary)
    """

    def __init__(
        self,
        frame_source: FrameSource,
        analyzer: Any | None,
        completion: TextCompletionClient | None = None,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the pipeline.

        Args:
            frame_source: Produces the frames of a video.
            analyzer: Object whose ``session()`` returns an async context manager yielding
                something with an async ``analyze(image_bytes) -> dict`` method, typically a
                VisionAnalyzerClient. Each run opens its own session.
                May be None when only diversity scoring is needed.
            completion: Text completion client for narratives and scoring. None means
                no narrative engine: summaries are the raw insight lines.
            settings: Analysis, vision and completion settings. Defaults to Settings().
            sleep: Coroutine used for batch and retry delays.
        """
        self.settings = settings or Settings()
        self.frame_source = frame_source
        self.analyzer = analyzer
        self.completion = completion
        self.extractor = InsightExtractor(self.settings.vision.output_key)
        self.summary_generator = SummaryGenerator(completion)
        self.diversity_scorer = DiversityScorer(completion)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        vision_api_url: str | None = None,
        vision_api_key: str | None = None,
        completion_api_key: str | None = None,
        with_analyzer: bool = True,
    ) -> "VideoAnalysisPipeline":
        """Build a pipeline from the config file and environment.

        Args:
            settings: Settings to use. If None, loaded from the config file.
            vision_api_url: Overrides ``[vision] api_url``.
            vision_api_key: Vision API key. If None, reads ROBOFLOW_API_KEY.
            completion_api_key: Completion API key. If None, reads GOOGLE_API_KEY;
                when no key is found, no narrative engine is configured.
            with_analyzer: Set to False to build a scoring-only pipeline.

        Raises:
            ConfigError: If the vision endpoint or its key is missing.
        """
        settings = settings or get_settings()

        analyzer = None
        if with_analyzer:
            analyzer = VisionAnalyzerClient(
                api_url=vision_api_url or settings.vision.api_url,
                api_key=vision_api_key,
                timeout=settings.vision.timeout,
            )

        completion = TextCompletionClient.from_env(
            api_key=completion_api_key,
            api_url=settings.completion.api_url,
            timeout=settings.completion.timeout,
        )
        if completion is None:
            logger.info("No text completion key found, summaries will list raw insights")

        return cls(frame_source=FFmpegFrameSource(), analyzer=analyzer, completion=completion, settings=settings)

    async def analyze_video_async(self, video_url: str) -> AnalysisReport:
        logger.info("Starting video analysis for URL: %s", video_url)
        frame_analyses: list[FrameAnalysisResult] = []

        try:
            logger.info("Extracting frames from video...")
            frames = await asyncio.to_thread(self.frame_source.extract_frames, video_url)
            logger.info("Successfully extracted %d frames", len(frames))

            if frames:
                if self.analyzer is None:
                    raise ConfigError("No vision analyzer configured")
                async with self.analyzer.session() as analyzer:
                    orchestrator = FrameAnalysisOrchestrator(analyzer, self.settings.analysis, sleep=self._sleep)
                    frame_analyses = await orchestrator.analyze(frames)
                n_failed = sum(1 for fa in frame_analyses if not fa.ok)
                logger.info("Analyzed %d frames, %d failed", len(frame_analyses), n_failed)

            logger.info("Generating summary report...")
            insights = self.extractor.extract(frame_analyses)
            summary_report = await self.summary_generator.summarize(insights)
            if summary_report.error is None:
                logger.info("Successfully generated summary report")

            return AnalysisReport(
                success=True,
                video_url=video_url,
                total_frames=len(frames),
                frame_analyses=tuple(frame_analyses),
                summary_report=summary_report,
            )
        except Exception as e:
            logger.exception("Error analyzing video")
            partial = frame_analyses if self.settings.analysis.keep_partial_results else []
            return AnalysisReport.failure(video_url, str(e), partial)

    def run_analysis(self, video_url: str) -> AnalysisReport:
        """Analyze a video synchronously; see ``analyze_video_async``."""
        return asyncio.run(self.analyze_video_async(video_url))

    async def score_diversity_async(self, summary: str) -> DiversityScore:
        return await self.diversity_scorer.score(summary)

    def score_diversity(self, summary: str) -> DiversityScore:
        """Score the diversity described by a narrative summary; never raises."""
        return asyncio.run(self.score_diversity_async(summary))
