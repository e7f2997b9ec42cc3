from .ai import VideoAnalysisPipeline
from .base import AnalysisReport, DiversityScore, FrameAnalysisResult, FrameImage, SummaryReport
from .exceptions import (
    AnalyzerError,
    CompletionError,
    ConfigError,
    FrameSourceError,
    MissingAPIKeyError,
    VisionInsightsError,
)

__all__ = [
    "VideoAnalysisPipeline",
    "AnalysisReport",
    "DiversityScore",
    "FrameAnalysisResult",
    "FrameImage",
    "SummaryReport",
    # Exceptions
    "VisionInsightsError",
    "ConfigError",
    "MissingAPIKeyError",
    "FrameSourceError",
    "AnalyzerError",
    "CompletionError",
]
