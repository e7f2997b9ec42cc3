from .description import (
    NO_FRAMES_SUMMARY,
    AnalysisReport,
    BehavioralDiversity,
    CrowdDiversity,
    DiversityScore,
    EnvironmentalDiversity,
    FrameAnalysisResult,
    FrameImage,
    SummaryReport,
)
from .video import FFmpegFrameSource, FrameSource, VideoMetadata

__all__ = [
    "NO_FRAMES_SUMMARY",
    "AnalysisReport",
    "BehavioralDiversity",
    "CrowdDiversity",
    "DiversityScore",
    "EnvironmentalDiversity",
    "FrameAnalysisResult",
    "FrameImage",
    "SummaryReport",
    # Frame source
    "FFmpegFrameSource",
    "FrameSource",
    "VideoMetadata",
]
