from .completion import CompletionSession, GenerationConfig, TextCompletionClient
from .diversity import DiversityScorer
from .insights import InsightExtractor, extract_insights
from .orchestrator import FrameAnalysisOrchestrator
from .pipeline import VideoAnalysisPipeline
from .summary import SummaryGenerator
from .vision import VisionAnalyzerClient, VisionSession

__all__ = [
    # Clients
    "VisionAnalyzerClient",
    "VisionSession",
    "TextCompletionClient",
    "CompletionSession",
    "GenerationConfig",
    # Pipeline stages
    "FrameAnalysisOrchestrator",
    "InsightExtractor",
    "extract_insights",
    "SummaryGenerator",
    "DiversityScorer",
    "VideoAnalysisPipeline",
]
