from __future__ import annotations

import logging

from visioninsights.ai.completion import GenerationConfig, TextCompletionClient
from visioninsights.base.description import NO_FRAMES_SUMMARY, SummaryReport
from visioninsights.exceptions import CompletionError, CompletionHTTPError

logger = logging.getLogger(__name__)

SUMMARY_GENERATION_CONFIG = GenerationConfig(temperature=0.2, top_k=40, top_p=0.95, max_output_tokens=4096)


def build_summary_prompt(insights: list[str]) -> str:
    frames_text = "\n".join(insights)
    return f"""Below are insights extracted from analyzing frames of a video (1 frame per second).
Please provide a comprehensive summary of the video content based on these insights.

FRAME INSIGHTS:
{frames_text}

Please provide a summary that includes:
1. Overall video content description
2. Key objects and people visible
3. Notable scene changes or events
4. Any patterns observed across frames

Format your summary as descriptive paragraphs that tell the story of what happens in the video."""


class SummaryGenerator:
    """Generates a narrative summary of a video from its frame insights."""

    def __init__(
        self,
        completion: TextCompletionClient | None = None,
        generation_config: GenerationConfig = SUMMARY_GENERATION_CONFIG,
    ):
        """Initialize the summary generator.

        Args:
            completion: Completion client. If None, no narrative engine is used and
                the summary is the insights themselves, one per line.
            generation_config: Sampling parameters for the narrative request.
        """
        self.completion = completion
        self.generation_config = generation_config

    async def summarize(self, insights: list[str]) -> SummaryReport:
        """Summarize insights. Failures are returned in the report, never raised."""
        if not insights:
            return SummaryReport.success(NO_FRAMES_SUMMARY)

        if self.completion is None:
            return SummaryReport.success("\n".join(insights))

        prompt = build_summary_prompt(insights)
        try:
            summary = await self.completion.complete(prompt, self.generation_config)
        except CompletionHTTPError as e:
            logger.error("Summary generation call failed: %s - %s", e.status_code, e.reason)
            return SummaryReport.failure(f"Failed to generate summary: {e.reason}", status=e.status_code)
        except CompletionError as e:
            logger.error("Error generating summary report: %s", e)
            return SummaryReport.failure(f"Failed to generate summary: {e}")
        except Exception as e:
            logger.exception("Unexpected error generating summary report")
            return SummaryReport.failure(f"Failed to generate summary: {e}")

        return SummaryReport.success(summary)
