from __future__ import annotations

import logging

from visioninsights.ai.completion import GenerationConfig, TextCompletionClient
from visioninsights.base.description import DiversityScore
from visioninsights.exceptions import CompletionError
from visioninsights.utils.text import extract_first_json_object

logger = logging.getLogger(__name__)

DIVERSITY_GENERATION_CONFIG = GenerationConfig(temperature=0.1, top_k=40, top_p=0.95, max_output_tokens=1024)


def build_diversity_prompt(summary: str) -> str:
    return f"""Based on the following video summary, please provide diversity metrics on a scale from 0.0 to 1.0:

SUMMARY:
{summary}

Generate ONLY a JSON object with the following structure. Do not include any explanations:

{{
  "diversity_scores": {{
    "crowd_diversity": {{
      "age_group_variation": [float 0.0-1.0],
      "gender_distribution": [float 0.0-1.0],
      "ethnic_diversity": [float 0.0-1.0]
    }},
    "behavioral_diversity": {{
      "movement_variation": [float 0.0-1.0],
      "activity_mix": [float 0.0-1.0],
      "group_vs_individual_ratio": [float 0.0-1.0]
    }},
    "environmental_diversity": {{
      "location_type_variation": [float 0.0-1.0],
      "lighting_conditions": [float 0.0-1.0]
    }},
    "overall_diversity_score": [float 0.0-1.0]
  }}
}}

Use these guidelines for scoring:
- 0.0 means no diversity (e.g., only one age group)
- 0.5 means moderate diversity (e.g., 2-3 age groups with some imbalance)
- 1.0 means high diversity (e.g., all age groups equally represented)

If the summary does not mention specific elements, assign a score of 0.0 for those elements."""


def parse_diversity_response(text: str) -> DiversityScore:
    """Parse a completion response into a DiversityScore.

    Returns:
        The parsed score, or the all-zero score if the text holds no valid
        ``diversity_scores`` object.
    """
    data = extract_first_json_object(text)
    if data is None:
        logger.error("Failed to extract JSON from diversity scores response")
        return DiversityScore.zero()

    scores = data.get("diversity_scores")
    if not isinstance(scores, dict):
        logger.error("Diversity scores response lacks a 'diversity_scores' object")
        return DiversityScore.zero()

    try:
        return DiversityScore.from_dict(scores)
    except ValueError as e:
        logger.error("Invalid diversity scores response: %s", e)
        return DiversityScore.zero()


class DiversityScorer:
    """Scores crowd, behavioral and environmental diversity from a narrative summary.

    Scoring never fails visibly: any transport or parsing problem yields
    ``DiversityScore.zero()``.
    """

    def __init__(
        self,
        completion: TextCompletionClient | None,
        generation_config: GenerationConfig = DIVERSITY_GENERATION_CONFIG,
    ):
        self.completion = completion
        self.generation_config = generation_config

    async def score(self, summary: str) -> DiversityScore:
        if self.completion is None:
            logger.warning("No text completion engine configured, returning empty diversity scores")
            return DiversityScore.zero()

        prompt = build_diversity_prompt(summary)
        try:
            text = await self.completion.complete(prompt, self.generation_config)
        except CompletionError as e:
            logger.error("Error generating diversity scores: %s", e)
            return DiversityScore.zero()
        except Exception:
            logger.exception("Unexpected error generating diversity scores")
            return DiversityScore.zero()

        return parse_diversity_response(text)
