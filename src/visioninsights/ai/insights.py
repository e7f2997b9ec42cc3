"""Turn raw per-frame analyzer payloads into time-tagged insight sentences.

Each analyzer output carries a free-form ``output`` text. That text is first
classified into one of three shapes, then rendered into sentences:

- ``StructuredAnalysis``: a ```` ```json ```` fenced object using the current
  schema (``overall_description``, ``place_information``, ...). A flat
  ``insights`` list inside it is still honoured.
- ``LegacyInsights``: a fenced object holding only a flat ``insights`` list.
- ``UnstructuredText``: anything else; the raw text becomes one insight.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from visioninsights.base.description import FrameAnalysisResult
from visioninsights.config import DEFAULT_OUTPUT_KEY

logger = logging.getLogger(__name__)

JSON_FENCE_PATTERN = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL)

CURRENT_SCHEMA_KEYS = frozenset(
    {
        "overall_description",
        "place_information",
        "people_analysis",
        "behavior_analysis",
        "movement_analysis",
    }
)


@dataclass(frozen=True)
class StructuredAnalysis:
    overall_description: str | None = None
    location_type: str | None = None
    environmental_context: str | None = None
    notable_features: tuple[str, ...] = ()
    people_count: Any = None
    dominant_activity: Any = None
    flow_direction: Any = None
    velocity_estimate: Any = None
    legacy_insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class LegacyInsights:
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class UnstructuredText:
    text: str


FrameOutput = Union[StructuredAnalysis, LegacyInsights, UnstructuredText]


@dataclass(frozen=True)
class OutputBlock:
    """One named output of a frame payload."""

    content: FrameOutput | None = None
    classes: tuple[str, ...] = field(default_factory=tuple)


def _first_mapping(value: Any) -> dict[str, Any] | None:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return ()


def _structured_from_json(data: dict[str, Any]) -> StructuredAnalysis:
    description = data.get("overall_description")

    place = data.get("place_information")
    location_type = environmental_context = None
    features: tuple[str, ...] = ()
    if isinstance(place, dict):
        if isinstance(place.get("location_type"), str):
            location_type = place["location_type"]
        if isinstance(place.get("environmental_context"), str):
            environmental_context = place["environmental_context"]
        features = _as_str_tuple(place.get("notable_features"))

    people = _first_mapping(data.get("people_analysis"))
    behavior = _first_mapping(data.get("behavior_analysis"))

    movement = data.get("movement_analysis")
    flow_direction = velocity = None
    if isinstance(movement, dict):
        flow_direction = movement.get("flow_direction")
        velocity = movement.get("velocity_estimate")

    return StructuredAnalysis(
        overall_description=description if isinstance(description, str) else None,
        location_type=location_type,
        environmental_context=environmental_context,
        notable_features=features,
        people_count=people.get("number_of_individuals") if people else None,
        dominant_activity=behavior.get("dominant_activity") if behavior else None,
        flow_direction=flow_direction,
        velocity_estimate=velocity,
        legacy_insights=_as_str_tuple(data.get("insights")),
    )


def parse_output_text(text: str) -> FrameOutput:
    """Classify one analyzer output text. Never raises."""
    match = JSON_FENCE_PATTERN.search(text)
    if match is None:
        return UnstructuredText(text)

    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("Error parsing JSON from output: %s", e)
        return UnstructuredText(text)

    if not isinstance(data, dict):
        return UnstructuredText(text)

    if "insights" in data and not CURRENT_SCHEMA_KEYS & data.keys():
        return LegacyInsights(_as_str_tuple(data["insights"]))
    return _structured_from_json(data)


def render_insights(output: FrameOutput, frame_time: Any) -> list[str]:
    """Render a classified output into ``"At {t}s: ..."`` sentences."""
    prefix = f"At {frame_time}s: "

    if isinstance(output, UnstructuredText):
        return [prefix + output.text]
    if isinstance(output, LegacyInsights):
        return [prefix + item for item in output.insights]

    lines: list[str] = []
    if output.overall_description is not None:
        lines.append(prefix + output.overall_description)
    if output.location_type is not None and output.environmental_context is not None:
        lines.append(f"{prefix}Setting is a {output.location_type} ({output.environmental_context})")
    if output.notable_features:
        lines.append(f"{prefix}Notable features: {', '.join(output.notable_features)}")
    if output.people_count is not None and output.dominant_activity is not None:
        lines.append(f"{prefix}{output.people_count} people {output.dominant_activity}")
    if output.velocity_estimate is not None and output.velocity_estimate != "stationary":
        direction = output.flow_direction if output.flow_direction is not None else "unknown"
        lines.append(f"{prefix}Movement detected - {direction} direction at {output.velocity_estimate}")
    lines.extend(prefix + item for item in output.legacy_insights)
    return lines


def parse_payload(payload: dict[str, Any], output_key: str = DEFAULT_OUTPUT_KEY) -> list[OutputBlock]:
    """Locate the named output blocks of a frame payload.

    Outputs that are not objects, or lack ``output_key``, are skipped.
    """
    outputs = payload.get("outputs")
    if not isinstance(outputs, list):
        return []

    blocks = []
    for output in outputs:
        if not isinstance(output, dict):
            continue
        named = output.get(output_key)
        if not isinstance(named, dict):
            continue
        text = named.get("output")
        blocks.append(
            OutputBlock(
                content=parse_output_text(text) if isinstance(text, str) else None,
                classes=_as_str_tuple(named.get("classes")),
            )
        )
    return blocks


class InsightExtractor:
    """Flattens frame analysis results into insight sentences, in frame order."""

    def __init__(self, output_key: str = DEFAULT_OUTPUT_KEY):
        self.output_key = output_key

    def extract_frame(self, result: FrameAnalysisResult) -> list[str]:
        if not result.ok:
            return []

        insights: list[str] = []
        for block in parse_payload(result.payload, self.output_key):
            if block.content is not None:
                insights.extend(render_insights(block.content, result.frame_time_seconds))
            if block.classes:
                insights.append(f"At {result.frame_time_seconds}s: Detected objects: {', '.join(block.classes)}")
        return insights

    def extract(self, results: Iterable[FrameAnalysisResult]) -> list[str]:
        all_insights: list[str] = []
        for result in results:
            try:
                all_insights.extend(self.extract_frame(result))
            except Exception as e:
                logger.warning("Error extracting insights from frame %s: %s", result.frame_index, e)
        return all_insights


def extract_insights(
    results: Iterable[FrameAnalysisResult], output_key: str = DEFAULT_OUTPUT_KEY
) -> list[str]:
    return InsightExtractor(output_key).extract(results)
