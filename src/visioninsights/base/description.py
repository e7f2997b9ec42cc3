from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

NO_FRAMES_SUMMARY = "No frames were available for analysis"


def _now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class FrameImage:
    """A single still image sampled from a video.

    Attributes:
        index: 0-based index of the frame; equals the sampled second
        data: Encoded image bytes (PNG for the default frame source)
    """

    index: int
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Frame index must be non-negative, got {self.index}")


@dataclass(frozen=True)
class FrameAnalysisResult:
    """Outcome of analyzing one frame.

    Attributes:
        frame_index: Index of the analyzed frame
        frame_time_seconds: Time offset of the frame in seconds
        payload: Raw analyzer response, empty when the frame failed
        error: Failure message when every attempt failed, None otherwise
    """

    frame_index: int
    frame_time_seconds: int
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.payload)
        data["frameIndex"] = self.frame_index
        data["frameTimeSeconds"] = self.frame_time_seconds
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FrameAnalysisResult":
        payload = {k: v for k, v in data.items() if k not in ("frameIndex", "frameTimeSeconds", "error")}
        frame_index = int(data["frameIndex"])
        return cls(
            frame_index=frame_index,
            frame_time_seconds=int(data.get("frameTimeSeconds", frame_index)),
            payload=payload,
            error=data.get("error"),
        )


@dataclass(frozen=True)
class SummaryReport:
    """Narrative summary of a video, or the reason it could not be produced.

    Attributes:
        summary: Generated narrative, None when generation failed
        timestamp: Creation time in epoch milliseconds
        error: Failure message, None on success
        status: HTTP status of a non-2xx completion response
    """

    summary: str | None = None
    timestamp: int = field(default_factory=_now_millis)
    error: str | None = None
    status: int | None = None

    @classmethod
    def success(cls, summary: str) -> "SummaryReport":
        return cls(summary=summary)

    @classmethod
    def failure(cls, error: str, status: int | None = None) -> "SummaryReport":
        return cls(error=error, status=status)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.summary is not None:
            data["summary"] = self.summary
        data["timestamp"] = self.timestamp
        if self.error is not None:
            data["error"] = self.error
        if self.status is not None:
            data["status"] = self.status
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SummaryReport":
        return cls(
            summary=data.get("summary"),
            timestamp=int(data.get("timestamp", 0)),
            error=data.get("error"),
            status=data.get("status"),
        )


@dataclass(frozen=True)
class AnalysisReport:
    """Terminal artifact of one pipeline run."""

    success: bool
    video_url: str
    total_frames: int = 0
    frame_analyses: tuple[FrameAnalysisResult, ...] = ()
    summary_report: SummaryReport | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        # Lists are accepted for convenience and frozen into a tuple
        object.__setattr__(self, "frame_analyses", tuple(self.frame_analyses))

    @classmethod
    def failure(
        cls,
        video_url: str,
        error: str,
        frame_analyses: tuple[FrameAnalysisResult, ...] | list[FrameAnalysisResult] = (),
    ) -> "AnalysisReport":
        return cls(
            success=False,
            video_url=video_url,
            total_frames=len(frame_analyses),
            frame_analyses=tuple(frame_analyses),
            error=error,
        )

    @property
    def failed_frames(self) -> list[FrameAnalysisResult]:
        return [fa for fa in self.frame_analyses if not fa.ok]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "videoUrl": self.video_url,
            "totalFrames": self.total_frames,
            "frameAnalyses": [fa.to_dict() for fa in self.frame_analyses],
        }
        if self.summary_report is not None:
            data["summaryReport"] = self.summary_report.to_dict()
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisReport":
        summary = data.get("summaryReport")
        return cls(
            success=bool(data["success"]),
            video_url=data["videoUrl"],
            total_frames=int(data.get("totalFrames", 0)),
            frame_analyses=tuple(FrameAnalysisResult.from_dict(fa) for fa in data.get("frameAnalyses", [])),
            summary_report=SummaryReport.from_dict(summary) if summary is not None else None,
            error=data.get("error"),
        )

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "AnalysisReport":
        return cls.from_dict(json.loads(text))

    def save(self, path: str | Path, *, indent: int | None = 2) -> None:
        Path(path).write_text(self.to_json(indent=indent), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "AnalysisReport":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))


def _unit_float(data: dict[str, Any], key: str) -> float:
    """Read a score leaf, clamped into [0.0, 1.0].

    Raises:
        ValueError: If the leaf is missing, not a number, or not finite.
    """
    if key not in data:
        raise ValueError(f"Missing diversity score '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Diversity score '{key}' is not a number: {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Diversity score '{key}' is not finite: {value!r}")
    return min(1.0, max(0.0, value))


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"Diversity section '{key}' is missing or not an object")
    return value


@dataclass(frozen=True)
class CrowdDiversity:
    age_group_variation: float = 0.0
    gender_distribution: float = 0.0
    ethnic_diversity: float = 0.0


@dataclass(frozen=True)
class BehavioralDiversity:
    movement_variation: float = 0.0
    activity_mix: float = 0.0
    group_vs_individual_ratio: float = 0.0


@dataclass(frozen=True)
class EnvironmentalDiversity:
    location_type_variation: float = 0.0
    lighting_conditions: float = 0.0


@dataclass(frozen=True)
class DiversityScore:
    """Fixed-schema diversity rubric derived from a narrative summary.

    Every leaf is a float in [0.0, 1.0]. A score is either fully populated
    from a valid response or entirely zero.
    """

    crowd_diversity: CrowdDiversity = field(default_factory=CrowdDiversity)
    behavioral_diversity: BehavioralDiversity = field(default_factory=BehavioralDiversity)
    environmental_diversity: EnvironmentalDiversity = field(default_factory=EnvironmentalDiversity)
    overall_diversity_score: float = 0.0

    @classmethod
    def zero(cls) -> "DiversityScore":
        return cls()

    @property
    def is_zero(self) -> bool:
        return self == DiversityScore.zero()

    def to_dict(self) -> dict[str, Any]:
        return {
            "crowd_diversity": {
                "age_group_variation": self.crowd_diversity.age_group_variation,
                "gender_distribution": self.crowd_diversity.gender_distribution,
                "ethnic_diversity": self.crowd_diversity.ethnic_diversity,
            },
            "behavioral_diversity": {
                "movement_variation": self.behavioral_diversity.movement_variation,
                "activity_mix": self.behavioral_diversity.activity_mix,
                "group_vs_individual_ratio": self.behavioral_diversity.group_vs_individual_ratio,
            },
            "environmental_diversity": {
                "location_type_variation": self.environmental_diversity.location_type_variation,
                "lighting_conditions": self.environmental_diversity.lighting_conditions,
            },
            "overall_diversity_score": self.overall_diversity_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiversityScore":
        """Build a score from the inner ``diversity_scores`` object.

        Raises:
            ValueError: If any section or leaf is missing or invalid.
        """
        crowd = _table(data, "crowd_diversity")
        behavior = _table(data, "behavioral_diversity")
        environment = _table(data, "environmental_diversity")
        return cls(
            crowd_diversity=CrowdDiversity(
                age_group_variation=_unit_float(crowd, "age_group_variation"),
                gender_distribution=_unit_float(crowd, "gender_distribution"),
                ethnic_diversity=_unit_float(crowd, "ethnic_diversity"),
            ),
            behavioral_diversity=BehavioralDiversity(
                movement_variation=_unit_float(behavior, "movement_variation"),
                activity_mix=_unit_float(behavior, "activity_mix"),
                group_vs_individual_ratio=_unit_float(behavior, "group_vs_individual_ratio"),
            ),
            environmental_diversity=EnvironmentalDiversity(
                location_type_variation=_unit_float(environment, "location_type_variation"),
                lighting_conditions=_unit_float(environment, "lighting_conditions"),
            ),
            overall_diversity_score=_unit_float(data, "overall_diversity_score"),
        )
