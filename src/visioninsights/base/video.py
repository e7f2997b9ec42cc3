"""Default frame source: download a video and sample one PNG frame per second."""

from __future__ import annotations

import io
import json
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

import numpy as np
import requests
from PIL import Image

from visioninsights.base.description import FrameImage
from visioninsights.exceptions import FrameExtractionError, VideoDownloadError

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 30.0
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
DOWNLOAD_HEADERS = {"User-Agent": "Mozilla/5.0"}


class FrameSource(Protocol):
    """Produces the ordered frames of a video, one per sampled second."""

    def extract_frames(self, video_reference: str) -> list[FrameImage]: ...


@dataclass
class VideoMetadata:
    """Class to store video metadata."""

    height: int
    width: int
    fps: float
    frame_count: int
    total_seconds: float

    def __str__(self) -> str:
        return f"{self.width}x{self.height} @ {self.fps}fps, {self.total_seconds} seconds"

    @property
    def sampled_seconds(self) -> int:
        """Number of whole seconds, and therefore of frames sampled at 1 fps."""
        if self.fps <= 0:
            return 0
        return int(self.frame_count / self.fps)

    @staticmethod
    def _run_ffprobe(video_path: str | Path) -> dict:
        """Run ffprobe and return parsed JSON output."""
        cmd = [
            "ffprobe",
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height,r_frame_rate,nb_frames",
            "-show_entries",
            "format=duration",
            "-print_format",
            "json",
            str(video_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
            return json.loads(result.stdout)
        except FileNotFoundError as e:
            raise FrameExtractionError(f"ffprobe executable not found: {e}") from e
        except subprocess.CalledProcessError as e:
            raise FrameExtractionError(f"FFprobe error: {e.stderr}") from e
        except json.JSONDecodeError as e:
            raise FrameExtractionError(f"Error parsing FFprobe output: {e}") from e

    @classmethod
    def from_probe(cls, probe_data: dict) -> VideoMetadata:
        """Creates VideoMetadata object from parsed ffprobe output."""
        try:
            stream_info = probe_data["streams"][0]

            width = int(stream_info["width"])
            height = int(stream_info["height"])

            try:
                fps = float(Fraction(stream_info["r_frame_rate"]))
            except (ValueError, ZeroDivisionError):
                raise FrameExtractionError(f"Invalid frame rate: {stream_info['r_frame_rate']}")

            if str(stream_info.get("nb_frames", "")).isdigit():
                frame_count = int(stream_info["nb_frames"])
            else:
                duration = float(probe_data["format"]["duration"])
                frame_count = int(round(duration * fps))

            total_seconds = round(frame_count / fps, 2) if fps > 0 else 0.0

            return cls(height=height, width=width, fps=fps, frame_count=frame_count, total_seconds=total_seconds)

        except (KeyError, IndexError) as e:
            raise FrameExtractionError(f"Missing required metadata field: {e}") from e
        except (TypeError, ValueError) as e:
            raise FrameExtractionError(f"Error extracting video metadata: {e}") from e

    @classmethod
    def from_path(cls, video_path: str | Path) -> VideoMetadata:
        """Creates VideoMetadata object from video file using ffprobe."""
        if not Path(video_path).exists():
            raise FrameExtractionError(f"Video file not found: {video_path}")
        return cls.from_probe(cls._run_ffprobe(video_path))


def is_remote(video_reference: str) -> bool:
    return urlparse(video_reference).scheme in ("http", "https")


def download_video(video_url: str, working_dir: Path, *, timeout: float = DOWNLOAD_TIMEOUT_SECONDS) -> Path:
    """Download a video into ``working_dir``.

    Args:
        video_url: http(s) URL of the video.
        working_dir: Existing directory to place the file in.
        timeout: Connect and read timeout in seconds.

    Returns:
        Path of the downloaded file.

    Raises:
        VideoDownloadError: If the request fails or the server answers non-2xx.
    """
    video_path = working_dir / "input_video.mp4"
    logger.info("Downloading video from URL: %s", video_url)

    try:
        with requests.get(video_url, headers=DOWNLOAD_HEADERS, stream=True, timeout=(timeout, timeout)) as response:
            if not response.ok:
                raise VideoDownloadError(
                    f"Failed to download video: HTTP {response.status_code} {response.reason} for {video_url}"
                )
            with open(video_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
    except requests.RequestException as e:
        raise VideoDownloadError(f"Failed to download video from {video_url}: {e}") from e

    if video_path.stat().st_size == 0:
        raise VideoDownloadError(f"Downloaded video is empty: {video_url}")

    logger.info("Video downloaded to: %s", video_path)
    return video_path


def encode_png(frame: np.ndarray) -> bytes:
    """Encode an RGB frame (H, W, 3) as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(frame).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_frames_per_second(video_path: str | Path, metadata: VideoMetadata) -> list[np.ndarray]:
    """Decode one RGB frame for each whole second of the video.

    Returns:
        Frames in time order, at most ``metadata.sampled_seconds`` of them.
    """
    n_frames = metadata.sampled_seconds
    if n_frames == 0:
        return []

    ffmpeg_cmd = [
        "ffmpeg",
        "-i",
        str(video_path),
        "-vf",
        "fps=1",
        "-frames:v",
        str(n_frames),
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        "-vcodec",
        "rawvideo",
        "-y",
        "pipe:1",
    ]

    frame_size = metadata.width * metadata.height * 3
    try:
        result = subprocess.run(ffmpeg_cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
    except FileNotFoundError as e:
        raise FrameExtractionError(f"ffmpeg executable not found: {e}") from e
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
        raise FrameExtractionError(f"FFmpeg failed to decode video (return code: {e.returncode}): {stderr}") from e

    raw = np.frombuffer(result.stdout, dtype=np.uint8)
    complete_frames = len(raw) // frame_size
    raw = raw[: complete_frames * frame_size]
    frames = raw.reshape(complete_frames, metadata.height, metadata.width, 3)
    return [frames[i] for i in range(complete_frames)]


class FFmpegFrameSource:
    """Samples one PNG frame per second from a local file or an http(s) URL.

    Remote videos are downloaded into a temporary working directory that is
    removed once the frames are extracted.
    """

    def __init__(self, download_timeout: float = DOWNLOAD_TIMEOUT_SECONDS):
        self.download_timeout = download_timeout

    def extract_frames(self, video_reference: str) -> list[FrameImage]:
        with tempfile.TemporaryDirectory(prefix="video-processing-") as tmp:
            if is_remote(video_reference):
                video_path = download_video(video_reference, Path(tmp), timeout=self.download_timeout)
            else:
                video_path = Path(video_reference)

            metadata = VideoMetadata.from_path(video_path)
            logger.info("Video information: %s, sampling %d seconds", metadata, metadata.sampled_seconds)

            frames = decode_frames_per_second(video_path, metadata)
            images = [FrameImage(index=i, data=encode_png(frame)) for i, frame in enumerate(frames)]

        logger.info("Successfully extracted %d frames from video", len(images))
        return images
