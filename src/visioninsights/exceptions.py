"""Exception hierarchy for visioninsights."""

from __future__ import annotations

# Environment variable names per provider
API_KEY_ENV_VARS: dict[str, str] = {
    "roboflow": "ROBOFLOW_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}


class VisionInsightsError(Exception):
    """Base exception for all visioninsights errors."""

    pass


class ConfigError(VisionInsightsError):
    """Raised when there's an error loading or validating configuration."""

    pass


class MissingAPIKeyError(ConfigError):
    """Raised when a required API key is not found."""

    def __init__(self, provider: str):
        env_var = API_KEY_ENV_VARS.get(provider, f"{provider.upper()}_API_KEY")
        super().__init__(
            f"API key for '{provider}' not found. Set the {env_var} environment variable or pass api_key parameter."
        )
        self.provider = provider


class FrameSourceError(VisionInsightsError):
    """Base exception for failures producing frames from a video."""

    pass


class VideoDownloadError(FrameSourceError):
    """Raised when a remote video cannot be downloaded."""

    pass


class FrameExtractionError(FrameSourceError):
    """Raised when frames cannot be decoded from a video file."""

    pass


class AnalyzerError(VisionInsightsError):
    """Base exception for vision analyzer call failures."""

    pass


class AnalyzerHTTPError(AnalyzerError):
    """Raised when the vision analyzer answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(f"API call failed with code: {status_code}, message: {reason}")
        self.status_code = status_code
        self.reason = reason


class AnalyzerResponseError(AnalyzerError):
    """Raised when the vision analyzer response body is unusable."""

    pass


class CompletionError(VisionInsightsError):
    """Base exception for text-completion call failures."""

    pass


class CompletionHTTPError(CompletionError):
    """Raised when the completion endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(f"Completion call failed with code: {status_code}, message: {reason}")
        self.status_code = status_code
        self.reason = reason


class CompletionResponseError(CompletionError):
    """Raised when the completion response lacks the candidate text."""

    pass
