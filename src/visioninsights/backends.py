"""API key resolution for the external services."""

from __future__ import annotations

import os

from visioninsights.exceptions import API_KEY_ENV_VARS, MissingAPIKeyError


def find_api_key(provider: str, api_key: str | None = None) -> str | None:
    """Look up an API key without failing.

    Args:
        provider: Provider name ('roboflow' or 'gemini').
        api_key: Optional explicit API key. If provided, returns this directly.

    Returns:
        The API key string, or None when neither an explicit key nor the
        provider's environment variable is set.
    """
    if api_key and api_key.strip():
        return api_key

    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var:
        key = os.environ.get(env_var)
        if key and key.strip():
            return key

    return None


def get_api_key(provider: str, api_key: str | None = None) -> str:
    """Get API key for a provider.

    Args:
        provider: Provider name (e.g., 'roboflow', 'gemini')
        api_key: Optional explicit API key. If provided, returns this directly.

    Returns:
        The API key string.

    Raises:
        MissingAPIKeyError: If no API key is found.
    """
    key = find_api_key(provider, api_key)
    if key is None:
        raise MissingAPIKeyError(provider)
    return key
