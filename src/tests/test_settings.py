import logging
import warnings

import pytest

from visioninsights.backends import find_api_key, get_api_key
from visioninsights.base import progress
from visioninsights.config import (
    DEFAULT_COMPLETION_URL,
    AnalysisSettings,
    Settings,
    clear_config_cache,
    get_config,
    get_settings,
    settings_from_dict,
)
from visioninsights.exceptions import ConfigError, MissingAPIKeyError
from visioninsights.utils.logger import setup_logging


class TestSettings:
    def test_defaults_without_config_file(self):
        settings = get_settings()

        assert settings == Settings()
        assert settings.analysis == AnalysisSettings(
            batch_size=2, max_retries=3, retry_delay_ms=2000, batch_delay_ms=1000, keep_partial_results=False
        )
        assert settings.vision.api_url is None
        assert settings.vision.output_key == "google_gemini"
        assert settings.completion.api_url == DEFAULT_COMPLETION_URL
        assert settings.completion.timeout == 30.0

    def test_own_config_file(self, tmp_path):
        (tmp_path / "visioninsights.toml").write_text(
            '[analysis]\nbatch_size = 4\nkeep_partial_results = true\n\n[vision]\napi_url = "https://vision.test/wf"\n'
        )
        clear_config_cache()

        settings = get_settings()

        assert settings.analysis.batch_size == 4
        assert settings.analysis.keep_partial_results is True
        assert settings.analysis.max_retries == 3
        assert settings.vision.api_url == "https://vision.test/wf"

    def test_pyproject_tool_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "demo"\n\n[tool.visioninsights.completion]\ntimeout = 10.0\n'
        )
        clear_config_cache()

        assert get_settings().completion.timeout == 10.0

    def test_own_file_wins_over_pyproject(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("[tool.visioninsights.analysis]\nbatch_size = 8\n")
        (tmp_path / "visioninsights.toml").write_text("[analysis]\nbatch_size = 3\n")
        clear_config_cache()

        assert get_settings().analysis.batch_size == 3

    def test_pyproject_without_tool_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        clear_config_cache()

        assert get_config() == {}
        assert get_settings() == Settings()

    def test_non_table_tool_section_is_ignored(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[tool]\nvisioninsights = "on"\n')
        clear_config_cache()

        assert get_config() == {}

    def test_invalid_toml_warns_and_uses_defaults(self, tmp_path):
        (tmp_path / "visioninsights.toml").write_text("[analysis\nbatch_size = ")
        clear_config_cache()

        with pytest.warns(RuntimeWarning, match="Invalid TOML"):
            assert get_config() == {}

    def test_unknown_keys_warn(self):
        with pytest.warns(RuntimeWarning, match="batch_sise"):
            settings = settings_from_dict({"analysis": {"batch_sise": 5}})

        assert settings.analysis.batch_size == 2

    @pytest.mark.parametrize(
        "data",
        [
            {"analysis": {"batch_size": 0}},
            {"analysis": {"max_retries": 0}},
            {"analysis": {"retry_delay_ms": -1}},
            {"analysis": "fast"},
        ],
    )
    def test_invalid_values(self, data):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with pytest.raises(ConfigError):
                settings_from_dict(data)


class TestApiKeys:
    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "env")

        assert get_api_key("gemini", "explicit") == "explicit"

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ROBOFLOW_API_KEY", "env")

        assert get_api_key("roboflow") == "env"

    def test_blank_keys_are_missing(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "   ")

        assert find_api_key("gemini", "") is None

    def test_missing_key(self):
        with pytest.raises(MissingAPIKeyError) as exc_info:
            get_api_key("gemini")

        assert exc_info.value.provider == "gemini"
        assert "GOOGLE_API_KEY" in str(exc_info.value)


class TestProgress:
    def test_disabled_by_default_returns_iterable(self):
        items = [1, 2, 3]

        assert progress.progress_iter(items) is items

    def test_enabled_wraps_with_tqdm(self):
        from tqdm import tqdm

        progress.configure(progress=True)
        try:
            wrapped = progress.progress_iter([1, 2], desc="test", total=2)
            assert isinstance(wrapped, tqdm)
            assert list(wrapped) == [1, 2]
        finally:
            progress.configure(progress=False)


class TestLogging:
    def test_setup_logging(self):
        logger = setup_logging("debug")

        assert logger.name == "visioninsights"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_setup_is_idempotent_and_defaults_to_info(self):
        setup_logging()
        logger = setup_logging("nonsense")

        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO
