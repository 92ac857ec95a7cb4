"""Tests for redash_sync.config -- env-var config loading and validation.

NOT to be confused with test_config_loader.py (YAML discovery) or
test_config_schema.py (Pydantic models).
"""

import pytest

from redash_sync.config import Config, load_config, validate_config
from redash_sync.errors import ConfigurationError

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    def test_valid_config(self):
        validate_config(Config(redash_url="https://redash.example.com", api_key="k"))

    def test_trailing_slash_removed(self):
        config = Config(redash_url="https://redash.example.com/", api_key="k")
        validate_config(config)
        assert config.redash_url == "https://redash.example.com"

    def test_invalid_scheme(self):
        config = Config(redash_url="ftp://redash.example.com", api_key="k")
        with pytest.raises(ConfigurationError, match="must start with http"):
            validate_config(config)

    def test_missing_hostname(self):
        config = Config(redash_url="https://", api_key="k")
        with pytest.raises(ConfigurationError, match="hostname"):
            validate_config(config)

    def test_empty_api_key(self):
        config = Config(redash_url="https://redash.example.com", api_key="  ")
        with pytest.raises(ConfigurationError, match="API key cannot be empty"):
            validate_config(config)

    @pytest.mark.parametrize("size", [0, 251])
    def test_page_size_range(self, size):
        config = Config(redash_url="https://r.example.com", api_key="k", page_size=size)
        with pytest.raises(ConfigurationError, match="between 1 and 250"):
            validate_config(config)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_config(Config(redash_url="nope", api_key="k"))


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("REDASH_URL", "https://env.example.com")
        monkeypatch.setenv("REDASH_API_KEY", "envkey")
        config = load_config()
        assert config.redash_url == "https://env.example.com"
        assert config.api_key == "envkey"
        assert config.queries_dir == "queries"
        assert config.page_size == 100
        assert config.diff_tool is None
        assert config.debug is False

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("REDASH_URL", "https://env.example.com")
        monkeypatch.setenv("REDASH_API_KEY", "envkey")
        config = load_config(url="https://cli.example.com", api_key="clikey")
        assert config.redash_url == "https://cli.example.com"
        assert config.api_key == "clikey"

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("REDASH_QUERIES_DIR", "from-env")
        config = load_config(
            yaml_fallbacks={
                "url": "https://yaml.example.com",
                "api_key": "yamlkey",
                "queries_dir": "from-yaml",
                "page_size": 50,
                "diff_tool": "git",
            }
        )
        assert config.redash_url == "https://yaml.example.com"
        assert config.queries_dir == "from-env"
        assert config.page_size == 50
        assert config.diff_tool == "git"

    def test_missing_url(self):
        with pytest.raises(ConfigurationError, match="Redash URL not found"):
            load_config(api_key="k")

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="API key not found"):
            load_config(url="https://r.example.com")

    def test_page_size_env(self, monkeypatch):
        monkeypatch.setenv("REDASH_PAGE_SIZE", "25")
        config = load_config(url="https://r.example.com", api_key="k")
        assert config.page_size == 25

    def test_page_size_env_not_a_number(self, monkeypatch):
        monkeypatch.setenv("REDASH_PAGE_SIZE", "lots")
        with pytest.raises(ConfigurationError, match="REDASH_PAGE_SIZE"):
            load_config(url="https://r.example.com", api_key="k")

    def test_page_size_env_out_of_range(self, monkeypatch):
        monkeypatch.setenv("REDASH_PAGE_SIZE", "1000")
        with pytest.raises(ConfigurationError, match="between 1 and 250"):
            load_config(url="https://r.example.com", api_key="k")

    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("no", False)])
    def test_debug_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("REDASH_DEBUG", value)
        config = load_config(url="https://r.example.com", api_key="k")
        assert config.debug is expected

    def test_debug_flag_wins(self, monkeypatch):
        monkeypatch.setenv("REDASH_DEBUG", "false")
        config = load_config(url="https://r.example.com", api_key="k", debug=True)
        assert config.debug is True

    def test_values_are_stripped(self):
        config = load_config(url="  https://r.example.com/  ", api_key=" k ")
        assert config.redash_url == "https://r.example.com"
        assert config.api_key == "k"
