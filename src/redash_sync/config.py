"""Runtime configuration for redash-sync.

Reads Redash connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    REDASH_URL: Base URL of the Redash instance (required)
    REDASH_API_KEY: Redash user API key (required)
    REDASH_QUERIES_DIR: Local mirror directory (optional, default: queries)
    REDASH_PAGE_SIZE: Queries per list request (optional, default: 100)
    REDASH_DIFF_TOOL: External diff tool, e.g. "git" (optional)
    REDASH_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_QUERIES_DIR = "queries"
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 250


@dataclass
class Config:
    redash_url: str
    api_key: str
    queries_dir: str = DEFAULT_QUERIES_DIR
    page_size: int = DEFAULT_PAGE_SIZE
    diff_tool: str | None = None
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigurationError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigurationError: If URL format is invalid or the API key is empty.
    """
    config.redash_url = config.redash_url.strip()

    if not config.redash_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid Redash URL '{config.redash_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.redash_url)
    if not parsed.hostname:
        raise ConfigurationError(
            f"Invalid Redash URL '{config.redash_url}': URL must include a hostname"
        )

    config.redash_url = config.redash_url.rstrip("/")

    if not config.api_key.strip():
        raise ConfigurationError(
            "Redash API key cannot be empty. Set REDASH_API_KEY environment variable."
        )

    if not (1 <= config.page_size <= MAX_PAGE_SIZE):
        raise ConfigurationError(
            f"Invalid page size {config.page_size}: must be between 1 and {MAX_PAGE_SIZE}"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    url: str | None = None,
    api_key: str | None = None,
    queries_dir: str | None = None,
    diff_tool: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override Redash URL.
        api_key: Override API key.
        queries_dir: Override local mirror directory.
        diff_tool: Override external diff tool.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file
            (``url``, ``api_key``, ``queries_dir``, ``page_size``,
            ``diff_tool``, ``debug``).

    Returns:
        Validated Config instance.

    Raises:
        ConfigurationError: If URL or API key is missing after checking
            all sources, or a value is out of range.
    """
    fb = yaml_fallbacks or {}

    redash_url = url or os.getenv("REDASH_URL") or fb.get("url")
    if not redash_url:
        raise ConfigurationError(
            "Redash URL not found. Set REDASH_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    redash_api_key = api_key or os.getenv("REDASH_API_KEY") or fb.get("api_key")
    if not redash_api_key:
        raise ConfigurationError(
            "Redash API key not found. Set REDASH_API_KEY environment variable, "
            "pass --api-key CLI argument, or add 'api_key' to config.yml."
        )

    final_queries_dir = (
        queries_dir
        or os.getenv("REDASH_QUERIES_DIR")
        or fb.get("queries_dir")
        or DEFAULT_QUERIES_DIR
    )

    final_diff_tool = (
        diff_tool or os.getenv("REDASH_DIFF_TOOL") or fb.get("diff_tool")
    )

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("REDASH_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    page_size_raw = os.getenv("REDASH_PAGE_SIZE")
    if page_size_raw is not None:
        try:
            final_page_size = int(page_size_raw)
        except ValueError:
            raise ConfigurationError(
                f"Invalid REDASH_PAGE_SIZE '{page_size_raw}': must be a number between 1 and {MAX_PAGE_SIZE}"
            ) from None
    elif "page_size" in fb:
        final_page_size = int(fb["page_size"])
    else:
        final_page_size = DEFAULT_PAGE_SIZE

    config = Config(
        redash_url=redash_url.strip(),
        api_key=redash_api_key.strip(),
        queries_dir=final_queries_dir,
        page_size=final_page_size,
        diff_tool=final_diff_tool,
        debug=final_debug,
    )

    validate_config(config)

    return config
