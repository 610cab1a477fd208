"""Runtime configuration for the word assistant.

Reads the remote word service settings and sync/review tuning from CLI
args, environment variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WORD_ASSISTANT_API_URL: Base URL of the word service, e.g. https://host/api (required)
    WORD_ASSISTANT_TOKEN: Bearer credential (optional; no credential = no sync)
    WORD_ASSISTANT_DATA_DIR: Directory for the local word collection (optional)
    WORD_ASSISTANT_SYNC_DEBOUNCE: Debounce delay in seconds (optional, default: 2)
    WORD_ASSISTANT_SYNC_INTERVAL: Periodic sync interval in seconds (optional, default: 300)
    WORD_ASSISTANT_DAILY_LIMIT: Daily review batch size (optional, default: 5)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = str(Path.home() / ".word_assistant" / "data")


@dataclass
class Config:
    api_url: str
    token: str | None = None
    data_dir: str = DEFAULT_DATA_DIR
    debounce_seconds: float = 2.0
    interval_seconds: float = 300.0
    daily_limit: int = 5
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the URL format is invalid or a number is out of range.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if config.token is not None and not config.token.strip():
        config.token = None

    if config.debounce_seconds <= 0:
        raise ValueError(
            f"Invalid debounce '{config.debounce_seconds}': must be greater than 0"
        )
    if config.interval_seconds <= 0:
        raise ValueError(
            f"Invalid sync interval '{config.interval_seconds}': must be greater than 0"
        )
    if not (1 <= config.daily_limit <= 100):
        raise ValueError(
            f"Invalid daily limit '{config.daily_limit}': must be a number between 1 and 100"
        )

    if config.token is None:
        logger.warning(
            "No bearer credential configured; words stay local until one is supplied."
        )


def _number_from_env(key: str, cast, fallback):
    raw = os.getenv(key)
    if raw is None:
        return fallback
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} '{raw}': must be a number") from None


def load_config(
    api_url: str | None = None,
    token: str | None = None,
    data_dir: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        api_url: Override service URL.
        token: Override bearer credential.
        data_dir: Override local data directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file
            (see ``config_schema.yaml_fallbacks``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the API URL is missing after checking all sources,
            or any value fails validation.
    """
    fb = yaml_fallbacks or {}

    final_url = api_url or os.getenv("WORD_ASSISTANT_API_URL") or fb.get("url")
    if not final_url:
        raise ValueError(
            "API URL not found. Set WORD_ASSISTANT_API_URL environment variable, "
            "pass --api-url CLI argument, or add 'api.url' to config.yml."
        )

    final_token = token or os.getenv("WORD_ASSISTANT_TOKEN") or fb.get("token")
    final_data_dir = (
        data_dir
        or os.getenv("WORD_ASSISTANT_DATA_DIR")
        or fb.get("data_dir")
        or DEFAULT_DATA_DIR
    )

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("WORD_ASSISTANT_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        api_url=final_url,
        token=final_token,
        data_dir=str(Path(final_data_dir).expanduser()),
        debounce_seconds=_number_from_env(
            "WORD_ASSISTANT_SYNC_DEBOUNCE",
            float,
            float(fb.get("debounce_seconds", 2.0)),
        ),
        interval_seconds=_number_from_env(
            "WORD_ASSISTANT_SYNC_INTERVAL",
            float,
            float(fb.get("interval_seconds", 300.0)),
        ),
        daily_limit=_number_from_env(
            "WORD_ASSISTANT_DAILY_LIMIT",
            int,
            int(fb.get("daily_limit", 5)),
        ),
        connect_timeout=float(fb.get("connect_timeout", 10.0)),
        read_timeout=float(fb.get("read_timeout", 30.0)),
        debug=final_debug,
    )

    validate_config(config)

    return config
