import json
import logging
import os
import sys

DEFAULT_LOG_FILE = "/tmp/word-assistant-mcp.log"

_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg (and exc)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=_DATEFMT
    )


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure logging for the current entry point.

    Args:
        mode: "mcp" logs to a file only (stdout carries JSON-RPC),
            "cli" logs to stderr.
        debug: Force DEBUG level regardless of LOG_LEVEL.
        log_file: Log file path.  In "mcp" mode it overrides LOG_FILE;
            in "cli" mode it adds a file handler next to stderr.
        debug_format: "text" (default) or "json".
        level: Level name used when LOG_LEVEL is unset (the YAML
            ``logging.level`` value).

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR.
                   Default: WARNING for MCP mode, INFO for CLI mode.
        LOG_FILE: Log file for MCP mode.
                  Default: /tmp/word-assistant-mcp.log
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    env_level = (os.getenv("LOG_LEVEL") or level or default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        target = log_file or os.getenv("LOG_FILE", DEFAULT_LOG_FILE)
        file_handler = logging.FileHandler(target, mode="a")
        file_handler.setFormatter(_formatter(debug_format, with_name=True))
        handlers.append(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_formatter(debug_format, with_name=False))
        handlers.append(stderr_handler)
        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(
                _formatter(debug_format, with_name=True)
            )
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)

    # requests' connection pool is chatty at INFO
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
