"""program-runner environment configuration.

Environment variables:
    PRR_TIMEOUT_MS: Default timeout for the CLI when --timeout is omitted
        - Milliseconds, non-negative integer
        - Default 30000

    PRR_READER_JOIN_TIMEOUT: How long each output drain is joined after the
        child exits normally
        - Seconds, clamped to 0.1-600
        - Default 60.0

    PRR_ENCODING: Codec for stdin/stdout/stderr
        - Any codec name Python knows, unknown names are ignored
        - Default: platform default (locale.getpreferredencoding(False))

    PRR_LOG_DEBUG: Debug logging
        - true/1/yes = on (DEBUG log written to a temp file)
        - false/0/no = off (default, log to stderr)

    PRR_LOG_LEVEL: stderr log level when PRR_LOG_DEBUG is off
        - DEBUG/INFO/WARNING/ERROR
        - Default WARNING
"""

from __future__ import annotations

import codecs
import locale
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_READER_JOIN_TIMEOUT = 60.0  # one minute

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def default_encoding() -> str:
    """Return the platform's default text encoding as a codec name."""
    return codecs.lookup(locale.getpreferredencoding(False)).name


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_timeout_ms(value: str | None) -> int:
    if not value:
        return DEFAULT_TIMEOUT_MS
    try:
        timeout = int(value)
    except ValueError:
        return DEFAULT_TIMEOUT_MS
    return timeout if timeout >= 0 else DEFAULT_TIMEOUT_MS


def _parse_reader_join_timeout(value: str | None) -> float:
    if not value:
        return DEFAULT_READER_JOIN_TIMEOUT
    try:
        seconds = float(value)
        return max(0.1, min(seconds, 600.0))
    except ValueError:
        return DEFAULT_READER_JOIN_TIMEOUT


def _parse_encoding(value: str | None) -> str:
    """Normalize a codec name, falling back to the platform default."""
    if not value or not value.strip():
        return default_encoding()
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return default_encoding()


def _parse_log_level(value: str | None) -> int:
    if not value:
        return logging.WARNING
    return _LOG_LEVELS.get(value.strip().upper(), logging.WARNING)


@dataclass
class Config:
    """program-runner configuration.

    Attributes:
        timeout_ms: Default CLI timeout in milliseconds
        reader_join_timeout: Bound on joining each output drain (seconds)
        encoding: Codec used for the child's streams
        log_debug: Write DEBUG logs to a temp file
        log_file: Log file path (set automatically when log_debug=True)
        log_level: stderr log level
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    reader_join_timeout: float = DEFAULT_READER_JOIN_TIMEOUT
    encoding: str = "utf-8"
    log_debug: bool = False
    log_file: str | None = None
    log_level: int = logging.WARNING

    def __repr__(self) -> str:
        return (
            f"Config(timeout_ms={self.timeout_ms}, "
            f"reader_join_timeout={self.reader_join_timeout}, "
            f"encoding={self.encoding}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file}, "
            f"log_level={logging.getLevelName(self.log_level)})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "program-runner"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"prr_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from the environment."""
    log_debug = _parse_bool(os.environ.get("PRR_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        timeout_ms=_parse_timeout_ms(os.environ.get("PRR_TIMEOUT_MS")),
        reader_join_timeout=_parse_reader_join_timeout(
            os.environ.get("PRR_READER_JOIN_TIMEOUT")
        ),
        encoding=_parse_encoding(os.environ.get("PRR_ENCODING")),
        log_debug=log_debug,
        log_file=log_file,
        log_level=_parse_log_level(os.environ.get("PRR_LOG_LEVEL")),
    )


# Lazily loaded global config
_config: Config | None = None


def get_config() -> Config:
    """Return the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the config from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
