"""Environment and utility functions."""

import logging
import os
import sys
from pathlib import Path

from ..config import ENV_FILE, ENV_PREFIX, LOG_FORMAT, LOG_DATE_FORMAT

# Settings that may be overridden from the environment, with their parsers
OVERRIDABLE_SETTINGS: dict[str, type] = {
    "LOG_LEVEL": str,
    "COLOR_THRESHOLD": float,
    "EQUALITY_THRESHOLD": float,
}


def _read_env_file(env_file: str | Path) -> dict[str, str]:
    """Internal helper to read prefixed KEY=value pairs from a .env file."""
    values: dict[str, str] = {}
    env_path = Path(env_file)
    if not env_path.exists():
        return values
    try:
        with open(env_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if key.startswith(ENV_PREFIX):
                    values[key] = value.strip().strip('"').strip("'")
    except OSError as e:
        logging.getLogger(__name__).debug(f"Failed to read {env_file}: {e}")
    return values


def load_env_overrides(env_file: str | Path | None = ENV_FILE) -> dict[str, object]:
    """Load setting overrides from the environment or a .env file.

    Process environment variables win over the file. Keys are returned
    lower-cased without the prefix, e.g. ``VISUAL_DIFFER_COLOR_THRESHOLD``
    becomes ``color_threshold``. Unparseable values are logged and skipped.

    Args:
        env_file: Path to the .env file (None to skip it)

    Returns:
        Dict of parsed override values
    """
    raw = _read_env_file(env_file) if env_file else {}
    for name in OVERRIDABLE_SETTINGS:
        key = f"{ENV_PREFIX}{name}"
        if key in os.environ:
            raw[key] = os.environ[key]

    overrides: dict[str, object] = {}
    for name, parser in OVERRIDABLE_SETTINGS.items():
        key = f"{ENV_PREFIX}{name}"
        if key not in raw:
            continue
        try:
            overrides[name.lower()] = parser(raw[key])
        except ValueError:
            logging.getLogger(__name__).warning(f"Ignoring invalid value for {key}: {raw[key]!r}")
    return overrides


def resolve_log_level(default: int = logging.INFO) -> int:
    """Get the log level named by VISUAL_DIFFER_LOG_LEVEL, if any."""
    name = str(load_env_overrides().get("log_level", "")).upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(level: int | None = None, log_file: str | None = None) -> None:
    """Set up logging configuration.

    Logs are written to the console (stderr) and optionally a file.

    Args:
        level: Logging level (None to read it from the environment)
        log_file: Path to log file (None to disable file logging)
    """
    if level is None:
        level = resolve_log_level()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as e:
            # Fall back to console-only if file logging fails
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True  # Replace any existing handlers
    )
