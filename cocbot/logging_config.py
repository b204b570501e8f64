"""Logging setup for cocbot.

structlog renders every event; stdlib logging routes the rendered line.
Everything reaches the console and ``logs/cocbot.log``. Each subsystem
logger (``cocbot.bot``, ``cocbot.commands``, ``cocbot.store``,
``cocbot.security``) additionally writes its own rotating file, so alias
traffic can be read apart from transport chatter.

Key functions:
    setup_logging: (Re)build handlers and the structlog pipeline.
    mask: Shorten a Signal identifier to its last four characters.
    mask_identifiers: structlog processor applying mask() to event values.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog

SUBSYSTEMS = ("bot", "commands", "store", "security")
LOGGER_PREFIX = "cocbot"

_DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"
_DEFAULT_MAX_BYTES = 10 * 1024 * 1024
_DEFAULT_BACKUP_COUNT = 5

# Signal ids that end up in event values: group recipients, E.164
# numbers and account UUIDs. Group ids come first so a "+digits" run
# inside their base64 is not matched on its own.
_SIGNAL_ID = re.compile(
    r"group\.[A-Za-z0-9+/=]+"
    r"|\+\d{7,15}"
    r"|\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b",
    re.IGNORECASE,
)

# structlog already renders timestamp, level and logger name
_LINE = logging.Formatter("%(message)s")


def mask(identifier: str) -> str:
    """Mask a sender or channel id down to its last four characters."""
    return "..." + identifier[-4:]


def _mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return _SIGNAL_ID.sub(lambda m: mask(m.group(0)), value)
    if isinstance(value, dict):
        return {k: _mask_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_mask_value(v) for v in value)
    return value


def mask_identifiers(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Mask any Signal id a call site forgot to pass through mask().

    The event name is left as is.
    """
    for key, value in event_dict.items():
        if key != "event":
            event_dict[key] = _mask_value(value)
    return event_dict


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    return getattr(logging, str(name).upper(), default)


def _reset(logger: logging.Logger, level: int) -> logging.Logger:
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)
    return logger


def _rotating_file(path: Path, level: int, max_bytes: int, backup_count: int):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(_LINE)
    return handler


def setup_logging(config=None) -> None:
    """Configure structlog and the stdlib handlers behind it.

    main() calls this twice: first without a config so that errors while
    loading settings are still logged, then with the loaded Config. Only
    the second call lets structlog cache its loggers.

    Args:
        config: Optional Config providing log_dir, logging_level,
            logging_subsystem_levels, logging_max_file_size_mb and
            logging_backup_count.
    """
    if config is None:
        log_dir = _DEFAULT_LOG_DIR
        level = logging.INFO
        overrides: Mapping[str, str] = {}
        max_bytes = _DEFAULT_MAX_BYTES
        backup_count = _DEFAULT_BACKUP_COUNT
    else:
        log_dir = config.log_dir
        level = _level(config.logging_level, logging.INFO)
        overrides = config.logging_subsystem_levels
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: cannot create log directory {log_dir}: {exc}; "
            "logging to the console only",
            file=sys.stderr,
        )
        log_dir = None

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(_LINE)
    # Handlers do the level filtering, the loggers let everything through
    _reset(logging.getLogger(), logging.DEBUG).addHandler(console)

    combined = _reset(logging.getLogger(LOGGER_PREFIX), logging.DEBUG)
    if log_dir is not None:
        combined.addHandler(_rotating_file(
            log_dir / f"{LOGGER_PREFIX}.log", level, max_bytes, backup_count,
        ))

    for subsystem in SUBSYSTEMS:
        sub_level = _level(overrides.get(subsystem), level)
        sub_logger = _reset(logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}"), sub_level)
        if log_dir is not None:
            sub_logger.addHandler(_rotating_file(
                log_dir / f"{subsystem}.log", sub_level, max_bytes, backup_count,
            ))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            mask_identifiers,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
