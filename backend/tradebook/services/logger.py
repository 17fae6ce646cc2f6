# tradebook/services/logger.py
import logging
import sys
from typing import Union

_DEFAULT_LEVEL = logging.INFO
_configured = False

# chatty third-party loggers; SQL echo is controlled by SQL_ECHO, not LOG_LEVEL
_QUIET_LOGGERS = ("sqlalchemy.pool", "uvicorn.access", "httpx")


def _coerce_level(level: Union[int, str, None]) -> int:
    if level is None:
        return _DEFAULT_LEVEL
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else _DEFAULT_LEVEL


def setup_logging(level: Union[int, str, None] = None) -> None:
    """Console logging for the API, the CLI and the nightly job. First call wins."""
    global _configured
    if _configured:
        return
    log_level = _coerce_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )
    )
    root = logging.getLogger()
    root.setLevel(log_level)
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    _configured = True
    logging.getLogger("tradebook").info(f"Logging configured: level={logging.getLevelName(log_level)}")
