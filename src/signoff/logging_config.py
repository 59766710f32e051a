from __future__ import annotations

import logging

from signoff.config import get_settings

_LOG_CONFIGURED = False

# Libraries that log per statement or per request at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "alembic.runtime.migration")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
    logging.getLogger("signoff").debug("Logging configured at %s", name)
    _LOG_CONFIGURED = True
