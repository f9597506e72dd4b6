from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

# Loggers whose records also go to time_tracking.log
TIME_TRACKING_LOGGERS = (
    "src.workforce.workforce.time_entries.service",
    "src.workforce.workforce.timer.service",
    "src.workforce.workforce.timesheets.service",
)


def _rotating_handler(path: Path, *, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(*, log_dir: Union[str, Path] = "logs", level: Union[str, int] = "INFO") -> Path:
    """Configure console + rotating file logging for the whole application.

    - app.log: everything at ``level`` and above
    - errors.log: ERROR and above
    - time_tracking.log: DEBUG output of the time-entry, timer and timesheet services
    """

    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(
        _rotating_handler(logs_dir / "app.log", level=level, max_bytes=10 * 1024 * 1024, backup_count=5)
    )
    root_logger.addHandler(
        _rotating_handler(logs_dir / "errors.log", level=logging.ERROR, max_bytes=5 * 1024 * 1024, backup_count=5)
    )

    time_handler = _rotating_handler(
        logs_dir / "time_tracking.log", level=logging.DEBUG, max_bytes=5 * 1024 * 1024, backup_count=3
    )
    for name in TIME_TRACKING_LOGGERS:
        service_logger = logging.getLogger(name)
        service_logger.handlers.clear()
        service_logger.addHandler(time_handler)
        service_logger.setLevel(logging.DEBUG)

    # Suppress noisy third-party loggers
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("mysql.connector").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured (dir=%s)", logs_dir.absolute())
    return logs_dir
