from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http_errors import register_error_handlers
from .common.logging_config import setup_logging
from .core.constants import DEFAULT_TIMEZONE
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import Container, build_container
from .rbac.controller import register as register_rbac
from .schedules.controller import register as register_schedules
from .time_entries.controller import register as register_time_entries
from .timer.controller import register as register_timer
from .timesheets.controller import register as register_timesheets
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def register_routes(app: Flask, container: Container) -> None:
    register_error_handlers(app)
    register_users(app, container)
    register_rbac(app, container)
    register_schedules(app, container)
    register_time_entries(app, container)
    register_timer(app, container)
    register_timesheets(app, container)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory. Pass ``container`` to run against pre-built services (tests)."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(
        log_dir=getattr(settings, "LOG_DIR", "logs"),
        level=getattr(settings, "LOG_LEVEL", "INFO"),
    )
    logger.info(
        "Starting workforce (settings=%s db=%s@%s:%s/%s)",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Seed data ready")

        container = build_container(
            db_config=db_config,
            default_timezone=getattr(settings, "DEFAULT_TIMEZONE", DEFAULT_TIMEZONE),
        )

    register_routes(app, container)
    return app
