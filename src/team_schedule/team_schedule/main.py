from __future__ import annotations

import importlib
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.app_logger import get_logger, setup_logging
from .core.constants import VENUE_UNDECIDED
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .categories.controller import register as register_categories
from .schedules.controller import register as register_schedules
from .students.controller import register as register_students
from .teams.controller import register as register_teams
from .tuition.controller import register as register_tuition

logger = get_logger("app")


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the JSON API. A prebuilt ``container`` skips database setup."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", None))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["VENUE_UNDECIDED_LABEL"] = getattr(settings, "VENUE_UNDECIDED_LABEL", VENUE_UNDECIDED)

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        root = Path(__file__).resolve().parents[3]
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=root / "database" / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=root / "database" / "seed.sql")
            logger.info("demo seed ready")

        container = build_container(db_config=db_config)

    register_teams(app, container)
    register_categories(app, container)
    register_students(app, container)
    register_schedules(app, container)
    register_attendance(app, container)
    register_tuition(app, container)

    return app
