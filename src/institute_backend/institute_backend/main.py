from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .alerts.controller import register as register_alerts
from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_branch, list_tables
from .fees.controller import register as register_fees
from .followups.controller import register as register_followups
from .payroll.controller import register as register_payroll
from .reports.controller import register as register_reports
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def load_settings() -> dict[str, Any]:
    """Upper-case attributes of the settings module APP_ENV selects."""
    module = importlib.import_module(get_settings_module())
    return {name: getattr(module, name) for name in dir(module) if name.isupper()}


def create_app(container: Optional[Container] = None, *, settings: Optional[dict[str, Any]] = None) -> Flask:
    load_dotenv(override=False)
    settings = settings if settings is not None else load_settings()

    logging.basicConfig(
        level=str(settings.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["DEBUG"] = bool(settings.get("DEBUG", False))
    app.config["TESTING"] = bool(settings.get("TESTING", False))

    if container is None:
        db_config = settings["DB_CONFIG"]
        if settings.get("AUTO_INIT_DB"):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if settings.get("AUTO_SEED_DB"):
            ensure_demo_branch(db_config)
            logger.info("Demo branch ready")
        container = build_container(db_config=db_config, settings=settings)

    register_error_handlers(app)
    register_auth(app, container)
    register_users(app, container)
    register_attendance(app, container)
    register_fees(app, container)
    register_payroll(app, container)
    register_alerts(app, container)
    register_followups(app, container)
    register_reports(app, container)

    return app
