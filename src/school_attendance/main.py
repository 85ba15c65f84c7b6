from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .classes.controller import register as register_classes
from .common.http import EXTENSION_KEY, register_error_handlers
from .container import Container, build_container, build_memory_container
from .core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD
from .database.bootstrap import apply_schema, ensure_demo_data, list_tables, seed_demo_repositories
from .database.connection import DBConfig
from .reports.controller import register as register_reports
from .students.controller import register as register_students
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _container_from_settings(settings) -> Container:
    storage = str(getattr(settings, "STORAGE", "mysql")).lower()
    atomic_bulk = bool(getattr(settings, "ATOMIC_BULK_ATTENDANCE", False))
    threshold = float(getattr(settings, "LOW_ATTENDANCE_THRESHOLD", DEFAULT_LOW_ATTENDANCE_THRESHOLD))
    auto_seed_db = bool(getattr(settings, "AUTO_SEED_DB", False))

    if storage == "memory":
        container = build_memory_container(atomic_bulk=atomic_bulk, low_attendance_threshold=threshold)
        logger.info("Storage: in-memory")
        if auto_seed_db:
            seed_demo_repositories(container)
        return container

    db_config = getattr(settings, "DB_CONFIG")
    logger.info("Storage: mysql %s", DBConfig.from_dict(db_config).describe())
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
    if auto_seed_db:
        ensure_demo_data(db_config)
    return build_container(db_config=db_config, atomic_bulk=atomic_bulk, low_attendance_threshold=threshold)


def create_app(settings_module: Optional[str] = None, container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    logger.info("Settings: %s", settings_module)

    container = container or _container_from_settings(settings)
    app.extensions[EXTENSION_KEY] = container

    register_error_handlers(app)
    register_users(app, container)
    register_classes(app, container)
    register_students(app, container)
    register_attendance(app, container)
    register_reports(app, container)

    @app.route("/api/health", endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    return app
