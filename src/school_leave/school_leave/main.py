from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables, seed_default_quotas

from .container import Container, build_container
from .applications.controller import register as register_applications
from .quotas.controller import register as register_quotas

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"), db_config.get("host"), db_config.get("port", 3306), db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            seed_default_quotas(db_config)
            logger.info("default leave quotas seeded")

        container = build_container(
            db_config=db_config,
            poll_interval_seconds=float(getattr(settings, "LEAVE_POLL_INTERVAL_SECONDS", 10)),
        )

        if bool(getattr(settings, "LEAVE_BACKGROUND_PROCESSING", False)):
            # Admin-side re-scan: every applicant's approved leaves get processed.
            container.leave_watcher.subscribe(None, container.processing_engine.process_discovered)

    app.extensions["school_leave"] = container

    register_applications(app, container)
    register_quotas(app, container)

    return app
