import logging
import os

from flask import Flask, send_from_directory
from flask_swagger_ui import get_swaggerui_blueprint

from .api.v1 import v1_bp
from .config import config_by_name
from .errors import register_error_handlers
from .extensions import db, migrate, jwt

OPENAPI_FILE = "slots_openapi.yaml"
OPENAPI_URL = "/openapi/slots.yaml"
SWAGGER_URL = "/swagger"


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # Core modules log through "slotlayout.*"
    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Models must be imported before migrations/create_all see the metadata
    from .models import slot_configuration, audit_log  # noqa: F401

    # -------------------------------------------------
    # API Blueprints
    # -------------------------------------------------
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)

    register_api_docs(app)
    return app


def register_api_docs(app: Flask) -> None:
    """Public OpenAPI document plus Swagger UI on top of it."""
    docs_dir = os.path.join(app.root_path, "api", "v1")

    @app.route(OPENAPI_URL, methods=["GET"], endpoint="openapi_slots")
    def serve_openapi():
        return send_from_directory(docs_dir, OPENAPI_FILE, mimetype="application/yaml")

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        OPENAPI_URL,
        config={
            "app_name": "Slot Layout API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )
    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)
