# backend/storedesk/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None) -> Flask:
    """Build the API app. Tests pass overrides (in-memory DB, cheap bcrypt)."""
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    app.config.update(config_overrides or {})

    db.init_app(app)

    # The key-value table is the only schema; no migrations
    from . import models  # noqa: F401
    with app.app_context():
        db.create_all()

    from .routes.auth import auth_bp
    from .routes.customers import customers_bp
    from .routes.products import products_bp
    from .routes.reports import reports_bp
    from .routes.sales import sales_bp
    from .routes.stores import stores_bp
    from .routes.system import system_bp

    for blueprint in (system_bp, auth_bp, stores_bp, products_bp, customers_bp, sales_bp, reports_bp):
        app.register_blueprint(blueprint)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    from .cli import register_commands
    register_commands(app)

    return app
