# backend/fieldsales/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services.notification_service import NotificationDispatcher


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    NotificationDispatcher(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.managers import managers_bp
    from .routes.agents import agents_bp
    from .routes.workers import workers_bp
    from .routes.users import users_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(managers_bp)
    app.register_blueprint(agents_bp)
    app.register_blueprint(workers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(notifications_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or ())

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
