# backend/pricebook/__init__.py
from flask import Flask, request
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Publish committed table changes to the change feed
    from .services import change_feed
    change_feed.install()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.audit import audit_bp
    from .routes.admin import admin_bp
    from .routes.pages import pages_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(pages_bp)

    @app.errorhandler(404)
    def not_found(error):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(SQLAlchemyError)
    def database_unavailable(error):
        db.session.rollback()
        app.logger.error("Database error on %s %s", request.method, request.path, exc_info=error)
        return {"error": "Service is unavailable. Please try again."}, 503

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
