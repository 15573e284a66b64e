# backend/erp/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .validation import register_error_handlers


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Applied before extensions bind so tests can swap the database URI
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.purchases import purchases_bp
    from .routes.sales import sales_bp
    from .routes.production import production_bp
    from .routes.transfers import transfers_bp
    from .routes.trash import trash_bp
    from .routes.payments import supplier_payments_bp, customer_payments_bp
    from .routes.reports import reports_bp
    from .routes.maintenance import maintenance_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(production_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(trash_bp)
    app.register_blueprint(supplier_payments_bp)
    app.register_blueprint(customer_payments_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(maintenance_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
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
