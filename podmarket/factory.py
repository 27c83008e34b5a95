# -*- coding: utf-8 -*-
import os

from flask import Flask
from flask_cors import CORS

from podmarket.config import Config, _normalize_db_url
from podmarket.database import db

# Observability imports
from podmarket.services.metrics import init_metrics
from podmarket.services.request_context import init_request_context
from podmarket.services.structured_logging import init_logging


def create_app(config_overrides=None, *, payment_processor=None, object_store=None,
               email_sender=None, credential_store=None) -> Flask:
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # --- Config ---
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    app.config["SQLALCHEMY_DATABASE_URI"] = _normalize_db_url(app.config["SQLALCHEMY_DATABASE_URI"])

    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///"):
        os.makedirs(os.path.dirname(db_uri[len("sqlite:///"):]) or ".", exist_ok=True)
    db.init_app(app)

    # --- CORS ---
    cors_origins = [
        origin.strip() for origin in app.config["CORS_ALLOWED_ORIGINS"].split(",") if origin.strip()
    ]
    CORS(app, resources={
        r"/api/*": {
            "origins": cors_origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Request-ID"],
            "supports_credentials": True,
            "max_age": 600,
        }}
    )

    # --- Initialize observability ---
    init_logging(app)
    init_request_context(app)
    init_metrics(app)

    # --- Rate limiting ---
    from podmarket.services.rate_limiter import init_rate_limiter
    init_rate_limiter(app)

    # --- Core services ---
    from podmarket.services.container import build_services
    app.extensions['podmarket'] = build_services(
        app.config,
        store=credential_store,
        payment_processor=payment_processor,
        object_store=object_store,
        email_sender=email_sender,
    )

    # --- Sessions and error handlers ---
    from podmarket.middleware.auth import init_auth
    from podmarket.middleware.errors import register_error_handlers
    init_auth(app)
    register_error_handlers(app)

    # --- Mount blueprints ---
    from podmarket.routes import admin, auth, catalog, checkout, health, library, objects
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(catalog.catalog_bp)
    app.register_blueprint(checkout.checkout_bp)
    app.register_blueprint(library.library_bp)
    app.register_blueprint(objects.objects_bp)
    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(health.health_bp)

    from podmarket.cli import register_cli
    register_cli(app)

    # --- DB init ---
    with app.app_context():
        # Only auto-create tables in testing or if explicitly enabled
        if app.config.get("TESTING") or app.config.get("DB_AUTOCREATE"):
            import podmarket.models  # noqa: F401  (register tables)
            db.create_all()

    return app
