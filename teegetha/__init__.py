"""
TeeGetha - Flask Application Factory
Backend proxy for the family t-shirt wizard: background removal,
Printify order planning/submission and Stripe payments
"""

import os
from pathlib import Path
from flask import Flask
from loguru import logger
from dotenv import load_dotenv

from .config import AppConfig, load_catalog, load_config


def create_app(config_name=None, config_overrides=None, services=None):
    """Flask application factory"""

    # Load environment variables
    load_dotenv()

    app = Flask(__name__)

    # Load configuration
    config = load_config(config_name or os.getenv('FLASK_ENV', 'development'))
    if config_overrides:
        config = AppConfig(**{**config.model_dump(), **config_overrides})
    app.config.update(config.model_dump())

    # Configure logging
    setup_logging(app)

    # Vendor adapters, orchestrator and pipeline are shared, read-only state
    if services is None:
        from .services import build_services
        services = build_services(config, load_catalog())
    app.extensions['teegetha'] = services

    setup_cors(app)

    # Register blueprints
    from . import routes
    app.register_blueprint(routes.bp)

    logger.info(f"TeeGetha initialized in {config_name or config.FLASK_ENV} mode"
                f"{' (TEST_MODE)' if config.TEST_MODE else ''}")

    return app


def setup_logging(app):
    """Configure loguru logging"""
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    log_file = app.config.get('LOG_FILE', 'logs/app.log')

    # Ensure logs directory exists
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        rotation="1 day",
        retention="30 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )


def setup_cors(app):
    """Allow the browser frontend to call the proxy"""
    origin = app.config.get('CORS_ORIGIN', '*')

    @app.after_request
    def add_cors_headers(response):
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Stripe-Signature'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        return response
