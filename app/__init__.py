"""Flask application factory for the order intake API."""

import logging
import os
from typing import Callable, Optional

from flask import Flask
from flask_cors import CORS

from app.api import api_bp
from config.settings import Settings, get_settings


def create_app(
    settings: Optional[Settings] = None,
    wizard_factory: Optional[Callable] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        settings: Settings (defaults to get_settings())
        wizard_factory: Callable returning a StepController; defaults to
            workflow.create_order_wizard. Tests inject fakes here.

    Returns:
        Configured Flask app
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-in-production")
    app.config["SETTINGS"] = settings
    app.config["WIZARD_FACTORY"] = wizard_factory

    # CORS - Allow all origins for development
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    app.register_blueprint(api_bp, url_prefix='/api')

    @app.route('/health')
    def health():
        return {'status': 'ok', 'service': 'tailor-order-intake', 'environment': settings.environment}

    return app
