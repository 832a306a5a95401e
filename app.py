import os
import time
import logging

from flask import Flask, jsonify, request, g
from flask_cors import CORS
from flask_jwt_extended import JWTManager, get_jwt_identity, verify_jwt_in_request
from marshmallow import ValidationError

from config import config
from database import init_database
from error_tracking import error_tracker
from logging_config import setup_app_logging
from services import CatalogError

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all API blueprints."""
    from health_check import health_bp
    from orders_api import orders_bp
    from products_api import products_bp
    from webhook_api import webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(webhook_bp)


def _current_identity():
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt_identity()
    except Exception:
        return None


def register_error_handlers(app):
    """Map the error taxonomy and marshmallow failures onto JSON responses."""

    @app.errorhandler(CatalogError)
    def handle_catalog_error(error):
        if error.status_code >= 500:
            error_tracker.track_error(
                error,
                context=error.details,
                user_id=_current_identity(),
                endpoint=request.path,
                method=request.method,
                status_code=error.status_code
            )
        else:
            logger.info(f"{request.method} {request.path} rejected: {error.category.value}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify({
            'error': 'Invalid request data',
            'category': 'validation',
            'details': error.messages
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found', 'category': 'not_found', 'details': {}}), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal error: {error}")
        return jsonify({'error': 'Internal server error', 'category': 'storage', 'details': {}}), 500


def create_app(config_name=None):
    """Application factory."""
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    setup_app_logging(app, app.config.get('LOG_PATH'))

    JWTManager(app)

    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"])

    init_database(app.config['DATABASE_URL'], create_tables=app.config['DATABASE_CREATE_TABLES'])

    register_blueprints(app)
    register_error_handlers(app)

    @app.before_request
    def track_request_start():
        g.start_time = time.time()

    @app.after_request
    def track_request_end(response):
        """Track request completion and performance."""
        start_time = g.get('start_time')
        if start_time is not None:
            duration = time.time() - start_time
            error_tracker.track_request(success=response.status_code < 500)

            # Log slow requests
            if duration > 1.0:
                app.logger.warning(f"Slow request: {request.method} {request.path} took {duration:.2f}s")

        return response

    app.logger.info(f"Application created with '{config_name}' configuration")
    return app


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    application = create_app()
    application.run(host='0.0.0.0', port=port, debug=application.config.get('DEBUG', False))
