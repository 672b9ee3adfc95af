"""
Flight analysis Flask application.

Main entry point for the web application. Initializes:
- Canonical database schema
- API routes
- Error handlers mapping store errors to status codes

Usage:
    python -m flight_analysis.app

Or with gunicorn:
    gunicorn "flight_analysis.app:create_app()"
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from flight_analysis.config import config
from flight_analysis.errors import FlightStoreError
from flight_analysis.api import flights_bp, markers_bp, metrics_bp
from flight_analysis.store import FlightStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    store: Optional[FlightStore] = None,
    upload_dir: Optional[str] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        store: Flight store to serve. Created from DATABASE_URL if None;
               tests pass their own.
        upload_dir: Directory for temporary uploads (UPLOAD_TEMP_DIR if None).

    Returns:
        Configured Flask application instance.

    Raises:
        SchemaError: the canonical schema could not be set up.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key
    app.config['MAX_CONTENT_LENGTH'] = config.upload.max_content_mb * 1024 * 1024
    app.config['UPLOAD_TEMP_DIR'] = upload_dir or config.upload.temp_dir

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize database; a schema failure stops startup
    store = store or FlightStore()
    logger.info(f'Initializing database {store.engine.url}...')
    store.ensure_schema()
    app.config['FLIGHT_STORE'] = store

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(markers_bp)
    app.register_blueprint(metrics_bp)

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(FlightStoreError)
    def store_error(e: FlightStoreError):
        if e.status_code >= 500:
            logger.error(f'Store error: {e}')
        else:
            logger.warning(f'Rejected request: {e}')
        return {'error': str(e)}, e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(413)
    def too_large(e):
        return {'error': f'Upload exceeds {config.upload.max_content_mb}MB'}, 413

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting flight analysis on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
    )


if __name__ == '__main__':
    run_development_server()
