"""
Metrics API endpoints.

Provides endpoints for:
- GET /api/metrics/database - Row counts and database file size
- GET /api/metrics/status - Database connectivity and configuration
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from flight_analysis import __version__
from flight_analysis.api.flights import get_store
from flight_analysis.config import config

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')


@metrics_bp.route('/database', methods=['GET'])
def get_database_stats():
    start_time = time.perf_counter()
    stats = get_store().database_stats()
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'database': stats,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """Database connectivity plus the settings that shape imports and trims."""
    db_ok = True
    try:
        with get_store().Session() as session:
            session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    return jsonify({
        'status': 'ok' if db_ok else 'degraded',
        'version': __version__,
        'database': {'connected': db_ok},
        'config': {
            'import_batch_size': config.ingestion.batch_size,
            'trim_clock': 'aircraft' if config.analysis.shared_trim_clock else 'series',
            'variance_window': config.analysis.variance_window,
            'upload_extensions': list(config.upload.allowed_extensions),
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
