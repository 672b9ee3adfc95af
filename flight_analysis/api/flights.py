"""
Flight API endpoints.

Provides endpoints for:
- POST /api/flights/upload - Import a logbook database or CSV log
- GET /api/flights - List all flights
- GET /api/flights/<id> - Flight data (per-aircraft position and engine series)
- DELETE /api/flights/<id> - Delete a flight and everything it owns
- POST /api/flights/<id>/duplicate - Full copy under a new title
- POST /api/flights/<id>/trim - Time-windowed copy under a new title
- GET /api/flights/<id>/statistics - Per-aircraft descriptive statistics
- GET /api/flights/<id>/variance - Sliding-window variance of one series
- GET /api/flights/<id>/export - CSV/ZIP download

Store errors propagate to the application error handler, which maps
them to status codes.
"""

import logging
import math
import os
import time
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.utils import secure_filename

from flight_analysis.config import config
from flight_analysis.errors import ValidationError
from flight_analysis.store import FlightStore

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')


def get_store() -> FlightStore:
    return current_app.config['FLIGHT_STORE']


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def require_number(body: dict, key: str) -> float:
    value: Any = body.get(key)
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{key} is required')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number')
    if not math.isfinite(number):
        raise ValidationError(f'{key} must be a finite number')
    return number


@flights_bp.route('/upload', methods=['POST'])
def upload_flight():
    """
    Import an uploaded file.

    Multipart field 'file'. Logbook databases (.sdlog, .sqlite, .db) may
    hold many flights; CSV logs become one flight titled after the file.
    The temporary copy is removed whether the import succeeds or not.
    """
    start_time = time.perf_counter()

    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise ValidationError('No file uploaded')

    filename = secure_filename(upload.filename)
    ext = os.path.splitext(filename)[1].lower()
    if ext not in config.upload.allowed_extensions:
        raise ValidationError(
            f"Unsupported file type '{ext}'. Allowed: "
            f"{', '.join(config.upload.allowed_extensions)}"
        )

    temp_dir = current_app.config['UPLOAD_TEMP_DIR']
    os.makedirs(temp_dir, exist_ok=True)
    temp_path = os.path.join(temp_dir, f'uploaded_{int(time.time() * 1000)}_{filename}')

    try:
        upload.save(temp_path)
        flights = get_store().import_upload(temp_path, filename)
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)

    query_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f'Upload {filename}: imported {len(flights)} flights in {query_time_ms:.0f}ms')

    return jsonify({
        'success': True,
        'message': f'Imported {len(flights)} flight(s)',
        'flights': [f.to_dict() for f in flights],
        'query_time_ms': round(query_time_ms, 2),
    })


@flights_bp.route('', methods=['GET'])
def list_flights():
    """List flights, most recent start first."""
    start_time = time.perf_counter()
    flights = get_store().list_flights()
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'flights': [f.to_dict() for f in flights],
        'count': len(flights),
        'query_time_ms': round(query_time_ms, 2),
    })


@flights_bp.route('/<int:flight_id>', methods=['GET'])
def get_flight_data(flight_id: int):
    start_time = time.perf_counter()
    data = get_store().get_flight_data(flight_id)
    query_time_ms = (time.perf_counter() - start_time) * 1000

    response = data.to_dict()
    response['query_time_ms'] = round(query_time_ms, 2)
    return jsonify(response)


@flights_bp.route('/<int:flight_id>', methods=['DELETE'])
def delete_flight(flight_id: int):
    removed = get_store().delete_flight(flight_id)
    logger.info(f'Flight {flight_id} deleted via API')
    return jsonify({
        'success': True,
        'message': 'Flight deleted successfully',
        'removed': removed,
    })


@flights_bp.route('/<int:flight_id>/duplicate', methods=['POST'])
def duplicate_flight(flight_id: int):
    """Body: {"new_title": "..."}. 409 when the title is taken."""
    body = json_body()
    new_flight_id = get_store().duplicate_flight(flight_id, body.get('new_title', ''))
    logger.info(f'Flight {flight_id} duplicated as {new_flight_id} via API')
    return jsonify({
        'success': True,
        'message': 'Flight duplicated successfully',
        'new_flight_id': new_flight_id,
    })


@flights_bp.route('/<int:flight_id>/trim', methods=['POST'])
def trim_flight(flight_id: int):
    """Body: {"new_title": "...", "start_time": 10.0, "end_time": 40.0}."""
    body = json_body()
    start = require_number(body, 'start_time')
    end = require_number(body, 'end_time')

    new_flight_id = get_store().trim_flight(flight_id, body.get('new_title', ''), start, end)
    logger.info(f'Flight {flight_id} trimmed to [{start}, {end}] as {new_flight_id} via API')
    return jsonify({
        'success': True,
        'message': 'Flight trimmed successfully',
        'new_flight_id': new_flight_id,
    })


@flights_bp.route('/<int:flight_id>/statistics', methods=['GET'])
def get_statistics(flight_id: int):
    start_time = time.perf_counter()
    statistics = get_store().compute_statistics(flight_id)
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'statistics': {label: s.to_dict() for label, s in statistics.items()},
        'query_time_ms': round(query_time_ms, 2),
    })


@flights_bp.route('/<int:flight_id>/variance', methods=['GET'])
def get_variance(flight_id: int):
    """
    Query parameters:
    - field: airspeed|indicated_altitude|altitude|pressure_altitude (default airspeed)
    - window: int, window size in samples (default from config)
    """
    field = request.args.get('field', 'airspeed')
    try:
        window = int(request.args.get('window', config.analysis.variance_window))
    except ValueError:
        raise ValidationError('window must be an integer')

    variance = get_store().compute_variance(flight_id, field, window)
    return jsonify({'field': field, 'window': window, 'variance': variance})


@flights_bp.route('/<int:flight_id>/export', methods=['GET'])
def export_flight(flight_id: int):
    """ZIP download; ?format=airspeed-altitude|full."""
    export_format = request.args.get('format', 'airspeed-altitude')
    filename, payload = get_store().export_csv(flight_id, export_format)

    return Response(
        payload,
        mimetype='application/zip',
        headers={
            'Content-Disposition': f'attachment; filename="{filename}"',
            'Content-Length': str(len(payload)),
        },
    )
