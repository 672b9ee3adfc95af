"""
Marker API endpoints.

Provides endpoints for:
- GET/POST /api/flights/<id>/markers - List or create markers
- DELETE /api/markers/<marker_id> - Delete one marker
- GET/POST/DELETE /api/flights/<id>/trim-markers - Trim marker pair
- POST /api/flights/<id>/distance-markers - Range-ring crossing markers
"""

import logging

from flask import Blueprint, jsonify

from flight_analysis.api.flights import get_store, json_body, require_number

logger = logging.getLogger(__name__)

markers_bp = Blueprint('markers', __name__, url_prefix='/api')


@markers_bp.route('/flights/<int:flight_id>/markers', methods=['GET'])
def list_markers(flight_id: int):
    markers = get_store().list_markers(flight_id)
    return jsonify({'markers': [m.to_dict() for m in markers]})


@markers_bp.route('/flights/<int:flight_id>/markers', methods=['POST'])
def create_marker(flight_id: int):
    """Body: {"time_seconds": 12.5, "label": "...", "type": "regular"}."""
    body = json_body()
    marker = get_store().create_marker(
        flight_id,
        require_number(body, 'time_seconds'),
        body.get('label', ''),
        body.get('type') or 'regular',
    )
    logger.info(f'Marker {marker.id} created on flight {flight_id} via API')
    return jsonify(marker.to_dict()), 201


@markers_bp.route('/markers/<int:marker_id>', methods=['DELETE'])
def delete_marker(marker_id: int):
    get_store().delete_marker(marker_id)
    logger.info(f'Marker {marker_id} deleted via API')
    return jsonify({'success': True})


@markers_bp.route('/flights/<int:flight_id>/trim-markers', methods=['GET'])
def get_trim_markers(flight_id: int):
    trim = get_store().get_trim_markers(flight_id)
    return jsonify({
        kind: (marker.to_dict() if marker else None)
        for kind, marker in trim.items()
    })


@markers_bp.route('/flights/<int:flight_id>/trim-markers', methods=['POST'])
def upsert_trim_marker(flight_id: int):
    """Body: {"type": "trim_start"|"trim_end", "time_seconds": 10.0, "label": "..."}."""
    body = json_body()
    marker = get_store().upsert_trim_marker(
        flight_id,
        body.get('type', ''),
        require_number(body, 'time_seconds'),
        body.get('label', ''),
    )
    logger.info(f'{marker.type} marker set to {marker.time_seconds}s on flight {flight_id} via API')
    return jsonify(marker.to_dict())


@markers_bp.route('/flights/<int:flight_id>/trim-markers', methods=['DELETE'])
def delete_trim_markers(flight_id: int):
    removed = get_store().delete_trim_markers(flight_id)
    logger.info(f'Removed {removed} trim markers from flight {flight_id} via API')
    return jsonify({'success': True, 'removed': removed})


@markers_bp.route('/flights/<int:flight_id>/distance-markers', methods=['POST'])
def create_distance_markers(flight_id: int):
    """Optional body: {"distance_nm": 9.0}."""
    body = json_body()
    distance_nm = require_number(body, 'distance_nm') if 'distance_nm' in body else None

    created = get_store().create_distance_markers(flight_id, distance_nm=distance_nm)
    logger.info(f'Distance markers for flight {flight_id}: {len(created)} created')
    return jsonify({
        'success': True,
        'message': f'Created {len(created)} distance markers',
        'markers': [m.to_dict() for m in created],
    })
