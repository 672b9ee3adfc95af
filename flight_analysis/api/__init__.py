"""
API module for the flight analysis backend.

Provides REST endpoints for:
- Flight import, listing, derivation and deletion
- Markers
- Statistics, export and database metrics
"""

from flight_analysis.api.flights import flights_bp
from flight_analysis.api.markers import markers_bp
from flight_analysis.api.metrics import metrics_bp

__all__ = ['flights_bp', 'markers_bp', 'metrics_bp']
