"""
Analytics module for the flight analysis backend.

Provides read-only analysis of canonical telemetry:
- Descriptive statistics per aircraft and series
- Sliding-window variance
- Range-ring crossings for distance markers
"""

from flight_analysis.analytics.statistics import (
    DataStatistics,
    FlightStatistics,
    calculate_data_statistics,
    calculate_flight_statistics,
    variance_over_time,
)
from flight_analysis.analytics.distance import find_distance_crossing, haversine_distance_nm

__all__ = [
    'DataStatistics',
    'FlightStatistics',
    'calculate_data_statistics',
    'calculate_flight_statistics',
    'variance_over_time',
    'find_distance_crossing',
    'haversine_distance_nm',
]
