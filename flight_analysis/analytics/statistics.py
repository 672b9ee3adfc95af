"""
Descriptive statistics over flight telemetry using NumPy.

Each aircraft gets independent summaries of four series:

1. Airspeed: samples <= 0 are dropped (no airspeed recorded)
2. Indicated altitude, altitude, pressure altitude: exactly-zero samples
   are dropped (0.0 is the missing-value sentinel, not a reading)

Variance and standard deviation are population statistics (ddof=0).
A sliding-window variance supports exploratory smoothing of any series.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from flight_analysis.queries import PositionPoint

logger = logging.getLogger(__name__)

# Series that can be summarised or windowed, keyed by PositionPoint field
SERIES_FIELDS = ('airspeed', 'indicated_altitude', 'altitude', 'pressure_altitude')


@dataclass
class DataStatistics:
    """Summary of one numeric series."""
    count: int
    mean: float
    variance: float
    std_dev: float
    min: float
    max: float
    range: float
    median: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FlightStatistics:
    """Per-aircraft summaries; None where a series has no valid samples."""
    airspeed: Optional[DataStatistics] = None
    indicated_altitude: Optional[DataStatistics] = None
    altitude: Optional[DataStatistics] = None
    pressure_altitude: Optional[DataStatistics] = None

    def to_dict(self) -> dict:
        return {
            name: (getattr(self, name).to_dict() if getattr(self, name) else None)
            for name in SERIES_FIELDS
        }


def calculate_data_statistics(values: Iterable[float]) -> Optional[DataStatistics]:
    """Summary statistics, or None for an empty series."""
    data = np.asarray(list(values), dtype=float)
    if data.size == 0:
        return None

    variance = float(np.var(data))
    return DataStatistics(
        count=int(data.size),
        mean=float(np.mean(data)),
        variance=variance,
        std_dev=float(np.sqrt(variance)),
        min=float(np.min(data)),
        max=float(np.max(data)),
        range=float(np.ptp(data)),
        median=float(np.median(data)),
    )


def series_values(points: List[PositionPoint], field: str) -> np.ndarray:
    """Valid samples of one series with the missing-value rule applied."""
    values = np.array([getattr(p, field) for p in points], dtype=float)
    if field == 'airspeed':
        return values[values > 0]
    return values[values != 0]


def calculate_flight_statistics(
    position_data: Dict[str, List[PositionPoint]],
) -> Dict[str, FlightStatistics]:
    """Statistics per aircraft label."""
    results = {}
    for label, points in position_data.items():
        if not points:
            continue
        results[label] = FlightStatistics(**{
            field: calculate_data_statistics(series_values(points, field))
            for field in SERIES_FIELDS
        })
    return results


def variance_over_time(data: Iterable[float], window_size: int) -> List[float]:
    """
    Population variance over a sliding window.

    Returns one value per full window position, or an empty list when
    the window exceeds the data length or is too small to vary.
    """
    values = np.asarray(list(data), dtype=float)
    if window_size <= 1 or values.size < window_size:
        return []

    windows = sliding_window_view(values, window_size)
    return windows.var(axis=1).tolist()
