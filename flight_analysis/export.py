"""
CSV/ZIP export of flight telemetry.

The archive holds two CSV files, elapsed seconds against indicated
airspeed and against altitude. Rows of all aircraft are concatenated in
aircraft order with no aircraft column.
"""

import csv
import io
import zipfile
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from flight_analysis.errors import ValidationError
from flight_analysis.queries import FlightData, PositionPoint

EXPORT_FORMATS: Dict[str, str] = {
    'airspeed-altitude': '_airspeed_altitude',
    'full': '_full_data',
}
DEFAULT_EXPORT_FORMAT = 'airspeed-altitude'

AIRSPEED_FILE = 'airspeed_data.csv'
ALTITUDE_FILE = 'altitude_data.csv'


def _series_csv(positions: Dict[str, List[PositionPoint]], header: str, field: str) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(['Timestamp', header])
    for points in positions.values():
        for point in points:
            writer.writerow([
                f'{point.timestamp_seconds:.1f}',
                f'{getattr(point, field):.2f}',
            ])
    return buf.getvalue()


def build_export_archive(data: FlightData) -> bytes:
    """Zip bytes with the airspeed and altitude CSV files."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(AIRSPEED_FILE, _series_csv(data.positions, 'IAS', 'airspeed'))
        archive.writestr(ALTITUDE_FILE, _series_csv(data.positions, 'Altitude', 'altitude'))
    return buf.getvalue()


def export_filename(
    flight_id: int,
    title: Optional[str],
    export_format: str,
    now: Optional[datetime] = None,
) -> str:
    """'<title><format suffix>_<YYYYmmdd_HHMMSS>.zip'"""
    stamp = (now or datetime.now()).strftime('%Y%m%d_%H%M%S')
    name = title or f'Flight_{flight_id}'
    # Keep the name usable as a single path component
    name = name.replace('/', '_').replace('\\', '_')
    return f'{name}{EXPORT_FORMATS[export_format]}_{stamp}.zip'


def export_flight(
    data: FlightData,
    raw_title: Optional[str],
    export_format: str = DEFAULT_EXPORT_FORMAT,
) -> Tuple[str, bytes]:
    """
    Returns (filename, zip bytes).

    Raises:
        ValidationError: unknown export format.
    """
    if export_format not in EXPORT_FORMATS:
        raise ValidationError(
            f"Unknown export format '{export_format}', "
            f"expected one of {', '.join(EXPORT_FORMATS)}"
        )
    return (
        export_filename(data.flight.id, raw_title, export_format),
        build_export_archive(data),
    )
