"""
CSV flight log parser.

Turns a vendor CSV export (e.g. FS-FlightControl recordings) into typed
records. Vendors name and order their columns differently, so columns are
recognised by keyword rather than by position:

1. Banner rows above the header carry metadata (source tool, recording
   time) and are scanned for known markers.
2. The header row is the first row naming at least three of Time,
   Altitude, Latitude and Longitude.
3. Each header is resolved once against COLUMN_RULES, an ordered table
   of (keyword, field) rules where the first match wins.

Parsing is tolerant: a row with the wrong field count is skipped and an
unparseable number leaves its field at zero. Only a file with no usable
record at all is rejected.
"""

import csv
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, TextIO, Tuple

from flight_analysis.errors import SourceSchemaError

logger = logging.getLogger(__name__)

DEFAULT_CSV_TITLE = 'Imported CSV Flight'
DEFAULT_AIRCRAFT_TYPE = 'Unknown'

# Header detection: at least HEADER_MIN_MATCHES of these must appear
HEADER_KEYWORDS = ('time', 'altitude', 'latitude', 'longitude')
HEADER_MIN_MATCHES = 3

METADATA_SCAN_ROWS = 5


@dataclass
class CSVImportOptions:
    """Caller overrides; empty strings fall back to metadata defaults."""
    title: str = ''
    aircraft_type: str = ''
    skip_rows: int = 0


@dataclass
class CSVMetadata:
    source: str = 'Unknown'
    recorded_at: str = ''
    flight_title: str = ''
    aircraft_type: str = ''
    total_records: int = 0


@dataclass
class CSVFlightRecord:
    """One CSV data row. Speeds in knots, altitudes in feet, angles in degrees."""
    time: str = ''
    timestamp_seconds: float = 0.0
    airspeed_indicated: float = 0.0
    airspeed_true: float = 0.0
    ground_speed: float = 0.0
    altitude: float = 0.0
    ground_elevation: float = 0.0
    latitude: float = 0.0
    longitude: float = 0.0
    bank_angle: float = 0.0
    pitch_angle: float = 0.0
    heading_magnetic: float = 0.0
    heading_true: float = 0.0
    ambient_temperature: float = 0.0
    wind_direction: float = 0.0
    wind_velocity: float = 0.0
    flaps_position: float = 0.0
    fuel_total: float = 0.0
    gear_down: bool = False
    on_ground: bool = False
    g_force: float = 0.0
    vertical_speed: float = 0.0
    overspeed_warning: bool = False
    stall_warning: bool = False


def _parse_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


def _parse_text(value: str) -> str:
    return value


def normalize_header(header: str) -> str:
    """Lower-case and drop spaces/underscores: 'Airspeed Indicated' -> 'airspeedindicated'."""
    return header.lower().replace(' ', '').replace('_', '')


@dataclass(frozen=True)
class ColumnRule:
    """
    Maps CSV columns whose name contains `keyword` onto a record field.

    `requires` lists further substrings that must all be present and
    `excludes` substrings that must be absent.
    """
    keyword: str
    field: str
    parse: Callable[[str], Any] = _parse_float
    requires: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    case_sensitive: bool = False

    def matches(self, header: str) -> bool:
        name = header if self.case_sensitive else normalize_header(header)
        if self.keyword not in name:
            return False
        if any(r not in name for r in self.requires):
            return False
        return not any(e in name for e in self.excludes)


# Order matters: the first matching rule claims the column
COLUMN_RULES: Tuple[ColumnRule, ...] = (
    ColumnRule('Time', 'time', _parse_text, case_sensitive=True),
    ColumnRule('airspeedindicated', 'airspeed_indicated'),
    ColumnRule('airspeedtrue', 'airspeed_true'),
    ColumnRule('groundspeed', 'ground_speed'),
    ColumnRule('altitude', 'altitude', requires=('feet',)),
    ColumnRule('groundelevation', 'ground_elevation'),
    ColumnRule('latitude', 'latitude'),
    ColumnRule('longitude', 'longitude'),
    ColumnRule('bankangle', 'bank_angle'),
    ColumnRule('pitchangle', 'pitch_angle'),
    ColumnRule('headingmagnetic', 'heading_magnetic'),
    ColumnRule('headingtrue', 'heading_true'),
    ColumnRule('ambienttemperature', 'ambient_temperature', excludes=('total',)),
    ColumnRule('ambientwinddirection', 'wind_direction'),
    ColumnRule('ambientwindvelocity', 'wind_velocity'),
    ColumnRule('flapshandleposition', 'flaps_position'),
    ColumnRule('fueltotalquantity', 'fuel_total'),
    ColumnRule('geardown', 'gear_down', _parse_bool),
    ColumnRule('onground', 'on_ground', _parse_bool),
    ColumnRule('gforce', 'g_force'),
    ColumnRule('verticalspeed', 'vertical_speed'),
    ColumnRule('overspeedwarning', 'overspeed_warning', _parse_bool),
    ColumnRule('stallwarning', 'stall_warning', _parse_bool),
)


def resolve_columns(headers: List[str]) -> List[Optional[ColumnRule]]:
    """Rule claiming each column, or None for columns nothing recognises."""
    return [
        next((rule for rule in COLUMN_RULES if rule.matches(h)), None)
        for h in headers
    ]


def is_header_row(row: List[str]) -> bool:
    """True when enough known column names appear among the row's cells."""
    found = 0
    for cell in row:
        cell_lower = cell.lower()
        if any(keyword in cell_lower for keyword in HEADER_KEYWORDS):
            found += 1
    return found >= HEADER_MIN_MATCHES


def find_header_row(rows: List[List[str]], skip_rows: int = 0) -> int:
    """
    Index of the header row.

    Raises:
        SourceSchemaError: no row looks like a flight data header.
    """
    for i, row in enumerate(rows):
        if i < skip_rows:
            continue
        if is_header_row(row):
            return i
    raise SourceSchemaError('Could not find header row with flight data columns')


def extract_metadata(rows: List[List[str]], options: CSVImportOptions) -> CSVMetadata:
    """Source tool and recording time from the banner rows, plus defaults."""
    metadata = CSVMetadata(
        flight_title=options.title,
        aircraft_type=options.aircraft_type,
    )

    for row in rows[:METADATA_SCAN_ROWS]:
        if not row:
            continue
        text = ' '.join(row)

        if 'FS-FlightControl' in text:
            metadata.source = 'FS-FlightControl'

        # e.g. "Recorded at: 7/30/2025 9:05:41 PM (more info ...)"
        if 'Recorded at:' in text:
            recorded = text.split('Recorded at:', 1)[1].strip()
            metadata.recorded_at = recorded.split(' (more info')[0]

    if not metadata.flight_title:
        if metadata.recorded_at:
            metadata.flight_title = f'Flight {metadata.recorded_at}'
        else:
            metadata.flight_title = DEFAULT_CSV_TITLE

    if not metadata.aircraft_type:
        metadata.aircraft_type = DEFAULT_AIRCRAFT_TYPE

    return metadata


# Fraction of the seconds field, e.g. '41.1234567'
_FRACTION = re.compile(r'(?<=:\d\d)\.(\d+)')


def _six_digit_fraction(match) -> str:
    return '.' + match.group(1)[:6].ljust(6, '0')


_FALLBACK_TIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%m/%d/%Y %I:%M:%S %p',
)


def parse_record_time(value: str) -> Optional[datetime]:
    """
    Parse a record time such as '2025-07-30T21:05:41.1234567+02:00'.

    Fractions of any length are padded or truncated to microseconds.
    Times without an offset are taken as UTC so all records compare on
    one timeline.
    """
    if not value:
        return None
    normalized = _FRACTION.sub(_six_digit_fraction, value.strip(), count=1)
    if normalized.endswith('Z'):
        normalized = normalized[:-1] + '+00:00'

    parsed = None
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        for fmt in _FALLBACK_TIME_FORMATS:
            try:
                parsed = datetime.strptime(normalized, fmt)
                break
            except ValueError:
                continue

    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_record(rules: List[Optional[ColumnRule]], row: List[str]) -> CSVFlightRecord:
    record = CSVFlightRecord()
    for rule, raw in zip(rules, row):
        value = raw.strip()
        if rule is None or not value:
            continue
        parsed = rule.parse(value)
        if parsed is not None:
            setattr(record, rule.field, parsed)
    return record


def parse_rows(
    rows: List[List[str]],
    options: CSVImportOptions,
) -> Tuple[CSVMetadata, List[CSVFlightRecord]]:
    """
    Parse already-split CSV rows.

    Raises:
        SourceSchemaError: too few rows, no header row, or no valid records.
    """
    if len(rows) < 3:
        raise SourceSchemaError(
            'CSV file too short, expected at least 3 rows (metadata, header, data)'
        )

    metadata = extract_metadata(rows, options)
    header_index = find_header_row(rows, options.skip_rows)
    headers = rows[header_index]
    rules = resolve_columns(headers)

    records: List[CSVFlightRecord] = []
    start_time: Optional[datetime] = None
    skipped = 0

    for row in rows[header_index + 1:]:
        if len(row) != len(headers):
            skipped += 1
            continue

        record = parse_record(rules, row)

        record_time = parse_record_time(record.time)
        if record_time is not None:
            if start_time is None:
                start_time = record_time
            record.timestamp_seconds = (record_time - start_time).total_seconds()

        records.append(record)

    if skipped:
        logger.warning(f'Skipped {skipped} malformed CSV rows')

    if not records:
        raise SourceSchemaError('No valid flight data records found')

    metadata.total_records = len(records)
    return metadata, records


def parse_flight_csv(
    reader: TextIO,
    options: Optional[CSVImportOptions] = None,
) -> Tuple[CSVMetadata, List[CSVFlightRecord]]:
    """Read and parse a CSV flight log from an open text stream."""
    options = options or CSVImportOptions()
    try:
        rows: Iterable[List[str]] = list(csv.reader(reader))
    except csv.Error as e:
        raise SourceSchemaError(f'Failed to read CSV: {e}') from e
    return parse_rows(rows, options)


def extract_flight_title(filename: str) -> str:
    """
    Flight title from an uploaded file name.

    'uploaded_my_evening_flight.csv' -> 'My evening flight'
    """
    name = filename.rsplit('.', 1)[0] if '.' in filename else filename
    if name.startswith('uploaded_'):
        name = name[len('uploaded_'):]
    name = name.replace('_', ' ').strip()
    if not name:
        return 'CSV Flight Data'
    return name[0].upper() + name[1:]
