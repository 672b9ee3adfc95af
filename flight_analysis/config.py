"""
Configuration management for the flight analysis backend.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase. Stores and the Flask app accept explicit
overrides, so these values are only defaults.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_location(value: str) -> Optional[Tuple[float, float]]:
    """Parse 'lat,lon' string into tuple, or None if empty/invalid."""
    if not value:
        return None
    try:
        lat, lon = value.split(',')
        return (float(lat.strip()), float(lon.strip()))
    except (ValueError, AttributeError):
        return None


@dataclass(frozen=True)
class DatabaseConfig:
    """Canonical database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///data/data_analysis.db')
    echo: bool = os.getenv('DATABASE_ECHO', '0') == '1'

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class UploadConfig:
    """Temporary upload handling."""
    temp_dir: str = os.getenv('UPLOAD_TEMP_DIR', 'temp_uploads')
    max_content_mb: int = int(os.getenv('UPLOAD_MAX_MB', '64'))

    # Logbook databases and CSV exports are routed to different importers
    database_extensions: Tuple[str, ...] = ('.sdlog', '.sqlite', '.db')
    csv_extensions: Tuple[str, ...] = ('.csv',)

    @property
    def allowed_extensions(self) -> Tuple[str, ...]:
        return self.database_extensions + self.csv_extensions


@dataclass(frozen=True)
class ImportConfig:
    """Import settings."""
    batch_size: int = int(os.getenv('IMPORT_BATCH_SIZE', '5000'))  # Rows per bulk insert
    csv_skip_rows: int = 2  # Vendor banner rows above the CSV header


@dataclass(frozen=True)
class AnalysisConfig:
    """Statistics and derivation settings."""
    variance_window: int = int(os.getenv('VARIANCE_WINDOW', '10'))

    # 'aircraft' re-bases every series of an aircraft against one time-zero,
    # 'series' re-bases each telemetry series against its own minimum
    shared_trim_clock: bool = os.getenv('TRIM_CLOCK', 'aircraft') != 'series'


@dataclass(frozen=True)
class MarkerConfig:
    """Distance marker defaults."""
    reference_name: str = os.getenv('DISTANCE_REFERENCE_NAME', 'Currock Hill')
    reference_location: Tuple[float, float] = (
        _parse_location(os.getenv('DISTANCE_REFERENCE', '')) or (54.9275, -1.8342)
    )
    distance_nm: float = float(os.getenv('DISTANCE_MARKER_NM', '9.0'))
    tolerance_nm: float = 0.05


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    upload: UploadConfig
    ingestion: ImportConfig
    analysis: AnalysisConfig
    markers: MarkerConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        upload=UploadConfig(),
        ingestion=ImportConfig(),
        analysis=AnalysisConfig(),
        markers=MarkerConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
