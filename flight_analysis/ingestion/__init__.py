"""
Data ingestion module for the flight analysis backend.

Handles importing flight-recorder logbook databases and CSV flight logs
into the canonical store.
"""

from flight_analysis.ingestion.csv_parser import CSVImportOptions, parse_flight_csv
from flight_analysis.ingestion.database_import import DatabaseImporter

__all__ = ['CSVImportOptions', 'parse_flight_csv', 'DatabaseImporter']
