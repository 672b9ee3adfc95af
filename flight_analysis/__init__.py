"""
Flight Analysis Backend Package.

Flight record store built with Flask, SQLAlchemy, and NumPy: imports
flight-recorder logbooks and CSV logs into one canonical database,
derives duplicates and trimmed copies, and serves statistics and exports.

Modules:
    api/          REST endpoints for flights, markers, and database metrics
    models/       SQLAlchemy ORM models and the schema manager
    ingestion/    Logbook database and CSV importers
    analytics/    NumPy-based statistics and distance calculations
    store.py      FlightStore, the object that owns the database and its operations
    derivation.py Duplicate and trim copies
    deletion.py   Ordered flight deletion
    markers.py    Marker operations
    export.py     CSV/ZIP export
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
