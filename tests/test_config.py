"""Tests for configuration helpers."""

from __future__ import annotations

import pytest

from flight_analysis.config import UploadConfig, _parse_location, load_config


@pytest.mark.parametrize(
    "value, expected",
    [
        ("54.9275,-1.8342", (54.9275, -1.8342)),
        (" 51.5 , -0.12 ", (51.5, -0.12)),
        ("", None),
        ("north", None),
        ("1,2,3", None),
    ],
)
def test_parse_location(value, expected):
    assert _parse_location(value) == expected


def test_upload_extensions():
    upload = UploadConfig()
    assert ".sdlog" in upload.allowed_extensions
    assert ".csv" in upload.allowed_extensions
    assert ".txt" not in upload.allowed_extensions


def test_defaults():
    config = load_config()
    assert config.ingestion.csv_skip_rows == 2
    assert config.markers.tolerance_nm == 0.05
    assert config.analysis.variance_window > 1
