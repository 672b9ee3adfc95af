"""Tests for the Flask API."""

from __future__ import annotations

import io
import os
import zipfile

import pytest
from werkzeug.datastructures import FileStorage


@pytest.fixture
def upload_dir(app):
    return app.config["UPLOAD_TEMP_DIR"]


def _upload(client, data: bytes, filename: str):
    return client.post(
        "/api/flights/upload",
        data={"file": (io.BytesIO(data), filename)},
        content_type="multipart/form-data",
    )


class TestUpload:
    """Tests for POST /api/flights/upload."""

    def test_csv_upload(self, client, sample_csv):
        response = _upload(client, sample_csv.encode("utf-8"), "evening_flight.csv")

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert [f["title"] for f in body["flights"]] == ["Evening flight"]
        assert "query_time_ms" in body

    def test_database_upload(self, client, make_logbook):
        payload = make_logbook().read_bytes()

        response = _upload(client, payload, "club.sdlog")

        assert response.status_code == 200
        assert len(response.get_json()["flights"]) == 2

    def test_temp_file_removed_after_success(self, client, upload_dir, sample_csv):
        _upload(client, sample_csv.encode("utf-8"), "evening_flight.csv")
        assert list_dir(upload_dir) == []

    def test_temp_file_removed_after_failure(self, client, upload_dir):
        response = _upload(client, b"not,a\nflight,log\n", "broken.csv")

        assert response.status_code == 400
        assert "error" in response.get_json()
        assert list_dir(upload_dir) == []

    def test_temp_file_removed_when_save_fails(self, client, upload_dir, monkeypatch):
        def partial_save(self, dst, *args, **kwargs):
            with open(dst, "wb") as handle:
                handle.write(b"Time,Alt")
            raise OSError("disk full")

        monkeypatch.setattr(FileStorage, "save", partial_save)

        with pytest.raises(OSError, match="disk full"):
            _upload(client, b"Time,Altitude\n", "evening_flight.csv")
        assert list_dir(upload_dir) == []

    def test_unsupported_extension(self, client):
        response = _upload(client, b"hello", "notes.txt")
        assert response.status_code == 400
        assert "Unsupported file type" in response.get_json()["error"]

    def test_missing_file(self, client):
        response = client.post("/api/flights/upload", data={}, content_type="multipart/form-data")
        assert response.status_code == 400


class TestFlightEndpoints:

    def test_list_and_get(self, client, seed_flight):
        flight_id = seed_flight(seconds=3)

        listing = client.get("/api/flights").get_json()
        assert listing["count"] == 1
        assert listing["flights"][0]["title"] == "Seed Flight"

        data = client.get(f"/api/flights/{flight_id}").get_json()
        assert data["flight"]["id"] == flight_id
        points = data["position_data"]["ASK 21 (G-CKAA)"]
        assert [p["timestamp_seconds"] for p in points] == [0.0, 1.0, 2.0, 3.0]
        assert "ASK 21 (G-CKAA)" in data["engine_data"]

    def test_get_unknown_flight(self, client):
        response = client.get("/api/flights/999")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Flight 999 not found"

    def test_duplicate(self, client, seed_flight):
        flight_id = seed_flight(seconds=3)

        response = client.post(
            f"/api/flights/{flight_id}/duplicate", json={"new_title": "Copy"}
        )
        assert response.status_code == 200
        assert response.get_json()["new_flight_id"] != flight_id

        conflict = client.post(
            f"/api/flights/{flight_id}/duplicate", json={"new_title": "Copy"}
        )
        assert conflict.status_code == 409

    def test_trim(self, client, seed_flight):
        flight_id = seed_flight(seconds=60)

        response = client.post(
            f"/api/flights/{flight_id}/trim",
            json={"new_title": "Climb", "start_time": 10, "end_time": 40},
        )
        assert response.status_code == 200

        too_small = client.post(
            f"/api/flights/{flight_id}/trim",
            json={"new_title": "Tiny", "start_time": 5.0, "end_time": 5.5},
        )
        assert too_small.status_code == 400
        assert "too small" in too_small.get_json()["error"]

    def test_trim_requires_numbers(self, client, seed_flight):
        flight_id = seed_flight(seconds=10)
        response = client.post(
            f"/api/flights/{flight_id}/trim",
            json={"new_title": "Climb", "start_time": "soon", "end_time": 4},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("start, end", [("nan", 10), (0, "inf"), ("-inf", 10)])
    def test_trim_rejects_non_finite_times(self, client, seed_flight, start, end):
        flight_id = seed_flight(seconds=10)
        response = client.post(
            f"/api/flights/{flight_id}/trim",
            json={"new_title": "Climb", "start_time": start, "end_time": end},
        )
        assert response.status_code == 400
        assert "finite" in response.get_json()["error"]
        assert client.get("/api/flights").get_json()["count"] == 1

    def test_delete(self, client, seed_flight):
        flight_id = seed_flight(seconds=3)

        assert client.delete(f"/api/flights/{flight_id}").status_code == 200
        assert client.delete(f"/api/flights/{flight_id}").status_code == 404

    def test_statistics_and_variance(self, client, seed_flight):
        flight_id = seed_flight(seconds=9)

        stats = client.get(f"/api/flights/{flight_id}/statistics").get_json()
        assert stats["statistics"]["ASK 21 (G-CKAA)"]["altitude"]["count"] == 10

        variance = client.get(
            f"/api/flights/{flight_id}/variance?field=altitude&window=5"
        ).get_json()
        assert len(variance["variance"]["ASK 21 (G-CKAA)"]) == 6

        bad = client.get(f"/api/flights/{flight_id}/variance?window=many")
        assert bad.status_code == 400

    def test_export(self, client, seed_flight):
        flight_id = seed_flight(title="Ridge run", seconds=3)

        response = client.get(f"/api/flights/{flight_id}/export")

        assert response.status_code == 200
        assert response.mimetype == "application/zip"
        assert 'filename="Ridge run_airspeed_altitude_' in response.headers["Content-Disposition"]
        with zipfile.ZipFile(io.BytesIO(response.data)) as archive:
            assert "airspeed_data.csv" in archive.namelist()


class TestMarkerEndpoints:

    def test_marker_lifecycle(self, client, seed_flight):
        flight_id = seed_flight(seconds=10)

        created = client.post(
            f"/api/flights/{flight_id}/markers",
            json={"time_seconds": 4.5, "label": "Thermal"},
        )
        assert created.status_code == 201
        marker = created.get_json()
        assert marker["type"] == "regular"

        listing = client.get(f"/api/flights/{flight_id}/markers").get_json()
        assert [m["label"] for m in listing["markers"]] == ["Thermal"]

        assert client.delete(f"/api/markers/{marker['id']}").status_code == 200
        assert client.delete(f"/api/markers/{marker['id']}").status_code == 404

    def test_marker_rejects_non_finite_time(self, client, seed_flight):
        flight_id = seed_flight(seconds=10)
        response = client.post(
            f"/api/flights/{flight_id}/markers",
            json={"time_seconds": "inf", "label": "Thermal"},
        )
        assert response.status_code == 400
        assert client.get(f"/api/flights/{flight_id}/markers").get_json()["markers"] == []

    def test_trim_kind_via_marker_endpoint_keeps_one(self, client, seed_flight):
        flight_id = seed_flight(seconds=60)
        url = f"/api/flights/{flight_id}/markers"

        client.post(url, json={"time_seconds": 2, "label": "Tow", "type": "trim_start"})
        client.post(url, json={"time_seconds": 5, "label": "Release", "type": "trim_start"})

        markers = client.get(url).get_json()["markers"]
        assert [(m["type"], m["time_seconds"]) for m in markers] == [("trim_start", 5.0)]

    def test_trim_markers(self, client, seed_flight):
        flight_id = seed_flight(seconds=60)
        url = f"/api/flights/{flight_id}/trim-markers"

        client.post(url, json={"type": "trim_start", "time_seconds": 10})
        client.post(url, json={"type": "trim_start", "time_seconds": 12})
        client.post(url, json={"type": "trim_end", "time_seconds": 40})

        trim = client.get(url).get_json()
        assert trim["trim_start"]["time_seconds"] == 12.0
        assert trim["trim_end"]["time_seconds"] == 40.0

        assert client.delete(url).get_json()["removed"] == 2
        assert client.get(url).get_json() == {"trim_start": None, "trim_end": None}

    def test_invalid_trim_marker_type(self, client, seed_flight):
        flight_id = seed_flight(seconds=10)
        response = client.post(
            f"/api/flights/{flight_id}/trim-markers",
            json={"type": "middle", "time_seconds": 3},
        )
        assert response.status_code == 400

    def test_distance_markers(self, client, seed_flight):
        latitudes = [54.9275 + 0.10 + 0.01 * k for k in range(16)]
        flight_id = seed_flight(seconds=15, latitudes=latitudes)

        response = client.post(f"/api/flights/{flight_id}/distance-markers", json={})

        assert response.status_code == 200
        assert len(response.get_json()["markers"]) == 1


class TestMetricsEndpoints:

    def test_database_metrics(self, client, seed_flight):
        seed_flight(seconds=4, markers=((1.0, "Launch", "regular"),))

        stats = client.get("/api/metrics/database").get_json()["database"]

        assert stats["flight_count"] == 1
        assert stats["aircraft_count"] == 1
        assert stats["position_count"] == 5
        assert stats["marker_count"] == 1
        assert stats["db_size_bytes"] >= 0
        assert "db_size_mb" in stats

    def test_status(self, client):
        body = client.get("/api/metrics/status").get_json()
        assert body["status"] == "ok"
        assert body["database"]["connected"] is True

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}


def list_dir(path):
    return os.listdir(path) if os.path.isdir(path) else []
