from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("POWERTABLE_LOG_DIR", str(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


def _load_sample(client) -> str:
    fixture = Path(__file__).resolve().parents[2] / "tests" / "sample.ptab"
    response = client.post(
        "/tables/load",
        files={"file": (fixture.name, fixture.read_bytes(), "text/plain")},
    )
    assert response.status_code == 200
    return response.json()["id"]


def test_point_commands_and_history(client):
    table_id = client.post("/tables").json()["id"]

    resp = client.post(f"/tables/{table_id}/points", json={"cadence": 60, "power": 100, "resistance": 500})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Added 1 point(s) with linear interpolation"

    resp = client.post(f"/tables/{table_id}/points", json={"cadence": 60, "power": 100, "resistance": 700})
    assert resp.status_code == 409

    resp = client.post(f"/tables/{table_id}/points", json={"cadence": 90, "power": 100, "resistance": 600})
    payload = resp.json()
    assert payload["changed"] is True
    assert payload["warnings"][0].startswith("Value adjusted to 499")

    resp = client.put(f"/tables/{table_id}/points/90/100", json={"resistance": 300})
    assert resp.json()["details"]["resistance"] == 300

    assert client.delete(f"/tables/{table_id}/points/90/200").status_code == 404
    resp = client.delete(f"/tables/{table_id}/points/90/100")
    assert resp.json()["state"]["cadences"] == [60]

    resp = client.post(f"/tables/{table_id}/undo")
    assert resp.json()["state"]["cadences"] == [60, 90]
    resp = client.post(f"/tables/{table_id}/redo")
    assert resp.json()["state"]["cadences"] == [60]
    resp = client.post(f"/tables/{table_id}/redo")
    assert resp.json()["message"] == "Nothing to redo"


def test_chart_driven_commands(client):
    table_id = _load_sample(client)

    resp = client.post(f"/tables/{table_id}/points/near", json={"power": 148, "resistance": 2100})
    assert resp.status_code == 400

    resp = client.put(f"/tables/{table_id}/active-cadence", json={"cadence": 105})
    assert resp.json()["state"]["active_cadence"] == 105
    resp = client.post(f"/tables/{table_id}/points/near", json={"power": 148, "resistance": 2100})
    assert resp.json()["details"]["points"] == [[150, 2100]]

    resp = client.post(f"/tables/{table_id}/drag/start", json={"cadence": 90})
    assert resp.json()["state"]["active_cadence"] == 90
    resp = client.post(f"/tables/{table_id}/drag/move", json={"cadence": 90, "power": 60, "resistance": 5000})
    assert resp.json() == {"cadence": 90, "power": 60, "resistance": 1499}
    resp = client.post(f"/tables/{table_id}/drag/end", json={"cadence": 90})
    assert resp.status_code == 400
    resp = client.post(f"/tables/{table_id}/drag/end", json={"cadence": 90, "power": 60, "resistance": 5000})
    assert resp.json()["details"]["resistance"] == 1499


def test_table_operations(client):
    empty_id = client.post("/tables").json()["id"]
    for path in ("smart-fill", "resolve-conflicts", "smart-smooth"):
        assert client.post(f"/tables/{empty_id}/{path}").status_code == 422
    assert client.get(f"/tables/{empty_id}/export").status_code == 422

    table_id = _load_sample(client)
    resp = client.post(f"/tables/{table_id}/smart-fill")
    assert resp.json()["details"] == {"cells_checked": 24, "points_added": 2, "cells_skipped": 0}
    assert resp.json()["state"]["point_count"] == 24

    resp = client.post(f"/tables/{table_id}/resolve-conflicts")
    assert resp.json()["details"]["adjustments"] == 0

    resp = client.post(f"/tables/{table_id}/smart-smooth")
    assert resp.status_code == 200
    assert resp.json()["message"].startswith("SmartSmooth completed")
    assert isinstance(resp.json()["details"]["issues"], list)


def test_session_settings(client):
    table_id = _load_sample(client)

    resp = client.put(f"/tables/{table_id}/config", json={"max_resistance": 40000})
    assert resp.json()["state"]["max_resistance"] == 40000
    assert client.put(f"/tables/{table_id}/config", json={}).status_code == 400
    assert client.put(f"/tables/{table_id}/config", json={"storage_multiplier": 0}).status_code == 400

    resp = client.put(f"/tables/{table_id}/config", json={"max_resistance": 1000})
    assert resp.status_code == 400
    assert client.get(f"/tables/{table_id}").json()["max_resistance"] == 40000

    resp = client.post(f"/tables/{table_id}/original/toggle")
    assert resp.json()["state"]["show_original"] is True
    resp = client.put(f"/tables/{table_id}/original/opacity", json={"percent": 50})
    assert resp.json()["state"]["original_opacity"] == 50

    series = client.get(f"/tables/{table_id}/series").json()["series"]
    assert len(series) == 8
    assert series[0]["original"] is True
    assert series[0]["opacity"] == 0.5

    assert client.delete(f"/tables/{table_id}").json() == {"id": table_id, "deleted": True}
    assert client.get(f"/tables/{table_id}").status_code == 404


def test_config_update_is_all_or_nothing(client):
    table_id = client.post("/tables").json()["id"]
    before = client.get(f"/tables/{table_id}").json()

    resp = client.put(
        f"/tables/{table_id}/config",
        json={"max_resistance": 100, "storage_multiplier": 0},
    )
    assert resp.status_code == 400

    state = client.get(f"/tables/{table_id}").json()
    assert state["max_resistance"] == before["max_resistance"]
    assert state["history"]["position"] == before["history"]["position"]

    resp = client.put(
        f"/tables/{table_id}/config",
        json={"max_resistance": 100, "storage_multiplier": 5},
    )
    assert resp.json()["details"] == {"max_resistance": 100, "storage_multiplier": 5}
    assert resp.json()["state"]["history"]["position"] == before["history"]["position"] + 1
