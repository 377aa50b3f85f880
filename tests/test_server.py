"""
Server Tests — HTTP prediction endpoints and the WebSocket drag stream.
"""

import json
import sys
import os
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from physics import PARAM_RANGES
from server import app, PHYSICS_PARAMS


@pytest.fixture
def client():
    return TestClient(app)


def predict_body(**overrides):
    body = {"x": 75.0, "y": 75.0, "angle": 0.0, "force": 50.0,
            "table_width": 300.0, "table_height": 150.0}
    body.update(overrides)
    return body


class TestConfig:
    """GET /config."""

    def test_lists_every_param(self, client):
        """Every tunable is listed with the default config."""
        data = client.get("/config").json()
        assert data["config"]["restitution"] == 0.92
        assert [p["attr"] for p in data["params"]] == [p[0] for p in PHYSICS_PARAMS]

    def test_param_bounds_match_accepted_ranges(self, client):
        """Advertised min/max are the ranges a params command accepts."""
        for p in client.get("/config").json()["params"]:
            assert (p["min"], p["max"]) == PARAM_RANGES[p["attr"]]
            assert p["min"] <= p["value"] <= p["max"]


class TestPredict:
    """POST /predict."""

    def test_zero_force_gives_empty_path(self, client):
        """Zero force returns an empty guide line, not an error."""
        res = client.post("/predict", json=predict_body(force=0))
        assert res.status_code == 200
        assert res.json()["path"] == []

    def test_rail_contact(self, client):
        """A hard shot near the right rail reports one contact at x=292."""
        data = client.post("/predict", json=predict_body(x=250.0, force=100.0)).json()
        assert data["path"][0] == [250.0, 75.0]
        assert data["contacts"] == [[292.0, 75.0]]
        assert data["bounce_points"] == data["contacts"]
        assert data["stop_reason"] == "STOPPED"

    def test_smoothing_shortens_path(self, client):
        """smooth_spacing thins the path but keeps both ends."""
        full = client.post("/predict", json=predict_body(force=100.0)).json()
        smooth = client.post("/predict", json=predict_body(force=100.0, smooth_spacing=10)).json()
        assert len(smooth["path"]) < len(full["path"])
        assert smooth["path"][0] == full["path"][0]
        assert smooth["path"][-1] == full["path"][-1]

    @pytest.mark.parametrize("bad", [
        {"table_width": 0},
        {"max_bounces": -1},
        {"force": "hard"},
    ])
    def test_validation_errors(self, client, bad):
        """Malformed bodies are rejected with 422."""
        res = client.post("/predict", json=predict_body(**bad))
        assert res.status_code == 422

    @pytest.mark.parametrize("field", ["x", "angle", "force"])
    def test_non_finite_numbers_rejected(self, client, field):
        """NaN cannot reach the simulator or the JSON response."""
        raw = json.dumps(predict_body(**{field: "__nan__"})).replace('"__nan__"', "NaN")
        res = client.post("/predict", content=raw,
                          headers={"content-type": "application/json"})
        assert res.status_code == 422


class TestPresets:
    """GET /presets and /presets/{name}."""

    def test_list(self, client):
        """The preset catalogue is listed by name."""
        assert "rail" in client.get("/presets").json()["presets"]

    def test_run(self, client):
        """Running a preset echoes its request with the result."""
        data = client.get("/presets/rail").json()
        assert data["request"]["x"] == 250.0
        assert data["bounces"] == 1

    def test_unknown(self, client):
        """Unknown preset names are 404."""
        assert client.get("/presets/nope").status_code == 404


class TestWebSocket:
    """The /ws drag stream."""

    def test_drag_and_release(self, client):
        """Drag draws a guide line, release clears it, bad frames are skipped."""
        with client.websocket_connect("/ws") as ws:
            init = ws.receive_json()
            assert init["type"] == "init"
            assert init["cue_ball"] == [75.0, 75.0]

            ws.send_json({"cmd": "drag", "x": 200.0, "y": 75.0})
            frame = ws.receive_json()
            assert frame["type"] == "guide"
            assert frame["revision"] == 1
            assert frame["path"][0] == [75.0, 75.0]

            ws.send_text("not json")
            ws.send_json({"cmd": "release"})
            frame = ws.receive_json()
            assert frame["revision"] == 2
            assert frame["path"] == []

    def test_execute_command(self, client):
        """execute forwards a JSON command to the session controller."""
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "execute", "text": '{"cmd": "aim", "force": 60, "angle": 0}'})
            frame = ws.receive_json()
            assert frame["force"] == 60.0
            assert frame["path"]

    def test_nan_force_gives_valid_frame(self, client):
        """A NaN force clears the guide line and the frame stays strict JSON."""
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"cmd": "execute", "text": '{"cmd": "aim", "force": NaN, "angle": 0}'})
            text = ws.receive_text()
            assert "NaN" not in text
            frame = json.loads(text)
            assert frame["force"] == 0.0
            assert frame["path"] == []
