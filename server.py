"""
Guide-Line Prediction Server — Layer 3 (FastAPI + WebSocket)

Exposes the trajectory predictor over HTTP and streams guide-line updates
for a drag gesture over WebSocket. Each connection owns one AimController,
so the latest drag always wins for that session.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field

import physics as _phys
from controller import AimController
from logging_config import configure_logging
from physics import LaunchRequest, PhysicsEngine, Point
from shot_presets import PRESETS
from trajectory import BOUNCE_ANGLE_THRESHOLD, extract_bounce_points, smooth_trajectory

logger = logging.getLogger(__name__)


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("config: %s", _phys.DEFAULT_CONFIG.as_dict())
    yield


app = FastAPI(lifespan=lifespan)

# ── Physics params (tunable fields of PhysicsConfig) ────────────────────────

PHYSICS_PARAMS = [
    (attr, label) + _phys.PARAM_RANGES[attr]
    for attr, label in [
        ("ball_radius",    "Ball Radius"),
        ("friction",       "Friction"),
        ("min_velocity",   "Stop Speed"),
        ("time_step",      "Time Step"),
        ("max_points",     "Max Points"),
        ("velocity_scale", "Force Scale"),
        ("restitution",    "Rail Rest."),
    ]
]


# ── Request / response models ───────────────────────────────────────────────

class PredictIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    angle: float
    force: float
    table_width: float = Field(gt=0)
    table_height: float = Field(gt=0)
    max_bounces: int = Field(default=_phys.DEFAULT_MAX_BOUNCES, ge=0)
    smooth_spacing: Optional[float] = Field(default=None, gt=0)
    bounce_threshold: float = Field(default=BOUNCE_ANGLE_THRESHOLD, ge=0, le=180)


def _points(path) -> list:
    return [[round(p.x, 4), round(p.y, 4)] for p in path]


def _result_payload(result, smooth_spacing=None,
                    bounce_threshold=BOUNCE_ANGLE_THRESHOLD) -> dict:
    path = result.path
    return {
        "path":          _points(smooth_trajectory(path, smooth_spacing) if smooth_spacing else path),
        "bounce_points": _points(extract_bounce_points(path, bounce_threshold)),
        "contacts":      _points(result.contact_points),
        "bounces":       result.bounces,
        "stop_reason":   result.stop_reason.name,
    }


# ── HTTP endpoints ──────────────────────────────────────────────────────────

@app.get("/config")
async def get_config():
    cfg = _phys.DEFAULT_CONFIG.as_dict()
    return {
        "config": cfg,
        "params": [
            {"attr": attr, "label": label, "value": cfg[attr], "min": mn, "max": mx}
            for attr, label, mn, mx in PHYSICS_PARAMS
        ],
    }


@app.post("/predict")
async def predict(body: PredictIn):
    request = LaunchRequest(Point(body.x, body.y), body.angle, body.force,
                            body.table_width, body.table_height, body.max_bounces)
    result = PhysicsEngine().simulate_detailed(request)
    return _result_payload(result, body.smooth_spacing, body.bounce_threshold)


@app.get("/presets")
async def list_presets():
    return {"presets": sorted(PRESETS)}


@app.get("/presets/{name}")
async def run_preset(name: str):
    fn = PRESETS.get(name)
    if fn is None:
        raise HTTPException(status_code=404, detail=f"unknown preset '{name}'")
    preset = fn()
    req = preset["request"]
    payload = _result_payload(preset["result"])
    payload["request"] = {
        "x": req.origin.x, "y": req.origin.y, "angle": req.angle_deg,
        "force": req.force, "table_width": req.table_width,
        "table_height": req.table_height, "max_bounces": req.max_bounces,
    }
    return payload


# ── WebSocket endpoint ──────────────────────────────────────────────────────

def _guide_frame(ctrl: AimController) -> str:
    frame = ctrl.get_state()
    frame["type"] = "guide"
    return json.dumps(frame, separators=(',', ':'))


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    ctrl = AimController()

    await ws.send_text(json.dumps({
        "type":         "init",
        "table_width":  ctrl.table_width,
        "table_height": ctrl.table_height,
        "cue_ball":     list(ctrl.cue_ball),
        "config":       ctrl.config.as_dict(),
    }))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue

            cmd = msg.get("cmd", "")
            if cmd == "drag":
                try:
                    ctrl.drag(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
                except (TypeError, ValueError):
                    continue
            elif cmd == "release":
                ctrl.release()
            elif cmd == "execute":
                ctrl.execute_command(msg.get("text", ""))
            elif cmd != "get_state":
                continue
            await ws.send_text(_guide_frame(ctrl))
    except WebSocketDisconnect:
        logger.debug("client disconnected at revision %d", ctrl.revision)


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
