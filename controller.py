"""
AimController — Layer 2 (Aiming Logic)

Owns the guide-line state of one interactive aiming session and turns
drag positions into launch requests for the physics engine.

Layer 3 (renderer / web server) calls:
  ctrl.drag(x, y)            — cue pulled back towards table point (x, y)
  ctrl.release()             — gesture ended, guide line cleared
  ctrl.path / bounce_points  — latest guide line (last write wins)
  ctrl.revision              — bumped on every update; stale results are dropped
"""

import json
import logging
import math
import os
from pathlib import Path

from physics import (
    DEFAULT_CONFIG, LaunchRequest, PhysicsConfig, PhysicsEngine, Point,
)
from trajectory import extract_bounce_points

logger = logging.getLogger(__name__)


def _round_point(p, nd: int = 3) -> list:
    return [round(float(p[0]), nd), round(float(p[1]), nd)]


class AimController:
    """Layer 2: drag → (force, angle) → guide line."""

    # ── Class-level constants ─────────────────────────────────────────────────
    MIN_PULL_DISTANCE = 20.0    # touch distance that still means "no pull"
    MAX_PULL_DISTANCE = 120.0   # pull that maps to 100% force
    MIN_FORCE         = 5.0     # below this the guide line is hidden
    MAX_BOUNCES       = 8
    TABLE_WIDTH       = 300.0
    TABLE_HEIGHT      = 150.0

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, table_width: float = TABLE_WIDTH,
                 table_height: float = TABLE_HEIGHT,
                 cue_ball=None, config: PhysicsConfig = DEFAULT_CONFIG,
                 max_bounces: int = MAX_BOUNCES):
        self.table_width  = float(table_width)
        self.table_height = float(table_height)
        if cue_ball is None:
            cue_ball = (self.table_width * 0.25, self.table_height * 0.5)
        self.cue_ball     = Point(float(cue_ball[0]), float(cue_ball[1]))
        self.max_bounces  = int(max_bounces)
        self.engine       = PhysicsEngine(config)

        # Guide-line state
        self.force         = 0.0
        self.angle         = 0.0
        self.path: list[Point] = []
        self.bounce_points: list[Point] = []
        self.revision      = 0

        # Script state
        self._last_script_path = ""
        self._last_script: dict = {}

        self.status_msg = ""

    @property
    def config(self) -> PhysicsConfig:
        return self.engine.config

    # ──────────────────────────────────────────────────────────────────────────
    # Gesture → shot
    # ──────────────────────────────────────────────────────────────────────────

    def shot_from_touch(self, touch_x: float, touch_y: float) -> tuple[float, float]:
        """Map a touch point (table-local) to ``(force %, angle °)``.

        The angle is the bearing from the cue ball to the touch point. The
        pull distance is clamped into [0, MAX_PULL_DISTANCE] after
        subtracting the dead zone MIN_PULL_DISTANCE.
        """
        dx = touch_x - self.cue_ball.x
        dy = touch_y - self.cue_ball.y
        angle = math.degrees(math.atan2(dy, dx))
        touch_distance = math.hypot(dx, dy)
        pull = max(0.0, min(touch_distance - self.MIN_PULL_DISTANCE,
                            self.MAX_PULL_DISTANCE))
        force = pull / self.MAX_PULL_DISTANCE * 100.0
        return force, angle

    def update_shot(self, force: float, angle: float) -> int:
        """Replace the guide line for a new (force, angle). Returns the revision.

        A non-finite force or angle counts as no shot: the guide line is
        cleared and the state keeps ``force = angle = 0``.
        """
        force, angle = float(force), float(angle)
        if not (math.isfinite(force) and math.isfinite(angle)):
            force, angle = 0.0, 0.0
        self.force = force
        self.angle = angle
        self.revision += 1

        if self.force > self.MIN_FORCE:
            request = LaunchRequest(self.cue_ball, self.angle, self.force,
                                    self.table_width, self.table_height,
                                    self.max_bounces)
            self.path = self.engine.simulate(request)
            self.bounce_points = extract_bounce_points(self.path)
        else:
            self.path = []
            self.bounce_points = []
        return self.revision

    def drag(self, touch_x: float, touch_y: float) -> int:
        force, angle = self.shot_from_touch(touch_x, touch_y)
        return self.update_shot(force, angle)

    def release(self) -> int:
        return self.update_shot(0.0, 0.0)

    # ──────────────────────────────────────────────────────────────────────────
    # Headless prediction
    # ──────────────────────────────────────────────────────────────────────────

    def simulate_shot(self, angle: float, power: float, *,
                      origin=None, max_bounces: int | None = None,
                      bounce_threshold: float = 30.0) -> dict:
        """Predict one shot without touching the guide-line state.

        Args:
            angle:       Launch bearing in degrees (0 = +x, clockwise positive).
            power:       Force percentage (0–100).
            origin:      Launch point; defaults to the cue ball.
            max_bounces: Bounce budget; defaults to the controller's.

        Returns:
            ``dict`` with ``path``, ``bounce_points`` (geometric heuristic),
            ``contacts`` (true rail contacts), ``bounces``, ``stop_reason``
            and ``end_point`` (``None`` for an empty path).
        """
        start = self.cue_ball if origin is None else Point(float(origin[0]), float(origin[1]))
        budget = self.max_bounces if max_bounces is None else int(max_bounces)
        request = LaunchRequest(start, float(angle), float(power),
                                self.table_width, self.table_height, budget)
        result = self.engine.simulate_detailed(request)
        return {
            "path":          [_round_point(p) for p in result.path],
            "bounce_points": [_round_point(p) for p in
                              extract_bounce_points(result.path, bounce_threshold)],
            "contacts":      [_round_point(p) for p in result.contact_points],
            "bounces":       result.bounces,
            "stop_reason":   result.stop_reason.name,
            "end_point":     None if result.end_point is None else _round_point(result.end_point),
        }

    # ──────────────────────────────────────────────────────────────────────────
    # State / commands
    # ──────────────────────────────────────────────────────────────────────────

    def get_state(self) -> dict:
        return {
            "revision":      self.revision,
            "force":         round(self.force, 3),
            "angle":         round(self.angle, 3),
            "cue_ball":      _round_point(self.cue_ball),
            "table":         [self.table_width, self.table_height],
            "path":          [_round_point(p) for p in self.path],
            "bounce_points": [_round_point(p) for p in self.bounce_points],
            "status":        self.status_msg,
        }

    def get_state_json(self) -> str:
        """Return the current guide-line state as compact JSON."""
        return json.dumps(self.get_state(), separators=(',', ':'))

    def execute_command(self, text: str) -> None:
        """Parse a JSON command string and dispatch to handlers."""
        if not text:
            logger.warning("execute_command: empty text")
            return
        text = text.replace('\r', '')
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("JSON parse error: %s", exc)
            self.status_msg = f"JSON error: {exc}"
            return
        if not isinstance(data, dict):
            self.status_msg = "Command must be a JSON object."
            return
        cmd = str(data.get("cmd", "")).lower().strip()
        logger.info("cmd=%s", cmd)
        if cmd == "aim":
            self._cmd_aim(data)
        elif cmd == "set":
            self._cmd_set(data)
        elif cmd == "params":
            self._cmd_params(data.get("params", {}))
        else:
            self.status_msg = f"Unknown cmd '{cmd}'. Use aim/set/params."

    def _cmd_aim(self, data: dict) -> None:
        """aim: {"force": f, "angle": a} or {"touch": [x, y]}."""
        try:
            if "touch" in data:
                x, y = data["touch"]
                self.drag(float(x), float(y))
            else:
                self.update_shot(float(data.get("force", 0.0)),
                                 float(data.get("angle", 0.0)))
        except (TypeError, ValueError) as exc:
            self.status_msg = f"aim: bad value: {exc}"
            return
        self.status_msg = f"aim: {len(self.path)} point(s), {len(self.bounce_points)} bounce(s)"

    def _cmd_set(self, data: dict) -> None:
        """set: move the cue ball and/or resize the table, then re-aim."""
        try:
            w, h = data.get("table", (self.table_width, self.table_height))
            x, y = data.get("cue_ball", self.cue_ball)
            values = [float(w), float(h), float(x), float(y)]
            max_bounces = int(data.get("max_bounces", self.max_bounces))
        except (TypeError, ValueError) as exc:
            self.status_msg = f"set: bad value: {exc}"
            return
        if not all(math.isfinite(v) for v in values) or values[0] <= 0 or values[1] <= 0:
            self.status_msg = f"set: bad value: {values}"
            return
        self.table_width, self.table_height = values[0], values[1]
        self.cue_ball = Point(values[2], values[3])
        self.max_bounces = max_bounces
        self.update_shot(self.force, self.angle)
        self.status_msg = "set: ok"

    def _cmd_params(self, params: dict) -> None:
        """params: swap in a new physics config (affects all later shots)."""
        if not isinstance(params, dict) or not params:
            self.status_msg = "params: object with at least one field required."
            return
        try:
            self.engine = PhysicsEngine(self.config.updated(**params))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("params rejected: %s", exc)
            self.status_msg = f"params: {exc}"
            return
        self.update_shot(self.force, self.angle)
        self.status_msg = f"params: set {sorted(params)}"
        logger.info(self.status_msg)

    # ──────────────────────────────────────────────────────────────────────────
    # Script system
    # ──────────────────────────────────────────────────────────────────────────

    @staticmethod
    def collect_script_files(scripts_dir: str = "scripts") -> list:
        """Return sorted list of .py files from the scripts/ dir."""
        path = Path(scripts_dir)
        if not path.is_dir():
            return []
        return sorted(p for p in path.glob("*.py") if not p.name.startswith("_"))

    def execute_script(self, script: dict) -> None:
        """Execute a shot script dict (setup + optional shot)."""
        self._last_script = script

        setup = script.get("setup", {})
        if "table" in setup:
            self.table_width, self.table_height = (float(v) for v in setup["table"])
        if "cue_ball" in setup:
            self.cue_ball = Point(*(float(v) for v in setup["cue_ball"]))
        if "max_bounces" in setup:
            self.max_bounces = int(setup["max_bounces"])

        shot = script.get("shot")
        if shot is None:
            self.release()
            self.status_msg = "Script: table set up."
            return

        if "touch" in shot:
            self.drag(*(float(v) for v in shot["touch"]))
        else:
            self.update_shot(float(shot.get("force", 0.0)),
                             float(shot.get("angle", 0.0)))
        self.status_msg = f"Script: {len(self.path)} point(s) predicted."
        logger.info(self.status_msg)

    def load_script_file(self, path: str) -> None:
        """Load and execute a shot script from a .py file."""
        import importlib.util
        abs_path = os.path.abspath(path)
        if not os.path.exists(abs_path):
            self.status_msg = f"Script not found: {abs_path}"
            return
        spec = importlib.util.spec_from_file_location("_user_shot_script", abs_path)
        mod  = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(mod)
        except Exception as exc:
            logger.warning("script %s failed: %s", abs_path, exc)
            self.status_msg = f"Script error: {exc}"
            return
        script = getattr(mod, "SCRIPT", None)
        if script is None:
            self.status_msg = f"No SCRIPT variable in {os.path.basename(abs_path)}"
            return
        self._last_script_path = abs_path
        self.execute_script(script)

    def reload_script(self) -> None:
        """Re-execute the last loaded script."""
        if self._last_script_path:
            self.load_script_file(self._last_script_path)
        elif self._last_script:
            self.execute_script(self._last_script)
        else:
            self.status_msg = "No script loaded yet."
