"""
2D Pool Guide-Line Physics Engine
Fixed-step integrator, rail collision, friction + restitution, stop rule.
"""

import enum
import logging
import math
from dataclasses import dataclass, field, fields, replace
from typing import List, NamedTuple, Sequence

import numpy as np

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────
# Constants (table-local units, one step = one TIME_STEP)
# ──────────────────────────────────────────────
BALL_RADIUS: float = 8.0  # matches the cue-stick ball size
FRICTION: float = 0.985  # velocity kept per step (1.5% loss)
MIN_VELOCITY: float = 0.3  # ball is considered stopped below this speed
TIME_STEP: float = 0.08  # integration granularity
MAX_POINTS: int = 300  # hard cap on path length
VELOCITY_SCALE: float = 0.15  # force percentage -> initial speed

# Rail restitution (velocity kept per bounce, 8% loss)
BOUNCE_RESTITUTION: float = 0.92

DEFAULT_MAX_BOUNCES: int = 10


class Point(NamedTuple):
    x: float
    y: float


class Velocity(NamedTuple):
    vx: float
    vy: float


class StopReason(enum.Enum):
    BOUNCE_LIMIT = 0
    POINT_LIMIT = 1
    STOPPED = 2


# Accepted range (inclusive) of each tunable when changed at runtime
PARAM_RANGES = {
    "ball_radius":    (1.0,   20.0),
    "friction":       (0.5,    0.9999),
    "min_velocity":   (0.01,   5.0),
    "time_step":      (0.01,   2.0),
    "max_points":     (10,  5000),
    "velocity_scale": (0.01,   2.0),
    "restitution":    (0.1,    1.0),
}


@dataclass(frozen=True)
class PhysicsConfig:
    """Process-wide simulation tunables. Replace, never mutate."""
    ball_radius: float = BALL_RADIUS
    friction: float = FRICTION
    min_velocity: float = MIN_VELOCITY
    time_step: float = TIME_STEP
    max_points: int = MAX_POINTS
    velocity_scale: float = VELOCITY_SCALE
    restitution: float = BOUNCE_RESTITUTION

    def __post_init__(self):
        # the stop rule needs friction < 1
        if not 0 < self.friction < 1:
            raise ValueError(f"friction must be in (0, 1), got {self.friction}")
        if not 0 < self.restitution <= 1:
            raise ValueError(f"restitution must be in (0, 1], got {self.restitution}")
        for name in ("ball_radius", "min_velocity", "time_step",
                     "velocity_scale", "max_points"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be > 0, got {value}")

    def updated(self, **changes) -> "PhysicsConfig":
        """Return a copy with the named fields changed.

        Unknown field names raise ``KeyError`` so that typos in a params
        command are not silently ignored. Values outside ``PARAM_RANGES``
        raise ``ValueError``.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise KeyError(f"unknown physics params: {unknown}")
        coerced = {
            k: int(v) if k == "max_points" else float(v)
            for k, v in changes.items()
        }
        for k, v in coerced.items():
            lo, hi = PARAM_RANGES[k]
            if not lo <= v <= hi:
                raise ValueError(f"{k}={v} outside [{lo}, {hi}]")
        return replace(self, **coerced)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = PhysicsConfig()


@dataclass(frozen=True)
class LaunchRequest:
    """One aiming update: where the ball is, where it goes, how hard."""
    origin: Point
    angle_deg: float
    force: float
    table_width: float
    table_height: float
    max_bounces: int = DEFAULT_MAX_BOUNCES

    def __post_init__(self):
        object.__setattr__(self, "origin",
                           Point(float(self.origin[0]), float(self.origin[1])))


class CollisionResult(NamedTuple):
    collided: bool
    point: Point
    velocity: Velocity


@dataclass
class SimulationResult:
    """Predicted path plus the simulator's own collision bookkeeping.

    ``contacts`` holds indices into ``path`` of true rail contacts. It is
    independent of the geometric bounce heuristic in ``trajectory``.
    """
    path: List[Point] = field(default_factory=list)
    contacts: List[int] = field(default_factory=list)
    bounces: int = 0
    stop_reason: StopReason = StopReason.STOPPED

    @property
    def contact_points(self) -> List[Point]:
        return [self.path[i] for i in self.contacts]

    @property
    def end_point(self):
        return self.path[-1] if self.path else None


class PhysicsEngine:
    """Single-ball trajectory predictor on a rectangular table."""

    def __init__(self, config: PhysicsConfig = DEFAULT_CONFIG):
        self.config = config

    # ──────────────────────────────────────────
    # Rail Collision
    # ──────────────────────────────────────────
    @staticmethod
    def resolve_step(current: Sequence[float], proposed: Sequence[float],
                     velocity: Sequence[float], width: float, height: float,
                     radius: float) -> CollisionResult:
        """
        Clamp a proposed step against the four rails.

        Args:
            current: Position before the step. Unused by the rail test,
                     which only looks at where the step would end.
            proposed: Position after an unobstructed step.
            velocity: Velocity used for the step.
            width, height: Playing-surface extents, rails excluded.
            radius: Ball radius.

        Returns:
            CollisionResult with the clamped contact point and the velocity
            pointing back into the table. The magnitude is unchanged here;
            restitution is applied by the caller.
        """
        x, y = float(proposed[0]), float(proposed[1])
        vx, vy = float(velocity[0]), float(velocity[1])
        collided = False

        # x and y are checked independently so a corner flips both axes
        if x - radius <= 0:
            x = radius
            vx = abs(vx)
            collided = True
        elif x + radius >= width:
            x = width - radius
            vx = -abs(vx)
            collided = True

        if y - radius <= 0:
            y = radius
            vy = abs(vy)
            collided = True
        elif y + radius >= height:
            y = height - radius
            vy = -abs(vy)
            collided = True

        return CollisionResult(collided, Point(x, y), Velocity(vx, vy))

    # ──────────────────────────────────────────
    # Launch
    # ──────────────────────────────────────────
    def initial_velocity(self, angle_deg: float, force: float) -> np.ndarray:
        angle_rad = angle_deg * math.pi / 180
        speed = force * self.config.velocity_scale
        return np.array([math.cos(angle_rad) * speed,
                         math.sin(angle_rad) * speed])

    @staticmethod
    def is_valid_launch(request: LaunchRequest) -> bool:
        """Zero, negative or non-finite force and non-finite angles yield no path."""
        return (math.isfinite(request.force) and request.force > 0
                and math.isfinite(request.angle_deg))

    # ──────────────────────────────────────────
    # Main Integration Loop
    # ──────────────────────────────────────────
    def simulate_detailed(self, request: LaunchRequest) -> SimulationResult:
        """
        Integrate the ball from its launch state until it stops.

        Each iteration proposes a straight step, resolves it against the
        rails, applies restitution on contact, then friction exactly once.
        A step whose speed falls below ``min_velocity`` is not recorded, so
        the last path point is the last one still above the threshold.

        A ball launched from a rail into that rail is clamped back onto its
        origin. That contact counts as a bounce but is not appended a second
        time; its index in ``contacts`` is the origin's.
        """
        result = SimulationResult()
        if not self.is_valid_launch(request):
            return result

        cfg = self.config
        position = np.array(request.origin, dtype=float)
        velocity = self.initial_velocity(request.angle_deg, request.force)
        result.path.append(request.origin)

        while len(result.path) < cfg.max_points:
            proposed = position + velocity * cfg.time_step
            hit = self.resolve_step(position, proposed, velocity,
                                    request.table_width, request.table_height,
                                    cfg.ball_radius)

            if hit.collided:
                if result.bounces >= request.max_bounces:
                    # only reachable with max_bounces == 0
                    result.stop_reason = StopReason.BOUNCE_LIMIT
                    break
                position = np.array(hit.point, dtype=float)
                velocity = np.array(hit.velocity, dtype=float) * cfg.restitution
                result.bounces += 1
            else:
                position = proposed

            velocity = velocity * cfg.friction

            if float(np.hypot(velocity[0], velocity[1])) < cfg.min_velocity:
                result.stop_reason = StopReason.STOPPED
                break

            point = Point(float(position[0]), float(position[1]))
            # a launch from on a rail into that rail clamps back onto the origin
            if point != result.path[-1]:
                result.path.append(point)
            if hit.collided:
                index = len(result.path) - 1
                if not result.contacts or result.contacts[-1] != index:
                    result.contacts.append(index)
                if result.bounces >= request.max_bounces:
                    result.stop_reason = StopReason.BOUNCE_LIMIT
                    break
        else:
            result.stop_reason = StopReason.POINT_LIMIT

        logger.debug("simulated %d points, %d bounces, stop=%s",
                     len(result.path), result.bounces, result.stop_reason.name)
        return result

    def simulate(self, request: LaunchRequest) -> List[Point]:
        """Return only the predicted path (empty for an invalid launch)."""
        return self.simulate_detailed(request).path


def predict_path(x: float, y: float, angle_deg: float, force: float,
                 table_width: float, table_height: float,
                 max_bounces: int = DEFAULT_MAX_BOUNCES,
                 config: PhysicsConfig = DEFAULT_CONFIG) -> List[Point]:
    """Keyword-friendly shortcut around ``PhysicsEngine.simulate``."""
    request = LaunchRequest(Point(x, y), angle_deg, force,
                            table_width, table_height, max_bounces)
    return PhysicsEngine(config).simulate(request)
