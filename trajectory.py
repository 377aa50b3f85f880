"""
Guide-line post-processing: geometry helpers, smoothing, bounce markers.

Everything here works on an already computed path. ``extract_bounce_points``
is a display heuristic that re-derives direction changes from geometry; the
simulator's own contact bookkeeping (``SimulationResult.contacts``) is the
ground truth for where the ball actually touched a rail.
"""

import math
from typing import List, Sequence

import numpy as np

from physics import Point

BOUNCE_ANGLE_THRESHOLD: float = 30.0  # degrees
SMOOTH_SPACING: float = 10.0  # table units between kept guide-line points


# ──────────────────────────────────────────────
# Geometry helpers
# ──────────────────────────────────────────────
def angle_between_points(p1: Sequence[float], p2: Sequence[float]) -> float:
    """Bearing from p1 to p2 in degrees, range (-180, 180]."""
    return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))


def distance(p1: Sequence[float], p2: Sequence[float]) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def normalize_angle(angle_deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    normalized = angle_deg % 360.0
    # -1e-20 % 360 rounds to 360.0
    return 0.0 if normalized == 360.0 else normalized


def degrees_to_radians(degrees: float) -> float:
    return degrees * math.pi / 180


def radians_to_degrees(radians: float) -> float:
    return radians * 180 / math.pi


def reflection_angle(incident_deg: float, wall: str) -> float:
    """Outgoing bearing after a mirror bounce.

    ``wall`` is ``"horizontal"`` for the top/bottom rails (y flips) or
    ``"vertical"`` for the left/right rails (x flips).
    """
    if wall == "horizontal":
        return -incident_deg
    if wall == "vertical":
        return 180.0 - incident_deg
    raise ValueError(f"wall must be 'horizontal' or 'vertical', got {wall!r}")


# ──────────────────────────────────────────────
# Path post-processing
# ──────────────────────────────────────────────
def extract_bounce_points(path: Sequence[Sequence[float]],
                          angle_threshold: float = BOUNCE_ANGLE_THRESHOLD) -> List[Point]:
    """Interior points where the heading turns by more than ``angle_threshold``.

    May over- or under-count real rail contacts (a glancing bounce can turn
    less than the threshold). Use for markers only.
    """
    if len(path) < 3:
        return []

    pts = np.asarray(path, dtype=float)
    seg = np.diff(pts, axis=0)
    bearings = np.degrees(np.arctan2(seg[:, 1], seg[:, 0]))

    turn = np.abs(bearings[:-1] - bearings[1:])
    turn = np.where(turn > 180.0, 360.0 - turn, turn)

    # turn[k] is the heading change at interior point k + 1
    idx = np.nonzero(turn > angle_threshold)[0] + 1
    return [Point(float(pts[i, 0]), float(pts[i, 1])) for i in idx]


def smooth_trajectory(path: Sequence[Point], spacing: float = SMOOTH_SPACING) -> List[Point]:
    """Downsample a path so kept points are at least ``spacing`` apart.

    The first and last points are always kept and order is preserved.
    """
    if len(path) <= 2:
        return list(path)

    smoothed = [path[0]]
    last_kept = path[0]
    last_index = len(path) - 1
    for i in range(1, len(path)):
        if distance(last_kept, path[i]) >= spacing or i == last_index:
            smoothed.append(path[i])
            last_kept = path[i]
    return smoothed
