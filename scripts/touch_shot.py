"""Drag shot — aim given as a touch point instead of force/angle"""

SCRIPT = {
    "setup": {
        "cue_ball": (75.0, 75.0),
    },
    "shot": {
        "touch": (15.0, 75.0),   # 60 left of the ball: pull 40 of 120, angle 180°
    },
}
