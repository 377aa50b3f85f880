"""Straight rail shot — cue ball sent flat along +x towards the right rail"""

SCRIPT = {
    "setup": {
        "table":       (300.0, 150.0),
        "cue_ball":    (75.0, 75.0),
        "max_bounces": 8,
    },
    "shot": {
        "angle": 0.0,
        "force": 100.0,
    },
}
