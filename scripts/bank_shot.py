"""Bank shot — off the bottom rail, back up the table"""

SCRIPT = {
    "setup": {
        "table":       (300.0, 150.0),
        "cue_ball":    (40.0, 40.0),
        "max_bounces": 4,
    },
    "shot": {
        "angle": 35.0,   # clockwise from +x, i.e. down-right on screen
        "force": 90.0,
    },
}
