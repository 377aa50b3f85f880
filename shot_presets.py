"""
Shot Preset System
Named launch scenarios on the default 300x150 table, ready to simulate.
"""

from physics import DEFAULT_CONFIG, LaunchRequest, PhysicsEngine, Point

TABLE_W = 300.0
TABLE_H = 150.0


def _run(name: str, request: LaunchRequest, config=DEFAULT_CONFIG, run=True) -> dict:
    engine = PhysicsEngine(config)
    result = engine.simulate_detailed(request) if run else None
    return {"name": name, "request": request, "config": config,
            "engine": engine, "result": result}


class ShotPreset:
    """Each preset builds a LaunchRequest → optional simulate → result dict."""

    @staticmethod
    def scenario_1_rail(run=True) -> dict:
        """Straight rail shot: flat along +x, one contact on the right rail."""
        req = LaunchRequest(Point(250.0, 75.0), 0.0, 100.0, TABLE_W, TABLE_H, 8)
        return _run("rail", req, run=run)

    @staticmethod
    def scenario_2_corner(run=True) -> dict:
        """Corner shot: 45° towards the bottom-right pocket area."""
        req = LaunchRequest(Point(250.0, 110.0), 45.0, 100.0, TABLE_W, TABLE_H, 8)
        return _run("corner", req, run=run)

    @staticmethod
    def scenario_3_bank(run=True) -> dict:
        """Bank shot: steep down-right, off the bottom rail and back up."""
        req = LaunchRequest(Point(150.0, 120.0), 60.0, 80.0, TABLE_W, TABLE_H, 8)
        return _run("bank", req, run=run)

    @staticmethod
    def scenario_4_lag(run=True) -> dict:
        """Lag shot: half force from the head spot, dies before any rail."""
        req = LaunchRequest(Point(75.0, 75.0), 0.0, 50.0, TABLE_W, TABLE_H, 8)
        return _run("lag", req, run=run)

    @staticmethod
    def scenario_5_long_rail(run=True) -> dict:
        """Head-spot rail shot on a coarse 0.6 time step.

        Each recorded point covers 7.5x more ground, so the same half-force
        shot reaches the right rail (x = 292) and rolls back.
        """
        config = DEFAULT_CONFIG.updated(time_step=0.6)
        req = LaunchRequest(Point(75.0, 75.0), 0.0, 50.0, TABLE_W, TABLE_H, 8)
        return _run("long_rail", req, config=config, run=run)


PRESETS = {
    "rail":      ShotPreset.scenario_1_rail,
    "corner":    ShotPreset.scenario_2_corner,
    "bank":      ShotPreset.scenario_3_bank,
    "lag":       ShotPreset.scenario_4_lag,
    "long_rail": ShotPreset.scenario_5_long_rail,
}
