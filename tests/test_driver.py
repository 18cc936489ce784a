"""Tests for infection_sim.driver — synchronous and background ticking."""

import time

import pytest

from infection_sim.config import default_config
from infection_sim.driver import SimulationDriver
from infection_sim.engine import SimulationEngine
from infection_sim.recorder import StatsRecorder
from infection_sim.snapshots import SnapshotFormatError


@pytest.fixture
def engine():
    config = default_config()
    config.simulation.parallel_workers = 1
    eng = SimulationEngine(config, seed=42)
    eng.initialize()
    yield eng
    eng.close()


class TestSynchronous:
    def test_run_for(self, engine):
        driver = SimulationDriver(engine, dt=0.04, realtime=False)
        n = driver.run_for(2.0)
        assert n == 50
        assert engine.ticks == 50
        assert engine.simulation_time == pytest.approx(2.0)

    def test_default_dt(self, engine):
        driver = SimulationDriver(engine)
        assert driver.dt == engine.config.simulation.dt

    def test_invalid_dt(self, engine):
        with pytest.raises(ValueError):
            SimulationDriver(engine, dt=0.0)

    def test_recorder_and_callback(self, engine):
        recorder = StatsRecorder(enabled=True, interval_ticks=5)
        seen = []
        driver = SimulationDriver(engine, dt=0.04, realtime=False,
                                  recorder=recorder,
                                  on_tick=lambda e: seen.append(e.ticks))
        driver.step(20)
        assert seen == list(range(1, 21))
        assert len(recorder) == 4


class TestBackground:
    def test_start_stop(self, engine):
        driver = SimulationDriver(engine, dt=0.04, realtime=False)
        driver.start()
        assert driver.is_running
        deadline = time.monotonic() + 5.0
        while engine.ticks < 10 and time.monotonic() < deadline:
            time.sleep(0.01)
        driver.stop(timeout=5.0)
        assert not driver.is_running
        ticks = engine.ticks
        assert ticks >= 10
        time.sleep(0.05)
        assert engine.ticks == ticks

    def test_start_twice_is_noop(self, engine):
        driver = SimulationDriver(engine, dt=0.04, realtime=True)
        driver.start()
        thread = driver._thread
        driver.start()
        assert driver._thread is thread
        driver.pause()
        assert not driver.is_running

    def test_reset_stops_loop(self, engine):
        driver = SimulationDriver(engine, dt=0.04, realtime=False)
        driver.start()
        driver.reset(immunity_enabled=True)
        assert not driver.is_running
        assert engine.ticks == 0
        assert engine.has_immunity


class TestSaveLoad:
    def test_save_load(self, engine, tmp_path):
        driver = SimulationDriver(engine, dt=0.04, realtime=False)
        driver.step(30)
        before = engine.create_snapshot()
        path = driver.save(directory=tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("simulation_")

        driver.step(30)
        driver.load(path)
        assert engine.create_snapshot() == before

    def test_save_explicit_path(self, engine, tmp_path):
        driver = SimulationDriver(engine, realtime=False)
        path = driver.save(path=tmp_path / "nested" / "run.json")
        assert path.exists()

    def test_failed_load_leaves_engine_untouched(self, engine, tmp_path):
        driver = SimulationDriver(engine, dt=0.04, realtime=False)
        driver.step(5)
        before = engine.create_snapshot()
        bad = tmp_path / "bad.json"
        bad.write_text("not json")
        with pytest.raises(SnapshotFormatError):
            driver.load(bad)
        with pytest.raises(FileNotFoundError):
            driver.load(tmp_path / "missing.json")
        assert engine.create_snapshot() == before
