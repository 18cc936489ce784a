"""Tests for parallel agent stepping (ThreadPoolExecutor).

Verifies that:
  1. parallel_workers=1 (serial) works unchanged
  2. parallel_workers>1 completes without errors
  3. parallel and serial runs with the same seed are identical
  4. Config accepts the parallel_workers field
"""

import pytest

from infection_sim.config import SimulationConfig, default_config, validate_config
from infection_sim.engine import SimulationEngine


# ─── Helpers ──────────────────────────────────────────────────────────

def _run_sim(parallel_workers, n_ticks=300, seed=42, immunity=True):
    """Run a short simulation with the given parallelism."""
    config = default_config()
    config.simulation.parallel_workers = parallel_workers
    config.population.spawn_chance = 0.2
    with SimulationEngine(config, seed=seed) as engine:
        engine.initialize(immunity_enabled=immunity)
        for _ in range(n_ticks):
            engine.update(0.04)
        return engine.create_snapshot(), engine.get_stats()


# ─── Tests ────────────────────────────────────────────────────────────

class TestParallelConfig:
    def test_default_workers(self):
        config = default_config()
        assert config.simulation.parallel_workers == 4

    def test_dataclass_field(self):
        config = SimulationConfig()
        config.simulation.parallel_workers = 8
        assert config.simulation.parallel_workers == 8

    def test_zero_workers_rejected(self):
        config = default_config()
        config.simulation.parallel_workers = 0
        with pytest.raises(ValueError, match="parallel_workers"):
            validate_config(config)


class TestParallelRun:
    def test_serial_run(self):
        _, stats = _run_sim(parallel_workers=1)
        assert stats.population > 0
        assert stats.ticks == 300

    def test_parallel_run(self):
        _, stats = _run_sim(parallel_workers=4)
        assert stats.population > 0
        assert stats.ticks == 300

    @pytest.mark.parametrize("workers", [2, 4, 8])
    def test_parallel_matches_serial(self, workers):
        serial_snap, serial_stats = _run_sim(parallel_workers=1)
        par_snap, par_stats = _run_sim(parallel_workers=workers)
        assert par_stats == serial_stats
        assert par_snap == serial_snap

    def test_close_is_idempotent(self):
        config = default_config()
        engine = SimulationEngine(config, seed=1)
        engine.initialize()
        engine.update(0.04)
        engine.close()
        engine.close()
        engine.update(0.04)   # pool is recreated on demand
        engine.close()
        assert engine.ticks == 2

    def test_worker_count_change_resizes_pool(self):
        config = default_config()
        config.simulation.parallel_workers = 2
        config.population.spawn_chance = 0.2
        with SimulationEngine(config, seed=42) as engine:
            engine.initialize(immunity_enabled=True)
            for _ in range(50):
                engine.update(0.04)
            assert engine._executor._max_workers == 2

            config.simulation.parallel_workers = 6
            for _ in range(250):
                engine.update(0.04)
            assert engine._executor._max_workers == 6
            changed = engine.create_snapshot()

        serial_snap, _ = _run_sim(parallel_workers=1, seed=42)
        assert changed == serial_snap
