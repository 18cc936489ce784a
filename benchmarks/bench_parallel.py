#!/usr/bin/env python3
"""Benchmark parallel agent stepping.

Runs 60 simulated seconds at a full population (100 agents) with
workers=1,2,4,8 and reports wall-clock times. Because every run uses
the same seed, the final counters must be identical across worker
counts; the benchmark says so if they are not.
"""

import time
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from infection_sim.config import default_config
from infection_sim.engine import SimulationEngine


def benchmark(seconds=60.0, workers_list=None, seed=42):
    """Run benchmark across different worker counts."""
    if workers_list is None:
        workers_list = [1, 2, 4, 8]

    results = {}
    for w in workers_list:
        config = default_config()
        config.simulation.parallel_workers = w
        config.simulation.profile = True
        config.population.initial_population = 100

        with SimulationEngine(config, seed=seed) as engine:
            engine.initialize(immunity_enabled=False)
            n_ticks = int(round(seconds / config.simulation.dt))

            t0 = time.perf_counter()
            for _ in range(n_ticks):
                engine.update(config.simulation.dt)
            elapsed = time.perf_counter() - t0

            stats = engine.get_stats()
            agents_s = engine.perf.get_stats()['agents'].total_time

        results[w] = {
            'elapsed': elapsed,
            'agents_s': agents_s,
            'stats': stats,
        }
        print(f"  workers={w:2d}  time={elapsed:6.2f}s  "
              f"agent-phase={agents_s:6.2f}s  "
              f"pop={stats.population}  infected={stats.infected}  "
              f"immune={stats.immune}")

    return results


if __name__ == "__main__":
    print("Benchmark: 100 agents, 60 simulated seconds, dt=0.04")
    print(f"{'='*60}")
    results = benchmark()

    print(f"\n{'='*60}")
    print("Summary:")
    serial = results[1]
    for w, r in results.items():
        speedup = serial['elapsed'] / r['elapsed'] if r['elapsed'] > 0 else 0
        same = "" if r['stats'] == serial['stats'] else "  (RESULTS DIFFER FROM SERIAL)"
        print(f"  workers={w:2d}: {r['elapsed']:6.2f}s  "
              f"speedup={speedup:.2f}x{same}")
