#!/usr/bin/env python3
"""Run the infection simulation headless and report the counters.

Usage:
    python scripts/run_simulation.py --seconds 120
    python scripts/run_simulation.py --config configs/default.yaml \\
        --scenario configs/scenarios/crowded.yaml --immunity --save-dir saves
    python scripts/run_simulation.py --load saves/simulation_20240101_120000.json \\
        --seconds 30 --stats-out results/resumed.npz
    python scripts/run_simulation.py --seconds 60 --profile-out results/timing.json

Exit status is non-zero when a snapshot cannot be loaded.
"""

import argparse
import json
import sys
import time
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from infection_sim.config import config_from_overrides, load_config
from infection_sim.driver import SimulationDriver
from infection_sim.engine import SimulationEngine
from infection_sim.recorder import StatsRecorder
from infection_sim.snapshots import SnapshotFormatError


def format_stats(stats) -> str:
    return (
        f"t={stats.time:7.1f}s  pop={stats.population:3d}  "
        f"healthy={stats.healthy:3d}  infected={stats.infected:3d} "
        f"(asym {stats.asymptomatic:2d} / sym {stats.symptomatic:2d})  "
        f"immune={stats.immune:3d}"
    )


def build_config(args):
    overrides = {'simulation': {}}
    if args.seed is not None:
        overrides['simulation']['seed'] = args.seed
    if args.dt is not None:
        overrides['simulation']['dt'] = args.dt
    if args.workers is not None:
        overrides['simulation']['parallel_workers'] = args.workers
    if args.profile or args.profile_out is not None:
        overrides['simulation']['profile'] = True

    if args.config is not None:
        return load_config(args.config, scenario_path=args.scenario,
                           overrides=overrides)
    return config_from_overrides(overrides)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Run the contact-infection simulation without a UI.",
        epilog="Example: python scripts/run_simulation.py --seconds 60 --immunity",
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Base config YAML (default: built-in defaults)")
    parser.add_argument("--scenario", type=str, default=None,
                        help="Scenario override YAML (requires --config)")
    parser.add_argument("--seconds", type=float, default=60.0,
                        help="Simulated seconds to run (default: 60)")
    parser.add_argument("--dt", type=float, default=None,
                        help="Fixed timestep in seconds (default: from config)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Master RNG seed")
    parser.add_argument("--workers", type=int, default=None,
                        help="Agent-update worker threads")
    parser.add_argument("--immunity", action="store_true",
                        help="Allow agents to start immune")
    parser.add_argument("--load", type=str, default=None,
                        help="Resume from a snapshot JSON file")
    parser.add_argument("--save", type=str, default=None,
                        help="Write the final snapshot to this file")
    parser.add_argument("--save-dir", type=str, default=None,
                        help="Write the final snapshot with a timestamped name here")
    parser.add_argument("--stats-out", type=str, default=None,
                        help="Write the recorded stats history (.npz)")
    parser.add_argument("--profile", action="store_true",
                        help="Print per-phase tick timings")
    parser.add_argument("--profile-out", type=str, default=None,
                        help="Write the per-phase timing summary as JSON")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress progress output")
    args = parser.parse_args(argv)

    if args.scenario is not None and args.config is None:
        parser.error("--scenario requires --config")

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))
    recorder = StatsRecorder(
        enabled=config.output.record_stats or args.stats_out is not None,
        interval_ticks=config.output.stats_interval_ticks,
        record_agents=config.output.record_agents,
    )

    with SimulationEngine(config) as engine:
        engine.initialize(immunity_enabled=args.immunity)
        driver = SimulationDriver(engine, realtime=False, recorder=recorder)

        if args.load is not None:
            try:
                driver.load(args.load)
            except (FileNotFoundError, SnapshotFormatError) as e:
                print(f"Cannot load snapshot: {e}", file=sys.stderr)
                return 1

        if not args.quiet:
            print("=" * 72)
            print("Infection-Sim headless run")
            print("=" * 72)
            print(f"Arena: {engine.width}x{engine.height} px, "
                  f"dt={driver.dt}s, workers={config.simulation.parallel_workers}")
            print(f"Seed entropy: {engine.entropy}")
            print(format_stats(engine.get_stats()))

        recorder.capture(engine, force=True)
        report_every = max(1, int(round(10.0 / driver.dt)))  # every 10 simulated s
        n_ticks = int(round(args.seconds / driver.dt))

        t0 = time.perf_counter()
        for i in range(n_ticks):
            driver.step()
            if not args.quiet and (i + 1) % report_every == 0:
                print(format_stats(engine.get_stats()))
        elapsed = time.perf_counter() - t0

        final = engine.get_stats()
        if not args.quiet:
            print("-" * 72)
            print(format_stats(final))
            print(f"{n_ticks} ticks in {elapsed:.2f}s wall "
                  f"({n_ticks / elapsed if elapsed > 0 else 0:.0f} ticks/s)")
            peak = recorder.peak('infected')
            if peak is not None:
                print(f"Peak infected: {peak.infected} at t={peak.time:.1f}s")

        if args.save is not None or args.save_dir is not None:
            path = driver.save(path=args.save, directory=args.save_dir or ".")
            if not args.quiet:
                print(f"Snapshot saved: {path}")

        if args.stats_out is not None:
            recorder.save(args.stats_out)
            if not args.quiet:
                print(f"Stats history saved: {args.stats_out}")

        if args.profile:
            print(engine.perf.report())

        if args.profile_out is not None:
            out = Path(args.profile_out)
            out.parent.mkdir(parents=True, exist_ok=True)
            with open(out, 'w') as f:
                json.dump(engine.perf.summary(), f, indent=2)
            if not args.quiet:
                print(f"Timing summary saved: {out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
