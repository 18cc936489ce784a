"""Headless fixed-rate driver for the engine.

Runs `engine.update(dt)` either synchronously (`step`, `run_for`) or on a
background thread at wall-clock rate (`start` / `pause` / `stop`).
All engine access goes through `lock`, so a reader that holds the lock
(e.g. a renderer grabbing `engine.agent_views()`) never sees a
half-finished tick.

Save and load stop the background loop first so the snapshot is taken
from, or applied to, a quiescent engine.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .engine import SimulationEngine
from .recorder import StatsRecorder
from .snapshots import generate_file_name, load_snapshot, save_snapshot

TickCallback = Callable[[SimulationEngine], None]


class SimulationDriver:
    """Drives a SimulationEngine at a fixed timestep."""

    def __init__(
        self,
        engine: SimulationEngine,
        dt: Optional[float] = None,
        realtime: bool = True,
        recorder: Optional[StatsRecorder] = None,
        on_tick: Optional[TickCallback] = None,
    ):
        """
        Args:
            engine: Engine to drive (initialized by the caller).
            dt: Fixed timestep (s); defaults to config.simulation.dt.
            realtime: Background loop sleeps to keep 1/dt ticks per second
                of wall time. False runs as fast as possible.
            recorder: Optional stats recorder fed after every tick.
            on_tick: Optional callback run after every tick (under lock).
        """
        self.engine = engine
        self.dt = dt if dt is not None else engine.config.simulation.dt
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        self.realtime = realtime
        self.recorder = recorder
        self.on_tick = on_tick
        self.lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ── synchronous stepping ──────────────────────────────────────────

    def step(self, n: int = 1) -> None:
        """Run n ticks on the calling thread."""
        for _ in range(n):
            with self.lock:
                self.engine.update(self.dt)
                if self.recorder is not None:
                    self.recorder.capture(self.engine)
                if self.on_tick is not None:
                    self.on_tick(self.engine)

    def run_for(self, seconds: float) -> int:
        """Run round(seconds / dt) ticks synchronously; returns the count."""
        n = int(round(seconds / self.dt))
        self.step(n)
        return n

    # ── background loop ───────────────────────────────────────────────

    def start(self) -> None:
        """Start ticking on a background thread (no-op if already running)."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="infection-sim-driver", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self.step()
            if self.realtime:
                next_tick += self.dt
                delay = next_tick - time.monotonic()
                if delay > 0:
                    self._stop_event.wait(delay)
                else:
                    # Fell behind; don't try to catch up in a burst
                    next_tick = time.monotonic()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background loop and wait for the current tick to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    pause = stop

    # ── reset / save / load ───────────────────────────────────────────

    def reset(self, immunity_enabled: bool = False) -> None:
        self.stop()
        with self.lock:
            self.engine.initialize(immunity_enabled)

    def save(
        self,
        path: Optional[Union[str, Path]] = None,
        directory: Union[str, Path] = ".",
    ) -> Path:
        """Save a snapshot; without `path`, a timestamped name in `directory`."""
        self.stop()
        if path is None:
            path = Path(directory) / generate_file_name()
        with self.lock:
            memento = self.engine.create_snapshot()
        return save_snapshot(memento, path)

    def load(self, path: Union[str, Path]) -> None:
        """Replace the engine state from a snapshot file.

        Raises:
            FileNotFoundError, SnapshotFormatError: The engine is left
                untouched when loading fails.
        """
        self.stop()
        memento = load_snapshot(path)
        with self.lock:
            self.engine.restore_snapshot(memento)
