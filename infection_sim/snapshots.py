"""Engine snapshots (mementos) and their JSON codec.

A snapshot is a flat, versionless record of the full engine state:

    {
      "individuals": [
        {"id": 0, "position_x": 12.5, "position_y": 300.0,
         "velocity_x": 4.1, "velocity_y": -9.8,
         "state_name": "infected_symptomatic",
         "infection_time": 3.2, "infection_duration": 24.7},
        ...
      ],
      "simulation_time": 61.4,
      "has_immunity": false,
      "next_id": 73
    }

Known limitation: per-agent contact_time is not stored. Restored agents
start with an empty contact tracker, so partially accumulated contact
windows are lost on reload.

Usage:
    memento = engine.create_snapshot()
    save_snapshot(memento, Path("saves") / generate_file_name())

    engine.restore_snapshot(load_snapshot("saves/simulation_20240101_120000.json"))
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class SnapshotFormatError(ValueError):
    """Persisted snapshot data is unparsable or structurally invalid."""


@dataclass
class IndividualMemento:
    """Flat record of one agent."""
    id: int
    position_x: float
    position_y: float
    velocity_x: float
    velocity_y: float
    state_name: str
    infection_time: float
    infection_duration: float


@dataclass
class SimulationMemento:
    """Flat record of the whole engine."""
    individuals: List[IndividualMemento] = field(default_factory=list)
    simulation_time: float = 0.0
    has_immunity: bool = False
    next_id: int = 0


_FLOAT_FIELDS = (
    'position_x', 'position_y', 'velocity_x', 'velocity_y',
    'infection_time', 'infection_duration',
)


# ═══════════════════════════════════════════════════════════════════════
# DICT CODEC
# ═══════════════════════════════════════════════════════════════════════

def memento_to_dict(memento: SimulationMemento) -> Dict[str, Any]:
    """Plain JSON-compatible dict of a snapshot."""
    return asdict(memento)


def _fail(msg: str) -> SnapshotFormatError:
    return SnapshotFormatError(f"invalid format: {msg}")


def _require_int(data: Dict[str, Any], key: str, where: str) -> int:
    if key not in data:
        raise _fail(f"{where} is missing '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise _fail(f"{where}.{key} must be an integer, got {value!r}")
    return value


def _require_float(data: Dict[str, Any], key: str, where: str) -> float:
    if key not in data:
        raise _fail(f"{where} is missing '{key}'")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _fail(f"{where}.{key} must be a number, got {value!r}")
    try:
        value = float(value)
    except OverflowError:
        raise _fail(f"{where}.{key} is out of range") from None
    if not math.isfinite(value):
        raise _fail(f"{where}.{key} must be finite, got {value!r}")
    return value


def _individual_from_dict(data: Any, index: int) -> IndividualMemento:
    where = f"individuals[{index}]"
    if not isinstance(data, dict):
        raise _fail(f"{where} must be an object, got {type(data).__name__}")

    agent_id = _require_int(data, 'id', where)
    if agent_id < 0:
        raise _fail(f"{where}.id must be non-negative, got {agent_id}")
    values = {key: _require_float(data, key, where) for key in _FLOAT_FIELDS}
    if values['infection_time'] < 0:
        raise _fail(
            f"{where}.infection_time must be non-negative, "
            f"got {values['infection_time']}"
        )

    state_name = data.get('state_name')
    if not isinstance(state_name, str):
        raise _fail(f"{where}.state_name must be a string, got {state_name!r}")

    return IndividualMemento(id=agent_id, state_name=state_name, **values)


def memento_from_dict(data: Any) -> SimulationMemento:
    """Validate and convert a decoded snapshot.

    Unknown state names are accepted here; they are resolved (to
    'healthy') when the engine restores the agent.

    Raises:
        SnapshotFormatError: On any structural problem.
    """
    if not isinstance(data, dict):
        raise _fail(f"top level must be an object, got {type(data).__name__}")

    raw_individuals = data.get('individuals')
    if not isinstance(raw_individuals, list):
        raise _fail("'individuals' must be a list")
    individuals = [_individual_from_dict(d, i) for i, d in enumerate(raw_individuals)]

    simulation_time = _require_float(data, 'simulation_time', 'snapshot')
    if simulation_time < 0:
        raise _fail(f"snapshot.simulation_time must be non-negative, got {simulation_time}")

    has_immunity = data.get('has_immunity')
    if not isinstance(has_immunity, bool):
        raise _fail(f"snapshot.has_immunity must be a boolean, got {has_immunity!r}")

    next_id = _require_int(data, 'next_id', 'snapshot')

    seen = set()
    for ind in individuals:
        if ind.id in seen:
            raise _fail(f"duplicate individual id {ind.id}")
        seen.add(ind.id)
    if seen and next_id <= max(seen):
        raise _fail(
            f"snapshot.next_id ({next_id}) must be greater than every "
            f"individual id (max {max(seen)})"
        )
    if next_id < 0:
        raise _fail(f"snapshot.next_id must be non-negative, got {next_id}")

    return SimulationMemento(
        individuals=individuals,
        simulation_time=simulation_time,
        has_immunity=has_immunity,
        next_id=next_id,
    )


# ═══════════════════════════════════════════════════════════════════════
# JSON / FILES
# ═══════════════════════════════════════════════════════════════════════

def dumps(memento: SimulationMemento) -> str:
    """Serialize to indented JSON."""
    return json.dumps(memento_to_dict(memento), indent=2)


def loads(text: Union[str, bytes]) -> SimulationMemento:
    """Parse and validate JSON snapshot text.

    Raises:
        SnapshotFormatError: If the text is not JSON or fails validation.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        raise _fail(f"not valid JSON ({e})") from e
    return memento_from_dict(data)


def save_snapshot(memento: SimulationMemento, path: Union[str, Path]) -> Path:
    """Write a snapshot file, creating parent directories.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(memento), encoding='utf-8')
    return path


def load_snapshot(path: Union[str, Path]) -> SimulationMemento:
    """Read a snapshot file.

    Raises:
        FileNotFoundError: If path doesn't exist.
        SnapshotFormatError: If the content is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")
    try:
        return loads(path.read_bytes())
    except SnapshotFormatError as e:
        raise SnapshotFormatError(f"{e} [{path}]") from e


def generate_file_name(now: Optional[datetime] = None) -> str:
    """Timestamped snapshot file name, e.g. simulation_20240101_120000.json."""
    now = now or datetime.now()
    return f"simulation_{now:%Y%m%d_%H%M%S}.json"
