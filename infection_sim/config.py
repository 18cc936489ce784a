"""Configuration system for Infection-Sim.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → command-line overrides

Physical quantities are given in metres and seconds; the arena is
measured in pixels, converted with `arena.pixels_per_meter`
(10 px = 1 m by default). Use the derived properties on
SimulationConfig (min_speed_px, infection_distance_px, ...) rather
than converting by hand.
"""

from __future__ import annotations

import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run control: seeding, timestep, parallelism."""
    seed: Optional[int] = None     # None = fresh OS entropy per engine
    dt: float = 0.04               # Fixed timestep (s); 25 ticks per second
    parallel_workers: int = 4      # Agent-update worker threads (1 = serial)
    profile: bool = False          # Enable PerfMonitor phase timings


@dataclass
class ArenaSection:
    """Arena geometry."""
    width: int = 800               # px
    height: int = 600              # px
    pixels_per_meter: float = 10.0


@dataclass
class MovementSection:
    """Agent kinematics (correlated random walk with wall bounces)."""
    min_speed: float = 0.5         # m/s
    max_speed: float = 2.5         # m/s
    steering_rate: float = 0.10    # Expected heading changes per second
    max_turn_angle: float = 0.15   # rad; turns drawn from U(-a, +a)
    speed_jitter: float = 0.02     # Fractional speed change on a turn
    bounce_probability: float = 0.5  # P(bounce) vs P(leave) at a wall
    degenerate_speed: float = 1e-9   # px/s; below this the heading is redrawn


@dataclass
class DiseaseSection:
    """Contact-infection and recovery parameters."""
    infection_distance: float = 2.0      # m
    contact_time_required: float = 3.0   # s of continuous close contact
    p_infect_asymptomatic: float = 0.50  # per attempt, asymptomatic source
    p_infect_symptomatic: float = 1.00   # per attempt, symptomatic source
    symptomatic_fraction: float = 0.50   # P(new infection is symptomatic)
    infection_duration_min: float = 20.0  # s
    infection_duration_max: float = 30.0  # s


@dataclass
class PopulationSection:
    """Seeding and churn."""
    initial_population: int = 50
    max_population: int = 100
    spawn_chance: float = 0.05           # per tick
    immune_fraction: float = 0.30        # only when immunity is enabled
    initial_infected_fraction: float = 0.10


@dataclass
class OutputSection:
    """Output control for headless runs."""
    directory: str = "results/"
    record_stats: bool = False
    stats_interval_ticks: int = 25       # once per simulated second at 25 Hz
    record_agents: bool = False


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    arena: ArenaSection = field(default_factory=ArenaSection)
    movement: MovementSection = field(default_factory=MovementSection)
    disease: DiseaseSection = field(default_factory=DiseaseSection)
    population: PopulationSection = field(default_factory=PopulationSection)
    output: OutputSection = field(default_factory=OutputSection)

    # ── derived quantities in arena units ──────────────────────────────

    @property
    def min_speed_px(self) -> float:
        return self.movement.min_speed * self.arena.pixels_per_meter

    @property
    def max_speed_px(self) -> float:
        return self.movement.max_speed * self.arena.pixels_per_meter

    @property
    def infection_distance_px(self) -> float:
        return self.disease.infection_distance * self.arena.pixels_per_meter


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


_SECTION_MAP = {
    'simulation': SimulationSection,
    'arena': ArenaSection,
    'movement': MovementSection,
    'disease': DiseaseSection,
    'population': PopulationSection,
    'output': OutputSection,
}


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def config_to_dict(config: SimulationConfig) -> Dict[str, Dict[str, Any]]:
    """Plain-dict view of a config (YAML-dumpable)."""
    return dataclasses.asdict(config)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Timestep, arena and worker counts are positive
      - Speed and infection-duration ranges are ordered
      - Probabilities lie in [0, 1]
      - Population sizes are consistent (warns if seeding exceeds the cap)
    """
    sim = config.simulation
    if sim.seed is not None and sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.dt <= 0:
        raise ValueError(f"simulation.dt must be positive, got {sim.dt}")
    if sim.parallel_workers < 1:
        raise ValueError(
            f"simulation.parallel_workers must be >= 1, got {sim.parallel_workers}"
        )

    arena = config.arena
    if arena.width <= 0 or arena.height <= 0:
        raise ValueError(
            f"arena.width and arena.height must be positive, "
            f"got {arena.width}x{arena.height}"
        )
    if arena.pixels_per_meter <= 0:
        raise ValueError("arena.pixels_per_meter must be positive")

    mv = config.movement
    if mv.min_speed <= 0:
        raise ValueError(f"movement.min_speed must be positive, got {mv.min_speed}")
    if mv.min_speed > mv.max_speed:
        raise ValueError(
            f"movement.min_speed ({mv.min_speed}) must be <= "
            f"max_speed ({mv.max_speed})"
        )
    if mv.steering_rate < 0:
        raise ValueError("movement.steering_rate must be >= 0")
    if mv.max_turn_angle < 0:
        raise ValueError("movement.max_turn_angle must be >= 0")
    if not (0.0 <= mv.speed_jitter < 1.0):
        raise ValueError(
            f"movement.speed_jitter must be in [0, 1), got {mv.speed_jitter}"
        )

    ds = config.disease
    if ds.infection_distance < 0:
        raise ValueError("disease.infection_distance must be >= 0")
    if ds.contact_time_required < 0:
        raise ValueError("disease.contact_time_required must be >= 0")
    if ds.infection_duration_min > ds.infection_duration_max:
        raise ValueError(
            f"disease.infection_duration_min ({ds.infection_duration_min}) must be "
            f"<= infection_duration_max ({ds.infection_duration_max})"
        )
    if ds.infection_duration_min < 0:
        raise ValueError("disease.infection_duration_min must be >= 0")

    probabilities = {
        'movement.bounce_probability': mv.bounce_probability,
        'disease.p_infect_asymptomatic': ds.p_infect_asymptomatic,
        'disease.p_infect_symptomatic': ds.p_infect_symptomatic,
        'disease.symptomatic_fraction': ds.symptomatic_fraction,
        'population.spawn_chance': config.population.spawn_chance,
        'population.immune_fraction': config.population.immune_fraction,
        'population.initial_infected_fraction':
            config.population.initial_infected_fraction,
    }
    for name, value in probabilities.items():
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"{name} must be in [0, 1], got {value}")

    pop = config.population
    if pop.initial_population < 0:
        raise ValueError("population.initial_population must be >= 0")
    if pop.max_population < 0:
        raise ValueError("population.max_population must be >= 0")
    if pop.initial_population > pop.max_population:
        warnings.warn(
            f"population.initial_population ({pop.initial_population}) exceeds "
            f"max_population ({pop.max_population}); no edge spawns will occur "
            f"until the population falls below the cap.",
            UserWarning,
            stacklevel=2,
        )

    if config.output.stats_interval_ticks < 1:
        raise ValueError("output.stats_interval_ticks must be >= 1")


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML (skipped if missing).
        overrides: Optional dict of overrides (e.g. from the command line).

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def config_from_overrides(overrides: Optional[Dict] = None) -> SimulationConfig:
    """Built-in defaults with `overrides` merged in, validated.

    Used when no base YAML is given; the layering matches load_config.

    Raises:
        ValueError: If validation fails.
    """
    config_dict = config_to_dict(SimulationConfig())
    if overrides is not None:
        deep_merge(config_dict, overrides)
    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
