"""Tests for infection_sim.individual — agent kinematics, exit and mementos."""

import numpy as np
import pytest

from infection_sim.config import default_config
from infection_sim.individual import Individual, build_neighbor_snapshot
from infection_sim.snapshots import IndividualMemento
from infection_sim.types import InfectionState
from infection_sim.vector import Vector2D

W, H = 800, 600
EPS = 1e-9


def speed_bounds(config):
    return config.min_speed_px, config.max_speed_px


# ═══════════════════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════

class TestCreate:
    def test_create_draws_within_ranges(self):
        config = default_config()
        rng = np.random.default_rng(3)
        lo, hi = speed_bounds(config)
        for i in range(200):
            ind = Individual.create(i, 10.0, 20.0, rng, config)
            assert ind.position == Vector2D(10.0, 20.0)
            assert lo - EPS <= ind.velocity.magnitude() <= hi + EPS
            assert 20.0 <= ind.infection_duration <= 30.0
            assert ind.state is InfectionState.HEALTHY
            assert ind.contact_time == {}
            assert ind.infection_time == 0.0
            assert ind.alive

    def test_create_with_state(self):
        ind = Individual.create(0, 1.0, 1.0, np.random.default_rng(0),
                                state=InfectionState.IMMUNE)
        assert ind.state is InfectionState.IMMUNE
        assert ind.color == "blue"

    def test_become_infected(self):
        ind = Individual(0, Vector2D(1, 1), Vector2D(5, 0))
        ind.contact_time[4] = 2.0
        ind.become_infected(symptomatic=True)
        assert ind.state is InfectionState.INFECTED_SYMPTOMATIC
        assert ind.contact_time == {}
        assert ind.infection_time == 0.0


# ═══════════════════════════════════════════════════════════════════════
# KINEMATICS
# ═══════════════════════════════════════════════════════════════════════

class TestUpdateKinematics:
    def test_speed_and_position_bounds_hold(self):
        """Over many random ticks every live agent stays in the arena
        with speed in [min, max]."""
        config = default_config()
        lo, hi = speed_bounds(config)
        rng = np.random.default_rng(123)
        agents = [Individual.create(i, rng.random() * W, rng.random() * H,
                                    np.random.default_rng(i), config)
                  for i in range(30)]
        agent_rngs = {a.id: np.random.default_rng(1000 + a.id) for a in agents}
        for _ in range(500):
            snap = build_neighbor_snapshot(agents)
            for a in agents:
                a.update(0.04, W, H, snap, agent_rngs[a.id], config)
            agents = [a for a in agents if a.alive]
            for a in agents:
                assert 0.0 <= a.position.x <= W
                assert 0.0 <= a.position.y <= H
                assert lo - EPS <= a.velocity.magnitude() <= hi + EPS

    def test_slow_agent_is_reseeded(self):
        config = default_config()
        ind = Individual(0, Vector2D(400, 300), Vector2D(0.1, 0.0))
        ind.update(0.04, W, H, build_neighbor_snapshot([ind]),
                   np.random.default_rng(0), config)
        assert ind.velocity.magnitude() >= config.min_speed_px - EPS

    def test_fast_agent_is_capped(self):
        config = default_config()
        ind = Individual(0, Vector2D(400, 300), Vector2D(300.0, 400.0))
        ind.update(0.04, W, H, build_neighbor_snapshot([ind]),
                   np.random.default_rng(0), config)
        assert ind.velocity.magnitude() <= config.max_speed_px + EPS

    def test_straight_line_without_steering(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        ind = Individual(0, Vector2D(100.0, 100.0), Vector2D(10.0, 0.0))
        ind.update(0.5, W, H, build_neighbor_snapshot([ind]),
                   np.random.default_rng(0), config)
        assert ind.position.x == pytest.approx(105.0)
        assert ind.position.y == pytest.approx(100.0)
        assert ind.velocity == Vector2D(10.0, 0.0)

    def test_dead_agent_does_nothing(self):
        ind = Individual(0, Vector2D(100.0, 100.0), Vector2D(10.0, 0.0))
        ind.alive = False
        assert ind.update(0.04, W, H, build_neighbor_snapshot([]),
                          np.random.default_rng(0)) is False
        assert ind.position == Vector2D(100.0, 100.0)
        assert ind.is_dead_or_left


class TestBoundary:
    def _crossing_agent(self):
        return Individual(0, Vector2D(1.0, 300.0), Vector2D(-20.0, 0.0))

    def test_bounce(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        config.movement.bounce_probability = 1.0
        ind = self._crossing_agent()
        alive = ind.update(0.5, W, H, build_neighbor_snapshot([ind]),
                           np.random.default_rng(0), config)
        assert alive
        assert ind.position.x == 0.0
        assert ind.velocity.x == 20.0

    def test_exit(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        config.movement.bounce_probability = 0.0
        ind = self._crossing_agent()
        alive = ind.update(0.5, W, H, build_neighbor_snapshot([ind]),
                           np.random.default_rng(0), config)
        assert not alive
        assert not ind.alive

    def test_crossing_always_bounces_or_exits(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        rng = np.random.default_rng(5)
        outcomes = set()
        for _ in range(200):
            ind = self._crossing_agent()
            alive = ind.update(0.5, W, H, build_neighbor_snapshot([ind]), rng, config)
            if alive:
                assert ind.velocity.x > 0 and 0.0 <= ind.position.x <= W
                outcomes.add('bounce')
            else:
                outcomes.add('exit')
        assert outcomes == {'bounce', 'exit'}

    def test_landing_on_wall_is_inside(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        config.movement.bounce_probability = 0.0
        ind = Individual(0, Vector2D(10.0, 300.0), Vector2D(-20.0, 0.0))
        alive = ind.update(0.5, W, H, build_neighbor_snapshot([ind]),
                           np.random.default_rng(0), config)
        assert alive
        assert ind.position.x == 0.0
        assert ind.velocity.x == -20.0


# ═══════════════════════════════════════════════════════════════════════
# TWO-AGENT INFECTION
# ═══════════════════════════════════════════════════════════════════════

class TestTwoAgentContact:
    def test_symptomatic_neighbour_infects_within_four_seconds(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        healthy = Individual(0, Vector2D(400.0, 300.0), Vector2D(5.0, 0.0))
        sick = Individual(1, Vector2D(401.0, 300.0), Vector2D(5.0, 0.0),
                          state=InfectionState.INFECTED_SYMPTOMATIC)
        rngs = [np.random.default_rng(0), np.random.default_rng(1)]

        for tick in range(100):
            snap = build_neighbor_snapshot([healthy, sick])
            healthy.update(0.04, W, H, snap, rngs[0], config)
            sick.update(0.04, W, H, snap, rngs[1], config)
            if tick < 70:
                assert healthy.state is InfectionState.HEALTHY
        assert healthy.state in (InfectionState.INFECTED_ASYMPTOMATIC,
                                 InfectionState.INFECTED_SYMPTOMATIC)
        assert healthy.infection_time < 1.5

    def test_distant_agents_never_infect(self):
        config = default_config()
        config.movement.steering_rate = 0.0
        healthy = Individual(0, Vector2D(100.0, 300.0), Vector2D(0.0, 5.0))
        sick = Individual(1, Vector2D(600.0, 300.0), Vector2D(0.0, 5.0),
                          state=InfectionState.INFECTED_SYMPTOMATIC)
        rng = np.random.default_rng(0)
        for _ in range(100):
            snap = build_neighbor_snapshot([healthy, sick])
            healthy.update(0.04, W, H, snap, rng, config)
            sick.update(0.04, W, H, snap, rng, config)
        assert healthy.state is InfectionState.HEALTHY


# ═══════════════════════════════════════════════════════════════════════
# SNAPSHOT / MEMENTO
# ═══════════════════════════════════════════════════════════════════════

class TestNeighborSnapshot:
    def test_fields_and_read_only(self):
        a = Individual(3, Vector2D(1.0, 2.0), Vector2D(5, 0),
                       state=InfectionState.INFECTED_ASYMPTOMATIC)
        b = Individual(7, Vector2D(3.0, 4.0), Vector2D(5, 0))
        b.alive = False
        snap = build_neighbor_snapshot([a, b])
        assert list(snap['id']) == [3, 7]
        assert list(snap['x']) == [1.0, 3.0]
        assert list(snap['state']) == [1, 0]
        assert list(snap['alive']) == [True, False]
        with pytest.raises(ValueError):
            snap['x'][0] = 9.0

    def test_snapshot_is_independent_of_later_moves(self):
        a = Individual(0, Vector2D(1.0, 2.0), Vector2D(5, 0))
        snap = build_neighbor_snapshot([a])
        a.position = Vector2D(50.0, 50.0)
        assert snap['x'][0] == 1.0


class TestMemento:
    def test_save_restore(self):
        ind = Individual(9, Vector2D(12.5, 30.0), Vector2D(-4.0, 3.0),
                         state=InfectionState.INFECTED_SYMPTOMATIC,
                         infection_time=3.5, infection_duration=22.0)
        ind.contact_time[2] = 1.0
        m = ind.save_state()
        assert m == IndividualMemento(
            id=9, position_x=12.5, position_y=30.0, velocity_x=-4.0,
            velocity_y=3.0, state_name="infected_symptomatic",
            infection_time=3.5, infection_duration=22.0,
        )
        restored = Individual.restore_state(m)
        assert restored.id == 9
        assert restored.position == ind.position
        assert restored.velocity == ind.velocity
        assert restored.state is InfectionState.INFECTED_SYMPTOMATIC
        assert restored.infection_time == 3.5
        assert restored.infection_duration == 22.0
        assert restored.contact_time == {}
        assert restored.alive

    def test_unknown_state_restores_healthy(self):
        m = IndividualMemento(
            id=1, position_x=1.0, position_y=1.0, velocity_x=5.0,
            velocity_y=0.0, state_name="zombie",
            infection_time=0.0, infection_duration=25.0,
        )
        with pytest.warns(UserWarning, match="zombie"):
            restored = Individual.restore_state(m)
        assert restored.state is InfectionState.HEALTHY
