"""Tests for infection_sim.rng — seeded engine and per-agent streams."""

import numpy as np
import pytest

from infection_sim.rng import (
    ENGINE_STREAMS,
    create_agent_rng,
    create_engine_rngs,
    master_entropy,
)


class TestMasterEntropy:
    def test_fixed_seed_is_kept(self):
        assert master_entropy(42) == 42

    def test_none_draws_fresh_entropy(self):
        a, b = master_entropy(None), master_entropy(None)
        assert isinstance(a, int)
        assert a != b


class TestCreateEngineRngs:
    def test_returns_correct_keys(self):
        rngs = create_engine_rngs(42)
        assert set(rngs) == set(ENGINE_STREAMS)

    def test_generators_are_independent(self):
        rngs = create_engine_rngs(42)
        vals = {name: rng.random() for name, rng in rngs.items()}
        assert len(set(vals.values())) == len(vals)

    def test_reproducibility(self):
        rngs1 = create_engine_rngs(42)
        rngs2 = create_engine_rngs(42)
        for name in rngs1:
            np.testing.assert_array_equal(rngs1[name].random(100),
                                          rngs2[name].random(100))

    def test_different_seeds_differ(self):
        a = create_engine_rngs(42)['spawn'].random(10)
        b = create_engine_rngs(43)['spawn'].random(10)
        assert not np.array_equal(a, b)


class TestAgentRng:
    def test_reproducible_per_id(self):
        np.testing.assert_array_equal(
            create_agent_rng(42, 7).random(50),
            create_agent_rng(42, 7).random(50),
        )

    def test_ids_are_independent(self):
        a = create_agent_rng(42, 0).random(10)
        b = create_agent_rng(42, 1).random(10)
        assert not np.array_equal(a, b)

    def test_disjoint_from_engine_streams(self):
        engine_vals = {rng.random() for rng in create_engine_rngs(42).values()}
        agent_vals = {create_agent_rng(42, i).random() for i in range(10)}
        assert not engine_vals & agent_vals

    def test_negative_id_rejected(self):
        with pytest.raises(ValueError):
            create_agent_rng(42, -1)

    def test_large_entropy(self):
        """OS entropy is ~128 bits; agent streams must accept it."""
        entropy = master_entropy(None)
        assert isinstance(create_agent_rng(entropy, 3).random(), float)

    def test_generator_type(self):
        rng = create_agent_rng(42, 0)
        assert isinstance(rng.bit_generator, np.random.PCG64)

