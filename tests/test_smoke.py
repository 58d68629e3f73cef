"""
CI-friendly smoke tests.

These tests are designed to:
1. Run fast (<1s each)
2. Exercise the high-level API end to end
3. Be deterministic (seeded RNG)

Use for continuous integration to catch regressions quickly.
"""

import numpy as np
import pytest

from mdstep import simulate
from mdstep.config import SimulationConfig
from mdstep.exceptions import ConfigurationError
from mdstep.forcefields import ThreadedForceEvaluator
from mdstep.lattice import cubic_lattice, lattice_state, random_velocities
from mdstep.system import SimulationCell

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def small_config():
    """
    Minimal 2D LJ configuration for smoke tests.

    49 particles in a 9 x 9 periodic square.
    """
    return SimulationConfig(
        n_particles=49,
        box_lengths=(9.0, 9.0),
        skin=0.3,
        n_steps=30,
    )


# =============================================================================
# Lattice helpers
# =============================================================================


class TestLattice:
    """Initial particle arrays."""

    def test_cubic_lattice_inside_cell(self):
        cell = SimulationCell.cubic(10.0)

        positions = cubic_lattice(100, cell)

        assert positions.shape == (100, 3)
        assert np.all(np.abs(positions) < 5.0)
        assert len(np.unique(positions, axis=0)) == 100

    def test_perfect_cube(self):
        cell = SimulationCell.cubic(8.0, dim=2)

        positions = cubic_lattice(16, cell)

        np.testing.assert_allclose(np.unique(positions[:, 0]), [-3.0, -1.0, 1.0, 3.0])

    def test_random_velocities(self):
        velocities = random_velocities(200, 3, 1.5, np.random.default_rng(0))

        np.testing.assert_allclose(velocities.sum(axis=0), 0.0, atol=1e-12)
        n_dof = 3 * 199
        assert np.sum(velocities**2) / n_dof == pytest.approx(1.5)

    def test_zero_temperature(self):
        velocities = random_velocities(10, 2, 0.0)

        np.testing.assert_array_equal(velocities, 0.0)

    def test_lattice_state_seeded(self):
        cell = SimulationCell.cubic(10.0)

        a = lattice_state(27, cell, jitter=0.1, seed=3)
        b = lattice_state(27, cell, jitter=0.1, seed=3)

        np.testing.assert_array_equal(a.positions, b.positions)
        np.testing.assert_array_equal(a.velocities, b.velocities)
        assert a.temperature == pytest.approx(1.0)


# =============================================================================
# High-level API
# =============================================================================


class TestSimulate:
    """End-to-end runs through the simulate module."""

    def test_run(self, small_config):
        result = simulate.run(small_config)

        assert result.n_steps == 30
        assert len(result.total_energy) == 30
        assert result.positions.shape == (49, 2)
        assert result.n_rebuilds >= 1
        assert np.all(np.isfinite(result.total_energy))
        np.testing.assert_allclose(result.momentum, 0.0, atol=1e-10)

    def test_run_from_mapping(self):
        result = simulate.run(
            {"n_particles": 49, "box_lengths": [9.0, 9.0], "skin": 0.3, "n_steps": 5}
        )

        assert result.n_particles == 49
        assert len(result.kinetic_energy) == 5

    def test_build_scheduler_with_state(self, small_config):
        state = lattice_state(49, small_config.cell, temperature=0.5, seed=9)

        scheduler = simulate.build_scheduler(small_config, state=state)

        assert scheduler.temperature == pytest.approx(0.5)
        assert scheduler.rebuild_check_interval == 1

    def test_state_size_mismatch(self, small_config):
        state = lattice_state(36, small_config.cell)

        with pytest.raises(ConfigurationError):
            simulate.build_scheduler(small_config, state=state)

    def test_threaded_workers(self):
        config = SimulationConfig(
            n_particles=49, box_lengths=(9.0, 9.0), skin=0.3, n_workers=3
        )

        scheduler = simulate.build_scheduler(config)

        assert isinstance(scheduler.evaluator, ThreadedForceEvaluator)
        assert scheduler.evaluator.n_workers == 3

    def test_thermostat_interval(self):
        config = SimulationConfig(
            n_particles=49,
            box_lengths=(9.0, 9.0),
            skin=0.3,
            n_steps=10,
            temperature=0.8,
            thermostat_interval=1,
        )

        result = simulate.run(config)

        assert result.mean_temperature == pytest.approx(0.8)

    def test_predictor_corrector(self, small_config):
        config = SimulationConfig(
            **{**small_config.to_dict(), "integrator": "predictor_corrector"}
        )

        result = simulate.run(config)

        assert np.all(np.isfinite(result.total_energy))

    def test_lj_fluid(self):
        result = simulate.lj_fluid(
            n_particles=100, dim=2, n_steps=20, shift_potential=True
        )

        assert result.n_particles == 100
        assert result.timestep == 0.005
        assert abs(result.energy_drift) < 0.05

    def test_lj_fluid_shift_raises_potential_energy(self):
        """Shifting lifts every in-range pair energy by a positive constant."""
        plain = simulate.lj_fluid(n_particles=100, dim=2, n_steps=1)
        shifted = simulate.lj_fluid(
            n_particles=100, dim=2, n_steps=1, shift_potential=True
        )

        np.testing.assert_array_equal(shifted.positions, plain.positions)
        assert shifted.potential_energy[0] > plain.potential_energy[0]
