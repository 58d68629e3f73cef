"""Tests for the pair potential and force evaluation."""

import numpy as np
import pytest

from mdstep.exceptions import ConfigurationError, NumericalInstability
from mdstep.forcefields import ForceEvaluator, LennardJones, ThreadedForceEvaluator
from mdstep.forcefields.lj import WCA_CUTOFF
from mdstep.lattice import lattice_state
from mdstep.neighborlists import CellList, NeighborList
from mdstep.system import ParticleState, SimulationCell


def evaluate(state, cell, evaluator, skin=0.3):
    cell_list = CellList(cutoff=evaluator.cutoff, skin=skin)
    cell_list.build(state.positions, cell)
    nlist = NeighborList(cutoff=evaluator.cutoff, skin=skin)
    nlist.rebuild(state, cell_list, cell)
    return evaluator.evaluate(state, nlist, cell)


class TestLennardJones:
    """Test Lennard-Jones pair terms."""

    def test_energy_at_sigma(self):
        """V(sigma) = 0."""
        lj = LennardJones()

        _, energy = lj.pair_terms(np.array([1.0]))

        assert energy[0] == pytest.approx(0.0, abs=1e-12)

    def test_force_at_sigma(self):
        """f/r at r = sigma is 24 epsilon / sigma^2."""
        lj = LennardJones()

        f_over_r, _ = lj.pair_terms(np.array([1.0]))

        assert f_over_r[0] == pytest.approx(24.0)

    def test_force_zero_at_minimum(self):
        lj = LennardJones()

        f_over_r, energy = lj.pair_terms(np.array([WCA_CUTOFF**2]))

        assert f_over_r[0] == pytest.approx(0.0, abs=1e-10)
        assert energy[0] == pytest.approx(-1.0)

    def test_force_magnitude(self):
        """|F| = 48/r^13 - 24/r^7 in reduced units."""
        lj = LennardJones()
        r = np.array([0.95, 1.1, 1.7, 2.4])

        f_over_r, energy = lj.pair_terms(r**2)

        np.testing.assert_allclose(f_over_r * r, 48.0 / r**13 - 24.0 / r**7)
        np.testing.assert_allclose(energy, 4.0 * (r**-12 - r**-6))

    def test_parameters(self):
        lj = LennardJones(epsilon=2.0, sigma=1.5)

        _, energy = lj.pair_terms(np.array([(1.5 * WCA_CUTOFF) ** 2]))

        assert energy[0] == pytest.approx(-2.0)

    def test_shifted_energy_vanishes_at_cutoff(self):
        lj = LennardJones(shift_cutoff=2.5)
        plain = LennardJones()
        r_sq = np.array([1.2**2, 2.5**2])

        f_shift, e_shift = lj.pair_terms(r_sq)
        f_plain, e_plain = plain.pair_terms(r_sq)

        assert e_shift[1] == pytest.approx(0.0, abs=1e-14)
        np.testing.assert_allclose(e_plain - e_shift, lj.energy_shift)
        np.testing.assert_array_equal(f_shift, f_plain)

    def test_wca(self):
        wca = LennardJones.wca()

        assert wca.natural_cutoff == pytest.approx(WCA_CUTOFF)
        assert wca.energy_shift == pytest.approx(-1.0)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            LennardJones(epsilon=0.0)
        with pytest.raises(ValueError):
            LennardJones(sigma=-1.0)


class TestForceEvaluator:
    """Test pair force accumulation."""

    def test_minimum_image_pair(self):
        """(0,0,0) and (9.5,0,0) in L=10 interact at r = 0.5, equal and opposite."""
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(positions=[[0.0, 0.0, 0.0], [9.5, 0.0, 0.0]])
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5)

        result = evaluate(state, cell, evaluator)

        magnitude = 48.0 / 0.5**13 - 24.0 / 0.5**7
        np.testing.assert_allclose(state.accelerations[0], [magnitude, 0.0, 0.0])
        np.testing.assert_allclose(state.accelerations[1], [-magnitude, 0.0, 0.0])
        assert result.potential_energy == pytest.approx(4.0 * (0.5**-12 - 0.5**-6))
        assert result.virial == pytest.approx(magnitude * 0.5)
        assert result.n_interactions == 1

    def test_newton_third_law(self):
        """Net force vanishes for any configuration."""
        cell = SimulationCell.cubic(10.0)
        state = lattice_state(125, cell, jitter=0.3, seed=5)
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5)

        evaluate(state, cell, evaluator)

        np.testing.assert_allclose(state.accelerations.sum(axis=0), 0.0, atol=1e-10)

    def test_masses_scale_accelerations(self):
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(
            positions=[[0.0, 0.0, 0.0], [1.1, 0.0, 0.0]], masses=[1.0, 4.0]
        )
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5)

        evaluate(state, cell, evaluator)

        np.testing.assert_allclose(
            state.accelerations[0], -4.0 * state.accelerations[1]
        )

    def test_skin_pairs_contribute_nothing(self):
        """A pair listed within the skin but beyond the cutoff is skipped."""
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(positions=[[0.0, 0.0, 0.0], [2.7, 0.0, 0.0]])
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5)

        cell_list = CellList(cutoff=2.5, skin=0.3)
        cell_list.build(state.positions, cell)
        nlist = NeighborList(cutoff=2.5, skin=0.3)
        nlist.rebuild(state, cell_list, cell)
        result = evaluator.evaluate(state, nlist, cell)

        assert nlist.n_pairs == 1
        assert result.n_interactions == 0
        assert result.potential_energy == 0.0
        np.testing.assert_array_equal(state.accelerations, 0.0)

    def test_stale_accelerations_cleared(self):
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(positions=[[0.0, 0.0, 0.0], [4.0, 0.0, 0.0]])
        state.accelerations[...] = 7.0
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5)

        evaluate(state, cell, evaluator)

        np.testing.assert_array_equal(state.accelerations, 0.0)

    def test_collapsed_pair_raises(self):
        """Overlapping particles raise with the pair identified."""
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(
            positions=[[0.0, 0.0, 0.0], [3.0, 3.0, 3.0], [3.05, 3.0, 3.0]]
        )
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5, min_distance=0.1)

        with pytest.raises(NumericalInstability) as excinfo:
            evaluate(state, cell, evaluator)

        assert excinfo.value.pair == (1, 2)
        assert excinfo.value.distance == pytest.approx(0.05)

    def test_coincident_particles_raise(self):
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(positions=[[1.0, 1.0, 1.0], [1.0, 1.0, 1.0]])
        evaluator = ForceEvaluator(LennardJones(), cutoff=2.5, min_distance=0.0)

        with pytest.raises(NumericalInstability):
            evaluate(state, cell, evaluator)

    def test_invalid_cutoff(self):
        with pytest.raises(ConfigurationError):
            ForceEvaluator(LennardJones(), cutoff=0.0)


class TestThreadedForceEvaluator:
    """Test the worker-pool evaluator."""

    @pytest.mark.parametrize("n_workers", [1, 2, 4, 7])
    def test_matches_serial(self, n_workers):
        cell = SimulationCell.cubic(10.0)
        serial_state = lattice_state(216, cell, jitter=0.2, seed=11)
        threaded_state = serial_state.copy()

        serial = evaluate(serial_state, cell, ForceEvaluator(LennardJones(), cutoff=2.5))
        threaded_eval = ThreadedForceEvaluator(
            LennardJones(), cutoff=2.5, backend="threads", n_workers=n_workers
        )
        threaded = evaluate(threaded_state, cell, threaded_eval)

        assert threaded_eval.n_workers == n_workers
        np.testing.assert_allclose(
            threaded_state.accelerations, serial_state.accelerations, rtol=1e-10, atol=1e-10
        )
        assert threaded.potential_energy == pytest.approx(
            serial.potential_energy, rel=1e-9, abs=1e-9
        )
        assert threaded.virial == pytest.approx(serial.virial, rel=1e-9, abs=1e-9)
        assert threaded.n_interactions == serial.n_interactions

    def test_default_backend_is_serial(self):
        evaluator = ThreadedForceEvaluator(LennardJones(), cutoff=2.5)

        assert evaluator.backend.name == "serial"
        assert evaluator.n_workers == 1

    def test_instability_propagates_from_worker(self):
        cell = SimulationCell.cubic(10.0)
        state = ParticleState.create(
            positions=[[0.0, 0.0, 0.0], [0.05, 0.0, 0.0], [3.0, 0.0, 0.0], [4.0, 0.0, 0.0]]
        )
        evaluator = ThreadedForceEvaluator(
            LennardJones(), cutoff=2.5, backend="threads", n_workers=2
        )

        with pytest.raises(NumericalInstability) as excinfo:
            evaluate(state, cell, evaluator)

        assert excinfo.value.pair == (0, 1)
