"""Tests for the step scheduler."""

import numpy as np
import pytest

from mdstep.engines import StepScheduler
from mdstep.exceptions import ConfigurationError, NumericalInstability
from mdstep.forcefields import ForceEvaluator, LennardJones
from mdstep.integrators import (
    BarostatModifier,
    LeapfrogIntegrator,
    PredictorCorrectorIntegrator,
    VelocityRescaleThermostat,
)
from mdstep.lattice import lattice_state
from mdstep.neighborlists import CellList, NeighborList
from mdstep.system import ParticleState, SimulationCell


def make_scheduler(
    state,
    cell,
    cutoff=2.5,
    skin=0.4,
    dt=0.005,
    integrator=None,
    min_distance=0.1,
    **kwargs,
):
    return StepScheduler(
        state=state,
        cell=cell,
        integrator=integrator or LeapfrogIntegrator(dt=dt),
        evaluator=ForceEvaluator(LennardJones(), cutoff=cutoff, min_distance=min_distance),
        cell_list=CellList(cutoff=cutoff, skin=skin),
        neighbor_list=NeighborList(cutoff=cutoff, skin=skin),
        **kwargs,
    )


class ConstantBarostat(BarostatModifier):
    """Expands the cell by a fixed factor on every step."""

    def __init__(self, factor):
        self.factor = factor
        self.pressures = []

    @property
    def target_pressure(self):
        return 0.0

    def apply(self, state, cell, pressure):
        self.pressures.append(pressure)
        state.positions *= self.factor
        return cell.resized(self.factor)


class FailOnceBarostat(BarostatModifier):
    """Raises on its first call, then leaves the cell alone."""

    def __init__(self):
        self.calls = 0

    @property
    def target_pressure(self):
        return 0.0

    def apply(self, state, cell, pressure):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("pressure controller diverged")
        return cell


@pytest.fixture
def cell():
    return SimulationCell.cubic(10.0)


@pytest.fixture
def lattice(cell):
    return lattice_state(125, cell, temperature=1.0, seed=1)


class TestSchedulerSetup:
    """Test construction and initial forces."""

    def test_initial_forces_computed(self, lattice, cell):
        state = lattice_state(125, cell, jitter=0.3, seed=2)

        scheduler = make_scheduler(state, cell)

        assert scheduler.n_rebuilds == 1
        assert scheduler.potential_energy != 0.0
        assert np.any(scheduler.state.accelerations != 0.0)

    def test_input_state_not_modified(self, lattice, cell):
        positions = lattice.positions.copy()
        scheduler = make_scheduler(lattice, cell)

        scheduler.run(5)

        np.testing.assert_array_equal(lattice.positions, positions)
        assert lattice.step == 0

    def test_box_too_small(self):
        cell = SimulationCell.cubic(7.0)
        state = lattice_state(8, cell)

        with pytest.raises(ConfigurationError):
            make_scheduler(state, cell)

    def test_dimension_mismatch(self, cell):
        state = lattice_state(9, SimulationCell.cubic(10.0, dim=2))

        with pytest.raises(ConfigurationError):
            make_scheduler(state, cell)

    def test_neighbor_cutoff_below_force_cutoff(self, lattice, cell):
        with pytest.raises(ConfigurationError):
            StepScheduler(
                state=lattice,
                cell=cell,
                integrator=LeapfrogIntegrator(dt=0.005),
                evaluator=ForceEvaluator(LennardJones(), cutoff=2.5),
                cell_list=CellList(cutoff=2.0, skin=0.3),
                neighbor_list=NeighborList(cutoff=2.0, skin=0.3),
            )

    def test_invalid_check_interval(self, lattice, cell):
        with pytest.raises(ConfigurationError):
            make_scheduler(lattice, cell, rebuild_check_interval=0)


class TestStepping:
    """Test single steps and runs."""

    def test_step_advances_time(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell, dt=0.005)

        scheduler.step()
        scheduler.step()

        assert scheduler.state.step == 2
        assert scheduler.state.time == pytest.approx(0.01)

    def test_positions_stay_in_cell(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)

        final = scheduler.run(100)

        assert np.all(final.positions >= -5.0)
        assert np.all(final.positions < 5.0)

    def test_snapshot_is_read_only(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)
        scheduler.step()

        snapshot = scheduler.state
        with pytest.raises(ValueError):
            snapshot.positions[0, 0] = 0.0

    def test_run_returns_final_state(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)

        final = scheduler.run(10)

        assert final.step == 10
        assert scheduler.performance["total_steps"] == 10

    def test_callback_stops_run(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)
        seen = []

        def callback(sched):
            seen.append(sched.state.step)
            return sched.state.step >= 3

        final = scheduler.run(10, callback=callback)

        assert seen == [1, 2, 3]
        assert final.step == 3

    def test_stop(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)

        def callback(sched):
            sched.stop()
            return False

        final = scheduler.run(10, callback=callback)

        assert final.step == 1

    def test_energy_accounting(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell)
        scheduler.step()

        assert scheduler.total_energy == pytest.approx(
            scheduler.kinetic_energy + scheduler.potential_energy
        )
        expected = (2.0 * scheduler.kinetic_energy + scheduler.virial) / (3 * 1000.0)
        assert scheduler.pressure == pytest.approx(expected)

    def test_predictor_corrector_runs(self, lattice, cell):
        scheduler = make_scheduler(
            lattice, cell, integrator=PredictorCorrectorIntegrator(dt=0.005)
        )

        final = scheduler.run(20)

        assert final.step == 20
        np.testing.assert_allclose(final.momentum, 0.0, atol=1e-10)

    def test_walls(self):
        """Particles in a walled cell stay inside it."""
        cell = SimulationCell.cubic(10.0, dim=2, boundary="wall")
        state = lattice_state(49, cell, temperature=2.0, seed=3)
        scheduler = make_scheduler(state, cell)

        final = scheduler.run(200)

        assert np.all(np.abs(final.positions) <= 5.0)


class TestRebuildScheduling:
    """Test when the neighbor list is rebuilt."""

    def test_zero_skin_rebuilds_every_step(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell, skin=0.0)

        scheduler.run(10)

        assert scheduler.n_rebuilds == 11

    def test_skin_reduces_rebuilds(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell, skin=0.5)

        scheduler.run(20)

        assert scheduler.n_rebuilds < 11

    def test_displacements_tracked(self, lattice, cell):
        scheduler = make_scheduler(lattice, cell, skin=0.5)

        scheduler.step()

        # 1 step at T = 1 moves every particle far less than the skin
        assert scheduler.n_rebuilds == 1
        snapshot_positions = scheduler.state.positions
        moved = cell.minimum_image(lattice.positions, snapshot_positions)
        np.testing.assert_allclose(scheduler._state.displacements, moved, atol=1e-12)


class TestAtomicStep:
    """Test that a failed step leaves the committed state untouched."""

    def test_instability_leaves_state(self, cell):
        state = ParticleState.create(
            positions=[[0.0, 0.0, 0.0], [1.2, 0.0, 0.0]],
            velocities=[[50.0, 0.0, 0.0], [-50.0, 0.0, 0.0]],
        )
        scheduler = make_scheduler(state, cell, dt=0.01, min_distance=0.5)
        before = scheduler.state

        with pytest.raises(NumericalInstability) as excinfo:
            scheduler.step()

        assert excinfo.value.pair == (0, 1)
        after = scheduler.state
        assert after.step == before.step
        np.testing.assert_array_equal(after.positions, before.positions)
        np.testing.assert_array_equal(after.velocities, before.velocities)
        np.testing.assert_array_equal(after.accelerations, before.accelerations)

    def test_failure_forces_rebuild(self, cell):
        state = ParticleState.create(
            positions=[[0.0, 0.0, 0.0], [1.2, 0.0, 0.0]],
            velocities=[[50.0, 0.0, 0.0], [-50.0, 0.0, 0.0]],
        )
        scheduler = make_scheduler(state, cell, dt=0.01, min_distance=0.5)
        rebuilds = scheduler.n_rebuilds

        with pytest.raises(NumericalInstability):
            scheduler.step()
        with pytest.raises(NumericalInstability):
            scheduler.step()

        assert scheduler.n_rebuilds > rebuilds
        assert scheduler.state.step == 0


class TestHooks:
    """Test post-step thermostat and barostat hooks."""

    def test_thermostat(self, lattice, cell):
        scheduler = make_scheduler(
            lattice, cell, thermostat=VelocityRescaleThermostat(temperature=0.5)
        )

        scheduler.step()

        assert scheduler.temperature == pytest.approx(0.5)

    def test_aborted_step_keeps_thermostat_phase(self, lattice, cell):
        """The rescale interval follows committed steps only."""
        scheduler = make_scheduler(
            lattice,
            cell,
            thermostat=VelocityRescaleThermostat(temperature=0.5, interval=2),
            barostat=FailOnceBarostat(),
        )

        with pytest.raises(RuntimeError):
            scheduler.step()
        assert scheduler.state.step == 0

        scheduler.step()
        assert scheduler.temperature != pytest.approx(0.5)

        scheduler.step()
        assert scheduler.state.step == 2
        assert scheduler.temperature == pytest.approx(0.5)

    def test_barostat_rescales_cell(self, lattice, cell):
        barostat = ConstantBarostat(1.01)
        scheduler = make_scheduler(lattice, cell, barostat=barostat)
        rebuilds = scheduler.n_rebuilds

        scheduler.step()
        assert scheduler.cell.lengths[0] == pytest.approx(10.1)
        assert len(barostat.pressures) == 1

        scheduler.step()
        # New cell forces a rebuild at the start of the next step
        assert scheduler.n_rebuilds >= rebuilds + 1
        assert scheduler.cell.lengths[0] == pytest.approx(10.0 * 1.01**2)
