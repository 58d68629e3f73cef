#!/usr/bin/env python
"""
Example: Running an LJ fluid simulation in reduced units.

This script demonstrates how to:
1. Create a cell and an initial particle array
2. Wire cell list, neighbor list, force evaluator and integrator
3. Equilibrate with velocity rescaling
4. Run production NVE simulation
5. Check conservation laws

Reduced LJ units:
- Length: σ (LJ size parameter)
- Energy: ε (LJ well depth)
- Mass: m (particle mass)
- Time: τ = σ√(m/ε)
- Temperature: T* = kT/ε (so kB = 1)

Usage:
    python examples/run_lj_simulation.py
"""

import numpy as np

from mdstep.engines import StepScheduler
from mdstep.forcefields import ForceEvaluator, LennardJones, ThreadedForceEvaluator
from mdstep.integrators import LeapfrogIntegrator, VelocityRescaleThermostat
from mdstep.lattice import lattice_state
from mdstep.neighborlists import CellList, NeighborList
from mdstep.system import SimulationCell

CUTOFF = 2.5
SKIN = 0.4


def make_scheduler(state, cell, dt, n_workers, thermostat=None):
    """Wire every component around a particle array."""
    potential = LennardJones(shift_cutoff=CUTOFF)
    if n_workers > 1:
        evaluator = ThreadedForceEvaluator(
            potential, CUTOFF, backend="threads", n_workers=n_workers
        )
    else:
        evaluator = ForceEvaluator(potential, CUTOFF)
    return StepScheduler(
        state=state,
        cell=cell,
        integrator=LeapfrogIntegrator(dt=dt),
        evaluator=evaluator,
        cell_list=CellList(cutoff=CUTOFF, skin=SKIN),
        neighbor_list=NeighborList(cutoff=CUTOFF, skin=SKIN),
        thermostat=thermostat,
    )


def run_simulation(
    n_particles: int = 512,
    n_equil: int = 500,
    n_prod: int = 2000,
    dt: float = 0.005,
    temperature: float = 1.0,
    density: float = 0.5,
    print_freq: int = 250,
    rescale_freq: int = 10,
    n_workers: int = 1,
):
    """
    Run LJ fluid simulation with equilibration and production.

    Args:
        n_particles: Number of particles.
        n_equil: Number of equilibration steps (with thermostat).
        n_prod: Number of production NVE steps.
        dt: Timestep in reduced units (τ = σ√(m/ε)).
        temperature: Target reduced temperature T* = kT/ε.
        density: Reduced density ρ* = Nσ³/V.
        print_freq: Print frequency.
        rescale_freq: Velocity rescaling frequency during equilibration.
        n_workers: Force-evaluation threads.
    """
    print("=" * 60)
    print("LJ Fluid Simulation (Reduced Units)")
    print("=" * 60)
    print("\nParameters:")
    print(f"  N = {n_particles} particles")
    print(f"  ρ* = {density} (reduced density)")
    print(f"  T* = {temperature} (reduced temperature)")
    print(f"  dt = {dt} τ")

    # 1. Create initial system
    box_length = (n_particles / density) ** (1 / 3)
    cell = SimulationCell.cubic(box_length)
    state = lattice_state(n_particles, cell, temperature=temperature, jitter=0.1)
    print(f"  Box: {box_length:.2f}σ × {box_length:.2f}σ × {box_length:.2f}σ")
    print(f"  Initial T*: {state.temperature:.3f}")

    # =========================================
    # PHASE 1: Equilibration (with thermostat)
    # =========================================
    print(f"\n--- Equilibration ({n_equil} steps) ---")
    print(f"{'Step':>8} {'PE/N':>10} {'KE/N':>10} {'T*':>8}")
    print("-" * 40)

    thermostat = VelocityRescaleThermostat(temperature, interval=rescale_freq)
    scheduler = make_scheduler(state, cell, dt, n_workers, thermostat=thermostat)

    def report_equil(sched):
        step = sched.state.step
        if step % print_freq == 0:
            pe = sched.potential_energy / n_particles
            ke = sched.kinetic_energy / n_particles
            print(f"{step:>8} {pe:>10.4f} {ke:>10.4f} {sched.temperature:>8.3f}")
        return False

    equilibrated = scheduler.run(n_equil, callback=report_equil)
    print("-" * 40)
    print(f"Equilibration complete. Final T* = {equilibrated.temperature:.3f}")

    # =========================================
    # PHASE 2: Production (NVE)
    # =========================================
    print(f"\n--- Production NVE ({n_prod} steps) ---")
    print(f"{'Step':>8} {'PE/N':>10} {'KE/N':>10} {'Total/N':>10} {'T*':>8}")
    print("-" * 52)

    scheduler = make_scheduler(equilibrated.thaw(), cell, dt, n_workers)
    p0 = scheduler.state.momentum
    total, temps, momentum_error = [], [], []

    def record(sched):
        snapshot = sched.state
        total.append(sched.total_energy)
        temps.append(snapshot.temperature)
        momentum_error.append(np.max(np.abs(snapshot.momentum - p0)))
        if snapshot.step % print_freq == 0:
            print(
                f"{snapshot.step:>8} {sched.potential_energy / n_particles:>10.4f} "
                f"{sched.kinetic_energy / n_particles:>10.4f} "
                f"{sched.total_energy / n_particles:>10.4f} {snapshot.temperature:>8.3f}"
            )
        return False

    scheduler.run(n_prod, callback=record)
    print("-" * 52)

    # =========================================
    # RESULTS
    # =========================================
    print("\n" + "=" * 60)
    print("Results (Production Phase)")
    print("=" * 60)

    total_arr = np.array(total)
    temp_arr = np.array(temps)

    print(f"\nThermodynamics ({n_prod} frames):")
    print(
        f"  <E/N>   = {np.mean(total_arr) / n_particles:.4f} "
        f"± {np.std(total_arr) / n_particles:.4f} ε"
    )
    print(f"  <T*>    = {np.mean(temp_arr):.4f} ± {np.std(temp_arr):.4f}")
    print(f"  P*      = {scheduler.pressure:.4f} (last step)")

    drift_per_step = (total_arr[-1] - total_arr[0]) / n_prod
    rel_fluct = np.std(total_arr) / np.abs(np.mean(total_arr))
    print("\nConservation:")
    print(f"  Drift/step:        {drift_per_step:.2e} ε")
    print(f"  Relative fluct:    {rel_fluct:.2e}")
    print(f"  Max |ΔP|:          {max(momentum_error):.2e}")

    perf = scheduler.performance
    print("\nPerformance:")
    print(f"  {perf['steps_per_second']:.1f} steps/s, {perf['rebuilds']} list rebuilds")

    print("\n" + "=" * 60)
    print("Simulation complete!")
    print("=" * 60)


if __name__ == "__main__":
    # LJ fluid state points:
    # - ρ* = 0.8, T* = 1.0: dense liquid (may need small dt)
    # - ρ* = 0.5, T* = 1.0: moderate liquid
    # - ρ* = 0.3, T* = 1.5: gas
    run_simulation(
        n_particles=512,
        n_equil=1000,
        n_prod=4000,
        dt=0.005,
        temperature=1.0,
        density=0.5,
        print_freq=500,
        rescale_freq=5,
    )
