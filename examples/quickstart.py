#!/usr/bin/env python
"""
Quick start example - the simplest way to run a simulation.

This demonstrates the high-level API for users who just want results
without wiring the components by hand.

Usage:
    python examples/quickstart.py
"""

import logging

from mdstep import SimulationConfig, simulate


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("=" * 60)
    print("mdstep Quick Start")
    print("=" * 60)

    # 1. Simplest possible simulation
    print("\n1. LJ Fluid (2D, defaults):")
    print("-" * 40)
    result = simulate.lj_fluid(n_particles=100, dim=2, n_steps=500)
    print(f"   Relative energy drift: {result.energy_drift:.2e}")
    print(f"   Neighbor-list rebuilds: {result.n_rebuilds}")

    # 2. Predictor-corrector on two threads
    print("\n2. LJ Fluid (3D, predictor-corrector, 2 workers):")
    print("-" * 40)
    result = simulate.lj_fluid(
        n_particles=512,
        density=0.5,
        n_steps=200,
        integrator="predictor_corrector",
        n_workers=2,
    )
    print(f"   Mean temperature: {result.mean_temperature:.3f}")

    # 3. Full configuration, walls on one axis, thermostat every 10 steps
    print("\n3. Slab between walls with velocity rescaling:")
    print("-" * 40)
    config = SimulationConfig(
        n_particles=144,
        box_lengths=(14.0, 14.0),
        boundary=("periodic", "wall"),
        n_steps=500,
        temperature=0.8,
        thermostat_interval=10,
        shift_potential=True,
    )
    result = simulate.run(config)
    print(f"   Mean temperature: {result.mean_temperature:.3f} (target 0.8)")

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
