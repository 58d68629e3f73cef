"""Simulation loop."""

from .scheduler import StepScheduler

__all__ = ["StepScheduler"]
