"""Integrator implementations and post-step modifiers."""

from .base import BarostatModifier, Integrator, IntegratorPhase, ThermostatModifier
from .leapfrog import LeapfrogIntegrator
from .predictor_corrector import PredictorCorrectorIntegrator
from .thermostats import VelocityRescaleThermostat

__all__ = [
    # Base classes
    "Integrator",
    "IntegratorPhase",
    "ThermostatModifier",
    "BarostatModifier",
    # Integrators
    "LeapfrogIntegrator",
    "PredictorCorrectorIntegrator",
    # Thermostats
    "VelocityRescaleThermostat",
]
