"""Pair potentials and force evaluation."""

from .base import PairPotential
from .evaluator import ForceEvaluator, ForceResult, ThreadedForceEvaluator
from .lj import LennardJones

__all__ = [
    "PairPotential",
    "LennardJones",
    "ForceEvaluator",
    "ForceResult",
    "ThreadedForceEvaluator",
]
