"""
Core training module.

This module provides the minibatch trainer and the pieces it is built
from: objective functions, regularizers, running statistics and options.
"""

from .config import NnetTrainerOptions, parse_objective_scales
from .objective import ObjectiveResult, compute_objective_function, compute_regularizer
from .stats import ObjectiveFunctionInfo, PhaseReport
from .trainer import NnetTrainer

__all__ = [
    "NnetTrainer",
    "NnetTrainerOptions",
    "parse_objective_scales",
    "ObjectiveResult",
    "compute_objective_function",
    "compute_regularizer",
    "ObjectiveFunctionInfo",
    "PhaseReport",
]
