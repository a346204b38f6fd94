"""
Exceptions raised by nnet_train.

Every fatal condition of a training run derives from NnetTrainError so
callers (the CLI in particular) can handle them in one place.
"""


class NnetTrainError(Exception):
    """Base class for unrecoverable training errors."""


class ConfigError(NnetTrainError, ValueError):
    """Invalid trainer option or objective-scale string."""


class DimensionMismatchError(NnetTrainError, ValueError):
    """Network and example disagree about a dimension."""


class UnknownObjectiveError(NnetTrainError, ValueError):
    """Objective or regularizer type with no implementation."""


class PhaseError(NnetTrainError, RuntimeError):
    """Minibatch counter skipped or rewound a stats phase."""


class ComputationError(NnetTrainError, RuntimeError):
    """Network topology cannot serve a computation request."""
