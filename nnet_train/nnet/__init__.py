"""
Network model and the machinery to run it.

Holds the pieces the trainer drives: the network itself, examples and
their supervision encodings, request compilation and the computer that
executes forward and backward passes.
"""

from .nnet import Nnet, NetworkNode, NodeType, NonlinearComponent, ObjectiveType
from .general_matrix import GeneralMatrix, MatrixType
from .example import NnetExample, NnetIo
from .compiler import (
    CachingCompiler,
    ComputationRequest,
    IoSpecification,
    NnetComputation,
    get_computation_request,
)
from .computer import NnetComputer

__all__ = [
    "Nnet",
    "NetworkNode",
    "NodeType",
    "NonlinearComponent",
    "ObjectiveType",
    "GeneralMatrix",
    "MatrixType",
    "NnetExample",
    "NnetIo",
    "CachingCompiler",
    "ComputationRequest",
    "IoSpecification",
    "NnetComputation",
    "get_computation_request",
    "NnetComputer",
]
