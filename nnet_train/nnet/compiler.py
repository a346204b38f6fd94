"""
Computation requests and their compilation into executable plans.

A request names the inputs an example supplies and the outputs the caller
wants; compiling it resolves which nodes have to be evaluated, and in what
order, to produce those outputs.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Tuple
import logging

from ..errors import ComputationError
from .example import NnetExample
from .nnet import Nnet, NodeType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IoSpecification:
    name: str
    num_rows: int
    has_deriv: bool = False


@dataclass(frozen=True)
class ComputationRequest:
    inputs: Tuple[IoSpecification, ...]
    outputs: Tuple[IoSpecification, ...]
    need_model_derivative: bool = False
    store_component_stats: bool = False


@dataclass(frozen=True)
class NnetComputation:
    """A compiled request: the nodes to evaluate, in evaluation order."""

    request: ComputationRequest
    steps: Tuple[str, ...]


def get_computation_request(
    nnet: Nnet,
    eg: NnetExample,
    need_model_derivative: bool,
    store_component_stats: bool,
    add_regularizer: bool = False,
) -> ComputationRequest:
    """
    Build the request for training or evaluating on one example.

    Args:
        nnet: Network the example is for
        eg: Example whose io entries name inputs and outputs of the network
        need_model_derivative: Whether parameter derivatives are wanted
        store_component_stats: Whether components should accumulate stats
        add_regularizer: Also request "<output>-reg" for each output that has one

    Returns:
        ComputationRequest
    """
    inputs, outputs = [], []
    for io in eg.io:
        node = nnet.get_node(io.name)
        if node is None:
            raise ComputationError(f"Example has io '{io.name}' with no matching node")
        if node.node_type == NodeType.INPUT:
            inputs.append(IoSpecification(io.name, io.num_rows))
        elif node.node_type == NodeType.OUTPUT:
            outputs.append(IoSpecification(io.name, io.num_rows, need_model_derivative))
            reg_name = io.name + "-reg"
            if add_regularizer and nnet.is_output_node(reg_name):
                outputs.append(
                    IoSpecification(reg_name, io.num_rows, need_model_derivative)
                )
        else:
            raise ComputationError(
                f"Example io '{io.name}' refers to a component node"
            )
    if not outputs:
        raise ComputationError("Example has no outputs")
    return ComputationRequest(
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        need_model_derivative=need_model_derivative,
        store_component_stats=store_component_stats,
    )


class CachingCompiler:
    """
    Compiles requests into computations, remembering recent results.

    Training on examples of the same shape produces identical requests, so
    the cache usually holds a handful of entries that are reused for the
    whole run.
    """

    def __init__(self, nnet: Nnet, cache_capacity: int = 64):
        self.nnet = nnet
        self.cache_capacity = cache_capacity
        self._cache: "OrderedDict[ComputationRequest, NnetComputation]" = OrderedDict()
        self.num_compilations = 0

    def compile(self, request: ComputationRequest) -> NnetComputation:
        computation = self._cache.get(request)
        if computation is not None:
            self._cache.move_to_end(request)
            return computation

        computation = self._compile_no_cache(request)
        self.num_compilations += 1
        self._cache[request] = computation
        if len(self._cache) > self.cache_capacity:
            self._cache.popitem(last=False)
        return computation

    def _compile_no_cache(self, request: ComputationRequest) -> NnetComputation:
        provided = {spec.name for spec in request.inputs}
        needed = set()

        def visit(name: str, requested_by: str):
            if name in needed:
                return
            node = self.nnet.get_node(name)
            if node is None:
                raise ComputationError(f"Unknown node '{name}'")
            if node.node_type == NodeType.INPUT and name not in provided:
                raise ComputationError(
                    f"Output '{requested_by}' needs input '{name}', "
                    "which the request does not supply"
                )
            needed.add(name)
            if node.input is not None:
                visit(node.input, requested_by)

        for spec in request.outputs:
            if not self.nnet.is_output_node(spec.name):
                raise ComputationError(f"'{spec.name}' is not an output node")
            visit(spec.name, spec.name)

        # Node insertion order is topological.
        steps = tuple(n.name for n in self.nnet.nodes() if n.name in needed)
        logger.debug(f"Compiled computation with {len(steps)} steps: {steps}")
        return NnetComputation(request=request, steps=steps)
