"""
Execution of a compiled computation.

The computer reads parameters from one network and, on the backward pass,
adds learning-rate-scaled parameter derivatives into another (which may be
the same network). Derivatives are of an objective being maximized, so
adding them moves the parameters uphill.
"""

from typing import Dict, Iterable, Optional
import logging

import torch

from ..errors import ComputationError, DimensionMismatchError
from .compiler import NnetComputation
from .example import NnetIo
from .nnet import Nnet, NodeType

logger = logging.getLogger(__name__)


class NnetComputer:
    """
    Runs forward and backward passes of one computation.

    Usage:
        computer = NnetComputer(computation, nnet, nnet_to_update)
        computer.accept_inputs(nnet, eg.io)
        computer.forward()
        output = computer.get_output("output")
        computer.accept_output_deriv("output", deriv)
        computer.backward()
    """

    def __init__(
        self,
        computation: NnetComputation,
        nnet: Nnet,
        nnet_to_update: Optional[Nnet] = None,
    ):
        self.computation = computation
        self.request = computation.request
        self.nnet = nnet
        self.nnet_to_update = nnet_to_update
        if self.request.need_model_derivative and nnet_to_update is None:
            raise ComputationError("Model derivative requested without a network to update")

        self._values: Dict[str, torch.Tensor] = {}
        self._output_derivs: Dict[str, torch.Tensor] = {}
        self._forward_done = False

    def accept_inputs(self, nnet: Nnet, io_list: Iterable[NnetIo]):
        """Take the features of every io that is an input of the request."""
        wanted = {spec.name for spec in self.request.inputs}
        dtype, device = self._param_dtype_device()
        for io in io_list:
            if io.name not in wanted:
                continue
            node = nnet.get_node(io.name)
            if node.dim != io.features.num_cols:
                raise DimensionMismatchError(
                    f"Input '{io.name}' has dimension {io.features.num_cols}, "
                    f"network expects {node.dim}"
                )
            self._values[io.name] = io.features.to_dense(dtype=dtype, device=device)
        missing = wanted - set(self._values)
        if missing:
            raise ComputationError(f"Inputs not supplied: {sorted(missing)}")

    def _param_dtype_device(self):
        for param in self.nnet.parameters():
            return param.dtype, param.device
        return torch.get_default_dtype(), None

    def _set_store_stats(self, value: bool):
        for module in self.nnet.components.values():
            if hasattr(module, "store_stats"):
                module.store_stats = value

    def forward(self):
        if self._forward_done:
            raise ComputationError("forward() called twice on the same computer")
        self._set_store_stats(self.request.store_component_stats)
        try:
            with torch.set_grad_enabled(self.request.need_model_derivative):
                for name in self.computation.steps:
                    node = self.nnet.get_node(name)
                    if node.node_type == NodeType.INPUT:
                        continue
                    source = self._values[node.input]
                    if node.node_type == NodeType.COMPONENT:
                        self._values[name] = self.nnet.components[name](source)
                    else:
                        self._values[name] = source
        finally:
            self._set_store_stats(False)
        self._forward_done = True

    def get_output(self, name: str) -> torch.Tensor:
        if not self._forward_done:
            raise ComputationError("get_output() called before forward()")
        if not any(spec.name == name for spec in self.request.outputs):
            raise ComputationError(f"'{name}' is not an output of this computation")
        return self._values[name].detach()

    def accept_output_deriv(self, name: str, deriv: torch.Tensor):
        value = self._values.get(name)
        if value is None:
            raise ComputationError(f"No output '{name}' to accept a derivative for")
        if deriv.shape != value.shape:
            raise DimensionMismatchError(
                f"Derivative for '{name}' has shape {tuple(deriv.shape)}, "
                f"output has shape {tuple(value.shape)}"
            )
        self._output_derivs[name] = deriv.to(dtype=value.dtype, device=value.device)

    def backward(self):
        if not self.request.need_model_derivative:
            raise ComputationError("backward() on a computation without derivatives")

        outputs, grad_outputs = [], []
        for spec in self.request.outputs:
            if not spec.has_deriv:
                continue
            deriv = self._output_derivs.get(spec.name)
            if deriv is None:
                raise ComputationError(f"Output derivative for '{spec.name}' not supplied")
            value = self._values[spec.name]
            if value.requires_grad:
                outputs.append(value)
                grad_outputs.append(deriv)

        component_params = []
        for name in self.computation.steps:
            node = self.nnet.get_node(name)
            if node.node_type != NodeType.COMPONENT:
                continue
            for param_name, param in self.nnet.components[name].named_parameters():
                if param.requires_grad:
                    component_params.append((node, param_name, param))

        if not outputs or not component_params:
            logger.debug("Nothing to backpropagate")
            return

        grads = torch.autograd.grad(
            outputs,
            [param for _, _, param in component_params],
            grad_outputs=grad_outputs,
            allow_unused=True,
        )

        with torch.no_grad():
            for (node, param_name, _), grad in zip(component_params, grads):
                if grad is None:
                    continue
                target = dict(
                    self.nnet_to_update.components[node.name].named_parameters()
                )[param_name]
                target.add_(grad, alpha=node.learning_rate)
