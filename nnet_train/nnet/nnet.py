"""
Network topology and parameters.

A Nnet is an ordered graph of named nodes. Input nodes receive example
features, component nodes apply a torch module to the value of another
node, and output nodes expose the value of a node together with the
objective type used to train it.
"""

import copy
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import torch

from ..errors import ComputationError, UnknownObjectiveError


class ObjectiveType(Enum):
    """Objective function attached to an output node."""

    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CROSS_ENTROPY = "xent"

    @classmethod
    def parse(cls, text: str) -> "ObjectiveType":
        try:
            return cls(text)
        except ValueError:
            raise UnknownObjectiveError(
                f"Unknown objective type '{text}', expected one of "
                f"{[t.value for t in cls]}"
            ) from None


class NodeType(Enum):
    INPUT = "input"
    COMPONENT = "component"
    OUTPUT = "output"


@dataclass
class NetworkNode:
    """A single node of the network graph."""

    name: str
    node_type: NodeType
    input: Optional[str] = None
    dim: int = 0
    objective_type: Optional[ObjectiveType] = None
    learning_rate: float = 1.0


class NonlinearComponent(torch.nn.Module):
    """
    Elementwise nonlinearity that can accumulate activation statistics.

    While ``store_stats`` is set, every forward pass adds the column sums
    of its output to ``value_sum`` and the row count to ``count``.
    """

    _FUNCTIONS = {
        "sigmoid": torch.sigmoid,
        "tanh": torch.tanh,
        "relu": torch.relu,
    }

    def __init__(self, kind: str, dim: int):
        super().__init__()
        if kind not in self._FUNCTIONS:
            raise ValueError(f"Unknown nonlinearity '{kind}'")
        self.kind = kind
        self.dim = dim
        self.store_stats = False
        self.register_buffer("value_sum", torch.zeros(dim))
        self.register_buffer("count", torch.zeros(()))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        out = self._FUNCTIONS[self.kind](x)
        if self.store_stats:
            with torch.no_grad():
                self.value_sum += out.detach().sum(dim=0).to(self.value_sum.dtype)
                self.count += out.shape[0]
        return out

    def zero_stats(self):
        self.value_sum.zero_()
        self.count.zero_()

    def extra_repr(self) -> str:
        return f"kind={self.kind}, dim={self.dim}"


class Nnet(torch.nn.Module):
    """
    Neural network as a graph of named nodes.

    Nodes must be added after the node they read from, so insertion order
    is always a valid evaluation order.
    """

    def __init__(self):
        super().__init__()
        self.components = torch.nn.ModuleDict()
        self._nodes: Dict[str, NetworkNode] = OrderedDict()

    def _check_new_node(self, name: str, input: Optional[str] = None):
        if not name or "." in name:
            raise ComputationError(f"Invalid node name '{name}'")
        if name in self._nodes:
            raise ComputationError(f"Node '{name}' already exists")
        if input is not None:
            source = self._nodes.get(input)
            if source is None:
                raise ComputationError(
                    f"Node '{name}' reads from undefined node '{input}'"
                )
            if source.node_type == NodeType.OUTPUT:
                raise ComputationError(
                    f"Node '{name}' cannot read from output node '{input}'"
                )

    def add_input(self, name: str, dim: int) -> NetworkNode:
        self._check_new_node(name)
        node = NetworkNode(name=name, node_type=NodeType.INPUT, dim=dim)
        self._nodes[name] = node
        return node

    def add_component(
        self,
        name: str,
        module: torch.nn.Module,
        input: str,
        learning_rate: float = 1.0,
    ) -> NetworkNode:
        self._check_new_node(name, input)
        node = NetworkNode(
            name=name,
            node_type=NodeType.COMPONENT,
            input=input,
            learning_rate=learning_rate,
        )
        self.components[name] = module
        self._nodes[name] = node
        return node

    def add_output(
        self,
        name: str,
        input: str,
        objective_type: ObjectiveType = ObjectiveType.LINEAR,
    ) -> NetworkNode:
        self._check_new_node(name, input)
        node = NetworkNode(
            name=name,
            node_type=NodeType.OUTPUT,
            input=input,
            objective_type=objective_type,
        )
        self._nodes[name] = node
        return node

    def get_node(self, name: str) -> Optional[NetworkNode]:
        return self._nodes.get(name)

    def is_output_node(self, name: str) -> bool:
        node = self._nodes.get(name)
        return node is not None and node.node_type == NodeType.OUTPUT

    def is_input_node(self, name: str) -> bool:
        node = self._nodes.get(name)
        return node is not None and node.node_type == NodeType.INPUT

    def nodes(self) -> List[NetworkNode]:
        return list(self._nodes.values())

    def input_names(self) -> List[str]:
        return [n.name for n in self._nodes.values() if n.node_type == NodeType.INPUT]

    def output_names(self) -> List[str]:
        return [n.name for n in self._nodes.values() if n.node_type == NodeType.OUTPUT]

    def component(self, name: str) -> torch.nn.Module:
        return self.components[name]

    def copy(self) -> "Nnet":
        """Deep copy of topology, parameters and buffers."""
        return copy.deepcopy(self)

    def forward(self, *args, **kwargs):
        raise NotImplementedError(
            "Nnet is evaluated through a compiled computation, see NnetComputer"
        )

    def info(self) -> str:
        lines = []
        for node in self._nodes.values():
            if node.node_type == NodeType.INPUT:
                lines.append(f"input-node name={node.name} dim={node.dim}")
            elif node.node_type == NodeType.COMPONENT:
                lines.append(
                    f"component-node name={node.name} input={node.input} "
                    f"component={self.components[node.name]!r} "
                    f"learning-rate={node.learning_rate}"
                )
            else:
                lines.append(
                    f"output-node name={node.name} input={node.input} "
                    f"objective={node.objective_type.value}"
                )
        return "\n".join(lines)
