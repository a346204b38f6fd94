"""Training examples: named feature/supervision matrices."""

from dataclasses import dataclass, field
from typing import List, Optional

import torch

from .general_matrix import GeneralMatrix


@dataclass
class NnetIo:
    """
    One named input or output of an example.

    For inputs ``features`` holds the input features, for outputs it holds
    the supervision. ``deriv_weights``, when given, has one weight per row
    and scales the derivative of that row.
    """

    name: str
    features: GeneralMatrix
    deriv_weights: Optional[torch.Tensor] = None

    def __post_init__(self):
        if not isinstance(self.features, GeneralMatrix):
            self.features = GeneralMatrix.full(self.features)
        if self.deriv_weights is not None:
            self.deriv_weights = torch.as_tensor(self.deriv_weights).flatten()
            if self.deriv_weights.numel() not in (0, self.num_rows):
                raise ValueError(
                    f"deriv_weights for '{self.name}' has "
                    f"{self.deriv_weights.numel()} entries, expected {self.num_rows}"
                )

    @property
    def num_rows(self) -> int:
        return self.features.num_rows

    def has_deriv_weights(self) -> bool:
        return self.deriv_weights is not None and self.deriv_weights.numel() != 0


@dataclass
class NnetExample:
    """A minibatch: an ordered list of named inputs and outputs."""

    io: List[NnetIo] = field(default_factory=list)

    def get(self, name: str) -> Optional[NnetIo]:
        for io in self.io:
            if io.name == name:
                return io
        return None
