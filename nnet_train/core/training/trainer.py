"""
Minibatch trainer.

Runs one forward/backward pass per example, turns the outputs into
objective values and derivatives, keeps running statistics and applies a
momentum-smoothed, norm-clipped update to the network.
"""

from collections import defaultdict
from types import MappingProxyType
from typing import Dict, Mapping
import logging
import math

import torch

from ...nnet.compiler import CachingCompiler, get_computation_request
from ...nnet.computer import NnetComputer
from ...nnet.example import NnetExample, NnetIo
from ...nnet.nnet import Nnet
from ...nnet.utils import add_nnet, dot_product, scale_nnet, set_zero, zero_component_stats
from .config import NnetTrainerOptions
from .objective import compute_objective_function, compute_regularizer
from .stats import ObjectiveFunctionInfo

logger = logging.getLogger(__name__)


class NnetTrainer:
    """
    Trains a network one example at a time.

    When momentum or max_param_change is nonzero, parameter derivatives are
    accumulated in a separate "delta" network and added to the model after
    clipping; otherwise the backward pass updates the model directly.

    Not thread-safe: one trainer per thread, each with its own network.
    """

    def __init__(self, config: NnetTrainerOptions, nnet: Nnet):
        """
        Initialize trainer.

        Args:
            config: Trainer options
            nnet: Network to train, modified in place
        """
        self.config = config.validate()
        self.nnet = nnet
        self.compiler = CachingCompiler(nnet, config.compiler_cache_capacity)
        self.num_minibatches_processed = 0
        self.objective_scales: Mapping[str, float] = MappingProxyType(
            config.objective_scales()
        )
        self._objf_info: Dict[str, ObjectiveFunctionInfo] = defaultdict(
            ObjectiveFunctionInfo
        )

        if config.zero_component_stats:
            zero_component_stats(nnet)

        if config.momentum == 0.0 and config.max_param_change == 0.0:
            self.delta_nnet = None
        else:
            self.delta_nnet = nnet.copy()
            set_zero(self.delta_nnet)

    @property
    def objf_info(self) -> Mapping[str, ObjectiveFunctionInfo]:
        return MappingProxyType(self._objf_info)

    def train(self, eg: NnetExample):
        """Do one training step on a minibatch."""
        need_model_derivative = True
        request = get_computation_request(
            self.nnet,
            eg,
            need_model_derivative,
            self.config.store_component_stats,
            self.config.add_regularizer,
        )
        computation = self.compiler.compile(request)

        computer = NnetComputer(
            computation,
            self.nnet,
            self.nnet if self.delta_nnet is None else self.delta_nnet,
        )
        computer.accept_inputs(self.nnet, eg.io)
        computer.forward()

        self._process_outputs(eg, computer, self.objective_scales)
        computer.backward()

        self.num_minibatches_processed += 1

        if self.delta_nnet is not None:
            self._update_from_delta()

    def _scale_deriv(
        self, deriv: torch.Tensor, io: NnetIo, scale: float
    ) -> torch.Tensor:
        if self.config.apply_deriv_weights and io.has_deriv_weights():
            weights = io.deriv_weights.to(dtype=deriv.dtype, device=deriv.device)
            deriv = deriv * weights.unsqueeze(1)
        if scale != 1.0:
            deriv = deriv * scale
        return deriv

    def _process_outputs(
        self,
        eg: NnetExample,
        computer: NnetComputer,
        objective_scales: Mapping[str, float],
    ):
        for io in eg.io:
            if not self.nnet.is_output_node(io.name):
                continue
            obj_type = self.nnet.get_node(io.name).objective_type
            scale = objective_scales.get(io.name, 1.0)

            result = compute_objective_function(
                io.features, obj_type, io.name, computer.get_output(io.name)
            )
            computer.accept_output_deriv(
                io.name, self._scale_deriv(result.deriv, io, scale)
            )
            self._objf_info[io.name].update_stats(
                io.name,
                self.config.print_interval,
                self.num_minibatches_processed,
                result.tot_weight,
                result.tot_objf * scale,
            )

            reg_name = io.name + "-reg"
            if self.config.add_regularizer and self.nnet.is_output_node(reg_name):
                regularizer_scale = objective_scales.get(reg_name, 1.0)
                reg_result = compute_regularizer(
                    obj_type, reg_name, computer.get_output(reg_name)
                )
                computer.accept_output_deriv(
                    reg_name, self._scale_deriv(reg_result.deriv, io, regularizer_scale)
                )
                # Stats use the primary output's scale, not regularizer_scale.
                self._objf_info[reg_name].update_stats(
                    reg_name,
                    self.config.print_interval,
                    self.num_minibatches_processed,
                    reg_result.tot_weight,
                    reg_result.tot_objf * scale,
                )

    def _update_from_delta(self):
        scale = 1.0 - self.config.momentum
        max_param_change = self.config.max_param_change
        if max_param_change != 0.0:
            param_delta = math.sqrt(dot_product(self.delta_nnet, self.delta_nnet)) * scale
            if not math.isfinite(param_delta):
                logger.warning("Infinite parameter change, will not apply.")
                set_zero(self.delta_nnet)
                return
            if param_delta > max_param_change:
                scale *= max_param_change / param_delta
                logger.info(
                    f"Parameter change too big: {param_delta} > "
                    f"--max-param-change={max_param_change}, "
                    f"scaling by {max_param_change / param_delta}"
                )
        add_nnet(self.delta_nnet, scale, self.nnet)
        scale_nnet(self.config.momentum, self.delta_nnet)

    def print_total_stats(self) -> bool:
        """
        Log the overall objective of every output, in name order.

        Returns:
            True if any output accumulated nonzero weight
        """
        ans = False
        for name in sorted(self._objf_info):
            if self._objf_info[name].print_total_stats(name):
                ans = True
        return ans
