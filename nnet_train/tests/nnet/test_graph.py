"""
Tests for the network graph and whole-network parameter arithmetic.
"""

import pytest
import torch

from nnet_train.errors import ComputationError, UnknownObjectiveError
from nnet_train.nnet import Nnet, NonlinearComponent, ObjectiveType
from nnet_train.nnet.utils import (
    add_nnet,
    dot_product,
    num_parameters,
    scale_nnet,
    set_zero,
    zero_component_stats,
)
from nnet_train.tests.conftest import make_linear_nnet


class TestNnet:
    def test_lookup(self):
        nnet = make_linear_nnet(with_regularizer=True)
        assert nnet.is_input_node("input")
        assert nnet.is_output_node("output")
        assert nnet.is_output_node("output-reg")
        assert not nnet.is_output_node("affine")
        assert not nnet.is_output_node("missing")
        assert nnet.get_node("missing") is None
        assert nnet.get_node("output").objective_type == ObjectiveType.QUADRATIC
        assert nnet.output_names() == ["output", "output-reg"]
        assert nnet.input_names() == ["input"]

    def test_duplicate_name(self):
        nnet = Nnet()
        nnet.add_input("input", 2)
        with pytest.raises(ComputationError):
            nnet.add_input("input", 2)

    def test_undefined_input(self):
        nnet = Nnet()
        with pytest.raises(ComputationError):
            nnet.add_component("affine", torch.nn.Linear(2, 2), "input")

    def test_cannot_read_from_output(self):
        nnet = make_linear_nnet()
        with pytest.raises(ComputationError):
            nnet.add_component("more", torch.nn.Linear(2, 2), "output")

    def test_copy_is_independent(self):
        nnet = make_linear_nnet()
        copy = nnet.copy()
        set_zero(copy)
        assert torch.count_nonzero(nnet.component("affine").weight) > 0
        assert copy.is_output_node("output")

    def test_info(self):
        info = make_linear_nnet().info()
        assert "input-node name=input dim=3" in info
        assert "output-node name=output input=affine objective=quadratic" in info

    def test_objective_type_parse(self):
        assert ObjectiveType.parse("xent") == ObjectiveType.CROSS_ENTROPY
        with pytest.raises(UnknownObjectiveError):
            ObjectiveType.parse("hinge")


class TestNnetUtils:
    def test_dot_product(self):
        nnet = make_linear_nnet()
        weight = nnet.component("affine").weight
        assert dot_product(nnet, nnet) == pytest.approx((weight ** 2).sum().item())

    def test_add_and_scale(self):
        a, b = make_linear_nnet(), make_linear_nnet()
        add_nnet(a, 2.0, b)
        assert torch.allclose(
            b.component("affine").weight, 3.0 * a.component("affine").weight
        )
        scale_nnet(0.5, b)
        assert torch.allclose(
            b.component("affine").weight, 1.5 * a.component("affine").weight
        )

    def test_scale_by_zero_clears_non_finite(self):
        nnet = make_linear_nnet()
        with torch.no_grad():
            nnet.component("affine").weight.fill_(float("nan"))
        scale_nnet(0.0, nnet)
        assert dot_product(nnet, nnet) == 0.0

    def test_mismatched_networks(self):
        with pytest.raises(ValueError):
            add_nnet(make_linear_nnet(), 1.0, make_linear_nnet(in_dim=4))

    def test_num_parameters(self):
        assert num_parameters(make_linear_nnet()) == 6

    def test_zero_component_stats(self):
        nnet = Nnet()
        nnet.add_input("input", 2)
        nnet.add_component("relu", NonlinearComponent("relu", 2), "input")
        relu = nnet.component("relu")
        relu.value_sum.fill_(3.0)
        relu.count.fill_(2.0)
        zero_component_stats(nnet)
        assert relu.count.item() == 0.0
        assert torch.count_nonzero(relu.value_sum) == 0
