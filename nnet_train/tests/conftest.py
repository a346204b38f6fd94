"""
Test fixtures and utilities for nnet_train tests.

Provides small networks and examples, built in float64 so numeric checks
can use tight tolerances.
"""

import pytest
import torch

from nnet_train.nnet import (
    GeneralMatrix,
    Nnet,
    NnetExample,
    NnetIo,
    NonlinearComponent,
    ObjectiveType,
)

DTYPE = torch.float64


def make_affine(in_dim, out_dim, seed=0, bias=False):
    generator = torch.Generator().manual_seed(seed)
    affine = torch.nn.Linear(in_dim, out_dim, bias=bias).to(DTYPE)
    with torch.no_grad():
        affine.weight.copy_(torch.randn(out_dim, in_dim, generator=generator, dtype=DTYPE))
        if bias:
            affine.bias.copy_(torch.randn(out_dim, generator=generator, dtype=DTYPE))
    return affine


def make_linear_nnet(
    in_dim=3,
    out_dim=2,
    objective_type=ObjectiveType.QUADRATIC,
    with_regularizer=False,
    regularizer_type=ObjectiveType.LINEAR,
):
    """
    input -> affine -> output, optionally with a separate
    input -> reg_affine -> output-reg branch.
    """
    nnet = Nnet()
    nnet.add_input("input", in_dim)
    nnet.add_component("affine", make_affine(in_dim, out_dim, seed=0), "input")
    nnet.add_output("output", "affine", objective_type)
    if with_regularizer:
        nnet.add_component("reg_affine", make_affine(in_dim, out_dim, seed=1), "input")
        nnet.add_output("output-reg", "reg_affine", regularizer_type)
    return nnet


def make_example(num_rows=4, in_dim=3, out_dim=2, seed=0, deriv_weights=None):
    generator = torch.Generator().manual_seed(seed)
    features = torch.randn(num_rows, in_dim, generator=generator, dtype=DTYPE)
    supervision = torch.randn(num_rows, out_dim, generator=generator, dtype=DTYPE)
    return NnetExample(
        [
            NnetIo("input", GeneralMatrix.full(features)),
            NnetIo("output", GeneralMatrix.full(supervision), deriv_weights),
        ]
    )


def quadratic_gradient(nnet, eg):
    """d objective / d weight of the affine layer for a quadratic output."""
    features = eg.get("input").features.to_dense(dtype=DTYPE)
    supervision = eg.get("output").features.to_dense(dtype=DTYPE)
    weight = nnet.component("affine").weight.detach()
    diff = supervision - features @ weight.T
    return diff.T @ features


@pytest.fixture
def linear_nnet():
    return make_linear_nnet()


@pytest.fixture
def example():
    return make_example()


@pytest.fixture
def sigmoid_nnet():
    """input -> affine -> sigmoid -> output (cross-entropy)."""
    nnet = Nnet()
    nnet.add_input("input", 3)
    nnet.add_component("affine", make_affine(3, 2, bias=True), "input")
    nnet.add_component("sigmoid", NonlinearComponent("sigmoid", 2).to(DTYPE), "affine")
    nnet.add_output("output", "sigmoid", ObjectiveType.CROSS_ENTROPY)
    return nnet


@pytest.fixture
def xent_example():
    generator = torch.Generator().manual_seed(3)
    features = torch.randn(6, 3, generator=generator, dtype=DTYPE)
    targets = (torch.rand(6, 2, generator=generator, dtype=DTYPE) > 0.5).to(DTYPE)
    return NnetExample(
        [
            NnetIo("input", GeneralMatrix.full(features)),
            NnetIo("output", GeneralMatrix.full(targets)),
        ]
    )
