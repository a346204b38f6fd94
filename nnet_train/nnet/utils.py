"""Whole-network parameter arithmetic."""

import torch

from .nnet import Nnet


def _paired_parameters(a: Nnet, b: Nnet):
    params_b = dict(b.named_parameters())
    for name, param_a in a.named_parameters():
        param_b = params_b.get(name)
        if param_b is None or param_b.shape != param_a.shape:
            raise ValueError(f"Networks differ at parameter '{name}'")
        yield param_a, param_b


@torch.no_grad()
def set_zero(nnet: Nnet):
    """Set every parameter of the network to zero."""
    for param in nnet.parameters():
        param.zero_()


@torch.no_grad()
def scale_nnet(scale: float, nnet: Nnet):
    # scaling by zero must also clear nan/inf
    if scale == 0.0:
        set_zero(nnet)
        return
    if scale == 1.0:
        return
    for param in nnet.parameters():
        param.mul_(scale)


@torch.no_grad()
def add_nnet(src: Nnet, alpha: float, dst: Nnet):
    """dst += alpha * src, parameter by parameter."""
    for param_src, param_dst in _paired_parameters(src, dst):
        param_dst.add_(param_src, alpha=alpha)


@torch.no_grad()
def dot_product(a: Nnet, b: Nnet) -> float:
    total = 0.0
    for param_a, param_b in _paired_parameters(a, b):
        total += torch.sum(param_a.double() * param_b.double()).item()
    return total


def zero_component_stats(nnet: Nnet):
    for module in nnet.modules():
        if hasattr(module, "zero_stats"):
            module.zero_stats()


def num_parameters(nnet: Nnet) -> int:
    return sum(p.numel() for p in nnet.parameters())
