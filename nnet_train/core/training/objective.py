"""
Objective functions and regularizers for network outputs.

Both entry points turn a network output (and, for objectives, the
supervision) into a total weight, a total objective and, optionally, the
derivative of the objective with respect to the output. Objectives are
maximized: larger is better and derivatives point uphill.
"""

from typing import Callable, Dict, NamedTuple, Optional

import torch

from ...errors import DimensionMismatchError, UnknownObjectiveError
from ...nnet.general_matrix import GeneralMatrix, MatrixType
from ...nnet.nnet import ObjectiveType


class ObjectiveResult(NamedTuple):
    tot_weight: float
    tot_objf: float
    deriv: Optional[torch.Tensor] = None


def _cross_entropy_objective(
    supervision: GeneralMatrix, output: torch.Tensor, supply_deriv: bool
) -> ObjectiveResult:
    # x * log(y) + (1 - x) * log(1 - y)
    x = supervision.to_dense(dtype=output.dtype, device=output.device)
    y = output
    tot_objf = torch.sum(x * torch.log(y) + (1.0 - x) * torch.log(1.0 - y))
    tot_weight = float(x.numel())
    deriv = None
    if supply_deriv:
        deriv = x / y - (1.0 - x) / (1.0 - y)
    return ObjectiveResult(tot_weight, tot_objf.item(), deriv)


def _linear_objective(
    supervision: GeneralMatrix, output: torch.Tensor, supply_deriv: bool
) -> ObjectiveResult:
    # x * y; with log-softmax outputs this is the log-likelihood
    if supervision.matrix_type == MatrixType.SPARSE:
        post = (
            supervision.sparse_tensor()
            .to(dtype=output.dtype, device=output.device)
            .coalesce()
        )
        rows, cols = post.indices()
        values = post.values()
        tot_weight = torch.sum(values).item()
        tot_objf = torch.sum(output[rows, cols] * values).item()
        deriv = post.to_dense() if supply_deriv else None
        return ObjectiveResult(tot_weight, tot_objf, deriv)

    post = supervision.to_dense(dtype=output.dtype, device=output.device)
    tot_weight = torch.sum(post).item()
    tot_objf = torch.sum(output * post).item()
    return ObjectiveResult(tot_weight, tot_objf, post if supply_deriv else None)


def _quadratic_objective(
    supervision: GeneralMatrix, output: torch.Tensor, supply_deriv: bool
) -> ObjectiveResult:
    # -0.5 * (x - y)^2
    diff = supervision.to_dense(dtype=output.dtype, device=output.device) - output
    tot_weight = float(diff.shape[0])
    tot_objf = -0.5 * torch.sum(diff * diff).item()
    return ObjectiveResult(tot_weight, tot_objf, diff if supply_deriv else None)


_OBJECTIVE_FUNCTIONS: Dict[ObjectiveType, Callable[..., ObjectiveResult]] = {
    ObjectiveType.CROSS_ENTROPY: _cross_entropy_objective,
    ObjectiveType.LINEAR: _linear_objective,
    ObjectiveType.QUADRATIC: _quadratic_objective,
}


def compute_objective_function(
    supervision: GeneralMatrix,
    objective_type: ObjectiveType,
    output_name: str,
    output: torch.Tensor,
    supply_deriv: bool = True,
) -> ObjectiveResult:
    """
    Compute the objective of one network output against its supervision.

    Args:
        supervision: Supervision matrix in any encoding
        objective_type: Objective attached to the output node
        output_name: Name of the output, for error messages
        output: Network output, same number of columns as supervision
        supply_deriv: Whether to compute the derivative w.r.t. the output

    Returns:
        ObjectiveResult(tot_weight, tot_objf, deriv)
    """
    if output.shape[1] != supervision.num_cols:
        raise DimensionMismatchError(
            f"Nnet versus example output dimension (num-classes) mismatch for "
            f"'{output_name}': {output.shape[1]} (nnet) vs. "
            f"{supervision.num_cols} (egs)"
        )
    if output.shape[0] != supervision.num_rows:
        raise DimensionMismatchError(
            f"Nnet versus example output row-count mismatch for "
            f"'{output_name}': {output.shape[0]} (nnet) vs. "
            f"{supervision.num_rows} (egs)"
        )
    try:
        objective_fn = _OBJECTIVE_FUNCTIONS[objective_type]
    except (KeyError, TypeError):
        raise UnknownObjectiveError(
            f"Objective function type {objective_type} not handled."
        ) from None
    with torch.no_grad():
        return objective_fn(supervision, output.detach(), supply_deriv)


def _linear_regularizer(output: torch.Tensor, supply_deriv: bool) -> ObjectiveResult:
    deriv = torch.ones_like(output) if supply_deriv else None
    return ObjectiveResult(float(output.shape[0]), torch.sum(output).item(), deriv)


def _quadratic_regularizer(output: torch.Tensor, supply_deriv: bool) -> ObjectiveResult:
    # -0.5 * x^2, derivative is +x
    tot_objf = -0.5 * torch.sum(output * output).item()
    deriv = output.clone() if supply_deriv else None
    return ObjectiveResult(float(output.shape[0]), tot_objf, deriv)


_REGULARIZERS: Dict[ObjectiveType, Callable[..., ObjectiveResult]] = {
    ObjectiveType.LINEAR: _linear_regularizer,
    ObjectiveType.QUADRATIC: _quadratic_regularizer,
}


def compute_regularizer(
    objective_type: ObjectiveType,
    output_name: str,
    output: torch.Tensor,
    supply_deriv: bool = True,
) -> ObjectiveResult:
    """Compute a supervision-free regularizer on a network output."""
    try:
        regularizer_fn = _REGULARIZERS[objective_type]
    except (KeyError, TypeError):
        raise UnknownObjectiveError(
            f"Regularizer objective function type {objective_type} "
            f"not handled (output '{output_name}')."
        ) from None
    with torch.no_grad():
        return regularizer_fn(output.detach(), supply_deriv)
