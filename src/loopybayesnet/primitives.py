"""Numerically stable log-space tensor primitives."""

from __future__ import annotations

import torch


def safe_log(tensor: torch.Tensor) -> torch.Tensor:
    """Natural log of a probability table; zero (or negative) entries become -inf."""
    return torch.log(torch.clamp(tensor, min=0.0))


def _finite_shift(max_log: torch.Tensor) -> torch.Tensor:
    # An infinite maximum cannot be subtracted; shifting by zero keeps
    # all -inf slices at -inf and +inf slices at +inf instead of NaN.
    return torch.where(torch.isfinite(max_log), max_log, torch.zeros_like(max_log))


def log_sum_exp(tensor: torch.Tensor, dim: int, keepdim: bool = False) -> torch.Tensor:
    """
    Compute log(sum(exp(x))) along ``dim``.

    Each slice is shifted by its maximum before exponentiation. A slice whose
    maximum is -inf (every entry impossible) reduces to -inf, and a slice
    containing +inf reduces to +inf.

    Args:
        tensor: Log-space tensor
        dim: Axis to reduce
        keepdim: Keep the reduced axis with size 1

    Returns:
        Reduced tensor
    """
    shift = _finite_shift(torch.amax(tensor, dim=dim, keepdim=True))
    summed = torch.exp(tensor - shift).sum(dim=dim, keepdim=True)
    result = torch.log(summed) + shift
    if not keepdim:
        result = result.squeeze(dim)
    return result


def log_sum_exp_keepdim(tensor: torch.Tensor, dim: int) -> torch.Tensor:
    """Same as :func:`log_sum_exp`, keeping ``dim`` with size 1 for broadcasting."""
    return log_sum_exp(tensor, dim, keepdim=True)


def log_sum_exp_vec(x: torch.Tensor) -> torch.Tensor:
    """Stable log-sum-exp of a 1-D tensor, returned as a 0-d tensor."""
    if x.dim() != 1:
        raise ValueError(f"log_sum_exp_vec expects a 1-D tensor, got shape {tuple(x.shape)}")
    return log_sum_exp(x, 0)


def log_contract(tensor: torch.Tensor, vector: torch.Tensor, dim: int) -> torch.Tensor:
    """
    Add ``vector`` along axis ``dim`` of ``tensor`` and log-sum-exp that axis away.

    In probability space this is Σ_x T(..., x, ...) · v(x), the marginalization
    step of belief propagation.

    Args:
        tensor: Log-space tensor
        vector: Log-space vector with ``tensor.shape[dim]`` entries
        dim: Axis to contract

    Returns:
        Tensor with ``dim`` removed
    """
    if dim < 0:
        dim += tensor.dim()
    if vector.dim() != 1 or vector.shape[0] != tensor.shape[dim]:
        raise ValueError(
            f"log_contract: vector of shape {tuple(vector.shape)} does not match "
            f"axis {dim} of tensor with shape {tuple(tensor.shape)}."
        )
    shape = [1] * tensor.dim()
    shape[dim] = vector.shape[0]
    return log_sum_exp(tensor + vector.view(*shape), dim)


def normalize_log_probas(tensor: torch.Tensor) -> torch.Tensor:
    """
    Normalize a log-space conditional table along axis 0, in place.

    Afterwards every slice obtained by fixing the trailing indices sums to one
    in probability space. Slices with no mass at all are left at -inf.
    """
    lse = log_sum_exp_keepdim(tensor, 0)
    tensor.sub_(_finite_shift(lse))
    return tensor
