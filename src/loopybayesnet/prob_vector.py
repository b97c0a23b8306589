"""
Log-space probability vectors.
"""

from __future__ import annotations

from typing import Optional

import torch

from .primitives import log_sum_exp_vec


class LogProbVector:
    """
    A discrete distribution stored as unnormalized natural-log probabilities.

    Adding the same constant to every entry does not change the distribution
    it represents, so normalization only happens on request. Entries may be
    -inf (impossible value) but never +inf.
    """

    def __init__(self, log_probabilities: torch.Tensor):
        """
        Args:
            log_probabilities: 1-D tensor of log-probabilities
        """
        if log_probabilities.dim() != 1:
            raise ValueError(
                f"LogProbVector expects a 1-D tensor, got shape {tuple(log_probabilities.shape)}"
            )
        self._log_probabilities = log_probabilities

    @classmethod
    def uniform(cls, n: int, dtype=torch.float64, device: Optional[torch.device] = None) -> "LogProbVector":
        """Unnormalized uniform distribution over ``n`` values."""
        return cls(torch.zeros(n, dtype=dtype, device=device))

    @classmethod
    def deterministic(
        cls, n: int, i: int, dtype=torch.float64, device: Optional[torch.device] = None
    ) -> "LogProbVector":
        """
        Distribution putting all the mass on value ``i`` out of ``n``.

        If ``i`` is out of range, every value gets zero probability.
        """
        data = torch.full((n,), float("-inf"), dtype=dtype, device=device)
        if 0 <= i < n:
            data[i] = 0.0
        return cls(data)

    @classmethod
    def from_log_probabilities(cls, values) -> "LogProbVector":
        """Build a vector from a copy of existing log-probabilities, without normalizing them."""
        return cls(torch.as_tensor(values).clone())

    @property
    def log_probabilities(self) -> torch.Tensor:
        """Underlying log-probabilities."""
        return self._log_probabilities

    def as_probabilities(self) -> torch.Tensor:
        """
        Normalized probabilities represented by this vector.

        Returns all zeros when every entry is -inf.
        """
        max_log = self._log_probabilities.max()
        if not torch.isfinite(max_log):
            return torch.zeros_like(self._log_probabilities)
        probabilities = torch.exp(self._log_probabilities - max_log)
        return probabilities / probabilities.sum()

    def renormalize(self) -> None:
        """Shift the entries in place so that they exponentiate to a distribution summing to one."""
        norm_cst = log_sum_exp_vec(self._log_probabilities)
        if torch.isfinite(norm_cst):
            self._log_probabilities.sub_(norm_cst)

    def prod(self, other: "LogProbVector") -> None:
        """
        Multiply ``other`` into this vector in probability space.

        NB: log-probabilities are summed, so the result is no longer normalized.
        """
        if len(other) != len(self):
            raise ValueError(
                f"Cannot multiply probability vectors of lengths {len(self)} and {len(other)}."
            )
        self._log_probabilities.add_(other._log_probabilities)

    def reset(self) -> None:
        """Reset to a uniform distribution."""
        self._log_probabilities.zero_()

    def clone(self) -> "LogProbVector":
        return LogProbVector(self._log_probabilities.clone())

    def __len__(self) -> int:
        return self._log_probabilities.shape[0]

    def __repr__(self):
        return f"LogProbVector({self._log_probabilities.tolist()})"
