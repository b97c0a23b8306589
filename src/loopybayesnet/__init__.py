"""
loopybayesnet: approximate inference on discrete Bayesian networks.

Marginal beliefs are computed with Loopy Belief Propagation, with every
probability and message kept in log-space for numerical stability.
"""

from loopybayesnet.network import AggregateCache, BayesNet, CacheState
from loopybayesnet.primitives import (
    log_contract,
    log_sum_exp,
    log_sum_exp_keepdim,
    log_sum_exp_vec,
    normalize_log_probas,
    safe_log,
)
from loopybayesnet.prob_vector import LogProbVector

__version__ = "0.1.0"
__all__ = [
    "BayesNet",
    "LogProbVector",
    "AggregateCache",
    "CacheState",
    "log_contract",
    "log_sum_exp",
    "log_sum_exp_keepdim",
    "log_sum_exp_vec",
    "normalize_log_probas",
    "safe_log",
]
