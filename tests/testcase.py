import itertools
import torch


def joint_weight(cpts, assignment):
    """Product of every node's conditional probability under ``assignment``."""
    weight = 1.0
    for node, (parents, table) in enumerate(cpts):
        weight *= float(table[(assignment[node],) + tuple(assignment[p] for p in parents)])
    return weight


def exact_marginals(cards, cpts, evidence=None):
    """
    Marginals of a Bayesian network by summing its joint over every assignment.

    Args:
        cards: Number of values of each node
        cpts: List of ``(parents, probabilities)`` in node order, with
            ``probabilities[x, p1, ..., pk]`` normalized along axis 0
        evidence: Dictionary mapping node id to observed value
    """
    evidence = evidence or {}
    marginals = [torch.zeros(card, dtype=torch.float64) for card in cards]
    for assignment in itertools.product(*(range(card) for card in cards)):
        if any(assignment[node] != value for node, value in evidence.items()):
            continue
        weight = joint_weight(cpts, assignment)
        for node, value in enumerate(assignment):
            marginals[node][value] += weight

    total = marginals[0].sum() if marginals else 0.0
    if total > 0:
        marginals = [marginal / total for marginal in marginals]
    return marginals


def assert_all_close(actual, expected, eps=1e-3):
    expected = torch.as_tensor(expected, dtype=actual.dtype)
    if actual.shape != expected.shape or not torch.allclose(actual, expected, atol=eps, rtol=0.0):
        raise AssertionError(f"{actual.tolist()} != {expected.tolist()} (+/- {eps})")
