import math

import pytest
import torch

from loopybayesnet import LogProbVector


def test_uniform_is_all_zero():
    vec = LogProbVector.uniform(4)
    assert len(vec) == 4
    assert torch.equal(vec.log_probabilities, torch.zeros(4, dtype=torch.float64))
    assert torch.allclose(vec.as_probabilities(), torch.full((4,), 0.25, dtype=torch.float64))


def test_deterministic():
    vec = LogProbVector.deterministic(3, 1)
    assert vec.log_probabilities[1].item() == 0.0
    assert torch.isneginf(vec.log_probabilities[[0, 2]]).all()
    assert vec.as_probabilities().tolist() == [0.0, 1.0, 0.0]


@pytest.mark.parametrize("index", [3, 10, -1])
def test_deterministic_out_of_range_has_no_mass(index):
    vec = LogProbVector.deterministic(3, index)
    assert torch.isneginf(vec.log_probabilities).all()
    probs = vec.as_probabilities()
    assert probs.tolist() == [0.0, 0.0, 0.0]
    assert probs.sum().item() == 0.0


def test_from_log_probabilities_wraps_values():
    vec = LogProbVector.from_log_probabilities(torch.tensor([math.log(1.0), math.log(3.0)]))
    assert torch.allclose(vec.as_probabilities(), torch.tensor([0.25, 0.75]))


def test_from_log_probabilities_copies_input():
    values = torch.tensor([0.0, 1.0], dtype=torch.float64)
    vec = LogProbVector.from_log_probabilities(values)
    vec.renormalize()
    vec.prod(LogProbVector.deterministic(2, 0))
    assert values.tolist() == [0.0, 1.0]


def test_from_log_probabilities_rejects_matrix():
    with pytest.raises(ValueError):
        LogProbVector.from_log_probabilities(torch.zeros(2, 2))


def test_as_probabilities_sums_to_one_for_unnormalized_input():
    vec = LogProbVector.from_log_probabilities(torch.tensor([700.0, 699.0, float("-inf")], dtype=torch.float64))
    probs = vec.as_probabilities()
    assert probs.sum().item() == pytest.approx(1.0)
    assert probs[2].item() == 0.0
    assert probs[0].item() == pytest.approx(1.0 / (1.0 + math.exp(-1.0)))


def test_renormalize():
    vec = LogProbVector.from_log_probabilities(torch.tensor([2.0, 2.0], dtype=torch.float64))
    vec.renormalize()
    assert torch.allclose(vec.log_probabilities, torch.full((2,), math.log(0.5), dtype=torch.float64))
    assert torch.exp(vec.log_probabilities).sum().item() == pytest.approx(1.0)


def test_renormalize_is_idempotent():
    vec = LogProbVector.from_log_probabilities(torch.tensor([0.3, -1.2, 4.0], dtype=torch.float64))
    vec.renormalize()
    once = vec.log_probabilities.clone()
    vec.renormalize()
    assert torch.allclose(vec.log_probabilities, once, atol=1e-12)


def test_renormalize_keeps_impossible_vector():
    vec = LogProbVector.deterministic(2, 5)
    vec.renormalize()
    assert torch.isneginf(vec.log_probabilities).all()
    assert not torch.isnan(vec.log_probabilities).any()


def test_prod_sums_log_probabilities():
    a = LogProbVector.from_log_probabilities(torch.log(torch.tensor([0.5, 0.5], dtype=torch.float64)))
    b = LogProbVector.from_log_probabilities(torch.log(torch.tensor([0.2, 0.6], dtype=torch.float64)))
    a.prod(b)
    assert torch.allclose(a.as_probabilities(), torch.tensor([0.25, 0.75], dtype=torch.float64))


def test_prod_length_mismatch():
    with pytest.raises(ValueError):
        LogProbVector.uniform(2).prod(LogProbVector.uniform(3))


def test_reset():
    vec = LogProbVector.deterministic(3, 0)
    vec.reset()
    assert torch.equal(vec.log_probabilities, torch.zeros(3, dtype=torch.float64))


def test_clone_is_independent():
    vec = LogProbVector.uniform(2)
    copy = vec.clone()
    copy.prod(LogProbVector.deterministic(2, 0))
    assert torch.equal(vec.log_probabilities, torch.zeros(2, dtype=torch.float64))


def test_float32_dtype():
    vec = LogProbVector.uniform(3, dtype=torch.float32)
    assert vec.as_probabilities().dtype == torch.float32


def test_repr():
    assert "LogProbVector" in repr(LogProbVector.uniform(2))
