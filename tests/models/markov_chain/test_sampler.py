import random
from collections import Counter
from unittest.mock import MagicMock

import pytest

from tweet_markov.models.markov_chain.errors import NoSuccessorError
from tweet_markov.models.markov_chain.sampler import UNIFORM, WEIGHTED, choose, sample
from tweet_markov.models.markov_chain.transition_table import build

TRIALS = 20000


@pytest.fixture
def skewed_table():
    """Context "go" is followed by "left" three times and "right" once."""
    documents = [
        ["go", "left", "."],
        ["go", "left", "."],
        ["go", "left", "."],
        ["go", "right", "."],
    ]
    return build(documents, order=1, terminator=".", logger=MagicMock())


def _frequencies(table, context, mode, seed=1234):
    rng = random.Random(seed)
    counts = Counter(sample(table, context, mode, rng) for _ in range(TRIALS))
    return {successor: n / TRIALS for successor, n in counts.items()}


def test_weighted_sampling_follows_counts(skewed_table):
    freqs = _frequencies(skewed_table, "go", WEIGHTED)
    assert freqs["left"] == pytest.approx(0.75, abs=0.02)
    assert freqs["right"] == pytest.approx(0.25, abs=0.02)


def test_uniform_sampling_ignores_counts(skewed_table):
    freqs = _frequencies(skewed_table, "go", UNIFORM)
    assert freqs["left"] == pytest.approx(0.5, abs=0.02)
    assert freqs["right"] == pytest.approx(0.5, abs=0.02)


def test_same_seed_gives_same_draws(skewed_table):
    first = [sample(skewed_table, "go", WEIGHTED, random.Random(99)) for _ in range(5)]
    rng_a, rng_b = random.Random(5), random.Random(5)
    draws_a = [sample(skewed_table, "go", UNIFORM, rng_a) for _ in range(50)]
    draws_b = [sample(skewed_table, "go", UNIFORM, rng_b) for _ in range(50)]

    assert len(set(first)) == 1
    assert draws_a == draws_b


def test_unknown_context_raises_no_successor(skewed_table):
    with pytest.raises(NoSuccessorError) as excinfo:
        sample(skewed_table, "stop", WEIGHTED, random.Random(0))
    assert excinfo.value.context == "stop"
    # Usable as a plain lookup failure as well
    assert isinstance(excinfo.value, LookupError)


def test_invalid_mode_raises(skewed_table):
    with pytest.raises(ValueError, match="Invalid sampling mode"):
        sample(skewed_table, "go", "greedy", random.Random(0))


def test_choose_single_item_always_returned():
    rng = random.Random(3)
    assert {choose([("only", 7)], WEIGHTED, rng) for _ in range(10)} == {"only"}
    assert {choose([("only", 7)], UNIFORM, rng) for _ in range(10)} == {"only"}


def test_choose_empty_raises():
    with pytest.raises(ValueError):
        choose([], WEIGHTED, random.Random(0))


def test_choose_without_rng_uses_module_random(mocker):
    mocked = mocker.patch("tweet_markov.models.markov_chain.sampler.random.choices",
                          return_value=["b"])
    assert choose([("a", 1), ("b", 2)]) == "b"
    mocked.assert_called_once_with(["a", "b"], weights=[1, 2])
