"""
Successor sampling over transition table entries.

Two modes are supported:

- ``uniform``: every distinct successor is equally likely, whatever its count.
- ``weighted``: a successor is drawn with probability proportional to its count.

Callers pass their own ``random.Random`` instance so that a fixed seed gives
reproducible draws.
"""

import random

from tweet_markov.models.markov_chain.errors import NoSuccessorError

UNIFORM = "uniform"
WEIGHTED = "weighted"
SAMPLING_MODES = (UNIFORM, WEIGHTED)


def validate_mode(mode):
    if mode not in SAMPLING_MODES:
        raise ValueError(
            f"Invalid sampling mode {mode!r}: expected one of {', '.join(SAMPLING_MODES)}")
    return mode


def choose(pairs, mode=WEIGHTED, rng=None):
    """
    Draw one item from a multiset of (item, count) pairs.

    Args:
        pairs (sequence): (item, count) pairs with positive counts
        mode (str): "uniform" or "weighted"
        rng (random.Random, optional): Random source; the module-level generator if omitted

    Returns:
        The chosen item

    Raises:
        ValueError: If mode is unknown or pairs is empty
    """
    validate_mode(mode)
    if not pairs:
        raise ValueError("Cannot choose from an empty set of successors")
    if rng is None:
        rng = random

    items = [item for item, _ in pairs]
    if mode == UNIFORM:
        return items[rng.randrange(len(items))]
    return rng.choices(items, weights=[count for _, count in pairs])[0]


def sample(table, context, mode=WEIGHTED, rng=None):
    """
    Draw a successor for `context` from a transition table.

    Args:
        table (TransitionTable): The table to sample from
        context: A token (order 1) or a token pair (order 2)
        mode (str): "uniform" or "weighted"
        rng (random.Random, optional): Seeded random source for reproducible runs

    Returns:
        The sampled successor (a token for order 1, a bigram for order 2)

    Raises:
        NoSuccessorError: If the context has no recorded successors
    """
    validate_mode(mode)
    successors = table.successors(context)
    if not successors:
        raise NoSuccessorError(context)
    return choose(successors, mode, rng)
