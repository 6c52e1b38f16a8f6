"""
Transition table construction for unigram and bigram Markov chains.

A table maps a context (one token, or a tuple of two adjacent tokens) to the
successors observed after it in the corpus, together with how many times each
successor was observed. Tables are built by folding per-document partial counts
together with `merge_counts`, so documents can be counted in any order, or in
parallel worker processes, and still produce the same table.
"""

import json
import multiprocessing
import os
import time
import concurrent.futures
from concurrent.futures import ProcessPoolExecutor
from functools import reduce

from tweet_markov.data_preprocessing.text_preprocessor import TERMINATOR
from tweet_markov.models.markov_chain.errors import (
    EmptyCorpusError,
    InvalidOrderError,
    NoSuccessorError,
)
from tweet_markov.utils.loggers.json_logger import get_logger

VALID_ORDERS = (1, 2)


def validate_order(order):
    """Raise InvalidOrderError unless order is 1 or 2."""
    # bool is an int subclass; True must not pass as order 1
    if isinstance(order, bool) or order not in VALID_ORDERS:
        raise InvalidOrderError(order)
    return order


def _document_tokens(document):
    """Accept Document tuples or bare token sequences."""
    return list(getattr(document, "tokens", document))


def count_document_transitions(args):
    """
    Count the transitions of a single document.

    This is a standalone function outside of any class so it can be pickled and
    sent to worker processes.

    Args:
        args (tuple): A tuple containing (tokens, order, terminator)

    Returns:
        dict: {"transitions": {context: {successor: count}}, "starts": {context: count}}
    """
    tokens, order, terminator = args
    tokens = list(tokens)

    # Bigram chains need at least one bigram from the document itself
    if not tokens or (order == 2 and len(tokens) < 2):
        return {"transitions": {}, "starts": {}}

    # End of document is recorded explicitly with the terminator
    if tokens[-1] != terminator:
        tokens.append(terminator)

    if order == 1:
        states = tokens
    else:
        states = [tuple(tokens[i: i + 2]) for i in range(len(tokens) - 1)]

    transitions = {}
    for current_state, next_state in zip(states, states[1:]):
        successors = transitions.setdefault(current_state, {})
        successors[next_state] = successors.get(next_state, 0) + 1

    return {"transitions": transitions, "starts": {states[0]: 1}}


def _add_counts(target, source):
    for context, successors in source.items():
        merged = target.setdefault(context, {})
        for successor, count in successors.items():
            merged[successor] = merged.get(successor, 0) + count


def merge_counts(left, right):
    """
    Merge two partial count results by summing counts.

    The merge is commutative and associative and leaves both inputs untouched.
    `build` folds with `_fold_into`, the in-place form of this merge, so its
    result equals ``reduce(merge_counts, partials)``.

    Args:
        left (dict): Partial counts as returned by `count_document_transitions`
        right (dict): Partial counts as returned by `count_document_transitions`

    Returns:
        dict: New partial counts holding the sum of both inputs
    """
    merged = {"transitions": {}, "starts": {}}
    for partial in (left, right):
        _fold_into(merged, partial)
    return merged


def _fold_into(accumulator, partial):
    # In-place form of merge_counts; `build` owns its accumulator
    _add_counts(accumulator["transitions"], partial["transitions"])
    for context, count in partial["starts"].items():
        accumulator["starts"][context] = accumulator["starts"].get(context, 0) + count
    return accumulator


class TransitionTable:
    """
    Immutable mapping from context to observed successor counts.

    Successors for each context are stored as a tuple of (successor, count)
    pairs in sorted order, so iteration never depends on the order in which
    documents were counted.
    """

    def __init__(self, order, transitions, starts=None, terminator=TERMINATOR):
        self.order = validate_order(order)
        self.terminator = terminator
        self._transitions = {
            context: tuple(sorted(successors.items()))
            for context, successors in transitions.items()
            if successors
        }
        self._totals = {
            context: sum(count for _, count in successors)
            for context, successors in self._transitions.items()
        }
        self._starts = tuple(sorted((starts or {}).items()))

    def __contains__(self, context):
        return context in self._transitions

    def __len__(self):
        return len(self._transitions)

    def __iter__(self):
        return iter(sorted(self._transitions))

    def __eq__(self, other):
        if not isinstance(other, TransitionTable):
            return NotImplemented
        return (
            self.order == other.order
            and self.terminator == other.terminator
            and self._transitions == other._transitions
            and self._starts == other._starts
        )

    def __repr__(self):
        return (f"TransitionTable(order={self.order}, contexts={len(self)}, "
                f"starts={len(self._starts)})")

    def contexts(self):
        """Return all contexts that have at least one successor, sorted."""
        return sorted(self._transitions)

    def successors(self, context):
        """
        Return the (successor, count) pairs recorded for a context.

        Raises:
            NoSuccessorError: If the context never appeared as a predecessor.
        """
        try:
            return self._transitions[context]
        except KeyError:
            raise NoSuccessorError(context) from None

    def count(self, context, successor):
        """Number of times `successor` followed `context` (0 if never observed)."""
        for candidate, count in self._transitions.get(context, ()):
            if candidate == successor:
                return count
        return 0

    def total(self, context):
        """Sum of successor counts for a context (0 if absent)."""
        return self._totals.get(context, 0)

    @property
    def starts(self):
        """(context, count) pairs for the first context of every document."""
        return self._starts

    def start_contexts(self):
        """Distinct document-start contexts, sorted."""
        return [context for context, _ in self._starts]

    def token_of(self, successor):
        """Token a successor contributes to the output."""
        return successor if self.order == 1 else successor[-1]

    def _key(self, context):
        return context if self.order == 1 else " ".join(context)

    def to_dict(self):
        """
        Serialize the table to plain JSON-compatible data.

        Bigram contexts are written as space-joined tokens; tokens never contain
        whitespace so the key splits back unambiguously.

        Returns:
            dict: {"order", "terminator", "transitions", "starts"}
        """
        return {
            "order": self.order,
            "terminator": self.terminator,
            "transitions": {
                self._key(context): [[self._key(successor), count]
                                     for successor, count in successors]
                for context, successors in sorted(self._transitions.items())
            },
            "starts": [[self._key(context), count] for context, count in self._starts],
        }

    @classmethod
    def from_dict(cls, data):
        """Rebuild a table from the output of `to_dict`."""
        order = validate_order(data["order"])

        def context(key):
            return key if order == 1 else tuple(key.split(" "))

        transitions = {
            context(key): {context(successor): int(count)
                           for successor, count in successors}
            for key, successors in data["transitions"].items()
        }
        starts = {context(key): int(count)
                  for key, count in data.get("starts", [])}
        return cls(order, transitions, starts,
                   terminator=data.get("terminator", TERMINATOR))

    def save(self, filepath):
        """Write the table as JSON to `filepath`, creating parent directories."""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False)
        return filepath

    @classmethod
    def load(cls, filepath):
        """Read a table previously written by `save`."""
        with open(filepath, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


def build(documents, order=1, terminator=TERMINATOR, n_jobs=1, logger=None):
    """
    Build a transition table from per-document token sequences.

    Args:
        documents (iterable): `Document` tuples or bare token sequences
        order (int): 1 for unigram contexts, 2 for bigram contexts
        terminator (str): The reserved sentence terminator token
        n_jobs (int): Worker processes for counting (1 counts in-process, -1 uses all cores)
        logger (logging.Logger, optional): Logger for build statistics

    Returns:
        TransitionTable: The built table

    Raises:
        InvalidOrderError: If order is not 1 or 2
        EmptyCorpusError: If no documents are supplied
    """
    if logger is None:
        logger = get_logger("transition_table_builder")

    validate_order(order)
    documents = list(documents)
    if not documents:
        logger.error("Transition table build failed - empty corpus")
        raise EmptyCorpusError()

    if n_jobs is None or n_jobs == 0:
        n_jobs = 1
    elif n_jobs < 0:
        n_jobs = multiprocessing.cpu_count()

    start_time = time.time()
    process_args = [(_document_tokens(doc), order, terminator)
                    for doc in documents]

    logger.info("Transition table build started", extra={
        "metrics": {
            "documents": len(documents),
            "order": order,
            "n_jobs": n_jobs
        }
    })

    if n_jobs == 1 or len(process_args) == 1:
        partials = map(count_document_transitions, process_args)
        counts = reduce(_fold_into, partials, {"transitions": {}, "starts": {}})
    else:
        counts = {"transitions": {}, "starts": {}}
        with ProcessPoolExecutor(max_workers=n_jobs) as executor:
            futures = [executor.submit(count_document_transitions, arg)
                       for arg in process_args]
            # Completion order is irrelevant: the merge only sums counts
            for future in concurrent.futures.as_completed(futures):
                counts = _fold_into(counts, future.result())

    table = TransitionTable(order, counts["transitions"], counts["starts"],
                            terminator=terminator)

    logger.info("Transition table build completed", extra={
        "metrics": {
            "documents": len(documents),
            "order": order,
            "contexts": len(table),
            "transitions": sum(len(s) for s in counts["transitions"].values()),
            "start_contexts": len(table.starts),
            "build_time_seconds": time.time() - start_time
        }
    })
    return table
