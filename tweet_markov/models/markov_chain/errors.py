"""
Exceptions raised while building transition tables and generating text.
"""


class MarkovChainError(Exception):
    """Base class for all Markov chain errors."""


class EmptyCorpusError(MarkovChainError, ValueError):
    """Raised when a transition table is requested for zero documents."""

    def __init__(self, message="Cannot build a transition table from an empty corpus"):
        super().__init__(message)


class InvalidOrderError(MarkovChainError, ValueError):
    """Raised when the context order is not 1 (unigram) or 2 (bigram)."""

    def __init__(self, order):
        self.order = order
        super().__init__(f"Invalid order {order!r}: expected 1 or 2")


class NoSuccessorError(MarkovChainError, LookupError):
    """
    Raised when a context has no recorded continuation.

    Args:
        context: The context (token or token pair) that has no successors
    """

    def __init__(self, context):
        self.context = context
        super().__init__(f"No successor recorded for context {context!r}")
