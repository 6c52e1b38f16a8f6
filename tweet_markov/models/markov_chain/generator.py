"""
Markov chain text generation as an explicit two-state machine.

A walk starts in ``RUNNING`` and moves one successor at a time until it reaches
``HALTED``. It halts for one of two reasons:

- ``exhausted``: the current context has no recorded successor.
- ``complete``: the rendered output has reached ``max_output_length`` characters
  and the token just emitted is the sentence terminator.

The length cap is only checked on a terminator, so output overshoots the cap
until the current sentence ends instead of being cut mid-sentence.
"""

import random

from tweet_markov.models.markov_chain.errors import NoSuccessorError
from tweet_markov.models.markov_chain.sampler import (
    WEIGHTED,
    choose,
    sample,
    validate_mode,
)
from tweet_markov.utils.loggers.json_logger import get_logger

RUNNING = "running"
HALTED = "halted"

EXHAUSTED = "exhausted"
COMPLETE = "complete"

RENDERED_TERMINATOR = "."


def render(tokens, terminator):
    """Join tokens with single spaces, rendering the terminator as a period."""
    return " ".join(RENDERED_TERMINATOR if token == terminator else token
                    for token in tokens)


class GenerationState:
    """
    Mutable state of one generation walk.

    Attributes:
        context: Current context (token or token pair)
        tokens (list): Tokens emitted so far
        length (int): Character count of the rendered output so far
        status (str): RUNNING or HALTED
        halt_reason (str): EXHAUSTED or COMPLETE once halted
        steps (int): Number of successors sampled
    """

    def __init__(self, context, tokens=None, terminator=None):
        self.context = context
        self.tokens = []
        self.length = 0
        self.status = RUNNING
        self.halt_reason = None
        self.steps = 0
        self._terminator = terminator
        for token in tokens or ():
            self.append(token)

    def append(self, token):
        rendered = RENDERED_TERMINATOR if token == self._terminator else token
        # One separating space before every token but the first
        self.length += len(rendered) + (1 if self.tokens else 0)
        self.tokens.append(token)

    def halt(self, reason):
        self.status = HALTED
        self.halt_reason = reason

    @property
    def text(self):
        return render(self.tokens, self._terminator)


class MarkovTextGenerator:
    """
    Generates text by walking a transition table.

    Args:
        table (TransitionTable): A built unigram or bigram table
        sampling_mode (str): "uniform" or "weighted"
        max_output_length (int): Rendered length after which the next terminator ends the walk
        random_seed (int, optional): Seed for the generator's own random source
        logger (logging.Logger, optional): Logger instance
    """

    def __init__(self, table, sampling_mode=WEIGHTED, max_output_length=140,
                 random_seed=None, logger=None):
        self.table = table
        self.sampling_mode = validate_mode(sampling_mode)
        if isinstance(max_output_length, bool) or not isinstance(max_output_length, int) \
                or max_output_length <= 0:
            raise ValueError(
                f"max_output_length must be a positive integer, got {max_output_length!r}")
        self.max_output_length = max_output_length
        self.rng = random.Random(random_seed)
        self.logger = logger if logger is not None else get_logger("markov_generator")

    def _initial_state(self, rng):
        table = self.table
        if table.order == 1:
            # Start of sentence; the first step draws from the document starts
            return GenerationState(table.terminator, terminator=table.terminator)

        start_contexts = table.start_contexts()
        if not start_contexts:
            raise NoSuccessorError(None)
        start = start_contexts[rng.randrange(len(start_contexts))]
        return GenerationState(start, tokens=start, terminator=table.terminator)

    def _draw(self, state, rng):
        table = self.table
        if table.order == 1 and not state.tokens:
            if not table.starts:
                raise NoSuccessorError(state.context)
            return choose(table.starts, self.sampling_mode, rng)
        return sample(table, state.context, self.sampling_mode, rng)

    def _should_halt(self, state, token):
        return state.length >= self.max_output_length and token == self.table.terminator

    def step(self, state, rng):
        """
        Advance a RUNNING state by one successor.

        Raises:
            NoSuccessorError: If the very first lookup finds no successor, so no
                output could be produced at all.
        """
        try:
            successor = self._draw(state, rng)
        except NoSuccessorError:
            if not state.tokens:
                raise
            state.halt(EXHAUSTED)
            return state

        token = self.table.token_of(successor)
        state.append(token)
        state.context = successor
        state.steps += 1

        if self._should_halt(state, token):
            state.halt(COMPLETE)
        return state

    def run(self, seed=None):
        """
        Run one walk to completion.

        Args:
            seed (int, optional): Seed for this call only; the generator's own
                random source is used (and advanced) when omitted.

        Returns:
            GenerationState: The halted state
        """
        rng = random.Random(seed) if seed is not None else self.rng

        try:
            state = self._initial_state(rng)
            while state.status == RUNNING:
                self.step(state, rng)
        except NoSuccessorError as e:
            self.logger.error("Text generation failed - no continuation from start", extra={
                "metrics": {"order": self.table.order, "context": e.context}
            })
            raise

        self.logger.info("Text generation completed", extra={
            "metrics": {
                "order": self.table.order,
                "sampling_mode": self.sampling_mode,
                "max_output_length": self.max_output_length,
                "length": state.length,
                "tokens": len(state.tokens),
                "steps": state.steps,
                "halt_reason": state.halt_reason
            }
        })
        return state

    def generate(self, seed=None):
        """Generate one text and return it rendered."""
        return self.run(seed=seed).text


def generate_text(table, config, logger=None):
    """
    Generate one text from a table with the options of a GeneratorConfig.

    The config's random_seed seeds the walk, so equal seeds give equal text.
    """
    generator = MarkovTextGenerator(
        table,
        sampling_mode=config.sampling_mode,
        max_output_length=config.max_output_length,
        random_seed=config.random_seed,
        logger=logger
    )
    return generator.generate()
