import math
import uuid

import numpy as np

from tweet_markov.utils.loggers.json_logger import get_logger


class MarkovChainAnalytics:
    """
    Analytics for built transition tables with JSON-formatted metrics.

    Provides model statistics, transition probabilities, sequence scoring and
    perplexity. Results are plain dictionaries and are also logged under the
    "metrics" key.
    """

    def __init__(self, table, logger=None):
        """
        Initialize with a reference to a TransitionTable.

        Args:
            table: A built TransitionTable
            logger: A logger instance for logging analytics activities
        """
        self.logger = logger if logger is not None else get_logger("markov_analytics")
        self.table = table
        self.analytics_id = str(uuid.uuid4())[:8]

    def log_operation_with_metrics(self, message, operation_name, metrics=None, log_level="info"):
        """
        Log an operation with custom metrics.

        Args:
            message (str): Message to log
            operation_name (str): Name of the operation being performed
            metrics (dict, optional): Custom metrics to include
            log_level (str): Logging level (info, debug, warning, error)
        """
        combined_metrics = {
            "model_id": self.analytics_id,
            "operation": operation_name,
            "order": self.table.order,
        }
        if metrics:
            combined_metrics.update(metrics)

        log = getattr(self.logger, log_level, self.logger.info)
        log(message, extra={"metrics": combined_metrics})

    def analyze_table(self, top_n=5):
        """
        Compute summary statistics of the table.

        Returns:
            dict: A dictionary containing:
                - order: context order
                - states_count: number of contexts with successors
                - transitions_count: number of distinct (context, successor) pairs
                - total_observations: sum of all counts
                - vocabulary_size: number of distinct tokens
                - branching: min / max / mean / median distinct successors per context
                - mean_entropy_bits: average successor entropy per context
                - weighted_entropy_bits: entropy averaged by context frequency
                - top_transitions: the `top_n` most frequent transitions
        """
        table = self.table
        contexts = table.contexts()

        stats = {
            "order": table.order,
            "states_count": len(contexts),
            "start_contexts": len(table.starts),
        }

        if not contexts:
            stats.update({
                "transitions_count": 0,
                "total_observations": 0,
                "vocabulary_size": 0,
                "branching": {"min": 0, "max": 0, "mean": 0.0, "median": 0.0},
                "mean_entropy_bits": 0.0,
                "weighted_entropy_bits": 0.0,
                "top_transitions": [],
            })
            self.log_operation_with_metrics("Table analysis completed", "analyze_table", stats)
            return stats

        branching = np.array([len(table.successors(c)) for c in contexts])
        totals = np.array([table.total(c) for c in contexts], dtype=float)
        entropies = np.array([self._entropy(c) for c in contexts])

        vocabulary = set()
        all_transitions = []
        for context in contexts:
            vocabulary.update(self._tokens(context))
            for successor, count in table.successors(context):
                vocabulary.update(self._tokens(successor))
                all_transitions.append((context, successor, count))

        all_transitions.sort(key=lambda t: t[2], reverse=True)

        stats.update({
            "transitions_count": int(branching.sum()),
            "total_observations": int(totals.sum()),
            "vocabulary_size": len(vocabulary),
            "branching": {
                "min": int(branching.min()),
                "max": int(branching.max()),
                "mean": float(branching.mean()),
                "median": float(np.median(branching)),
            },
            "mean_entropy_bits": float(entropies.mean()),
            "weighted_entropy_bits": float(np.average(entropies, weights=totals)),
            "top_transitions": [
                {"state": self._display(context), "next": self._display(successor), "count": count}
                for context, successor, count in all_transitions[:top_n]
            ],
        })

        self.log_operation_with_metrics("Table analysis completed", "analyze_table", stats)
        return stats

    def _tokens(self, context):
        return [context] if self.table.order == 1 else list(context)

    def _display(self, context):
        return context if self.table.order == 1 else " ".join(context)

    def _entropy(self, context):
        counts = np.array([count for _, count in self.table.successors(context)], dtype=float)
        p = counts / counts.sum()
        return float(-(p * np.log2(p)).sum())

    def get_transition_probability(self, context, successor):
        """
        Probability of `successor` following `context` under maximum likelihood.

        Returns:
            float: count / total, or 0.0 when the context or pair was never observed
        """
        total = self.table.total(context)
        if total == 0:
            return 0.0
        return self.table.count(context, successor) / total

    def _states(self, tokens):
        tokens = list(tokens)
        if self.table.order == 1:
            return tokens
        return [tuple(tokens[i: i + 2]) for i in range(len(tokens) - 1)]

    def score_sequence(self, tokens):
        """
        Score a token sequence under the table.

        Args:
            tokens (list): Token sequence (use the table's terminator for sentence ends)

        Returns:
            dict: {"log_probability", "probabilities", "unknown_transitions", "transitions"}
                  log_probability is -inf when any transition was never observed.

        Raises:
            ValueError: If the sequence is too short to contain a transition
        """
        states = self._states(tokens)
        if len(states) < 2:
            raise ValueError("Sequence too short to contain a transition")

        probabilities = np.array([
            self.get_transition_probability(current, following)
            for current, following in zip(states, states[1:])
        ])
        unknown = int((probabilities == 0).sum())
        log_probability = -math.inf if unknown else float(np.log(probabilities).sum())

        result = {
            "log_probability": log_probability,
            "probabilities": probabilities.tolist(),
            "unknown_transitions": unknown,
            "transitions": len(probabilities),
        }
        self.log_operation_with_metrics("Sequence scored", "score_sequence", {
            "transitions": result["transitions"],
            "unknown_transitions": unknown,
            "log_probability": log_probability if unknown == 0 else None,
        })
        return result

    def perplexity(self, tokens):
        """
        Perplexity of a token sequence: exp of the mean negative log probability.

        Returns:
            float: Perplexity, or inf if the sequence contains an unseen transition
        """
        score = self.score_sequence(tokens)
        if score["unknown_transitions"]:
            return math.inf
        return float(np.exp(-score["log_probability"] / score["transitions"]))
