#!/usr/bin/env python3
"""
Markov Chain Training and Generation Script

This script segments tweet datasets into documents, builds a unigram or bigram
transition table, optionally exports the table as JSON, and prints generated
tweets. Configuration comes from the packaged configs/generator*.yaml (or
--config-dir) with command line overrides.
"""
import argparse
import os
import time

import pandas as pd

from tweet_markov.data_preprocessing.text_preprocessor import TextPreprocessor, segment_corpus
from tweet_markov.models.markov_chain.analytics import MarkovChainAnalytics
from tweet_markov.models.markov_chain.config import load_config
from tweet_markov.models.markov_chain.errors import MarkovChainError
from tweet_markov.models.markov_chain.generator import MarkovTextGenerator
from tweet_markov.models.markov_chain.sampler import SAMPLING_MODES
from tweet_markov.models.markov_chain.transition_table import build
from tweet_markov.utils.loggers.json_logger import get_logger
from tweet_markov.utils.system_monitoring import ResourceMonitor

TEXT_COLUMN_HINTS = ("text", "tweet", "content")


class TweetChainTrainer:
    """
    Handles the tweet generation pipeline.

    This class manages:
    1. Loading tweets from CSV or text datasets
    2. Segmenting them into documents
    3. Building the transition table
    4. Exporting the table and generating tweets
    """

    def __init__(self, config, dataset_paths, environment="development", logger=None,
                 preprocessor=None):
        """
        Initialize the trainer.

        Args:
            config (GeneratorConfig): Validated generator options
            dataset_paths (list): Paths to .csv or .txt datasets
            environment (str): Environment name, used in log metrics
            logger (logging.Logger, optional): Logger instance
            preprocessor (TextPreprocessor, optional): Segmenter to use
        """
        if not dataset_paths:
            raise ValueError("At least one dataset path is required")

        self.config = config
        self.dataset_paths = list(dataset_paths)
        self.environment = environment
        self.logger = logger if logger is not None else get_logger(
            f"tweet_markov_{environment}")
        self.preprocessor = preprocessor or TextPreprocessor()
        self.resource_monitor = ResourceMonitor(logger=self.logger)

        self.logger.info("TweetChainTrainer initialized", extra={
            "metrics": {
                "environment": environment,
                "dataset_count": len(self.dataset_paths),
                **config.to_dict()
            }
        })

    def _load_dataset(self, file_path):
        """
        Load raw tweets from a dataset file.

        CSV files use the first column whose name mentions text, tweet or content,
        falling back to the first column. Text files hold one tweet per line.

        Args:
            file_path (str): Path to the dataset file

        Returns:
            list: Raw tweet texts

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file format is not supported
        """
        if not os.path.exists(file_path):
            self.logger.error(f"Dataset file not found: {file_path}")
            raise FileNotFoundError(file_path)

        file_ext = os.path.splitext(file_path)[1].lower()

        if file_ext == ".csv":
            try:
                df = pd.read_csv(file_path, encoding="utf-8")
            except UnicodeDecodeError:
                df = pd.read_csv(file_path, encoding="latin-1")

            text_columns = [col for col in df.columns
                            if any(hint in str(col).lower() for hint in TEXT_COLUMN_HINTS)]
            column = text_columns[0] if text_columns else df.columns[0]
            texts = df[column].tolist()

        elif file_ext == ".txt":
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    texts = f.read().splitlines()
            except UnicodeDecodeError:
                with open(file_path, "r", encoding="latin-1") as f:
                    texts = f.read().splitlines()

        else:
            self.logger.error(f"Unsupported file format: {file_ext}")
            raise ValueError(f"Unsupported dataset format {file_ext!r} for {file_path}")

        self.logger.info(f"Dataset loaded: {file_path}", extra={
            "metrics": {"file_path": file_path, "texts": len(texts)}
        })
        return texts

    def load_documents(self):
        """Load every dataset and segment the tweets into documents."""
        texts = []
        for i, dataset_path in enumerate(self.dataset_paths):
            texts.extend(self._load_dataset(dataset_path))
            self.resource_monitor.log_progress(
                f"Loaded dataset {os.path.basename(dataset_path)}",
                progress_percent=((i + 1) / len(self.dataset_paths)) * 100,
                operation="dataset_load",
                extra_metrics={"texts_so_far": len(texts)}
            )
        return segment_corpus(texts, preprocessor=self.preprocessor, logger=self.logger)

    def train_model(self):
        """
        Build the transition table from all datasets.

        Returns:
            TransitionTable: The built table
        """
        self.resource_monitor.start("table_build")
        try:
            documents = self.load_documents()
            table = build(documents, order=self.config.order,
                          terminator=self.preprocessor.terminator,
                          n_jobs=self.config.n_jobs, logger=self.logger)
        except MarkovChainError as e:
            self.logger.error("Transition table build failed", extra={
                "metrics": {"error": str(e), "error_type": type(e).__name__}
            })
            raise
        finally:
            self.resource_monitor.stop()

        MarkovChainAnalytics(table, logger=self.logger).analyze_table()
        return table

    def export_table(self, table, export_path):
        """
        Export the table to JSON.

        Returns:
            str: Path to the exported file
        """
        start_time = time.time()
        table.save(export_path)
        self.logger.info("Transition table export completed", extra={
            "metrics": {
                "export_path": export_path,
                "file_size_kb": os.path.getsize(export_path) / 1024,
                "export_time": time.time() - start_time
            }
        })
        return export_path

    def generate(self, table, count=1):
        """
        Generate `count` texts with a single seeded generator.

        Returns:
            list: Generated texts
        """
        generator = MarkovTextGenerator(
            table,
            sampling_mode=self.config.sampling_mode,
            max_output_length=self.config.max_output_length,
            random_seed=self.config.random_seed,
            logger=self.logger
        )
        return [generator.generate() for _ in range(count)]

    def run_pipeline(self, count=1, export_path=None):
        """
        Run the full pipeline: build, optionally export, generate.

        Returns:
            tuple: (table, generated_texts)
        """
        self.resource_monitor.describe_system()
        table = self.train_model()
        if export_path:
            self.export_table(table, export_path)
        return table, self.generate(table, count=count)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Build a Markov chain from tweets and generate new ones")
    parser.add_argument("--datasets", nargs="+", required=True,
                        help="Paths to .csv or .txt tweet datasets")
    parser.add_argument("--order", type=int, choices=[1, 2],
                        help="Context order: 1 (unigram) or 2 (bigram)")
    parser.add_argument("--mode", dest="sampling_mode", choices=list(SAMPLING_MODES),
                        help="Successor sampling mode")
    parser.add_argument("--max-length", dest="max_output_length", type=int,
                        help="Character count after which generation stops at the next sentence end")
    parser.add_argument("--seed", dest="random_seed", type=int,
                        help="Random seed for reproducible output")
    parser.add_argument("--jobs", dest="n_jobs", type=int,
                        help="Worker processes for the table build (-1 for all cores)")
    parser.add_argument("--count", type=int, default=1,
                        help="Number of texts to generate (default: 1)")
    parser.add_argument("--export", help="Write the transition table as JSON to this path")
    parser.add_argument("--env", default="development",
                        help="Environment used to pick generator_<env>.yaml (default: development)")
    parser.add_argument("--config-dir", help="Directory containing generator*.yaml files")
    parser.add_argument("--log-file", help="Also write JSON logs to this file")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger = get_logger(f"tweet_markov_{args.env}", log_file=args.log_file)

    overrides = {
        "order": args.order,
        "sampling_mode": args.sampling_mode,
        "max_output_length": args.max_output_length,
        "random_seed": args.random_seed,
        "n_jobs": args.n_jobs,
    }
    config = load_config(args.env, config_dir=args.config_dir,
                         overrides=overrides, logger=logger)

    trainer = TweetChainTrainer(config, args.datasets, environment=args.env, logger=logger)
    _, texts = trainer.run_pipeline(count=args.count, export_path=args.export)
    for text in texts:
        print(text)
    return texts


if __name__ == "__main__":
    main()
