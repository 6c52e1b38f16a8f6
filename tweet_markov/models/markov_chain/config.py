"""
Generator configuration loaded from YAML files.

Lookup order for `load_config(environment)`:

1. ``<config dir>/generator_<environment>.yaml``
2. ``<config dir>/generator.yaml``
3. Built-in defaults

The config dir is the ``config_dir`` argument, else the ``TWEET_MARKOV_CONFIG_DIR``
environment variable, else the ``configs`` directory shipped inside the package.
Keyword overrides (e.g. parsed command line arguments) are applied last.
"""

import os

import yaml

from tweet_markov.models.markov_chain.sampler import WEIGHTED, validate_mode
from tweet_markov.models.markov_chain.transition_table import validate_order
from tweet_markov.utils.loggers.json_logger import get_logger, get_package_root

CONFIG_DIR_ENV = "TWEET_MARKOV_CONFIG_DIR"
PACKAGE_CONFIG_DIR = os.path.join(get_package_root(), "configs")

DEFAULTS = {
    "order": 1,
    "sampling_mode": WEIGHTED,
    "max_output_length": 140,
    "random_seed": None,
    "n_jobs": 1,
}


class GeneratorConfig:
    """
    Validated options for building tables and generating text.

    Args:
        order (int): 1 (unigram) or 2 (bigram) contexts
        sampling_mode (str): "uniform" or "weighted"
        max_output_length (int): Character count after which generation stops at the next terminator
        random_seed (int, optional): Seed for reproducible generation
        n_jobs (int): Worker processes for the table build (-1 for all cores)
    """

    def __init__(self, order=1, sampling_mode=WEIGHTED, max_output_length=140,
                 random_seed=None, n_jobs=1):
        self.order = validate_order(order)
        self.sampling_mode = validate_mode(sampling_mode)

        if isinstance(max_output_length, bool) or not isinstance(max_output_length, int) \
                or max_output_length <= 0:
            raise ValueError(
                f"max_output_length must be a positive integer, got {max_output_length!r}")
        self.max_output_length = max_output_length

        if random_seed is not None and (isinstance(random_seed, bool) or not isinstance(random_seed, int)):
            raise ValueError(f"random_seed must be an integer, got {random_seed!r}")
        self.random_seed = random_seed

        if isinstance(n_jobs, bool) or not isinstance(n_jobs, int):
            raise ValueError(f"n_jobs must be an integer, got {n_jobs!r}")
        self.n_jobs = n_jobs

    @classmethod
    def from_dict(cls, data):
        """Create a config from a mapping, ignoring unknown keys and filling defaults."""
        values = dict(DEFAULTS)
        values.update({key: value for key, value in (data or {}).items()
                       if key in DEFAULTS})
        return cls(**values)

    def to_dict(self):
        return {key: getattr(self, key) for key in DEFAULTS}

    def __repr__(self):
        options = ", ".join(f"{key}={value!r}" for key, value in self.to_dict().items())
        return f"GeneratorConfig({options})"


def _read_yaml(path, logger):
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing generator config {path}: {e}")
        raise ValueError(f"Invalid generator config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Generator config {path} must contain a mapping")
    if "generator" not in data:
        return data

    # Options nested under a top-level "generator" key
    options = data["generator"]
    if options is None:
        return {}
    if not isinstance(options, dict):
        raise ValueError(f"Generator config {path}: 'generator' must contain a mapping")
    return options


def default_config_dir():
    """Config directory from the environment, else the one shipped with the package."""
    return os.environ.get(CONFIG_DIR_ENV) or PACKAGE_CONFIG_DIR


def load_config(environment="development", config_dir=None, overrides=None, logger=None):
    """
    Load generator configuration for an environment.

    Args:
        environment (str): Environment name used to pick generator_<environment>.yaml
        config_dir (str, optional): Directory holding the YAML files (defaults to `default_config_dir()`)
        overrides (dict, optional): Values taking precedence over the file; None values are ignored
        logger (logging.Logger, optional): Logger instance

    Returns:
        GeneratorConfig: The validated configuration
    """
    if logger is None:
        logger = get_logger("generator_config")
    if config_dir is None:
        config_dir = default_config_dir()

    env_config_path = os.path.join(config_dir, f"generator_{environment}.yaml")
    default_config_path = os.path.join(config_dir, "generator.yaml")

    data = {}
    source = "defaults"
    for path in (env_config_path, default_config_path):
        if os.path.exists(path):
            data = _read_yaml(path, logger)
            source = path
            break
    else:
        logger.warning(f"No generator config found in {config_dir}, using built-in defaults",
                       extra={"metrics": {"config_dir": config_dir, "environment": environment}})

    if overrides:
        data = dict(data)
        data.update({key: value for key, value in overrides.items() if value is not None})

    config = GeneratorConfig.from_dict(data)
    logger.info("Generator configuration loaded", extra={
        "metrics": {
            "source": source,
            "environment": environment,
            **config.to_dict()
        }
    })
    return config
