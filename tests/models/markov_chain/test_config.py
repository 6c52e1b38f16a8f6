import os
from unittest.mock import MagicMock

import pytest

from tweet_markov.models.markov_chain import config as config_module
from tweet_markov.models.markov_chain.config import (
    CONFIG_DIR_ENV,
    DEFAULTS,
    PACKAGE_CONFIG_DIR,
    GeneratorConfig,
    load_config,
)
from tweet_markov.models.markov_chain.errors import InvalidOrderError


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    return MagicMock()


def test_defaults():
    config = GeneratorConfig()
    assert config.to_dict() == DEFAULTS


def test_from_dict_ignores_unknown_keys():
    config = GeneratorConfig.from_dict({"order": 2, "colour": "blue"})
    assert config.order == 2
    assert config.sampling_mode == "weighted"


@pytest.mark.parametrize("kwargs, error", [
    ({"order": 3}, InvalidOrderError),
    ({"sampling_mode": "greedy"}, ValueError),
    ({"max_output_length": 0}, ValueError),
    ({"max_output_length": "140"}, ValueError),
    ({"random_seed": 1.5}, ValueError),
    ({"n_jobs": "all"}, ValueError),
])
def test_invalid_values_raise(kwargs, error):
    with pytest.raises(error):
        GeneratorConfig(**kwargs)


def test_environment_file_takes_precedence(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("generator:\n  order: 2\n")
    (tmp_path / "generator_test.yaml").write_text(
        "generator:\n  order: 1\n  sampling_mode: uniform\n  random_seed: 5\n")

    config = load_config("test", config_dir=str(tmp_path), logger=mock_logger)
    assert config.order == 1
    assert config.sampling_mode == "uniform"
    assert config.random_seed == 5


def test_falls_back_to_default_file(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("order: 2\nmax_output_length: 90\n")

    config = load_config("production", config_dir=str(tmp_path), logger=mock_logger)
    assert config.order == 2
    assert config.max_output_length == 90


def test_falls_back_to_defaults_without_files(tmp_path, mock_logger):
    config = load_config("development", config_dir=str(tmp_path), logger=mock_logger)
    assert config.to_dict() == DEFAULTS
    metrics = mock_logger.info.call_args.kwargs["extra"]["metrics"]
    assert metrics["source"] == "defaults"
    mock_logger.warning.assert_called_once()


def test_overrides_skip_none_values(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("order: 2\nrandom_seed: 3\n")

    config = load_config("development", config_dir=str(tmp_path), logger=mock_logger,
                         overrides={"order": 1, "random_seed": None})
    assert config.order == 1
    assert config.random_seed == 3


def test_invalid_yaml_raises(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("order: [1, 2\n")

    with pytest.raises(ValueError, match="Invalid generator config"):
        load_config("development", config_dir=str(tmp_path), logger=mock_logger)
    mock_logger.error.assert_called_once()


def test_non_mapping_yaml_raises(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("- order\n- 2\n")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config("development", config_dir=str(tmp_path), logger=mock_logger)


@pytest.mark.parametrize("content", ["generator:\n  - order\n  - 2\n", "generator: 2\n"])
def test_nested_generator_section_must_be_mapping(tmp_path, mock_logger, content):
    (tmp_path / "generator.yaml").write_text(content)

    with pytest.raises(ValueError, match="'generator' must contain a mapping"):
        load_config("development", config_dir=str(tmp_path), logger=mock_logger)


def test_empty_generator_section_uses_defaults(tmp_path, mock_logger):
    (tmp_path / "generator.yaml").write_text("generator:\n")

    config = load_config("development", config_dir=str(tmp_path), logger=mock_logger)
    assert config.to_dict() == DEFAULTS
    mock_logger.warning.assert_not_called()


def test_packaged_configs_live_inside_the_package():
    package_dir = os.path.abspath(
        os.path.join(os.path.dirname(config_module.__file__), "..", ".."))

    assert PACKAGE_CONFIG_DIR == os.path.join(package_dir, "configs")
    assert os.path.isfile(os.path.join(PACKAGE_CONFIG_DIR, "generator.yaml"))
    assert os.path.isfile(os.path.join(PACKAGE_CONFIG_DIR, "generator_test.yaml"))


def test_packaged_configs_load_from_any_working_directory(tmp_path, monkeypatch, mock_logger):
    monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)
    monkeypatch.chdir(tmp_path)

    assert load_config("test", logger=mock_logger).random_seed == 42
    config = load_config("development", logger=mock_logger)
    assert config.order == 2
    metrics = mock_logger.info.call_args.kwargs["extra"]["metrics"]
    assert metrics["source"] == os.path.join(PACKAGE_CONFIG_DIR, "generator.yaml")
    mock_logger.warning.assert_not_called()


def test_config_dir_from_environment(tmp_path, monkeypatch, mock_logger):
    (tmp_path / "generator.yaml").write_text("order: 2\nmax_output_length: 77\n")
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))

    config = load_config("production", logger=mock_logger)
    assert config.max_output_length == 77
