from unittest.mock import MagicMock

import pandas as pd
import pytest

from tweet_markov.models.markov_chain.config import GeneratorConfig
from tweet_markov.models.markov_chain.errors import EmptyCorpusError
from tweet_markov.models.markov_chain.train_and_generate import TweetChainTrainer, main
from tweet_markov.models.markov_chain.transition_table import TransitionTable

TWEETS = [
    "Coffee first. Then the world!",
    "The world can wait, coffee cannot.",
    "First coffee then code",
    "Code all day. Coffee all night!",
]


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    return MagicMock()


@pytest.fixture
def tweets_txt(tmp_path):
    path = tmp_path / "tweets.txt"
    path.write_text("\n".join(TWEETS) + "\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def trainer_factory(mock_logger, mocker):
    mocker.patch("tweet_markov.models.markov_chain.train_and_generate.ResourceMonitor")

    def factory(paths, **config):
        return TweetChainTrainer(GeneratorConfig(**config), paths,
                                 environment="test", logger=mock_logger)
    return factory


def test_requires_dataset_paths(mock_logger):
    with pytest.raises(ValueError):
        TweetChainTrainer(GeneratorConfig(), [], logger=mock_logger)


def test_load_txt_dataset(trainer_factory, tweets_txt):
    trainer = trainer_factory([tweets_txt])
    assert trainer._load_dataset(tweets_txt) == TWEETS


def test_load_csv_dataset_picks_text_column(trainer_factory, mocker, tmp_path):
    csv_path = tmp_path / "tweets.csv"
    csv_path.write_text("placeholder")
    mocker.patch("pandas.read_csv", return_value=pd.DataFrame({
        "id": [1, 2],
        "tweet_text": ["hello world", "goodbye world"],
    }))

    trainer = trainer_factory([str(csv_path)])
    assert trainer._load_dataset(str(csv_path)) == ["hello world", "goodbye world"]


def test_load_csv_dataset_falls_back_to_first_column(trainer_factory, mocker, tmp_path):
    csv_path = tmp_path / "tweets.csv"
    csv_path.write_text("placeholder")
    mocker.patch("pandas.read_csv", return_value=pd.DataFrame({
        "body": ["hello world"],
        "likes": [3],
    }))

    trainer = trainer_factory([str(csv_path)])
    assert trainer._load_dataset(str(csv_path)) == ["hello world"]


def test_missing_dataset_raises(trainer_factory, tmp_path):
    trainer = trainer_factory([str(tmp_path / "missing.txt")])
    with pytest.raises(FileNotFoundError):
        trainer._load_dataset(str(tmp_path / "missing.txt"))


def test_unsupported_dataset_raises(trainer_factory, tmp_path):
    path = tmp_path / "tweets.json"
    path.write_text("[]")
    trainer = trainer_factory([str(path)])
    with pytest.raises(ValueError, match="Unsupported dataset format"):
        trainer._load_dataset(str(path))


@pytest.mark.parametrize("order", [1, 2])
def test_train_model_builds_table(trainer_factory, tweets_txt, order):
    table = trainer_factory([tweets_txt], order=order).train_model()

    assert table.order == order
    if order == 1:
        assert dict(table.successors("coffee"))["first"] == 1
    else:
        assert ("coffee", "first") in table


def test_train_model_on_empty_dataset_raises(trainer_factory, tmp_path, mock_logger):
    path = tmp_path / "empty.txt"
    path.write_text("")
    with pytest.raises(EmptyCorpusError):
        trainer_factory([str(path)]).train_model()

    messages = [call.args[0] for call in mock_logger.error.call_args_list]
    assert "Transition table build failed" in messages


def test_run_pipeline_exports_and_generates(trainer_factory, tweets_txt, tmp_path):
    export_path = str(tmp_path / "out" / "table.json")
    trainer = trainer_factory([tweets_txt], order=2, random_seed=3, max_output_length=20)

    table, texts = trainer.run_pipeline(count=3, export_path=export_path)

    trainer.resource_monitor.describe_system.assert_called_once_with()
    assert TransitionTable.load(export_path) == table
    assert len(texts) == 3
    for text in texts:
        assert text.endswith(".")


def test_generation_is_reproducible(trainer_factory, tweets_txt):
    first = trainer_factory([tweets_txt], random_seed=10).run_pipeline(count=2)[1]
    second = trainer_factory([tweets_txt], random_seed=10).run_pipeline(count=2)[1]
    assert first == second


def test_main_cli(tweets_txt, tmp_path, mocker, capsys):
    mocker.patch("tweet_markov.models.markov_chain.train_and_generate.ResourceMonitor")
    mocker.patch("tweet_markov.models.markov_chain.train_and_generate.get_logger",
                 return_value=MagicMock())
    export_path = str(tmp_path / "table.json")

    texts = main(["--datasets", tweets_txt, "--order", "1", "--mode", "uniform",
                  "--seed", "4", "--count", "2", "--max-length", "30",
                  "--export", export_path, "--config-dir", str(tmp_path)])

    assert len(texts) == 2
    assert TransitionTable.load(export_path).order == 1
    printed = capsys.readouterr().out.splitlines()
    assert printed[-2:] == texts
