import pytest

from grokgram.models.prob.ngram import NgramLanguageModel
from grokgram.utils.logging import NullLogger

TRAINING_TEXT = "hello world how are you hello world again"


@pytest.fixture
def null_logger():
    return NullLogger()


@pytest.fixture
def model(null_logger):
    return NgramLanguageModel(max_n=3, seed=1234, logger=null_logger)


@pytest.fixture
def trained_model(model):
    model.train(TRAINING_TEXT)
    return model
