import json
import math

import numpy as np
import pytest
from pydantic import ValidationError

from grokgram.core.ngram import NgramTable
from grokgram.errors import InvalidInput, InvalidLearningRate
from grokgram.models.prob.ngram import (
    MACHINE_EPSILON,
    AttentionResult,
    EvaluationSample,
    NgramConfig,
    NgramLanguageModel,
    bleu_precision,
)
from grokgram.utils.file import Persistence
from grokgram.utils.logging import NullLogger

EVALUATION_DATA = [
    {"input": "hello world", "reference": "hello world how"},
    {"input": "world how", "reference": "world how are"},
]


class InMemoryPersistence(Persistence):
    def __init__(self):
        self.files = {}

    def save(self, path, state):
        self.files[str(path)] = json.loads(json.dumps(state))

    def load(self, path):
        return self.files[str(path)]


class RecordingLogger(NullLogger):
    def __init__(self):
        super().__init__()
        self.records = []

    def info(self, msg: str):
        self.records.append(("INFO", msg))

    def warning(self, msg: str):
        self.records.append(("WARNING", msg))


class TestConstruction:
    def test_defaults(self, null_logger):
        model = NgramLanguageModel(logger=null_logger)
        assert model.max_n == 5
        assert model.get_vocabulary() == set()
        assert model.context == {}

    def test_max_n_comes_from_given_table(self, null_logger):
        model = NgramLanguageModel(NgramTable(3, logger=null_logger), logger=null_logger)
        assert model.max_n == 3
        assert model.get_config().max_n == 3

    @pytest.mark.parametrize("max_n, expected", [(0, 1), (2, 2), (9, 5)])
    def test_max_n_is_clamped(self, null_logger, max_n, expected):
        model = NgramLanguageModel(max_n=max_n, logger=null_logger)
        assert model.max_n == expected
        assert NgramConfig(max_n=max_n).max_n == expected

    def test_invalid_embedding_dims(self, null_logger):
        with pytest.raises(ValidationError):
            NgramLanguageModel(embedding_dims=0, logger=null_logger)

    def test_hyperparameters_table(self, model):
        table = model.get_hyperparameters_table()
        assert "max_n: 3" in table
        assert "seed: 1234" in table


class TestTraining:
    def test_train_builds_vocabulary(self, model):
        model.train("hello world")
        assert model.get_vocabulary() == {"hello", "world"}
        assert model.get_vocabulary_size() == 2

    def test_train_normalizes_tokens(self, model):
        model.train("Hello, WORLD!")
        assert model.get_vocabulary() == {"hello", "world"}
        assert model.ngram.counter("hello world", 2).to_dict() == {"": 1}

    @pytest.mark.parametrize("value", [None, 42, ["hello", "world"], b"hello"])
    def test_train_rejects_non_string(self, model, value):
        with pytest.raises(InvalidInput):
            model.train(value)

    def test_invalid_input_is_type_error(self, model):
        with pytest.raises(TypeError):
            model.train(3.14)

    def test_update_model_trains(self, model):
        model.update_model("new text")
        assert model.get_vocabulary() == {"new", "text"}

    def test_fit_corpus(self, model):
        model.fit(["hello world", "world peace"], progress=False)
        assert model.get_vocabulary_size() == 3
        assert model.predict("world", 2) == ["", "peace"]

    def test_tokenize_and_detokenize(self, model):
        assert model.tokenize("Hello, world!") == ["hello", "world"]
        assert model.detokenize(["hello", "world"]) == "hello world"


class TestPrediction:
    def test_predict_ranks_by_frequency_then_first_seen(self, trained_model):
        assert trained_model.predict("hello world", 2) == ["how", "again"]
        assert trained_model.predict("hello world") == ["how"]

    def test_predict_unknown_prefix(self, trained_model):
        assert trained_model.predict("completely unseen") == []

    @pytest.mark.parametrize("value", [None, 1, ["hello"]])
    def test_predict_rejects_non_string(self, trained_model, value):
        with pytest.raises(InvalidInput):
            trained_model.predict(value)

    def test_generate_text_stops_at_end_of_sequence(self, model):
        model.train("hello world how are you")
        assert model.generate_text("hello", 5) == "hello world how are you"
        assert model.generate_text("hello", 10) == "hello world how are you"

    def test_generate_text_respects_length(self, model):
        model.train("hello world how are you")
        assert model.generate_text("hello", 2) == "hello world how"
        assert model.generate_text("hello", 0) == "hello"

    def test_generate_text_keeps_start_verbatim(self, model):
        model.train("hello world how are you")
        assert model.generate_text("Hello", 1) == "Hello world"

    def test_generate_text_unknown_start(self, trained_model):
        assert trained_model.generate_text("zzz") == "zzz"

    def test_generate_text_rejects_non_string(self, trained_model):
        with pytest.raises(InvalidInput):
            trained_model.generate_text(None)

    def test_generate_text_negative_length_appends_nothing(self, trained_model):
        assert trained_model.generate_text("hello", -1) == "hello"

    def test_generate_sequence_delegates(self, model):
        model.train("hello world how are you")
        assert model.generate_sequence("hello", max_length=1) == "hello world"

    def test_explain_prediction(self, trained_model):
        assert trained_model.explain_prediction("hello world") == (
            'For the prefix "hello world", the model predicted "how, again" '
            "based on n-gram frequencies in the trained data."
        )


class TestContext:
    def test_set_context_merges(self, model):
        model.set_context({"topic": "science", "lang": "en"})
        model.set_context({"topic": "greeting"})
        assert model.context == {"topic": "greeting", "lang": "en"}

    def test_context_does_not_change_predictions(self, trained_model):
        before = trained_model.predict("hello world", 2)
        trained_model.set_context({"topic": "anything"})
        assert trained_model.predict("hello world", 2) == before


class TestProbability:
    def test_relative_frequency(self, trained_model):
        assert trained_model.get_probability("world", "hello") == 1.0
        assert trained_model.get_probability("how", "hello world") == 0.5
        assert trained_model.get_probability("again", "hello world") == 0.5
        assert trained_model.get_probability("you", "hello world") == 0.0

    def test_empty_context(self, trained_model):
        assert trained_model.get_probability("hello", "") == 0.0

    def test_context_longer_than_max_n(self, trained_model):
        assert trained_model.get_probability("you", "hello world how are") == 0.0

    def test_raw_context_is_used_as_key(self, trained_model):
        # Level is picked from the tokens, but the key is the raw string
        assert trained_model.get_probability("how", "Hello World") == 0.0
        assert trained_model.get_probability("how", "hello  world") == 0.0

    def test_perplexity(self, null_logger):
        model = NgramLanguageModel(max_n=2, logger=null_logger)
        model.train("a b")
        # first token has an empty context, p(b | a) = 1
        assert model.perplexity("a b") == pytest.approx(MACHINE_EPSILON**-0.5)

    def test_perplexity_of_unseen_text(self, trained_model):
        assert trained_model.perplexity("zzz yyy") == pytest.approx(1 / MACHINE_EPSILON)

    def test_perplexity_empty_text_is_nan(self, trained_model):
        assert math.isnan(trained_model.perplexity(""))
        assert math.isnan(trained_model.perplexity("?!"))


class TestEvaluation:
    def test_empty_dataset(self, trained_model):
        result = trained_model.evaluate([])
        assert math.isnan(result.average_perplexity)
        assert math.isnan(result.average_bleu_score)
        assert math.isnan(result.accuracy)
        assert result.f1_score == 0

    def test_metrics(self, trained_model):
        result = trained_model.evaluate(EVALUATION_DATA)

        expected_perplexity = (
            MACHINE_EPSILON**-0.5 + (MACHINE_EPSILON * 0.5) ** -0.5
        ) / 2
        assert result.average_perplexity == pytest.approx(expected_perplexity)
        assert result.average_bleu_score == 1.0
        assert result.accuracy == 0.0
        assert result.f1_score == 0.0

    def test_accuracy_hit(self, trained_model):
        result = trained_model.evaluate(
            [EvaluationSample(input="hello world how", reference="world how")]
        )
        assert result.accuracy == 1.0

    def test_f1_for_target_word(self, trained_model):
        data = [
            {"input": "hello world", "reference": "hello there"},  # true positive
            {"input": "hello you", "reference": "bye"},  # false positive
            {"input": "bye", "reference": "hello"},  # false negative
            {"input": "a", "reference": "b"},
        ]
        result = trained_model.evaluate(data, target_word="hello")
        assert result.f1_score == pytest.approx(0.5)

    def test_default_target_word_never_matches_lowercased_tokens(self, trained_model):
        result = trained_model.evaluate(
            [{"input": "targetWord here", "reference": "targetWord there"}]
        )
        assert result.f1_score == 0.0

    def test_rejects_malformed_samples(self, trained_model):
        with pytest.raises(ValidationError):
            trained_model.evaluate([{"input": "hello"}])

    @pytest.mark.parametrize(
        "candidate, reference, expected",
        [
            (["a", "b"], ["a", "b"], 1.0),
            (["a", "a"], ["a"], 0.5),
            (["a", "b", "c", "d"], ["a", "c"], 0.5),
            (["a"], [], 0.0),
        ],
    )
    def test_bleu_precision(self, candidate, reference, expected):
        assert bleu_precision(candidate, reference) == pytest.approx(expected)

    def test_bleu_precision_empty_candidate(self):
        assert math.isnan(bleu_precision([], ["a"]))


class TestFineTune:
    @pytest.mark.parametrize("rate", [0, -0.1, 1.5, float("nan"), "0.5", None, True])
    def test_invalid_learning_rate(self, trained_model, rate):
        with pytest.raises(InvalidLearningRate):
            trained_model.fine_tune("hello world", rate)

    def test_increments_small_counts(self, model):
        model.train("hello world")
        model.fine_tune("hello world", 0.5)
        assert model.ngram.counter("hello", 1).get("world") == pytest.approx(1.5)
        assert model.ngram.counter("world", 1).get("") == pytest.approx(1.5)
        assert model.ngram.counter("hello world", 2).get("") == pytest.approx(1.5)

    def test_upper_bound_of_learning_rate(self, model):
        model.train("hello world")
        model.fine_tune("hello world", 1)
        assert model.ngram.counter("hello", 1).get("world") == pytest.approx(2)

    def test_decrements_counts_above_max_n(self, model):
        for _ in range(5):
            model.train("a b")
        model.fine_tune("a b", 0.5)
        assert model.ngram.counter("a", 1).get("b") == pytest.approx(4.5)

    def test_floor_after_decrement(self, null_logger):
        model = NgramLanguageModel(max_n=1, logger=null_logger)
        model.train("a b")
        model.fine_tune("a b", 0.05)
        assert model.ngram.counter("a", 1).get("b") == pytest.approx(1.05)

        model.fine_tune("a b", 1.0)
        assert model.ngram.counter("a", 1).get("b") == pytest.approx(0.1)

    def test_creates_unseen_contexts(self, model):
        model.fine_tune("new words", 0.3)
        assert model.ngram.counter("new", 1).to_dict() == {"words": 0.3}
        assert model.ngram.counter("new words", 2).to_dict() == {"": 0.3}
        assert model.get_vocabulary_size() == 0

    def test_new_next_token_in_known_context(self, model):
        model.train("hello world")
        model.fine_tune("hello there", 0.05)
        # 0 + 0.05 is raised to the 0.1 floor
        assert model.ngram.counter("hello", 1).get("there") == pytest.approx(0.1)
        assert model.predict("hello", 2) == ["world", "there"]


class TestEmbeddings:
    def test_unknown_word_is_uniform_and_not_normalized(self, trained_model):
        embedding = trained_model.get_embeddings("unknown", 50)
        assert embedding.shape == (50,)
        assert np.all(embedding >= 0) and np.all(embedding < 1)
        assert np.linalg.norm(embedding) != pytest.approx(1.0)

    def test_known_word_has_unit_norm(self, trained_model):
        for word in trained_model.get_vocabulary():
            embedding = trained_model.get_embeddings(word)
            assert embedding.shape == (10,)
            assert np.linalg.norm(embedding) == pytest.approx(1.0)

    def test_positions(self, null_logger):
        model = NgramLanguageModel(max_n=2, logger=null_logger)
        model.train("a b")
        # "a" (level 1, index 0) -> 0, "a b" (level 2, index 0) -> 3
        expected = np.zeros(10)
        expected[[0, 3]] = 1 / math.sqrt(2)
        np.testing.assert_allclose(model.get_embeddings("a"), expected)

    def test_positions_wrap_around(self, null_logger):
        model = NgramLanguageModel(max_n=2, logger=null_logger)
        model.train("a b")
        # "b" (level 1) -> 0, "a b" (level 2, index 1) -> 4 % 3 = 1
        np.testing.assert_allclose(
            model.get_embeddings("b", 3), [1 / math.sqrt(2), 1 / math.sqrt(2), 0]
        )

    def test_known_word_without_contexts_gets_random_unit_vector(self, model):
        model.vocabulary.add("ghost")
        embedding = model.get_embeddings("ghost", 8)
        assert np.linalg.norm(embedding) == pytest.approx(1.0)
        assert np.all(embedding >= -1) and np.all(embedding <= 1)

    def test_seed_makes_random_vectors_reproducible(self, null_logger):
        first = NgramLanguageModel(seed=7, logger=null_logger).get_embeddings("x")
        second = NgramLanguageModel(seed=7, logger=null_logger).get_embeddings("x")
        np.testing.assert_array_equal(first, second)

    def test_invalid_dims(self, trained_model):
        with pytest.raises(ValueError):
            trained_model.get_embeddings("hello", 0)


class TestAttention:
    def test_empty_input(self, trained_model):
        result = trained_model.attention_weights("")
        assert result == AttentionResult(input="", weights=[])

    def test_single_token(self, trained_model):
        assert trained_model.attention_weights("hello").weights == [1.0]

    def test_weights_follow_context_totals(self, trained_model):
        result = trained_model.attention_weights("hello world")
        assert result.input == "hello world"
        # "hello" -> 2, "world" + "hello world" -> 2 + 2
        assert result.weights == pytest.approx([1 / 3, 2 / 3])

    def test_unseen_tokens_are_uniform(self, model):
        assert model.attention_weights("a b c").weights == pytest.approx([1 / 3] * 3)

    @pytest.mark.parametrize(
        "text",
        ["hello world how are you", "how are you again hello", "zzz hello world"],
    )
    def test_weights_sum_to_one(self, trained_model, text):
        assert sum(trained_model.attention_weights(text).weights) == pytest.approx(1.0)


class TestPersistence:
    def test_save_and_load_round_trip(self, trained_model, null_logger, tmp_path):
        trained_model.set_context({"topic": "greeting"})
        path = tmp_path / "model.json"
        trained_model.save_model(path)

        restored = NgramLanguageModel(max_n=5, logger=null_logger)
        restored.load_model(path)

        assert restored.max_n == 3
        assert restored.get_vocabulary() == trained_model.get_vocabulary()
        assert restored.context == {"topic": "greeting"}
        for prefix in ["hello", "hello world", "how are", "world again"]:
            assert restored.predict(prefix, 5) == trained_model.predict(prefix, 5)

    def test_snapshot_layout(self, trained_model, tmp_path):
        path = tmp_path / "model.json"
        trained_model.save_model(path)

        with open(path, encoding="utf-8") as f:
            state = json.load(f)
        assert set(state) == {"ngramTable", "maxN", "vocabulary", "context"}
        assert state["maxN"] == 3
        assert len(state["ngramTable"]["levels"]) == 3
        assert state["ngramTable"]["levels"][0]["hello"] == {"world": 2}
        assert sorted(state["vocabulary"]) == state["vocabulary"]

    def test_fractional_counts_survive(self, trained_model, null_logger, tmp_path):
        trained_model.fine_tune("hello world", 0.25)
        path = tmp_path / "tuned.json"
        trained_model.save_model(path)

        restored = NgramLanguageModel(logger=null_logger)
        restored.load_model(path)
        assert restored.ngram.counter("hello", 1).get("world") == pytest.approx(2.25)

    def test_custom_persistence(self, trained_model, null_logger):
        storage = InMemoryPersistence()
        trained_model.persistence = storage
        trained_model.save_model("memory://model")

        restored = NgramLanguageModel(logger=null_logger, persistence=storage)
        restored.load_model("memory://model")
        assert restored.get_vocabulary_size() == trained_model.get_vocabulary_size()

    def test_load_missing_file(self, model, tmp_path):
        with pytest.raises(FileNotFoundError):
            model.load_model(tmp_path / "missing.json")

    def test_clear_model(self, trained_model):
        trained_model.set_context({"topic": "greeting"})
        trained_model.clear_model()

        assert trained_model.get_vocabulary_size() == 0
        assert trained_model.context == {}
        assert trained_model.max_n == 3
        assert trained_model.ngram.num_contexts() == 0
        assert trained_model.predict("hello world") == []

    def test_zero_counts_in_snapshot_are_skipped(self, null_logger, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(
            json.dumps(
                {
                    "ngramTable": {"levels": [{"hello": {"world": 1, "ghost": 0}}]},
                    "maxN": 1,
                    "vocabulary": ["hello", "world"],
                    "context": {},
                }
            ),
            encoding="utf-8",
        )

        model = NgramLanguageModel(logger=null_logger)
        model.load_model(path)
        assert model.predict("hello", 5) == ["world"]
        assert model.get_probability("world", "hello") == 1.0


class TestLogging:
    def test_clamping_warns_through_given_logger(self):
        logger = RecordingLogger()
        NgramLanguageModel(max_n=9, logger=logger)
        assert ("WARNING", "max_n=9 is out of [1, 5], using 5") in logger.records

    def test_persistence_logs_through_given_logger(self, tmp_path):
        logger = RecordingLogger()
        model = NgramLanguageModel(max_n=2, logger=logger)
        path = tmp_path / "model.json"

        model.save_model(path)
        model.load_model(path)

        messages = [msg for level, msg in logger.records if level == "INFO"]
        assert f"Model state saved to {path}" in messages
        assert f"Model state loaded from {path}" in messages
