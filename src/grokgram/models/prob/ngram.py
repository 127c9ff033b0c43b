import math
import numbers
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from grokgram.core.counter import Counter
from grokgram.core.ngram import (
    END_OF_SEQUENCE,
    MAX_NGRAM_SIZE,
    NgramTable,
    clamp_max_n,
    simple_tokenize,
)
from grokgram.errors import InvalidInput, InvalidLearningRate
from grokgram.models import GenerateConfig, ModelConfig
from grokgram.models.prob import ProbLanguageModel
from grokgram.utils import progress_bar
from grokgram.utils.file import JsonPersistence, Persistence
from grokgram.utils.logging import DEFAULT_LOGGER, Logger

MACHINE_EPSILON = float(np.finfo(float).eps)

# Counts above max_n shrink during fine-tuning, the rest grow
FINE_TUNE_FLOOR = 0.1
DEFAULT_ATTENTION_WEIGHT = 0.1
TARGET_WORD = "targetWord"
EXPLAIN_TOP_K = 3


class NgramConfig(ModelConfig):
    max_n: int = MAX_NGRAM_SIZE
    embedding_dims: int = Field(default=10, ge=1)
    seed: Optional[int] = None  # for the random embedding fallback

    @field_validator("max_n")
    @classmethod
    def clamp_n(cls, value: int, info: ValidationInfo) -> int:
        clamped = clamp_max_n(value)
        if clamped != value:
            logger = (info.context or {}).get("logger", DEFAULT_LOGGER)
            logger.warning(f"max_n={value} is out of [1, {MAX_NGRAM_SIZE}], using {clamped}")
        return clamped


class EvaluationSample(BaseModel):
    input: str
    reference: str


class EvaluationResult(BaseModel):
    """Dataset-level metrics returned by :meth:`NgramLanguageModel.evaluate`.

    Averages over an empty dataset are NaN, ``f1_score`` is 0 whenever
    precision or recall is undefined.
    """

    average_perplexity: float
    average_bleu_score: float
    accuracy: float
    f1_score: float


class AttentionResult(BaseModel):
    input: str
    weights: List[float]


class NgramTableState(BaseModel):
    levels: List[Dict[str, Dict[str, float]]] = Field(default_factory=list)


class ModelSnapshot(BaseModel):
    """Serialized form of a model, keys follow the on-disk camelCase layout."""

    model_config = ConfigDict(populate_by_name=True)

    ngram_table: NgramTableState = Field(alias="ngramTable")
    max_n: int = Field(alias="maxN")
    vocabulary: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)


def _safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else float("nan")


def bleu_precision(candidate: Sequence[str], reference: Sequence[str]) -> float:
    """Unigram (BLEU-1) precision of ``candidate`` clipped by ``reference`` counts.

    NaN for an empty candidate.
    """
    reference_counts = Counter(reference)
    clipped = sum(
        min(count, reference_counts.get(token))
        for token, count in Counter(candidate).items()
    )
    return _safe_div(clipped, len(candidate))


class NgramLanguageModel(ProbLanguageModel):
    """Language model backed by a multi-level :class:`NgramTable`.

    Predictions use strict backoff from the longest observed context. On top
    of counting, the model offers evaluation metrics, an online fine-tuning
    rule and frequency-based stand-ins for embeddings and attention.

    Tokenization is always :func:`simple_tokenize`.

    Args:
        ngram: Table to train into. A new one with ``max_n`` levels is created
            when omitted, otherwise ``max_n`` is taken from the table.
        max_n: Longest context length, clamped into ``[1, 5]``.
        embedding_dims: Default size of :meth:`get_embeddings` vectors.
        seed: Seed of the generator used by the random embedding fallbacks.
        logger: Diagnostics sink, ``DEFAULT_LOGGER`` when omitted.
        persistence: Storage used by :meth:`save_model` / :meth:`load_model`.

    Example:
        >>> model = NgramLanguageModel(max_n=3)
        >>> model.train("hello world how are you hello world again")
        >>> model.predict("hello world", 2)
        ['how', 'again']
    """

    ConfigClass = NgramConfig

    def __init__(
        self,
        ngram: Optional[NgramTable] = None,
        max_n: int = MAX_NGRAM_SIZE,
        embedding_dims: int = 10,
        seed: Optional[int] = None,
        logger: Optional[Logger] = None,
        persistence: Optional[Persistence] = None,
    ):
        logger = logger if logger is not None else DEFAULT_LOGGER
        model_config = NgramConfig.model_validate(
            {
                "max_n": ngram.max_n if ngram is not None else max_n,
                "embedding_dims": embedding_dims,
                "seed": seed,
            },
            context={"logger": logger},
        )
        super().__init__(model_config=model_config, logger=logger)
        self.config: NgramConfig

        self.ngram = ngram if ngram is not None else NgramTable(self.config.max_n, logger=self.logger)
        self.vocabulary: Set[str] = set()
        self.context: Dict[str, Any] = dict()
        self.persistence = persistence if persistence is not None else JsonPersistence(logger=self.logger)
        self._rng = np.random.default_rng(self.config.seed)

    @property
    def max_n(self) -> int:
        return self.ngram.max_n

    def _check_text(self, value: Any, name: str) -> None:
        self.logger.check_and_raise(
            f"{name} must be a string, got {type(value).__name__}",
            InvalidInput,
            isinstance(value, str),
        )

    def tokenize(self, text: str) -> List[str]:
        return simple_tokenize(text)

    def detokenize(self, tokens: Iterable[str]) -> str:
        return " ".join(tokens)

    # Training

    def train(self, text: str) -> None:
        self._check_text(text, "text")
        tokens = self.tokenize(text)
        self.ngram.learn(self.detokenize(tokens))
        self.vocabulary.update(tokens)
        self._is_trained_or_fitted = True

    def update_model(self, new_text: str) -> None:
        """Incrementally trains on ``new_text``, same as :meth:`train`."""
        self.train(new_text)

    def fine_tune(self, text: str, learning_rate: float) -> None:
        """Nudges existing counts of ``text``'s n-grams towards ``max_n``.

        For every (context, next token) pair of ``text``: counts above
        ``max_n`` are decreased by ``learning_rate``, others increased, and
        the result is floored at 0.1. Unseen contexts are created with
        ``learning_rate`` as their count. The vocabulary is left untouched.

        Raises:
            InvalidLearningRate: If ``learning_rate`` is not in ``(0, 1]``.
        """
        self.logger.check_and_raise(
            f"Learning rate must be in (0, 1], got {learning_rate!r}",
            InvalidLearningRate,
            not isinstance(learning_rate, bool)
            and isinstance(learning_rate, numbers.Real)
            and 0 < learning_rate <= 1,
        )

        tokens = self.tokenize(text)
        for n in range(1, self.max_n + 1):
            level = self.ngram.levels[n - 1]
            for i in range(len(tokens) - n + 1):
                key = " ".join(tokens[i : i + n])
                next_token = tokens[i + n] if i + n < len(tokens) else END_OF_SEQUENCE

                counter = level.get(key)
                if counter is None:
                    level[key] = Counter()
                    level[key].increment(next_token, learning_rate)
                    continue

                if counter.get(next_token) > self.max_n:
                    counter.decrement(next_token, learning_rate)
                else:
                    counter.increment(next_token, learning_rate)

                adjusted = counter.get(next_token)
                if adjusted < FINE_TUNE_FLOOR:
                    counter.increment(next_token, FINE_TUNE_FLOOR - adjusted)

                self.logger.debug(
                    f"Fine-tuned {n}-gram '{key}' -> '{next_token}': {counter.get(next_token)}"
                )

    # Inference

    def predict(self, prefix: str, count: int = 1) -> List[str]:
        self._check_text(prefix, "prefix")
        return self.ngram.predict_next_word(prefix)[:count]

    def generate_text(self, start: str, length: int = 10) -> str:
        """Greedily appends up to ``length`` tokens to ``start``.

        Generation stops early as soon as nothing is predicted, which includes
        the end-of-sequence sentinel. A negative ``length`` appends nothing.
        """
        self._check_text(start, "start")
        config = GenerateConfig(max_length=max(length, 0))

        generated = start
        current_prefix = start
        for _ in range(config.max_length):
            predictions = self.predict(current_prefix, 1)
            if not predictions or not predictions[0]:
                break
            generated += " " + predictions[0]
            current_prefix = " ".join(generated.split(" ")[-self.max_n :])

        return generated

    def generate_sequence(self, prompt: str, max_length: Optional[int] = 10) -> str:
        if max_length is None:
            return self.generate_text(prompt)
        return self.generate_text(prompt, max_length)

    def explain_prediction(self, prefix: str) -> str:
        predictions = self.predict(prefix, EXPLAIN_TOP_K)
        return (
            f'For the prefix "{prefix}", the model predicted "{", ".join(predictions)}" '
            "based on n-gram frequencies in the trained data."
        )

    def get_probability(self, word: str, context: str) -> float:
        """Relative frequency of ``word`` after ``context``.

        The level is picked from the token count of ``context`` and the raw
        ``context`` string is used as the key, so the lookup only hits when
        ``context`` is already in canonical form (lowercase, single spaces).
        Contexts longer than ``max_n`` tokens, and the empty context, give 0.
        """
        level_index = len(self.tokenize(context)) - 1
        if not 0 <= level_index < self.max_n:
            return 0.0

        counter = self.ngram.levels[level_index].get(context)
        if counter is None:
            return 0.0

        total = counter.total()
        return counter.get(word) / total if total > 0 else 0.0

    # Evaluation

    def perplexity(self, text: str) -> float:
        """``exp`` of the negative mean log-probability of ``text``'s tokens.

        Zero probabilities count as machine epsilon. NaN for empty text.
        """
        tokens = self.tokenize(text)
        if not tokens:
            return float("nan")

        log_prob_sum = 0.0
        for i, token in enumerate(tokens):
            context = " ".join(tokens[max(0, i - self.max_n + 1) : i])
            prob = self.get_probability(token, context)
            log_prob_sum += math.log(prob if prob > 0 else MACHINE_EPSILON)

        return math.exp(-log_prob_sum / len(tokens))

    def evaluate(
        self,
        test_data: Iterable[Union[EvaluationSample, Mapping[str, str]]],
        target_word: str = TARGET_WORD,
        progress: bool = False,
    ) -> EvaluationResult:
        """Scores the model on ``{input, reference}`` pairs.

        Args:
            test_data: Samples, either ``EvaluationSample`` or mappings with
                ``input`` and ``reference`` keys.
            target_word: Token whose presence in input (predicted) and
                reference (actual) drives the F1 counters.
            progress: Show a progress bar.

        Returns:
            Average perplexity of the inputs, average BLEU-1 precision of
            inputs against references, the rate at which the top prediction
            for all but the last input word equals the last reference token,
            and the F1 score for ``target_word``.
        """
        samples = [
            sample if isinstance(sample, EvaluationSample) else EvaluationSample.model_validate(sample)
            for sample in test_data
        ]

        total_perplexity = 0.0
        total_bleu = 0.0
        correct_predictions = 0
        true_positives = false_positives = false_negatives = 0

        for sample in progress_bar(samples, desc="Evaluating", disable=not progress):
            tokens = self.tokenize(sample.input)
            ref_tokens = self.tokenize(sample.reference)

            total_perplexity += self.perplexity(sample.input)
            total_bleu += bleu_precision(tokens, ref_tokens)

            predictions = self.predict(" ".join(sample.input.split(" ")[:-1]), 1)
            prediction = predictions[0] if predictions else None
            expected = ref_tokens[-1] if ref_tokens else None
            if prediction == expected:
                correct_predictions += 1

            actual_class = target_word in ref_tokens
            predicted_class = target_word in tokens
            if actual_class and predicted_class:
                true_positives += 1
            elif predicted_class:
                false_positives += 1
            elif actual_class:
                false_negatives += 1

        precision = _safe_div(true_positives, true_positives + false_positives)
        recall = _safe_div(true_positives, true_positives + false_negatives)
        # NaN compares False, undefined precision or recall gives 0
        f1_score = (
            2 * precision * recall / (precision + recall)
            if precision + recall > 0
            else 0.0
        )

        result = EvaluationResult(
            average_perplexity=_safe_div(total_perplexity, len(samples)),
            average_bleu_score=_safe_div(total_bleu, len(samples)),
            accuracy=_safe_div(correct_predictions, len(samples)),
            f1_score=f1_score,
        )
        self.logger.info(f"Evaluated {len(samples)} samples: {result}")
        return result

    # Introspection

    def get_embeddings(self, word: str, dims: Optional[int] = None) -> np.ndarray:
        """Pseudo-embedding of ``word`` built from the contexts it occurs in.

        Each context containing ``word`` adds its total count to position
        ``((n - 1) * 3 + index % 3) % dims`` where ``n`` is the context length
        and ``index`` the position of ``word`` inside it. The vector is then
        scaled to unit length.

        Unknown words get ``dims`` uniform values in ``[0, 1)`` that are NOT
        normalized. A known word whose vector stays all zero gets a random
        unit vector instead.
        """
        dims = dims if dims is not None else self.config.embedding_dims
        if dims < 1:
            raise ValueError(f"dims must be at least 1, got {dims}")

        if word not in self.vocabulary:
            return self._rng.random(dims)

        embedding = np.zeros(dims, dtype=np.float64)
        for n, level in enumerate(self.ngram.levels, start=1):
            for key, counter in level.items():
                context_tokens = key.split(" ")
                if word in context_tokens:
                    position = ((n - 1) * 3 + context_tokens.index(word) % 3) % dims
                    embedding[position] += counter.total()

        magnitude = np.linalg.norm(embedding)
        if magnitude > 0:
            return embedding / magnitude
        return self._random_unit_vector(dims)

    def _random_unit_vector(self, dims: int) -> np.ndarray:
        vector = self._rng.uniform(-1.0, 1.0, dims)
        return vector / np.linalg.norm(vector)

    def attention_weights(self, text: str) -> AttentionResult:
        """Pseudo-attention: how often the contexts ending at each token were seen.

        Position ``i`` weighs the summed totals of every observed context that
        ends at token ``i`` (lengths 1..max_n), or 0.1 when none was observed.
        Weights are normalized to sum to 1.
        """
        tokens = self.tokenize(text)
        if len(tokens) <= 1:
            return AttentionResult(input=text, weights=[1.0] * len(tokens))

        weights = np.zeros(len(tokens), dtype=np.float64)
        for i in range(len(tokens)):
            total_weight = 0.0
            for n in range(1, min(self.max_n, i + 1) + 1):
                counter = self.ngram.levels[n - 1].get(" ".join(tokens[i - n + 1 : i + 1]))
                if counter is not None:
                    total_weight += counter.total()
            weights[i] = total_weight if total_weight > 0 else DEFAULT_ATTENTION_WEIGHT

        weights /= weights.sum()
        return AttentionResult(input=text, weights=weights.tolist())

    # State

    def set_context(self, partial: Mapping[str, Any]) -> None:
        self.context = {**self.context, **partial}

    def get_vocabulary(self) -> Set[str]:
        return self.vocabulary

    def get_vocabulary_size(self) -> int:
        return len(self.vocabulary)

    def clear_model(self) -> None:
        self.ngram = NgramTable(self.max_n, logger=self.logger)
        self.vocabulary = set()
        self.context = dict()
        self._is_trained_or_fitted = False

    def to_snapshot(self) -> ModelSnapshot:
        return ModelSnapshot(
            ngram_table=NgramTableState.model_validate(self.ngram.to_dict()),
            max_n=self.max_n,
            vocabulary=sorted(self.vocabulary),
            context=self.context,
        )

    def save_model(self, path: Union[Path, str]) -> None:
        self.persistence.save(path, self.to_snapshot().model_dump(by_alias=True))

    def load_model(self, path: Union[Path, str]) -> None:
        """Replaces table, vocabulary and context with the state saved at ``path``."""
        snapshot = ModelSnapshot.model_validate(self.persistence.load(path))

        self.ngram = NgramTable.from_dict(
            snapshot.ngram_table.model_dump(), snapshot.max_n, logger=self.logger
        )
        self.config = self.config.model_copy(update={"max_n": self.ngram.max_n})
        self.vocabulary = set(snapshot.vocabulary)
        self.context = dict(snapshot.context)
        self._is_trained_or_fitted = True

    def summary(self):
        super().summary()
        print(f"  Vocabulary Size: {self.get_vocabulary_size()}")
        print(f"  Contexts: {self.ngram.num_contexts()}")
