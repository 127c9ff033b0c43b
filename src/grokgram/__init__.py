from grokgram.core import Counter, LanguageRules, NgramTable, RuleTokenizer
from grokgram.errors import (
    GrokgramError,
    InvalidAmount,
    InvalidInput,
    InvalidLearningRate,
)
from grokgram.models.prob.ngram import (
    AttentionResult,
    EvaluationResult,
    EvaluationSample,
    NgramConfig,
    NgramLanguageModel,
)

__version__ = "0.1.0"

__all__ = [
    "AttentionResult",
    "Counter",
    "EvaluationResult",
    "EvaluationSample",
    "GrokgramError",
    "InvalidAmount",
    "InvalidInput",
    "InvalidLearningRate",
    "LanguageRules",
    "NgramConfig",
    "NgramLanguageModel",
    "NgramTable",
    "RuleTokenizer",
]
