from grokgram.core.counter import Counter
from grokgram.core.ngram import NgramTable, simple_tokenize
from grokgram.core.tokenizer import LanguageRules, RuleTokenizer

__all__ = ["Counter", "LanguageRules", "NgramTable", "RuleTokenizer", "simple_tokenize"]
