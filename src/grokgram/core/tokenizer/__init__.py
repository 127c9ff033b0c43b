from __future__ import annotations

import unicodedata
from typing import List, Optional, Sequence

from grokgram.core.tokenizer.config import (
    DEFAULT_LANGUAGE,
    LanguageRules,
    TokenizerConfig,
    get_language_rules,
    register_language,
)
from grokgram.core.tokenizer.detect import detect_language
from grokgram.core.tokenizer.normalizer import (
    LowercaseNormalizer,
    NewlineNormalizer,
    NFCNormalizer,
    Normalizer,
    SequenceNormalizer,
    StripNormalizer,
)
from grokgram.core.tokenizer.pre_tokenizer import RegexPreTokenizer
from grokgram.errors import InvalidInput
from grokgram.utils.logging import DEFAULT_LOGGER, Logger


class RuleTokenizer:
    """Language-aware tokenizer driven by per-language :class:`LanguageRules`.

    Text goes through three steps: normalization (strip, NFC, newline to
    space, lowercase unless case is preserved), regex pre-tokenization with
    the pattern of the requested language, then post-processing (contraction
    expansion, punctuation policy, sentence markers).

    The language is the one passed to :meth:`tokenize`, else the detected one
    when ``config.detect_language`` is set, else the instance default.

    Example:
        >>> tokenizer = RuleTokenizer()
        >>> tokenizer.tokenize("It's a nice day, isn't it?")
        ['it', 'is', 'a', 'nice', 'day', 'is', 'not', 'it']
    """

    def __init__(
        self,
        config: Optional[TokenizerConfig] = None,
        language: str = DEFAULT_LANGUAGE,
        logger: Optional[Logger] = None,
    ):
        self.config = config if config is not None else TokenizerConfig()
        self.language = language
        self.logger = logger if logger is not None else DEFAULT_LOGGER

        normalizers: List[Normalizer] = [
            StripNormalizer(),
            NFCNormalizer(),
            NewlineNormalizer(),
        ]
        if self.config.lowercase and not self.config.preserve_case:
            normalizers.append(LowercaseNormalizer())
        self.normalizer = SequenceNormalizer(normalizers)

    def tokenize(self, text: str, language: Optional[str] = None) -> List[str]:
        if not isinstance(text, str):
            raise InvalidInput(f"Input must be a string, got {type(text).__name__}")

        normalized = self.normalizer.normalize(text)
        rules = get_language_rules(language or self._pick_language(normalized))
        tokens = RegexPreTokenizer(rules.token_pattern).pre_tokenize(normalized)

        if self.config.handle_contractions:
            tokens = self._expand_contractions(tokens, rules)

        if not self.config.keep_punctuation:
            tokens = [token for token in tokens if not _is_punctuation(token)]

        if self.config.add_special_tokens:
            bos, eos = self.config.special_tokens
            tokens = [bos] + tokens + [eos]

        self.logger.debug(f"Tokenized ({rules.tag}): {tokens}")
        return tokens

    def detokenize(self, tokens: Sequence[str]) -> str:
        if self.config.add_special_tokens:
            special = set(self.config.special_tokens)
            tokens = [token for token in tokens if token not in special]
        return " ".join(tokens)

    def __call__(self, text: str, language: Optional[str] = None) -> List[str]:
        return self.tokenize(text, language)

    def _pick_language(self, text: str) -> str:
        if self.config.detect_language:
            detected = detect_language(text)
            if detected is not None:
                return detected
            self.logger.debug(f"No supported language detected, using '{self.language}'")
        return self.language

    @staticmethod
    def _expand_contractions(tokens: List[str], rules: LanguageRules) -> List[str]:
        if not rules.contraction_map:
            return tokens

        expanded = []
        for token in tokens:
            plain = token.replace("’", "'")
            for suffix, expansion in rules.contraction_map:
                if plain.endswith(suffix) and len(plain) > len(suffix):
                    expanded.append(plain[: -len(suffix)])
                    expanded.extend(expansion)
                    break
            else:
                expanded.append(token)
        return expanded


def _is_punctuation(token: str) -> bool:
    return all(unicodedata.category(char)[0] in "PS" for char in token)


__all__ = [
    "LanguageRules",
    "RuleTokenizer",
    "TokenizerConfig",
    "detect_language",
    "get_language_rules",
    "register_language",
]
