from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, Tuple

BOS_TOKEN = "<s>"
EOS_TOKEN = "</s>"

# First matching suffix wins
ENGLISH_CONTRACTIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("n't", ("not",)),
    ("'ve", ("have",)),
    ("'re", ("are",)),
    ("'s", ("is",)),
    ("'d", ("would",)),
    ("'ll", ("will",)),
    ("'m", ("am",)),
)


@dataclass(frozen=True)
class LanguageRules:
    """Tokenization capabilities of one language.

    Attributes:
        tag: ISO 639-3 language tag, e.g. ``"eng"``.
        token_pattern: Compiled regex, every match is one raw token.
        contraction_map: ``(suffix, expansion)`` pairs tried in order, the
            first suffix a token ends with is replaced by its expansion.
    """

    tag: str
    token_pattern: Pattern[str]
    contraction_map: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()


ENGLISH_RULES = LanguageRules(
    tag="eng",
    token_pattern=re.compile(
        r"\d{1,4}[-/]\d{1,2}[-/]\d{1,4}"  # dates: 2024-01-31, 31/01/2024
        r"|\d+(?:\.\d+)?(?!\w)"  # integers and decimals
        r"|\w+(?:['’]\w+)*"  # words, contractions included
        r"|[.,!?;:$]"
        r"|\S+"
    ),
    contraction_map=ENGLISH_CONTRACTIONS,
)

GERMAN_RULES = LanguageRules(
    tag="deu",
    # Hyphenated compounds stay whole: "Test-satz"
    token_pattern=re.compile(r"\w+(?:-\w+)*|[.,!?;:]|\S+"),
)

JAPANESE_RULES = LanguageRules(
    tag="jpn",
    # Hiragana, Katakana and Han runs, then any other non-space run
    token_pattern=re.compile(
        r"[\u3040-\u309f]+"
        r"|[\u30a0-\u30ff]+"
        r"|[\u4e00-\u9fff]+"
        r"|[^\s\u3040-\u30ff\u4e00-\u9fff]+"
    ),
)

DEFAULT_LANGUAGE = ENGLISH_RULES.tag

LANGUAGE_RULES: Dict[str, LanguageRules] = {
    rules.tag: rules for rules in (ENGLISH_RULES, GERMAN_RULES, JAPANESE_RULES)
}


def register_language(rules: LanguageRules) -> None:
    LANGUAGE_RULES[rules.tag] = rules


def get_language_rules(tag: str) -> LanguageRules:
    """Unknown tags fall back to the English rules."""
    return LANGUAGE_RULES.get(tag, LANGUAGE_RULES[DEFAULT_LANGUAGE])


@dataclass
class TokenizerConfig:
    lowercase: bool = True
    preserve_case: bool = False
    handle_contractions: bool = True
    keep_punctuation: bool = False
    add_special_tokens: bool = False
    detect_language: bool = False  # only when no language is passed to tokenize
    special_tokens: List[str] = field(default_factory=lambda: [BOS_TOKEN, EOS_TOKEN])
