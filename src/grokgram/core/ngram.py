import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from grokgram.core.counter import Counter
from grokgram.utils.logging import DEFAULT_LOGGER, Logger

MAX_NGRAM_SIZE = 5

# Anything that is not a word character, whitespace or an apostrophe.
# \w includes "_", which is removed as well.
_STRIP_PATTERN = re.compile(r"[^\w\s']|_")

END_OF_SEQUENCE = ""


def simple_tokenize(text: str) -> List[str]:
    """Lowercases, drops punctuation (apostrophes survive) and splits on whitespace.

    Example:
        >>> simple_tokenize("Hello, world! It's me.")
        ['hello', 'world', "it's", 'me']
    """
    return _STRIP_PATTERN.sub("", text.lower().strip()).split()


def clamp_max_n(max_n: int) -> int:
    return max(1, min(max_n, MAX_NGRAM_SIZE))


class NgramTable:
    """Counts of "next token" outcomes for every context of length 1..max_n.

    ``levels[n - 1]`` maps a context key (``n`` tokens joined by a single
    space) to a :class:`Counter` over the tokens that followed that context.
    The empty string marks the end of a training sequence, so a context that
    ended a sequence is distinguishable from one that was never observed.

    Attributes:
        max_n (int): Largest context length, clamped into ``[1, 5]``.
        levels (List[Dict[str, Counter]]): One mapping per context length.
    """

    def __init__(self, max_n: int = MAX_NGRAM_SIZE, logger: Optional[Logger] = None):
        self.max_n = clamp_max_n(max_n)
        self.levels: List[Dict[str, Counter]] = [dict() for _ in range(self.max_n)]
        self.logger = logger if logger is not None else DEFAULT_LOGGER

        self.logger.debug(f"NgramTable initialized with max_n={self.max_n}")

    def tokenize(self, text: str) -> List[str]:
        tokens = simple_tokenize(text)
        self.logger.debug(f"Tokenized text: {tokens}")
        return tokens

    def level(self, n: int) -> Dict[str, Counter]:
        """Returns the mapping for contexts of length ``n`` (1-based)."""
        if not 1 <= n <= self.max_n:
            raise ValueError(f"n must be between 1 and {self.max_n}, got {n}")
        return self.levels[n - 1]

    def counter(self, key: str, n: int) -> Optional[Counter]:
        return self.level(n).get(key)

    def num_contexts(self) -> int:
        return sum(len(level) for level in self.levels)

    def update_model(self, tokens: Sequence[str]) -> None:
        """Counts every (context, next token) pair of ``tokens`` at every level."""
        self.logger.debug(f"Updating model with tokens: {list(tokens)}")
        for n in range(1, self.max_n + 1):
            level = self.levels[n - 1]
            for i in range(len(tokens) - n + 1):
                key = " ".join(tokens[i : i + n])
                next_token = tokens[i + n] if i + n < len(tokens) else END_OF_SEQUENCE

                if key not in level:
                    level[key] = Counter()
                level[key].increment(next_token)

    def predict_next_word(self, prefix: Union[str, Sequence[str]]) -> List[str]:
        """Predicts next tokens with strict backoff.

        The longest context (at most ``max_n`` trailing tokens of ``prefix``)
        that was observed wins, shorter contexts are only tried on a miss and
        are never blended in.

        Args:
            prefix: Either raw text, tokenized with :meth:`tokenize`, or an
                already tokenized sequence.

        Returns:
            Next tokens sorted by descending frequency, or an empty list when
            no suffix of the prefix was observed.
        """
        tokens = self.tokenize(prefix) if isinstance(prefix, str) else list(prefix)

        for n in range(min(len(tokens), self.max_n), 0, -1):
            key = " ".join(tokens[-n:])
            counter = self.levels[n - 1].get(key)
            if counter is not None:
                predictions = [token for token, _ in counter.most_common()]
                self.logger.debug(f"Found {n}-gram match for '{key}': {predictions}")
                return predictions

        self.logger.debug(f"No n-gram match found for prefix: {tokens}")
        return []

    def learn(self, text: str) -> None:
        self.update_model(self.tokenize(text))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "levels": [
                {key: counter.to_dict() for key, counter in level.items()}
                for level in self.levels
            ]
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        max_n: int,
        logger: Optional[Logger] = None,
    ) -> "NgramTable":
        """Rebuilds a table from :meth:`to_dict` output, one level at a time.

        Levels beyond ``max_n`` in ``data`` are ignored, missing ones stay empty.
        """
        table = cls(max_n, logger=logger)
        for idx, raw_level in enumerate(data.get("levels", [])[: table.max_n]):
            table.levels[idx] = {
                key: Counter(raw_counts) for key, raw_counts in raw_level.items()
            }
        return table
