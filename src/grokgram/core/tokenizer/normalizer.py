from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod
from typing import List


class Normalizer(ABC):
    @abstractmethod
    def normalize(self, text: str) -> str:
        """
        Applies normalization to a string before it is split into tokens.
        """


class StripNormalizer(Normalizer):
    def __init__(self, strip_left: bool = True, strip_right: bool = True):
        self.left = strip_left
        self.right = strip_right

    def normalize(self, text: str) -> str:
        start_idx = 0
        end_idx = len(text)

        if self.left:
            while start_idx < len(text) and _is_blank(text[start_idx]):
                start_idx += 1

        if self.right:
            while end_idx > start_idx and _is_blank(text[end_idx - 1]):
                end_idx -= 1

        return text[start_idx:end_idx]


class LowercaseNormalizer(Normalizer):
    def normalize(self, text: str) -> str:
        return text.lower()


class NFCNormalizer(Normalizer):
    def normalize(self, text: str) -> str:
        return unicodedata.normalize("NFC", text)


class NewlineNormalizer(Normalizer):
    """Turns line breaks into plain spaces so they act as word separators."""

    def normalize(self, text: str) -> str:
        return text.replace("\r\n", " ").replace("\n", " ")


class SequenceNormalizer(Normalizer):
    def __init__(self, sequences: List[Normalizer] | Normalizer):
        self.sequences = sequences if isinstance(sequences, list) else [sequences]

    def normalize(self, text: str) -> str:
        result = text
        for normalizer in self.sequences:
            result = normalizer.normalize(result)
        return result


def _is_blank(char: str) -> bool:
    # str.isspace() misses zero-width characters
    return char.isspace() or char in "\u200b\u200c\u200d\ufeff"
