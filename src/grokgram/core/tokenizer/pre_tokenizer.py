from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import List, Pattern, Union


class PreTokenizer(ABC):
    @abstractmethod
    def pre_tokenize(self, text: str) -> List[str]:
        """
        Splits a normalized string into a list of raw tokens.
        """


class RegexPreTokenizer(PreTokenizer):
    """Keeps every non-overlapping match of ``pattern``, in order."""

    def __init__(self, pattern: Union[str, Pattern[str]]):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def pre_tokenize(self, text: str) -> List[str]:
        return [match.group(0) for match in self.pattern.finditer(text)]
