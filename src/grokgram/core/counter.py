from __future__ import annotations

import math
import numbers
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from grokgram.errors import InvalidAmount


def _check_amount(amount, action: str) -> None:
    if (
        isinstance(amount, bool)
        or not isinstance(amount, numbers.Real)
        or not math.isfinite(amount)
        or amount < 0
    ):
        raise InvalidAmount(f"{action} must be a non-negative number, got {amount!r}")


class Counter:
    """Multiset of string items with non-negative real counts.

    Unlike :class:`collections.Counter`, an item whose count drops to zero or
    below is removed instead of being stored, and amounts are validated.
    Items keep the order in which they were first seen, which is also the
    tie-break order of :meth:`most_common`.

    Args:
        initial: Either an iterable of items (each counted once) or a mapping
            from item to count.
    """

    def __init__(self, initial: Optional[Union[Iterable[str], Mapping[str, float]]] = None):
        self._counts: Dict[str, float] = dict()

        if initial is None:
            return
        if isinstance(initial, Mapping):
            for item, count in initial.items():
                self.increment(item, count)
        else:
            for item in initial:
                self.increment(item)

    def increment(self, item: str, amount: float = 1) -> None:
        _check_amount(amount, "Increment")
        count = self._counts.get(item, 0) + amount
        # Only positive counts are stored, a zero seed leaves nothing behind
        if count > 0:
            self._counts[item] = count
        else:
            self._counts.pop(item, None)

    def decrement(self, item: str, amount: float = 1) -> None:
        _check_amount(amount, "Decrement")
        count = self._counts.get(item, 0) - amount
        if count > 0:
            self._counts[item] = count
        else:
            self._counts.pop(item, None)

    def get(self, item: str) -> float:
        return self._counts.get(item, 0)

    def total(self) -> float:
        return sum(self._counts.values())

    def most_common(self, limit: Optional[int] = None) -> List[Tuple[str, float]]:
        """Returns ``(item, count)`` pairs from the most to the least common.

        ``sorted`` is stable, so equal counts keep insertion order.
        """
        ranked = sorted(self._counts.items(), key=lambda pair: pair[1], reverse=True)
        if limit is not None:
            return ranked[:limit]
        return ranked

    def elements(self) -> List[str]:
        """Expands the counter into a list, fractional counts are floored."""
        result = []
        for item, count in self._counts.items():
            result.extend([item] * math.floor(count))
        return result

    def subtract(self, other: Counter) -> Counter:
        result = Counter(self._counts)
        for item, count in other.items():
            result.decrement(item, count)
        return result

    def items(self):
        return self._counts.items()

    def to_dict(self) -> Dict[str, float]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, item) -> bool:
        return item in self._counts

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Counter):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        pairs = ", ".join(f"{item}: {count}" for item, count in self._counts.items())
        return f"Counter({{{pairs}}})"
