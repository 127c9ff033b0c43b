from typing import List

from grokgram.models import LanguageModel
from grokgram.utils import progress_bar


class ProbLanguageModel(LanguageModel):
    """Base class of count-based models trained one text at a time."""

    def train(self, text: str):
        raise NotImplementedError("Probabilistic models must implement 'train' logic.")

    def fit(self, corpus: List[str], progress: bool = True):
        """Trains on every text of ``corpus`` in order."""
        for text in progress_bar(
            corpus,
            total=len(corpus),
            unit="sentence",
            unit_scale=True,
            desc=f"Fitting {self.__class__.__name__}",
            disable=not progress,
        ):
            self.train(text)
        self._is_trained_or_fitted = True
        return self

    def get_probability(self, *args, **kwargs) -> float:
        """
        Probability of a token given some context. The signature is specific
        to the model.
        """
        raise NotImplementedError
