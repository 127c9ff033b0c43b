class GrokgramError(Exception):
    """Base class for errors raised by grokgram."""


class InvalidInput(GrokgramError, TypeError):
    """A text argument was not a string."""


class InvalidAmount(GrokgramError, ValueError):
    """A counter amount was negative or not a number."""


class InvalidLearningRate(GrokgramError, ValueError):
    """A fine-tuning learning rate was outside ``(0, 1]``."""
