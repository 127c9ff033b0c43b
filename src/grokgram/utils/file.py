import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from grokgram.utils.logging import DEFAULT_LOGGER, Logger


def load_json(path: Union[Path, str]) -> dict:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(path: Union[Path, str], data: Dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)


class Persistence(ABC):
    """Storage backend for serialized model state.

    The state is a plain JSON-compatible dictionary, the backend decides how
    it is encoded on disk.
    """

    @abstractmethod
    def save(self, path: Union[Path, str], state: Dict[str, Any]) -> None:
        """Writes ``state`` to ``path``."""

    @abstractmethod
    def load(self, path: Union[Path, str]) -> Dict[str, Any]:
        """Reads a state previously written by :meth:`save`."""


class JsonPersistence(Persistence):
    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else DEFAULT_LOGGER

    def save(self, path: Union[Path, str], state: Dict[str, Any]) -> None:
        save_json(path, state)
        self.logger.info(f"Model state saved to {path}")

    def load(self, path: Union[Path, str]) -> Dict[str, Any]:
        state = load_json(path)
        self.logger.info(f"Model state loaded from {path}")
        return state
