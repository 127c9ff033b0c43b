from abc import ABCMeta
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from grokgram.utils.logging import DEFAULT_LOGGER, Logger


class ModelConfig(BaseModel):
    def __str__(self):
        params = ", ".join(f"{k}={v}" for k, v in self.model_dump().items())
        return f"{self.__class__.__name__}({params})"


class GenerateConfig(BaseModel):
    max_length: int = Field(default=10, ge=0)  # number of tokens to append


class LanguageModel(metaclass=ABCMeta):
    """Common interface of every grokgram language model.

    Attributes:
        config (ModelConfig): Hyperparameters of the model.
        logger (Logger): Where diagnostics go; ``DEFAULT_LOGGER`` unless the
            caller passes its own.
        _is_trained_or_fitted (bool): Whether the model has seen any text.
    """

    def __init__(self, model_config: ModelConfig, logger: Optional[Logger] = None):
        self.config = model_config
        self.logger = logger if logger is not None else DEFAULT_LOGGER
        self._is_trained_or_fitted = False
        self.logger.info(
            f"Initializing {self.__class__.__name__} with config: {self.config}"
        )

    def get_config(self) -> ModelConfig:
        """Returns the configuration of the model."""
        return self.config

    def summary(self):
        """
        Prints a human-readable summary of the model.
        """
        print(f"\n--- Model Summary: {self.__class__.__name__} ---")
        print(f"  Configuration: {self.get_config()}")
        print(f"  Trained/Fitted: {self._is_trained_or_fitted}")

    def save_model(self, path: Union[Path, str]):
        """
        Saves the model's learned state (counts, vocabulary, ...) to ``path``.
        """
        raise NotImplementedError("Subclasses must implement model saving.")

    def load_model(self, path: Union[Path, str]):
        """
        Replaces the model's state with the one saved at ``path``.
        """
        raise NotImplementedError("Subclasses must implement model loading.")

    def get_hyperparameters_table(self) -> str:
        """
        Returns a string formatted as a list of
        key hyperparameters and their current values.
        """
        table = f"Hyperparameters for {self.__class__.__name__}:\n"
        if not self.config:
            return (
                table + "  (No configuration provided or model not fully initialized)"
            )
        for key, value in self.config.model_dump().items():
            table += f"  - {key}: {value}\n"
        return table

    def generate_sequence(self, prompt: str, max_length: Optional[int] = 10) -> str:
        """
        Generates a continuation of ``prompt``.
        """
        raise NotImplementedError
