import logging
from typing import Any, Type

from grokgram.utils import RuntimeEnv, env_flag, get_runtime

# Read once at import, shared by every logger in the process
LOG_LEVEL = env_flag("GROKGRAM_LOG_LEVEL", "WARNING")


# Fix Colab issue
class PrintLogger:  # noqa: D101
    template: str = "[{level}]: {msg}"

    def info(self, msg: str):
        print(self.template.format(level="INFO", msg=msg))

    def debug(self, msg: str):
        if LOG_LEVEL == "DEBUG":
            print(self.template.format(level="DEBUG", msg=msg))

    def exception(self, msg: str):
        print(self.template.format(level="EXCEPTION", msg=msg))

    def error(self, msg: str):
        print(self.template.format(level="ERROR", msg=msg))

    def warning(self, msg: str):
        print(self.template.format(level="WARNING", msg=msg))


class Logger:  # noqa: D101
    def __init__(self, name: str = "grokgram"):
        """Initializes the Logger instance.

        Chooses between PrintLogger (for Colab) and the standard logging.Logger.

        Args:
            name: Name of the underlying ``logging`` logger.
        """
        if get_runtime() == RuntimeEnv.COLAB:
            self.base = PrintLogger()
        else:
            self.base = logging.getLogger(name)
            self.base.propagate = False
            self.base.setLevel(getattr(logging, LOG_LEVEL, logging.WARNING))

            # getLogger returns the same object per name, only attach once
            if not self.base.handlers:
                log_formatter = logging.Formatter(
                    "%(filename)s:%(lineno)d - [%(levelname)s]: %(message)s"
                )
                console_handler = logging.StreamHandler()
                console_handler.setFormatter(log_formatter)
                self.base.addHandler(console_handler)

    def info(self, msg: str):
        self.base.info(msg)

    def debug(self, msg: str):
        self.base.debug(msg)

    def exception(self, msg: str):
        self.base.exception(msg)

    def error(self, msg: str):
        self.base.error(msg)

    def warning(self, msg: str):
        self.base.warning(msg)

    def check_and_raise(self, msg: str, error_type: Type[Exception], condition: Any):
        if not condition:
            self.error(msg)
            raise error_type(msg)


class NullLogger(Logger):
    """Logger that drops every message. Useful for deterministic tests."""

    def __init__(self):
        self.base = None

    def info(self, msg: str):
        pass

    def debug(self, msg: str):
        pass

    def exception(self, msg: str):
        pass

    def error(self, msg: str):
        pass

    def warning(self, msg: str):
        pass


DEFAULT_LOGGER = Logger()
