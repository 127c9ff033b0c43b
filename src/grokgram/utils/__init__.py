import os
import sys
from enum import Enum, auto

from tqdm.auto import tqdm

import __main__


class RuntimeEnv(Enum):
    JUPYTER = auto()
    SHELL = auto()
    IPYTHON = auto()
    COLAB = auto()


def get_runtime() -> RuntimeEnv:
    if "google.colab" in sys.modules:
        return RuntimeEnv.COLAB
    elif "ipykernel" in sys.modules:
        return RuntimeEnv.JUPYTER
    elif "win32" in sys.platform or "darwin" in sys.platform:
        return RuntimeEnv.SHELL
    else:
        if hasattr(__main__, "__file__"):
            return RuntimeEnv.SHELL
        else:
            return RuntimeEnv.IPYTHON


def env_flag(name: str, default: str) -> str:
    """Reads a process-wide setting from the environment (upper-cased)."""
    return os.environ.get(name, default).strip().upper()


progress_bar = tqdm
