# pyfemx/parameters.py
import os
from dataclasses import dataclass


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in {"1", "true", "yes"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass
class Parameters:
    """
    Run-time switches of the assembly layer.
    """
    # Number of shards the active-entity list is split into (1 = sequential loop).
    num_workers: int = 1
    # Log shape & dtype of every buffer handed to a kernel.
    debug: bool = False
    # Reject NaN/inf values written by a kernel.
    check_kernel_output: bool = True

    def resolve_workers(self, num_workers=None) -> int:
        n = self.num_workers if num_workers is None else int(num_workers)
        if n < 1:
            raise ValueError(f"num_workers must be positive, got {n}.")
        return n


# Global, editable in one place:
PARAMETERS = Parameters(
    num_workers=_env_int("PYFEMX_NUM_THREADS", 1),
    debug=_env_flag("PYFEMX_ASSEMBLY_DEBUG"),
)
