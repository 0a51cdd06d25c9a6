import sys
import time
import logging
import numpy as np
import polars as pl
from contextlib import contextmanager
from functools import wraps

logger = logging.getLogger("proteopca")
if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s",
                                            datefmt="%H:%M:%S"))
    logger.addHandler(_handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

_indent_level = 0


def _prefix() -> str:
    return "  " * _indent_level


def log_info(msg: str) -> None:
    logger.info(f"{_prefix()}{msg}")


def log_warning(msg: str) -> None:
    logger.warning(f"{_prefix()}{msg}")


@contextmanager
def log_indent(step: int = 1):
    """Indent every log line emitted inside the block."""
    global _indent_level
    _indent_level += step
    try:
        yield
    finally:
        _indent_level -= step


def log_time(step_name: str):
    """Decorator logging start, end and wall time of a pipeline step."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            log_info(f"▶ {step_name}...")
            t0 = time.perf_counter()
            with log_indent():
                out = func(*args, **kwargs)
            log_info(f"✔ {step_name} done ({time.perf_counter() - t0:.2f}s)")
            return out
        return wrapper
    return decorator


def polars_matrix_to_numpy(df: pl.DataFrame) -> np.ndarray:
    """Numeric polars frame as a float64 matrix; nulls become NaN."""
    return df.to_numpy().astype(np.float64, copy=False)
