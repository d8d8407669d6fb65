import logging
import time
from contextlib import contextmanager
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

log = logging.getLogger("pixelmind")


def configure_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
    """Install the standard pipeline log format on the root logger."""
    logging.basicConfig(level=level, format=fmt or LOG_FORMAT)


@contextmanager
def measure(name: str, logger: Optional[logging.Logger] = None):
    start = time.monotonic()
    try:
        yield
    finally:
        elapsed_ms = (time.monotonic() - start) * 1000
        (logger or log).info(f"[TIMING] {name} took {elapsed_ms:.1f}ms")
