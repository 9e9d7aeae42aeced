"""CLI logging helpers.

All CLI loggers live under the ``vibe_relay`` namespace so a single stderr
handler installed by ``configure_logging`` covers core and CLI modules. Log
output never goes to stdout, which carries command results.
"""

import functools
import logging
import sys
import time
from typing import Any, Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

ROOT_LOGGER = "vibe_relay"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


_handler: Optional[logging.StreamHandler] = None


def get_cli_logger(name: str = "cli") -> logging.Logger:
    """Return a logger under the ``vibe_relay`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(level: str = "WARNING") -> None:
    """Install a stderr handler on the package root logger (once).

    Calling again updates the level and points the handler at the current
    ``sys.stderr``, which test runners swap per invocation.
    """
    global _handler
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)
    else:
        # Rebind without flushing; the previous stream may already be closed.
        _handler.stream = sys.stderr


def cli_command(name: str) -> Callable[[F], F]:
    """Log start, duration and failure of a CLI command at debug level."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_cli_logger()
            logger.debug(f"Command '{name}' started")
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.debug(f"Command '{name}' raised", exc_info=True)
                raise
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.debug(f"Command '{name}' finished in {elapsed_ms:.1f}ms")

        return wrapper  # type: ignore[return-value]

    return decorator
