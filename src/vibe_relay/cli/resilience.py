"""Interrupt handling and async entry helpers for CLI commands."""

import asyncio
import functools
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click

from vibe_relay.cli.logging import get_cli_logger

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

logger = get_cli_logger()

INTERRUPTED_EXIT_CODE = 130


def handle_keyboard_interrupt() -> Callable[[F], F]:
    """Turn Ctrl-C into a short stderr notice and exit status 130."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                logger.debug("Command interrupted by user")
                click.echo("\nInterrupted.", err=True)
                sys.exit(INTERRUPTED_EXIT_CODE)

        return wrapper  # type: ignore[return-value]

    return decorator


def run_async(factory: Callable[[], Awaitable[T]]) -> T:
    """Run one command coroutine on a fresh event loop."""
    return asyncio.run(factory())
