"""
Command execution contract.

Every command body is a ``CommandGenerator``: an async generator yielding text
fragments. It suspends whenever it awaits a provider call or I/O and resumes
when that settles, so callers see partial output before completion.

``CommandExecution`` wraps one producer and turns it into an ordered stream of
``ExecutionChunk``s with an explicit state machine:

    IDLE -> PRODUCING -> COMPLETED | FAILED | CANCELLED

- The first chunk request moves IDLE to PRODUCING.
- Producer exhaustion ends with a single DONE chunk (COMPLETED).
- A producer exception ends with a single ERROR chunk (FAILED); text chunks
  already delivered stay delivered and nothing follows the error.
- Abandoning the stream (``cancel()`` or leaving the ``async with`` block
  early) moves to CANCELLED. The producer is not closed or signalled; it is
  simply no longer driven.
- A stream is not restartable: a second ``chunks()`` call raises.

The contract never retries. Falling back to another provider is a command
level decision (see ``vibe_relay.core.fallback``).

Example:
    async def ask() -> CommandGenerator:
        yield "He"
        yield "llo"

    async with CommandExecution(ask()) as execution:
        async for chunk in execution.chunks():
            if chunk.kind is ChunkKind.TEXT:
                print(chunk.text, end="")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator, AsyncIterator, List, Optional

logger = logging.getLogger(__name__)

CommandGenerator = AsyncIterator[str]


class ChunkKind(str, Enum):
    TEXT = "text"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class ExecutionChunk:
    """One unit of streamed output.

    Attributes:
        kind: TEXT for output fragments, ERROR or DONE for the terminal chunk
        text: Fragment text (TEXT chunks only)
        error: The exception that ended production (ERROR chunks only)
    """

    kind: ChunkKind
    text: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def of_text(cls, text: str) -> "ExecutionChunk":
        return cls(kind=ChunkKind.TEXT, text=text)

    @classmethod
    def of_error(cls, error: BaseException) -> "ExecutionChunk":
        return cls(kind=ChunkKind.ERROR, error=error)

    @classmethod
    def done(cls) -> "ExecutionChunk":
        return cls(kind=ChunkKind.DONE)

    @property
    def is_terminal(self) -> bool:
        return self.kind is not ChunkKind.TEXT


class ExecutionState(str, Enum):
    IDLE = "idle"
    PRODUCING = "producing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionState.COMPLETED, ExecutionState.FAILED, ExecutionState.CANCELLED)


class CommandExecution:
    """Drive one producer through the execution state machine."""

    def __init__(self, producer: CommandGenerator):
        self._producer = producer
        self._stream: Optional[AsyncGenerator[ExecutionChunk, None]] = None
        self._parts: List[str] = []
        self.state = ExecutionState.IDLE
        self.error: Optional[BaseException] = None

    @property
    def partial_output(self) -> str:
        """Text delivered so far (the full output once COMPLETED)."""
        return "".join(self._parts)

    def chunks(self) -> AsyncIterator[ExecutionChunk]:
        """Return the chunk stream. May be called once per execution.

        Raises:
            RuntimeError: If the stream was already requested or the
                execution was cancelled before it started
        """
        if self._stream is not None:
            raise RuntimeError("Execution stream already consumed; start a new invocation")
        if self.state.is_terminal:
            raise RuntimeError(f"Execution already {self.state.value}; start a new invocation")
        self._stream = self._drive()
        return self._stream

    async def cancel(self) -> None:
        """Stop consuming. No-op once the execution reached a terminal state."""
        if not self.state.is_terminal:
            self.state = ExecutionState.CANCELLED
            logger.debug("Execution cancelled after %d chunk(s)", len(self._parts))
        if self._stream is not None:
            await self._stream.aclose()

    async def __aenter__(self) -> "CommandExecution":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self.state.is_terminal:
            await self.cancel()

    async def _drive(self) -> AsyncGenerator[ExecutionChunk, None]:
        self.state = ExecutionState.PRODUCING
        try:
            while True:
                try:
                    text = await self._producer.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    self.state = ExecutionState.FAILED
                    self.error = exc
                    logger.debug("Producer failed after %d chunk(s): %s", len(self._parts), exc)
                    yield ExecutionChunk.of_error(exc)
                    return
                self._parts.append(text)
                yield ExecutionChunk.of_text(text)
        except GeneratorExit:
            if self.state is ExecutionState.PRODUCING:
                self.state = ExecutionState.CANCELLED
            raise

        self.state = ExecutionState.COMPLETED
        yield ExecutionChunk.done()


@dataclass
class ExecutionResult:
    """Outcome of ``collect``: all text produced plus the terminal error, if any."""

    text: str
    state: ExecutionState
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.state is ExecutionState.COMPLETED


async def collect(producer: CommandGenerator) -> ExecutionResult:
    """Drain ``producer`` through a ``CommandExecution`` and summarize it."""
    execution = CommandExecution(producer)
    async for _chunk in execution.chunks():
        pass
    return ExecutionResult(
        text=execution.partial_output,
        state=execution.state,
        error=execution.error,
    )
