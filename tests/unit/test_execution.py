"""Tests for the command execution contract."""

import pytest

from vibe_relay.core.execution import (
    ChunkKind,
    CommandExecution,
    ExecutionState,
    collect,
)


class Boom(Exception):
    pass


async def hello_then_fail():
    yield "He"
    yield "llo"
    raise Boom("E")


async def hello():
    yield "He"
    yield "llo"


class TestCommandExecution:
    @pytest.mark.asyncio
    async def test_error_after_partial_output(self):
        """Chunks He, llo then one ERROR(E) with nothing after."""
        execution = CommandExecution(hello_then_fail())
        chunks = [chunk async for chunk in execution.chunks()]

        assert [c.kind for c in chunks] == [ChunkKind.TEXT, ChunkKind.TEXT, ChunkKind.ERROR]
        assert [c.text for c in chunks[:2]] == ["He", "llo"]
        assert isinstance(chunks[-1].error, Boom)
        assert str(chunks[-1].error) == "E"
        assert execution.state is ExecutionState.FAILED
        assert execution.partial_output == "Hello"
        assert isinstance(execution.error, Boom)

    @pytest.mark.asyncio
    async def test_completion_yields_done(self):
        execution = CommandExecution(hello())
        assert execution.state is ExecutionState.IDLE

        chunks = [chunk async for chunk in execution.chunks()]

        assert chunks[-1].kind is ChunkKind.DONE
        assert chunks[-1].is_terminal
        assert execution.state is ExecutionState.COMPLETED
        assert execution.partial_output == "Hello"
        assert execution.error is None

    @pytest.mark.asyncio
    async def test_state_producing_while_streaming(self):
        execution = CommandExecution(hello())
        stream = execution.chunks()
        first = await stream.__anext__()
        assert first.text == "He"
        assert execution.state is ExecutionState.PRODUCING
        await execution.cancel()

    @pytest.mark.asyncio
    async def test_not_restartable(self):
        execution = CommandExecution(hello())
        async for _ in execution.chunks():
            pass
        with pytest.raises(RuntimeError):
            execution.chunks()

    @pytest.mark.asyncio
    async def test_cancel_does_not_close_producer(self):
        """Abandoning the stream leaves the producer untouched."""
        closed = []

        async def producer():
            try:
                yield "a"
                yield "b"
                yield "c"
            finally:
                closed.append(True)

        gen = producer()
        async with CommandExecution(gen) as execution:
            async for chunk in execution.chunks():
                assert chunk.text == "a"
                break

        assert execution.state is ExecutionState.CANCELLED
        assert execution.partial_output == "a"
        assert closed == []
        await gen.aclose()

    @pytest.mark.asyncio
    async def test_cancel_before_streaming_is_final(self):
        """A cancelled execution cannot be started afterwards."""
        execution = CommandExecution(hello())
        await execution.cancel()

        with pytest.raises(RuntimeError, match="cancelled"):
            execution.chunks()
        assert execution.state is ExecutionState.CANCELLED
        assert execution.partial_output == ""

    @pytest.mark.asyncio
    async def test_cancel_after_completion_is_noop(self):
        execution = CommandExecution(hello())
        async for _ in execution.chunks():
            pass
        await execution.cancel()
        assert execution.state is ExecutionState.COMPLETED

    @pytest.mark.asyncio
    async def test_empty_producer(self):
        async def nothing():
            return
            yield  # pragma: no cover

        result = await collect(nothing())
        assert result.ok
        assert result.text == ""


class TestCollect:
    @pytest.mark.asyncio
    async def test_collect_success(self):
        result = await collect(hello())
        assert result.ok
        assert result.text == "Hello"
        assert result.state is ExecutionState.COMPLETED

    @pytest.mark.asyncio
    async def test_collect_failure_keeps_partial_text(self):
        result = await collect(hello_then_fail())
        assert not result.ok
        assert result.text == "Hello"
        assert isinstance(result.error, Boom)
