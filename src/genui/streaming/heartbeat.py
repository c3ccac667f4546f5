"""Keep-alive interleaving for long-lived event streams."""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")
H = TypeVar("H")

_DONE = object()


@dataclass(frozen=True)
class _Raised:
    error: BaseException


async def with_heartbeat(
    stream: AsyncIterator[T],
    interval: float,
    heartbeat: Callable[[], H],
    buffer: int = 64,
) -> AsyncIterator[T | H]:
    """
    Re-yield ``stream`` items, adding ``heartbeat()`` whenever the stream
    has been silent for ``interval`` seconds.

    The source runs in its own task so that a slow step (the generation
    call) does not stop heartbeats. Closing this generator cancels the
    source. Errors from the source are re-raised here.
    """
    queue: asyncio.Queue[object] = asyncio.Queue(maxsize=buffer)

    async def pump() -> None:
        try:
            async for item in stream:
                await queue.put(item)
        except Exception as e:
            await queue.put(_Raised(e))
            return
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        await queue.put(_DONE)

    task = asyncio.create_task(pump())
    try:
        while True:
            try:
                item = await asyncio.wait_for(queue.get(), timeout=interval)
            except TimeoutError:
                yield heartbeat()
                continue

            if item is _DONE:
                return
            if isinstance(item, _Raised):
                raise item.error
            yield item  # type: ignore[misc]
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
