"""Multi-subscriber broadcast of a single async iterator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DONE = object()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class BroadcastStream(Generic[T]):
    """Drains one source iterator in its own task and fans items out to subscribers.

    Each subscriber gets its own queue and sees every item produced after it
    subscribed, then either a normal end or the source's exception. Nothing
    is replayed to late subscribers. The producing task runs to completion
    even if every subscriber stops listening; ``on_complete`` is called
    exactly once, with this stream, when it finishes, successfully or not.
    """

    def __init__(
        self,
        source: AsyncIterator[T],
        name: str = "",
        on_complete: Callable[[BroadcastStream[T]], None] | None = None,
    ) -> None:
        self._source = source
        self._name = name
        self._on_complete = on_complete
        self._queues: list[asyncio.Queue[object]] = []
        self._task: asyncio.Task[None] | None = None
        self._completed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    @property
    def completed(self) -> bool:
        return self._completed

    def subscribe(self) -> AsyncIterator[T]:
        """Attach a subscriber. The first subscription starts the producer.

        Registration happens immediately, not on first iteration, so no item
        produced after this call is missed.
        """
        if self._completed:
            raise RuntimeError(f"Broadcast '{self._name}' has already completed")
        queue: asyncio.Queue[object] = asyncio.Queue()
        self._queues.append(queue)
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._pump(), name=f"broadcast:{self._name}"
            )
        return self._drain(queue)

    async def wait(self) -> None:
        """Wait for the producer to finish (without consuming items)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _drain(self, queue: asyncio.Queue[object]) -> AsyncIterator[T]:
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    return
                if isinstance(item, _Failure):
                    raise item.error
                yield item  # type: ignore[misc]
        finally:
            self._discard(queue)

    async def _pump(self) -> None:
        try:
            async for item in self._source:
                self._publish(item)
        except asyncio.CancelledError as e:
            self._publish(_Failure(e))
            raise
        except Exception as e:
            if not self._queues:
                logger.warning("Broadcast '%s' failed with no subscribers: %s", self._name, e)
            self._publish(_Failure(e))
        else:
            self._publish(_DONE)
        finally:
            self._completed = True
            if self._on_complete is not None:
                self._on_complete(self)

    def _publish(self, item: object) -> None:
        for queue in self._queues:
            queue.put_nowait(item)

    def _discard(self, queue: asyncio.Queue[object]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)
