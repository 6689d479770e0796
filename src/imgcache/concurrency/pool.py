"""Bounded async pool for blocking work and concurrent downloads."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyPool:
    """Semaphore-bounded dispatcher.

    ``slot()`` bounds concurrent coroutines (e.g. downloads); ``run_blocking``
    additionally moves a blocking callable (decode, scale, encode, file I/O)
    onto a worker thread so the event loop keeps serving other requests.
    """

    def __init__(self, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers
        self._semaphore = asyncio.Semaphore(max_workers)
        self._active = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def active(self) -> int:
        return self._active

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self._active += 1
            try:
                yield
            finally:
                self._active -= 1

    async def run_blocking(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn(*args, **kwargs)`` on a worker thread within the pool's bound."""
        async with self.slot():
            return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))
