"""Concurrency — bounded worker pool and multi-subscriber broadcast."""

from imgcache.concurrency.broadcast import BroadcastStream
from imgcache.concurrency.pool import ConcurrencyPool

__all__ = ["BroadcastStream", "ConcurrencyPool"]
