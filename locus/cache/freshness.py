"""Freshness policy for persisted batches."""

import time
from typing import Callable, Mapping, Optional

from locus.cache.descriptors import DEFAULT_DESCRIPTORS, ResourceDescriptor
from locus.models.schemas import ResourceKind

Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class FreshnessEvaluator:
    """Decides whether a persisted batch has outlived its threshold.

    A batch is stale once ``now - created_at`` is strictly greater than the
    kind's threshold; a batch exactly at the threshold is still fresh.
    """

    def __init__(
        self,
        descriptors: Optional[Mapping[ResourceKind, ResourceDescriptor]] = None,
        clock: Clock = system_clock,
    ):
        self._descriptors = descriptors or DEFAULT_DESCRIPTORS
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def threshold(self, kind: ResourceKind) -> int:
        descriptor = self._descriptors[kind]
        if descriptor.ttl_ms is None:
            raise ValueError(f"{kind.value} records never expire")
        return descriptor.ttl_ms

    def age(self, created_at: int, now: Optional[int] = None) -> int:
        return (self.now() if now is None else now) - created_at

    def is_stale(self, kind: ResourceKind, created_at: int, now: Optional[int] = None) -> bool:
        """Check a batch created at ``created_at`` (epoch ms) against its TTL."""
        return self.age(created_at, now) > self.threshold(kind)
