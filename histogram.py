import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

# Bucket boundaries in milliseconds: 1, 2, 5, 10, 20, 50, 100, ...
SERIES = (1, 2, 5)


def boundaries() -> Iterator[int]:
    scale = 1
    while True:
        for step in SERIES:
            yield step * scale
        scale *= 10


def bucket_for(milliseconds: float) -> int:
    """Return the lower boundary of the bucket holding ``milliseconds``."""
    if not math.isfinite(milliseconds):
        raise ValueError(f"duration must be finite, got {milliseconds!r} ms")
    bounds = boundaries()
    lower, upper = 0, next(bounds)
    while milliseconds >= upper:
        lower, upper = upper, next(bounds)
    return lower


def upper_bound(lower: int) -> int:
    bounds = boundaries()
    upper = next(bounds)
    while upper <= lower:
        upper = next(bounds)
    return upper


@dataclass(frozen=True)
class Bucket:
    lower: int
    upper: int
    count: int
    merged: int = 1

    def label(self, width: int = 0) -> str:
        return f"{self.lower:>{width}} to {self.upper:>{width}} ms"


@dataclass
class Histogram:
    """
    Duration tallies keyed by the lower boundary of their bucket.

    Raw buckets are only ever summed, so partial histograms from separate
    shards combine exactly. Small buckets are collapsed by ``collapse`` at
    report time.
    """
    buckets: Counter = field(default_factory=Counter)
    missing: int = 0

    def add(self, seconds: Optional[float]) -> None:
        if seconds is None:
            self.missing += 1
            return
        self.buckets[bucket_for(seconds * 1000.0)] += 1

    @property
    def total(self) -> int:
        return sum(self.buckets.values())

    def merge(self, other: "Histogram") -> "Histogram":
        self.buckets.update(other.buckets)
        self.missing += other.missing
        return self

    def collapse(self, min_count: int) -> List[Bucket]:
        """
        Scan non-empty buckets in ascending order.

        A bucket holding at least ``min_count`` durations is kept as is; a run
        of consecutive smaller buckets becomes one aggregate bucket covering
        the whole run. Counts are only moved, never re-derived.
        """
        result: List[Bucket] = []
        pending: Optional[Bucket] = None

        for lower in sorted(self.buckets):
            count = self.buckets[lower]
            if count <= 0:
                continue
            upper = upper_bound(lower)

            if count >= min_count:
                if pending is not None:
                    result.append(pending)
                    pending = None
                result.append(Bucket(lower, upper, count))
            elif pending is not None:
                pending = Bucket(pending.lower, upper, pending.count + count, pending.merged + 1)
            else:
                pending = Bucket(lower, upper, count)

        if pending is not None:
            result.append(pending)

        return result
