"""Per-operation latency accumulator.

Samples are kept as counts in fixed buckets rather than as a list, so a
worker running for hours uses constant memory. Each worker owns one
``LatencyStats``; the orchestrator merges them once the workers are joined.
"""

import bisect

# Upper bounds of each bucket in microseconds, last bucket is open-ended
BUCKET_BOUNDS_US = (1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000, 10000, 100000, 1000000)


def _bucket_label(index):
    if index == 0:
        return f"<{_fmt_us(BUCKET_BOUNDS_US[0])}"
    if index == len(BUCKET_BOUNDS_US):
        return f">={_fmt_us(BUCKET_BOUNDS_US[-1])}"
    return f"{_fmt_us(BUCKET_BOUNDS_US[index - 1])}-{_fmt_us(BUCKET_BOUNDS_US[index])}"


def _fmt_us(us):
    if us >= 1000000:
        return f"{us // 1000000}s"
    if us >= 1000:
        return f"{us // 1000}ms"
    return f"{us}us"


class LatencyStats:
    def __init__(self):
        self.count = 0
        self.total_ns = 0
        self.min_ns = None
        self.max_ns = None
        self.buckets = [0] * (len(BUCKET_BOUNDS_US) + 1)

    def record(self, elapsed_ns):
        if elapsed_ns < 0:
            raise ValueError(f"latency must be >= 0, got {elapsed_ns}")
        self.count += 1
        self.total_ns += elapsed_ns
        if self.min_ns is None or elapsed_ns < self.min_ns:
            self.min_ns = elapsed_ns
        if self.max_ns is None or elapsed_ns > self.max_ns:
            self.max_ns = elapsed_ns
        # A sample equal to a bound falls in the next bucket up
        self.buckets[bisect.bisect_right(BUCKET_BOUNDS_US, elapsed_ns / 1000.0)] += 1

    def merge(self, other):
        """Fold other into self and return self."""
        self.count += other.count
        self.total_ns += other.total_ns
        if other.min_ns is not None and (self.min_ns is None or other.min_ns < self.min_ns):
            self.min_ns = other.min_ns
        if other.max_ns is not None and (self.max_ns is None or other.max_ns > self.max_ns):
            self.max_ns = other.max_ns
        for i, n in enumerate(other.buckets):
            self.buckets[i] += n
        return self

    @classmethod
    def merged(cls, stats):
        result = cls()
        for s in stats:
            result.merge(s)
        return result

    @property
    def mean_ns(self):
        if not self.count:
            return 0.0
        return self.total_ns / self.count

    def print(self, logger):
        if not self.count:
            logger.info("count=0")
            return

        logger.info(
            f"count={self.count} min={self.min_ns / 1000.0:.2f}us "
            f"max={self.max_ns / 1000.0:.2f}us mean={self.mean_ns / 1000.0:.2f}us"
        )
        for i, n in enumerate(self.buckets):
            if n:
                logger.info(f"  {_bucket_label(i):>12} {n:>10} {n * 100.0 / self.count:6.2f}%")
