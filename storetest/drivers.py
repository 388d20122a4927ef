"""Worker drivers run by the orchestrator, one thread each.

A driver loops on one kind of store operation until ``stop()`` is called.
The stop flag is only checked between operations, so an in-flight call
always completes and its latency is recorded before the loop exits.
"""

import random
import threading
import time

from .keys import generate
from .log import stats_logger
from .stats import LatencyStats
from .store import StoreReader, StoreWriter


class StoreDriver:
    kind = "driver"
    role = "Driver"

    def __init__(self, store, corpus, key_count, seed=None, name=None):
        if key_count < 1:
            raise ValueError(f"{type(self).__name__} needs at least one key, got key_count={key_count}")
        self._store = store
        self._corpus = corpus
        self._key_count = key_count
        self._rand = random.Random(seed)
        self._stop_event = threading.Event()
        self._count = 0
        self._latency_stats = LatencyStats()
        self.name = name or self.kind
        self.error = None

    def next_index(self):
        return self._rand.randrange(self._key_count)

    def do_op(self, index):
        raise NotImplementedError

    def run(self):
        try:
            while not self._stop_event.is_set():
                index = self.next_index()
                start = time.perf_counter_ns()
                self.do_op(index)
                self._latency_stats.record(time.perf_counter_ns() - start)
                self._count += 1
        except Exception as e:
            # Picked up by the orchestrator after join
            self.error = e
            stats_logger.error(f"{self.name} stopped after {self._count} ops: {e}", exc_info=True)

    def stop(self):
        self._stop_event.set()

    def get_count(self):
        return self._count

    def get_latency_stats(self):
        return self._latency_stats


class WriteDriver(StoreDriver):
    kind = "writer"
    role = "Writer"

    def __init__(self, store, store_writer: StoreWriter, corpus, key_count, seed=None, name=None):
        super().__init__(store, corpus, key_count, seed=seed, name=name)
        self._store_writer = store_writer

    def do_op(self, index):
        key, value = generate(index, self._corpus)
        self._store_writer.write(self._store, key, value)

    def get_write_count(self):
        return self.get_count()


class ReadDriver(StoreDriver):
    kind = "reader"
    role = "Reader"

    def __init__(self, store, store_reader: StoreReader, corpus, key_count, seed=None, name=None):
        super().__init__(store, corpus, key_count, seed=seed, name=name)
        self._store_reader = store_reader

    def do_op(self, index):
        key, _ = generate(index, self._corpus)
        return self._store_reader.read(self._store, key)

    def get_read_count(self):
        return self.get_count()


class CheckDriver(ReadDriver):
    """Reader that also compares every value it reads with the expected one."""

    kind = "checker"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._error_count = 0

    def do_op(self, index):
        key, expected = generate(index, self._corpus)
        value = self._store_reader.read(self._store, key)
        if value != expected:
            self._error_count += 1
            stats_logger.warning(f'key="{key}"\n    "{expected}"\n    "{value}"')
        return value

    def get_error_count(self):
        return self._error_count
