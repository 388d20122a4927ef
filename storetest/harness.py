"""Orchestrates populate/validate passes and timed reader/writer pools."""

import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import List

from .drivers import CheckDriver, ReadDriver, WriteDriver
from .errors import WorkerError
from .keys import generate, hit_key_count, round_half_up
from .log import stats_logger
from .stats import LatencyStats
from .store import StoreReader, StoreWriter

HEARTBEAT_SECONDS = 10
VALIDATE_BUDGET_MS = 60000
MAX_READ_ONLY_SECONDS = 10


@dataclass
class RateReport:
    kind: str
    counts: List[int]
    elapsed_ms: int
    rates: List[float]
    total_rate: float
    latency: LatencyStats = field(default_factory=LatencyStats)

    @property
    def total_count(self):
        return sum(self.counts)


@dataclass
class ReadWriteReport:
    write: RateReport
    read: RateReport
    check_errors: int = 0


@dataclass
class ValidationResult:
    key_count: int
    checked: int = 0
    mismatched: int = 0
    missing: int = 0
    elapsed_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self):
        return self.checked == self.key_count and not self.mismatched and not self.missing


def rate_per_ms(count, elapsed_ms):
    if elapsed_ms <= 0:
        return 0.0
    return round_half_up(count / float(elapsed_ms), 2)


def heartbeats(duration, interval):
    """Sleep through ``duration`` seconds, yielding once per full interval.

    Ticks happen every ``min(duration, interval)`` seconds, ``duration //
    interval`` times. Whatever is left over is slept after the last tick.
    """
    ticks = int(duration // interval)
    sleep_time = min(duration, interval)
    for i in range(ticks):
        time.sleep(sleep_time)
        yield i
    remainder = duration - ticks * sleep_time
    if remainder > 0:
        time.sleep(remainder)


def _elapsed_ms(start):
    return int(round((time.monotonic() - start) * 1000))


class StoreTestDriver:
    """Runs load and validation phases against one store.

    ``store`` is handed untouched to ``store_reader.read`` and
    ``store_writer.write``; it must tolerate calls from many threads.
    """

    def __init__(self, store, store_reader: StoreReader, store_writer: StoreWriter, corpus, key_count, hit_percent,
                 heartbeat_interval=HEARTBEAT_SECONDS, validate_budget_ms=VALIDATE_BUDGET_MS, seed=None):
        self._store = store
        self._store_reader = store_reader
        self._store_writer = store_writer
        self._corpus = corpus
        self._key_count = key_count
        self._hit_percent = hit_percent
        self._hit_key_count = hit_key_count(key_count, hit_percent)
        self._heartbeat_interval = heartbeat_interval
        self._validate_budget_ms = validate_budget_ms
        self._seed = seed
        self._worker_ids = itertools.count()

    @property
    def key_count(self):
        return self._key_count

    @property
    def hit_key_count(self):
        return self._hit_key_count

    def _next_seed(self):
        n = next(self._worker_ids)
        if self._seed is None:
            return None
        return self._seed * 1000003 + n

    def _create_writers(self, count):
        return [
            WriteDriver(self._store, self._store_writer, self._corpus, self._hit_key_count,
                        seed=self._next_seed(), name=f"writer-{i}")
            for i in range(count)
        ]

    def _create_readers(self, count, check=False):
        cls = CheckDriver if check else ReadDriver
        return [
            cls(self._store, self._store_reader, self._corpus, self._hit_key_count,
                seed=self._next_seed(), name=f"{cls.kind}-{i}")
            for i in range(count)
        ]

    @staticmethod
    def _start(drivers):
        threads = []
        for i, driver in enumerate(drivers):
            t = threading.Thread(target=driver.run, name=driver.name)
            t.start()
            threads.append(t)
            stats_logger.info(f"{driver.role} {i} started")
        return threads

    @staticmethod
    def _stop(drivers, threads):
        for driver in drivers:
            driver.stop()
        # No join timeout: a hung store call holds up the whole phase
        for t in threads:
            t.join()

    @classmethod
    def _stop_running(cls, drivers, threads):
        running = [(d, t) for d, t in zip(drivers, threads) if t.is_alive()]
        if running:
            cls._stop([d for d, _ in running], [t for _, t in running])

    @staticmethod
    def _sum_counts(drivers):
        return sum(d.get_count() for d in drivers)

    @staticmethod
    def _check_workers(drivers):
        for driver in drivers:
            if driver.error is not None:
                raise WorkerError(driver.name, driver.error) from driver.error

    @staticmethod
    def _report_rates(kind, drivers, elapsed_ms):
        counts = [d.get_count() for d in drivers]
        rates = [rate_per_ms(c, elapsed_ms) for c in counts]
        for i, (c, r) in enumerate(zip(counts, rates)):
            stats_logger.info(f"{kind}Count[{i}]={c} rate={r} per ms")

        total_rate = rate_per_ms(sum(counts), elapsed_ms)
        stats_logger.info(f"Total {kind.capitalize()} Rate={total_rate} per ms")
        latency = LatencyStats.merged(d.get_latency_stats() for d in drivers)
        return RateReport(kind, counts, elapsed_ms, rates, total_rate, latency)

    def populate(self):
        latency = LatencyStats()
        count = 0
        start = time.monotonic()

        for i in range(self._key_count):
            key, value = generate(i, self._corpus)
            op_start = time.perf_counter_ns()
            self._store_writer.write(self._store, key, value)
            latency.record(time.perf_counter_ns() - op_start)
            count += 1

        elapsed_ms = _elapsed_ms(start)
        stats_logger.info(f"elapsedTime={elapsed_ms} ms")

        rate = rate_per_ms(count, elapsed_ms)
        stats_logger.info(f"writeCount={count} rate={rate} per ms")
        return RateReport("write", [count], elapsed_ms, [rate], rate, latency)

    def validate(self):
        result = ValidationResult(self._key_count)
        start = time.monotonic()

        for i in range(self._key_count):
            result.checked += 1
            key, expected = generate(i, self._corpus)
            value = self._store_reader.read(self._store, key)

            if value is None:
                result.missing += 1
                stats_logger.warning(f'validate found null for key="{key}"')
            elif value != expected:
                result.mismatched += 1
                stats_logger.warning(f'key="{key}"\n    "{expected}"\n    "{value}"')

            result.elapsed_ms = _elapsed_ms(start)
            if result.elapsed_ms > self._validate_budget_ms:
                result.timed_out = True
                stats_logger.info(f"Quit: running time is over {self._validate_budget_ms} ms")
                break

        stats_logger.info(f"Validated {result.checked}/{self._key_count} in {result.elapsed_ms} ms")
        if result.mismatched or result.missing:
            stats_logger.warning(f"mismatched={result.mismatched} missing={result.missing}")
        stats_logger.info("OK")
        return result

    def eval_write(self, writer_count, duration):
        writers, threads = [], []
        try:
            writers = self._create_writers(writer_count)
            threads = self._start(writers)

            start = time.monotonic()
            write_count = 0
            for _ in heartbeats(duration, self._heartbeat_interval):
                new_write_count = self._sum_counts(writers)
                stats_logger.info(f"writeCount={new_write_count - write_count}")
                write_count = new_write_count

            self._stop(writers, threads)
            elapsed_ms = _elapsed_ms(start)
            self._check_workers(writers)

            stats_logger.info(f"elapsedTime={elapsed_ms} ms")
            return self._report_rates("write", writers, elapsed_ms)
        except Exception:
            stats_logger.exception("evalWrite failed")
            raise
        finally:
            self._stop_running(writers, threads)

    def eval_read(self, reader_count, duration):
        readers, threads = [], []
        try:
            readers = self._create_readers(reader_count)
            threads = self._start(readers)

            start = time.monotonic()
            time.sleep(duration)

            self._stop(readers, threads)
            elapsed_ms = _elapsed_ms(start)
            self._check_workers(readers)

            stats_logger.info(f"elapsedTime={elapsed_ms} ms")
            return self._report_rates("read", readers, elapsed_ms)
        except Exception:
            stats_logger.exception("evalRead failed")
            raise
        finally:
            self._stop_running(readers, threads)

    def eval_read_write(self, reader_count, writer_count, duration, use_checker=False):
        readers, reader_threads = [], []
        writers, writer_threads = [], []
        try:
            readers = self._create_readers(reader_count, check=use_checker)
            reader_threads = self._start(readers)

            writers = self._create_writers(writer_count)
            writer_threads = self._start(writers)

            start = time.monotonic()
            read_count = 0
            write_count = 0
            for _ in heartbeats(duration, self._heartbeat_interval):
                new_read_count = self._sum_counts(readers)
                new_write_count = self._sum_counts(writers)
                stats_logger.info(f"write={new_write_count - write_count} read={new_read_count - read_count}")
                read_count = new_read_count
                write_count = new_write_count

            # Readers first so checkers never outlive the writers they watch
            self._stop(readers, reader_threads)
            self._stop(writers, writer_threads)
            elapsed_ms = _elapsed_ms(start)
            self._check_workers(readers + writers)

            stats_logger.info(f"elapsedTime={elapsed_ms} ms")
            write_report = self._report_rates("write", writers, elapsed_ms)
            read_report = self._report_rates("read", readers, elapsed_ms)

            check_errors = 0
            if use_checker:
                check_errors = sum(r.get_error_count() for r in readers)
                stats_logger.info(f"check errors={check_errors}")

            stats_logger.info("writer latency stats:")
            write_report.latency.print(stats_logger)

            if not use_checker:
                stats_logger.info("reader latency stats:")
                read_report.latency.print(stats_logger)

            return ReadWriteReport(write_report, read_report, check_errors)
        except Exception:
            stats_logger.exception("evalReadWrite failed")
            raise
        finally:
            self._stop_running(readers, reader_threads)
            self._stop_running(writers, writer_threads)

    def run(self, reader_count, writer_count, duration):
        """Run every phase in order. Returns False if a phase failed.

        Failures are logged, never raised.
        """
        try:
            time_allocated = duration / 3.0

            stats_logger.info(">>> populate")
            self.populate()

            stats_logger.info(">>> read only")
            self.eval_read(reader_count, min(time_allocated, MAX_READ_ONLY_SECONDS))

            stats_logger.info(">>> write only")
            self.eval_write(writer_count, time_allocated)

            stats_logger.info(">>> validate")
            self.validate()

            stats_logger.info(">>> read & write")
            self.eval_read_write(reader_count, writer_count, time_allocated, False)

            stats_logger.info(">>> validate")
            self.validate()

            stats_logger.info(">>> check & write")
            self.eval_read_write(reader_count, writer_count, time_allocated, True)

            stats_logger.info(">>> validate")
            self.validate()
        except Exception as e:
            stats_logger.error(str(e), exc_info=True)
            return False
        return True
