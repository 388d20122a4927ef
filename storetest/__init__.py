from .drivers import CheckDriver, ReadDriver, StoreDriver, WriteDriver
from .errors import StoreError, StoreTestError, WorkerError
from .harness import RateReport, ReadWriteReport, StoreTestDriver, ValidationResult
from .keys import generate, hit_key_count
from .seed import load_seed_data
from .stats import LatencyStats
from .store import HttpStore, MappingReader, MappingWriter, MemoryStore

__all__ = [
    "CheckDriver",
    "HttpStore",
    "LatencyStats",
    "MappingReader",
    "MappingWriter",
    "MemoryStore",
    "RateReport",
    "ReadDriver",
    "ReadWriteReport",
    "StoreDriver",
    "StoreError",
    "StoreTestDriver",
    "StoreTestError",
    "ValidationResult",
    "WorkerError",
    "WriteDriver",
    "generate",
    "hit_key_count",
    "load_seed_data",
]
