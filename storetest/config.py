import os
from dataclasses import dataclass, fields
from typing import Optional

from .store import BASE_URL

SERVICE_EXE = os.path.join("build", "Release", "l3svc.exe")
SEED_FILE = "seed.txt"
KEY_COUNT = 100000
HIT_PERCENT = 50
NUM_READERS = 4
NUM_WRITERS = 1
DURATION_SECONDS = 60
HEARTBEAT_SECONDS = 10
VALIDATE_BUDGET_MS = 60000

ENV_PREFIX = "STORETEST_"


@dataclass
class RunConfig:
    key_count: int = KEY_COUNT
    hit_percent: int = HIT_PERCENT
    readers: int = NUM_READERS
    writers: int = NUM_WRITERS
    duration: float = DURATION_SECONDS
    heartbeat_interval: float = HEARTBEAT_SECONDS
    validate_budget_ms: int = VALIDATE_BUDGET_MS
    seed_file: str = SEED_FILE
    base_url: Optional[str] = None
    service_exe: Optional[str] = None
    log_file: Optional[str] = None
    log_level: str = "INFO"
    seed: Optional[int] = None

    def __post_init__(self):
        if self.key_count < 1:
            raise ValueError(f"key_count must be >= 1, got {self.key_count}")
        if not 0 <= self.hit_percent <= 100:
            raise ValueError(f"hit_percent must be within [0, 100], got {self.hit_percent}")
        if self.readers < 0 or self.writers < 0:
            raise ValueError("readers and writers must be >= 0")
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")
        if self.heartbeat_interval <= 0:
            raise ValueError(f"heartbeat_interval must be > 0, got {self.heartbeat_interval}")

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """Build a config from STORETEST_* variables, then apply overrides.

        ``STORETEST_KEY_COUNT=5000`` sets ``key_count``, and so on. Overrides
        whose value is None are ignored so argparse defaults can be passed
        straight through.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, f.default, raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def resolved_base_url(self):
        return self.base_url or BASE_URL


def _coerce(name, default, raw):
    if name in ("duration", "heartbeat_interval"):
        return float(raw)
    if isinstance(default, int) or name == "seed":
        return int(raw)
    return raw
