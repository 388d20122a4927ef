import logging

import pytest

from storetest.log import STATS_LOGGER_NAME
from storetest.store import MappingReader, MappingWriter, MemoryStore

SEED_LINES = [
    f"line {i:02d} the quick brown fox jumps over the lazy dog {i * 7}"
    for i in range(10)
]


@pytest.fixture
def corpus():
    return tuple(SEED_LINES)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def reader():
    return MappingReader()


@pytest.fixture
def writer():
    return MappingWriter()


@pytest.fixture
def stats_log(caplog):
    caplog.set_level(logging.INFO, logger=STATS_LOGGER_NAME)
    return caplog


def messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == STATS_LOGGER_NAME]
