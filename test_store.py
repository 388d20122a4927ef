import threading

import pytest
import requests

from storetest.config import RunConfig
from storetest.errors import StoreError
from storetest.seed import load_seed_data
from storetest.store import HttpStore, MappingReader, MappingWriter, MemoryStore

BASE_URL = "http://localhost:8080"


class FakeResponse:
    def __init__(self, status_code, content=b"", content_type="text/plain"):
        self.status_code = status_code
        self.content = content if isinstance(content, bytes) else content.encode("utf-8")
        self.headers = {"Content-Type": content_type}

    @property
    def text(self):
        # requests falls back to ISO-8859-1 for text/* without a charset
        return self.content.decode("iso-8859-1")


class FakeSession:
    """Stands in for requests.Session, backed by a dict."""

    def __init__(self):
        self.data = {}
        self.calls = []
        self.closed = False
        self.fail_with = None

    def get(self, url, timeout=None):
        self.calls.append(("GET", url))
        if self.fail_with:
            raise self.fail_with
        if url.endswith("/kv/metrics"):
            return FakeResponse(200, "wal_bytes=42")
        key = url.rsplit("/", 1)[1]
        if key in self.data:
            return FakeResponse(200, self.data[key])
        return FakeResponse(404, "not found")

    def put(self, url, data=None, timeout=None):
        self.calls.append(("PUT", url))
        self.data[url.rsplit("/", 1)[1]] = data
        return FakeResponse(200)

    def close(self):
        self.closed = True


def test_memory_store_roundtrip():
    store = MemoryStore()
    MappingWriter().write(store, "k", "v")
    assert MappingReader().read(store, "k") == "v"
    assert MappingReader().read(store, "missing") is None
    assert len(store) == 1


def test_http_store_put_get():
    session = FakeSession()
    store = HttpStore(BASE_URL, session=session)

    store.put("line 01", "hello world")
    assert session.calls[0] == ("PUT", f"{BASE_URL}/kv/line%2001")
    assert store.get("line 01") == "hello world"


def test_http_store_missing_key_is_none():
    store = HttpStore(BASE_URL, session=FakeSession())
    assert store.get("nope") is None


def test_http_store_unexpected_status():
    session = FakeSession()
    session.get = lambda url, timeout=None: FakeResponse(500, "boom")
    store = HttpStore(BASE_URL, session=session)

    with pytest.raises(StoreError) as exc_info:
        store.get("k")
    assert exc_info.value.status_code == 500


def test_http_store_transport_error():
    session = FakeSession()
    session.fail_with = requests.ConnectionError("refused")
    store = HttpStore(BASE_URL, session=session)

    with pytest.raises(StoreError):
        store.get("k")
    assert store.health() is False


def test_http_store_metrics_and_close():
    session = FakeSession()
    store = HttpStore(BASE_URL + "/", session=session)
    assert store.fetch_metrics() == "wal_bytes=42"
    store.close()
    assert session.closed


def test_http_store_session_per_thread(monkeypatch):
    created = []

    def fake_session():
        s = FakeSession()
        created.append(s)
        return s

    monkeypatch.setattr(requests, "Session", fake_session)
    store = HttpStore(BASE_URL)
    assert store.session is store.session
    store.put("a", "b")
    store.close()
    assert len(created) == 1
    assert created[0].closed


def test_http_store_utf8_roundtrip():
    session = FakeSession()
    store = HttpStore(BASE_URL, session=session)
    value = "café naïve résumé über straße"

    store.put("k", value)
    assert session.data["k"] == value.encode("utf-8")
    assert store.get("k") == value


def test_http_store_closes_sessions_of_finished_threads(monkeypatch):
    created = []

    def fake_session():
        s = FakeSession()
        created.append(s)
        return s

    monkeypatch.setattr(requests, "Session", fake_session)
    store = HttpStore(BASE_URL)

    t = threading.Thread(target=store.put, args=("a", "b"))
    t.start()
    t.join()
    assert len(created) == 1
    assert not created[0].closed

    # Opening a session on another thread reaps the finished thread's one
    store.put("c", "d")
    assert len(created) == 2
    assert created[0].closed
    assert not created[1].closed

    store.close()
    assert created[1].closed


def test_load_seed_data(tmp_path):
    seed = tmp_path / "seed.txt"
    seed.write_text("first line\n\nsecond line\r\nx\n", encoding="utf-8")

    assert load_seed_data(seed) == ("first line", "second line", "x")
    assert load_seed_data(seed, min_length=5) == ("first line", "second line")


def test_load_seed_data_empty(tmp_path):
    seed = tmp_path / "empty.txt"
    seed.write_text("\n\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_seed_data(seed)


def test_config_from_env():
    env = {
        "STORETEST_KEY_COUNT": "500",
        "STORETEST_DURATION": "1.5",
        "STORETEST_BASE_URL": "http://kv:9000",
    }
    config = RunConfig.from_env(env, readers=8, writers=None)

    assert config.key_count == 500
    assert config.duration == 1.5
    assert config.readers == 8
    assert config.writers == 1
    assert config.resolved_base_url() == "http://kv:9000"


def test_config_validation():
    with pytest.raises(ValueError):
        RunConfig(hit_percent=120)
    with pytest.raises(ValueError):
        RunConfig(key_count=0)
