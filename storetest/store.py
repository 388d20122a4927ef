"""Store capabilities used by the harness.

The harness never looks inside a store. It only calls a reader's
``read(store, key)`` and a writer's ``write(store, key, value)``. Both must
tolerate concurrent calls from many worker threads.
"""

import threading
from typing import Optional, Protocol
from urllib.parse import quote

import requests

from .errors import StoreError

BASE_URL = "http://localhost:8080"


class StoreReader(Protocol):
    def read(self, store, key: str) -> Optional[str]:
        ...


class StoreWriter(Protocol):
    def write(self, store, key: str, value: str) -> None:
        ...


class MappingReader:
    """Reader for any store with a ``get(key)`` returning None on a miss."""

    def read(self, store, key):
        return store.get(key)


class MappingWriter:
    def write(self, store, key, value):
        store.put(key, value)


class MemoryStore:
    """Thread-safe dict-backed store, handy for dry runs and tests."""

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def put(self, key, value):
        with self._lock:
            self._data[key] = value

    def __len__(self):
        with self._lock:
            return len(self._data)


class HttpStore:
    """Client for a service exposing ``GET``/``PUT /kv/{key}``.

    Without an explicit session every worker thread gets its own
    ``requests.Session`` so connection pools are never shared. Sessions of
    threads that have exited are closed as new ones are opened.
    """

    def __init__(self, base_url=BASE_URL, session=None, timeout=10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._local = threading.local()
        self._sessions = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self):
        if self._session is not None:
            return self._session
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            self._local.session = s
            with self._sessions_lock:
                self._prune_sessions()
                self._sessions.append((threading.current_thread(), s))
        return s

    def _prune_sessions(self):
        live = []
        for owner, s in self._sessions:
            if owner.is_alive():
                live.append((owner, s))
            else:
                s.close()
        self._sessions = live

    def _url(self, key):
        return f"{self.base_url}/kv/{quote(key, safe='')}"

    def get(self, key):
        try:
            resp = self.session.get(self._url(key), timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"GET {key!r} failed: {e}") from e

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise StoreError(f"GET {key!r} returned {resp.status_code}: {resp.text}", resp.status_code)
        # Values go out as UTF-8, so decode the same way regardless of charset
        return resp.content.decode("utf-8")

    def put(self, key, value):
        try:
            resp = self.session.put(self._url(key), data=value.encode("utf-8"), timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"PUT {key!r} failed: {e}") from e

        if resp.status_code != 200:
            raise StoreError(f"PUT {key!r} returned {resp.status_code}: {resp.text}", resp.status_code)

    def health(self):
        try:
            resp = self.session.get(f"{self.base_url}/kv/health", timeout=1)
        except requests.RequestException:
            return False
        return resp.status_code == 200

    def fetch_metrics(self):
        resp = self.session.get(f"{self.base_url}/kv/metrics", timeout=self.timeout)
        if resp.status_code != 200:
            raise StoreError(f"Failed to get metrics: {resp.status_code}", resp.status_code)
        return resp.text

    def close(self):
        if self._session is not None:
            self._session.close()
        with self._sessions_lock:
            for _, s in self._sessions:
                s.close()
            self._sessions.clear()
