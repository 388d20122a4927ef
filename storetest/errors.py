class StoreTestError(Exception):
    pass


class StoreError(StoreTestError):
    """Unexpected response from a store."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class WorkerError(StoreTestError):
    """A worker thread stopped because its store call raised."""

    def __init__(self, worker_name, cause):
        super().__init__(f"{worker_name} failed: {cause!r}")
        self.worker_name = worker_name
        self.cause = cause
