"""Pytest configuration for tests.

No sys.path hacks - tests import the installed hashsync package.
A live Redis server is never needed: Redis gateway tests use mock clients.
"""

import threading

import pytest

from hashsync.gateway.memory import InMemoryGateway
from hashsync.synchronizer import BoundedHashSynchronizer


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run concurrency stress runs (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


class RecordingGateway(InMemoryGateway):
    """InMemoryGateway that records every call by method name."""

    WRITES = frozenset({
        "hash_set_all", "hash_set_field", "hash_increment_field",
        "hash_increment_bounded", "hash_delete_fields", "set", "incr",
        "expire", "delete",
    })

    def __init__(self):
        super().__init__()
        self.calls = []
        self._calls_lock = threading.Lock()

    def __getattribute__(self, name):
        attr = super().__getattribute__(name)
        if name.startswith("hash_") or name in ("get", "set", "incr", "expire", "delete", "exists", "ttl"):
            calls = super().__getattribute__("calls")
            lock = super().__getattribute__("_calls_lock")

            def recorded(*args, **kwargs):
                with lock:
                    calls.append((name, args))
                return attr(*args, **kwargs)
            return recorded
        return attr

    def names(self):
        return [name for name, _ in self.calls]

    def writes(self):
        return [name for name, _ in self.calls if name in self.WRITES]


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def recording_gateway():
    return RecordingGateway()


@pytest.fixture
def sync(gateway):
    return BoundedHashSynchronizer(gateway)


@pytest.fixture
def strict_sync(gateway):
    return BoundedHashSynchronizer(gateway, strict=True)
