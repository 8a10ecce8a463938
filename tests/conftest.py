import pytest
import sys
from pathlib import Path

# Ensure src/ is in the python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from devbroker.config.properties import PropertySource
from devbroker.runtime.container import RunningContainer
from devbroker.runtime.shutdown import CloseTaskNotifier


class FakeContainerRuntime:
    """In-memory container runtime that records launches and releases."""

    def __init__(self, available=True):
        self.available = available
        self.failure = None
        self.requests = []
        self.released = []
        self.availability_checks = 0
        self._next_port = 41000

    def availability(self):
        self.availability_checks += 1
        return self.available

    def run(self, request):
        if self.failure is not None:
            raise self.failure
        self.requests.append(request)
        port = request.fixed_port or self._next_port
        self._next_port += 1
        return RunningContainer(host="localhost", port=port, release=lambda: self.released.append(port))

    @property
    def started(self):
        return len(self.requests)


def make_properties(values=None, environ=None):
    """PropertySource isolated from the real process environment."""
    return PropertySource(values or {}, environ=environ or {})


AMQP_CHANNEL = {"mp.messaging.incoming.prices.connector": "smallrye-amqp"}


@pytest.fixture
def runtime():
    return FakeContainerRuntime()


@pytest.fixture
def exit_notifier():
    """Stands in for process exit; call close() to simulate the interpreter shutting down."""
    return CloseTaskNotifier()


@pytest.fixture
def amqp_properties():
    return make_properties(AMQP_CHANNEL)


@pytest.fixture
def root_dir(tmp_path):
    """
    Returns a temporary directory to act as the application root for tests.
    """
    return tmp_path
