"""
Pytest fixtures for the label print service test suite.

The fake bridge is scriptable: each send pops the next scripted outcome
(a result dict, or an exception to raise) and succeeds once the script is
empty.
"""

import sys
import threading
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to path so tests run without installing the package
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from label_print_service.batch import BatchPrintRunner  # noqa: E402
from label_print_service.bridge.base import BaseBridgeClient  # noqa: E402
from label_print_service.delivery import BackoffPolicy, DeliveryQueue, QueueRegistry  # noqa: E402
from label_print_service.service import InMemoryInventoryStore, PrintService  # noqa: E402
from label_print_service.templates import DEFAULT_TEMPLATE, InMemoryTemplateStore  # noqa: E402


class FakeBridge(BaseBridgeClient):
    """In-memory bridge recording every program it is sent."""

    def __init__(self, reachable: bool = True, printers: List[str] = None):
        super().__init__()
        self.reachable = reachable
        self.printers = printers or ['Zebra ZD410']
        self.script: List[Any] = []
        self.sent: List[tuple] = []
        self.connect_calls = 0
        self.gate = None  # threading.Event; sends block until it is set

    def fail(self, times: int, error: str = 'Printer offline'):
        self.script.extend({'success': False, 'error': error} for _ in range(times))

    def connect(self) -> Dict[str, Any]:
        self.connect_calls += 1
        self._connected = self.reachable
        if not self.reachable:
            return {'success': False, 'error': 'Cannot connect to bridge'}
        return {'success': True}

    def list_printers(self) -> List[str]:
        return list(self.printers)

    def send(self, printer_name: str, device_code: str) -> Dict[str, Any]:
        if self.gate is not None:
            self.gate.wait(5)
        with self._send_lock:
            self.sent.append((printer_name, device_code))
            outcome = self.script.pop(0) if self.script else {'success': True}
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_status(self, printer_name: str) -> Dict[str, Any]:
        return {'success': True, 'printer': printer_name, 'status': 'ready'}


@pytest.fixture
def bridge():
    return FakeBridge()


@pytest.fixture
def no_backoff():
    return BackoffPolicy(base_seconds=0)


@pytest.fixture
def make_queue(bridge, no_backoff):
    """Factory for queues on the fake bridge; all are closed after the test."""
    created = []

    def factory(printer_name='Zebra ZD410', **options):
        options.setdefault('backoff', no_backoff)
        queue = DeliveryQueue(bridge, printer_name, **options)
        created.append(queue)
        return queue

    yield factory

    for queue in created:
        queue.close()


@pytest.fixture
def registry(bridge, no_backoff):
    queues = QueueRegistry(bridge, backoff=no_backoff)
    yield queues
    queues.close()


@pytest.fixture
def template_store():
    return InMemoryTemplateStore([DEFAULT_TEMPLATE])


@pytest.fixture
def service(bridge, registry, template_store):
    return PrintService(
        template_store,
        registry,
        bridge=bridge,
        batch_runner=BatchPrintRunner(),
        direct_limit=3,
        inventory=InMemoryInventoryStore(),
        wait_timeout=5,
    )


@pytest.fixture
def record():
    return {
        'id': 'rec-1',
        'sku': 'ABC123',
        'title': 'Charizard Base Set Holo',
        'price': 349.99,
        'condition': 'NM',
    }


def _wait_until(predicate, timeout=5.0, interval=0.01):
    """Poll ``predicate`` until it is true or the timeout passes."""
    done = threading.Event()
    waited = 0.0
    while waited < timeout:
        if predicate():
            return True
        done.wait(interval)
        waited += interval
    return predicate()


@pytest.fixture
def wait_until():
    return _wait_until
