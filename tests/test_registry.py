"""
Tests for QueueRegistry (delivery/registry.py).
"""

import re
import threading
from unittest.mock import MagicMock

import pytest
import requests

from label_print_service.bridge import HttpBridgeClient
from label_print_service.delivery import QueueRegistry
from label_print_service.errors import DeadLetterNotFoundError
from label_print_service.models import DELIVERED, PrintJob

CODE = '^XA^FDX^FS^XZ'


class TestQueueRegistry:

    def test_one_queue_per_printer(self, registry):
        first = registry.get('Zebra A')
        assert registry.get('Zebra A') is first
        assert registry.get('Zebra B') is not first
        assert 'Zebra A' in registry
        assert 'Zebra C' not in registry

    def test_queue_options_are_passed(self, registry):
        assert registry.get('Zebra A').max_attempts == 3
        assert registry.get('Zebra A').bridge is registry.bridge

    def test_stats(self, registry):
        registry.get('Zebra A')
        registry.get('Zebra B')
        assert sorted(s['printer'] for s in registry.stats()) == ['Zebra A', 'Zebra B']

    def test_dead_letters_across_printers(self, bridge, registry):
        bridge.fail(6)
        for name in ('Zebra A', 'Zebra B'):
            queue = registry.get(name)
            queue.enqueue(PrintJob(payload=CODE))
            assert queue.drain(timeout=5)

        entries = registry.dead_letters()
        assert [printer for printer, _ in entries] == ['Zebra A', 'Zebra B']

    def test_retry_and_discard_by_id(self, bridge, registry):
        bridge.fail(6)
        for name in ('Zebra A', 'Zebra B'):
            queue = registry.get(name)
            queue.enqueue(PrintJob(payload=CODE))
            assert queue.drain(timeout=5)
        (_, entry_a), (_, entry_b) = registry.dead_letters()

        (job,) = registry.retry_dead_letter(entry_b.id)
        assert registry.get('Zebra B').wait(job, timeout=5) == DELIVERED
        assert registry.discard_dead_letter(entry_a.id) is entry_a
        assert registry.dead_letters() == []

    def test_clear_all(self, bridge, registry):
        bridge.fail(3)
        queue = registry.get('Zebra A')
        queue.enqueue(PrintJob(payload=CODE))
        assert queue.drain(timeout=5)

        assert registry.clear_dead_letters() == 1
        assert registry.clear_dead_letters() == 0

    def test_unknown_entry(self, registry):
        with pytest.raises(DeadLetterNotFoundError):
            registry.retry_dead_letter('DLQ-MISSING')


class TestSharedBridge:
    """Queues for several printers writing through one bridge."""

    PRINTERS = ('Zebra A', 'Zebra B')
    PRODUCERS = 2
    JOBS = 10

    def test_concurrent_enqueues_keep_order_and_never_overlap(self, no_backoff):
        state = {'active': 0, 'overlaps': 0}
        state_lock = threading.Lock()
        sent = []
        hold = threading.Event()

        def request(method, url, **kwargs):
            with state_lock:
                state['active'] += 1
                if state['active'] > 1:
                    state['overlaps'] += 1
            hold.wait(0.002)
            sent.append((kwargs['json']['printerName'], kwargs['json']['zplData']))
            with state_lock:
                state['active'] -= 1
            resp = MagicMock()
            resp.status_code = 200
            resp.json.return_value = {'success': True}
            return resp

        session = MagicMock(spec=requests.Session)
        session.request.side_effect = request
        queues = QueueRegistry(HttpBridgeClient('http://127.0.0.1:17777', session=session),
                               backoff=no_backoff)
        start = threading.Barrier(len(self.PRINTERS) * self.PRODUCERS)

        def produce(printer, producer):
            start.wait(5)
            queue = queues.get(printer)
            for n in range(self.JOBS):
                queue.enqueue(PrintJob(payload=f'^XA^FD{producer}|{n}^FS^XZ'))

        threads = [threading.Thread(target=produce, args=(printer, producer))
                   for printer in self.PRINTERS for producer in range(self.PRODUCERS)]
        try:
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(5)
            for printer in self.PRINTERS:
                assert queues.get(printer).drain(timeout=10)
        finally:
            queues.close()

        assert len(sent) == len(self.PRINTERS) * self.PRODUCERS * self.JOBS
        assert state['overlaps'] == 0
        for printer in self.PRINTERS:
            for producer in range(self.PRODUCERS):
                order = [int(re.search(r'\|(\d+)\^', code).group(1)) for name, code in sent
                         if name == printer and code.startswith(f'^XA^FD{producer}|')]
                assert order == list(range(self.JOBS))
