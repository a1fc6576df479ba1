"""
Tests for PrintService (service.py).
"""

import threading

import pytest

from label_print_service.errors import (
    BatchAlreadyRunningError,
    BridgeUnavailableError,
    MissingFieldsError,
    ValidationError,
)
from label_print_service.models import DELIVERED, LabelTemplate
from label_print_service.service import record_variables


def records(count):
    return [{'id': f'rec-{i}', 'sku': f'SKU{i}', 'title': f'Card {i}', 'price': i} for i in range(count)]


class TestRecordVariables:

    def test_conventional_fields(self, record):
        variables = record_variables(record)
        assert variables['CARDNAME'] == 'Charizard Base Set Holo'
        assert variables['PRICE'] == '$349.99'
        assert variables['SKU'] == 'ABC123'
        assert variables['BARCODE'] == 'ABC123'
        assert variables['CONDITION'] == 'NM'
        assert variables['sku'] == 'ABC123'

    def test_record_keys_win(self):
        assert record_variables({'PRICE': 'FREE', 'price': 3})['PRICE'] == 'FREE'

    def test_defaults(self):
        variables = record_variables({'id': 'r1'})
        assert variables['CARDNAME'] == 'Unknown'
        assert variables['CONDITION'] == 'NM'
        assert variables['BARCODE'] == 'r1'
        assert variables['PRICE'] == ''


class TestRendering:

    def test_render_label(self, service):
        code = service.render_label({'SKU': 'ABC', 'CARDNAME': 'Mew'})
        assert code.startswith('^XA')
        assert '^FDMew^FS' in code

    def test_render_label_missing_required(self, service):
        with pytest.raises(MissingFieldsError):
            service.render_label({'CARDNAME': 'Mew'})

    def test_compile_record(self, service, record):
        code = service.compile_record(record, quantity=2)
        assert '^PQ2,0,1,Y' in code

    def test_preview_record(self, service, record):
        assert service.preview_record(record).startswith(b'\x89PNG')


class TestSubmitDirect:

    def test_small_batch_enqueued_directly(self, service, bridge, registry):
        result = service.submit('Zebra ZD410', records(2), quantity=2)

        assert result['mode'] == 'direct'
        assert len(result['jobs']) == 2
        assert registry.get('Zebra ZD410').drain(timeout=5)
        assert len(bridge.sent) == 2
        assert all('^PQ2,0,1,Y' in code for _, code in bridge.sent)

    def test_jobs_share_batch_id(self, service, registry):
        result = service.submit('Zebra ZD410', records(3))
        assert {job['batch_id'] for job in result['jobs']} == {result['batch_id']}

    def test_layout_mode(self, service, bridge, registry, record):
        service.submit('Zebra ZD410', [record], layout=True)
        assert registry.get('Zebra ZD410').drain(timeout=5)
        assert '^BCN,' in bridge.sent[0][1]

    def test_tspl_template_quantity(self, service, template_store, bridge, registry):
        template_store.save(LabelTemplate(
            id='TSC', name='TSC tag',
            body='SIZE 50.8 mm,25.4 mm\r\nCLS\r\nTEXT 10,10,"0",0,8,8,"{{SKU}}"\r\nPRINT 1,1',
        ))
        service.submit('TSC TE200', records(1), template_id='TSC', quantity=4)
        assert registry.get('TSC TE200').drain(timeout=5)
        assert bridge.sent[0][1].endswith('PRINT 1,4')

    def test_mark_printed_after_delivery(self, service, wait_until):
        service.submit('Zebra ZD410', records(2), mark_printed=True)
        assert wait_until(lambda: len(service.inventory.printed) == 2)
        assert set(service.inventory.printed) == {'rec-0', 'rec-1'}


class TestSubmitValidation:

    def test_bad_record_rejects_whole_submission(self, service, bridge, registry):
        bad = records(2) + [{'id': 'no-sku', 'title': 'Missing SKU'}]
        with pytest.raises(MissingFieldsError):
            service.submit('Zebra ZD410', bad)
        assert 'Zebra ZD410' not in registry
        assert bridge.sent == []

    @pytest.mark.parametrize('printer,items,quantity', [
        ('', records(1), 1),
        ('Zebra ZD410', [], 1),
        ('Zebra ZD410', records(1), 0),
    ])
    def test_invalid_input(self, service, printer, items, quantity):
        with pytest.raises(ValidationError):
            service.submit(printer, items, quantity=quantity)

    def test_unreachable_bridge(self, service, bridge, registry):
        bridge.reachable = False
        with pytest.raises(BridgeUnavailableError):
            service.submit('Zebra ZD410', records(1))
        assert 'Zebra ZD410' not in registry

    def test_direct_submission_is_admitted_whole(self, service, bridge, registry, monkeypatch):
        # Connection drops right after the upfront check
        answers = iter([True])
        monkeypatch.setattr(bridge, 'is_connected', lambda: next(answers, False))

        result = service.submit('Zebra ZD410', records(3))

        assert len(result['jobs']) == 3
        assert registry.get('Zebra ZD410').drain(timeout=5)
        assert len(bridge.sent) == 3


class TestSubmitBatch:

    def test_large_submission_runs_as_batch(self, service):
        results = []
        result = service.submit('Zebra ZD410', records(5), on_complete=results.append)
        service.batch_runner.join(timeout=10)

        assert result['mode'] == 'batch'
        assert result['total'] == 5
        assert results[0].success == 5
        assert results[0].failed == 0

    def test_dead_lettered_job_counts_as_failed(self, service, bridge, registry):
        bridge.fail(3)
        results = []
        service.submit('Zebra ZD410', records(5), on_complete=results.append)
        service.batch_runner.join(timeout=10)

        assert results[0].success == 4
        assert results[0].failed == 1
        assert len(registry.get('Zebra ZD410').get_dead_letter_queue()) == 1
        assert results[0].errors[0]['error'] == 'Printer offline'

    def test_bridge_outage_mid_batch_is_dead_lettered(self, service, bridge, registry):
        bridge.fail(6)
        send = bridge.send

        def dropping_send(printer_name, device_code):
            result = send(printer_name, device_code)
            if not result.get('success'):
                bridge._connected = False
                bridge.reachable = False
            return result

        bridge.send = dropping_send
        results = []
        service.submit('Zebra ZD410', records(5), on_complete=results.append)
        service.batch_runner.join(timeout=10)

        assert results[0].success == 3
        assert results[0].failed == 2
        assert [e['error'] for e in results[0].errors] == ['Printer offline'] * 2
        dead = registry.get('Zebra ZD410').get_dead_letter_queue()
        assert sum(len(entry.jobs) for entry in dead) == 2

    def test_mark_printed_only_delivered(self, service, bridge):
        bridge.fail(3)
        service.submit('Zebra ZD410', records(4), mark_printed=True)
        service.batch_runner.join(timeout=10)

        assert set(service.inventory.printed) == {'rec-1', 'rec-2', 'rec-3'}

    def test_second_batch_rejected(self, service, bridge):
        bridge.gate = threading.Event()
        try:
            service.submit('Zebra ZD410', records(4))
            with pytest.raises(BatchAlreadyRunningError):
                service.submit('Zebra ZD410', records(4))
        finally:
            bridge.gate.set()
        service.batch_runner.join(timeout=10)


class TestInventory:

    def test_mark_printed_explicit(self, service):
        assert service.mark_printed(['a', None, '', 'b']) == 2
        assert set(service.inventory.printed) == {'a', 'b'}

    def test_mark_printed_nothing(self, service):
        assert service.mark_printed([]) == 0

    def test_queue_never_marks_printed(self, service, registry):
        service.submit('Zebra ZD410', records(2))
        assert registry.get('Zebra ZD410').drain(timeout=5)
        assert service.inventory.printed == {}

    def test_delivered_status(self, service, registry):
        result = service.submit('Zebra ZD410', records(1))
        queue = registry.get('Zebra ZD410')
        (job,) = queue.pending() or queue.delivered()
        assert job.id == result['jobs'][0]['id']
        assert queue.wait(job, timeout=5) == DELIVERED
