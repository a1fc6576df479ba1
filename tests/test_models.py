"""
Tests for the job models (models/job.py).
"""

from datetime import datetime

import pytest

from label_print_service.models import DEAD_LETTERED, DELIVERED, QUEUED, DeadLetterEntry, PrintJob


class TestPrintJob:

    def test_defaults(self):
        job = PrintJob(payload='^XA^XZ')
        assert job.id.startswith('JOB-')
        assert job.status == QUEUED
        assert job.attempts == 0

    def test_unique_ids(self):
        assert len({PrintJob().id for _ in range(50)}) == 50

    @pytest.mark.parametrize('name', ['id', 'payload'])
    def test_identity_and_payload_are_immutable(self, name):
        job = PrintJob(payload='^XA^XZ')
        with pytest.raises(AttributeError):
            setattr(job, name, 'changed')

    def test_record_failure(self):
        job = PrintJob(payload='^XA^XZ')
        job.record_failure('Paper out')
        job.record_failure('Head open')
        assert job.attempts == 2
        assert job.last_error == 'Head open'

    def test_deliver(self):
        job = PrintJob(payload='^XA^XZ')
        job.record_failure('Paper out')
        when = datetime(2024, 5, 1, 12, 0)
        job.deliver(when)
        assert job.status == DELIVERED
        assert job.delivered_at == when
        assert job.last_error is None

    def test_fresh_copy(self):
        job = PrintJob(payload='^XA^XZ', quantity=3, batch_id='B1', printer_name='Zebra')
        job.record_failure('Paper out')
        job.dead_letter()

        copy = job.fresh_copy()

        assert copy.id != job.id
        assert copy.payload == job.payload
        assert copy.quantity == 3
        assert copy.batch_id == 'B1'
        assert copy.printer_name == 'Zebra'
        assert copy.status == QUEUED
        assert copy.attempts == 0
        assert copy.last_error is None
        assert copy.source == 'dead_letter_retry'
        assert job.status == DEAD_LETTERED

    def test_dict_round_trip(self):
        job = PrintJob(payload='^XA^XZ', batch_id='B1')
        job.deliver(datetime(2024, 5, 1, 12, 0))

        data = job.to_dict()
        assert data['delivered_at'] == '2024-05-01T12:00:00'

        restored = PrintJob.from_dict(data)
        assert restored.id == job.id
        assert restored.delivered_at == job.delivered_at
        assert restored.status == DELIVERED


class TestDeadLetterEntry:

    def test_to_dict(self):
        job = PrintJob(payload='^XA^XZ')
        entry = DeadLetterEntry(jobs=[job], error='Paper out', timestamp=datetime(2024, 5, 1))

        data = entry.to_dict()

        assert data['id'].startswith('DLQ-')
        assert data['error'] == 'Paper out'
        assert data['timestamp'] == '2024-05-01T00:00:00'
        assert data['jobs'][0]['id'] == job.id
