"""
Print Service
=============

Ties the compiler, template store, delivery queues and batch runner
together for callers that think in inventory records rather than device
programs.

Usage:
    service = PrintService.from_config()
    service.submit('Zebra ZD410', [{'id': 'r1', 'sku': 'ABC123', 'price': 4.5}])
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .batch import BatchPrintRunner, BatchResult
from .bridge import create_bridge
from .bridge.base import BaseBridgeClient
from .compiler import get_dialect, render, validate_device_code
from .compiler.layout import LabelData, compile_layout, compute_layout
from .compiler.preview import render_preview
from .config import BRIDGE_KIND, BRIDGE_TIMEOUT, BRIDGE_URL, DIRECT_PRINT_LIMIT
from .delivery import BackoffPolicy, QueueRegistry
from .errors import BridgeUnavailableError, PrintServiceError, ValidationError
from .models.job import DELIVERED, PrintJob
from .models.template import LabelTemplate
from .templates import JsonTemplateStore, TemplateStore, check_required_fields, resolve_template

logger = logging.getLogger(__name__)


class InventoryStore(ABC):
    """Where printed records get their printed status."""

    @abstractmethod
    def mark_printed(self, record_ids: List[str], printed_at: datetime) -> int:
        """Returns how many records were updated."""
        pass


class InMemoryInventoryStore(InventoryStore):

    def __init__(self):
        self.printed: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def mark_printed(self, record_ids: List[str], printed_at: datetime) -> int:
        with self._lock:
            for record_id in record_ids:
                self.printed[record_id] = printed_at
        return len(record_ids)


def _format_price(value: Any) -> str:
    if value in (None, ''):
        return ''
    try:
        return f'${float(value):.2f}'
    except (TypeError, ValueError):
        return str(value)


def record_variables(record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Template variables for an inventory record.

    The record's own keys pass through unchanged; the conventional label
    placeholders are filled from the usual record fields when absent.
    """
    variables = dict(record)
    defaults = {
        'CARDNAME': record.get('title') or record.get('subject') or record.get('brand_title') or 'Unknown',
        'SETNAME': record.get('brand_title') or '',
        'CARDNUMBER': record.get('card_number') or '',
        'CONDITION': record.get('condition') or record.get('grade') or record.get('variant') or 'NM',
        'PRICE': _format_price(record.get('price')),
        'SKU': record.get('sku') or '',
        'BARCODE': record.get('barcode') or record.get('sku') or record.get('id') or '',
        'VENDOR': record.get('vendor') or '',
        'YEAR': record.get('year') or '',
        'CATEGORY': record.get('category') or record.get('main_category') or '',
    }
    for key, value in defaults.items():
        variables.setdefault(key, value)
    return variables


class PrintService:
    """Record-level printing on top of the delivery queues."""

    def __init__(self, template_store: TemplateStore, queues: QueueRegistry,
                 bridge: Optional[BaseBridgeClient] = None,
                 batch_runner: Optional[BatchPrintRunner] = None,
                 direct_limit: int = DIRECT_PRINT_LIMIT,
                 inventory: Optional[InventoryStore] = None,
                 wait_timeout: Optional[float] = None):
        """
        Args:
            template_store: Label templates
            queues: Per-printer delivery queues
            bridge: Transport; defaults to the queues' bridge
            batch_runner: Runs submissions larger than direct_limit
            direct_limit: Largest submission enqueued directly
            inventory: Receives printed-status updates
            wait_timeout: Longest a batch item waits for its delivery
        """
        self.templates = template_store
        self.queues = queues
        self.bridge = bridge or queues.bridge
        self.batch_runner = batch_runner or BatchPrintRunner()
        self.direct_limit = direct_limit
        self.inventory = inventory or InMemoryInventoryStore()
        self.wait_timeout = wait_timeout

    @classmethod
    def from_config(cls, template_path: Optional[str] = None) -> 'PrintService':
        """Build a service from the environment configuration."""
        if BRIDGE_KIND == 'http':
            bridge = create_bridge('http', base_url=BRIDGE_URL, timeout=BRIDGE_TIMEOUT)
        else:
            bridge = create_bridge(BRIDGE_KIND, timeout=BRIDGE_TIMEOUT)
        queues = QueueRegistry(bridge, backoff=BackoffPolicy())
        return cls(JsonTemplateStore(template_path), queues, bridge=bridge)

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_label(self, variables: Mapping[str, Any], template_name: Optional[str] = None,
                     template_id: Optional[str] = None) -> str:
        """
        Render a stored template.

        Raises:
            TemplateNotFoundError, EmptyTemplateError, MissingFieldsError
        """
        template = resolve_template(self.templates, template_name, template_id)
        check_required_fields(template, variables)
        return render(template, variables)

    def compile_record(self, record: Mapping[str, Any], quantity: int = 1,
                       dialect: Optional[str] = None) -> str:
        """Compile a record with the three-zone layout."""
        return compile_layout(LabelData.from_record(record), quantity, dialect)

    def preview_record(self, record: Mapping[str, Any], show_guides: bool = True) -> bytes:
        """PNG proof of a record's three-zone layout."""
        return render_preview(compute_layout(LabelData.from_record(record)), show_guides)

    def _compile(self, record: Mapping[str, Any], template: Optional[LabelTemplate],
                 quantity: int, dialect: Optional[str]) -> str:
        if template is None:
            code = self.compile_record(record, quantity, dialect)
        else:
            variables = record_variables(record)
            check_required_fields(template, variables)
            code = get_dialect(template.device_format).with_quantity(render(template, variables), quantity)
        return validate_device_code(code, require_quantity=True)

    # =========================================================================
    # Printers
    # =========================================================================

    def list_printers(self) -> List[str]:
        return self.bridge.list_printers()

    def printer_status(self, printer_name: str) -> Dict[str, Any]:
        return self.bridge.get_status(printer_name)

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self, printer_name: str, records: Iterable[Mapping[str, Any]],
               template_name: Optional[str] = None, template_id: Optional[str] = None,
               quantity: int = 1, layout: bool = False, dialect: Optional[str] = None,
               mark_printed: bool = False,
               on_complete: Optional[Callable[[BatchResult], None]] = None) -> Dict[str, Any]:
        """
        Compile and queue labels for ``records``.

        Every record is compiled and validated, and the bridge checked once,
        before anything is queued, so a bad record or an unreachable bridge
        rejects the whole submission. Once admitted, bridge outages are
        handled by the queue's retries and dead-letter store. Submissions up to
        ``direct_limit`` records are enqueued directly; larger ones run on
        the batch runner in the background.

        Args:
            printer_name: Destination printer
            records: Inventory records
            template_name: Stored template to render; default template if
                neither name nor id is given
            template_id: Stored template id
            quantity: Copies per label
            layout: Use the three-zone layout instead of a stored template
            dialect: Device format for the layout
            mark_printed: Mark delivered records as printed
            on_complete: Called with the batch result (batch mode only)

        Raises:
            ValidationError: Bad input, template or program
            BatchAlreadyRunningError: Batch mode while a batch is running
            BridgeUnavailableError: Bridge cannot be reached
        """
        records = list(records)
        if not printer_name:
            raise ValidationError('No printer selected')
        if not records:
            raise ValidationError('No records to print')
        if quantity < 1:
            raise ValidationError('Quantity must be at least 1')

        template = None if layout else resolve_template(self.templates, template_name, template_id)

        batch_id = f"BATCH-{str(uuid.uuid4())[:8].upper()}"
        direct = len(records) <= self.direct_limit
        jobs: List[Tuple[Mapping[str, Any], PrintJob]] = []
        for record in records:
            job = PrintJob(
                payload=self._compile(record, template, quantity, dialect),
                quantity=quantity,
                printer_name=printer_name,
                batch_id=batch_id,
                source='api' if direct else 'batch',
            )
            jobs.append((record, job))

        if not self.bridge.is_connected():
            result = self.bridge.connect()
            if not result.get('success'):
                raise BridgeUnavailableError(result.get('error', ''))

        queue = self.queues.get(printer_name)

        if direct:
            queue.enqueue_many([job for _, job in jobs])
            if mark_printed:
                threading.Thread(
                    target=self._mark_when_delivered, args=(queue, jobs),
                    name=f'mark-printed-{batch_id}', daemon=True,
                ).start()
            logger.info("Queued %d label(s) for %s (%s)", len(jobs), printer_name, batch_id)
            return {
                'mode': 'direct',
                'batch_id': batch_id,
                'printer': printer_name,
                'jobs': [job.to_dict() for _, job in jobs],
            }

        def print_one(pair):
            _, job = pair
            # Programs were validated above; bridge outages from here on are
            # retried and dead-lettered by the queue
            queue.enqueue(job)
            status = queue.wait(job, self.wait_timeout)
            if status != DELIVERED:
                raise PrintServiceError(job.last_error or f'Label not delivered ({status})')
            return True

        def finished(result: BatchResult):
            if mark_printed:
                self._mark_delivered(jobs)
            if on_complete:
                on_complete(result)

        self.batch_runner.start(jobs, print_one, on_complete=finished)
        logger.info("Started batch %s: %d label(s) for %s", batch_id, len(jobs), printer_name)
        return {
            'mode': 'batch',
            'batch_id': batch_id,
            'printer': printer_name,
            'total': len(jobs),
        }

    # =========================================================================
    # Inventory
    # =========================================================================

    def mark_printed(self, record_ids: Iterable[str]) -> int:
        """Record printed status for ``record_ids``. Always an explicit call."""
        record_ids = [str(r) for r in record_ids if r not in (None, '')]
        if not record_ids:
            return 0
        updated = self.inventory.mark_printed(record_ids, datetime.now())
        logger.info("Marked %d record(s) as printed", updated)
        return updated

    def _mark_delivered(self, jobs: List[Tuple[Mapping[str, Any], PrintJob]]) -> int:
        return self.mark_printed(record.get('id') for record, job in jobs if job.status == DELIVERED)

    def _mark_when_delivered(self, queue, jobs: List[Tuple[Mapping[str, Any], PrintJob]]):
        for _, job in jobs:
            queue.wait(job, self.wait_timeout)
        self._mark_delivered(jobs)

    def close(self):
        self.queues.close()
