"""
Label Print Service - HTTP API
==============================

Local service the POS front end talks to.

Run: python -m label_print_service
"""

import platform
import socket
import sys
from datetime import datetime
from io import BytesIO
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS

from . import __version__
from .config import DEVICE_FORMATS
from .errors import (
    BatchAlreadyRunningError,
    BridgeUnavailableError,
    DeadLetterNotFoundError,
    PrintServiceError,
    ValidationError,
)
from .models.template import LabelTemplate
from .service import PrintService

api = Blueprint('api', __name__)


def _service() -> PrintService:
    return current_app.extensions['print_service']


def _body():
    """JSON request body, or None."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _required_body():
    data = _body()
    if not data:
        raise ValidationError('Request body required')
    return data


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@api.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'Label Print Service',
        'version': __version__,
        'status': 'running',
        'endpoints': {
            'health': '/health',
            'printers': '/api/printers',
            'templates': '/api/templates',
            'render': '/api/render',
            'preview': '/api/preview',
            'print': '/api/print',
            'queues': '/api/queues',
            'dead_letter': '/api/dead-letter',
            'batch': '/api/batch',
        }
    })


@api.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    service = _service()
    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': socket.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'bridge_connected': service.bridge.is_connected(),
        'queues': len(service.queues.queues()),
        'batch_running': service.batch_runner.running,
        'timestamp': datetime.now().isoformat(),
    })


# =============================================================================
# Printers
# =============================================================================

@api.route('/api/printers', methods=['GET'])
def list_printers():
    """Printers reachable through the bridge."""
    printers = _service().list_printers()
    return jsonify({
        'success': True,
        'printers': printers,
        'count': len(printers),
    })


@api.route('/api/printers/<path:printer_name>/status', methods=['GET'])
def printer_status(printer_name):
    """Live printer status from the bridge."""
    return jsonify(_service().printer_status(printer_name))


# =============================================================================
# Templates
# =============================================================================

@api.route('/api/templates', methods=['GET'])
def list_templates():
    templates = _service().templates.list()
    return jsonify({
        'success': True,
        'templates': [t.to_dict() for t in templates],
        'count': len(templates),
    })


@api.route('/api/templates', methods=['POST'])
def add_template():
    """Store a label template."""
    data = _required_body()

    if not data.get('name'):
        raise ValidationError('Template name required')
    if not (data.get('body') or '').strip():
        raise ValidationError('Template body required')
    if data.get('format') and data['format'] not in DEVICE_FORMATS:
        raise ValidationError(f'Invalid format. Valid: {list(DEVICE_FORMATS.keys())}')

    fields = {key: data[key] for key in ('id', 'name', 'body', 'is_default', 'required_fields', 'format')
              if key in data}
    template = _service().templates.save(LabelTemplate.from_dict(fields))

    return jsonify({
        'success': True,
        'template': template.to_dict(),
        'message': 'Template saved',
    }), 201


# =============================================================================
# Rendering
# =============================================================================

@api.route('/api/render', methods=['POST'])
def render_label():
    """
    Render a device program without printing.

    Body: {"variables": {...}, "template_name": "..."} for a stored template,
    or {"record": {...}, "layout": true, "quantity": 1, "dialect": "zpl"}
    for the three-zone layout.
    """
    data = _required_body()
    service = _service()

    if data.get('layout'):
        try:
            code = service.compile_record(data.get('record') or {}, int(data.get('quantity', 1)),
                                          data.get('dialect'))
        except ValueError as e:
            raise ValidationError(str(e))
    else:
        code = service.render_label(data.get('variables') or {}, data.get('template_name'),
                                    data.get('template_id'))

    return jsonify({'success': True, 'device_code': code})


@api.route('/api/preview', methods=['POST'])
def preview_label():
    """PNG proof of a record's three-zone layout."""
    data = _required_body()
    png = _service().preview_record(data.get('record') or {}, bool(data.get('guides', True)))
    return send_file(BytesIO(png), mimetype='image/png', download_name='label.png')


# =============================================================================
# Printing
# =============================================================================

@api.route('/api/print', methods=['POST'])
def submit_print():
    """
    Queue labels for records.

    Body: {"printer": "...", "records": [...], "template_name": "...",
           "quantity": 1, "layout": false, "mark_printed": false}
    """
    data = _required_body()

    records = data.get('records')
    if not isinstance(records, list):
        raise ValidationError('records must be a list')

    try:
        quantity = int(data.get('quantity', 1))
    except (TypeError, ValueError):
        raise ValidationError('quantity must be a number')

    try:
        result = _service().submit(
            data.get('printer') or '',
            records,
            template_name=data.get('template_name'),
            template_id=data.get('template_id'),
            quantity=quantity,
            layout=bool(data.get('layout')),
            dialect=data.get('dialect'),
            mark_printed=bool(data.get('mark_printed')),
        )
    except ValueError as e:
        raise ValidationError(str(e))

    result['success'] = True
    return jsonify(result), 202


# =============================================================================
# Queues
# =============================================================================

@api.route('/api/queues', methods=['GET'])
def list_queues():
    return jsonify({
        'success': True,
        'queues': _service().queues.stats(),
    })


def _known_queue(printer_name):
    queues = _service().queues
    if printer_name not in queues:
        return None
    return queues.get(printer_name)


@api.route('/api/queues/<path:printer_name>/pause', methods=['POST'])
def pause_queue(printer_name):
    queue = _known_queue(printer_name)
    if queue is None:
        return jsonify({'success': False, 'error': 'Queue not found'}), 404
    queue.pause()
    return jsonify({'success': True, 'queue': queue.stats()})


@api.route('/api/queues/<path:printer_name>/resume', methods=['POST'])
def resume_queue(printer_name):
    queue = _known_queue(printer_name)
    if queue is None:
        return jsonify({'success': False, 'error': 'Queue not found'}), 404
    queue.resume()
    return jsonify({'success': True, 'queue': queue.stats()})


# =============================================================================
# Dead Letters
# =============================================================================

@api.route('/api/dead-letter', methods=['GET'])
def list_dead_letters():
    entries = []
    for printer_name, entry in _service().queues.dead_letters():
        item = entry.to_dict()
        item['printer'] = printer_name
        entries.append(item)

    return jsonify({
        'success': True,
        'entries': entries,
        'count': len(entries),
    })


@api.route('/api/dead-letter', methods=['DELETE'])
def clear_dead_letters():
    removed = _service().queues.clear_dead_letters()
    return jsonify({'success': True, 'removed': removed})


@api.route('/api/dead-letter/<entry_id>/retry', methods=['POST'])
def retry_dead_letter(entry_id):
    jobs = _service().queues.retry_dead_letter(entry_id)
    return jsonify({
        'success': True,
        'jobs': [job.to_dict() for job in jobs],
        'message': f'{len(jobs)} job(s) re-queued',
    })


@api.route('/api/dead-letter/<entry_id>', methods=['DELETE'])
def discard_dead_letter(entry_id):
    entry = _service().queues.discard_dead_letter(entry_id)
    return jsonify({'success': True, 'entry': entry.to_dict(), 'message': 'Entry discarded'})


# =============================================================================
# Batch
# =============================================================================

@api.route('/api/batch', methods=['GET'])
def batch_progress():
    return jsonify({'success': True, 'batch': _service().batch_runner.progress()})


def _batch_action(action):
    runner = _service().batch_runner
    if not getattr(runner, action)():
        return jsonify({'success': False, 'error': 'No batch is running'}), 409
    return jsonify({'success': True, 'batch': runner.progress()})


@api.route('/api/batch/pause', methods=['POST'])
def pause_batch():
    return _batch_action('pause')


@api.route('/api/batch/resume', methods=['POST'])
def resume_batch():
    return _batch_action('resume')


@api.route('/api/batch/cancel', methods=['POST'])
def cancel_batch():
    return _batch_action('cancel')


# =============================================================================
# Error Handlers
# =============================================================================

def _error(error, status):
    return jsonify({'success': False, 'error': str(error)}), status


def _register_error_handlers(app: Flask):
    app.register_error_handler(ValidationError, lambda e: _error(e, 400))
    app.register_error_handler(DeadLetterNotFoundError, lambda e: _error(e, 404))
    app.register_error_handler(BatchAlreadyRunningError, lambda e: _error(e, 409))
    app.register_error_handler(BridgeUnavailableError, lambda e: _error(e, 503))
    app.register_error_handler(PrintServiceError, lambda e: _error(e, 500))
    app.register_error_handler(404, lambda e: _error('Not found', 404))


# =============================================================================
# Application Setup
# =============================================================================

def create_app(service: Optional[PrintService] = None) -> Flask:
    """
    Create the Flask app.

    Args:
        service: Print service to expose; built from the environment
            configuration when omitted
    """
    app = Flask(__name__)
    CORS(app)

    app.extensions['print_service'] = service or PrintService.from_config()
    app.register_blueprint(api)
    _register_error_handlers(app)

    return app
