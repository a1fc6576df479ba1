"""
Label Print Service
===================

Label compilation and reliable delivery to thermal label printers for the
POS front end.

Supports:
- Zebra/Rollo label printers (via ZPL)
- TSC label printers (via TSPL)
- USB/system printers through the local print bridge
- Network printers over raw TCP (port 9100)

Usage:
    python -m label_print_service

API Endpoints:
    GET  /api/printers                 - Printers reachable through the bridge
    POST /api/render                   - Render a label program
    POST /api/print                    - Queue labels for records
    GET  /api/queues                   - Delivery queue status
    GET  /api/dead-letter              - Jobs whose retries ran out
    GET  /api/batch                    - Batch print progress
"""

__version__ = '1.0.0'
