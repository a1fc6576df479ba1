"""
HTTP Bridge Client
==================

Client for the local print bridge: a small HTTP service on the workstation
that relays raw programs to USB/system printers and network printers.

Bridge endpoints:
    GET  /                        - Service status
    GET  /system-printers         - List locally installed printers
    POST /system-print            - Raw program to a system printer
    POST /rawtcp?ip=X&port=Y      - Raw program to a network printer
    GET  /check-tcp?ip=X&port=Y   - Test a network printer connection

Network printers are addressed as ``tcp://host:port``.

Usage:
    from label_print_service.bridge.http import HttpBridgeClient

    bridge = HttpBridgeClient('http://127.0.0.1:17777')
    bridge.connect()
    bridge.send('Zebra ZD410', '^XA^FDHello^FS^XZ')
"""

import logging
from typing import Dict, Any, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from .base import BaseBridgeClient
from ..config import BRIDGE_URL, BRIDGE_TIMEOUT, RAW_PORT

logger = logging.getLogger(__name__)


def parse_network_target(printer_name: str) -> Optional[Tuple[str, int]]:
    """Host and port for ``tcp://host:port`` names, None for system printers."""
    if not printer_name or not printer_name.lower().startswith('tcp://'):
        return None
    parsed = urlparse(printer_name)
    if not parsed.hostname:
        return None
    return parsed.hostname, parsed.port or RAW_PORT


class HttpBridgeClient(BaseBridgeClient):
    """Client for the local HTTP print bridge."""

    def __init__(self, base_url: str = BRIDGE_URL, timeout: float = BRIDGE_TIMEOUT,
                 session: requests.Session = None):
        """
        Initialize client.

        Args:
            base_url: Base URL of the bridge
            timeout: Request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        super().__init__()
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make bridge request."""
        url = f'{self.base_url}{endpoint}'
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
            self._connected = True
            if response.status_code >= 400:
                return {'success': False, 'error': f'Bridge returned HTTP {response.status_code}'}
            return response.json()

        except requests.exceptions.Timeout:
            self._connected = False
            return {'success': False, 'error': 'Bridge request timeout'}
        except requests.exceptions.ConnectionError:
            self._connected = False
            return {'success': False, 'error': f'Cannot connect to bridge at {self.base_url}'}
        except ValueError:
            return {'success': False, 'error': 'Bridge returned invalid JSON'}
        except requests.exceptions.RequestException as e:
            return {'success': False, 'error': str(e)}

    # =========================================================================
    # Connection
    # =========================================================================

    def connect(self) -> Dict[str, Any]:
        """Check the bridge is up."""
        result = self._request('GET', '/')
        if result.get('status') == 'ok':
            self._connected = True
            logger.info("Connected to print bridge %s (%s)", self.base_url, result.get('version', '?'))
            return {
                'success': True,
                'service': result.get('service'),
                'version': result.get('version'),
            }

        self._connected = False
        error = result.get('error', 'Unexpected bridge response')
        logger.warning("Print bridge %s unavailable: %s", self.base_url, error)
        return {'success': False, 'error': error}

    # =========================================================================
    # Printers
    # =========================================================================

    def _system_printers(self) -> List[Dict[str, Any]]:
        result = self._request('GET', '/system-printers')
        if not result.get('success'):
            logger.warning("Could not list bridge printers: %s", result.get('error'))
            return []
        return result.get('printers', [])

    def list_printers(self) -> List[str]:
        """List printer names installed on the bridge host."""
        return [p['name'] for p in self._system_printers() if p.get('name')]

    # =========================================================================
    # Printing
    # =========================================================================

    def send(self, printer_name: str, device_code: str) -> Dict[str, Any]:
        """Send a raw program through the bridge."""
        target = parse_network_target(printer_name)

        with self._send_lock:
            if target:
                host, port = target
                result = self._request(
                    'POST', '/rawtcp',
                    params={'ip': host, 'port': port},
                    data=device_code.encode('utf-8'),
                    headers={'Content-Type': 'text/plain'},
                )
            else:
                result = self._request('POST', '/system-print', json={
                    'printerName': printer_name,
                    'zplData': device_code,
                    'copies': 1,
                })

        if result.get('success'):
            return {
                'success': True,
                'printer': printer_name,
                'bytes_sent': len(device_code),
                'message': result.get('message', ''),
            }
        return {'success': False, 'printer': printer_name, 'error': result.get('error', 'Print failed')}

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self, printer_name: str) -> Dict[str, Any]:
        """Get printer status as reported by the bridge."""
        target = parse_network_target(printer_name)

        if target:
            host, port = target
            result = self._request('GET', '/check-tcp', params={'ip': host, 'port': port})
            if 'ok' not in result:
                return {'success': False, 'error': result.get('error', 'Status query failed'), 'status': 'offline'}
            return {
                'success': True,
                'printer': printer_name,
                'status': 'ready' if result['ok'] else 'offline',
                'is_online': bool(result['ok']),
            }

        for printer in self._system_printers():
            if printer.get('name') == printer_name:
                status = printer.get('status', 'unknown')
                return {
                    'success': True,
                    'printer': printer_name,
                    'status': status,
                    'is_online': status == 'ready',
                    'model': printer.get('model'),
                }

        return {'success': False, 'error': 'Printer not found', 'status': 'unknown'}
