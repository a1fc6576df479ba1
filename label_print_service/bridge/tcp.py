"""
TCP Bridge Client
=================

Direct raw-socket delivery to network label printers (port 9100), for
workstations that run without the local bridge service.
"""

import logging
import re
import socket
from typing import Dict, Any, List, Tuple

from .base import BaseBridgeClient
from ..config import TCP_PRINTERS, RAW_PORT, BRIDGE_TIMEOUT

logger = logging.getLogger(__name__)

_STATUS_STRING = re.compile(r'\x02([^\x03]*)\x03')


def parse_host_status(reply: str) -> Dict[str, Any]:
    """
    Parse a ZPL ``~HS`` host status reply.

    The reply is three STX/ETX framed, comma separated strings. String 1
    carries the paper-out (field 2) and pause (field 3) flags, string 2 the
    head-up (field 3) and ribbon-out (field 4) flags. Printers that answer in
    plain text are matched on keywords instead.
    """
    paused = head_open = media_out = ribbon_out = False
    strings = _STATUS_STRING.findall(reply or '')

    if len(strings) >= 2:
        first = [f.strip() for f in strings[0].split(',')]
        second = [f.strip() for f in strings[1].split(',')]
        media_out = len(first) > 1 and first[1] == '1'
        paused = len(first) > 2 and first[2] == '1'
        head_open = len(second) > 2 and second[2] == '1'
        ribbon_out = len(second) > 3 and second[3] == '1'
    else:
        for line in (reply or '').upper().splitlines():
            if 'PAUSE' in line and 'UNPAUSE' not in line:
                paused = True
            if 'HEAD' in line and 'OPEN' in line:
                head_open = True
            if 'MEDIA OUT' in line or 'PAPER OUT' in line:
                media_out = True
            if 'RIBBON OUT' in line:
                ribbon_out = True

    if head_open:
        status = 'error_head_open'
    elif media_out:
        status = 'error_paper'
    elif ribbon_out:
        status = 'error_ribbon'
    elif paused:
        status = 'paused'
    else:
        status = 'ready'

    return {
        'status': status,
        'ready': status == 'ready',
        'paused': paused,
        'head_open': head_open,
        'media_out': media_out,
        'ribbon_out': ribbon_out,
    }


class TcpBridgeClient(BaseBridgeClient):
    """Raw TCP delivery to configured network printers."""

    def __init__(self, printers: Dict[str, str] = None, timeout: float = BRIDGE_TIMEOUT):
        """
        Args:
            printers: Printer name -> "host[:port]"
            timeout: Socket timeout in seconds
        """
        super().__init__()
        self.printers = dict(TCP_PRINTERS if printers is None else printers)
        self.timeout = timeout

    def _get_connection(self, printer_name: str) -> Tuple[str, int]:
        """Get host and port for a configured printer."""
        address = self.printers.get(printer_name) or ''
        host, _, port = address.partition(':')
        return host, int(port) if port else RAW_PORT

    def _reachable(self, host: str, port: int) -> bool:
        """Open and close a connection to the printer's raw port."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect((host, port))
            return True
        except OSError as e:
            logger.warning("Printer at %s:%d not reachable: %s", host, port, e)
            return False
        finally:
            sock.close()

    def connect(self) -> Dict[str, Any]:
        """
        Direct TCP has no bridge process: connected while at least one
        configured printer accepts a connection on its raw port.
        """
        if not self.printers:
            self._connected = False
            return {'success': False, 'error': 'No TCP printers configured'}

        reachable = []
        with self._send_lock:
            for name in self.printers:
                host, port = self._get_connection(name)
                if host and self._reachable(host, port):
                    reachable.append(name)

        self._connected = bool(reachable)
        if not self._connected:
            return {'success': False, 'error': 'No configured TCP printer is reachable'}
        return {'success': True, 'printers': len(self.printers), 'reachable': reachable}

    def list_printers(self) -> List[str]:
        return list(self.printers)

    def send(self, printer_name: str, device_code: str) -> Dict[str, Any]:
        """Send program to printer."""
        host, port = self._get_connection(printer_name)

        if not host:
            return {'success': False, 'error': f'Printer host not configured for {printer_name}'}

        with self._send_lock:
            try:
                sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                sock.settimeout(self.timeout)
                try:
                    sock.connect((host, port))
                    sock.sendall(device_code.encode('utf-8'))
                finally:
                    sock.close()

                return {
                    'success': True,
                    'printer': printer_name,
                    'host': host,
                    'port': port,
                    'bytes_sent': len(device_code),
                }

            except socket.timeout:
                return {'success': False, 'error': f'Connection timeout to {host}:{port}'}
            except ConnectionRefusedError:
                return {'success': False, 'error': f'Connection refused by {host}:{port}'}
            except OSError as e:
                return {'success': False, 'error': str(e)}

    def get_status(self, printer_name: str) -> Dict[str, Any]:
        """Get printer status via ~HS command."""
        host, port = self._get_connection(printer_name)

        if not host:
            return {'success': False, 'error': f'Printer host not configured for {printer_name}'}

        with self._send_lock:
            try:
                sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                sock.settimeout(self.timeout)
                try:
                    sock.connect((host, port))
                    sock.sendall(b'~HS')
                    response = sock.recv(1024).decode('utf-8', errors='ignore')
                finally:
                    sock.close()

            except socket.timeout:
                return {'success': False, 'error': 'Status query timeout', 'status': 'offline'}
            except ConnectionRefusedError:
                return {'success': False, 'error': 'Connection refused', 'status': 'offline'}
            except OSError as e:
                return {'success': False, 'error': str(e), 'status': 'error'}

        if not response:
            return {'success': False, 'error': 'Empty status reply', 'status': 'unknown'}

        result = parse_host_status(response)
        result.update({
            'success': True,
            'printer': printer_name,
            'host': host,
            'port': port,
            'raw_response': response[:200],
        })
        return result
