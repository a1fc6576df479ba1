"""
ZPL Dialect
===========

Program builder for ZPL (Zebra Programming Language) printers.
Works with Zebra, CAB (in ZPL emulation mode) and Rollo printers.
"""

import re
from typing import List

from .base import BaseDialect
from ..errors import DeviceCodeError

_MARKER = re.compile(r'\^(XA|XZ)')
_FIELD = re.compile(r'\^(FD|FS|XZ)')
_QUANTITY = re.compile(r'\^PQ\d+')


class ZPLDialect(BaseDialect):
    """Dialect for ZPL-compatible printers (Zebra, CAB, Rollo)."""

    name = 'zpl'
    start_marker = '^XA'
    end_marker = '^XZ'

    def escape(self, value: str) -> str:
        # ^ and ~ start commands; field data cannot carry them unescaped
        return value.replace('^', ' ').replace('~', ' ')

    def header(self, width: int, height: int) -> List[str]:
        return [
            '^XA',
            '^CI28',  # UTF-8 field data
            f'^PW{width}',
            f'^LL{height}',
            '^LH0,0',
        ]

    def footer(self) -> List[str]:
        return ['^XZ']

    def text(self, x: int, y: int, size: int, data: str) -> str:
        return f'^FO{x},{y}^A0N,{size},{size}^FD{self.escape(data)}^FS'

    def barcode(self, x: int, y: int, height: int, module_width: int, data: str) -> str:
        return f'^FO{x},{y}^BY{module_width}^BCN,{height},N,N,N^FD{self.escape(data)}^FS'

    def quantity(self, copies: int) -> str:
        return f'^PQ{max(1, int(copies))},0,1,Y'

    def frame(self, body: str) -> str:
        stripped = body.strip()
        if stripped.startswith(self.start_marker) and stripped.endswith(self.end_marker):
            return body
        if not stripped.startswith(self.start_marker):
            stripped = self.start_marker + stripped
        if not stripped.endswith(self.end_marker):
            stripped = stripped + self.end_marker
        return stripped

    def with_quantity(self, code: str, copies: int) -> str:
        copies = max(1, int(copies))
        if _QUANTITY.search(code):
            return _QUANTITY.sub(f'^PQ{copies}', code)
        end = code.rfind(self.end_marker)
        if end == -1:
            return code + self.quantity(copies)
        return code[:end] + self.quantity(copies) + code[end:]

    def validate(self, code: str, require_quantity: bool = False) -> None:
        if not code or not code.strip():
            raise DeviceCodeError('Device program is empty')

        stripped = code.strip()
        if not stripped.startswith(self.start_marker) or not stripped.endswith(self.end_marker):
            raise DeviceCodeError('ZPL program must open with ^XA and close with ^XZ')

        # Formats may be concatenated, but never nested or left open
        open_format = False
        for match in _MARKER.finditer(stripped):
            if match.group(1) == 'XA':
                if open_format:
                    raise DeviceCodeError('Unbalanced ^XA/^XZ: format opened twice')
                open_format = True
            else:
                if not open_format:
                    raise DeviceCodeError('Unbalanced ^XA/^XZ: ^XZ without ^XA')
                open_format = False

        if not _MARKER.sub('', stripped).strip():
            raise DeviceCodeError('ZPL program has no commands')

        open_field = False
        for match in _FIELD.finditer(stripped):
            token = match.group(1)
            if token == 'FD':
                if open_field:
                    raise DeviceCodeError('Truncated ZPL field: ^FD without ^FS')
                open_field = True
            elif token == 'FS':
                open_field = False
            elif open_field:
                raise DeviceCodeError('Truncated ZPL field: ^FD without ^FS')

        if require_quantity and '^PQ' not in stripped:
            raise DeviceCodeError('ZPL program has no ^PQ quantity directive')
