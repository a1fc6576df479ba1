"""
TSPL Dialect
============

Program builder for TSPL/TSPL2 printers (TSC, Gainsha/Gprinter).

Key Commands:
- SIZE w,h          - Label size in mm
- GAP g,o           - Gap between labels
- DIRECTION n,m     - Print direction
- CLS               - Clear image buffer
- TEXT x,y,...      - Print text
- BARCODE x,y,...   - Print barcode
- PRINT m,n         - Print labels
"""

import re
from typing import List

from .base import BaseDialect
from ..config import DPI, LABEL_WIDTH, LABEL_HEIGHT
from ..errors import DeviceCodeError

_PRINT = re.compile(r'^PRINT\s+\d+(\s*,\s*\d+)?\s*$', re.IGNORECASE)


def _mm(dots: int) -> str:
    return f'{dots / DPI * 25.4:.1f}'


class TSPLDialect(BaseDialect):
    """Dialect for TSPL/TSPL2 printers (TSC, Gainsha)."""

    name = 'tspl'
    start_marker = 'SIZE'
    end_marker = 'PRINT'
    line_separator = '\r\n'

    def escape(self, value: str) -> str:
        # Field data is double-quoted, line breaks end the command
        return value.replace('"', "'").replace('\r', ' ').replace('\n', ' ')

    def header(self, width: int, height: int) -> List[str]:
        return [
            f'SIZE {_mm(width)} mm,{_mm(height)} mm',
            'GAP 2 mm,0 mm',
            'DIRECTION 1,0',
            'REFERENCE 0,0',
            'CLS',
        ]

    def footer(self) -> List[str]:
        return []

    def text(self, x: int, y: int, size: int, data: str) -> str:
        # Font "0" is scalable; the multipliers are point sizes
        points = max(1, round(size * 72 / DPI))
        return f'TEXT {x},{y},"0",0,{points},{points},"{self.escape(data)}"'

    def barcode(self, x: int, y: int, height: int, module_width: int, data: str) -> str:
        # BARCODE x,y,"type",height,readable,rotation,narrow,wide,"data"
        return f'BARCODE {x},{y},"128",{height},0,0,{module_width},{module_width},"{self.escape(data)}"'

    def quantity(self, copies: int) -> str:
        return f'PRINT 1,{max(1, int(copies))}'

    def _lines(self, code: str) -> List[str]:
        return [line.strip() for line in code.strip().splitlines() if line.strip()]

    def frame(self, body: str) -> str:
        lines = self._lines(body)
        framed = list(lines)
        if not lines or not lines[0].upper().startswith(self.start_marker):
            framed = self.header(LABEL_WIDTH, LABEL_HEIGHT) + framed
        if not lines or not _PRINT.match(lines[-1]):
            framed.append(self.quantity(1))
        if framed == lines:
            return body
        return self.line_separator.join(framed)

    def with_quantity(self, code: str, copies: int) -> str:
        lines = self._lines(code)
        if lines and _PRINT.match(lines[-1]):
            lines[-1] = self.quantity(copies)
        else:
            lines.append(self.quantity(copies))
        return self.line_separator.join(lines)

    def validate(self, code: str, require_quantity: bool = False) -> None:
        # PRINT is both the closing marker and the quantity directive,
        # so require_quantity is always satisfied once the program is framed
        lines = self._lines(code or '')
        if not lines:
            raise DeviceCodeError('Device program is empty')

        if not lines[0].upper().startswith(self.start_marker):
            raise DeviceCodeError('TSPL program must open with SIZE')
        if not _PRINT.match(lines[-1]):
            raise DeviceCodeError('TSPL program must close with PRINT')
        if len(lines) < 3:
            raise DeviceCodeError('TSPL program has no commands')

        for line in lines:
            if line.count('"') % 2:
                raise DeviceCodeError(f'Truncated TSPL command: {line[:40]}')
