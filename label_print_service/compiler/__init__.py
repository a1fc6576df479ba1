"""
Label Print Service Compiler
============================

Turns label templates and record data into device programs.
"""

from .base import BaseDialect
from .zpl import ZPLDialect
from .tspl import TSPLDialect

# Dialect registry
DIALECTS = {
    'zpl': ZPLDialect,
    'tspl': TSPLDialect,
}


def get_dialect(name: str) -> BaseDialect:
    """Get dialect instance by device format name."""
    dialect_class = DIALECTS.get((name or '').lower())
    if dialect_class is None:
        raise ValueError(f'Unknown device format {name!r}. Valid: {list(DIALECTS)}')
    return dialect_class()


from .template import render, placeholders  # noqa: E402
from .layout import LabelData, LayoutGeometry, compute_layout, compile_layout  # noqa: E402
from .validator import validate_device_code  # noqa: E402

__all__ = [
    'BaseDialect', 'ZPLDialect', 'TSPLDialect', 'DIALECTS', 'get_dialect',
    'render', 'placeholders',
    'LabelData', 'LayoutGeometry', 'compute_layout', 'compile_layout',
    'validate_device_code',
]
