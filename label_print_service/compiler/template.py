"""
Template Rendering
==================

Fills ``{{ placeholder }}`` fields of a template body with record values.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Union

from . import get_dialect
from ..models.template import LabelTemplate, detect_format

PLACEHOLDER = re.compile(r'\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}')


def placeholders(body: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER.finditer(body or ''):
        seen.setdefault(match.group(1), None)
    return list(seen)


def lookup(variables: Mapping[str, Any], key: str) -> Optional[Any]:
    """Exact key first, then a case-insensitive match."""
    if key in variables:
        return variables[key]
    lowered = key.lower()
    for name, value in variables.items():
        if str(name).lower() == lowered:
            return value
    return None


def render(template: Union[LabelTemplate, str], variables: Optional[Mapping[str, Any]] = None) -> str:
    """
    Render a template into a device program.

    Unresolved placeholders become empty strings. Values are escaped for the
    template's device format and the result is always framed by the
    format's start/end markers.

    Args:
        template: LabelTemplate or raw template body
        variables: Field values keyed by placeholder name

    Returns:
        Device program text
    """
    if isinstance(template, LabelTemplate):
        body = template.body or ''
        dialect = get_dialect(template.device_format)
    else:
        body = template or ''
        dialect = get_dialect(detect_format(body))

    values = variables or {}

    def substitute(match):
        value = lookup(values, match.group(1))
        if value is None:
            return ''
        return dialect.escape(str(value))

    return dialect.frame(PLACEHOLDER.sub(substitute, body))
