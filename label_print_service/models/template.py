"""
Label Template Model
====================

A stored device-program body with ``{{ placeholder }}`` fields.
"""

import uuid
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, Tuple


def detect_format(body: str) -> str:
    """Guess the device format of a template body."""
    head = (body or '').lstrip()[:16].upper()
    if head.startswith('SIZE') or head.startswith('CLS'):
        return 'tspl'
    return 'zpl'


@dataclass(frozen=True)
class LabelTemplate:
    """Label template, read-only at render time."""

    name: str = ""
    body: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8].upper())
    is_default: bool = False
    required_fields: Tuple[str, ...] = ()
    format: Optional[str] = None

    @property
    def device_format(self) -> str:
        return self.format or detect_format(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['required_fields'] = list(self.required_fields)
        data['format'] = self.device_format
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelTemplate':
        """Create from dictionary."""
        data = dict(data)
        if 'body_template' in data and 'body' not in data:
            data['body'] = data.pop('body_template')
        data['required_fields'] = tuple(data.get('required_fields') or ())
        return cls(**data)
