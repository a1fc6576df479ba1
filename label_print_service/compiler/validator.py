"""
Device program validation, run before a payload is admitted to a queue.
"""

from typing import Optional

from . import get_dialect
from ..errors import DeviceCodeError
from ..models.template import detect_format


def validate_device_code(code: str, dialect: Optional[str] = None,
                         require_quantity: bool = False) -> str:
    """
    Reject empty, unframed or truncated programs.

    Args:
        code: Device program
        dialect: Device format; detected from the program when omitted
        require_quantity: Also require a quantity directive

    Returns:
        The program, unchanged

    Raises:
        DeviceCodeError: Program would not print correctly
    """
    if not isinstance(code, str) or not code.strip():
        raise DeviceCodeError('Device program is empty')

    get_dialect(dialect or detect_format(code)).validate(code, require_quantity=require_quantity)
    return code
