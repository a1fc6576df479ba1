"""
Auto-fit Sizing
===============

Font and barcode size estimation for label layouts.

Everything here works on primitive inputs (character counts, box widths,
width ratios) and never measures real glyphs, so the compiler runs the same
in a background worker as it does on a workstation. Estimates are
approximate: a character is assumed to be ``size * ratio`` dots
wide.

The linear-decrement search (``fit_font_size``) is the canonical strategy.
``fit_font_size_bisect`` returns the same answer in fewer steps; that holds
only because ``estimate_text_width`` is strictly increasing in ``size`` for
non-empty text.
"""

import math
from typing import List, Optional, Tuple

from ..config import CHAR_WIDTH_RATIO, FONT_FLOOR, TITLE_MAX_LINES, LINE_SPACING

# Absorbs float noise such as 10 * 16 * 0.6 == 96.00000000000001
FIT_TOLERANCE = 1e-6

# Code 128: 11 modules per symbol, plus start, check and stop symbols and quiet zones
CODE128_MODULES_PER_SYMBOL = 11
CODE128_OVERHEAD_MODULES = 35


def estimate_text_width(length: int, size: float, ratio: float = CHAR_WIDTH_RATIO) -> float:
    """Estimated width in dots of ``length`` characters at ``size``."""
    return length * size * ratio


def _effective_floor(floor: int) -> int:
    # Never zero or negative; wins over a smaller starting size
    return max(1, int(floor))


def _fits(length: int, size: int, max_width: float, ratio: float) -> bool:
    return estimate_text_width(length, size, ratio) <= max_width + FIT_TOLERANCE


def fit_font_size(text: str, max_width: float, start: int,
                  ratio: float = CHAR_WIDTH_RATIO, floor: int = FONT_FLOOR) -> int:
    """
    Largest font size <= ``start`` whose estimated width fits ``max_width``.

    Args:
        text: Text to fit
        max_width: Box width in dots
        start: Starting (largest allowed) size
        ratio: Character width as a fraction of the size
        floor: Smallest size returned, even when nothing fits or
            ``start`` is smaller

    Returns:
        Font size in dots; ``start`` unchanged for empty text
    """
    if not text:
        return start

    low = _effective_floor(floor)
    size = max(int(start), low)
    while size > low and not _fits(len(text), size, max_width, ratio):
        size -= 1
    return size


def fit_font_size_bisect(text: str, max_width: float, start: int,
                         ratio: float = CHAR_WIDTH_RATIO, floor: int = FONT_FLOOR) -> int:
    """Same result as ``fit_font_size``, halving the size range instead."""
    if not text:
        return start

    length = len(text)
    low = _effective_floor(floor)
    high = max(int(start), low)

    if _fits(length, high, max_width, ratio):
        return high
    if not _fits(length, low, max_width, ratio):
        return low

    # low fits, high does not
    while high - low > 1:
        mid = (low + high) // 2
        if _fits(length, mid, max_width, ratio):
            low = mid
        else:
            high = mid
    return low


def chars_per_line(max_width: float, size: int, ratio: float = CHAR_WIDTH_RATIO) -> int:
    """How many characters fit on one line at ``size`` (at least one)."""
    if size <= 0 or ratio <= 0:
        return 1
    return max(1, math.floor(max_width / (size * ratio) + FIT_TOLERANCE))


def wrap_words(text: str, max_chars: int) -> List[str]:
    """Greedy word wrap; words longer than a line are broken."""
    max_chars = max(1, max_chars)
    lines: List[str] = []
    current = ''

    for word in text.split():
        candidate = f'{current} {word}' if current else word
        if len(candidate) <= max_chars:
            current = candidate
            continue

        if current:
            lines.append(current)
        while len(word) > max_chars:
            lines.append(word[:max_chars])
            word = word[max_chars:]
        current = word

    if current:
        lines.append(current)
    return lines


def fit_wrapped_font_size(text: str, max_width: float, start: int,
                          max_lines: int = TITLE_MAX_LINES,
                          ratio: float = CHAR_WIDTH_RATIO,
                          floor: int = FONT_FLOOR,
                          max_height: Optional[float] = None,
                          line_spacing: float = LINE_SPACING) -> Tuple[int, List[str]]:
    """
    Largest size at which ``text`` wraps into at most ``max_lines`` lines.

    When ``max_height`` is given the stacked lines (``size * line_spacing``
    each) must also fit it. At the floor the wrapped lines are cut to
    ``max_lines``.

    Returns:
        Tuple of (font size, wrapped lines)
    """
    if not text or not text.strip():
        return start, []

    low = _effective_floor(floor)
    size = max(int(start), low)

    while True:
        lines = wrap_words(text, chars_per_line(max_width, size, ratio))
        fits = len(lines) <= max_lines
        if fits and max_height is not None:
            fits = len(lines) * size * line_spacing <= max_height + FIT_TOLERANCE
        if fits or size <= low:
            break
        size -= 1

    return size, lines[:max_lines]


def estimate_barcode_width(data: str, module_width: int = 2) -> int:
    """Predicted Code 128 footprint in dots, without rendering it."""
    if not data:
        return 0
    modules = len(data) * CODE128_MODULES_PER_SYMBOL + CODE128_OVERHEAD_MODULES
    return modules * module_width


def choose_module_width(data: str, available_width: float, preferred: int = 2) -> int:
    """Narrowest-needed module width (down to 1) so the barcode fits."""
    module_width = max(1, preferred)
    while module_width > 1 and estimate_barcode_width(data, module_width) > available_width:
        module_width -= 1
    return module_width


def center_offset(content_width: float, box_x: int, box_width: float) -> int:
    """Left edge that centres content in a box, never left of the box."""
    return max(int(box_x), int(box_x + (box_width - content_width) // 2))
