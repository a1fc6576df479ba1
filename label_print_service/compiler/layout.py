"""
Three-Zone Label Layout
=======================

Price-tag layout for small thermal labels::

    +-------------------------------------+
    | CONDITION  |          $PRICE        |   zone 1
    +-------------------------------------+
    |        ||| ||| barcode |||          |   zone 2
    +-------------------------------------+
    |   Title wrapped across up to two    |   zone 3
    |   lines                             |
    +-------------------------------------+

The vertical extent is split into three equal zones. Geometry that depends
on other elements is derived from them: the barcode height follows the
zone 1 text height, so a single starting size cascades through the label
for any text length.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from . import get_dialect
from .autofit import (
    center_offset,
    choose_module_width,
    estimate_barcode_width,
    estimate_text_width,
    fit_font_size,
    fit_wrapped_font_size,
)
from ..config import (
    BARCODE_HEIGHT_RATIO,
    CHAR_WIDTH_RATIO,
    DEFAULT_FORMAT,
    FONT_CEILING,
    FONT_FLOOR,
    LABEL_HEIGHT,
    LABEL_PADDING,
    LABEL_WIDTH,
    LINE_SPACING,
    METADATA_FRACTION,
    TITLE_MAX_LINES,
)

# Horizontal breathing room inside each zone 1 box
BOX_MARGIN = 5


@dataclass
class LabelData:
    """Record fields printed by the three-zone layout."""

    title: str = ''
    price: str = ''
    condition: str = ''
    lot: str = ''
    sku: str = ''
    barcode: str = ''

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'LabelData':
        """Build from an inventory record, accepting the usual aliases."""
        def first(*keys):
            for key in keys:
                value = record.get(key)
                if value not in (None, ''):
                    return str(value)
            return ''

        sku = first('sku')
        return cls(
            title=first('title', 'name', 'subject', 'brand_title'),
            price=first('price'),
            condition=first('condition', 'grade'),
            lot=first('lot', 'lot_number'),
            sku=sku,
            barcode=first('barcode') or sku or first('id'),
        )

    @property
    def price_text(self) -> str:
        if not self.price:
            return ''
        return self.price if self.price.startswith('$') else f'${self.price}'

    @property
    def metadata_text(self) -> str:
        return self.condition or self.lot


@dataclass
class Placement:
    """One positioned field on the label."""

    kind: str  # text, barcode
    x: int
    y: int
    size: int  # font size, or bar height for barcodes
    data: str
    module_width: int = 0


@dataclass
class LayoutGeometry:
    """Computed positions and sizes for one render. Never persisted."""

    width: int
    height: int
    padding: int
    zone_height: int
    zone_tops: Tuple[int, int, int]
    metadata_box: Tuple[int, int, int, int]
    price_box: Tuple[int, int, int, int]
    metadata_size: int = 0
    price_size: int = 0
    barcode_height: int = 0
    barcode_module_width: int = 0
    barcode_width: int = 0
    title_size: int = 0
    title_lines: List[str] = field(default_factory=list)
    placements: List[Placement] = field(default_factory=list)


def compute_layout(data: LabelData,
                   width: int = LABEL_WIDTH,
                   height: int = LABEL_HEIGHT,
                   padding: int = LABEL_PADDING,
                   ratio: float = CHAR_WIDTH_RATIO,
                   floor: int = FONT_FLOOR,
                   metadata_fraction: float = METADATA_FRACTION,
                   barcode_height_ratio: float = BARCODE_HEIGHT_RATIO,
                   max_title_lines: int = TITLE_MAX_LINES) -> LayoutGeometry:
    """Lay out ``data`` on a ``width`` x ``height`` dot label."""
    inner_width = width - padding * 2
    zone_height = (height - padding * 2) // 3
    zone_tops = (padding, padding + zone_height, padding + zone_height * 2)

    metadata_width = int(inner_width * metadata_fraction)
    price_width = inner_width - metadata_width
    metadata_box = (padding, zone_tops[0], metadata_width, zone_height)
    price_box = (padding + metadata_width, zone_tops[0], price_width, zone_height)

    geometry = LayoutGeometry(
        width=width,
        height=height,
        padding=padding,
        zone_height=zone_height,
        zone_tops=zone_tops,
        metadata_box=metadata_box,
        price_box=price_box,
    )

    # Zone 1: metadata and price, fitted independently
    text_start = max(floor, min(FONT_CEILING, int(zone_height * 0.8)))
    for text, box, attr in ((data.metadata_text, metadata_box, 'metadata_size'),
                            (data.price_text, price_box, 'price_size')):
        if not text:
            continue
        box_x, box_y, box_w, box_h = box
        size = fit_font_size(text, box_w - BOX_MARGIN * 2, text_start, ratio, floor)
        setattr(geometry, attr, size)
        x = center_offset(estimate_text_width(len(text), size, ratio), box_x, box_w)
        y = box_y + (box_h - size) // 2
        geometry.placements.append(Placement('text', x, y, size, text))

    # Zone 2: barcode height follows the zone 1 text
    if data.barcode:
        zone1_height = max(geometry.metadata_size, geometry.price_size) or text_start
        bar_height = int(round(zone1_height * barcode_height_ratio))
        bar_height = max(floor, min(zone_height, bar_height))
        module_width = choose_module_width(data.barcode, inner_width)
        bar_width = estimate_barcode_width(data.barcode, module_width)

        geometry.barcode_height = bar_height
        geometry.barcode_module_width = module_width
        geometry.barcode_width = bar_width
        x = center_offset(bar_width, padding, inner_width)
        y = zone_tops[1] + (zone_height - bar_height) // 2
        geometry.placements.append(Placement('barcode', x, y, bar_height, data.barcode, module_width))

    # Zone 3: title wrapped across up to max_title_lines
    if data.title:
        title_start = max(floor, min(FONT_CEILING, zone_height))
        size, lines = fit_wrapped_font_size(
            data.title, inner_width, title_start,
            max_lines=max_title_lines, ratio=ratio, floor=floor,
            max_height=zone_height, line_spacing=LINE_SPACING,
        )
        geometry.title_size = size
        geometry.title_lines = lines

        line_height = int(round(size * LINE_SPACING))
        top = zone_tops[2] + max(0, (zone_height - line_height * len(lines)) // 2)
        for index, line in enumerate(lines):
            x = center_offset(estimate_text_width(len(line), size, ratio), padding, inner_width)
            geometry.placements.append(Placement('text', x, top + index * line_height, size, line))

    return geometry


def compile_layout(data: LabelData, quantity: int = 1, dialect: Optional[str] = None,
                   **layout_options) -> str:
    """
    Compile a record into a device program using the three-zone layout.

    Args:
        data: Label fields
        quantity: Print quantity
        dialect: Device format name (zpl, tspl)
        **layout_options: Passed to compute_layout

    Returns:
        Device program text
    """
    geometry = compute_layout(data, **layout_options)
    writer = get_dialect(dialect or DEFAULT_FORMAT)

    commands = []
    for placement in geometry.placements:
        if placement.kind == 'barcode':
            commands.append(writer.barcode(placement.x, placement.y, placement.size,
                                           placement.module_width, placement.data))
        else:
            commands.append(writer.text(placement.x, placement.y, placement.size, placement.data))

    return writer.build(commands, geometry.width, geometry.height, quantity)
