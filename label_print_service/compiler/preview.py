"""
Label Preview
=============

Draws a computed layout to a PNG so operators can proof a label without
sending it to a printer. Uses Pillow only, no display surface.
"""

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from .layout import LayoutGeometry

GUIDE = 190
INK = 0


def _bars(draw: ImageDraw.ImageDraw, x: int, y: int, width: int, height: int,
          module_width: int, data: str):
    """Stand-in bar pattern covering the estimated barcode footprint."""
    step = max(1, module_width)
    seed = sum(data.encode('utf-8'))
    position = 0
    index = 0
    while position < width:
        bar = step * (1 + (seed + index) % 3)
        if index % 2 == 0:
            draw.rectangle([x + position, y, x + min(width, position + bar) - 1, y + height - 1], fill=INK)
        position += bar
        index += 1


def render_preview(geometry: LayoutGeometry, show_guides: bool = True) -> bytes:
    """
    Render a layout as a grayscale PNG at one pixel per dot.

    Args:
        geometry: Output of compute_layout
        show_guides: Outline the three zones

    Returns:
        PNG image bytes
    """
    img = Image.new('L', (geometry.width, geometry.height), 255)
    draw = ImageDraw.Draw(img)

    draw.rectangle([0, 0, geometry.width - 1, geometry.height - 1], outline=GUIDE)

    if show_guides:
        pad = geometry.padding
        right = geometry.width - pad - 1
        for top in geometry.zone_tops:
            draw.rectangle([pad, top, right, top + geometry.zone_height - 1], outline=GUIDE)
        meta_x, meta_y, meta_w, meta_h = geometry.metadata_box
        draw.line([meta_x + meta_w, meta_y, meta_x + meta_w, meta_y + meta_h - 1], fill=GUIDE)

    for placement in geometry.placements:
        if placement.kind == 'barcode':
            _bars(draw, placement.x, placement.y, geometry.barcode_width, placement.size,
                  placement.module_width, placement.data)
        else:
            font = ImageFont.load_default(size=placement.size)
            draw.text((placement.x, placement.y), placement.data, fill=INK, font=font)

    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()
