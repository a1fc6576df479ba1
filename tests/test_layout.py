"""
Tests for the three-zone layout (compiler/layout.py) and preview.
"""

from io import BytesIO

import pytest
from PIL import Image

from label_print_service.compiler import compile_layout, compute_layout, validate_device_code
from label_print_service.compiler.layout import LabelData
from label_print_service.compiler.preview import render_preview

LONG_TITLE = 'Pokemon Scarlet Violet Paldea Evolved Charizard ex Special Illustration Rare'


@pytest.fixture
def label():
    return LabelData(title='Charizard Base Set Holo', price='349.99', condition='NM', sku='ABC123',
                     barcode='ABC123')


class TestLabelData:

    def test_from_record_aliases(self):
        data = LabelData.from_record({'name': 'Blastoise', 'grade': '9', 'lot_number': 'L-7', 'sku': 'S1'})
        assert data.title == 'Blastoise'
        assert data.condition == '9'
        assert data.lot == 'L-7'
        assert data.barcode == 'S1'

    def test_barcode_falls_back_to_id(self):
        assert LabelData.from_record({'id': 'rec-9'}).barcode == 'rec-9'

    def test_price_text(self):
        assert LabelData(price='5').price_text == '$5'
        assert LabelData(price='$5').price_text == '$5'
        assert LabelData().price_text == ''

    def test_metadata_prefers_condition(self):
        assert LabelData(condition='LP', lot='L1').metadata_text == 'LP'
        assert LabelData(lot='L1').metadata_text == 'L1'


class TestComputeLayout:

    def test_three_equal_zones(self, label):
        geometry = compute_layout(label)
        top1, top2, top3 = geometry.zone_tops
        assert top2 - top1 == top3 - top2 == geometry.zone_height
        assert top3 + geometry.zone_height <= geometry.height - geometry.padding

    def test_zone1_split(self, label):
        geometry = compute_layout(label, metadata_fraction=0.35)
        meta_x, _, meta_w, _ = geometry.metadata_box
        price_x, _, price_w, _ = geometry.price_box
        assert price_x == meta_x + meta_w
        assert meta_w + price_w == geometry.width - geometry.padding * 2

    def test_barcode_height_follows_zone1_text(self, label):
        geometry = compute_layout(label, barcode_height_ratio=1.25)
        expected = round(max(geometry.metadata_size, geometry.price_size) * 1.25)
        assert geometry.barcode_height == max(8, min(geometry.zone_height, expected))

    def test_barcode_height_clamped_to_zone(self, label):
        geometry = compute_layout(label, barcode_height_ratio=10)
        assert geometry.barcode_height == geometry.zone_height

    def test_long_title_wraps_to_two_lines(self):
        geometry = compute_layout(LabelData(title=LONG_TITLE))
        assert 1 <= len(geometry.title_lines) <= 2
        assert geometry.title_size >= 8

    def test_placements_inside_label(self, label):
        geometry = compute_layout(label)
        for placement in geometry.placements:
            assert geometry.padding <= placement.x < geometry.width
            assert geometry.padding <= placement.y < geometry.height

    def test_barcode_centred(self, label):
        geometry = compute_layout(label)
        bar = next(p for p in geometry.placements if p.kind == 'barcode')
        inner = geometry.width - geometry.padding * 2
        assert bar.x == geometry.padding + (inner - geometry.barcode_width) // 2

    def test_long_barcode_narrows_modules(self):
        geometry = compute_layout(LabelData(barcode='X' * 20))
        assert geometry.barcode_module_width == 1

    def test_only_visible_fields_are_placed(self):
        geometry = compute_layout(LabelData(barcode='ONLY'))
        assert [p.kind for p in geometry.placements] == ['barcode']


class TestCompileLayout:

    def test_zpl_program(self, label):
        code = compile_layout(label, quantity=3)
        assert code.startswith('^XA')
        assert code.endswith('^XZ')
        assert '^FD$349.99^FS' in code
        assert '^BCN,' in code
        assert '^PQ3,0,1,Y' in code
        assert validate_device_code(code, require_quantity=True) == code

    def test_one_command_per_field(self, label):
        code = compile_layout(label)
        geometry = compute_layout(label)
        assert code.count('^FO') == len(geometry.placements)

    def test_tspl_program(self, label):
        code = compile_layout(label, quantity=2, dialect='tspl')
        lines = code.split('\r\n')
        assert lines[0].startswith('SIZE')
        assert lines[-1] == 'PRINT 1,2'
        assert any(line.startswith('BARCODE') for line in lines)
        validate_device_code(code)

    def test_unknown_dialect(self, label):
        with pytest.raises(ValueError):
            compile_layout(label, dialect='epl')


class TestPreview:

    def test_png_at_label_size(self, label):
        png = render_preview(compute_layout(label))
        assert png.startswith(b'\x89PNG')
        with Image.open(BytesIO(png)) as img:
            assert img.size == (406, 203)

    def test_without_guides(self, label):
        assert render_preview(compute_layout(label), show_guides=False).startswith(b'\x89PNG')
