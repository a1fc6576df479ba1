"""
Tests for the device dialects and program validator.
"""

import pytest

from label_print_service.compiler import TSPLDialect, ZPLDialect, get_dialect, validate_device_code
from label_print_service.errors import DeviceCodeError
from label_print_service.models.template import LabelTemplate, detect_format


class TestRegistry:

    def test_get_dialect(self):
        assert isinstance(get_dialect('zpl'), ZPLDialect)
        assert isinstance(get_dialect('TSPL'), TSPLDialect)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_dialect('escpos')


class TestZPLValidation:

    @pytest.mark.parametrize('code', [
        '^XA^FDX^FS^XZ',
        '^XA^FO10,10^A0N,30,30^FDHello^FS^PQ1,0,1,Y^XZ',
        '^XA^FDA^FS^XZ^XA^FDB^FS^XZ',
        '  ^XA^FDX^FS^XZ\n',
    ])
    def test_valid(self, code):
        assert validate_device_code(code) == code

    @pytest.mark.parametrize('code', [
        '',
        '   ',
        None,
        '^FDX^FS^XZ',
        '^XA^FDX^FS',
        '^XA^XZ',
        '^XA^FDA^FS^XA^FDB^FS^XZ',
        '^XA^FDtruncated^XZ',
        '^XA^FDone^FDtwo^FS^XZ',
    ])
    def test_rejected(self, code):
        with pytest.raises(DeviceCodeError):
            validate_device_code(code)

    def test_require_quantity(self):
        with pytest.raises(DeviceCodeError):
            validate_device_code('^XA^FDX^FS^XZ', require_quantity=True)
        validate_device_code('^XA^FDX^FS^PQ2^XZ', require_quantity=True)


class TestZPLQuantity:

    def test_replaces_existing(self):
        dialect = ZPLDialect()
        assert dialect.with_quantity('^XA^FDX^FS^PQ1,0,1,Y^XZ', 5) == '^XA^FDX^FS^PQ5,0,1,Y^XZ'

    def test_inserts_before_end(self):
        assert ZPLDialect().with_quantity('^XA^FDX^FS^XZ', 2) == '^XA^FDX^FS^PQ2,0,1,Y^XZ'

    def test_minimum_one(self):
        assert ZPLDialect().quantity(0) == '^PQ1,0,1,Y'


class TestTSPL:

    def test_built_program_validates(self):
        dialect = TSPLDialect()
        code = dialect.build([dialect.text(10, 10, 30, 'Hi')], 406, 203, copies=4)
        validate_device_code(code)
        assert code.endswith('PRINT 1,4')
        assert code.startswith('SIZE 50.8 mm,25.4 mm')

    def test_detected_from_program(self):
        assert detect_format('SIZE 50.8 mm,25.4 mm\r\nCLS\r\nPRINT 1,1') == 'tspl'
        assert detect_format('^XA^XZ') == 'zpl'

    @pytest.mark.parametrize('code', [
        'SIZE 50.8 mm,25.4 mm\r\nPRINT 1,1',
        'CLS\r\nTEXT 1,1,"0",0,8,8,"A"\r\nPRINT 1,1',
        'SIZE 50.8 mm,25.4 mm\r\nCLS\r\nTEXT 1,1,"0",0,8,8,"A',
        'SIZE 50.8 mm,25.4 mm\r\nCLS\r\nTEXT 1,1,"0",0,8,8,"A"\r\nPRINT 1,1\r\nPRINT',
    ])
    def test_rejected(self, code):
        with pytest.raises(DeviceCodeError):
            TSPLDialect().validate(code)

    def test_with_quantity(self):
        code = 'SIZE 50.8 mm,25.4 mm\r\nCLS\r\nTEXT 1,1,"0",0,8,8,"A"\r\nPRINT 1,1'
        assert TSPLDialect().with_quantity(code, 3).endswith('PRINT 1,3')


class TestLabelTemplateModel:

    def test_format_detected(self):
        assert LabelTemplate(body='SIZE 1 mm,1 mm\nCLS\nPRINT 1').device_format == 'tspl'
        assert LabelTemplate(body='^XA^XZ').device_format == 'zpl'
        assert LabelTemplate(body='^XA^XZ', format='tspl').device_format == 'tspl'

    def test_round_trip_keeps_required_fields(self):
        template = LabelTemplate(name='t', body='^XA^FD{{SKU}}^FS^XZ', required_fields=('SKU',))
        restored = LabelTemplate.from_dict(template.to_dict())
        assert restored.required_fields == ('SKU',)
        assert restored.id == template.id

    def test_body_template_alias(self):
        assert LabelTemplate.from_dict({'name': 'x', 'body_template': '^XA^XZ'}).body == '^XA^XZ'

    def test_frozen(self):
        template = LabelTemplate(name='t', body='^XA^XZ')
        with pytest.raises(AttributeError):
            template.body = 'other'
