"""Tests for the ePOS XML parser."""

import base64

import pytest

from epos_relay.errors import ParseError
from epos_relay.parser import Cut, EposDocument, Image, Pulse, must_parse, parse
from tests.conftest import EPOS_NS, epos


class TestParse:
    """Core parsing behaviour."""

    def test_valid_document(self):
        doc = parse(epos('<pulse/>\n<cut/>\n<image width="8" height="8">AAAAAAAAAAA=</image>'))

        assert isinstance(doc, EposDocument)
        assert [type(i) for i in doc] == [Pulse, Cut, Image]
        assert doc.root == f"{EPOS_NS} epos-print"

    def test_instructions_keep_document_order(self):
        doc = parse(epos('<pulse/>\n<image width="8" height="1">AA==</image>\n<cut/>\n<pulse/>'))

        assert [type(i) for i in doc.instructions] == [Pulse, Image, Cut, Pulse]
        assert len(doc) == 4

    @pytest.mark.parametrize("body", [b"", b"   \n\t"])
    def test_empty_body_is_not_an_error(self, body):
        assert parse(body).instructions == []

    def test_wrong_namespace_is_ignored(self):
        doc = parse(epos("<pulse/>\n<cut/>", namespace="http://wrong-namespace.com"))

        assert doc.instructions == []
        assert doc.root is None

    def test_unqualified_elements_are_ignored(self):
        doc = parse(b"<epos-print><pulse/><cut/></epos-print>")

        assert doc.instructions == []

    def test_namespace_is_matched_by_substring(self):
        doc = parse(epos("<cut/>", namespace="http://www.epson-pos.com/schemas/2099/01/epos-print-v9"))

        assert doc.instructions == [Cut()]

    def test_prefixed_elements_are_recognised(self):
        xml = f'<e:epos-print xmlns:e="{EPOS_NS}"><e:pulse/><other:cut xmlns:other="urn:x"/></e:epos-print>'

        assert parse(xml.encode()).instructions == [Pulse()]

    def test_several_top_level_instructions(self):
        xml = f'<cut xmlns="{EPOS_NS}"/><pulse xmlns="{EPOS_NS}"/>'

        assert parse(xml.encode()).instructions == [Cut(), Pulse()]

    def test_two_root_elements(self):
        xml = f'<epos-print xmlns="{EPOS_NS}"><cut/></epos-print>\n<epos-print xmlns="{EPOS_NS}"><pulse/></epos-print>'

        assert parse(xml.encode()).instructions == [Cut(), Pulse()]

    def test_declaration_only_body(self):
        assert parse(b'<?xml version="1.0"?>\n').instructions == []

    def test_declared_encoding_is_honoured(self):
        xml = f'<?xml version="1.0" encoding="ISO-8859-1"?>\n<!-- caf\xe9 -->\n<cut xmlns="{EPOS_NS}"/>'

        assert parse(xml.encode("latin-1")).instructions == [Cut()]

    def test_byte_order_mark(self):
        xml = b"\xef\xbb\xbf" + epos("<pulse/>")

        assert parse(xml).instructions == [Pulse()]

    def test_root_element_is_optional(self):
        doc = parse(f'<?xml version="1.0" encoding="UTF-8"?>\n<pulse xmlns="{EPOS_NS}"/>'.encode())

        assert doc.instructions == [Pulse()]
        assert doc.root is None

    def test_nested_elements_are_counted(self):
        doc = parse(epos("<page><cut/><section><pulse/></section></page>"))

        assert doc.instructions == [Cut(), Pulse()]

    def test_comments_and_whitespace(self):
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<!-- This is a comment -->\n"
            f'<epos-print xmlns="{EPOS_NS}">\n'
            "\t<!-- Comment inside -->\n"
            "\t<pulse/>\n\n\t<cut/>\n"
            "</epos-print>"
        )

        assert len(parse(xml.encode())) == 2

    @pytest.mark.parametrize(
        "xml",
        [
            f'<epos-print xmlns="{EPOS_NS}"><pulse>',
            f'<epos-print xmlns="{EPOS_NS}"><invalid<<<>>>',
            f'<epos-print xmlns="{EPOS_NS}"><cut/></epos-printer>',
        ],
    )
    def test_malformed_xml(self, xml):
        with pytest.raises(ParseError, match="malformed XML"):
            parse(xml.encode())


class TestParseImage:
    """Image element decoding and size validation."""

    def test_valid_base64_image(self):
        data = bytes(range(8))
        doc = parse(epos(f'<image width="8" height="8">{base64.b64encode(data).decode()}</image>'))

        assert doc.instructions == [Image(width=8, height=8, data=data)]

    def test_large_image(self):
        width, height = 1000, 1000
        data = bytes(i % 256 for i in range((width // 8) * height))
        doc = parse(epos(f'<image width="{width}" height="{height}">{base64.b64encode(data).decode()}</image>'))

        assert doc.instructions[0].data == data

    def test_whitespace_around_image_data(self):
        doc = parse(epos('<image width="8" height="1">\n\t\t/w==\n\t</image>'))

        assert doc.instructions[0].data == b"\xff"

    def test_line_wrapped_image_data(self):
        data = bytes(range(96))
        encoded = base64.encodebytes(data).decode()  # wrapped at 76 characters
        doc = parse(epos(f'<image width="64" height="12">\n{encoded}</image>'))

        assert doc.instructions[0].data == data

    def test_chunks_are_concatenated(self):
        # The comment splits the text into two runs, each decoded on its own.
        doc = parse(epos('<image width="32" height="1">AAE=<!-- split -->AgM=</image>'))

        assert doc.instructions[0].data == b"\x00\x01\x02\x03"

    def test_cdata_is_decoded_as_its_own_chunk(self):
        doc = parse(epos('<image width="16" height="1">AA==<![CDATA[AA==]]></image>'))

        assert doc.instructions == [Image(width=16, height=1, data=b"\x00\x00")]

    def test_spaces_inside_base64_are_rejected(self):
        with pytest.raises(ParseError, match="base64"):
            parse(epos('<image width="16" height="1">AA AA</image>'))

    def test_invalid_base64(self):
        with pytest.raises(ParseError, match="base64"):
            parse(epos('<image width="8" height="8">!!!INVALID_BASE64!!!</image>'))

    def test_size_mismatch(self):
        with pytest.raises(ParseError, match="got 1 bytes, expected 8 bytes"):
            parse(epos('<image width="8" height="8">AA==</image>'))

    def test_size_mismatch_names_both_counts(self):
        with pytest.raises(ParseError) as excinfo:
            parse(epos('<image width="8" height="8">AAA=</image>'))

        assert "incomplete" in str(excinfo.value)
        assert "got 2 bytes" in str(excinfo.value)
        assert "expected 8 bytes" in str(excinfo.value)

    def test_error_aborts_whole_document(self):
        with pytest.raises(ParseError):
            parse(epos('<pulse/>\n<cut/>\n<image width="8" height="8">AA==</image>\n<pulse/>'))

    def test_width_is_floor_divided(self):
        # 12 pixels wide -> 1 byte per row
        doc = parse(epos('<image width="12" height="2">AAA=</image>'))

        assert doc.instructions[0].data == b"\x00\x00"

    @pytest.mark.parametrize(
        "attrs",
        ['width="0" height="0"', "", 'width="abc" height="def"'],
    )
    def test_zero_missing_or_non_numeric_dimensions(self, attrs):
        doc = parse(epos(f"<image {attrs}></image>"))

        assert doc.instructions == [Image(width=0, height=0, data=b"")]

    def test_leading_digits_are_used(self):
        doc = parse(epos('<image width=" 8px" height="1">AA==</image>'))

        assert doc.instructions[0].width == 8

    def test_negative_dimensions_fail_on_size(self):
        with pytest.raises(ParseError, match="expected 8 bytes"):
            parse(epos('<image width="-8" height="-8"></image>'))

    def test_very_large_dimensions_fail_on_size(self):
        with pytest.raises(ParseError, match="expected 268435455 bytes"):
            parse(epos('<image width="2147483647" height="1"></image>'))

    def test_image_outside_namespace_is_ignored(self):
        doc = parse(b'<epos-print><image width="8" height="8">AA==</image></epos-print>')

        assert doc.instructions == []


class TestMustParse:
    def test_returns_document(self):
        assert must_parse(epos("<cut/>")).instructions == [Cut()]

    def test_raises_on_invalid_input(self):
        with pytest.raises(RuntimeError, match="base64"):
            must_parse(epos('<image width="8" height="8">!!!INVALID_BASE64!!!</image>'))
