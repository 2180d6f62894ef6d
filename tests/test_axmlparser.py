import unittest
from struct import pack

import pytest
from lxml import etree

import pyapkinfo.constants as const
from pyapkinfo import axmlparser
from pyapkinfo.axmlparser import AXMLParser
from pyapkinfo.axmlprinter import AXMLPrinter
from pyapkinfo.exceptions import AxmlFormatError
from pyapkinfo.utils import NS_ANDROID

from tests.builders import Element, Ref, Typed, build_axml, build_manifest, chunk, manifest_tree


class AXMLParserTest(unittest.TestCase):
    def setUp(self):
        self.document = axmlparser.parse(build_manifest())

    def test_root_is_manifest(self):
        root = self.document.get_root()
        self.assertEqual(self.document.get_tag_name(root), "manifest")

    def test_attribute_values(self):
        self.assertEqual(self.document.get_attribute_value("manifest", "package"), "com.acme.app")
        self.assertEqual(self.document.get_attribute_value("manifest", "versionName"), "1.2.3")
        self.assertEqual(self.document.get_attribute_value("manifest", "versionCode"), "45")
        self.assertEqual(self.document.get_attribute_value("application", "label"), "Acme")
        self.assertEqual(self.document.get_attribute_value("uses-sdk", "minSdkVersion"), "21")
        self.assertEqual(self.document.get_attribute_value("activity", "name"), ".MainActivity")

    def test_missing_attribute(self):
        self.assertIsNone(self.document.get_attribute_value("application", "icon"))
        self.assertIsNone(self.document.get_attribute_value("service", "name"))

    def test_system_attributes_use_resource_map(self):
        attribute = self.document.get_attribute("application", "label")
        self.assertEqual(self.document.get_attribute_resource_id(attribute), 0x01010001)
        self.assertEqual(self.document.get_attribute_namespace(attribute), const.NS_ANDROID_URI)

    def test_typed_values(self):
        root = Element("manifest", (
            ("package", "com.acme.app"),
            ("versionCode", Typed(const.TYPE_INT_HEX, 0x2d)),
        ), (
            Element("application", (
                ("label", Ref(0x7f0a0000)),
                ("icon", Ref(0x7f020001)),
                ("debuggable", True),
            )),
        ))
        document = axmlparser.parse(build_axml(root))
        self.assertEqual(document.get_attribute_value("manifest", "versionCode"), "0x0000002D")
        self.assertEqual(document.get_attribute_value("application", "label"), "@7F0A0000")
        self.assertEqual(document.get_attribute_value("application", "debuggable"), "true")

        label = document.get_attribute("application", "label")
        self.assertTrue(label.value.is_reference())
        self.assertEqual(label.value.data, 0x7f0a0000)

    def test_non_ascii_strings(self):
        document = axmlparser.parse(build_manifest(label=u"Acmé"))
        self.assertEqual(document.get_attribute_value("application", "label"), u"Acmé")

        document = axmlparser.parse(build_axml(manifest_tree(label=u"Acmé"), utf8=True))
        self.assertEqual(document.get_attribute_value("application", "label"), u"Acmé")

    def test_attributes_matched_by_resource_id(self):
        raw = bytearray(build_manifest())
        # packers rename the attribute strings, the resource map still holds the ids
        renamed = raw.replace("label".encode("utf-16-le"), "xxxxx".encode("utf-16-le"))
        document = axmlparser.parse(bytes(renamed))
        self.assertEqual(document.get_attribute_value("application", "label"), "Acme")

    def test_unknown_chunk_is_skipped(self):
        raw = build_manifest()
        unknown = chunk(0x0777, 8, b"\x00" * 8)
        patched = pack('<HHL', const.RES_XML_TYPE, 8, len(raw) + len(unknown)) + raw[8:] + unknown
        parser = AXMLParser(patched)
        document = parser.parse()
        self.assertEqual(document.get_attribute_value("manifest", "package"), "com.acme.app")
        self.assertFalse(parser.is_tampered())

    def test_appended_data_is_ignored(self):
        parser = AXMLParser(build_manifest() + b"\xde\xad\xbe\xef")
        document = parser.parse()
        self.assertTrue(parser.is_tampered())
        self.assertEqual(document.get_attribute_value("manifest", "package"), "com.acme.app")

    def test_unusual_file_type(self):
        raw = pack('<H', 0x0000) + build_manifest()[2:]
        parser = AXMLParser(raw)
        parser.parse()
        self.assertTrue(parser.is_tampered())


def test_truncated_manifest():
    raw = build_manifest()
    for length in (0, 4, 20, len(raw) // 2, len(raw) - 1):
        with pytest.raises(AxmlFormatError):
            axmlparser.parse(raw[:length])


def test_truncated_chunk_with_fixed_file_size():
    raw = build_manifest()
    truncated = raw[:len(raw) - 30]
    # the file header matches the data, the last chunk does not
    truncated = pack('<HHL', const.RES_XML_TYPE, 8, len(truncated)) + truncated[8:]
    with pytest.raises(AxmlFormatError) as e:
        axmlparser.parse(truncated)
    assert e.value.offset is not None


def test_plain_xml_is_rejected():
    with pytest.raises(AxmlFormatError):
        axmlparser.parse(b'<?xml version="1.0" encoding="utf-8"?><manifest/>')


def test_missing_string_pool():
    raw = chunk(const.RES_XML_TYPE, 8, b"")
    with pytest.raises(AxmlFormatError):
        axmlparser.parse(raw)


def test_string_index_out_of_range():
    raw = build_manifest(label="Acme")
    document = axmlparser.parse(bytes(raw))
    attribute = document.get_attribute("application", "label")
    # raw value and typed value of the label point to the same string
    broken = raw.replace(pack('<LHBBI', attribute.raw_value, 8, 0, const.TYPE_STRING, attribute.raw_value),
                         pack('<LHBBI', 5000, 8, 0, const.TYPE_STRING, 5000))
    with pytest.raises(AxmlFormatError):
        axmlparser.parse(bytes(broken))


def test_printer():
    document = axmlparser.parse(build_manifest())
    printer = AXMLPrinter(document)
    root = printer.get_xml_obj()
    assert root.tag == "manifest"
    assert root.get("package") == "com.acme.app"
    assert root.get(NS_ANDROID + "versionName") == "1.2.3"
    assert root.find("application").get(NS_ANDROID + "label") == "Acme"
    assert not printer.is_packed()

    xml = printer.get_xml()
    assert b'xmlns:android="http://schemas.android.com/apk/res/android"' in xml
    assert etree.fromstring(xml).get(NS_ANDROID + "versionCode") == "45"


def test_printer_fixes_invalid_values():
    document = axmlparser.parse(build_manifest(label=u"Ac\x00me"))
    printer = AXMLPrinter(document)
    assert printer.get_xml_obj().find("application").get(NS_ANDROID + "label") == "Ac"
    assert printer.is_packed()
