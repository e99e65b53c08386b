# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for Python source rendering."""

import dataclasses
import sys
import types
from decimal import Decimal
from xml.etree import ElementTree as ET

import pytest

from genro_xsd import parse_schema, render_module, resolve_schema
from genro_xsd.descriptor import Record, TypeDescriptor
from genro_xsd.names import ConstructKind, QualifiedName
from genro_xsd.render import render_descriptor

XS = 'xmlns:xs="http://www.w3.org/2001/XMLSchema"'

SCHEMA = f"""<xs:schema {XS}>
  <xs:simpleType name="YesNo">
    <xs:annotation><xs:documentation>Boolean answer.</xs:documentation></xs:annotation>
    <xs:restriction base="xs:string">
      <xs:enumeration value="yes"/>
      <xs:enumeration value="no"/>
    </xs:restriction>
  </xs:simpleType>
  <xs:simpleType name="Numbers"><xs:list itemType="xs:int"/></xs:simpleType>
  <xs:simpleType name="Size"><xs:union memberTypes="xs:int YesNo"/></xs:simpleType>
  <xs:complexType name="Note">
    <xs:sequence>
      <xs:element name="pitch" type="xs:string"/>
      <xs:element name="duration" type="xs:decimal" minOccurs="0"/>
      <xs:element name="tie" type="xs:string" maxOccurs="unbounded"/>
      <xs:choice>
        <xs:element name="chord" type="YesNo"/>
        <xs:element name="rest" type="xs:int"/>
      </xs:choice>
    </xs:sequence>
    <xs:attribute name="voice" type="xs:int"/>
  </xs:complexType>
</xs:schema>
"""


@pytest.fixture
def source():
    return render_module(resolve_schema(parse_schema(SCHEMA)))


@pytest.fixture
def module(source, monkeypatch):
    generated = types.ModuleType("generated_types")
    monkeypatch.setitem(sys.modules, "generated_types", generated)
    namespace = generated.__dict__
    exec(compile(source, "<generated>", "exec"), namespace)
    return namespace


class TestRenderText:
    """Tests for the rendered text."""

    def test_header(self, source):
        """The module starts with its imports."""
        assert source.startswith('"""Generated from an XML Schema."""')
        assert "from __future__ import annotations" in source
        assert "from decimal import Decimal" in source
        assert "from xml.etree import ElementTree as ET" in source
        assert "def _occurrences(node: ET.Element, first: str) -> list[ET.Element]:" in source

    def test_record_fields(self, source):
        """Record fields render with defaults for optional and list fields."""
        assert "@dataclasses.dataclass(kw_only=True)\nclass Note:" in source
        assert "    pitch: str\n" in source
        assert "    duration: Decimal | None = None\n" in source
        assert "    tie: list[str] = dataclasses.field(default_factory=list)\n" in source
        assert "    chord_rest: Note.ChordRest\n" in source

    def test_nested_union_is_indented(self, source):
        """Nested descriptors render inside their owner."""
        assert "    @dataclasses.dataclass\n    class ChordRest:" in source
        assert '        tag: Literal["chord", "rest"]' in source
        assert "        value: YesNo | int" in source

    def test_enum_and_alias(self, source):
        """Enumerations render as Enum classes, lists as aliases."""
        assert "class YesNo(Enum):" in source
        assert '    """Boolean answer."""' in source
        assert "    YES = 'yes'" in source
        assert "Numbers = list[int]" in source
        assert "def numbers_from_xml(text: str) -> list[int]:" in source

    def test_render_descriptor_empty_record(self):
        """An empty Record renders a pass body."""
        empty = TypeDescriptor(QualifiedName(None, "empty", ConstructKind.COMPLEX_TYPE), Record("Empty"))
        assert render_descriptor(empty) == [
            "@dataclasses.dataclass(kw_only=True)",
            "class Empty:",
            "    pass",
        ]


class TestRenderedModule:
    """Tests executing the rendered module."""

    def test_enum_conversions(self, module):
        """from_xml/to_xml map between literals and members."""
        yes_no = module["YesNo"]
        assert yes_no.from_xml("yes") is yes_no.YES
        assert yes_no.NO.to_xml() == "no"
        with pytest.raises(ValueError, match="unknown YesNo value"):
            yes_no.from_xml("maybe")

    def test_list_conversion(self, module):
        """List aliases parse every whitespace-separated token."""
        assert module["numbers_from_xml"](" 1  2\n3 ") == [1, 2, 3]

    def test_record_instances(self, module):
        """Records are keyword-only dataclasses with defaults."""
        note_cls = module["Note"]
        choice = note_cls.ChordRest(tag="rest", value=4)
        note = note_cls(pitch="C", chord_rest=choice)
        assert note.duration is None
        assert note.tie == []
        assert dataclasses.is_dataclass(note)


NOTE_XML = (
    '<note voice="2"><pitch>C</pitch><duration>1.5</duration>'
    "<tie>start</tie><tie>stop</tie><chord>yes</chord></note>"
)


class TestXmlRoundTrip:
    """Tests reading and writing documents with the generated classes."""

    def test_note_from_xml(self, module):
        """Elements, attributes and the choice are read into fields."""
        note_cls = module["Note"]
        note = note_cls.from_xml(ET.fromstring(NOTE_XML))
        assert note.pitch == "C"
        assert note.duration == Decimal("1.5")
        assert note.tie == ["start", "stop"]
        assert note.voice == 2
        assert note.chord_rest == note_cls.ChordRest(tag="chord", value=module["YesNo"].YES)

    def test_note_to_xml(self, module):
        """Writing a read document gives the same document back."""
        note = module["Note"].from_xml(ET.fromstring(NOTE_XML))
        assert ET.tostring(note.to_xml("note"), encoding="unicode") == NOTE_XML

    def test_optional_parts_are_omitted(self, module):
        """Missing optional parts stay None and are not written."""
        note = module["Note"].from_xml(ET.fromstring("<note><pitch>D</pitch><rest>4</rest></note>"))
        assert note.duration is None
        assert note.voice is None
        assert note.tie == []
        assert note.chord_rest.tag == "rest"
        assert note.chord_rest.value == 4
        assert ET.tostring(note.to_xml("note"), encoding="unicode") == (
            "<note><pitch>D</pitch><rest>4</rest></note>"
        )

    def test_missing_choice(self, module):
        """A document without any alternative of a required choice is rejected."""
        with pytest.raises(ValueError, match="alternative"):
            module["Note"].from_xml(ET.fromstring("<note><pitch>D</pitch></note>"))

    def test_union_conversions(self, module):
        """Union members are tried in declaration order."""
        size_cls = module["Size"]
        assert size_cls.from_xml("3") == size_cls(tag="int", value=3)
        answer = size_cls.from_xml("no")
        assert answer.value is module["YesNo"].NO
        assert answer.to_xml() == "no"
        with pytest.raises(ValueError, match="no Size member accepts"):
            size_cls.from_xml("maybe")
