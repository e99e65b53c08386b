# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for the resolution driver."""

import pytest

from genro_xsd import SchemaLoader, XsdCompiler, parse_schema, resolve_schema
from genro_xsd.context import Context
from genro_xsd.descriptor import Field, Origin, TypeRef, Wrapper
from genro_xsd.driver import ResolutionDriver
from genro_xsd.errors import GrammarViolation, Unresolvable
from genro_xsd.names import XML_NS, XSD_NS, ConstructKind, QualifiedName

XS = 'xmlns:xs="http://www.w3.org/2001/XMLSchema"'


def schema(body: str, attrs: str = "") -> str:
    return f"<xs:schema {XS} {attrs}>{body}</xs:schema>"


# =============================================================================
# Fixed point
# =============================================================================


class TestFixedPoint:
    """Tests for pass iteration."""

    def test_forward_references(self):
        """Definitions may reference ones declared later."""
        resolution = resolve_schema(
            parse_schema(
                schema(
                    """
                    <xs:element name="doc" type="DocType"/>
                    <xs:complexType name="DocType">
                      <xs:sequence><xs:element name="code" type="Code"/></xs:sequence>
                    </xs:complexType>
                    <xs:simpleType name="Code">
                      <xs:restriction base="xs:string"><xs:pattern value="[A-Z]+"/></xs:restriction>
                    </xs:simpleType>
                    """
                )
            )
        )
        assert [n.local_name for n in resolution.names] == ["Code", "DocType", "doc"]
        assert len(resolution.context) == 3
        doc_type = resolution[QualifiedName(None, "DocType", ConstructKind.COMPLEX_TYPE)]
        assert doc_type.shape.fields == [Field("code", TypeRef("Code"))]
        assert [d.type_name for d in resolution.descriptors()] == ["Code", "DocType", "Doc"]

    def test_cycle_is_unresolvable(self):
        """Mutually dependent definitions count each other's failures as retries."""
        with pytest.raises(Unresolvable) as exc_info:
            resolve_schema(
                parse_schema(
                    schema(
                        """
                        <xs:complexType name="A">
                          <xs:sequence><xs:element name="b" type="B"/></xs:sequence>
                        </xs:complexType>
                        <xs:complexType name="B">
                          <xs:sequence><xs:element name="a" type="A"/></xs:sequence>
                        </xs:complexType>
                        """
                    )
                )
            )
        report = exc_info.value.report
        assert {entry.name.local_name for entry in report} == {"A", "B"}
        assert all(entry.retries == 2 for entry in report)
        assert "A (complexType)" in str(exc_info.value)

    def test_undefined_type_is_unresolvable(self):
        """A reference to a type nobody declares never resolves."""
        with pytest.raises(Unresolvable) as exc_info:
            resolve_schema(
                parse_schema(schema('<xs:element name="a" type="Nowhere"/><xs:complexType name="Ok"/>'))
            )
        assert [name.local_name for name in exc_info.value.names] == ["a"]

    def test_element_before_its_type(self):
        """A top-level element resolves once its type is stored."""
        resolution = resolve_schema(
            parse_schema(
                schema(
                    """
                    <xs:element name="tree" type="Tree"/>
                    <xs:complexType name="Tree">
                      <xs:sequence><xs:element name="label" type="xs:string"/></xs:sequence>
                    </xs:complexType>
                    """
                )
            )
        )
        assert len(resolution.names) == 2

    def test_duplicate_definitions(self):
        """Two top-level definitions with the same kind and name are rejected."""
        with pytest.raises(GrammarViolation):
            resolve_schema(
                parse_schema(schema('<xs:complexType name="A"/><xs:complexType name="A"/>'))
            )

    def test_collision_rename(self):
        """Definitions rendering to the same name are kept apart."""
        resolution = resolve_schema(
            parse_schema(
                schema(
                    """
                    <xs:complexType name="note">
                      <xs:sequence><xs:element name="text" type="xs:string"/></xs:sequence>
                    </xs:complexType>
                    <xs:element name="note">
                      <xs:complexType>
                        <xs:sequence>
                          <xs:element name="body">
                            <xs:complexType>
                              <xs:sequence><xs:element name="text" type="xs:string"/></xs:sequence>
                            </xs:complexType>
                          </xs:element>
                        </xs:sequence>
                      </xs:complexType>
                    </xs:element>
                    """
                )
            )
        )
        context = resolution.context
        complex_type = context.lookup(QualifiedName(None, "note", ConstructKind.COMPLEX_TYPE))
        element = context.lookup(QualifiedName(None, "note", ConstructKind.ELEMENT))
        assert complex_type.type_name == "Note"
        assert element.type_name == "NoteElement"
        assert element.shape.fields == [Field("body", TypeRef("NoteElement.Body"))]
        assert element.nested[0].type_name == "Body"

    def test_target_namespace(self):
        """Definitions are keyed by the target namespace."""
        resolution = resolve_schema(
            parse_schema(
                schema(
                    """
                    <xs:complexType name="Item">
                      <xs:sequence><xs:element name="code" type="tns:Code"/></xs:sequence>
                    </xs:complexType>
                    <xs:simpleType name="Code"><xs:restriction base="xs:string"/></xs:simpleType>
                    """,
                    'targetNamespace="urn:shop" xmlns:tns="urn:shop"',
                )
            )
        )
        assert QualifiedName("urn:shop", "Item", ConstructKind.COMPLEX_TYPE) in resolution.names

    def test_namespace_filter(self):
        """Only names of the filtered namespace are reported."""
        parsed = parse_schema(
            schema('<xs:complexType name="A"/>', 'targetNamespace="urn:a" xmlns="urn:a"')
        )
        resolution = resolve_schema(parsed, namespace_filter="urn:other")
        assert resolution.names == []
        assert len(resolution.context) == 1

    def test_existing_context(self):
        """A caller-supplied Context is filled in place."""
        context = Context({"xs": XSD_NS})
        ResolutionDriver(parse_schema(schema('<xs:complexType name="A"/>')), context=context).run()
        assert len(context) == 1


# =============================================================================
# Imports
# =============================================================================


COMMON = schema(
    '<xs:simpleType name="Code"><xs:restriction base="xs:string"/></xs:simpleType>',
    'targetNamespace="urn:common" xmlns="urn:common"',
)

MAIN = schema(
    """
    <xs:import namespace="urn:common" schemaLocation="common.xsd"/>
    <xs:complexType name="Item">
      <xs:sequence><xs:element name="code" type="c:Code"/></xs:sequence>
    </xs:complexType>
    """,
    'xmlns:c="urn:common" targetNamespace="urn:main" xmlns="urn:main"',
)

ITEM_A = """
<xs:complexType name="Item">
  <xs:sequence><xs:element name="code" type="xs:int"/></xs:sequence>
</xs:complexType>
"""

ITEM_B = """
<xs:complexType name="Item">
  <xs:sequence><xs:element name="sku" type="xs:string"/></xs:sequence>
</xs:complexType>
<xs:complexType name="Holder">
  <xs:sequence><xs:element name="item" type="Item"/></xs:sequence>
</xs:complexType>
"""


class TestImports:
    """Tests for xs:import handling."""

    def test_import_is_spliced(self, tmp_path):
        """Imported definitions are resolved first and moved in."""
        (tmp_path / "common.xsd").write_text(COMMON, encoding="utf-8")
        main = tmp_path / "main.xsd"
        main.write_text(MAIN, encoding="utf-8")

        resolution = XsdCompiler(main).compile()

        assert [n.local_name for n in resolution.names] == ["Item"]
        assert len(resolution.context) == 2
        item = resolution[QualifiedName("urn:main", "Item", ConstructKind.COMPLEX_TYPE)]
        assert item.shape.fields == [Field("code", TypeRef("Code"))]

    def test_import_without_location_is_skipped(self):
        """An import with no schemaLocation contributes nothing."""
        resolution = resolve_schema(
            parse_schema(schema('<xs:import namespace="urn:x"/><xs:complexType name="A"/>'))
        )
        assert len(resolution.context) == 1

    def test_circular_import_is_skipped(self, tmp_path):
        """A document importing its importer does not recurse."""
        (tmp_path / "a.xsd").write_text(
            schema(
                '<xs:import namespace="urn:b" schemaLocation="b.xsd"/><xs:complexType name="A"/>',
                'targetNamespace="urn:a"',
            ),
            encoding="utf-8",
        )
        (tmp_path / "b.xsd").write_text(
            schema(
                '<xs:import namespace="urn:a" schemaLocation="a.xsd"/><xs:complexType name="B"/>',
                'targetNamespace="urn:b"',
            ),
            encoding="utf-8",
        )
        loader = SchemaLoader()
        location = str(tmp_path / "a.xsd")
        resolution = resolve_schema(
            parse_schema(loader.load(location)), loader=loader, location=location
        )
        assert {d.type_name for d in resolution.context} == {"A", "B"}

    def test_xml_namespace_reference(self, tmp_path):
        """xml:lang resolves without an xmlns:xml declaration."""
        (tmp_path / "xml.xsd").write_text(
            schema(
                '<xs:attribute name="lang" type="xs:language"/>',
                f'targetNamespace="{XML_NS}"',
            ),
            encoding="utf-8",
        )
        main = tmp_path / "credit.xsd"
        main.write_text(
            schema(
                f"""
                <xs:import namespace="{XML_NS}" schemaLocation="xml.xsd"/>
                <xs:complexType name="Credit">
                  <xs:sequence><xs:element name="line" type="xs:string"/></xs:sequence>
                  <xs:attribute ref="xml:lang"/>
                </xs:complexType>
                """
            ),
            encoding="utf-8",
        )

        resolution = XsdCompiler(main).compile()

        credit = resolution[QualifiedName(None, "Credit", ConstructKind.COMPLEX_TYPE)]
        lang = credit.shape.fields[1]
        assert lang == Field("lang", TypeRef("Lang", (Wrapper.OPTIONAL,)))
        assert lang.origin is Origin.ATTRIBUTE
        assert lang.xml_name == f"{{{XML_NS}}}lang"

    def test_colliding_imports_keep_references(self, tmp_path):
        """A renamed import is still the type its own siblings reference."""
        bodies = {"a": ITEM_A, "b": ITEM_B}
        for prefix, body in bodies.items():
            (tmp_path / f"{prefix}.xsd").write_text(
                schema(body, f'targetNamespace="urn:{prefix}" xmlns="urn:{prefix}"'), encoding="utf-8"
            )
        main = tmp_path / "main.xsd"
        main.write_text(
            schema(
                """
                <xs:import namespace="urn:a" schemaLocation="a.xsd"/>
                <xs:import namespace="urn:b" schemaLocation="b.xsd"/>
                """
            ),
            encoding="utf-8",
        )

        context = XsdCompiler(main).compile().context

        first = context.lookup(QualifiedName("urn:a", "Item", ConstructKind.COMPLEX_TYPE))
        second = context.lookup(QualifiedName("urn:b", "Item", ConstructKind.COMPLEX_TYPE))
        holder = context.lookup(QualifiedName("urn:b", "Holder", ConstructKind.COMPLEX_TYPE))
        assert first.type_name == "Item"
        assert second.type_name == "ItemComplexType"
        assert holder.shape.fields == [Field("item", TypeRef("ItemComplexType"))]
        assert "    values['item'] = ItemComplexType.from_xml(child)" in holder.conversions[0].lines
        assert second.conversions[0].returns == "ItemComplexType"
