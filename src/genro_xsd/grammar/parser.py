# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Parse XSD text into the grammar model.

Uses xml.etree.ElementTree (stdlib). Structural errors that can be detected
locally (mutually exclusive children, name and ref together, bad occurrence
values) raise GrammarViolation here, before any resolution starts.

Malformed XML raises xml.etree.ElementTree.ParseError unchanged.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from xml.etree import ElementTree as ET

from ..errors import GrammarViolation
from ..names import XSD_NS
from .nodes import (
    Attribute,
    AttributeGroup,
    Choice,
    ComplexContent,
    ComplexType,
    Element,
    Enumeration,
    Extension,
    Facets,
    Group,
    Import,
    List,
    Occurs,
    Restriction,
    Schema,
    Sequence,
    SimpleContent,
    SimpleType,
    Union,
)

logger = logging.getLogger(__name__)

USES = ("optional", "required", "prohibited")
MODEL_GROUPS = ("sequence", "choice", "all", "group")

# Schema children outside the modeled subset.
IGNORED = ("annotation", "include", "redefine", "notation", "any", "anyAttribute",
           "unique", "key", "keyref")


def parse_schema(text: str) -> Schema:
    """Parse an XSD document.

    Args:
        text: Decoded document text.

    Returns:
        The Schema value owning every grammar node.

    Raises:
        GrammarViolation: If the root is not xs:schema or a construct is
            malformed.
    """
    return GrammarParser(text).parse()


class GrammarParser:
    """One-shot parser from XSD text to grammar values."""

    def __init__(self, text: str):
        self.root, self.prefixes = self._load(text.lstrip("\ufeff"))

    # -------------------------------------------------------------------------
    # Loading and helpers
    # -------------------------------------------------------------------------

    def _load(self, text: str) -> tuple[ET.Element, dict[str, str]]:
        """Parse the XML, collecting the prefixes declared on the document."""
        parser = ET.XMLPullParser(events=("start-ns", "end"))
        parser.feed(text)
        parser.close()
        prefixes: dict[str, str] = {}
        root = None
        for event, payload in parser.read_events():
            if event == "start-ns":
                prefix, uri = payload
                prefixes.setdefault(prefix, uri)
            else:
                root = payload
        return root, prefixes

    def _q(self, tag: str) -> str:
        """Return fully qualified tag name."""
        return f"{{{XSD_NS}}}{tag}"

    def _local(self, node: ET.Element) -> str | None:
        """Local tag name for XSD elements, None for foreign ones."""
        prefix = f"{{{XSD_NS}}}"
        if isinstance(node.tag, str) and node.tag.startswith(prefix):
            return node.tag[len(prefix):]
        return None

    def _children(self, node: ET.Element) -> list[tuple[str, ET.Element]]:
        """XSD children of a node, annotations and unsupported constructs excluded."""
        out = []
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = self._local(child)
            if tag is None or tag in IGNORED:
                if tag != "annotation":
                    logger.debug("Skipping unsupported construct %s", child.tag)
                continue
            out.append((tag, child))
        return out

    def _only(self, node: ET.Element, allowed: tuple[str, ...], where: str) -> ET.Element | None:
        """Return the single child among ``allowed``; more than one is a violation."""
        found = [child for tag, child in self._children(node) if tag in allowed]
        if len(found) > 1:
            raise GrammarViolation(where, f"only one of {', '.join(allowed)} is allowed")
        return found[0] if found else None

    def _doc(self, node: ET.Element) -> str | None:
        """Text of xs:annotation/xs:documentation, if any."""
        texts = []
        for annotation in node.findall(self._q("annotation")):
            for doc in annotation.findall(self._q("documentation")):
                text = "".join(doc.itertext()).strip()
                if text:
                    texts.append(text)
        return "\n".join(texts) or None

    def _describe(self, node: ET.Element) -> str:
        label = node.get("name") or node.get("ref")
        tag = self._local(node) or node.tag
        return f"{tag} {label!r}" if label else tag

    def _occurs(self, node: ET.Element) -> Occurs:
        """Return Occurs where max=None means unbounded."""
        min_str = node.get("minOccurs")
        max_str = node.get("maxOccurs")
        try:
            min_o = int(min_str) if min_str is not None else 1
            if max_str is None:
                max_o: int | None = 1
            elif max_str == "unbounded":
                max_o = None
            else:
                max_o = int(max_str)
        except ValueError:
            raise GrammarViolation(self._describe(node), "invalid minOccurs/maxOccurs") from None
        if min_o < 0 or (max_o is not None and max_o < 0):
            raise GrammarViolation(self._describe(node), "occurrence values must not be negative")
        if max_o is not None and min_o > max_o:
            raise GrammarViolation(self._describe(node), "minOccurs is greater than maxOccurs")
        return Occurs(min_o, max_o)

    # -------------------------------------------------------------------------
    # Document
    # -------------------------------------------------------------------------

    def parse(self) -> Schema:
        root = self.root
        if root is None or root.tag != self._q("schema"):
            tag = root.tag if root is not None else None
            raise GrammarViolation(tag, "document root must be schema in the XML Schema namespace")

        imports = []
        children = []
        for tag, child in self._children(root):
            if tag == "import":
                imports.append(Import(child.get("namespace"), child.get("schemaLocation")))
            elif tag == "element":
                children.append(self._parse_element(child, top_level=True))
            elif tag == "attribute":
                children.append(self._parse_attribute(child, top_level=True))
            elif tag == "complexType":
                children.append(self._parse_complex_type(child, top_level=True))
            elif tag == "simpleType":
                children.append(self._parse_simple_type(child, top_level=True))
            elif tag == "group":
                children.append(self._parse_group(child, top_level=True))
            elif tag == "attributeGroup":
                children.append(self._parse_attribute_group(child, top_level=True))
            else:
                logger.debug("Skipping top-level %s", tag)

        return Schema(
            target_namespace=root.get("targetNamespace"),
            element_form_default=root.get("elementFormDefault", "unqualified"),
            attribute_form_default=root.get("attributeFormDefault", "unqualified"),
            prefixes=dict(self.prefixes),
            imports=tuple(imports),
            children=tuple(children),
        )

    # -------------------------------------------------------------------------
    # Elements and attributes
    # -------------------------------------------------------------------------

    def _parse_element(self, node: ET.Element, top_level: bool = False) -> Element:
        where = self._describe(node)
        name = node.get("name")
        ref = node.get("ref")
        type_ref = node.get("type")
        if name and ref:
            raise GrammarViolation(where, "name and ref are mutually exclusive")
        if top_level:
            if not name:
                raise GrammarViolation(where, "top-level element requires a name")
            if node.get("minOccurs") is not None or node.get("maxOccurs") is not None:
                raise GrammarViolation(where, "top-level element cannot declare occurrences")
        elif not name and not ref:
            raise GrammarViolation(where, "element requires name or ref")

        complex_node = self._only(node, ("complexType", "simpleType"), where)
        complex_type = simple_type = None
        if complex_node is not None:
            if self._local(complex_node) == "complexType":
                complex_type = self._parse_complex_type(complex_node)
            else:
                simple_type = self._parse_simple_type(complex_node)
        inline = complex_type is not None or simple_type is not None
        if ref and (type_ref or inline):
            raise GrammarViolation(where, "ref cannot be combined with type or an inline type")
        if type_ref and inline:
            raise GrammarViolation(where, "type and an inline type are mutually exclusive")

        return Element(
            name=name,
            ref=ref,
            type=type_ref,
            complex_type=complex_type,
            simple_type=simple_type,
            occurs=self._occurs(node),
            default=node.get("default"),
            fixed=node.get("fixed"),
            doc=self._doc(node),
        )

    def _parse_attribute(self, node: ET.Element, top_level: bool = False) -> Attribute:
        where = self._describe(node)
        name = node.get("name")
        ref = node.get("ref")
        type_ref = node.get("type")
        if name and ref:
            raise GrammarViolation(where, "name and ref are mutually exclusive")
        if not name and (top_level or not ref):
            raise GrammarViolation(where, "attribute requires a name")
        use = node.get("use", "optional")
        if use not in USES:
            raise GrammarViolation(where, f"invalid use {use!r}")

        inline = self._only(node, ("simpleType",), where)
        simple_type = self._parse_simple_type(inline) if inline is not None else None
        if ref and (type_ref or simple_type is not None):
            raise GrammarViolation(where, "ref cannot be combined with type or an inline type")
        if type_ref and simple_type is not None:
            raise GrammarViolation(where, "type and simpleType are mutually exclusive")

        return Attribute(
            name=name,
            ref=ref,
            type=type_ref,
            simple_type=simple_type,
            use=use,
            default=node.get("default"),
            fixed=node.get("fixed"),
            doc=self._doc(node),
        )

    def _parse_attribute_group(self, node: ET.Element, top_level: bool = False) -> AttributeGroup:
        where = self._describe(node)
        name = node.get("name")
        ref = node.get("ref")
        if name and ref:
            raise GrammarViolation(where, "name and ref are mutually exclusive")
        if top_level and not name:
            raise GrammarViolation(where, "top-level attributeGroup requires a name")
        if not top_level and not ref:
            raise GrammarViolation(where, "nested attributeGroup requires ref")
        attributes, groups = self._parse_attribute_uses(node)
        return AttributeGroup(name, ref, attributes, groups, self._doc(node))

    def _parse_attribute_uses(
        self, node: ET.Element
    ) -> tuple[tuple[Attribute, ...], tuple[AttributeGroup, ...]]:
        """Parse the xs:attribute and xs:attributeGroup children of a node."""
        attributes = []
        groups = []
        for tag, child in self._children(node):
            if tag == "attribute":
                attributes.append(self._parse_attribute(child))
            elif tag == "attributeGroup":
                groups.append(self._parse_attribute_group(child))
        return tuple(attributes), tuple(groups)

    # -------------------------------------------------------------------------
    # Model groups
    # -------------------------------------------------------------------------

    def _parse_particles(self, node: ET.Element) -> tuple:
        particles = []
        for tag, child in self._children(node):
            if tag == "element":
                particles.append(self._parse_element(child))
            elif tag in ("sequence", "all"):
                particles.append(self._parse_sequence(child))
            elif tag == "choice":
                particles.append(self._parse_choice(child))
            elif tag == "group":
                particles.append(self._parse_group(child))
        return tuple(particles)

    def _parse_sequence(self, node: ET.Element) -> Sequence:
        ordered = self._local(node) != "all"
        return Sequence(self._parse_particles(node), self._occurs(node), ordered)

    def _parse_choice(self, node: ET.Element) -> Choice:
        return Choice(self._parse_particles(node), self._occurs(node))

    def _parse_model_group(self, node: ET.Element, where: str) -> Sequence | Choice | Group | None:
        """Parse the single model group (sequence/choice/all/group) under a node."""
        child = self._only(node, MODEL_GROUPS, where)
        if child is None:
            return None
        tag = self._local(child)
        if tag == "choice":
            return self._parse_choice(child)
        if tag == "group":
            return self._parse_group(child)
        return self._parse_sequence(child)

    def _parse_group(self, node: ET.Element, top_level: bool = False) -> Group:
        where = self._describe(node)
        name = node.get("name")
        ref = node.get("ref")
        if name and ref:
            raise GrammarViolation(where, "name and ref are mutually exclusive")
        content_node = self._only(node, ("sequence", "choice", "all"), where)
        content = None
        if content_node is not None:
            if self._local(content_node) == "choice":
                content = self._parse_choice(content_node)
            else:
                content = self._parse_sequence(content_node)
        if top_level or name:
            if not name:
                raise GrammarViolation(where, "group definition requires a name")
            if content is None:
                raise GrammarViolation(where, "group definition requires sequence, choice or all")
            return Group(name=name, content=content, doc=self._doc(node))
        if not ref:
            raise GrammarViolation(where, "group requires name or ref")
        if content is not None:
            raise GrammarViolation(where, "group reference cannot have content")
        return Group(ref=ref, occurs=self._occurs(node), doc=self._doc(node))

    # -------------------------------------------------------------------------
    # Complex types
    # -------------------------------------------------------------------------

    def _parse_complex_type(self, node: ET.Element, top_level: bool = False) -> ComplexType:
        where = self._describe(node)
        name = node.get("name")
        if top_level and not name:
            raise GrammarViolation(where, "top-level complexType requires a name")
        if not top_level and name:
            raise GrammarViolation(where, "inline complexType cannot have a name")

        content = None
        content_node = self._only(node, MODEL_GROUPS + ("simpleContent", "complexContent"), where)
        if content_node is not None:
            tag = self._local(content_node)
            if tag == "simpleContent":
                content = SimpleContent(self._parse_derivation(content_node, simple=True))
            elif tag == "complexContent":
                content = ComplexContent(self._parse_derivation(content_node, simple=False))
            else:
                content = self._parse_model_group(node, where)
        attributes, groups = self._parse_attribute_uses(node)
        return ComplexType(
            name=name,
            content=content,
            attributes=attributes,
            attribute_groups=groups,
            doc=self._doc(node),
        )

    def _parse_derivation(self, node: ET.Element, simple: bool) -> Extension | Restriction:
        """Parse the extension/restriction of simpleContent or complexContent."""
        where = self._describe(node)
        child = self._only(node, ("extension", "restriction"), where)
        if child is None:
            raise GrammarViolation(where, "content requires extension or restriction")
        base = child.get("base")
        if not base:
            raise GrammarViolation(self._describe(child), "base is required")
        content = None if simple else self._parse_model_group(child, self._describe(child))
        attributes, groups = self._parse_attribute_uses(child)
        if self._local(child) == "extension":
            return Extension(base, content, attributes, groups)
        enumerations, facets = self._parse_facets(child)
        return Restriction(
            base=base,
            enumerations=enumerations,
            facets=facets,
            content=content,
            attributes=attributes,
            attribute_groups=groups,
        )

    # -------------------------------------------------------------------------
    # Simple types
    # -------------------------------------------------------------------------

    def _parse_simple_type(self, node: ET.Element, top_level: bool = False) -> SimpleType:
        where = self._describe(node)
        name = node.get("name")
        if top_level and not name:
            raise GrammarViolation(where, "top-level simpleType requires a name")
        if not top_level and name:
            raise GrammarViolation(where, "inline simpleType cannot have a name")

        child = self._only(node, ("restriction", "list", "union"), where)
        if child is None:
            raise GrammarViolation(where, "simpleType requires restriction, list or union")
        tag = self._local(child)
        if tag == "restriction":
            content = self._parse_simple_restriction(child)
        elif tag == "list":
            content = self._parse_list(child)
        else:
            content = self._parse_union(child)
        return SimpleType(content=content, name=name, doc=self._doc(node))

    def _parse_simple_restriction(self, node: ET.Element) -> Restriction:
        where = self._describe(node)
        base = node.get("base")
        inline = self._only(node, ("simpleType",), where)
        if base and inline is not None:
            raise GrammarViolation(where, "base and an inline simpleType are mutually exclusive")
        if not base and inline is None:
            raise GrammarViolation(where, "restriction requires base or an inline simpleType")
        enumerations, facets = self._parse_facets(node)
        return Restriction(
            base=base,
            simple_type=self._parse_simple_type(inline) if inline is not None else None,
            enumerations=enumerations,
            facets=facets,
        )

    def _parse_facets(self, node: ET.Element) -> tuple[tuple[Enumeration, ...], Facets]:
        """Parse enumeration and facet children of a restriction."""
        enumerations = []
        values: dict[str, object] = {}
        for facet in list(node):
            tag = self._local(facet)
            val = facet.get("value")
            if tag is None or val is None:
                continue
            try:
                if tag == "enumeration":
                    enumerations.append(Enumeration(val, self._doc(facet)))
                elif tag == "pattern":
                    values["pattern"] = val
                elif tag in ("minLength", "length"):
                    values["min_length"] = int(val)
                    if tag == "length":
                        values["max_length"] = int(val)
                elif tag == "maxLength":
                    values["max_length"] = int(val)
                elif tag == "minInclusive":
                    values["min_inclusive"] = Decimal(val)
                elif tag == "maxInclusive":
                    values["max_inclusive"] = Decimal(val)
                elif tag == "totalDigits":
                    values["total_digits"] = int(val)
                elif tag == "fractionDigits":
                    values["fraction_digits"] = int(val)
            except (ValueError, InvalidOperation):
                raise GrammarViolation(self._describe(node), f"invalid {tag} value {val!r}") from None
        return tuple(enumerations), Facets(**values)

    def _parse_list(self, node: ET.Element) -> List:
        where = self._describe(node)
        item_type = node.get("itemType")
        inline = self._only(node, ("simpleType",), where)
        if item_type and inline is not None:
            raise GrammarViolation(where, "itemType and an inline simpleType are mutually exclusive")
        if not item_type and inline is None:
            raise GrammarViolation(where, "list requires itemType or an inline simpleType")
        return List(item_type, self._parse_simple_type(inline) if inline is not None else None)

    def _parse_union(self, node: ET.Element) -> Union:
        where = self._describe(node)
        members = tuple(node.get("memberTypes", "").split())
        inline = tuple(
            self._parse_simple_type(child)
            for tag, child in self._children(node)
            if tag == "simpleType"
        )
        if not members and not inline:
            raise GrammarViolation(where, "union requires memberTypes or inline simple types")
        return Union(members, inline)
