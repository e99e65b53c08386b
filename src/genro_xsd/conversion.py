# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Conversion bodies attached to generated types.

The generated module reads and writes documents with
``xml.etree.ElementTree``:

    Record          from_xml(node) / write_xml(node) / to_xml(tag)
    choice          from_element(child) / from_xml(node) / all_from_xml(node)
                    / write_xml(node)
    simple union    from_xml(text) / to_xml()
    enumeration     from_xml(text) / to_xml()
    list alias      <alias>_from_xml(text), one parsed value per token

Field and variant types are classified here, while the descriptor is being
built, from the owner's nested descriptors and the Context. The renderer
only copies the resulting lines.

Within a Record, fields are read by origin: attributes with ``node.get``,
text content from ``node.text``, elements with ``find``/``findall`` on
their tag. Fields without a tag (nested sequences, choices and group
references) read from the same node as their owner.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .descriptor import (
    Conversion,
    Field,
    Origin,
    Record,
    TaggedUnion,
    TypeAlias,
    TypeDescriptor,
    TypeReference,
    TypeRef,
    Variant,
    Wrapper,
)
from .names import ConstructKind

if TYPE_CHECKING:
    from .context import Context

# Text parsers of the Python types built-ins map to; ``{}`` is the text.
SCALAR_PARSERS = {
    "str": "{}",
    "int": "int({})",
    "float": "float({})",
    "Decimal": "Decimal({})",
    "bool": "_parse_bool({})",
    "date": "date.fromisoformat({})",
    "datetime": "datetime.fromisoformat({})",
    "time": "time.fromisoformat({})",
}

# TaggedUnions read from child elements; any other TaggedUnion reads text.
CHOICE_KINDS = (ConstructKind.CHOICE, ConstructKind.GROUP)


class CodecKind(Enum):
    TEXT = "text"
    RECORD = "record"
    CHOICE = "choice"


@dataclass(frozen=True)
class Codec:
    """How values of a referenced type are read and written.

    Attributes:
        kind: TEXT for values held in text, RECORD and CHOICE for values
            held in elements.
        path: Name the generated code uses for the type.
        parse: Expression template turning one text token into a value.
        wrappers: Wrappers of the reference, alias wrappers included.
        first_tag: Tag of the first element field of a Record.
    """

    kind: CodecKind
    path: str
    parse: str = "{}"
    wrappers: tuple[Wrapper, ...] = ()
    first_tag: str | None = None

    @property
    def repeated(self) -> bool:
        return Wrapper.REPEATED in self.wrappers

    @property
    def optional(self) -> bool:
        return Wrapper.OPTIONAL in self.wrappers

    def text_parser(self) -> str:
        """Template for the whole text of one occurrence."""
        if Wrapper.LIST in self.wrappers:
            return f"[{self.parse.format('item')} for item in {{}}.split()]"
        return self.parse


# =============================================================================
# Classification
# =============================================================================


def find_descriptor(
    name: str,
    owner: TypeDescriptor | None,
    context: Context,
    scope: Iterable[TypeDescriptor] = (),
) -> TypeDescriptor | None:
    """Descriptor a rendered (possibly path-qualified) name stands for.

    ``owner`` is the descriptor being built, not yet in the Context;
    ``scope`` holds nested declarations rendered at module level.
    """
    head, *path = name.split(".")
    if owner is not None and head == owner.type_name:
        found = owner
    else:
        found = next((n for n in scope if n.type_name == head), None) or context.declared(head)
    for part in path:
        if found is None:
            return None
        found = next((n for n in found.nested if n.type_name == part), None)
    return found


def codec_for(ref: TypeRef, owner: TypeDescriptor | None, context: Context) -> Codec:
    """Follow aliases from ``ref`` to the type that decides how it converts."""
    name = ref.name
    wrappers = ref.wrappers
    scope: list[TypeDescriptor] = []
    seen = set()
    while name not in seen:
        seen.add(name)
        if name in SCALAR_PARSERS:
            return Codec(CodecKind.TEXT, name, SCALAR_PARSERS[name], wrappers)
        target = find_descriptor(name, owner, context, scope)
        if target is None:
            break
        match target.shape:
            case TypeAlias(target=inner) | TypeReference(ref=inner):
                name = inner.name
                wrappers = inner.wrappers + wrappers
                scope.extend(target.nested)
            case Record():
                return Codec(CodecKind.RECORD, name, wrappers=wrappers, first_tag=first_tag(target))
            case TaggedUnion() as union if union.has_payload and target.name.kind in CHOICE_KINDS:
                return Codec(CodecKind.CHOICE, name, wrappers=wrappers)
            case TaggedUnion():
                return Codec(CodecKind.TEXT, name, f"{name}.from_xml({{}})", wrappers)
    return Codec(CodecKind.TEXT, name, wrappers=wrappers)


def first_tag(descriptor: TypeDescriptor) -> str | None:
    """Tag of the first element field, which opens every occurrence."""
    for item in descriptor.shape.fields:
        if item.origin is Origin.ELEMENT:
            return item.xml_name
    return None


# =============================================================================
# Records
# =============================================================================


def record_conversions(descriptor: TypeDescriptor, context: Context) -> list[Conversion]:
    """``from_xml``, ``write_xml`` and ``to_xml`` of a Record."""
    type_name = descriptor.type_name
    read: list[str] = []
    write: list[str] = []
    for item in descriptor.shape.fields:
        codec = codec_for(item.type, descriptor, context)
        read.extend(_read_field(item, codec))
        write.extend(_write_field(item, codec))
    if read:
        read = ["values = {}", *read, "return cls(**values)"]
    else:
        read = ["return cls()"]
    return [
        Conversion(
            "from_xml", ("cls", "node: ET.Element"), tuple(read), returns=type_name, is_classmethod=True
        ),
        Conversion("write_xml", ("self", "node: ET.Element"), tuple(write or ["pass"]), returns="None"),
        Conversion(
            "to_xml",
            ("self", "tag: str"),
            ("node = ET.Element(tag)", "self.write_xml(node)", "return node"),
            returns="ET.Element",
        ),
    ]


def _read_field(item: Field, codec: Codec) -> list[str]:
    key = f"values[{item.name!r}]"
    parse = codec.text_parser()
    fallback = repr(item.xml_default or "")

    if item.origin is Origin.ATTRIBUTE:
        default = f", {item.xml_default!r}" if item.xml_default is not None else ""
        return [
            f"text = node.get({item.xml_name!r}{default})",
            "if text is not None:",
            f"    {key} = {parse.format('text')}",
        ]
    if item.origin is Origin.TEXT or (item.xml_name is None and codec.kind is CodecKind.TEXT):
        return [f"{key} = {parse.format(f'(node.text or {fallback})')}"]

    if item.xml_name is not None:
        tag = repr(item.xml_name)
        if codec.kind is CodecKind.TEXT:
            value = parse.format(f"(child.text or {fallback})")
        else:
            value = f"{codec.path}.from_xml(child)"
        if codec.repeated:
            return [f"{key} = [{value} for child in node.findall({tag})]"]
        return [f"child = node.find({tag})", "if child is not None:", f"    {key} = {value}"]

    # Sequences, choices and groups share their owner's node.
    if codec.kind is CodecKind.CHOICE:
        if codec.repeated:
            return [f"{key} = {codec.path}.all_from_xml(node)"]
        if codec.optional:
            return [f"found = {codec.path}.all_from_xml(node)", "if found:", f"    {key} = found[0]"]
        return [f"{key} = {codec.path}.from_xml(node)"]
    if codec.repeated:
        if codec.first_tag is None:
            return [f"{key} = [{codec.path}.from_xml(node)]"]
        return [f"{key} = [{codec.path}.from_xml(part) for part in _occurrences(node, {codec.first_tag!r})]"]
    if codec.optional and codec.first_tag is not None:
        return [f"if node.find({codec.first_tag!r}) is not None:", f"    {key} = {codec.path}.from_xml(node)"]
    return [f"{key} = {codec.path}.from_xml(node)"]


def _write_field(item: Field, codec: Codec) -> list[str]:
    value = f"self.{item.name}"
    if codec.repeated:
        return [f"for item in {value}:", *_indent(_write_value(item, codec, "item"))]
    if codec.optional:
        return [f"if {value} is not None:", *_indent(_write_value(item, codec, value))]
    return _write_value(item, codec, value)


def _write_value(item: Field, codec: Codec, value: str) -> list[str]:
    if item.origin is Origin.ATTRIBUTE:
        return [f"node.set({item.xml_name!r}, _format({value}))"]
    if item.origin is Origin.TEXT:
        return [f"node.text = _format({value})"]
    return _write_element(item.xml_name, codec, value)


def _write_element(tag: str | None, codec: Codec, value: str) -> list[str]:
    if codec.kind is CodecKind.TEXT:
        if tag is None:
            return [f"node.text = _format({value})"]
        return [f"ET.SubElement(node, {tag!r}).text = _format({value})"]
    if tag is None:
        return [f"{value}.write_xml(node)"]
    return [f"{value}.write_xml(ET.SubElement(node, {tag!r}))"]


def _indent(lines: list[str]) -> list[str]:
    return [f"    {line}" for line in lines]


# =============================================================================
# Tagged unions
# =============================================================================


def choice_conversions(descriptor: TypeDescriptor, context: Context) -> list[Conversion]:
    """Conversions of a choice: one child element selects the variant."""
    type_name = descriptor.type_name
    from_element: list[str] = []
    from_node = [
        "for child in node:",
        "    found = cls.from_element(child)",
        "    if found is not None:",
        "        return found",
    ]
    write: list[str] = []
    for index, variant in enumerate(descriptor.shape.variants):
        codec = _variant_codec(variant, descriptor, context)
        from_element.extend(_element_variant(variant, codec))
        from_node.extend(_node_variant(variant, codec))
        keyword = "if" if index == 0 else "elif"
        write.append(f"{keyword} self.tag == {variant.name!r}:")
        write.extend(_indent(_write_variant(variant, codec)))
    from_element.append("return None")
    from_node.append(f'raise ValueError(f"no {type_name} alternative in <{{node.tag}}>")')
    return [
        Conversion(
            "from_element",
            ("cls", "child: ET.Element"),
            tuple(from_element),
            returns=f"{type_name} | None",
            is_classmethod=True,
        ),
        Conversion("from_xml", ("cls", "node: ET.Element"), tuple(from_node), returns=type_name, is_classmethod=True),
        Conversion(
            "all_from_xml",
            ("cls", "node: ET.Element"),
            ("return [found for found in map(cls.from_element, node) if found is not None]",),
            returns=f"list[{type_name}]",
            is_classmethod=True,
        ),
        Conversion("write_xml", ("self", "node: ET.Element"), tuple(write or ["pass"]), returns="None"),
    ]


def _variant_codec(variant: Variant, owner: TypeDescriptor, context: Context) -> Codec | None:
    if variant.payload is None:
        return None
    return codec_for(variant.payload, owner, context)


def _element_variant(variant: Variant, codec: Codec | None) -> list[str]:
    """Lines of ``from_element`` matching one child against a variant."""
    tag = variant.name
    if codec is None:
        if variant.xml_name is None:
            return []
        return [f"if child.tag == {variant.xml_name!r}:", f"    return cls(tag={tag!r})"]
    if variant.xml_name is None:
        if codec.kind is not CodecKind.CHOICE:
            return []
        return [
            f"found = {codec.path}.from_element(child)",
            "if found is not None:",
            f"    return cls(tag={tag!r}, value={'[found]' if codec.repeated else 'found'})",
        ]
    if codec.kind is CodecKind.TEXT:
        value = codec.text_parser().format("(child.text or '')")
    else:
        value = f"{codec.path}.from_xml(child)"
    if codec.repeated:
        value = f"[{value}]"
    return [f"if child.tag == {variant.xml_name!r}:", f"    return cls(tag={tag!r}, value={value})"]


def _node_variant(variant: Variant, codec: Codec | None) -> list[str]:
    """Lines of ``from_xml`` for a sequence or group variant, found by its first tag."""
    if codec is None or variant.xml_name is not None or codec.kind is not CodecKind.RECORD:
        return []
    value = f"{codec.path}.from_xml(node)"
    if codec.repeated:
        if codec.first_tag is None:
            value = f"[{value}]"
        else:
            value = f"[{codec.path}.from_xml(part) for part in _occurrences(node, {codec.first_tag!r})]"
    if codec.first_tag is None:
        return [f"return cls(tag={variant.name!r}, value={value})"]
    return [
        f"if node.find({codec.first_tag!r}) is not None:",
        f"    return cls(tag={variant.name!r}, value={value})",
    ]


def _write_variant(variant: Variant, codec: Codec | None) -> list[str]:
    if codec is None:
        if variant.xml_name is None:
            return ["pass"]
        return [f"ET.SubElement(node, {variant.xml_name!r})"]
    if codec.repeated:
        return ["for item in self.value:", *_indent(_write_element(variant.xml_name, codec, "item"))]
    return _write_element(variant.xml_name, codec, "self.value")


def union_conversions(descriptor: TypeDescriptor, context: Context) -> list[Conversion]:
    """Conversions of a simple-type union: the first member that parses wins."""
    type_name = descriptor.type_name
    lines: list[str] = []
    for variant in descriptor.shape.variants:
        codec = codec_for(variant.payload, descriptor, context)
        lines.append("with suppress(ValueError, ArithmeticError):")
        lines.append(f"    return cls(tag={variant.name!r}, value={codec.text_parser().format('text')})")
    lines.append(f'raise ValueError(f"no {type_name} member accepts {{text!r}}")')
    return [
        Conversion("from_xml", ("cls", "text: str"), tuple(lines), returns=type_name, is_classmethod=True),
        Conversion("to_xml", ("self",), ("return _format(self.value)",), returns="str"),
    ]


def enum_conversions(type_name: str) -> list[Conversion]:
    return [
        Conversion(
            "from_xml",
            ("cls", "text: str"),
            (
                "for member in cls:",
                "    if member.value == text:",
                "        return member",
                f'raise ValueError(f"unknown {type_name} value: {{text!r}}")',
            ),
            returns=type_name,
            is_classmethod=True,
        ),
        Conversion("to_xml", ("self",), ("return self.value",), returns="str"),
    ]


def list_conversion(item: TypeDescriptor, context: Context) -> Conversion:
    """``from_xml`` of a list type: each whitespace-separated token is parsed."""
    ref = item.as_ref()
    codec = codec_for(ref, item if item.declares else None, context)
    return Conversion(
        "from_xml",
        ("text: str",),
        (f"return [{codec.parse.format('item')} for item in text.split()]",),
        returns=f"list[{ref.render()}]",
    )
