# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Render descriptors as Python source.

    Record                      @dataclasses.dataclass(kw_only=True) class
    TaggedUnion (no payloads)   Enum subclass with from_xml/to_xml
    TaggedUnion (payloads)      dataclass with ``tag`` and ``value``
    TypeAlias                   module-level assignment
    TypeReference               only its nested declarations

Every descriptor is rendered from itself and its nested descriptors alone;
nested descriptors become nested classes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from genro_toolbox import safe_is_instance

from .descriptor import (
    Conversion,
    Field,
    Record,
    TaggedUnion,
    TypeAlias,
    TypeDescriptor,
    TypeReference,
    TypeRef,
    Wrapper,
)
from .names import to_field_name

INDENT = "    "

HEADER = (
    '"""Generated from an XML Schema."""',
    "",
    "from __future__ import annotations",
    "",
    "import dataclasses",
    "from contextlib import suppress",
    "from datetime import date, datetime, time",
    "from decimal import Decimal",
    "from enum import Enum",
    "from typing import Any, Literal",
    "from xml.etree import ElementTree as ET",
)

# Helpers called by the generated conversion bodies.
RUNTIME = '''\
def _parse_bool(text: str) -> bool:
    value = text.strip()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValueError(f"not an xs:boolean: {text!r}")


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return " ".join(_format(item) for item in value)
    if isinstance(value, date | datetime | time):
        return value.isoformat()
    if hasattr(value, "to_xml"):
        return value.to_xml()
    return str(value)


def _occurrences(node: ET.Element, first: str) -> list[ET.Element]:
    """Split the children of ``node`` into groups, each opened by a ``first`` tag."""
    groups: list[ET.Element] = []
    for child in node:
        if child.tag == first:
            groups.append(ET.Element(node.tag))
        if groups:
            groups[-1].append(child)
    return groups'''


def render_module(source: Any) -> str:
    """Render a Resolution, a Context or an iterable of descriptors.

    Returns:
        Python module text.
    """
    if safe_is_instance(source, "genro_xsd.driver.Resolution"):
        descriptors: Iterable[TypeDescriptor] = source.context
    else:
        descriptors = source
    blocks = ["\n".join(HEADER), RUNTIME]
    for descriptor in descriptors:
        lines = render_descriptor(descriptor)
        if lines:
            blocks.append("\n".join(lines))
    return "\n\n\n".join(blocks) + "\n"


def render_descriptor(descriptor: TypeDescriptor, indent: str = "") -> list[str]:
    """Render one descriptor (and its nested ones) at the given indentation."""
    match descriptor.shape:
        case Record():
            return _record(descriptor, indent)
        case TaggedUnion() as union if not union.has_payload:
            return _enum(descriptor, indent)
        case TaggedUnion():
            return _tagged(descriptor, indent)
        case TypeAlias():
            return _alias(descriptor, indent)
        case TypeReference():
            return _nested(descriptor, indent)
        case _:
            raise TypeError(f"unsupported shape {type(descriptor.shape).__name__}")


# =============================================================================
# Shapes
# =============================================================================


def _record(descriptor: TypeDescriptor, indent: str) -> list[str]:
    inner = indent + INDENT
    lines = [f"{indent}@dataclasses.dataclass(kw_only=True)", f"{indent}class {descriptor.type_name}:"]
    body = _docstring(descriptor.doc, inner)
    body.extend(_nested(descriptor, inner))
    body.extend(_field(item, inner) for item in descriptor.shape.fields)
    body.extend(_conversions(descriptor.conversions, inner))
    return lines + (body or [f"{inner}pass"])


def _enum(descriptor: TypeDescriptor, indent: str) -> list[str]:
    inner = indent + INDENT
    lines = [f"{indent}class {descriptor.type_name}(Enum):"]
    body = _docstring(descriptor.doc, inner)
    for variant in descriptor.shape.variants:
        value = variant.xml_value if variant.xml_value is not None else variant.name
        body.append(f"{inner}{variant.name.upper()} = {value!r}")
    body.extend(_conversions(descriptor.conversions, inner))
    return lines + body


def _tagged(descriptor: TypeDescriptor, indent: str) -> list[str]:
    inner = indent + INDENT
    union = descriptor.shape
    lines = [f"{indent}@dataclasses.dataclass", f"{indent}class {descriptor.type_name}:"]
    body = _docstring(descriptor.doc, inner)
    body.extend(_nested(descriptor, inner))
    tags = ", ".join(f'"{v.name}"' for v in union.variants)
    payloads = []
    for variant in union.variants:
        text = variant.payload.render() if variant.payload is not None else "None"
        if text not in payloads:
            payloads.append(text)
    body.append(f"{inner}tag: Literal[{tags}]")
    default = " = None" if "None" in payloads else ""
    body.append(f"{inner}value: {' | '.join(payloads)}{default}")
    body.extend(_conversions(descriptor.conversions, inner))
    return lines + body


def _alias(descriptor: TypeDescriptor, indent: str) -> list[str]:
    alias = descriptor.shape
    lines = _nested(descriptor, indent)
    if descriptor.doc:
        lines.extend(f"{indent}# {line}" for line in descriptor.doc.splitlines())
    if descriptor.facets is not None:
        facets = {k: v for k, v in vars(descriptor.facets).items() if v is not None}
        lines.append(f"{indent}# facets: {facets}")
    lines.append(f"{indent}{alias.type_name} = {alias.target.render()}")
    prefix = to_field_name(alias.type_name)
    for conversion in descriptor.conversions:
        lines.append("")
        lines.extend(_function(conversion, indent, f"{prefix}_{conversion.name}"))
    return lines


def _nested(descriptor: TypeDescriptor, indent: str) -> list[str]:
    lines: list[str] = []
    for nested in descriptor.nested:
        lines.extend(render_descriptor(nested, indent))
        lines.append("")
    return lines


# =============================================================================
# Members
# =============================================================================


def _default(ref: TypeRef) -> str:
    if ref.outer is Wrapper.OPTIONAL:
        return " = None"
    if ref.outer in (Wrapper.REPEATED, Wrapper.LIST):
        return " = dataclasses.field(default_factory=list)"
    return ""


def _field(item: Field, indent: str) -> str:
    return f"{indent}{item.name}: {item.type.render()}{_default(item.type)}"


def _docstring(doc: str | None, indent: str) -> list[str]:
    if not doc:
        return []
    text = doc.replace('"""', "'''").strip()
    if "\n" not in text:
        return [f'{indent}"""{text}"""', ""]
    lines = [f'{indent}"""{text.splitlines()[0]}']
    lines.extend(f"{indent}{line}".rstrip() for line in text.splitlines()[1:])
    lines.extend([f'{indent}"""', ""])
    return lines


def _conversions(conversions: list[Conversion], indent: str) -> list[str]:
    lines: list[str] = []
    for conversion in conversions:
        lines.append("")
        if conversion.is_classmethod:
            lines.append(f"{indent}@classmethod")
        lines.extend(_function(conversion, indent, conversion.name))
    return lines


def _function(conversion: Conversion, indent: str, name: str) -> list[str]:
    returns = f" -> {conversion.returns}" if conversion.returns else ""
    lines = [f"{indent}def {name}({', '.join(conversion.params)}){returns}:"]
    lines.extend(f"{indent}{INDENT}{line}" for line in conversion.lines)
    return lines
