# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Qualified names and naming helpers.

Every schema definition is identified by a QualifiedName: the namespace URI,
the local name and the construct kind. Two definitions that differ only in
kind (an element and a complexType both called ``Note``) are distinct.

The helpers ``to_type_name`` and ``to_field_name`` turn XML names into
Python class names (CamelCase) and attribute names (snake_case).
"""

from __future__ import annotations

import keyword
import re
from dataclasses import dataclass, replace
from enum import Enum

XSD_NS = "http://www.w3.org/2001/XMLSchema"
XML_NS = "http://www.w3.org/XML/1998/namespace"

_SEPARATORS = re.compile(r"[^0-9A-Za-z]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class ConstructKind(Enum):
    """Category of an XSD grammar construct."""

    ATTRIBUTE = "attribute"
    ELEMENT = "element"
    COMPLEX_TYPE = "complexType"
    SIMPLE_TYPE = "simpleType"
    SEQUENCE = "sequence"
    CHOICE = "choice"
    GROUP = "group"
    EXTENSION = "extension"
    RESTRICTION = "restriction"
    UNION = "union"
    LIST = "list"
    ATTRIBUTE_GROUP = "attributeGroup"
    IMPORT = "import"
    SIMPLE_CONTENT = "simpleContent"
    COMPLEX_CONTENT = "complexContent"
    ANNOTATION = "annotation"

    @property
    def suffix(self) -> str:
        """CamelCase suffix used when a rendered name must be disambiguated."""
        return self.value[0].upper() + self.value[1:]


def to_type_name(name: str) -> str:
    """Convert an XML name to a Python class name.

    Separators are dropped and each part is capitalized, so ``inner-items``
    becomes ``InnerItems`` and ``pitch_rest`` becomes ``PitchRest``.
    A leading digit gets an underscore prefix.

    Args:
        name: XML local name (or inferred name).

    Returns:
        CamelCase identifier.
    """
    parts = [p for p in _SEPARATORS.split(name) if p]
    result = "".join(p[0].upper() + p[1:] for p in parts)
    if result and result[0].isdigit():
        result = f"_{result}"
    return result


def to_field_name(name: str) -> str:
    """Convert an XML name to a snake_case Python attribute name.

    Python keywords get a trailing underscore (``class`` -> ``class_``).
    Names with no usable characters become ``empty``.
    """
    text = _CAMEL_BOUNDARY.sub("_", name)
    parts = [p for p in _SEPARATORS.split(text) if p]
    result = "_".join(parts).lower()
    if not result:
        return "empty"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


@dataclass(frozen=True)
class QualifiedName:
    """Identity key of a schema definition.

    Attributes:
        namespace: Namespace URI, or the raw prefix for a name parsed from
            a reference and not yet resolved by the Context. None means no
            namespace.
        local_name: Local part of the name.
        kind: Construct kind.
    """

    namespace: str | None
    local_name: str
    kind: ConstructKind

    @classmethod
    def parse(cls, text: str, kind: ConstructKind) -> QualifiedName:
        """Parse ``prefix:local`` (or ``local``) into a QualifiedName.

        The namespace holds the raw prefix; the Context maps it to a URI.
        """
        text = text.strip()
        if ":" in text:
            prefix, local = text.split(":", 1)
            return cls(prefix, local, kind)
        return cls(None, text, kind)

    @property
    def type_name(self) -> str:
        return to_type_name(self.local_name)

    @property
    def field_name(self) -> str:
        return to_field_name(self.local_name)

    def with_kind(self, kind: ConstructKind) -> QualifiedName:
        return replace(self, kind=kind)

    def with_local_name(self, local_name: str) -> QualifiedName:
        return replace(self, local_name=local_name)

    def __str__(self) -> str:
        if self.namespace:
            return f"{{{self.namespace}}}{self.local_name} ({self.kind.value})"
        return f"{self.local_name} ({self.kind.value})"
