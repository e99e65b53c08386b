# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Grammar model: one immutable value per XSD construct.

The parser builds these once per document; nothing mutates them afterwards.
Particles inside sequences and choices keep declaration order, and the
Schema keeps its top-level definitions in document order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar

from ..names import ConstructKind

# =============================================================================
# Occurrence and facets
# =============================================================================


@dataclass(frozen=True)
class Occurs:
    """minOccurs/maxOccurs pair. ``max_occurs=None`` means unbounded."""

    min_occurs: int = 1
    max_occurs: int | None = 1

    @property
    def is_multiple(self) -> bool:
        if self.max_occurs is None:
            return True
        return self.max_occurs > 1 or self.min_occurs > 1

    @property
    def is_optional(self) -> bool:
        return self.max_occurs == 1 and self.min_occurs == 0


@dataclass(frozen=True)
class Facets:
    """Restriction facets other than enumerations."""

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_inclusive: Decimal | None = None
    max_inclusive: Decimal | None = None
    total_digits: int | None = None
    fraction_digits: int | None = None

    @property
    def is_empty(self) -> bool:
        return self == Facets()


@dataclass(frozen=True)
class Enumeration:
    value: str
    doc: str | None = None


# =============================================================================
# Simple types
# =============================================================================


@dataclass(frozen=True)
class Restriction:
    """xs:restriction, used by simple types and by both content kinds."""

    kind: ClassVar[ConstructKind] = ConstructKind.RESTRICTION

    base: str | None = None
    simple_type: SimpleType | None = None
    enumerations: tuple[Enumeration, ...] = ()
    facets: Facets = field(default_factory=Facets)
    content: Sequence | Choice | Group | None = None
    attributes: tuple[Attribute, ...] = ()
    attribute_groups: tuple[AttributeGroup, ...] = ()


@dataclass(frozen=True)
class Union:
    kind: ClassVar[ConstructKind] = ConstructKind.UNION

    member_types: tuple[str, ...] = ()
    simple_types: tuple[SimpleType, ...] = ()


@dataclass(frozen=True)
class List:
    kind: ClassVar[ConstructKind] = ConstructKind.LIST

    item_type: str | None = None
    simple_type: SimpleType | None = None


@dataclass(frozen=True)
class SimpleType:
    kind: ClassVar[ConstructKind] = ConstructKind.SIMPLE_TYPE

    content: Restriction | Union | List
    name: str | None = None
    doc: str | None = None


# =============================================================================
# Attributes
# =============================================================================


@dataclass(frozen=True)
class Attribute:
    kind: ClassVar[ConstructKind] = ConstructKind.ATTRIBUTE

    name: str | None = None
    ref: str | None = None
    type: str | None = None
    simple_type: SimpleType | None = None
    use: str = "optional"
    default: str | None = None
    fixed: str | None = None
    doc: str | None = None


@dataclass(frozen=True)
class AttributeGroup:
    """Named attribute group definition, or a reference when ``ref`` is set."""

    kind: ClassVar[ConstructKind] = ConstructKind.ATTRIBUTE_GROUP

    name: str | None = None
    ref: str | None = None
    attributes: tuple[Attribute, ...] = ()
    attribute_groups: tuple[AttributeGroup, ...] = ()
    doc: str | None = None


# =============================================================================
# Particles
# =============================================================================


@dataclass(frozen=True)
class Element:
    kind: ClassVar[ConstructKind] = ConstructKind.ELEMENT

    name: str | None = None
    ref: str | None = None
    type: str | None = None
    complex_type: ComplexType | None = None
    simple_type: SimpleType | None = None
    occurs: Occurs = field(default_factory=Occurs)
    default: str | None = None
    fixed: str | None = None
    doc: str | None = None


@dataclass(frozen=True)
class Sequence:
    """xs:sequence, or xs:all when ``ordered`` is False."""

    kind: ClassVar[ConstructKind] = ConstructKind.SEQUENCE

    particles: tuple[Particle, ...] = ()
    occurs: Occurs = field(default_factory=Occurs)
    ordered: bool = True


@dataclass(frozen=True)
class Choice:
    kind: ClassVar[ConstructKind] = ConstructKind.CHOICE

    particles: tuple[Particle, ...] = ()
    occurs: Occurs = field(default_factory=Occurs)


@dataclass(frozen=True)
class Group:
    """Named model group definition, or a reference when ``ref`` is set."""

    kind: ClassVar[ConstructKind] = ConstructKind.GROUP

    name: str | None = None
    ref: str | None = None
    content: Sequence | Choice | None = None
    occurs: Occurs = field(default_factory=Occurs)
    doc: str | None = None


Particle = Element | Sequence | Choice | Group


# =============================================================================
# Complex types
# =============================================================================


@dataclass(frozen=True)
class Extension:
    kind: ClassVar[ConstructKind] = ConstructKind.EXTENSION

    base: str
    content: Sequence | Choice | Group | None = None
    attributes: tuple[Attribute, ...] = ()
    attribute_groups: tuple[AttributeGroup, ...] = ()


@dataclass(frozen=True)
class SimpleContent:
    kind: ClassVar[ConstructKind] = ConstructKind.SIMPLE_CONTENT

    derivation: Extension | Restriction


@dataclass(frozen=True)
class ComplexContent:
    kind: ClassVar[ConstructKind] = ConstructKind.COMPLEX_CONTENT

    derivation: Extension | Restriction


@dataclass(frozen=True)
class ComplexType:
    kind: ClassVar[ConstructKind] = ConstructKind.COMPLEX_TYPE

    name: str | None = None
    content: Sequence | Choice | Group | SimpleContent | ComplexContent | None = None
    attributes: tuple[Attribute, ...] = ()
    attribute_groups: tuple[AttributeGroup, ...] = ()
    doc: str | None = None


# =============================================================================
# Document
# =============================================================================


@dataclass(frozen=True)
class Import:
    kind: ClassVar[ConstructKind] = ConstructKind.IMPORT

    namespace: str | None = None
    schema_location: str | None = None


Definition = Element | ComplexType | SimpleType | Attribute | AttributeGroup | Group


@dataclass(frozen=True)
class Schema:
    """Parsed schema document.

    Attributes:
        target_namespace: targetNamespace, or None.
        element_form_default: elementFormDefault (``unqualified`` if absent).
        attribute_form_default: attributeFormDefault.
        prefixes: Namespace prefix table, ``""`` for the default namespace.
        imports: xs:import children in document order.
        children: Named top-level definitions in document order.
    """

    target_namespace: str | None = None
    element_form_default: str = "unqualified"
    attribute_form_default: str = "unqualified"
    prefixes: dict[str, str] = field(default_factory=dict)
    imports: tuple[Import, ...] = ()
    children: tuple[Definition, ...] = ()

    def definitions(self) -> tuple[Definition, ...]:
        return self.children

    def _of(self, cls: type) -> tuple:
        return tuple(c for c in self.children if isinstance(c, cls))

    @property
    def elements(self) -> tuple[Element, ...]:
        return self._of(Element)

    @property
    def complex_types(self) -> tuple[ComplexType, ...]:
        return self._of(ComplexType)

    @property
    def simple_types(self) -> tuple[SimpleType, ...]:
        return self._of(SimpleType)

    @property
    def attributes(self) -> tuple[Attribute, ...]:
        return self._of(Attribute)

    @property
    def attribute_groups(self) -> tuple[AttributeGroup, ...]:
        return self._of(AttributeGroup)

    @property
    def groups(self) -> tuple[Group, ...]:
        return self._of(Group)
