# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Type descriptors and the merge engine.

A TypeDescriptor is the in-memory form of one generated type. Its shape is
one of:

    Record          product type with named fields
    TaggedUnion     sum type whose variants carry at most one payload
    TypeReference   reference to another type, possibly wrapped
    TypeAlias       named alias of a reference (top-level simple types)

Descriptors refer to each other by name (TypeRef), never by object, so a
recursive schema never produces a cyclic object graph. Anonymous inline types
are owned by their parent as nested descriptors and are referred to with a
path-qualified name (``Parent.Child``).

Descriptors are mutated only while they are being built. ``merge`` folds one
descriptor into another following the rules of the shape being merged into:

    Record + transparent Record    fields are spliced in
    Record + anything else         one new field
    TaggedUnion + anything         one new variant
    TypeReference / TypeAlias      terminal, merging raises ValueError
"""

from __future__ import annotations

import re
from copy import deepcopy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

from .errors import GrammarViolation
from .names import QualifiedName, to_field_name

if TYPE_CHECKING:
    from .grammar.nodes import Facets


class Wrapper(Enum):
    OPTIONAL = "optional"
    REPEATED = "repeated"
    LIST = "list"


class Origin(Enum):
    """Where a field's value lives in the XML document."""

    ELEMENT = "element"
    ATTRIBUTE = "attribute"
    TEXT = "text"


# =============================================================================
# References, fields, variants
# =============================================================================


@dataclass(frozen=True)
class TypeRef:
    """Reference to a type by rendered name, with cardinality wrappers.

    Wrappers apply inside out: ``TypeRef("Item", (REPEATED, OPTIONAL))``
    is an optional list of Item.
    """

    name: str
    wrappers: tuple[Wrapper, ...] = ()

    def wrap(self, wrapper: Wrapper) -> TypeRef:
        return replace(self, wrappers=self.wrappers + (wrapper,))

    @property
    def outer(self) -> Wrapper | None:
        return self.wrappers[-1] if self.wrappers else None

    def render(self) -> str:
        text = self.name
        for wrapper in self.wrappers:
            if wrapper is Wrapper.OPTIONAL:
                text = f"{text} | None"
            else:
                text = f"list[{text}]"
        return text

    def rewritten(self, old: str, new: str, exact: bool = True) -> TypeRef:
        """Return the reference with ``old`` (or the ``old.`` path prefix) renamed."""
        if exact and self.name == old:
            return replace(self, name=new)
        if self.name.startswith(f"{old}."):
            return replace(self, name=new + self.name[len(old):])
        return self

    def renamed(self, renames: dict[str, str]) -> TypeRef:
        """Return the reference with its top-level name mapped through ``renames``."""
        head, dot, rest = self.name.partition(".")
        if head not in renames:
            return self
        return replace(self, name=f"{renames[head]}{dot}{rest}")


@dataclass
class Field:
    """Record field. Only ``name`` and ``type`` take part in equality.

    ``xml_name`` is the ElementTree tag of the element or attribute
    (``{namespace}local`` when qualified); ``xml_default`` is the
    default or fixed value text.
    """

    name: str
    type: TypeRef
    xml_name: str | None = field(default=None, compare=False)
    origin: Origin = field(default=Origin.ELEMENT, compare=False)
    doc: str | None = field(default=None, compare=False)
    xml_default: str | None = field(default=None, compare=False)


@dataclass
class Variant:
    """TaggedUnion variant. ``payload`` is None for enumeration literals."""

    name: str
    payload: TypeRef | None = None
    xml_value: str | None = None
    doc: str | None = field(default=None, compare=False)
    xml_name: str | None = field(default=None, compare=False)


# =============================================================================
# Shapes
# =============================================================================


@dataclass
class Record:
    type_name: str
    fields: list[Field] = field(default_factory=list)

    def field_named(self, name: str) -> Field | None:
        for item in self.fields:
            if item.name == name:
                return item
        return None


@dataclass
class TaggedUnion:
    type_name: str
    variants: list[Variant] = field(default_factory=list)

    @property
    def has_payload(self) -> bool:
        return any(v.payload is not None for v in self.variants)


@dataclass
class TypeReference:
    ref: TypeRef


@dataclass
class TypeAlias:
    type_name: str
    target: TypeRef


Shape = Record | TaggedUnion | TypeReference | TypeAlias


@dataclass
class Conversion:
    """Body of a parse/serialize routine attached to a descriptor.

    ``lines`` are Python statements relative to the function body; the
    renderer indents them.
    """

    name: str
    params: tuple[str, ...]
    lines: tuple[str, ...]
    returns: str | None = None
    is_classmethod: bool = False

    def rewritten(self, old: str, new: str, exact: bool = True) -> Conversion:
        pattern = rf"(?<![\w.'\"}}]){re.escape(old)}" + (r"(?![\w'\"])" if exact else r"(?=\.)")
        return self._substitute(re.compile(pattern), lambda match: new)

    def renamed(self, renames: dict[str, str]) -> Conversion:
        """Map several top-level names at once (``Old`` and ``Old.Child``)."""
        names = "|".join(re.escape(old) for old in renames)
        regex = re.compile(rf"(?<![\w.'\"}}])({names})(?![\w'\"])")
        return self._substitute(regex, lambda match: renames[match.group(1)])

    def _substitute(self, regex: re.Pattern, replacement) -> Conversion:
        returns = regex.sub(replacement, self.returns) if self.returns else self.returns
        lines = tuple(regex.sub(replacement, line) for line in self.lines)
        return replace(self, lines=lines, returns=returns)


@dataclass(frozen=True)
class MergeSettings:
    """How colliding field names are handled during a merge.

    Attributes:
        conflict_prefix: Prefix applied to an incoming field whose name is
            taken. Without a prefix a collision is a GrammarViolation.
        attribute: Incoming fields are attributes.
        replace: A colliding field of the same origin replaces the existing
            one (restrictions redefine inherited particles).
    """

    conflict_prefix: str | None = None
    attribute: bool = False
    replace: bool = False

    ELEMENT: ClassVar[MergeSettings]
    ATTRIBUTE: ClassVar[MergeSettings]
    RESTRICTION: ClassVar[MergeSettings]
    ATTRIBUTE_RESTRICTION: ClassVar[MergeSettings]


MergeSettings.ELEMENT = MergeSettings()
MergeSettings.ATTRIBUTE = MergeSettings(conflict_prefix="attr_", attribute=True)
MergeSettings.RESTRICTION = MergeSettings(replace=True)
MergeSettings.ATTRIBUTE_RESTRICTION = MergeSettings(conflict_prefix="attr_", attribute=True, replace=True)


# =============================================================================
# TypeDescriptor
# =============================================================================


@dataclass
class TypeDescriptor:
    """One generated type.

    Attributes:
        name: Identity of the construct that produced the descriptor.
        shape: Record, TaggedUnion, TypeReference or TypeAlias.
        field_hint: Preferred field/variant name when merged into a parent.
        nested: Anonymous types owned by this descriptor.
        conversions: Parse/serialize bodies attached to the declaration.
        transparent: Splice fields into the parent instead of nesting.
        doc: Documentation from xs:annotation.
        facets: Restriction facets, kept as metadata.
        xml_name: ElementTree tag of the element or attribute.
        xml_default: Default or fixed value text of the element or attribute.
        reference: For a copy of a named group, the reference to the group
            type itself.
        wrapped: Cardinality was already applied.
    """

    name: QualifiedName
    shape: Shape
    field_hint: str | None = None
    nested: list[TypeDescriptor] = field(default_factory=list)
    conversions: list[Conversion] = field(default_factory=list)
    transparent: bool = False
    doc: str | None = None
    facets: Facets | None = None
    xml_name: str | None = None
    xml_default: str | None = None
    reference: TypeRef | None = None
    wrapped: bool = False

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    @property
    def type_name(self) -> str:
        """Rendered name (the referenced name for a TypeReference)."""
        if isinstance(self.shape, TypeReference):
            return self.shape.ref.name
        return self.shape.type_name

    @property
    def declares(self) -> bool:
        """True if rendering this descriptor declares a new name."""
        return not isinstance(self.shape, TypeReference)

    @property
    def hint(self) -> str:
        return self.field_hint or to_field_name(self.type_name)

    def as_ref(self) -> TypeRef:
        if isinstance(self.shape, TypeReference):
            return self.shape.ref
        return TypeRef(self.type_name)

    def copy(self) -> TypeDescriptor:
        return deepcopy(self)

    def rename(self, new_name: str) -> None:
        """Change the declared name and rewrite references to the old one."""
        if isinstance(self.shape, TypeReference):
            raise ValueError(f"cannot rename reference to {self.type_name}: it declares no name")
        old = self.type_name
        self.relabel(new_name)
        self.rewrite_refs(old, new_name)

    def relabel(self, new_name: str) -> None:
        """Change the declared name only; references are left alone."""
        self.shape = replace(self.shape, type_name=new_name)

    def rewrite_refs(self, old: str, new: str, exact: bool = True) -> None:
        """Rewrite references to ``old`` here and in nested descriptors.

        References equal to ``old`` are rewritten only when ``exact`` is set;
        path-qualified references (``old.Child``) always are. An alias
        target is only rewritten on a path prefix.
        """
        match self.shape:
            case Record(fields=fields):
                for item in fields:
                    item.type = item.type.rewritten(old, new, exact)
            case TaggedUnion(variants=variants):
                for variant in variants:
                    if variant.payload is not None:
                        variant.payload = variant.payload.rewritten(old, new, exact)
            case TypeReference(ref=ref):
                self.shape = TypeReference(ref.rewritten(old, new, exact))
            case TypeAlias(type_name=type_name, target=target):
                self.shape = TypeAlias(type_name, target.rewritten(old, new, exact=False))
        self.conversions = [c.rewritten(old, new, exact) for c in self.conversions]
        for nested in self.nested:
            nested.rewrite_refs(old, new, exact)

    def rewrite_names(self, renames: dict[str, str]) -> None:
        """Apply several top-level renames at once, here and in nested descriptors.

        Every reference is mapped once, so a new name that is also the old
        name of another entry is never rewritten twice.
        """
        match self.shape:
            case Record(fields=fields):
                for item in fields:
                    item.type = item.type.renamed(renames)
            case TaggedUnion(variants=variants):
                for variant in variants:
                    if variant.payload is not None:
                        variant.payload = variant.payload.renamed(renames)
            case TypeReference(ref=ref):
                self.shape = TypeReference(ref.renamed(renames))
            case TypeAlias(type_name=type_name, target=target):
                self.shape = TypeAlias(type_name, target.renamed(renames))
        self.conversions = [c.renamed(renames) for c in self.conversions]
        for nested in self.nested:
            nested.rewrite_names(renames)

    # -------------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------------

    def merge(self, other: TypeDescriptor, settings: MergeSettings | None = None) -> None:
        """Fold ``other`` into this descriptor.

        ``other`` is consumed: its nested descriptors move here.

        Raises:
            ValueError: If this descriptor is a TypeReference or TypeAlias.
            GrammarViolation: On a field collision the settings do not resolve.
        """
        settings = settings or MergeSettings.ELEMENT
        match self.shape:
            case Record():
                if other.transparent and isinstance(other.shape, Record):
                    self._splice(other, settings)
                else:
                    ref = self._absorb(other)
                    self.add_field(
                        Field(
                            other.hint,
                            ref,
                            xml_name=other.xml_name,
                            doc=other.doc,
                            xml_default=other.xml_default,
                        ),
                        settings,
                    )
            case TaggedUnion():
                if other.reference is not None:
                    ref = other.reference
                else:
                    other.transparent = False
                    ref = self._absorb(other)
                self.add_variant(Variant(other.hint, ref, doc=other.doc, xml_name=other.xml_name))
            case _:
                raise ValueError(
                    f"cannot merge into {type(self.shape).__name__} {self.type_name}"
                )

    def add_field(self, new: Field, settings: MergeSettings | None = None) -> str:
        """Append a field, resolving a name collision. Returns the final name."""
        settings = settings or MergeSettings.ELEMENT
        if not isinstance(self.shape, Record):
            raise ValueError(f"{self.type_name} is not a record")
        record = self.shape
        if settings.attribute:
            new.origin = Origin.ATTRIBUTE
        existing = record.field_named(new.name)
        if existing is None:
            record.fields.append(new)
            return new.name
        if settings.replace and existing.origin == new.origin:
            record.fields[record.fields.index(existing)] = new
            return new.name
        if settings.conflict_prefix:
            new.name = f"{settings.conflict_prefix}{new.name}"
            if record.field_named(new.name) is None:
                record.fields.append(new)
                return new.name
        raise GrammarViolation(self.name, f"duplicate field {new.name!r} in {self.type_name}")

    def add_variant(self, variant: Variant) -> str:
        """Append a variant, suffixing its name on a clash. Returns the final name."""
        if not isinstance(self.shape, TaggedUnion):
            raise ValueError(f"{self.type_name} is not a tagged union")
        names = {v.name for v in self.shape.variants}
        base = variant.name
        counter = 2
        while variant.name in names:
            variant.name = f"{base}_{counter}"
            counter += 1
        self.shape.variants.append(variant)
        return variant.name

    def merge_inner(self, nested: TypeDescriptor) -> str:
        """Take ownership of a nested descriptor. Returns its final name.

        A nested descriptor with the same name that is structurally identical
        is reused. A different one gets its construct-kind suffix.
        """
        name = nested.type_name
        qualified = f"{self.type_name}.{name}"
        nested.rewrite_refs(name, qualified)
        existing = self._nested_named(name)
        if existing is None:
            self.nested.append(nested)
            return name
        if existing.structurally_equal(nested):
            return name
        new_name = self._free_nested_name(f"{name}{nested.name.kind.suffix}")
        nested.rewrite_refs(qualified, f"{self.type_name}.{new_name}")
        nested.rename(new_name)
        self.nested.append(nested)
        return new_name

    def _nested_named(self, name: str) -> TypeDescriptor | None:
        for nested in self.nested:
            if nested.type_name == name:
                return nested
        return None

    def _free_nested_name(self, candidate: str) -> str:
        name = candidate
        counter = 2
        while self._nested_named(name) is not None:
            name = f"{candidate}{counter}"
            counter += 1
        return name

    def _absorb(self, other: TypeDescriptor) -> TypeRef:
        """Move ``other`` (or its nested types) under this descriptor.

        Returns the reference a field or variant should use for ``other``.
        """
        if isinstance(other.shape, Record | TaggedUnion):
            final = self.merge_inner(other)
            return TypeRef(f"{self.type_name}.{final}")
        ref = other.as_ref()
        for nested in other.nested:
            old = nested.type_name
            final = self.merge_inner(nested)
            ref = ref.rewritten(old, f"{self.type_name}.{final}")
        other.nested = []
        return ref

    def _splice(self, other: TypeDescriptor, settings: MergeSettings) -> None:
        """Splice the fields of a transparent Record into this one."""
        if other.type_name != self.type_name:
            other.rewrite_refs(other.type_name, self.type_name, exact=False)
        for nested in list(other.nested):
            old = nested.type_name
            final = self.merge_inner(nested)
            if final != old:
                other.rewrite_refs(f"{self.type_name}.{old}", f"{self.type_name}.{final}")
        other.nested = []

        record = self.shape
        if not record.fields:
            for item in other.shape.fields:
                if settings.attribute:
                    item.origin = Origin.ATTRIBUTE
            record.fields = list(other.shape.fields)
            return
        for item in other.shape.fields:
            self.add_field(item, settings)

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def structurally_equal(self, other: TypeDescriptor) -> bool:
        """Compare shapes and nested descriptors, ignoring metadata."""
        if self.shape != other.shape or len(self.nested) != len(other.nested):
            return False
        return all(a.structurally_equal(b) for a, b in zip(self.nested, other.nested))

    def validate(self) -> None:
        """Raise GrammarViolation if a TaggedUnion here has no variants."""
        if isinstance(self.shape, TaggedUnion) and not self.shape.variants:
            raise GrammarViolation(self.name, f"{self.type_name} has no variants")
        for nested in self.nested:
            nested.validate()


def infer_type_name(children: list[TypeDescriptor]) -> str:
    """Content-derived name for an anonymous construct.

    Joins each child's field hint (or rendered name) with ``-`` in order:
    children ``pitch`` and ``rest`` give ``pitch-rest``. Empty for no children.
    """
    return "-".join(child.field_hint or child.type_name for child in children)
