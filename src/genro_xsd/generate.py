# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Per-construct descriptor generation.

``generate`` dispatches on the grammar node class and builds the
TypeDescriptor of one construct, recursing into its children, looking up
referenced definitions in the Context and folding the pieces together with
the merge engine. A reference to a definition that is not in the Context
yet raises DefinitionNotFound; the resolution driver retries later.
"""

from __future__ import annotations

import logging

from .cardinality import apply_cardinality
from .context import Ambiguous, Context, NoMatch, Unique
from .conversion import (
    choice_conversions,
    enum_conversions,
    list_conversion,
    record_conversions,
    union_conversions,
)
from .descriptor import (
    Field,
    MergeSettings,
    Origin,
    Record,
    TaggedUnion,
    TypeAlias,
    TypeDescriptor,
    TypeReference,
    TypeRef,
    Variant,
    Wrapper,
    infer_type_name,
)
from .errors import AmbiguousKind, DefinitionNotFound
from .grammar.nodes import (
    Attribute,
    AttributeGroup,
    Choice,
    ComplexContent,
    ComplexType,
    Element,
    Extension,
    Group,
    Import,
    List,
    Occurs,
    Restriction,
    Sequence,
    SimpleContent,
    SimpleType,
    Union,
)
from .names import XSD_NS, ConstructKind, QualifiedName, to_field_name, to_type_name

logger = logging.getLogger(__name__)

TYPE_KINDS = (ConstructKind.SIMPLE_TYPE, ConstructKind.COMPLEX_TYPE)
REQUIRED = Occurs(1, 1)
OPTIONAL = Occurs(0, 1)


def generate(
    node: object,
    context: Context,
    *,
    parent: str | None = None,
    top_level: bool = False,
) -> TypeDescriptor | None:
    """Build the descriptor of one grammar construct.

    Args:
        node: Grammar node.
        context: Symbol table holding the definitions resolved so far.
        parent: Name given to an anonymous construct by its owner.
        top_level: The node is a definition directly under xs:schema.

    Returns:
        The descriptor, or None for constructs that produce nothing
        (imports, prohibited attributes).

    Raises:
        DefinitionNotFound: A referenced definition is not resolved yet.
        AmbiguousKind: A reference matches more than one kind.
        GrammarViolation: Merging produced an invalid type.
    """
    match node:
        case Element():
            return _element(node, context, top_level)
        case Attribute():
            return _attribute(node, context, top_level)
        case ComplexType():
            return _complex_type(node, context, node.name or parent or "complex-type")
        case SimpleType():
            return _simple_type(node, context, node.name or parent or "simple-type", top_level)
        case Sequence():
            return _sequence(node, context, parent)
        case Choice():
            return _choice(node, context, parent)
        case Group():
            return _group(node, context)
        case AttributeGroup():
            return _attribute_group(node, context)
        case Restriction():
            return _restriction(node, context, parent or "restriction")
        case Union():
            return _union(node, context, parent or "union")
        case List():
            return _list(node, context, parent or "list")
        case Extension():
            return _standalone_derivation(node, context, parent or "extension", simple=False)
        case SimpleContent():
            return _standalone_derivation(node.derivation, context, parent or "content", simple=True)
        case ComplexContent():
            return _standalone_derivation(node.derivation, context, parent or "content", simple=False)
        case Import():
            return None
        case _:
            raise TypeError(f"unsupported grammar node {type(node).__name__}")


# =============================================================================
# Helpers
# =============================================================================


def _lookup(context: Context, text: str, kinds: tuple[ConstructKind, ...]) -> TypeDescriptor:
    """Resolve a ``prefix:name`` reference that may target any of ``kinds``."""
    ref = QualifiedName.parse(text, kinds[0])
    match context.lookup_any_kind(ref.namespace, ref.local_name, kinds):
        case Unique(descriptor=found):
            return found
        case Ambiguous(candidates=candidates):
            raise AmbiguousKind(context.qualify(ref), candidates)
        case NoMatch():
            keys = tuple(key for kind in kinds for key in context.candidates(ref.with_kind(kind)))
            raise DefinitionNotFound(keys[0], keys)


def _local_name(text: str) -> str:
    return QualifiedName.parse(text, ConstructKind.ELEMENT).local_name


def _alias(descriptor: TypeDescriptor) -> TypeDescriptor:
    """Turn a top-level reference into a named alias."""
    if not isinstance(descriptor.shape, TypeReference):
        return descriptor
    descriptor.shape = TypeAlias(descriptor.name.type_name, descriptor.shape.ref)
    return descriptor


def _tag(namespace: str | None, local: str) -> str:
    """ElementTree tag of an element or attribute."""
    return f"{{{namespace}}}{local}" if namespace else local


# =============================================================================
# Elements and attributes
# =============================================================================


def _element(node: Element, context: Context, top_level: bool) -> TypeDescriptor:
    if node.ref:
        local = _local_name(node.ref)
        target = _lookup(context, node.ref, (ConstructKind.ELEMENT,))
        descriptor = TypeDescriptor(
            context.definition_name(local, ConstructKind.ELEMENT), TypeReference(target.as_ref())
        )
        namespace = target.name.namespace
        default = target.xml_default
    else:
        local = node.name
        name = context.definition_name(local, ConstructKind.ELEMENT)
        if node.type:
            target = _lookup(context, node.type, TYPE_KINDS)
            descriptor = TypeDescriptor(name, TypeReference(target.as_ref()))
        elif node.complex_type is not None:
            descriptor = _complex_type(node.complex_type, context, local)
        elif node.simple_type is not None:
            descriptor = _simple_type(node.simple_type, context, local)
        else:
            descriptor = TypeDescriptor(name, Record(to_type_name(local)))
            descriptor.conversions = record_conversions(descriptor, context)
        descriptor.name = name
        qualified = top_level or context.element_form_default == "qualified"
        namespace = context.target_namespace if qualified else None
        default = node.fixed or node.default
    descriptor.field_hint = to_field_name(local)
    descriptor.xml_name = _tag(namespace, local)
    descriptor.xml_default = default
    descriptor.doc = node.doc or descriptor.doc
    if top_level:
        return _alias(descriptor)
    return apply_cardinality(descriptor, node.occurs)


def _attribute(node: Attribute, context: Context, top_level: bool) -> TypeDescriptor | None:
    if node.use == "prohibited":
        return None
    if node.ref:
        local = _local_name(node.ref)
        target = _lookup(context, node.ref, (ConstructKind.ATTRIBUTE,))
        descriptor = TypeDescriptor(
            context.definition_name(local, ConstructKind.ATTRIBUTE), TypeReference(target.as_ref())
        )
        namespace = target.name.namespace
        default = node.fixed or node.default or target.xml_default
    else:
        local = node.name
        name = context.definition_name(local, ConstructKind.ATTRIBUTE)
        if node.type:
            target = _lookup(context, node.type, (ConstructKind.SIMPLE_TYPE,))
            descriptor = TypeDescriptor(name, TypeReference(target.as_ref()))
        elif node.simple_type is not None:
            descriptor = _simple_type(node.simple_type, context, local)
        else:
            target = context.require(QualifiedName(XSD_NS, "anySimpleType", ConstructKind.SIMPLE_TYPE))
            descriptor = TypeDescriptor(name, TypeReference(target.as_ref()))
        descriptor.name = name
        qualified = top_level or context.attribute_form_default == "qualified"
        namespace = context.target_namespace if qualified else None
        default = node.fixed or node.default
    descriptor.field_hint = to_field_name(local)
    descriptor.xml_name = _tag(namespace, local)
    descriptor.xml_default = default
    descriptor.doc = node.doc or descriptor.doc
    if top_level:
        return _alias(descriptor)
    return apply_cardinality(descriptor, REQUIRED if node.use == "required" else OPTIONAL)


def _merge_attributes(
    descriptor: TypeDescriptor,
    attributes: tuple[Attribute, ...],
    groups: tuple[AttributeGroup, ...],
    context: Context,
    restricting: bool = False,
) -> None:
    settings = MergeSettings.ATTRIBUTE_RESTRICTION if restricting else MergeSettings.ATTRIBUTE
    for attribute in attributes:
        part = _attribute(attribute, context, top_level=False)
        if part is None:
            if restricting:
                _drop_attribute(descriptor, attribute.name or _local_name(attribute.ref))
            continue
        descriptor.merge(part, settings)
    for group in groups:
        descriptor.merge(_attribute_group(group, context), settings)


def _drop_attribute(descriptor: TypeDescriptor, xml_name: str) -> None:
    """Remove an inherited attribute that a restriction prohibits."""
    record = descriptor.shape
    record.fields = [
        f
        for f in record.fields
        if not (f.origin is Origin.ATTRIBUTE and f.xml_name.rpartition("}")[2] == xml_name)
    ]


def _attribute_group(node: AttributeGroup, context: Context) -> TypeDescriptor:
    if node.ref:
        target = _lookup(context, node.ref, (ConstructKind.ATTRIBUTE_GROUP,))
        copy = target.copy()
        copy.transparent = True
        return copy
    descriptor = TypeDescriptor(
        context.definition_name(node.name, ConstructKind.ATTRIBUTE_GROUP),
        Record(to_type_name(node.name)),
        field_hint=to_field_name(node.name),
        transparent=True,
        doc=node.doc,
    )
    _merge_attributes(descriptor, node.attributes, node.attribute_groups, context)
    descriptor.conversions = record_conversions(descriptor, context)
    return descriptor


# =============================================================================
# Complex types
# =============================================================================


def _complex_type(node: ComplexType, context: Context, name: str) -> TypeDescriptor:
    descriptor = TypeDescriptor(
        context.definition_name(name, ConstructKind.COMPLEX_TYPE),
        Record(to_type_name(name)),
        field_hint=to_field_name(name),
        doc=node.doc,
    )
    match node.content:
        case None:
            pass
        case SimpleContent(derivation=derivation):
            _derive(descriptor, derivation, context, simple=True)
        case ComplexContent(derivation=derivation):
            _derive(descriptor, derivation, context, simple=False)
        case content:
            part = generate(content, context)
            if part is not None:
                descriptor.merge(part)
    _merge_attributes(descriptor, node.attributes, node.attribute_groups, context)
    descriptor.conversions = record_conversions(descriptor, context)
    return descriptor


def _standalone_derivation(
    node: Extension | Restriction, context: Context, name: str, simple: bool
) -> TypeDescriptor:
    descriptor = TypeDescriptor(
        context.definition_name(name, node.kind), Record(to_type_name(name)), field_hint=to_field_name(name)
    )
    _derive(descriptor, node, context, simple)
    descriptor.conversions = record_conversions(descriptor, context)
    return descriptor


def _derive(
    descriptor: TypeDescriptor, derivation: Extension | Restriction, context: Context, simple: bool
) -> None:
    """Apply an extension or restriction onto a fresh Record."""
    restricting = isinstance(derivation, Restriction)
    base = _lookup(context, derivation.base, TYPE_KINDS)
    _inherit(descriptor, base, context)

    if restricting and simple:
        if derivation.enumerations:
            values = _enumeration(
                derivation, context.definition_name(f"{descriptor.name.local_name}-value", ConstructKind.RESTRICTION)
            )
            final = descriptor.merge_inner(values)
            descriptor.add_field(
                Field("value", TypeRef(f"{descriptor.type_name}.{final}"), origin=Origin.TEXT),
                MergeSettings.RESTRICTION,
            )
        if not derivation.facets.is_empty:
            descriptor.facets = derivation.facets

    if derivation.content is not None:
        part = generate(derivation.content, context)
        if part is not None:
            descriptor.merge(part, MergeSettings.RESTRICTION if restricting else None)
    _merge_attributes(
        descriptor, derivation.attributes, derivation.attribute_groups, context, restricting
    )


def _inherit(descriptor: TypeDescriptor, base: TypeDescriptor, context: Context) -> None:
    """Copy the content of a base type into a derived Record."""
    if isinstance(base.shape, Record):
        inherited = base.copy()
        inherited.transparent = True
        descriptor.merge(inherited)
    elif context.is_builtin(base.name) and base.name.local_name == "anyType":
        return
    else:
        descriptor.add_field(Field("value", base.as_ref(), origin=Origin.TEXT))


# =============================================================================
# Model groups
# =============================================================================


def _particles(particles: tuple, context: Context) -> list[TypeDescriptor]:
    children = []
    for particle in particles:
        child = generate(particle, context)
        if child is not None:
            children.append(child)
    return children


def _sequence(node: Sequence, context: Context, parent: str | None) -> TypeDescriptor:
    children = _particles(node.particles, context)
    local = parent or infer_type_name(children) or "sequence"
    descriptor = TypeDescriptor(
        context.definition_name(local, ConstructKind.SEQUENCE),
        Record(to_type_name(local)),
        field_hint=to_field_name(local),
        transparent=True,
    )
    for child in children:
        descriptor.merge(child)
    descriptor.conversions = record_conversions(descriptor, context)
    if node.occurs.is_multiple or node.occurs.is_optional:
        descriptor.transparent = False
        return apply_cardinality(descriptor, node.occurs)
    return descriptor


def _choice(node: Choice, context: Context, parent: str | None) -> TypeDescriptor:
    children = _particles(node.particles, context)
    local = parent or infer_type_name(children) or "choice"
    descriptor = TypeDescriptor(
        context.definition_name(local, ConstructKind.CHOICE),
        TaggedUnion(to_type_name(local)),
        field_hint=to_field_name(local),
    )
    for child in children:
        descriptor.merge(child)
    descriptor.conversions = choice_conversions(descriptor, context)
    return apply_cardinality(descriptor, node.occurs)


def _group(node: Group, context: Context) -> TypeDescriptor:
    if node.ref:
        local = _local_name(node.ref)
        target = _lookup(context, node.ref, (ConstructKind.GROUP,))
        wrapping = node.occurs.is_multiple or node.occurs.is_optional
        if wrapping or not isinstance(target.shape, Record):
            descriptor = TypeDescriptor(
                context.definition_name(local, ConstructKind.GROUP),
                TypeReference(target.as_ref()),
                field_hint=to_field_name(local),
            )
            return apply_cardinality(descriptor, node.occurs)
        copy = target.copy()
        copy.transparent = True
        copy.reference = target.as_ref()
        copy.field_hint = to_field_name(local)
        return copy

    descriptor = generate(node.content, context, parent=node.name)
    descriptor.name = context.definition_name(node.name, ConstructKind.GROUP)
    descriptor.doc = node.doc
    return _alias(descriptor)


# =============================================================================
# Simple types
# =============================================================================


def _simple_type(node: SimpleType, context: Context, name: str, top_level: bool = False) -> TypeDescriptor:
    descriptor = generate(node.content, context, parent=name)
    descriptor.name = context.definition_name(name, ConstructKind.SIMPLE_TYPE)
    descriptor.field_hint = to_field_name(name)
    descriptor.doc = node.doc or descriptor.doc
    if top_level:
        return _alias(descriptor)
    return descriptor


def _enumeration(node: Restriction, name: QualifiedName) -> TypeDescriptor:
    """Payload-less TaggedUnion of the enumeration literals, in order."""
    descriptor = TypeDescriptor(name, TaggedUnion(name.type_name), field_hint=name.field_name)
    for enumeration in node.enumerations:
        descriptor.add_variant(
            Variant(to_field_name(enumeration.value), None, enumeration.value, enumeration.doc)
        )
    descriptor.conversions = enum_conversions(descriptor.type_name)
    return descriptor


def _restriction(node: Restriction, context: Context, name: str) -> TypeDescriptor:
    qname = context.definition_name(name, ConstructKind.RESTRICTION)
    if node.base:
        base = _lookup(context, node.base, (ConstructKind.SIMPLE_TYPE,))
        inline = None
    else:
        inline = _simple_type(node.simple_type, context, f"{name}-base")
        base = inline

    if node.enumerations:
        descriptor = _enumeration(node, qname)
    elif inline is not None and not inline.declares:
        descriptor = inline
        descriptor.name = qname
    else:
        descriptor = TypeDescriptor(qname, TypeReference(base.as_ref()))
        if inline is not None:
            descriptor.nested.append(inline)
    if not node.facets.is_empty:
        descriptor.facets = node.facets
    return descriptor


def _union(node: Union, context: Context, name: str) -> TypeDescriptor:
    """TaggedUnion of the members, memberTypes first, in declaration order."""
    descriptor = TypeDescriptor(
        context.definition_name(name, ConstructKind.UNION),
        TaggedUnion(to_type_name(name)),
        field_hint=to_field_name(name),
    )
    for member in node.member_types:
        local = _local_name(member)
        target = _lookup(context, member, (ConstructKind.SIMPLE_TYPE,))
        descriptor.merge(
            TypeDescriptor(
                context.definition_name(local, ConstructKind.SIMPLE_TYPE),
                TypeReference(target.as_ref()),
                field_hint=to_field_name(local),
            )
        )
    for index, simple_type in enumerate(node.simple_types, start=1):
        descriptor.merge(_simple_type(simple_type, context, f"{name}-member{index}"))
    descriptor.conversions = union_conversions(descriptor, context)
    return descriptor


def _list(node: List, context: Context, name: str) -> TypeDescriptor:
    nested = []
    if node.item_type:
        item = _lookup(context, node.item_type, (ConstructKind.SIMPLE_TYPE,))
    else:
        item = _simple_type(node.simple_type, context, f"{name}-item")
        nested = [item] if item.declares else list(item.nested)
    return TypeDescriptor(
        context.definition_name(name, ConstructKind.LIST),
        TypeReference(item.as_ref().wrap(Wrapper.LIST)),
        field_hint=to_field_name(name),
        nested=nested,
        conversions=[list_conversion(item, context)],
    )
