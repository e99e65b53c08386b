# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Cardinality policy: optional and repeated wrappers from minOccurs/maxOccurs.

    min=1 max=1          unchanged
    min=0 max=1          optional
    max>1, unbounded     repeated (never optional-of-repeated)
    or min>1

A freshly built Record or TaggedUnion cannot be wrapped in place: it is
demoted to a nested descriptor named ``inner-<name>`` and the construct
becomes a TypeReference to it.
"""

from __future__ import annotations

from .descriptor import Record, TaggedUnion, TypeDescriptor, TypeReference, TypeRef, Wrapper
from .grammar.nodes import Occurs
from .names import to_type_name

__all__ = ["Occurs", "apply_cardinality", "wrap"]

INNER_PREFIX = "inner-"


def apply_cardinality(descriptor: TypeDescriptor, occurs: Occurs) -> TypeDescriptor:
    """Wrap a descriptor according to its occurrence constraints.

    Applied at most once: a descriptor that already went through the policy
    is returned unchanged.
    """
    if descriptor.wrapped:
        return descriptor
    if occurs.is_multiple:
        return wrap(descriptor, Wrapper.REPEATED)
    if occurs.is_optional:
        return wrap(descriptor, Wrapper.OPTIONAL)
    descriptor.wrapped = True
    return descriptor


def wrap(descriptor: TypeDescriptor, wrapper: Wrapper) -> TypeDescriptor:
    """Return a TypeReference descriptor wrapping ``descriptor``."""
    match descriptor.shape:
        case TypeReference(ref=ref):
            descriptor.shape = TypeReference(ref.wrap(wrapper))
            descriptor.transparent = False
            descriptor.wrapped = True
            return descriptor
        case Record() | TaggedUnion():
            original = descriptor.name
            inner_local = f"{INNER_PREFIX}{original.local_name}"
            descriptor.name = original.with_local_name(inner_local)
            descriptor.rename(to_type_name(inner_local))
            descriptor.transparent = False
            return TypeDescriptor(
                name=original,
                shape=TypeReference(TypeRef(descriptor.type_name, (wrapper,))),
                field_hint=descriptor.field_hint,
                nested=[descriptor],
                doc=descriptor.doc,
                xml_name=descriptor.xml_name,
                xml_default=descriptor.xml_default,
                wrapped=True,
            )
        case _:
            raise ValueError(f"cannot wrap alias {descriptor.type_name}")
