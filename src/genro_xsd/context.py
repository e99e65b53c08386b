# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Context: the per-compile symbol table.

Maps QualifiedName to TypeDescriptor for one compile run, together with the
namespace prefix table of the document and its target namespace. The
Context grows monotonically; the only way entries leave it is
``splice_import``, which moves them into the importing Context.

Built-in XML Schema types are seeded at construction under the XML Schema
namespace and can never be overwritten.
"""

from __future__ import annotations

import logging
from collections.abc import Container, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .descriptor import TypeDescriptor, TypeReference, TypeRef
from .errors import DefinitionNotFound, GrammarViolation
from .names import XML_NS, XSD_NS, ConstructKind, QualifiedName

if TYPE_CHECKING:
    from .grammar.nodes import Schema

logger = logging.getLogger(__name__)

BUILTINS = {
    "bool": "bool",
    "boolean": "bool",
    "integer": "int",
    "int": "int",
    "long": "int",
    "short": "int",
    "byte": "int",
    "nonNegativeInteger": "int",
    "nonPositiveInteger": "int",
    "positiveInteger": "int",
    "negativeInteger": "int",
    "unsignedLong": "int",
    "unsignedInt": "int",
    "unsignedShort": "int",
    "unsignedByte": "int",
    "gYear": "int",
    "decimal": "Decimal",
    "double": "float",
    "float": "float",
    "dateTime": "datetime",
    "date": "date",
    "time": "time",
    "string": "str",
    "normalizedString": "str",
    "token": "str",
    "language": "str",
    "Name": "str",
    "NCName": "str",
    "NMTOKEN": "str",
    "NMTOKENS": "str",
    "ID": "str",
    "IDREF": "str",
    "IDREFS": "str",
    "ENTITY": "str",
    "ENTITIES": "str",
    "QName": "str",
    "anyURI": "str",
    "hexBinary": "str",
    "base64Binary": "str",
    "duration": "str",
    "gDay": "str",
    "gMonth": "str",
    "gMonthDay": "str",
    "gYearMonth": "str",
    "anyType": "str",
    "anySimpleType": "str",
}


# =============================================================================
# Multi-kind lookup results
# =============================================================================


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Unique:
    descriptor: TypeDescriptor


@dataclass(frozen=True)
class Ambiguous:
    candidates: tuple[QualifiedName, ...]


LookupResult = NoMatch | Unique | Ambiguous


# =============================================================================
# Context
# =============================================================================


class Context:
    """Symbol table of one compile run.

    Args:
        prefixes: Namespace prefix table (``""`` is the default namespace).
            The reserved ``xml`` prefix is always bound.
        target_namespace: Namespace of the definitions being compiled.
        element_form_default: elementFormDefault of the document.
        attribute_form_default: attributeFormDefault of the document.

    Raises:
        GrammarViolation: If no prefix maps to the XML Schema namespace.
    """

    def __init__(
        self,
        prefixes: dict[str, str] | None = None,
        target_namespace: str | None = None,
        element_form_default: str = "unqualified",
        attribute_form_default: str = "unqualified",
    ):
        self.prefixes: dict[str, str] = dict(prefixes or {})
        self.prefixes.setdefault("xml", XML_NS)
        self.target_namespace = target_namespace
        self.element_form_default = element_form_default
        self.attribute_form_default = attribute_form_default
        self._entries: dict[QualifiedName, TypeDescriptor] = {}
        self._builtins: set[QualifiedName] = set()
        self._rendered: dict[str, QualifiedName] = {}
        self.seed_builtins()

    @classmethod
    def from_schema(cls, schema: Schema) -> Context:
        return cls(
            schema.prefixes,
            schema.target_namespace,
            schema.element_form_default,
            schema.attribute_form_default,
        )

    def seed_builtins(self) -> None:
        """Register the built-in XML Schema types. Runs once, from __init__."""
        if self._builtins:
            return
        if XSD_NS not in self.prefixes.values():
            raise GrammarViolation("schema", f"no prefix is bound to {XSD_NS}")
        for local_name, python_type in BUILTINS.items():
            name = QualifiedName(XSD_NS, local_name, ConstructKind.SIMPLE_TYPE)
            self._entries[name] = TypeDescriptor(name, TypeReference(TypeRef(python_type)))
            self._builtins.add(name)

    # -------------------------------------------------------------------------
    # Names
    # -------------------------------------------------------------------------

    def resolve_namespace(self, prefix: str | None) -> str | None:
        """Map a prefix to its namespace URI.

        None stands for the default namespace. A value that is not a declared
        prefix (an URI, or an undeclared prefix) is returned unchanged.
        """
        key = prefix or ""
        if key in self.prefixes:
            return self.prefixes[key]
        return prefix

    def qualify(self, name: QualifiedName) -> QualifiedName:
        """Return ``name`` with its prefix replaced by the namespace URI."""
        namespace = self.resolve_namespace(name.namespace)
        if namespace == name.namespace:
            return name
        return QualifiedName(namespace, name.local_name, name.kind)

    def definition_name(self, local_name: str, kind: ConstructKind) -> QualifiedName:
        """Key of a definition declared by the document being compiled."""
        return QualifiedName(self.target_namespace, local_name, kind)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def candidates(self, name: QualifiedName) -> tuple[QualifiedName, ...]:
        """Keys a reference may denote, most specific first.

        An unprefixed reference denotes the default namespace. When that is
        not the target namespace, the target namespace is tried as well.
        """
        qualified = self.qualify(name)
        if name.namespace is None and qualified.namespace != self.target_namespace:
            return (qualified, self.definition_name(name.local_name, name.kind))
        return (qualified,)

    def lookup(self, name: QualifiedName) -> TypeDescriptor | None:
        for key in self.candidates(name):
            if key in self._entries:
                return self._entries[key]
        return None

    def require(self, name: QualifiedName) -> TypeDescriptor:
        """Exact lookup.

        Raises:
            DefinitionNotFound: If the name is not in the Context.
        """
        keys = self.candidates(name)
        for key in keys:
            if key in self._entries:
                return self._entries[key]
        raise DefinitionNotFound(keys[0], keys)

    def lookup_any_kind(
        self, namespace: str | None, local_name: str, kinds: Iterable[ConstructKind]
    ) -> LookupResult:
        """Look a name up under several construct kinds at once."""
        found = []
        for kind in kinds:
            for key in self.candidates(QualifiedName(namespace, local_name, kind)):
                if key in self._entries:
                    found.append(key)
                    break
        if not found:
            return NoMatch()
        if len(found) > 1:
            return Ambiguous(tuple(found))
        return Unique(self._entries[found[0]])

    def is_builtin(self, name: QualifiedName) -> bool:
        return name in self._builtins

    def declared(self, type_name: str) -> TypeDescriptor | None:
        """Stored descriptor that renders the top-level name ``type_name``."""
        name = self._rendered.get(type_name)
        return self._entries.get(name) if name is not None else None

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    def insert(self, descriptor: TypeDescriptor) -> TypeDescriptor:
        """Store a descriptor under its QualifiedName.

        If another stored descriptor already renders to the same type name,
        the incoming one is renamed with its construct-kind suffix (then a
        counter) and its own references follow the new name.

        Raises:
            GrammarViolation: On a duplicate key, a built-in redefinition or a
                TaggedUnion without variants.
        """
        name = descriptor.name
        if name in self._builtins:
            raise GrammarViolation(name, "built-in types cannot be redefined")
        if name in self._entries:
            raise GrammarViolation(name, "duplicate definition")
        descriptor.validate()

        if descriptor.declares:
            type_name = descriptor.type_name
            if type_name in self._rendered:
                new_name = self._free_name(f"{type_name}{name.kind.suffix}")
                logger.info("Renaming %s to %s: %s is taken", name, new_name, type_name)
                descriptor.rename(new_name)
            self._rendered[descriptor.type_name] = name
        self._entries[name] = descriptor
        return descriptor

    def _free_name(self, candidate: str, taken: Container[str] | None = None) -> str:
        taken = self._rendered if taken is None else taken
        name = candidate
        counter = 2
        while name in taken:
            name = f"{candidate}{counter}"
            counter += 1
        return name

    def splice_import(
        self, imported: Context, namespace_filter: str | None = None
    ) -> list[QualifiedName]:
        """Move the definitions of an imported Context into this one.

        Built-ins stay behind. Names already present here (a schema imported
        twice through different paths) are left in ``imported``. Moved
        descriptors whose rendered name is taken here are renamed, and every
        moved descriptor follows the renames of its siblings.

        Returns:
            Names moved, in their original order.
        """
        batch = []
        for name in list(imported._entries):
            if name in imported._builtins:
                continue
            if namespace_filter is not None and name.namespace != namespace_filter:
                continue
            if name in self._entries:
                logger.debug("Import already provides %s", name)
                continue
            batch.append(imported._remove(name))

        renames = self._import_renames(batch)
        for descriptor in batch:
            if renames:
                descriptor.rewrite_names(renames)
                if descriptor.declares and descriptor.type_name in renames:
                    descriptor.relabel(renames[descriptor.type_name])
            self.insert(descriptor)
        logger.debug("Spliced %d definitions from %s", len(batch), namespace_filter)
        return [descriptor.name for descriptor in batch]

    def _import_renames(self, batch: list[TypeDescriptor]) -> dict[str, str]:
        """Rendered names of an imported batch that collide here, and their new names."""
        taken = set(self._rendered)
        renames: dict[str, str] = {}
        for descriptor in batch:
            if not descriptor.declares:
                continue
            type_name = descriptor.type_name
            if type_name in taken:
                new_name = self._free_name(f"{type_name}{descriptor.name.kind.suffix}", taken)
                logger.info("Renaming imported %s to %s: %s is taken", descriptor.name, new_name, type_name)
                renames[type_name] = new_name
                type_name = new_name
            taken.add(type_name)
        return renames

    def _remove(self, name: QualifiedName) -> TypeDescriptor:
        descriptor = self._entries.pop(name)
        if descriptor.declares and self._rendered.get(descriptor.type_name) == name:
            del self._rendered[descriptor.type_name]
        return descriptor

    # -------------------------------------------------------------------------
    # Container protocol (user definitions only)
    # -------------------------------------------------------------------------

    def names(self) -> list[QualifiedName]:
        return [name for name in self._entries if name not in self._builtins]

    def __iter__(self) -> Iterator[TypeDescriptor]:
        for name, descriptor in self._entries.items():
            if name not in self._builtins:
                yield descriptor

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, QualifiedName):
            return False
        return name in self._entries or self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._entries) - len(self._builtins)
