# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Resolution driver: fixed-point iteration over top-level definitions.

Definitions reference each other in any order, so a single pass is not
enough. The driver keeps a work-list of pending definitions and runs passes
over it. A definition that fails with DefinitionNotFound is queued for the
next pass, after the pending definitions it was waiting for. A pass that
resolves nothing ends the run with Unresolvable. Any other error ends it
immediately.

Imports are compiled first, depth-first, each by its own driver and
Context, and their definitions are moved into the importing Context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .context import Context
from .errors import DefinitionNotFound, GrammarViolation, PendingEntry, Unresolvable
from .generate import generate
from .grammar.parser import parse_schema
from .loader import SchemaLoader

if TYPE_CHECKING:
    from .descriptor import TypeDescriptor
    from .grammar.nodes import Definition, Schema
    from .names import QualifiedName

logger = logging.getLogger(__name__)


@dataclass
class WorkItem:
    """A pending top-level definition and how many times it failed."""

    name: QualifiedName
    node: Definition
    retries: int = 0


@dataclass
class Resolution:
    """Outcome of a successful run.

    Attributes:
        context: The Context holding every resolved descriptor (imports
            included).
        names: Definitions of this document that were resolved, in
            resolution order, restricted to the namespace filter if any.
    """

    context: Context
    names: list[QualifiedName] = field(default_factory=list)

    def descriptors(self) -> list[TypeDescriptor]:
        return [self.context.lookup(name) for name in self.names]

    def __getitem__(self, name: QualifiedName) -> TypeDescriptor:
        return self.context.require(name)


class ResolutionDriver:
    """Resolve every top-level definition of a schema into a Context.

    Args:
        schema: Parsed document.
        context: Context to fill. A fresh one is built from the schema
            prefixes and target namespace when omitted.
        loader: Loader used for imported documents.
        location: Path or URL of the document, used to resolve relative
            import locations.
        namespace_filter: Only names in this namespace are reported.
    """

    def __init__(
        self,
        schema: Schema,
        *,
        context: Context | None = None,
        loader: SchemaLoader | None = None,
        location: str | None = None,
        namespace_filter: str | None = None,
        chain: frozenset[str] = frozenset(),
    ):
        self.schema = schema
        self.context = context if context is not None else Context.from_schema(schema)
        self.loader = loader or SchemaLoader()
        self.location = location
        self.namespace_filter = namespace_filter
        self.chain = chain | {location} if location else chain

    def run(self) -> Resolution:
        """Resolve imports, then iterate to a fixed point.

        Raises:
            Unresolvable: A pass made no progress.
            GrammarViolation: Duplicate definitions or invalid constructs.
            AmbiguousKind: A reference matched more than one kind.
        """
        self._resolve_imports()
        resolution = Resolution(self.context)
        pending = self._work_list()
        passes = 0
        while pending:
            passes += 1
            logger.debug("Pass %d: %d pending definitions", passes, len(pending))
            queued: dict[QualifiedName, WorkItem] = {}
            progressed = False
            for name, item in pending.items():
                try:
                    descriptor = generate(item.node, self.context, top_level=True)
                except DefinitionNotFound as exc:
                    item.retries += 1
                    for missing in exc.candidates:
                        waiting = pending.get(missing)
                        if waiting is not None and missing != name and missing not in self.context:
                            waiting.retries += 1
                            queued.setdefault(missing, waiting)
                    queued.setdefault(name, item)
                    logger.debug("Deferring %s: %s not found", name, exc.name)
                    continue
                queued.pop(name, None)
                progressed = True
                if descriptor is None:
                    continue
                self.context.insert(descriptor)
                if self.namespace_filter is None or name.namespace == self.namespace_filter:
                    resolution.names.append(name)
            if not progressed:
                raise Unresolvable([PendingEntry(item.name, item.retries) for item in queued.values()])
            pending = queued
        logger.debug("Resolved %d definitions in %d passes", len(resolution.names), passes)
        return resolution

    def _work_list(self) -> dict[QualifiedName, WorkItem]:
        pending: dict[QualifiedName, WorkItem] = {}
        for node in self.schema.definitions():
            name = self.context.definition_name(node.name, node.kind)
            if name in pending:
                raise GrammarViolation(name, "duplicate top-level definition")
            pending[name] = WorkItem(name, node)
        return pending

    def _resolve_imports(self) -> None:
        for imported in self.schema.imports:
            if not imported.schema_location:
                logger.debug("Skipping import of %s without schemaLocation", imported.namespace)
                continue
            location = self.loader.resolve(imported.schema_location, self.location)
            if location in self.chain:
                logger.warning("Skipping circular import of %s", location)
                continue
            logger.debug("Importing %s from %s", imported.namespace, location)
            schema = parse_schema(self.loader.load(location))
            result = ResolutionDriver(
                schema,
                loader=self.loader,
                location=location,
                namespace_filter=imported.namespace,
                chain=self.chain,
            ).run()
            self.context.splice_import(result.context, imported.namespace)


def resolve_schema(
    schema: Schema,
    *,
    context: Context | None = None,
    loader: SchemaLoader | None = None,
    location: str | None = None,
    namespace_filter: str | None = None,
) -> Resolution:
    """Resolve a parsed schema. See ResolutionDriver."""
    return ResolutionDriver(
        schema,
        context=context,
        loader=loader,
        location=location,
        namespace_filter=namespace_filter,
    ).run()
