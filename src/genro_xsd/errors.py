# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised while compiling a schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .names import QualifiedName


class XsdError(Exception):
    """Base class for every schema compilation error."""


class DefinitionNotFound(XsdError):
    """A reference names a definition that is not (yet) in the Context.

    Recoverable: the resolution driver retries the failing definition on a
    later pass.

    Attributes:
        name: The reference that failed.
        candidates: Every key that would have satisfied the reference
            (more than one when the reference may target several kinds).
    """

    def __init__(self, name: QualifiedName, candidates: tuple[QualifiedName, ...] = ()):
        self.name = name
        self.candidates = tuple(candidates) or (name,)
        super().__init__(f"definition not found: {name}")


class AmbiguousKind(XsdError):
    """A reference matches definitions of more than one construct kind."""

    def __init__(self, name: QualifiedName, candidates: tuple[QualifiedName, ...]):
        self.name = name
        self.candidates = tuple(candidates)
        kinds = ", ".join(c.kind.value for c in self.candidates)
        super().__init__(f"ambiguous reference {name.local_name!r}: matches {kinds}")


class GrammarViolation(XsdError):
    """The schema violates the expected shape of a construct."""

    def __init__(self, node: Any, message: str):
        self.node = node
        self.message = message
        super().__init__(f"{node}: {message}")


@dataclass(frozen=True)
class PendingEntry:
    """One definition left unresolved when resolution stopped."""

    name: QualifiedName
    retries: int

    def __str__(self) -> str:
        return f"{self.name} after {self.retries} retries"


class Unresolvable(XsdError):
    """Resolution reached a pass with no progress.

    Attributes:
        report: Every pending definition with its retry count.
    """

    def __init__(self, report: list[PendingEntry]):
        self.report = list(report)
        lines = "\n".join(f"  {entry}" for entry in self.report)
        super().__init__(f"{len(self.report)} definition(s) could not be resolved:\n{lines}")

    @property
    def names(self) -> list[QualifiedName]:
        return [entry.name for entry in self.report]
