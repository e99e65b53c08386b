# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""genro-xsd: compile XML Schema documents into Python type declarations.

Example:
    >>> from genro_xsd import XsdCompiler
    >>> print(XsdCompiler("schema.xsd").generate())
"""

from .cardinality import apply_cardinality
from .compiler import XsdCompiler
from .context import Context
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
)
from .driver import Resolution, ResolutionDriver, resolve_schema
from .errors import (
    AmbiguousKind,
    DefinitionNotFound,
    GrammarViolation,
    Unresolvable,
    XsdError,
)
from .generate import generate
from .grammar import Occurs, Schema, parse_schema
from .loader import SchemaLoader
from .names import ConstructKind, QualifiedName
from .render import render_module

__version__ = "0.1.0"

__all__ = [
    "AmbiguousKind",
    "ConstructKind",
    "Context",
    "DefinitionNotFound",
    "Field",
    "GrammarViolation",
    "MergeSettings",
    "Occurs",
    "Origin",
    "QualifiedName",
    "Record",
    "Resolution",
    "ResolutionDriver",
    "Schema",
    "SchemaLoader",
    "TaggedUnion",
    "TypeAlias",
    "TypeDescriptor",
    "TypeReference",
    "TypeRef",
    "Unresolvable",
    "Variant",
    "Wrapper",
    "XsdCompiler",
    "XsdError",
    "apply_cardinality",
    "generate",
    "parse_schema",
    "render_module",
]
