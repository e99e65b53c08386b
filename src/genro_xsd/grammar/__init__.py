# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Grammar model of XML Schema documents and its parser."""

from .nodes import (
    Attribute,
    AttributeGroup,
    Choice,
    ComplexContent,
    ComplexType,
    Definition,
    Element,
    Enumeration,
    Extension,
    Facets,
    Group,
    Import,
    List,
    Occurs,
    Particle,
    Restriction,
    Schema,
    Sequence,
    SimpleContent,
    SimpleType,
    Union,
)
from .parser import GrammarParser, parse_schema

__all__ = [
    "Attribute",
    "AttributeGroup",
    "Choice",
    "ComplexContent",
    "ComplexType",
    "Definition",
    "Element",
    "Enumeration",
    "Extension",
    "Facets",
    "GrammarParser",
    "Group",
    "Import",
    "List",
    "Occurs",
    "Particle",
    "Restriction",
    "Schema",
    "Sequence",
    "SimpleContent",
    "SimpleType",
    "Union",
    "parse_schema",
]
