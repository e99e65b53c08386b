# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Compile XSD files into Python type declarations.

Usage:
    # From local XSD file
    genro-xsd schema.xsd -o schema_types.py

    # From URL
    genro-xsd --url https://example.com/schema.xsd -o schema_types.py

    # Keep only the definitions of one namespace in the report
    genro-xsd schema.xsd --namespace urn:example -v

Output format:
    One Python module with a dataclass per record type, an Enum per
    enumeration and module-level aliases for simple types.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .driver import Resolution, resolve_schema
from .errors import XsdError
from .grammar.parser import parse_schema
from .loader import SchemaLoader
from .log_setup import setup_logging
from .render import render_module


class XsdCompiler:
    """Parse, resolve and render one schema document.

    Usage:
        compiler = XsdCompiler('schema.xsd')
        resolution = compiler.compile()
        source = compiler.generate()
    """

    def __init__(
        self,
        source: str | Path,
        *,
        loader: SchemaLoader | None = None,
        namespace: str | None = None,
    ):
        """Initialize the compiler with an XSD source.

        Args:
            source: Path to XSD file, URL or raw XSD text.
            loader: Loader for the document and its imports.
            namespace: Only report definitions of this namespace.
        """
        self.source = source
        self.loader = loader or SchemaLoader()
        self.namespace = namespace

    @property
    def location(self) -> str | None:
        if isinstance(self.source, Path):
            return str(self.source)
        if "<" in self.source:
            return None
        return self.source

    def compile(self) -> Resolution:
        schema = parse_schema(self.loader.load(self.source))
        return resolve_schema(
            schema,
            loader=self.loader,
            location=self.location,
            namespace_filter=self.namespace,
        )

    def generate(self) -> str:
        """Return the Python module for the schema."""
        return render_module(self.compile())


# =============================================================================
# CLI
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Command-line interface for the XSD compiler."""
    parser = argparse.ArgumentParser(
        description="Compile XSD schemas into Python type declarations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Input XSD file path",
    )
    parser.add_argument(
        "--url",
        type=str,
        help="URL to download XSD from",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output Python file (default: stdout)",
    )
    parser.add_argument(
        "--namespace",
        type=str,
        help="Only report definitions of this target namespace",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print diagnostic info",
    )

    args = parser.parse_args(argv)

    if not args.input and not args.url:
        parser.error("Either input file or --url is required")

    setup_logging(args.verbose)

    if args.url:
        source: str | Path = args.url
    else:
        source = args.input
        if not args.input.exists():
            print(f"ERROR: Input file not found: {args.input}", file=sys.stderr)
            return 1

    compiler = XsdCompiler(source, namespace=args.namespace)
    try:
        resolution = compiler.compile()
    except XsdError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"  Resolved {len(resolution.names)} definitions", file=sys.stderr)
        print(f"  Context holds {len(resolution.context)} types", file=sys.stderr)

    code = render_module(resolution)
    if args.output is None:
        sys.stdout.write(code)
        return 0
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(code, encoding="utf-8")
    print(f"Saved types to {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
