"""
Command-line driver for graphgen.

Commands:
- validate: Load a schema and report every structural problem
- generate: Emit codegen units as JSON or Python stubs
- fingerprint: Print the schema and unit fingerprints
- common-root: Resolve the common root type of a set of node types

Usage:
    graphgen validate schema.yaml
    graphgen generate schema.json --format python -o nodes.py
    graphgen fingerprint schema.yaml
    graphgen common-root schema.yaml IDENTIFIER LITERAL

Invariants:
    - Any failure exits with status 1
    - Output for an unchanged schema is byte-identical across runs

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep output format stable for CI parsing
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

import yaml

from ..config import CodegenSettings, setup_logging
from ..diagnostics import CollectingDiagnostics
from ..driver import GenerationDriver
from ..hierarchy import TypeHierarchy
from ..render import JsonRenderer, PythonStubRenderer, Renderer
from ..schema import Schema, SchemaValidationError, load_file

logger = logging.getLogger(__name__)


class CodegenCLI:
    """CLI tool for schema validation and code generation.

    Example:
        >>> cli = CodegenCLI()
        >>> schema = cli.load("schema.yaml")
        >>> print(cli.generate(schema, "json"))
    """

    def __init__(self, settings: Optional[CodegenSettings] = None) -> None:
        self.settings = settings or CodegenSettings()
        self.diagnostics = CollectingDiagnostics()

    def load(self, path: str) -> Schema:
        """Load and validate a schema file.

        Raises:
            SchemaValidationError: If the schema is invalid
            OSError: If the file cannot be read
        """
        return load_file(path, diagnostics=self.diagnostics)

    def renderer(self, output_format: str) -> Renderer:
        if output_format == "python":
            return PythonStubRenderer()
        indent = self.settings.json_indent or None
        return JsonRenderer(indent=indent)

    def generate(self, schema: Schema, output_format: Optional[str] = None) -> str:
        """Render every codegen unit of a schema.

        Args:
            schema: Validated schema
            output_format: "json" or "python" (defaults to settings.output_format)

        Returns:
            Complete rendered output
        """
        renderer = self.renderer(output_format or self.settings.output_format)
        driver = GenerationDriver(
            schema,
            diagnostics=self.diagnostics,
            reserved=self.settings.reserved(),
        )
        return renderer.join(driver.run(renderer))

    def fingerprint(self, schema: Schema) -> dict[str, Any]:
        """Schema fingerprint and the fingerprint of its generated units."""
        driver = GenerationDriver(schema, diagnostics=self.diagnostics, reserved=self.settings.reserved())
        return {
            "schema": schema.fingerprint,
            "units": driver.fingerprint(),
        }

    def common_root(self, schema: Schema, type_names: Sequence[str]) -> str:
        """Name of the common root type (ABSTRACT_NODE when none exists).

        Raises:
            KeyError: If a type name is not declared
        """
        return TypeHierarchy(schema).common_root(type_names).name


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="graphgen", description="Graph schema code generator")
    parser.add_argument("--log-level", help="Override GRAPHGEN_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a schema file")
    validate_parser.add_argument("schema", help="Schema file (.yaml, .yml or .json)")

    # generate command
    generate_parser = subparsers.add_parser("generate", help="Generate codegen units")
    generate_parser.add_argument("schema", help="Schema file (.yaml, .yml or .json)")
    generate_parser.add_argument(
        "--format", choices=["json", "python"], help="Output format (default: GRAPHGEN_OUTPUT_FORMAT)"
    )
    generate_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    # fingerprint command
    fingerprint_parser = subparsers.add_parser("fingerprint", help="Print schema fingerprints")
    fingerprint_parser.add_argument("schema", help="Schema file (.yaml, .yml or .json)")

    # common-root command
    root_parser = subparsers.add_parser("common-root", help="Resolve the common root of node types")
    root_parser.add_argument("schema", help="Schema file (.yaml, .yml or .json)")
    root_parser.add_argument("types", nargs="+", help="Node type or base type names")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for graphgen."""
    args = _build_parser().parse_args(argv)

    settings = CodegenSettings()
    if args.log_level:
        settings.log_level = args.log_level
    setup_logging(settings)
    cli = CodegenCLI(settings)

    try:
        schema = cli.load(args.schema)
    except SchemaValidationError as e:
        print(f"Schema validation failed with {len(e.issues)} error(s):")
        for issue in e.issues:
            print(f"  - {issue}")
        sys.exit(1)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        print(f"Cannot read schema {args.schema}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "validate":
        print(
            f"Schema is valid: {len(schema.node_types)} node types, "
            f"{len(schema.node_base_traits)} base types, {len(schema.edge_types)} edge types"
        )
        for warning in schema.warnings:
            print(f"  warning: {warning}")
        sys.exit(0)

    elif args.command == "generate":
        output = cli.generate(schema, args.format)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(output)
            print(f"Generated code written to {args.output}", file=sys.stderr)
        else:
            sys.stdout.write(output)
        sys.exit(0)

    elif args.command == "fingerprint":
        print(json.dumps(cli.fingerprint(schema), indent=2, sort_keys=True))
        sys.exit(0)

    elif args.command == "common-root":
        try:
            print(cli.common_root(schema, args.types))
        except KeyError as e:
            print(f"Cannot resolve common root: {e}", file=sys.stderr)
            sys.exit(1)
        sys.exit(0)


if __name__ == "__main__":
    main()
