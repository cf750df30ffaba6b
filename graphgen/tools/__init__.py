"""
CLI tools for graphgen.

This module provides command-line tools for:
- validate: Check a schema file and report every problem
- generate: Emit codegen units for a schema
- fingerprint: Print schema and unit fingerprints
- common-root: Resolve the common root of node types

Invariants:
    - Tools only read the schema file and write the requested output
"""

from .codegen_cli import CodegenCLI, main

__all__ = ["CodegenCLI", "main"]
