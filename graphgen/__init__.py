"""
graphgen - Schema compiler for typed property-graph domain models.

This package turns a declarative graph schema into resolved codegen units:
- Schema model: validated, immutable entities (graphgen.schema)
- Type hierarchy resolver: ancestor closure and common root types
- Neighbor/property encoder: typed accessors with stable adjacency offsets
- Generation driver: units in a fixed dependency order, handed to a renderer

Pipeline:
    schema source ──▶ Schema ──▶ TypeHierarchy ──▶ NodeEncoder ──▶ GenerationDriver ──▶ Renderer

Invariants:
    - The Schema is built once and never mutated
    - Resolution and encoding are pure functions of the Schema
    - Identical input always yields byte-identical units

How to change safely:
    - Never reorder unit kinds in the driver
    - Never derive ordering from set or dict iteration of anything but declarations
    - Keep tie-breaks keyed on declared names
"""

# schema must be imported before diagnostics: diagnostics depends on schema.errors
from .schema import Schema, SchemaBuilder, load, load_file, load_json, load_yaml
from .diagnostics import CollectingDiagnostics, Diagnostic, DiagnosticsSink, LoggingDiagnostics
from .hierarchy import TypeHierarchy
from .encoder import NodeEncoder
from .driver import GenerationDriver

__version__ = "0.1.0"

__all__ = [
    "CollectingDiagnostics",
    "Diagnostic",
    "DiagnosticsSink",
    "GenerationDriver",
    "LoggingDiagnostics",
    "NodeEncoder",
    "Schema",
    "SchemaBuilder",
    "TypeHierarchy",
    "__version__",
    "load",
    "load_file",
    "load_json",
    "load_yaml",
]
