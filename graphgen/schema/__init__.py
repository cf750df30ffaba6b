"""
Schema module for graphgen.

This module provides the in-memory domain model, including:
- Entity records (Property, NodeBaseType, NodeType, EdgeType, Constant)
- SchemaBuilder for registration and validation
- Loading from dict, YAML and JSON sources

Invariants:
    - A Schema is immutable once built
    - protoIds are unique per category
    - The extends relation is an acyclic DAG
    - Every cross-reference resolves to a declared entity

How to change safely:
    - Add new entities with new protoIds
    - Deprecate (never delete or renumber) properties
    - Compare fingerprints before and after a schema edit
"""

from .errors import (
    BuilderClosedError,
    CyclicHierarchyError,
    DuplicateIdentifierError,
    ErrorKind,
    GraphGenError,
    MissingIdentifierError,
    SchemaValidationError,
    TypeMismatchDefaultError,
    UnresolvedReferenceError,
    ValidationIssue,
)
from .types import (
    ABSTRACT_NODE,
    ABSTRACT_NODE_NAME,
    CONTAINS_NODE_EDGE,
    INDEX_KEY,
    LOCAL_NAME_KEY,
    AbstractNodeType,
    Cardinality,
    Constant,
    ContainedNode,
    Direction,
    EdgeType,
    EndpointCardinality,
    InEdgeContext,
    InNode,
    NodeBaseType,
    NodeType,
    OutEdge,
    Property,
    ValueType,
    parse_endpoint_cardinality,
)
from .model import Schema, SchemaBuilder
from .loader import load, load_file, load_json, load_yaml, merge_sources

__all__ = [
    # errors
    "BuilderClosedError",
    "CyclicHierarchyError",
    "DuplicateIdentifierError",
    "ErrorKind",
    "GraphGenError",
    "MissingIdentifierError",
    "SchemaValidationError",
    "TypeMismatchDefaultError",
    "UnresolvedReferenceError",
    "ValidationIssue",
    # types
    "ABSTRACT_NODE",
    "ABSTRACT_NODE_NAME",
    "CONTAINS_NODE_EDGE",
    "INDEX_KEY",
    "LOCAL_NAME_KEY",
    "AbstractNodeType",
    "Cardinality",
    "Constant",
    "ContainedNode",
    "Direction",
    "EdgeType",
    "EndpointCardinality",
    "InEdgeContext",
    "InNode",
    "NodeBaseType",
    "NodeType",
    "OutEdge",
    "Property",
    "ValueType",
    "parse_endpoint_cardinality",
    # model
    "Schema",
    "SchemaBuilder",
    # loader
    "load",
    "load_file",
    "load_json",
    "load_yaml",
    "merge_sources",
]
