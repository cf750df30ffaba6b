"""
Schema source loading for graphgen.

This module turns a structured schema source into a validated Schema.
The source layout is the established JSON schema layout (camelCase keys);
snake_case aliases are accepted for every key.

Example source (YAML):
    nodeKeys:
      - id: 5
        name: NAME
        valueType: string
        cardinality: one
        default: "<empty>"

    edgeTypes:
      - id: 3
        name: AST

    nodeBaseTraits:
      - name: AST_NODE
        hasKeys: [ORDER]

    nodeTypes:
      - id: 1
        name: METHOD
        keys: [NAME]
        is: [AST_NODE]
        outEdges:
          - edgeName: AST
            inNodes:
              - name: BLOCK
                cardinality: "1:1"
        containedNodes:
          - nodeType: BLOCK
            localName: body
            cardinality: one

    constants:
      dispatchTypes:
        - name: STATIC_DISPATCH
          value: STATIC_DISPATCH
          id: 1

Malformed entries (wrong shapes, missing names, non-integer ids) raise
SchemaValidationError; structural problems are reported by SchemaBuilder.build().
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from ..diagnostics import Diagnostic, DiagnosticsSink, LoggingDiagnostics
from .errors import ErrorKind, SchemaValidationError, ValidationIssue
from .model import Schema, SchemaBuilder
from .types import (
    Cardinality,
    Constant,
    ContainedNode,
    EdgeType,
    InNode,
    NodeBaseType,
    NodeType,
    OutEdge,
    Property,
    ValueType,
)

logger = logging.getLogger(__name__)


def _get(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key among camelCase / snake_case spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _names(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _list(data: Mapping[str, Any], *keys: str) -> List[Any]:
    value = _get(data, *keys)
    return list(value) if value else []


class _Parser:
    """Collects shape errors instead of failing on the first.

    Fatal problems go to issues. Soft problems are reported to the sink as
    they are found and kept in warnings for the built Schema.
    """

    def __init__(self, diagnostics: Optional[DiagnosticsSink]) -> None:
        self.issues: List[ValidationIssue] = []
        self.warnings: List[Diagnostic] = []
        self.sink = diagnostics if diagnostics is not None else LoggingDiagnostics(logger)

    def _warn(self, diagnostic: Diagnostic) -> None:
        self.sink.report(diagnostic)
        self.warnings.append(diagnostic)

    def _malformed(self, where: str, message: str) -> None:
        self.issues.append(ValidationIssue(ErrorKind.MALFORMED_SOURCE, where, message))

    def _name(self, data: Mapping[str, Any], where: str, *keys: str) -> str:
        value = _get(data, *(keys or ("name",)))
        if not isinstance(value, str) or not value:
            self._malformed(where, f"name must be a non-empty string, got {value!r}")
            return "" if value is None else str(value)
        return value

    def _proto_id(self, data: Mapping[str, Any], where: str) -> Optional[int]:
        value = _get(data, "id", "protoId", "proto_id")
        if value is None:
            return None
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, int):
            self._malformed(where, f"id must be an integer, got {value!r}")
            return None
        return value

    def _cardinality(self, value: Any, path: str, fallback: Cardinality) -> Cardinality:
        if value is None:
            return fallback
        try:
            return Cardinality.from_str(str(value))
        except ValueError as e:
            self._warn(Diagnostic(ErrorKind.INVALID_CARDINALITY, path, f"{e}, defaulting to list"))
            return Cardinality.LIST

    def _value_type(self, value: Any, path: str) -> ValueType:
        if value is None:
            return ValueType.UNKNOWN
        try:
            return ValueType.from_str(str(value))
        except ValueError as e:
            self._warn(Diagnostic(None, path, f"{e}, using Unknown"))
            return ValueType.UNKNOWN

    def property(self, data: Mapping[str, Any], scope: str, where: str) -> Property:
        name = self._name(data, where)
        path = f"{scope}:{name}"
        default = _get(data, "default")
        value_type = self._value_type(_get(data, "valueType", "value_type"), path)
        if isinstance(default, str) and default == "NaN" and value_type in (ValueType.FLOAT, ValueType.DOUBLE):
            default = float("nan")
        return Property(
            name=name,
            value_type=value_type,
            cardinality=self._cardinality(_get(data, "cardinality"), path, Cardinality.ZERO_OR_ONE),
            default=default,
            proto_id=self._proto_id(data, where),
            comment=_get(data, "comment", default="") or "",
            deprecated=bool(_get(data, "deprecated", default=False)),
        )

    def edge_type(self, data: Mapping[str, Any], where: str) -> EdgeType:
        return EdgeType(
            name=self._name(data, where),
            proto_id=self._proto_id(data, where),
            keys=_names(_get(data, "keys")),
            comment=_get(data, "comment", default="") or "",
        )

    def node_base_type(self, data: Mapping[str, Any], where: str) -> NodeBaseType:
        return NodeBaseType(
            name=self._name(data, where),
            keys=_names(_get(data, "hasKeys", "has_keys", "keys")),
            extends=_names(_get(data, "extends", "is")),
            comment=_get(data, "comment", default="") or "",
        )

    def node_type(self, data: Mapping[str, Any], where: str) -> NodeType:
        name = self._name(data, where)
        out_edges = []
        for raw in _list(data, "outEdges", "out_edges"):
            in_nodes = []
            for in_node in _list(raw, "inNodes", "in_nodes"):
                if isinstance(in_node, str):
                    in_nodes.append(InNode(name=in_node))
                else:
                    in_nodes.append(InNode(
                        name=str(_get(in_node, "name", default="")),
                        cardinality=_get(in_node, "cardinality"),
                    ))
            out_edges.append(OutEdge(
                edge_name=str(_get(raw, "edgeName", "edge_name", default="")),
                in_nodes=tuple(in_nodes),
            ))

        contained = []
        for raw in _list(data, "containedNodes", "contained_nodes"):
            local_name = str(_get(raw, "localName", "local_name", default=""))
            contained.append(ContainedNode(
                node_type=str(_get(raw, "nodeType", "node_type", default="")),
                local_name=local_name,
                cardinality=self._cardinality(
                    _get(raw, "cardinality"),
                    f"NodeType:{name}.containedNodes.{local_name}",
                    Cardinality.ZERO_OR_ONE,
                ),
            ))

        return NodeType(
            name=name,
            proto_id=self._proto_id(data, where),
            keys=_names(_get(data, "keys")),
            extends=_names(_get(data, "is", "extends")),
            out_edges=tuple(out_edges),
            contained_nodes=tuple(contained),
            comment=_get(data, "comment", default="") or "",
        )

    def constant(self, data: Mapping[str, Any], where: str) -> Constant:
        name = self._name(data, where, "name", "operator")
        return Constant(
            name=name,
            value=str(_get(data, "value", default=name)),
            value_type=str(_get(data, "valueType", "value_type", default="String")),
            proto_id=self._proto_id(data, where),
            comment=_get(data, "comment", default="") or "",
        )

    def parse(self, data: Mapping[str, Any], builder: SchemaBuilder) -> None:
        sections = (
            (("nodeKeys", "node_keys"), lambda d, w: builder.add_node_property(self.property(d, "NodeProperty", w))),
            (("edgeKeys", "edge_keys"), lambda d, w: builder.add_edge_property(self.property(d, "EdgeProperty", w))),
            (("edgeTypes", "edge_types"), lambda d, w: builder.add_edge_type(self.edge_type(d, w))),
            (("nodeBaseTraits", "node_base_traits"), lambda d, w: builder.add_node_base_type(self.node_base_type(d, w))),
            (("nodeTypes", "node_types"), lambda d, w: builder.add_node_type(self.node_type(d, w))),
        )
        for keys, add in sections:
            for i, entry in enumerate(_list(data, *keys)):
                where = f"{keys[0]}[{i}]"
                if not isinstance(entry, Mapping):
                    self._malformed(where, f"expected a mapping, got {type(entry).__name__}")
                    continue
                add(entry, where)

        constants = _get(data, "constants", default={}) or {}
        if not isinstance(constants, Mapping):
            self._malformed("constants", "expected a mapping of category -> list")
            return
        for category, entries in constants.items():
            parsed = []
            for i, entry in enumerate(entries or []):
                where = f"constants.{category}[{i}]"
                if not isinstance(entry, Mapping):
                    self._malformed(where, f"expected a mapping, got {type(entry).__name__}")
                    continue
                parsed.append(self.constant(entry, where))
            builder.add_constants(str(category), parsed)


def load(
    source: Mapping[str, Any],
    diagnostics: Optional[DiagnosticsSink] = None,
) -> Schema:
    """Build a validated Schema from a parsed schema source.

    Args:
        source: Mapping in the schema source layout
        diagnostics: Sink for soft issues (defaults to logging them)

    Returns:
        Immutable Schema

    Raises:
        SchemaValidationError: If the source is malformed or fails validation
    """
    if not isinstance(source, Mapping):
        raise SchemaValidationError([ValidationIssue(
            ErrorKind.MALFORMED_SOURCE, "<root>", f"expected a mapping, got {type(source).__name__}"
        )])
    parser = _Parser(diagnostics)
    builder = SchemaBuilder()
    parser.parse(source, builder)
    if parser.issues:
        raise SchemaValidationError(parser.issues)
    return builder.build(diagnostics, parser.warnings)


def load_yaml(text: str, diagnostics: Optional[DiagnosticsSink] = None) -> Schema:
    """Build a Schema from YAML text."""
    return load(yaml.safe_load(text) or {}, diagnostics)


def load_json(text: str, diagnostics: Optional[DiagnosticsSink] = None) -> Schema:
    """Build a Schema from JSON text."""
    return load(json.loads(text) or {}, diagnostics)


def load_file(path: str | Path, diagnostics: Optional[DiagnosticsSink] = None) -> Schema:
    """Build a Schema from a .json, .yaml or .yml file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    logger.info(f"Loading schema from {path}")
    if path.suffix.lower() == ".json":
        return load_json(text, diagnostics)
    return load_yaml(text, diagnostics)


def merge_sources(sources: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Concatenate several schema sources section by section.

    Lets a schema be split across files (e.g. base.json + extensions.json);
    later sources append to earlier ones, constants merge per category.
    """
    merged: Dict[str, Any] = {}
    for source in sources:
        for key, value in source.items():
            if key == "constants":
                target = merged.setdefault("constants", {})
                for category, entries in (value or {}).items():
                    target.setdefault(category, []).extend(entries or [])
            elif isinstance(value, list):
                merged.setdefault(key, []).extend(value)
            else:
                merged[key] = value
    return merged
