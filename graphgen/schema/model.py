"""
Schema model for graphgen.

The SchemaBuilder collects declarations; build() validates them all at once
and produces an immutable Schema. It provides:
- Registration of properties, edge types, base types, node types and constants
- Validation of names, protoIds, cross-references, hierarchy acyclicity and defaults
- Lookup by name, the ancestor closure of every node type and the derived
  inbound-edge index
- Schema fingerprinting for reproducibility checks

Invariants:
    - A builder is mutable until build(), closed afterwards
    - A Schema is never mutated after construction and needs no locking
    - Every fatal issue is reported together, in validation-pass order:
      duplicates, references, cycles, defaults, missing ids
    - Unparseable edge cardinalities are soft: logged, recovered as List
    - Fingerprint changes when the schema changes

How to change safely:
    - Add new validation passes at the end so the raised error class for
      existing schemas stays the same
    - Never make iteration depend on set or dict ordering of anything other
      than declaration order

Example:
    >>> builder = SchemaBuilder()
    >>> builder.add_node_property(Property("NAME", ValueType.STRING, Cardinality.ONE, proto_id=5))
    >>> builder.add_node_type(NodeType("FILE", proto_id=38, keys=("NAME",)))
    >>> schema = builder.build()
    >>> schema.node_type_by_name("FILE").proto_id
    38
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..diagnostics import Diagnostic, DiagnosticsSink, LoggingDiagnostics
from .errors import BuilderClosedError, ErrorKind, SchemaValidationError, ValidationIssue
from .types import (
    ABSTRACT_NODE,
    ABSTRACT_NODE_NAME,
    AbstractNodeType,
    Constant,
    EdgeType,
    InEdgeContext,
    InNode,
    NodeBaseType,
    NodeType,
    Property,
    default_matches,
)

logger = logging.getLogger(__name__)


class SchemaBuilder:
    """Mutable registration surface for a schema.

    Declarations are kept in order, duplicates included, so that build()
    can report every problem at once instead of failing on the first.

    Example:
        >>> builder = SchemaBuilder()
        >>> builder.add_node_base_type(NodeBaseType("AST_NODE", keys=("ORDER",)))
        >>> builder.add_node_type(NodeType("CALL", proto_id=15, extends=("AST_NODE",)))
        >>> schema = builder.build()
    """

    def __init__(self) -> None:
        self._node_keys: List[Property] = []
        self._edge_keys: List[Property] = []
        self._edge_types: List[EdgeType] = []
        self._node_base_traits: List[NodeBaseType] = []
        self._node_types: List[NodeType] = []
        self._constants: "OrderedDict[str, List[Constant]]" = OrderedDict()
        self._built = False

    def _check_open(self, what: str) -> None:
        if self._built:
            raise BuilderClosedError(f"Cannot add {what}: schema already built")

    def add_node_property(self, prop: Property) -> Property:
        """Register a node property key."""
        self._check_open(f"node property '{prop.name}'")
        self._node_keys.append(prop)
        logger.debug(f"Registered node property: {prop.name} (protoId={prop.proto_id})")
        return prop

    def add_edge_property(self, prop: Property) -> Property:
        """Register an edge property key."""
        self._check_open(f"edge property '{prop.name}'")
        self._edge_keys.append(prop)
        logger.debug(f"Registered edge property: {prop.name} (protoId={prop.proto_id})")
        return prop

    def add_edge_type(self, edge_type: EdgeType) -> EdgeType:
        """Register an edge type."""
        self._check_open(f"edge type '{edge_type.name}'")
        self._edge_types.append(edge_type)
        logger.debug(f"Registered edge type: {edge_type.name} (protoId={edge_type.proto_id})")
        return edge_type

    def add_node_base_type(self, base_type: NodeBaseType) -> NodeBaseType:
        """Register a node base type."""
        self._check_open(f"node base type '{base_type.name}'")
        self._node_base_traits.append(base_type)
        logger.debug(f"Registered node base type: {base_type.name}")
        return base_type

    def add_node_type(self, node_type: NodeType) -> NodeType:
        """Register a concrete node type."""
        self._check_open(f"node type '{node_type.name}'")
        self._node_types.append(node_type)
        logger.debug(f"Registered node type: {node_type.name} (protoId={node_type.proto_id})")
        return node_type

    def add_constants(self, category: str, constants: Iterable[Constant]) -> Tuple[Constant, ...]:
        """Register constants under a category, appending to earlier ones."""
        self._check_open(f"constants '{category}'")
        added = tuple(constants)
        self._constants.setdefault(category, []).extend(added)
        logger.debug(f"Registered {len(added)} constant(s) in category {category}")
        return added

    def validate_all(self) -> Tuple[List[ValidationIssue], List[ValidationIssue]]:
        """Run every validation pass.

        Returns:
            Tuple of (fatal_issues, soft_issues)
        """
        issues: List[ValidationIssue] = []
        issues.extend(self._check_duplicates())
        issues.extend(self._check_references())
        issues.extend(self._check_cycles())
        issues.extend(self._check_defaults())
        issues.extend(self._check_missing_ids())
        soft = self._check_cardinalities()
        return issues, soft

    def build(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        warnings: Sequence[Diagnostic] = (),
    ) -> Schema:
        """Validate all declarations and produce an immutable Schema.

        Args:
            diagnostics: Sink for soft issues (defaults to logging them)
            warnings: Soft diagnostics already reported upstream, kept first
                in Schema.warnings

        Returns:
            The validated Schema

        Raises:
            BuilderClosedError: If build() was already called
            SchemaValidationError: If any fatal issue was found. The concrete
                subclass matches the kind of the first issue.
        """
        if self._built:
            raise BuilderClosedError("Schema already built")
        self._built = True

        fatal, soft = self.validate_all()
        sink = diagnostics if diagnostics is not None else LoggingDiagnostics(logger)
        collected = list(warnings)
        for issue in soft:
            diagnostic = Diagnostic(issue.kind, issue.path, issue.message)
            sink.report(diagnostic)
            collected.append(diagnostic)

        if fatal:
            logger.info(f"Schema validation failed with {len(fatal)} error(s)")
            raise SchemaValidationError.from_issues(fatal)

        schema = Schema(
            node_keys=self._node_keys,
            edge_keys=self._edge_keys,
            edge_types=self._edge_types,
            node_base_traits=self._node_base_traits,
            node_types=self._node_types,
            constants=self._constants,
            warnings=collected,
        )
        logger.info(
            f"Schema built with {len(schema.node_types)} node types, "
            f"{len(schema.node_base_traits)} base types, {len(schema.edge_types)} edge types, "
            f"fingerprint={schema.fingerprint}"
        )
        return schema

    # --- validation passes ---

    def _check_duplicates(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        issues.extend(_duplicates(self._node_keys, lambda p: p.name, "NodeProperty", "name"))
        issues.extend(_duplicates(self._node_keys, lambda p: p.proto_id, "NodeProperty", "protoId"))
        issues.extend(_duplicates(self._edge_keys, lambda p: p.name, "EdgeProperty", "name"))
        issues.extend(_duplicates(self._edge_keys, lambda p: p.proto_id, "EdgeProperty", "protoId"))
        issues.extend(_duplicates(self._edge_types, lambda e: e.name, "EdgeType", "name"))
        issues.extend(_duplicates(self._edge_types, lambda e: e.proto_id, "EdgeType", "protoId"))
        # node types and base types share one namespace, keyed by name
        abstract_types: List[Any] = [*self._node_base_traits, *self._node_types]
        issues.extend(_duplicates(abstract_types, lambda t: t.name, "NodeType", "name"))
        issues.extend(_duplicates(self._node_types, lambda n: n.proto_id, "NodeType", "protoId"))
        for t in abstract_types:
            if t.name == ABSTRACT_NODE_NAME:
                issues.append(ValidationIssue(
                    ErrorKind.DUPLICATE_IDENTIFIER,
                    f"NodeType:{t.name}",
                    f"'{ABSTRACT_NODE_NAME}' is reserved for the universal root type",
                ))
        for category, constants in self._constants.items():
            issues.extend(_duplicates(constants, lambda c: c.name, f"Constants:{category}", "name"))
        for node in self._node_types:
            issues.extend(_duplicates(
                node.contained_nodes,
                lambda c: c.local_name,
                f"NodeType:{node.name}.containedNodes",
                "localName",
            ))
        return issues

    def _check_references(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        node_keys = {p.name for p in self._node_keys}
        edge_keys = {p.name for p in self._edge_keys}
        edge_names = {e.name for e in self._edge_types}
        base_names = {b.name for b in self._node_base_traits}
        node_names = {n.name for n in self._node_types}
        abstract_names = base_names | node_names | {ABSTRACT_NODE_NAME}

        def unresolved(path: str, message: str) -> None:
            issues.append(ValidationIssue(ErrorKind.UNRESOLVED_REFERENCE, path, message))

        for edge in self._edge_types:
            for key in edge.keys:
                if key not in edge_keys:
                    unresolved(f"EdgeType:{edge.name}", f"references unknown edge property '{key}'")

        for base in self._node_base_traits:
            for key in base.keys:
                if key not in node_keys:
                    unresolved(f"NodeBaseType:{base.name}", f"references unknown node property '{key}'")
            for parent in base.extends:
                if parent not in base_names:
                    unresolved(f"NodeBaseType:{base.name}", f"extends unknown base type '{parent}'")

        for node in self._node_types:
            path = f"NodeType:{node.name}"
            for key in node.keys:
                if key not in node_keys:
                    unresolved(path, f"references unknown node property '{key}'")
            for parent in node.extends:
                if parent not in base_names:
                    unresolved(path, f"extends unknown base type '{parent}'")
            for i, out_edge in enumerate(node.out_edges):
                edge_path = f"{path}.outEdges[{i}]"
                if out_edge.edge_name not in edge_names:
                    unresolved(edge_path, f"references unknown edge type '{out_edge.edge_name}'")
                for in_node in out_edge.in_nodes:
                    if in_node.name not in node_names:
                        unresolved(
                            edge_path,
                            f"edge '{out_edge.edge_name}' points to unknown node type '{in_node.name}'",
                        )
            for contained in node.contained_nodes:
                if contained.node_type not in abstract_names:
                    unresolved(
                        f"{path}.containedNodes.{contained.local_name}",
                        f"references unknown node type '{contained.node_type}'",
                    )
        return issues

    def _check_cycles(self) -> List[ValidationIssue]:
        """Detect cycles among base types, following extends in declaration order."""
        issues: List[ValidationIssue] = []
        parents: Dict[str, Tuple[str, ...]] = {}
        for base in self._node_base_traits:
            parents.setdefault(base.name, base.extends)

        reported: set[frozenset[str]] = set()
        done: set[str] = set()

        def visit(name: str, stack: List[str]) -> None:
            if name in stack:
                cycle = stack[stack.index(name):] + [name]
                members = frozenset(cycle)
                if members not in reported:
                    reported.add(members)
                    issues.append(ValidationIssue(
                        ErrorKind.CYCLIC_HIERARCHY,
                        f"NodeBaseType:{name}",
                        "extends cycle: " + " -> ".join(cycle),
                    ))
                return
            if name in done or name not in parents:
                return
            stack.append(name)
            for parent in parents[name]:
                visit(parent, stack)
            stack.pop()
            done.add(name)

        for base in self._node_base_traits:
            visit(base.name, [])
        return issues

    def _check_defaults(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for scope, props in (("NodeProperty", self._node_keys), ("EdgeProperty", self._edge_keys)):
            for prop in props:
                if prop.has_default and not default_matches(prop.value_type, prop.default, prop.cardinality):
                    issues.append(ValidationIssue(
                        ErrorKind.TYPE_MISMATCH_DEFAULT,
                        f"{scope}:{prop.name}",
                        f"default {prop.default!r} ({type(prop.default).__name__}) "
                        f"does not match value type {prop.value_type.value}",
                    ))
        return issues

    def _check_missing_ids(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for node in self._node_types:
            if node.proto_id is None:
                issues.append(ValidationIssue(
                    ErrorKind.MISSING_IDENTIFIER, f"NodeType:{node.name}", "concrete node type has no protoId"
                ))
        for edge in self._edge_types:
            if edge.proto_id is None:
                issues.append(ValidationIssue(
                    ErrorKind.MISSING_IDENTIFIER, f"EdgeType:{edge.name}", "edge type has no protoId"
                ))
        return issues

    def _check_cardinalities(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for node in self._node_types:
            for i, out_edge in enumerate(node.out_edges):
                for in_node in out_edge.in_nodes:
                    if not in_node.endpoint.recognized:
                        issues.append(ValidationIssue(
                            ErrorKind.INVALID_CARDINALITY,
                            f"NodeType:{node.name}.outEdges[{i}]",
                            f"cannot parse cardinality '{in_node.cardinality}' of "
                            f"{out_edge.edge_name} -> {in_node.name}, defaulting to list",
                        ))
        return issues


def _duplicates(
    items: Sequence[Any],
    key: Callable[[Any], Any],
    scope: str,
    label: str,
) -> List[ValidationIssue]:
    """Report every value of key(item) that occurs more than once (None ignored)."""
    seen: Dict[Any, Any] = {}
    issues: List[ValidationIssue] = []
    for item in items:
        value = key(item)
        if value is None:
            continue
        if value in seen:
            first = seen[value]
            issues.append(ValidationIssue(
                ErrorKind.DUPLICATE_IDENTIFIER,
                f"{scope}:{getattr(item, 'name', getattr(item, 'local_name', value))}",
                f"{label} {value!r} already used by "
                f"'{getattr(first, 'name', getattr(first, 'local_name', value))}'",
            ))
        else:
            seen[value] = item
    return issues


def _extends_closure(types_by_name: Mapping[str, AbstractNodeType]) -> Dict[str, Tuple[str, ...]]:
    """Ancestor chain of every type: direct parents first, then each parent's chain.

    Deduplicated, first occurrence wins. Requires an acyclic hierarchy.
    """
    closure: Dict[str, Tuple[str, ...]] = {}

    def chain(name: str) -> Tuple[str, ...]:
        if name in closure:
            return closure[name]
        direct = types_by_name[name].extends
        ordered: List[str] = []
        for parent in list(direct) + [a for p in direct for a in chain(p)]:
            if parent not in ordered:
                ordered.append(parent)
        closure[name] = tuple(ordered)
        return closure[name]

    for name in types_by_name:
        chain(name)
    return closure


class Schema:
    """Immutable, validated in-memory schema.

    Built by SchemaBuilder.build() or graphgen.schema.loader.load(). All
    collections are tuples or read-only mappings, in declaration order.

    Thread-safety:
        - Nothing is mutated after __init__, lookups need no lock

    Attributes:
        fingerprint: SHA-256 hash of the canonical schema form
        warnings: Soft diagnostics recorded while building
    """

    def __init__(
        self,
        node_keys: Sequence[Property],
        edge_keys: Sequence[Property],
        edge_types: Sequence[EdgeType],
        node_base_traits: Sequence[NodeBaseType],
        node_types: Sequence[NodeType],
        constants: Mapping[str, Sequence[Constant]],
        warnings: Sequence[Diagnostic] = (),
    ) -> None:
        self._node_keys = tuple(node_keys)
        self._edge_keys = tuple(edge_keys)
        self._edge_types = tuple(edge_types)
        self._node_base_traits = tuple(node_base_traits)
        self._node_types = tuple(node_types)
        self._constants = MappingProxyType({c: tuple(v) for c, v in constants.items()})
        self._warnings = tuple(warnings)

        self._node_keys_by_name = MappingProxyType({p.name: p for p in self._node_keys})
        self._edge_keys_by_name = MappingProxyType({p.name: p for p in self._edge_keys})
        self._edge_types_by_name = MappingProxyType({e.name: e for e in self._edge_types})
        self._node_types_by_name = MappingProxyType({n.name: n for n in self._node_types})
        self._base_types_by_name = MappingProxyType({b.name: b for b in self._node_base_traits})
        abstract: Dict[str, AbstractNodeType] = {ABSTRACT_NODE_NAME: ABSTRACT_NODE}
        abstract.update(self._base_types_by_name)
        abstract.update(self._node_types_by_name)
        self._abstract_by_name = MappingProxyType(abstract)

        self._ancestors = MappingProxyType(_extends_closure(self._abstract_by_name))
        self._in_edge_contexts = MappingProxyType(self._invert_out_edges())
        self._fingerprint = self._compute_fingerprint()

    def __repr__(self) -> str:
        return (
            f"Schema(node_types={len(self._node_types)}, "
            f"node_base_traits={len(self._node_base_traits)}, "
            f"edge_types={len(self._edge_types)}, fingerprint={self._fingerprint!r})"
        )

    @property
    def node_types(self) -> Tuple[NodeType, ...]:
        return self._node_types

    @property
    def edge_types(self) -> Tuple[EdgeType, ...]:
        return self._edge_types

    @property
    def node_base_traits(self) -> Tuple[NodeBaseType, ...]:
        return self._node_base_traits

    @property
    def node_keys(self) -> Tuple[Property, ...]:
        return self._node_keys

    @property
    def edge_keys(self) -> Tuple[Property, ...]:
        return self._edge_keys

    @property
    def constant_categories(self) -> Tuple[str, ...]:
        return tuple(self._constants)

    @property
    def warnings(self) -> Tuple[Diagnostic, ...]:
        return self._warnings

    @property
    def fingerprint(self) -> str:
        """Schema fingerprint, 'sha256:<hex>'."""
        return self._fingerprint

    @property
    def node_to_in_edge_contexts(self) -> Mapping[str, Tuple[InEdgeContext, ...]]:
        """Inbound edges per destination node, derived from every outEdges declaration."""
        return self._in_edge_contexts

    def constants_from_element(self, category: str) -> Tuple[Constant, ...]:
        """Constants of a category (empty for an unknown category)."""
        return self._constants.get(category, ())

    def node_type_by_name(self, name: str) -> Optional[NodeType]:
        return self._node_types_by_name.get(name)

    def node_base_trait_by_name(self, name: str) -> Optional[NodeBaseType]:
        return self._base_types_by_name.get(name)

    def abstract_node_type_by_name(self, name: str) -> Optional[AbstractNodeType]:
        """Node type, base type or the ABSTRACT_NODE root, by name."""
        return self._abstract_by_name.get(name)

    def edge_type_by_name(self, name: str) -> Optional[EdgeType]:
        return self._edge_types_by_name.get(name)

    def node_property_by_name(self, name: str) -> Optional[Property]:
        return self._node_keys_by_name.get(name)

    def edge_property_by_name(self, name: str) -> Optional[Property]:
        return self._edge_keys_by_name.get(name)

    def in_edge_contexts(self, node_name: str) -> Tuple[InEdgeContext, ...]:
        return self._in_edge_contexts.get(node_name, ())

    def extendz_recursively(self, node_type: AbstractNodeType | str) -> Tuple[NodeBaseType, ...]:
        """Transitive, deduplicated ancestors reachable via extends (self excluded).

        Raises:
            KeyError: If the type is not declared in this schema
        """
        name = node_type if isinstance(node_type, str) else node_type.name
        return tuple(self._abstract_by_name[a] for a in self._ancestors[name])  # type: ignore[misc]

    def properties_of(self, owner: AbstractNodeType | EdgeType) -> Tuple[Property, ...]:
        """Resolve the directly owned property keys of a type, in declaration order."""
        if isinstance(owner, EdgeType):
            return tuple(self._edge_keys_by_name[k] for k in owner.keys)
        return tuple(self._node_keys_by_name[k] for k in owner.keys)

    def _invert_out_edges(self) -> Dict[str, Tuple[InEdgeContext, ...]]:
        """Group every declared outbound edge by its destination node.

        Contexts are ordered by edge type declaration order and sources by
        name, so the index never depends on the order node types are declared in.
        """
        edge_order = {e.name: i for i, e in enumerate(self._edge_types)}
        grouped: "OrderedDict[str, Dict[str, List[InNode]]]" = OrderedDict()
        for node in self._node_types:
            for out_edge in node.out_edges:
                for in_node in out_edge.in_nodes:
                    by_edge = grouped.setdefault(in_node.name, {})
                    by_edge.setdefault(out_edge.edge_name, []).append(
                        InNode(name=node.name, cardinality=in_node.cardinality)
                    )
        return {
            destination: tuple(
                InEdgeContext(
                    edge_name=edge_name,
                    neighbors=tuple(sorted(by_edge[edge_name], key=lambda n: n.name)),
                )
                for edge_name in sorted(by_edge, key=lambda e: (edge_order.get(e, len(edge_order)), e))
            )
            for destination, by_edge in grouped.items()
        }

    def _compute_fingerprint(self) -> str:
        """SHA-256 over the canonical JSON form of the schema."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        hash_bytes = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"sha256:{hash_bytes}"

    def to_dict(self) -> Dict[str, Any]:
        """Canonical dictionary form, in declaration order."""
        return {
            "nodeKeys": [p.to_dict() for p in self._node_keys],
            "edgeKeys": [p.to_dict() for p in self._edge_keys],
            "edgeTypes": [e.to_dict() for e in self._edge_types],
            "nodeBaseTraits": [b.to_dict() for b in self._node_base_traits],
            "nodeTypes": [n.to_dict() for n in self._node_types],
            "constants": {
                category: [c.to_dict() for c in constants]
                for category, constants in self._constants.items()
            },
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
