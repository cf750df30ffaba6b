"""
Neighbor and property encoding for graphgen.

For every node type the encoder derives the typed accessors that generated
code exposes:
- Property accessors: (accessor name, semantic type, cardinality)
- Neighbor accessors: one edge-level accessor per (edge, direction), typed by
  the common root of its neighbors, plus one accessor per neighbor node type
- Contained-node accessors: typed children stored behind CONTAINS_NODE edges

Naming:
    property     NAME            -> name
    edge-level   AST, Out        -> astOut
    per-node     BLOCK, AST, Out -> blockViaAstOut
    contained    localName       -> localName
Every accessor name passes through the reserved-word escape last.

Adjacency offsets:
    Offsets index the node's adjacency storage. They are assigned in one
    pass per node type: outbound edges in declaration order, then inbound
    edges in edge type declaration order (Schema.node_to_in_edge_contexts).
    Per-node accessors share the offset of their edge-level group.

Invariants:
    - Encoding is a pure function of the Schema (and the reserved-word table)
    - Offsets for a node type never depend on call order or other node types
    - The only side effect is reporting deprecated properties to the sink,
      once per (owner, property)

Example:
    >>> encoder = NodeEncoder(schema)
    >>> [n.accessor for n in encoder.neighbor_infos("METHOD")]
    ['astOut', 'astIn']
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import AbstractSet, Any, Dict, List, Optional, Tuple, Union

from .diagnostics import Diagnostic, DiagnosticsSink, LoggingDiagnostics
from .hierarchy import TypeHierarchy
from .naming import RESERVED_WORDS, accessor_name, camel_case, camel_case_caps, escape_if_keyword
from .schema.model import Schema
from .schema.types import (
    ABSTRACT_NODE,
    CONTAINS_NODE_EDGE,
    INDEX_KEY,
    LOCAL_NAME_KEY,
    AbstractNodeType,
    Cardinality,
    Direction,
    EdgeType,
    InNode,
    NodeType,
    Property,
    ValueType,
)

logger = logging.getLogger(__name__)


class Shape(Enum):
    """How many values an accessor returns."""

    SCALAR = "scalar"
    OPTIONAL = "optional"
    SEQUENCE = "sequence"

    @classmethod
    def from_cardinality(cls, cardinality: Cardinality) -> Shape:
        if cardinality is Cardinality.ONE:
            return cls.SCALAR
        if cardinality is Cardinality.ZERO_OR_ONE:
            return cls.OPTIONAL
        if cardinality is Cardinality.LIST:
            return cls.SEQUENCE
        raise ValueError(f"Unhandled cardinality: {cardinality}")


@dataclass(frozen=True)
class SemanticType:
    """Static type of an accessor: a shape around an element type name.

    List cardinality always maps to an ordered Sequence, never a set.
    """

    shape: Shape
    element: str

    def __str__(self) -> str:
        if self.shape is Shape.OPTIONAL:
            return f"Optional[{self.element}]"
        if self.shape is Shape.SEQUENCE:
            return f"Sequence[{self.element}]"
        return self.element

    @classmethod
    def of(cls, element: str, cardinality: Cardinality) -> SemanticType:
        return cls(Shape.from_cardinality(cardinality), element)

    @classmethod
    def for_property(cls, value_type: ValueType, cardinality: Cardinality) -> SemanticType:
        return cls.of(value_type.python_type, cardinality)


@dataclass(frozen=True)
class PropertyAccessor:
    """Typed accessor for a node or edge property.

    Attributes:
        name: Schema property name
        accessor: Generated accessor name
        value_type: Declared value type
        cardinality: Declared cardinality
        semantic_type: Static type of the accessor
        default: Declared default (None if absent)
        proto_id: Property protoId
        deprecated: Whether use should be reported
    """

    name: str
    accessor: str
    value_type: ValueType
    cardinality: Cardinality
    semantic_type: SemanticType
    default: Any = None
    proto_id: Optional[int] = None
    deprecated: bool = False

    def read(self, raw: Any) -> Any:
        """Normalize a stored value to the accessor's semantic type.

        SEQUENCE yields a new list, empty when nothing is stored. OPTIONAL
        yields the value or None. SCALAR yields the value, or the default
        when nothing is stored.
        """
        shape = self.semantic_type.shape
        if shape is Shape.SEQUENCE:
            if raw is None:
                return []
            if isinstance(raw, (list, tuple)):
                return list(raw)
            return [raw]
        if shape is Shape.OPTIONAL:
            return raw
        return self.default if raw is None else raw

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "accessor": self.accessor,
            "valueType": self.value_type.value,
            "cardinality": self.cardinality.value,
            "semanticType": str(self.semantic_type),
        }
        if self.proto_id is not None:
            result["id"] = self.proto_id
        if self.default is not None:
            default = self.default
            if isinstance(default, float) and math.isnan(default):
                default = "NaN"
            elif isinstance(default, tuple):
                default = list(default)
            result["default"] = default
        if self.deprecated:
            result["deprecated"] = True
        return result


@dataclass(frozen=True)
class NeighborAccessor:
    """Accessor for neighbors of one node type reached via one edge and direction."""

    accessor: str
    neighbor: str
    neighbor_class: str
    edge: str
    direction: Direction
    cardinality: Cardinality
    semantic_type: SemanticType
    offset: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessor": self.accessor,
            "neighbor": self.neighbor,
            "neighborClass": self.neighbor_class,
            "edge": self.edge,
            "direction": self.direction.value,
            "cardinality": self.cardinality.value,
            "semanticType": str(self.semantic_type),
            "offset": self.offset,
        }


@dataclass(frozen=True)
class NeighborInfo:
    """All neighbor accessors of a node type for one (edge, direction).

    Attributes:
        edge: Edge type name
        direction: Traversal direction
        accessor: Edge-level accessor name
        neighbor_type: Common root of every neighbor (ABSTRACT_NODE if none)
        semantic_type: Sequence of the common root class
        offset: Adjacency storage offset shared by the whole group
        nodes: Per-neighbor accessors, in declaration order
    """

    edge: str
    direction: Direction
    accessor: str
    neighbor_type: str
    semantic_type: SemanticType
    offset: int
    nodes: Tuple[NeighborAccessor, ...] = dataclass_field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge": self.edge,
            "direction": self.direction.value,
            "accessor": self.accessor,
            "neighborType": self.neighbor_type,
            "semanticType": str(self.semantic_type),
            "offset": self.offset,
            "nodes": [n.to_dict() for n in self.nodes],
        }


@dataclass(frozen=True)
class ContainedNodeAccessor:
    """Accessor for a contained (structural child) node relation.

    Children are the CONTAINS_NODE neighbors whose LOCAL_NAME edge property
    equals local_name. For ordered accessors, storage sorts them by the INDEX
    edge property at read time.
    """

    accessor: str
    local_name: str
    node_type: str
    node_class: str
    cardinality: Cardinality
    semantic_type: SemanticType
    edge: str = CONTAINS_NODE_EDGE
    selector_key: str = LOCAL_NAME_KEY
    order_key: str = INDEX_KEY

    @property
    def ordered(self) -> bool:
        return self.cardinality is Cardinality.LIST

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessor": self.accessor,
            "localName": self.local_name,
            "nodeType": self.node_type,
            "nodeClass": self.node_class,
            "cardinality": self.cardinality.value,
            "semanticType": str(self.semantic_type),
            "edge": self.edge,
            "selectorKey": self.selector_key,
            "orderKey": self.order_key,
            "ordered": self.ordered,
        }


def neighbor_accessor_name_for_edge(edge_name: str, direction: Direction) -> str:
    """Edge-level accessor name: AST + Out -> astOut."""
    return camel_case(f"{edge_name}_{direction.value}")


def neighbor_accessor_name_for_node(node_name: str, edge_name: str, direction: Direction) -> str:
    """Per-node accessor name: BLOCK + AST + Out -> blockViaAstOut."""
    return f"{camel_case(node_name)}Via{camel_case_caps(edge_name)}{direction.value}"


class NodeEncoder:
    """Derives typed accessors for node types, base types and edge types.

    Thread-safety:
        - Holds no mutable state besides the caller-supplied sink, whose
          report_once is itself thread-safe

    Args:
        schema: Validated schema
        diagnostics: Sink for deprecated-property reports (defaults to logging)
        reserved: Reserved-word table for the accessor name escape
    """

    def __init__(
        self,
        schema: Schema,
        diagnostics: Optional[DiagnosticsSink] = None,
        reserved: AbstractSet[str] = RESERVED_WORDS,
    ) -> None:
        self._schema = schema
        self._hierarchy = TypeHierarchy(schema)
        self._diagnostics = diagnostics if diagnostics is not None else LoggingDiagnostics(logger)
        self._reserved = reserved

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def hierarchy(self) -> TypeHierarchy:
        return self._hierarchy

    def _escape(self, name: str) -> str:
        return escape_if_keyword(name, self._reserved)

    def _node_type(self, node_type: Union[NodeType, str]) -> NodeType:
        if isinstance(node_type, NodeType):
            return node_type
        resolved = self._schema.node_type_by_name(node_type)
        if resolved is None:
            raise KeyError(f"Unknown node type '{node_type}'")
        return resolved

    # --- properties ---

    def property_accessor(self, prop: Property) -> PropertyAccessor:
        """Encode a single property, independent of its owner."""
        return PropertyAccessor(
            name=prop.name,
            accessor=accessor_name(prop.name, self._reserved),
            value_type=prop.value_type,
            cardinality=prop.cardinality,
            semantic_type=SemanticType.for_property(prop.value_type, prop.cardinality),
            default=prop.default,
            proto_id=prop.proto_id,
            deprecated=prop.deprecated,
        )

    def property_accessors(
        self, owner: Union[AbstractNodeType, EdgeType]
    ) -> Tuple[PropertyAccessor, ...]:
        """Encode the directly owned properties of a node, base or edge type.

        Deprecated properties still get an accessor; each is reported once
        per (owner, property) to the diagnostics sink.
        """
        accessors = []
        for prop in self._schema.properties_of(owner):
            if prop.deprecated:
                self._diagnostics.report_once(
                    (owner.name, prop.name),
                    Diagnostic(
                        None,
                        f"{owner.name}.{prop.name}",
                        f"Property {prop.name} is deprecated for {owner.class_name}",
                    ),
                )
            accessors.append(self.property_accessor(prop))
        return tuple(accessors)

    # --- neighbors ---

    def _neighbor_group(
        self,
        edge_name: str,
        direction: Direction,
        neighbors: List[InNode],
        offset: int,
    ) -> NeighborInfo:
        nodes: List[NeighborAccessor] = []
        seen: set[str] = set()
        for neighbor in neighbors:
            if neighbor.name in seen:
                continue
            seen.add(neighbor.name)
            neighbor_type = self._node_type(neighbor.name)
            # the annotation lives on the declaring (outbound) side
            cardinality = neighbor.endpoint.for_direction(direction)
            nodes.append(NeighborAccessor(
                accessor=self._escape(neighbor_accessor_name_for_node(neighbor.name, edge_name, direction)),
                neighbor=neighbor.name,
                neighbor_class=neighbor_type.class_name,
                edge=edge_name,
                direction=direction,
                cardinality=cardinality,
                semantic_type=SemanticType.of(neighbor_type.class_name, cardinality),
                offset=offset,
            ))

        if nodes:
            root = self._hierarchy.common_root([n.neighbor for n in nodes])
        else:
            root = ABSTRACT_NODE
        return NeighborInfo(
            edge=edge_name,
            direction=direction,
            accessor=self._escape(neighbor_accessor_name_for_edge(edge_name, direction)),
            neighbor_type=root.name,
            semantic_type=SemanticType(Shape.SEQUENCE, root.class_name),
            offset=offset,
            nodes=tuple(nodes),
        )

    def neighbor_infos(self, node_type: Union[NodeType, str]) -> Tuple[NeighborInfo, ...]:
        """Neighbor accessor groups of a node type, in offset order.

        Outbound groups come first, one per distinct edge name in declaration
        order (repeated declarations of the same edge are merged), then one
        inbound group per entry of the inverted edge index.
        """
        node = self._node_type(node_type)

        outbound: Dict[str, List[InNode]] = {}
        for out_edge in node.out_edges:
            outbound.setdefault(out_edge.edge_name, []).extend(out_edge.in_nodes)

        groups: List[NeighborInfo] = []
        for edge_name, in_nodes in outbound.items():
            groups.append(self._neighbor_group(edge_name, Direction.OUT, in_nodes, len(groups)))
        for context in self._schema.in_edge_contexts(node.name):
            groups.append(self._neighbor_group(
                context.edge_name, Direction.IN, list(context.neighbors), len(groups)
            ))
        return tuple(groups)

    # --- contained nodes ---

    def contained_node_accessors(
        self, node_type: Union[NodeType, str]
    ) -> Tuple[ContainedNodeAccessor, ...]:
        """Contained-node accessors of a node type, in declaration order."""
        node = self._node_type(node_type)
        accessors = []
        for contained in node.contained_nodes:
            node_class = self._hierarchy.resolve(contained.node_type).class_name
            accessors.append(ContainedNodeAccessor(
                accessor=self._escape(contained.local_name),
                local_name=contained.local_name,
                node_type=contained.node_type,
                node_class=node_class,
                cardinality=contained.cardinality,
                semantic_type=SemanticType.of(node_class, contained.cardinality),
            ))
        return tuple(accessors)
