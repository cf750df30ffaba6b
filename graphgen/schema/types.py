"""
Core type definitions for the graphgen schema model.

This module defines the foundational records of a property-graph domain model:
- ValueType, Cardinality, Direction: closed enumerations
- Property: A node or edge property key
- NodeBaseType: Abstract trait-like node type (not instantiable)
- NodeType: Concrete node type with outbound edges and contained nodes
- EdgeType: Typed relation between two nodes
- Constant: Named constant grouped by category

Invariants:
    - All records are frozen; a loaded schema never changes
    - protoIds are stable wire identifiers and never reused
    - Names are the keys used for every cross-reference
    - A NaN default compares equal to another NaN default

How to change safely:
    - Add new ValueType members at the end
    - Never change the string value of an existing enum member, it is part of
      the canonical schema form and therefore of the fingerprint

Example:
    >>> name = Property(name="NAME", value_type=ValueType.STRING,
    ...                 cardinality=Cardinality.ONE, default="<empty>", proto_id=5)
    >>> method = NodeType(name="METHOD", proto_id=1, keys=("NAME",),
    ...                   extends=("DECLARATION",))
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Optional, Tuple, Union

from ..naming import camel_case_caps


class ValueType(Enum):
    """Value types a property can hold."""

    BOOLEAN = "Boolean"
    STRING = "String"
    BYTE = "Byte"
    SHORT = "Short"
    INT = "Int"
    LONG = "Long"
    FLOAT = "Float"
    DOUBLE = "Double"
    CHAR = "Char"
    LIST = "List"
    NODE_REF = "NodeRef"
    UNKNOWN = "Unknown"

    @classmethod
    def from_str(cls, value: str) -> ValueType:
        """Convert a schema value type name to a ValueType.

        Matching is case-insensitive and accepts the common aliases used by
        older schema sources ("bool", "integer", "character", "node_ref").

        Raises:
            ValueError: If value is not a known value type
        """
        normalized = value.strip().lower().replace("_", "")
        if normalized in _VALUE_TYPE_ALIASES:
            return _VALUE_TYPE_ALIASES[normalized]
        for member in cls:
            if member.value.lower() == normalized:
                return member
        valid = [m.value for m in cls]
        raise ValueError(f"Invalid value type '{value}'. Valid types: {valid}")

    @property
    def python_type(self) -> str:
        """Name of the Python type used in generated signatures."""
        return _PYTHON_TYPES[self]


_VALUE_TYPE_ALIASES = {
    "bool": ValueType.BOOLEAN,
    "str": ValueType.STRING,
    "integer": ValueType.INT,
    "character": ValueType.CHAR,
    "noderef": ValueType.NODE_REF,
}

_PYTHON_TYPES = {
    ValueType.BOOLEAN: "bool",
    ValueType.STRING: "str",
    ValueType.BYTE: "int",
    ValueType.SHORT: "int",
    ValueType.INT: "int",
    ValueType.LONG: "int",
    ValueType.FLOAT: "float",
    ValueType.DOUBLE: "float",
    ValueType.CHAR: "str",
    ValueType.LIST: "list",
    ValueType.NODE_REF: "NodeRef",
    ValueType.UNKNOWN: "object",
}

# signed integer ranges
_INT_BITS = {
    ValueType.BYTE: 8,
    ValueType.SHORT: 16,
    ValueType.INT: 32,
    ValueType.LONG: 64,
}


class Cardinality(Enum):
    """How many values a property, contained node or neighbor accessor has.

    ONE: exactly one value
    ZERO_OR_ONE: optional value
    LIST: ordered, possibly empty sequence
    """

    ONE = "one"
    ZERO_OR_ONE = "zeroOrOne"
    LIST = "list"

    @classmethod
    def from_str(cls, value: str) -> Cardinality:
        """Convert a schema cardinality name to a Cardinality.

        Raises:
            ValueError: If value is not a known cardinality
        """
        normalized = value.strip().lower().replace("_", "").replace("-", "")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        valid = [m.value for m in cls]
        raise ValueError(f"Invalid cardinality '{value}'. Valid cardinalities: {valid}")


class Direction(Enum):
    """Direction of neighbor traversal."""

    OUT = "Out"
    IN = "In"


# Sides of an edge endpoint cardinality string such as "1:0-1" or "0-1:n".
_ENDPOINT_SIDES = {
    "1": Cardinality.ONE,
    "0-1": Cardinality.ZERO_OR_ONE,
    "n": Cardinality.LIST,
    "*": Cardinality.LIST,
    "0-n": Cardinality.LIST,
    "1-n": Cardinality.LIST,
}


@dataclass(frozen=True)
class EndpointCardinality:
    """Parsed edge endpoint cardinality.

    Attributes:
        out: Cardinality seen when traversing the edge outwards (right side)
        in_: Cardinality seen when traversing the edge inwards (left side)
        recognized: False when the annotation could not be fully parsed and one
            or both sides fell back to LIST
    """

    out: Cardinality = Cardinality.LIST
    in_: Cardinality = Cardinality.LIST
    recognized: bool = True

    def for_direction(self, direction: Direction) -> Cardinality:
        return self.out if direction is Direction.OUT else self.in_


def parse_endpoint_cardinality(text: Optional[str]) -> EndpointCardinality:
    """Parse an edge endpoint cardinality annotation.

    The right-hand side of the colon applies to outbound traversal, the
    left-hand side to inbound traversal. Missing or unknown sides default to
    LIST. A missing annotation is not an error.

    Example:
        >>> parse_endpoint_cardinality("1:0-1")
        EndpointCardinality(out=<Cardinality.ZERO_OR_ONE: 'zeroOrOne'>, in_=<Cardinality.ONE: 'one'>, recognized=True)
    """
    if text is None or not text.strip():
        return EndpointCardinality()
    left, sep, right = text.strip().partition(":")
    if not sep:
        return EndpointCardinality(recognized=False)
    in_ = _ENDPOINT_SIDES.get(left.strip())
    out = _ENDPOINT_SIDES.get(right.strip())
    return EndpointCardinality(
        out=out or Cardinality.LIST,
        in_=in_ or Cardinality.LIST,
        recognized=out is not None and in_ is not None,
    )


def default_matches(
    value_type: ValueType,
    value: Any,
    cardinality: Optional[Cardinality] = None,
) -> bool:
    """Whether a default value type-checks against a value type.

    With List cardinality the default is a sequence and every element must
    match the value type, e.g. [] or [1, 2] for a List of Int.
    """
    if cardinality is Cardinality.LIST and value_type is not ValueType.LIST:
        if not isinstance(value, (list, tuple)):
            return False
        return all(default_matches(value_type, element) for element in value)
    if value_type is ValueType.UNKNOWN:
        return True
    if value_type is ValueType.BOOLEAN:
        return isinstance(value, bool)
    if value_type is ValueType.STRING:
        return isinstance(value, str)
    if value_type is ValueType.CHAR:
        return isinstance(value, str) and len(value) == 1
    if value_type in _INT_BITS:
        if not isinstance(value, int) or isinstance(value, bool):
            return False
        bound = 1 << (_INT_BITS[value_type] - 1)
        return -bound <= value < bound
    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type is ValueType.LIST:
        return isinstance(value, (list, tuple))
    # NODE_REF defaults cannot be expressed
    return False


def _default_key(value: Any) -> Any:
    """Comparison key that makes NaN equal to NaN."""
    if isinstance(value, float) and math.isnan(value):
        return ("nan",)
    return value


@dataclass(frozen=True, eq=False)
class Property:
    """A property key owned by node types, base types or edge types.

    Attributes:
        name: Schema name, unique within the node or edge property namespace
        value_type: Declared value type
        cardinality: One, ZeroOrOne or List
        default: Default value (None means no default, lists are kept as tuples)
        proto_id: Stable numeric identifier (optional)
        comment: Documentation
        deprecated: Whether generated accessors should warn on use
    """

    name: str
    value_type: ValueType
    cardinality: Cardinality = Cardinality.ZERO_OR_ONE
    default: Any = None
    proto_id: Optional[int] = None
    comment: str = ""
    deprecated: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.default, list):
            object.__setattr__(self, "default", tuple(self.default))

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def class_name(self) -> str:
        return camel_case_caps(self.name)

    def is_default_value(self, value: Any) -> bool:
        """Whether value equals the default. NaN defaults match any NaN."""
        if not self.has_default:
            return False
        if isinstance(self.default, float) and math.isnan(self.default):
            return isinstance(value, float) and math.isnan(value)
        return bool(self.default == value)

    def _key(self) -> tuple:
        return (
            self.name,
            self.value_type,
            self.cardinality,
            _default_key(self.default),
            self.proto_id,
            self.comment,
            self.deprecated,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Property):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((self.name, self.value_type, self.proto_id))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {
            "name": self.name,
            "valueType": self.value_type.value,
            "cardinality": self.cardinality.value,
        }
        if self.proto_id is not None:
            result["id"] = self.proto_id
        if self.has_default:
            default = self.default
            if isinstance(default, float) and math.isnan(default):
                default = "NaN"
            elif isinstance(default, tuple):
                default = list(default)
            result["default"] = default
        if self.comment:
            result["comment"] = self.comment
        if self.deprecated:
            result["deprecated"] = True
        return result


@dataclass(frozen=True)
class InNode:
    """An allowed neighbor node of an edge endpoint.

    Used both for the declared outbound side (name = destination node) and for
    the derived inbound view (name = source node).

    Attributes:
        name: Neighbor node type name
        cardinality: Raw endpoint annotation, e.g. "1:0-1" (None for many:many)
    """

    name: str
    cardinality: Optional[str] = None

    @property
    def endpoint(self) -> EndpointCardinality:
        return parse_endpoint_cardinality(self.cardinality)

    @property
    def cardinality_out(self) -> Cardinality:
        return self.endpoint.out

    @property
    def cardinality_in(self) -> Cardinality:
        return self.endpoint.in_

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.cardinality is not None:
            result["cardinality"] = self.cardinality
        return result


@dataclass(frozen=True)
class OutEdge:
    """An outbound edge declaration on a node type."""

    edge_name: str
    in_nodes: Tuple[InNode, ...] = dataclass_field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "edgeName": self.edge_name,
            "inNodes": [n.to_dict() for n in self.in_nodes],
        }


@dataclass(frozen=True)
class InEdgeContext:
    """Derived inbound view: an edge arriving at a node, and its source nodes."""

    edge_name: str
    neighbors: Tuple[InNode, ...] = dataclass_field(default_factory=tuple)


@dataclass(frozen=True)
class ContainedNode:
    """A strongly typed child relation.

    Attributes:
        node_type: Name of the contained node type (or ABSTRACT_NODE)
        local_name: Accessor name on the owner
        cardinality: One, ZeroOrOne or List (List is ordered by edge index)
    """

    node_type: str
    local_name: str
    cardinality: Cardinality = Cardinality.ZERO_OR_ONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeType": self.node_type,
            "localName": self.local_name,
            "cardinality": self.cardinality.value,
        }


@dataclass(frozen=True)
class NodeBaseType:
    """An abstract, trait-like node type.

    Base types share properties across concrete node types and may extend
    other base types, forming a multiple-inheritance DAG.

    Attributes:
        name: Unique type name (shared namespace with node types)
        keys: Names of directly owned node properties ("hasKeys")
        extends: Names of directly extended base types
        comment: Documentation
    """

    name: str
    keys: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    extends: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    @property
    def class_name(self) -> str:
        return camel_case_caps(self.name)

    @property
    def is_abstract(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.keys:
            result["hasKeys"] = list(self.keys)
        if self.extends:
            result["extends"] = list(self.extends)
        if self.comment:
            result["comment"] = self.comment
        return result


@dataclass(frozen=True)
class NodeType:
    """A concrete, instantiable node type.

    Attributes:
        name: Unique type name
        proto_id: Stable label id (required, validated at build time)
        keys: Names of directly owned node properties
        extends: Names of extended base types ("is")
        out_edges: Outbound edge declarations, in declaration order
        contained_nodes: Strongly typed child relations, in declaration order
        comment: Documentation
    """

    name: str
    proto_id: Optional[int] = None
    keys: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    extends: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    out_edges: Tuple[OutEdge, ...] = dataclass_field(default_factory=tuple)
    contained_nodes: Tuple[ContainedNode, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    @property
    def class_name(self) -> str:
        return camel_case_caps(self.name)

    @property
    def is_abstract(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.proto_id is not None:
            result["id"] = self.proto_id
        if self.keys:
            result["keys"] = list(self.keys)
        if self.extends:
            result["is"] = list(self.extends)
        if self.out_edges:
            result["outEdges"] = [e.to_dict() for e in self.out_edges]
        if self.contained_nodes:
            result["containedNodes"] = [c.to_dict() for c in self.contained_nodes]
        if self.comment:
            result["comment"] = self.comment
        return result


@dataclass(frozen=True)
class EdgeType:
    """An edge type.

    Attributes:
        name: Unique edge name
        proto_id: Stable numeric identifier (required)
        keys: Names of owned edge properties
        comment: Documentation
    """

    name: str
    proto_id: Optional[int] = None
    keys: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    @property
    def class_name(self) -> str:
        return camel_case_caps(self.name)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.proto_id is not None:
            result["id"] = self.proto_id
        if self.keys:
            result["keys"] = list(self.keys)
        if self.comment:
            result["comment"] = self.comment
        return result


@dataclass(frozen=True)
class Constant:
    """A named constant (dispatch type, operator name, ...)."""

    name: str
    value: str
    value_type: str = "String"
    proto_id: Optional[int] = None
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "valueType": self.value_type,
        }
        if self.proto_id is not None:
            result["id"] = self.proto_id
        if self.comment:
            result["comment"] = self.comment
        return result


# Union view over node types and base types used by the hierarchy resolver.
AbstractNodeType = Union[NodeType, NodeBaseType]

ABSTRACT_NODE_NAME = "ABSTRACT_NODE"

# Universal root of every node type. Never declared, always resolvable.
ABSTRACT_NODE = NodeBaseType(name=ABSTRACT_NODE_NAME, comment="root type for all nodes")

# Label of the edge linking an owner to its contained nodes, and the edge
# properties used to select and order them.
CONTAINS_NODE_EDGE = "CONTAINS_NODE"
LOCAL_NAME_KEY = "LOCAL_NAME"
INDEX_KEY = "INDEX"
