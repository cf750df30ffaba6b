"""
Generation driver for graphgen.

The driver walks a Schema in a fixed dependency order and produces one
resolved codegen unit per entity:

    node properties -> edge properties -> edge types -> node base types
        -> node types -> node relations -> constants

Later units reference earlier ones by name, so the order never changes.
Units are handed to a renderer, which turns them into text; the driver
itself owns no resolution logic.

Invariants:
    - Every declared entity yields exactly one unit, even when it has no
      properties or edges
    - Running the driver twice on the same Schema yields identical units
    - Unit order is the kind order above, then declaration order

Example:
    >>> driver = GenerationDriver(schema)
    >>> fragments = driver.run(JsonRenderer())
    >>> driver.fingerprint()
    'sha256:...'
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    Any,
    ClassVar,
    Dict,
    Iterator,
    List,
    Optional,
    Tuple,
)

from .diagnostics import DiagnosticsSink
from .encoder import ContainedNodeAccessor, NeighborInfo, NodeEncoder, PropertyAccessor
from .naming import RESERVED_WORDS, category_class_name, constant_name
from .schema.model import Schema
from .schema.types import Constant

if TYPE_CHECKING:
    from .render import Renderer

logger = logging.getLogger(__name__)


class CodegenUnit:
    """Base class of resolved codegen units."""

    kind: ClassVar[str] = "unit"
    name: str

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class PropertyUnit(CodegenUnit):
    """A node or edge property key.

    Attributes:
        name: Schema property name
        scope: "node" or "edge"
        accessor: Encoded accessor
        comment: Documentation
    """

    name: str
    scope: str
    accessor: PropertyAccessor
    comment: str = ""

    @property
    def kind(self) -> str:  # type: ignore[override]
        return f"{self.scope}Property"

    def to_dict(self) -> Dict[str, Any]:
        result = {"kind": self.kind, "name": self.name, "scope": self.scope}
        result.update(self.accessor.to_dict())
        if self.comment:
            result["comment"] = self.comment
        return result


@dataclass(frozen=True)
class EdgeTypeUnit(CodegenUnit):
    """An edge type with its property accessors."""

    kind: ClassVar[str] = "edgeType"

    name: str
    class_name: str
    proto_id: Optional[int]
    properties: Tuple[PropertyAccessor, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "className": self.class_name,
            "id": self.proto_id,
            "properties": [p.to_dict() for p in self.properties],
            "comment": self.comment,
        }


@dataclass(frozen=True)
class NodeBaseTypeUnit(CodegenUnit):
    """A node base type with its own property accessors and ancestry."""

    kind: ClassVar[str] = "nodeBaseType"

    name: str
    class_name: str
    extends: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    ancestors: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    properties: Tuple[PropertyAccessor, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "className": self.class_name,
            "extends": list(self.extends),
            "ancestors": list(self.ancestors),
            "properties": [p.to_dict() for p in self.properties],
            "comment": self.comment,
        }


@dataclass(frozen=True)
class NodeTypeUnit(CodegenUnit):
    """A concrete node type: identity, ancestry and property accessors."""

    kind: ClassVar[str] = "nodeType"

    name: str
    class_name: str
    proto_id: Optional[int]
    extends: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    ancestors: Tuple[str, ...] = dataclass_field(default_factory=tuple)
    properties: Tuple[PropertyAccessor, ...] = dataclass_field(default_factory=tuple)
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "className": self.class_name,
            "id": self.proto_id,
            "extends": list(self.extends),
            "ancestors": list(self.ancestors),
            "properties": [p.to_dict() for p in self.properties],
            "comment": self.comment,
        }


@dataclass(frozen=True)
class NodeRelationsUnit(CodegenUnit):
    """Neighbor and contained-node wiring of a node type."""

    kind: ClassVar[str] = "nodeRelations"

    name: str
    class_name: str
    neighbors: Tuple[NeighborInfo, ...] = dataclass_field(default_factory=tuple)
    contained_nodes: Tuple[ContainedNodeAccessor, ...] = dataclass_field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "className": self.class_name,
            "neighbors": [n.to_dict() for n in self.neighbors],
            "containedNodes": [c.to_dict() for c in self.contained_nodes],
        }


@dataclass(frozen=True)
class ConstantsUnit(CodegenUnit):
    """All constants of one category."""

    kind: ClassVar[str] = "constants"

    name: str
    class_name: str
    constants: Tuple[Constant, ...] = dataclass_field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        entries = []
        for constant in self.constants:
            entry = constant.to_dict()
            entry["constantName"] = constant_name(constant.name)
            entries.append(entry)
        return {
            "kind": self.kind,
            "name": self.name,
            "className": self.class_name,
            "constants": entries,
        }


class GenerationDriver:
    """Produces codegen units for a Schema in dependency order.

    Args:
        schema: Validated schema
        diagnostics: Sink for soft diagnostics raised while encoding
        reserved: Reserved-word table for accessor names
    """

    def __init__(
        self,
        schema: Schema,
        diagnostics: Optional[DiagnosticsSink] = None,
        reserved: AbstractSet[str] = RESERVED_WORDS,
    ) -> None:
        self._schema = schema
        self._encoder = NodeEncoder(schema, diagnostics=diagnostics, reserved=reserved)

    @property
    def encoder(self) -> NodeEncoder:
        return self._encoder

    def property_units(self) -> Iterator[PropertyUnit]:
        for prop in self._schema.node_keys:
            yield PropertyUnit(prop.name, "node", self._encoder.property_accessor(prop), prop.comment)
        for prop in self._schema.edge_keys:
            yield PropertyUnit(prop.name, "edge", self._encoder.property_accessor(prop), prop.comment)

    def edge_type_units(self) -> Iterator[EdgeTypeUnit]:
        for edge in self._schema.edge_types:
            yield EdgeTypeUnit(
                name=edge.name,
                class_name=edge.class_name,
                proto_id=edge.proto_id,
                properties=self._encoder.property_accessors(edge),
                comment=edge.comment,
            )

    def node_base_type_units(self) -> Iterator[NodeBaseTypeUnit]:
        hierarchy = self._encoder.hierarchy
        for base in self._schema.node_base_traits:
            yield NodeBaseTypeUnit(
                name=base.name,
                class_name=base.class_name,
                extends=base.extends,
                ancestors=tuple(a.name for a in hierarchy.ancestors(base)),
                properties=self._encoder.property_accessors(base),
                comment=base.comment,
            )

    def node_type_units(self) -> Iterator[NodeTypeUnit]:
        hierarchy = self._encoder.hierarchy
        for node in self._schema.node_types:
            yield NodeTypeUnit(
                name=node.name,
                class_name=node.class_name,
                proto_id=node.proto_id,
                extends=node.extends,
                ancestors=tuple(a.name for a in hierarchy.ancestors(node)),
                properties=self._encoder.property_accessors(node),
                comment=node.comment,
            )

    def node_relations_units(self) -> Iterator[NodeRelationsUnit]:
        for node in self._schema.node_types:
            yield NodeRelationsUnit(
                name=node.name,
                class_name=node.class_name,
                neighbors=self._encoder.neighbor_infos(node),
                contained_nodes=self._encoder.contained_node_accessors(node),
            )

    def constants_units(self) -> Iterator[ConstantsUnit]:
        for category in self._schema.constant_categories:
            yield ConstantsUnit(
                name=category,
                class_name=category_class_name(category),
                constants=self._schema.constants_from_element(category),
            )

    def units(self) -> List[CodegenUnit]:
        """Every codegen unit, in dependency order."""
        units: List[CodegenUnit] = []
        units.extend(self.property_units())
        units.extend(self.edge_type_units())
        units.extend(self.node_base_type_units())
        units.extend(self.node_type_units())
        units.extend(self.node_relations_units())
        units.extend(self.constants_units())
        return units

    def run(self, renderer: Renderer) -> List[str]:
        """Render every unit, in dependency order.

        Returns:
            One rendered fragment per unit
        """
        units = self.units()
        fragments = [renderer.render(unit) for unit in units]
        counts: Dict[str, int] = {}
        for unit in units:
            counts[unit.kind] = counts.get(unit.kind, 0) + 1
        summary = ", ".join(f"{kind}={n}" for kind, n in counts.items())
        logger.info(f"Generated {len(units)} units with {type(renderer).__name__} ({summary})")
        return fragments

    def fingerprint(self) -> str:
        """SHA-256 over the JSON form of every unit, 'sha256:<hex>'."""
        canonical = json.dumps(
            [unit.to_dict() for unit in self.units()],
            sort_keys=True,
            separators=(",", ":"),
        )
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"
