"""
Renderers for codegen units.

Rendering is an external concern: the driver hands each resolved unit to a
Renderer and collects the returned text. Two reference renderers are provided:
- JsonRenderer: one sorted-key JSON document per unit
- PythonStubRenderer: Python source text per unit (typed stubs)

The output of a renderer is a pure function of the unit it is given.
"""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Dict, List, Protocol, Sequence

from .driver import (
    CodegenUnit,
    ConstantsUnit,
    EdgeTypeUnit,
    NodeBaseTypeUnit,
    NodeRelationsUnit,
    NodeTypeUnit,
    PropertyUnit,
)
from .encoder import PropertyAccessor
from .naming import camel_case_caps, constant_name


class Renderer(Protocol):
    """Turns codegen units into text."""

    def render(self, unit: CodegenUnit) -> str: ...

    def join(self, fragments: Sequence[str]) -> str: ...


class JsonRenderer:
    """Renders each unit as a JSON document with sorted keys."""

    def __init__(self, indent: int | None = None) -> None:
        self.indent = indent

    def render(self, unit: CodegenUnit) -> str:
        return json.dumps(unit.to_dict(), sort_keys=True, indent=self.indent)

    def join(self, fragments: Sequence[str]) -> str:
        """A JSON array holding every fragment."""
        return "[\n" + ",\n".join(fragments) + "\n]\n"


# =============================================================================
# Python stubs
# =============================================================================

PYTHON_HEADER = [
    '"""',
    "Graph domain classes.",
    "",
    "Auto-generated by graphgen.",
    "Do not edit directly - modify the schema instead.",
    '"""',
    "",
    "from __future__ import annotations",
    "",
    "from dataclasses import dataclass",
    "from typing import Any, Optional, Sequence",
    "",
    "",
    "@dataclass(frozen=True)",
    "class PropertyKey:",
    "    name: str",
    "    value_type: str",
    "    cardinality: str",
    "    proto_id: Optional[int] = None",
    "    default: Any = None",
    "",
    "",
    "class AbstractNode:",
    '    """Root type of every node."""',
    "",
    "",
    "NodeRef = AbstractNode",
    "",
    "",
    "class Node(AbstractNode):",
    '    """A stored node of a concrete type."""',
    "",
    "    LABEL: str",
    "    PROTO_ID: int",
    "",
    "",
    "class Edge:",
    '    """A stored edge."""',
    "",
    "    LABEL: str",
    "    PROTO_ID: int",
]


def _literal(value: Any) -> str:
    """Python literal for a default value."""
    if isinstance(value, float) and math.isnan(value):
        return 'float("nan")'
    if isinstance(value, tuple):
        value = list(value)
    return repr(value)


def _docstring(comment: str, indent: str = "    ") -> List[str]:
    if not comment:
        return []
    escaped = comment.replace('"""', '\\"\\"\\"')
    return [f'{indent}"""{escaped}"""', ""]


def _render_property_key(unit: PropertyUnit) -> List[str]:
    """Generate a PropertyKey constant for a node or edge property."""
    accessor = unit.accessor
    prefix = "NODE_KEY" if unit.scope == "node" else "EDGE_KEY"
    args = [f'"{unit.name}"', f'"{accessor.value_type.value}"', f'"{accessor.cardinality.value}"']
    if accessor.proto_id is not None:
        args.append(f"proto_id={accessor.proto_id}")
    if accessor.default is not None:
        args.append(f"default={_literal(accessor.default)}")
    lines = [f"{prefix}_{constant_name(unit.name)} = PropertyKey({', '.join(args)})"]
    if unit.comment:
        lines.insert(0, f"# {unit.comment}")
    return lines


def _render_property_accessors(properties: Sequence[PropertyAccessor]) -> List[str]:
    lines: List[str] = []
    for p in properties:
        lines.append("    @property")
        lines.append(f"    def {p.accessor}(self) -> {p.semantic_type}: ...")
        if p.deprecated:
            lines[-1] += "  # deprecated"
        lines.append("")
    return lines


def _render_edge_type(unit: EdgeTypeUnit) -> List[str]:
    """Generate an Edge subclass."""
    lines = [f"class {unit.class_name}(Edge):"]
    lines.extend(_docstring(unit.comment))
    lines.append(f'    LABEL = "{unit.name}"')
    lines.append(f"    PROTO_ID = {unit.proto_id}")
    if unit.properties:
        lines.append("")
        lines.extend(_render_property_accessors(unit.properties))
    return _strip_trailing_blank(lines)


def _render_node_base_type(unit: NodeBaseTypeUnit) -> List[str]:
    """Generate a trait-like base class."""
    bases = ", ".join(_class_names(unit.extends)) or "AbstractNode"
    lines = [f"class {unit.class_name}({bases}):"]
    lines.extend(_docstring(unit.comment))
    if unit.properties:
        lines.extend(_render_property_accessors(unit.properties))
    else:
        lines.append("    pass")
    return _strip_trailing_blank(lines)


def _render_node_type(unit: NodeTypeUnit) -> List[str]:
    """Generate a concrete Node subclass."""
    bases = ", ".join(["Node", *_class_names(unit.extends)])
    lines = [f"class {unit.class_name}({bases}):"]
    lines.extend(_docstring(unit.comment))
    lines.append(f'    LABEL = "{unit.name}"')
    lines.append(f"    PROTO_ID = {unit.proto_id}")
    if unit.properties:
        lines.append("")
        lines.extend(_render_property_accessors(unit.properties))
    return _strip_trailing_blank(lines)


def _render_node_relations(unit: NodeRelationsUnit) -> List[str]:
    """Generate neighbor and contained-node accessors for a node type."""
    lines = [f"class {unit.class_name}Relations:"]
    lines.append(f'    """Adjacency of {unit.name}."""')
    lines.append("")
    for info in unit.neighbors:
        lines.append(f"    # {info.edge} {info.direction.value.lower()}, offset {info.offset}")
        lines.append(f"    def {info.accessor}(self) -> {info.semantic_type}: ...")
        for node in info.nodes:
            lines.append(f"    def {node.accessor}(self) -> {node.semantic_type}: ...")
        lines.append("")
    for contained in unit.contained_nodes:
        order = f", ordered by {contained.order_key}" if contained.ordered else ""
        lines.append(
            f"    # {contained.edge}[{contained.selector_key}={contained.local_name!r}]{order}"
        )
        lines.append("    @property")
        lines.append(f"    def {contained.accessor}(self) -> {contained.semantic_type}: ...")
        lines.append("")
    if not unit.neighbors and not unit.contained_nodes:
        lines.append("    pass")
    return _strip_trailing_blank(lines)


def _render_constants(unit: ConstantsUnit) -> List[str]:
    """Generate a constants namespace class."""
    lines = [f"class {unit.class_name}:"]
    for constant in unit.constants:
        if constant.comment:
            lines.append(f"    # {constant.comment}")
        lines.append(f"    {constant_name(constant.name)} = {constant.value!r}")
    if not unit.constants:
        lines.append("    pass")
    return lines


def _class_names(names: Sequence[str]) -> List[str]:
    return [camel_case_caps(n) for n in names]


def _strip_trailing_blank(lines: List[str]) -> List[str]:
    while lines and lines[-1] == "":
        lines.pop()
    return lines


_PYTHON_RENDERERS: Dict[type, Callable[[Any], List[str]]] = {
    PropertyUnit: _render_property_key,
    EdgeTypeUnit: _render_edge_type,
    NodeBaseTypeUnit: _render_node_base_type,
    NodeTypeUnit: _render_node_type,
    NodeRelationsUnit: _render_node_relations,
    ConstantsUnit: _render_constants,
}


class PythonStubRenderer:
    """Renders units as Python class and constant definitions."""

    def render(self, unit: CodegenUnit) -> str:
        try:
            render = _PYTHON_RENDERERS[type(unit)]
        except KeyError:
            raise TypeError(f"No Python renderer for {type(unit).__name__}") from None
        return "\n".join(render(unit))

    def join(self, fragments: Sequence[str]) -> str:
        """A complete module: header followed by every fragment."""
        parts = ["\n".join(PYTHON_HEADER), *fragments]
        return "\n\n\n".join(parts) + "\n"
