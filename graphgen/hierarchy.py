"""
Type hierarchy resolution for graphgen.

Node types and base types form a multiple-inheritance DAG via `extends`.
This module answers two questions over that DAG:
- What is the complete ancestor chain of a type?
- Which single type can statically represent a set of types (the "common
  root"), e.g. for an edge endpoint that accepts several node types?

Common root resolution is two-phase, first match wins:
    1. Lowest common ancestor: intersect {self} + ancestors of every input,
       keep the candidates that are not a proper ancestor of another
       candidate, pick the first by name.
    2. Shared root: take the input whose class name sorts first, walk its
       complete hierarchy in chain order and return the first type that is
       also in the complete hierarchy of every other input.

When neither phase finds a type, callers fall back to ABSTRACT_NODE.

Invariants:
    - Results depend only on declared names, never on input order
    - The resolver holds no mutable state and is safe to share across threads
    - An empty input set is a programming error (ValueError)

Example:
    >>> hierarchy = TypeHierarchy(schema)
    >>> hierarchy.common_root(["IDENTIFIER", "LITERAL"]).name
    'EXPRESSION'
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple, Union

from .schema.model import Schema
from .schema.types import ABSTRACT_NODE, AbstractNodeType

logger = logging.getLogger(__name__)

TypeRef = Union[AbstractNodeType, str]


class TypeHierarchy:
    """Read-only resolver over the extends DAG of a Schema.

    Every query accepts either entity records or type names. Unknown names
    raise KeyError; the schema guarantees every declared reference resolves.
    """

    def __init__(self, schema: Schema) -> None:
        self._schema = schema

    @property
    def schema(self) -> Schema:
        return self._schema

    def resolve(self, node_type: TypeRef) -> AbstractNodeType:
        """Look up a node type, base type or ABSTRACT_NODE by name."""
        name = node_type if isinstance(node_type, str) else node_type.name
        resolved = self._schema.abstract_node_type_by_name(name)
        if resolved is None:
            raise KeyError(f"Unknown node type '{name}'")
        return resolved

    def ancestors(self, node_type: TypeRef) -> Tuple[AbstractNodeType, ...]:
        """Transitive ancestors of a type (self excluded), in chain order."""
        return self._schema.extendz_recursively(self.resolve(node_type))

    def complete_type_hierarchy(self, node_type: TypeRef) -> Tuple[AbstractNodeType, ...]:
        """The type itself followed by its ancestors."""
        resolved = self.resolve(node_type)
        return (resolved,) + self.ancestors(resolved)

    def is_subtype(self, node_type: TypeRef, ancestor: TypeRef) -> bool:
        """Whether ancestor is node_type itself, one of its ancestors, or ABSTRACT_NODE."""
        ancestor_name = self.resolve(ancestor).name
        if ancestor_name == ABSTRACT_NODE.name:
            return True
        return any(t.name == ancestor_name for t in self.complete_type_hierarchy(node_type))

    def _unique(self, node_types: Iterable[TypeRef]) -> Dict[str, AbstractNodeType]:
        """Resolve and deduplicate by name, sorted by name."""
        resolved = {t.name: t for t in (self.resolve(n) for n in node_types)}
        return {name: resolved[name] for name in sorted(resolved)}

    def lowest_common_ancestor(self, node_types: Iterable[TypeRef]) -> Optional[AbstractNodeType]:
        """Phase 1: the lowest common ancestor, ties broken by name.

        Returns None for an empty input or when no common ancestor exists.
        """
        types = self._unique(node_types)
        if not types:
            return None

        common: Optional[set[str]] = None
        for node_type in types.values():
            names = {t.name for t in self.complete_type_hierarchy(node_type)}
            common = names if common is None else common & names
        if not common:
            return None

        # drop every candidate that is a proper ancestor of another candidate
        lowest = set(common)
        for candidate in common:
            lowest -= {a.name for a in self.ancestors(candidate)}
        if not lowest:
            return None
        return self.resolve(sorted(lowest)[0])

    def find_shared_root(self, node_types: Iterable[TypeRef]) -> Optional[AbstractNodeType]:
        """Phase 2: a type in the complete hierarchy of every input.

        The reference type is the input whose class name sorts first (then by
        name); its complete hierarchy is scanned in chain order. A singleton
        returns its only member, an empty input returns None.
        """
        types = list(self._unique(node_types).values())
        if not types:
            return None
        if len(types) == 1:
            return types[0]

        ordered = sorted(types, key=lambda t: (t.class_name, t.name))
        reference, others = ordered[0], ordered[1:]
        other_hierarchies = [
            {t.name for t in self.complete_type_hierarchy(other)} for other in others
        ]
        for candidate in self.complete_type_hierarchy(reference):
            if all(candidate.name in hierarchy for hierarchy in other_hierarchies):
                return candidate
        return None

    def derive_common_root_type(self, node_types: Iterable[TypeRef]) -> Optional[AbstractNodeType]:
        """Lowest common ancestor, else shared root, else None.

        Raises:
            ValueError: If node_types is empty
        """
        types = self._unique(node_types)
        if not types:
            raise ValueError("derive_common_root_type() requires at least one node type")
        result = self.lowest_common_ancestor(types.values())
        if result is None:
            result = self.find_shared_root(types.values())
        return result

    def common_root(self, node_types: Iterable[TypeRef]) -> AbstractNodeType:
        """Common root type, falling back to ABSTRACT_NODE when none exists.

        Raises:
            ValueError: If node_types is empty
        """
        types = list(node_types)
        result = self.derive_common_root_type(types)
        if result is None:
            names = sorted(self.resolve(t).name for t in types)
            logger.debug(f"No common root for {names}, using {ABSTRACT_NODE.name}")
            return ABSTRACT_NODE
        return result
