"""
Unit tests for the type hierarchy resolver.

Tests cover:
- Complete type hierarchies
- Lowest common ancestor with name tie-breaks
- Shared-root fallback and its reference pick
- ABSTRACT_NODE fallback
- Independence from input order
"""

import itertools

import pytest

from graphgen.hierarchy import TypeHierarchy
from graphgen.schema import ABSTRACT_NODE, EdgeType, InNode, NodeBaseType, NodeType, OutEdge, SchemaBuilder


def _ab_schema():
    """A and B both extend R; X is unrelated."""
    builder = SchemaBuilder()
    builder.add_edge_type(EdgeType("E", proto_id=1))
    builder.add_node_base_type(NodeBaseType("R"))
    builder.add_node_type(NodeType("A", proto_id=1, extends=("R",)))
    builder.add_node_type(NodeType("B", proto_id=2, extends=("R",)))
    builder.add_node_type(NodeType("X", proto_id=3))
    builder.add_node_type(NodeType(
        "SRC", proto_id=4, out_edges=(OutEdge("E", (InNode("A"), InNode("B"))),)
    ))
    return builder.build()


class TestCompleteTypeHierarchy:
    """Tests for ancestor chains."""

    def test_complete_type_hierarchy(self, schema):
        """The type itself comes first, then its ancestors in chain order."""
        hierarchy = TypeHierarchy(schema)
        chain = [t.name for t in hierarchy.complete_type_hierarchy("IDENTIFIER")]
        assert chain == ["IDENTIFIER", "EXPRESSION", "AST_NODE"]

    def test_accepts_records_and_names(self, schema):
        hierarchy = TypeHierarchy(schema)
        method = schema.node_type_by_name("METHOD")
        assert hierarchy.ancestors(method) == hierarchy.ancestors("METHOD")

    def test_unknown_type_raises(self, schema):
        with pytest.raises(KeyError, match="NOPE"):
            TypeHierarchy(schema).resolve("NOPE")

    def test_is_subtype(self, schema):
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.is_subtype("IDENTIFIER", "AST_NODE")
        assert hierarchy.is_subtype("IDENTIFIER", "IDENTIFIER")
        assert hierarchy.is_subtype("FILE", "ABSTRACT_NODE")
        assert not hierarchy.is_subtype("FILE", "AST_NODE")


class TestLowestCommonAncestor:
    """Tests for phase 1."""

    def test_singleton_returns_itself(self, schema):
        """For {T} the resolver returns T."""
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.common_root(["LITERAL"]).name == "LITERAL"
        assert hierarchy.common_root(["AST_NODE"]).name == "AST_NODE"

    def test_single_shared_type(self, schema):
        """Types sharing exactly one ancestor resolve to it."""
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.lowest_common_ancestor(["IDENTIFIER", "LITERAL"]).name == "EXPRESSION"

    def test_input_that_is_an_ancestor(self, schema):
        """An input that is the ancestor of all others is the answer."""
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.common_root(["IDENTIFIER", "EXPRESSION"]).name == "EXPRESSION"

    def test_tie_broken_by_name(self, schema):
        """Incomparable lowest candidates resolve to the first by name."""
        hierarchy = TypeHierarchy(schema)
        # METHOD and LOCAL share DECLARATION and AST_NODE, neither extends the other
        assert hierarchy.lowest_common_ancestor(["METHOD", "LOCAL"]).name == "AST_NODE"

    def test_lowest_wins_over_higher(self, schema):
        """A candidate that is an ancestor of another candidate is dropped."""
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.lowest_common_ancestor(["BLOCK", "CALL"]).name == "EXPRESSION"
        assert hierarchy.lowest_common_ancestor(["BLOCK", "METHOD"]).name == "AST_NODE"

    def test_no_common_ancestor(self, schema):
        assert TypeHierarchy(schema).lowest_common_ancestor(["FILE", "METHOD"]) is None

    def test_empty_input(self, schema):
        assert TypeHierarchy(schema).lowest_common_ancestor([]) is None


class TestSharedRoot:
    """Tests for phase 2."""

    def test_reference_is_first_by_class_name(self, schema):
        """The reference type's chain order decides the answer."""
        hierarchy = TypeHierarchy(schema)
        # Local < Method by class name; LOCAL's chain is LOCAL, DECLARATION, AST_NODE
        assert hierarchy.find_shared_root(["METHOD", "LOCAL"]).name == "DECLARATION"

    def test_singleton_and_empty(self, schema):
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.find_shared_root(["FILE"]).name == "FILE"
        assert hierarchy.find_shared_root([]) is None

    def test_disjoint(self, schema):
        assert TypeHierarchy(schema).find_shared_root(["FILE", "LITERAL"]) is None


class TestCommonRoot:
    """Tests for the combined resolution and fallback."""

    def test_siblings_resolve_to_parent(self):
        """A and B extending R resolve to R."""
        assert TypeHierarchy(_ab_schema()).common_root(["A", "B"]).name == "R"

    def test_unrelated_types_fall_back_to_abstract_node(self):
        """Disjoint hierarchies fall back to the universal root."""
        hierarchy = TypeHierarchy(_ab_schema())
        assert hierarchy.derive_common_root_type(["A", "X"]) is None
        assert hierarchy.common_root(["A", "X"]) is ABSTRACT_NODE

    def test_empty_input_raises(self, schema):
        """An empty set is a precondition violation."""
        hierarchy = TypeHierarchy(schema)
        with pytest.raises(ValueError):
            hierarchy.derive_common_root_type([])
        with pytest.raises(ValueError):
            hierarchy.common_root([])

    def test_duplicates_ignored(self, schema):
        hierarchy = TypeHierarchy(schema)
        assert hierarchy.common_root(["LITERAL", "LITERAL"]).name == "LITERAL"

    @pytest.mark.parametrize("names", [
        ["IDENTIFIER", "LITERAL", "CALL"],
        ["METHOD", "LOCAL"],
        ["METHOD", "BLOCK", "LOCAL"],
        ["FILE", "METHOD", "LITERAL"],
    ])
    def test_independent_of_input_order(self, schema, names):
        """Every permutation of the input gives the same answer."""
        hierarchy = TypeHierarchy(schema)
        results = {hierarchy.common_root(list(p)).name for p in itertools.permutations(names)}
        assert len(results) == 1

    def test_independent_of_declaration_order(self):
        """Resolution depends on names, not on declaration order."""
        def build(order):
            builder = SchemaBuilder()
            builder.add_node_base_type(NodeBaseType("P"))
            builder.add_node_base_type(NodeBaseType("Q"))
            for name in order:
                builder.add_node_type(NodeType(name, proto_id=ord(name), extends=("Q", "P") if name == "M" else ("P", "Q")))
            return builder.build()

        first = TypeHierarchy(build(["M", "N"])).common_root(["M", "N"]).name
        second = TypeHierarchy(build(["N", "M"])).common_root(["N", "M"]).name

        assert first == second == "P"
