"""
Shared fixtures for graphgen unit tests.

The sample schema is a small code-property-graph model:

    AST_NODE <- EXPRESSION <- BLOCK, IDENTIFIER, LITERAL, CALL
    AST_NODE, DECLARATION <- METHOD, LOCAL
    FILE (no base types)

    FILE -AST-> METHOD -AST(1:1)-> BLOCK -AST-> IDENTIFIER, LITERAL
    IDENTIFIER -REF(n:1)-> LOCAL
"""

import copy

import pytest

from graphgen.schema import Schema, load

SAMPLE_SOURCE = {
    "nodeKeys": [
        {"id": 5, "name": "NAME", "valueType": "String", "cardinality": "one", "default": "<empty>"},
        {"id": 4, "name": "ORDER", "valueType": "Int", "cardinality": "one", "default": -1},
        {"id": 21, "name": "CODE", "valueType": "String", "cardinality": "one", "default": "<empty>"},
        {"id": 2, "name": "LINE_NUMBER", "valueType": "Int", "cardinality": "zeroOrOne"},
        {"id": 40, "name": "ALIASES", "valueType": "String", "cardinality": "list"},
        {
            "id": 99,
            "name": "OLD_NAME",
            "valueType": "String",
            "cardinality": "zeroOrOne",
            "deprecated": True,
        },
    ],
    "edgeKeys": [
        {"id": 6, "name": "LOCAL_NAME", "valueType": "String", "cardinality": "zeroOrOne"},
        {"id": 8, "name": "INDEX", "valueType": "Int", "cardinality": "zeroOrOne", "default": -1},
    ],
    "edgeTypes": [
        {"id": 3, "name": "AST", "comment": "Syntax tree edge"},
        {"id": 10, "name": "REF"},
        {"id": 9, "name": "CONTAINS_NODE", "keys": ["LOCAL_NAME", "INDEX"]},
    ],
    "nodeBaseTraits": [
        {"name": "AST_NODE", "hasKeys": ["ORDER"]},
        {"name": "EXPRESSION", "hasKeys": ["CODE"], "extends": ["AST_NODE"]},
        {"name": "DECLARATION", "hasKeys": ["NAME"]},
    ],
    "nodeTypes": [
        {
            "id": 38,
            "name": "FILE",
            "keys": ["NAME"],
            "outEdges": [{"edgeName": "AST", "inNodes": [{"name": "METHOD"}]}],
        },
        {
            "id": 1,
            "name": "METHOD",
            "keys": ["NAME", "LINE_NUMBER"],
            "is": ["DECLARATION", "AST_NODE"],
            "outEdges": [{"edgeName": "AST", "inNodes": [{"name": "BLOCK", "cardinality": "1:1"}]}],
            "containedNodes": [{"nodeType": "BLOCK", "localName": "body", "cardinality": "one"}],
        },
        {
            "id": 31,
            "name": "BLOCK",
            "is": ["EXPRESSION"],
            "outEdges": [
                {"edgeName": "AST", "inNodes": [{"name": "IDENTIFIER"}, {"name": "LITERAL"}]},
            ],
        },
        {
            "id": 27,
            "name": "IDENTIFIER",
            "keys": ["NAME"],
            "is": ["EXPRESSION"],
            "outEdges": [{"edgeName": "REF", "inNodes": [{"name": "LOCAL", "cardinality": "n:1"}]}],
        },
        {"id": 8, "name": "LITERAL", "is": ["EXPRESSION"]},
        {
            "id": 23,
            "name": "LOCAL",
            "keys": ["NAME", "ALIASES", "OLD_NAME"],
            "is": ["DECLARATION", "AST_NODE"],
        },
        {
            "id": 15,
            "name": "CALL",
            "keys": ["NAME"],
            "is": ["EXPRESSION"],
            "containedNodes": [
                {"nodeType": "EXPRESSION", "localName": "arguments", "cardinality": "list"},
                {"nodeType": "ABSTRACT_NODE", "localName": "receiver", "cardinality": "zeroOrOne"},
            ],
        },
    ],
    "constants": {
        "dispatchTypes": [
            {"name": "STATIC_DISPATCH", "id": 1},
            {"name": "DYNAMIC_DISPATCH", "id": 2},
        ],
        "operators": [
            {"name": "addition", "value": "<operator>.addition"},
        ],
    },
}


@pytest.fixture
def sample_source() -> dict:
    """A fresh, mutable copy of the sample schema source."""
    return copy.deepcopy(SAMPLE_SOURCE)


@pytest.fixture
def schema(sample_source) -> Schema:
    """The sample schema, loaded and validated."""
    return load(sample_source)
