"""
Unit tests for schema source loading.

Tests cover:
- Loading from dicts, YAML and JSON text, and files
- camelCase and snake_case keys
- Malformed sources, including missing names and non-integer ids
- Soft handling of unknown cardinality and value type names
- Merging split sources
"""

import json
import math

import pytest
import yaml

from graphgen.diagnostics import CollectingDiagnostics
from graphgen.schema import (
    Cardinality,
    ErrorKind,
    SchemaValidationError,
    ValueType,
    load,
    load_file,
    load_json,
    load_yaml,
    merge_sources,
)


class TestLoad:
    """Tests for load()."""

    def test_load_sample(self, sample_source):
        """The sample source loads with every section."""
        schema = load(sample_source)

        assert len(schema.node_keys) == 6
        assert len(schema.edge_keys) == 2
        assert len(schema.node_types) == 7
        method = schema.node_type_by_name("METHOD")
        assert method.extends == ("DECLARATION", "AST_NODE")
        assert method.out_edges[0].in_nodes[0].cardinality == "1:1"
        assert method.contained_nodes[0].cardinality == Cardinality.ONE
        assert schema.node_property_by_name("OLD_NAME").deprecated is True

    def test_snake_case_keys(self):
        """snake_case spellings of every key are accepted."""
        schema = load({
            "node_keys": [{"id": 1, "name": "NAME", "value_type": "string", "cardinality": "one", "default": ""}],
            "edge_types": [{"id": 2, "name": "AST"}],
            "node_base_traits": [{"name": "AST_NODE", "has_keys": ["NAME"]}],
            "node_types": [
                {
                    "id": 3,
                    "name": "FILE",
                    "extends": ["AST_NODE"],
                    "out_edges": [{"edge_name": "AST", "in_nodes": ["FILE"]}],
                    "contained_nodes": [{"node_type": "AST_NODE", "local_name": "root"}],
                }
            ],
        })

        file_type = schema.node_type_by_name("FILE")
        assert file_type.extends == ("AST_NODE",)
        assert file_type.out_edges[0].in_nodes[0].name == "FILE"
        assert file_type.contained_nodes[0].cardinality == Cardinality.ZERO_OR_ONE
        assert schema.node_base_trait_by_name("AST_NODE").keys == ("NAME",)

    def test_empty_source(self):
        """An empty source is a valid, empty schema."""
        schema = load({})
        assert schema.node_types == ()
        assert schema.constant_categories == ()

    def test_non_mapping_source_raises(self):
        """The source must be a mapping."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load(["not", "a", "mapping"])

        assert exc_info.value.has(ErrorKind.MALFORMED_SOURCE)

    def test_non_mapping_entries_reported_together(self):
        """Wrongly shaped entries are all reported."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load({"nodeKeys": ["NAME"], "nodeTypes": [42]})

        paths = [issue.path for issue in exc_info.value.issues]
        assert paths == ["nodeKeys[0]", "nodeTypes[0]"]

    def test_nan_default(self):
        """The string NaN is a NaN default for Float and Double."""
        schema = load({
            "nodeKeys": [{"id": 1, "name": "WEIGHT", "valueType": "double", "default": "NaN"}],
        })

        assert math.isnan(schema.node_property_by_name("WEIGHT").default)

    def test_unknown_value_type(self):
        """Unknown value type names load as Unknown."""
        schema = load({"nodeKeys": [{"id": 1, "name": "BLOB", "valueType": "bytes"}]})

        assert schema.node_property_by_name("BLOB").value_type == ValueType.UNKNOWN

    def test_unknown_value_type_reported_to_sink(self):
        """Unknown value type names are reported and kept in the schema warnings."""
        sink = CollectingDiagnostics()

        schema = load({"nodeKeys": [{"id": 1, "name": "BLOB", "valueType": "Strnig"}]}, diagnostics=sink)

        [diagnostic] = sink.diagnostics
        assert diagnostic.kind is None
        assert diagnostic.path == "NodeProperty:BLOB"
        assert "using Unknown" in diagnostic.message
        assert schema.warnings == (diagnostic,)

    def test_source_warnings_precede_build_warnings(self):
        """Warnings from the source come before endpoint warnings in the schema."""
        schema = load({
            "nodeKeys": [{"id": 1, "name": "TAGS", "valueType": "string", "cardinality": "many"}],
            "edgeTypes": [{"id": 1, "name": "AST"}],
            "nodeTypes": [{
                "id": 1,
                "name": "FILE",
                "outEdges": [{"edgeName": "AST", "inNodes": [{"name": "FILE", "cardinality": "x:y"}]}],
            }],
        }, diagnostics=CollectingDiagnostics())

        assert [w.path for w in schema.warnings] == ["NodeProperty:TAGS", "NodeType:FILE.outEdges[0]"]

    def test_list_default_is_tuple(self):
        """A list default is stored as a tuple."""
        schema = load({
            "nodeKeys": [{"id": 1, "name": "SIZES", "valueType": "int", "cardinality": "list", "default": [1, 2]}],
        })

        assert schema.node_property_by_name("SIZES").default == (1, 2)

    def test_unknown_property_cardinality_is_soft(self):
        """Unknown cardinality names are reported and default to List."""
        sink = CollectingDiagnostics()

        schema = load(
            {"nodeKeys": [{"id": 1, "name": "TAGS", "valueType": "string", "cardinality": "many"}]},
            diagnostics=sink,
        )

        assert schema.node_property_by_name("TAGS").cardinality == Cardinality.LIST
        [diagnostic] = sink.of_kind(ErrorKind.INVALID_CARDINALITY)
        assert diagnostic.path == "NodeProperty:TAGS"

    def test_constant_value_defaults_to_name(self):
        """Constants without a value use their name."""
        schema = load({"constants": {"evaluationStrategies": [{"name": "BY_VALUE"}]}})

        [constant] = schema.constants_from_element("evaluationStrategies")
        assert constant.value == "BY_VALUE"

    def test_constants_must_be_mapping(self):
        with pytest.raises(SchemaValidationError, match="category"):
            load({"constants": ["BY_VALUE"]})

    def test_malformed_constant_entry(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            load({"constants": {"dispatchTypes": ["STATIC_DISPATCH"]}})

        [issue] = exc_info.value.issues
        assert issue.path == "constants.dispatchTypes[0]"


class TestIdentityFields:
    """Tests for name and id validation of source entries."""

    def test_string_id_rejected(self):
        """A quoted id is malformed, not silently excluded from the duplicate check."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load({"nodeTypes": [{"id": 1, "name": "FILE"}, {"id": "1", "name": "METHOD"}]})

        [issue] = exc_info.value.issues
        assert issue.kind == ErrorKind.MALFORMED_SOURCE
        assert issue.path == "nodeTypes[1]"
        assert "integer" in issue.message

    def test_bool_id_rejected(self):
        """true is not an id."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load({"edgeTypes": [{"id": True, "name": "AST"}]})

        [issue] = exc_info.value.issues
        assert issue.kind == ErrorKind.MALFORMED_SOURCE
        assert issue.path == "edgeTypes[0]"

    def test_missing_name_rejected(self):
        """An entry without a name is reported by its position."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load({"nodeTypes": [{"id": 1}]})

        [issue] = exc_info.value.issues
        assert issue.kind == ErrorKind.MALFORMED_SOURCE
        assert issue.path == "nodeTypes[0]"
        assert "name" in issue.message

    def test_empty_names_reported_together(self):
        """Empty names in every section are all reported."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load({
                "nodeKeys": [{"id": 1, "name": "", "valueType": "string"}],
                "nodeBaseTraits": [{"name": ""}],
                "constants": {"dispatchTypes": [{"value": "STATIC"}]},
            })

        paths = [issue.path for issue in exc_info.value.issues]
        assert paths == ["nodeKeys[0]", "nodeBaseTraits[0]", "constants.dispatchTypes[0]"]

    def test_constant_id_optional_but_integer(self):
        """Constants may omit an id, but a present id must be an integer."""
        schema = load({"constants": {"dispatchTypes": [{"name": "STATIC_DISPATCH"}]}})
        assert schema.constants_from_element("dispatchTypes")[0].proto_id is None

        with pytest.raises(SchemaValidationError) as exc_info:
            load({"constants": {"dispatchTypes": [{"name": "STATIC_DISPATCH", "id": 1.5}]}})
        assert exc_info.value.has(ErrorKind.MALFORMED_SOURCE)


class TestTextAndFiles:
    """Tests for YAML, JSON and file loading."""

    def test_load_yaml(self, sample_source):
        schema = load_yaml(yaml.safe_dump(sample_source))
        assert schema.node_type_by_name("CALL").proto_id == 15

    def test_load_json(self, sample_source):
        schema = load_json(json.dumps(sample_source))
        assert schema.fingerprint == load(sample_source).fingerprint

    def test_load_empty_yaml(self):
        """An empty YAML document is an empty schema."""
        assert load_yaml("").node_types == ()

    def test_load_file_by_suffix(self, sample_source, tmp_path):
        """load_file picks the parser from the file suffix."""
        yaml_path = tmp_path / "schema.yaml"
        yaml_path.write_text(yaml.safe_dump(sample_source))
        json_path = tmp_path / "schema.json"
        json_path.write_text(json.dumps(sample_source))

        assert load_file(yaml_path).fingerprint == load_file(str(json_path)).fingerprint

    def test_load_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_file(tmp_path / "missing.yaml")


class TestMergeSources:
    """Tests for merge_sources()."""

    def test_merge_appends_sections(self, sample_source):
        """Later sources append to earlier ones."""
        extension = {
            "nodeTypes": [{"id": 100, "name": "COMMENT", "is": ["AST_NODE"]}],
            "constants": {"operators": [{"name": "subtraction"}], "languages": [{"name": "C"}]},
        }

        schema = load(merge_sources([sample_source, extension]))

        assert schema.node_types[-1].name == "COMMENT"
        assert [c.name for c in schema.constants_from_element("operators")] == ["addition", "subtraction"]
        assert schema.constant_categories == ("dispatchTypes", "operators", "languages")

    def test_merge_keeps_inputs_unchanged(self, sample_source):
        before = json.dumps(sample_source, sort_keys=True)
        merge_sources([sample_source, {"nodeTypes": [{"id": 100, "name": "COMMENT"}]}])
        assert json.dumps(sample_source, sort_keys=True) == before
