"""Tests for validating instances against loaded schemas."""

import os
import sys
import threading
import unittest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from schemacheck.loader import load_schema
from schemacheck.registry import ReferenceRegistry
from schemacheck.report import ValidationError, render, render_all
from schemacheck.validator import Validator, check, is_valid, validate


def messages(schema_json, instance, registry=None):
    """Renders every top-level violation of an instance."""
    return [render(v) for v in validate(load_schema(schema_json, registry), instance)]


class TestTypeChecks(unittest.TestCase):
    """Test type mismatch messages."""

    def test_scalar_mismatches(self):
        self.assertEqual(messages({"type": "string"}, 3), ["#: expected type: String, found: Integer"])
        self.assertEqual(messages({"type": "number"}, "3"), ["#: expected type: Number, found: String"])
        self.assertEqual(messages({"type": "boolean"}, 0), ["#: expected type: Boolean, found: Integer"])
        self.assertEqual(messages({"type": "null"}, False), ["#: expected type: Null, found: Boolean"])
        self.assertEqual(messages({"type": "object"}, [1]), ["#: expected type: Object, found: JSONArray"])
        self.assertEqual(messages({"type": "array"}, {}), ["#: expected type: JSONArray, found: JSONObject"])

    def test_integer(self):
        self.assertEqual(messages({"type": "integer"}, 5), [])
        self.assertEqual(messages({"type": "integer"}, 5.0), [])
        self.assertEqual(messages({"type": "integer"}, 5.5), ["#: expected type: Integer, found: Number"])
        self.assertEqual(messages({"type": "integer"}, "5"), ["#: expected type: Integer, found: String"])

    def test_booleans_are_not_numbers(self):
        self.assertEqual(messages({"type": "number"}, True), ["#: expected type: Number, found: Boolean"])

    def test_integers_are_numbers(self):
        self.assertEqual(messages({"type": "number"}, 7), [])

    def test_type_list(self):
        schema = {"type": ["string", "null"], "minLength": 2}
        self.assertEqual(messages(schema, None), [])
        self.assertEqual(messages(schema, "ab"), [])
        self.assertEqual(messages(schema, "a"), ["#: expected minLength: 2, actual: 1"])
        self.assertEqual(messages(schema, 3), ["#: expected type: one of [String, Null], found: Integer"])

    def test_type_mismatch_stops_checks_of_the_node(self):
        schema = {"type": "string", "enum": ["a"]}
        self.assertEqual(messages(schema, 1), ["#: expected type: String, found: Integer"])

    def test_untyped_keywords_ignore_other_types(self):
        self.assertEqual(messages({"minimum": 5}, "abc"), [])
        self.assertEqual(messages({"minLength": 5}, 1), [])
        self.assertEqual(messages({"required": ["a"]}, [1]), [])
        self.assertEqual(messages({"minItems": 2}, {"a": 1}), [])


class TestObjects(unittest.TestCase):
    """Test object validation."""

    def test_required_in_declared_order(self):
        schema = {"type": "object", "required": ["productId", "productName", "price"]}
        self.assertEqual(messages(schema, {"productName": "x"}), [
            "#: required key [productId] not found",
            "#: required key [price] not found",
        ])

    def test_property_paths(self):
        schema = {
            "type": "object",
            "properties": {
                "dimensions": {
                    "type": "object",
                    "properties": {"height": {"type": "number"}}
                }
            }
        }
        self.assertEqual(messages(schema, {"dimensions": {"height": "tall"}}),
                         ["#/dimensions/height: expected type: Number, found: String"])

    def test_properties_checked_in_declaration_order(self):
        schema = {"properties": {"b": {"type": "string"}, "a": {"type": "string"}}}
        self.assertEqual(messages(schema, {"a": 1, "b": 2}), [
            "#/b: expected type: String, found: Integer",
            "#/a: expected type: String, found: Integer",
        ])

    def test_required_before_properties(self):
        schema = {"type": "object", "required": ["x"], "properties": {"y": {"type": "string"}}}
        self.assertEqual(messages(schema, {"y": 1}), [
            "#: required key [x] not found",
            "#/y: expected type: String, found: Integer",
        ])

    def test_unknown_properties_are_accepted(self):
        self.assertEqual(messages({"type": "object", "properties": {"a": {}}}, {"b": 1}), [])

    def test_additional_properties_false(self):
        schema = {"type": "object", "properties": {"a": {}}, "additionalProperties": False}
        self.assertEqual(messages(schema, {"a": 1, "b": 2, "c": 3}), [
            "#: extraneous key [b] is not permitted",
            "#: extraneous key [c] is not permitted",
        ])

    def test_additional_properties_schema(self):
        schema = {"type": "object", "additionalProperties": {"type": "integer"}}
        self.assertEqual(messages(schema, {"a": 1, "b": "2"}), ["#/b: expected type: Integer, found: String"])

    def test_property_counts(self):
        self.assertEqual(messages({"minProperties": 2}, {"a": 1}), ["#: minimum size: [2], found: [1]"])
        self.assertEqual(messages({"maxProperties": 1}, {"a": 1, "b": 2}), ["#: maximum size: [1], found: [2]"])

    def test_pointer_escaping(self):
        schema = {"properties": {"a/b": {"type": "string"}, "c~d": {"type": "string"}}}
        self.assertEqual(messages(schema, {"a/b": 1, "c~d": 2}), [
            "#/a~1b: expected type: String, found: Integer",
            "#/c~0d: expected type: String, found: Integer",
        ])


class TestArrays(unittest.TestCase):
    """Test array validation."""

    def test_min_items(self):
        schema = {"type": "array", "items": {"type": "string"}, "minItems": 1, "uniqueItems": True}
        self.assertEqual(messages(schema, []), ["#: expected minimum item count: 1, found: 0"])

    def test_max_items(self):
        self.assertEqual(messages({"maxItems": 1}, [1, 2]), ["#: expected maximum item count: 1, found: 2"])

    def test_unique_items_reported_once(self):
        schema = {"type": "array", "uniqueItems": True}
        self.assertEqual(messages(schema, ["a", "b", "a", "b", "a"]), ["#: array items are not unique"])

    def test_unique_items_uses_json_equality(self):
        schema = {"uniqueItems": True}
        self.assertEqual(messages(schema, [1, 1.0]), ["#: array items are not unique"])
        self.assertEqual(messages(schema, [{"a": 1, "b": 2}, {"b": 2, "a": 1}]), ["#: array items are not unique"])
        self.assertEqual(messages(schema, [1, True]), [])
        self.assertEqual(messages(schema, [0, False, None, "0", [0], {"0": 0}]), [])

    def test_element_paths(self):
        schema = {"type": "array", "items": {"type": "string"}}
        self.assertEqual(messages(schema, ["a", 1, "b", None]), [
            "#/1: expected type: String, found: Integer",
            "#/3: expected type: String, found: Null",
        ])

    def test_cardinality_before_elements(self):
        schema = {"type": "array", "items": {"type": "string"}, "maxItems": 1}
        self.assertEqual(messages(schema, [1, 2]), [
            "#: expected maximum item count: 1, found: 2",
            "#/0: expected type: String, found: Integer",
            "#/1: expected type: String, found: Integer",
        ])


class TestScalars(unittest.TestCase):
    """Test string and number constraints."""

    def test_exclusive_minimum(self):
        schema = {"type": "number", "minimum": 0, "exclusiveMinimum": True}
        self.assertEqual(messages(schema, 0), ["#: 0 is not greater than 0"])
        self.assertEqual(messages(schema, 0.01), [])

    def test_inclusive_minimum(self):
        schema = {"type": "number", "minimum": 0}
        self.assertEqual(messages(schema, 0), [])
        self.assertEqual(messages(schema, -1), ["#: -1 is not greater than or equal to 0"])

    def test_numeric_exclusive_minimum(self):
        self.assertEqual(messages({"exclusiveMinimum": 1.5}, 1.5), ["#: 1.5 is not greater than 1.5"])

    def test_maximum(self):
        self.assertEqual(messages({"maximum": 10}, 11), ["#: 11 is not less than or equal to 10"])
        self.assertEqual(messages({"maximum": 10, "exclusiveMaximum": True}, 10), ["#: 10 is not less than 10"])
        self.assertEqual(messages({"exclusiveMaximum": 10}, 9.5), [])

    def test_multiple_of(self):
        self.assertEqual(messages({"multipleOf": 0.1}, 0.3), [])
        self.assertEqual(messages({"multipleOf": 3}, 10), ["#: 10 is not a multiple of 3"])

    def test_multiple_of_with_large_quotient(self):
        self.assertEqual(messages({"multipleOf": 0.1}, 10 ** 30), [])
        self.assertEqual(messages({"multipleOf": 1e-308}, 1e308), [])
        self.assertEqual(messages({"multipleOf": 0.3}, 10 ** 30 + 1),
                         ["#: 1000000000000000000000000000001 is not a multiple of 0.3"])
        self.assertEqual(messages({"multipleOf": 7}, 10 ** 60), ["#: " + str(10 ** 60) + " is not a multiple of 7"])

    def test_string_length_counts_code_points(self):
        self.assertEqual(messages({"maxLength": 2}, "日本"), [])
        self.assertEqual(messages({"minLength": 3}, "ab"), ["#: expected minLength: 3, actual: 2"])
        self.assertEqual(messages({"maxLength": 1}, "ab"), ["#: expected maxLength: 1, actual: 2"])

    def test_pattern_is_not_anchored(self):
        self.assertEqual(messages({"pattern": "[0-9]+"}, "abc123"), [])
        self.assertEqual(messages({"pattern": "^[0-9]+$"}, "abc"), ["#: string [abc] does not match pattern ^[0-9]+$"])


class TestCombinations(unittest.TestCase):
    """Test enum, const, not, boolean schemas and combined schemas."""

    def test_enum(self):
        self.assertEqual(messages({"enum": ["red", 1, None]}, "red"), [])
        self.assertEqual(messages({"enum": ["red", 1, None]}, 1.0), [])
        self.assertEqual(messages({"enum": ["red", 1]}, "blue"), ["#: blue is not a valid enum value"])
        self.assertEqual(messages({"enum": [1]}, True), ["#: true is not a valid enum value"])

    def test_const(self):
        self.assertEqual(messages({"const": {"a": [1]}}, {"a": [1]}), [])
        self.assertEqual(messages({"const": "x"}, "y"), ["#: y does not match the const"])

    def test_not(self):
        self.assertEqual(messages({"not": {"type": "string"}}, 1), [])
        self.assertEqual(messages({"not": {"type": "string"}}, "a"),
                         ['#: subject must not be valid against schema {"type":"string"}'])

    def test_boolean_schemas(self):
        self.assertEqual(messages(True, {"anything": 1}), [])
        self.assertEqual(messages(False, 1), ["#: false schema always fails"])
        self.assertEqual(messages({"properties": {"a": False}}, {"a": 1}), ["#/a: false schema always fails"])

    def test_all_of_aggregates(self):
        schema = {"allOf": [{"type": "string"}, {"type": "string", "minLength": 5}, {"maxLength": 1}]}
        self.assertEqual(messages(schema, "abc"), [
            "#: expected minLength: 5, actual: 3",
            "#: expected maxLength: 1, actual: 3",
        ])

    def test_any_of(self):
        schema = {"anyOf": [{"type": "string"}, {"type": "integer"}]}
        self.assertEqual(messages(schema, 1), [])
        violations = validate(load_schema(schema), 1.5)
        self.assertEqual(len(violations), 1)
        self.assertEqual(render(violations[0]), "#: no subschema matched out of the total 2 subschemas")
        self.assertEqual([render(v) for v in violations[0].causes], [
            "#: expected type: String, found: Number",
            "#: expected type: Integer, found: Number",
        ])

    def test_one_of(self):
        schema = {"oneOf": [{"type": "number"}, {"type": "integer"}]}
        self.assertEqual(messages(schema, 1.5), [])
        self.assertEqual(messages(schema, 1), ["#: 2 subschemas matched instead of one"])
        self.assertEqual(messages(schema, "a"), ["#: 0 subschemas matched instead of one"])


class TestReferences(unittest.TestCase):
    """Test validation through $ref."""

    def test_reference_adds_no_path_segment(self):
        schema = {
            "properties": {"price": {"$ref": "#/definitions/price"}},
            "definitions": {"price": {"type": "number", "minimum": 0, "exclusiveMinimum": True}}
        }
        self.assertEqual(messages(schema, {"price": 0}), ["#/price: 0 is not greater than 0"])

    def test_recursive_schema(self):
        schema = {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string"},
                "children": {"type": "array", "items": {"$ref": "#"}}
            }
        }
        tree = {"name": "root", "children": [{"name": "a", "children": [{"name": "b"}, {"children": []}]}]}
        self.assertEqual(messages(schema, tree), ["#/children/0/children/1: required key [name] not found"])

    def test_self_reference_terminates(self):
        self.assertEqual(messages({"$ref": "#"}, 1), [])
        schema = {"allOf": [{"$ref": "#"}, {"type": "string"}]}
        self.assertEqual(set(messages(schema, 1)), {"#: expected type: String, found: Integer"})
        self.assertEqual(messages(schema, "a"), [])

    def test_self_reference_does_not_satisfy_any_of(self):
        schema = {"anyOf": [{"$ref": "#"}, {"type": "string"}]}
        self.assertEqual(messages(schema, "a"), [])
        violations = validate(load_schema(schema), 5)
        self.assertEqual([render(v) for v in violations], ["#: no subschema matched out of the total 2 subschemas"])
        self.assertFalse(any("already being evaluated" in line for line in render_all(violations)))

    def test_self_reference_does_not_count_for_one_of(self):
        schema = {
            "definitions": {"loop": {"$ref": "#/definitions/loop"}},
            "oneOf": [{"$ref": "#/definitions/loop"}, {"type": "integer"}]
        }
        self.assertEqual(messages(schema, 5), [])
        self.assertEqual(messages(schema, "a"), ["#: 0 subschemas matched instead of one"])

    def test_revisit_keeps_violations_of_enclosing_schema(self):
        schema = {
            "$ref": "#/definitions/node",
            "definitions": {"node": {"type": "object", "required": ["x"], "allOf": [{"$ref": "#"}]}}
        }
        self.assertEqual(messages(schema, {}), ["#: required key [x] not found"])
        self.assertEqual(messages(schema, {"x": 1}), [])

    def test_remote_reference(self):
        registry = ReferenceRegistry().register("http://example.com/location.schema.json", {
            "type": "object",
            "required": ["latitude", "longitude"],
            "properties": {"latitude": {"type": "number", "minimum": -90, "maximum": 90}}
        })
        schema = {"properties": {"location": {"$ref": "http://example.com/location.schema.json"}}}
        self.assertEqual(messages(schema, {"location": {"latitude": 91}}, registry), [
            "#/location: required key [longitude] not found",
            "#/location/latitude: 91 is not less than or equal to 90",
        ])


class TestValidatorApi(unittest.TestCase):
    """Test the validation entry points."""

    schema_json = {"type": "object", "required": ["productId"], "properties": {"productId": {"type": "number"}}}

    def test_end_to_end_wrong_type(self):
        self.assertEqual(messages(self.schema_json, {"productId": "abc"}),
                         ["#/productId: expected type: Number, found: String"])

    def test_is_valid(self):
        schema = load_schema(self.schema_json)
        self.assertTrue(is_valid(schema, {"productId": 1}))
        self.assertFalse(is_valid(schema, {}))

    def test_check_raises_with_first_violation(self):
        schema = load_schema({"type": "object", "required": ["a", "b"]})
        with self.assertRaises(ValidationError) as context:
            check(schema, {})
        self.assertEqual(str(context.exception), "#: required key [a] not found")
        self.assertEqual(len(context.exception.violations), 2)

    def test_schema_validate_accepts_valid_instance(self):
        load_schema(self.schema_json).validate({"productId": 3.5})

    def test_validation_is_idempotent(self):
        schema = load_schema({"type": "array", "items": {"type": "string"}, "uniqueItems": True})
        instance = ["a", "a", 1]
        self.assertEqual(validate(schema, instance), validate(schema, instance))

    def test_validator_shared_between_threads(self):
        validator = Validator(load_schema({"type": "array", "items": {"type": "integer", "minimum": 0}}))
        instance = [1, -1, 2, -2]
        expected = [str(v) for v in validator.validate(instance)]
        results = []

        def run():
            for _ in range(50):
                results.append([str(v) for v in validator.validate(instance)])

        threads = [threading.Thread(target=run) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(results), 200)
        self.assertTrue(all(result == expected for result in results))


if __name__ == '__main__':
    unittest.main()
