"""Validates JSON instances against loaded schemas.

Validation collects violations instead of stopping at the first one. Within
one schema node the checks run in a fixed order: the type check first (a
mismatch ends the node's checks), then counts such as ``required`` or
``minItems``, then members and elements in declaration and index order.
"""

import math
from decimal import Decimal, localcontext
from typing import Any, List, Set, Tuple

from schemacheck.document import (format_value, is_array, is_integral, is_number, is_object, is_string,
                                  json_equals, type_name)
from schemacheck.report import PathSegment, ValidationError, Violation
from schemacheck.schema import (ALL_OF, ANY_OF, ArraySchema, BooleanSchema, CombinedSchema, ConstSchema,
                                EmptySchema, EnumSchema, FalseSchema, NotSchema, NullSchema, NumberSchema,
                                ObjectSchema, ReferenceSchema, Schema, StringSchema)

Path = Tuple[PathSegment, ...]


def expected_type_name(schema: Schema) -> str:
    """Returns the name a typed node uses for its type in violation messages."""
    if isinstance(schema, ObjectSchema):
        return 'Object'
    if isinstance(schema, ArraySchema):
        return 'JSONArray'
    if isinstance(schema, StringSchema):
        return 'String'
    if isinstance(schema, NumberSchema):
        return 'Integer' if schema.requires_integer else 'Number'
    if isinstance(schema, BooleanSchema):
        return 'Boolean'
    if isinstance(schema, NullSchema):
        return 'Null'
    raise ValueError(f"{type(schema).__name__} has no type")


def _type_mismatch(expected: str, instance: Any, path: Path) -> Violation:
    return Violation(path, f"expected type: {expected}, found: {type_name(instance)}", 'type')


def _is_type_mismatch(violations: List[Violation], path: Path) -> bool:
    return any(v.keyword == 'type' and tuple(v.path) == path for v in violations)


def _canonical(value: Any) -> Any:
    """Hashable key under which JSON-equal values collide."""
    if isinstance(value, bool):
        return ('b', value)
    if is_number(value):
        return ('n', Decimal(str(value)).normalize())
    if is_array(value):
        return ('a', tuple(_canonical(item) for item in value))
    if is_object(value):
        return ('o', tuple(sorted((k, _canonical(v)) for k, v in value.items())))
    return ('v', value)


def _is_multiple(value: Any, divisor: Any) -> bool:
    if isinstance(value, float) and not math.isfinite(value):
        return False
    dividend = Decimal(str(value))
    factor = Decimal(str(divisor))
    with localcontext() as ctx:
        # the integral part of the quotient has to fit into the precision
        ctx.prec = max(ctx.prec, dividend.adjusted() - factor.adjusted() + len(factor.as_tuple().digits) + 2)
        return dividend % factor == 0


class _Revisited(Violation):
    """
    Left where a reference is reached again for the same instance location.

    It fails an ``anyOf``/``oneOf`` branch but is dropped from the result, so
    the repeated pass neither satisfies a combination nor adds a violation.
    """


def _settled(violations: List[Violation]) -> List[Violation]:
    result = []
    for violation in violations:
        if isinstance(violation, _Revisited):
            continue
        if violation.causes:
            violation = Violation(violation.path, violation.message, violation.keyword, _settled(violation.causes))
        result.append(violation)
    return result


class Validator:
    """Validates instances against one schema. Holds no per-call state, so it can be shared."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema

    def validate(self, instance: Any) -> List[Violation]:
        """Validates an instance.

        Args:
            instance: The JSON value to validate

        Returns:
            The violations found, empty if the instance is valid
        """
        return _settled(self._validate(instance, self.schema, (), set()))

    def _validate(self, instance: Any, schema: Schema, path: Path, active: Set) -> List[Violation]:
        if isinstance(schema, ReferenceSchema):
            return self._validate_reference(instance, schema, path, active)
        if isinstance(schema, ObjectSchema):
            return self._validate_object(instance, schema, path, active)
        if isinstance(schema, ArraySchema):
            return self._validate_array(instance, schema, path, active)
        if isinstance(schema, StringSchema):
            return self._validate_string(instance, schema, path)
        if isinstance(schema, NumberSchema):
            return self._validate_number(instance, schema, path)
        if isinstance(schema, BooleanSchema):
            return [] if isinstance(instance, bool) else [_type_mismatch('Boolean', instance, path)]
        if isinstance(schema, NullSchema):
            return [] if instance is None else [_type_mismatch('Null', instance, path)]
        if isinstance(schema, CombinedSchema):
            return self._validate_combined(instance, schema, path, active)
        if isinstance(schema, EnumSchema):
            if any(json_equals(instance, value) for value in schema.possible_values):
                return []
            return [Violation(path, f"{format_value(instance)} is not a valid enum value", 'enum')]
        if isinstance(schema, ConstSchema):
            if json_equals(instance, schema.permitted_value):
                return []
            return [Violation(path, f"{format_value(instance)} does not match the const", 'const')]
        if isinstance(schema, NotSchema):
            if self._validate(instance, schema.must_not_match, path, active):
                return []
            return [Violation(path, f"subject must not be valid against schema {schema.must_not_match}", 'not')]
        if isinstance(schema, FalseSchema):
            return [Violation(path, "false schema always fails", 'false')]
        if isinstance(schema, EmptySchema):
            return []
        raise TypeError(f"unsupported schema node {type(schema).__name__}")

    def _validate_reference(self, instance: Any, schema: ReferenceSchema, path: Path, active: Set) -> List[Violation]:
        # a reference reached again for the same location is not re-entered
        key = (id(schema), path)
        if key in active:
            return [_Revisited(path, f"reference {schema.ref} is already being evaluated here", "$ref")]
        active.add(key)
        try:
            return self._validate(instance, schema.referred_schema, path, active)
        finally:
            active.discard(key)

    def _validate_object(self, instance: Any, schema: ObjectSchema, path: Path, active: Set) -> List[Violation]:
        if not is_object(instance):
            return [_type_mismatch('Object', instance, path)] if schema.requires_object else []

        violations: List[Violation] = []
        for name in schema.required:
            if name not in instance:
                violations.append(Violation(path, f"required key [{name}] not found", 'required'))
        if schema.min_properties is not None and len(instance) < schema.min_properties:
            violations.append(Violation(
                path, f"minimum size: [{schema.min_properties}], found: [{len(instance)}]", 'minProperties'))
        if schema.max_properties is not None and len(instance) > schema.max_properties:
            violations.append(Violation(
                path, f"maximum size: [{schema.max_properties}], found: [{len(instance)}]", 'maxProperties'))

        for name, property_schema in schema.properties.items():
            if name in instance:
                violations.extend(self._validate(instance[name], property_schema, path + (name,), active))

        for key, value in instance.items():
            if key in schema.properties:
                continue
            if not schema.additional_properties:
                violations.append(Violation(path, f"extraneous key [{key}] is not permitted", 'additionalProperties'))
            elif schema.schema_of_additional_properties is not None:
                violations.extend(self._validate(value, schema.schema_of_additional_properties, path + (key,), active))
        return violations

    def _validate_array(self, instance: Any, schema: ArraySchema, path: Path, active: Set) -> List[Violation]:
        if not is_array(instance):
            return [_type_mismatch('JSONArray', instance, path)] if schema.requires_array else []

        violations: List[Violation] = []
        if schema.min_items is not None and len(instance) < schema.min_items:
            violations.append(Violation(
                path, f"expected minimum item count: {schema.min_items}, found: {len(instance)}", 'minItems'))
        if schema.max_items is not None and len(instance) > schema.max_items:
            violations.append(Violation(
                path, f"expected maximum item count: {schema.max_items}, found: {len(instance)}", 'maxItems'))
        if schema.unique_items:
            seen = set()
            for item in instance:
                key = _canonical(item)
                if key in seen:
                    violations.append(Violation(path, "array items are not unique", 'uniqueItems'))
                    break
                seen.add(key)
        if schema.items is not None:
            for index, item in enumerate(instance):
                violations.extend(self._validate(item, schema.items, path + (index,), active))
        return violations

    def _validate_string(self, instance: Any, schema: StringSchema, path: Path) -> List[Violation]:
        if not is_string(instance):
            return [_type_mismatch('String', instance, path)] if schema.requires_string else []

        violations: List[Violation] = []
        length = len(instance)
        if schema.min_length is not None and length < schema.min_length:
            violations.append(Violation(path, f"expected minLength: {schema.min_length}, actual: {length}", 'minLength'))
        if schema.max_length is not None and length > schema.max_length:
            violations.append(Violation(path, f"expected maxLength: {schema.max_length}, actual: {length}", 'maxLength'))
        if schema.pattern is not None and not schema.pattern.search(instance):
            violations.append(Violation(
                path, f"string [{instance}] does not match pattern {schema.pattern.pattern}", 'pattern'))
        return violations

    def _validate_number(self, instance: Any, schema: NumberSchema, path: Path) -> List[Violation]:
        if not is_number(instance):
            return [_type_mismatch(expected_type_name(schema), instance, path)] if schema.requires_number else []
        if schema.requires_integer and not is_integral(instance):
            return [_type_mismatch('Integer', instance, path)]

        violations: List[Violation] = []
        value = format_value(instance)
        if schema.minimum is not None:
            limit = format_value(schema.minimum)
            if schema.exclusive_minimum and instance <= schema.minimum:
                violations.append(Violation(path, f"{value} is not greater than {limit}", 'exclusiveMinimum'))
            elif not schema.exclusive_minimum and instance < schema.minimum:
                violations.append(Violation(path, f"{value} is not greater than or equal to {limit}", 'minimum'))
        if schema.maximum is not None:
            limit = format_value(schema.maximum)
            if schema.exclusive_maximum and instance >= schema.maximum:
                violations.append(Violation(path, f"{value} is not less than {limit}", 'exclusiveMaximum'))
            elif not schema.exclusive_maximum and instance > schema.maximum:
                violations.append(Violation(path, f"{value} is not less than or equal to {limit}", 'maximum'))
        if schema.multiple_of is not None:
            if not _is_multiple(instance, schema.multiple_of):
                violations.append(Violation(
                    path, f"{value} is not a multiple of {format_value(schema.multiple_of)}", 'multipleOf'))
        return violations

    def _validate_combined(self, instance: Any, schema: CombinedSchema, path: Path, active: Set) -> List[Violation]:
        if schema.criterion == ALL_OF:
            violations: List[Violation] = []
            for subschema in schema.subschemas:
                found = self._validate(instance, subschema, path, active)
                violations.extend(found)
                if schema.synthetic and _is_type_mismatch(found, path):
                    break
            return violations

        results: List[List[Violation]] = []
        for subschema in schema.subschemas:
            found = self._validate(instance, subschema, path, active)
            if schema.criterion == ANY_OF and not found:
                return []
            results.append(found)
        causes = [violation for found in results for violation in found]

        if schema.criterion == ANY_OF:
            if schema.synthetic:
                return self._type_union_failure(instance, schema, results, path)
            return [Violation(path, f"no subschema matched out of the total {len(schema.subschemas)} subschemas",
                              ANY_OF, causes)]

        matched = sum(1 for found in results if not found)
        if matched == 1:
            return []
        return [Violation(path, f"{matched} subschemas matched instead of one", 'oneOf', causes)]

    def _type_union_failure(self, instance: Any, schema: CombinedSchema, results: List[List[Violation]],
                            path: Path) -> List[Violation]:
        """Reports a failed ``"type": [...]`` list."""
        for found in results:
            if not _is_type_mismatch(found, path):
                return found
        names = ', '.join(expected_type_name(member) for member in schema.subschemas)
        return [Violation(path, f"expected type: one of [{names}], found: {type_name(instance)}", 'type')]


def validate(schema: Schema, instance: Any) -> List[Violation]:
    """Validates an instance and returns the violations (empty if valid)."""
    return Validator(schema).validate(instance)


def is_valid(schema: Schema, instance: Any) -> bool:
    return not validate(schema, instance)


def check(schema: Schema, instance: Any) -> None:
    """Validates an instance and raises if it is invalid.

    Raises:
        ValidationError: Carrying every violation; its message is the first one's rendering.
    """
    violations = validate(schema, instance)
    if violations:
        raise ValidationError(violations)
