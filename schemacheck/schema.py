"""Schema node classes.

A loaded schema is a graph of these nodes. Nodes carry the constraints of one
JSON Schema keyword family and can print themselves back as canonical, minified
JSON Schema text::

    >>> str(ObjectSchema(properties={'name': StringSchema()}))
    '{"type":"object","properties":{"name":{"type":"string"}}}'

Nodes are never changed after the loader has built them, apart from the
one-time binding of a ``ReferenceSchema`` to its target.
"""

import json
import re
from typing import Any, Dict, List, Optional, Union

_MISSING = object()

Number = Union[int, float]


class Schema:
    """Base class of all schema nodes."""

    def __init__(self, title: str = None, description: str = None, default: Any = _MISSING,
                 unprocessed: Dict[str, Any] = None, location: str = '#') -> None:
        self.title = title
        self.description = description
        self.default = default
        self.unprocessed: Dict[str, Any] = dict(unprocessed or {})
        self.location = location

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def to_json(self) -> Union[dict, bool]:
        """Returns the JSON Schema document this node describes."""
        out: Dict[str, Any] = {}
        if self.title is not None:
            out['title'] = self.title
        if self.description is not None:
            out['description'] = self.description
        self._describe(out)
        if self.has_default:
            out['default'] = self.default
        for key, value in self.unprocessed.items():
            out.setdefault(key, value)
        return out

    def _describe(self, out: Dict[str, Any]) -> None:
        pass

    def validate(self, instance: Any) -> None:
        """Validates an instance, raising ValidationError on the first reported violation.

        Raises:
            ValidationError: If the instance does not match the schema.
        """
        from schemacheck.validator import check
        check(self, instance)

    def __str__(self) -> str:
        return json.dumps(self.to_json(), separators=(',', ':'), ensure_ascii=False)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class EmptySchema(Schema):
    """Accepts every value."""


class TrueSchema(EmptySchema):
    """The boolean schema ``true``."""

    def to_json(self) -> bool:
        return True


class FalseSchema(Schema):
    """The boolean schema ``false``; rejects every value."""

    def to_json(self) -> bool:
        return False


class NullSchema(Schema):

    def _describe(self, out):
        out['type'] = 'null'


class BooleanSchema(Schema):

    def _describe(self, out):
        out['type'] = 'boolean'


class StringSchema(Schema):
    """String constraints. With ``requires_string`` off, non-strings pass."""

    def __init__(self, min_length: int = None, max_length: int = None,
                 pattern: Union[str, 're.Pattern', None] = None, requires_string: bool = True, **kwargs) -> None:
        super().__init__(**kwargs)
        self.min_length = min_length
        self.max_length = max_length
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.requires_string = requires_string

    def _describe(self, out):
        if self.requires_string:
            out['type'] = 'string'
        if self.min_length is not None:
            out['minLength'] = self.min_length
        if self.max_length is not None:
            out['maxLength'] = self.max_length
        if self.pattern is not None:
            out['pattern'] = self.pattern.pattern


class NumberSchema(Schema):
    """
    Numeric constraints.

    Each bound is a single (value, exclusive) pair regardless of which draft's
    spelling it was loaded from. ``boolean_exclusive_limits`` only selects the
    draft-4 spelling (``"exclusiveMinimum": true``) when printing.
    """

    def __init__(self, minimum: Number = None, maximum: Number = None,
                 exclusive_minimum: bool = False, exclusive_maximum: bool = False,
                 multiple_of: Number = None, requires_number: bool = True,
                 requires_integer: bool = False, boolean_exclusive_limits: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.minimum = minimum
        self.maximum = maximum
        self.exclusive_minimum = exclusive_minimum
        self.exclusive_maximum = exclusive_maximum
        self.multiple_of = multiple_of
        self.requires_number = requires_number or requires_integer
        self.requires_integer = requires_integer
        self.boolean_exclusive_limits = boolean_exclusive_limits

    def _describe(self, out):
        if self.requires_integer:
            out['type'] = 'integer'
        elif self.requires_number:
            out['type'] = 'number'
        self._describe_limit(out, 'minimum', 'exclusiveMinimum', self.minimum, self.exclusive_minimum)
        self._describe_limit(out, 'maximum', 'exclusiveMaximum', self.maximum, self.exclusive_maximum)
        if self.multiple_of is not None:
            out['multipleOf'] = self.multiple_of

    def _describe_limit(self, out, keyword, exclusive_keyword, limit, exclusive):
        if limit is None:
            return
        if not exclusive:
            out[keyword] = limit
        elif self.boolean_exclusive_limits:
            out[keyword] = limit
            out[exclusive_keyword] = True
        else:
            out[exclusive_keyword] = limit


class ArraySchema(Schema):
    """Array constraints; ``items`` applies to every element."""

    def __init__(self, items: Schema = None, min_items: int = None, max_items: int = None,
                 unique_items: bool = False, requires_array: bool = True, **kwargs) -> None:
        super().__init__(**kwargs)
        self.items = items
        self.min_items = min_items
        self.max_items = max_items
        self.unique_items = unique_items
        self.requires_array = requires_array

    def _describe(self, out):
        if self.requires_array:
            out['type'] = 'array'
        if self.items is not None:
            out['items'] = self.items.to_json()
        if self.min_items is not None:
            out['minItems'] = self.min_items
        if self.max_items is not None:
            out['maxItems'] = self.max_items
        if self.unique_items:
            out['uniqueItems'] = True


class ObjectSchema(Schema):
    """Object constraints. Property order is the order of declaration."""

    def __init__(self, properties: Dict[str, Schema] = None, required: List[str] = None,
                 additional_properties: bool = True, schema_of_additional_properties: Schema = None,
                 min_properties: int = None, max_properties: int = None,
                 requires_object: bool = True, **kwargs) -> None:
        super().__init__(**kwargs)
        self.properties: Dict[str, Schema] = dict(properties or {})
        self.required: List[str] = list(required or [])
        self.additional_properties = additional_properties
        self.schema_of_additional_properties = schema_of_additional_properties
        self.min_properties = min_properties
        self.max_properties = max_properties
        self.requires_object = requires_object

    def _describe(self, out):
        if self.requires_object:
            out['type'] = 'object'
        if self.properties:
            out['properties'] = {name: schema.to_json() for name, schema in self.properties.items()}
        if self.required:
            out['required'] = list(self.required)
        if self.min_properties is not None:
            out['minProperties'] = self.min_properties
        if self.max_properties is not None:
            out['maxProperties'] = self.max_properties
        if not self.additional_properties:
            out['additionalProperties'] = False
        elif self.schema_of_additional_properties is not None:
            out['additionalProperties'] = self.schema_of_additional_properties.to_json()


class EnumSchema(Schema):

    def __init__(self, possible_values: List[Any], **kwargs) -> None:
        super().__init__(**kwargs)
        self.possible_values = list(possible_values)

    def _describe(self, out):
        out['enum'] = list(self.possible_values)


class ConstSchema(Schema):

    def __init__(self, permitted_value: Any, **kwargs) -> None:
        super().__init__(**kwargs)
        self.permitted_value = permitted_value

    def _describe(self, out):
        out['const'] = self.permitted_value


class NotSchema(Schema):

    def __init__(self, must_not_match: Schema, **kwargs) -> None:
        super().__init__(**kwargs)
        self.must_not_match = must_not_match

    def _describe(self, out):
        out['not'] = self.must_not_match.to_json()


class ReferenceSchema(Schema):
    """
    A ``$ref``. The target is bound after construction so that references may
    form cycles; printing emits the reference, never the target.
    """

    def __init__(self, ref: str, referred_schema: Schema = None, absolute_ref: str = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ref = ref
        self.absolute_ref = absolute_ref or ref
        self._referred_schema = referred_schema

    @property
    def is_bound(self) -> bool:
        return self._referred_schema is not None

    @property
    def referred_schema(self) -> Schema:
        if self._referred_schema is None:
            raise LookupError(f"reference {self.ref} at {self.location} is not bound")
        return self._referred_schema

    def bind(self, schema: Schema) -> None:
        if self._referred_schema is not None and self._referred_schema is not schema:
            raise ValueError(f"reference {self.ref} is already bound")
        self._referred_schema = schema

    def _describe(self, out):
        out['$ref'] = self.ref


ALL_OF = 'allOf'
ANY_OF = 'anyOf'
ONE_OF = 'oneOf'


class CombinedSchema(Schema):
    """
    ``allOf`` / ``anyOf`` / ``oneOf`` over ordered subschemas.

    Synthetic combinations are the ones the loader creates itself, from a
    ``type`` list or from several keyword families without a ``type``. They
    print as the single merged schema they came from.
    """

    def __init__(self, criterion: str, subschemas: List[Schema], synthetic: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        if criterion not in (ALL_OF, ANY_OF, ONE_OF):
            raise ValueError(f"unknown combination criterion {criterion}")
        self.criterion = criterion
        self.subschemas: List[Schema] = list(subschemas)
        self.synthetic = synthetic

    def _describe(self, out):
        if not self.synthetic:
            out[self.criterion] = [schema.to_json() for schema in self.subschemas]
            return
        types: List[str] = []
        keywords: Dict[str, Any] = {}
        for schema in self.subschemas:
            described = schema.to_json()
            if not isinstance(described, dict):
                continue
            for key, value in described.items():
                if key == 'type':
                    for type_name in value if isinstance(value, list) else [value]:
                        if type_name not in types:
                            types.append(type_name)
                else:
                    keywords.setdefault(key, value)
        if types:
            out['type'] = types if len(types) > 1 else types[0]
        for key, value in keywords.items():
            out.setdefault(key, value)
