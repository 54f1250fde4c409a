"""Builds schema node graphs from JSON Schema documents.

The loader walks a raw schema document and builds one node per keyword
family. ``$ref`` keywords become ``ReferenceSchema`` nodes whose targets are
built from a work list once the referring tree is complete, so recursive
schemas never recurse at construction time. Remote references are looked up
in a ``ReferenceRegistry``; nothing is fetched over the network.
"""

# pylint: disable=too-many-arguments, too-many-branches, too-many-locals

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urldefrag, urljoin

import jsonpointer
from jsonpointer import JsonPointerException

from schemacheck.document import is_number, load_json_file, type_name
from schemacheck.registry import ReferenceRegistry, normalize_uri
from schemacheck.report import escape_segment
from schemacheck.schema import (ALL_OF, ANY_OF, ONE_OF, ArraySchema, BooleanSchema, CombinedSchema, ConstSchema,
                                EmptySchema, EnumSchema, FalseSchema, NotSchema, NullSchema, NumberSchema,
                                ObjectSchema, ReferenceSchema, Schema, StringSchema, TrueSchema)

logger = logging.getLogger(__name__)

DRAFT_4 = 4
DRAFT_6 = 6
DRAFT_7 = 7
DEFAULT_DRAFT = DRAFT_7

_DRAFT_MARKERS = {'draft-04': DRAFT_4, 'draft-06': DRAFT_6, 'draft-07': DRAFT_7}

OBJECT_KEYWORDS = ('properties', 'required', 'additionalProperties', 'minProperties', 'maxProperties')
ARRAY_KEYWORDS = ('items', 'minItems', 'maxItems', 'uniqueItems')
STRING_KEYWORDS = ('minLength', 'maxLength', 'pattern')
NUMBER_KEYWORDS = ('minimum', 'maximum', 'exclusiveMinimum', 'exclusiveMaximum', 'multipleOf')
COMBINED_KEYWORDS = (ALL_OF, ANY_OF, ONE_OF)
METADATA_KEYWORDS = ('title', 'description', 'default')
KNOWN_KEYWORDS = frozenset(OBJECT_KEYWORDS + ARRAY_KEYWORDS + STRING_KEYWORDS + NUMBER_KEYWORDS +
                           COMBINED_KEYWORDS + METADATA_KEYWORDS + ('type', 'enum', 'const', 'not', '$ref'))

# recognised by JSON Schema but not validated here; kept for printing
UNSUPPORTED_KEYWORDS = frozenset(('format', 'if', 'then', 'else', 'patternProperties', 'dependencies',
                                  'propertyNames', 'contains', 'additionalItems', '$dynamicRef'))


class SchemaLoadError(Exception):
    """Raised when a schema document cannot be turned into a schema."""

    def __init__(self, message: str, location: str = '#'):
        self.message = message
        self.location = location
        super().__init__(f"{location}: {message}")


class UnresolvedReferenceError(SchemaLoadError):
    """Raised when a ``$ref`` points at an unregistered document or a missing fragment."""

    def __init__(self, ref: str, location: str = '#', reason: str = None):
        self.ref = ref
        self.reason = reason
        message = f"unresolved reference {ref}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, location)


def detect_draft(schema_json: Any) -> Optional[int]:
    """Returns the draft named by a document's ``$schema``, or None."""
    if not isinstance(schema_json, dict):
        return None
    schema_uri = schema_json.get('$schema')
    if not isinstance(schema_uri, str):
        return None
    for marker, draft in _DRAFT_MARKERS.items():
        if marker in schema_uri:
            return draft
    return None


class _LoadContext:
    """State of one ``load()`` call."""

    def __init__(self, draft: int) -> None:
        self.draft = draft
        self.documents: Dict[str, Any] = {}
        self.built: Dict[str, Schema] = {}
        self.pending: List[ReferenceSchema] = []


class SchemaLoader:
    """
    Loads JSON Schema documents.

    Attributes:
        registry: Documents that remote references resolve against.
        draft: The draft to load with; detected from ``$schema`` when None,
            falling back to draft 7.
    """

    def __init__(self, registry: ReferenceRegistry = None, draft: int = None) -> None:
        if registry is None:
            registry = ReferenceRegistry()
        elif not isinstance(registry, ReferenceRegistry):
            registry = ReferenceRegistry(registry)
        if draft is not None and draft not in (DRAFT_4, DRAFT_6, DRAFT_7):
            raise ValueError(f"unsupported draft {draft}")
        self.registry = registry
        self.draft = draft

    def load(self, schema_json: Any) -> Schema:
        """
        Builds the schema graph of a raw schema document.

        Args:
            schema_json: The parsed schema document (object or boolean).

        Returns:
            The root node.

        Raises:
            SchemaLoadError: If the document is not a valid schema.
            UnresolvedReferenceError: If a ``$ref`` cannot be resolved.
        """
        ctx = _LoadContext(self.draft or detect_draft(schema_json) or DEFAULT_DRAFT)
        root_uri = ''
        if isinstance(schema_json, dict):
            root_id = schema_json.get(self._id_keyword(ctx))
            if isinstance(root_id, str) and not root_id.startswith('#'):
                root_uri = normalize_uri(root_id)
        ctx.documents[root_uri] = schema_json
        root = self._build(schema_json, root_uri, root_uri, '', ctx)
        ctx.built[f"{root_uri}#"] = root
        self._resolve_pending(ctx)
        return root

    def _id_keyword(self, ctx: _LoadContext) -> str:
        return 'id' if ctx.draft == DRAFT_4 else '$id'

    def _build(self, raw: Any, base_uri: str, doc_uri: str, pointer: str, ctx: _LoadContext) -> Schema:
        location = f"{doc_uri}#{pointer}"
        if isinstance(raw, bool):
            if ctx.draft == DRAFT_4:
                raise SchemaLoadError("boolean schemas are not supported by draft 4", location)
            return TrueSchema(location=location) if raw else FalseSchema(location=location)
        if not isinstance(raw, dict):
            raise SchemaLoadError(f"schema must be an object or boolean, found {type_name(raw)}", location)

        schema_id = raw.get(self._id_keyword(ctx))
        if isinstance(schema_id, str) and not schema_id.startswith('#'):
            base_uri = urljoin(base_uri, schema_id)
            ctx.documents.setdefault(normalize_uri(base_uri), raw)

        if '$ref' in raw:
            return self._build_reference(raw, base_uri, location, ctx)

        for keyword in raw:
            if keyword in UNSUPPORTED_KEYWORDS:
                logger.debug("Keyword %s at %s is not validated", keyword, location)

        parts: List[Schema] = []
        declared_type = raw.get('type')
        if isinstance(declared_type, list):
            if not declared_type:
                raise SchemaLoadError("type list must not be empty", location)
            members = [self._build_typed(t, raw, base_uri, doc_uri, pointer, ctx) for t in declared_type]
            parts.append(CombinedSchema(ANY_OF, members, synthetic=True, location=location))
        elif isinstance(declared_type, str):
            parts.append(self._build_typed(declared_type, raw, base_uri, doc_uri, pointer, ctx))
        elif declared_type is None:
            untyped = self._build_untyped(raw, base_uri, doc_uri, pointer, ctx)
            if untyped is not None:
                parts.append(untyped)
        else:
            raise SchemaLoadError(f"type must be a string or an array, found {type_name(declared_type)}", location)

        if 'enum' in raw:
            if not isinstance(raw['enum'], list):
                raise SchemaLoadError("enum must be an array", location)
            parts.append(EnumSchema(raw['enum'], location=location))
        if 'const' in raw:
            parts.append(ConstSchema(raw['const'], location=location))
        if 'not' in raw:
            parts.append(NotSchema(self._build(raw['not'], base_uri, doc_uri, f"{pointer}/not", ctx),
                                   location=location))
        for criterion in COMBINED_KEYWORDS:
            if criterion in raw:
                parts.append(self._build_combined(criterion, raw[criterion], base_uri, doc_uri, pointer, ctx))

        if not parts:
            schema = EmptySchema(location=location)
        elif len(parts) == 1:
            schema = parts[0]
        else:
            schema = CombinedSchema(ALL_OF, parts, synthetic=True, location=location)
        self._apply_metadata(schema, raw)
        return schema

    def _apply_metadata(self, schema: Schema, raw: dict) -> None:
        schema.title = raw.get('title')
        schema.description = raw.get('description')
        if 'default' in raw:
            schema.default = raw['default']
        schema.unprocessed = {k: v for k, v in raw.items() if k not in KNOWN_KEYWORDS}

    def _build_reference(self, raw: dict, base_uri: str, location: str, ctx: _LoadContext) -> ReferenceSchema:
        ref = raw['$ref']
        if not isinstance(ref, str):
            raise SchemaLoadError(f"$ref must be a string, found {type_name(ref)}", location)
        ignored = [k for k in raw if k in KNOWN_KEYWORDS and k not in METADATA_KEYWORDS and k != '$ref']
        if ignored:
            logger.debug("Keywords %s next to $ref at %s are ignored", ignored, location)
        if ref.startswith('#'):
            absolute_ref = normalize_uri(base_uri) + ref
        else:
            absolute_ref = urljoin(base_uri, ref)
        schema = ReferenceSchema(ref, absolute_ref=absolute_ref, location=location)
        self._apply_metadata(schema, raw)
        schema.unprocessed = {k: v for k, v in raw.items() if k not in METADATA_KEYWORDS and k != '$ref'}
        ctx.pending.append(schema)
        return schema

    def _build_typed(self, declared_type: Any, raw: dict, base_uri: str, doc_uri: str, pointer: str,
                     ctx: _LoadContext) -> Schema:
        location = f"{doc_uri}#{pointer}"
        if declared_type == 'object':
            return self._build_object(raw, base_uri, doc_uri, pointer, ctx, True)
        if declared_type == 'array':
            return self._build_array(raw, base_uri, doc_uri, pointer, ctx, True)
        if declared_type == 'string':
            return self._build_string(raw, location, True)
        if declared_type == 'number':
            return self._build_number(raw, location, True, False)
        if declared_type == 'integer':
            return self._build_number(raw, location, True, True)
        if declared_type == 'boolean':
            return BooleanSchema(location=location)
        if declared_type == 'null':
            return NullSchema(location=location)
        raise SchemaLoadError(f"unknown type [{declared_type}]", location)

    def _build_untyped(self, raw: dict, base_uri: str, doc_uri: str, pointer: str,
                       ctx: _LoadContext) -> Optional[Schema]:
        location = f"{doc_uri}#{pointer}"
        families: List[Schema] = []
        if any(k in raw for k in OBJECT_KEYWORDS):
            families.append(self._build_object(raw, base_uri, doc_uri, pointer, ctx, False))
        if any(k in raw for k in ARRAY_KEYWORDS):
            families.append(self._build_array(raw, base_uri, doc_uri, pointer, ctx, False))
        if any(k in raw for k in STRING_KEYWORDS):
            families.append(self._build_string(raw, location, False))
        if any(k in raw for k in NUMBER_KEYWORDS):
            families.append(self._build_number(raw, location, False, False))
        if not families:
            return None
        if len(families) == 1:
            return families[0]
        return CombinedSchema(ALL_OF, families, synthetic=True, location=location)

    def _build_object(self, raw: dict, base_uri: str, doc_uri: str, pointer: str, ctx: _LoadContext,
                      requires_object: bool) -> ObjectSchema:
        location = f"{doc_uri}#{pointer}"
        properties: Dict[str, Schema] = {}
        raw_properties = raw.get('properties', {})
        if not isinstance(raw_properties, dict):
            raise SchemaLoadError("properties must be an object", location)
        for name, property_schema in raw_properties.items():
            properties[name] = self._build(property_schema, base_uri, doc_uri,
                                           f"{pointer}/properties/{escape_segment(name)}", ctx)

        required = raw.get('required', [])
        if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
            raise SchemaLoadError("required must be an array of strings", location)

        additional_properties = True
        schema_of_additional_properties = None
        raw_additional = raw.get('additionalProperties', True)
        if isinstance(raw_additional, bool):
            additional_properties = raw_additional
        else:
            schema_of_additional_properties = self._build(raw_additional, base_uri, doc_uri,
                                                          f"{pointer}/additionalProperties", ctx)

        return ObjectSchema(properties=properties,
                            required=required,
                            additional_properties=additional_properties,
                            schema_of_additional_properties=schema_of_additional_properties,
                            min_properties=self._count(raw, 'minProperties', location),
                            max_properties=self._count(raw, 'maxProperties', location),
                            requires_object=requires_object,
                            location=location)

    def _build_array(self, raw: dict, base_uri: str, doc_uri: str, pointer: str, ctx: _LoadContext,
                     requires_array: bool) -> ArraySchema:
        location = f"{doc_uri}#{pointer}"
        items = None
        if 'items' in raw:
            if isinstance(raw['items'], list):
                raise SchemaLoadError("tuple-style items are not supported", location)
            items = self._build(raw['items'], base_uri, doc_uri, f"{pointer}/items", ctx)
        unique_items = raw.get('uniqueItems', False)
        if not isinstance(unique_items, bool):
            raise SchemaLoadError("uniqueItems must be a boolean", location)
        return ArraySchema(items=items,
                           min_items=self._count(raw, 'minItems', location),
                           max_items=self._count(raw, 'maxItems', location),
                           unique_items=unique_items,
                           requires_array=requires_array,
                           location=location)

    def _build_string(self, raw: dict, location: str, requires_string: bool) -> StringSchema:
        pattern = raw.get('pattern')
        if pattern is not None:
            if not isinstance(pattern, str):
                raise SchemaLoadError("pattern must be a string", location)
            try:
                pattern = re.compile(pattern)
            except re.error as e:
                raise SchemaLoadError(f"invalid pattern {raw['pattern']}: {e}", location) from e
        return StringSchema(min_length=self._count(raw, 'minLength', location),
                            max_length=self._count(raw, 'maxLength', location),
                            pattern=pattern,
                            requires_string=requires_string,
                            location=location)

    def _build_number(self, raw: dict, location: str, requires_number: bool, requires_integer: bool) -> NumberSchema:
        minimum, exclusive_minimum, boolean_min = self._limit(raw, 'minimum', 'exclusiveMinimum', location, max)
        maximum, exclusive_maximum, boolean_max = self._limit(raw, 'maximum', 'exclusiveMaximum', location, min)
        multiple_of = raw.get('multipleOf')
        if multiple_of is not None and (not is_number(multiple_of) or multiple_of <= 0):
            raise SchemaLoadError("multipleOf must be a number greater than 0", location)
        return NumberSchema(minimum=minimum,
                            maximum=maximum,
                            exclusive_minimum=exclusive_minimum,
                            exclusive_maximum=exclusive_maximum,
                            multiple_of=multiple_of,
                            requires_number=requires_number,
                            requires_integer=requires_integer,
                            boolean_exclusive_limits=boolean_min or boolean_max,
                            location=location)

    def _limit(self, raw: dict, keyword: str, exclusive_keyword: str, location: str,
               stricter) -> Tuple[Any, bool, bool]:
        """Normalises a bound and its exclusive flag to one (limit, exclusive, boolean form) triple."""
        limit = raw.get(keyword)
        if limit is not None and not is_number(limit):
            raise SchemaLoadError(f"{keyword} must be a number", location)
        exclusive = raw.get(exclusive_keyword)
        if exclusive is None:
            return limit, False, False
        if isinstance(exclusive, bool):
            if exclusive and limit is None:
                raise SchemaLoadError(f"{exclusive_keyword} requires {keyword}", location)
            return limit, exclusive, True
        if not is_number(exclusive):
            raise SchemaLoadError(f"{exclusive_keyword} must be a boolean or a number", location)
        if limit is None or stricter(exclusive, limit) == exclusive:
            return exclusive, True, False
        return limit, False, False

    def _count(self, raw: dict, keyword: str, location: str) -> Optional[int]:
        value = raw.get(keyword)
        if value is None:
            return None
        if not is_number(value) or value < 0 or (isinstance(value, float) and not value.is_integer()):
            raise SchemaLoadError(f"{keyword} must be a non-negative integer", location)
        return int(value)

    def _build_combined(self, criterion: str, raw_subschemas: Any, base_uri: str, doc_uri: str, pointer: str,
                        ctx: _LoadContext) -> CombinedSchema:
        location = f"{doc_uri}#{pointer}"
        if not isinstance(raw_subschemas, list) or not raw_subschemas:
            raise SchemaLoadError(f"{criterion} must be a non-empty array", location)
        subschemas = [self._build(subschema, base_uri, doc_uri, f"{pointer}/{criterion}/{i}", ctx)
                      for i, subschema in enumerate(raw_subschemas)]
        return CombinedSchema(criterion, subschemas, location=location)

    def _resolve_pending(self, ctx: _LoadContext) -> None:
        """Builds and binds the targets of every reference, including those found while doing so."""
        while ctx.pending:
            reference = ctx.pending.pop(0)
            doc_uri, fragment = urldefrag(reference.absolute_ref)
            fragment = unquote(fragment)
            key = f"{doc_uri}#{fragment}"
            target = ctx.built.get(key)
            if target is None:
                document = self._document(doc_uri, reference, ctx)
                raw = self._resolve_fragment(document, fragment, reference)
                logger.debug("Resolved %s at %s to %s", reference.ref, reference.location, key)
                base_uri = self._base_uri_at(document, doc_uri, fragment, ctx)
                target = self._build(raw, base_uri, doc_uri, fragment if fragment.startswith('/') else '', ctx)
                ctx.built[key] = target
            reference.bind(target)

    def _document(self, doc_uri: str, reference: ReferenceSchema, ctx: _LoadContext) -> Any:
        if doc_uri in ctx.documents:
            return ctx.documents[doc_uri]
        document = self.registry.resolve(doc_uri) if doc_uri else None
        if document is None:
            raise UnresolvedReferenceError(reference.ref, reference.location,
                                           f"no schema registered for {doc_uri or 'the relative reference'}")
        logger.debug("Loaded registered schema %s", doc_uri)
        ctx.documents[doc_uri] = document
        return document

    def _base_uri_at(self, document: Any, doc_uri: str, fragment: str, ctx: _LoadContext) -> str:
        """Returns the base URI in scope at a pointer, applying the ids of the enclosing subschemas."""
        base_uri = doc_uri
        if not fragment.startswith('/'):
            return base_uri
        id_keyword = self._id_keyword(ctx)
        node = document
        for token in jsonpointer.JsonPointer(fragment).parts:
            if isinstance(node, dict):
                schema_id = node.get(id_keyword)
                if isinstance(schema_id, str) and not schema_id.startswith('#'):
                    base_uri = urljoin(base_uri, schema_id)
                    ctx.documents.setdefault(normalize_uri(base_uri), node)
                node = node[token]
            else:
                node = node[int(token)]
        return base_uri

    def _resolve_fragment(self, document: Any, fragment: str, reference: ReferenceSchema) -> Any:
        if not fragment:
            return document
        if fragment.startswith('/'):
            try:
                return jsonpointer.resolve_pointer(document, fragment)
            except JsonPointerException as e:
                raise UnresolvedReferenceError(reference.ref, reference.location, str(e)) from e
        anchor = _find_anchor(document, f"#{fragment}")
        if anchor is None:
            raise UnresolvedReferenceError(reference.ref, reference.location, f"no subschema with id #{fragment}")
        return anchor


def _find_anchor(node: Any, anchor: str) -> Any:
    """Finds the subschema whose ``$id``/``id`` is the plain-name fragment ``anchor``."""
    if isinstance(node, dict):
        if node.get('$id') == anchor or node.get('id') == anchor:
            return node
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        found = _find_anchor(child, anchor)
        if found is not None:
            return found
    return None


def load_schema(schema_json: Any, registry: ReferenceRegistry = None, draft: int = None) -> Schema:
    """Loads a parsed schema document. See ``SchemaLoader.load``."""
    return SchemaLoader(registry, draft).load(schema_json)


def load_schema_file(file_path: str, registry: ReferenceRegistry = None, draft: int = None) -> Schema:
    """Reads a schema file and loads it. See ``SchemaLoader.load``."""
    return load_schema(load_json_file(file_path), registry, draft)
