"""Validates JSON instance files against JSON Schema files.

This module is the file-based front end of the validator and provides the
entry points of the ``validate`` and ``print-schema`` commands.
"""

import logging
import sys
from typing import Any, List, Tuple, Union

from schemacheck.document import load_json_file
from schemacheck.loader import load_schema, load_schema_file
from schemacheck.registry import ReferenceRegistry
from schemacheck.report import Violation, primary_message, render_all
from schemacheck.schema import Schema
from schemacheck.validator import validate as validate_against

logger = logging.getLogger(__name__)


class ValidationResult:
    """Result of validating a JSON instance against a schema."""

    def __init__(self, is_valid: bool, violations: List[Violation] = None, instance_path: str = None):
        self.is_valid = is_valid
        self.violations = violations or []
        self.instance_path = instance_path

    @property
    def message(self) -> str:
        """The primary diagnostic: the rendering of the first violation."""
        return primary_message(self.violations)

    @property
    def errors(self) -> List[str]:
        return render_all(self.violations)

    def __str__(self) -> str:
        if self.is_valid:
            return "✓ Valid" + (f": {self.instance_path}" if self.instance_path else "")
        prefix = f"{self.instance_path}: " if self.instance_path else ""
        return f"✗ Invalid: {prefix}{self.message}"

    def __repr__(self) -> str:
        return f"ValidationResult(is_valid={self.is_valid}, errors={self.errors})"


def build_registry(refs: List[str] = None) -> ReferenceRegistry:
    """Builds a registry from ``URI=PATH`` pairs.

    Args:
        refs: Entries mapping a schema URI to the file that holds it

    Returns:
        The populated registry
    """
    registry = ReferenceRegistry()
    for entry in refs or []:
        uri, sep, file_path = entry.partition('=')
        if not sep or not uri or not file_path:
            raise ValueError(f"reference '{entry}' must have the form URI=PATH")
        registry.register_file(uri, file_path)
    return registry


def validate_instance(
    instance: Any,
    schema: Union[Schema, dict, bool],
    registry: ReferenceRegistry = None
) -> ValidationResult:
    """Validates a JSON instance against a schema.

    Args:
        instance: The JSON value to validate
        schema: A loaded schema, or a raw schema document to load first
        registry: Documents for remote references of a raw schema

    Returns:
        ValidationResult with validation status and violations
    """
    if not isinstance(schema, Schema):
        schema = load_schema(schema, registry)
    violations = validate_against(schema, instance)
    return ValidationResult(is_valid=not violations, violations=violations)


def validate_file(
    instance_file: str,
    schema_file: str,
    refs: List[str] = None
) -> ValidationResult:
    """Validates a JSON instance file against a schema file.

    Args:
        instance_file: Path to the JSON document
        schema_file: Path to the JSON Schema
        refs: ``URI=PATH`` entries for remote references

    Returns:
        The ValidationResult for the document
    """
    schema = load_schema_file(schema_file, build_registry(refs))
    instance = load_json_file(instance_file)
    result = validate_instance(instance, schema)
    result.instance_path = instance_file
    return result


def validate_json_instances(
    input_files: List[str],
    schema_file: str,
    refs: List[str] = None,
    verbose: bool = False,
    all_errors: bool = False
) -> Tuple[int, int]:
    """Validates multiple JSON instance files against a schema.

    Args:
        input_files: List of JSON file paths to validate
        schema_file: Path to schema file
        refs: ``URI=PATH`` entries for remote references
        verbose: Whether to print validation results
        all_errors: Whether to print every violation instead of the first

    Returns:
        Tuple of (valid_count, invalid_count)
    """
    schema = load_schema_file(schema_file, build_registry(refs))
    valid_count = 0
    invalid_count = 0

    for input_file in input_files:
        result = validate_instance(load_json_file(input_file), schema)
        result.instance_path = input_file
        if result.is_valid:
            valid_count += 1
            logger.info("%s is valid", input_file)
        else:
            invalid_count += 1
            logger.info("%s has %d violation(s)", input_file, len(result.violations))
        if verbose:
            print(result)
            if all_errors and not result.is_valid:
                for line in result.errors:
                    print(f"    {line}")

    return valid_count, invalid_count


# Command entry points for the schemacheck CLI
def validate(
    input: List[str],
    schema: str,
    ref: List[str] = None,
    quiet: bool = False,
    all_errors: bool = False
) -> None:
    """Validates JSON instances against a JSON Schema.

    Args:
        input: List of JSON files to validate
        schema: Path to the schema file
        ref: ``URI=PATH`` entries registering schemas for remote references
        quiet: Suppress output, exit with code 0 if valid, 1 if invalid
        all_errors: Print every violation of an invalid instance
    """
    valid_count, invalid_count = validate_json_instances(
        input_files=input,
        schema_file=schema,
        refs=ref,
        verbose=not quiet,
        all_errors=all_errors
    )

    if not quiet:
        total = valid_count + invalid_count
        print(f"\nValidation summary: {valid_count}/{total} instances valid")

    if invalid_count > 0:
        sys.exit(1)


def print_schema(schema: str, ref: List[str] = None, out: str = None) -> None:
    """Loads a schema and prints its canonical minified form.

    Args:
        schema: Path to the schema file
        ref: ``URI=PATH`` entries registering schemas for remote references
        out: File to write to instead of standard output
    """
    text = str(load_schema_file(schema, build_registry(ref)))
    if out:
        with open(out, 'w', encoding='utf-8') as f:
            f.write(text)
    else:
        print(text)
