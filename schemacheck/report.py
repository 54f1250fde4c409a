"""Violations and their rendering.

A violation is a plain value: the path into the validated instance, the
message, the schema keyword that failed and, for ``anyOf``/``oneOf``
failures, the violations of the individual subschemas. Rendering follows the
``<pointer>: <message>`` form, e.g. ``#/tags/2: expected type: String, found:
Integer``.
"""

from typing import Any, Dict, List, Sequence, Union

PathSegment = Union[str, int]


def escape_segment(segment: PathSegment) -> str:
    return str(segment).replace('~', '~0').replace('/', '~1')


def format_pointer(path: Sequence[PathSegment]) -> str:
    """Builds the canonical pointer for a path: ``#``, ``#/a``, ``#/a/0``."""
    return '#' + ''.join('/' + escape_segment(segment) for segment in path)


class Violation:
    """One validation failure at one location of the instance."""

    def __init__(self, path: Sequence[PathSegment], message: str, keyword: str = None,
                 causes: List['Violation'] = None) -> None:
        self.path: List[PathSegment] = list(path)
        self.message = message
        self.keyword = keyword
        self.causes: List[Violation] = list(causes or [])

    @property
    def pointer(self) -> str:
        return format_pointer(self.path)

    def __str__(self) -> str:
        return render(self)

    def __repr__(self) -> str:
        return f"Violation({render(self)!r}, keyword={self.keyword!r}, causes={len(self.causes)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Violation):
            return NotImplemented
        return (self.path, self.message, self.keyword, self.causes) == \
            (other.path, other.message, other.keyword, other.causes)

    def __hash__(self) -> int:
        return hash((tuple(self.path), self.message, self.keyword))


class ValidationError(Exception):
    """
    Raised by the convenience helpers when an instance is invalid.

    The message is the rendering of the first violation; every violation is
    available through ``violations``.
    """

    def __init__(self, violations: List[Violation]) -> None:
        if not violations:
            raise ValueError("ValidationError requires at least one violation")
        self.violations = list(violations)
        self.violation = self.violations[0]
        self.message = render(self.violation)
        super().__init__(self.message)

    @property
    def pointer(self) -> str:
        return self.violation.pointer

    @property
    def all_messages(self) -> List[str]:
        return render_all(self.violations)


def render(violation: Violation) -> str:
    return f"{violation.pointer}: {violation.message}"


def primary_message(violations: List[Violation]) -> str:
    """Returns the rendering of the first violation, or None if there is none."""
    if not violations:
        return None
    return render(violations[0])


def render_all(violations: List[Violation], indent: str = '  ') -> List[str]:
    """Renders every violation, with the causes of a violation indented below it."""
    lines: List[str] = []

    def walk(items: List[Violation], depth: int) -> None:
        for violation in items:
            lines.append(indent * depth + render(violation))
            walk(violation.causes, depth + 1)

    walk(violations, 0)
    return lines


def to_json(violations: List[Violation]) -> List[Dict[str, Any]]:
    """Returns the violations as JSON-ready dictionaries."""
    result = []
    for violation in violations:
        entry: Dict[str, Any] = {
            'pointer': violation.pointer,
            'keyword': violation.keyword,
            'message': violation.message,
        }
        if violation.causes:
            entry['causes'] = to_json(violation.causes)
        result.append(entry)
    return result
