"""
Shape and arrow grammar shared by the parser and the serializer.

Both directions are derived from the two tables below so that the text the
serializer writes is always text the parser reads back:
- SHAPE_DELIMITERS: shape -> (open, close), most specific first
- ARROW_TOKENS: arrow type -> token

Order matters. `((text))` must be tried before `(text)` and `{{text}}`
before `{text}`, otherwise the single-character rule swallows the
double-character one. Arrow rules try every labeled variant before any
unlabeled one because `-->|yes|` also contains `-->`.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .models import NodeShape, ArrowType


SHAPE_DELIMITERS: list[tuple[NodeShape, str, str]] = [
    (NodeShape.CIRCLE, "((", "))"),
    (NodeShape.STADIUM, "([", "])"),
    (NodeShape.CYLINDER, "[(", ")]"),
    (NodeShape.SUBROUTINE, "[[", "]]"),
    (NodeShape.HEXAGON, "{{", "}}"),
    (NodeShape.DIAMOND, "{", "}"),
    (NodeShape.ROUNDED, "(", ")"),
    (NodeShape.PARALLELOGRAM, "[/", "/]"),
    (NodeShape.ASYMMETRIC, ">", "]"),
    (NodeShape.RECTANGLE, "[", "]"),
]

ARROW_TOKENS: list[tuple[ArrowType, str]] = [
    (ArrowType.ARROW, "-->"),
    (ArrowType.OPEN, "---"),
    (ArrowType.DOTTED, "-.->"),
    (ArrowType.THICK, "==>"),
    (ArrowType.CIRCLE, "--o"),
    (ArrowType.CROSS, "--x"),
]


@dataclass(frozen=True)
class ShapeRule:
    """Matches a whole node definition such as `((Start))`."""
    shape: NodeShape
    pattern: re.Pattern


@dataclass(frozen=True)
class ArrowRule:
    """Finds an arrow token, optionally followed by `|label|`."""
    arrow_type: ArrowType
    pattern: re.Pattern
    has_label: bool


@dataclass(frozen=True)
class ArrowMatch:
    """Where an arrow was found in a line and what it carried."""
    arrow_type: ArrowType
    label: Optional[str]
    start: int
    end: int


SHAPE_RULES: list[ShapeRule] = [
    ShapeRule(shape, re.compile(rf"^{re.escape(open_)}(.+){re.escape(close)}$"))
    for shape, open_, close in SHAPE_DELIMITERS
]

ARROW_RULES: list[ArrowRule] = [
    ArrowRule(arrow, re.compile(rf"{re.escape(token)}\|([^|]+)\|"), True)
    for arrow, token in ARROW_TOKENS
] + [
    ArrowRule(arrow, re.compile(re.escape(token)), False)
    for arrow, token in ARROW_TOKENS
]

_DELIMITERS_BY_SHAPE = {shape: (open_, close) for shape, open_, close in SHAPE_DELIMITERS}
_TOKENS_BY_ARROW = dict(ARROW_TOKENS)


def match_shape(definition: str) -> Optional[tuple[NodeShape, str]]:
    """
    Match the text following a node id against the shape rules.

    Args:
        definition: e.g. "((Start))" or "[Process]"

    Returns:
        (shape, inner label) for the first matching rule, or None
    """
    for rule in SHAPE_RULES:
        match = rule.pattern.match(definition)
        if match:
            return rule.shape, match.group(1)
    return None


def match_arrow(line: str) -> Optional[ArrowMatch]:
    """Find the first arrow rule (in priority order) that occurs in `line`."""
    for rule in ARROW_RULES:
        match = rule.pattern.search(line)
        if match:
            label = match.group(1) if rule.has_label else None
            return ArrowMatch(rule.arrow_type, label, match.start(), match.end())
    return None


def wrap_label(label: str, shape: NodeShape) -> str:
    """Wrap a label in its shape's delimiters: ("Start", CIRCLE) -> "((Start))"."""
    open_, close = _DELIMITERS_BY_SHAPE.get(shape, _DELIMITERS_BY_SHAPE[NodeShape.RECTANGLE])
    return f"{open_}{label}{close}"


def survives_wrapping(label: str, shape: NodeShape) -> bool:
    """True if `wrap_label(label, shape)` matches back to exactly (shape, label)."""
    return "\n" not in label and match_shape(wrap_label(label, shape)) == (shape, label)


def arrow_token(arrow_type: ArrowType, label: Optional[str] = None) -> str:
    """Arrow token with an optional `|label|` suffix."""
    token = _TOKENS_BY_ARROW.get(arrow_type, _TOKENS_BY_ARROW[ArrowType.ARROW])
    if label:
        return f"{token}|{label}|"
    return token
