"""Tests for the shape and arrow grammar."""

import pytest

from flowsync.core.grammar import (
    ARROW_RULES, SHAPE_DELIMITERS, arrow_token, match_arrow, match_shape, survives_wrapping, wrap_label,
)
from flowsync.core.models import ArrowType, NodeShape


@pytest.mark.parametrize("definition,shape,label", [
    ("((Start))", NodeShape.CIRCLE, "Start"),
    ("([Stadium])", NodeShape.STADIUM, "Stadium"),
    ("[(Database)]", NodeShape.CYLINDER, "Database"),
    ("[[Sub]]", NodeShape.SUBROUTINE, "Sub"),
    ("{{Hex}}", NodeShape.HEXAGON, "Hex"),
    ("{Decide}", NodeShape.DIAMOND, "Decide"),
    ("(Round)", NodeShape.ROUNDED, "Round"),
    ("[/Lean/]", NodeShape.PARALLELOGRAM, "Lean"),
    (">Flag]", NodeShape.ASYMMETRIC, "Flag"),
    ("[Box]", NodeShape.RECTANGLE, "Box"),
])
def test_each_shape_matches_its_delimiters(definition, shape, label):
    assert match_shape(definition) == (shape, label)


def test_unbalanced_definition_does_not_match():
    assert match_shape("[Broken") is None
    assert match_shape("(Broken]") is None
    assert match_shape("") is None


def test_every_shape_has_exactly_one_delimiter_pair():
    shapes = [shape for shape, _, _ in SHAPE_DELIMITERS]
    assert sorted(shapes) == sorted(NodeShape)


@pytest.mark.parametrize("shape", list(NodeShape))
def test_wrapped_labels_match_back_to_the_same_shape(shape):
    assert match_shape(wrap_label("Some label", shape)) == (shape, "Some label")


def test_labeled_arrows_are_checked_before_unlabeled():
    labeled = [r.has_label for r in ARROW_RULES]
    assert labeled == sorted(labeled, reverse=True)

    match = match_arrow("A -->|yes| B")
    assert match.arrow_type == ArrowType.ARROW
    assert match.label == "yes"
    assert "A -->|yes| B"[match.end:] == " B"


@pytest.mark.parametrize("line,arrow_type", [
    ("A --> B", ArrowType.ARROW),
    ("A --- B", ArrowType.OPEN),
    ("A -.-> B", ArrowType.DOTTED),
    ("A ==> B", ArrowType.THICK),
    ("A --o B", ArrowType.CIRCLE),
    ("A --x B", ArrowType.CROSS),
])
def test_arrow_tokens(line, arrow_type):
    match = match_arrow(line)
    assert match.arrow_type == arrow_type
    assert match.label is None
    assert arrow_token(arrow_type) == line[match.start:match.end]


def test_arrow_token_with_label():
    assert arrow_token(ArrowType.THICK, "go") == "==>|go|"
    assert arrow_token(ArrowType.DOTTED, None) == "-.->"


def test_no_arrow():
    assert match_arrow("A[Just a node]") is None


@pytest.mark.parametrize("label,shape,expected", [
    ("Start", NodeShape.CIRCLE, True),
    ("a ] b", NodeShape.RECTANGLE, True),
    ("(db)", NodeShape.RECTANGLE, False),
    ("(x)", NodeShape.ROUNDED, False),
    ("/x/", NodeShape.RECTANGLE, False),
    ("{x}", NodeShape.DIAMOND, False),
    ("two\nlines", NodeShape.RECTANGLE, False),
])
def test_survives_wrapping(label, shape, expected):
    assert survives_wrapping(label, shape) is expected
