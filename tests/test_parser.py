"""Tests for the DSL parser."""

import pytest

from flowsync.core.models import ArrowType, DiagramType, Direction, NodeShape
from flowsync.core.parser import ParseErrorKind, parse, parse_declarations, parse_direction, parse_node_definition
from flowsync.core.validation import IssueSeverity


def test_empty_text_is_an_error():
    for text in ("", "   \n\n", "%% just a comment\n"):
        result = parse(text)
        assert not result.ok
        assert result.error == ParseErrorKind.EMPTY
        assert result.message == "Empty code"


def test_non_flow_diagram_is_rejected():
    result = parse("sequenceDiagram\nA->>B: hi")
    assert not result.ok
    assert result.error == ParseErrorKind.UNSUPPORTED_TYPE
    assert "sequenceDiagram" in result.message


def test_unknown_header_is_rejected():
    result = parse("hello world\nA --> B")
    assert result.error == ParseErrorKind.UNSUPPORTED_TYPE
    assert "hello world" in result.message


def test_header_only_gives_empty_document():
    result = parse("graph LR")
    assert result.ok
    assert result.document.type == DiagramType.GRAPH
    assert result.document.direction == Direction.LR
    assert result.document.nodes == {}
    assert result.document.edges == []


@pytest.mark.parametrize("header,direction", [
    ("flowchart", Direction.TD),
    ("flowchart TB", Direction.TB),
    ("flowchart bt", Direction.BT),
    ("graph RL", Direction.RL),
    ("graph TDX", Direction.TD),
])
def test_direction_from_header(header, direction):
    assert parse_direction(header) == direction


def test_circle_node_and_labeled_edge(sample_text):
    result = parse(sample_text)
    assert result.ok
    doc = result.document

    assert list(doc.nodes) == ["A", "B", "C", "D"]
    assert doc.nodes["A"].shape == NodeShape.CIRCLE
    assert doc.nodes["A"].label == "Start"
    assert doc.nodes["C"].shape == NodeShape.DIAMOND
    assert doc.nodes["D"].shape == NodeShape.STADIUM

    assert [(e.source, e.target) for e in doc.edges] == [("A", "B"), ("B", "C"), ("C", "D")]
    assert doc.edges[1].label == "ok"
    assert doc.edges[2].arrow_type == ArrowType.DOTTED
    assert result.diagnostics == []


def test_edge_ids_are_deterministic(sample_text):
    first = parse(sample_text).document
    second = parse(sample_text).document
    assert [e.id for e in first.edges] == [e.id for e in second.edges]
    assert first.edges[0].id == "e0_A_B"


def test_stub_is_promoted_by_later_definition():
    doc = parse("flowchart TD\nA --> B\nB{Decide} --> C").document
    assert doc.nodes["B"].shape == NodeShape.DIAMOND
    assert doc.nodes["B"].label == "Decide"
    # First appearance fixes the order
    assert list(doc.nodes) == ["A", "B", "C"]


def test_bare_reference_does_not_demote_a_definition():
    doc = parse("flowchart TD\nA((Round)) --> B\nB --> A").document
    assert doc.nodes["A"].shape == NodeShape.CIRCLE
    assert doc.nodes["A"].label == "Round"


def test_bare_node_is_a_rectangle_labelled_with_its_id():
    doc = parse("flowchart TD\nA --> B").document
    assert doc.nodes["B"].shape == NodeShape.RECTANGLE
    assert doc.nodes["B"].label == "B"


def test_node_only_lines():
    doc = parse("flowchart TD\nA[Alone]\nB").document
    assert doc.nodes["A"].label == "Alone"
    assert doc.nodes["B"].label == "B"
    assert doc.edges == []


def test_unbalanced_line_is_skipped_with_diagnostic():
    result = parse("flowchart TD\nA[Start --> B\nC --> D")
    assert result.ok
    assert set(result.document.nodes) == {"C", "D"}
    assert len(result.diagnostics) == 1
    issue = result.diagnostics[0]
    assert issue.severity == IssueSeverity.WARNING
    assert issue.line == 2


def test_garbage_lines_are_skipped():
    result = parse("flowchart TD\n!!!\nA --> B")
    assert result.ok
    assert len(result.document.edges) == 1
    assert result.diagnostics[0].line == 2


def test_comments_semicolons_and_structural_lines():
    text = (
        "%% leading comment\n"
        "flowchart LR;\n"
        "subgraph one\n"
        "    A --> B;\n"
        "end\n"
        "classDef hot fill:#f00\n"
        "click A callback\n"
    )
    result = parse(text)
    assert result.ok
    assert result.document.direction == Direction.LR
    assert set(result.document.nodes) == {"A", "B"}
    assert result.diagnostics == []


def test_layout_assigns_positions():
    doc = parse("flowchart TD\nA --> B").document
    assert doc.nodes["A"].position.y < doc.nodes["B"].position.y


def test_layout_can_be_turned_off():
    doc = parse("flowchart TD\nA --> B", layout=False).document
    assert all(node.position is None for node in doc.nodes.values())


def test_node_style_line():
    doc = parse(
        "flowchart TD\nA --> B\nstyle A fill:#ff0000,stroke-width:4px,font-weight:bold"
    ).document
    style = doc.nodes["A"].style
    assert style.background_color == "#ff0000"
    assert style.border_width == 4
    assert style.font_weight == "bold"
    assert doc.nodes["B"].style.background_color == "#2d2d2d"


def test_style_before_definition_applies():
    doc = parse("flowchart TD\nstyle A color:#000\nA[Late] --> B").document
    assert doc.nodes["A"].style.text_color == "#000"
    assert doc.nodes["A"].label == "Late"


def test_link_style_by_index_and_default():
    doc = parse(
        "flowchart TD\nA --> B\nB --> C\n"
        "linkStyle default stroke:#00ff00\n"
        "linkStyle 1 stroke-width:3px,animated:true"
    ).document
    assert [e.style.stroke_color for e in doc.edges] == ["#00ff00", "#00ff00"]
    assert doc.edges[0].style.stroke_width == 2
    assert doc.edges[1].style.stroke_width == 3
    assert doc.edges[1].style.animated is True


def test_link_style_out_of_range_is_a_diagnostic():
    result = parse("flowchart TD\nA --> B\nlinkStyle 5 stroke:#fff")
    assert result.ok
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].line == 3


def test_malformed_style_is_skipped():
    result = parse("flowchart TD\nA --> B\nstyle A")
    assert result.ok
    assert "malformed style" in result.diagnostics[0].message


def test_parse_node_definition():
    ref = parse_node_definition("  A((Start)) ")
    assert (ref.id, ref.label, ref.shape, ref.explicit) == ("A", "Start", NodeShape.CIRCLE, True)
    assert parse_node_definition("A[broken") is None
    assert parse_node_definition("[no id]") is None


def test_parse_declarations():
    assert parse_declarations("fill:#f9f, stroke-width : 4px,junk,color:") == [
        ("fill", "#f9f"),
        ("stroke-width", "4px"),
    ]


def test_result_to_dict():
    ok = parse("flowchart TD\nA --> B").to_dict()
    assert ok["success"] is True
    assert ok["document"]["nodes"][0]["id"] == "A"

    failed = parse("").to_dict()
    assert failed == {"success": False, "diagnostics": [], "error": "empty", "message": "Empty code"}


def test_keyword_like_ids_are_nodes():
    result = parse(
        "flowchart TD\n"
        "A[Start] --> End\n"
        "End((Stop)) --> B\n"
        "Direction --> C\n"
        "Class --> X\n"
        "Click --> Y\n"
        "Subgraph --> Z\n"
        "style --> A\n"
    )
    doc = result.document
    assert [(e.source, e.target) for e in doc.edges] == [
        ("A", "End"), ("End", "B"), ("Direction", "C"), ("Class", "X"),
        ("Click", "Y"), ("Subgraph", "Z"), ("style", "A"),
    ]
    assert doc.nodes["End"].shape == NodeShape.CIRCLE
    assert doc.nodes["End"].label == "Stop"
    assert result.diagnostics == []


def test_structural_keywords_need_their_whole_form():
    result = parse(
        "flowchart TD\n"
        "subgraph group [Title]\n"
        "direction LR\n"
        "A --> B\n"
        "END\n"
        "class A hot\n"
    )
    assert set(result.document.nodes) == {"A", "B"}
    assert result.document.direction == Direction.TD
    assert result.diagnostics == []

    # A bare keyword with nothing after it is a plain node
    doc = parse("flowchart TD\nClass\nDirection").document
    assert set(doc.nodes) == {"Class", "Direction"}
