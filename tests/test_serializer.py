"""Tests for the DSL serializer."""

from flowsync.core.models import (
    ArrowType, Direction, EdgeStyle, GraphDocument, GraphEdge, GraphNode, NodeShape, NodeStyle,
)
from flowsync.core.parser import parse
from flowsync.core.serializer import edge_style_declarations, format_number, node_style_declarations, serialize


def _doc(nodes, edges=(), direction=Direction.TD):
    return GraphDocument(direction=direction, nodes={n.id: n for n in nodes}, edges=list(edges))


def _content(document):
    """Everything the text form carries: no positions."""
    return (
        document.type,
        document.direction,
        [(n.id, n.label, n.shape, n.style) for n in document.nodes.values()],
        [(e.source, e.target, e.label, e.arrow_type, e.style) for e in document.edges],
    )


def test_basic_output():
    doc = _doc(
        [GraphNode(id="A", label="Start", shape=NodeShape.CIRCLE), GraphNode(id="B", label="Work")],
        [GraphEdge(source="A", target="B", label="go")],
    )
    assert serialize(doc) == "flowchart TD\n    A((Start)) -->|go| B[Work]"


def test_isolated_nodes_follow_edges():
    doc = _doc(
        [GraphNode(id="X", label="Lonely"), GraphNode(id="A", label="A"), GraphNode(id="B", label="B")],
        [GraphEdge(source="A", target="B", arrow_type=ArrowType.THICK)],
        direction=Direction.LR,
    )
    assert serialize(doc).splitlines() == [
        "flowchart LR",
        "    A[A] ==> B[B]",
        "    X[Lonely]",
    ]


def test_empty_document_is_header_only():
    assert serialize(GraphDocument()) == "flowchart TD"


def test_edges_with_missing_endpoint_are_left_out():
    doc = _doc(
        [GraphNode(id="A", label="A"), GraphNode(id="B", label="B")],
        [
            GraphEdge(source="A", target="ghost", style=EdgeStyle(stroke_color="#111111")),
            GraphEdge(source="A", target="B", style=EdgeStyle(stroke_color="#222222")),
        ],
    )
    text = serialize(doc)
    assert "ghost" not in text
    # Index counts written edges only
    assert "linkStyle 0 stroke:#222222" in text


def test_default_styles_write_no_style_section():
    doc = _doc([GraphNode(id="A", label="A")], [])
    assert "style" not in serialize(doc)
    assert node_style_declarations(NodeStyle()) == ""
    assert edge_style_declarations(EdgeStyle()) == ""


def test_only_changed_style_properties_are_written():
    style = NodeStyle(background_color="#ff0000", border_width=3.5)
    assert node_style_declarations(style) == "fill:#ff0000,stroke-width:3.5px"

    edge_style = EdgeStyle(stroke_dasharray="5 5", animated=True)
    assert edge_style_declarations(edge_style) == "stroke-dasharray:5 5,animated:true"


def test_style_section_after_blank_line():
    doc = _doc(
        [GraphNode(id="A", label="A", style=NodeStyle(text_color="#000000")), GraphNode(id="B", label="B")],
        [GraphEdge(source="A", target="B")],
    )
    lines = serialize(doc).splitlines()
    assert lines[-2] == ""
    assert lines[-1] == "    style A color:#000000"


def test_format_number():
    assert format_number(2.0) == "2"
    assert format_number(2.5) == "2.5"
    assert format_number(14) == "14"


def test_round_trip_preserves_content(sample_text):
    first = parse(sample_text).document
    second = parse(serialize(first)).document
    assert _content(second) == _content(first)


def test_round_trip_with_styles_and_isolated_nodes():
    doc = _doc(
        [
            GraphNode(id="A", label="Start", shape=NodeShape.HEXAGON,
                      style=NodeStyle(border_color="#00ff00", font_size=18, font_weight="bold")),
            GraphNode(id="B", label="Disk", shape=NodeShape.CYLINDER),
            GraphNode(id="C", label="Alone", shape=NodeShape.ASYMMETRIC),
        ],
        [GraphEdge(source="A", target="B", label="save", arrow_type=ArrowType.CROSS,
                   style=EdgeStyle(stroke_width=4, animated=True))],
        direction=Direction.BT,
    )
    reparsed = parse(serialize(doc)).document
    assert _content(reparsed) == _content(doc)


def test_serialize_is_stable():
    text = serialize(parse("graph RL\nA{x} --- B\nB -.->|y| C((z))").document)
    assert serialize(parse(text).document) == text


def test_round_trip_with_keyword_like_ids():
    doc = _doc(
        [
            GraphNode(id="End", label="Stop", shape=NodeShape.CIRCLE),
            GraphNode(id="B", label="B"),
            GraphNode(id="end", label="end"),
            GraphNode(id="Class", label="Class"),
        ],
        [GraphEdge(source="End", target="B")],
    )
    reparsed = parse(serialize(doc)).document
    assert _content(reparsed) == _content(doc)
