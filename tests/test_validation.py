"""Tests for document validation."""

import pytest

from flowsync.core.models import GraphDocument, GraphEdge, GraphNode, NodeShape
from flowsync.core.validation import IssueSeverity, validate_document, validation_summary


def _doc(nodes, edges=()):
    return GraphDocument(nodes={n.id: n for n in nodes}, edges=list(edges))


def _messages(issues, severity):
    return [i.message for i in issues if i.severity == severity]


def test_empty_document():
    issues = validate_document(GraphDocument())
    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.INFO


def test_clean_document_has_no_issues():
    doc = _doc([GraphNode(id="A", label="A"), GraphNode(id="B", label="B")],
               [GraphEdge(source="A", target="B")])
    assert validate_document(doc) == []


def test_orphans_are_info():
    doc = _doc([GraphNode(id="A", label="A"), GraphNode(id="B", label="B"), GraphNode(id="C", label="Lonely")],
               [GraphEdge(source="A", target="B")])
    info = _messages(validate_document(doc), IssueSeverity.INFO)
    assert len(info) == 1
    assert "Lonely (C)" in info[0]


def test_dangling_edges_are_errors():
    doc = _doc([GraphNode(id="A", label="A")], [GraphEdge(id="e1", source="A", target="ghost")])
    issues = validate_document(doc)
    errors = [i for i in issues if i.severity == IssueSeverity.ERROR]
    assert len(errors) == 1
    assert errors[0].edge_id == "e1"
    assert validation_summary(issues)["valid"] is False


def test_self_loops_and_duplicates_warn():
    doc = _doc([GraphNode(id="A", label="A"), GraphNode(id="B", label="B")], [
        GraphEdge(source="A", target="A"),
        GraphEdge(source="A", target="B"),
        GraphEdge(source="A", target="B"),
    ])
    warnings = _messages(validate_document(doc), IssueSeverity.WARNING)
    assert any("Self-referencing" in m for m in warnings)
    assert any("Duplicate edge from A to B" in m for m in warnings)


def test_text_form_hazards_warn():
    doc = _doc([
        GraphNode(id="bad id", label="ok"),
        GraphNode(id="E", label=""),
        GraphNode(id="R", label="(db)"),
        GraphNode(id="D", label="{x}", shape=NodeShape.DIAMOND),
    ], [GraphEdge(source="E", target="R", label="a|b")])
    issues = validate_document(doc)
    flagged = {(i.node_id, i.edge_id) for i in issues if i.severity == IssueSeverity.WARNING}
    assert ("bad id", None) in flagged
    assert ("E", None) in flagged
    assert ("R", None) in flagged
    assert ("D", None) in flagged
    assert any(edge_id for _, edge_id in flagged)


@pytest.mark.parametrize("label,shape", [
    ("(db)", NodeShape.RECTANGLE),
    ("(x)", NodeShape.ROUNDED),
    ("/x/", NodeShape.RECTANGLE),
    ("{x}", NodeShape.DIAMOND),
    ("[x]", NodeShape.RECTANGLE),
])
def test_label_that_reads_back_as_another_shape_warns(label, shape):
    issues = validate_document(_doc([GraphNode(id="N", label=label, shape=shape)]))
    warnings = _messages(issues, IssueSeverity.WARNING)
    assert any("does not read back" in m for m in warnings)


@pytest.mark.parametrize("label,shape", [
    ("a ] b", NodeShape.RECTANGLE),
    ("has } brace", NodeShape.DIAMOND),
    ("Disk", NodeShape.CYLINDER),
])
def test_label_that_reads_back_unchanged_is_quiet(label, shape):
    issues = validate_document(_doc([GraphNode(id="N", label=label, shape=shape)]))
    assert _messages(issues, IssueSeverity.WARNING) == []


def test_label_with_arrow_token_warns():
    issues = validate_document(_doc([GraphNode(id="N", label="a --> b")]))
    warnings = _messages(issues, IssueSeverity.WARNING)
    assert any("arrow token" in m for m in warnings)


def test_summary_counts():
    doc = _doc([GraphNode(id="A", label="A")], [GraphEdge(source="A", target="A")])
    summary = validation_summary(validate_document(doc))
    assert summary == {"total": 1, "errors": 0, "warnings": 1, "info": 0, "valid": True}


def test_issue_to_dict_includes_line():
    from flowsync.core.parser import parse
    issue = parse("flowchart TD\n???").diagnostics[0]
    assert issue.to_dict() == {"type": "warning", "message": issue.message, "line": 2}
