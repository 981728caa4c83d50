"""
Flow graph validation - Check documents for structural issues.

Provides validation that can be used by the backend, the CLI and the MCP
tools. Besides plain structure it flags node and edge data that the text
form cannot carry, since such data would be lost on the next text edit.
"""

import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator

from .grammar import match_arrow, survives_wrapping

if TYPE_CHECKING:
    from .models import GraphDocument, GraphEdge, GraphNode


IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single issue found in a document or in the DSL text."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    line: int | None = None  # 1-based source line, for parse diagnostics

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        if self.line is not None:
            result["line"] = self.line
        return result


def _issue(severity: IssueSeverity, message: str, **ids) -> ValidationIssue:
    return ValidationIssue(severity=severity, message=message, **ids)


def _check_orphans(nodes: list["GraphNode"], edges: list["GraphEdge"]) -> Iterator[ValidationIssue]:
    # Orphans are legal: they serialize as standalone lines
    connected = {edge.source for edge in edges} | {edge.target for edge in edges}
    orphans = [f"{n.label} ({n.id})" for n in nodes if n.id not in connected]
    if orphans:
        yield _issue(IssueSeverity.INFO, f"Orphan nodes (no connections): {', '.join(orphans)}")


def _check_node_text(node: "GraphNode") -> Iterator[ValidationIssue]:
    if not IDENTIFIER.match(node.id):
        yield _issue(
            IssueSeverity.WARNING,
            f"Node id {node.id!r} is not a valid identifier and will not survive the text form",
            node_id=node.id,
        )
    if not node.label:
        yield _issue(IssueSeverity.WARNING, "Node has an empty label", node_id=node.id)
    elif not survives_wrapping(node.label, node.shape):
        yield _issue(
            IssueSeverity.WARNING,
            f"Node label does not read back as a {node.shape.value} with the same text",
            node_id=node.id,
        )
    if node.label and match_arrow(node.label) is not None:
        # The parser would split the line inside the label
        yield _issue(
            IssueSeverity.WARNING,
            "Node label contains an arrow token and will not survive the text form",
            node_id=node.id,
        )


def _check_edge(edge: "GraphEdge", node_ids: set[str]) -> Iterator[ValidationIssue]:
    for end, node_id in (("source", edge.source), ("target", edge.target)):
        if node_id not in node_ids:
            yield _issue(
                IssueSeverity.ERROR,
                f"Edge references non-existent {end} node: {node_id}",
                edge_id=edge.id,
            )
    if edge.label and ("|" in edge.label or "\n" in edge.label):
        yield _issue(
            IssueSeverity.WARNING,
            "Edge label contains '|' or a line break and will not survive the text form",
            edge_id=edge.id,
        )
    if edge.source == edge.target:
        yield _issue(
            IssueSeverity.WARNING,
            "Self-referencing edge (node points to itself)",
            edge_id=edge.id,
            node_id=edge.source,
        )


def _check_duplicates(edges: list["GraphEdge"]) -> Iterator[ValidationIssue]:
    seen: set[tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.source, edge.target)
        if pair in seen:
            yield _issue(
                IssueSeverity.WARNING,
                f"Duplicate edge from {edge.source} to {edge.target}",
                edge_id=edge.id,
            )
        seen.add(pair)


def validate_document(document: "GraphDocument") -> list[ValidationIssue]:
    """
    Validate a flow graph and return a list of issues.

    Checks for:
    - Empty document - INFO
    - Orphan nodes (no connections) - INFO
    - Ids and labels the text form cannot represent - WARNING
    - Invalid edge references (source/target doesn't exist) - ERROR
    - Self-referencing edges - WARNING
    - Duplicate edges (same source->target) - WARNING

    Args:
        document: The document to validate

    Returns:
        List of ValidationIssue objects, node issues before edge issues
    """
    nodes = document.node_list()
    if not nodes:
        return [_issue(IssueSeverity.INFO, "Document has no nodes")]

    issues = list(_check_orphans(nodes, document.edges))
    for node in nodes:
        issues.extend(_check_node_text(node))

    node_ids = set(document.nodes)
    for edge in document.edges:
        issues.extend(_check_edge(edge, node_ids))
    issues.extend(_check_duplicates(document.edges))
    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """Counts by severity; `valid` is False as soon as there is an error."""
    counts = Counter(issue.severity for issue in issues)
    return {
        "total": len(issues),
        "errors": counts[IssueSeverity.ERROR],
        "warnings": counts[IssueSeverity.WARNING],
        "info": counts[IssueSeverity.INFO],
        "valid": counts[IssueSeverity.ERROR] == 0,
    }
