"""
Flow-diagram DSL parser.

Turns DSL text into a GraphDocument:

    flowchart LR
        A((Start)) -->|go| B[Work]
        B --> C{Done?}
        style A fill:#f9f,stroke-width:4px
        linkStyle 0 stroke:#ff0000

Parsing is lenient. Only an empty input or a header that does not name a
flow diagram is an error; any other line the grammar does not understand is
skipped and reported as a diagnostic.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .diagram_types import detect_diagram_type, is_flow_diagram_type, is_significant
from .grammar import match_arrow, match_shape
from .layout import flow_layout
from .models import (
    Direction, DiagramType, EdgeStyle, GraphDocument, GraphEdge, GraphNode,
    NodeShape, NodeStyle,
)
from .validation import IssueSeverity, ValidationIssue

logger = logging.getLogger(__name__)


class ParseErrorKind(str, Enum):
    """Why a text could not become a graph."""
    EMPTY = "empty"
    UNSUPPORTED_TYPE = "unsupported_type"


@dataclass
class ParseResult:
    """Either a parsed document or the reason there is none."""
    document: Optional[GraphDocument] = None
    error: Optional[ParseErrorKind] = None
    message: str = ""
    diagnostics: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.document is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "success": self.ok,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
        if self.ok:
            result["document"] = self.document.to_json_dict()
        else:
            result["error"] = self.error.value
            result["message"] = self.message
        return result


_IDENTIFIER = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(.*)$", re.DOTALL)
_DIRECTION = re.compile(r"\b(TB|TD|BT|RL|LR)\b", re.IGNORECASE)
# Accepted and not modeled. Only whole keyword forms count, so ids such as
# `End` or `Class` still parse as nodes.
_STRUCTURAL = re.compile(
    r"^(?:subgraph(?:\s.*)?|end|direction\s+(?:TB|TD|BT|RL|LR)|(?:classDef|class|click)\s+\S.*)$",
    re.IGNORECASE,
)
_STYLE = re.compile(r"^style\s+([A-Za-z_][A-Za-z0-9_]*)\s+(\S.*)$")
_LINK_STYLE = re.compile(r"^linkStyle\s+(default|\d+(?:\s*,\s*\d+)*)\s+(\S.*)$")
_STYLE_KEYWORDS = re.compile(r"^(style|linkStyle)\s")

_NODE_STYLE_PROPERTIES = {
    "fill": "background_color",
    "stroke": "border_color",
    "stroke-width": "border_width",
    "color": "text_color",
    "font-size": "font_size",
    "font-weight": "font_weight",
}

_EDGE_STYLE_PROPERTIES = {
    "stroke": "stroke_color",
    "stroke-width": "stroke_width",
    "stroke-dasharray": "stroke_dasharray",
    "animated": "animated",
}

_NUMERIC_FIELDS = {"border_width", "font_size", "stroke_width"}


@dataclass
class _NodeRef:
    """One side of an edge, or a node-only line."""
    id: str
    label: str
    shape: NodeShape
    explicit: bool  # True when the text carried a shape definition


def parse_node_definition(text: str) -> Optional[_NodeRef]:
    """
    Split `A((Start))` into id, label and shape.

    A bare id yields a rectangle labelled with the id. Returns None when
    there is no leading identifier or when the rest of the text is not a
    complete shape definition (unbalanced brackets, trailing junk).
    """
    match = _IDENTIFIER.match(text.strip())
    if not match:
        return None

    node_id, definition = match.group(1), match.group(2).strip()
    if not definition:
        return _NodeRef(node_id, node_id, NodeShape.RECTANGLE, explicit=False)

    shaped = match_shape(definition)
    if shaped is None:
        return None
    shape, label = shaped
    return _NodeRef(node_id, label, shape, explicit=True)


def parse_declarations(text: str) -> list[tuple[str, str]]:
    """Split `fill:#f9f,stroke-width:4px` into (property, value) pairs."""
    declarations = []
    for part in text.split(","):
        if ":" not in part:
            continue
        name, value = part.split(":", 1)
        name, value = name.strip().lower(), value.strip()
        if name and value:
            declarations.append((name, value))
    return declarations


def _coerce(field_name: str, value: str):
    """Convert a declaration value to the style field's type, or None."""
    if field_name in _NUMERIC_FIELDS:
        try:
            return float(value.lower().removesuffix("px").strip())
        except ValueError:
            return None
    if field_name == "font_weight":
        value = value.lower()
        return value if value in ("normal", "bold") else None
    if field_name == "animated":
        return value.lower() in ("true", "1", "yes")
    return value


def _style_updates(declarations: list[tuple[str, str]], properties: dict[str, str]) -> dict:
    updates = {}
    for name, value in declarations:
        field_name = properties.get(name)
        if field_name is None:
            continue
        coerced = _coerce(field_name, value)
        if coerced is not None:
            updates[field_name] = coerced
    return updates


class _DocumentBuilder:
    """Accumulates nodes, edges and style directives for one parse."""

    def __init__(self, diagram_type: DiagramType, direction: Direction):
        self.diagram_type = diagram_type
        self.direction = direction
        self.nodes: dict[str, GraphNode] = {}
        self.edges: list[GraphEdge] = []
        self.node_styles: list[tuple[int, str, dict]] = []
        self.link_styles: list[tuple[int, Optional[list[int]], dict]] = []
        self.diagnostics: list[ValidationIssue] = []

    def skip(self, line_no: int, line: str, reason: str):
        self.diagnostics.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Skipped line ({reason}): {line}",
            line=line_no,
        ))

    def ensure_node(self, node_id: str) -> GraphNode:
        node = self.nodes.get(node_id)
        if node is None:
            node = GraphNode.stub(node_id)
            self.nodes[node_id] = node
        return node

    def declare(self, ref: _NodeRef) -> GraphNode:
        """Register a node; a shape definition overrides an earlier stub."""
        node = self.ensure_node(ref.id)
        if ref.explicit:
            node.label = ref.label
            node.shape = ref.shape
        return node

    def add_edge(self, source: _NodeRef, target: _NodeRef, arrow_match) -> GraphEdge:
        self.declare(source)
        self.declare(target)
        edge = GraphEdge(
            id=f"e{len(self.edges)}_{source.id}_{target.id}",
            source=source.id,
            target=target.id,
            label=arrow_match.label,
            arrow_type=arrow_match.arrow_type,
        )
        self.edges.append(edge)
        return edge

    def apply_styles(self):
        for line_no, node_id, updates in self.node_styles:
            node = self.ensure_node(node_id)
            node.style = NodeStyle(**{**node.style.model_dump(), **updates})

        for line_no, indexes, updates in self.link_styles:
            targets = range(len(self.edges)) if indexes is None else indexes
            for index in targets:
                if index >= len(self.edges):
                    self.diagnostics.append(ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        message=f"linkStyle index {index} is out of range ({len(self.edges)} edges)",
                        line=line_no,
                    ))
                    continue
                edge = self.edges[index]
                edge.style = EdgeStyle(**{**edge.style.model_dump(), **updates})

    def build(self) -> GraphDocument:
        self.apply_styles()
        return GraphDocument(
            type=self.diagram_type,
            direction=self.direction,
            nodes=self.nodes,
            edges=self.edges,
        )


def parse_direction(header: str) -> Direction:
    """First whole-word direction token in the header, TD if none."""
    match = _DIRECTION.search(header)
    if match:
        return Direction(match.group(1).upper())
    return Direction.TD


def _parse_line(builder: _DocumentBuilder, line_no: int, line: str):
    arrow = match_arrow(line)
    if arrow is None and _STRUCTURAL.match(line):
        return

    style_match = _STYLE.match(line)
    if style_match:
        updates = _style_updates(parse_declarations(style_match.group(2)), _NODE_STYLE_PROPERTIES)
        builder.node_styles.append((line_no, style_match.group(1), updates))
        return
    link_match = _LINK_STYLE.match(line)
    if link_match:
        target = link_match.group(1)
        indexes = None if target == "default" else [int(i) for i in target.split(",")]
        updates = _style_updates(parse_declarations(link_match.group(2)), _EDGE_STYLE_PROPERTIES)
        builder.link_styles.append((line_no, indexes, updates))
        return
    if arrow is None and _STYLE_KEYWORDS.match(line):
        builder.skip(line_no, line, "malformed style")
        return

    if arrow is None:
        ref = parse_node_definition(line)
        if ref is None:
            builder.skip(line_no, line, "not a node or edge")
            return
        builder.declare(ref)
        return

    source = parse_node_definition(line[:arrow.start])
    target = parse_node_definition(line[arrow.end:])
    if source is None or target is None:
        builder.skip(line_no, line, "malformed edge endpoint")
        return
    builder.add_edge(source, target, arrow)


def parse(text: str, layout: bool = True) -> ParseResult:
    """
    Parse DSL text into a GraphDocument.

    Args:
        text: Raw DSL text
        layout: Run the flow layout over the result (positions are unset
            otherwise)

    Returns:
        ParseResult with either `document` or `error` set
    """
    lines = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if is_significant(line):
            lines.append((line_no, line.rstrip(";").rstrip()))

    if not lines:
        return ParseResult(error=ParseErrorKind.EMPTY, message="Empty code")

    header_no, header = lines[0]
    diagram_type = detect_diagram_type(header)
    if not is_flow_diagram_type(diagram_type):
        named = diagram_type.value if diagram_type else header
        return ParseResult(
            error=ParseErrorKind.UNSUPPORTED_TYPE,
            message=f"Unsupported diagram type '{named}'. Expected flowchart or graph.",
        )

    builder = _DocumentBuilder(diagram_type, parse_direction(header))
    for line_no, line in lines[1:]:
        if line:
            _parse_line(builder, line_no, line)

    document = builder.build()
    if layout:
        flow_layout(document.node_list(), document.edges, document.direction)

    logger.debug(
        "Parsed %s %s: %d nodes, %d edges, %d skipped lines",
        document.type.value, document.direction.value,
        len(document.nodes), len(document.edges), len(builder.diagnostics),
    )
    return ParseResult(document=document, diagnostics=builder.diagnostics)
