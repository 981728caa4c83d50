"""
flowsync core - Shared models, grammar, parser, serializer, layout and validation.

This module provides the pure functionality used by the backend, the CLI
and the MCP tools, ensuring a single source of truth for the text form and
the graph form of a flow diagram.
"""

from .models import (
    # Enums
    DiagramType,
    Direction,
    NodeShape,
    ArrowType,
    # Core models
    NodeStyle,
    EdgeStyle,
    Position,
    GraphNode,
    GraphEdge,
    GraphDocument,
    DEFAULT_NODE_STYLE,
    DEFAULT_EDGE_STYLE,
    # Request models (for API)
    NodeStylePatch,
    EdgeStylePatch,
    TextUpdateRequest,
    CreateNodeRequest,
    UpdateNodeRequest,
    CreateEdgeRequest,
    UpdateEdgeRequest,
    DirectionRequest,
    SelectionRequest,
    EditingRequest,
)

from .diagram_types import detect_diagram_type, is_flow_diagram_type
from .parser import parse, ParseResult, ParseErrorKind
from .serializer import serialize
from .layout import flow_layout, compute_levels, compute_positions
from .validation import validate_document, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "DiagramType",
    "Direction",
    "NodeShape",
    "ArrowType",
    # Models
    "NodeStyle",
    "EdgeStyle",
    "Position",
    "GraphNode",
    "GraphEdge",
    "GraphDocument",
    "DEFAULT_NODE_STYLE",
    "DEFAULT_EDGE_STYLE",
    # Request models
    "NodeStylePatch",
    "EdgeStylePatch",
    "TextUpdateRequest",
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "CreateEdgeRequest",
    "UpdateEdgeRequest",
    "DirectionRequest",
    "SelectionRequest",
    "EditingRequest",
    # Text <-> graph
    "detect_diagram_type",
    "is_flow_diagram_type",
    "parse",
    "ParseResult",
    "ParseErrorKind",
    "serialize",
    # Layout
    "flow_layout",
    "compute_levels",
    "compute_positions",
    # Validation
    "validate_document",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
