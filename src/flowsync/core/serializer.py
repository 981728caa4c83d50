"""
GraphDocument -> flow-diagram DSL text.

Output layout:

    flowchart TD
        A((Start)) -->|go| B[Work]
        C[Isolated]

        style A fill:#ff0000
        linkStyle 0 stroke-width:4px

Positions are not written; the text form has no place for them. Only style
properties that differ from the defaults are written, so an unstyled graph
produces no style section at all.
"""

from .grammar import arrow_token, wrap_label
from .models import GraphDocument, GraphNode, NodeStyle, EdgeStyle

INDENT = "    "

_NODE_STYLE_DECLARATIONS = [
    ("background_color", "fill"),
    ("border_color", "stroke"),
    ("text_color", "color"),
    ("border_width", "stroke-width"),
    ("font_size", "font-size"),
    ("font_weight", "font-weight"),
]

_EDGE_STYLE_DECLARATIONS = [
    ("stroke_color", "stroke"),
    ("stroke_width", "stroke-width"),
    ("stroke_dasharray", "stroke-dasharray"),
    ("animated", "animated"),
]

_PIXEL_FIELDS = {"border_width", "font_size", "stroke_width"}


def format_number(value: float) -> str:
    """2.0 -> "2", 2.5 -> "2.5"."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _format_value(field_name: str, value) -> str:
    if field_name in _PIXEL_FIELDS:
        return f"{format_number(value)}px"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _declarations(changed: dict, table: list[tuple[str, str]]) -> str:
    parts = []
    for field_name, prop in table:
        if field_name in changed and changed[field_name] is not None:
            parts.append(f"{prop}:{_format_value(field_name, changed[field_name])}")
    return ",".join(parts)


def node_style_declarations(style: NodeStyle) -> str:
    """Comma-joined declarations for the non-default node style properties."""
    return _declarations(style.changed_fields(), _NODE_STYLE_DECLARATIONS)


def edge_style_declarations(style: EdgeStyle) -> str:
    """Comma-joined declarations for the non-default edge style properties."""
    return _declarations(style.changed_fields(), _EDGE_STYLE_DECLARATIONS)


def node_definition(node: GraphNode) -> str:
    """`A((Start))` for a circle node A labelled Start."""
    return f"{node.id}{wrap_label(node.label, node.shape)}"


def serialize(document: GraphDocument) -> str:
    """
    Serialize a document to DSL text.

    Edges come first in document order, then every node no edge mentions,
    then style and linkStyle lines. Edges with a missing endpoint are left
    out, and linkStyle indexes count only the edges that were written.

    Args:
        document: The document to serialize

    Returns:
        DSL text (no trailing newline)
    """
    lines = [f"{document.type.value} {document.direction.value}"]
    referenced: set[str] = set()
    written_edges = []

    for edge in document.edges:
        source = document.nodes.get(edge.source)
        target = document.nodes.get(edge.target)
        if source is None or target is None:
            continue

        referenced.add(source.id)
        referenced.add(target.id)
        written_edges.append(edge)
        lines.append(
            f"{INDENT}{node_definition(source)} "
            f"{arrow_token(edge.arrow_type, edge.label)} "
            f"{node_definition(target)}"
        )

    for node in document.nodes.values():
        if node.id not in referenced:
            lines.append(f"{INDENT}{node_definition(node)}")

    style_lines = []
    for node in document.nodes.values():
        declarations = node_style_declarations(node.style)
        if declarations:
            style_lines.append(f"{INDENT}style {node.id} {declarations}")

    for index, edge in enumerate(written_edges):
        declarations = edge_style_declarations(edge.style)
        if declarations:
            style_lines.append(f"{INDENT}linkStyle {index} {declarations}")

    if style_lines:
        lines.append("")
        lines.extend(style_lines)

    return "\n".join(lines)
