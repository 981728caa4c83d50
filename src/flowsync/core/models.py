"""
Core data models for flow diagrams.

These models define the canonical graph form of a flow diagram:
- Nodes with a label, a shape, a style and an optional canvas position
- Edges connecting nodes (using source/target naming convention)
- The document that ties them to a diagram type and a direction

Node and edge order is meaningful: the serializer walks both in insertion
order, so `GraphDocument.nodes` is an ordered dict and `edges` a list.
"""

from enum import Enum
from typing import Optional, Any, Literal
from pydantic import BaseModel, Field, model_validator
import uuid


class DiagramType(str, Enum):
    """Diagram kinds recognized in the header line.

    Only FLOWCHART and GRAPH are editable; the rest are known so that they
    can be rejected with a clear error instead of being parsed as garbage.
    """
    FLOWCHART = "flowchart"
    GRAPH = "graph"
    SEQUENCE = "sequenceDiagram"
    CLASS = "classDiagram"
    STATE = "stateDiagram"
    STATE_V2 = "stateDiagram-v2"
    ER = "erDiagram"
    GANTT = "gantt"
    TIMELINE = "timeline"
    PIE = "pie"
    XY_CHART = "xychart-beta"
    QUADRANT = "quadrantChart"
    SANKEY = "sankey-beta"
    JOURNEY = "journey"
    GIT_GRAPH = "gitGraph"
    MINDMAP = "mindmap"
    REQUIREMENT = "requirementDiagram"
    C4_CONTEXT = "C4Context"
    C4_CONTAINER = "C4Container"
    C4_COMPONENT = "C4Component"
    C4_DYNAMIC = "C4Dynamic"
    ZENUML = "zenuml"
    BLOCK = "block-beta"
    PACKET = "packet-beta"
    KANBAN = "kanban"
    ARCHITECTURE = "architecture-beta"


FLOW_DIAGRAM_TYPES = (DiagramType.FLOWCHART, DiagramType.GRAPH)


class Direction(str, Enum):
    """Flow direction from the header line. TB and TD are synonyms."""
    TB = "TB"
    TD = "TD"
    BT = "BT"
    RL = "RL"
    LR = "LR"


class NodeShape(str, Enum):
    """Node shapes, each bound to one delimiter pair in the text form."""
    RECTANGLE = "rectangle"          # [text]
    ROUNDED = "rounded"              # (text)
    STADIUM = "stadium"              # ([text])
    DIAMOND = "diamond"              # {text}
    HEXAGON = "hexagon"              # {{text}}
    PARALLELOGRAM = "parallelogram"  # [/text/]
    CYLINDER = "cylinder"            # [(text)]
    CIRCLE = "circle"                # ((text))
    SUBROUTINE = "subroutine"        # [[text]]
    ASYMMETRIC = "asymmetric"        # >text]


class ArrowType(str, Enum):
    """Connection kinds, each bound to one arrow token."""
    ARROW = "arrow"    # -->
    OPEN = "open"      # ---
    DOTTED = "dotted"  # -.->
    THICK = "thick"    # ==>
    CIRCLE = "circle"  # --o
    CROSS = "cross"    # --x


def generate_node_id() -> str:
    """Generate a unique node ID that is also a valid DSL identifier."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"e{uuid.uuid4().hex[:8]}"


class NodeStyle(BaseModel):
    """Visual style of a node."""
    background_color: str = "#2d2d2d"
    border_color: str = "#d4ff00"
    border_width: float = 2
    text_color: str = "#ffffff"
    font_size: float = 14
    font_weight: Literal["normal", "bold"] = "normal"

    def changed_fields(self) -> dict[str, Any]:
        """Fields whose value differs from the default style."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if value != getattr(DEFAULT_NODE_STYLE, name)
        }


class EdgeStyle(BaseModel):
    """Visual style of an edge."""
    stroke_color: str = "#a0a0a0"
    stroke_width: float = 2
    stroke_dasharray: Optional[str] = None
    animated: bool = False

    def changed_fields(self) -> dict[str, Any]:
        """Fields whose value differs from the default style."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if value != getattr(DEFAULT_EDGE_STYLE, name)
        }


DEFAULT_NODE_STYLE = NodeStyle()
DEFAULT_EDGE_STYLE = EdgeStyle()


class NodeStylePatch(BaseModel):
    """Partial node style, merged over the current style."""
    background_color: Optional[str] = None
    border_color: Optional[str] = None
    border_width: Optional[float] = None
    text_color: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[Literal["normal", "bold"]] = None


class EdgeStylePatch(BaseModel):
    """Partial edge style, merged over the current style."""
    stroke_color: Optional[str] = None
    stroke_width: Optional[float] = None
    stroke_dasharray: Optional[str] = None
    animated: Optional[bool] = None


class Position(BaseModel):
    """Canvas position of a node."""
    x: float = 0
    y: float = 0


class GraphNode(BaseModel):
    """A node in the flow graph."""
    id: str = Field(default_factory=generate_node_id)
    label: str = "New Node"
    shape: NodeShape = NodeShape.RECTANGLE
    style: NodeStyle = Field(default_factory=NodeStyle)
    position: Optional[Position] = None

    @classmethod
    def stub(cls, node_id: str) -> "GraphNode":
        """Placeholder node for an id referenced before it is defined."""
        return cls(id=node_id, label=node_id)


def _endpoint_aliases(data: Any) -> Any:
    """Map `from`/`to` keys onto `source`/`target` without touching the input."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    if "from" in data and "source" not in data:
        data["source"] = data.pop("from")
    if "to" in data and "target" not in data:
        data["target"] = data.pop("to")
    return data


class GraphEdge(BaseModel):
    """
    An edge connecting two nodes.

    Uses `source` and `target` as canonical field names; `from`/`to` are
    accepted on input as aliases.
    """
    id: str = Field(default_factory=generate_edge_id)
    source: str  # Source node ID
    target: str  # Target node ID
    label: Optional[str] = None
    arrow_type: ArrowType = ArrowType.ARROW
    style: EdgeStyle = Field(default_factory=EdgeStyle)

    @model_validator(mode="before")
    @classmethod
    def accept_endpoint_aliases(cls, data: Any) -> Any:
        return _endpoint_aliases(data)


class GraphDocument(BaseModel):
    """
    The complete flow graph.

    This is what the parser produces, the serializer consumes and the
    graph store owns.
    """
    type: DiagramType = DiagramType.FLOWCHART
    direction: Direction = Direction.TD
    nodes: dict[str, GraphNode] = Field(default_factory=dict)
    edges: list[GraphEdge] = Field(default_factory=list)

    def node_list(self) -> list[GraphNode]:
        """Nodes in insertion order."""
        return list(self.nodes.values())

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self.nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        """Get an edge by ID (O(n) - use GraphStore for indexed access)."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict; nodes become an ordered list."""
        return {
            "type": self.type.value,
            "direction": self.direction.value,
            "nodes": [n.model_dump(mode="json") for n in self.nodes.values()],
            "edges": [e.model_dump(mode="json") for e in self.edges],
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "GraphDocument":
        """Create a document from `to_json_dict` output (nodes as list or map)."""
        raw_nodes = data.get("nodes", [])
        if isinstance(raw_nodes, dict):
            raw_nodes = list(raw_nodes.values())
        nodes = [GraphNode(**n) for n in raw_nodes]
        edges = [GraphEdge(**e) for e in data.get("edges", [])]
        return cls(
            type=DiagramType(data.get("type", DiagramType.FLOWCHART.value)),
            direction=Direction(data.get("direction", Direction.TD.value)),
            nodes={n.id: n for n in nodes},
            edges=edges,
        )


# --- API Request/Response Models ---

class TextUpdateRequest(BaseModel):
    """Request to replace the DSL text."""
    text: str


class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    label: str = "New Node"
    shape: NodeShape = NodeShape.RECTANGLE
    x: Optional[float] = None
    y: Optional[float] = None
    style: Optional[NodeStylePatch] = None


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    label: Optional[str] = None
    shape: Optional[NodeShape] = None
    style: Optional[NodeStylePatch] = None
    x: Optional[float] = None
    y: Optional[float] = None


class CreateEdgeRequest(BaseModel):
    """Request to create a new edge."""
    source: str = ""
    target: str = ""
    label: Optional[str] = None
    arrow_type: ArrowType = ArrowType.ARROW

    @model_validator(mode="before")
    @classmethod
    def accept_endpoint_aliases(cls, data: Any) -> Any:
        return _endpoint_aliases(data)


class UpdateEdgeRequest(BaseModel):
    """Request to update an existing edge."""
    label: Optional[str] = None
    arrow_type: Optional[ArrowType] = None
    style: Optional[EdgeStylePatch] = None


class DirectionRequest(BaseModel):
    direction: Direction


class SelectionRequest(BaseModel):
    node_ids: list[str] = Field(default_factory=list)
    edge_ids: list[str] = Field(default_factory=list)


class EditingRequest(BaseModel):
    node_id: Optional[str] = None
