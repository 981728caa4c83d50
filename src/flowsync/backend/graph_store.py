"""
Graph Store - Owns the live flow graph plus selection and edit focus.

This module implements:
- One GraphDocument per store (callers create and inject the store)
- O(1) node/edge lookups via index dictionaries
- The mutation API used by the graphical editor and the sync coordinator
- Change callbacks tagged with what kind of change happened
"""

import logging
from enum import Enum
from typing import Optional, Callable, Union

from ..core.layout import compute_positions
from ..core.models import (
    ArrowType, DiagramType, Direction, EdgeStyle, EdgeStylePatch, GraphDocument,
    GraphEdge, GraphNode, NodeShape, NodeStyle, NodeStylePatch, Position,
)

logger = logging.getLogger(__name__)


class GraphChange(str, Enum):
    """What a mutation touched. The sync coordinator reacts per kind."""
    NODES = "nodes"
    EDGES = "edges"
    POSITION = "position"
    DIRECTION = "direction"
    REPLACED = "replaced"
    SELECTION = "selection"


StylePatch = Union[dict, NodeStylePatch, EdgeStylePatch]


def _patch_values(patch: Optional[StylePatch]) -> dict:
    if patch is None:
        return {}
    if isinstance(patch, dict):
        return {k: v for k, v in patch.items() if v is not None}
    return patch.model_dump(exclude_none=True)


class GraphStore:
    """
    Holds a flow graph and exposes the operations that may change it.

    Features:
    - O(1) node/edge lookups via index dictionaries
    - Edges-by-node index so deleting a node drops its edges cheaply
    - Selection and edit focus that never point at deleted ids
    - Change callbacks for real-time sync
    """

    def __init__(self, document: Optional[GraphDocument] = None):
        self._document = document or GraphDocument()
        self._selected_node_ids: list[str] = []
        self._selected_edge_ids: list[str] = []
        self._editing_node_id: Optional[str] = None
        self._on_change_callbacks: list[Callable[[GraphChange], None]] = []

        # O(1) lookup indexes
        self._edge_index: dict[str, GraphEdge] = {}     # edge_id -> GraphEdge
        self._edges_by_node: dict[str, set[str]] = {}   # node_id -> set of edge_ids
        self._rebuild_indexes()

    # --- Index Management ---

    def _rebuild_indexes(self):
        """Rebuild all indexes from the current document."""
        self._edge_index.clear()
        self._edges_by_node.clear()
        for edge in self._document.edges:
            self._index_edge(edge)

    def _index_edge(self, edge: GraphEdge):
        """Add an edge to the indexes."""
        self._edge_index[edge.id] = edge
        self._edges_by_node.setdefault(edge.source, set()).add(edge.id)
        self._edges_by_node.setdefault(edge.target, set()).add(edge.id)

    def _unindex_edge(self, edge: GraphEdge):
        """Remove an edge from the indexes."""
        self._edge_index.pop(edge.id, None)
        if edge.source in self._edges_by_node:
            self._edges_by_node[edge.source].discard(edge.id)
        if edge.target in self._edges_by_node:
            self._edges_by_node[edge.target].discard(edge.id)

    # --- Properties ---

    @property
    def document(self) -> GraphDocument:
        """Get the current document."""
        return self._document

    @property
    def direction(self) -> Direction:
        return self._document.direction

    @property
    def diagram_type(self) -> DiagramType:
        return self._document.type

    @property
    def selected_node_ids(self) -> list[str]:
        return list(self._selected_node_ids)

    @property
    def selected_edge_ids(self) -> list[str]:
        return list(self._selected_edge_ids)

    @property
    def editing_node_id(self) -> Optional[str]:
        return self._editing_node_id

    # --- Change Callbacks ---

    def on_change(self, callback: Callable[[GraphChange], None]):
        """Register a callback for graph changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self, change: GraphChange):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            try:
                callback(change)
            except Exception:
                # A broken listener must not undo or block the mutation
                logger.exception("Graph change callback failed (%s)", change.value)

    # --- Node Operations ---

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Get a node by ID (O(1) lookup)."""
        return self._document.nodes.get(node_id)

    def add_node(
        self,
        label: str,
        shape: NodeShape = NodeShape.RECTANGLE,
        position: Optional[Position] = None,
        style: Optional[StylePatch] = None
    ) -> GraphNode:
        """Add a new node with a generated id."""
        node = GraphNode(
            label=label,
            shape=NodeShape(shape),
            style=NodeStyle(**_patch_values(style)),
            position=position,
        )
        self._document.nodes[node.id] = node
        self._notify_change(GraphChange.NODES)
        return node

    def update_node(
        self,
        node_id: str,
        label: Optional[str] = None,
        shape: Optional[NodeShape] = None,
        style: Optional[StylePatch] = None,
        position: Optional[Position] = None
    ) -> Optional[GraphNode]:
        """
        Update an existing node. Only provided fields change; `style` is
        merged over the current style.

        A call that only moves the node is reported as a POSITION change.
        """
        node = self._document.nodes.get(node_id)
        if node is None:
            return None

        content_changed = False
        if label is not None:
            node.label = label
            content_changed = True
        if shape is not None:
            node.shape = NodeShape(shape)
            content_changed = True
        style_values = _patch_values(style)
        if style_values:
            node.style = NodeStyle(**{**node.style.model_dump(), **style_values})
            content_changed = True
        if position is not None:
            node.position = position

        if content_changed:
            self._notify_change(GraphChange.NODES)
        elif position is not None:
            self._notify_change(GraphChange.POSITION)
        return node

    def move_node(self, node_id: str, position: Position) -> Optional[GraphNode]:
        """Move a node on the canvas (what a drag does)."""
        return self.update_node(node_id, position=position)

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and all connected edges."""
        if node_id not in self._document.nodes:
            return False

        del self._document.nodes[node_id]

        connected_edge_ids = self._edges_by_node.pop(node_id, set())
        if connected_edge_ids:
            self._document.edges = [e for e in self._document.edges if e.id not in connected_edge_ids]
            for edge_id in connected_edge_ids:
                edge = self._edge_index.get(edge_id)
                if edge:
                    self._unindex_edge(edge)

        self._selected_node_ids = [i for i in self._selected_node_ids if i != node_id]
        self._selected_edge_ids = [i for i in self._selected_edge_ids if i not in connected_edge_ids]
        if self._editing_node_id == node_id:
            self._editing_node_id = None

        self._notify_change(GraphChange.NODES)
        return True

    # --- Edge Operations ---

    def get_edge(self, edge_id: str) -> Optional[GraphEdge]:
        """Get an edge by ID (O(1) lookup)."""
        return self._edge_index.get(edge_id)

    def get_edges_for_node(self, node_id: str) -> list[GraphEdge]:
        """Get all edges connected to a node (O(1) index lookup)."""
        return [self._edge_index[eid] for eid in self._edges_by_node.get(node_id, ()) if eid in self._edge_index]

    def add_edge(
        self,
        source: str,
        target: str,
        label: Optional[str] = None,
        arrow_type: ArrowType = ArrowType.ARROW
    ) -> GraphEdge:
        """Add a new edge between two existing nodes."""
        if not source or not target:
            raise ValueError("Both source and target nodes must be specified")
        if source not in self._document.nodes:
            raise ValueError(f"Source node not found: {source}")
        if target not in self._document.nodes:
            raise ValueError(f"Target node not found: {target}")

        edge = GraphEdge(
            source=source,
            target=target,
            label=label or None,
            arrow_type=ArrowType(arrow_type),
        )
        self._document.edges.append(edge)
        self._index_edge(edge)
        self._notify_change(GraphChange.EDGES)
        return edge

    def update_edge(
        self,
        edge_id: str,
        label: Optional[str] = None,
        arrow_type: Optional[ArrowType] = None,
        style: Optional[StylePatch] = None
    ) -> Optional[GraphEdge]:
        """Update an existing edge. An empty label removes the label."""
        edge = self._edge_index.get(edge_id)
        if edge is None:
            return None

        if label is not None:
            edge.label = label or None
        if arrow_type is not None:
            edge.arrow_type = ArrowType(arrow_type)
        style_values = _patch_values(style)
        if style_values:
            edge.style = EdgeStyle(**{**edge.style.model_dump(), **style_values})

        self._notify_change(GraphChange.EDGES)
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Delete an edge."""
        edge = self._edge_index.get(edge_id)
        if edge is None:
            return False

        self._document.edges = [e for e in self._document.edges if e.id != edge_id]
        self._unindex_edge(edge)
        self._selected_edge_ids = [i for i in self._selected_edge_ids if i != edge_id]
        self._notify_change(GraphChange.EDGES)
        return True

    # --- Whole-document Operations ---

    def replace_all(
        self,
        nodes: list[GraphNode],
        edges: list[GraphEdge],
        direction: Direction,
        diagram_type: DiagramType
    ):
        """
        Swap in a freshly parsed graph in one step.

        Selection and edit focus are cleared because the old ids may not
        exist anymore.
        """
        self._document = GraphDocument(
            type=diagram_type,
            direction=direction,
            nodes={n.id: n for n in nodes},
            edges=list(edges),
        )
        self._rebuild_indexes()
        self._selected_node_ids = []
        self._selected_edge_ids = []
        self._editing_node_id = None
        self._notify_change(GraphChange.REPLACED)

    def set_direction(self, direction: Direction):
        """Change the flow direction and lay the graph out again."""
        direction = Direction(direction)
        nodes = self._document.node_list()
        positions = compute_positions(nodes, self._document.edges, direction)
        for node in nodes:
            node.position = positions[node.id]
        self._document.direction = direction
        self._notify_change(GraphChange.DIRECTION)

    # --- Selection & Edit Focus ---

    def set_selection(self, node_ids: list[str], edge_ids: Optional[list[str]] = None):
        """Select nodes and edges; ids that do not exist are dropped."""
        self._selected_node_ids = [i for i in node_ids if i in self._document.nodes]
        self._selected_edge_ids = [i for i in (edge_ids or []) if i in self._edge_index]
        self._notify_change(GraphChange.SELECTION)

    def clear_selection(self):
        self.set_selection([], [])

    def set_editing_node(self, node_id: Optional[str]) -> bool:
        """Focus a node for label editing (None clears the focus)."""
        if node_id is not None and node_id not in self._document.nodes:
            return False
        self._editing_node_id = node_id
        self._notify_change(GraphChange.SELECTION)
        return True

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "document": self._document.to_json_dict(),
            "selected_node_ids": self.selected_node_ids,
            "selected_edge_ids": self.selected_edge_ids,
            "editing_node_id": self._editing_node_id,
        }
