"""
Layout for flow diagrams.

Nodes are ranked by breadth-first depth from the roots (nodes nothing points
to) and each rank is laid out as one row (TB/TD/BT) or one column (LR/RL).
Nodes within a rank are centered around the rank's axis.

The layout is a pure function of (nodes, edges, direction): same inputs,
same positions. It never raises, whatever the graph looks like (empty,
cyclic, disconnected, self loops, dangling edge references).
"""

from collections import defaultdict
from typing import TYPE_CHECKING

from .models import Direction, Position

if TYPE_CHECKING:
    from .models import GraphNode, GraphEdge


# Default layout parameters
START_X = 100
START_Y = 100
# TB/TD/BT: ranks stack downwards, siblings spread along x
VERTICAL_LEVEL_SPACING = 150
VERTICAL_SIBLING_SPACING = 180
# LR/RL: ranks stack rightwards, siblings spread along y
HORIZONTAL_LEVEL_SPACING = 250
HORIZONTAL_SIBLING_SPACING = 120

HORIZONTAL_DIRECTIONS = (Direction.LR, Direction.RL)
REVERSED_DIRECTIONS = (Direction.BT, Direction.RL)


def compute_levels(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"]
) -> dict[str, int]:
    """
    Assign each node its BFS depth from the roots.

    Roots are nodes that are no edge's target. When every node is a target
    (a single cycle, say) the first node is used as the only root. All roots
    start in one queue, in input order, and a node keeps the level of its
    first visit. Nodes no root reaches get level 0.

    Args:
        nodes: Nodes to rank, in document order
        edges: Edges defining the hierarchy

    Returns:
        Mapping of node id to level
    """
    if not nodes:
        return {}

    # Build adjacency list (parent -> children)
    children: dict[str, list[str]] = {n.id: [] for n in nodes}
    has_parent: set[str] = set()

    for edge in edges:
        if edge.source in children and edge.target in children:
            children[edge.source].append(edge.target)
            has_parent.add(edge.target)

    roots = [n.id for n in nodes if n.id not in has_parent]
    if not roots:
        roots = [nodes[0].id]

    levels: dict[str, int] = {}
    queue = [(r, 0) for r in roots]

    while queue:
        node_id, level = queue.pop(0)
        if node_id in levels:
            continue
        levels[node_id] = level
        for child in children[node_id]:
            if child not in levels:
                queue.append((child, level + 1))

    for node in nodes:
        levels.setdefault(node.id, 0)

    return levels


def compute_positions(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"],
    direction: Direction
) -> dict[str, Position]:
    """
    Compute canvas positions without touching the nodes.

    Args:
        nodes: Nodes to arrange, in document order
        edges: Edges defining the hierarchy
        direction: Flow direction of the document

    Returns:
        Mapping of node id to position
    """
    levels = compute_levels(nodes, edges)
    if not levels:
        return {}

    groups: dict[int, list[str]] = defaultdict(list)
    for node in nodes:
        groups[levels[node.id]].append(node.id)

    max_level = max(levels.values())
    horizontal = direction in HORIZONTAL_DIRECTIONS
    reverse = direction in REVERSED_DIRECTIONS

    if horizontal:
        level_spacing = HORIZONTAL_LEVEL_SPACING
        sibling_spacing = HORIZONTAL_SIBLING_SPACING
    else:
        level_spacing = VERTICAL_LEVEL_SPACING
        sibling_spacing = VERTICAL_SIBLING_SPACING

    positions: dict[str, Position] = {}
    for level, group in groups.items():
        adjusted = max_level - level if reverse else level
        center = (len(group) - 1) / 2
        for index, node_id in enumerate(group):
            offset = (index - center) * sibling_spacing
            if horizontal:
                positions[node_id] = Position(
                    x=START_X + adjusted * level_spacing,
                    y=START_Y + offset,
                )
            else:
                positions[node_id] = Position(
                    x=START_X + offset,
                    y=START_Y + adjusted * level_spacing,
                )

    return positions


def flow_layout(
    nodes: list["GraphNode"],
    edges: list["GraphEdge"],
    direction: Direction = Direction.TD
) -> list["GraphNode"]:
    """
    Arrange nodes in ranks following the flow direction.

    Args:
        nodes: Nodes to arrange
        edges: Edges defining the hierarchy
        direction: TB/TD/BT stack ranks vertically, LR/RL horizontally;
            BT and RL put the roots at the bottom/right

    Returns:
        The same list of nodes (modified in-place)
    """
    positions = compute_positions(nodes, edges, direction)
    for node in nodes:
        node.position = positions[node.id]
    return nodes
