#!/usr/bin/env python3
"""
flowsync MCP Server

Provides MCP tools for AI agents to edit a flow diagram either as DSL text
or as a node/edge graph. All changes go through the flowsync backend, so
the other representation is updated and every connected editor is notified
over WebSocket.
"""

import os
import httpx
from mcp.server.fastmcp import FastMCP
from typing import Optional
import json

# Backend API URL
API_BASE = os.environ.get("FLOWSYNC_API", "http://127.0.0.1:8765/api")

# Create MCP server
mcp = FastMCP("flowsync")


# --- HTTP Client Helper ---

def api_request(method: str, endpoint: str, **kwargs) -> dict:
    """Make a request to the flowsync backend."""
    url = f"{API_BASE}{endpoint}"
    with httpx.Client(timeout=30.0) as client:
        if method == "GET":
            response = client.get(url, params=kwargs.get("params"))
        elif method == "POST":
            response = client.post(url, json=kwargs.get("json"))
        elif method == "PUT":
            response = client.put(url, json=kwargs.get("json"))
        elif method == "PATCH":
            response = client.patch(url, json=kwargs.get("json"))
        elif method == "DELETE":
            response = client.delete(url)
        else:
            raise ValueError(f"Unknown method: {method}")

        # A text that fails to parse is a normal answer, not a transport error
        if response.status_code == 422:
            return response.json()
        if response.status_code >= 400:
            error = response.json().get("detail", "Unknown error")
            raise RuntimeError(f"API error: {error}")

        return response.json()


# ============================================================================
# TEXT TOOLS
# ============================================================================

@mcp.tool()
def flow_get_text() -> str:
    """
    Get the current flow-diagram DSL text and the sync status.

    Use this to read the diagram the way the user sees it in the text editor.
    """
    result = api_request("GET", "/text")
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_set_text(text: str) -> str:
    """
    Replace the whole DSL text.

    Args:
        text: Complete diagram text, starting with a header such as
            "flowchart TD". Edges look like "A[Start] -->|label| B{Check}".

    Returns the parsed graph plus diagnostics for any lines that were
    skipped. If the text does not parse, the graph keeps its previous state
    and the error is returned.
    """
    result = api_request("PUT", "/text", json={"text": text})
    return json.dumps(result, indent=2)


# ============================================================================
# GRAPH TOOLS
# ============================================================================

@mcp.tool()
def flow_get_graph() -> str:
    """
    Get the current graph: nodes (id, label, shape, style, position), edges
    (source, target, label, arrow type, style), selection and edit focus.
    """
    result = api_request("GET", "/graph")
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_add_node(
    label: str,
    shape: str = "rectangle",
    x: Optional[float] = None,
    y: Optional[float] = None
) -> str:
    """
    Create a new node.

    Args:
        label: Display text for the node
        shape: rectangle, rounded, stadium, diamond, hexagon, parallelogram,
            cylinder, circle, subroutine or asymmetric
        x: X coordinate on canvas (optional)
        y: Y coordinate on canvas (optional)

    Returns the created node with its generated ID.
    """
    payload = {"label": label, "shape": shape}
    if x is not None and y is not None:
        payload["x"] = x
        payload["y"] = y
    result = api_request("POST", "/nodes", json=payload)
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_update_node(
    node_id: str,
    label: Optional[str] = None,
    shape: Optional[str] = None,
    fill: Optional[str] = None,
    stroke: Optional[str] = None,
    text_color: Optional[str] = None
) -> str:
    """
    Modify an existing node's label, shape or colors.

    Args:
        node_id: ID of the node to update
        label: New display text (optional)
        shape: New shape (optional)
        fill: Background hex color (optional)
        stroke: Border hex color (optional)
        text_color: Text hex color (optional)

    Only provided fields are updated; others remain unchanged.
    """
    updates = {}
    if label is not None:
        updates["label"] = label
    if shape is not None:
        updates["shape"] = shape

    style = {}
    if fill is not None:
        style["background_color"] = fill
    if stroke is not None:
        style["border_color"] = stroke
    if text_color is not None:
        style["text_color"] = text_color
    if style:
        updates["style"] = style

    result = api_request("PATCH", f"/nodes/{node_id}", json=updates)
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_delete_node(node_id: str) -> str:
    """
    Remove a node and all its connected edges.

    Args:
        node_id: ID of the node to delete
    """
    result = api_request("DELETE", f"/nodes/{node_id}")
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_add_edge(
    source: str,
    target: str,
    label: Optional[str] = None,
    arrow_type: str = "arrow"
) -> str:
    """
    Connect two nodes.

    Args:
        source: ID of the source node
        target: ID of the target node
        label: Text shown on the connection (optional)
        arrow_type: arrow (-->), open (---), dotted (-.->), thick (==>),
            circle (--o) or cross (--x)
    """
    result = api_request("POST", "/edges", json={
        "source": source,
        "target": target,
        "label": label,
        "arrow_type": arrow_type,
    })
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_delete_edge(edge_id: str) -> str:
    """
    Remove a connection.

    Args:
        edge_id: ID of the edge to delete
    """
    result = api_request("DELETE", f"/edges/{edge_id}")
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_set_direction(direction: str) -> str:
    """
    Change the flow direction and re-layout the graph.

    Args:
        direction: TB, TD, BT, RL or LR
    """
    result = api_request("PUT", "/direction", json={"direction": direction})
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_sync_now() -> str:
    """
    Write pending graph edits to the text immediately.

    Graph edits reach the text after a short quiet period; call this before
    flow_get_text() when you need the text to reflect edits made just now.
    """
    result = api_request("POST", "/sync/flush")
    return json.dumps(result, indent=2)


@mcp.tool()
def flow_validate() -> str:
    """
    Check the graph for structural issues and for labels or ids that the
    text form cannot carry.
    """
    result = api_request("GET", "/validate")
    return json.dumps(result, indent=2)


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    mcp.run()
