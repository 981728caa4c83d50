#!/usr/bin/env python3
"""flowsync CLI - local text/graph conversions and a client for the sync backend."""

import argparse
import json
import os
import sys
import urllib.request
import urllib.error
import urllib.parse

from .core import (
    ArrowType, Direction, GraphDocument, NodeShape, flow_layout, parse, serialize,
    validate_document, validation_summary,
)

API_BASE = os.environ.get("FLOWSYNC_API", "http://127.0.0.1:8765/api")


def _json_out(data, code=0):
    print(json.dumps(data))
    sys.exit(code)


def _read_source(path):
    """Read a file, or stdin when path is '-'."""
    if path == "-":
        return sys.stdin.read()
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        _json_out({"status": "error", "error": f"Cannot read {path}: {e.strerror}"}, 1)


def _api_request(method, endpoint, data=None, params=None, raw=False):
    """Make a request to the flowsync backend."""
    url = f"{API_BASE}{endpoint}"

    if params:
        filtered = {k: v for k, v in params.items() if v is not None}
        if filtered:
            url = f"{url}?{urllib.parse.urlencode(filtered)}"

    headers = {"Content-Type": "application/json"}
    body = json.dumps(data).encode() if data is not None else None

    req = urllib.request.Request(url, data=body, headers=headers, method=method)

    try:
        with urllib.request.urlopen(req, timeout=30) as response:
            payload = response.read()
            return payload if raw else json.loads(payload.decode())
    except urllib.error.HTTPError as e:
        error_body = e.read().decode()
        try:
            error_data = json.loads(error_body)
        except json.JSONDecodeError:
            _json_out({"status": "error", "error": f"API error ({e.code}): {error_body}"}, 1)
        # Parse failures come back as a full result, not as a FastAPI detail
        if "detail" in error_data:
            _json_out({"status": "error", "error": f"API error: {error_data['detail']}"}, 1)
        _json_out(error_data, 1)
    except urllib.error.URLError as e:
        _json_out({"status": "error", "error": f"Connection failed: {e.reason}. Is the flowsync backend running?"}, 1)


def _parse_or_exit(text):
    result = parse(text)
    if not result.ok:
        _json_out(result.to_dict(), 1)
    return result


# ── Local ────────────────────────────────────────────────────────────────────

def cmd_parse(args):
    result = parse(_read_source(args.file), layout=not args.no_layout)
    _json_out(result.to_dict(), 0 if result.ok else 1)


def cmd_format(args):
    result = _parse_or_exit(_read_source(args.file))
    print(serialize(result.document))


def cmd_validate(args):
    result = _parse_or_exit(_read_source(args.file))
    issues = result.diagnostics + validate_document(result.document)
    _json_out({
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    })


def _read_document(path):
    """Load a graph JSON document from a file or stdin."""
    source = _read_source(path)
    try:
        return GraphDocument.from_json_dict(json.loads(source))
    except (ValueError, TypeError, AttributeError) as e:
        _json_out({"status": "error", "error": f"Invalid graph document in {path}: {e}"}, 1)


def cmd_layout(args):
    document = _read_document(args.file)
    direction = Direction(args.direction) if args.direction else document.direction
    document.direction = direction
    flow_layout(document.node_list(), document.edges, direction)
    _json_out({"success": True, "document": document.to_json_dict()})


def cmd_render(args):
    document = _read_document(args.file)
    print(serialize(document))


def cmd_serve(args):
    from .backend.config import get_settings
    from .backend.main import run

    settings = get_settings()
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    run(settings)


# ── Text ─────────────────────────────────────────────────────────────────────

def cmd_get_text(args):
    result = _api_request("GET", "/text")
    if args.raw:
        print(result["text"])
        sys.exit(0)
    _json_out(result)


def cmd_set_text(args):
    _json_out(_api_request("PUT", "/text", data={"text": _read_source(args.file)}))


def cmd_flush(args):
    _json_out(_api_request("POST", "/sync/flush"))


# ── Graph ────────────────────────────────────────────────────────────────────

def cmd_get_graph(args):
    _json_out(_api_request("GET", "/graph"))


def cmd_add_node(args):
    data = {"label": args.label, "shape": args.shape}
    if args.x is not None and args.y is not None:
        data["x"] = args.x
        data["y"] = args.y
    _json_out(_api_request("POST", "/nodes", data=data))


def cmd_update_node(args):
    updates = {}
    if args.label is not None:
        updates["label"] = args.label
    if args.shape is not None:
        updates["shape"] = args.shape
    if args.x is not None:
        updates["x"] = args.x
    if args.y is not None:
        updates["y"] = args.y

    style = {}
    if args.fill is not None:
        style["background_color"] = args.fill
    if args.stroke is not None:
        style["border_color"] = args.stroke
    if args.text_color is not None:
        style["text_color"] = args.text_color
    if style:
        updates["style"] = style

    _json_out(_api_request("PATCH", f"/nodes/{args.node_id}", data=updates))


def cmd_delete_node(args):
    _json_out(_api_request("DELETE", f"/nodes/{args.node_id}"))


def cmd_add_edge(args):
    _json_out(_api_request("POST", "/edges", data={
        "source": args.source,
        "target": args.target,
        "label": args.label,
        "arrow_type": args.arrow_type,
    }))


def cmd_update_edge(args):
    updates = {}
    if args.label is not None:
        updates["label"] = args.label
    if args.arrow_type is not None:
        updates["arrow_type"] = args.arrow_type
    if args.stroke is not None:
        updates["style"] = {"stroke_color": args.stroke}

    _json_out(_api_request("PATCH", f"/edges/{args.edge_id}", data=updates))


def cmd_delete_edge(args):
    _json_out(_api_request("DELETE", f"/edges/{args.edge_id}"))


def cmd_set_direction(args):
    _json_out(_api_request("PUT", "/direction", data={"direction": args.direction}))


def cmd_validate_remote(args):
    _json_out(_api_request("GET", "/validate"))


def cmd_export(args):
    content = _api_request("POST", "/export", data={"format": args.format}, raw=True)
    with open(args.output, "wb") as f:
        f.write(content)
    _json_out({"success": True, "output": args.output, "bytes": len(content)})


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser():
    parser = argparse.ArgumentParser(prog="flowsync", description="flowsync CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # Local
    p = sub.add_parser("parse", help="DSL text -> graph JSON")
    p.add_argument("file", help="DSL file, or - for stdin")
    p.add_argument("--no-layout", action="store_true")

    p = sub.add_parser("format", help="Normalize DSL text through a parse/serialize cycle")
    p.add_argument("file")

    p = sub.add_parser("validate", help="Report skipped lines and structural issues")
    p.add_argument("file")

    p = sub.add_parser("layout", help="Lay out a graph JSON document")
    p.add_argument("file")
    p.add_argument("--direction", choices=[d.value for d in Direction], default=None)

    p = sub.add_parser("render", help="Graph JSON -> DSL text")
    p.add_argument("file")

    p = sub.add_parser("serve", help="Run the sync backend")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)

    # Text
    p = sub.add_parser("get-text")
    p.add_argument("--raw", action="store_true")

    p = sub.add_parser("set-text")
    p.add_argument("file")

    sub.add_parser("flush")

    # Graph
    sub.add_parser("get-graph")

    p = sub.add_parser("add-node")
    p.add_argument("--label", required=True)
    p.add_argument("--shape", default=NodeShape.RECTANGLE.value, choices=[s.value for s in NodeShape])
    p.add_argument("--x", type=float, default=None)
    p.add_argument("--y", type=float, default=None)

    p = sub.add_parser("update-node")
    p.add_argument("--node-id", required=True)
    p.add_argument("--label", default=None)
    p.add_argument("--shape", default=None, choices=[s.value for s in NodeShape])
    p.add_argument("--x", type=float, default=None)
    p.add_argument("--y", type=float, default=None)
    p.add_argument("--fill", default=None)
    p.add_argument("--stroke", default=None)
    p.add_argument("--text-color", default=None)

    p = sub.add_parser("delete-node")
    p.add_argument("--node-id", required=True)

    p = sub.add_parser("add-edge")
    p.add_argument("--source", required=True)
    p.add_argument("--target", required=True)
    p.add_argument("--label", default=None)
    p.add_argument("--arrow-type", default=ArrowType.ARROW.value, choices=[a.value for a in ArrowType])

    p = sub.add_parser("update-edge")
    p.add_argument("--edge-id", required=True)
    p.add_argument("--label", default=None)
    p.add_argument("--arrow-type", default=None, choices=[a.value for a in ArrowType])
    p.add_argument("--stroke", default=None)

    p = sub.add_parser("delete-edge")
    p.add_argument("--edge-id", required=True)

    p = sub.add_parser("set-direction")
    p.add_argument("direction", choices=[d.value for d in Direction])

    sub.add_parser("validate-remote")

    p = sub.add_parser("export")
    p.add_argument("--format", default="png", choices=["png", "svg", "pdf"])
    p.add_argument("--output", required=True)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    cmd_map = {
        "parse": cmd_parse,
        "format": cmd_format,
        "validate": cmd_validate,
        "layout": cmd_layout,
        "render": cmd_render,
        "serve": cmd_serve,
        "get-text": cmd_get_text,
        "set-text": cmd_set_text,
        "flush": cmd_flush,
        "get-graph": cmd_get_graph,
        "add-node": cmd_add_node,
        "update-node": cmd_update_node,
        "delete-node": cmd_delete_node,
        "add-edge": cmd_add_edge,
        "update-edge": cmd_update_edge,
        "delete-edge": cmd_delete_edge,
        "set-direction": cmd_set_direction,
        "validate-remote": cmd_validate_remote,
        "export": cmd_export,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
