"""
flowsync Backend - FastAPI Application

This is the main entry point for the sync backend.
It provides:
- REST API for the text side (get/replace DSL text)
- REST API for the graph side (CRUD for nodes/edges, direction, selection)
- WebSocket endpoint for real-time updates
- A proxy to the external export service
- CORS configuration for local frontend development
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ..core import (
    ArrowType, CreateEdgeRequest, CreateNodeRequest, Direction, DirectionRequest,
    EditingRequest, NodeShape, Position, SelectionRequest, TextUpdateRequest,
    UpdateEdgeRequest, UpdateNodeRequest, validate_document, validation_summary,
)
from .config import Settings, get_settings
from .export import ExportClient, ExportError, ExportRequest, MEDIA_TYPES
from .graph_store import GraphStore, GraphChange
from .logging_config import configure_logging
from .sync import AsyncioScheduler, SyncCoordinator
from .websocket_manager import SyncEventType, WebSocketManager, is_ping

logger = logging.getLogger(__name__)


# --- Async change notification ---
# Bridge between the sync store/coordinator callbacks and async WebSocket broadcasts

class ChangeBroadcaster:
    """Collects change events and forwards them to WebSocket clients."""

    def __init__(self, ws_manager: WebSocketManager):
        self._ws_manager = ws_manager
        self._event = asyncio.Event()
        self._graph_dirty = False
        self._text: Optional[str] = None

    def on_graph_change(self, change: GraphChange):
        """Callback for store changes - sets event for async handler."""
        self._graph_dirty = True
        self._event.set()

    def on_text_replaced(self, text: str):
        """Callback for text produced from the graph."""
        self._text = text
        self._event.set()

    async def run(self):
        """Background task that broadcasts changes to WebSocket clients."""
        while True:
            await self._event.wait()
            self._event.clear()

            if self._graph_dirty:
                self._graph_dirty = False
                await self._ws_manager.notify_graph_updated()
            if self._text is not None:
                text, self._text = self._text, None
                await self._ws_manager.notify_text_updated(text)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    settings: Settings = app.state.settings

    store = GraphStore()
    coordinator = SyncCoordinator(store, AsyncioScheduler(), debounce_ms=settings.debounce_ms)
    ws_manager = WebSocketManager()
    broadcaster = ChangeBroadcaster(ws_manager)

    store.on_change(broadcaster.on_graph_change)
    coordinator.on_text_replaced(broadcaster.on_text_replaced)

    result = coordinator.text_changed(settings.initial_text)
    if result is not None and not result.ok:
        logger.warning("Initial text did not parse: %s", result.message)

    app.state.store = store
    app.state.coordinator = coordinator
    app.state.ws_manager = ws_manager
    app.state.export_client = ExportClient(settings.export_url, timeout=settings.export_timeout)

    broadcaster_task = asyncio.create_task(broadcaster.run())

    yield

    # Cleanup
    coordinator.cancel()
    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass


# --- Dependencies ---

def get_store(request: Request) -> GraphStore:
    return request.app.state.store


def get_coordinator(request: Request) -> SyncCoordinator:
    return request.app.state.coordinator


router = APIRouter(prefix="/api")


# --- Health Check ---

@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {"status": "ok", "connections": request.app.state.ws_manager.connection_count}


# --- Text Side ---

@router.get("/text")
async def get_text(coordinator: SyncCoordinator = Depends(get_coordinator)):
    """Get the current DSL text and the sync status."""
    return {"text": coordinator.text, "sync": coordinator.get_state()}


@router.put("/text")
async def put_text(request: TextUpdateRequest, coordinator: SyncCoordinator = Depends(get_coordinator)):
    """
    Replace the DSL text.

    On a parse failure the graph keeps its last good state and the error is
    returned with status 422.
    """
    result = coordinator.text_changed(request.text)
    if result is None:
        return {"success": True, "unchanged": True}
    if not result.ok:
        return JSONResponse(status_code=422, content=result.to_dict())
    return result.to_dict()


# --- Graph State ---

@router.get("/graph")
async def get_graph(store: GraphStore = Depends(get_store)):
    """Get the current graph, selection and edit focus."""
    return store.get_state()


@router.put("/direction")
async def set_direction(request: DirectionRequest, store: GraphStore = Depends(get_store),
                        coordinator: SyncCoordinator = Depends(get_coordinator)):
    """Change the flow direction; the text is rewritten immediately."""
    store.set_direction(request.direction)
    return {"success": True, "direction": store.direction.value, "text": coordinator.text}


@router.put("/selection")
async def set_selection(request: SelectionRequest, store: GraphStore = Depends(get_store)):
    """Replace the current selection."""
    store.set_selection(request.node_ids, request.edge_ids)
    return {
        "success": True,
        "selected_node_ids": store.selected_node_ids,
        "selected_edge_ids": store.selected_edge_ids,
    }


@router.put("/editing")
async def set_editing(request: EditingRequest, store: GraphStore = Depends(get_store)):
    """Focus a node for label editing, or clear the focus."""
    if not store.set_editing_node(request.node_id):
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "editing_node_id": store.editing_node_id}


@router.post("/sync/flush")
async def flush_sync(coordinator: SyncCoordinator = Depends(get_coordinator)):
    """Write pending graph edits to the text now instead of after the debounce."""
    flushed = coordinator.flush()
    return {"success": True, "flushed": flushed, "text": coordinator.text}


# --- Node Operations ---

@router.post("/nodes")
async def create_node(request: CreateNodeRequest, store: GraphStore = Depends(get_store)):
    """Create a new node."""
    position = None
    if request.x is not None and request.y is not None:
        position = Position(x=request.x, y=request.y)
    try:
        node = store.add_node(request.label, request.shape, position, style=request.style)
        return {"success": True, "node": node.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/nodes/{node_id}")
async def get_node(node_id: str, store: GraphStore = Depends(get_store)):
    """Get a specific node."""
    node = store.get_node(node_id)
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@router.patch("/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest, store: GraphStore = Depends(get_store)):
    """Update a node. Sending only x/y moves it without touching the text."""
    node = store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")

    position = None
    if request.x is not None or request.y is not None:
        current = node.position or Position()
        position = Position(
            x=request.x if request.x is not None else current.x,
            y=request.y if request.y is not None else current.y,
        )
    try:
        node = store.update_node(
            node_id,
            label=request.label,
            shape=request.shape,
            style=request.style,
            position=position,
        )
        return {"success": True, "node": node.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str, store: GraphStore = Depends(get_store)):
    """Delete a node and its connected edges."""
    if store.delete_node(node_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Node not found")


# --- Edge Operations ---

@router.post("/edges")
async def create_edge(request: CreateEdgeRequest, store: GraphStore = Depends(get_store)):
    """Create a new edge."""
    try:
        edge = store.add_edge(request.source, request.target, request.label, request.arrow_type)
        return {"success": True, "edge": edge.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/edges/{edge_id}")
async def get_edge(edge_id: str, store: GraphStore = Depends(get_store)):
    """Get a specific edge."""
    edge = store.get_edge(edge_id)
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@router.patch("/edges/{edge_id}")
async def update_edge(edge_id: str, request: UpdateEdgeRequest, store: GraphStore = Depends(get_store)):
    """Update an edge."""
    try:
        edge = store.update_edge(
            edge_id,
            label=request.label,
            arrow_type=request.arrow_type,
            style=request.style,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@router.delete("/edges/{edge_id}")
async def delete_edge(edge_id: str, store: GraphStore = Depends(get_store)):
    """Delete an edge."""
    if store.delete_edge(edge_id):
        return {"success": True}
    raise HTTPException(status_code=404, detail="Edge not found")


# --- Enums for Frontend ---

@router.get("/enums/shapes")
async def get_shapes():
    """Get available node shapes."""
    return {"shapes": [s.value for s in NodeShape]}


@router.get("/enums/arrows")
async def get_arrows():
    """Get available arrow types."""
    return {"arrows": [a.value for a in ArrowType]}


@router.get("/enums/directions")
async def get_directions():
    """Get available flow directions."""
    return {"directions": [d.value for d in Direction]}


# --- Validation ---

@router.get("/validate")
async def validate_current_graph(store: GraphStore = Depends(get_store)):
    """
    Validate the current graph for structural issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = validate_document(store.document)
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


# --- Export ---

@router.post("/export")
async def export_diagram(request: ExportRequest, http_request: Request,
                         coordinator: SyncCoordinator = Depends(get_coordinator)):
    """Render the given (or current) text through the export service."""
    code = request.code if request.code is not None else coordinator.text
    client: ExportClient = http_request.app.state.export_client
    try:
        content = await client.export(code, request.format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExportError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(
        content=content,
        media_type=MEDIA_TYPES[request.format],
        headers={"Content-Disposition": f'attachment; filename="diagram.{request.format.value}"'},
    )


# --- WebSocket ---

async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive graph_updated / text_updated events.
    """
    ws_manager: WebSocketManager = websocket.app.state.ws_manager
    client_id = await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if is_ping(data):
                await ws_manager.send(client_id, {"type": SyncEventType.PONG.value})
    except WebSocketDisconnect:
        await ws_manager.disconnect(client_id)
    except Exception:
        logger.exception("WebSocket client %d failed", client_id)
        await ws_manager.disconnect(client_id)


# --- FastAPI App ---

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; state is created fresh in the lifespan."""
    settings = settings or get_settings()

    app = FastAPI(
        title="flowsync API",
        description="Keeps flow-diagram DSL text and its node/edge graph in sync",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.add_api_websocket_route("/ws", websocket_endpoint)
    return app


def run(settings: Optional[Settings] = None):
    """Run the backend with uvicorn."""
    import uvicorn

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
