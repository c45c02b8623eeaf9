"""
flowsketch Backend - FastAPI Application

Serves one Document per app instance. It provides:
- REST API for the diagram (parse, layout, CRUD for nodes/edges)
- Validation and SVG/PNG export endpoints
- WebSocket endpoint broadcasting every accepted change
- CORS configuration for local frontend development

Run with `flowsketch serve`, or directly:

    uvicorn --factory flowsketch.backend.main:create_app
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .. import config
from ..core.document import Document
from ..core.export import (
    CairoExporter,
    EmptyDiagramError,
    Exporter,
    ExportError,
    export_png,
    export_svg,
    to_data_uri,
)
from ..core.models import (
    CreateEdgeRequest,
    CreateNodeRequest,
    NodeShape,
    ParseRequest,
    UpdateEdgeRequest,
    UpdateNodeRequest,
)
from ..core.validation import validate_graph, validation_summary
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


def create_app(document: Document | None = None, exporter: Exporter | None = None) -> FastAPI:
    """
    Build the FastAPI app around `document`.

    Args:
        document: The diagram to serve (a new empty one by default)
        exporter: Rasterizer for PNG export (cairosvg by default)
    """
    document = document if document is not None else Document()
    exporter = exporter if exporter is not None else CairoExporter()
    ws_manager = WebSocketManager()

    # --- Async change notification ---
    # Bridge between sync Document callbacks and async WebSocket broadcasts

    def on_diagram_change(snapshot: dict):
        """Callback for diagram changes - sets event for async handler."""
        event = app.state.change_event
        if event is not None:
            event.set()

    async def change_broadcaster(event: asyncio.Event):
        """Background task that broadcasts changes to WebSocket clients."""
        while True:
            await event.wait()
            event.clear()
            await ws_manager.notify_diagram_updated(document.graph.snapshot())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan handler for startup/shutdown tasks."""
        app.state.change_event = asyncio.Event()
        broadcaster_task = asyncio.create_task(change_broadcaster(app.state.change_event))
        logger.info("flowsketch backend started")

        yield

        # Cleanup
        app.state.change_event = None
        broadcaster_task.cancel()
        try:
            await broadcaster_task
        except asyncio.CancelledError:
            pass

    app = FastAPI(
        title="flowsketch API",
        description="Backend API for the flowsketch diagram engine",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.document = document
    app.state.exporter = exporter
    app.state.ws_manager = ws_manager
    app.state.change_event = None

    document.on_change(on_diagram_change)

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "connections": ws_manager.connection_count}

    # --- Diagram State ---

    @app.get("/api/diagram")
    async def get_diagram():
        """Get the current diagram state."""
        return document.get_state()

    @app.post("/api/diagram/parse")
    async def parse_diagram(request: ParseRequest):
        """Replace the diagram with parsed (and laid out) flowchart text."""
        graph = document.load_text(request.text)
        return {"success": True, "diagram": graph.snapshot(), "direction": graph.direction}

    @app.post("/api/diagram/layout")
    async def relayout_diagram():
        """Re-run automatic layout on the current diagram."""
        graph = document.relayout()
        return {"success": True, "diagram": graph.snapshot()}

    # --- Node Operations ---

    @app.post("/api/nodes")
    async def create_node(request: CreateNodeRequest):
        """Create a new node."""
        node_id = document.add_node(
            label=request.label,
            shape=request.shape,
            position=(request.x, request.y)
        )
        node = document.graph.get_node(node_id)
        return {"success": True, "node": node.model_dump(mode="json")}

    @app.patch("/api/nodes/{node_id}")
    async def update_node(node_id: str, request: UpdateNodeRequest):
        """Update a node's label, shape or position."""
        node = document.graph.get_node(node_id)
        if node is None:
            raise HTTPException(status_code=404, detail="Node not found")

        if request.label is not None:
            document.rename_node(node_id, request.label)
        if request.shape is not None:
            document.set_shape(node_id, request.shape)
        if request.x is not None or request.y is not None:
            x = request.x if request.x is not None else node.x
            y = request.y if request.y is not None else node.y
            document.move_node(node_id, x, y)

        return {"success": True, "node": document.graph.get_node(node_id).model_dump(mode="json")}

    @app.delete("/api/nodes/{node_id}")
    async def delete_node(node_id: str):
        """Delete a node and its connected edges."""
        if document.delete_node(node_id):
            return {"success": True}
        raise HTTPException(status_code=404, detail="Node not found")

    # --- Edge Operations ---

    @app.post("/api/edges")
    async def create_edge(request: CreateEdgeRequest):
        """Create a new edge between two existing nodes."""
        graph = document.graph
        for node_id in (request.source, request.target):
            if graph.get_node(node_id) is None:
                raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

        if not document.add_edge(request.source, request.target, request.label):
            return {"success": False, "message": "Self-loops are not allowed"}

        index = len(document.graph.edges) - 1
        return {
            "success": True,
            "index": index,
            "edge": document.graph.edges[index].model_dump(mode="json")
        }

    @app.patch("/api/edges/{index}")
    async def update_edge(index: int, request: UpdateEdgeRequest):
        """Update an edge's label."""
        if not document.set_edge_label(index, request.label):
            raise HTTPException(status_code=404, detail="Edge not found")
        return {"success": True, "edge": document.graph.edges[index].model_dump(mode="json")}

    @app.delete("/api/edges/{index}")
    async def delete_edge(index: int):
        """Delete an edge. Later edges shift down by one index."""
        if document.delete_edge(index):
            return {"success": True}
        raise HTTPException(status_code=404, detail="Edge not found")

    # --- Enums for Frontend ---

    @app.get("/api/enums/shapes")
    async def get_shapes():
        """Get available node shapes."""
        return {"shapes": [s.value for s in NodeShape]}

    # --- Validation ---

    @app.get("/api/validate")
    async def validate_current_diagram():
        """
        Validate the current diagram for structural issues.

        Returns a list of issues (errors, warnings, info) and a summary.
        """
        issues = validate_graph(document.graph)
        return {
            "success": True,
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues)
        }

    # --- Export ---

    @app.get("/api/export/svg")
    async def export_diagram_svg(data_uri: bool = Query(default=False)):
        """Export the diagram as SVG (or as a base64 data URI)."""
        try:
            svg = export_svg(document.graph, padding=config.EXPORT_PADDING)
        except EmptyDiagramError as e:
            raise HTTPException(status_code=409, detail=str(e))
        if data_uri:
            return {"success": True, "data_uri": to_data_uri(svg)}
        return Response(content=svg, media_type="image/svg+xml")

    @app.get("/api/export/png")
    async def export_diagram_png():
        """Export the diagram as a PNG image."""
        try:
            png = export_png(
                document.graph,
                exporter=app.state.exporter,
                scale=config.EXPORT_SCALE,
                padding=config.EXPORT_PADDING
            )
        except EmptyDiagramError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ExportError as e:
            logger.error("PNG export failed: %s", e)
            raise HTTPException(status_code=500, detail=str(e))
        return Response(content=png, media_type="image/png")

    # --- WebSocket ---

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for real-time updates.

        Clients connect here to receive diagram_updated events.
        """
        await ws_manager.connect(websocket)

        try:
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text('{"type": "pong"}')
        except WebSocketDisconnect:
            await ws_manager.disconnect(websocket)
        except Exception:
            logger.warning("WebSocket closed unexpectedly", exc_info=True)
            await ws_manager.disconnect(websocket)

    return app


# --- Run with uvicorn ---

def run(host: str = config.HOST, port: int = config.PORT):
    """Serve a fresh app with uvicorn."""
    import uvicorn
    uvicorn.run("flowsketch.backend.main:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    run()
