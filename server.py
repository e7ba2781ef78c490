# FastAPI server for the live summit graph.
# Accepts summit updates over a WebSocket (or pulls them from an upstream feed)
# and serves the continuously updated SVG scene.

import asyncio
import contextlib
import logging
import os

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, Response

from dispatcher import GraphDispatcher
from feed_client import consume_feed
from render_binding import DEFAULT_EDGE_LIGHTEN, DEFAULT_NODE_LIGHTNESS, RenderBinding, SvgSurface

load_dotenv()

# --- Logging Configuration ---
LOG_LEVEL = os.getenv("SUMMITS_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("SUMMITS_LOG_FILE")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
handlers = [logging.StreamHandler()]
if LOG_FILE:
    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError:
            pass
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, handlers=handlers)
logger = logging.getLogger("summits.server")

# --- Settings ---
HOST = os.getenv("SUMMITS_HOST", "0.0.0.0")
PORT = int(os.getenv("SUMMITS_PORT", "3031"))
FEED_URL = os.getenv("SUMMITS_FEED_URL")
RECONNECT_DELAY = float(os.getenv("SUMMITS_RECONNECT_DELAY", "2.0"))
NODE_LIGHTNESS = float(os.getenv("SUMMITS_NODE_LIGHTNESS", str(DEFAULT_NODE_LIGHTNESS)))
EDGE_LIGHTEN = float(os.getenv("SUMMITS_EDGE_LIGHTEN", str(DEFAULT_EDGE_LIGHTEN)))
VIEW_REFRESH_MS = int(os.getenv("SUMMITS_VIEW_REFRESH_MS", "1000"))


def build_dispatcher() -> GraphDispatcher:
    surface = SvgSurface()
    binding = RenderBinding(surface, node_lightness=NODE_LIGHTNESS, edge_lighten=EDGE_LIGHTEN)
    return GraphDispatcher(binding)


# One scene per process; every ingest socket and the upstream feed share it.
DISPATCHER = build_dispatcher()


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    feed_task = None
    if FEED_URL:
        feed_task = asyncio.create_task(consume_feed(FEED_URL, DISPATCHER, RECONNECT_DELAY))
    try:
        yield
    finally:
        if feed_task:
            feed_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await feed_task


# --- FastAPI App Initialization ---
api = FastAPI(
    title="Summit Graph",
    description="Live graph of summits and weighted connections, rendered as SVG.",
    version="0.1.0",
    lifespan=lifespan,
)

VIEWER_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Summits</title>
    <style>
        html, body { margin: 0; height: 100%; background: #0b0c10; }
        #scene, #scene svg { width: 100vw; height: 100vh; display: block; }
        .summit-title { font: 0.3px system-ui, sans-serif; fill: #f8fbff; }
    </style>
</head>
<body>
    <div id="scene"></div>
    <script>
        (function () {
            const scene = document.getElementById('scene');
            async function refresh() {
                try {
                    const response = await fetch('/graph.svg', {cache: 'no-store'});
                    if (response.ok) {
                        scene.innerHTML = await response.text();
                    }
                } catch (error) {
                    console.warn('Unable to refresh graph', error);
                }
            }
            refresh();
            setInterval(refresh, __REFRESH_MS__);
        })();
    </script>
</body>
</html>
"""


@api.get("/")
async def get():
    """Serves the viewer page."""
    return HTMLResponse(VIEWER_HTML.replace("__REFRESH_MS__", str(VIEW_REFRESH_MS)))


@api.get("/graph.svg")
async def graph_svg():
    """Returns the current scene as an SVG document."""
    DISPATCHER.binding.fit_view(DISPATCHER.summits)
    return Response(content=DISPATCHER.binding.surface.to_svg(), media_type="image/svg+xml")


@api.get("/graph")
async def graph_snapshot():
    """Returns the summits, connections and counters as JSON."""
    return DISPATCHER.snapshot()


@api.websocket("/v1")
async def ingest_endpoint(websocket: WebSocket):
    """
    Ingest stream: every text frame is one summit update, applied in order.
    Each frame is answered with a small status message.
    """
    logger.info("Feed connection from %s", websocket.client)
    await websocket.accept()
    try:
        while True:
            frame = await websocket.receive_text()
            try:
                result = DISPATCHER.handle(frame)
            except Exception as e:
                logger.exception("Failed to apply summit update; continuing with the next one")
                await websocket.send_json({"status": "error", "message": f"{type(e).__name__} - {e}"})
                continue
            if result is None:
                await websocket.send_json({"status": "dropped"})
                continue
            await websocket.send_json({
                "status": "applied",
                "id": result.summit_id,
                "title_changed": result.title_changed,
                "geometry_changed": bool(result.geometry),
                "connections_changed": [c.to_dict() for c in result.connections],
            })
    except WebSocketDisconnect:
        logger.info("Feed connection closed for %s", websocket.client)


# --- Main Execution ---
if __name__ == "__main__":
    uvicorn.run(api, host=HOST, port=PORT)
