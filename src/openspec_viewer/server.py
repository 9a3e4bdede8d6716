"""FastAPI web server for openspec-viewer."""

import asyncio
import concurrent.futures
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, Response

from . import __version__
from .core import FileChangeEvent, OpenSpecData
from .parser import parse_change_by_name, parse_spec, read_change_file
from .serialize import (
    change_summary,
    change_to_dict,
    project_to_dict,
    search_result_to_dict,
    spec_summary,
    spec_to_dict,
    stats_to_dict,
)
from .store import SnapshotStore
from .watcher import OpenSpecWatcher
from .websocket import ConnectionManager

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
MIN_QUERY_LENGTH = 2


def _log_failed_refresh(future: concurrent.futures.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Refresh after file change failed", exc_info=error)


def create_app(openspec_path: Path, watch: bool = True) -> FastAPI:
    """Build the app for one OpenSpec directory.

    The store, the WebSocket registry and the watcher all live on
    ``app.state`` and share the app's lifetime.
    """
    store = SnapshotStore(openspec_path)
    manager = ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        result = await store.refresh()
        if result.data is not None:
            logger.info(
                "Loaded OpenSpec: %s (%d specs, %d active changes)",
                result.data.project.name,
                len(result.data.specs),
                len(result.data.changes.active),
            )

        unsubscribe = store.subscribe(manager.broadcast_change)
        watcher = None
        if watch:
            loop = asyncio.get_running_loop()

            def on_change(event: FileChangeEvent) -> None:
                # Called on the watchdog thread.
                future = asyncio.run_coroutine_threadsafe(store.handle_event(event), loop)
                future.add_done_callback(_log_failed_refresh)

            watcher = OpenSpecWatcher(store.openspec_path, on_change)
            watcher.start()
        app.state.watcher = watcher

        try:
            yield
        finally:
            if watcher is not None:
                watcher.stop()
            unsubscribe()

    app = FastAPI(title="openspec-viewer", version=__version__, lifespan=lifespan)
    app.state.store = store
    app.state.manager = manager

    def current_data() -> OpenSpecData:
        if store.data is None:
            raise HTTPException(status_code=503, detail="Data not loaded")
        return store.data

    # ── Routes ───────────────────────────────────────────────────────

    @app.get("/")
    async def index():
        """Serve the frontend."""
        html_path = STATIC_DIR / "index.html"
        if not html_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return HTMLResponse(html_path.read_text(encoding="utf-8"))

    @app.get("/api/status")
    async def get_status():
        """Whether a snapshot is loaded, plus the last pass's problems."""
        return {
            "loaded": store.data is not None,
            "errors": store.errors,
            "warnings": store.warnings,
        }

    @app.get("/api/project")
    async def get_project():
        return {"project": project_to_dict(current_data().project)}

    @app.get("/api/specs")
    async def get_specs():
        return {"specs": [spec_summary(s) for s in current_data().specs]}

    @app.get("/api/specs/{name}")
    async def get_spec(name: str):
        """Load one spec fresh from disk."""
        result = await asyncio.to_thread(parse_spec, store.openspec_path, name)
        if result.data is None:
            detail = result.errors[0] if result.errors else "Spec not found"
            raise HTTPException(status_code=404, detail=detail)
        return {"spec": spec_to_dict(result.data)}

    @app.get("/api/changes")
    async def get_changes():
        data = current_data()
        return {
            "active": [change_summary(c) for c in data.changes.active],
            "archived": [change_summary(c) for c in data.changes.archived],
        }

    @app.get("/api/changes/{name}")
    async def get_change(name: str):
        """Load one change fresh from disk, falling back to the archive."""
        result = await asyncio.to_thread(parse_change_by_name, store.openspec_path, name)
        if result.data is None:
            detail = result.errors[0] if result.errors else "Change not found"
            raise HTTPException(status_code=404, detail=detail)
        return {"change": change_to_dict(result.data)}

    @app.get("/api/changes/{name}/files/{file_path:path}")
    async def get_change_file(name: str, file_path: str):
        """Return a raw markdown or HTML document from a change."""
        try:
            content, media_type = await asyncio.to_thread(
                read_change_file, store.openspec_path, name, file_path,
            )
        except FileNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except OSError as e:
            logger.error("Failed to read %s in change %s: %s", file_path, name, e)
            raise HTTPException(status_code=500, detail="Failed to read file")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return Response(content=content, media_type=media_type)

    @app.get("/api/stats")
    async def get_stats():
        return {"stats": stats_to_dict(current_data().stats)}

    @app.get("/api/search")
    async def search(q: str = Query("", description="Search text")):
        """Case-insensitive search over project, specs and proposals."""
        if len(q) < MIN_QUERY_LENGTH:
            return {"results": []}
        current_data()
        return {"results": [search_result_to_dict(r) for r in store.search(q)]}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await manager.connect(websocket)
        try:
            while True:
                # Clients only listen; drain anything they send.
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(websocket)

    @app.get("/{full_path:path}")
    async def spa_fallback(full_path: str):
        """Serve the frontend for client-side routes."""
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not found")
        return await index()

    return app
