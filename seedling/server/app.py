"""FastAPI application serving the tree and message board APIs."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ..config import Config
from ..errors import AuthError, StorageError, ValidationError
from ..messages import MessageBoard
from ..storage import GardenStore
from ..tree.service import TreeService

logger = logging.getLogger(__name__)

ADMIN_HEADER = "x-admin-pw"


async def _body_credential(request: Request) -> str | None:
    """Read ``pw`` from a JSON body, if there is one."""
    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    pw = data.get("pw") if isinstance(data, dict) else None
    return pw if isinstance(pw, str) else None


def create_app(
    config: Config,
    store: GardenStore,
    service: TreeService | None = None,
) -> FastAPI:
    """Create the Seedling API application.

    Args:
        config: Application configuration.
        store: Connected GardenStore shared by all handlers.
        service: Optional TreeService; built from the store when omitted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Seedling",
        description="A shared seedling to water, and a guestbook",
        version="0.1.0",
    )

    if service is None:
        service = TreeService(store, config.admin.password)
    board = MessageBoard(store, config.admin.password)

    app.state.config = config
    app.state.store = store
    app.state.service = service
    app.state.board = board

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== Error Mapping ====================

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "db"})

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return JSONResponse(status_code=403, content={"error": "unauthorized"})

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc) or "invalid"})

    # ==================== Tree ====================

    @app.get("/api/tree")
    async def api_tree() -> dict[str, Any]:
        """Current shared tree state."""
        return service.get_state().to_dict()

    @app.post("/api/water")
    async def api_water() -> dict[str, Any]:
        """Water the tree. Rule rejections still return 200."""
        return service.water().to_dict()

    @app.post("/api/harvest")
    async def api_harvest(request: Request) -> dict[str, Any]:
        """Harvest a ripe tree (admin only)."""
        credential = request.headers.get(ADMIN_HEADER) or await _body_credential(request)
        return service.harvest(credential).to_dict()

    @app.post("/api/tree/reset")
    async def api_tree_reset(request: Request) -> dict[str, Any]:
        """Reinitialize the tree to the zero state (admin only)."""
        credential = request.headers.get(ADMIN_HEADER) or await _body_credential(request)
        return service.reset(credential).to_dict()

    # ==================== Messages ====================

    @app.get("/api/messages")
    async def api_messages() -> list[dict[str, Any]]:
        return [m.to_dict() for m in board.list_messages()]

    @app.post("/api/messages")
    async def api_post_message(request: Request) -> dict[str, Any]:
        """Post a note. Body: {"name"?: str, "text": str}."""
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = {}
        if not isinstance(data, dict):
            data = {}

        name = data.get("name")
        message = board.post_message(
            name if isinstance(name, str) else None,
            data.get("text"),
        )
        return message.to_dict()

    @app.delete("/api/messages/{message_id}")
    async def api_delete_message(request: Request, message_id: str):
        credential = request.headers.get(ADMIN_HEADER) or request.query_params.get("pw")
        if not board.delete_message(credential, message_id):
            return JSONResponse(status_code=404, content={"error": "not_found"})
        return {"ok": True}

    @app.delete("/api/messages")
    async def api_clear_messages(request: Request) -> dict[str, Any]:
        credential = request.headers.get(ADMIN_HEADER) or request.query_params.get("pw")
        deleted = board.clear_messages(credential)
        return {"ok": True, "deleted": deleted}

    # ==================== Health ====================

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check. Always 200; storage problems are reported inline."""
        status: dict[str, Any] = {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
        }
        try:
            status["store"] = store.get_stats()
        except StorageError as e:
            status["status"] = "degraded"
            status["store_error"] = str(e)
        return status

    # Static front end last, so /api routes take precedence
    if config.server.static_dir:
        static_dir = Path(config.server.static_dir).expanduser()
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
            logger.info(f"Serving static files from {static_dir}")
        else:
            logger.warning(f"Static directory {static_dir} not found, not serving files")

    return app
