"""Development server for the dashboard's static assets.

The real book service runs elsewhere, so every `/api/*` request is answered
with a 502 telling the developer to start it. Everything else is a static file
or, for unknown routes, the single-page entry point.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from book_dashboard.config import Settings, settings as default_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PROXY_ERROR = {
    "error": "API Proxy not configured",
    "message": "Please start the book-service backend",
    "suggestion": "Run the book-service application and point BOOK_API_BASE_URL at it",
}

API_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def _is_hidden(relative: str) -> bool:
    return any(part.startswith(".") for part in Path(relative).parts)


def _resolve_static(root: Path, relative: str) -> Optional[Path]:
    """Return the file under root for a request path.

    None when the path is empty, missing, outside root or names a dotfile
    (`.env`, `.git/...`).
    """
    if not relative or _is_hidden(relative):
        return None
    candidate = (root / relative).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    return candidate if candidate.is_file() else None


class PublicFiles(StaticFiles):
    """StaticFiles that answers 404 for dotfiles and dot-directories."""

    def lookup_path(self, path: str):
        if _is_hidden(path):
            return "", None
        return super().lookup_path(path)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or default_settings
    root = Path(config.static_dir).resolve()
    index_path = (root / config.index_file).resolve()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Frontend development server running on http://{config.dev_server_host}:{config.dev_server_port}")
        logger.info(f"Serving files from: {root}")
        logger.info(f"Make sure book-service is running on {config.api_base_url}")
        yield

    app = FastAPI(title=config.app_name, lifespan=lifespan)

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.api_route("/api", methods=API_METHODS, include_in_schema=False)
    @app.api_route("/api/{path:path}", methods=API_METHODS, include_in_schema=False)
    async def api_not_configured(request: Request, path: str = ""):
        logger.debug(f"Rejected API call {request.method} {request.url.path}: backend is external")
        return JSONResponse(status_code=502, content=API_PROXY_ERROR)

    if (root / "src").is_dir():
        app.mount("/src", PublicFiles(directory=str(root / "src")), name="src")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa(full_path: str):
        static_file = _resolve_static(root, full_path)
        if static_file is not None:
            return FileResponse(static_file)
        if index_path.is_file():
            return FileResponse(index_path)
        return JSONResponse(status_code=404, content={"error": "Not Found", "message": f"{config.index_file} is missing"})

    return app


app = create_app()
