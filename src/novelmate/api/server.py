"""FastAPI application factory."""

from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from novelmate import __version__
from novelmate.api.routes import names, novels, translation
from novelmate.config import AppConfig, get_config
from novelmate.errors import ConflictError, NotFoundError, TranslationFailure
from novelmate.services.name_service import NameService
from novelmate.services.novel_service import NovelService
from novelmate.storage.library import NovelLibrary
from novelmate.translator.engine import TranslationOrchestrator
from novelmate.translator.llm import Capabilities, build_capabilities

logger = structlog.get_logger()


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(
    novels_dir: Optional[Path] = None,
    capabilities: Optional[Capabilities] = None,
    config: Optional[AppConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        novels_dir: Library root; ``config.novels_dir`` if None
        capabilities: Model capabilities; built from the LLM config if None
        config: Application config; the global config if None
    """
    config = config or get_config()
    app = FastAPI(
        title="Novelmate API",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    library = NovelLibrary(novels_dir or config.novels_dir)

    novels.set_novel_service(NovelService(library))
    app.include_router(novels.router)

    names.set_name_service(NameService(library))
    app.include_router(names.router)

    orchestrator = TranslationOrchestrator(
        library, capabilities or build_capabilities(config), config
    )
    translation.set_orchestrator(orchestrator)
    app.include_router(translation.router)

    # NotFoundError is also a ValueError; the most specific handler wins
    app.add_exception_handler(NotFoundError, _error_handler(404))
    app.add_exception_handler(ConflictError, _error_handler(409))
    app.add_exception_handler(TranslationFailure, _error_handler(502))
    app.add_exception_handler(ValueError, _error_handler(400))

    app.state.library = library

    @app.get("/api/v1/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app
