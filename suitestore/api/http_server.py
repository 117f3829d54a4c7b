"""
HTTP API for SuiteStore.

Routes:
    GET  /projects                               project names
    GET  /projects/{project}/tests               test ids in a project
    POST /projects/{project}/tests               save a suite under a new id
    GET  /projects/{project}/tests/{test_id}     one suite
    GET  /health                                 liveness

Invariants:
    - Handlers only translate between HTTP and the SuiteStore protocol
    - New ids are RFC 3339 UTC timestamps with second precision
    - Store errors become JSON error responses; they never crash the server
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .._version import __version__
from ..config import HttpConfig
from ..errors import NotFoundError, SaveError, SuiteStoreError
from ..store import SuiteStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Suites"])


def new_test_id() -> str:
    """Identifier for a newly posted suite."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_store(request: Request) -> SuiteStore:
    """Get the store from app state."""
    return request.app.state.store


def _status_for(error: SuiteStoreError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, SaveError) and error.conflict:
        return 409
    return 500


async def handle_store_error(request: Request, exc: SuiteStoreError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status,
        content={"error": exc.message, "error_code": exc.code, "details": exc.details},
    )


@router.get("/projects")
async def list_projects(request: Request) -> List[str]:
    return await get_store(request).get_projects()


@router.get("/projects/{project}/tests")
async def list_tests(project: str, request: Request) -> List[str]:
    return await get_store(request).get_tests(project)


@router.post("/projects/{project}/tests", response_class=PlainTextResponse)
async def create_test(
    project: str,
    request: Request,
    suite: Dict[str, Any] = Body(...),
) -> str:
    """Save the posted suite and return its new id."""
    test_id = request.app.state.id_factory()
    await get_store(request).save(project, test_id, suite)
    logger.info(f"Created test '{test_id}' in project '{project}'")
    return test_id


@router.get("/projects/{project}/tests/{test_id}")
async def get_test(project: str, test_id: str, request: Request) -> Dict[str, Any]:
    doc = await get_store(request).get_test(project, test_id)
    return doc.to_dict()


def create_app(
    store: SuiteStore,
    config: HttpConfig | None = None,
    id_factory: Callable[[], str] = new_test_id,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        store: Connected suite store
        config: HTTP configuration
        id_factory: Generates ids for posted suites

    Returns:
        FastAPI application
    """
    config = config or HttpConfig()

    app = FastAPI(
        title="SuiteStore",
        description="Test suite storage grouped by project",
        version=__version__,
    )
    app.state.store = store
    app.state.id_factory = id_factory

    app.add_exception_handler(SuiteStoreError, handle_store_error)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy" if store.is_connected else "unavailable",
            "service": "suitestore",
            "version": __version__,
        }

    if config.static_dir and Path(config.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="static")
        logger.info(f"Serving static files from {config.static_dir}")

    return app
