from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from kata.workspaces.errors import WorkspaceError
from kata.workspaces.log import setup_logging
from kata.workspaces.managers.workspaces import create_workspace_service
from kata.workspaces.settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Workspace service starting (host={}, port={})", settings.host, settings.port)
    logger.info("Data root: {} (workers={})", settings.data_path, settings.worker_limit)

    _app.state.workspace_service = None
    try:
        _app.state.workspace_service = create_workspace_service(settings)
    except WorkspaceError as exc:
        logger.error("Workspace registry could not be loaded; API will answer 503: {}", exc)
    else:
        logger.info("WorkspaceLifecycleService: initialised")

    yield

    # -- Shutdown --------------------------------------------------------------
    # In-flight subprocesses are not cancelled; worker threads finish on their own.
    logger.info("Workspace service shutting down")


app = FastAPI(title="Kata Workspaces", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from kata.workspaces.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)

app.include_router(api)
