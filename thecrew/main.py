# Filename: thecrew/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import (
    auth as auth_router,
    folders as folders_router,
    interrogator as interrogator_router,
    references as references_router,
    root as root_router,
    tasks as tasks_router,
    uploads as uploads_router,
    workspaces as workspaces_router,
)
from .briefing import create_briefing_client
from .config import settings
from .db import init_db
from .error_handlers import register_error_handlers
from .logging_config import configure_logging, get_logger
from .storage import create_object_store

configure_logging(settings.log_level, settings.log_json)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.object_store = create_object_store()
    app.state.briefing_client = create_briefing_client()
    logger.info("startup", environment=settings.environment, version=settings.app_version)
    yield
    app.state.briefing_client.close()


app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug, lifespan=lifespan)

origins = ["*"] if settings.cors_allow_origins == "*" else [o.strip() for o in settings.cors_allow_origins.split(",")]
allow_methods = ["*"] if settings.cors_allow_methods == "*" else [m.strip() for m in settings.cors_allow_methods.split(",")]
allow_headers = ["*"] if settings.cors_allow_headers == "*" else [h.strip() for h in settings.cors_allow_headers.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=allow_methods,
    allow_headers=allow_headers,
)

register_error_handlers(app)

app.include_router(auth_router.router)
app.include_router(workspaces_router.router)
app.include_router(folders_router.router)
app.include_router(uploads_router.router)
app.include_router(interrogator_router.router)
app.include_router(tasks_router.router)
app.include_router(references_router.router)
app.include_router(root_router.router)
