# Filename: thecrew/routers/root.py
"""Liveness and readiness endpoints.

- GET /          - app name, version and status
- GET /health/ready - database connectivity and whether the AI services are configured
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import settings
from ..db import get_session
from ..exceptions import ServiceNotConfigured
from ..logging_config import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/")
def root() -> dict:
    return {
        "app_name": settings.app_name,
        "app_version": settings.app_version,
        "status": "ok",
    }


@router.get("/health/ready")
def ready(session: Session = Depends(get_session)) -> dict:
    """Readiness check; 503 while the database is unreachable."""
    try:
        session.connection().execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("database_unavailable", error=str(exc))
        raise ServiceNotConfigured("Service not ready: database unavailable")
    return {
        "status": "ok",
        "database": True,
        "llm": bool(settings.llm_api_key),
        "summary_service": bool(settings.summary_api_url),
    }
