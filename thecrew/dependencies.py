# Filename: thecrew/dependencies.py
"""FastAPI dependencies for process-wide clients.

The object store and the briefing client are built once at startup and kept
on ``app.state``; handlers receive them through these dependencies so tests
can swap them with ``app.dependency_overrides``.
"""
from fastapi import Request

from .briefing import BriefingClient
from .storage import ObjectStore


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_briefing_client(request: Request) -> BriefingClient:
    return request.app.state.briefing_client
