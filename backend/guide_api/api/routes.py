"""Guide search HTTP endpoints.

Routes:
  GET  /health  - liveness, always 200
  POST /search  - ranked guide entries for a free-text query
  GET  /data    - the whole guide, for category navigation
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from guide_api.core.config import Settings, get_settings
from guide_api.services.state import ServiceState

router = APIRouter()
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------------


def get_service_state(request: Request) -> ServiceState:
    """Return the state published by startup, or a not-ready one before that."""
    state = getattr(request.app.state, "services", None)
    return state if state is not None else ServiceState.not_ready()


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _read_json_body(request: Request) -> dict[str, Any]:
    # A body that is empty, not JSON or not an object carries no query
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "OK", "timestamp": utc_timestamp()}


@router.post("/search")
async def search_guides(
    request: Request,
    state: ServiceState = Depends(get_service_state),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Return up to ``result_limit`` guide entries ranked by similarity."""
    knowledge_base, search = state.require_search()

    payload = await _read_json_body(request)
    results = await search.find_guides(
        payload.get("query"),
        knowledge_base,
        limit=settings.result_limit,
    )
    return JSONResponse([result.to_payload() for result in results])


@router.get("/data")
async def get_guide_data(
    state: ServiceState = Depends(get_service_state),
) -> JSONResponse:
    """Return all guide data for category navigation."""
    knowledge_base = state.require_data()
    return JSONResponse(knowledge_base.to_payload())
