"""REST API endpoints for meeting minutes generation and versioning.

Generation persists a new lineage; edits extend it. Reads resolve the
latest version or list every version of a lineage. All endpoints require a
bearer token; records owned by someone else are reported as not found.

MinutesService is read from app.state (503 when absent) so tests can swap
in a service wired to in-memory doubles.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from src.scribe.api.deps import get_current_owner
from src.scribe.minutes.errors import (
    GENERIC_USER_MESSAGE,
    AccessDeniedError,
    ConfigurationError,
    GenerationFailed,
    InvalidInputError,
    NotFoundError,
    UnparseableResponseError,
)
from src.scribe.minutes.schemas import EditResult, GenerateResult, MinutesRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/minutes", tags=["minutes"])


# ── Request Schemas ──────────────────────────────────────────────────────────


class GenerateMinutesRequest(BaseModel):
    """Request body for generating minutes from raw notes."""

    text: str
    input_type: str = "text"


# ── Dependency Injection Helper ──────────────────────────────────────────────


def _get_minutes_service(request: Request) -> Any:
    """Retrieve MinutesService from app.state, 503 if not available."""
    service = getattr(request.app.state, "minutes_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Minutes service not initialized",
        )
    return service


def _not_found(record_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Minutes not found: {record_id}",
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=GenerateResult, status_code=201)
async def generate_minutes(
    body: GenerateMinutesRequest,
    request: Request,
    owner_id: str = Depends(get_current_owner),
) -> GenerateResult:
    """Generate structured minutes from raw notes and store version 1."""
    service = _get_minutes_service(request)
    try:
        return await service.generate(body.text, owner_id, input_type=body.input_type)
    except InvalidInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ConfigurationError:
        logger.error("minutes_provider_not_configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=GENERIC_USER_MESSAGE,
        )
    except GenerationFailed as exc:
        raise HTTPException(
            status_code=(
                status.HTTP_504_GATEWAY_TIMEOUT
                if exc.timed_out
                else status.HTTP_502_BAD_GATEWAY
            ),
            detail=exc.user_message,
        )
    except UnparseableResponseError as exc:
        logger.error("minutes_response_unparseable", raw_text=exc.raw_text)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=GENERIC_USER_MESSAGE,
        )


@router.get("", response_model=list[MinutesRecord])
async def list_recent_minutes(
    request: Request,
    limit: int = Query(default=20, ge=1, le=100),
    owner_id: str = Depends(get_current_owner),
) -> list[MinutesRecord]:
    """The caller's latest minutes per lineage, most recent first."""
    service = _get_minutes_service(request)
    return await service.list_recent(owner_id, limit)


@router.post("/{record_id}/edits", response_model=EditResult, status_code=201)
async def save_edited_minutes(
    record_id: str,
    request: Request,
    edited: Any = Body(...),
    owner_id: str = Depends(get_current_owner),
) -> EditResult:
    """Save an edited version of a minutes record."""
    service = _get_minutes_service(request)
    try:
        return await service.edit(record_id, edited, owner_id)
    except NotFoundError:
        raise _not_found(record_id)
    except AccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


@router.get("/{record_id}/latest", response_model=MinutesRecord)
async def get_latest_minutes(
    record_id: str,
    request: Request,
    owner_id: str = Depends(get_current_owner),
) -> MinutesRecord:
    """Latest version of the lineage containing ``record_id``."""
    service = _get_minutes_service(request)
    record = await service.get_latest(record_id)
    if record is None or record.owner_id != owner_id:
        raise _not_found(record_id)
    return record


@router.get("/{record_id}/versions", response_model=list[MinutesRecord])
async def get_minutes_versions(
    record_id: str,
    request: Request,
    owner_id: str = Depends(get_current_owner),
) -> list[MinutesRecord]:
    """Every version of the lineage containing ``record_id``, oldest first."""
    service = _get_minutes_service(request)
    versions = await service.get_versions(record_id)
    if versions and versions[0].owner_id != owner_id:
        raise _not_found(record_id)
    return versions
