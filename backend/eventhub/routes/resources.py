"""
EventHub Backend — Resource Router Factory
===========================================

What:  Builds the HTTP routes of a collection from its `Resource`.
How:   `build_resource_router()` returns the four mutable routes,
       `build_catalog_router()` the single read-only listing. Both bind one
       `ResourceService` to the collection and delegate to it.
Who:   Called by `create_app()` once per entry in `eventhub.resources`.

Routes for a mutable collection R:
    GET    /R?limit=<int>   → 200 [documents] | 404 "No R found"
    POST   /R               → 200 {message, data: insertResult} | 500
    PUT    /R/{id}          → 200 {message, data: updateResult} | 400 | 404
    DELETE /R/{id}          → 200 {message, data: updateResult} | 400 | 404

Routes for a read-only collection R:
    GET    /R               → 200 [documents] | 404 "No R found"
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.config import Settings
from eventhub.database import get_db_session
from eventhub.resources import Resource
from eventhub.schemas.record import (
    Document,
    ErrorResponse,
    InsertResponse,
    UpdateResponse,
)
from eventhub.services.resource_service import Clock, ResourceService, utcnow

logger = logging.getLogger(__name__)


def resolve_limit(limit: Optional[int], settings: Settings) -> int:
    """
    Effective page size for a listing.

    Absent → settings.default_list_limit; above settings.max_list_limit →
    clamped. Non-integer or non-positive values never get here (422).
    """
    if limit is None:
        return settings.default_list_limit
    return min(limit, settings.max_list_limit)


def build_resource_router(resource: Resource, clock: Clock = utcnow) -> APIRouter:
    """Routes for a mutable collection: list, create, update (upsert), soft-delete."""
    service = ResourceService(resource, clock=clock)
    router = APIRouter(prefix=resource.path, tags=[resource.collection])
    label = resource.label

    @router.get(
        "",
        response_model=List[Document],
        responses={
            200: {"description": f"Live {resource.collection}, newest first"},
            404: {"description": f"No {resource.collection} found", "model": ErrorResponse},
            500: {"description": "Server error", "model": ErrorResponse},
        },
        summary=f"List {resource.collection}",
        description=(
            f"Returns {resource.collection} that are not soft-deleted, ordered by creation "
            "time (newest first). Lifecycle fields are not included."
        ),
    )
    async def list_records(
        request: Request,
        limit: Optional[int] = Query(
            default=None,
            ge=1,
            description="Maximum number of records. Defaults to the configured page size.",
        ),
        db: AsyncSession = Depends(get_db_session),
    ) -> List[Dict[str, Any]]:
        effective = resolve_limit(limit, request.app.state.settings)
        return await service.list_records(db=db, limit=effective)

    @router.post(
        "",
        response_model=InsertResponse,
        responses={500: {"description": "Server error", "model": ErrorResponse}},
        summary=f"Create a {label.lower()}",
    )
    async def create_record(
        payload: Dict[str, Any] = Body(..., description="Any JSON object"),
        db: AsyncSession = Depends(get_db_session),
    ) -> InsertResponse:
        result = await service.create_record(db=db, payload=payload)
        return InsertResponse(message=f"{label} created successfully", data=result)

    @router.put(
        "/{record_id}",
        response_model=UpdateResponse,
        responses={
            400: {"description": "Malformed id", "model": ErrorResponse},
            404: {"description": f"{label} not found", "model": ErrorResponse},
            500: {"description": "Server error", "model": ErrorResponse},
        },
        summary=f"Update a {label.lower()} (creates it when missing)",
        description=(
            "Merges the supplied fields into the record; fields not in the body are kept. "
            "An unknown id creates a new record with that id."
        ),
    )
    async def update_record(
        record_id: str,
        payload: Dict[str, Any] = Body(..., description="Fields to set"),
        db: AsyncSession = Depends(get_db_session),
    ) -> UpdateResponse:
        result = await service.update_record(db=db, record_id=record_id, payload=payload)
        return UpdateResponse(message=f"{label} updated successfully", data=result)

    @router.delete(
        "/{record_id}",
        response_model=UpdateResponse,
        responses={
            400: {"description": "Malformed id", "model": ErrorResponse},
            404: {"description": f"{label} not found", "model": ErrorResponse},
            500: {"description": "Server error", "model": ErrorResponse},
        },
        summary=f"Soft-delete a {label.lower()}",
    )
    async def delete_record(
        record_id: str,
        db: AsyncSession = Depends(get_db_session),
    ) -> UpdateResponse:
        result = await service.soft_delete_record(db=db, record_id=record_id)
        return UpdateResponse(message=f"{label} deleted successfully", data=result)

    return router


def build_catalog_router(resource: Resource) -> APIRouter:
    """Single listing route for a read-only collection."""
    service = ResourceService(resource)
    router = APIRouter(prefix=resource.path, tags=[resource.collection])

    @router.get(
        "",
        response_model=List[Document],
        responses={
            404: {"description": f"No {resource.collection} found", "model": ErrorResponse},
            500: {"description": "Server error", "model": ErrorResponse},
        },
        summary=f"List {resource.collection}",
    )
    async def list_all(db: AsyncSession = Depends(get_db_session)) -> List[Dict[str, Any]]:
        return await service.list_all(db=db)

    return router
