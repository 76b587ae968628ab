"""
EventHub Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the response envelopes of the API.
How:   FastAPI serializes route return values through these models (by alias,
       so the JSON keys are camelCase) and documents them in OpenAPI.

Request bodies are NOT modelled here: create and update accept any JSON
object (`Document`), because records are schema-less.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# A schema-less JSON object as stored in, or returned from, a collection
Document = Dict[str, Any]


# ══════════════════════════════════════════════════════════════════════════
# Store Results — acknowledgement of a single-document write
# ══════════════════════════════════════════════════════════════════════════


class InsertResult(BaseModel):
    """Acknowledgement of a create: `{"acknowledged": true, "insertedId": "..."}`."""

    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = Field(default=True)
    inserted_id: str = Field(alias="insertedId", description="Id of the new record")


class UpdateResult(BaseModel):
    """
    What:  Outcome of an update or soft-delete.

    Fields:
        matchedCount:   records that matched the id (0 or 1)
        modifiedCount:  records changed in place (0 or 1)
        upsertedCount:  records created by an upserting update (0 or 1)
        upsertedId:     id of the created record, null otherwise
    """

    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = Field(default=True)
    matched_count: int = Field(default=0, alias="matchedCount")
    modified_count: int = Field(default=0, alias="modifiedCount")
    upserted_count: int = Field(default=0, alias="upsertedCount")
    upserted_id: Optional[str] = Field(default=None, alias="upsertedId")


# ══════════════════════════════════════════════════════════════════════════
# Response Envelopes
# ══════════════════════════════════════════════════════════════════════════


class InsertResponse(BaseModel):
    """Returned by POST /<collection>."""

    message: str = Field(description="e.g. 'Event created successfully'")
    data: InsertResult


class UpdateResponse(BaseModel):
    """Returned by PUT /<collection>/{id} and DELETE /<collection>/{id}."""

    message: str = Field(description="e.g. 'Event updated successfully'")
    data: UpdateResult


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "No events found",
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class StatusResponse(BaseModel):
    """Returned by GET / — liveness only, no dependency checks."""

    message: str = Field(default="Server is running smoothly")
    timestamp: datetime


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and database status.
    Who:   Returned by GET /health for monitoring and container probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
