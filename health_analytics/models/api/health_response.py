"""
Health data API response models.
Used by routes for response serialization.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from health_analytics.models.domain.health_domain import HealthRecordBase

RecordT = TypeVar("RecordT", bound=HealthRecordBase)


class CreateRecordResponse(BaseModel):
    """Response after creating a record."""

    id: str = Field(..., description="Stored record id")


class RecordListResponse(BaseModel, Generic[RecordT]):
    """Records matching a list filter, in store order."""

    records: list[RecordT] = Field(default_factory=list)
    total_count: int = Field(default=0, description="Number of records returned")


class ErrorResponse(BaseModel):
    """Structured error body for every failed request."""

    error: str = Field(..., description="Machine-readable error code")
    detail: str = Field(..., description="Human-readable message")
