"""
Health record CRUD routes.

One router per entity kind, generated from the kind table:
POST /<collection>, GET /<collection>, GET|PUT|DELETE /<collection>/{record_id}.
Domain errors are translated to HTTP by the app-level exception handler.
"""

from fastapi import APIRouter, Depends, Request, Response, status

from health_analytics.container import ServiceContainer
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.api.health_response import (
    CreateRecordResponse,
    ErrorResponse,
    RecordListResponse,
)
from health_analytics.models.domain.entity_kinds import ENTITY_KINDS, EntityKind
from health_analytics.routes.dependencies import get_container

logger = get_logger(__name__)

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    status.HTTP_504_GATEWAY_TIMEOUT: {"model": ErrorResponse},
}


def build_record_router(kind: EntityKind) -> APIRouter:
    """Build the CRUD router for one entity kind."""
    model = kind.record_model
    router = APIRouter(prefix=f"/{kind.collection}", tags=[kind.collection], responses=ERROR_RESPONSES)

    @router.post("", response_model=CreateRecordResponse, status_code=status.HTTP_201_CREATED)
    async def create_record(record: model, container: ServiceContainer = Depends(get_container)):
        """Create a record; a supplied id is kept verbatim."""
        repository = container.repositories.for_kind(kind)
        record_id = await repository.create(record, timeout=container.query_timeout)
        logger.info("Record created via API", collection=kind.collection, record_id=record_id)
        return CreateRecordResponse(id=record_id)

    @router.get("", response_model=RecordListResponse[model])
    async def list_records(request: Request, container: ServiceContainer = Depends(get_container)):
        """List records; every query parameter is an equality filter."""
        repository = container.repositories.for_kind(kind)
        records = await repository.list(dict(request.query_params), timeout=container.query_timeout)
        return RecordListResponse[model](records=records, total_count=len(records))

    @router.get("/{record_id}", response_model=model)
    async def get_record(record_id: str, container: ServiceContainer = Depends(get_container)):
        repository = container.repositories.for_kind(kind)
        return await repository.get(record_id, timeout=container.query_timeout)

    @router.put("/{record_id}", response_model=model)
    async def update_record(
        record_id: str, record: model, container: ServiceContainer = Depends(get_container)
    ):
        """Partial update: empty fields in the body leave stored values unchanged."""
        repository = container.repositories.for_kind(kind)
        record.id = record_id
        await repository.update(record, timeout=container.query_timeout)
        return await repository.get(record_id, timeout=container.query_timeout)

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(record_id: str, container: ServiceContainer = Depends(get_container)):
        repository = container.repositories.for_kind(kind)
        await repository.delete(record_id, timeout=container.query_timeout)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


routers = [build_record_router(kind) for kind in ENTITY_KINDS]
