"""Router factory exposing a CrudService as REST endpoints."""

from typing import Any

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from crud_api.db.base import get_db_session
from crud_api.schemas.envelope import DeletedResource
from crud_api.schemas.envelope import SuccessResponse
from crud_api.services.crud import CrudService

FIELDS_DESCRIPTION = "Comma separated list of fields to return, e.g. `Post.id,title,author.name`"


def build_crud_router(
    service: CrudService,
    *,
    path: str,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    id_type: type = int,
    prefix: str = "/api/v1",
    tags: list[str] | None = None,
) -> APIRouter:
    """Build `index`, `view`, `add`, `edit` and `delete` routes for `service`."""
    router = APIRouter(prefix=prefix, tags=tags or [path])
    collection = f"/{path}"
    member = f"/{path}/{{record_id}}"

    @router.get(collection, response_model=SuccessResponse[list[dict[str, Any]]], summary=f"List {service.name} records")
    def index_endpoint(
        fields: str | None = Query(default=None, description=FIELDS_DESCRIPTION),
        limit: int = Query(default=100, ge=1, le=1000),
        offset: int = Query(default=0, ge=0),
        session: Session = Depends(get_db_session),
    ) -> SuccessResponse[list[dict[str, Any]]]:
        """List records, optionally projected by `fields`."""
        return SuccessResponse(data=service.index(session, fields=fields, limit=limit, offset=offset))

    @router.get(member, response_model=SuccessResponse[dict[str, Any]], summary=f"Get a single {service.name} record")
    def view_endpoint(
        record_id: id_type,
        fields: str | None = Query(default=None, description=FIELDS_DESCRIPTION),
        session: Session = Depends(get_db_session),
    ) -> SuccessResponse[dict[str, Any]]:
        """Get one record by id."""
        return SuccessResponse(data=service.view(session, record_id, fields=fields))

    @router.post(collection, response_model=SuccessResponse[dict[str, Any]], status_code=201, summary=f"Create a {service.name} record")
    def add_endpoint(
        payload: create_schema,
        session: Session = Depends(get_db_session),
    ) -> SuccessResponse[dict[str, Any]]:
        """Create a record."""
        return SuccessResponse(data=service.add(session, payload))

    @router.patch(member, response_model=SuccessResponse[dict[str, Any]], summary=f"Update a {service.name} record")
    def edit_endpoint(
        record_id: id_type,
        payload: update_schema,
        session: Session = Depends(get_db_session),
    ) -> SuccessResponse[dict[str, Any]]:
        """Update a record."""
        return SuccessResponse(data=service.edit(session, record_id, payload))

    @router.delete(member, response_model=SuccessResponse[DeletedResource], summary=f"Delete a {service.name} record")
    def delete_endpoint(
        record_id: id_type,
        session: Session = Depends(get_db_session),
    ) -> SuccessResponse[DeletedResource]:
        """Delete a record."""
        return SuccessResponse(data=DeletedResource(**service.delete(session, record_id)))

    return router
