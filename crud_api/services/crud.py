"""CRUD action service with per-action field filter configuration."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy import UniqueConstraint
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crud_api.core.errors import APIError
from crud_api.core.errors import NotFoundError
from crud_api.core.errors import ValidationFailedError
from crud_api.core.field_filter import FieldSelection
from crud_api.core.field_filter import FilterPolicy
from crud_api.core.field_filter import ResourceSchema
from crud_api.core.field_filter import resolve_fields
from crud_api.db.projection import project_row
from crud_api.db.projection import schema_for_model
from crud_api.db.repository.crud import create_record
from crud_api.db.repository.crud import delete_record
from crud_api.db.repository.crud import get_record
from crud_api.db.repository.crud import list_records
from crud_api.db.repository.crud import update_record

logger = logging.getLogger(__name__)

READ_ACTIONS = ("index", "view")


def integrity_errors(model: type, exc: IntegrityError) -> dict[str, list[str]]:
    """Best-effort mapping of a unique-constraint failure onto field names.

    Matches either the constraint name (Postgres) or the `table.column` list
    (SQLite) in the driver message.
    """
    raw = str(exc.orig) if exc.orig is not None else str(exc)
    table = inspect(model).local_table

    errors: dict[str, list[str]] = {}
    for constraint in table.constraints:
        if not isinstance(constraint, UniqueConstraint):
            continue
        columns = [column.name for column in constraint.columns]
        by_name = constraint.name is not None and constraint.name in raw
        by_columns = all(f"{table.name}.{column}" in raw for column in columns)
        if by_name or by_columns:
            message = "must be unique" if len(columns) == 1 else f"must be unique together with {', '.join(columns)}"
            for column in columns:
                errors.setdefault(column, []).append(message)
    return errors


class CrudService:
    """Create, read, update and delete one mapped model.

    Each read action (`index`, `view`) carries its own `FilterPolicy`; the
    accessors below read the current value when called without arguments and
    replace it otherwise.
    """

    def __init__(
        self,
        model: type,
        *,
        read_schema: type[BaseModel],
        name: str | None = None,
        policies: dict[str, FilterPolicy] | None = None,
    ) -> None:
        self.model = model
        self.read_schema = read_schema
        self.name = name or model.__name__
        self.schema: ResourceSchema = schema_for_model(model, self.name)
        self._policies: dict[str, FilterPolicy] = {action: FilterPolicy() for action in READ_ACTIONS}
        for action, policy in (policies or {}).items():
            self.set_policy(action, policy)

    # ------------------------
    # Field filter configuration
    # ------------------------
    def policy(self, action: str) -> FilterPolicy:
        if action not in self._policies:
            raise ValueError(f"Unknown read action {action!r}")
        return self._policies[action]

    def set_policy(self, action: str, policy: FilterPolicy) -> None:
        if action not in READ_ACTIONS:
            raise ValueError(f"Unknown read action {action!r}")
        self._policies[action] = policy

    def _update_policy(self, action: str, **changes: Any) -> None:
        current = self.policy(action)
        values = {
            "field_whitelist": current.field_whitelist,
            "field_blacklist": current.field_blacklist,
            "relation_whitelist": current.relation_whitelist,
            "allow_unfiltered": current.allow_unfiltered,
        }
        values.update(changes)
        self.set_policy(action, FilterPolicy.build(**values))

    def whitelist_fields(self, fields: Iterable[str] | None = None, action: str = "index") -> frozenset[str] | None:
        """Qualified fields (`Model.field`) a client may select."""
        if not fields:
            return self.policy(action).field_whitelist
        self._update_policy(action, field_whitelist=fields)
        return None

    def blacklist_fields(self, fields: Iterable[str] | None = None, action: str = "index") -> frozenset[str] | None:
        """Qualified fields that are never selected."""
        if not fields:
            return self.policy(action).field_blacklist
        self._update_policy(action, field_blacklist=fields)
        return None

    def whitelist_relations(self, relations: Iterable[str] | None = None, action: str = "index") -> frozenset[str] | None:
        """Relations that may be joined on demand; none when unset."""
        if not relations:
            return self.policy(action).relation_whitelist
        self._update_policy(action, relation_whitelist=relations)
        return None

    def allow_no_filter(self, permit: bool | None = None, action: str = "index") -> bool | None:
        """Whether a read may omit `fields`, bypassing white- and blacklists."""
        if permit is None:
            return self.policy(action).allow_unfiltered
        self._update_policy(action, allow_unfiltered=bool(permit))
        return None

    # ------------------------
    # Serialization
    # ------------------------
    def select_fields(self, action: str, fields: str | None) -> FieldSelection:
        """Resolve the requested `fields` value against the action policy."""
        return resolve_fields(fields, self.schema, self.policy(action))

    def serialize(self, record: Any, selection: FieldSelection) -> dict[str, Any]:
        if selection.is_empty:
            return self.read_schema.model_validate(record).model_dump(mode="json")
        return jsonable_encoder(project_row(record, selection, self.name))

    # ------------------------
    # Actions
    # ------------------------
    def index(self, session: Session, *, fields: str | None = None, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
        """List records, projected when `fields` is given."""
        selection = self.select_fields("index", fields)
        records = list_records(
            session,
            self.model,
            selection=selection,
            schema_name=self.name,
            limit=limit,
            offset=offset,
        )
        return [self.serialize(record, selection) for record in records]

    def _get_or_404(self, session: Session, record_id: Any, selection: FieldSelection | None = None) -> Any:
        record = get_record(session, self.model, record_id, selection=selection, schema_name=self.name)
        if record is None:
            raise NotFoundError(message=f"{self.name} not found")
        return record

    def view(self, session: Session, record_id: Any, *, fields: str | None = None) -> dict[str, Any]:
        """Fetch one record, projected when `fields` is given."""
        selection = self.select_fields("view", fields)
        record = self._get_or_404(session, record_id, selection)
        return self.serialize(record, selection)

    def _check_references(self, session: Session, values: dict[str, Any]) -> None:
        errors: dict[str, list[str]] = {}
        for relationship in inspect(self.model).relationships:
            if relationship.uselist:
                continue
            for column in relationship.local_columns:
                value = values.get(column.key)
                if value is not None and session.get(relationship.mapper.class_, value) is None:
                    errors.setdefault(column.key, []).append(f"Referenced {relationship.key} does not exist")
        if errors:
            raise ValidationFailedError(errors)

    def _write(self, session: Session, operation, *args: Any) -> Any:
        try:
            record = operation(session, *args)
            session.commit()
            return record
        except IntegrityError as exc:
            session.rollback()
            errors = integrity_errors(self.model, exc)
            logger.info("Integrity error on %s: %s", self.name, errors or "unclassified")
            raise ValidationFailedError(errors or {"request": [f"{self.name} payload violates schema constraints"]}) from exc

    def add(self, session: Session, payload: BaseModel) -> dict[str, Any]:
        """Create a record from a validated payload."""
        values = payload.model_dump()
        self._check_references(session, values)
        record = self._write(session, create_record, self.model, values)
        return self.serialize(record, FieldSelection())

    def edit(self, session: Session, record_id: Any, payload: BaseModel) -> dict[str, Any]:
        """Apply a partial update to an existing record."""
        record = self._get_or_404(session, record_id)
        values = payload.model_dump(exclude_unset=True)
        self._check_references(session, values)
        record = self._write(session, update_record, record, values)
        return self.serialize(record, FieldSelection())

    def delete(self, session: Session, record_id: Any) -> dict[str, Any]:
        """Delete a record; referenced records are refused with 409."""
        record = self._get_or_404(session, record_id)
        try:
            delete_record(session, record)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise APIError(status_code=409, message=f"{self.name} is still referenced by other records") from exc
        return {"id": record_id}
