"""Generic repository primitives shared by CRUD resources."""

from __future__ import annotations

from typing import Any
from typing import TypeVar

from sqlalchemy import Select
from sqlalchemy import inspect
from sqlalchemy import select
from sqlalchemy.orm import Session

from crud_api.core.field_filter import FieldSelection
from crud_api.db.projection import apply_selection

ModelT = TypeVar("ModelT")


def primary_key_column(model: type) -> Any:
    """Return the single primary key column attribute of a mapped class."""
    mapper = inspect(model)
    if len(mapper.primary_key) != 1:
        raise ValueError(f"{model.__name__} must have exactly one primary key column")
    prop = mapper.get_property_by_column(mapper.primary_key[0])
    return getattr(model, prop.key)


def _select(model: type[ModelT], selection: FieldSelection | None, schema_name: str | None) -> Select:
    stmt = select(model)
    if selection is not None and not selection.is_empty:
        stmt = apply_selection(stmt, model, selection, schema_name)
    return stmt


def create_record(session: Session, model: type[ModelT], values: dict[str, Any]) -> ModelT:
    """Create and return a row."""
    record = model(**values)
    session.add(record)
    session.flush()
    session.refresh(record)
    return record


def get_record(
    session: Session,
    model: type[ModelT],
    record_id: Any,
    *,
    selection: FieldSelection | None = None,
    schema_name: str | None = None,
) -> ModelT | None:
    """Fetch a row by primary key, optionally projected."""
    if selection is None or selection.is_empty:
        return session.get(model, record_id)

    stmt = _select(model, selection, schema_name).where(primary_key_column(model) == record_id)
    return session.scalars(stmt).first()


def list_records(
    session: Session,
    model: type[ModelT],
    *,
    selection: FieldSelection | None = None,
    schema_name: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[ModelT]:
    """List rows in primary key order, optionally projected."""
    stmt = _select(model, selection, schema_name)
    stmt = stmt.order_by(primary_key_column(model).asc()).limit(limit).offset(offset)
    return list(session.scalars(stmt))


def update_record(session: Session, record: ModelT, values: dict[str, Any]) -> ModelT:
    """Apply `values` to a row and return it refreshed."""
    for key, value in values.items():
        setattr(record, key, value)
    session.flush()
    session.refresh(record)
    return record


def delete_record(session: Session, record: Any) -> None:
    """Delete a row."""
    session.delete(record)
    session.flush()
