"""Bridge field selections onto SQLAlchemy mapped models and statements."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

from sqlalchemy import Select
from sqlalchemy import inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.orm import RelationshipProperty
from sqlalchemy.orm import load_only
from sqlalchemy.orm import selectinload

from crud_api.core.field_filter import FieldSelection
from crud_api.core.field_filter import ResourceSchema


def _column_keys(mapper: Mapper) -> frozenset[str]:
    return frozenset(attr.key for attr in mapper.column_attrs)


def _keys_for_columns(mapper: Mapper, columns: Any) -> list[str]:
    keys: list[str] = []
    for column in columns:
        try:
            prop = mapper.get_property_by_column(column)
        except Exception:
            continue
        keys.append(prop.key)
    return keys


def schema_for_model(model: type, name: str | None = None) -> ResourceSchema:
    """Describe a mapped class and its direct relationships.

    Related schemas are keyed and named by relationship attribute and carry
    no associations of their own, so only one hop is ever reachable.
    """
    mapper = inspect(model)
    associations = {
        relationship.key: ResourceSchema(
            name=relationship.key,
            fields=_column_keys(relationship.mapper),
        )
        for relationship in mapper.relationships
    }
    return ResourceSchema(
        name=name or model.__name__,
        fields=_column_keys(mapper),
        associations=MappingProxyType(associations),
    )


def _merge(first: list[str], *others: list[str]) -> list[str]:
    merged = list(first)
    for keys in others:
        for key in keys:
            if key not in merged:
                merged.append(key)
    return merged


def apply_selection(stmt: Select, model: type, selection: FieldSelection, schema_name: str | None = None) -> Select:
    """Restrict loaded columns and eager-load the selected relations.

    Primary keys and the join columns each relationship needs are always
    loaded, whether or not the client asked for them.
    """
    if selection.is_empty:
        return stmt

    mapper = inspect(model)
    schema_name = schema_name or model.__name__
    primary_keys = _keys_for_columns(mapper, mapper.primary_key)

    join_keys: list[str] = []
    options = []
    for relation in sorted(selection.relations):
        relationship: RelationshipProperty = mapper.relationships[relation]
        join_keys = _merge(join_keys, _keys_for_columns(mapper, relationship.local_columns))

        related_mapper = relationship.mapper
        related_keys = _merge(
            _keys_for_columns(related_mapper, related_mapper.primary_key),
            _keys_for_columns(related_mapper, relationship.remote_side),
            selection.fields_for(relation),
        )
        related_cls = related_mapper.class_
        options.append(
            selectinload(getattr(model, relation)).load_only(
                *(getattr(related_cls, key) for key in related_keys),
            )
        )

    keys = _merge(primary_keys, join_keys, selection.fields_for(schema_name))
    return stmt.options(load_only(*(getattr(model, key) for key in keys)), *options)


def project_row(obj: Any, selection: FieldSelection, schema_name: str | None = None) -> dict[str, Any]:
    """Return only the selected fields of `obj`, relations nested by name."""
    mapper = inspect(type(obj))
    schema_name = schema_name or type(obj).__name__

    row: dict[str, Any] = {key: getattr(obj, key) for key in selection.fields_for(schema_name)}
    for relation in sorted(selection.relations):
        keys = selection.fields_for(relation)
        related = getattr(obj, relation)
        if related is None:
            row[relation] = None
        elif mapper.relationships[relation].uselist:
            row[relation] = [{key: getattr(item, key) for key in keys} for item in related]
        else:
            row[relation] = {key: getattr(related, key) for key in keys}
    return row
