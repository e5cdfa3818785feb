"""Client-driven field projection with whitelist/blacklist policy.

A client asks for output fields with a comma separated `fields` query
parameter, e.g. `?fields=Post.id,title,author.name`. Unqualified names belong
to the primary resource. Fields on related resources are only honoured when
the relation is whitelisted, and only one hop away from the primary resource.

Unknown or disallowed fields are dropped silently; the only error is a
missing selection on an action that does not allow unfiltered reads.
"""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from types import MappingProxyType

from crud_api.core.errors import MissingFieldSelectionError


@dataclass(frozen=True)
class ResourceSchema:
    """Fields of a resource and the resources directly associated with it."""

    name: str
    fields: frozenset[str]
    associations: Mapping[str, ResourceSchema] = field(default_factory=lambda: MappingProxyType({}))

    def has_field(self, name: str) -> bool:
        return name in self.fields


@dataclass(frozen=True)
class FilterPolicy:
    """Per-action projection policy.

    Empty whitelists mean "not configured": every field passes the field
    whitelist, but no relation may be joined.
    """

    field_whitelist: frozenset[str] = frozenset()
    field_blacklist: frozenset[str] = frozenset()
    relation_whitelist: frozenset[str] = frozenset()
    allow_unfiltered: bool = False

    @classmethod
    def build(
        cls,
        *,
        field_whitelist: Iterable[str] | None = None,
        field_blacklist: Iterable[str] | None = None,
        relation_whitelist: Iterable[str] | None = None,
        allow_unfiltered: bool = False,
    ) -> FilterPolicy:
        return cls(
            field_whitelist=frozenset(field_whitelist or ()),
            field_blacklist=frozenset(field_blacklist or ()),
            relation_whitelist=frozenset(relation_whitelist or ()),
            allow_unfiltered=bool(allow_unfiltered),
        )


@dataclass(frozen=True)
class FieldSelection:
    """Authorized projection: qualified field names and joined relations."""

    fields: tuple[str, ...] = ()
    relations: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def fields_for(self, qualifier: str) -> list[str]:
        """Unqualified field names selected on one resource, in request order."""
        prefix = f"{qualifier}."
        return [name[len(prefix):] for name in self.fields if name.startswith(prefix)]


def parse_requested_fields(raw: str | None) -> list[str]:
    """Split a comma separated field list, dropping blanks and duplicates."""
    if not raw:
        return []

    tokens: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def split_field(token: str, default_qualifier: str) -> tuple[str, str]:
    """Split `Model.field` at the first dot; bare names get `default_qualifier`."""
    qualifier, dot, name = token.partition(".")
    if not dot:
        return default_qualifier, token
    return (qualifier or default_qualifier), name


def _field_exists(schema: ResourceSchema, policy: FilterPolicy, qualifier: str, name: str) -> bool:
    if qualifier == schema.name:
        return schema.has_field(name)

    related = schema.associations.get(qualifier)
    if related is None:
        return False
    if qualifier not in policy.relation_whitelist:
        return False
    return related.has_field(name)


def _field_allowed(policy: FilterPolicy, qualified: str) -> bool:
    if policy.field_whitelist and qualified not in policy.field_whitelist:
        return False
    return qualified not in policy.field_blacklist


def resolve_fields(requested: str | None, schema: ResourceSchema, policy: FilterPolicy) -> FieldSelection:
    """Compute the authorized projection for a requested `fields` value.

    Raises `MissingFieldSelectionError` when nothing usable was requested and
    the policy does not allow unfiltered reads. An empty selection otherwise
    means "no projection".
    """
    fields: list[str] = []
    relations: set[str] = set()

    for token in parse_requested_fields(requested):
        qualifier, name = split_field(token, schema.name)
        if not _field_exists(schema, policy, qualifier, name):
            continue

        qualified = f"{qualifier}.{name}"
        if not _field_allowed(policy, qualified):
            continue

        if qualified not in fields:
            fields.append(qualified)
        if qualifier != schema.name:
            relations.add(qualifier)

    if not fields:
        if not policy.allow_unfiltered:
            raise MissingFieldSelectionError()
        return FieldSelection()

    return FieldSelection(fields=tuple(fields), relations=frozenset(relations))
