"""Scope parsing, group catalogs and visible-subset resolution.

Nested tools (boards, rooms) scope by the id of each top-level entry.
Flat tools (the fix list) scope by field values instead, with one id
namespace per group field: ``location:Kitchen``, ``assigneeLabel:Bob``.
Within a field any selected value matches; across fields every field
that has a selection must match. A field with nothing selected does not
constrain.

``resolve`` is pure and total: it never raises on payload content, and
ids that no longer match any group contribute nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ValidationError
from .model import SCOPE_ALL, SCOPE_MODES, SCOPE_SELECTED, ShareScope
from .schema import ToolSchema

GROUP_ID_SEPARATOR = ':'


@dataclass(frozen=True, slots=True)
class ScopeOption:
    """One selectable group (room, board, location or assignee)."""

    id: str
    name: str
    kind: str

    def to_dict(self) -> dict[str, str]:
        return {'id': self.id, 'name': self.name, 'kind': self.kind}


def flat_group_id(field: str, value: Any) -> str:
    """Scope id of a flat-tool group, e.g. ``location:Kitchen``."""
    return f'{field}{GROUP_ID_SEPARATOR}{value}'


def _split_flat_ids(schema: ToolSchema, ids: frozenset[str]) -> dict[str, frozenset[str]]:
    """Selected values per group field. Ids of unknown fields are dropped."""
    selected: dict[str, set[str]] = {f: set() for f in schema.group_key_fields}
    for group_id in ids:
        field, sep, value = group_id.partition(GROUP_ID_SEPARATOR)
        if sep and field in selected:
            selected[field].add(value)
    return {f: frozenset(v) for f, v in selected.items() if v}


def parse_scope(
    raw: Mapping[str, Any] | None,
    schema: ToolSchema | None = None,
) -> ShareScope:
    """Validate a ``{mode, ids}`` request object into a ShareScope.

    A missing scope means ``all``. ``ids`` is ignored in ``all`` mode.
    With a flat ``schema``, every id must name one of its group fields.

    Raises:
        ValidationError: Unknown mode or malformed ids.
    """
    if raw is None:
        return ShareScope()

    mode = raw.get('mode', SCOPE_ALL)
    if mode not in SCOPE_MODES:
        raise ValidationError(
            'scope.mode',
            f'Scope mode must be one of: {sorted(SCOPE_MODES)}',
        )
    if mode == SCOPE_ALL:
        return ShareScope()

    ids = raw.get('ids') or []
    if not isinstance(ids, (list, tuple)) or not all(
        isinstance(i, str) and i for i in ids
    ):
        raise ValidationError('scope.ids', 'Scope ids must be non-empty strings')

    if schema is not None and schema.is_flat:
        fields = schema.group_key_fields
        for group_id in ids:
            field, sep, value = group_id.partition(GROUP_ID_SEPARATOR)
            if not (sep and value and field in fields):
                raise ValidationError(
                    'scope.ids',
                    f'Scope ids must look like <field>:<value> with field '
                    f'one of: {list(fields)}',
                )
    return ShareScope(mode=SCOPE_SELECTED, ids=frozenset(ids))


def _entries(schema: ToolSchema, payload: Mapping[str, Any] | None) -> list[dict]:
    if not isinstance(payload, Mapping):
        return []
    entries = payload.get(schema.collection_field)
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict)]


def _matches(entry: Mapping[str, Any], selected: dict[str, frozenset[str]]) -> bool:
    for field, values in selected.items():
        value = entry.get(field)
        if value in (None, '') or str(value) not in values:
            return False
    return True


def group_catalog(
    schema: ToolSchema, payload: Mapping[str, Any] | None,
) -> list[ScopeOption]:
    """List the groups currently present in ``payload``, in payload order.

    Nested tools list their rooms/boards. Flat tools list the distinct
    values of each group key field (locations, then assignees).
    """
    entries = _entries(schema, payload)
    options: list[ScopeOption] = []
    seen: set[str] = set()

    if schema.is_flat:
        for key_field in schema.group_key_fields:
            for entry in entries:
                value = entry.get(key_field)
                if value in (None, ''):
                    continue
                group_id = flat_group_id(key_field, value)
                if group_id in seen:
                    continue
                seen.add(group_id)
                options.append(ScopeOption(id=group_id, name=str(value), kind=key_field))
        return options

    for entry in entries:
        group_id = entry.get('id')
        if group_id in (None, '') or str(group_id) in seen:
            continue
        seen.add(str(group_id))
        name = entry.get(schema.group_name_field) or group_id
        options.append(
            ScopeOption(id=str(group_id), name=str(name), kind=schema.collection_field),
        )
    return options


def risk_group_count(schema: ToolSchema, catalog: list[ScopeOption]) -> int:
    """Groups counted toward the risky-share threshold.

    Flat tools count only their primary dimension (locations).
    """
    if schema.is_flat:
        primary = schema.group_key_fields[0]
        return sum(1 for option in catalog if option.kind == primary)
    return len(catalog)


def label_scope(scope: ShareScope, catalog: list[ScopeOption]) -> ShareScope:
    """Attach display labels for the selected ids known to ``catalog``."""
    if scope.is_all:
        return scope
    labels = tuple(o.name for o in catalog if o.id in scope.ids)
    return ShareScope(mode=scope.mode, ids=scope.ids, labels=labels)


def resolve(
    scope: ShareScope,
    payload: Mapping[str, Any] | None,
    schema: ToolSchema,
) -> dict[str, Any]:
    """Return the part of ``payload`` visible under ``scope``.

    ``all`` keeps the collection as-is. ``selected`` keeps only entries
    whose group is selected; an empty id set keeps nothing.
    """
    base: dict[str, Any] = dict(payload) if isinstance(payload, Mapping) else {}

    if scope.mode != SCOPE_SELECTED:
        return base

    entries = _entries(schema, payload)
    if schema.is_flat:
        selected = _split_flat_ids(schema, scope.ids)
        visible = [e for e in entries if selected and _matches(e, selected)]
    else:
        visible = [
            e for e in entries
            if e.get('id') not in (None, '') and str(e['id']) in scope.ids
        ]
    base[schema.collection_field] = visible
    return base
