"""Deny-by-default redaction of tool payloads for public views.

The output is built up from nothing: only fields named by the tool's
``ToolSchema`` are copied, at every nesting level. Flags then gate the
sensitive fields:

  - ``include_notes=False``    → notes key absent (not an empty string)
  - ``include_comments=False`` → comment lists empty
  - ``include_photos=False``   → image lists empty, hero pointer ``None``

Comments and photos are themselves projected through ``COMMENT_FIELDS``
and ``PHOTO_FIELDS``, so author emails never leave the server. An
allow-listed field only survives when its value is a scalar or a list of
scalars; nested objects in plain fields are dropped.

``sanitize`` is pure and idempotent for a fixed (flags, schema).
"""

from __future__ import annotations

from typing import Any, Mapping

from .model import ShareFlags
from .schema import COMMENT_FIELDS, PHOTO_FIELDS, EntitySchema, ToolSchema


_SCALARS = (str, int, float, bool)


def _is_plain(value: Any) -> bool:
    if value is None or isinstance(value, _SCALARS):
        return True
    if isinstance(value, list):
        return all(v is None or isinstance(v, _SCALARS) for v in value)
    return False


def _project(source: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {f: source[f] for f in fields if f in source and _is_plain(source[f])}


def _dicts(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _photo(value: Any) -> Any:
    # Bare string entries are plain image URLs.
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return _project(value, PHOTO_FIELDS)
    return None


def sanitize_entity(
    entity: Mapping[str, Any],
    schema: EntitySchema,
    flags: ShareFlags,
) -> dict[str, Any]:
    """Project one entity (and its children) through ``schema``."""
    out = _project(entity, schema.fields)

    if schema.notes_field and flags.include_notes:
        notes = entity.get(schema.notes_field)
        if isinstance(notes, str):
            out[schema.notes_field] = notes

    if schema.comments_field:
        out[schema.comments_field] = (
            [_project(c, COMMENT_FIELDS) for c in _dicts(entity.get(schema.comments_field))]
            if flags.include_comments
            else []
        )

    if schema.photos_field:
        photos = entity.get(schema.photos_field)
        if flags.include_photos and isinstance(photos, list):
            out[schema.photos_field] = [
                p for p in (_photo(v) for v in photos) if p is not None
            ]
        else:
            out[schema.photos_field] = []

    if schema.hero_field:
        hero = entity.get(schema.hero_field)
        out[schema.hero_field] = (
            hero if flags.include_photos and _is_plain(hero) else None
        )

    for child_field, child_schema in schema.children:
        out[child_field] = [
            sanitize_entity(child, child_schema, flags)
            for child in _dicts(entity.get(child_field))
        ]

    return out


def sanitize(
    payload: Mapping[str, Any] | None,
    flags: ShareFlags,
    schema: ToolSchema,
) -> dict[str, Any]:
    """Return the public-safe projection of a (scope-filtered) payload."""
    if not isinstance(payload, Mapping):
        return {schema.collection_field: []}

    out = _project(payload, schema.root_fields)
    out[schema.collection_field] = [
        sanitize_entity(entry, schema.entry, flags)
        for entry in _dicts(payload.get(schema.collection_field))
    ]
    return out
