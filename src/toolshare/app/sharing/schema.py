"""Per-tool schema descriptors for the generic scope/redaction engine.

Each shareable tool stores a JSON payload with its own field names (rooms
and decisions, boards and ideas, a flat list of fix-list items). Instead of
re-implementing scope filtering and redaction per tool, a ``ToolSchema``
tells the shared engine:

  - which top-level collection holds the scopable entries;
  - whether those entries *are* the groups (nested tools) or items that
    name their groups through key fields (flat tools);
  - at every level, which plain fields are public and which fields carry
    notes, comments, photos and the hero-image pointer.

Anything not named here is dropped by the sanitizer.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnknownTool

# Comment author email is deliberately absent: display name only.
COMMENT_FIELDS: tuple[str, ...] = (
    'id',
    'text',
    'authorName',
    'createdAt',
    'refIdeaId',
    'refOptionLabel',
)

PHOTO_FIELDS: tuple[str, ...] = (
    'id',
    'url',
    'thumbnailUrl',
    'caption',
    'label',
)


@dataclass(frozen=True, slots=True)
class EntitySchema:
    """Public shape of one level of a tool payload.

    Attributes:
        fields: Allow-listed plain fields copied verbatim.
        notes_field: Free-text field gated by ``include_notes``.
        comments_field: Comment list gated by ``include_comments``.
        photos_field: Image list gated by ``include_photos``.
        hero_field: Hero-image pointer gated by ``include_photos``.
        children: ``(field, schema)`` pairs for nested collections.
    """

    fields: tuple[str, ...]
    notes_field: str | None = None
    comments_field: str | None = None
    photos_field: str | None = None
    hero_field: str | None = None
    children: tuple[tuple[str, EntitySchema], ...] = ()


@dataclass(frozen=True, slots=True)
class ToolSchema:
    """Descriptor for one shareable tool.

    Attributes:
        tool_key: Registry key used in URLs (``punchlist``, ...).
        label: Human-readable tool name.
        scope_label: Plural name of the scope dimension shown in pickers.
        collection_field: Top-level payload field holding the entries.
        entry: Schema of each entry in ``collection_field``.
        root_fields: Top-level payload fields kept besides the collection.
        group_key_fields: For flat tools, the entry fields whose values are
            the entry's group ids. Empty for nested tools, where each entry
            is itself a group identified by ``id``.
        group_name_field: Display-name field of a nested group.
    """

    tool_key: str
    label: str
    scope_label: str
    collection_field: str
    entry: EntitySchema
    root_fields: tuple[str, ...] = ('version',)
    group_key_fields: tuple[str, ...] = ()
    group_name_field: str = 'name'

    @property
    def is_flat(self) -> bool:
        return bool(self.group_key_fields)


# ── Registered tools ─────────────────────────────────────────────────


PUNCHLIST = ToolSchema(
    tool_key='punchlist',
    label='Fix List',
    scope_label='Locations',
    collection_field='items',
    group_key_fields=('location', 'assigneeLabel'),
    entry=EntitySchema(
        fields=(
            'id',
            'itemNumber',
            'title',
            'location',
            'status',
            'assigneeLabel',
            'priority',
            'createdAt',
            'updatedAt',
            'completedAt',
        ),
        notes_field='notes',
        comments_field='comments',
        photos_field='photos',
    ),
)

MOOD_BOARDS = ToolSchema(
    tool_key='mood_boards',
    label='Mood Boards',
    scope_label='Boards',
    collection_field='boards',
    entry=EntitySchema(
        fields=('id', 'name'),
        comments_field='comments',
        children=(
            (
                'ideas',
                EntitySchema(
                    fields=('id', 'name', 'sourceUrl', 'sourceTitle', 'tags'),
                    notes_field='notes',
                    photos_field='images',
                    hero_field='heroImageId',
                ),
            ),
        ),
    ),
)

FINISH_DECISIONS = ToolSchema(
    tool_key='finish_decisions',
    label='Finish Selections',
    scope_label='Rooms',
    collection_field='rooms',
    entry=EntitySchema(
        fields=('id', 'name', 'type'),
        children=(
            (
                'decisions',
                EntitySchema(
                    fields=('id', 'title', 'category', 'status', 'dueDate'),
                    notes_field='notes',
                    comments_field='comments',
                    children=(
                        (
                            'options',
                            EntitySchema(
                                fields=('id', 'name', 'isSelected'),
                                notes_field='notes',
                                photos_field='images',
                                hero_field='heroImageId',
                            ),
                        ),
                    ),
                ),
            ),
        ),
    ),
)

TOOL_SCHEMAS: dict[str, ToolSchema] = {
    schema.tool_key: schema
    for schema in (PUNCHLIST, MOOD_BOARDS, FINISH_DECISIONS)
}


def get_tool_schema(tool_key: str) -> ToolSchema:
    """Return the schema for ``tool_key`` or raise ``UnknownTool``."""
    schema = TOOL_SCHEMAS.get(tool_key)
    if schema is None:
        raise UnknownTool(f'Tool {tool_key!r} does not support public links.')
    return schema
