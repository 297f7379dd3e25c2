"""HTML rendering of public share views.

Everything interpolated into markup goes through ``esc``. Image sources
are restricted to http(s) and root-relative URLs.
"""

from __future__ import annotations

import html
from typing import Any, Mapping

from .errors import INVALID_LINK_MESSAGE
from .schema import EntitySchema, ToolSchema
from .validator import PublicView

UNAVAILABLE_MESSAGE = 'Temporarily Unavailable'

_TITLE_FIELDS = ('title', 'name')
_HIDDEN_FIELDS = frozenset({'id', 'title', 'name'})

_STYLE = """
body{font-family:system-ui,sans-serif;max-width:860px;margin:2rem auto;padding:0 1rem;color:#222}
header p{color:#666}
.banner{background:#f4f4f4;padding:.5rem .75rem;border-radius:6px}
section{border-top:1px solid #ddd;padding:.75rem 0}
dl{display:grid;grid-template-columns:max-content 1fr;gap:.2rem .8rem}
dt{color:#666}
img{max-width:240px;margin:.25rem;border-radius:4px}
.notes{white-space:pre-wrap}
"""


def esc(value: Any) -> str:
    """HTML-escape any payload-derived value, quotes included."""
    if value is None:
        return ''
    return html.escape(str(value), quote=True)


def _safe_url(url: Any) -> str:
    if not isinstance(url, str):
        return ''
    if url.startswith(('https://', 'http://', '/')) and not url.startswith('//'):
        return url
    return ''


def _page(title: str, body: str) -> str:
    return (
        '<!doctype html><html lang="en"><head><meta charset="utf-8">'
        '<meta name="robots" content="noindex, nofollow">'
        '<meta name="referrer" content="no-referrer">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f'<title>{esc(title)}</title><style>{_STYLE}</style></head>'
        f'<body>{body}</body></html>'
    )


def _photo_html(photo: Any) -> str:
    if isinstance(photo, Mapping):
        src = _safe_url(photo.get('thumbnailUrl') or photo.get('url'))
        alt = photo.get('caption') or photo.get('label') or ''
    else:
        src, alt = _safe_url(photo), ''
    if not src:
        return ''
    return f'<img src="{esc(src)}" alt="{esc(alt)}" loading="lazy">'


def _entity_html(entity: Mapping[str, Any], schema: EntitySchema, depth: int) -> str:
    heading = next(
        (entity[f] for f in _TITLE_FIELDS if entity.get(f) not in (None, '')),
        entity.get('id', ''),
    )
    level = min(depth + 2, 6)
    parts = [f'<section><h{level}>{esc(heading)}</h{level}>']

    rows = []
    for f in schema.fields:
        value = entity.get(f)
        if f in _HIDDEN_FIELDS or value in (None, '', []):
            continue
        if isinstance(value, list):
            value = ', '.join(map(str, value))
        rows.append(f'<dt>{esc(f)}</dt><dd>{esc(value)}</dd>')
    if rows:
        parts.append(f'<dl>{"".join(rows)}</dl>')

    if schema.notes_field and entity.get(schema.notes_field):
        parts.append(f'<p class="notes">{esc(entity[schema.notes_field])}</p>')

    if schema.photos_field:
        imgs = ''.join(_photo_html(p) for p in entity.get(schema.photos_field) or [])
        if imgs:
            parts.append(f'<div class="photos">{imgs}</div>')

    if schema.comments_field:
        comments = entity.get(schema.comments_field) or []
        if comments:
            items = ''.join(
                f'<li><strong>{esc(c.get("authorName") or "Someone")}</strong>: '
                f'{esc(c.get("text"))}</li>'
                for c in comments
            )
            parts.append(f'<ul class="comments">{items}</ul>')

    for child_field, child_schema in schema.children:
        for child in entity.get(child_field) or []:
            parts.append(_entity_html(child, child_schema, depth + 1))

    parts.append('</section>')
    return ''.join(parts)


def render_share_page(view: PublicView, schema: ToolSchema) -> str:
    title = f'{view.project_name} · {schema.label}'.strip(' ·')
    header = [
        '<header>',
        f'<h1>{esc(view.project_name)}</h1>',
        f'<p>{esc(schema.label)} (read-only)</p>',
    ]
    if not view.scope.is_all:
        labels = ', '.join(view.scope.labels) or 'selected items'
        header.append(
            f'<p class="banner">Showing {esc(schema.scope_label)}: {esc(labels)}</p>',
        )
    header.append(
        f'<p>This link expires on {esc(view.token.expires_at.date().isoformat())}.</p>',
    )
    header.append('</header>')

    entries = view.payload.get(schema.collection_field) or []
    if entries:
        body = ''.join(_entity_html(e, schema.entry, 0) for e in entries)
    else:
        body = '<p>Nothing to show yet.</p>'
    return _page(title, ''.join(header) + f'<main>{body}</main>')


def render_invalid_page() -> str:
    return _page(
        INVALID_LINK_MESSAGE,
        f'<main><h1>{esc(INVALID_LINK_MESSAGE)}</h1>'
        '<p>This link is no longer available. Ask the project owner for a new one.</p>'
        '</main>',
    )


def render_unavailable_page() -> str:
    return _page(
        UNAVAILABLE_MESSAGE,
        f'<main><h1>{esc(UNAVAILABLE_MESSAGE)}</h1>'
        '<p>This page could not be loaded right now. Try again in a few minutes.</p>'
        '</main>',
    )
