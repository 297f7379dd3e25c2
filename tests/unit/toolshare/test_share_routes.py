"""Tests for share-link management and export endpoints.

Validates:
  - Owner-only create/list/revoke; collaborators get 403.
  - Plaintext token returned once; listings expose only the prefix.
  - Expiry fixed at 14 days regardless of request body.
  - Listing includes expired and revoked history with status.
  - Idempotent revoke, 400 without tokenId, 404 for foreign ids.
  - Malformed requests map to 400 with the offending field.
  - Risk preview, scope catalog and collaborator export.
  - Storage failures map to 503.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from toolshare.app.inmemory import InMemoryProjectRepository, InMemoryToolDataRepository
from toolshare.app.protocols import LEVEL_EDIT, LEVEL_VIEW, ROLE_MEMBER
from toolshare.app.security.token_verify import AuthIdentity
from toolshare.app.settings import ShareSettings
from toolshare.app.sharing.access import AccessGate
from toolshare.app.sharing.audit import SHARE_CREATED, SHARE_REVOKED, InMemoryShareAuditEmitter
from toolshare.app.sharing.errors import TransientFailure, register_error_handlers
from toolshare.app.sharing.model import InMemoryShareTokenStore
from toolshare.app.sharing.routes import create_share_router

BASE = 'https://share.example.com'


# ── Test helpers ──────────────────────────────────────────────────────


class FailingStore(InMemoryShareTokenStore):
    async def create(self, **kwargs):
        raise TransientFailure('Share link storage unavailable (create)')

    async def list_by_project(self, tool_key, project_id):
        raise TransientFailure('Share link storage unavailable (list)')


def _make_app(clock, payloads, *, store=None, settings=None) -> FastAPI:
    """Build a test app with share routes and header-selected fake auth."""
    projects = InMemoryProjectRepository()
    projects.add_project('proj_1', 'Maple St Remodel', owner_id='owner_1')
    projects.add_member(
        'proj_1', 'editor_1', role=ROLE_MEMBER,
        tool_levels={'mood_boards': LEVEL_EDIT, 'punchlist': LEVEL_EDIT},
    )
    projects.add_member(
        'proj_1', 'viewer_1', role=ROLE_MEMBER, tool_levels={'mood_boards': LEVEL_VIEW},
    )
    tool_data = InMemoryToolDataRepository()
    for tool_key, payload in payloads.items():
        tool_data.put_payload('proj_1', tool_key, payload)

    store = store or InMemoryShareTokenStore(clock=clock)
    audit = InMemoryShareAuditEmitter()
    settings = settings or ShareSettings(public_base_url=BASE)

    app = FastAPI()
    register_error_handlers(app)
    app.include_router(
        create_share_router(
            store, AccessGate(projects), tool_data, audit, settings, clock=clock,
        )
    )

    @app.middleware('http')
    async def fake_auth(request: Request, call_next):
        request.state.auth_identity = AuthIdentity(
            user_id=request.headers.get('x-test-user', 'owner_1'),
            email='user@test.com',
        )
        return await call_next(request)

    app.state.store = store
    app.state.audit = audit
    return app


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url='http://test')


@pytest.fixture
def app(clock, mood_payload, punch_payload):
    return _make_app(clock, {'mood_boards': mood_payload, 'punchlist': punch_payload})


URL = '/api/tools/mood_boards/share-token?projectId=proj_1'


async def _create(client, body=None, user='owner_1', url=URL):
    return await client.post(url, json=body or {}, headers={'x-test-user': user})


async def _revoke(client, token_id, user='owner_1'):
    return await client.request(
        'DELETE', URL, json={'tokenId': token_id}, headers={'x-test-user': user},
    )


# =====================================================================
# Create
# =====================================================================


class TestCreate:

    @pytest.mark.asyncio
    async def test_owner_creates_link(self, app):
        async with _client(app) as client:
            resp = await _create(client, {'includePhotos': True})
        assert resp.status_code == 201
        data = resp.json()
        assert data['id'].startswith('stk_')
        assert data['url'] == f"{BASE}/share/mood_boards/{data['token']}"
        assert data['includePhotos'] is True
        assert data['includeNotes'] is False
        assert data['scope'] == {'mode': 'all', 'ids': [], 'labels': []}

    @pytest.mark.asyncio
    async def test_expiry_is_fixed_at_fourteen_days(self, app):
        async with _client(app) as client:
            resp = await _create(client, {'expiresAt': '2099-01-01T00:00:00Z'})
        data = resp.json()
        created = datetime.fromisoformat(data['createdAt'])
        expires = datetime.fromisoformat(data['expiresAt'])
        assert expires - created == timedelta(days=14)

    @pytest.mark.asyncio
    async def test_plaintext_not_stored(self, app):
        async with _client(app) as client:
            token = (await _create(client)).json()['token']
        [stored] = await app.state.store.list_by_project('mood_boards', 'proj_1')
        assert token not in (stored.token_hash, stored.token_prefix)
        assert await app.state.store.lookup(token) == stored

    @pytest.mark.asyncio
    async def test_selected_scope_captures_labels(self, app):
        body = {'scope': {'mode': 'selected', 'ids': ['board_kitchen']}}
        async with _client(app) as client:
            resp = await _create(client, body)
        assert resp.json()['scope'] == {
            'mode': 'selected', 'ids': ['board_kitchen'], 'labels': ['Kitchen'],
        }

    @pytest.mark.asyncio
    async def test_fix_list_scope_by_location_and_assignee(self, app):
        body = {'scope': {
            'mode': 'selected', 'ids': ['location:Kitchen', 'assigneeLabel:Painter'],
        }}
        url = '/api/tools/punchlist/share-token?projectId=proj_1'
        async with _client(app) as client:
            resp = await _create(client, body, url=url)
            export = await client.get(
                '/api/tools/punchlist/export',
                params={
                    'projectId': 'proj_1',
                    'scopeMode': 'selected',
                    'ids': ['location:Kitchen', 'assigneeLabel:Painter'],
                },
            )
        assert resp.status_code == 201
        assert resp.json()['scope']['labels'] == ['Kitchen', 'Painter']
        assert [i['id'] for i in export.json()['payload']['items']] == ['pl_1']

    @pytest.mark.asyncio
    async def test_fix_list_scope_ids_must_name_field(self, app):
        body = {'scope': {'mode': 'selected', 'ids': ['Kitchen']}}
        url = '/api/tools/punchlist/share-token?projectId=proj_1'
        async with _client(app) as client:
            resp = await _create(client, body, url=url)
        assert resp.status_code == 400
        assert resp.json()['field'] == 'scope.ids'

    @pytest.mark.asyncio
    async def test_audit_event_has_no_plaintext(self, app):
        async with _client(app) as client:
            token = (await _create(client)).json()['token']
        [event] = app.state.audit.find(SHARE_CREATED)
        assert token not in repr(event.to_dict())

    @pytest.mark.asyncio
    @pytest.mark.parametrize('user', ['editor_1', 'viewer_1'])
    async def test_collaborator_forbidden(self, app, user):
        async with _client(app) as client:
            resp = await _create(client, user=user)
        assert resp.status_code == 403
        assert resp.json() == {'error': 'forbidden', 'detail': 'Owner access required'}
        assert await app.state.store.list_by_project('mood_boards', 'proj_1') == []

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, app):
        async with _client(app) as client:
            resp = await _create(client, user='stranger')
        assert resp.status_code == 403
        assert resp.json()['detail'] == 'No access to this tool'

    @pytest.mark.asyncio
    async def test_unknown_scope_mode_rejected(self, app):
        async with _client(app) as client:
            resp = await _create(client, {'scope': {'mode': 'some'}})
        assert resp.status_code == 400
        assert resp.json()['field'] == 'scope.mode'

    @pytest.mark.asyncio
    async def test_non_list_ids_rejected(self, app):
        async with _client(app) as client:
            resp = await _create(client, {'scope': {'mode': 'selected', 'ids': 'board_kitchen'}})
        assert resp.status_code == 400
        assert resp.json()['error'] == 'invalid_request'
        assert resp.json()['field'] == 'scope.ids'

    @pytest.mark.asyncio
    async def test_missing_project_rejected(self, app):
        async with _client(app) as client:
            resp = await client.post('/api/tools/mood_boards/share-token', json={})
        assert resp.status_code == 400
        assert resp.json()['field'] == 'projectId'

    @pytest.mark.asyncio
    async def test_unknown_tool(self, app):
        async with _client(app) as client:
            resp = await _create(client, url='/api/tools/budget/share-token?projectId=proj_1')
        assert resp.status_code == 404
        assert resp.json()['error'] == 'unknown_tool'

    @pytest.mark.asyncio
    async def test_hide_notes_failsafe_applies_at_create(self, clock, mood_payload):
        app = _make_app(
            clock,
            {'mood_boards': mood_payload},
            settings=ShareSettings(hide_notes_in_public_share=True),
        )
        async with _client(app) as client:
            resp = await _create(client, {'includeNotes': True})
        assert resp.json()['includeNotes'] is False

    @pytest.mark.asyncio
    async def test_storage_failure_is_503(self, clock, mood_payload):
        app = _make_app(clock, {'mood_boards': mood_payload}, store=FailingStore(clock))
        async with _client(app) as client:
            resp = await _create(client)
        assert resp.status_code == 503
        assert resp.json()['error'] == 'unavailable'


# =====================================================================
# List
# =====================================================================


class TestList:

    @pytest.mark.asyncio
    async def test_list_includes_history_with_status(self, app, clock):
        async with _client(app) as client:
            first = (await _create(client)).json()
            clock.advance(timedelta(days=1))
            second = (await _create(client)).json()
            clock.advance(timedelta(days=1))
            third = (await _create(client)).json()
            await _revoke(client, second['id'])
            clock.advance(timedelta(days=12, hours=1))
            resp = await client.get(URL)

        assert resp.status_code == 200
        tokens = resp.json()['tokens']
        assert [t['id'] for t in tokens] == [third['id'], second['id'], first['id']]
        assert [t['status'] for t in tokens] == ['active', 'revoked', 'expired']
        assert tokens[1]['revokedAt'] is not None

    @pytest.mark.asyncio
    async def test_list_shows_prefix_not_token(self, app):
        async with _client(app) as client:
            created = (await _create(client)).json()
            resp = await client.get(URL)
        [entry] = resp.json()['tokens']
        assert 'token' not in entry
        assert 'url' not in entry
        assert entry['tokenPrefix'] == created['token'][:8]
        assert created['token'] not in resp.text

    @pytest.mark.asyncio
    async def test_collaborator_cannot_list(self, app):
        async with _client(app) as client:
            resp = await client.get(URL, headers={'x-test-user': 'editor_1'})
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_storage_failure_is_503(self, clock, mood_payload):
        app = _make_app(clock, {'mood_boards': mood_payload}, store=FailingStore(clock))
        async with _client(app) as client:
            resp = await client.get(URL)
        assert resp.status_code == 503


# =====================================================================
# Revoke
# =====================================================================


class TestRevoke:

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, app):
        async with _client(app) as client:
            created = (await _create(client)).json()
            first = await _revoke(client, created['id'])
            second = await _revoke(client, created['id'])
        assert first.status_code == 204
        assert second.status_code == 204
        assert len(app.state.audit.find(SHARE_REVOKED)) == 2

    @pytest.mark.asyncio
    async def test_revoke_requires_token_id(self, app):
        async with _client(app) as client:
            resp = await client.request('DELETE', URL, json={})
        assert resp.status_code == 400
        assert resp.json() == {
            'error': 'invalid_request',
            'field': 'tokenId',
            'detail': 'tokenId required',
        }

    @pytest.mark.asyncio
    async def test_revoke_without_body(self, app):
        async with _client(app) as client:
            resp = await client.delete(URL)
        assert resp.status_code == 400
        assert resp.json()['field'] == 'tokenId'

    @pytest.mark.asyncio
    async def test_revoke_foreign_token_is_404(self, app):
        async with _client(app) as client:
            created = (await _create(
                client, url='/api/tools/punchlist/share-token?projectId=proj_1',
            )).json()
            resp = await _revoke(client, created['id'])
        assert resp.status_code == 404
        assert resp.json()['error'] == 'share_not_found'

    @pytest.mark.asyncio
    async def test_collaborator_cannot_revoke(self, app):
        async with _client(app) as client:
            created = (await _create(client)).json()
            resp = await _revoke(client, created['id'], user='editor_1')
        assert resp.status_code == 403
        stored = await app.state.store.lookup(created['token'])
        assert stored.revoked_at is None


# =====================================================================
# Risk preview and scope catalog
# =====================================================================


class TestRiskPreview:

    RISK_URL = '/api/tools/mood_boards/share-token/risk?projectId=proj_1'

    @pytest.mark.asyncio
    async def test_notes_on_all_boards_is_risky(self, app):
        async with _client(app) as client:
            resp = await client.post(self.RISK_URL, json={'includeNotes': True})
        assert resp.json() == {
            'risky': True,
            'exposes': ['notes'],
            'groupCount': 3,
            'confirmation': {'kind': 'typed', 'word': 'SHARE'},
        }

    @pytest.mark.asyncio
    async def test_selected_scope_needs_checkbox(self, app):
        body = {'includeNotes': True, 'scope': {'mode': 'selected', 'ids': ['board_living']}}
        async with _client(app) as client:
            resp = await client.post(self.RISK_URL, json=body)
        data = resp.json()
        assert data['risky'] is False
        assert data['confirmation'] == {'kind': 'checkbox', 'word': None}

    @pytest.mark.asyncio
    async def test_collaborator_forbidden(self, app):
        async with _client(app) as client:
            resp = await client.post(
                self.RISK_URL, json={}, headers={'x-test-user': 'viewer_1'},
            )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_fix_list_counts_locations_only(self, app):
        url = '/api/tools/punchlist/share-token/risk?projectId=proj_1'
        async with _client(app) as client:
            resp = await client.post(url, json={'includeNotes': True})
        data = resp.json()
        assert data['groupCount'] == 3
        assert data['risky'] is True

    @pytest.mark.asyncio
    async def test_two_locations_one_assignee_not_risky(self, clock):
        payload = {'items': [
            {'id': '1', 'location': 'Kitchen', 'assigneeLabel': 'Bob'},
            {'id': '2', 'location': 'Bath', 'assigneeLabel': 'Bob'},
        ]}
        app = _make_app(clock, {'punchlist': payload})
        url = '/api/tools/punchlist/share-token/risk?projectId=proj_1'
        async with _client(app) as client:
            resp = await client.post(url, json={'includeNotes': True})
        data = resp.json()
        assert data['groupCount'] == 2
        assert data['risky'] is False
        assert data['confirmation'] == {'kind': 'checkbox', 'word': None}


class TestShareScopes:

    SCOPES_URL = '/api/tools/punchlist/share-scopes?projectId=proj_1'

    @pytest.mark.asyncio
    async def test_owner_sees_catalog(self, app):
        async with _client(app) as client:
            resp = await client.get(self.SCOPES_URL)
        data = resp.json()
        assert data['canManage'] is True
        assert data['scopeLabel'] == 'Locations'
        assert {'id': 'location:Garage', 'name': 'Garage', 'kind': 'location'} in data['options']
        assert {'id': 'assigneeLabel:Painter', 'name': 'Painter', 'kind': 'assigneeLabel'} in data['options']

    @pytest.mark.asyncio
    async def test_collaborator_cannot_manage(self, app):
        async with _client(app) as client:
            resp = await client.get(self.SCOPES_URL, headers={'x-test-user': 'editor_1'})
        assert resp.status_code == 200
        assert resp.json()['canManage'] is False

    @pytest.mark.asyncio
    async def test_outsider_forbidden(self, app):
        async with _client(app) as client:
            resp = await client.get(self.SCOPES_URL, headers={'x-test-user': 'stranger'})
        assert resp.status_code == 403


# =====================================================================
# Export
# =====================================================================


class TestExport:

    EXPORT_URL = '/api/tools/mood_boards/export?projectId=proj_1'

    @pytest.mark.asyncio
    async def test_viewer_can_export(self, app):
        async with _client(app) as client:
            resp = await client.get(self.EXPORT_URL, headers={'x-test-user': 'viewer_1'})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data['payload']['boards']) == 3
        assert 'notes' not in resp.text
        assert 'sam@example.com' not in resp.text

    @pytest.mark.asyncio
    async def test_export_with_scope_and_notes(self, app):
        url = f'{self.EXPORT_URL}&includeNotes=true&scopeMode=selected&ids=board_living'
        async with _client(app) as client:
            resp = await client.get(url, headers={'x-test-user': 'editor_1'})
        data = resp.json()
        assert [b['id'] for b in data['payload']['boards']] == ['board_living']
        assert data['payload']['boards'][0]['ideas'][0]['notes'] == 'Check fabric durability.'
        assert data['scope']['labels'] == ['Living Room']

    @pytest.mark.asyncio
    async def test_export_rejects_bad_scope(self, app):
        async with _client(app) as client:
            resp = await client.get(f'{self.EXPORT_URL}&scopeMode=weird')
        assert resp.status_code == 400
        assert resp.json()['field'] == 'scope.mode'

    @pytest.mark.asyncio
    async def test_member_without_tool_access_forbidden(self, app):
        url = '/api/tools/finish_decisions/export?projectId=proj_1'
        async with _client(app) as client:
            resp = await client.get(url, headers={'x-test-user': 'editor_1'})
        assert resp.status_code == 403
        assert resp.json()['detail'] == 'No access to this tool'
