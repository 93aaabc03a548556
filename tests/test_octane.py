"""
Tests for octane_sdk.octane module.

Tests the fluent builder chains, execute() and custom requests against the
fake server.
"""
# pyright: reportPrivateUsage=false

import json
from typing import Any

import pytest

from conftest import WORKSPACE_PATH, FakeOctaneServer
from octane_sdk.config import RequestHandlerParams
from octane_sdk.errors import NotFound, OctaneError
from octane_sdk.models import Reference
from octane_sdk.octane import Octane
from octane_sdk.query import Query

DEFECTS_PATH: str = f'{WORKSPACE_PATH}/defects'
ATTACHMENTS_PATH: str = f'{WORKSPACE_PATH}/attachments'


class TestEntityTypes:
    """Test the class-level lookup tables."""

    def test_entity_url_segments(self) -> None:
        """Should map metadata names to their URL segments."""
        assert Octane.entity_types['defects'] == 'defects'
        assert Octane.entity_types['manual_tests'] == 'manual_tests'
        assert Octane.entity_types['fields_metadata'] == 'metadata/fields'
        assert Octane.entity_types['entities_metadata'] == 'metadata/entities'

    def test_tables_are_read_only(self) -> None:
        """Should not allow changes to the shared tables."""
        with pytest.raises(TypeError):
            Octane.operation_types['patch'] = 'patch'  # type: ignore[index]


class TestAuthentication:
    """Test sign-in and sign-out through the fluent client."""

    async def test_authenticate_posts_user_credentials(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should sign in with user and password from the parameters."""
        assert fake_server.sign_in_bodies == [{'user': 'sa@nga', 'password': 'Welcome1'}]

    async def test_accepts_mapping_params(self, fake_server: FakeOctaneServer) -> None:
        """Should validate plain mappings into RequestHandlerParams."""
        params = {
            'server': 'http://octane.example.com/',
            'shared_space': 1001,
            'workspace': 1002,
            'user': 'sa@nga',
            'password': 'Welcome1',
        }

        async with Octane(params, transport=fake_server.transport) as client:
            assert await client.authenticate() is None

        assert fake_server.sign_in_count == 1

    async def test_sign_out(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should call the sign-out endpoint."""
        await octane.sign_out()

        assert fake_server.requests[-1].url.path == '/authentication/sign_out'


class TestReadChains:
    """Test get chains."""

    async def test_get_collection(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should render fields and paging into the query string."""
        fake_server.add('GET', DEFECTS_PATH, json={'total_count': 1, 'data': [{'id': '1'}]})

        result = await (
            octane.get('defects').fields('name', 'severity').limit(10).offset(20).execute()
        )

        assert result == {'total_count': 1, 'data': [{'id': '1'}]}
        params = fake_server.requests_to(DEFECTS_PATH)[0].url.params
        assert params['fields'] == 'name,severity'
        assert params['limit'] == '10'
        assert params['offset'] == '20'

    async def test_get_single_entity(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should address the entity by id and drop paging."""
        fake_server.add('GET', f'{DEFECTS_PATH}/5', json={'id': '5', 'name': 'crash'})

        result = await octane.get('defects').at(5).fields('name').limit(10).execute()

        assert result == {'id': '5', 'name': 'crash'}
        request = fake_server.requests_to(f'{DEFECTS_PATH}/5')[0]
        assert dict(request.url.params) == {'fields': 'name'}

    async def test_query_object_is_rendered(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should render a Query and send it quoted."""
        fake_server.add('GET', DEFECTS_PATH, json={'total_count': 0, 'data': []})

        await octane.get('defects').query(Query.field('id').equal(5)).order_by('-id').execute()

        params = fake_server.requests_to(DEFECTS_PATH)[0].url.params
        assert params['query'] == '"id EQ 5"'
        assert params['order_by'] == '-id'

    async def test_test_script(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should append /script for tests."""
        script_path = f'{WORKSPACE_PATH}/tests/7/script'
        fake_server.add('GET', script_path, json={'script': 'Given a defect'})

        result = await octane.get('tests').at(7).script().execute()

        assert result == {'script': 'Given a defect'}

    async def test_missing_entity_raises_not_found(self, octane: Octane) -> None:
        """Should raise the typed error for a 404."""
        with pytest.raises(NotFound):
            await octane.get('defects').at(404).execute()


class TestWriteChains:
    """Test create, update and delete chains."""

    async def test_create_wraps_single_entity(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should send a single entity inside {'data': [...]}."""
        fake_server.add('POST', DEFECTS_PATH, 201, json={'total_count': 1, 'data': [{'id': '9'}]})

        result = await octane.create('defects', {'name': 'crash'}).execute()

        assert result == {'total_count': 1, 'data': [{'id': '9'}]}
        request = fake_server.requests_to(DEFECTS_PATH)[0]
        assert json.loads(request.content) == {'data': [{'name': 'crash'}]}

    async def test_create_wraps_entity_list(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should send a list of entities as the data array."""
        fake_server.add('POST', DEFECTS_PATH, 201, json={'total_count': 2, 'data': []})

        await octane.create('defects', [{'name': 'a'}, {'name': 'b'}]).execute()

        request = fake_server.requests_to(DEFECTS_PATH)[0]
        assert json.loads(request.content) == {'data': [{'name': 'a'}, {'name': 'b'}]}

    async def test_update_addresses_entity_id(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should PUT the bare entity to its id."""
        fake_server.add('PUT', f'{DEFECTS_PATH}/5', json={'id': '5', 'name': 'renamed'})

        await octane.update('defects', {'id': '5', 'name': 'renamed'}).execute()

        request = fake_server.requests_to(f'{DEFECTS_PATH}/5')[0]
        assert request.method == 'PUT'
        assert json.loads(request.content) == {'id': '5', 'name': 'renamed'}

    async def test_update_bulk(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should PUT the wrapped list to the collection."""
        fake_server.add('PUT', DEFECTS_PATH, json={'total_count': 2, 'data': []})

        await octane.update_bulk('defects', [{'id': '1'}, {'id': '2'}]).execute()

        request = fake_server.requests_to(DEFECTS_PATH)[0]
        assert json.loads(request.content) == {'data': [{'id': '1'}, {'id': '2'}]}

    async def test_delete_returns_none(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should return None for an empty response body."""
        fake_server.add('DELETE', f'{DEFECTS_PATH}/5')

        assert await octane.delete('defects').at(5).execute() is None


class TestExecute:
    """Test execute() state handling."""

    async def test_without_operation_raises(self, octane: Octane) -> None:
        """Should refuse to send a chain without an operation."""
        with pytest.raises(OctaneError, match='Request method cannot be null!'):
            await octane.limit(5).execute()

    async def test_state_resets_after_execute(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should not carry builder state into the next chain."""
        fake_server.add('GET', DEFECTS_PATH, json={'total_count': 0, 'data': []})
        await octane.get('defects').limit(3).execute()

        await octane.get('defects').execute()

        second = fake_server.requests_to(DEFECTS_PATH)[1]
        assert dict(second.url.params) == {}
        with pytest.raises(OctaneError):
            await octane.execute()

    async def test_expired_session_is_replayed(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should sign in again and replay after a 401."""
        fake_server.add('GET', DEFECTS_PATH, json={'total_count': 0, 'data': []})
        fake_server.expire_session()

        result = await octane.get('defects').execute()

        assert result == {'total_count': 0, 'data': []}
        assert fake_server.sign_in_count == 2  # noqa: PLR2004
        assert len(fake_server.requests_to(DEFECTS_PATH)) == 2  # noqa: PLR2004


class TestAttachments:
    """Test attachment download and upload chains."""

    async def test_get_attachment_content(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should ask for octet-stream and return bytes."""
        fake_server.add(
            'GET',
            f'{ATTACHMENTS_PATH}/3',
            content=b'\x00\x01',
            headers={'content-type': 'application/octet-stream'},
        )

        result = await octane.get_attachment_content().at(3).execute()

        assert result == b'\x00\x01'
        request = fake_server.requests_to(f'{ATTACHMENTS_PATH}/3')[0]
        assert request.headers['accept'] == 'application/octet-stream'

    async def test_upload_attachment(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should send raw content with the owner reference in the query string."""
        fake_server.add('POST', ATTACHMENTS_PATH, 201, json={'data': [{'id': '12'}]})

        result = await octane.upload_attachment(
            'log.txt',
            b'log content',
            'owner_work_item',
            {'type': 'work_item', 'id': '1001'},
        ).execute()

        assert result == {'data': [{'id': '12'}]}
        request = fake_server.requests_to(ATTACHMENTS_PATH)[0]
        assert request.url.params['name'] == 'log.txt'
        assert request.url.params['owner_work_item'] == '{"type":"work_item","id":"1001"}'
        assert request.headers['content-type'] == 'application/octet-stream'
        assert request.content == b'log content'

    @pytest.mark.parametrize(
        ('owner_reference', 'expected'),
        [
            ('1001', '"1001"'),
            (1001, '1001'),
            (Reference('1001', 'work_item'), '{"id":"1001","type":"work_item"}'),
        ],
    )
    async def test_upload_attachment_owner_forms(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
        owner_reference: Any,
        expected: str,
    ) -> None:
        """Should JSON-encode a plain owner id or a Reference as given."""
        fake_server.add('POST', ATTACHMENTS_PATH, 201, json={'data': [{'id': '12'}]})

        await octane.upload_attachment(
            'log.txt', b'log content', 'owner_work_item', owner_reference
        ).execute()

        request = fake_server.requests_to(ATTACHMENTS_PATH)[0]
        assert request.url.params['owner_work_item'] == expected


class TestCustomRequests:
    """Test execute_custom_request()."""

    async def test_camel_case_operation(
        self,
        octane: Octane,
        fake_server: FakeOctaneServer,
    ) -> None:
        """Should accept camelCase operation names and extra headers."""
        path = f'{ATTACHMENTS_PATH}/3'
        fake_server.add(
            'GET',
            path,
            content=b'data',
            headers={'content-type': 'application/octet-stream'},
        )

        result = await octane.execute_custom_request(
            path, 'getAttachmentContent', headers={'x-trace': 'abc'}
        )

        assert result == b'data'
        assert fake_server.requests_to(path)[0].headers['x-trace'] == 'abc'

    async def test_create_with_body(self, octane: Octane, fake_server: FakeOctaneServer) -> None:
        """Should send the body as JSON."""
        fake_server.add('POST', DEFECTS_PATH, 201, json={'data': [{'id': '1'}]})

        await octane.execute_custom_request(DEFECTS_PATH, 'create', {'data': [{'name': 'x'}]})

        request = fake_server.requests_to(DEFECTS_PATH)[0]
        assert json.loads(request.content) == {'data': [{'name': 'x'}]}

    async def test_unsupported_operation(self, octane: Octane) -> None:
        """Should reject operations outside operation_types."""
        with pytest.raises(ValueError, match='Operation is not supported'):
            await octane.execute_custom_request(DEFECTS_PATH, 'patch')


class TestConstruction:
    """Test constructor wiring."""

    async def test_request_handler_is_exposed(
        self,
        handler_params: RequestHandlerParams,
    ) -> None:
        """Should expose the underlying RequestHandler."""
        async with Octane(handler_params) as client:
            assert client.request_handler is client._request_handler
