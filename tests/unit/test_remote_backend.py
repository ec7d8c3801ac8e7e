"""
Unit tests for RemoteBackend against a mocked PostgREST session.
"""
import pytest
import requests

from registrations.backends import RemoteBackend
from registrations.models import Registration
from shared.errors import NotFound, ReadError, WriteError


def make_response(mocker, status_code=200, payload=None):
    response = mocker.MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


def non_json_response(mocker, status_code=200, text=''):
    response = mocker.MagicMock()
    response.status_code = status_code
    response.json.side_effect = requests.exceptions.JSONDecodeError('Expecting value', text, 0)
    response.text = text
    return response


@pytest.fixture
def session(mocker):
    mock = mocker.MagicMock()
    mock.headers = {}
    return mock


@pytest.fixture
def remote(session):
    return RemoteBackend(
        url='https://example.supabase.co/',
        api_key='service-key',
        timeout=5,
        session=session
    )


class TestSetup:
    """Tests for RemoteBackend construction."""

    def test_base_url(self, remote):
        assert remote.base_url == 'https://example.supabase.co/rest/v1/registrations'

    def test_custom_table(self, session):
        backend = RemoteBackend('https://x.co', 'k', table='signups', session=session)
        assert backend.base_url.endswith('/rest/v1/signups')

    def test_auth_headers(self, remote, session):
        assert session.headers['apikey'] == 'service-key'
        assert session.headers['Authorization'] == 'Bearer service-key'

    def test_lazy_session(self, mocker):
        factory = mocker.patch('registrations.backends.remote_backend.requests.Session')
        factory.return_value.headers = {}
        backend = RemoteBackend('https://x.co', 'k')
        factory.assert_not_called()
        assert backend.session is factory.return_value
        assert backend.session is factory.return_value
        factory.assert_called_once()


class TestInsert:
    """Tests for insert."""

    def test_returns_new_id(self, mocker, remote, session, sample_record):
        session.request.return_value = make_response(mocker, 201, [{'id': 17}])
        assert remote.insert(sample_record) == 17

    def test_payload_has_defaults(self, mocker, remote, session, sample_record):
        session.request.return_value = make_response(mocker, 201, [{'id': 1}])
        remote.insert(sample_record)

        args, kwargs = session.request.call_args
        assert args == ('POST', remote.base_url)
        assert kwargs['params'] == {'select': 'id'}
        assert kwargs['headers'] == {'Prefer': 'return=representation'}
        assert kwargs['timeout'] == 5

        payload = kwargs['json']
        assert payload['playerName'] == 'A'
        assert payload['passport_photo'] == '/u/p1.jpg'
        assert payload['payment_status'] == 'pending'
        assert isinstance(payload['created_at'], int)
        assert payload['teamName'] is None
        assert 'id' not in payload

    def test_error_payload(self, mocker, remote, session, sample_record):
        session.request.return_value = make_response(
            mocker, 409, {'code': '23505', 'message': 'duplicate key value'}
        )
        with pytest.raises(WriteError) as exc_info:
            remote.insert(sample_record)
        assert exc_info.value.code == '23505'
        assert 'duplicate key value' in str(exc_info.value)

    def test_connection_error(self, remote, session, sample_record):
        session.request.side_effect = requests.exceptions.ConnectionError('refused')
        with pytest.raises(WriteError) as exc_info:
            remote.insert(sample_record)
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)

    def test_empty_representation(self, mocker, remote, session, sample_record):
        session.request.return_value = make_response(mocker, 201, [])
        with pytest.raises(WriteError):
            remote.insert(sample_record)

    def test_row_without_id(self, mocker, remote, session, sample_record):
        session.request.return_value = make_response(mocker, 201, [{'playerName': 'A'}])
        with pytest.raises(WriteError) as exc_info:
            remote.insert(sample_record)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_html_gateway_page(self, mocker, remote, session, sample_record):
        session.request.return_value = non_json_response(mocker, 200, '<html>Bad Gateway</html>')
        with pytest.raises(WriteError):
            remote.insert(sample_record)


class TestListAll:
    """Tests for list_all."""

    def test_ordered_by_id_desc(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, [
            {'id': 2, 'playerName': 'B', 'payment_status': 'pending'},
            {'id': 1, 'playerName': 'A', 'payment_status': 'verified'},
        ])
        rows = remote.list_all()

        _, kwargs = session.request.call_args
        assert kwargs['params'] == {'select': '*', 'order': 'id.desc'}
        assert [r.id for r in rows] == [2, 1]
        assert rows[1].payment_status == 'verified'

    def test_null_body(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, None)
        assert remote.list_all() == []

    def test_server_error(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 500, {'message': 'boom'})
        with pytest.raises(ReadError):
            remote.list_all()

    def test_timeout(self, remote, session):
        session.request.side_effect = requests.exceptions.Timeout('slow')
        with pytest.raises(ReadError):
            remote.list_all()

    def test_unreadable_body(self, mocker, remote, session):
        session.request.return_value = non_json_response(mocker, 200, '<html></html>')
        with pytest.raises(ReadError) as exc_info:
            remote.list_all()
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_object_body(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, {'id': 1})
        with pytest.raises(ReadError):
            remote.list_all()


class TestGetById:
    """Tests for get_by_id."""

    def test_found(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, {
            'id': 1, 'playerName': 'A', 'passport_photo': '/u/p1.jpg', 'jerseyNumber': '9'
        })
        record = remote.get_by_id(1)

        _, kwargs = session.request.call_args
        assert kwargs['params'] == {'select': '*', 'id': 'eq.1'}
        assert kwargs['headers'] == {'Accept': 'application/vnd.pgrst.object+json'}
        assert record == Registration(id=1, player_name='A', passport_photo='/u/p1.jpg')

    def test_no_rows_is_none(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 406, {
            'code': 'PGRST116',
            'message': 'JSON object requested, multiple (or no) rows returned'
        })
        assert remote.get_by_id(5) is None

    def test_legacy_no_rows_message(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 406, {'message': 'No rows found'})
        assert remote.get_by_id(5) is None

    def test_other_errors_raise(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 401, {'message': 'Invalid API key'})
        with pytest.raises(ReadError):
            remote.get_by_id(5)

    def test_unreadable_body(self, mocker, remote, session):
        session.request.return_value = non_json_response(mocker, 200)
        with pytest.raises(ReadError):
            remote.get_by_id(5)


class TestStatusWrites:
    """Tests for mark_verified, mark_rejected and delete_by_id."""

    def test_mark_verified(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, [{'id': 3, 'payment_status': 'verified'}])
        remote.mark_verified(3)

        args, kwargs = session.request.call_args
        assert args == ('PATCH', remote.base_url)
        assert kwargs['params'] == {'id': 'eq.3'}
        assert kwargs['json'] == {'payment_status': 'verified'}

    def test_mark_rejected(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, [{'id': 3}])
        remote.mark_rejected(3)
        _, kwargs = session.request.call_args
        assert kwargs['json'] == {'payment_status': 'rejected'}

    @pytest.mark.parametrize("method", ["mark_verified", "mark_rejected", "delete_by_id"])
    def test_no_matching_row_is_not_found(self, mocker, remote, session, method):
        session.request.return_value = make_response(mocker, 200, [])
        with pytest.raises(NotFound):
            getattr(remote, method)(99)

    def test_delete(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 200, [{'id': 3}])
        remote.delete_by_id(3)
        args, kwargs = session.request.call_args
        assert args == ('DELETE', remote.base_url)
        assert kwargs['json'] is None

    def test_write_failure(self, mocker, remote, session):
        session.request.return_value = make_response(mocker, 403, {'message': 'permission denied'})
        with pytest.raises(WriteError):
            remote.mark_verified(3)

    @pytest.mark.parametrize("method", ["mark_verified", "mark_rejected", "delete_by_id"])
    def test_empty_success_body(self, mocker, remote, session, method):
        """A proxy that drops the representation answers 204 with no body."""
        session.request.return_value = non_json_response(mocker, 204)
        with pytest.raises(WriteError) as exc_info:
            getattr(remote, method)(1)
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestCheckConnection:
    """Tests for check_connection."""

    def test_ok(self, mocker, remote, session):
        session.get.return_value = make_response(mocker, 200, [])
        assert remote.check_connection() is True

    def test_down(self, remote, session):
        session.get.side_effect = requests.exceptions.ConnectionError('refused')
        assert remote.check_connection() is False

    def test_unauthorized(self, mocker, remote, session):
        session.get.return_value = make_response(mocker, 401, {})
        assert remote.check_connection() is False
