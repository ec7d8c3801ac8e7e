import logging
from typing import Any, List, Optional

import requests

from shared.errors import NotFound, ReadError, WriteError
from shared.state_machine import PaymentStatus
from ..models import Registration, TABLE_NAME
from .base import StorageBackend

logger = logging.getLogger(__name__)

# PostgREST: singular response requested but zero rows matched.
NO_ROWS_CODE = 'PGRST116'
SINGLE_OBJECT = 'application/vnd.pgrst.object+json'


class RemoteBackend(StorageBackend):
    """
    Registration store on a hosted Postgres exposed through PostgREST
    (``<url>/rest/v1/<table>``), authenticated with a service key.
    """

    name = 'remote'

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = TABLE_NAME,
        timeout: float = 10,
        session: requests.Session = None
    ):
        self.base_url = f"{url.rstrip('/')}/rest/v1/{table}"
        self.api_key = api_key
        self.timeout = timeout
        self._session = None
        if session is not None:
            self._session = self._authorize(session)

    def _authorize(self, session: requests.Session) -> requests.Session:
        session.headers.update({
            'apikey': self.api_key,
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        })
        return session

    @property
    def session(self) -> requests.Session:
        """Lazily created HTTP session carrying the auth headers."""
        if self._session is None:
            self._session = self._authorize(requests.Session())
        return self._session

    def _request(self, method: str, error_cls, params: dict = None, json: Any = None,
                 headers: dict = None) -> requests.Response:
        try:
            return self.session.request(
                method,
                self.base_url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {self.base_url} failed: {e}")
            raise error_cls(f"Registration service unavailable: {e}") from e

    @staticmethod
    def _error_payload(response: requests.Response) -> dict:
        try:
            payload = response.json()
        except ValueError:
            return {'message': response.text}
        return payload if isinstance(payload, dict) else {'message': str(payload)}

    def _check(self, response: requests.Response, error_cls, action: str):
        if response.status_code < 400:
            return
        payload = self._error_payload(response)
        message = payload.get('message') or f"HTTP {response.status_code}"
        logger.error(f"Failed to {action}: {message}")
        raise error_cls(f"Failed to {action}: {message}", code=payload.get('code'))

    @staticmethod
    def _json(response: requests.Response, error_cls, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to {action}: unreadable response (HTTP {response.status_code})")
            raise error_cls(f"Failed to {action}: response was not JSON") from e

    def insert(self, record: Registration) -> int:
        payload = record.with_defaults().to_row()
        response = self._request(
            'POST',
            WriteError,
            params={'select': 'id'},
            json=payload,
            headers={'Prefer': 'return=representation'}
        )
        self._check(response, WriteError, 'save registration')

        rows = self._json(response, WriteError, 'save registration')
        try:
            new_id = int(rows[0]['id'])
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise WriteError("Registration service did not return the new id") from e
        logger.info(f"Saved registration id={new_id}")
        return new_id

    def list_all(self) -> List[Registration]:
        response = self._request('GET', ReadError, params={'select': '*', 'order': 'id.desc'})
        self._check(response, ReadError, 'list registrations')
        rows = self._json(response, ReadError, 'list registrations') or []
        if not isinstance(rows, list):
            raise ReadError("Failed to list registrations: expected a list of rows")
        return [Registration.from_row(row) for row in rows]

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        response = self._request(
            'GET',
            ReadError,
            params={'select': '*', 'id': f"eq.{registration_id}"},
            headers={'Accept': SINGLE_OBJECT}
        )
        if response.status_code >= 400:
            payload = self._error_payload(response)
            if payload.get('code') == NO_ROWS_CODE or 'No rows found' in str(payload.get('message', '')):
                return None
        self._check(response, ReadError, f"load registration {registration_id}")

        row = self._json(response, ReadError, f"load registration {registration_id}")
        if not row:
            return None
        if not isinstance(row, dict):
            raise ReadError(f"Failed to load registration {registration_id}: expected a single row")
        return Registration.from_row(row)

    def _modify(self, method: str, registration_id: int, action: str, body: dict = None):
        response = self._request(
            method,
            WriteError,
            params={'id': f"eq.{registration_id}"},
            json=body,
            headers={'Prefer': 'return=representation'}
        )
        self._check(response, WriteError, action)
        if not self._json(response, WriteError, action):
            raise NotFound(registration_id)

    def _set_status(self, registration_id: int, status: PaymentStatus):
        self._modify(
            'PATCH',
            registration_id,
            f"mark registration {registration_id} {status.value}",
            body={'payment_status': status.value}
        )
        logger.info(f"Registration {registration_id} marked {status.value}")

    def mark_verified(self, registration_id: int) -> None:
        self._set_status(registration_id, PaymentStatus.VERIFIED)

    def mark_rejected(self, registration_id: int) -> None:
        self._set_status(registration_id, PaymentStatus.REJECTED)

    def delete_by_id(self, registration_id: int) -> None:
        self._modify('DELETE', registration_id, f"delete registration {registration_id}")
        logger.info(f"Deleted registration id={registration_id}")

    def check_connection(self) -> bool:
        try:
            response = self.session.get(
                self.base_url,
                params={'select': 'id', 'limit': 1},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException:
            return False
        return response.status_code < 400

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
