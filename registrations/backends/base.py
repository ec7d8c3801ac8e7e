from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Registration


class StorageBackend(ABC):
    """
    Registration store contract shared by every backend.

    Implementations translate their native failures into the shared error
    taxonomy: ``WriteError`` for failed inserts/updates/deletes, ``ReadError``
    for failed queries and ``NotFound`` when a write targets an identity
    that does not exist. A missing row on read is ``None``, never an error.
    """

    name = 'abstract'

    @abstractmethod
    def insert(self, record: Registration) -> int:
        """Persist a new registration with defaults applied and return its id."""

    @abstractmethod
    def list_all(self) -> List[Registration]:
        """Every registration, newest (highest id) first."""

    @abstractmethod
    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        ...

    @abstractmethod
    def mark_verified(self, registration_id: int) -> None:
        ...

    @abstractmethod
    def mark_rejected(self, registration_id: int) -> None:
        ...

    @abstractmethod
    def delete_by_id(self, registration_id: int) -> None:
        ...

    @abstractmethod
    def check_connection(self) -> bool:
        """Cheap round trip used by health checks."""

    def close(self) -> None:
        pass
