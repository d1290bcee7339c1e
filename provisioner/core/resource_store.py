"""
Resource Store for server records

This module defines the storage contract used by the lifecycle engine and
an in-memory, thread-safe implementation of it.

Guarantees:
- Every record has a unique identifier generated by the store
- Copy-in, copy-out: no caller ever holds a reference into the store
- Replace and delete are conditioned on key presence only
- Absence is reported as None/False, never raised

Usage:
    >>> from provisioner.core.resource_store import InMemoryResourceStore
    >>> from provisioner.models.server import Server
    >>>
    >>> store = InMemoryResourceStore()
    >>> created = store.create(Server(name="web1", cpus=2, memory_gb=4, disk_gb=20))
    >>> store.get(created.id).name
    'web1'
    >>> store.delete(created.id)
    True
    >>> store.delete(created.id)
    False
"""

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
from uuid import UUID

from provisioner.config.logging import get_logger
from provisioner.config.settings import settings
from provisioner.exceptions import InternalError
from provisioner.models.server import Server

logger = get_logger(__name__)


class ResourceStore(ABC):
    """Storage contract for server records, keyed by generated identifier."""

    @abstractmethod
    def list_all(self) -> List[Server]:
        """Return a copy of every stored server, in no particular order."""

    @abstractmethod
    def get(self, server_id: UUID) -> Optional[Server]:
        """Return a copy of the server stored under server_id, or None."""

    @abstractmethod
    def create(self, server: Server) -> Server:
        """Store a copy of server under a fresh identifier and return a copy including it."""

    @abstractmethod
    def replace(self, server_id: UUID, server: Server) -> bool:
        """Store a copy of server only if server_id already exists."""

    @abstractmethod
    def delete(self, server_id: UUID) -> bool:
        """Remove the server stored under server_id, if any."""


class InMemoryResourceStore(ResourceStore):
    """
    Process-lifetime store backed by a dict.

    The lock is held only while a single slot is read or written, so no
    operation ever waits on a delay or on background work. Entries are
    replaced wholesale and never mutated in place.
    """

    def __init__(
        self,
        id_factory: Callable[[], UUID] = uuid.uuid4,
        max_id_attempts: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            id_factory: Identifier generator (random UUIDs by default)
            max_id_attempts: Generation attempts before create gives up.
                Defaults to settings.max_id_attempts.
        """
        self._servers: Dict[UUID, Server] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory
        self._max_id_attempts = max_id_attempts or settings.max_id_attempts

    def __len__(self) -> int:
        with self._lock:
            return len(self._servers)

    def list_all(self) -> List[Server]:
        with self._lock:
            servers = list(self._servers.values())

        # stored entries are never mutated, so copying outside the lock is safe
        return [server.model_copy(deep=True) for server in servers]

    def get(self, server_id: UUID) -> Optional[Server]:
        with self._lock:
            server = self._servers.get(server_id)

        return server.model_copy(deep=True) if server is not None else None

    def create(self, server: Server) -> Server:
        """
        Persist a new server under a freshly generated identifier.

        A random identifier colliding with an existing one is practically
        impossible, but generation is retried until a free one is found or
        the attempts run out.

        Raises:
            InternalError: If no free identifier was found
        """
        for attempt in range(1, self._max_id_attempts + 1):
            server_id = self._id_factory()
            stored = server.model_copy(update={"id": server_id}, deep=True)

            with self._lock:
                if server_id not in self._servers:
                    self._servers[server_id] = stored
                    return stored.model_copy(deep=True)

            logger.warning(
                "server_id_collision",
                server_id=str(server_id),
                attempt=attempt,
                max_attempts=self._max_id_attempts,
            )

        logger.error("server_id_generation_exhausted", max_attempts=self._max_id_attempts)
        raise InternalError(
            f"Unable to generate a unique server identifier after {self._max_id_attempts} attempts",
            details={"max_attempts": self._max_id_attempts},
        )

    def replace(self, server_id: UUID, server: Server) -> bool:
        stored = server.model_copy(deep=True)

        with self._lock:
            if server_id not in self._servers:
                return False
            self._servers[server_id] = stored
            return True

    def delete(self, server_id: UUID) -> bool:
        with self._lock:
            return self._servers.pop(server_id, None) is not None
