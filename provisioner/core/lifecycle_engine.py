"""
Lifecycle Engine for servers

This module drives servers through their lifecycle. It validates caller
requests against the state machine, writes state changes through the
resource store and schedules the delayed background transitions.

Lifecycle:
    [none] --provision--> BUILDING --(build delay)--> RUNNING
    RUNNING --decommission--> TERMINATING --(teardown delay)--> DESTROYED
    DESTROYED --(purge delay)--> [removed]

This is the main entry point for all server operations from the API.

Usage:
    >>> engine = LifecycleEngine(InMemoryResourceStore())
    >>> server = await engine.provision(Server(name="web1", cpus=2, memory_gb=4, disk_gb=20))
    >>> server.state
    <ServerState.BUILDING: 'building'>
    >>> ...
    >>> await engine.decommission(server.id)
"""

import threading
import time
from typing import List, Optional, Union
from uuid import UUID

from provisioner.config.logging import get_logger
from provisioner.config.settings import settings
from provisioner.core.resource_store import ResourceStore
from provisioner.core.state_machine import OperationType, ServerStateMachine
from provisioner.core.transition_scheduler import TransitionPolicy, TransitionScheduler
from provisioner.exceptions import BadRequestError, InternalError, NotFoundError
from provisioner.models.server import Server, ServerState

logger = get_logger(__name__)

ServerId = Union[str, UUID]


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def collect_create_violations(server: Server) -> List[str]:
    """
    Check a creation request and return every rule it breaks.

    Args:
        server: Server as supplied by the caller

    Returns:
        Human-readable violations, empty if the request is valid
    """
    errors = []

    if server.id is not None:
        errors.append("IDs are generated by the server and should not be specified by the client")

    if not server.name:
        errors.append("Name must be specified")

    if server.cpus is None or server.cpus < 1:
        errors.append("Number of CPUs should be 1 or higher")

    if server.memory_gb is None or server.memory_gb < 1:
        errors.append("Amount of memory should be 1 (gigabyte) or higher")

    if server.disk_gb is None or server.disk_gb < 1:
        errors.append("Amount of disk space should be 1 (gigabyte) or higher")

    if server.state is not None:
        errors.append("Server state should not be specified by the client")

    return errors


class LifecycleEngine:
    """
    Central manager for server operations.

    Coordinates the state machine, the resource store and the transition
    scheduler. Each server has exactly one writer at a time: the build
    transition, then the caller's decommission, then the teardown and purge
    transitions.
    """

    def __init__(
        self,
        store: ResourceStore,
        scheduler: Optional[TransitionScheduler] = None,
        policy: Optional[TransitionPolicy] = None,
    ):
        """
        Initialize lifecycle engine.

        Args:
            store: Storage for server records
            scheduler: Background transition scheduler (new one if omitted)
            policy: Transition delays (taken from settings if omitted)
        """
        self.store = store
        self.scheduler = scheduler or TransitionScheduler()
        self.policy = policy or TransitionPolicy.from_settings(settings)
        # Guards check-then-write sequences; held only for in-memory work
        self._transition_lock = threading.Lock()

    @property
    def is_shut_down(self) -> bool:
        return self.scheduler.closed

    def list_servers(self, sort_by_id: bool = False) -> List[Server]:
        """
        List every server currently in the store.

        Args:
            sort_by_id: Order the result by server identifier

        Returns:
            Independent copies of the stored servers
        """
        started = time.perf_counter()

        servers = self.store.list_all()
        if sort_by_id:
            servers.sort(key=lambda server: server.id)

        logger.debug("list_servers", count=len(servers), sorted=sort_by_id, duration_ms=_elapsed_ms(started))
        return servers

    def get_server(self, server_id: ServerId) -> Server:
        """
        Get a server by identifier.

        Raises:
            BadRequestError: If server_id is not a valid identifier
            NotFoundError: If no server exists under server_id
        """
        started = time.perf_counter()
        try:
            parsed_id = self._parse_id(server_id)
            server = self.store.get(parsed_id)

            if server is None:
                raise NotFoundError("Server", str(server_id))

            return server
        finally:
            logger.debug("get_server", server_id=str(server_id), duration_ms=_elapsed_ms(started))

    async def provision(self, spec: Server) -> Server:
        """
        Create a new server and start building it.

        Returns immediately with the server in BUILDING; the build
        transition moves it to RUNNING after the build delay.

        May be awaited from any thread; the build transition always runs on
        the scheduler's event loop.

        Args:
            spec: Requested server (name, cpus, memory_gb, disk_gb)

        Returns:
            Copy of the stored server, including its generated id

        Raises:
            BadRequestError: Listing every violated rule of the request
            InternalError: If the engine has been shut down
        """
        started = time.perf_counter()

        errors = collect_create_violations(spec)
        if errors:
            logger.warning("provision_rejected", errors=errors)
            raise BadRequestError(", ".join(errors), details={"errors": errors})

        with self._transition_lock:
            if self.is_shut_down:
                raise InternalError("Lifecycle engine is shut down, no new servers can be provisioned")

            server = spec.model_copy(update={"state": ServerStateMachine.INITIAL_STATE})
            server = self.store.create(server)

            logger.info("provisioning_server", server_id=str(server.id), server=str(server))

            self.scheduler.schedule(server.id, self.policy.build_delay, self._complete_build, name="build")

        logger.debug("provision", server_id=str(server.id), duration_ms=_elapsed_ms(started))
        return server

    async def decommission(self, server_id: ServerId) -> None:
        """
        Start tearing down a running server.

        Raises:
            BadRequestError: If server_id is invalid or the server is not RUNNING
            NotFoundError: If no server exists under server_id
        """
        started = time.perf_counter()

        with self._transition_lock:
            server = self.get_server(server_id)

            ServerStateMachine.validate_operation(
                server.state,
                OperationType.DECOMMISSION,
                str(server.id),
            )

            if self.is_shut_down:
                raise InternalError("Lifecycle engine is shut down, servers cannot be decommissioned")

            logger.debug("setting_server_state", server_id=str(server.id), state=ServerState.TERMINATING.value)
            server.state = ServerState.TERMINATING
            if not self.store.replace(server.id, server):
                # removed outside the engine between the read and the write
                raise NotFoundError("Server", str(server_id))

            logger.info("decommissioning_server", server_id=str(server.id), server=str(server))

            self.scheduler.schedule(
                server.id, self.policy.teardown_delay, self._complete_teardown, name="teardown"
            )

        logger.debug("decommission", server_id=str(server.id), duration_ms=_elapsed_ms(started))

    async def shutdown(self) -> int:
        """
        Abandon all outstanding transitions.

        Returns:
            Number of transitions cancelled
        """
        cancelled = await self.scheduler.cancel_all(timeout=settings.shutdown_timeout_seconds)
        logger.info("lifecycle_engine_stopped", cancelled_transitions=cancelled)
        return cancelled

    def _complete_build(self, server_id: UUID) -> None:
        """Build transition: BUILDING -> RUNNING."""
        self._advance(server_id, ServerState.RUNNING, "build")

    def _complete_teardown(self, server_id: UUID) -> None:
        """Teardown transition: TERMINATING -> DESTROYED, then schedule the purge."""
        if self._advance(server_id, ServerState.DESTROYED, "teardown"):
            self.scheduler.schedule(server_id, self.policy.purge_delay, self._purge, name="purge")

    def _purge(self, server_id: UUID) -> None:
        """Remove a destroyed server from the store."""
        if self.store.delete(server_id):
            logger.info("server_purged", server_id=str(server_id))
        else:
            logger.debug("purge_target_missing", server_id=str(server_id))

    def _advance(self, server_id: UUID, to_state: ServerState, transition: str) -> bool:
        """
        Move a stored server to to_state.

        Returns:
            False if the server disappeared before the transition ran
        """
        with self._transition_lock:
            server = self.store.get(server_id)
            if server is None:
                logger.info(f"{transition}_target_missing", server_id=str(server_id))
                return False

            ServerStateMachine.validate_transition(server.state, to_state, str(server_id))

            logger.debug("setting_server_state", server_id=str(server_id), state=to_state.value)
            server.state = to_state

            if not self.store.replace(server_id, server):
                logger.info(f"{transition}_target_missing", server_id=str(server_id))
                return False

        logger.info(
            "server_state_changed",
            server_id=str(server_id),
            transition=transition,
            state=to_state.value,
        )
        return True

    @staticmethod
    def _parse_id(server_id: ServerId) -> UUID:
        if isinstance(server_id, UUID):
            return server_id
        try:
            return UUID(str(server_id))
        except ValueError:
            raise BadRequestError(
                f"Invalid server identifier: {server_id}",
                details={"server_id": str(server_id)},
            )
