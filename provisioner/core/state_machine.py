"""
Server State Machine

This module implements a strict, forward-only state machine for the server
lifecycle. It prevents invalid state transitions and rejects operations that
are not allowed in a server's current state.

States:
- BUILDING: Provisioned, build in progress
- RUNNING: Ready for use
- TERMINATING: Decommissioned, teardown in progress
- DESTROYED: Torn down, waiting to be purged from the store

Usage:
    >>> from provisioner.core.state_machine import OperationType, ServerStateMachine
    >>> from provisioner.models.server import ServerState
    >>>
    >>> ServerStateMachine.can_transition(ServerState.BUILDING, ServerState.RUNNING)
    True
    >>> ServerStateMachine.can_perform_operation(
    ...     ServerState.BUILDING,
    ...     OperationType.DECOMMISSION
    ... )
    False
"""

from enum import Enum
from typing import Dict, Set, Optional

from provisioner.config.logging import get_logger
from provisioner.exceptions import BadRequestError, InternalError
from provisioner.models.server import ServerState

logger = get_logger(__name__)


class OperationType(str, Enum):
    """Caller-triggered server operations"""
    DECOMMISSION = "decommission"


class ServerStateMachine:
    """
    State machine for server lifecycle management.

    Transitions only move forward; nothing ever returns a server to an
    earlier state.
    """

    INITIAL_STATE = ServerState.BUILDING

    TRANSITIONS: Dict[ServerState, Set[ServerState]] = {
        ServerState.BUILDING: {ServerState.RUNNING},          # Build complete
        ServerState.RUNNING: {ServerState.TERMINATING},       # Decommission requested
        ServerState.TERMINATING: {ServerState.DESTROYED},     # Teardown complete
        ServerState.DESTROYED: set(),                         # Purged next, no transitions
    }

    ALLOWED_OPERATIONS: Dict[ServerState, Set[OperationType]] = {
        ServerState.BUILDING: set(),       # Wait for build to complete
        ServerState.RUNNING: {OperationType.DECOMMISSION},
        ServerState.TERMINATING: set(),    # Already going away
        ServerState.DESTROYED: set(),
    }

    STATE_HINTS: Dict[ServerState, str] = {
        ServerState.BUILDING: "server is still building",
        ServerState.TERMINATING: "server is already terminating",
        ServerState.DESTROYED: "server has been destroyed",
    }

    @classmethod
    def can_transition(
        cls,
        from_state: ServerState,
        to_state: ServerState
    ) -> bool:
        """
        Check if state transition is valid.

        Example:
            >>> ServerStateMachine.can_transition(ServerState.RUNNING, ServerState.BUILDING)
            False
        """
        return to_state in cls.TRANSITIONS.get(from_state, set())

    @classmethod
    def validate_transition(
        cls,
        from_state: ServerState,
        to_state: ServerState,
        server_id: Optional[str] = None
    ) -> None:
        """
        Validate state transition and raise exception if invalid.

        Only the service itself moves servers between states, so an invalid
        transition is an internal fault rather than a caller error.

        Raises:
            InternalError: If transition is not allowed
        """
        if not cls.can_transition(from_state, to_state):
            error_msg = (
                f"Invalid state transition from {from_state.value} "
                f"to {to_state.value}"
            )
            if server_id:
                error_msg += f" for server {server_id}"

            logger.error(
                "invalid_state_transition",
                server_id=server_id,
                from_state=from_state.value,
                to_state=to_state.value,
                allowed_states=[s.value for s in cls.TRANSITIONS.get(from_state, set())]
            )
            raise InternalError(error_msg, details={"server_id": server_id})

        logger.debug(
            "state_transition_validated",
            server_id=server_id,
            from_state=from_state.value,
            to_state=to_state.value
        )

    @classmethod
    def can_perform_operation(
        cls,
        current_state: ServerState,
        operation: OperationType
    ) -> bool:
        """Check if operation is allowed in current state."""
        return operation in cls.ALLOWED_OPERATIONS.get(current_state, set())

    @classmethod
    def validate_operation(
        cls,
        current_state: ServerState,
        operation: OperationType,
        server_id: Optional[str] = None
    ) -> None:
        """
        Validate operation and raise exception if not allowed.

        Raises:
            BadRequestError: If operation is not allowed in current state
        """
        if cls.can_perform_operation(current_state, operation):
            return

        allowed_states = [
            state.value for state, ops in cls.ALLOWED_OPERATIONS.items() if operation in ops
        ]
        error_msg = f"Only servers in the {' or '.join(allowed_states)} state can be {operation.value}ed"
        hint = cls.STATE_HINTS.get(current_state)
        if hint:
            error_msg += f" ({hint})"

        logger.warning(
            "operation_not_allowed",
            server_id=server_id,
            current_state=current_state.value,
            operation=operation.value,
        )
        raise BadRequestError(
            error_msg,
            details={"server_id": server_id, "state": current_state.value},
        )
