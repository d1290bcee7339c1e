"""
Tests for the server state machine.
"""
import pytest

from provisioner.core.state_machine import OperationType, ServerStateMachine
from provisioner.exceptions import BadRequestError, InternalError
from provisioner.models.server import ServerState

LIFECYCLE = [
    ServerState.BUILDING,
    ServerState.RUNNING,
    ServerState.TERMINATING,
    ServerState.DESTROYED,
]


def test_initial_state():
    assert ServerStateMachine.INITIAL_STATE == ServerState.BUILDING


@pytest.mark.parametrize("from_state,to_state", list(zip(LIFECYCLE, LIFECYCLE[1:])))
def test_forward_transitions_allowed(from_state, to_state):
    assert ServerStateMachine.can_transition(from_state, to_state)


def test_only_the_next_state_is_reachable():
    for i, from_state in enumerate(LIFECYCLE):
        for j, to_state in enumerate(LIFECYCLE):
            assert ServerStateMachine.can_transition(from_state, to_state) == (j == i + 1)


def test_destroyed_is_terminal():
    assert ServerStateMachine.TRANSITIONS[ServerState.DESTROYED] == set()


def test_validate_backward_transition_is_internal_error():
    with pytest.raises(InternalError) as exc_info:
        ServerStateMachine.validate_transition(ServerState.RUNNING, ServerState.BUILDING, "srv-1")

    assert "running to building" in exc_info.value.message
    assert "srv-1" in exc_info.value.message


def test_decommission_allowed_only_when_running():
    for state in LIFECYCLE:
        expected = state == ServerState.RUNNING
        assert ServerStateMachine.can_perform_operation(state, OperationType.DECOMMISSION) == expected


def test_validate_decommission_while_building():
    with pytest.raises(BadRequestError) as exc_info:
        ServerStateMachine.validate_operation(ServerState.BUILDING, OperationType.DECOMMISSION)

    message = exc_info.value.message
    assert message.startswith("Only servers in the running state can be decommissioned")
    assert "still building" in message
    assert exc_info.value.status_code == 400


def test_validate_decommission_while_running():
    ServerStateMachine.validate_operation(ServerState.RUNNING, OperationType.DECOMMISSION)


@pytest.mark.parametrize("operation", list(OperationType))
def test_every_operation_is_allowed_somewhere(operation):
    assert any(operation in ops for ops in ServerStateMachine.ALLOWED_OPERATIONS.values())
