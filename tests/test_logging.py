"""
Tests for logging helpers.
"""
import structlog

from provisioner.config.logging import bind_server_context


def test_bind_server_context_binds_and_unbinds():
    structlog.contextvars.clear_contextvars()

    with bind_server_context("srv-1", "teardown"):
        context = structlog.contextvars.get_contextvars()
        assert context["server_id"] == "srv-1"
        assert context["transition"] == "teardown"

    assert structlog.contextvars.get_contextvars() == {}
