"""
Data models for the server provisioning service.
"""
from provisioner.models.server import (
    Server,
    ServerCreateRequest,
    ServerListResponse,
    ServerResponse,
    ServerState,
)

__all__ = [
    "Server",
    "ServerCreateRequest",
    "ServerListResponse",
    "ServerResponse",
    "ServerState",
]
