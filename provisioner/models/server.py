"""
Pydantic models for server resources.
"""
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ServerState(str, Enum):
    """Server lifecycle states, in the only order a server moves through them."""

    BUILDING = "building"
    RUNNING = "running"
    TERMINATING = "terminating"
    DESTROYED = "destroyed"


class Server(BaseModel):
    """
    Domain model for a server resource.

    Every field is optional so an incomplete creation request can still be
    validated as a whole and rejected with every violation listed at once.
    Instances crossing the store boundary are always deep copies.
    """

    id: Optional[UUID] = None
    name: Optional[str] = None
    cpus: Optional[int] = None
    memory_gb: Optional[int] = None
    disk_gb: Optional[int] = None
    state: Optional[ServerState] = None

    def __str__(self) -> str:
        return (
            f"Server(id={self.id}, name={self.name!r}, cpus={self.cpus}, "
            f"memory_gb={self.memory_gb}, disk_gb={self.disk_gb}, state={self.state})"
        )


class ServerCreateRequest(BaseModel):
    """Request model for creating a server."""

    id: Optional[UUID] = Field(default=None, description="Generated by the service, must not be supplied")
    name: Optional[str] = Field(default=None, description="Display name of the server")
    cpus: Optional[int] = Field(default=None, description="Number of CPUs (1 or higher)")
    memory_gb: Optional[int] = Field(default=None, description="Amount of RAM in gigabytes (1 or higher)")
    disk_gb: Optional[int] = Field(default=None, description="Amount of disk space in gigabytes (1 or higher)")
    state: Optional[ServerState] = Field(default=None, description="Managed by the service, must not be supplied")

    def to_domain(self) -> Server:
        return Server(**self.model_dump())


class ServerResponse(BaseModel):
    """Response model for a server resource."""

    id: UUID = Field(..., description="Server unique identifier")
    name: str = Field(..., description="Server name")
    cpus: int = Field(..., description="Number of CPUs")
    memory_gb: int = Field(..., description="Amount of RAM in gigabytes")
    disk_gb: int = Field(..., description="Amount of disk space in gigabytes")
    state: ServerState = Field(..., description="Current lifecycle state")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "3b241101-e2bb-4255-8caf-4136c566a962",
                "name": "web1",
                "cpus": 2,
                "memory_gb": 4,
                "disk_gb": 20,
                "state": "building",
            }
        }
    }

    @classmethod
    def from_domain(cls, server: Server) -> "ServerResponse":
        return cls(**server.model_dump())


class ServerListResponse(BaseModel):
    """Response model for list of servers."""

    servers: List[ServerResponse] = Field(..., description="List of servers")
    total: int = Field(..., description="Total count")

    @classmethod
    def from_domain(cls, servers: List[Server]) -> "ServerListResponse":
        return cls(
            servers=[ServerResponse.from_domain(server) for server in servers],
            total=len(servers),
        )
