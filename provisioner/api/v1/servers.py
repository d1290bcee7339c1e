"""
Server management API endpoints.
Thin adapter over the lifecycle engine: requests are turned into domain
objects, engine errors are mapped to HTTP responses by the exception handlers
registered in provisioner.main.

URL Pattern: /api/v1/servers
"""
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from provisioner.config.logging import get_logger
from provisioner.core.lifecycle_engine import LifecycleEngine
from provisioner.exceptions import InternalError
from provisioner.models.server import (
    ServerCreateRequest,
    ServerListResponse,
    ServerResponse,
    ServerState,
)

router = APIRouter()
logger = get_logger(__name__)


def get_lifecycle_engine(request: Request) -> LifecycleEngine:
    """Resolve the lifecycle engine created by the application lifespan."""
    engine = getattr(request.app.state, "lifecycle_engine", None)
    if engine is None:
        raise InternalError("Lifecycle engine is not initialized")
    return engine


@router.get("/", response_model=ServerListResponse)
async def list_servers(
    sort: Optional[str] = Query(None, pattern="^id$", description="Sort servers by 'id'"),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    """
    List all servers currently in the system.

    Destroyed servers remain visible until they are purged.
    """
    servers = engine.list_servers(sort_by_id=sort == "id")
    return ServerListResponse.from_domain(servers)


@router.post("/", response_model=ServerResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_server(
    request: Request,
    response: Response,
    server_request: ServerCreateRequest,
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    """
    Create a new server - ASYNC OPERATION.

    **Returns immediately (202 Accepted)** with the server in the `building`
    state and a `Location` header pointing at the new resource. Poll it to
    see the server become `running`.
    """
    logger.info("server_creation_requested", name=server_request.name)

    server = await engine.provision(server_request.to_domain())
    response.headers["Location"] = str(request.url_for("get_server", server_id=str(server.id)))

    if server.state == ServerState.BUILDING:
        # servers take time to build, this is the expected path
        response.status_code = status.HTTP_202_ACCEPTED
    elif server.state == ServerState.RUNNING:
        response.status_code = status.HTTP_201_CREATED
    else:
        raise InternalError(
            f"Server resource in unexpected state: {server}",
            details={"server_id": str(server.id), "state": server.state},
        )

    return ServerResponse.from_domain(server)


@router.get("/{server_id}", response_model=ServerResponse)
async def get_server(
    server_id: str = Path(..., description="Server ID"),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    """Get server details by ID."""
    return ServerResponse.from_domain(engine.get_server(server_id))


@router.delete("/{server_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_server(
    server_id: str = Path(..., description="Server ID"),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    """
    Decommission a running server - ASYNC OPERATION.

    The server moves to `terminating`, then `destroyed`, and is purged from
    the system after the purge delay. Only running servers can be deleted.
    """
    logger.info("server_deletion_requested", server_id=server_id)

    await engine.decommission(server_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
