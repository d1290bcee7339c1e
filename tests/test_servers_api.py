"""
Tests for server API endpoints.
"""
import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

SERVERS_URL = "/api/v1/servers/"
WEB1 = {"name": "web1", "cpus": 2, "memory_gb": 4, "disk_gb": 20}


@pytest.mark.asyncio
async def test_create_server(test_client: AsyncClient):
    response = await test_client.post(SERVERS_URL, json=WEB1)

    assert response.status_code == status.HTTP_202_ACCEPTED
    data = response.json()
    assert data["state"] == "building"
    assert data["name"] == "web1"
    assert response.headers["location"] == f"http://test/api/v1/servers/{data['id']}"


@pytest.mark.asyncio
async def test_create_server_invalid_request(test_client: AsyncClient):
    response = await test_client.post(
        SERVERS_URL, json={"name": "", "cpus": 0, "memory_gb": 1, "disk_gb": 1}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    message = response.json()["error"]["message"]
    assert "Name must be specified" in message
    assert "Number of CPUs should be 1 or higher" in message

    listing = await test_client.get(SERVERS_URL)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_create_server_malformed_body(test_client: AsyncClient):
    response = await test_client.post(SERVERS_URL, json={**WEB1, "cpus": "many"})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"]["message"] == "Validation error"


@pytest.mark.asyncio
async def test_list_servers(test_client: AsyncClient):
    for i in range(3):
        await test_client.post(SERVERS_URL, json={**WEB1, "name": f"web{i}"})

    response = await test_client.get(SERVERS_URL, params={"sort": "id"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 3
    ids = [uuid.UUID(server["id"]) for server in data["servers"]]
    assert ids == sorted(ids)


@pytest.mark.asyncio
async def test_get_server(test_client: AsyncClient):
    created = (await test_client.post(SERVERS_URL, json=WEB1)).json()

    response = await test_client.get(f"{SERVERS_URL}{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_server_not_found(test_client: AsyncClient):
    response = await test_client.get(f"{SERVERS_URL}{uuid.uuid4()}")

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_get_server_invalid_id(test_client: AsyncClient):
    response = await test_client.get(f"{SERVERS_URL}not-a-uuid")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["message"] == "Invalid server identifier: not-a-uuid"


@pytest.mark.asyncio
async def test_delete_server_lifecycle(test_client: AsyncClient, scheduler):
    created = (await test_client.post(SERVERS_URL, json=WEB1)).json()
    url = f"{SERVERS_URL}{created['id']}"

    # still building
    response = await test_client.delete(url)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    scheduler.run_next()
    response = await test_client.delete(url)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert (await test_client.get(url)).json()["state"] == "terminating"

    scheduler.run_next()
    assert (await test_client.get(url)).json()["state"] == "destroyed"

    scheduler.run_next()
    assert (await test_client.get(url)).status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_delete_server_not_found(test_client: AsyncClient):
    response = await test_client.delete(f"{SERVERS_URL}{uuid.uuid4()}")

    assert response.status_code == status.HTTP_404_NOT_FOUND
