"""
Integration tests for Parcel Management.

Tests parcel CRUD operations, id-form tolerance on the path and the
tracking history.
"""

import pytest

from conftest import create_parcel


@pytest.mark.asyncio
async def test_create_parcel_success(client):
    """Any extra shipment fields are kept with the parcel."""
    response = await client.post("/v1/parcels", json={
        "createdByEmail": "sender@test.com",
        "title": "Birthday gift",
        "parcelType": "document",
        "weight": 1.5,
        "receiverName": "Bob",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Parcel added successfully!"
    data = body["data"]
    assert len(data["id"]) == 24
    assert data["paymentStatus"] == "Unpaid"
    assert data["createdByEmail"] == "sender@test.com"
    assert data["details"] == {
        "title": "Birthday gift",
        "parcelType": "document",
        "weight": 1.5,
        "receiverName": "Bob",
    }


@pytest.mark.asyncio
async def test_create_parcel_requires_email(client):
    response = await client.post("/v1/parcels", json={"title": "No owner"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_parcels_filters_by_email(client, db_session):
    await create_parcel(db_session, email="a@test.com", title="one")
    await create_parcel(db_session, email="b@test.com", title="two")
    await create_parcel(db_session, email="a@test.com", title="three")

    everything = await client.get("/v1/parcels")
    assert everything.status_code == 200
    assert everything.json()["total"] == 3

    mine = await client.get("/v1/parcels", params={"email": "a@test.com"})
    body = mine.json()
    assert body["success"] is True
    assert body["total"] == 2
    assert {p["createdByEmail"] for p in body["data"]} == {"a@test.com"}


@pytest.mark.asyncio
async def test_get_parcel_by_canonical_and_legacy_id(client, legacy_parcel):
    by_canonical = await client.get(f"/v1/parcels/{legacy_parcel.id}")
    by_legacy = await client.get("/v1/parcels/P1")

    assert by_canonical.status_code == 200
    assert by_legacy.status_code == 200
    assert by_canonical.json()["data"]["id"] == by_legacy.json()["data"]["id"] == legacy_parcel.id


@pytest.mark.asyncio
async def test_get_parcel_not_found(client):
    response = await client.get("/v1/parcels/507f1f77bcf86cd799439011")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "ERR_PARCEL_NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_parcel(client, unpaid_parcel):
    response = await client.delete(f"/v1/parcels/{unpaid_parcel.id}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Parcel deleted!", "deletedCount": 1}

    again = await client.delete(f"/v1/parcels/{unpaid_parcel.id}")
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_tracking_history(client, legacy_parcel):
    for status, location in [("Picked Up", "Dhaka"), ("In Transit", "Chittagong")]:
        response = await client.post(
            "/v1/parcels/P1/tracking",
            json={"status": status, "location": location},
        )
        assert response.status_code == 201
        assert response.json()["data"]["parcelId"] == legacy_parcel.id

    history = await client.get(f"/v1/parcels/{legacy_parcel.id}/tracking")

    assert history.status_code == 200
    body = history.json()
    assert body["total"] == 2
    assert [e["status"] for e in body["data"]] == ["Picked Up", "In Transit"]


@pytest.mark.asyncio
async def test_tracking_for_unknown_parcel(client):
    response = await client.post("/v1/parcels/ghost/tracking", json={"status": "Picked Up"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_and_root(client):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert "X-Correlation-ID" in health.headers

    root = await client.get("/")
    assert root.json()["message"] == "ParcelX Server is Running..."
