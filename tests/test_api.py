"""
Integration tests for the REST API endpoints.

Runs the real application over ``httpx.ASGITransport`` against the per-test
SQLite database from ``conftest.client``.
"""

from __future__ import annotations

import pytest


async def _create_driver(client, name="Alice", license="LIC1", phone="555"):
    resp = await client.post(
        "/api/drivers", json={"name": name, "license": license, "phone": phone}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_vehicle(client, model="Van", reg="REG1", capacity=4):
    resp = await client.post(
        "/api/vehicles", json={"model": model, "regNumber": reg, "capacity": capacity}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_trip(client, driver_id, vehicle_id, **extra):
    payload = {
        "origin": "Airport",
        "destination": "Downtown",
        "driverId": driver_id,
        "vehicleId": vehicle_id,
        **extra,
    }
    resp = await client.post("/api/trips", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestServiceEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_banner(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.text == "Microfleet API is running!"


class TestDriverEndpoints:
    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        created = await _create_driver(client)
        assert created["status"] == "AVAILABLE"
        assert created["assigned_vehicle"] is None
        assert created["trips"] == []

        resp = await client.get(f"/api/drivers/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_create_missing_field(self, client):
        resp = await client.post("/api/drivers", json={"name": "Alice", "phone": "555"})
        assert resp.status_code == 400
        assert resp.json() == {
            "error": {"code": "VALIDATION_ERROR", "message": "license is required"}
        }

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client):
        resp = await client.get("/api/drivers/abc")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, client):
        resp = await client.get("/api/drivers/9999")
        assert resp.status_code == 404
        assert resp.json()["error"] == {"code": "NOT_FOUND", "message": "Driver not found"}

    @pytest.mark.asyncio
    async def test_partial_update(self, client):
        d = await _create_driver(client)
        resp = await client.put(f"/api/drivers/{d['id']}", json={"phone": "999"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["phone"] == "999"
        assert body["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_list_drivers(self, client):
        await _create_driver(client)
        await _create_driver(client, "Bob", "LIC2", "556")
        resp = await client.get("/api/drivers")
        assert resp.status_code == 200
        assert [d["name"] for d in resp.json()] == ["Alice", "Bob"]


class TestAssignmentEndpoints:
    @pytest.mark.asyncio
    async def test_assign_and_unassign(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)

        resp = await client.post(
            f"/api/drivers/{d['id']}/assign-vehicle", json={"vehicleId": v["id"]}
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["assigned_vehicle"]["id"] == v["id"]

        vehicle = (await client.get(f"/api/vehicles/{v['id']}")).json()
        assert vehicle["assigned_driver"]["id"] == d["id"]

        resp = await client.post(f"/api/drivers/{d['id']}/unassign-vehicle")
        assert resp.status_code == 200
        assert resp.json()["assigned_vehicle_id"] is None
        vehicle = (await client.get(f"/api/vehicles/{v['id']}")).json()
        assert vehicle["assigned_driver_id"] is None

    @pytest.mark.asyncio
    async def test_taken_vehicle_is_409(self, client):
        alice = await _create_driver(client)
        bob = await _create_driver(client, "Bob", "LIC2", "556")
        v = await _create_vehicle(client)
        await client.post(f"/api/drivers/{alice['id']}/assign-vehicle", json={"vehicleId": v["id"]})

        resp = await client.post(
            f"/api/drivers/{bob['id']}/assign-vehicle", json={"vehicleId": v["id"]}
        )

        assert resp.status_code == 409
        assert resp.json() == {
            "error": {"code": "CONFLICT", "message": "Vehicle already assigned"}
        }

    @pytest.mark.asyncio
    async def test_missing_vehicle_id_is_400(self, client):
        d = await _create_driver(client)
        resp = await client.post(f"/api/drivers/{d['id']}/assign-vehicle", json={})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_string_vehicle_id(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        resp = await client.post(
            f"/api/drivers/{d['id']}/assign-vehicle", json={"vehicleId": str(v["id"])}
        )
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_assigned_driver_is_409(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        await client.post(f"/api/drivers/{d['id']}/assign-vehicle", json={"vehicleId": v["id"]})

        assert (await client.delete(f"/api/drivers/{d['id']}")).status_code == 409
        assert (await client.delete(f"/api/vehicles/{v['id']}")).status_code == 409

        await client.post(f"/api/drivers/{d['id']}/unassign-vehicle")
        assert (await client.delete(f"/api/drivers/{d['id']}")).status_code == 204
        assert (await client.delete(f"/api/vehicles/{v['id']}")).status_code == 204
        assert (await client.get(f"/api/drivers/{d['id']}")).status_code == 404


class TestVehicleEndpoints:
    @pytest.mark.asyncio
    async def test_create_vehicle(self, client):
        v = await _create_vehicle(client, capacity="6")
        assert v["reg_number"] == "REG1"
        assert v["capacity"] == 6
        assert v["status"] == "AVAILABLE"

    @pytest.mark.asyncio
    async def test_bad_capacity(self, client):
        resp = await client.post(
            "/api/vehicles", json={"model": "Van", "regNumber": "REG1", "capacity": 0}
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_wrongly_typed_body_is_400(self, client):
        resp = await client.post(
            "/api/vehicles", json={"model": "Van", "regNumber": "REG1", "capacity": [4]}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_update_status(self, client):
        v = await _create_vehicle(client)
        resp = await client.put(f"/api/vehicles/{v['id']}", json={"status": "MAINTENANCE"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "MAINTENANCE"


class TestTripEndpoints:
    @pytest.mark.asyncio
    async def test_create_trip(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)

        trip = await _create_trip(client, d["id"], v["id"], distanceKm="12.5")

        assert trip["status"] == "ACTIVE"
        assert trip["distance_km"] == 12.5
        assert trip["end_time"] is None
        assert trip["driver"]["id"] == d["id"]
        assert trip["vehicle"]["id"] == v["id"]

    @pytest.mark.asyncio
    async def test_trip_for_unknown_vehicle_is_404(self, client):
        d = await _create_driver(client)
        resp = await client.post(
            "/api/trips",
            json={"origin": "A", "destination": "B", "driverId": d["id"], "vehicleId": 404},
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_end_then_end_again(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        trip = await _create_trip(client, d["id"], v["id"])

        resp = await client.post(f"/api/trips/{trip['id']}/end", json={"distanceKm": 8})
        assert resp.status_code == 200
        assert resp.json()["status"] == "ENDED"
        assert resp.json()["end_time"] is not None

        resp = await client.post(f"/api/trips/{trip['id']}/end")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_end_without_body(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        trip = await _create_trip(client, d["id"], v["id"])

        resp = await client.post(f"/api/trips/{trip['id']}/end")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ENDED"

    @pytest.mark.asyncio
    async def test_cancel(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        trip = await _create_trip(client, d["id"], v["id"])

        resp = await client.post(f"/api/trips/{trip['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"
        assert resp.json()["end_time"] is None

        resp = await client.post(f"/api/trips/{trip['id']}/cancel")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_put_status(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        trip = await _create_trip(client, d["id"], v["id"])

        resp = await client.put(f"/api/trips/{trip['id']}", json={"status": "ACTIVE"})
        assert resp.status_code == 400

        resp = await client.put(
            f"/api/trips/{trip['id']}",
            json={"status": "ENDED", "endTime": "2099-01-01T00:00:00Z"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "ENDED"
        assert resp.json()["end_time"].startswith("2099-01-01T00:00:00")

    @pytest.mark.asyncio
    async def test_delete_trip(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        trip = await _create_trip(client, d["id"], v["id"])

        assert (await client.delete(f"/api/drivers/{d['id']}")).status_code == 409
        assert (await client.delete(f"/api/trips/{trip['id']}")).status_code == 204
        assert (await client.delete(f"/api/trips/{trip['id']}")).status_code == 404
        assert (await client.delete(f"/api/drivers/{d['id']}")).status_code == 204

    @pytest.mark.asyncio
    async def test_driver_detail_lists_trips(self, client):
        d = await _create_driver(client)
        v = await _create_vehicle(client)
        for _ in range(3):
            await _create_trip(client, d["id"], v["id"])

        detail = (await client.get(f"/api/drivers/{d['id']}")).json()
        listed = (await client.get("/api/drivers")).json()[0]
        assert len(detail["trips"]) == 3
        assert len(listed["trips"]) == 2
