"""Tests for the inventory example: routing, validation, errors, static, CORS."""

from wren.testing import TestClient

UNIT = {"vin": "1FTFW1E50PFA00001", "make": "Ford", "price": 18500}


class TestInventory:
    async def test_empty_listing(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/v1/inventory")
            assert response.status == 200
            assert response.json() == {"data": []}

    async def test_create_and_fetch(self, example_app) -> None:
        async with TestClient(example_app) as client:
            create = await client.post("/v1/inventory", json=UNIT)
            assert create.status == 201
            unit_id = create.json()["data"]["id"]
            assert create.header("location") == f"/v1/inventory/{unit_id}"

            response = await client.get(f"/v1/inventory/{unit_id}")
            assert response.json()["data"]["vin"] == UNIT["vin"]

    async def test_filter_by_make(self, example_app) -> None:
        async with TestClient(example_app) as client:
            await client.post("/v1/inventory", json=UNIT)
            ram = {**UNIT, "vin": "3C6UR5FL1PG000002", "make": "Ram"}
            await client.post("/v1/inventory", json=ram)
            response = await client.get("/v1/inventory?make=ram")
            assert [u["make"] for u in response.json()["data"]] == ["Ram"]

    async def test_delete(self, example_app) -> None:
        async with TestClient(example_app) as client:
            unit_id = (await client.post("/v1/inventory", json=UNIT)).json()["data"]["id"]
            assert (await client.delete(f"/v1/inventory/{unit_id}")).status == 204
            assert (await client.get(f"/v1/inventory/{unit_id}")).status == 404


class TestErrors:
    async def test_missing_unit_envelope(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/v1/inventory/404", headers={"X-Request-Id": "r-1"})
            assert response.status == 404
            assert response.header("x-request-id") == "r-1"
            assert response.json() == {
                "error": {"code": "NOT_FOUND", "message": "Unit 404 not found", "requestId": "r-1"}
            }

    async def test_validation_details(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post("/v1/inventory", json={"vin": "X"})
            assert response.status == 422
            error = response.json()["error"]
            assert error["code"] == "VALIDATION_FAILED"
            assert error["details"] == {"missing": ["make", "price"]}

    async def test_duplicate_vin(self, example_app) -> None:
        async with TestClient(example_app) as client:
            await client.post("/v1/inventory", json=UNIT)
            response = await client.post("/v1/inventory", json=UNIT)
            assert response.status == 409
            assert response.json()["error"]["code"] == "DUPLICATE_VIN"

    async def test_malformed_json(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post(
                "/v1/inventory", body=b"{", headers={"content-type": "application/json"}
            )
            assert response.status == 400
            assert response.json()["error"]["code"] == "INVALID_BODY"

    async def test_oversized_body_drops_connection(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.post(
                "/v1/inventory",
                chunks=[b'{"vin": "', b"x" * 40_000, b"x" * 40_000, b'"}'],
                headers={"content-type": "application/json"},
            )
            assert response.destroyed is True


class TestDashboard:
    async def test_static_index(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/index.html")
            assert response.status == 200
            assert "Vehicle inventory" in response.text

    async def test_preflight(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.options(
                "/v1/inventory",
                headers={"Origin": "https://dash.example", "Access-Control-Request-Method": "POST"},
            )
            assert response.status == 204
            assert response.header("access-control-allow-origin") == "https://dash.example"
            assert response.header("access-control-allow-credentials") == "true"
