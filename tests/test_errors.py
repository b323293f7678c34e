"""Tests for the error hierarchy and the JSON error handler."""

from wren.app import App
from wren.config import AppConfig
from wren.errors import BodyDecodeError, HTTPError, NotFound, WrenError
from wren.middleware import error_handler
from wren.testing import TestClient


class TestErrorTypes:
    def test_http_error_str(self) -> None:
        assert str(HTTPError(409, "Stock number taken")) == "Stock number taken"
        assert str(HTTPError(503)) == "503"

    def test_http_error_fields(self) -> None:
        err = HTTPError(422, "Bad VIN", code="INVALID_VIN", details={"field": "vin"})
        assert err.status == 422
        assert err.code == "INVALID_VIN"
        assert err.details == {"field": "vin"}
        assert isinstance(err, WrenError)

    def test_not_found_defaults(self) -> None:
        err = NotFound()
        assert err.status == 404
        assert err.code == "NOT_FOUND"
        assert str(err) == "Not Found"

    def test_body_decode_error(self) -> None:
        err = BodyDecodeError("truncated")
        assert err.status == 400
        assert err.code == "INVALID_BODY"


def api_app(config: AppConfig | None = None) -> App:
    app = App(config)

    @app.get("/units/:id")
    def get_unit(req, res, next):
        raise NotFound(f"Unit {req.params['id']} not found")

    @app.post("/units")
    def create_unit(req, res, next):
        next(HTTPError(422, "Bad VIN", code="INVALID_VIN", details=[{"field": "vin"}]))

    @app.get("/crash")
    def crash(req, res, next):
        raise RuntimeError("pool exhausted")

    app.use(error_handler)
    return app


class TestErrorHandler:
    async def test_http_error_envelope(self) -> None:
        async with TestClient(api_app()) as client:
            response = await client.get("/units/42", headers={"X-Request-Id": "req-7"})
            assert response.status == 404
            assert response.json() == {
                "error": {"code": "NOT_FOUND", "message": "Unit 42 not found", "requestId": "req-7"}
            }

    async def test_details_included(self) -> None:
        async with TestClient(api_app()) as client:
            response = await client.post("/units")
            assert response.status == 422
            body = response.json()["error"]
            assert body["code"] == "INVALID_VIN"
            assert body["details"] == [{"field": "vin"}]
            assert body["requestId"] is None

    async def test_unexpected_error_is_500(self, caplog) -> None:
        async with TestClient(api_app()) as client:
            response = await client.get("/crash")
            assert response.status == 500
            assert response.json()["error"]["code"] == "INTERNAL_ERROR"
            assert response.json()["error"]["message"] == "pool exhausted"
        assert any(record.name == "wren.errors" for record in caplog.records)

    async def test_custom_request_id_header(self) -> None:
        app = api_app(AppConfig(request_id_header="x-trace"))
        async with TestClient(app) as client:
            response = await client.get("/units/1", headers={"X-Trace": "t-1"})
            assert response.json()["error"]["requestId"] == "t-1"

    async def test_request_id_from_state(self) -> None:
        app = App()

        def assign_id(req, res, next):
            req.state["request_id"] = "generated-1"
            next()

        def fail(req, res, next):
            next(NotFound())

        app.use(assign_id, fail, error_handler)
        async with TestClient(app) as client:
            response = await client.get("/anything")
            assert response.json()["error"]["requestId"] == "generated-1"

    async def test_passes_on_when_already_sent(self, caplog) -> None:
        app = App()

        async def reply_then_fail(req, res, next):
            await res.send("partial")
            next(RuntimeError("too late"))

        app.use(reply_then_fail, error_handler)
        async with TestClient(app) as client:
            response = await client.get("/")
            assert response.text == "partial"
        assert "after response was sent" in caplog.text
