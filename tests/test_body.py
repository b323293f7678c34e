"""Tests for the JSON and urlencoded body parsers."""

import pytest

from wren.app import App
from wren.errors import ConfigurationError
from wren.middleware import json, parse_limit, urlencoded
from wren.testing import TestClient


def echo_app(*parsers) -> tuple[App, list[object]]:
    app = App()
    seen: list[object] = []
    for parser in parsers:
        app.use(parser)

    @app.post("/echo")
    async def echo(req, res, next):
        seen.append(req.body)
        await res.json(req.body)

    return app, seen


class TestParseLimit:
    @pytest.mark.parametrize(
        ("limit", "expected"),
        [
            (None, 1024 * 1024),
            (0, 0),
            (2048, 2048),
            ("1mb", 1024 * 1024),
            ("64kb", 64 * 1024),
            ("512b", 512),
            (" 2MB ", 2 * 1024 * 1024),
        ],
    )
    def test_valid(self, limit, expected) -> None:
        assert parse_limit(limit) == expected

    @pytest.mark.parametrize("limit", ["lots", "1gb", -1, True, 1.5])
    def test_invalid(self, limit) -> None:
        with pytest.raises(ConfigurationError):
            parse_limit(limit)

    def test_factory_rejects_bad_limit_at_setup(self) -> None:
        with pytest.raises(ConfigurationError):
            json(limit="huge")


class TestJSONParser:
    async def test_decodes_body(self) -> None:
        app, _ = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post("/echo", json={"vin": "1FT", "price": 18500})
            assert response.json() == {"vin": "1FT", "price": 18500}

    async def test_content_type_with_charset(self) -> None:
        app, _ = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo",
                body=b'["a"]',
                headers={"content-type": "application/json; charset=utf-8"},
            )
            assert response.json() == ["a"]

    async def test_empty_body_is_empty_object(self) -> None:
        app, _ = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", body=b"", headers={"content-type": "application/json"}
            )
            assert response.json() == {}

    async def test_body_split_across_chunks(self) -> None:
        app, _ = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo",
                chunks=[b'{"make": ', b'"ford"', b"}"],
                headers={"content-type": "application/json"},
            )
            assert response.json() == {"make": "ford"}
            assert response.chunks_read == 3

    async def test_invalid_json_is_400(self) -> None:
        app, seen = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", body=b"{not json", headers={"content-type": "application/json"}
            )
            assert response.status == 400
            assert response.text.startswith("Invalid application/json body")
        assert seen == []

    async def test_other_content_type_skipped(self) -> None:
        app, seen = echo_app(json())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", body=b"plain words", headers={"content-type": "text/plain"}
            )
            assert response.json() == {}
        assert seen == [{}]

    async def test_within_limit(self) -> None:
        app, _ = echo_app(json(limit=16))
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", body=b'{"a": "0123456"}', headers={"content-type": "application/json"}
            )
            assert response.status == 200

    async def test_one_byte_over_limit_destroys_connection(self) -> None:
        app, seen = echo_app(json(limit=16))
        body = b'{"a": "01234567"}'
        assert len(body) == 17
        chunks = [body[:8], body[8:], b""]
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", chunks=chunks, headers={"content-type": "application/json"}
            )
        assert response.destroyed is True
        assert response.chunks_read == 2
        assert seen == []

    async def test_over_limit_destroys_connection(self) -> None:
        app, seen = echo_app(json(limit=10))
        chunks = [b'{"a": ', b'"xxxxxx', b'xxxxxx"', b"}"]
        async with TestClient(app) as client:
            response = await client.post(
                "/echo", chunks=chunks, headers={"content-type": "application/json"}
            )
        assert response.destroyed is True
        assert response.status is None
        assert response.chunks_read < len(chunks)
        assert seen == []

    async def test_over_limit_is_logged(self, caplog) -> None:
        app, _ = echo_app(json(limit=4))
        async with TestClient(app) as client:
            await client.post("/echo", body=b'{"a": 1}', headers={"content-type": "application/json"})
        assert "body exceeds 4 bytes" in caplog.text


class TestUrlencodedParser:
    async def test_decodes_form(self) -> None:
        app, _ = echo_app(urlencoded())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo",
                body=b"name=Ada+Lovelace&email=ada%40example.com",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
            assert response.json() == {"name": "Ada Lovelace", "email": "ada@example.com"}

    async def test_repeated_keys_become_lists(self) -> None:
        app, _ = echo_app(urlencoded())
        async with TestClient(app) as client:
            response = await client.post(
                "/echo",
                body=b"tag=a&tag=b&single=1",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
            assert response.json() == {"tag": ["a", "b"], "single": "1"}


class TestParserChain:
    async def test_first_matching_parser_wins(self) -> None:
        app, _ = echo_app(json(), urlencoded())
        async with TestClient(app) as client:
            form = await client.post(
                "/echo",
                body=b"a=1",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
            assert form.json() == {"a": "1"}
            data = await client.post("/echo", json={"a": 1})
            assert data.json() == {"a": 1}

    async def test_already_parsed_body_not_reparsed(self) -> None:
        calls: list[str] = []

        def preparsed(req, res, next):
            calls.append("pre")
            req.body = {"from": "upstream"}
            req.body_parsed = True
            next()

        app = App()
        app.use(preparsed, json())

        @app.post("/echo")
        async def echo(req, res, next):
            await res.json(req.body)

        async with TestClient(app) as client:
            response = await client.post("/echo", json={"from": "client"})
            assert response.json() == {"from": "upstream"}
