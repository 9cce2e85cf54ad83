"""Tests for request logging middleware and the JSON log formatter."""

import json
import logging

from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from src.hv_common.logging_config import JsonFormatter
from src.hv_gateway.middleware.request_log import REQUEST_ID_HEADER, RequestLogMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLogMiddleware)

    @app.get("/echo")
    async def echo(request: Request) -> dict[str, str]:
        return {"request_id": request.state.request_id}

    return app


class TestRequestLogMiddleware:
    async def test_request_id_on_state_and_header(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="hv.request")

        async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://t") as c:
            resp = await c.get("/echo")

        request_id = resp.headers[REQUEST_ID_HEADER]
        assert request_id.startswith("req_")
        assert resp.json()["request_id"] == request_id
        assert "[GET] /echo" in caplog.text
        assert request_id in caplog.text

    async def test_request_id_rendered_as_json_field(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="hv.request")

        async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://t") as c:
            resp = await c.get("/echo")

        record = next(r for r in caplog.records if r.name == "hv.request")
        assert record.request_id == resp.headers[REQUEST_ID_HEADER]
        payload = json.loads(JsonFormatter().format(record))
        assert payload["request_id"] == resp.headers[REQUEST_ID_HEADER]


class TestJsonFormatter:
    def test_includes_extra_fields(self) -> None:
        record = logging.LogRecord("hv.test", logging.INFO, __file__, 1, "unlocked %s", ("s-1",), None)
        record.song_id = "s-1"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "unlocked s-1"
        assert payload["level"] == "INFO"
        assert payload["song_id"] == "s-1"
        assert "user_id" not in payload
