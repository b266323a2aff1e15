"""
Tests for request/response logging levels.
"""

import logging

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from httpguard.errors import new_error
from httpguard.error_handler import setup_error_handler
from httpguard.request_logging import RequestResponseLoggingMiddleware, configure_logging

LOGGER_NAME = "httpguard.middleware"


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/unavailable")
    async def unavailable():
        return PlainTextResponse("maintenance", status_code=503)

    @app.get("/teapot")
    async def teapot():
        return PlainTextResponse("short and stout", status_code=418)

    @app.get("/failed")
    async def failed():
        raise new_error("backend down", 503)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    app.add_middleware(RequestResponseLoggingMiddleware)
    setup_error_handler(app, logger=None)
    return app


def middleware_records(caplog, level: int) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == LOGGER_NAME and r.levelno == level]


class TestRequestResponseLogging:
    @pytest.mark.asyncio
    async def test_success_is_not_logged_above_debug(self, client_factory, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        client = client_factory(build_app())

        assert (await client.get("/ok")).status_code == 200
        assert middleware_records(caplog, logging.INFO) == []
        assert middleware_records(caplog, logging.ERROR) == []

    @pytest.mark.asyncio
    async def test_client_errors_are_info(self, client_factory, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        client = client_factory(build_app())

        assert (await client.get("/missing")).status_code == 404
        assert (await client.get("/teapot")).status_code == 418

        assert middleware_records(caplog, logging.ERROR) == []
        messages = [r.getMessage() for r in middleware_records(caplog, logging.INFO)]
        assert any("Status 404" in m for m in messages)
        assert any("Status 418" in m for m in messages)

    @pytest.mark.asyncio
    async def test_unrendered_server_error_is_error(self, client_factory, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        client = client_factory(build_app())

        assert (await client.get("/unavailable")).status_code == 503

        errors = middleware_records(caplog, logging.ERROR)
        assert len(errors) == 1
        assert "Status 503" in errors[0].getMessage()

    @pytest.mark.asyncio
    async def test_errors_rendered_by_error_handler_are_not_logged_again(self, client_factory, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
        client = client_factory(build_app())

        assert (await client.get("/failed")).status_code == 503
        assert (await client.get("/boom")).status_code == 500

        assert middleware_records(caplog, logging.ERROR) == []


def test_configure_logging_level():
    assert configure_logging("debug") == "DEBUG"
    assert configure_logging("verbose") == "INFO"
