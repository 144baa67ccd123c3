"""
Tests for the built-in RelayASGI middleware: CORS, security headers,
request logging and timeouts.
"""

import asyncio
import json
import logging

import pytest

from relayasgi import ConfigurationError, RelayASGI, text_response
from relayasgi.middleware import (
    CORSMiddleware,
    RequestLoggerMiddleware,
    SecurityHeadersMiddleware,
    TimeoutMiddleware,
)
from relayasgi.testing import TestClient


def build_app(*middleware):
    app = RelayASGI()
    for unit in middleware:
        app.add_middleware(unit)

    @app.get("/data")
    async def data():
        return {"ok": True}

    @app.post("/data")
    async def create():
        return text_response("created", status_code=201)

    return app


class TestCORSMiddleware:
    def test_simple_request_gets_wildcard_origin(self):
        client = TestClient(build_app(CORSMiddleware()))
        response = client.get("/data", headers={"Origin": "http://example.com"})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "vary" not in response.headers

    def test_preflight_short_circuits(self):
        handled = []
        app = RelayASGI()
        app.add_middleware(CORSMiddleware(max_age=120))

        @app.route("/data", methods={"POST", "OPTIONS"})
        async def data():
            handled.append(True)
            return "handler ran"

        client = TestClient(app)
        response = client.options(
            "/data",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 204
        assert handled == []
        assert "POST" in response.headers["access-control-allow-methods"]
        assert response.headers["access-control-max-age"] == "120"
        assert "Content-Type" in response.headers["access-control-allow-headers"]

    def test_disallowed_origin_gets_no_cors_headers(self):
        app = build_app(CORSMiddleware(allow_origins=["http://good.example"]))
        response = TestClient(app).get("/data", headers={"Origin": "http://evil.example"})

        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers

    def test_listed_origin_is_echoed_with_vary(self):
        app = build_app(CORSMiddleware(allow_origins=["http://good.example"]))
        response = TestClient(app).get("/data", headers={"Origin": "http://good.example"})

        assert response.headers["access-control-allow-origin"] == "http://good.example"
        assert response.headers["vary"] == "Origin"

    def test_credentials_echo_origin_instead_of_wildcard(self):
        middleware = CORSMiddleware(allow_credentials=True)
        assert middleware.allowed_origin("http://app.example") == "http://app.example"

        response = TestClient(build_app(middleware)).get(
            "/data", headers={"Origin": "http://app.example"}
        )
        assert response.headers["access-control-allow-origin"] == "http://app.example"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_wildcard_methods_expand(self):
        middleware = CORSMiddleware(allow_methods=["*"])
        assert "DELETE" in middleware.allow_methods
        assert "*" not in middleware.allow_methods

    def test_cors_headers_added_to_error_responses(self):
        response = TestClient(build_app(CORSMiddleware())).get(
            "/missing", headers={"Origin": "http://example.com"}
        )
        assert response.status_code == 404
        assert response.headers["access-control-allow-origin"] == "*"


class TestSecurityHeadersMiddleware:
    def test_default_headers(self):
        response = TestClient(build_app(SecurityHeadersMiddleware())).get("/data")

        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-xss-protection"] == "1; mode=block"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert "strict-transport-security" not in response.headers

    def test_hsts_enabled(self):
        middleware = SecurityHeadersMiddleware(hsts_max_age=31536000)
        response = TestClient(build_app(middleware)).get("/data")
        assert (
            response.headers["strict-transport-security"]
            == "max-age=31536000; includeSubDomains"
        )

    def test_disabled_header_is_omitted(self):
        middleware = SecurityHeadersMiddleware(frame_options=None)
        response = TestClient(build_app(middleware)).get("/data")
        assert "x-frame-options" not in response.headers

    def test_headers_survive_short_circuit_downstream(self):
        async def gate(context, call_next):
            context.respond(text_response("blocked", status_code=403))

        response = TestClient(build_app(SecurityHeadersMiddleware(), gate)).get("/data")
        assert response.status_code == 403
        assert response.headers["x-frame-options"] == "DENY"

    def test_handler_header_wins(self):
        app = RelayASGI()
        app.add_middleware(SecurityHeadersMiddleware())

        @app.get("/embed")
        async def embed():
            return text_response("frame me", headers={"X-Frame-Options": "SAMEORIGIN"})

        response = TestClient(app).get("/embed")
        assert response.headers["x-frame-options"] == "SAMEORIGIN"


class TestRequestLoggerMiddleware:
    def test_text_format(self, caplog):
        app = build_app(RequestLoggerMiddleware())
        with caplog.at_level(logging.INFO, logger="relayasgi.access"):
            TestClient(app).get("/data")

        messages = [r.getMessage() for r in caplog.records if r.name == "relayasgi.access"]
        assert messages[0] == "--> GET /data"
        assert messages[1].startswith("<-- GET /data 200 (")

    def test_json_format(self, caplog):
        app = build_app(RequestLoggerMiddleware(log_format="json"))
        with caplog.at_level(logging.INFO, logger="relayasgi.access"):
            TestClient(app).post("/data", params={"page": "2"})

        records = [r for r in caplog.records if r.name == "relayasgi.access"]
        assert len(records) == 1
        entry = json.loads(records[0].getMessage())
        assert entry["method"] == "POST"
        assert entry["path"] == "/data"
        assert entry["status"] == 201
        assert entry["query"] == "page=2"
        assert entry["duration_ms"] >= 0

    def test_failure_is_logged_and_reraised(self, caplog):
        app = RelayASGI()
        app.add_middleware(RequestLoggerMiddleware())

        @app.get("/boom")
        async def boom():
            raise RuntimeError("nope")

        with caplog.at_level(logging.INFO, logger="relayasgi.access"):
            response = TestClient(app).get("/boom")

        assert response.status_code == 500
        assert any(
            r.levelno == logging.ERROR and "failed after" in r.getMessage()
            for r in caplog.records
        )

    def test_unanswered_request_logs_no_status(self, caplog):
        async def silent(context, call_next):
            pass

        app = build_app(RequestLoggerMiddleware(), silent)
        with caplog.at_level(logging.INFO, logger="relayasgi.access"):
            response = TestClient(app).get("/data")

        assert response.status_code == 500
        messages = [r.getMessage() for r in caplog.records if r.name == "relayasgi.access"]
        assert messages[1].startswith("<-- GET /data - (")

    def test_invalid_format(self):
        with pytest.raises(ConfigurationError):
            RequestLoggerMiddleware(log_format="xml")


class TestTimeoutMiddleware:
    def test_slow_request_times_out(self):
        app = RelayASGI()
        app.add_middleware(TimeoutMiddleware(0.01))

        @app.get("/slow")
        async def slow():
            await asyncio.sleep(1)
            return "late"

        response = TestClient(app).get("/slow")
        assert response.status_code == 504
        assert response.json()["error"]["status"] == 504

    def test_fast_request_passes(self):
        response = TestClient(build_app(TimeoutMiddleware(1))).get("/data")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    @pytest.mark.parametrize("timeout", [0, -1, None])
    def test_invalid_timeout(self, timeout):
        with pytest.raises(ConfigurationError):
            TimeoutMiddleware(timeout)

    def test_handler_timeout_error_is_not_a_deadline(self, caplog):
        app = RelayASGI()
        app.add_middleware(TimeoutMiddleware(5))

        @app.get("/upstream")
        async def upstream():
            raise TimeoutError("upstream socket timed out")

        with caplog.at_level(logging.WARNING):
            response = TestClient(app).get("/upstream")

        assert response.status_code == 500
        assert not any("timed out after" in r.getMessage() for r in caplog.records)

    def test_downstream_timeout_error_propagates_unchanged(self):
        error = TimeoutError("db")
        captured = []

        async def unit_that_times_out(context, call_next):
            raise error

        async def catcher(context, call_next):
            try:
                await call_next()
            except TimeoutError as e:
                captured.append(e)
                context.respond(text_response("caught", status_code=502))

        app = RelayASGI()
        app.add_middleware(catcher)
        app.add_middleware(TimeoutMiddleware(5))
        app.add_middleware(unit_that_times_out)

        response = TestClient(app).get("/data")
        assert response.status_code == 502
        assert captured == [error]
