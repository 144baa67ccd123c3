"""
Core tests for the RelayASGI application: ASGI interface, body handling and
protocol dispatch.
"""

import json

import pytest

from relayasgi import AppConfig, RelayASGI, Request, __version__
from test_utils import ASGICapture, make_scope


def chunked_receive(*chunks):
    """Receive callable delivering the body in several http.request messages."""
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    return receive


class TestASGIInterface:
    @pytest.mark.asyncio
    async def test_asgi_interface_compliance(self):
        app = RelayASGI()

        @app.get("/test")
        async def test_route(request: Request):
            return {"method": request.method, "path": request.path}

        send = ASGICapture()
        await app(make_scope("GET", "/test"), chunked_receive(b""), send)

        assert [m["type"] for m in send.messages] == [
            "http.response.start",
            "http.response.body",
        ]
        assert send.status == 200
        assert send.headers["content-type"] == "application/json; charset=utf-8"
        assert int(send.headers["content-length"]) == len(send.body)
        assert json.loads(send.body) == {"method": "GET", "path": "/test"}

    @pytest.mark.asyncio
    async def test_body_assembled_from_chunks(self):
        app = RelayASGI()

        @app.post("/echo")
        async def echo(request: Request):
            return request.body

        send = ASGICapture()
        await app(make_scope("POST", "/echo"), chunked_receive(b"hel", b"lo ", b"world"), send)
        assert send.body == b"hello world"

    @pytest.mark.asyncio
    async def test_body_over_limit_gives_413(self):
        app = RelayASGI(config=AppConfig(max_body_size=4))
        called = []

        @app.post("/upload")
        async def upload(request: Request):
            called.append(True)
            return "stored"

        send = ASGICapture()
        await app(make_scope("POST", "/upload"), chunked_receive(b"abc", b"def"), send)

        assert send.status == 413
        assert called == []

    @pytest.mark.asyncio
    async def test_disconnect_ends_body(self):
        app = RelayASGI()

        @app.post("/echo")
        async def echo(request: Request):
            return {"length": len(request.body)}

        async def receive():
            return {"type": "http.disconnect"}

        send = ASGICapture()
        await app(make_scope("POST", "/echo"), receive, send)
        assert json.loads(send.body) == {"length": 0}

    @pytest.mark.asyncio
    async def test_unsupported_protocol(self):
        app = RelayASGI()
        send = ASGICapture()

        async def receive():
            return {"type": "websocket.connect"}

        await app({"type": "websocket"}, receive, send)

        assert send.messages == [{"type": "websocket.close", "code": 1000}]

    @pytest.mark.asyncio
    async def test_cookies_sent_as_separate_headers(self):
        from relayasgi import Response

        app = RelayASGI()

        @app.get("/login")
        async def login():
            response = Response({"ok": True})
            response.set_cookie("session", "abc", httponly=True)
            response.set_cookie("theme", "dark")
            return response

        send = ASGICapture()
        await app(make_scope("GET", "/login"), chunked_receive(b""), send)

        cookies = [v for k, v in send.messages[0]["headers"] if k == b"set-cookie"]
        assert cookies == [
            b"session=abc; Path=/; HttpOnly; SameSite=Lax",
            b"theme=dark; Path=/; SameSite=Lax",
        ]


def test_version():
    assert __version__ == "0.4.0"
