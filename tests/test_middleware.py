"""
Tests for the RelayASGI middleware chain and its integration with the application.
"""

import pytest
import asyncio
from relayasgi import RelayASGI, Pipeline, text_response
from relayasgi.middleware import MiddlewareChain
from test_utils import ASGICapture, create_mock_receive, make_context, make_scope


class TestMiddlewareChain:
    """Test the MiddlewareChain class."""

    def test_empty_chain(self):
        """An empty chain builds a pipeline that goes straight to the endpoint."""
        chain = MiddlewareChain()
        assert chain.count() == 0

        async def endpoint(context):
            context.respond(text_response("endpoint"))

        pipeline = chain.build(endpoint)
        assert isinstance(pipeline, Pipeline)
        assert len(pipeline) == 0
        assert pipeline.terminal is endpoint

    def test_add_middleware(self):
        chain = MiddlewareChain()

        async def mw1(context, call_next):
            await call_next()

        chain.add(mw1)
        assert chain.count() == 1
        assert chain.middlewares == (mw1,)

    def test_clear_middleware(self):
        chain = MiddlewareChain()

        async def mw1(context, call_next):
            await call_next()

        chain.add(mw1)
        chain.clear()
        assert chain.count() == 0

    def test_outer_units_come_first(self):
        chain = MiddlewareChain()

        async def registered(context, call_next):
            await call_next()

        async def outer(context, call_next):
            await call_next()

        async def endpoint(context):
            pass

        chain.add(registered)
        pipeline = chain.build(endpoint, outer)
        assert pipeline.units == (outer, registered)

    @pytest.mark.asyncio
    async def test_multiple_middleware_order(self):
        """Middleware execute in registration order and unwind in reverse."""
        chain = MiddlewareChain()
        execution_order = []

        def make(name):
            async def middleware(context, call_next):
                execution_order.append(f"{name}_start")
                await call_next()
                execution_order.append(f"{name}_end")
                context.set_header(f"X-{name}", "processed")

            return middleware

        async def endpoint(context):
            execution_order.append("endpoint")
            context.respond(text_response("Hello"))

        for name in ("A", "B", "C"):
            chain.add(make(name))

        context = make_context()
        await chain.build(endpoint).run(context)

        assert execution_order == [
            "A_start",
            "B_start",
            "C_start",
            "endpoint",
            "C_end",
            "B_end",
            "A_end",
        ]
        for name in ("A", "B", "C"):
            assert context.response.headers.get(f"X-{name}") == "processed"

    @pytest.mark.asyncio
    async def test_middleware_short_circuit(self):
        """Auth middleware blocks /admin; later middleware never run for it."""
        chain = MiddlewareChain()

        async def auth_middleware(context, call_next):
            if context.request.path == "/admin":
                context.respond(text_response("Unauthorized", status_code=401))
                return
            await call_next()

        async def logging_middleware(context, call_next):
            await call_next()
            context.set_header("X-Logged", "true")

        async def endpoint(context):
            context.respond(text_response("Authorized content"))

        chain.add(auth_middleware)
        chain.add(logging_middleware)
        pipeline = chain.build(endpoint)

        blocked = make_context(path="/admin")
        await pipeline.run(blocked)
        assert blocked.response.status_code == 401
        assert blocked.response.body == b"Unauthorized"
        assert "X-Logged" not in blocked.response.headers

        allowed = make_context(path="/")
        await pipeline.run(allowed)
        assert allowed.response.status_code == 200
        assert allowed.response.body == b"Authorized content"
        assert allowed.response.headers.get("X-Logged") == "true"

    @pytest.mark.asyncio
    async def test_headers_set_before_handler_survive(self):
        chain = MiddlewareChain()

        async def tagger(context, call_next):
            context.set_header("X-Early", "yes")
            await call_next()

        async def endpoint(context):
            context.respond(text_response("body", headers={"X-Handler": "1"}))

        chain.add(tagger)
        context = make_context()
        await chain.build(endpoint).run(context)

        assert context.response.headers["X-Early"] == "yes"
        assert context.response.headers["X-Handler"] == "1"
        assert context.response.media_type == "text/plain; charset=utf-8"


class TestRelayASGIMiddleware:
    """Test middleware integration with the RelayASGI application."""

    @staticmethod
    async def call(app, path="/", method="GET"):
        send = ASGICapture()
        await app(make_scope(method, path), create_mock_receive(b""), send)
        return send

    @pytest.mark.asyncio
    async def test_app_middleware_decorator(self):
        app = RelayASGI()

        @app.middleware()
        async def test_middleware(context, call_next):
            await call_next()
            context.set_header("X-Test", "applied")

        @app.get("/")
        async def home():
            return text_response("Hello")

        send = await self.call(app)
        assert send.status == 200
        assert send.headers["x-test"] == "applied"
        assert send.body == b"Hello"

    @pytest.mark.asyncio
    async def test_add_middleware_method(self):
        app = RelayASGI()

        async def custom_middleware(context, call_next):
            await call_next()
            context.set_header("X-Custom", "added")

        app.add_middleware(custom_middleware)

        @app.get("/")
        async def home():
            return "Hello"

        send = await self.call(app)
        assert send.headers["x-custom"] == "added"

    @pytest.mark.asyncio
    async def test_multiple_middleware_with_app(self):
        app = RelayASGI()
        execution_order = []

        @app.middleware()
        async def first_middleware(context, call_next):
            execution_order.append("first_start")
            await call_next()
            execution_order.append("first_end")

        @app.middleware()
        async def second_middleware(context, call_next):
            execution_order.append("second_start")
            await call_next()
            execution_order.append("second_end")

        @app.get("/")
        async def home():
            execution_order.append("handler")
            return "Hello"

        await self.call(app)

        assert execution_order == [
            "first_start",
            "second_start",
            "handler",
            "second_end",
            "first_end",
        ]

    @pytest.mark.asyncio
    async def test_middleware_runs_for_unmatched_paths(self):
        app = RelayASGI()

        @app.middleware()
        async def tag(context, call_next):
            await call_next()
            context.set_header("X-Seen", "1")

        send = await self.call(app, "/missing")
        assert send.status == 404
        assert send.headers["x-seen"] == "1"

    def test_pipeline_built_at_startup(self):
        """The pipeline is built by the startup handler, not when middleware is added."""
        app = RelayASGI()

        async def mw1(context, call_next):
            await call_next()

        app.add_middleware(mw1)
        assert app.pipeline is None

        asyncio.run(app._run_startup_handlers())

        assert app.pipeline is not None
        assert app.pipeline.units == (mw1,)

    def test_add_middleware_after_startup_fails(self):
        app = RelayASGI()
        asyncio.run(app._run_startup_handlers())

        async def late(context, call_next):
            await call_next()

        with pytest.raises(RuntimeError, match="after application startup"):
            app.add_middleware(late)

    @pytest.mark.asyncio
    async def test_pipeline_built_lazily_without_lifespan(self):
        app = RelayASGI()

        @app.get("/")
        async def home():
            return "ok"

        assert app.pipeline is None
        send = await self.call(app)
        assert send.status == 200
        assert app.pipeline is not None

    @pytest.mark.asyncio
    async def test_unit_that_never_responds_gives_500(self, caplog):
        app = RelayASGI()

        @app.middleware()
        async def swallow(context, call_next):
            pass

        send = await self.call(app)
        assert send.status == 500
        assert any("No response produced" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unit_mutating_pending_response_is_sent(self):
        app = RelayASGI()

        @app.middleware()
        async def forbid(context, call_next):
            context.set_header("X-Checked", "yes")
            context.response.status_code = 403
            context.response.body = b"forbidden"

        send = await self.call(app)
        assert send.status == 403
        assert send.body == b"forbidden"
        assert send.headers["x-checked"] == "yes"

    @pytest.mark.asyncio
    async def test_unit_assigning_response_is_sent(self):
        app = RelayASGI()

        @app.middleware()
        async def tag(context, call_next):
            context.set_header("X-Trace", "t-1")
            await call_next()

        @app.middleware()
        async def deny(context, call_next):
            context.response = text_response("nope", status_code=401)

        send = await self.call(app)
        assert send.status == 401
        assert send.body == b"nope"
        assert send.headers["x-trace"] == "t-1"

    @pytest.mark.asyncio
    async def test_request_timeout_from_config(self):
        from relayasgi import AppConfig

        app = RelayASGI(config=AppConfig(request_timeout=0.01))

        @app.get("/slow")
        async def slow():
            await asyncio.sleep(1)
            return "late"

        send = await self.call(app, "/slow")
        assert send.status == 504
