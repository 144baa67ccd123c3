"""
Tests for RelayASGI lifespan event handling.

Covers handler registration, the ASGI lifespan message loop and error
reporting for failing handlers.
"""

import pytest
from unittest.mock import AsyncMock
from relayasgi import RelayASGI


def lifespan_receive(*message_types):
    """A receive callable yielding the given lifespan messages in order."""
    return AsyncMock(side_effect=[{"type": t} for t in message_types])


class TestLifespanEvents:
    """Test lifespan event handling functionality."""

    def test_event_handler_registration(self):
        app = RelayASGI()

        @app.on_event("startup")
        async def startup_decorator():
            pass

        async def startup_direct():
            pass

        app.add_event_handler("startup", startup_direct)

        @app.on_event("shutdown")
        async def shutdown_decorator():
            pass

        async def shutdown_direct():
            pass

        app.add_event_handler("shutdown", shutdown_direct)

        # The pipeline builder is the one built-in startup handler
        assert len(app._startup_handlers) == 3
        assert len(app._shutdown_handlers) == 2
        assert app._startup_handlers[1:] == [startup_decorator, startup_direct]
        assert app._shutdown_handlers == [shutdown_decorator, shutdown_direct]

    def test_invalid_event_type_handling(self):
        app = RelayASGI()

        with pytest.raises(ValueError, match="Invalid event type: invalid"):

            @app.on_event("invalid")
            async def invalid_handler():
                pass

        async def handler():
            pass

        with pytest.raises(ValueError, match="Invalid event type: invalid"):
            app.add_event_handler("invalid", handler)

    @pytest.mark.asyncio
    async def test_full_lifespan_cycle(self):
        app = RelayASGI()
        calls = []

        @app.on_event("startup")
        async def startup_handler():
            calls.append("startup")

        @app.on_event("shutdown")
        async def shutdown_handler():
            calls.append("shutdown")

        send = AsyncMock()
        await app({"type": "lifespan"}, lifespan_receive("lifespan.startup", "lifespan.shutdown"), send)

        assert calls == ["startup", "shutdown"]
        assert [c.args[0] for c in send.call_args_list] == [
            {"type": "lifespan.startup.complete"},
            {"type": "lifespan.shutdown.complete"},
        ]

    @pytest.mark.asyncio
    async def test_startup_builds_pipeline_before_user_handlers(self):
        app = RelayASGI()
        seen = {}

        @app.on_event("startup")
        async def inspect_pipeline():
            seen["pipeline"] = app.pipeline

        await app(
            {"type": "lifespan"},
            lifespan_receive("lifespan.startup", "lifespan.shutdown"),
            AsyncMock(),
        )

        assert seen["pipeline"] is not None
        assert seen["pipeline"] is app.pipeline

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(self):
        app = RelayASGI()
        order = []

        for name in ("first", "second", "third"):

            async def handler(name=name):
                order.append(name)

            app.add_event_handler("shutdown", handler)

        await app._run_shutdown_handlers()
        assert order == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_lifespan_startup_error_handling(self, caplog):
        app = RelayASGI()

        @app.on_event("startup")
        async def failing_handler():
            raise RuntimeError("Startup failed")

        send = AsyncMock()
        await app({"type": "lifespan"}, lifespan_receive("lifespan.startup"), send)

        send.assert_called_once_with(
            {"type": "lifespan.startup.failed", "message": "Startup failed"}
        )
        assert any("Startup failed" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_lifespan_shutdown_error_handling(self):
        app = RelayASGI()

        @app.on_event("shutdown")
        async def failing_handler():
            raise RuntimeError("Shutdown failed")

        send = AsyncMock()
        await app(
            {"type": "lifespan"},
            lifespan_receive("lifespan.startup", "lifespan.shutdown"),
            send,
        )

        assert send.call_args_list[-1].args[0] == {
            "type": "lifespan.shutdown.failed",
            "message": "Shutdown failed",
        }

    @pytest.mark.asyncio
    async def test_state_shared_with_handlers(self):
        app = RelayASGI()

        @app.on_event("startup")
        async def connect():
            app.state.connections = ["db"]

        @app.get("/state")
        async def state():
            return {"connections": app.state.connections}

        await app._run_startup_handlers()
        assert app.state.connections == ["db"]
