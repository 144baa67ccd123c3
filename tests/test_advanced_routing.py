"""
Tests for typed path parameters, priorities, prefixes and pattern errors.
"""

import uuid

import pytest

from relayasgi import APIRouter, ConfigurationError, RelayASGI
from relayasgi.testing import TestClient


def find(app, path, method="GET"):
    return app.api_router.find_route(path, method)


class TestPathParameters:
    """Dynamic path segments and type conversion."""

    def test_int_parameter(self):
        app = RelayASGI()

        @app.get("/users/{user_id:int}")
        async def get_user(user_id: int):
            return {"id": user_id}

        route, params = find(app, "/users/123")
        assert params == {"user_id": 123}
        assert find(app, "/users/abc") is None

    def test_float_parameter(self):
        app = RelayASGI()

        @app.get("/prices/{amount:float}")
        async def price(amount: float):
            return {"amount": amount}

        assert find(app, "/prices/9.5")[1]["amount"] == 9.5
        assert find(app, "/prices/10")[1]["amount"] == 10.0
        assert find(app, "/prices/cheap") is None

    def test_uuid_parameter(self):
        app = RelayASGI()

        @app.get("/sessions/{session_id:uuid}")
        async def get_session(session_id: uuid.UUID):
            return {"session": session_id}

        value = "123e4567-e89b-12d3-a456-426614174000"
        route, params = find(app, f"/sessions/{value}")
        assert params["session_id"] == uuid.UUID(value)
        assert find(app, "/sessions/not-a-uuid") is None

        response = TestClient(app).get(f"/sessions/{value}")
        assert response.json() == {"session": value}

    def test_default_string_type(self):
        app = RelayASGI()

        @app.get("/items/{item_id}")
        async def get_item(item_id: str):
            return item_id

        assert find(app, "/items/abc123")[1] == {"item_id": "abc123"}
        assert find(app, "/items/a/b") is None

    def test_nested_parameters_passed_to_handler(self):
        app = RelayASGI()

        @app.get("/users/{user_id:int}/posts/{post_id:int}")
        async def get_post(user_id: int, post_id: int):
            return {"user_id": user_id, "post_id": post_id}

        response = TestClient(app).get("/users/7/posts/42")
        assert response.json() == {"user_id": 7, "post_id": 42}

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/files/document.txt", "document.txt"),
            ("/files/folder/subfolder/document.txt", "folder/subfolder/document.txt"),
            ("/files/", ""),
            ("/files/my-file_v2.1.txt", "my-file_v2.1.txt"),
        ],
    )
    def test_path_parameter_spans_segments(self, path, expected):
        app = RelayASGI()

        @app.get("/files/{filepath:path}")
        async def get_file(filepath: str):
            return filepath

        route, params = find(app, path)
        assert params["filepath"] == expected


class TestRoutePriority:
    """Higher priority routes are tried first."""

    def test_priority_ordering(self):
        app = RelayASGI()

        @app.get("/test/{rest:path}", priority=1)
        async def low_priority(rest: str):
            return "low"

        @app.get("/test/specific", priority=10)
        async def high_priority():
            return "high"

        @app.get("/test/{segment}", priority=5)
        async def medium_priority(segment: str):
            return "medium"

        assert find(app, "/test/specific")[0].priority == 10
        route, params = find(app, "/test/other")
        assert route.priority == 5
        assert params == {"segment": "other"}
        route, params = find(app, "/test/deep/nested/path")
        assert route.priority == 1
        assert params == {"rest": "deep/nested/path"}

    def test_equal_priority_keeps_registration_order(self):
        app = RelayASGI()

        @app.get("/pages/{name}")
        async def first(name: str):
            return "first"

        @app.get("/pages/{slug}")
        async def second(slug: str):
            return "second"

        assert TestClient(app).get("/pages/home").text == "first"

    def test_exact_match_before_parameter(self):
        app = RelayASGI()

        @app.get("/users/me", priority=10)
        async def current_user():
            return "me"

        @app.get("/users/{user_id:int}", priority=5)
        async def get_user(user_id: int):
            return "by id"

        client = TestClient(app)
        assert client.get("/users/me").text == "me"
        assert client.get("/users/5").text == "by id"

    def test_order_cache_invalidated_by_new_routes(self):
        app = RelayASGI()

        @app.get("/x/{value}")
        async def generic(value: str):
            return "generic"

        assert find(app, "/x/special")[0].name == "generic"

        @app.get("/x/special", priority=1)
        async def special():
            return "special"

        assert find(app, "/x/special")[0].name == "special"


class TestRouterPrefix:
    def test_router_with_prefix(self):
        router = APIRouter(prefix="/api/v1/")

        @router.get("/users")
        async def list_users():
            return []

        assert router.routes[0].path == "/api/v1/users"

    def test_include_router_with_prefix(self):
        app = RelayASGI()
        api_router = APIRouter(prefix="/api")

        @api_router.get("/users")
        async def list_users():
            return []

        app.include_router(api_router, prefix="/v1")
        assert find(app, "/v1/api/users") is not None

    def test_nested_router_prefixes(self):
        app = RelayASGI()
        users_router = APIRouter(prefix="/users")
        admin_router = APIRouter(prefix="/admin")

        @users_router.get("/{user_id:int}")
        async def get_user(user_id: int):
            return {"id": user_id}

        @admin_router.get("/dashboard")
        async def admin_dashboard():
            return "dashboard"

        admin_router.include_router(users_router)
        app.include_router(admin_router, prefix="/api")

        assert find(app, "/api/admin/users/123")[1] == {"user_id": 123}
        assert find(app, "/api/admin/dashboard") is not None


class TestMethodMatching:
    def test_same_path_different_methods(self):
        app = RelayASGI()

        @app.get("/users/{user_id:int}")
        async def get_user(user_id: int):
            return "GET"

        @app.post("/users/{user_id:int}")
        async def update_user(user_id: int):
            return "POST"

        client = TestClient(app)
        assert client.get("/users/1").text == "GET"
        assert client.post("/users/1").text == "POST"
        assert find(app, "/users/1", "DELETE") is None
        assert client.delete("/users/1").status_code == 405


class TestPatternErrors:
    """Invalid patterns fail when the route is registered."""

    def test_invalid_parameter_type(self):
        app = RelayASGI()
        with pytest.raises(ConfigurationError, match="Unsupported parameter type"):

            @app.get("/users/{user_id:invalid_type}")
            async def get_user(user_id):
                return "x"

    @pytest.mark.parametrize("pattern", ["/files/*", "/docs/**"])
    def test_wildcard_patterns_rejected(self, pattern):
        app = RelayASGI()
        with pytest.raises(ConfigurationError, match="Wildcard patterns.*{name:path}"):

            @app.get(pattern)
            async def invalid_route():
                return "x"

    def test_unclosed_parameter(self):
        with pytest.raises(ConfigurationError, match="Unclosed parameter"):

            @RelayASGI().get("/users/{user_id")
            async def broken(user_id):
                return "x"

    def test_duplicate_parameter(self):
        with pytest.raises(ConfigurationError, match="Duplicate path parameter"):

            @RelayASGI().get("/a/{id}/b/{id}")
            async def broken(id):
                return "x"

    def test_handler_missing_path_parameter(self):
        with pytest.raises(ConfigurationError, match="does not have corresponding parameters"):

            @RelayASGI().get("/users/{user_id}")
            async def broken():
                return "x"

    def test_handler_extra_parameter(self):
        with pytest.raises(ConfigurationError, match="only defines"):

            @RelayASGI().get("/users")
            async def broken(user_id):
                return "x"

    def test_annotation_type_mismatch(self):
        with pytest.raises(ConfigurationError, match="type mismatch"):

            @RelayASGI().get("/users/{user_id:int}")
            async def broken(user_id: str):
                return "x"

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):

            @RelayASGI().get("/files/*")
            async def broken():
                return "x"

    def test_path_normalization(self):
        app = RelayASGI()

        @app.get("/users/")
        async def list_users():
            return []

        assert find(app, "/users")[0] is find(app, "/users/")[0]
