"""
Request class for RelayASGI framework.

A Request is a read-only view of one ASGI ``http`` scope plus its fully
received body. Middleware and handlers share it through the request context.
"""

import json
import urllib.parse
from functools import cached_property
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .exceptions import HTTPException
from .response import Headers
from .status import HTTPStatus

Receive = Callable[[], Awaitable[Dict[str, Any]]]

_UNREAD = object()


async def read_body(receive: Receive, max_body_size: Optional[int] = None) -> bytes:
    """
    Collect every ``http.request`` chunk until ``more_body`` is false.

    A disconnect ends the body early with whatever arrived so far.

    Raises:
        HTTPException: 413 once the body grows past ``max_body_size`` bytes
    """
    chunks: List[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunk = message.get("body", b"")
        size += len(chunk)
        if max_body_size is not None and size > max_body_size:
            raise HTTPException(
                HTTPStatus.HTTP_413_CONTENT_TOO_LARGE,
                f"Request body exceeds {max_body_size} bytes",
            )
        chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _scope_headers(raw_headers) -> Headers:
    """Decode ASGI header pairs; repeated names are joined as HTTP allows."""
    headers = Headers()
    for raw_name, raw_value in raw_headers:
        name = raw_name.decode("latin-1")
        value = raw_value.decode("latin-1")
        if name in headers:
            separator = "; " if name.lower() == "cookie" else ", "
            value = headers[name] + separator + value
        headers[name] = value
    return headers


class Request:
    """
    One inbound HTTP request.

    Build it with :meth:`from_receive` in the server path or
    :meth:`from_bytes` in tests; ``Request(scope)`` alone has no body.
    Header lookups ignore case.
    """

    def __init__(self, scope: Dict[str, Any], body: Any = _UNREAD):
        self.scope = scope
        self.method: str = scope.get("method", "GET")
        self.path: str = scope.get("path", "/")
        self.query_string: str = scope.get("query_string", b"").decode("utf-8")
        self.headers = _scope_headers(scope.get("headers", []))
        self.path_params: Dict[str, Any] = {}
        self._body = body

    @classmethod
    async def from_receive(
        cls,
        scope: Dict[str, Any],
        receive: Receive,
        max_body_size: Optional[int] = None,
    ) -> "Request":
        """Read the whole body from ``receive`` and build the request."""
        return cls(scope, await read_body(receive, max_body_size))

    @classmethod
    def from_bytes(cls, scope: Dict[str, Any], body: bytes) -> "Request":
        return cls(scope, body)

    @property
    def body(self) -> bytes:
        if self._body is _UNREAD:
            raise RuntimeError(
                "Request body has not been read. Use 'Request.from_receive()' "
                "or 'Request.from_bytes()' to create the request."
            )
        return self._body

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    @property
    def url(self) -> str:
        scheme = self.scope.get("scheme", "http")
        host, port = self.scope.get("server") or ("localhost", 80)
        url = f"{scheme}://{host}:{port}{self.path}"
        return f"{url}?{self.query_string}" if self.query_string else url

    @property
    def client(self) -> Optional[Tuple[str, int]]:
        """(host, port) of the peer, when the server reports it."""
        client = self.scope.get("client")
        return tuple(client) if client else None

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def media_type(self) -> str:
        """Content type without parameters, lower-cased; '' when absent."""
        return (self.content_type or "").split(";", 1)[0].strip().lower()

    def is_json(self) -> bool:
        return self.media_type == "application/json"

    def is_form(self) -> bool:
        return self.media_type == "application/x-www-form-urlencoded"

    # Query string

    @cached_property
    def query_params_multi(self) -> Dict[str, List[str]]:
        """Every value of every parameter: '?tag=a&tag=b' -> {'tag': ['a', 'b']}."""
        params: Dict[str, List[str]] = {}
        for key, value in urllib.parse.parse_qsl(self.query_string, keep_blank_values=True):
            params.setdefault(key, []).append(value)
        return params

    @cached_property
    def query_params(self) -> Dict[str, str]:
        """First value of each parameter."""
        return {key: values[0] for key, values in self.query_params_multi.items()}

    def get_query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    def get_query_params(self, name: str, default: Optional[List[str]] = None) -> List[str]:
        return self.query_params_multi.get(name, default or [])

    # Cookies

    @cached_property
    def cookies(self) -> Dict[str, str]:
        """Cookies from the Cookie header; a repeated name keeps its last value."""
        pairs = (item.split("=", 1) for item in self.headers.get("cookie", "").split(";"))
        return {pair[0].strip(): pair[1].strip() for pair in pairs if len(pair) == 2}

    def get_cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.cookies.get(name, default)

    # Body parsing

    @cached_property
    def _parsed_json(self) -> Any:
        if not self.body:
            raise ValueError("Request body is empty")
        try:
            return json.loads(self.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid JSON in request body: {e}")

    def json(self) -> Any:
        """
        The body parsed as JSON.

        Raises:
            ValueError: If the body is empty or not valid JSON
        """
        return self._parsed_json

    def form(self) -> Dict[str, str]:
        """URL-encoded form fields; a repeated field keeps its first value."""
        fields: Dict[str, str] = {}
        for key, value in urllib.parse.parse_qsl(self.text, keep_blank_values=True):
            fields.setdefault(key, value)
        return fields

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
