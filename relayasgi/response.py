"""
Response class and helpers for RelayASGI framework.
"""

import dataclasses
import json
import uuid
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Optional, Tuple, Union

from .status import HTTPStatus


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive header mapping.

    Lookups ignore case, iteration yields names with the casing they were
    last set with. ``headers["content-type"]`` and ``headers["Content-Type"]``
    refer to the same entry.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._store: Dict[str, Tuple[str, str]] = {}
        if initial:
            for name, value in initial.items():
                self[name] = value

    def __getitem__(self, name: str) -> str:
        return self._store[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        self._store[name.lower()] = (name, str(value))

    def __delitem__(self, name: str) -> None:
        del self._store[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def copy(self) -> "Headers":
        return Headers(dict(self.items()))

    def raw(self) -> List[Tuple[bytes, bytes]]:
        """Headers as ASGI byte pairs with lower-cased names."""
        return [
            (lower.encode("latin-1"), value.encode("latin-1"))
            for lower, (_, value) in self._store.items()
        ]

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"


def _json_default(value: Any) -> Any:
    """Serialize the few non-JSON types handlers commonly return."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps_json(data: Any) -> bytes:
    return json.dumps(data, default=_json_default).encode("utf-8")


class Response:
    """
    HTTP response produced by handlers and middleware.

    The content type is inferred from ``content`` unless ``media_type`` or an
    explicit ``content-type`` header is given:

    - ``str`` -> ``text/plain; charset=utf-8``
    - ``dict`` / ``list`` -> ``application/json; charset=utf-8``
    - ``bytes`` -> ``application/octet-stream``
    - ``None`` -> empty body, no content type
    """

    def __init__(
        self,
        content: Any = None,
        status_code: int = HTTPStatus.HTTP_200_OK,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
    ):
        self.status_code = int(status_code)
        self.headers = Headers(headers)
        self._cookies: Dict[str, str] = {}
        self.body, inferred_type = self._render(content)

        content_type = media_type or inferred_type
        if content_type and "content-type" not in self.headers:
            self.headers["content-type"] = content_type

    @staticmethod
    def _render(content: Any) -> Tuple[bytes, Optional[str]]:
        if content is None:
            return b"", None
        if isinstance(content, bytes):
            return content, "application/octet-stream"
        if isinstance(content, str):
            return content.encode("utf-8"), "text/plain; charset=utf-8"
        return dumps_json(content), "application/json; charset=utf-8"

    @property
    def media_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def cookies(self) -> Dict[str, str]:
        """Pending ``Set-Cookie`` header values keyed by cookie name."""
        return self._cookies

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: Optional[int] = None,
        expires: Optional[Union[datetime, str]] = None,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: Optional[str] = "lax",
    ) -> None:
        """
        Set a cookie on the response.

        Args:
            key: Cookie name
            value: Cookie value
            max_age: Lifetime in seconds
            expires: Expiry as a datetime or preformatted string
            path: Cookie path
            domain: Cookie domain
            secure: Only send over HTTPS
            httponly: Hide from JavaScript
            samesite: 'strict', 'lax', 'none' or None to omit
        """
        parts = [f"{key}={value}"]
        if max_age is not None:
            parts.append(f"Max-Age={int(max_age)}")
        if expires is not None:
            if isinstance(expires, datetime):
                expires = expires.strftime("%a, %d %b %Y %H:%M:%S GMT")
            parts.append(f"Expires={expires}")
        if path:
            parts.append(f"Path={path}")
        if domain:
            parts.append(f"Domain={domain}")
        if secure:
            parts.append("Secure")
        if httponly:
            parts.append("HttpOnly")
        if samesite:
            if samesite.lower() not in ("strict", "lax", "none"):
                raise ValueError("samesite must be 'strict', 'lax' or 'none'")
            parts.append(f"SameSite={samesite.capitalize()}")
        self._cookies[key] = "; ".join(parts)

    def delete_cookie(self, key: str, path: str = "/", domain: Optional[str] = None) -> None:
        """Expire a cookie on the client."""
        self.set_cookie(
            key,
            "",
            max_age=0,
            expires="Thu, 01 Jan 1970 00:00:00 GMT",
            path=path,
            domain=domain,
        )

    def clear_cookies(self) -> None:
        self._cookies.clear()

    def to_asgi_response(self) -> Dict[str, Any]:
        """
        Convert to the pieces needed for ASGI ``http.response.*`` messages.

        Returns:
            Dict with ``status``, ``headers`` (list of byte pairs) and ``body``
        """
        headers = self.headers.raw()
        headers.append((b"content-length", str(len(self.body)).encode("latin-1")))
        for cookie in self._cookies.values():
            headers.append((b"set-cookie", cookie.encode("latin-1")))
        return {"status": self.status_code, "headers": headers, "body": self.body}

    def __repr__(self) -> str:
        return f"<Response {self.status_code} {self.media_type or '-'} {len(self.body)}B>"


def text_response(
    content: str,
    status_code: int = HTTPStatus.HTTP_200_OK,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Create a plain text response."""
    return Response(content, status_code, headers, "text/plain; charset=utf-8")


def html_response(
    content: str,
    status_code: int = HTTPStatus.HTTP_200_OK,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Create an HTML response."""
    return Response(content, status_code, headers, "text/html; charset=utf-8")


def json_response(
    data: Any,
    status_code: int = HTTPStatus.HTTP_200_OK,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Create a JSON response. Works for any JSON-serializable value, including str."""
    response = Response(None, status_code, headers, "application/json; charset=utf-8")
    response.body = dumps_json(data)
    return response


def redirect_response(
    url: str,
    status_code: int = HTTPStatus.HTTP_307_TEMPORARY_REDIRECT,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Create a redirect response pointing at ``url``."""
    response = Response(None, status_code, headers)
    response.headers["location"] = url
    return response


def error_response(
    status_code: int,
    message: Optional[str] = None,
    details: Optional[Any] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Create a JSON error response.

    Body shape: ``{"error": {"status": 404, "message": "Not Found"}}`` with an
    optional ``details`` entry.
    """
    if message is None:
        try:
            message = HTTPStatus(status_code).phrase
        except ValueError:
            message = "Error"
    error: Dict[str, Any] = {"status": int(status_code), "message": message}
    if details is not None:
        error["details"] = details
    return json_response({"error": error}, status_code, headers)
