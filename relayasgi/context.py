"""
Request context for RelayASGI.

A RequestContext is created for every inbound request and passed by
reference through every middleware unit and the terminal handler. Units
communicate only by mutating it in place.
"""

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from .request import Request
from .response import Response
from .status import HTTPStatus

if TYPE_CHECKING:
    from .relayasgi import RelayASGI
    from .routing import Route


class RequestContext:
    """
    Mutable carrier of one request and the response being built for it.

    A unit or handler produces the response in one of three ways: calling
    :meth:`respond`, assigning ``context.response``, or changing the status or
    body of the pending response in place.

    Attributes:
        request: The inbound request
        response: The response that will be sent. Starts as an empty pending
            response that middleware may put headers on before a handler runs.
        state: Free-form per-request storage shared between units
        app: The application handling the request, if any
        route: The matched route, once routing has run
    """

    def __init__(self, request: Request, app: Optional["RelayASGI"] = None):
        self.request = request
        self._response = Response()
        self._installed = False
        self.state: Dict[str, Any] = {}
        self.app = app
        self.route: Optional["Route"] = None
        self.started_at = time.perf_counter()

    @property
    def response(self) -> Response:
        return self._response

    @response.setter
    def response(self, response: Response) -> None:
        """Install ``response``, keeping headers and cookies set earlier."""
        previous = self._response
        if previous is not response:
            for name, value in previous.headers.items():
                if name.lower() == "content-type":
                    continue
                if name not in response.headers:
                    response.headers[name] = value
            for key, cookie in previous.cookies.items():
                response.cookies.setdefault(key, cookie)
        self._response = response
        self._installed = True

    @property
    def responded(self) -> bool:
        """True once a response was installed or the pending one got a status or body."""
        if self._installed:
            return True
        pending = self._response
        return pending.status_code != HTTPStatus.HTTP_200_OK or bool(pending.body)

    def respond(self, response: Response) -> Response:
        """
        Install ``response`` as the outcome of this request.

        Headers and cookies already placed on the current response are kept
        unless ``response`` sets the same name itself.

        Returns:
            The installed response
        """
        self.response = response
        return response

    def set_header(self, name: str, value: str) -> None:
        """Set a header on the response, whether or not it has been produced yet."""
        self.response.headers[name] = value

    @property
    def elapsed(self) -> float:
        """Seconds since the context was created."""
        return time.perf_counter() - self.started_at

    def __repr__(self) -> str:
        status = self.response.status_code if self.responded else "pending"
        return f"<RequestContext {self.request.method} {self.request.path} {status}>"
