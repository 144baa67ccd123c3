"""
HTTP status codes for RelayASGI.
"""

import http
from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes used by RelayASGI responses."""

    # 1xx Informational
    HTTP_100_CONTINUE = 100
    HTTP_101_SWITCHING_PROTOCOLS = 101

    # 2xx Success
    HTTP_200_OK = 200
    HTTP_201_CREATED = 201
    HTTP_202_ACCEPTED = 202
    HTTP_204_NO_CONTENT = 204

    # 3xx Redirection
    HTTP_301_MOVED_PERMANENTLY = 301
    HTTP_302_FOUND = 302
    HTTP_303_SEE_OTHER = 303
    HTTP_304_NOT_MODIFIED = 304
    HTTP_307_TEMPORARY_REDIRECT = 307
    HTTP_308_PERMANENT_REDIRECT = 308

    # 4xx Client Error
    HTTP_400_BAD_REQUEST = 400
    HTTP_401_UNAUTHORIZED = 401
    HTTP_403_FORBIDDEN = 403
    HTTP_404_NOT_FOUND = 404
    HTTP_405_METHOD_NOT_ALLOWED = 405
    HTTP_408_REQUEST_TIMEOUT = 408
    HTTP_409_CONFLICT = 409
    HTTP_413_CONTENT_TOO_LARGE = 413
    HTTP_415_UNSUPPORTED_MEDIA_TYPE = 415
    HTTP_422_UNPROCESSABLE_CONTENT = 422
    HTTP_429_TOO_MANY_REQUESTS = 429

    # 5xx Server Error
    HTTP_500_INTERNAL_SERVER_ERROR = 500
    HTTP_501_NOT_IMPLEMENTED = 501
    HTTP_502_BAD_GATEWAY = 502
    HTTP_503_SERVICE_UNAVAILABLE = 503
    HTTP_504_GATEWAY_TIMEOUT = 504

    @property
    def phrase(self) -> str:
        """Standard reason phrase, e.g. 'Not Found' for 404."""
        try:
            return http.HTTPStatus(self.value).phrase
        except ValueError:
            return self.name.split("_", 2)[-1].replace("_", " ").title()
