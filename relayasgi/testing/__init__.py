"""
RelayASGI Testing Package.

Provides testing utilities for RelayASGI applications:
- TestClient: drives an app in-process through the ASGI interface
- TestResponse: response examination utilities
"""

from .client import TestClient
from .response import TestResponse

__all__ = ["TestClient", "TestResponse"]
