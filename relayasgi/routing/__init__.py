"""
RelayASGI routing package.
"""

from .route import Route
from .router import APIRouter

__all__ = ["Route", "APIRouter"]
