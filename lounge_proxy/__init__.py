"""
Lounge Proxy package.

A FastAPI application that proxies and caches calls to the Mario Kart
lounge ranking API for the stats dashboard.
"""
from .main import app, create_app

__version__ = "1.0.0"
__all__ = ["app", "create_app"]
