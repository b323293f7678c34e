"""Middleware — plain ``(req, res, next)`` callables, no base class required.

Built-in middleware:
    json / urlencoded -- Size-limited request body parsers
    static / StaticFiles -- Serve files from a directory
    cors / CORSMiddleware -- Cross-Origin Resource Sharing
    error_handler -- JSON error envelope (an ``(err, req, res, next)`` layer)
"""

from wren.middleware.body import BodyParser, json, parse_limit, urlencoded
from wren.middleware.cors import CORSConfig, CORSMiddleware, cors
from wren.middleware.errors import error_handler
from wren.middleware.static import StaticFiles, static

__all__ = [
    "BodyParser",
    "CORSConfig",
    "CORSMiddleware",
    "StaticFiles",
    "cors",
    "error_handler",
    "json",
    "parse_limit",
    "static",
    "urlencoded",
]
