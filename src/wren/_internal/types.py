"""Shared type aliases used across wren modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Continuation passed to every handler: next() or next(err)
NextFunction: TypeAlias = Callable[..., None]

# Ordinary handler (req, res, next) or error handler (err, req, res, next)
Handler: TypeAlias = Callable[..., Any]
