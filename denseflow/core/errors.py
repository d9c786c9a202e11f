"""Exception types raised by the denseflow engine."""

from __future__ import annotations


class ShapeMismatchError(ValueError):
    """Raised when a tensor or layer shape does not line up with its neighbour."""


class MissingContextError(RuntimeError):
    """Raised when ``backward`` runs on a layer with no pending forward context."""


class ModelExistsError(FileExistsError):
    """Raised when saving onto an existing model directory without ``overwrite``."""


__all__ = ["ShapeMismatchError", "MissingContextError", "ModelExistsError"]
