"""Core numerical primitives for denseflow."""

from . import activations, errors, initializers, layers, types

__all__ = ["activations", "errors", "initializers", "layers", "types"]
