"""Layer variants and the descriptor registry used to rebuild them.

Every layer keeps a single-slot context. ``forward_actual(x, True)`` fills it
with whatever ``backward_actual`` needs and the next ``backward_actual``
empties it again; an inference forward never touches it.
"""

from __future__ import annotations

import io
from typing import ClassVar, Dict, List, Mapping, Protocol, Sequence, Type

import numpy as np

from .activations import relu, relu_mask, softmax, softmax_vjp
from .errors import MissingContextError, ShapeMismatchError
from .initializers import initial_weights
from .types import Array, Shape


class Layer(Protocol):
    """Capability set shared by all layer kinds."""

    name: ClassVar[str]

    def input_shape(self) -> Shape:
        """Shape of a single input example."""

    def output_shape(self) -> Shape:
        """Shape of a single output example."""

    def forward_actual(self, value: Array, save_context: bool) -> Array:
        """Transform ``value``; keep backward context when ``save_context``."""

    def backward_actual(self, gradient: Array, training_rate: float) -> Array:
        """Consume the context, update parameters and return dL/dinput."""

    def parameters(self) -> List[Array]:
        """Trainable tensors in persistence part order."""

    def config(self) -> Dict[str, object]:
        """Tagged descriptor without trainable values."""

    def serialize(self) -> List[bytes]:
        """One binary blob per trainable tensor."""

    def deserialize(self, parts: Sequence[bytes]) -> None:
        """Restore trainable tensors from :meth:`serialize` output."""


class ContextSlot:
    """Holds at most one pending backward context."""

    def __init__(self) -> None:
        self._value: Array | None = None

    @property
    def pending(self) -> bool:
        return self._value is not None

    def put(self, value: Array) -> None:
        self._value = value

    def take(self, owner: str) -> Array:
        if self._value is None:
            raise MissingContextError(
                f"{owner}: backward called without a preceding training forward"
            )
        value, self._value = self._value, None
        return value


def encode_array(array: Array) -> bytes:
    buffer = io.BytesIO()
    np.save(buffer, np.ascontiguousarray(array), allow_pickle=False)
    return buffer.getvalue()


def decode_array(blob: bytes) -> Array:
    return np.load(io.BytesIO(blob), allow_pickle=False)


def _as_shape(value: Array, shape: Shape, owner: str) -> Array:
    array = np.asarray(value, dtype=np.float64)
    if tuple(array.shape) != tuple(shape):
        raise ShapeMismatchError(
            f"{owner} expected shape {list(shape)} but received {list(array.shape)}"
        )
    return array


LAYER_REGISTRY: Dict[str, Type] = {}


def register_layer(cls: Type) -> Type:
    """Class decorator registering ``cls`` under its ``name`` discriminator."""

    LAYER_REGISTRY[cls.name] = cls
    return cls


def layer_from_config(
    descriptor: Mapping[str, object], rng: np.random.Generator | None = None
) -> Layer:
    """Rebuild a fresh layer from a tagged descriptor."""

    kind = descriptor.get("type")
    if kind not in LAYER_REGISTRY:
        available = ", ".join(sorted(LAYER_REGISTRY))
        raise KeyError(f"Unknown layer type {kind!r}. Available layers: {available}")
    options = {key: value for key, value in descriptor.items() if key != "type"}
    return LAYER_REGISTRY[kind].from_config(options, rng=rng)


@register_layer
class Dense:
    """Fully connected layer computing ``x . W + b``."""

    name: ClassVar[str] = "Dense Layer"

    def __init__(
        self,
        input_size: int,
        output_size: int,
        init: str | Array = "normal",
        initial_bias: float = 0.0,
        rng: np.random.Generator | None = None,
    ) -> None:
        if input_size < 1 or output_size < 1:
            raise ValueError("Dense layer sizes must be positive")
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        rng = rng if rng is not None else np.random.default_rng()
        self.weights = initial_weights(init, self.input_size, self.output_size, rng)
        self.biases = np.full((self.output_size,), float(initial_bias), dtype=np.float64)
        self._context = ContextSlot()

    @classmethod
    def from_config(cls, options: Mapping[str, object], rng=None) -> "Dense":
        return cls(int(options["input_size"]), int(options["output_size"]), rng=rng)

    def input_shape(self) -> Shape:
        return (self.input_size,)

    def output_shape(self) -> Shape:
        return (self.output_size,)

    def forward_actual(self, value: Array, save_context: bool) -> Array:
        x = _as_shape(value, self.input_shape(), self.name)
        output = x @ self.weights + self.biases
        if save_context:
            self._context.put(x.copy())
        return output

    def backward_actual(self, gradient: Array, training_rate: float) -> Array:
        x = self._context.take(self.name)
        g = _as_shape(gradient, self.output_shape(), self.name)
        self.biases -= g * training_rate
        self.weights -= np.outer(x, g) * training_rate
        # dL/dx is taken against the freshly updated weights.
        return self.weights @ g

    def parameters(self) -> List[Array]:
        return [self.weights, self.biases]

    def config(self) -> Dict[str, object]:
        return {
            "type": self.name,
            "input_size": self.input_size,
            "output_size": self.output_size,
        }

    def serialize(self) -> List[bytes]:
        return [encode_array(self.weights), encode_array(self.biases)]

    def deserialize(self, parts: Sequence[bytes]) -> None:
        if len(parts) != 2:
            raise ValueError(f"{self.name} expects 2 weight parts, got {len(parts)}")
        weights = decode_array(parts[0])
        biases = decode_array(parts[1])
        if weights.shape != (self.input_size, self.output_size):
            raise ShapeMismatchError(
                f"{self.name} weights have shape {list(weights.shape)}, "
                f"expected {[self.input_size, self.output_size]}"
            )
        if biases.shape != (self.output_size,):
            raise ShapeMismatchError(
                f"{self.name} biases have shape {list(biases.shape)}, "
                f"expected {[self.output_size]}"
            )
        self.weights = weights.astype(np.float64)
        self.biases = biases.astype(np.float64)

    def __repr__(self) -> str:
        return f"Dense(input_size={self.input_size}, output_size={self.output_size})"


class _Stateless:
    """Shared plumbing for layers without trainable tensors."""

    name: ClassVar[str]

    def parameters(self) -> List[Array]:
        return []

    def serialize(self) -> List[bytes]:
        return []

    def deserialize(self, parts: Sequence[bytes]) -> None:
        if parts:
            raise ValueError(f"{self.name} has no trainable parts, got {len(parts)}")


@register_layer
class Relu(_Stateless):
    """Elementwise ``max(x, 0)`` over an arbitrary shape."""

    name: ClassVar[str] = "Relu Activation"

    def __init__(self, size: int | Sequence[int]) -> None:
        if isinstance(size, (int, np.integer)):
            shape: Shape = (int(size),)
        else:
            shape = tuple(int(dim) for dim in size)
        if not shape or any(dim < 1 for dim in shape):
            raise ValueError(f"Invalid Relu shape: {size!r}")
        self.shape = shape
        self._context = ContextSlot()

    @classmethod
    def from_config(cls, options: Mapping[str, object], rng=None) -> "Relu":
        return cls(options["size"])  # type: ignore[arg-type]

    def input_shape(self) -> Shape:
        return self.shape

    def output_shape(self) -> Shape:
        return self.shape

    def forward_actual(self, value: Array, save_context: bool) -> Array:
        x = _as_shape(value, self.shape, self.name)
        if save_context:
            self._context.put(x.copy())
        return relu(x)

    def backward_actual(self, gradient: Array, training_rate: float) -> Array:
        x = self._context.take(self.name)
        return _as_shape(gradient, self.shape, self.name) * relu_mask(x)

    def config(self) -> Dict[str, object]:
        return {"type": self.name, "size": list(self.shape)}

    def __repr__(self) -> str:
        return f"Relu(size={list(self.shape)})"


@register_layer
class Softmax(_Stateless):
    """Softmax over a flat vector; backward is the exact Jacobian product."""

    name: ClassVar[str] = "Softmax Activation"

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("Softmax size must be positive")
        self.size = int(size)
        self._context = ContextSlot()

    @classmethod
    def from_config(cls, options: Mapping[str, object], rng=None) -> "Softmax":
        return cls(int(options["size"]))

    def input_shape(self) -> Shape:
        return (self.size,)

    def output_shape(self) -> Shape:
        return (self.size,)

    def forward_actual(self, value: Array, save_context: bool) -> Array:
        output = softmax(_as_shape(value, self.input_shape(), self.name))
        if save_context:
            self._context.put(output.copy())
        return output

    def backward_actual(self, gradient: Array, training_rate: float) -> Array:
        s = self._context.take(self.name)
        return softmax_vjp(s, _as_shape(gradient, self.output_shape(), self.name))

    def config(self) -> Dict[str, object]:
        return {"type": self.name, "size": self.size}

    def __repr__(self) -> str:
        return f"Softmax(size={self.size})"


@register_layer
class Dropout(_Stateless):
    """Zero exactly ``remove`` of ``size`` positions while training.

    Survivors are scaled by ``size / (size - remove)`` so the expected output
    equals the input. Inference is the identity.
    """

    name: ClassVar[str] = "Dropout Layer"

    def __init__(
        self, size: int, rate: float = 0.0, rng: np.random.Generator | None = None
    ) -> None:
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"Dropout rate must be within [0, 1], got {rate}")
        self._setup(int(size), int(size * rate), rng)

    @classmethod
    def exact(
        cls, size: int, remove: int, rng: np.random.Generator | None = None
    ) -> "Dropout":
        layer = cls.__new__(cls)
        layer._setup(int(size), int(remove), rng)
        return layer

    def _setup(self, size: int, remove: int, rng: np.random.Generator | None) -> None:
        if size < 1:
            raise ValueError("Dropout size must be positive")
        if not 0 <= remove <= size:
            raise ValueError(f"Dropout remove must be within [0, {size}], got {remove}")
        self.size = size
        self.remove = remove
        self.rng = rng if rng is not None else np.random.default_rng()
        self._context = ContextSlot()

    @classmethod
    def from_config(cls, options: Mapping[str, object], rng=None) -> "Dropout":
        return cls.exact(int(options["size"]), int(options["remove"]), rng=rng)

    def input_shape(self) -> Shape:
        return (self.size,)

    def output_shape(self) -> Shape:
        return (self.size,)

    def forward_actual(self, value: Array, save_context: bool) -> Array:
        x = _as_shape(value, self.input_shape(), self.name)
        if not save_context:
            return x
        kept = self.size - self.remove
        mask = np.concatenate([np.ones(kept), np.zeros(self.remove)])
        self.rng.shuffle(mask)
        if kept:
            mask *= self.size / kept
        self._context.put(mask)
        return x * mask

    def backward_actual(self, gradient: Array, training_rate: float) -> Array:
        mask = self._context.take(self.name)
        return _as_shape(gradient, self.output_shape(), self.name) * mask

    def config(self) -> Dict[str, object]:
        return {"type": self.name, "size": self.size, "remove": self.remove}

    def __repr__(self) -> str:
        return f"Dropout(size={self.size}, remove={self.remove})"


__all__ = [
    "Layer",
    "ContextSlot",
    "Dense",
    "Relu",
    "Softmax",
    "Dropout",
    "LAYER_REGISTRY",
    "register_layer",
    "layer_from_config",
    "encode_array",
    "decode_array",
]
