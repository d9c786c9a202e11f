"""Loss objectives and the registry that rebuilds them from descriptors."""

from __future__ import annotations

from typing import ClassVar, Dict, Iterable, Mapping, Protocol, Type

import numpy as np

from ..core.types import Array, LossResult


class Loss(Protocol):
    """Objective returning both the scalar loss and dL/dprediction."""

    name: ClassVar[str]

    def compute(self, predicted: Array, actual: Array) -> LossResult:
        """Return the loss of ``predicted`` against ``actual``."""

    def config(self) -> Dict[str, object]:
        """Tagged descriptor for persistence."""


class LossRegistry:
    """Central registry for loss classes."""

    def __init__(self) -> None:
        self._registry: Dict[str, Type] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, cls: Type, *aliases: str) -> Type:
        self._registry[cls.name] = cls
        for alias in aliases:
            self._aliases[alias] = cls.name
        return cls

    def get(self, name: str) -> Type:
        key = self._aliases.get(name, name)
        if key not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[key]

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, descriptor: Mapping[str, object] | str) -> Loss:
        if isinstance(descriptor, str):
            descriptor = {"type": descriptor}
        cls = self.get(str(descriptor.get("type")))
        options = {key: value for key, value in descriptor.items() if key != "type"}
        return cls(**options)


REGISTRY = LossRegistry()


def register_loss(*aliases: str):
    """Class decorator adding a loss to :data:`REGISTRY`."""

    def _decorator(cls: Type) -> Type:
        return REGISTRY.register(cls, *aliases)

    return _decorator


@register_loss("mse", "mean_squared")
class MeanSquared:
    """``mean((p - a)^2)`` with gradient ``2 (p - a)``."""

    name: ClassVar[str] = "Mean Squared Loss"

    def compute(self, predicted: Array, actual: Array) -> LossResult:
        diff = np.asarray(predicted, dtype=np.float64) - np.asarray(actual, dtype=np.float64)
        return LossResult(loss=float(np.mean(np.square(diff))), gradient=2.0 * diff)

    def config(self) -> Dict[str, object]:
        return {"type": self.name}

    def __repr__(self) -> str:
        return "MeanSquared()"


def resolve_loss(descriptor: Mapping[str, object] | str) -> Loss:
    return REGISTRY.resolve(descriptor)


__all__ = ["Loss", "LossRegistry", "REGISTRY", "MeanSquared", "register_loss", "resolve_loss"]
