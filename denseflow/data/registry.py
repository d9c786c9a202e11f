"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

from ..core.types import LabeledData


@dataclass(frozen=True)
class DatasetSpec:
    """A loaded dataset together with where it came from.

    Attributes
    ----------
    name:
        Registry name the dataset was loaded under.
    data:
        Feature rows and one-hot label rows.
    num_classes:
        Width of the one-hot labels.
    provenance:
        Free-form metadata (paths, seeds, class names, normalisation) that is
        copied into the run manifest so experiments stay reproducible.
    """

    name: str
    data: LabeledData
    num_classes: int
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def d_in(self) -> int:
        return int(self.data.inputs.shape[1])


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("blobs")
        def make_blobs(**kwargs):
            ...

    or directly::

        register_dataset("blobs", make_blobs)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the :class:`DatasetSpec` registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    labels = spec.data.labels
    if labels.ndim != 2 or labels.shape[1] != spec.num_classes:
        raise ValueError(
            f"Dataset {spec.name!r} labels have shape {labels.shape}, "
            f"expected (rows, {spec.num_classes})"
        )
    if spec.data.inputs.ndim != 2:
        raise ValueError(f"Dataset {spec.name!r} inputs must be 2-D")


__all__ = ["DatasetSpec", "available_datasets", "get_dataset", "register_dataset"]
