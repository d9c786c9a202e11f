"""denseflow public API."""

from .core import activations, layers, types  # noqa: F401
from .core.errors import MissingContextError, ModelExistsError, ShapeMismatchError
from .core.layers import Dense, Dropout, Relu, Softmax
from .core.types import LabeledData, TrainingRateConfig
from .model import Model
from .persistence import load_model, save_model
from .training.evaluation import cross_validate, fold_ranges
from .training.losses import MeanSquared
from .training.pipelines import load_preset, presets, run_pipeline
from .training.schedule import training_rate
from .training.trainer import Trainer

__all__ = [
    "Dense",
    "Dropout",
    "LabeledData",
    "MeanSquared",
    "MissingContextError",
    "Model",
    "ModelExistsError",
    "Relu",
    "ShapeMismatchError",
    "Softmax",
    "Trainer",
    "TrainingRateConfig",
    "activations",
    "cross_validate",
    "fold_ranges",
    "layers",
    "load_model",
    "load_preset",
    "presets",
    "run_pipeline",
    "save_model",
    "training_rate",
    "types",
]
