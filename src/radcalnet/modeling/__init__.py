"""Surrogate model of RadCal emissivity and transmissivity."""

from .data import (
    INPUT_COLUMNS,
    TARGET_COLUMNS,
    ModelData,
    ZScoreScaler,
    dump_scaler,
    load_scaler,
    read_scaler,
    sample_tests,
    sample_train,
)
from .model import (
    DEFAULT_LAYERS,
    ModelTrainer,
    default_model,
    dump_model,
    load_model_state,
    make_model,
)

__all__ = [
    "DEFAULT_LAYERS",
    "INPUT_COLUMNS",
    "ModelData",
    "ModelTrainer",
    "TARGET_COLUMNS",
    "ZScoreScaler",
    "default_model",
    "dump_model",
    "dump_scaler",
    "load_model_state",
    "load_scaler",
    "make_model",
    "read_scaler",
    "sample_tests",
    "sample_train",
]
