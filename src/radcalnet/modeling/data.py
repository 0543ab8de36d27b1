"""Data preparation for model training.

Loads a database, splits it into training and testing sets and standardizes
the model inputs with a z-score scaler persisted as YAML.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np
import yaml

from ..database.scenario import column_index
from ..database.storage import deduplicate_rows, load_database
from ..exceptions import ModelError, validate_range
from ..logging import get_logger

logger = get_logger("modeling")

INPUT_COLUMNS: Tuple[int, ...] = tuple(
    column_index(name) for name in ("TWALL", "T", "L", "P", "XCO2", "XH2O", "XCO")
)
TARGET_COLUMNS: Tuple[int, ...] = tuple(
    column_index(name) for name in ("emissivity", "transmissivity")
)

PathLike = Union[str, Path]


@dataclass
class ZScoreScaler:
    """Per-feature standardization ``(x - mean) / scale``."""

    mean: np.ndarray
    scale: np.ndarray

    def __post_init__(self):
        self.mean = np.asarray(self.mean, dtype=np.float32)
        self.scale = np.asarray(self.scale, dtype=np.float32)
        if self.mean.shape != self.scale.shape:
            raise ModelError(
                "Scaler mean and scale differ in shape",
                details={"mean": self.mean.shape, "scale": self.scale.shape}
            )

    @classmethod
    def fit(cls, X: np.ndarray) -> "ZScoreScaler":
        X = np.asarray(X, dtype=np.float64)
        mean = X.mean(axis=0)
        scale = X.std(axis=0, ddof=1) if len(X) > 1 else np.ones(X.shape[1])
        # Constant features are passed through centered.
        scale = np.where(scale > 0, scale, 1.0)
        return cls(mean=mean, scale=scale)

    def transform(self, X: np.ndarray) -> np.ndarray:
        return ((np.asarray(X, dtype=np.float32) - self.mean) / self.scale).astype(np.float32)

    def inverse_transform(self, X: np.ndarray) -> np.ndarray:
        return (np.asarray(X, dtype=np.float32) * self.scale + self.mean).astype(np.float32)

    def __call__(self, X: np.ndarray) -> np.ndarray:
        return self.transform(X)


def dump_scaler(scaler: ZScoreScaler, saveas: PathLike) -> None:
    """Write scaler mean and scale to a YAML file."""
    data = {
        "mean": [float(v) for v in scaler.mean],
        "scale": [float(v) for v in scaler.scale],
    }
    with open(saveas, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False)


def read_scaler(fname: PathLike) -> ZScoreScaler:
    fname = Path(fname)
    if not fname.exists():
        raise ModelError("Scaler file not found", details={"path": str(fname)})

    with open(fname, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        return ZScoreScaler(mean=data["mean"], scale=data["scale"])
    except KeyError as e:
        raise ModelError(f"Scaler file lacks {e.args[0]}", details={"path": str(fname)}) from e


def load_scaler(fname: PathLike) -> Callable[[np.ndarray], np.ndarray]:
    """Load a z-score scaler in functional form from a YAML file."""
    return read_scaler(fname).transform


class ModelData:
    """Standardized training and testing data from a database file.

    Rows are deduplicated and zero-filled rows (failed samples of legacy
    databases) dropped before the positional split; the first ``f_train``
    fraction trains, the rest tests. Matrices are samples by features.
    """

    def __init__(self, fpath: PathLike, f_train: float = 0.7):
        validate_range(f_train, 0.0, 1.0, "f_train")

        data = deduplicate_rows(load_database(fpath))
        data = data[np.any(data != 0, axis=1)]
        if len(data) < 2:
            raise ModelError("Database has too few rows to split", details={"rows": len(data)})

        split = int(round(f_train * len(data)))
        train, tests = data[:split], data[split:]

        X_train = train[:, INPUT_COLUMNS]
        self.Y_train = np.ascontiguousarray(train[:, TARGET_COLUMNS], dtype=np.float32)
        X_tests = tests[:, INPUT_COLUMNS]
        self.Y_tests = np.ascontiguousarray(tests[:, TARGET_COLUMNS], dtype=np.float32)

        self.scaler = ZScoreScaler.fit(X_train)
        self.X_train = self.scaler.transform(X_train)
        self.X_tests = self.scaler.transform(X_tests)

        self.n_inputs = len(INPUT_COLUMNS)
        self.n_outputs = len(TARGET_COLUMNS)

        logger.info(f"Loaded {len(data)} rows from {fpath}: {len(train)} train, {len(tests)} test")


def _sample_rows(n: int, num: int, rng: Optional[np.random.Generator]) -> np.ndarray:
    if n == 0:
        raise ModelError("No rows to sample from")
    rng = rng or np.random.default_rng()
    return rng.integers(0, n, size=min(num, n))


def sample_train(data: ModelData, num: int,
                 rng: Optional[np.random.Generator] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Random draw (with replacement) of training rows."""
    rows = _sample_rows(len(data.X_train), num, rng)
    return data.X_train[rows], data.Y_train[rows]


def sample_tests(data: ModelData, num: int,
                 rng: Optional[np.random.Generator] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Random draw (with replacement) of testing rows."""
    rows = _sample_rows(len(data.X_tests), num, rng)
    return data.X_tests[rows], data.Y_tests[rows]
