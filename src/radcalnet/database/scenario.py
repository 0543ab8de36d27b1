"""Scenario record and result-row layout.

Index of species in the composition vector ``X``:

| Index | Species | Index | Species | Index | Species |
| ----: | :------ | ----: | :------ | ----: | :------ |
| 0     | CO2     | 5     | C2H6    | 10    | CH3OH   |
| 1     | H2O     | 6     | C3H6    | 11    | MMA     |
| 2     | CO      | 7     | C3H8    | 12    | O2      |
| 3     | CH4     | 8     | C7H8    | 13    | N2      |
| 4     | C2H4    | 9     | C7H16   |       |         |
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from ..exceptions import ValidationError, validate_shape

SPECIES: Tuple[str, ...] = (
    "CO2", "H2O", "CO", "CH4", "C2H4", "C2H6", "C3H6",
    "C3H8", "C7H8", "C7H16", "CH3OH", "MMA", "O2", "N2",
)
N_SPECIES = len(SPECIES)

CONDITION_COLUMNS: Tuple[str, ...] = ("OMMIN", "OMMAX", "TWALL", "T", "L", "P", "FV")
COMPOSITION_COLUMNS: Tuple[str, ...] = tuple(f"X{name}" for name in SPECIES)
OUTPUT_COLUMNS: Tuple[str, ...] = (
    "planck_mean_absorption",
    "effective_absorption",
    "emissivity",
    "total_intensity",
    "transmissivity",
)
COLUMNS: Tuple[str, ...] = CONDITION_COLUMNS + COMPOSITION_COLUMNS + OUTPUT_COLUMNS
N_OUTPUTS = len(OUTPUT_COLUMNS)
N_COLUMNS = len(COLUMNS)

DEFAULT_OMMIN = 50.0
DEFAULT_OMMAX = 10000.0


def column_index(name: str) -> int:
    """Position of a named column in a result row."""
    try:
        return COLUMNS.index(name)
    except ValueError:
        raise ValidationError(f"Unknown column {name}", details={"columns": len(COLUMNS)}) from None


def _default_composition() -> np.ndarray:
    X = np.zeros(N_SPECIES)
    X[-1] = 1.0
    return X


@dataclass(frozen=True)
class Scenario:
    """One fully specified oracle input.

    The composition ``X`` must sum to one; the oracle fails otherwise and
    checking it is left to the caller (see ``closure_error``).
    """

    X: np.ndarray = field(default_factory=_default_composition)
    T: float = 300.0
    L: float = 1.0
    P: float = 1.0
    FV: float = 0.0
    OMMIN: float = DEFAULT_OMMIN
    OMMAX: float = DEFAULT_OMMAX
    TWALL: float = 500.0

    def __post_init__(self):
        X = np.array(self.X, dtype=np.float64)
        validate_shape(X, (N_SPECIES,), "X")
        object.__setattr__(self, "X", X)

    def closure_error(self) -> float:
        return float(abs(1.0 - self.X.sum()))

    def conditions(self) -> Tuple[float, ...]:
        return (self.OMMIN, self.OMMAX, self.TWALL, self.T, self.L, self.P, self.FV)

    def as_row(self, outputs: Sequence[float]) -> np.ndarray:
        """Flat result row: conditions, composition, then oracle outputs."""
        outputs = np.asarray(outputs, dtype=np.float64)
        validate_shape(outputs, (N_OUTPUTS,), "outputs")
        return np.concatenate([np.asarray(self.conditions(), dtype=np.float64), self.X, outputs])
