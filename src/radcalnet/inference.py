"""Inference wrapper composing the input scaler and the trained model.

Inputs are rows of ``TWALL, T, L, P, XCO2, XH2O, XCO``; outputs are rows of
``emissivity, transmissivity``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import torch

from .logging import get_logger
from .modeling.data import load_scaler
from .modeling.model import default_model, load_model_state

logger = get_logger("inference")

# Version of the trained model artifacts, not of the package.
MODEL_VERSION = "v1.0.0"

RADCALROOT = Path(__file__).resolve().parent / MODEL_VERSION
FILESCALER = RADCALROOT / "scaler.yaml"
FILEMODEL = RADCALROOT / "model.pt"

PathLike = Union[str, Path]


def get_radcalnet(
    scale: bool = True,
    fscaler: Optional[PathLike] = None,
    fmstate: Optional[PathLike] = None,
) -> Callable[[np.ndarray], np.ndarray]:
    """Load trained model and scaler and compose them into one function.

    When testing new models ``fscaler`` and ``fmstate`` point to specific
    versions of the scaler and model state files. With ``scale=False`` the
    inputs are expected to be standardized already.
    """
    fscaler = Path(fscaler) if fscaler is not None else FILESCALER
    fmstate = Path(fmstate) if fmstate is not None else FILEMODEL

    model = load_model_state(default_model(), fmstate)
    model.eval()
    scaler = load_scaler(fscaler) if scale else None

    logger.debug(f"Loaded model state {fmstate}")

    def radcalnet(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float32)
        if scaler is not None:
            x = scaler(x)
        with torch.no_grad():
            return model(torch.from_numpy(np.atleast_2d(x))).numpy().reshape(*x.shape[:-1], -1)

    return radcalnet


@lru_cache(maxsize=1)
def _packaged_radcalnet() -> Callable[[np.ndarray], np.ndarray]:
    return get_radcalnet()


def predict(x: np.ndarray) -> np.ndarray:
    """Main model interface for emissivity and transmissivity."""
    return _packaged_radcalnet()(x)
