"""Multi-layer perceptron for emissivity and transmissivity and its trainer."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from ..exceptions import ModelError
from ..logging import get_logger
from .data import ModelData, sample_tests, sample_train

logger = get_logger("model")

ACTIVATIONS = {
    "identity": nn.Identity,
    "leakyrelu": nn.LeakyReLU,
    "relu": nn.ReLU,
    "tanh": nn.Tanh,
    "sigmoid": nn.Sigmoid,
}

Layer = Tuple[int, Optional[str]]

DEFAULT_LAYERS: Tuple[Layer, ...] = (
    (7, "identity"),
    (100, "leakyrelu"),
    (50, "leakyrelu"),
    (20, "leakyrelu"),
    (20, "leakyrelu"),
    (10, "leakyrelu"),
    (10, "leakyrelu"),
    (5, "leakyrelu"),
    (2, None),
)


def make_model(layers: Sequence[Layer], bn: bool = False) -> nn.Sequential:
    """Create a multi-layer perceptron from ``(width, activation)`` pairs.

    Each linear layer is followed by the activation of the layer it maps
    from, then optionally by batch normalization. A final sigmoid keeps the
    outputs in the physical range [0, 1].
    """
    if len(layers) < 2:
        raise ModelError("A model needs at least an input and an output layer")

    modules: List[nn.Module] = []
    for (n_in, activation), (n_out, _) in zip(layers[:-1], layers[1:]):
        modules.append(nn.Linear(n_in, n_out))
        if activation is not None:
            try:
                modules.append(ACTIVATIONS[activation]())
            except KeyError:
                raise ModelError(
                    f"Unknown activation {activation}",
                    details={"available": sorted(ACTIVATIONS)}
                ) from None
        if bn:
            modules.append(nn.BatchNorm1d(n_out))

    modules.append(nn.Sigmoid())
    return nn.Sequential(*modules)


def default_model(bn: bool = False) -> nn.Sequential:
    """Model structure with which RadCalNet is trained."""
    return make_model(DEFAULT_LAYERS, bn=bn)


class ModelTrainer:
    """Holds model, optimizer and data for repeated training rounds."""

    def __init__(
        self,
        data: ModelData,
        model: nn.Module,
        batch: int = 64,
        epochs: int = 100,
        lr: float = 1e-3,
        betas: Tuple[float, float] = (0.9, 0.999),
        eps: float = 1e-8,
        device: str = "cpu",
        seed: Optional[int] = None,
    ):
        self.data = data
        self.batch = batch
        self.epochs = epochs
        self.device = torch.device(device)
        self.model = model.to(self.device)
        self.optim = torch.optim.Adam(self.model.parameters(), lr=lr, betas=betas, eps=eps)
        self.losses: List[float] = []
        self.rng = np.random.default_rng(seed)

    def adjust(self, lr: float) -> None:
        """Change the learning rate of the optimizer."""
        for group in self.optim.param_groups:
            group["lr"] = lr

    def train_once(self, num: int = 1_000) -> List[float]:
        """Train ``epochs`` epochs over ``num`` randomly drawn training rows."""
        X, Y = sample_train(self.data, num, self.rng)
        loader = DataLoader(
            TensorDataset(torch.from_numpy(X), torch.from_numpy(Y)),
            batch_size=self.batch,
            shuffle=False,
        )

        self.model.train()
        for _ in tqdm(range(self.epochs), desc="Training", leave=False):
            for x, y in loader:
                x, y = x.to(self.device), y.to(self.device)
                self.optim.zero_grad()
                loss = F.mse_loss(self.model(x), y)
                loss.backward()
                self.optim.step()
                self.losses.append(float(loss.item()))

        logger.info(f"Trained {self.epochs} epochs on {len(X)} rows, last loss {self.losses[-1]:.3e}")
        return self.losses

    def train_schedule(self, stages: Sequence[Tuple[float, int]]) -> List[float]:
        """Run ``train_once`` for each ``(lr, num)`` stage in turn."""
        for lr, num in stages:
            self.adjust(lr)
            self.train_once(num=num)
        return self.losses

    def predict(self, X: np.ndarray) -> np.ndarray:
        self.model.eval()
        with torch.no_grad():
            x = torch.as_tensor(np.asarray(X, dtype=np.float32), device=self.device)
            return self.model(x).cpu().numpy()

    def evaluate(self, num: int = 10_000) -> float:
        """Mean absolute error over ``num`` testing rows."""
        X, Y = sample_tests(self.data, num, self.rng)
        return float(np.mean(np.abs(self.predict(X) - Y)))


def dump_model(trainer: ModelTrainer, saveas: Union[str, Path]) -> None:
    """Dump the trained model state for deployment."""
    state = {k: v.cpu() for k, v in trainer.model.state_dict().items()}
    torch.save({"model_state": state}, saveas)


def load_model_state(model: nn.Module, fname: Union[str, Path]) -> nn.Module:
    fname = Path(fname)
    if not fname.exists():
        raise ModelError("Model state file not found", details={"path": str(fname)})

    checkpoint = torch.load(fname, map_location="cpu")
    try:
        model.load_state_dict(checkpoint["model_state"])
    except (KeyError, RuntimeError) as e:
        raise ModelError(
            "Model state does not match the model structure",
            details={"path": str(fname), "error": str(e)}
        ) from e
    return model
