"""Training diagnostics plots."""

from typing import Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .data import sample_tests
from .model import ModelTrainer

EMISSIVITY_LIMITS = (0.0, 0.5)
TRANSMISSIVITY_LIMITS = (0.0, 1.0)


def plot_losses(losses: Sequence[float]) -> plt.Figure:
    """Minimal loss plot in logarithmic scale."""
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(range(1, len(losses) + 1), losses, label="Per batch")
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Loss")
    ax.legend()
    return fig


def plot_tests(trainer: ModelTrainer, num: int) -> plt.Figure:
    """Parity plots of the model against RadCal over ``num`` testing rows.

    Uses testing data only, never seen by the model during training.
    """
    X_tests, Y_tests = sample_tests(trainer.data, num, trainer.rng)
    Y_preds = trainer.predict(X_tests)

    fig, (pe, pt) = plt.subplots(1, 2, figsize=(12, 6))
    panels = (
        (pe, 0, EMISSIVITY_LIMITS, "ε"),
        (pt, 1, TRANSMISSIVITY_LIMITS, "τ"),
    )
    for ax, k, lims, symbol in panels:
        ax.scatter(Y_tests[:, k], Y_preds[:, k], s=4, alpha=0.5, color="#000000", linewidths=0)
        ax.plot(lims, lims, color="#FF0000")
        ax.set_xlim(*lims)
        ax.set_ylim(*lims)
        ax.set_xlabel(f"{symbol} from RadCal")
        ax.set_ylabel(f"{symbol} from neural network")

    fig.tight_layout()
    return fig
