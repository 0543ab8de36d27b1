"""RadCalNet: RadCal database generation and radiative-properties surrogate.

Drives the RadCal executable over sampled gas mixtures, aggregates the runs
into an HDF5 database and fits a neural network to its emissivity and
transmissivity.
"""

__version__ = "1.0.0"

from .database import (
    DefaultSampler,
    FullSpectrumSampler,
    RadcalRunner,
    Scenario,
    create_custom_database,
    load_database,
    run_radcal_input,
)

__all__ = [
    "__version__",
    "DefaultSampler",
    "FullSpectrumSampler",
    "RadcalRunner",
    "Scenario",
    "create_custom_database",
    "load_database",
    "run_radcal_input",
]
