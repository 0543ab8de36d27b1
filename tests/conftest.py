"""Pytest configuration and fixtures for RadCalNet."""

import stat
import sys
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pytest

from radcalnet.config import RadcalConfig
from radcalnet.database.scenario import Scenario
from radcalnet.exceptions import SimulationError

FAKE_RADCAL = '''\
#!{python}
"""Stand-in for RadCal: reads the namelist, writes a RADCAL.OUT report."""
import re
import sys
import time

MODE = "{mode}"

text = open(sys.argv[1]).read()
fields = {{k: float(v) for k, v in re.findall(r"(\\w+)\\s*=\\s*([-+0-9.Ee]+)", text)}}

if MODE == "hang":
    time.sleep(30)
if MODE == "crash":
    sys.exit(3)

closure = sum(v for k, v in fields.items() if k.startswith("X"))
with open("RADCAL.OUT", "w") as f:
    if MODE == "error" or abs(closure - 1.0) > 1.0e-9:
        f.write("ERROR: mole fractions sum to %.6f\\n" % closure)
        sys.exit(0)
    T, L, TWALL = fields["T"], fields["LENGTH"], fields["TWALL"]
    f.write("CASE\\n\\n---\\n\\n")
    f.write("Planck mean absorption coefficient\\t(1/m)\\t%.8E\\n" % (0.1 * L + T / 1.0e4))
    f.write("Effective absorption coefficient\\t(1/m)\\t%.8E\\n" % (0.2 * L + T / 2.0e4))
    f.write("Emissivity\\t(-)\\t%.8E\\n" % (T / 1.0e4))
    f.write("Total intensity\\t(W/m2/sr)\\t%.8E\\n" % (TWALL * 10.0 + T))
    f.write("Transmissivity\\t(-)\\t%.8E\\n" % (1.0 - L / 10.0))

with open("TRANS_CASE.TEC", "w") as f:
    f.write("transcript\\n")
'''


def write_fake_radcal(directory: Path, mode: str = "ok") -> Path:
    """Write an executable RadCal stand-in and return its path."""
    script = directory / f"fake_radcal_{mode}.py"
    script.write_text(FAKE_RADCAL.format(python=sys.executable, mode=mode), encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


class StubRunner:
    """In-process runner returning distinct sentinel outputs.

    Every ``fail_every``-th call raises ``SimulationError``.
    """

    def __init__(self, fail_every: Optional[int] = None, error: type = SimulationError):
        self.fail_every = fail_every
        self.error = error
        self.calls = 0
        self.cleaned = 0
        self.scenarios = []

    def run(self, scenario: Scenario) -> np.ndarray:
        self.calls += 1
        self.scenarios.append(scenario)
        if self.fail_every and self.calls % self.fail_every == 0:
            raise self.error(f"stub failure on call {self.calls}")
        return scenario.as_row([0.5, 0.25, 0.125, float(self.calls), 0.75])

    def cleanup(self) -> None:
        self.cleaned += 1


@pytest.fixture
def fake_radcal(tmp_path: Path) -> Callable[[str], Path]:
    """Factory of executable RadCal stand-ins by mode."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def make(mode: str = "ok") -> Path:
        return write_fake_radcal(bin_dir, mode)

    return make


@pytest.fixture
def stub_runner() -> StubRunner:
    return StubRunner()


@pytest.fixture
def runner_factory() -> Callable[..., StubRunner]:
    """Factory of stub runners with custom failure patterns."""
    return StubRunner


@pytest.fixture
def config(tmp_path: Path) -> RadcalConfig:
    """Create a test configuration."""
    return RadcalConfig(
        seed=42,
        database={
            "repeats": 2,
            "samplesize": 3,
            "saveas": str(tmp_path / "database.h5"),
            "tmp_dir": str(tmp_path / "tmp"),
        },
        oracle={"timeout": 30.0},
        training={"batch": 8, "epochs": 2, "num": 16, "output_dir": str(tmp_path / "model")},
    )


@pytest.fixture
def scenario() -> Scenario:
    X = np.zeros(14)
    X[0], X[1], X[2] = 0.1, 0.2, 0.05
    X[-1] = 1.0 - X[:3].sum()
    return Scenario(X=X, T=1200.0, L=0.5, P=1.0, FV=0.0, TWALL=800.0)


@pytest.fixture(autouse=True)
def set_test_environment(monkeypatch):
    """Set environment variables for testing."""
    monkeypatch.setenv("RADCAL_LOG_LEVEL", "WARNING")
    yield


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
