"""RadCal invocation.

Renders a ``Scenario`` into the ``RADCAL.IN`` namelist layout, runs the
executable as a blocking subprocess bounded by a wall-clock timeout and
parses the report written to ``RADCAL.OUT``.

Every runner works inside its own scratch directory, so several runners
(or several database builds) can share a working directory.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from ..config import OracleConfig
from ..exceptions import OracleNotFoundError, OracleTimeoutError, SimulationError
from ..logging import get_logger
from .scenario import DEFAULT_OMMAX, DEFAULT_OMMIN, N_OUTPUTS, SPECIES, Scenario

logger = get_logger("oracle")

INPUT_NAME = "RADCAL.IN"
OUTPUT_NAME = "RADCAL.OUT"
BYPRODUCTS = ("TRANS_CASE.TEC",)

# 1-based lines of RADCAL.OUT holding the reported quantities.
OUTPUT_FIRST_LINE = 5
OUTPUT_LAST_LINE = OUTPUT_FIRST_LINE + N_OUTPUTS - 1

FLOAT_RE = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[Ee][-+]?\d+)?"
FIELD_RE = re.compile(rf"([A-Za-z][A-Za-z0-9_]*)\s*=\s*({FLOAT_RE})(?![\w.])")

Command = Union[str, Path, Sequence[Union[str, Path]]]


def _fmt(value: float) -> str:
    return "%.16E" % value


def render_input(scenario: Scenario) -> str:
    """Render the RADCAL.IN text of a scenario."""
    species = "\n".join(
        f"    {'X' + name:<8} = {_fmt(x)}"
        for name, x in zip(SPECIES, scenario.X)
    )
    return (
        "CASE:\n"
        '&HEADER TITLE="CASE" CHID="CASE" /\n'
        f"&BAND OMMIN = {_fmt(scenario.OMMIN)}\n"
        f"      OMMAX = {_fmt(scenario.OMMAX)} /\n"
        f"&WALL TWALL = {_fmt(scenario.TWALL)} /\n"
        "&PATH_SEGMENT\n"
        f"    {'T':<8} = {_fmt(scenario.T)}\n"
        f"    {'LENGTH':<8} = {_fmt(scenario.L)}\n"
        f"    {'PRESSURE':<8} = {_fmt(scenario.P)}\n"
        f"{species}\n"
        f"    {'FV':<8} = {_fmt(scenario.FV)} /"
    )


def parse_input(text: str) -> Dict[str, float]:
    """Read back every numeric ``NAME = value`` field of a RADCAL.IN text."""
    return {name: float(value) for name, value in FIELD_RE.findall(text)}


def scenario_from_input(text: str) -> Scenario:
    fields = parse_input(text)
    return Scenario(
        X=np.array([fields[f"X{name}"] for name in SPECIES]),
        T=fields["T"],
        L=fields["LENGTH"],
        P=fields["PRESSURE"],
        FV=fields["FV"],
        OMMIN=fields["OMMIN"],
        OMMAX=fields["OMMAX"],
        TWALL=fields["TWALL"],
    )


def parse_output(lines: Sequence[str]) -> np.ndarray:
    """Extract the reported quantities from the lines of RADCAL.OUT.

    A first line starting with ``ERROR`` is RadCal reporting a failed case.
    Quantities sit on lines 5 to 9 as tab separated fields, the value being
    the last field.
    """
    if not lines:
        raise SimulationError("RadCal produced an empty output file")

    if lines[0].startswith("ERROR"):
        first = lines[0].strip()
        raise SimulationError(f"RadCal failed: {first}", details={"line": first})

    if len(lines) < OUTPUT_LAST_LINE:
        raise SimulationError(
            "RadCal output is truncated",
            details={"lines": len(lines), "expected": OUTPUT_LAST_LINE}
        )

    values = []
    for number in range(OUTPUT_FIRST_LINE, OUTPUT_LAST_LINE + 1):
        line = lines[number - 1].strip()
        token = line.split("\t")[-1]
        try:
            values.append(float(token))
        except ValueError:
            raise SimulationError(
                f"Unparsable value on output line {number}",
                details={"line": line}
            ) from None

    return np.array(values, dtype=np.float64)


def _tail(text: Optional[str], limit: int = 400) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else "..." + text[-limit:]


class RadcalRunner:
    """Runs RadCal on scenarios inside an isolated working directory.

    Without ``workdir`` a scratch directory is created and removed again by
    ``cleanup``. ``timeout`` is the wall-clock budget of one run in seconds;
    ``None`` lets RadCal run unbounded.
    """

    def __init__(
        self,
        command: Command = "radcal_win_64.exe",
        workdir: Optional[Union[str, Path]] = None,
        timeout: Optional[float] = 600.0,
        input_name: str = INPUT_NAME,
        output_name: str = OUTPUT_NAME,
        byproducts: Sequence[str] = BYPRODUCTS,
    ):
        if isinstance(command, (str, Path)):
            command = [command]
        self.command = self._resolve_command([str(c) for c in command])
        if not self.command:
            raise OracleNotFoundError("Empty RadCal command")

        if workdir is None:
            self.workdir = Path(tempfile.mkdtemp(prefix="radcal-"))
            self._owns_workdir = True
        else:
            self.workdir = Path(workdir)
            self.workdir.mkdir(parents=True, exist_ok=True)
            self._owns_workdir = False

        self.timeout = timeout
        self.input_name = input_name
        self.output_name = output_name
        self.byproducts = tuple(byproducts)
        self.calls = 0

        logger.debug(f"RadCal runner using {self.workdir}")

    @classmethod
    def from_config(cls, config: OracleConfig) -> "RadcalRunner":
        return cls(
            command=config.executable,
            workdir=config.workdir,
            timeout=config.timeout,
        )

    @staticmethod
    def _resolve_command(command: List[str]) -> List[str]:
        # Relative executable paths are taken from the caller's directory,
        # not from the scratch directory the process runs in.
        if command and Path(command[0]).exists():
            command[0] = str(Path(command[0]).absolute())
        return command

    @property
    def input_path(self) -> Path:
        return self.workdir / self.input_name

    @property
    def output_path(self) -> Path:
        return self.workdir / self.output_name

    def write_input(self, scenario: Scenario) -> Path:
        self.workdir.mkdir(parents=True, exist_ok=True)
        self.input_path.write_text(render_input(scenario), encoding="utf-8")
        return self.input_path

    def execute(self) -> subprocess.CompletedProcess:
        """Run the executable on the current input file and wait for it."""
        args = [*self.command, self.input_name]
        try:
            return subprocess.run(
                args,
                cwd=str(self.workdir),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise OracleTimeoutError(
                f"RadCal timed out after {self.timeout} seconds",
                details={"stderr": _tail(exc.stderr if isinstance(exc.stderr, str) else "")}
            ) from exc
        except OSError as exc:
            # ENOEXEC from a foreign binary is reported here as well.
            raise OracleNotFoundError(
                "RadCal executable is missing or not executable",
                details={"command": self.command[0], "error": str(exc)}
            ) from exc

    def read_output(self, proc: Optional[subprocess.CompletedProcess] = None) -> np.ndarray:
        returncode = proc.returncode if proc is not None else 0

        if not self.output_path.exists():
            raise SimulationError(
                "RadCal did not write an output file",
                details={
                    "returncode": returncode,
                    "stderr": _tail(proc.stderr if proc is not None else ""),
                }
            )

        with open(self.output_path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()

        if lines and lines[0].startswith("ERROR"):
            return parse_output(lines)

        if returncode != 0:
            raise SimulationError(
                f"RadCal exited with status {returncode}",
                details={"stderr": _tail(proc.stderr)}
            )

        return parse_output(lines)

    def run(self, scenario: Scenario) -> np.ndarray:
        """Run one scenario and return its 26-value result row."""
        self.write_input(scenario)
        # A stale report from a previous case must never be read back.
        self.output_path.unlink(missing_ok=True)

        self.calls += 1
        started = time.time()
        proc = self.execute()
        outputs = self.read_output(proc)
        logger.debug(f"RadCal run {self.calls} finished in {time.time() - started:.3f} s")

        return scenario.as_row(outputs)

    def cleanup(self) -> None:
        """Remove transient input, output and byproduct files."""
        for name in (self.input_name, self.output_name, *self.byproducts):
            (self.workdir / name).unlink(missing_ok=True)

        if self._owns_workdir and self.workdir.exists():
            shutil.rmtree(self.workdir, ignore_errors=True)

    def __enter__(self) -> "RadcalRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


def run_radcal_input(
    *,
    X: Sequence[float],
    T: float = 300.0,
    L: float = 1.0,
    P: float = 1.0,
    FV: float = 0.0,
    OMMIN: float = DEFAULT_OMMIN,
    OMMAX: float = DEFAULT_OMMAX,
    TWALL: float = 500.0,
    radcalexe: Command = "radcal_win_64.exe",
    timeout: Optional[float] = 600.0,
) -> np.ndarray:
    """Run a single RadCal case from keyword arguments.

    The user is responsible for providing mole fractions ``X`` that sum to
    one, in the species order of ``radcalnet.database.scenario.SPECIES``.
    """
    scenario = Scenario(X=np.asarray(X, dtype=np.float64), T=T, L=L, P=P, FV=FV,
                        OMMIN=OMMIN, OMMAX=OMMAX, TWALL=TWALL)
    with RadcalRunner(radcalexe, timeout=timeout) as runner:
        return runner.run(scenario)
