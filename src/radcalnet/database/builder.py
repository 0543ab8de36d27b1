"""Database creation by repeated sampling and RadCal runs.

Rows are produced in blocks; every block is written to its own file under a
per-run directory and appended to the raw accumulation file before the next
block starts, so an interrupted run loses at most the block in flight and
can be resumed by aggregating what is on disk (``recover_raw_file``).
"""

from __future__ import annotations

import contextlib
import shutil
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import numpy as np

from ..config import OracleConfig, RadcalConfig, get_config
from ..exceptions import (
    ConfigurationError,
    OracleTimeoutError,
    SimulationError,
    validate_positive,
)
from ..logging import get_logger, log_block_flushed, log_build_start
from .oracle import RadcalRunner
from .sampler import DefaultSampler, Sampler, build_sampler
from .scenario import DEFAULT_OMMAX, DEFAULT_OMMIN, N_COLUMNS, N_SPECIES, Scenario
from .storage import RAW_NAME, aggregate_database, block_name, load_database, write_block

logger = get_logger("builder")

FAILURE_POLICIES = ("skip", "zero")

PathLike = Union[str, Path]


class Runner(Protocol):
    """Anything able to turn a scenario into a result row."""

    def run(self, scenario: Scenario) -> np.ndarray:
        ...

    def cleanup(self) -> None:
        ...


@dataclass
class BuildReport:
    """Counters of one database creation."""

    saveas: str
    run_dir: str
    blocks: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    rows: int = 0
    elapsed: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BlockWriter:
    """Flushes blocks to numbered files and the raw accumulation file."""

    def __init__(self, run_dir: PathLike):
        self.run_dir = Path(run_dir)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.raw_path = self.run_dir / RAW_NAME
        self.raw_path.touch()
        self.blocks_written = 0

    def flush(self, rows: np.ndarray) -> Path:
        number = self.blocks_written + 1
        path = write_block(self.run_dir / block_name(number), rows)

        with open(self.raw_path, "ab") as fs:
            fs.write(path.read_bytes())

        self.blocks_written = number
        return path


class DatabaseBuilder:
    """Drives a sampler and a runner into an HDF5 database."""

    def __init__(
        self,
        sampler: Sampler,
        runner: Optional[Runner] = None,
        repeats: int = 100,
        samplesize: int = 50_000,
        cleanup: bool = False,
        saveas: PathLike = "database.h5",
        OMMIN: float = DEFAULT_OMMIN,
        OMMAX: float = DEFAULT_OMMAX,
        override: bool = False,
        tmp_dir: PathLike = "tmp",
        on_failure: str = "skip",
        deduplicate: bool = True,
    ):
        validate_positive(repeats, "repeats")
        validate_positive(samplesize, "samplesize")
        if on_failure not in FAILURE_POLICIES:
            raise ConfigurationError(
                f"Unknown failure policy {on_failure}",
                details={"available": list(FAILURE_POLICIES)}
            )

        self.sampler = sampler
        self.runner = runner
        self.repeats = int(repeats)
        self.samplesize = int(samplesize)
        self.cleanup = cleanup
        self.saveas = Path(saveas)
        self.OMMIN = OMMIN
        self.OMMAX = OMMAX
        self.override = override
        self.tmp_dir = Path(tmp_dir)
        self.on_failure = on_failure
        self.deduplicate = deduplicate

        self.oracle_config: Optional[OracleConfig] = None
        self.table: Optional[np.ndarray] = None
        self.report: Optional[BuildReport] = None

    @classmethod
    def from_config(
        cls,
        config: Optional[RadcalConfig] = None,
        sampler: Optional[Sampler] = None,
        runner: Optional[Runner] = None,
    ) -> "DatabaseBuilder":
        config = config or get_config()
        if sampler is None:
            sampler = build_sampler(config.sampler.name, seed=config.seed, config=config.sampler)
        db = config.database
        builder = cls(
            sampler=sampler,
            runner=runner,
            repeats=db.repeats,
            samplesize=db.samplesize,
            cleanup=db.cleanup,
            saveas=db.saveas,
            OMMIN=config.oracle.ommin,
            OMMAX=config.oracle.ommax,
            override=db.override,
            tmp_dir=db.tmp_dir,
            on_failure=db.on_failure,
            deduplicate=db.deduplicate,
        )
        builder.oracle_config = config.oracle
        return builder

    def _new_run_dir(self) -> Path:
        stamp = time.strftime("%Y%m%d-%H%M%S")
        return self.tmp_dir / f"run-{stamp}-{uuid.uuid4().hex[:8]}"

    def _fill_block(self, number: int, X: np.ndarray, report: BuildReport) -> np.ndarray:
        rows: List[np.ndarray] = []
        failed = 0

        for k in range(1, self.samplesize + 1):
            T, L, P, FV, TWALL = self.sampler.generate(X)
            scenario = Scenario(X=X, T=T, L=L, P=P, FV=FV,
                                OMMIN=self.OMMIN, OMMAX=self.OMMAX, TWALL=TWALL)
            report.attempted += 1

            try:
                rows.append(self.runner.run(scenario))
                report.succeeded += 1
            except SimulationError as e:
                failed += 1
                report.failed += 1
                if isinstance(e, OracleTimeoutError):
                    report.timed_out += 1
                logger.warning(f"Sample {k} of block {number} discarded: {e}")

                if self.on_failure == "zero":
                    rows.append(np.zeros(N_COLUMNS))

        log_block_flushed(number, self.repeats, len(rows), failed)
        return np.array(rows, dtype=np.float64).reshape(-1, N_COLUMNS)

    def build(self) -> Optional[BuildReport]:
        """Create the database; ``None`` when it exists and override is off."""
        if self.saveas.exists() and not self.override:
            logger.warning(f"Database {self.saveas} already exists.")
            return None

        if self.runner is None:
            self.runner = RadcalRunner.from_config(self.oracle_config or get_config().oracle)

        run_dir = self._new_run_dir()
        writer = BlockWriter(run_dir)
        report = BuildReport(saveas=str(self.saveas), run_dir=str(run_dir))
        started = time.time()

        log_build_start(str(self.saveas), {
            "repeats": self.repeats,
            "samplesize": self.samplesize,
            "run_dir": str(run_dir),
            "on_failure": self.on_failure,
        })

        X = np.zeros(N_SPECIES)
        try:
            for number in range(1, self.repeats + 1):
                writer.flush(self._fill_block(number, X, report))
                report.blocks = number

            self.table = aggregate_database(writer.raw_path, self.saveas, self.deduplicate)
        finally:
            self.runner.cleanup()

        report.rows = len(self.table)
        report.elapsed = time.time() - started
        self.report = report

        if self.cleanup:
            shutil.rmtree(run_dir, ignore_errors=True)
            # A concurrent build may populate tmp_dir after the check.
            with contextlib.suppress(OSError):
                if self.tmp_dir.is_dir() and not any(self.tmp_dir.iterdir()):
                    self.tmp_dir.rmdir()

        logger.info(
            f"Database {self.saveas} created: {report.rows} rows from "
            f"{report.attempted} samples ({report.failed} failed) in {report.elapsed:.1f} s"
        )
        return report


def create_custom_database(
    sampler: Sampler,
    repeats: int = 100,
    samplesize: int = 50_000,
    cleanup: bool = False,
    saveas: PathLike = "database.h5",
    OMMIN: float = DEFAULT_OMMIN,
    OMMAX: float = DEFAULT_OMMAX,
    override: bool = False,
    runner: Optional[Runner] = None,
    tmp_dir: PathLike = "tmp",
    on_failure: str = "skip",
    deduplicate: bool = True,
) -> Optional[Path]:
    """Create a custom database of ``repeats`` blocks of ``samplesize`` samples.

    Scenarios come from ``sampler``, which fills the composition buffer in
    place and returns ``T, L, P, FV, TWALL``. Blocks are kept under a fresh
    directory of ``tmp_dir`` and aggregated into the HDF5 file ``saveas``;
    with ``cleanup`` the intermediate files are removed afterwards. An
    existing ``saveas`` is left untouched, and ``None`` returned, unless
    ``override`` is set.
    """
    builder = DatabaseBuilder(
        sampler=sampler,
        runner=runner,
        repeats=repeats,
        samplesize=samplesize,
        cleanup=cleanup,
        saveas=saveas,
        OMMIN=OMMIN,
        OMMAX=OMMAX,
        override=override,
        tmp_dir=tmp_dir,
        on_failure=on_failure,
        deduplicate=deduplicate,
    )
    report = builder.build()
    return None if report is None else builder.saveas


def sample_database(
    saveas: PathLike = "test.h5",
    runner: Optional[Runner] = None,
    seed: int = 42,
    tmp_dir: PathLike = "tmp",
) -> np.ndarray:
    """Create, load and delete a 3x3 sample database for verification."""
    saveas = Path(saveas)
    create_custom_database(
        sampler=DefaultSampler(seed=seed),
        repeats=3,
        samplesize=3,
        cleanup=True,
        saveas=saveas,
        override=True,
        runner=runner,
        tmp_dir=tmp_dir,
    )

    A = load_database(saveas)
    saveas.unlink(missing_ok=True)
    return A
