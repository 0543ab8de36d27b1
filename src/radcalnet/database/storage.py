"""Intermediate and final storage of the database.

Blocks are comma delimited text files ``block<N>.csv`` whose bytes are also
appended to a raw accumulation file ``tmp.csv``. The aggregator turns the raw
file into a single float32 HDF5 table under ``data/table``; deduplication
happens there and only there.
"""

from __future__ import annotations

import re
import warnings
from pathlib import Path
from typing import List, Union

import h5py
import numpy as np

from ..exceptions import DatabaseError
from ..logging import get_logger
from .scenario import N_COLUMNS

logger = get_logger("storage")

GROUP = "data"
TABLE = "table"
RAW_NAME = "tmp.csv"
BLOCK_RE = re.compile(r"^block(\d+)\.csv$")

PathLike = Union[str, Path]


def block_name(number: int) -> str:
    return f"block{number}.csv"


def list_blocks(run_dir: PathLike) -> List[Path]:
    """Block files of a run directory in block order."""
    found = []
    for path in Path(run_dir).iterdir():
        match = BLOCK_RE.match(path.name)
        if match:
            found.append((int(match.group(1)), path))
    return [path for _, path in sorted(found)]


def write_block(path: PathLike, rows: np.ndarray) -> Path:
    """Write a block of result rows as delimited text."""
    path = Path(path)
    rows = np.asarray(rows, dtype=np.float64).reshape(-1, N_COLUMNS)
    with open(path, "w", encoding="utf-8") as f:
        if len(rows):
            np.savetxt(f, rows, fmt="%.17g", delimiter=",")
    return path


def read_raw(path: PathLike) -> np.ndarray:
    """Read delimited rows into a float32 matrix of ``N_COLUMNS`` columns."""
    path = Path(path)
    if not path.exists():
        raise DatabaseError("Raw accumulation file not found", details={"path": str(path)})

    if path.stat().st_size == 0:
        return np.zeros((0, N_COLUMNS), dtype=np.float32)

    with warnings.catch_warnings():
        # An all-blank file is an empty table, not a warning.
        warnings.simplefilter("ignore", UserWarning)
        try:
            data = np.loadtxt(path, delimiter=",", dtype=np.float32, ndmin=2)
        except ValueError as e:
            raise DatabaseError(
                "Malformed raw accumulation file",
                details={"path": str(path), "error": str(e)}
            ) from e

    if data.size == 0:
        return np.zeros((0, N_COLUMNS), dtype=np.float32)

    if data.shape[1] != N_COLUMNS:
        raise DatabaseError(
            "Unexpected number of columns in raw accumulation file",
            details={"path": str(path), "columns": data.shape[1], "expected": N_COLUMNS}
        )
    return data


def deduplicate_rows(data: np.ndarray) -> np.ndarray:
    """Drop repeated rows, keeping first occurrences in their original order."""
    if len(data) < 2:
        return data
    _, index = np.unique(data, axis=0, return_index=True)
    return data[np.sort(index)]


def aggregate_database(raw_path: PathLike, saveas: PathLike, deduplicate: bool = True) -> np.ndarray:
    """Reduce the raw accumulation file to the final HDF5 dataset.

    Any existing ``saveas`` is replaced. Returns the table as written.
    """
    data = read_raw(raw_path)
    n_raw = len(data)

    if deduplicate:
        data = deduplicate_rows(data)

    saveas = Path(saveas)
    saveas.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(saveas, "w") as f:
        group = f.create_group(GROUP)
        group.create_dataset(TABLE, data=data, dtype="float32")

    logger.info(f"Aggregated {len(data)} rows into {saveas} ({n_raw - len(data)} duplicates dropped)")
    return data


def recover_raw_file(run_dir: PathLike) -> Path:
    """Rebuild the raw accumulation file of an interrupted run from its blocks."""
    run_dir = Path(run_dir)
    if not run_dir.is_dir():
        raise DatabaseError("Run directory not found", details={"path": str(run_dir)})

    blocks = list_blocks(run_dir)
    if not blocks:
        raise DatabaseError("No block files to recover", details={"path": str(run_dir)})

    raw_path = run_dir / RAW_NAME
    with open(raw_path, "wb") as fs:
        for block in blocks:
            fs.write(block.read_bytes())

    logger.info(f"Recovered {len(blocks)} blocks into {raw_path}")
    return raw_path


def load_database(fname: PathLike) -> np.ndarray:
    """Retrieve the database table from an HDF5 file as a matrix."""
    fname = Path(fname)
    if not fname.exists():
        raise FileNotFoundError(f"Database not found: {fname}")

    with h5py.File(fname, "r") as f:
        group = f.get(GROUP)
        table = group.get(TABLE) if isinstance(group, h5py.Group) else None
        if not isinstance(table, h5py.Dataset):
            raise DatabaseError(
                f"Database has no {GROUP}/{TABLE} table",
                details={"path": str(fname)}
            )
        return table[()]
