"""Database generation: sampling, RadCal runs, aggregation and loading."""

from .builder import (
    BlockWriter,
    BuildReport,
    DatabaseBuilder,
    create_custom_database,
    sample_database,
)
from .oracle import (
    RadcalRunner,
    parse_input,
    parse_output,
    render_input,
    run_radcal_input,
    scenario_from_input,
)
from .sampler import (
    DefaultSampler,
    FullSpectrumSampler,
    Sampler,
    build_sampler,
    grid_choice,
)
from .scenario import COLUMNS, N_COLUMNS, SPECIES, Scenario, column_index
from .storage import (
    aggregate_database,
    deduplicate_rows,
    load_database,
    recover_raw_file,
)

__all__ = [
    "BlockWriter",
    "BuildReport",
    "COLUMNS",
    "DatabaseBuilder",
    "DefaultSampler",
    "FullSpectrumSampler",
    "N_COLUMNS",
    "RadcalRunner",
    "SPECIES",
    "Sampler",
    "Scenario",
    "aggregate_database",
    "build_sampler",
    "column_index",
    "create_custom_database",
    "deduplicate_rows",
    "grid_choice",
    "load_database",
    "parse_input",
    "parse_output",
    "recover_raw_file",
    "render_input",
    "run_radcal_input",
    "sample_database",
    "scenario_from_input",
]
