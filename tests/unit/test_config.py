"""Unit tests for configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from radcalnet.config import (
    DatabaseConfig,
    LoggingConfig,
    OracleConfig,
    RadcalConfig,
    SamplerConfig,
    TrainingConfig,
)
from radcalnet.exceptions import ConfigurationError


class TestLoggingConfig:
    """Test logging configuration."""

    def test_valid_config(self):
        config = LoggingConfig(level="INFO", file="/tmp/test.log")
        assert config.level == "INFO"
        assert config.file == Path("/tmp/test.log")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="INVALID")

    def test_log_level_normalization(self):
        config = LoggingConfig(level="info")
        assert config.level == "INFO"

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("RADCAL_LOG_LEVEL", "debug")
        assert LoggingConfig().level == "DEBUG"


class TestOracleConfig:
    """Test oracle configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RADCAL_EXECUTABLE", raising=False)
        monkeypatch.delenv("RADCAL_TIMEOUT", raising=False)
        config = OracleConfig()
        assert config.executable == "radcal_win_64.exe"
        assert config.timeout == 600.0
        assert (config.ommin, config.ommax) == (50.0, 10000.0)

    def test_timeout_can_be_disabled(self):
        assert OracleConfig(timeout=None).timeout is None

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError):
            OracleConfig(timeout=-1.0)

    def test_band_order(self):
        with pytest.raises(ValidationError):
            OracleConfig(ommin=500.0, ommax=100.0)

    def test_executable_from_environment(self, monkeypatch):
        monkeypatch.setenv("RADCAL_EXECUTABLE", "/opt/radcal/radcal")
        assert OracleConfig().executable == "/opt/radcal/radcal"


class TestSamplerConfig:
    """Test sample space configuration."""

    def test_default_grids(self):
        config = SamplerConfig()
        assert config.grid("xco2") == (0.0, 0.25, 0.01)
        assert config.grid("temperature") == (300.0, 2500.0, 10.0)

    def test_unknown_sampler(self):
        with pytest.raises(ValidationError):
            SamplerConfig(name="latin-hypercube")

    def test_grid_needs_three_values(self):
        with pytest.raises(ValidationError):
            SamplerConfig(length=[0.1, 3.0])

    def test_grid_step_positive(self):
        with pytest.raises(ValidationError):
            SamplerConfig(pressure=[0.5, 1.5, 0.0])

    def test_grid_stop_above_start(self):
        with pytest.raises(ValidationError):
            SamplerConfig(temperature=[2500.0, 300.0, 10.0])

    def test_closure_bounds(self):
        with pytest.raises(ValidationError):
            SamplerConfig(xco2=[0.0, 0.5, 0.01], xh2o=[0.0, 0.5, 0.01], xco=[0.0, 0.2, 0.01])


class TestDatabaseConfig:
    """Test batch runner configuration."""

    def test_defaults(self):
        config = DatabaseConfig()
        assert config.repeats == 100
        assert config.samplesize == 50_000
        assert config.on_failure == "skip"
        assert config.deduplicate is True

    def test_invalid_failure_policy(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(on_failure="retry")

    def test_positive_validation(self):
        with pytest.raises(ValidationError):
            DatabaseConfig(repeats=0)

        with pytest.raises(ValidationError):
            DatabaseConfig(samplesize=-5)


class TestTrainingConfig:
    """Test training configuration."""

    def test_fraction_range(self):
        assert TrainingConfig(f_train=0.8).f_train == 0.8

        with pytest.raises(ValidationError):
            TrainingConfig(f_train=1.0)

        with pytest.raises(ValidationError):
            TrainingConfig(f_train=0.0)

    def test_default_schedule(self):
        schedule = TrainingConfig().schedule
        assert [lr for lr, _ in schedule] == [1e-2, 1e-3, 1e-3, 1e-3, 1e-4]
        assert [num for _, num in schedule] == [10_000, 1_000_000, 1_000_000, 1_000_000, 100_000]

    def test_schedule_validation(self):
        assert TrainingConfig(schedule=[[0.5, 10]]).schedule == [(0.5, 10)]

        with pytest.raises(ValidationError):
            TrainingConfig(schedule=[])

        with pytest.raises(ValidationError):
            TrainingConfig(schedule=[(0.0, 10)])

        with pytest.raises(ValidationError):
            TrainingConfig(schedule=[(1e-3, 0)])

    def test_schedule_from_environment(self, monkeypatch):
        monkeypatch.setenv("RADCAL_TRAIN_SCHEDULE", "[[0.01, 100], [0.001, 200]]")
        assert TrainingConfig().schedule == [(0.01, 100), (0.001, 200)]

    def test_schedule_yaml_round_trip(self, tmp_path):
        config = RadcalConfig(training={"schedule": [(0.02, 5), (0.002, 7)]})
        config.to_yaml(tmp_path / "config.yaml")

        loaded = RadcalConfig.from_yaml(tmp_path / "config.yaml")
        assert loaded.training.schedule == [(0.02, 5), (0.002, 7)]


class TestRadcalConfig:
    """Test main configuration."""

    def test_default_config(self):
        config = RadcalConfig()
        assert config.sampler.name == "default"
        assert config.database.saveas == Path("database.h5")

    def test_nested_overrides(self):
        config = RadcalConfig(seed=7, database={"repeats": 3, "samplesize": 4})
        assert config.seed == 7
        assert config.database.repeats == 3
        assert config.database.samplesize == 4

    def test_yaml_loading(self, tmp_path):
        yaml_content = """
seed: 11
oracle:
  executable: ./radcal
  timeout: 120
sampler:
  name: full-spectrum
database:
  repeats: 5
  samplesize: 10
  on_failure: zero
"""
        yaml_file = tmp_path / "test_config.yaml"
        yaml_file.write_text(yaml_content)

        config = RadcalConfig.from_yaml(yaml_file)
        assert config.seed == 11
        assert config.oracle.executable == "./radcal"
        assert config.oracle.timeout == 120.0
        assert config.sampler.name == "full-spectrum"
        assert config.database.repeats == 5
        assert config.database.on_failure == "zero"

    def test_invalid_yaml(self, tmp_path):
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("invalid: yaml: content: [")

        with pytest.raises(ConfigurationError):
            RadcalConfig.from_yaml(yaml_file)

    def test_yaml_must_be_mapping(self, tmp_path):
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            RadcalConfig.from_yaml(yaml_file)

    def test_yaml_saving(self, tmp_path):
        config = RadcalConfig(seed=3, database={"repeats": 9})
        yaml_file = tmp_path / "saved_config.yaml"

        config.to_yaml(yaml_file)
        assert yaml_file.exists()

        loaded_config = RadcalConfig.from_yaml(yaml_file)
        assert loaded_config.seed == 3
        assert loaded_config.database.repeats == 9
        assert loaded_config.sampler.grid("xh2o") == (0.0, 0.30, 0.01)
