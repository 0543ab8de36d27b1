"""Configuration management for RadCalNet.

Provides centralized configuration with validation, type safety, and
environment variable support. Every section reads ``RADCAL_*`` variables.
"""

from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from pydantic import Field, field_validator, model_validator
from pydantic.types import PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="RADCAL_LOG_")

    level: str = "INFO"
    format: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
    )
    file: Optional[Path] = None
    max_size: str = "10 MB"
    retention: str = "30 days"

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class OracleConfig(BaseSettings):
    """RadCal executable and band configuration."""

    model_config = SettingsConfigDict(env_prefix="RADCAL_")

    executable: str = "radcal_win_64.exe"
    timeout: Optional[PositiveFloat] = 600.0
    ommin: PositiveFloat = 50.0
    ommax: PositiveFloat = 10000.0
    workdir: Optional[Path] = None

    @model_validator(mode="after")
    def validate_band(self):
        if self.ommin >= self.ommax:
            raise ValueError("Band lower bound must be below upper bound")
        return self


class SamplerConfig(BaseSettings):
    """Sample space of the database.

    Ranges are ``[start, stop, step]`` grids, inclusive on both ends.
    """

    model_config = SettingsConfigDict(env_prefix="RADCAL_SAMPLER_")

    name: str = "default"
    xco2: List[float] = Field(default=[0.0, 0.25, 0.01])
    xh2o: List[float] = Field(default=[0.0, 0.30, 0.01])
    xco: List[float] = Field(default=[0.0, 0.20, 0.01])
    temperature: List[float] = Field(default=[300.0, 2500.0, 10.0])
    length: List[float] = Field(default=[0.1, 3.0, 0.1])
    pressure: List[float] = Field(default=[0.5, 1.5, 0.5])
    wall_temperature: List[float] = Field(default=[300.0, 2500.0, 10.0])
    soot_fraction: float = Field(default=0.0, ge=0.0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        valid_names = ["default", "full-spectrum"]
        if v not in valid_names:
            raise ValueError(f"Sampler must be one of {valid_names}")
        return v

    @field_validator("xco2", "xh2o", "xco", "temperature", "length", "pressure", "wall_temperature")
    @classmethod
    def validate_grid(cls, v):
        if len(v) != 3:
            raise ValueError("Grid must be given as [start, stop, step]")
        start, stop, step = v
        if step <= 0:
            raise ValueError("Grid step must be positive")
        if stop < start:
            raise ValueError("Grid stop must not be below start")
        return v

    @model_validator(mode="after")
    def validate_closure(self):
        if self.xco2[1] + self.xh2o[1] + self.xco[1] > 1.0:
            raise ValueError("Upper bounds of sampled mole fractions must not exceed 1")
        return self

    def grid(self, name: str) -> Tuple[float, float, float]:
        start, stop, step = getattr(self, name)
        return float(start), float(stop), float(step)


class DatabaseConfig(BaseSettings):
    """Batch runner configuration."""

    model_config = SettingsConfigDict(env_prefix="RADCAL_DB_")

    repeats: PositiveInt = 100
    samplesize: PositiveInt = 50_000
    cleanup: bool = False
    saveas: Path = Path("database.h5")
    override: bool = False
    tmp_dir: Path = Path("tmp")
    on_failure: str = "skip"
    deduplicate: bool = True

    @field_validator("on_failure")
    @classmethod
    def validate_on_failure(cls, v):
        valid_policies = ["skip", "zero"]
        if v not in valid_policies:
            raise ValueError(f"Failure policy must be one of {valid_policies}")
        return v


class TrainingConfig(BaseSettings):
    """Model training configuration."""

    model_config = SettingsConfigDict(env_prefix="RADCAL_TRAIN_")

    f_train: float = Field(default=0.7, gt=0.0, lt=1.0)
    batch: PositiveInt = 10_000
    epochs: PositiveInt = 100
    num: PositiveInt = 10_000
    # (learning rate, training rows) per stage, run in order.
    schedule: List[Tuple[PositiveFloat, PositiveInt]] = Field(
        default=[
            (1e-2, 10_000),
            (1e-3, 1_000_000),
            (1e-3, 1_000_000),
            (1e-3, 1_000_000),
            (1e-4, 100_000),
        ],
        min_length=1,
    )
    batch_norm: bool = False
    output_dir: Path = Path("model")


class RadcalConfig(BaseSettings):
    """Main RadCalNet configuration combining all subsystems."""

    model_config = SettingsConfigDict(
        env_prefix="RADCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Sub-configurations
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    training: TrainingConfig = Field(default_factory=TrainingConfig)

    # Global settings
    seed: Optional[int] = None

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "RadcalConfig":
        """Load configuration from YAML file."""
        import yaml

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Invalid YAML configuration",
                details={"path": str(yaml_path), "error": str(e)}
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                details={"path": str(yaml_path)}
            )

        return cls(**config_dict)

    def to_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)


# Global configuration instance
config = RadcalConfig()


def get_config() -> RadcalConfig:
    """Get the global configuration instance."""
    return config


def reload_config(**overrides: Any) -> RadcalConfig:
    """Reload configuration with overrides."""
    global config
    config = RadcalConfig(**overrides)
    return config
