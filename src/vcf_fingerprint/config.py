"""Configuration file support for vcf-fingerprint."""

import logging
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .capping import DEFAULT_LOCUS_MAX_READS

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ValidationStringency(str, Enum):
    """Tolerance for malformed records and map rows."""

    STRICT = "STRICT"
    LENIENT = "LENIENT"
    SILENT = "SILENT"

    @classmethod
    def parse(cls, value: "str | ValidationStringency") -> "ValidationStringency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ConfigValidationError(
                f"validation_stringency must be one of {valid}, got '{value}'"
            ) from None


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ExtractConfig:
    """Configuration for fingerprint extraction."""

    locus_max_reads: int = DEFAULT_LOCUS_MAX_READS
    validation_stringency: ValidationStringency = ValidationStringency.STRICT
    log_level: str = "INFO"

    def __post_init__(self):
        self.validation_stringency = ValidationStringency.parse(self.validation_stringency)


def validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Raises:
        ConfigValidationError: If any configuration value is invalid.
    """
    if "locus_max_reads" in config_dict:
        locus_max_reads = config_dict["locus_max_reads"]
        if isinstance(locus_max_reads, bool) or not isinstance(locus_max_reads, int):
            raise ConfigValidationError(
                f"locus_max_reads must be an integer, got {type(locus_max_reads).__name__}"
            )
        if locus_max_reads <= 0:
            raise ConfigValidationError(
                f"locus_max_reads must be positive, got {locus_max_reads}"
            )

    if "validation_stringency" in config_dict:
        ValidationStringency.parse(config_dict["validation_stringency"])

    if "log_level" in config_dict:
        log_level = config_dict["log_level"]
        if not isinstance(log_level, str):
            raise ConfigValidationError(
                f"log_level must be a string, got {type(log_level).__name__}"
            )
        if log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{log_level}'"
            )


def load_config(config_path: Path, overrides: dict[str, Any] | None = None) -> ExtractConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML configuration file.
        overrides: Optional dict of values to override loaded config.

    Returns:
        ExtractConfig instance with loaded values.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigValidationError: If any configuration value is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        toml_data = tomllib.load(f)

    config_dict = toml_data.get("vcf_fingerprint", {})

    if overrides:
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

    validate_config(config_dict)

    valid_fields = {
        "locus_max_reads",
        "validation_stringency",
        "log_level",
    }

    ignored = sorted(k for k in config_dict if k not in valid_fields)
    if ignored:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(ignored))

    filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}
    if "log_level" in filtered_config:
        filtered_config["log_level"] = filtered_config["log_level"].upper()

    return ExtractConfig(**filtered_config)
