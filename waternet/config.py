"""
Configuration module for analysis parameters.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml

from .errors import InvalidArgumentError


@dataclass
class AnalysisConfig:
    """
    Configuration parameters shared by the network model and the analyzers.
    """
    # Geometry
    earth_radius_km: float = 6371.0

    # Numerical tolerance used by max-flow and over-capacity checks
    tolerance: float = 1e-9

    # Logging
    log_level: str = "WARNING"

    def __post_init__(self):
        """Validate values after dataclass initialization."""
        if self.earth_radius_km <= 0:
            raise InvalidArgumentError(f"earth_radius_km must be positive, got {self.earth_radius_km}")
        if self.tolerance < 0:
            raise InvalidArgumentError(f"tolerance must be non-negative, got {self.tolerance}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise InvalidArgumentError(f"Unknown log level {self.log_level!r}")

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "AnalysisConfig":
        """Build a configuration from a plain mapping, rejecting unknown keys."""
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidArgumentError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**values)


DEFAULT_CONFIG = AnalysisConfig()


def load_config(path: str) -> AnalysisConfig:
    """Load an :class:`AnalysisConfig` from a YAML file.

    The file holds a mapping whose keys are the dataclass fields. An empty
    file yields the defaults.

    :param path: Path to the YAML file.
    :raises InvalidArgumentError: If the document is not a mapping or names
        unknown keys.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is not None and not isinstance(raw, dict):
        raise InvalidArgumentError(f"Configuration file {path} must contain a mapping")
    return AnalysisConfig.from_dict(raw)


def configure_logging(config: Optional[AnalysisConfig] = None) -> None:
    """Apply the configured log level to the ``waternet`` logger hierarchy."""
    config = config or DEFAULT_CONFIG
    level = logging.getLevelName(config.log_level.upper())
    logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logging.getLogger("waternet").setLevel(level)
