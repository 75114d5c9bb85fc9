"""ParamConfig: Expert defaults for gridval runs.

This module defines the complete default configuration. ALL run parameters
must have defaults here. No runtime code should define fallback values -
this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from gridval.schemas.base import GridvalBaseModel
from gridval.schemas.checks import ChecksConfig
from gridval.schemas.model import ModelConfig


# =============================================================================
# Nested Configuration Models
# =============================================================================

class EngineConfig(GridvalBaseModel):
    """Check engine bounds and tolerances."""
    min_entry: int = Field(1, ge=1, description="First entry (layer/system) to check")
    max_entry: int = Field(999, ge=1, description="Last entry (layer/system) to check")
    min_period: int = Field(1, ge=1, description="First period to check")
    max_period: int = Field(999, ge=1, description="Last period to check")
    extent: Optional[tuple[float, float, float, float]] = Field(
        None, description="(xmin, ymin, xmax, ymax) restricting every check"
    )
    level_error_margin: float = Field(0.005, ge=0, description="Tolerance for level comparisons")
    checks_to_run: Optional[list[str]] = Field(None, description="Check names, None for all active")

    @field_validator("checks_to_run", mode="before")
    @classmethod
    def normalize_check_names(cls, v):
        """Check names are upper case."""
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]
        return [str(name).upper().strip() for name in v]

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_entry > self.max_entry:
            raise ValueError(f"min_entry ({self.min_entry}) > max_entry ({self.max_entry})")
        if self.min_period > self.max_period:
            raise ValueError(f"min_period ({self.min_period}) > max_period ({self.max_period})")
        if self.extent is not None:
            xmin, ymin, xmax, ymax = self.extent
            if xmin >= xmax or ymin >= ymax:
                raise ValueError(f"Invalid extent {self.extent}")
        return self


class VisualizationConfig(GridvalBaseModel):
    """Quicklook plots of result layers."""
    enabled: bool = True
    dpi: int = Field(150, ge=50)
    figsize: tuple[float, float] = (8.0, 8.0)
    output_format: Literal["png", "pdf", "jpeg"] = "png"


class OutputConfig(GridvalBaseModel):
    """Output file configuration."""
    complevel: int = Field(4, ge=0, le=9, description="zlib level of result files")
    registry_filename: str = "results.db"
    write_summary: bool = Field(True, description="Write per-severity finding counts of the run")
    summary_min_cellsize: float = Field(0.0, ge=0, description="Lower bound of the summary cell size")


class LoggingConfig(GridvalBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(GridvalBaseModel):
    """Complete expert configuration with all defaults.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: Optional[str] = None
    engine: EngineConfig = Field(default_factory=EngineConfig)
    checks: ChecksConfig = Field(default_factory=ChecksConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
