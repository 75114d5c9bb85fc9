"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.
"""

from typing import Literal, Optional

from pydantic import Field, ConfigDict

from gridval.schemas.base import GridvalBaseModel
from gridval.schemas.checks import ChecksConfig
from gridval.schemas.model import ModelConfig


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalEngineConfig(GridvalBaseModel):
    """Runtime engine bounds."""
    min_entry: int = Field(ge=1)
    max_entry: int = Field(ge=1)
    min_period: int = Field(ge=1)
    max_period: int = Field(ge=1)
    extent: Optional[tuple[float, float, float, float]]
    level_error_margin: float = Field(ge=0)
    checks_to_run: Optional[list[str]]


class InternalVisualizationConfig(GridvalBaseModel):
    """Runtime visualization settings."""
    enabled: bool
    dpi: int
    figsize: tuple[float, float]
    output_format: Literal["png", "pdf", "jpeg"]


class InternalOutputConfig(GridvalBaseModel):
    """Runtime output configuration."""
    complevel: int
    registry_filename: str
    write_summary: bool
    summary_min_cellsize: float


class InternalLoggingConfig(GridvalBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(GridvalBaseModel):
    """Authoritative runtime configuration.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.margin = config.engine.level_error_margin  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: Optional[str]
    engine: InternalEngineConfig
    checks: ChecksConfig
    model: ModelConfig
    visualization: InternalVisualizationConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig
    run_id: Optional[str] = None

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
