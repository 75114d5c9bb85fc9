"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with UPPERCASE aliases for the settings
that change most between runs (e.g., MIN_LAYER -> min_entry, MODEL -> model).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults.
"""

from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from gridval.schemas.base import GridvalBaseModel
from gridval.schemas.model import ModelConfig


class UserConfig(GridvalBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(
            BASE_DIR="/data/validation",
            MIN_LAYER=1,
            MAX_LAYER=3,
            CHECKS=["ANI", "DRN"],
            CHECK_SETTINGS={"ani": {"max_factor": 0.9}},
            MODEL={...},
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = Field(None, alias="BASE_DIR")

    # Run bounds (flat aliases)
    min_entry: Optional[int] = Field(None, alias="MIN_LAYER", ge=1)
    max_entry: Optional[int] = Field(None, alias="MAX_LAYER", ge=1)
    min_period: Optional[int] = Field(None, alias="MIN_PERIOD", ge=1)
    max_period: Optional[int] = Field(None, alias="MAX_PERIOD", ge=1)
    extent: Optional[tuple[float, float, float, float]] = Field(None, alias="EXTENT")
    level_error_margin: Optional[float] = Field(None, alias="LEVEL_ERROR_MARGIN")
    checks_to_run: Optional[list[str]] = Field(None, alias="CHECKS")

    # Output
    plot: Optional[bool] = Field(None, alias="PLOT")
    write_summary: Optional[bool] = Field(None, alias="WRITE_SUMMARY")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )

    # Nested overrides (advanced users)
    check_settings: Optional[dict[str, dict[str, Any]]] = Field(None, alias="CHECK_SETTINGS")
    model: Optional[ModelConfig] = Field(None, alias="MODEL")

    model_config = GridvalBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("checks_to_run", mode="before")
    @classmethod
    def normalize_check_names(cls, v):
        """Accept a single name and normalize to upper case."""
        if isinstance(v, str):
            v = [v]
        if v is not None:
            return [str(name).upper().strip() for name in v]
        return v

    @field_validator("check_settings", mode="before")
    @classmethod
    def normalize_check_keys(cls, v):
        """Check settings sections are keyed by lower-case check name."""
        if isinstance(v, dict):
            return {str(k).lower().strip(): s for k, s in v.items()}
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert user config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        engine = {}
        for key in ("min_entry", "max_entry", "min_period", "max_period",
                    "extent", "level_error_margin", "checks_to_run"):
            value = getattr(self, key)
            if value is not None:
                engine[key] = value
        if engine:
            overrides["engine"] = engine

        if self.plot is not None:
            overrides["visualization"] = {"enabled": self.plot}
        if self.write_summary is not None:
            overrides["output"] = {"write_summary": self.write_summary}
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}
        if self.check_settings:
            overrides["checks"] = self.check_settings
        if self.model is not None:
            overrides["model"] = self.model.model_dump(exclude_unset=True)

        return overrides
