"""CLIConfig: Command-line operational overrides.

Minimal configuration for parameters that commonly change between runs:
output directory, entry/period bounds, selected checks, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional

from pydantic import field_validator

from gridval.schemas.base import GridvalBaseModel


class CLIConfig(GridvalBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(min_entry=2, max_entry=2, checks=["ANI"])
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    min_entry: Optional[int] = None
    max_entry: Optional[int] = None
    min_period: Optional[int] = None
    max_period: Optional[int] = None
    checks: Optional[list[str]] = None
    no_plots: bool = False
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("checks", mode="before")
    @classmethod
    def normalize_check_names(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if v is not None:
            return [str(name).upper().strip() for name in v if str(name).strip()]
        return v

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        engine = {}
        for key in ("min_entry", "max_entry", "min_period", "max_period"):
            value = getattr(self, key)
            if value is not None:
                engine[key] = value
        if self.checks:
            engine["checks_to_run"] = self.checks
        if engine:
            overrides["engine"] = engine

        if self.no_plots:
            overrides["visualization"] = {"enabled": False}
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
