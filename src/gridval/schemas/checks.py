"""Per-check settings.

Each check carries a frozen settings model. The same object is the check's
configuration and the read-only snapshot other checks see through the
:class:`~gridval.checks.registry.CheckRegistry`.

Limits are strings: either a number (``"0.5"`` or ``"0,5"``) or the path
of a grid file holding spatially varying limits. They are resolved per
check run by the threshold resolver, so an unusable value here is reported
when the check runs, not when the config is loaded. Numeric limits that
fall outside the legal domain of their quantity are rejected up front.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from gridval.checks.thresholds import parse_float
from gridval.schemas.base import FrozenModel

__all__ = ['CheckSettings', 'ANISettings', 'OLFSettings', 'DRNSettings', 'ChecksConfig']

UpscaleLiteral = Literal["minimum", "maximum", "mean"]


def _as_limit(v):
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        raise ValueError("A limit must be a number or a grid file path")
    return repr(float(v))


def _check_domain(name: str, value: Optional[str], low: float, high: float) -> None:
    number = parse_float(value)
    if number is not None and not low <= number <= high:
        raise ValueError(f"{name}={number:g} outside [{low:g}, {high:g}]")


def _check_order(low_name: str, low: Optional[str], high_name: str, high: Optional[str]) -> None:
    lo, hi = parse_float(low), parse_float(high)
    if lo is not None and hi is not None and lo > hi:
        raise ValueError(f"{low_name}={lo:g} exceeds {high_name}={hi:g}")


class CheckSettings(FrozenModel):
    """Settings shared by all checks."""
    active: bool = True
    upscale_method: UpscaleLiteral = "maximum"

    @field_validator("upscale_method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class ANISettings(CheckSettings):
    """Anisotropy check settings.

    ``zero_nodata_is_error`` flags datasets whose no-data value is zero:
    such a file silently disables anisotropy wherever it reads zero.
    """
    upscale_method: UpscaleLiteral = "maximum"
    min_angle: Optional[str] = "0"
    max_angle: Optional[str] = "360"
    min_factor: Optional[str] = "0"
    max_factor: Optional[str] = "1"
    zero_nodata_is_error: bool = True

    @field_validator("min_angle", "max_angle", "min_factor", "max_factor", mode="before")
    @classmethod
    def coerce_limit(cls, v):
        """Accept numbers for limits."""
        return _as_limit(v)

    @model_validator(mode="after")
    def check_domains(self):
        _check_domain("min_angle", self.min_angle, 0.0, 360.0)
        _check_domain("max_angle", self.max_angle, 0.0, 360.0)
        _check_domain("min_factor", self.min_factor, 0.0, 1.0)
        _check_domain("max_factor", self.max_factor, 0.0, 1.0)
        _check_order("min_angle", self.min_angle, "max_angle", self.max_angle)
        _check_order("min_factor", self.min_factor, "max_factor", self.max_factor)
        return self


class OLFSettings(CheckSettings):
    """Overland-flow level check settings."""
    upscale_method: UpscaleLiteral = "minimum"
    distance_below_surface: Optional[str] = "1"
    min_level: Optional[str] = "-20"
    max_level: Optional[str] = "175"
    use_drn_level_as_olf: bool = Field(
        False, description="Entry 1 of DRN defines the OLF level (DRN then starts at entry 2)"
    )

    @field_validator("distance_below_surface", "min_level", "max_level", mode="before")
    @classmethod
    def coerce_limit(cls, v):
        """Accept numbers for limits."""
        return _as_limit(v)

    @model_validator(mode="after")
    def check_order(self):
        _check_order("min_level", self.min_level, "max_level", self.max_level)
        return self


class DRNSettings(CheckSettings):
    """Drainage check settings."""
    upscale_method: UpscaleLiteral = "maximum"
    min_level: Optional[str] = "-10"
    max_level: Optional[str] = "500"
    min_conductance: Optional[str] = "0.001"
    max_conductance: Optional[str] = "10000"

    @field_validator("min_level", "max_level", "min_conductance", "max_conductance", mode="before")
    @classmethod
    def coerce_limit(cls, v):
        """Accept numbers for limits."""
        return _as_limit(v)

    @model_validator(mode="after")
    def check_order(self):
        _check_order("min_level", self.min_level, "max_level", self.max_level)
        _check_order("min_conductance", self.min_conductance, "max_conductance", self.max_conductance)
        return self


class ChecksConfig(FrozenModel):
    """Settings of all reference checks, in run order."""
    olf: OLFSettings = Field(default_factory=OLFSettings)
    ani: ANISettings = Field(default_factory=ANISettings)
    drn: DRNSettings = Field(default_factory=DRNSettings)
