"""Model definition schema: which grid files make up which dataset.

A dataset kind (``ANI``, ``OLF``, ``DRN``...) is defined per period as a
list of entries; each entry maps part names to a grid source. A source is
a number (constant grid) or a path to a grid file, relative to ``root``.

Example::

    {
        "period_count": 2,
        "surface_level": "top/surface.nc",
        "datasets": {
            "ANI": {"periods": {1: [{"factor": "ani/f_l1.nc", "angle": 30.0}]}},
        },
    }
"""

from typing import Optional, Union

from pydantic import Field, field_validator

from gridval.schemas.base import GridvalBaseModel

__all__ = ['DatasetConfig', 'ModelConfig']

GridSource = Union[float, str]


class DatasetConfig(GridvalBaseModel):
    """One dataset kind: activity flag and per-period entry definitions."""
    active: bool = True
    periods: dict[int, list[dict[str, GridSource]]] = Field(default_factory=dict)

    @field_validator("periods")
    @classmethod
    def positive_periods(cls, v):
        """Periods are 1-based."""
        for period in v:
            if period < 1:
                raise ValueError(f"Period indices start at 1, got {period}")
        return v


class ModelConfig(GridvalBaseModel):
    """Layered, time-varying model inputs to validate."""
    root: Optional[str] = None
    period_count: int = Field(1, ge=1)
    surface_level: Optional[GridSource] = None
    datasets: dict[str, DatasetConfig] = Field(default_factory=dict)

    @field_validator("datasets", mode="before")
    @classmethod
    def normalize_kinds(cls, v):
        """Dataset kinds are upper case."""
        if isinstance(v, dict):
            return {str(k).upper().strip(): d for k, d in v.items()}
        return v
