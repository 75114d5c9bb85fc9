"""Access to the grids of a layered, time-varying model.

A model consists of dataset kinds (``ANI``, ``OLF``, ``DRN``...). Each kind
is defined per period as a list of entries (depth layers or sub-systems),
and each entry maps part names (``factor``, ``angle``, ``level``...) to a
grid. A period without its own definition reuses the closest earlier
definition, and then hands out the very same grid objects. Grid files are
read through a path-cached :class:`~gridval.grid.io.GridLoader`, so two
entries naming the same file also share one grid object.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union

from gridval.checks.thresholds import parse_float
from gridval.contracts import ContractViolation
from gridval.grid.grid import ConstantGrid, Grid
from gridval.grid.io import GridLoader

__all__ = ['DatasetAccessor', 'ModelDatasets']

logger = logging.getLogger(__name__)

GridSource = Union[Grid, float, int, str, Path]


class DatasetAccessor(Protocol):
    """What the check engine needs from a model."""

    period_count: int

    @property
    def surface_level(self) -> Optional[Grid]: ...

    def is_active(self, kind: str) -> bool: ...

    def entry_count(self, kind: str, period: int) -> int: ...

    def get_grid(self, kind: str, entry: int, part: str, period: int) -> Optional[Grid]: ...


class ModelDatasets:
    """In-memory model definition backed by grid files.

    Parameters
    ----------
    loader : GridLoader, optional
        Reader for grid files. A private loader is created if omitted.
    period_count : int
        Number of periods of the model (1-based).
    surface_level : Grid, number or path, optional
        Top-of-ground elevation.
    root : Path or str, optional
        Directory that relative grid paths are resolved against.

    Example usage::

        model = ModelDatasets(period_count=2, root="model")
        model.add_dataset("ANI", {1: [{"factor": "ani/f1.nc", "angle": "ani/a1.nc"}]})
        model.get_grid("ANI", 1, "factor", 2)  # reused from period 1
    """

    def __init__(self, loader: Optional[GridLoader] = None, period_count: int = 1,
                 surface_level: Optional[GridSource] = None,
                 root: Optional[Path | str] = None):
        self.loader = loader or GridLoader()
        self.period_count = period_count
        self.root = Path(root) if root is not None else None
        self._surface_source = surface_level
        self._surface: Optional[Grid] = None
        self._datasets: Dict[str, Dict[int, List[Dict[str, GridSource]]]] = {}
        self._active: Dict[str, bool] = {}
        self._resolved: Dict[Tuple[str, int, int, str], Optional[Grid]] = {}

    @classmethod
    def from_config(cls, model_config, loader: Optional[GridLoader] = None,
                    base_dir: Optional[Path | str] = None) -> "ModelDatasets":
        """Build from a :class:`~gridval.schemas.model.ModelConfig`.

        Relative paths are resolved against ``model_config.root``, itself
        relative to ``base_dir`` when given.
        """
        root = Path(model_config.root) if model_config.root else None
        if base_dir is not None and (root is None or not root.is_absolute()):
            root = Path(base_dir) / root if root is not None else Path(base_dir)

        model = cls(loader=loader, period_count=model_config.period_count,
                    surface_level=model_config.surface_level, root=root)
        for kind, dataset in model_config.datasets.items():
            model.add_dataset(kind, dataset.periods, active=dataset.active)
        return model

    def add_dataset(self, kind: str, periods: Dict[int, List[Dict[str, GridSource]]],
                    active: bool = True) -> None:
        kind = kind.upper()
        self._datasets[kind] = {int(p): list(entries) for p, entries in periods.items()}
        self._active[kind] = active
        logger.debug("Dataset %s: periods %s", kind, sorted(self._datasets[kind]))

    @property
    def kinds(self) -> List[str]:
        return list(self._datasets)

    def is_active(self, kind: str) -> bool:
        kind = kind.upper()
        return kind in self._datasets and self._active.get(kind, False)

    def _definition_period(self, kind: str, period: int) -> Optional[int]:
        """Closest defined period at or before ``period``."""
        defined = [p for p in self._datasets.get(kind.upper(), {}) if p <= period]
        return max(defined) if defined else None

    def entry_count(self, kind: str, period: int) -> int:
        defined = self._definition_period(kind, period)
        if defined is None:
            return 0
        return len(self._datasets[kind.upper()][defined])

    def get_grid(self, kind: str, entry: int, part: str, period: int) -> Optional[Grid]:
        """Grid of one part of one entry, or None when undefined or unreadable.

        Entries are 1-based. Reused periods return the grid objects of the
        period they reuse.
        """
        kind = kind.upper()
        defined = self._definition_period(kind, period)
        if defined is None:
            return None
        entries = self._datasets[kind][defined]
        if not 1 <= entry <= len(entries):
            return None

        key = (kind, defined, entry, part)
        if key not in self._resolved:
            source = entries[entry - 1].get(part)
            self._resolved[key] = self._resolve(source, f"{kind} L{entry} {part}")
        return self._resolved[key]

    @property
    def surface_level(self) -> Optional[Grid]:
        if self._surface is None and self._surface_source is not None:
            self._surface = self._resolve(self._surface_source, "surface level")
        return self._surface

    def _resolve(self, source: Optional[GridSource], name: str) -> Optional[Grid]:
        if source is None:
            return None
        if isinstance(source, Grid):
            return source

        number = parse_float(source) if not isinstance(source, Path) else None
        if number is not None:
            return ConstantGrid(number, name=name)

        path = Path(source).expanduser()
        if not path.is_absolute() and self.root is not None:
            path = self.root / path
        try:
            return self.loader.load(path)
        except (OSError, ValueError, KeyError, ContractViolation) as e:
            logger.error("Could not read %s from %s: %s", name, path, e)
            return None
