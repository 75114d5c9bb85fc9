"""Threshold resolution.

Check limits are configured as strings that hold either a number or the
path of a grid file. The resolver turns both into a grid, so that every
per-cell comparison reads "the threshold grid at this cell" regardless of
how the limit was given. A limit that is neither yields ``None``
(undefined) and a warning, and the comparison that depends on it is
skipped.
"""

import logging
import math
from pathlib import Path
from typing import List, Optional, Union

from gridval.contracts import ContractViolation
from gridval.grid.grid import ConstantGrid, Grid
from gridval.grid.io import GridLoader

__all__ = ['ThresholdResolver', 'parse_float']

logger = logging.getLogger(__name__)


def parse_float(value: Union[str, float, int, None]) -> Optional[float]:
    """Parse a number accepting both ``.`` and ``,`` as decimal separator.

    Returns None for anything that is not a finite number.

    Examples
    --------
    >>> parse_float("1,5")
    1.5
    >>> parse_float("level.nc") is None
    True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if text.count(",") == 1 and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


class ThresholdResolver:
    """Resolve configured limits into threshold grids.

    Grids read from files are tracked and dropped from the loader cache on
    :meth:`release`, which also runs when the resolver is used as a context
    manager.

    Parameters
    ----------
    loader : GridLoader
        Reader for threshold grid files.
    diagnostics : Diagnostics, optional
        Sink for warnings about unusable limits.
    check_name : str, optional
        Scope of the warnings.

    Example usage::

        with ThresholdResolver(loader, diagnostics, "OLF") as resolver:
            min_level = resolver.resolve(settings.min_level, "min_level")
    """

    def __init__(self, loader: Optional[GridLoader] = None, diagnostics=None,
                 check_name: Optional[str] = None):
        self.loader = loader or GridLoader()
        self.diagnostics = diagnostics
        self.check_name = check_name
        self._loaded: List[Path] = []

    def resolve(self, value: Union[str, float, int, None],
                setting: Optional[str] = None) -> Optional[Grid]:
        """Resolve one limit.

        Parameters
        ----------
        value : str, float or None
            Number, path to a grid file, or None/empty for "not configured".
        setting : str, optional
            Setting name, reported in diagnostics.

        Returns
        -------
        Grid or None
            A constant grid, a grid read from disk, or None when undefined.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        number = parse_float(value)
        if number is not None:
            return ConstantGrid(number, name=setting)

        path = Path(str(value).strip()).expanduser()
        try:
            is_file = path.is_file()
        except OSError:
            # Names the OS rejects outright, e.g. longer than NAME_MAX
            is_file = False
        if is_file:
            try:
                grid = self.loader.load(path)
            except (OSError, ValueError, KeyError, ContractViolation) as e:
                self._warn(setting, f"Could not read threshold grid '{value}': {e}")
                return None
            self._loaded.append(path)
            return grid

        self._warn(setting, f"Invalid threshold '{value}': not a number and not an existing grid file")
        return None

    def _warn(self, setting, message):
        if self.diagnostics is not None:
            self.diagnostics.warning(message, scope=self.check_name, source=setting, indent=1)
        else:
            logger.warning("%s: %s", setting, message)

    def release(self) -> None:
        for path in self._loaded:
            self.loader.release(path)
        self._loaded.clear()

    def __enter__(self) -> "ThresholdResolver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
