"""Ordered catalog of checks.

The registry keeps checks in registration order, which is also their run
order, and resolves a check by name. Other checks read a check's settings
only through :meth:`CheckRegistry.settings_snapshot`, which hands out the
frozen settings model rather than the live check.
"""

import logging
from typing import Dict, Iterator, List, Optional

from gridval.checks.ani import ANICheck
from gridval.checks.base import Check
from gridval.checks.drn import DRNCheck
from gridval.checks.olf import OLFCheck

__all__ = ['CheckRegistry', 'DEFAULT_CHECKS']

logger = logging.getLogger(__name__)

# Run order matters: DRN reads the OLF settings
DEFAULT_CHECKS = (OLFCheck, ANICheck, DRNCheck)


class CheckRegistry:
    """Checks by name, in run order.

    Example usage::

        registry = CheckRegistry.default(config.checks)
        olf_settings = registry.settings_snapshot("OLF")
        for check in registry.selected(["ANI", "DRN"]):
            ...
    """

    def __init__(self):
        self._checks: Dict[str, Check] = {}

    @classmethod
    def default(cls, checks_config=None) -> "CheckRegistry":
        """Registry of the reference checks, configured from a ``ChecksConfig``."""
        registry = cls()
        for check_type in DEFAULT_CHECKS:
            settings = None
            if checks_config is not None:
                settings = getattr(checks_config, check_type.name.lower())
            registry.register(check_type(settings))
        return registry

    def register(self, check: Check) -> Check:
        key = check.name.upper()
        if key in self._checks:
            raise ValueError(f"Check '{check.name}' is already registered")
        self._checks[key] = check
        logger.debug("Registered check %s", check.name)
        return check

    def retrieve(self, name: str) -> Optional[Check]:
        return self._checks.get(name.upper().strip())

    def settings_snapshot(self, name: str):
        """Frozen settings of the named check, or None if it is not registered."""
        check = self.retrieve(name)
        return check.settings if check is not None else None

    @property
    def checks(self) -> List[Check]:
        return list(self._checks.values())

    def selected(self, names: Optional[List[str]] = None) -> List[Check]:
        """Checks to run: all when ``names`` is None, else the named ones in run order.

        Raises
        ------
        ValueError
            If a name is not registered.
        """
        if names is None:
            return self.checks
        wanted = {n.upper().strip() for n in names}
        unknown = wanted - set(self._checks)
        if unknown:
            raise ValueError(f"Unknown checks: {sorted(unknown)}, available: {list(self._checks)}")
        return [c for key, c in self._checks.items() if key in wanted]

    def __contains__(self, name: str) -> bool:
        return name.upper().strip() in self._checks

    def __iter__(self) -> Iterator[Check]:
        return iter(self.checks)

    def __len__(self) -> int:
        return len(self._checks)
