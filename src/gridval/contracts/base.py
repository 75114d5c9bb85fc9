"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
"""

from gridval.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce an engine contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation (for debugging).

    Raises
    ------
    ContractViolation
        If condition is False. This indicates a bug in engine logic.

    Examples
    --------
    >>> require(grid.cellsize > 0, "Grid contract: cell size must be positive")
    >>> require(values.ndim == 2, "Grid contract: values must be 2-D")
    """
    if not condition:
        raise ContractViolation(message)
