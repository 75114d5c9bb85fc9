"""Engine contracts: fail-fast enforcement of internal invariants.

Contracts fail immediately and loudly when a component hands over data
that breaks a guarantee the next component relies on (a grid whose array
does not match its extent, a result layer with the wrong cell type).

Key principle:
- Pydantic validates config correctness
- Contracts validate engine correctness
- Checks report data problems as findings
"""

from gridval.contracts.failure import ContractViolation
from gridval.contracts.base import require
from gridval.contracts.grid import assert_grid, assert_result_layer

__all__ = [
    "ContractViolation",
    "require",
    "assert_grid",
    "assert_result_layer",
]
