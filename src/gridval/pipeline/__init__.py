"""Pipeline modules.

- diagnostics: Structured run diagnostics
- result_registry: SQLite-based result file registry
- orchestrator: Run controller (import from ``gridval.pipeline.orchestrator``)
"""

from gridval.pipeline.diagnostics import Diagnostic, Diagnostics
from gridval.pipeline.result_registry import ResultRegistry

__all__ = [
    "Diagnostic",
    "Diagnostics",
    "ResultRegistry",
]
