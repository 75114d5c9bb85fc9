"""Command-line interface modules for gridval runs.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from gridval.cli.run_validation import run_validation

__all__ = ['run_validation']
