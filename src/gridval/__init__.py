"""`gridval` - validation of layered raster datasets against pluggable checks.

Subpackages:
- grid: Extents, grids, grid I/O, upscaling and synchronized iteration
- checks: Finding catalogs, result layers, the check engine and reference checks
- model: Dataset accessor over layered, time-varying model inputs
- pipeline: Diagnostics, result registry and run orchestration
- visualization: Quicklook plots of result layers
"""

__version__ = "0.1.0"
