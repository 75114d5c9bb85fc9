"""
Directory setup for validation runs.

Layout under the base directory:
- results/<CHECK>/  result layers written by the checks
- plots/<CHECK>/    quicklook images of the result layers
- logs/             run log and persisted runtime configuration
- results.db        registry of written result files
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_output_directories(base_output_dir=None, registry_filename="results.db"):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory. Defaults to ``./gridval_output``.
    registry_filename : str
        File name of the result registry inside the base directory.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'results', 'plots', 'logs', 'registry'
    """
    if base_output_dir is None:
        base_output_dir = Path.cwd() / "gridval_output"

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "results": base_output_dir / "results",
        "plots": base_output_dir / "plots",
        "logs": base_output_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    directories["registry"] = base_output_dir / registry_filename

    for key, path in directories.items():
        logger.debug("  %-10s: %s", key, path)

    return directories


def get_plot_path(output_dirs, result_path, output_format="png"):
    """
    Get plot path for a result file, mirroring its check subdirectory.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    result_path : str or Path
        Result layer file, e.g. ``results/ANI/ANI_L1_errors_P1.nc``
    output_format : str
        Image extension.

    Returns
    -------
    Path
        Full path: plots/<CHECK>/<result stem>.<format>
    """
    result_path = Path(result_path)
    plot_dir = output_dirs["plots"] / result_path.parent.name
    plot_dir.mkdir(parents=True, exist_ok=True)
    return plot_dir / f"{result_path.stem}.{output_format}"


def get_log_path(output_dirs, run_id=None):
    """
    Get log file path for a run.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    run_id : str, optional
        Run identifier; a UTC timestamp is used when omitted.

    Returns
    -------
    Path
        Full path to log file
    """
    log_dir = output_dirs["logs"]
    log_dir.mkdir(parents=True, exist_ok=True)

    if run_id is None:
        run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"validation_{run_id}.log"
