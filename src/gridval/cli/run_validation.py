"""Core validation run logic.

This module contains the actual runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import json
import logging
import importlib.util
from pathlib import Path
from typing import Any, Dict, List, Optional

from gridval.checks.engine import CheckRunSummary
from gridval.pipeline.orchestrator import ValidationOrchestrator
from gridval.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig
from gridval.setup_directories import setup_output_directories

__all__ = ['load_user_config_dict', 'run_validation']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_validation(
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> List[CheckRunSummary]:
    """Execute a validation run.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Sets up output directories
    3. Runs the selected checks through the orchestrator

    Parameters
    ----------
    user_config_path : str, optional
        Path to user config file (Python file with CONFIG dict). Without
        it, only expert defaults and CLI overrides apply.
    cli_args : dict, optional
        CLI argument overrides. Keys: base_dir, min_entry, max_entry,
        min_period, max_period, checks, no_plots, log_level. All optional.
    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    list of CheckRunSummary
        One summary per check that was selected.

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValueError
        If configuration validation fails or an unknown check is named.

    Examples
    --------
    Run with user config only::

        run_validation("config/my_model.py")

    Run two checks on the first layer::

        run_validation(
            "config/my_model.py",
            cli_args={"checks": ["ANI", "DRN"], "min_entry": 1, "max_entry": 1},
        )
    """
    param_cfg = ParamConfig()

    user_cfg = None
    if user_config_path is not None:
        user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    # Resolve to internal config (Param < User < CLI)
    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    output_dirs = setup_output_directories(
        config.base_dir, registry_filename=config.output.registry_filename)

    engine = config.engine
    print(f"\n{'='*60}")
    print("gridval model validation")
    print('='*60)
    print(f"Config:  {user_config_path or '(defaults)'}")
    print(f"Checks:  {', '.join(engine.checks_to_run) if engine.checks_to_run else 'all'}")
    print(f"Layers:  {engine.min_entry}-{engine.max_entry}")
    print(f"Periods: {engine.min_period}-{engine.max_period}")
    print(f"Output:  {output_dirs['base']}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(mode="json"), indent=2))
        print('='*60)

    orchestrator = ValidationOrchestrator(config, output_dirs)
    summaries = orchestrator.run()

    failed = [s.check for s in summaries if s.failed]
    written = sum(len(s.result_files) for s in summaries)
    print(f"\nResult files: {written}")
    if failed:
        print(f"Failed checks: {', '.join(failed)}")
    print(f"Log and runtime config: {output_dirs['logs']}")
    return summaries
