"""Validation run orchestration.

Builds the model accessor, the check registry and the engine from an
:class:`~gridval.schemas.InternalConfig`, runs the selected checks, plots
the written result layers and persists the runtime configuration next to
the run log.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from gridval.checks.engine import CheckContext, CheckEngine, CheckRunSummary
from gridval.checks.registry import CheckRegistry
from gridval.checks.summary import SummaryLayers
from gridval.grid.extent import Extent
from gridval.grid.io import GridLoader
from gridval.model.datasets import ModelDatasets
from gridval.pipeline.diagnostics import Diagnostics
from gridval.pipeline.result_registry import ResultRegistry
from gridval.schemas.internal import InternalConfig
from gridval.setup_directories import get_log_path, get_plot_path, setup_output_directories

__all__ = ['ValidationOrchestrator']

logger = logging.getLogger(__name__)


class ValidationOrchestrator:
    """Runs one validation of a model.

    **Run Steps:**

    1. Create output directories (results/, plots/, logs/) and configure
       logging to console and ``logs/validation_<run_id>.log``.
    2. Build the model accessor from ``config.model``; grid files are read
       through one path-cached loader.
    3. Build the check registry from ``config.checks`` and select the
       checks named in ``config.engine.checks_to_run`` (all when None).
    4. Run the checks. A failing check is logged and the others still run.
    5. Write the per-severity finding counts of the run when
       ``config.output.write_summary`` is set.
    6. Plot every written result layer when visualization is enabled.
    7. Persist the runtime configuration as JSON with the run id.

    **Outputs:**

    Result layers go to ``results/<CHECK>/``, run summaries to
    ``results/summary/summary_<severity>s.nc``, quicklooks to
    ``plots/<CHECK>/`` and the registry of written files to
    ``results.db`` in the base directory.

    Example usage::

        config = resolve_config(ParamConfig(), UserConfig.model_validate(user_dict))
        orchestrator = ValidationOrchestrator(config)
        summaries = orchestrator.run()
        print(orchestrator.diagnostics.to_dataframe())
    """

    def __init__(self, config: InternalConfig, output_dirs: Optional[Dict[str, Path]] = None,
                 setup_logging: bool = True):
        """Initialize orchestrator.

        Parameters
        ----------
        config : InternalConfig
            Resolved runtime configuration.
        output_dirs : dict, optional
            Directories from ``setup_output_directories()``. Created from
            ``config.base_dir`` when omitted.
        setup_logging : bool
            Install console and file handlers on the root logger.
        """
        run_id = config.run_id or datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_") + uuid.uuid4().hex[:6]
        self.config = config.model_copy(update={"run_id": run_id})
        self.output_dirs = output_dirs or setup_output_directories(
            config.base_dir, registry_filename=config.output.registry_filename)
        self.setup_logging = setup_logging

        self.diagnostics = Diagnostics()
        self.registry: Optional[CheckRegistry] = None
        self.summaries: List[CheckRunSummary] = []
        self.plots: List[Path] = []
        self.summary_files: List[Path] = []
        self.summary_totals: Dict[str, int] = {}
        self.config_path: Optional[Path] = None
        self._handlers: List[logging.Handler] = []

    @property
    def run_id(self) -> str:
        return self.config.run_id

    def _setup_logging(self):
        """Configure root logging with a file and a console handler.

        Log level and paths derived from config.
        """
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(self.output_dirs, self.run_id)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        # File handler
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        self._handlers = [fh, ch]
        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

    def _teardown_logging(self):
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = []

    def run(self) -> List[CheckRunSummary]:
        """Run the configured checks.

        Returns
        -------
        list of CheckRunSummary
            One summary per selected check, in run order.

        Raises
        ------
        ValueError
            If ``checks_to_run`` names an unknown check.
        """
        if self.setup_logging:
            self._setup_logging()

        try:
            logger.info("=" * 60)
            logger.info("Starting validation run %s", self.run_id)
            logger.info("=" * 60)

            loader = GridLoader()
            datasets = ModelDatasets.from_config(self.config.model, loader=loader)
            self.registry = CheckRegistry.default(self.config.checks)
            checks = self.registry.selected(self.config.engine.checks_to_run)
            logger.info("Checks: %s", ", ".join(c.name for c in checks) or "none")

            output = self.config.output
            summary_layers = None
            if output.write_summary:
                run_extent = self.config.engine.extent
                summary_layers = SummaryLayers(
                    extent=Extent(*run_extent) if run_extent is not None else None,
                    min_cellsize=output.summary_min_cellsize,
                )

            with ResultRegistry(self.output_dirs["registry"]) as result_registry:
                ctx = CheckContext.from_config(
                    self.config, datasets, self.output_dirs["results"],
                    diagnostics=self.diagnostics, registry=self.registry,
                    result_registry=result_registry, summary_layers=summary_layers,
                )
                self.summaries = CheckEngine(ctx).run_checks(checks)
                if summary_layers is not None:
                    self.summary_files = summary_layers.write(
                        self.output_dirs["results"], registry=result_registry,
                        diagnostics=self.diagnostics, complevel=output.complevel)
                    self.summary_totals = summary_layers.totals()
                    summary_layers.release()
                stats = result_registry.get_statistics()

            loader.clear()

            if self.config.visualization.enabled:
                self._plot_results()

            self.config_path = self._persist_config()
            self._log_summary(stats)
            return self.summaries
        finally:
            if self.setup_logging:
                self._teardown_logging()

    def _plot_results(self):
        """Render a quicklook per written result file; a failing plot is logged and skipped."""
        from gridval.visualization.plotter import ResultPlotter

        viz = self.config.visualization
        plotter = ResultPlotter(dpi=viz.dpi, figsize=viz.figsize, output_format=viz.output_format)
        for summary in self.summaries:
            for path in summary.result_files:
                target = get_plot_path(self.output_dirs, path, viz.output_format)
                try:
                    self.plots.append(plotter.plot_result_file(path, target))
                except (OSError, ValueError) as e:
                    logger.error("Plot failed for %s: %s", path.name, e)
                    self.diagnostics.error(f"Plot failed: {e}", scope=summary.check,
                                           source=path.name)

    def _persist_config(self) -> Path:
        """Write the runtime configuration (with run id) as JSON next to the log."""
        path = self.output_dirs["logs"] / f"runtime_config_{self.run_id}.json"
        path.write_text(self.config.model_dump_json(indent=2))
        logger.info("Runtime configuration saved: %s", path)
        return path

    def _log_summary(self, stats: Dict):
        logger.info("=" * 60)
        logger.info("Validation run %s complete", self.run_id)
        for summary in self.summaries:
            if summary.failed:
                state = f"FAILED ({summary.failed})"
            elif summary.skipped:
                state = "skipped"
            else:
                state = (f"{summary.units_evaluated} units, "
                         f"{len(summary.result_files)} result files")
            logger.info("  %-6s %s", summary.check, state)
        logger.info("Result files: %d (%d errors, %d warnings), flagged cells: %d",
                    stats.get("total", 0), stats.get("errors", 0),
                    stats.get("warnings", 0), stats.get("flagged_cells", 0))
        if self.summary_totals:
            logger.info("Run summary: %d errors, %d warnings, files: %s",
                        self.summary_totals.get("error", 0), self.summary_totals.get("warning", 0),
                        ", ".join(p.name for p in self.summary_files) or "none")
        logger.info("Diagnostics: %d warnings, %d errors",
                    self.diagnostics.count("warning"), self.diagnostics.count("error"))
        logger.info("=" * 60)
