import pytest

from gridval.checks.engine import CheckContext, CheckEngine
from gridval.checks.registry import CheckRegistry
from gridval.model.datasets import ModelDatasets
from gridval.pipeline.result_registry import ResultRegistry


@pytest.fixture
def results_dir(tmp_path):
    d = tmp_path / "results"
    d.mkdir()
    return d


@pytest.fixture
def result_registry(tmp_path):
    registry = ResultRegistry(tmp_path / "results.db")
    yield registry
    registry.close()


@pytest.fixture
def make_engine(results_dir, diagnostics, result_registry):
    """Factory for an engine over an in-memory model.

    ``datasets`` maps kind -> {period: [entry dicts]}; entries may hold Grid
    objects or numbers.
    """
    def _make(datasets, period_count=1, surface_level=None, checks_config=None, **bounds):
        model = ModelDatasets(period_count=period_count, surface_level=surface_level)
        for kind, periods in datasets.items():
            model.add_dataset(kind, periods)
        ctx = CheckContext(
            datasets=model,
            output_dir=results_dir,
            diagnostics=diagnostics,
            registry=CheckRegistry.default(checks_config),
            result_registry=result_registry,
            **bounds,
        )
        return CheckEngine(ctx)

    return _make
