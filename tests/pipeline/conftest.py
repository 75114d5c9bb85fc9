import pytest

from gridval.pipeline.result_registry import ResultRegistry
from gridval.setup_directories import setup_output_directories


@pytest.fixture
def registry(temp_dir):
    registry = ResultRegistry(temp_dir / "results.db")
    yield registry
    registry.close()


@pytest.fixture
def pipeline_output_dirs(temp_dir):
    """Output directories for pipeline tests."""
    return setup_output_directories(temp_dir)
