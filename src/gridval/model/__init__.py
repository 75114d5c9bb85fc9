"""Dataset accessor over layered, time-varying model inputs."""

from gridval.model.datasets import DatasetAccessor, ModelDatasets

__all__ = ["DatasetAccessor", "ModelDatasets"]
