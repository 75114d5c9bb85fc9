import pytest

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def register(registry, path, **kwargs):
    defaults = dict(check_name="ANI", dataset="ANI", severity="error", entry=1, period=1,
                    result_count=3, findings={"Invalid ANI-factor": 3},
                    sources=["ani/f1.nc", "ani/a1.nc"])
    defaults.update(kwargs)
    return registry.register_result(path, **defaults)


def test_register_and_fetch(registry, tmp_path):
    path = tmp_path / "ANI_L1_errors_P1.nc"
    assert register(registry, path) is True

    record = registry.get_result(path)
    assert record["check_name"] == "ANI"
    assert record["result_count"] == 3
    assert record["findings"] == {"Invalid ANI-factor": 3}
    assert registry.get_sources(path) == ["ani/a1.nc", "ani/f1.nc"]


def test_reregister_replaces(registry, tmp_path):
    path = tmp_path / "ANI_L1_errors_P1.nc"
    register(registry, path)
    assert register(registry, path, result_count=1, sources=["ani/f2.nc"]) is False

    assert registry.get_result(path)["result_count"] == 1
    assert registry.get_sources(path) == ["ani/f2.nc"]
    assert len(registry.get_results()) == 1


def test_unknown_path(registry, tmp_path):
    assert registry.get_result(tmp_path / "nope.nc") is None


def test_filters_and_statistics(registry, tmp_path):
    register(registry, tmp_path / "a.nc")
    register(registry, tmp_path / "b.nc", severity="warning", result_count=2)
    register(registry, tmp_path / "c.nc", check_name="DRN", dataset="DRN", result_count=5)

    assert len(registry.get_results(check_name="ANI")) == 2
    assert len(registry.get_results(severity="warning")) == 1

    stats = registry.get_statistics()
    assert stats == {"total": 3, "errors": 2, "warnings": 1, "flagged_cells": 10}


def test_statistics_leave_out_run_summaries(registry, tmp_path):
    register(registry, tmp_path / "a.nc")
    register(registry, tmp_path / "summary_errors.nc", check_name="SUMMARY", dataset="SUMMARY",
             entry=None, period=None, result_count=4, sources=[])

    assert registry.get_statistics() == {"total": 1, "errors": 1, "warnings": 0, "flagged_cells": 3}
    assert len(registry.get_results(check_name="SUMMARY")) == 1


def test_empty_statistics(registry):
    assert registry.get_statistics()["total"] == 0


def test_close_is_idempotent(registry):
    registry.close()
    registry.close()
