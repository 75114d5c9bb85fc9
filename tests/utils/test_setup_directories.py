from pathlib import Path

from gridval.setup_directories import get_log_path, get_plot_path, setup_output_directories


def test_setup_output_directories_creates_all(tmp_path):
    dirs = setup_output_directories(tmp_path)

    assert set(dirs.keys()) == {"base", "results", "plots", "logs", "registry"}

    for key, path in dirs.items():
        assert isinstance(path, Path)
        if key != "registry":
            assert path.is_dir()
    assert dirs["registry"] == tmp_path.resolve() / "results.db"


def test_setup_output_directories_is_idempotent(tmp_path):
    assert setup_output_directories(tmp_path) == setup_output_directories(tmp_path)


def test_registry_filename(tmp_path):
    dirs = setup_output_directories(tmp_path, registry_filename="runs.db")
    assert dirs["registry"].name == "runs.db"


def test_default_base_is_under_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    dirs = setup_output_directories()
    assert dirs["base"] == tmp_path.resolve() / "gridval_output"


def test_plot_path_mirrors_check_directory(tmp_path):
    dirs = setup_output_directories(tmp_path)
    result = dirs["results"] / "DRN" / "DRN_L2_warnings_P1.nc"

    path = get_plot_path(dirs, result, "pdf")
    assert path == dirs["plots"] / "DRN" / "DRN_L2_warnings_P1.pdf"
    assert path.parent.is_dir()


def test_log_path(tmp_path):
    dirs = setup_output_directories(tmp_path)
    assert get_log_path(dirs, "abc") == dirs["logs"] / "validation_abc.log"
    assert get_log_path(dirs).name.startswith("validation_")
