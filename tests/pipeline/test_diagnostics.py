import logging

import pytest

from gridval.pipeline.diagnostics import Diagnostics

pytestmark = pytest.mark.unit


def test_records_are_kept_and_filtered():
    diagnostics = Diagnostics()
    diagnostics.info("Checking", scope="ANI")
    diagnostics.warning("Missing angle", scope="ANI", source="ANI L1 P1", indent=1)
    diagnostics.warning("No surface level", scope="OLF")
    diagnostics.error("boom", scope="DRN")

    assert len(diagnostics) == 4
    assert diagnostics.count("warning") == 2
    assert [r.message for r in diagnostics.records("warning", scope="ANI")] == ["Missing angle"]


def test_messages_are_logged_with_scope_and_source(caplog):
    diagnostics = Diagnostics()
    with caplog.at_level(logging.INFO, logger="gridval.diagnostics"):
        diagnostics.warning("Missing angle", scope="ANI", source="ANI L1 P1", indent=1)

    assert "  [ANI] ANI L1 P1: Missing angle" in caplog.messages
    assert caplog.records[0].levelno == logging.WARNING


def test_to_dataframe():
    diagnostics = Diagnostics()
    diagnostics.info("a", scope="ANI")
    diagnostics.warning("b")

    df = diagnostics.to_dataframe()
    assert list(df.columns) == ["level", "scope", "source", "message", "indent"]
    assert df["level"].tolist() == ["info", "warning"]


def test_empty_dataframe_has_columns():
    assert list(Diagnostics().to_dataframe().columns) == ["level", "scope", "source", "message", "indent"]
