import pytest
from pydantic import ValidationError

from gridval.checks.ani import ANICheck
from gridval.checks.registry import CheckRegistry
from gridval.schemas.checks import ANISettings, ChecksConfig, OLFSettings

pytestmark = pytest.mark.unit


class TestCheckRegistry:

    def test_default_run_order(self):
        registry = CheckRegistry.default()
        assert [c.name for c in registry] == ["OLF", "ANI", "DRN"]
        assert len(registry) == 3

    def test_settings_from_config(self):
        config = ChecksConfig(ani=ANISettings(active=False),
                              olf=OLFSettings(use_drn_level_as_olf=True))
        registry = CheckRegistry.default(config)
        assert not registry.retrieve("ANI").active
        assert registry.settings_snapshot("olf").use_drn_level_as_olf

    def test_snapshot_is_frozen(self):
        snapshot = CheckRegistry.default().settings_snapshot("OLF")
        with pytest.raises(ValidationError):
            snapshot.use_drn_level_as_olf = True

    def test_unknown_snapshot_is_none(self):
        assert CheckRegistry.default().settings_snapshot("KDW") is None

    def test_duplicate_registration(self):
        registry = CheckRegistry.default()
        with pytest.raises(ValueError, match="already registered"):
            registry.register(ANICheck())

    def test_lookup_is_case_insensitive(self):
        registry = CheckRegistry.default()
        assert registry.retrieve(" drn ").name == "DRN"
        assert "ani" in registry

    def test_selected_keeps_run_order(self):
        registry = CheckRegistry.default()
        assert [c.name for c in registry.selected(["drn", "ANI"])] == ["ANI", "DRN"]
        assert len(registry.selected(None)) == 3

    def test_selected_unknown(self):
        with pytest.raises(ValueError, match="Unknown checks"):
            CheckRegistry.default().selected(["ANI", "XYZ"])
