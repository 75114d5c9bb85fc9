"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from gridval.schemas import ParamConfig, UserConfig, CLIConfig, InternalConfig
from gridval.schemas.resolve import deep_merge, resolve_config

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        config = resolve_config(ParamConfig(), None, None)

        assert isinstance(config, InternalConfig)
        assert config.engine.min_entry == 1
        assert config.engine.level_error_margin == 0.005
        assert config.engine.checks_to_run is None
        assert config.checks.olf.distance_below_surface == "1"
        assert config.output.complevel == 4

    def test_user_overrides_param(self):
        config = resolve_config(ParamConfig(), UserConfig(MIN_LAYER=2, MAX_LAYER=4), None)
        assert (config.engine.min_entry, config.engine.max_entry) == (2, 4)

    def test_cli_overrides_user(self):
        user = UserConfig(MIN_LAYER=2, MAX_LAYER=4, CHECKS=["ANI"])
        cli = CLIConfig(max_entry=3, checks="drn,olf")
        config = resolve_config(ParamConfig(), user, cli)

        assert config.engine.min_entry == 2
        assert config.engine.max_entry == 3
        assert config.engine.checks_to_run == ["DRN", "OLF"]

    def test_check_settings_merge_keeps_other_defaults(self):
        user = UserConfig(CHECK_SETTINGS={"ANI": {"max_factor": 0.9}})
        config = resolve_config(ParamConfig(), user)

        assert config.checks.ani.max_factor == "0.9"
        assert config.checks.ani.min_angle == "0"
        assert config.checks.drn.max_conductance == "10000"

    def test_inverted_bounds_after_merge_rejected(self):
        user = UserConfig(MIN_LAYER=5)
        cli = CLIConfig(max_entry=2)
        with pytest.raises(ValidationError, match="min_entry"):
            resolve_config(ParamConfig(), user, cli)

    def test_no_plots_and_log_level(self):
        config = resolve_config(ParamConfig(), None, CLIConfig(no_plots=True, log_level="DEBUG"))
        assert config.visualization.enabled is False
        assert config.logging.level == "DEBUG"

    def test_internal_config_is_frozen(self, internal_config):
        with pytest.raises(ValidationError):
            internal_config.base_dir = "/tmp/other"

    def test_dict_inputs(self):
        config = resolve_config({}, {"MAX_PERIOD": 3}, {"min_period": 2})
        assert (config.engine.min_period, config.engine.max_period) == (2, 3)


class TestDeepMerge:

    def test_nested_merge(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        assert deep_merge(base, {"b": {"d": 4}}, {"e": 5}) == {"a": 1, "b": {"c": 2, "d": 4}, "e": 5}
        assert base == {"a": 1, "b": {"c": 2, "d": 3}}
