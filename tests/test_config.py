"""
Tests for rule settings loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from roof_compliance.config import CONFIG_ENV_VAR, DEFAULT_SETTINGS, RuleSettings, load_settings


class TestRuleSettings:
    """Tests for RuleSettings defaults and validation."""

    def test_defaults(self) -> None:
        settings = RuleSettings()

        assert settings.ridge_cap_unit_price == 42.90
        assert settings.ridge_cap_shortage_tolerance == 5.0
        assert settings.ridge_cap_excess_tolerance == 20.0
        assert settings.fallback_ridge_hip_lf == 119.0
        assert settings.drip_edge_unit_price == 2.85
        assert settings.gutter_apron_unit_price == 3.15
        assert settings.ice_water_unit_price == 1.85
        assert settings.ice_water_tolerance_sf == 25.0
        assert settings.default_soffit_depth == 24.0
        assert settings.default_wall_thickness == 6.0
        assert settings.starter_strip_unit_price == 2.85

    def test_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValidationError):
            RuleSettings(ridge_cap_price=10)  # type: ignore[call-arg]

    def test_rejects_non_positive_price(self) -> None:
        with pytest.raises(ValidationError):
            RuleSettings(ridge_cap_unit_price=0)

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_SETTINGS.ridge_cap_unit_price = 1.0  # type: ignore[misc]


class TestLoadSettings:
    """Tests for YAML settings files."""

    def test_no_path_no_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert load_settings() == DEFAULT_SETTINGS

    def test_rules_section(self, tmp_path: Path) -> None:
        config = tmp_path / "rules.yaml"
        config.write_text("rules:\n  ridge_cap_unit_price: 45.5\n  ice_water_tolerance_sf: 30\n")

        settings = load_settings(config)

        assert settings.ridge_cap_unit_price == 45.5
        assert settings.ice_water_tolerance_sf == 30
        assert settings.drip_edge_unit_price == 2.85

    def test_top_level_keys(self, tmp_path: Path) -> None:
        config = tmp_path / "rules.yaml"
        config.write_text("starter_strip_tolerance: 10\n")

        assert load_settings(str(config)).starter_strip_tolerance == 10

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "env.yaml"
        config.write_text("rules:\n  gutter_apron_unit_price: 4.0\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config))

        assert load_settings().gutter_apron_unit_price == 4.0

    def test_empty_file(self, tmp_path: Path) -> None:
        config = tmp_path / "empty.yaml"
        config.write_text("")

        assert load_settings(config) == DEFAULT_SETTINGS

    def test_unknown_key_in_file(self, tmp_path: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text("rules:\n  ridge_cap_colour: red\n")

        with pytest.raises(ValidationError):
            load_settings(config)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")
