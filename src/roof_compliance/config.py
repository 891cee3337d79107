"""
Rule settings for the Roof Compliance Engine.

Unit rates, tolerances and calculation defaults are configuration rather
than business truth; they can be overridden from a YAML file.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_ENV_VAR = "ROOF_COMPLIANCE_CONFIG"


class RuleSettings(BaseModel):
    """Rates, tolerances and defaults used by the analyzers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Hip & ridge cap
    ridge_cap_unit_price: float = Field(default=42.90, gt=0, description="$/LF purpose-built")
    ridge_cap_shortage_tolerance: float = Field(default=5.0, ge=0, description="LF")
    ridge_cap_excess_tolerance: float = Field(default=20.0, ge=0, description="LF")
    ridge_per_roof_area: float = Field(default=0.05, gt=0, description="LF ridge per SF roof")
    fallback_ridge_hip_lf: float = Field(default=119.0, gt=0)

    # Drip edge / gutter apron
    drip_edge_unit_price: float = Field(default=2.85, gt=0, description="$/LF")
    gutter_apron_unit_price: float = Field(default=3.15, gt=0, description="$/LF")
    edge_tolerance_lf: float = Field(default=0.0, ge=0)
    edge_excess_ratio: float = Field(default=0.20, ge=0)

    # Ice & water barrier
    ice_water_unit_price: float = Field(default=1.85, gt=0, description="$/SF")
    ice_water_tolerance_sf: float = Field(default=25.0, ge=0)
    ice_barrier_code_minimum: float = Field(default=24.0, gt=0, description="Inches inside wall")
    default_soffit_depth: float = Field(default=24.0, ge=0, description="Inches")
    default_wall_thickness: float = Field(default=6.0, ge=0, description="Inches")
    ice_water_safety_margin: float = Field(default=0.05, ge=0)

    # Starter strip
    starter_strip_unit_price: float = Field(default=2.85, gt=0, description="$/LF")
    starter_strip_tolerance: float = Field(default=5.0, ge=0, description="LF")


DEFAULT_SETTINGS = RuleSettings()


def load_settings(path: str | Path | None = None) -> RuleSettings:
    """
    Load rule settings, overriding defaults with values from a YAML file.

    Args:
        path: YAML file to read. When omitted, the file named by the
            ROOF_COMPLIANCE_CONFIG environment variable is used if set.

    Returns:
        Validated settings

    Raises:
        FileNotFoundError: If the configured file does not exist
        pydantic.ValidationError: If the file holds unknown keys or bad values
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return DEFAULT_SETTINGS
        path = env_path

    config_path = Path(path)
    with config_path.open(encoding="utf-8") as fh:
        raw: dict[str, Any] | None = yaml.safe_load(fh)

    # Allow the rule settings to sit under a top-level "rules" key
    overrides = (raw or {}).get("rules", raw or {})
    return RuleSettings.model_validate(overrides)
