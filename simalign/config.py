"""Configuration management for simalign.

Two config sections:
- alignment: eligibility age, search bracket, tolerances, worker count
- defaults: non-search settings (target table location, resource mode)

Config resolution order (highest priority first):
1. Programmatic (SimalignConfig constructed in code)
2. Environment variables (ALIGNMENT_MIN_AGE, ALIGNMENT_XTOL, etc.)
3. Config file (~/.config/simalign/config.json, managed by `simalign config`)
4. Hardcoded defaults
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "simalign"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class AlignmentConfig:
    """Alignment search configuration.

    - min_age_cohabitation: persons at or above this age are eligible
    - lower_bound / upper_bound: initial bracket for the intercept shift
    - xtol: tolerance on the adjustment passed to the root finder
    - error_tolerance: an endpoint whose |error| is at most this is accepted
    - max_workers: threads for the per-individual passes (1 = sequential)
    """

    min_age_cohabitation: int = 18
    lower_bound: float = -3.0
    upper_bound: float = 3.0
    xtol: float = 1e-5
    error_tolerance: float = 1e-3
    max_iterations: int = 100
    max_workers: int = 4


@dataclass
class DefaultsConfig:
    """Non-search default settings."""

    targets_path: str = "./data/targets.yaml"
    resource_mode: str = "auto"  # "auto" caps workers by machine resources


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class SimalignConfig:
    """Top-level simalign configuration.

    Construct programmatically for package use, or load from config file for CLI use.

    Examples:
        # Package use, no files needed
        config = SimalignConfig(alignment=AlignmentConfig(min_age_cohabitation=16))

        # CLI use, loads from ~/.config/simalign/config.json
        config = SimalignConfig.load()
    """

    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls) -> "SimalignConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        _apply_env_int(config.alignment, "min_age_cohabitation", "ALIGNMENT_MIN_AGE")
        _apply_env_float(config.alignment, "lower_bound", "ALIGNMENT_LOWER_BOUND")
        _apply_env_float(config.alignment, "upper_bound", "ALIGNMENT_UPPER_BOUND")
        _apply_env_float(config.alignment, "xtol", "ALIGNMENT_XTOL")
        _apply_env_float(
            config.alignment, "error_tolerance", "ALIGNMENT_ERROR_TOLERANCE"
        )
        _apply_env_int(config.alignment, "max_iterations", "ALIGNMENT_MAX_ITERATIONS")
        _apply_env_int(config.alignment, "max_workers", "ALIGNMENT_MAX_WORKERS")
        if val := os.environ.get("TARGETS_PATH"):
            config.defaults.targets_path = val
        if val := os.environ.get("RESOURCE_MODE"):
            config.defaults.resource_mode = val

        return config

    def save(self) -> None:
        """Save config to ~/.config/simalign/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {"alignment": asdict(self.alignment)}
        if self.defaults != DefaultsConfig():
            data["defaults"] = asdict(self.defaults)
        with open(CONFIG_FILE, "w") as f:
            json.dump(data, f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "alignment": asdict(self.alignment),
            "defaults": asdict(self.defaults),
        }

    @property
    def targets_path_resolved(self) -> Path:
        """Resolve target table path."""
        return Path(self.defaults.targets_path).expanduser()


# =============================================================================
# Config dict / env application
# =============================================================================

INT_FIELDS = {"min_age_cohabitation", "max_iterations", "max_workers"}
FLOAT_FIELDS = {"lower_bound", "upper_bound", "xtol", "error_tolerance"}


def _apply_dict(config: SimalignConfig, data: dict) -> None:
    """Apply a dict of values onto a SimalignConfig."""
    if "alignment" in data and isinstance(data["alignment"], dict):
        for k, v in data["alignment"].items():
            if not hasattr(config.alignment, k):
                continue
            try:
                if k in INT_FIELDS:
                    v = int(v)
                elif k in FLOAT_FIELDS:
                    v = float(v)
            except (TypeError, ValueError):
                logger.warning("Invalid config value alignment.%s=%r, ignoring", k, v)
                continue
            setattr(config.alignment, k, v)
    if "defaults" in data and isinstance(data["defaults"], dict):
        for k, v in data["defaults"].items():
            if hasattr(config.defaults, k):
                setattr(config.defaults, k, v)


def _apply_env_int(section: Any, attr: str, env_var: str) -> None:
    if val := os.environ.get(env_var):
        try:
            setattr(section, attr, int(val))
        except ValueError:
            logger.warning("Invalid %s=%r, ignoring", env_var, val)


def _apply_env_float(section: Any, attr: str, env_var: str) -> None:
    if val := os.environ.get(env_var):
        try:
            setattr(section, attr, float(val))
        except ValueError:
            logger.warning("Invalid %s=%r, ignoring", env_var, val)


# =============================================================================
# Global config singleton
# =============================================================================

_config: SimalignConfig | None = None


def get_config() -> SimalignConfig:
    """Get the global SimalignConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = SimalignConfig.load()
    return _config


def configure(config: SimalignConfig) -> None:
    """Set the global SimalignConfig programmatically.

    Use this when simalign is used as a package:
        from simalign.config import configure, SimalignConfig, AlignmentConfig
        configure(SimalignConfig(alignment=AlignmentConfig(max_workers=1)))
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
