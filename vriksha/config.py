"""
vriksha.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for gameplay tuning (reward amount, level
thresholds, badge threshold, trend window) and process settings
(seed file, log level).  Every key is optional; missing keys fall back
to the defaults in :mod:`vriksha.constants`.

Usage::

    from vriksha.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.points_per_update) # 10
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from vriksha.constants import (
    GUARDIAN_MIN_POINTS,
    HERO_MIN_POINTS,
    HIGH_SCORER_POINTS,
    POINTS_PER_UPDATE,
    TREND_WINDOW,
)


def _default_thresholds() -> dict[str, int]:
    return {
        "guardian": GUARDIAN_MIN_POINTS,
        "hero": HERO_MIN_POINTS,
    }


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class VrikshaConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    community_name: str = "Vriksha Tracker"

    # Gameplay
    points_per_update: int = POINTS_PER_UPDATE
    level_thresholds: dict[str, int] = field(default_factory=_default_thresholds)
    high_scorer_points: int = HIGH_SCORER_POINTS
    trend_window: int = TREND_WINDOW

    # Process
    seed_file: str | None = None  # YAML seed loaded into the store at start-up
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> VrikshaConfig:
    """Read *path* and return a :class:`VrikshaConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a numeric setting is negative or the level thresholds are not
        ascending.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    thresholds = _default_thresholds()
    thresholds.update({k: int(v) for k, v in (raw.get("level_thresholds") or {}).items()})

    cfg = VrikshaConfig(
        community_name=raw.get("community_name", "Vriksha Tracker"),
        points_per_update=int(raw.get("points_per_update", POINTS_PER_UPDATE)),
        level_thresholds=thresholds,
        high_scorer_points=int(raw.get("high_scorer_points", HIGH_SCORER_POINTS)),
        trend_window=int(raw.get("trend_window", TREND_WINDOW)),
        seed_file=raw.get("seed_file"),
        log_level=str(raw.get("log_level", "INFO")).upper(),
    )
    _validate(cfg)
    return cfg


def _validate(cfg: VrikshaConfig) -> None:
    if cfg.points_per_update < 0:
        raise ValueError("points_per_update must be >= 0")
    if cfg.trend_window < 1:
        raise ValueError("trend_window must be >= 1")
    if not 0 < cfg.level_thresholds["guardian"] < cfg.level_thresholds["hero"]:
        raise ValueError(
            "level_thresholds must satisfy 0 < guardian < hero "
            f"(got {cfg.level_thresholds})"
        )


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the root logger at *level*."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
