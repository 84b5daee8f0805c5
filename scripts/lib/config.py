"""
Engagement configuration loader.

Defaults live in DEFAULT_CONFIG; configs/engagement.yaml (or the file named by
$ENGAGEMENT_CONFIG) is deep-merged over them. A handful of environment
variables override individual values after the merge.

Usage:
    from scripts.lib.config import load_config
    config = load_config()
    weights = config["scoring"]
"""
from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from scripts.lib.errors import ConfigError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = PROJECT_ROOT / "configs" / "engagement.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "scoring": {
        "ar_time": {"per_point_seconds": 10, "cap": 40},
        "ar_sessions": {"points_each": 6, "cap": 30},
        "unique_days": {"points_each": 6, "cap": 12},
        "qr_handoff": {"with_ar": 5, "without_ar": 2},
        "cta_clicks": {"points_each": 35, "cap": 35},
        "recency": {"max_points": 5, "decay_days": 30},
    },
    "tiers": {
        "stddev_band": 0.5,
        "min_stddev": 5,
        "min_iqr": 10,
        "high_share": 0.2,
        "medium_share": 0.4,
    },
    "sessions": {
        "visit_gap_minutes": 60,
    },
    "report": {
        "sort_by": "intent_score",
        "descending": True,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """
    Load the engagement config.

    Args:
        path: Explicit YAML path. Falls back to $ENGAGEMENT_CONFIG, then
              configs/engagement.yaml. A missing default file is not an error.

    Returns:
        Fully merged config dict.

    Raises:
        ConfigError: explicit file missing, unreadable, or not a mapping.
    """
    explicit = path or os.getenv("ENGAGEMENT_CONFIG")
    config_path = Path(explicit) if explicit else CONFIG_PATH

    overrides: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config: {e}", config_path=str(config_path))
        if not isinstance(data, dict):
            raise ConfigError("Config root must be a mapping", config_path=str(config_path))
        overrides = data
        logger.debug("Loaded engagement config from %s", config_path)
    elif explicit:
        raise ConfigError(f"Config not found: {config_path}", config_path=str(config_path))

    config = _deep_merge(DEFAULT_CONFIG, overrides)

    gap = os.getenv("ENGAGEMENT_VISIT_GAP_MINUTES")
    if gap:
        try:
            config["sessions"]["visit_gap_minutes"] = float(gap)
        except ValueError:
            raise ConfigError(
                f"ENGAGEMENT_VISIT_GAP_MINUTES must be numeric, got {gap!r}",
            )

    return config
