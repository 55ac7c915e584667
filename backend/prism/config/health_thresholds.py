"""
Health monitor configuration loader.

Loads sampling interval, history sizes and per-metric threshold overrides
from config/health_thresholds.yml. Metrics not listed in the file keep the
built-in thresholds from prism.monitoring.metrics.

Usage:
    from prism.config.health_thresholds import HealthThresholdsLoader

    loader = HealthThresholdsLoader()
    loader.get_interval_seconds()          # 30.0
    definitions = loader.get_metric_definitions()
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from prism.monitoring.metrics import (
    DEFAULT_METRIC_DEFINITIONS,
    MetricDefinition,
    apply_threshold_overrides,
)

logger = logging.getLogger(__name__)

_FALLBACK_INTERVAL_SECONDS = 30.0
_FALLBACK_ALERT_HISTORY = 50
_FALLBACK_METRIC_HISTORY = 20

CONFIG_FILENAME = "health_thresholds.yml"


class HealthThresholdsLoader:
    """Reads config/health_thresholds.yml once; reload() re-reads it."""

    def __init__(self, config_path: Optional[str] = None):
        self._config_path = config_path or os.getenv("HEALTH_THRESHOLDS_PATH")
        self._raw: Dict[str, Any] = {}
        self._load()

    def _resolve_path(self) -> Path:
        if self._config_path:
            return Path(self._config_path)

        candidates = [
            Path(__file__).parent.parent.parent.parent / "config" / CONFIG_FILENAME,
            Path(os.getcwd()) / "config" / CONFIG_FILENAME,
            Path(os.getcwd()) / ".." / "config" / CONFIG_FILENAME,
        ]

        for p in candidates:
            resolved = p.resolve()
            if resolved.exists():
                return resolved

        raise FileNotFoundError(
            f"{CONFIG_FILENAME} not found in: {[str(p) for p in candidates]}"
        )

    def _load(self) -> None:
        try:
            path = self._resolve_path()
            logger.info("Loading health thresholds from %s", path)

            with open(path, "r") as f:
                self._raw = yaml.safe_load(f) or {}

            logger.info(
                "Loaded health thresholds: groups with overrides=%s",
                sorted((self._raw.get("thresholds") or {}).keys()),
            )
        except FileNotFoundError:
            logger.warning(
                "%s not found, using built-in defaults", CONFIG_FILENAME
            )
            self._raw = {}

    def reload(self) -> None:
        """Re-read the YAML from disk."""
        self._load()

    def _monitor_setting(self, key: str, fallback):
        return (self._raw.get("monitor") or {}).get(key, fallback)

    def get_interval_seconds(self) -> float:
        return float(self._monitor_setting("interval_seconds", _FALLBACK_INTERVAL_SECONDS))

    def get_alert_history(self) -> int:
        return int(self._monitor_setting("alert_history", _FALLBACK_ALERT_HISTORY))

    def get_metric_history(self) -> int:
        return int(self._monitor_setting("metric_history", _FALLBACK_METRIC_HISTORY))

    def get_metric_definitions(self) -> Dict[str, Tuple[MetricDefinition, ...]]:
        """Built-in metric definitions with thresholds from the file applied."""
        overrides = self._raw.get("thresholds") or {}
        return apply_threshold_overrides(DEFAULT_METRIC_DEFINITIONS, overrides)

    def get_all(self) -> Dict[str, Any]:
        """Return the effective config for API exposure."""
        return {
            "version": self._raw.get("version", 1),
            "interval_seconds": self.get_interval_seconds(),
            "alert_history": self.get_alert_history(),
            "metric_history": self.get_metric_history(),
            "thresholds": {
                group: {
                    d.name: {"warning": d.threshold.warning, "critical": d.threshold.critical}
                    for d in definitions
                }
                for group, definitions in self.get_metric_definitions().items()
            },
        }
