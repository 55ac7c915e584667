"""
File-based configuration loaders.
"""

from prism.config.health_thresholds import HealthThresholdsLoader

__all__ = ["HealthThresholdsLoader"]
