"""Behavioral biometrics: per-user baselines and deviation detection."""

from trustweave.models.behavior.config import BiometricConfig, BaselineRanges
from trustweave.models.behavior.profile import (
    BiometricProfile,
    KeystrokeProfile,
    MouseProfile,
    DeviceProfile,
    MovementPattern,
)
from trustweave.models.behavior.deviation import (
    AnomalyType,
    AnomalySeverity,
    BiometricAnomaly,
    DeviationDetector,
    relative_deviation,
    rms_deviation,
    circular_deviation,
    classify_movement_pattern,
)
from trustweave.models.behavior.profiler import BiometricProfiler

__all__ = [
    "BiometricConfig",
    "BaselineRanges",
    "BiometricProfile",
    "KeystrokeProfile",
    "MouseProfile",
    "DeviceProfile",
    "MovementPattern",
    "AnomalyType",
    "AnomalySeverity",
    "BiometricAnomaly",
    "DeviationDetector",
    "relative_deviation",
    "rms_deviation",
    "circular_deviation",
    "classify_movement_pattern",
    "BiometricProfiler",
]
