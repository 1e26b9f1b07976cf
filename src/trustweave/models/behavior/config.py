"""Configuration for the biometric profiler.

Centralizes deviation thresholds and the bounds used to synthesize a
baseline for a first-seen user so they can be tuned in one place.
"""
from dataclasses import dataclass, field
from typing import Tuple

from trustweave.common.constants import BiometricConstants


@dataclass
class BaselineRanges:
    """Uniform ranges (low, high) for synthesized baseline fields."""
    dwell_time: Tuple[float, float] = (80.0, 120.0)
    flight_time: Tuple[float, float] = (60.0, 90.0)
    dwell_variance: Tuple[float, float] = (15.0, 25.0)
    flight_variance: Tuple[float, float] = (12.0, 20.0)
    typing_speed: Tuple[float, float] = (45.0, 80.0)
    velocity: Tuple[float, float] = (300.0, 500.0)
    acceleration: Tuple[float, float] = (150.0, 250.0)
    click_interval: Tuple[float, float] = (200.0, 300.0)
    orientation: Tuple[float, float] = (0.0, BiometricConstants.FULL_CIRCLE)
    accelerometer: Tuple[float, float] = (-0.1, 0.1)
    gyroscope: Tuple[float, float] = (-5.0, 5.0)
    stability: Tuple[float, float] = (0.5, 1.0)
    session_count: Tuple[int, int] = (50, 150)
    confidence: Tuple[float, float] = (0.8, 1.0)


@dataclass
class BiometricConfig:
    # Learning
    ema_alpha: float = BiometricConstants.EMA_ALPHA
    confidence_step: float = BiometricConstants.CONFIDENCE_STEP
    confidence_ceiling: float = BiometricConstants.CONFIDENCE_CEILING
    anomaly_confidence_cap: float = BiometricConstants.ANOMALY_CONFIDENCE_CAP

    # Keystroke
    keystroke_timing_threshold: float = BiometricConstants.KEYSTROKE_TIMING_THRESHOLD
    keystroke_timing_high: float = BiometricConstants.KEYSTROKE_TIMING_HIGH
    typing_speed_threshold: float = BiometricConstants.TYPING_SPEED_THRESHOLD
    typing_speed_high: float = BiometricConstants.TYPING_SPEED_HIGH

    # Mouse
    mouse_threshold: float = BiometricConstants.MOUSE_THRESHOLD
    mouse_high: float = BiometricConstants.MOUSE_HIGH
    smooth_velocity_variance: float = BiometricConstants.SMOOTH_VELOCITY_VARIANCE
    smooth_acceleration_variance: float = BiometricConstants.SMOOTH_ACCELERATION_VARIANCE
    jerky_velocity_variance: float = BiometricConstants.JERKY_VELOCITY_VARIANCE
    jerky_acceleration_variance: float = BiometricConstants.JERKY_ACCELERATION_VARIANCE
    pattern_change_confidence: float = BiometricConstants.PATTERN_CHANGE_CONFIDENCE
    pattern_change_deviation: float = BiometricConstants.PATTERN_CHANGE_DEVIATION

    # Device sensors
    sensor_threshold: float = BiometricConstants.SENSOR_THRESHOLD
    sensor_high: float = BiometricConstants.SENSOR_HIGH
    orientation_threshold: float = BiometricConstants.ORIENTATION_THRESHOLD
    orientation_confidence: float = BiometricConstants.ORIENTATION_CONFIDENCE

    # Embedding
    embedding_dim: int = BiometricConstants.EMBEDDING_DIM

    # Numerical guard for relative deviation against a ~0 baseline
    epsilon: float = 1e-9

    baseline: BaselineRanges = field(default_factory=BaselineRanges)
