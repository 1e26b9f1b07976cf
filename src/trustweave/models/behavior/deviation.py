"""Deviation measures and per-channel anomaly detection.

Compares one session's aggregates against a user's baseline. Scalars use
relative deviation |observed - baseline| / baseline; motion-sensor vectors
use the RMS of component differences; orientation is circular.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from trustweave.common.constants import BiometricConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.models.behavior.config import BiometricConfig
from trustweave.models.behavior.profile import BiometricProfile, MovementPattern


class AnomalyType(str, Enum):
    KEYSTROKE = "keystroke"
    MOUSE = "mouse"
    DEVICE = "device"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class BiometricAnomaly:
    """One flagged deviation from the user's baseline.

    Attributes:
        anomaly_type: Channel the deviation was found on
        severity: low, medium or high
        description: Human-readable summary used in verdict explanations
        confidence: Detector certainty, capped below 1
        deviation_score: Raw deviation that triggered the anomaly
    """
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    description: str
    confidence: float
    deviation_score: float


def relative_deviation(observed: float, baseline: float, epsilon: float = 1e-9) -> float:
    return abs(observed - baseline) / max(abs(baseline), epsilon)


def rms_deviation(current: Sequence[float], baseline: Sequence[float]) -> float:
    """Root-mean-square of component differences; 1.0 on length mismatch."""
    if len(current) != len(baseline) or len(current) == 0:
        return 1.0
    diff = np.asarray(current, dtype=np.float64) - np.asarray(baseline, dtype=np.float64)
    return float(np.sqrt(np.mean(np.square(diff))))


def circular_deviation(
    observed: float,
    baseline: float,
    full_circle: float = BiometricConstants.FULL_CIRCLE,
) -> float:
    """Shorter-arc angular distance normalized to [0, 0.5]."""
    d = abs(observed - baseline) % full_circle
    return min(d, full_circle - d) / full_circle


def variance(values: Sequence[float]) -> float:
    """Population variance."""
    return float(np.var(values)) if len(values) else 0.0


def classify_movement_pattern(
    velocity: Sequence[float],
    acceleration: Sequence[float],
    config: Optional[BiometricConfig] = None,
) -> MovementPattern:
    config = config or BiometricConfig()
    velocity_var = variance(velocity)
    acceleration_var = variance(acceleration)

    if (velocity_var < config.smooth_velocity_variance
            and acceleration_var < config.smooth_acceleration_variance):
        return MovementPattern.SMOOTH
    if (velocity_var > config.jerky_velocity_variance
            or acceleration_var > config.jerky_acceleration_variance):
        return MovementPattern.JERKY
    return MovementPattern.MIXED


class DeviationDetector:
    """Flag keystroke, mouse and device-sensor deviations from a baseline.

    Pure with respect to the profile: it only reads it.
    """

    def __init__(self, config: Optional[BiometricConfig] = None):
        self.config = config or BiometricConfig()

    def detect(self, sample: BiometricSample, profile: BiometricProfile) -> List[BiometricAnomaly]:
        """All anomalies for a sample, in keystroke, mouse, device order."""
        return (
            self.analyze_keystroke(sample, profile)
            + self.analyze_mouse(sample, profile)
            + self.analyze_device(sample, profile)
        )

    def _scaled(
        self,
        anomaly_type: AnomalyType,
        deviation: float,
        threshold: float,
        high: float,
        description: str,
    ) -> Optional[BiometricAnomaly]:
        if deviation <= threshold:
            return None
        return BiometricAnomaly(
            anomaly_type=anomaly_type,
            severity=AnomalySeverity.HIGH if deviation > high else AnomalySeverity.MEDIUM,
            description=description,
            confidence=min(self.config.anomaly_confidence_cap, deviation),
            deviation_score=deviation,
        )

    def analyze_keystroke(self, sample: BiometricSample, profile: BiometricProfile) -> List[BiometricAnomaly]:
        cfg = self.config
        ks = sample.keystroke
        base = profile.keystroke
        dwell = ks.mean_dwell_time
        flight = ks.mean_flight_time

        candidates = [
            self._scaled(
                AnomalyType.KEYSTROKE,
                relative_deviation(dwell, base.avg_dwell_time, cfg.epsilon),
                cfg.keystroke_timing_threshold,
                cfg.keystroke_timing_high,
                f"Unusual key dwell time: {dwell:.1f}ms vs expected {base.avg_dwell_time:.1f}ms",
            ),
            self._scaled(
                AnomalyType.KEYSTROKE,
                relative_deviation(flight, base.avg_flight_time, cfg.epsilon),
                cfg.keystroke_timing_threshold,
                cfg.keystroke_timing_high,
                f"Unusual key flight time: {flight:.1f}ms vs expected {base.avg_flight_time:.1f}ms",
            ),
            self._scaled(
                AnomalyType.KEYSTROKE,
                relative_deviation(ks.typing_speed, base.preferred_typing_speed, cfg.epsilon),
                cfg.typing_speed_threshold,
                cfg.typing_speed_high,
                f"Unusual typing speed: {ks.typing_speed:.1f} WPM "
                f"vs expected {base.preferred_typing_speed:.1f} WPM",
            ),
        ]
        return [a for a in candidates if a is not None]

    def analyze_mouse(self, sample: BiometricSample, profile: BiometricProfile) -> List[BiometricAnomaly]:
        cfg = self.config
        mouse = sample.mouse
        base = profile.mouse
        velocity = mouse.mean_velocity

        anomalies = [
            a for a in (
                self._scaled(
                    AnomalyType.MOUSE,
                    relative_deviation(velocity, base.avg_velocity, cfg.epsilon),
                    cfg.mouse_threshold,
                    cfg.mouse_high,
                    f"Unusual mouse velocity: {velocity:.1f} vs expected {base.avg_velocity:.1f}",
                ),
                self._scaled(
                    AnomalyType.MOUSE,
                    relative_deviation(mouse.mean_acceleration, base.avg_acceleration, cfg.epsilon),
                    cfg.mouse_threshold,
                    cfg.mouse_high,
                    "Unusual mouse acceleration pattern detected",
                ),
            ) if a is not None
        ]

        pattern = classify_movement_pattern(mouse.velocity, mouse.acceleration, cfg)
        if pattern != base.movement_pattern:
            anomalies.append(BiometricAnomaly(
                anomaly_type=AnomalyType.MOUSE,
                severity=AnomalySeverity.MEDIUM,
                description=(
                    f"Movement pattern changed from {base.movement_pattern.value} to {pattern.value}"
                ),
                confidence=cfg.pattern_change_confidence,
                deviation_score=cfg.pattern_change_deviation,
            ))
        return anomalies

    def analyze_device(self, sample: BiometricSample, profile: BiometricProfile) -> List[BiometricAnomaly]:
        cfg = self.config
        sensors = sample.sensors
        base = profile.device

        anomalies = [
            a for a in (
                self._scaled(
                    AnomalyType.DEVICE,
                    rms_deviation(sensors.accelerometer, base.accelerometer_baseline),
                    cfg.sensor_threshold,
                    cfg.sensor_high,
                    "Unusual device movement detected (accelerometer)",
                ),
                self._scaled(
                    AnomalyType.DEVICE,
                    rms_deviation(sensors.gyroscope, base.gyroscope_baseline),
                    cfg.sensor_threshold,
                    cfg.sensor_high,
                    "Unusual device rotation detected (gyroscope)",
                ),
            ) if a is not None
        ]

        orientation = circular_deviation(sensors.orientation, base.orientation_preference)
        if orientation > cfg.orientation_threshold:
            anomalies.append(BiometricAnomaly(
                anomaly_type=AnomalyType.DEVICE,
                severity=AnomalySeverity.LOW,
                description="Device orientation differs from usual preference",
                confidence=cfg.orientation_confidence,
                deviation_score=orientation,
            ))
        return anomalies
