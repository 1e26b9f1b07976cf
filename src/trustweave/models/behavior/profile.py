"""Behavioral biometric profile data structures.

Defines the per-user baseline the profiler compares each session against
and blends each session into via exponential moving average.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from trustweave.common.constants import BiometricConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.models.behavior.config import BaselineRanges


class MovementPattern(str, Enum):
    """Mouse movement class derived from velocity/acceleration variance."""
    SMOOTH = "smooth"
    JERKY = "jerky"
    MIXED = "mixed"


@dataclass
class KeystrokeProfile:
    avg_dwell_time: float
    avg_flight_time: float
    dwell_time_variance: float
    flight_time_variance: float
    preferred_typing_speed: float


@dataclass
class MouseProfile:
    avg_velocity: float
    avg_acceleration: float
    movement_pattern: MovementPattern
    preferred_click_interval: float


@dataclass
class DeviceProfile:
    orientation_preference: float
    accelerometer_baseline: List[float]
    gyroscope_baseline: List[float]
    device_stability: float


def _ema(current: float, observed: float, alpha: float) -> float:
    return (1 - alpha) * current + alpha * observed


def _circular_ema(current: float, observed: float, alpha: float) -> float:
    """Blend two angles in degrees along the shorter arc."""
    full_circle = BiometricConstants.FULL_CIRCLE
    diff = ((observed - current + full_circle / 2) % full_circle) - full_circle / 2
    return (current + alpha * diff) % full_circle


@dataclass
class BiometricProfile:
    """Rolling behavioral baseline for one user.

    Created lazily on the first sample for a user and never deleted.
    Mutated in place by ``update_ema``; callers outside the profiler
    should only see copies.

    Attributes:
        user_id: User this profile belongs to
        keystroke: Typing timing and speed baseline
        mouse: Pointer kinematics baseline
        device: Motion-sensor baseline
        session_count: Sessions blended into the profile
        confidence: How settled the baseline is (0-1)
        last_updated: Timestamp of the last blended session
    """
    user_id: str
    keystroke: KeystrokeProfile
    mouse: MouseProfile
    device: DeviceProfile
    session_count: int = 0
    confidence: float = 0.0
    last_updated: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def synthesize(
        cls,
        user_id: str,
        rng: np.random.Generator,
        ranges: Optional[BaselineRanges] = None,
    ) -> "BiometricProfile":
        """Create a plausible starting baseline for a first-seen user.

        Every field is drawn uniformly from ``ranges``; the movement
        pattern is a coin flip between smooth and jerky.
        """
        r = ranges or BaselineRanges()

        def draw(bounds) -> float:
            return float(rng.uniform(*bounds))

        keystroke = KeystrokeProfile(
            avg_dwell_time=draw(r.dwell_time),
            avg_flight_time=draw(r.flight_time),
            dwell_time_variance=draw(r.dwell_variance),
            flight_time_variance=draw(r.flight_variance),
            preferred_typing_speed=draw(r.typing_speed),
        )
        mouse = MouseProfile(
            avg_velocity=draw(r.velocity),
            avg_acceleration=draw(r.acceleration),
            movement_pattern=MovementPattern.SMOOTH if rng.random() > 0.5 else MovementPattern.JERKY,
            preferred_click_interval=draw(r.click_interval),
        )
        device = DeviceProfile(
            orientation_preference=draw(r.orientation),
            accelerometer_baseline=[draw(r.accelerometer) for _ in range(3)],
            gyroscope_baseline=[draw(r.gyroscope) for _ in range(3)],
            device_stability=draw(r.stability),
        )
        low, high = r.session_count
        return cls(
            user_id=user_id,
            keystroke=keystroke,
            mouse=mouse,
            device=device,
            session_count=int(rng.integers(low, high + 1)),
            confidence=draw(r.confidence),
        )

    def update_ema(
        self,
        sample: BiometricSample,
        alpha: float,
        confidence_step: float,
        confidence_ceiling: float,
    ) -> None:
        """Blend one session into the baseline.

        The movement pattern is categorical and is not blended. Sensor
        vectors are only blended when their length matches the baseline.
        """
        ks = sample.keystroke
        self.keystroke.avg_dwell_time = _ema(self.keystroke.avg_dwell_time, ks.mean_dwell_time, alpha)
        self.keystroke.avg_flight_time = _ema(self.keystroke.avg_flight_time, ks.mean_flight_time, alpha)
        self.keystroke.dwell_time_variance = _ema(
            self.keystroke.dwell_time_variance, float(np.var(ks.dwell_times)), alpha
        )
        self.keystroke.flight_time_variance = _ema(
            self.keystroke.flight_time_variance, float(np.var(ks.flight_times)), alpha
        )
        self.keystroke.preferred_typing_speed = _ema(
            self.keystroke.preferred_typing_speed, ks.typing_speed, alpha
        )

        mouse = sample.mouse
        self.mouse.avg_velocity = _ema(self.mouse.avg_velocity, mouse.mean_velocity, alpha)
        self.mouse.avg_acceleration = _ema(self.mouse.avg_acceleration, mouse.mean_acceleration, alpha)
        self.mouse.preferred_click_interval = _ema(
            self.mouse.preferred_click_interval, mouse.mean_click_interval, alpha
        )

        sensors = sample.sensors
        if len(sensors.accelerometer) == len(self.device.accelerometer_baseline):
            self.device.accelerometer_baseline = [
                _ema(base, obs, alpha)
                for base, obs in zip(self.device.accelerometer_baseline, sensors.accelerometer)
            ]
        if len(sensors.gyroscope) == len(self.device.gyroscope_baseline):
            self.device.gyroscope_baseline = [
                _ema(base, obs, alpha)
                for base, obs in zip(self.device.gyroscope_baseline, sensors.gyroscope)
            ]
        self.device.orientation_preference = _circular_ema(
            self.device.orientation_preference, sensors.orientation, alpha
        )
        # Stability falls as the device moves more
        motion_rms = float(np.sqrt(np.mean(np.square(sensors.accelerometer))))
        self.device.device_stability = _ema(self.device.device_stability, 1.0 / (1.0 + motion_rms), alpha)

        self.session_count += 1
        self.confidence = min(confidence_ceiling, self.confidence + confidence_step)
        self.last_updated = sample.timestamp

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mouse"]["movement_pattern"] = self.mouse.movement_pattern.value
        return data
