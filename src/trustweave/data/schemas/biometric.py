"""Behavioral biometric sample schema.

One sample is the aggregate of a single interaction session: keystroke
timings, mouse kinematics and device motion sensors.
"""

from datetime import datetime, timezone
from typing import List

import numpy as np
from pydantic import BaseModel, Field


class KeystrokeDynamics(BaseModel):
    """Keystroke timings in milliseconds and typing speed in WPM."""
    dwell_times: List[float] = Field(..., min_length=1, description="Key hold durations (ms)")
    flight_times: List[float] = Field(..., min_length=1, description="Key-to-key gaps (ms)")
    typing_speed: float = Field(..., ge=0, description="Words per minute")

    model_config = {"allow_inf_nan": False}

    @property
    def mean_dwell_time(self) -> float:
        return float(np.mean(self.dwell_times))

    @property
    def mean_flight_time(self) -> float:
        return float(np.mean(self.flight_times))


class MouseMovements(BaseModel):
    """Mouse kinematics sampled during the session."""
    velocity: List[float] = Field(..., min_length=1)
    acceleration: List[float] = Field(..., min_length=1)
    click_intervals: List[float] = Field(..., min_length=1, description="Gaps between clicks (ms)")

    model_config = {"allow_inf_nan": False}

    @property
    def mean_velocity(self) -> float:
        return float(np.mean(self.velocity))

    @property
    def mean_acceleration(self) -> float:
        return float(np.mean(self.acceleration))

    @property
    def mean_click_interval(self) -> float:
        return float(np.mean(self.click_intervals))


class DeviceSensors(BaseModel):
    """Averaged device motion readings."""
    accelerometer: List[float] = Field(..., min_length=1, description="x, y, z")
    gyroscope: List[float] = Field(..., min_length=1, description="alpha, beta, gamma")
    orientation: float = Field(default=0.0, description="Screen orientation in degrees")

    model_config = {"allow_inf_nan": False}

    @property
    def motion_magnitude(self) -> float:
        """Euclidean norm of the accelerometer vector."""
        return float(np.linalg.norm(self.accelerometer))


class BiometricSample(BaseModel):
    """Behavioral biometric sample for one session."""
    session_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    keystroke: KeystrokeDynamics
    mouse: MouseMovements
    sensors: DeviceSensors
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}
