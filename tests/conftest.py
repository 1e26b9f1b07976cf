"""Shared test factories for TrustWeave.

Factories are exposed as fixtures so test modules need no imports
from the tests tree.
"""

import os
from datetime import datetime, timezone

import pytest

from trustweave.common.config import Config, reset_config
from trustweave.data.schemas import (
    BiometricSample,
    DeviceSensors,
    KeystrokeDynamics,
    Location,
    Merchant,
    MouseMovements,
    Transaction,
)
from trustweave.models.behavior import (
    BiometricProfile,
    DeviceProfile,
    KeystrokeProfile,
    MouseProfile,
    MovementPattern,
)


def build_transaction(
    transaction_id: str = "txn_001",
    user_id: str = "user_001",
    amount: float = 120.0,
    hour: int = 14,
    category: str = "retail",
    merchant_id: str = "merch_001",
    device_id: str = "dev_001",
    city: str = "New York",
    country: str = "US",
    lat: float = 40.7128,
    lng: float = -74.0060,
    payment_method: str = "credit_card",
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        user_id=user_id,
        amount=amount,
        timestamp=datetime(2026, 3, 10, hour, 15, tzinfo=timezone.utc),
        location=Location(lat=lat, lng=lng, country=country, city=city),
        merchant=Merchant(merchant_id=merchant_id, name=f"Merchant {merchant_id}", category=category),
        device_id=device_id,
        payment_method=payment_method,
    )


def build_biometric(
    user_id: str = "user_001",
    session_id: str = "sess_001",
    dwell: float = 100.0,
    flight: float = 75.0,
    typing_speed: float = 60.0,
    velocity=(400.0, 410.0, 390.0),
    acceleration=(200.0, 205.0, 195.0),
    click_intervals=(250.0, 240.0),
    accelerometer=(0.0, 0.0, 0.0),
    gyroscope=(0.0, 0.0, 0.0),
    orientation: float = 0.0,
) -> BiometricSample:
    return BiometricSample(
        session_id=session_id,
        user_id=user_id,
        keystroke=KeystrokeDynamics(
            dwell_times=[dwell] * 5,
            flight_times=[flight] * 5,
            typing_speed=typing_speed,
        ),
        mouse=MouseMovements(
            velocity=list(velocity),
            acceleration=list(acceleration),
            click_intervals=list(click_intervals),
        ),
        sensors=DeviceSensors(
            accelerometer=list(accelerometer),
            gyroscope=list(gyroscope),
            orientation=orientation,
        ),
    )


def build_profile(
    user_id: str = "user_001",
    orientation: float = 0.0,
    confidence: float = 0.5,
) -> BiometricProfile:
    """Baseline that the default biometric sample matches exactly."""
    return BiometricProfile(
        user_id=user_id,
        keystroke=KeystrokeProfile(
            avg_dwell_time=100.0,
            avg_flight_time=75.0,
            dwell_time_variance=20.0,
            flight_time_variance=15.0,
            preferred_typing_speed=60.0,
        ),
        mouse=MouseProfile(
            avg_velocity=400.0,
            avg_acceleration=200.0,
            movement_pattern=MovementPattern.SMOOTH,
            preferred_click_interval=245.0,
        ),
        device=DeviceProfile(
            orientation_preference=orientation,
            accelerometer_baseline=[0.0, 0.0, 0.0],
            gyroscope_baseline=[0.0, 0.0, 0.0],
            device_stability=0.9,
        ),
        session_count=10,
        confidence=confidence,
    )


@pytest.fixture
def make_transaction():
    """Factory for transactions with sensible daytime retail defaults."""
    return build_transaction


@pytest.fixture
def make_biometric():
    """Factory for biometric samples with steady, smooth behavior."""
    return build_biometric


@pytest.fixture
def test_config(monkeypatch):
    """Deterministic, noise-free configuration."""
    for name in list(os.environ):
        if name.startswith("TRUSTWEAVE_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    config = Config(model_seed=7, score_noise_scale=0.0)
    yield config
    reset_config()


@pytest.fixture
def make_profile():
    """Factory for a settled baseline matching the default biometric sample."""
    return build_profile
