"""Unit tests for the behavioral biometric profiler.

Tests for:
- Per-channel deviation detection
- EMA baseline learning
- Session log retention
- Biometric embedding
"""

import numpy as np
import pytest

from trustweave.common.constants import BiometricConstants
from trustweave.models.behavior import (
    AnomalySeverity,
    AnomalyType,
    BiometricProfiler,
    MovementPattern,
    circular_deviation,
    classify_movement_pattern,
    relative_deviation,
    rms_deviation,
)


@pytest.fixture
def profiler(make_profile):
    profiler = BiometricProfiler(rng=np.random.default_rng(11))
    profiler.register_profile(make_profile())
    return profiler


class TestDeviationMeasures:
    """Tests for the distance helpers."""

    def test_relative_deviation(self):
        assert relative_deviation(200.0, 100.0) == pytest.approx(1.0)
        assert relative_deviation(5.0, 0.0) > 1e6

    def test_rms_deviation_length_mismatch(self):
        assert rms_deviation([1.0, 2.0], [1.0, 2.0, 3.0]) == 1.0
        assert rms_deviation([3.0, 4.0], [0.0, 0.0]) == pytest.approx(np.sqrt(12.5))

    def test_circular_deviation_wraps(self):
        assert circular_deviation(350.0, 10.0) == pytest.approx(20.0 / 360.0)
        assert circular_deviation(180.0, 0.0) == pytest.approx(0.5)
        assert circular_deviation(90.0, 0.0) == pytest.approx(90.0 / BiometricConstants.FULL_CIRCLE)

    def test_movement_pattern_classes(self):
        assert classify_movement_pattern([400, 410], [200, 205]) == MovementPattern.SMOOTH
        assert classify_movement_pattern([100, 900, 100, 900], [200, 200]) == MovementPattern.JERKY
        assert classify_movement_pattern([0, 600], [200, 200]) == MovementPattern.MIXED


class TestAnomalyDetection:
    """Tests for BiometricProfiler.process anomaly output."""

    def test_matching_session_has_no_anomalies(self, profiler, make_biometric):
        assert profiler.process(make_biometric()) == []

    def test_doubled_dwell_time_is_high_keystroke_anomaly(self, profiler, make_biometric):
        anomalies = profiler.process(make_biometric(dwell=200.0))

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.anomaly_type == AnomalyType.KEYSTROKE
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.confidence == pytest.approx(0.95)
        assert anomaly.description == "Unusual key dwell time: 200.0ms vs expected 100.0ms"

    def test_moderate_deviation_is_medium(self, profiler, make_biometric):
        anomalies = profiler.process(make_biometric(dwell=150.0))

        assert [a.severity for a in anomalies] == [AnomalySeverity.MEDIUM]
        assert anomalies[0].confidence == pytest.approx(0.5)

    def test_pattern_change_flagged(self, profiler, make_biometric):
        anomalies = profiler.process(make_biometric(velocity=(100.0, 900.0, 100.0, 900.0)))

        assert len(anomalies) == 1
        assert anomalies[0].anomaly_type == AnomalyType.MOUSE
        assert anomalies[0].severity == AnomalySeverity.MEDIUM
        assert anomalies[0].description == "Movement pattern changed from smooth to jerky"

    def test_orientation_flip_is_low_device_anomaly(self, profiler, make_biometric):
        anomalies = profiler.process(make_biometric(orientation=180.0))

        assert [(a.anomaly_type, a.severity) for a in anomalies] == [
            (AnomalyType.DEVICE, AnomalySeverity.LOW)
        ]

    def test_orientation_near_wraparound_not_flagged(self, make_profile, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(1))
        profiler.register_profile(make_profile(orientation=350.0))

        assert profiler.process(make_biometric(orientation=10.0)) == []

    def test_sensor_vector_length_mismatch_flags_device(self, profiler, make_biometric):
        anomalies = profiler.process(make_biometric(accelerometer=(0.0, 0.0)))

        assert anomalies[0].anomaly_type == AnomalyType.DEVICE
        assert anomalies[0].severity == AnomalySeverity.HIGH
        assert "accelerometer" in anomalies[0].description

    def test_anomalies_use_baseline_before_update(self, profiler, make_biometric):
        profiler.process(make_biometric(dwell=200.0))
        # Baseline moved only a tenth of the way towards 200
        assert profiler.get_profile("user_001").keystroke.avg_dwell_time == pytest.approx(110.0)

        second = profiler.process(make_biometric(dwell=200.0))
        assert second[0].description == "Unusual key dwell time: 200.0ms vs expected 110.0ms"


class TestProfileLearning:
    """Tests for EMA baseline updates."""

    def test_first_seen_user_gets_synthesized_profile(self, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(3))
        assert profiler.get_profile("new_user") is None

        profiler.process(make_biometric(user_id="new_user"))
        profile = profiler.get_profile("new_user")

        assert profile is not None
        assert 50 < profile.session_count <= 152
        assert profile.last_updated is not None

    def test_baseline_converges_to_repeated_sample(self, profiler, make_biometric):
        for _ in range(60):
            profiler.process(make_biometric(dwell=200.0, typing_speed=40.0))

        profile = profiler.get_profile("user_001")
        assert profile.keystroke.avg_dwell_time == pytest.approx(200.0, abs=0.5)
        assert profile.keystroke.preferred_typing_speed == pytest.approx(40.0, abs=0.1)
        assert profile.session_count == 70

    def test_confidence_capped(self, profiler, make_biometric):
        for _ in range(60):
            profiler.process(make_biometric())
        assert profiler.get_profile("user_001").confidence == pytest.approx(0.95)

    def test_orientation_blends_along_shorter_arc(self, make_profile, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(1))
        profiler.register_profile(make_profile(orientation=350.0))

        profiler.process(make_biometric(orientation=10.0))
        assert profiler.get_profile("user_001").device.orientation_preference == pytest.approx(352.0)

    def test_movement_pattern_not_blended(self, profiler, make_biometric):
        profiler.process(make_biometric(velocity=(100.0, 900.0, 100.0, 900.0)))
        assert profiler.get_profile("user_001").mouse.movement_pattern == MovementPattern.SMOOTH

    def test_get_profile_returns_copy(self, profiler):
        copy = profiler.get_profile("user_001")
        copy.keystroke.avg_dwell_time = 999.0
        assert profiler.get_profile("user_001").keystroke.avg_dwell_time == 100.0

    def test_profile_stats(self, profiler, make_biometric):
        profiler.process(make_biometric(user_id="user_002"))
        stats = profiler.profile_stats()

        assert stats["total_profiles"] == 2
        assert sum(stats["movement_patterns"].values()) == 2


class TestSessionLog:
    """Tests for bounded per-session sample retention."""

    def test_samples_per_session_bounded(self, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(1), session_log_samples=3)
        for dwell in (100.0, 101.0, 102.0, 103.0):
            profiler.process(make_biometric(dwell=dwell))

        kept = profiler.session_samples("sess_001")
        assert [s.keystroke.dwell_times[0] for s in kept] == [101.0, 102.0, 103.0]

    def test_oldest_session_evicted(self, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(1), session_log_capacity=2)
        for session_id in ("s1", "s2", "s3"):
            profiler.process(make_biometric(session_id=session_id))

        assert profiler.session_samples("s1") == []
        assert len(profiler.session_samples("s3")) == 1


class TestBiometricEmbedding:
    """Tests for BiometricProfiler.embed."""

    def test_embedding_layout(self, profiler, make_biometric):
        embedding = profiler.embed(make_biometric())

        assert embedding.shape == (32,)
        assert embedding[0] == pytest.approx(0.5)
        assert embedding[2] == pytest.approx(0.6)
        assert embedding[26] == pytest.approx(0.5)

    def test_unknown_user_has_empty_deviation_block(self, make_biometric):
        profiler = BiometricProfiler(rng=np.random.default_rng(1))
        embedding = profiler.embed(make_biometric(user_id="stranger"))

        assert np.all(embedding[24:] == 0.0)


class TestThreadSafety:
    """Concurrent sessions for one user are applied one at a time."""

    def test_concurrent_sessions_match_sequential_updates(self, profiler, make_profile, make_biometric):
        import threading

        sample = make_biometric(dwell=150.0, typing_speed=45.0)

        def run_sessions():
            for _ in range(10):
                profiler.process(sample)

        threads = [threading.Thread(target=run_sessions) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        sequential = BiometricProfiler(rng=np.random.default_rng(11))
        sequential.register_profile(make_profile())
        for _ in range(80):
            sequential.process(sample)

        concurrent_profile = profiler.get_profile("user_001")
        expected = sequential.get_profile("user_001")
        assert concurrent_profile.session_count == 90
        assert concurrent_profile.keystroke.avg_dwell_time == pytest.approx(expected.keystroke.avg_dwell_time)
        assert concurrent_profile.keystroke.preferred_typing_speed == pytest.approx(
            expected.keystroke.preferred_typing_speed
        )
        assert concurrent_profile.confidence == pytest.approx(expected.confidence)

    def test_different_users_processed_in_parallel(self, make_biometric):
        import threading

        profiler = BiometricProfiler(rng=np.random.default_rng(4))

        def run_sessions(user_id):
            for _ in range(5):
                profiler.process(make_biometric(user_id=user_id, session_id=f"sess_{user_id}"))

        threads = [threading.Thread(target=run_sessions, args=(f"user_{i}",)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert profiler.profile_count() == 6
        assert all(len(profiler.session_samples(f"sess_user_{i}")) == 5 for i in range(6))
