"""Behavioral biometric profiler.

Main interface for per-user biometric anomaly detection. Keeps one
baseline per user, scores each session against it, then blends the
session into it.
"""

import copy
import logging
import math
import threading
from collections import OrderedDict, deque
from typing import Deque, Dict, List, Optional

import numpy as np

from trustweave.common.constants import BiometricConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.models.behavior.config import BiometricConfig
from trustweave.models.behavior.deviation import (
    BiometricAnomaly,
    DeviationDetector,
    relative_deviation,
    variance,
)
from trustweave.models.behavior.profile import BiometricProfile

logger = logging.getLogger(__name__)


class BiometricProfiler:
    """Per-user biometric baselines with anomaly detection.

    Thread-safe. Work on one user's profile is serialized by a per-user
    lock; different users proceed in parallel.

    Answers: "Does this session look like this user?"
    Not: "Is this fraud?"
    """

    def __init__(
        self,
        config: Optional[BiometricConfig] = None,
        rng: Optional[np.random.Generator] = None,
        session_log_capacity: int = 1_000,
        session_log_samples: int = 20,
    ):
        """Initialize profiler.

        Args:
            config: Thresholds, learning rate and baseline ranges
            rng: Generator used to synthesize baselines for new users
            session_log_capacity: Sessions kept in the sample log
            session_log_samples: Samples kept per logged session
        """
        self.config = config or BiometricConfig()
        self._detector = DeviationDetector(self.config)

        self._rng = rng if rng is not None else np.random.default_rng()
        self._rng_lock = threading.Lock()

        self._profiles: Dict[str, BiometricProfile] = {}
        self._user_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

        self._session_log: "OrderedDict[str, Deque[BiometricSample]]" = OrderedDict()
        self._session_log_capacity = session_log_capacity
        self._session_log_samples = session_log_samples
        self._session_lock = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.Lock()
            return lock

    def _get_or_create_profile(self, user_id: str) -> BiometricProfile:
        """Caller must hold the user's lock."""
        with self._registry_lock:
            profile = self._profiles.get(user_id)
        if profile is not None:
            return profile

        with self._rng_lock:
            profile = BiometricProfile.synthesize(user_id, self._rng, self.config.baseline)
        with self._registry_lock:
            self._profiles[user_id] = profile
        logger.debug("Synthesized baseline profile for user %s", user_id)
        return profile

    def register_profile(self, profile: BiometricProfile) -> None:
        """Install a known baseline (e.g. restored from storage), replacing any existing one."""
        with self._lock_for(profile.user_id):
            with self._registry_lock:
                self._profiles[profile.user_id] = copy.deepcopy(profile)

    def process(self, sample: BiometricSample) -> List[BiometricAnomaly]:
        """Score a session against the user's baseline, then learn from it.

        Anomalies are always computed against the baseline as it was
        before this sample.

        Args:
            sample: Biometric sample for one session

        Returns:
            Anomalies in keystroke, mouse, device order
        """
        with self._lock_for(sample.user_id):
            profile = self._get_or_create_profile(sample.user_id)
            anomalies = self._detector.detect(sample, profile)
            profile.update_ema(
                sample,
                alpha=self.config.ema_alpha,
                confidence_step=self.config.confidence_step,
                confidence_ceiling=self.config.confidence_ceiling,
            )

        self._record_session(sample)
        if anomalies:
            logger.debug(
                "User %s session %s: %d biometric anomalies",
                sample.user_id, sample.session_id, len(anomalies),
            )
        return anomalies

    def _record_session(self, sample: BiometricSample) -> None:
        with self._session_lock:
            samples = self._session_log.get(sample.session_id)
            if samples is None:
                samples = deque(maxlen=self._session_log_samples)
                self._session_log[sample.session_id] = samples
            else:
                self._session_log.move_to_end(sample.session_id)
            samples.append(sample)
            while len(self._session_log) > self._session_log_capacity:
                self._session_log.popitem(last=False)

    def embed(self, sample: BiometricSample) -> np.ndarray:
        """Fixed-size biometric embedding for model fusion.

        Layout (32 dims): keystroke 0-7, mouse 8-15, device 16-23,
        deviation from the user's current baseline 24-31. The deviation
        block stays zero for a user without a profile.
        """
        embedding = np.zeros(self.config.embedding_dim, dtype=np.float64)
        ks = sample.keystroke
        mouse = sample.mouse
        sensors = sample.sensors

        embedding[0] = ks.mean_dwell_time / 200
        embedding[1] = ks.mean_flight_time / 100
        embedding[2] = ks.typing_speed / 100
        embedding[3] = variance(ks.dwell_times) / 1000

        embedding[8] = mouse.mean_velocity / 1000
        embedding[9] = mouse.mean_acceleration / 500
        embedding[10] = variance(mouse.velocity) / 100_000
        embedding[11] = variance(mouse.acceleration) / 50_000

        accel = [abs(v) for v in sensors.accelerometer[:3]]
        gyro = [abs(v) / 360 for v in sensors.gyroscope[:3]]
        embedding[16:16 + len(accel)] = accel
        embedding[19:19 + len(gyro)] = gyro
        embedding[22] = sensors.orientation / BiometricConstants.FULL_CIRCLE

        profile = self.get_profile(sample.user_id)
        if profile is not None:
            eps = self.config.epsilon
            embedding[24] = min(1.0, relative_deviation(ks.mean_dwell_time, profile.keystroke.avg_dwell_time, eps))
            embedding[25] = min(1.0, relative_deviation(mouse.mean_velocity, profile.mouse.avg_velocity, eps))
            embedding[26] = profile.confidence
            embedding[27] = math.log(profile.session_count + 1) / 10

        return embedding

    def get_profile(self, user_id: str) -> Optional[BiometricProfile]:
        """Copy of a user's current profile, or None if never seen."""
        with self._registry_lock:
            if user_id not in self._profiles:
                return None
        with self._lock_for(user_id):
            return copy.deepcopy(self._profiles[user_id])

    def profiles(self) -> List[BiometricProfile]:
        with self._registry_lock:
            user_ids = list(self._profiles)
        return [p for p in (self.get_profile(u) for u in user_ids) if p is not None]

    def profile_count(self) -> int:
        with self._registry_lock:
            return len(self._profiles)

    def profile_stats(self) -> Dict[str, object]:
        """Aggregate view across all profiles."""
        profiles = self.profiles()
        if not profiles:
            return {
                "total_profiles": 0,
                "avg_confidence": 0.0,
                "avg_session_count": 0.0,
                "movement_patterns": {},
            }
        patterns: Dict[str, int] = {}
        for p in profiles:
            patterns[p.mouse.movement_pattern.value] = patterns.get(p.mouse.movement_pattern.value, 0) + 1
        return {
            "total_profiles": len(profiles),
            "avg_confidence": float(np.mean([p.confidence for p in profiles])),
            "avg_session_count": float(np.mean([p.session_count for p in profiles])),
            "movement_patterns": patterns,
        }

    def session_samples(self, session_id: str) -> List[BiometricSample]:
        """Most recent samples logged for a session, oldest first."""
        with self._session_lock:
            return list(self._session_log.get(session_id, ()))
