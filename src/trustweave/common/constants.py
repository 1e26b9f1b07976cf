"""Centralized constants for TrustWeave scoring and feedback."""


# ===== GRAPH & EMBEDDINGS =====
class GraphConstants:
    NODE_FEATURE_DIM = 10
    EMBEDDING_DIM = 64
    WEIGHT_INIT_SCALE = 0.05
    LATITUDE_NORM = 90.0
    LONGITUDE_NORM = 180.0


# ===== BIOMETRICS =====
class BiometricConstants:
    EMA_ALPHA = 0.1
    CONFIDENCE_STEP = 0.01
    CONFIDENCE_CEILING = 0.95
    ANOMALY_CONFIDENCE_CAP = 0.95

    # Keystroke thresholds
    KEYSTROKE_TIMING_THRESHOLD = 0.4
    KEYSTROKE_TIMING_HIGH = 0.7
    TYPING_SPEED_THRESHOLD = 0.5
    TYPING_SPEED_HIGH = 0.8

    # Mouse thresholds
    MOUSE_THRESHOLD = 0.5
    MOUSE_HIGH = 0.8
    SMOOTH_VELOCITY_VARIANCE = 50_000
    SMOOTH_ACCELERATION_VARIANCE = 25_000
    JERKY_VELOCITY_VARIANCE = 150_000
    JERKY_ACCELERATION_VARIANCE = 75_000
    PATTERN_CHANGE_CONFIDENCE = 0.7
    PATTERN_CHANGE_DEVIATION = 0.6

    # Device sensor thresholds
    SENSOR_THRESHOLD = 0.5
    SENSOR_HIGH = 0.8
    ORIENTATION_THRESHOLD = 0.3
    ORIENTATION_CONFIDENCE = 0.6
    FULL_CIRCLE = 360.0

    EMBEDDING_DIM = 32


# ===== RISK SCORING =====
class ScoringConstants:
    HIGH_AMOUNT = 1000.0
    VERY_HIGH_AMOUNT = 5000.0
    HIGH_AMOUNT_WEIGHT = 0.3
    VERY_HIGH_AMOUNT_WEIGHT = 0.4
    NIGHT_START_HOUR = 6     # hour < 6 is night
    NIGHT_END_HOUR = 22      # hour > 22 is night
    NIGHT_WEIGHT = 0.2
    ATM_AMOUNT = 500.0
    ATM_WEIGHT = 0.3
    NOISE_SCALE = 0.2

    HIGH_SEVERITY_BOOST = 0.2
    MEDIUM_SEVERITY_BOOST = 0.1

    HIGH_RISK_THRESHOLD = 0.7
    MEDIUM_RISK_THRESHOLD = 0.4

    CONFIDENCE_MIN = 0.7
    CONFIDENCE_MAX = 1.0

    EMBEDDING_SLICE = 10
    SLOW_TYPING_WPM = 30.0

    MODEL_VERSION = "1.0.0"


# ===== ACTIVE LEARNING & FEEDBACK =====
class FeedbackConstants:
    UNCERTAINTY_WEIGHT = 0.4
    DIVERSITY_WEIGHT = 0.3
    IMPORTANCE_WEIGHT = 0.3
    REVIEW_THRESHOLD = 0.6
    MAX_QUERIES = 10

    EXPLORATION_MIN_FEEDBACK = 10
    EXPLORATION_DIVERSITY = 0.8

    IMMEDIATE_UPDATE_CONFIDENCE = 0.9
    TRAILING_WINDOW_SECONDS = 3600
    TRAILING_WINDOW_TRIGGER = 10
    BATCH_UPDATE_SIZE = 5

    MEDIUM_DELAY_SECONDS = 300
    LOW_DELAY_SECONDS = 1800
    RETRY_BACKOFF_SECONDS = 600

    IMPROVEMENT_CAP = 0.02
    IMPROVEMENT_PER_SAMPLE = 0.001
    PRECISION_FACTOR = 0.8
    RECALL_FACTOR = 1.2
    METRIC_CEILING = 0.99
    DRIFT_AMPLITUDE = 0.005

    DEFAULT_HISTORY_LIMIT = 100
    TOP_REVIEWERS = 5
