# Neck Posture Service Configuration

import math
import os

# Neck angle thresholds (degrees, 180 = ear directly above shoulder)
POSTURE_THRESHOLDS = {
    'perfect': 180,   # theoretically perfect alignment (reference only)
    'good': 168,      # >= good is "good", below is "fair"
    'warning': 160    # below warning is "poor"
}

# Landmark visibility gating
VISIBILITY_THRESHOLD = 0.6   # Required ears/shoulders must be strictly above this
OVERLAY_VISIBILITY = 0.5     # Landmarks above this count towards keypoint_count

# MediaPipe Pose landmark indices read by the engine
LANDMARK_INDICES = {
    'left_ear': 7,
    'right_ear': 8,
    'left_shoulder': 11,
    'right_shoulder': 12
}

# Warning Timing (milliseconds)
WARNING_DURATION_MS = 10000   # Sustained poor posture before the alert is raised
ALERT_AUTO_HIDE_MS = 5000     # Delay before the alert auto-hide check runs

# Auto-hide rule evaluated when the auto-hide check runs:
#   'legacy'    - never hides (alert is cleared only by a later good/fair/unknown frame)
#   'recovered' - hides when the neck angle is back at or above the warning threshold
#   Frames that are good/fair/unknown already clear the alert and cancel the check,
#   so 'recovered' only hides anything when the warning threshold is lowered
#   while the alert is up.
AUTO_HIDE_MODE = 'legacy'
AUTO_HIDE_MODES = ('legacy', 'recovered')

# Pose model settings
POSE_MODEL_FILENAME = 'pose_landmarker.task'
POSE_MODEL_ENV_VAR = 'NECK_POSTURE_MODEL_PATH'
MIN_DETECTION_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5

# Camera / Processing
CAMERA_INDEX = 0
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
TARGET_FPS = 30
PREVIEW_JPEG_QUALITY = 70

# WebSocket server
WEBSOCKET_HOST = 'localhost'
WEBSOCKET_PORT = 8765

# Overlay colors per posture quality (RGBA strings understood by browser canvases)
QUALITY_COLORS = {
    'good': 'rgba(107, 207, 127, 0.8)',
    'fair': 'rgba(255, 217, 61, 0.8)',
    'poor': 'rgba(255, 107, 107, 0.8)',
    'unknown': 'rgba(255, 255, 255, 0.6)'
}

# Sensitivity Scale (1.0-5.0 continuous scale: 1=Low/Lenient, 5=High/Strict)
NECK_SENSITIVITY_MAPPING = {
    1: (160, 150),  # Very lenient - only severe forward head
    2: (164, 155),  # Lenient
    3: (168, 160),  # Medium - balanced (default)
    4: (171, 165),  # Strict
    5: (174, 170)   # Very strict - very sensitive
}


def _interpolate_threshold(scale: float, mapping: dict) -> tuple[float, float]:
    """Interpolate threshold values between discrete scale points"""
    # Clamp scale to valid range
    scale = max(1.0, min(5.0, scale))

    if scale == int(scale):
        return mapping[int(scale)]

    lower = int(scale)
    upper = lower + 1
    fraction = scale - lower

    lower_good, lower_warning = mapping[lower]
    upper_good, upper_warning = mapping[upper]

    good = lower_good + (upper_good - lower_good) * fraction
    warning = lower_warning + (upper_warning - lower_warning) * fraction

    return (good, warning)


def scale_to_neck_thresholds(scale: float) -> tuple[float, float]:
    """Convert 1.0-5.0 continuous scale to neck angle thresholds (good, warning)"""
    return _interpolate_threshold(float(scale), NECK_SENSITIVITY_MAPPING)


def validate_thresholds(good: float, warning: float):
    """Raise ValueError unless 180 >= good > warning."""
    if not (math.isfinite(good) and math.isfinite(warning)):
        raise ValueError(f"Thresholds must be finite numbers (good={good}, warning={warning})")
    if good > 180 or warning > 180:
        raise ValueError(f"Thresholds must not exceed 180 degrees (good={good}, warning={warning})")
    if good <= warning:
        raise ValueError(f"Good threshold must be above warning threshold (good={good}, warning={warning})")


def resolve_pose_model_path(environ=None) -> str:
    """Pose model location: $NECK_POSTURE_MODEL_PATH, else the per-user cache directory."""
    if environ is None:
        environ = os.environ
    path = environ.get(POSE_MODEL_ENV_VAR)
    if path:
        return os.path.expanduser(path)
    return os.path.join(os.path.expanduser('~'), '.cache', 'neck-posture-service', POSE_MODEL_FILENAME)


POSE_MODEL_PATH = resolve_pose_model_path()
