import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from alert_timer import AutoHideTimer
from config import (POSTURE_THRESHOLDS, VISIBILITY_THRESHOLD, OVERLAY_VISIBILITY, LANDMARK_INDICES,
                    WARNING_DURATION_MS, ALERT_AUTO_HIDE_MS, AUTO_HIDE_MODE, AUTO_HIDE_MODES,
                    validate_thresholds)
from posture_types import Point, StatusRecord, visibility_of


class NullNotifier:
    """Notifier that ignores alert signals."""
    def raise_alert(self, status):
        pass

    def hide_alert(self):
        pass


@dataclass
class PostureState:
    current_neck_angle: float = 180.0
    poor_posture_start_time: Optional[float] = None
    poor_posture_duration: float = 0
    alert_shown: bool = False


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def calculate_neck_angle(avg_ear: Point, avg_shoulder: Point) -> float:
    """
    Neck angle in degrees from averaged ear and shoulder positions.

    180 means the ear sits directly above the shoulder; forward head tilt
    lowers the value. Only the magnitude of the horizontal offset counts.
    """
    delta_x = avg_ear.x - avg_shoulder.x
    delta_y = avg_shoulder.y - avg_ear.y  # inverted because screen coordinates

    angle = np.degrees(np.arctan2(abs(delta_x), delta_y))
    return float(180 - abs(angle))


class PostureEngine:
    """
    Turns a stream of pose frames into a debounced posture status.

    Poor posture is tolerated until it has lasted warning_duration_ms, then an
    alert is raised once; any good/fair/unknown frame resets the streak.
    Timestamps are supplied by the caller in milliseconds.
    """
    def __init__(self, notifier=None, thresholds=None,
                 warning_duration_ms=WARNING_DURATION_MS,
                 auto_hide_ms=ALERT_AUTO_HIDE_MS,
                 auto_hide_mode=AUTO_HIDE_MODE):
        if auto_hide_mode not in AUTO_HIDE_MODES:
            raise ValueError(f"Unknown auto hide mode: {auto_hide_mode}")

        self.notifier = notifier if notifier is not None else NullNotifier()
        self.thresholds = dict(POSTURE_THRESHOLDS)
        if thresholds:
            self.thresholds.update(thresholds)
        validate_thresholds(self.thresholds['good'], self.thresholds['warning'])

        self.warning_duration_threshold = warning_duration_ms
        self.auto_hide_ms = auto_hide_ms
        self.auto_hide_mode = auto_hide_mode

        self.state = PostureState()
        self.alert_timer = AutoHideTimer()

    def set_thresholds(self, good, warning):
        """Replace the good/warning thresholds (takes effect on the next frame)."""
        validate_thresholds(good, warning)
        self.thresholds['good'] = good
        self.thresholds['warning'] = warning

    def classify_angle(self, angle):
        """Map a neck angle to 'good', 'fair' or 'poor'."""
        if angle >= self.thresholds['good']:
            return 'good'
        elif angle >= self.thresholds['warning']:
            return 'fair'
        return 'poor'

    def _required_landmarks(self, frame):
        landmarks = []
        for name in ('left_ear', 'right_ear', 'left_shoulder', 'right_shoulder'):
            idx = LANDMARK_INDICES[name]
            if frame is None or idx >= len(frame):
                landmarks.append(None)
            else:
                landmarks.append(frame[idx])
        return landmarks

    def tick(self, now_ms):
        """Run the pending alert auto-hide check if it is due."""
        return self.alert_timer.fire_if_due(now_ms)

    def process(self, frame, now_ms) -> StatusRecord:
        """
        Analyze one pose frame.

        Args:
            frame: landmark sequence (MediaPipe Pose indexing), entries may be None
            now_ms: monotonic timestamp in milliseconds

        Returns:
            StatusRecord for this frame
        """
        self.tick(now_ms)

        left_ear, right_ear, left_shoulder, right_shoulder = landmarks = self._required_landmarks(frame)
        keypoint_count = sum(
            1 for landmark in landmarks
            if landmark is not None and visibility_of(landmark) > OVERLAY_VISIBILITY
        )

        has_good_visibility = all(
            landmark is not None and visibility_of(landmark) > VISIBILITY_THRESHOLD
            for landmark in landmarks
        )
        if not has_good_visibility:
            self.reset()
            return StatusRecord(
                quality='unknown',
                angle_degrees=self.state.current_neck_angle,
                title='Keypoints not visible',
                subtitle='Position yourself within the frame',
                alert_active=self.state.alert_shown,
                keypoint_count=keypoint_count
            )

        # Average left/right for stability against single-side noise
        avg_ear = Point((left_ear.x + right_ear.x) / 2, (left_ear.y + right_ear.y) / 2)
        avg_shoulder = Point((left_shoulder.x + right_shoulder.x) / 2,
                             (left_shoulder.y + right_shoulder.y) / 2)

        self.state.current_neck_angle = calculate_neck_angle(avg_ear, avg_shoulder)

        return self._handle_posture_persistence(now_ms, keypoint_count, avg_ear, avg_shoulder)

    def _handle_posture_persistence(self, now_ms, keypoint_count, avg_ear, avg_shoulder):
        angle = self.state.current_neck_angle
        rounded = _round_half_up(angle)
        quality = self.classify_angle(angle)

        common = {
            'quality': quality,
            'angle_degrees': angle,
            'keypoint_count': keypoint_count,
            'ear_midpoint': avg_ear,
            'shoulder_midpoint': avg_shoulder
        }

        if quality == 'good':
            self.reset()
            return StatusRecord(title='Excellent Posture!', subtitle=f"{rounded}° - Keep it up!", **common)

        if quality == 'fair':
            self.reset()
            return StatusRecord(title='Fair Posture', subtitle=f"{rounded}° - Could be better", **common)

        if self.state.poor_posture_start_time is None:
            # First poor frame of this streak
            self.state.poor_posture_start_time = now_ms
            self.state.poor_posture_duration = 0
        else:
            self.state.poor_posture_duration = now_ms - self.state.poor_posture_start_time

        duration = self.state.poor_posture_duration
        remaining = max(0, self.warning_duration_threshold - duration)
        seconds_remaining = math.ceil(remaining / 1000)

        timer = {
            'timer_visible': True,
            'timer_seconds': int(math.floor(duration / 1000)),
            'timer_progress': min(duration / self.warning_duration_threshold, 1),
            'seconds_remaining': seconds_remaining
        }

        if duration >= self.warning_duration_threshold:
            status = StatusRecord(
                title='Poor Posture Alert!',
                subtitle=f"{rounded}° - Straighten up now!",
                alert_active=True,
                **timer,
                **common
            )
            self.show_posture_alert(status, now_ms)
            return status

        self.hide_posture_alert()
        return StatusRecord(
            title='Poor Posture Detected',
            subtitle=f"{rounded}° - Warning in {seconds_remaining}s",
            **timer,
            **common
        )

    def reset(self):
        """Clear the poor-posture streak, hiding the timer and any alert."""
        self.state.poor_posture_start_time = None
        self.state.poor_posture_duration = 0
        self.hide_posture_alert()

    def show_posture_alert(self, status, now_ms):
        if self.state.alert_shown:
            return

        self.state.alert_shown = True
        self.notifier.raise_alert(status)

        self.alert_timer.schedule(now_ms + self.auto_hide_ms, self._auto_hide_check)

    def hide_posture_alert(self):
        if not self.state.alert_shown:
            return

        self.state.alert_shown = False
        self.alert_timer.cancel()
        self.notifier.hide_alert()

    def _auto_hide_check(self):
        if self.auto_hide_mode == 'recovered':
            recovered = self.state.current_neck_angle >= self.thresholds['warning']
        else:
            # No 'fair' threshold is configured, so this never hides the alert
            fair = self.thresholds.get('fair')
            recovered = fair is not None and self.state.current_neck_angle <= fair

        if recovered:
            self.hide_posture_alert()

    def shutdown(self):
        """Cancel any pending auto-hide check."""
        self.alert_timer.cancel()
