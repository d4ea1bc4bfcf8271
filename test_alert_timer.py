# Test the auto-hide timer, FPS counter and sensitivity config

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from alert_timer import AutoHideTimer
from fps_counter import FpsCounter
import config


def test_auto_hide_timer():
    calls = []
    timer = AutoHideTimer()
    assert timer.pending is False
    assert timer.fire_if_due(10**9) is False

    timer.schedule(5000, lambda: calls.append('first'))
    assert timer.pending
    assert timer.fire_if_due(4999) is False
    assert calls == []

    # Rescheduling replaces the pending action
    timer.schedule(6000, lambda: calls.append('second'))
    assert timer.fire_if_due(6000) is True
    assert calls == ['second']

    # Never fires twice
    assert timer.fire_if_due(7000) is False
    assert calls == ['second']

    timer.schedule(8000, lambda: calls.append('third'))
    timer.cancel()
    assert timer.pending is False
    assert timer.due_ms is None
    assert timer.fire_if_due(9000) is False
    assert calls == ['second']


def test_fps_counter():
    counter = FpsCounter(start_ms=0)
    for i in range(1, 30):
        assert counter.update(i * 33) == 0

    # 30th frame at 990ms is still inside the first second
    assert counter.update(990) == 0
    assert counter.update(1000) == 31
    assert counter.frame_count == 0
    assert counter.last_time == 1000

    counter.reset(5000)
    assert counter.fps == 0
    assert counter.update(5500) == 0
    assert counter.update(6000) == 2


def test_sensitivity_scale():
    assert config.scale_to_neck_thresholds(3) == (168, 160)
    assert config.scale_to_neck_thresholds(1) == (160, 150)
    assert config.scale_to_neck_thresholds(5) == (174, 170)

    # Out of range values are clamped
    assert config.scale_to_neck_thresholds(0) == (160, 150)
    assert config.scale_to_neck_thresholds(9) == (174, 170)

    good, warning = config.scale_to_neck_thresholds(3.5)
    assert abs(good - 169.5) < 1e-9
    assert abs(warning - 162.5) < 1e-9

    for scale in (1, 1.5, 2, 2.25, 3, 3.75, 4, 4.5, 5):
        good, warning = config.scale_to_neck_thresholds(scale)
        config.validate_thresholds(good, warning)


def test_validate_thresholds_rejects_non_finite():
    for good, warning in [(float('nan'), 160), (168, float('nan')), (float('inf'), 160), (168, float('-inf'))]:
        try:
            config.validate_thresholds(good, warning)
        except ValueError:
            continue
        raise AssertionError(f"Thresholds good={good}, warning={warning} should be rejected")


def test_pose_model_path():
    path = config.resolve_pose_model_path({config.POSE_MODEL_ENV_VAR: '/opt/models/pose.task'})
    assert path == '/opt/models/pose.task'

    default = config.resolve_pose_model_path({})
    assert default.endswith(os.path.join('.cache', 'neck-posture-service', 'pose_landmarker.task'))
    assert os.path.isabs(default)

    # Empty variable falls back to the default
    assert config.resolve_pose_model_path({config.POSE_MODEL_ENV_VAR: ''}) == default


def test_config_defaults():
    assert config.POSTURE_THRESHOLDS == {'perfect': 180, 'good': 168, 'warning': 160}
    assert config.WARNING_DURATION_MS == 10000
    assert config.ALERT_AUTO_HIDE_MS == 5000
    assert config.AUTO_HIDE_MODE in config.AUTO_HIDE_MODES
    assert config.VISIBILITY_THRESHOLD == 0.6
    assert sorted(config.LANDMARK_INDICES.values()) == [7, 8, 11, 12]


if __name__ == "__main__":
    print("Testing auto-hide timer, FPS counter and config...")
    print("=" * 50)
    for test in (test_auto_hide_timer, test_fps_counter, test_sensitivity_scale,
                 test_validate_thresholds_rejects_non_finite, test_pose_model_path, test_config_defaults):
        test()
        print(f"   ✓ {test.__name__}")
    print("=" * 50)
    print("✓ All tests passed!")
