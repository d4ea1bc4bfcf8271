import os

import cv2
import mediapipe as mp

from config import POSE_MODEL_PATH, POSE_MODEL_ENV_VAR, MIN_DETECTION_CONFIDENCE, MIN_TRACKING_CONFIDENCE
from posture_types import Keypoint


def landmarks_to_frame(pose_landmarks):
    """Convert MediaPipe normalized landmarks into a list of Keypoints."""
    if not pose_landmarks:
        return None

    frame = []
    for landmark in pose_landmarks:
        if landmark is None:
            frame.append(None)
            continue
        visibility = getattr(landmark, 'visibility', None)
        frame.append(Keypoint(
            x=float(landmark.x),
            y=float(landmark.y),
            visibility=float(visibility) if visibility is not None else None
        ))
    return frame


class PostureDetector:
    """Pose source: runs MediaPipe Pose Landmarker on camera frames."""
    def __init__(self, model_path=None):
        self.BaseOptions = mp.tasks.BaseOptions
        self.PoseLandmarker = mp.tasks.vision.PoseLandmarker
        self.PoseLandmarkerOptions = mp.tasks.vision.PoseLandmarkerOptions
        self.VisionRunningMode = mp.tasks.vision.RunningMode

        if model_path is None:
            model_path = POSE_MODEL_PATH

        if not os.path.exists(model_path):
            raise FileNotFoundError(
                f"Pose model not found at {model_path}. Run download_pose_model.py first or set {POSE_MODEL_ENV_VAR}."
            )

        options = self.PoseLandmarkerOptions(
            base_options=self.BaseOptions(model_asset_path=model_path),
            running_mode=self.VisionRunningMode.VIDEO,
            num_poses=1,
            min_pose_detection_confidence=MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=MIN_TRACKING_CONFIDENCE
        )
        self.pose_landmarker = self.PoseLandmarker.create_from_options(options)
        self.last_timestamp_ms = -1

    def detect(self, frame, timestamp_ms):
        """
        Detect body landmarks in a BGR frame.

        Returns:
            list of Keypoint (MediaPipe Pose indexing), or None if nobody is detected
        """
        # VIDEO mode rejects non-increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self.last_timestamp_ms + 1)
        self.last_timestamp_ms = timestamp_ms

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)

        detection_result = self.pose_landmarker.detect_for_video(mp_image, timestamp_ms)

        if detection_result.pose_landmarks:
            return landmarks_to_frame(detection_result.pose_landmarks[0])
        return None

    def close(self):
        """Clean up resources."""
        self.pose_landmarker.close()
