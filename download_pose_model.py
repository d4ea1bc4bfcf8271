"""
Download MediaPipe Pose Landmarker model.
This script downloads the pose_landmarker_full.task model from Google's servers
to the location the service loads it from (see config.resolve_pose_model_path).
"""

import urllib.request
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src'))

from config import POSE_MODEL_PATH, POSE_MODEL_ENV_VAR

def download_pose_model(model_path=POSE_MODEL_PATH):
    """Download the MediaPipe Pose Landmarker model."""
    # Model URL (full = model complexity 1)
    model_url = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/1/pose_landmarker_full.task"

    print(f"Downloading MediaPipe Pose Landmarker model...")
    print(f"URL: {model_url}")
    print(f"Destination: {model_path}")

    try:
        os.makedirs(os.path.dirname(model_path) or '.', exist_ok=True)
        urllib.request.urlretrieve(model_url, model_path)

        file_size = os.path.getsize(model_path) / (1024 * 1024)  # Size in MB
        print(f"\n✅ Download successful!")
        print(f"File size: {file_size:.2f} MB")
        print(f"Model saved to: {model_path}")
        return True

    except Exception as e:
        print(f"\n❌ Download failed: {e}")
        print("\nYou can manually download the model from:")
        print("https://developers.google.com/mediapipe/solutions/vision/pose_landmarker")
        print(f"Save it as: {model_path} (or point {POSE_MODEL_ENV_VAR} at it)")
        return False

if __name__ == "__main__":
    sys.exit(0 if download_pose_model() else 1)
