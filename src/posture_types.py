from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from config import QUALITY_COLORS


@dataclass(frozen=True)
class Keypoint:
    """
    A single 2D landmark in normalized frame coordinates.

    x and y are in [0, 1] with the origin at the top-left corner and y growing
    downward. A missing visibility is treated as fully visible.
    """

    x: float
    y: float
    visibility: Optional[float] = None


# A frame is the ordered landmark list of one video frame (MediaPipe Pose
# indexing). Entries may be None; any object with x/y/visibility attributes
# works in place of a Keypoint.
PoseFrame = Sequence[Optional[Any]]


def visibility_of(landmark) -> float:
    """Visibility of a landmark, defaulting to 1.0 when it carries none."""
    visibility = getattr(landmark, 'visibility', None)
    if visibility is None:
        return 1.0
    return float(visibility)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class StatusRecord:
    """
    Posture judgment for one processed frame.

    - quality is one of 'good', 'fair', 'poor', 'unknown'.
    - angle_degrees is the last computed neck angle (stale for 'unknown').
    - timer_* describe the poor-posture countdown bar; hidden unless poor.
    """

    quality: str
    angle_degrees: float
    title: str
    subtitle: str
    timer_visible: bool = False
    timer_seconds: int = 0
    timer_progress: float = 0.0
    seconds_remaining: Optional[int] = None
    alert_active: bool = False
    keypoint_count: int = 0
    ear_midpoint: Optional[Point] = None
    shoulder_midpoint: Optional[Point] = None

    @property
    def color(self) -> str:
        return QUALITY_COLORS.get(self.quality, QUALITY_COLORS['unknown'])

    def to_dict(self) -> Dict[str, Any]:
        def point(p: Optional[Point]):
            if p is None:
                return None
            return {'x': p.x, 'y': p.y}

        return {
            'quality': self.quality,
            'angle': round(self.angle_degrees, 2),
            'title': self.title,
            'subtitle': self.subtitle,
            'timer_visible': self.timer_visible,
            'timer_seconds': self.timer_seconds,
            'timer_progress': round(self.timer_progress, 4),
            'seconds_remaining': self.seconds_remaining,
            'alert_active': self.alert_active,
            'keypoint_count': f"{self.keypoint_count}/4",
            'ear_midpoint': point(self.ear_midpoint),
            'shoulder_midpoint': point(self.shoulder_midpoint),
            'color': self.color
        }
