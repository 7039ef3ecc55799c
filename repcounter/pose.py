"""
Keypoint vocabulary and per-frame pose snapshots.
Frames arrive from an external pose estimator in image coordinates (pixel).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

# Keypoints below this confidence are treated as absent.
CONFIDENCE_FLOOR = 0.3
# EMA alpha for optional keypoint smoothing
SMOOTH_ALPHA = 0.4


# 17-point keypoint names (MoveNet / COCO order)
class KeypointName:
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


KEYPOINT_NAMES: tuple[str, ...] = (
    KeypointName.NOSE,
    KeypointName.LEFT_EYE,
    KeypointName.RIGHT_EYE,
    KeypointName.LEFT_EAR,
    KeypointName.RIGHT_EAR,
    KeypointName.LEFT_SHOULDER,
    KeypointName.RIGHT_SHOULDER,
    KeypointName.LEFT_ELBOW,
    KeypointName.RIGHT_ELBOW,
    KeypointName.LEFT_WRIST,
    KeypointName.RIGHT_WRIST,
    KeypointName.LEFT_HIP,
    KeypointName.RIGHT_HIP,
    KeypointName.LEFT_KNEE,
    KeypointName.RIGHT_KNEE,
    KeypointName.LEFT_ANKLE,
    KeypointName.RIGHT_ANKLE,
)

# MediaPipe Pose landmark index for each 17-point name
_MEDIAPIPE_INDEX = {
    KeypointName.NOSE: 0,
    KeypointName.LEFT_EYE: 2,
    KeypointName.RIGHT_EYE: 5,
    KeypointName.LEFT_EAR: 7,
    KeypointName.RIGHT_EAR: 8,
    KeypointName.LEFT_SHOULDER: 11,
    KeypointName.RIGHT_SHOULDER: 12,
    KeypointName.LEFT_ELBOW: 13,
    KeypointName.RIGHT_ELBOW: 14,
    KeypointName.LEFT_WRIST: 15,
    KeypointName.RIGHT_WRIST: 16,
    KeypointName.LEFT_HIP: 23,
    KeypointName.RIGHT_HIP: 24,
    KeypointName.LEFT_KNEE: 25,
    KeypointName.RIGHT_KNEE: 26,
    KeypointName.LEFT_ANKLE: 27,
    KeypointName.RIGHT_ANKLE: 28,
}


@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    confidence: float = 1.0
    name: Optional[str] = None


@dataclass(frozen=True)
class PoseFrame:
    """One keypoint snapshot. Timestamps are seconds and must increase monotonically."""

    timestamp: float
    keypoints: dict[str, Keypoint] = field(default_factory=dict)

    @classmethod
    def from_keypoints(cls, keypoints: Sequence[Keypoint], timestamp: float) -> "PoseFrame":
        """
        Build a frame from an ordered keypoint list.
        Unnamed keypoints take their name from the 17-point order.
        """
        named: dict[str, Keypoint] = {}
        for i, kp in enumerate(keypoints):
            name = kp.name
            if name is None:
                if i >= len(KEYPOINT_NAMES):
                    continue
                name = KEYPOINT_NAMES[i]
                kp = Keypoint(kp.x, kp.y, kp.confidence, name)
            named[name] = kp
        return cls(timestamp=float(timestamp), keypoints=named)

    def get(self, name: str) -> Optional[Keypoint]:
        kp = self.keypoints.get(name)
        if kp is None or kp.confidence < CONFIDENCE_FLOOR:
            return None
        return kp

    def first_available(self, *names: str) -> Optional[Keypoint]:
        for name in names:
            kp = self.get(name)
            if kp is not None:
                return kp
        return None


def keypoints_from_mediapipe(
    landmarks: Sequence[Any],
    width: int,
    height: int,
) -> list[Keypoint]:
    """
    Map 33 MediaPipe landmarks (normalized x/y, optional visibility) to the
    17-point vocabulary in pixel coords.
    """
    out: list[Keypoint] = []
    for name in KEYPOINT_NAMES:
        idx = _MEDIAPIPE_INDEX[name]
        if idx >= len(landmarks):
            out.append(Keypoint(0.0, 0.0, 0.0, name))
            continue
        lm = landmarks[idx]
        conf = getattr(lm, "visibility", None)
        out.append(Keypoint(lm.x * width, lm.y * height, 1.0 if conf is None else float(conf), name))
    return out


def smooth_keypoints_ema(
    current: PoseFrame,
    previous: Optional[PoseFrame],
    alpha: float = SMOOTH_ALPHA,
) -> PoseFrame:
    """One-step EMA smoothing for keypoint positions; confidence is taken from the current frame."""
    if previous is None:
        return current
    smoothed: dict[str, Keypoint] = {}
    for name, curr in current.keypoints.items():
        prev = previous.keypoints.get(name)
        if prev is None or prev.confidence < CONFIDENCE_FLOOR or curr.confidence < CONFIDENCE_FLOOR:
            smoothed[name] = curr
            continue
        smoothed[name] = Keypoint(
            alpha * curr.x + (1 - alpha) * prev.x,
            alpha * curr.y + (1 - alpha) * prev.y,
            curr.confidence,
            name,
        )
    return PoseFrame(timestamp=current.timestamp, keypoints=smoothed)


def frames_from_records(records: Iterable[dict[str, Any]]) -> list[PoseFrame]:
    """
    Build frames from JSON-style records:
    {"timestamp": t, "keypoints": [[x, y, conf], ...]} or [{"name", "x", "y", "confidence"}, ...].
    """
    frames: list[PoseFrame] = []
    for rec in records:
        kps: list[Keypoint] = []
        for item in rec.get("keypoints", []):
            if isinstance(item, dict):
                kps.append(Keypoint(
                    float(item["x"]),
                    float(item["y"]),
                    float(item.get("confidence", item.get("score", 1.0))),
                    item.get("name"),
                ))
            else:
                conf = float(item[2]) if len(item) > 2 else 1.0
                kps.append(Keypoint(float(item[0]), float(item[1]), conf))
        frames.append(PoseFrame.from_keypoints(kps, rec["timestamp"]))
    return frames
