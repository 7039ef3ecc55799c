"""
Joint-angle geometry on 2D keypoints (image coords, y grows downward).
"""
from __future__ import annotations

import math
from typing import Optional

from .pose import Keypoint, KeypointName, PoseFrame

# Length (px) of the synthetic vertical reference segment used for spine/neck angles.
VERTICAL_REF_LEN = 100.0


def angle_at(a: Keypoint, vertex: Keypoint, b: Keypoint) -> float:
    """
    Angle at vertex between vertex->a and vertex->b, in degrees [0, 180].
    Callers must check confidence first; zero-length segments are not filtered.
    """
    radians = math.atan2(b.y - vertex.y, b.x - vertex.x) - math.atan2(a.y - vertex.y, a.x - vertex.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def midpoint(a: Keypoint, b: Keypoint) -> Keypoint:
    return Keypoint((a.x + b.x) / 2.0, (a.y + b.y) / 2.0, min(a.confidence, b.confidence))


def distance(a: Keypoint, b: Keypoint) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def alignment_score(shoulder: Keypoint, hip: Keypoint, ankle: Keypoint) -> float:
    """Straightness of shoulder-hip-ankle: 100 for a straight line, -2 per degree of bend."""
    deviation = abs(180.0 - angle_at(shoulder, hip, ankle))
    return max(0.0, min(100.0, 100.0 - deviation * 2.0))


def body_alignment(frame: PoseFrame) -> float:
    """Alignment score from the first visible shoulder, hip and ankle; 0 if any is missing."""
    shoulder = frame.first_available(KeypointName.LEFT_SHOULDER, KeypointName.RIGHT_SHOULDER)
    hip = frame.first_available(KeypointName.LEFT_HIP, KeypointName.RIGHT_HIP)
    ankle = frame.first_available(KeypointName.LEFT_ANKLE, KeypointName.RIGHT_ANKLE)
    if shoulder is None or hip is None or ankle is None:
        return 0.0
    return alignment_score(shoulder, hip, ankle)


def _chain_angle(frame: PoseFrame, a: str, vertex: str, b: str) -> Optional[float]:
    pa, pv, pb = frame.get(a), frame.get(vertex), frame.get(b)
    if pa is None or pv is None or pb is None:
        return None
    return angle_at(pa, pv, pb)


def _mid(frame: PoseFrame, left: str, right: str) -> Optional[Keypoint]:
    lp, rp = frame.get(left), frame.get(right)
    if lp is None or rp is None:
        return None
    return midpoint(lp, rp)


def joint_angles(frame: PoseFrame) -> dict[str, float]:
    """Per-frame joint angle set. Joints with a missing point are omitted."""
    K = KeypointName
    chains = {
        "left_elbow": (K.LEFT_SHOULDER, K.LEFT_ELBOW, K.LEFT_WRIST),
        "right_elbow": (K.RIGHT_SHOULDER, K.RIGHT_ELBOW, K.RIGHT_WRIST),
        "left_shoulder": (K.LEFT_HIP, K.LEFT_SHOULDER, K.LEFT_ELBOW),
        "right_shoulder": (K.RIGHT_HIP, K.RIGHT_SHOULDER, K.RIGHT_ELBOW),
        "left_hip": (K.LEFT_SHOULDER, K.LEFT_HIP, K.LEFT_KNEE),
        "right_hip": (K.RIGHT_SHOULDER, K.RIGHT_HIP, K.RIGHT_KNEE),
        "left_knee": (K.LEFT_HIP, K.LEFT_KNEE, K.LEFT_ANKLE),
        "right_knee": (K.RIGHT_HIP, K.RIGHT_KNEE, K.RIGHT_ANKLE),
    }
    angles: dict[str, float] = {}
    for joint, (a, v, b) in chains.items():
        value = _chain_angle(frame, a, v, b)
        if value is not None:
            angles[joint] = value

    shoulder_mid = _mid(frame, K.LEFT_SHOULDER, K.RIGHT_SHOULDER)
    hip_mid = _mid(frame, K.LEFT_HIP, K.RIGHT_HIP)
    if shoulder_mid is not None:
        vertical_ref = Keypoint(shoulder_mid.x, shoulder_mid.y - VERTICAL_REF_LEN)
        if hip_mid is not None:
            angles["spine"] = angle_at(vertical_ref, shoulder_mid, hip_mid)
        nose = frame.get(K.NOSE)
        if nose is not None:
            angles["neck"] = angle_at(vertical_ref, shoulder_mid, nose)
    return angles


def vertical_displacement(previous: PoseFrame, current: PoseFrame, name: str) -> float:
    """Change in y of one keypoint between frames; 0 if it is missing in either."""
    p0 = previous.get(name)
    p1 = current.get(name)
    if p0 is None or p1 is None:
        return 0.0
    return p1.y - p0.y


def torso_span(frame: PoseFrame) -> Optional[float]:
    """Shoulder-mid to hip-mid distance; None unless both shoulders and hips are present."""
    shoulder_mid = _mid(frame, KeypointName.LEFT_SHOULDER, KeypointName.RIGHT_SHOULDER)
    hip_mid = _mid(frame, KeypointName.LEFT_HIP, KeypointName.RIGHT_HIP)
    if shoulder_mid is None or hip_mid is None:
        return None
    return distance(shoulder_mid, hip_mid)
